"""Shared data models for repository discovery."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RepositoryDescriptor:
    """Repository metadata as reported by the hosting API."""
    name: str
    clone_url: str
    default_branch: str
    owner: str
    archived: bool = False
    language: str | None = None

    @classmethod
    def local(cls, name: str) -> "RepositoryDescriptor":
        """Descriptor for an existing checkout with no remote metadata.

        Pulling such a repository uses the checkout's own upstream.
        """
        return cls(name=name, clone_url="", default_branch="", owner="")
