"""Shared test fixtures."""

import subprocess
import threading
from types import SimpleNamespace

import pytest
from github import GithubException

from multirepo.crawler.github_client import GitHubClient, RepositoryLister
from multirepo.crawler.models import RepositoryDescriptor


def make_api_repo(name, archived=False, language="Python", branch="main", owner="acme"):
    """A stand-in for a PyGithub Repository object."""
    return SimpleNamespace(
        name=name,
        clone_url=f"https://github.com/{owner}/{name}.git",
        default_branch=branch,
        archived=archived,
        language=language,
        owner=SimpleNamespace(login=owner),
    )


def make_descriptor(name, archived=False, language="Python"):
    return RepositoryDescriptor(
        name=name,
        clone_url=f"https://github.com/acme/{name}.git",
        default_branch="main",
        owner="acme",
        archived=archived,
        language=language,
    )


class FakeRepoListing:
    """Mimics PaginatedList.get_page with zero-based pages.

    With a *gate*, every page that is not in *fail_pages* blocks until the
    gate is set. ``failed`` is set once a failing page has raised.
    """

    def __init__(self, repos, per_page, fail_pages=(), gate=None):
        self.repos = repos
        self.per_page = per_page
        self.fail_pages = set(fail_pages)
        self.gate = gate
        self.failed = threading.Event()
        self.requested: list[int] = []
        self._lock = threading.Lock()

    def get_page(self, page):
        with self._lock:
            self.requested.append(page)
        if page in self.fail_pages:
            self.failed.set()
            raise GithubException(502, {"message": "bad gateway"}, None)
        if self.gate is not None:
            assert self.gate.wait(5), "page gate never opened"
        start = page * self.per_page
        return self.repos[start:start + self.per_page]


class FakeOrganization:
    def __init__(self, listing, owned_private_repos, public_repos):
        self.listing = listing
        self.owned_private_repos = owned_private_repos
        self.public_repos = public_repos
        self.repo_types: list[str] = []

    def get_repos(self, type="all"):
        self.repo_types.append(type)
        return self.listing


class FakeGithub:
    def __init__(self, org=None, error=None):
        self.org = org
        self.error = error

    def get_organization(self, login):
        if self.error is not None:
            raise self.error
        return self.org


def build_lister(repos, private=None, public=0, fail_pages=(), per_page=50, buffer_size=16, gate=None):
    """Lister over fake API objects. Returns (lister, listing, org)."""
    if private is None:
        private = len(repos) - public
    listing = FakeRepoListing(repos, per_page, fail_pages, gate)
    org = FakeOrganization(listing, private, public)
    client = GitHubClient(token="test-token", per_page=per_page, gh=FakeGithub(org))
    return RepositoryLister(client, buffer_size=buffer_size), listing, org


class FakeGit:
    """Records git invocations and answers them from a handler function."""

    def __init__(self, handler=None):
        self.handler = handler or (lambda cmd, cwd: (0, "", ""))
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    def __call__(self, cmd, cwd=None, env=None, **kwargs):
        with self._lock:
            self.calls.append({"cmd": cmd, "cwd": cwd, "env": env})
        returncode, stdout, stderr = self.handler(cmd, cwd)
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)


@pytest.fixture
def api_repos():
    """150 repositories, every fifth one archived."""
    return [make_api_repo(f"repo-{i:03d}", archived=(i % 5 == 0)) for i in range(150)]


@pytest.fixture
def fake_git():
    return FakeGit()
