"""GitHub API client for organization repository discovery."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor

from github import Auth, Github, GithubException

from ..errors import DiscoveryError
from ..sync.cancel import CancelScope
from ..sync.stream import DEFAULT_BUFFER, RepositoryStream
from .models import RepositoryDescriptor

logger = logging.getLogger(__name__)

PER_PAGE = 50


class PageAborted(Exception):
    """A page fetch was skipped because discovery was cancelled."""


class GitHubClient:
    """Thin wrapper around PyGithub holding the authenticated session."""

    def __init__(
        self,
        token: str,
        api_url: str | None = None,
        per_page: int = PER_PAGE,
        gh: Github | None = None,
    ):
        if gh is None:
            kwargs = {"auth": Auth.Token(token), "per_page": per_page}
            if api_url:
                kwargs["base_url"] = api_url
            gh = Github(**kwargs)
        self.gh = gh
        self.per_page = per_page

    def get_organization(self, owner: str):
        """Fetch organization metadata, wrapping API failures."""
        try:
            return self.gh.get_organization(owner)
        except GithubException as e:
            raise DiscoveryError(f"failed to fetch organization {owner}: {e}") from e

    @staticmethod
    def to_descriptor(repo) -> RepositoryDescriptor:
        """Convert a PyGithub repository object to a RepositoryDescriptor."""
        return RepositoryDescriptor(
            name=repo.name,
            clone_url=repo.clone_url,
            default_branch=repo.default_branch or "",
            owner=repo.owner.login if repo.owner else "",
            archived=bool(repo.archived),
            language=repo.language,
        )


class RepositoryLister:
    """Lists every non-archived repository of an organization concurrently.

    One fetch task is started per page, all at once. Results are pushed onto
    a RepositoryStream that is returned before any page has completed, so
    consumers can start cloning while discovery is still running.

    Usage::

        lister = RepositoryLister(GitHubClient(token))
        total, stream = lister.list_organization_repos("my-org", CancelScope())
        for repo in stream:
            ...
        if not stream.report.complete:
            ...
    """

    def __init__(self, client: GitHubClient, buffer_size: int = DEFAULT_BUFFER):
        self.client = client
        self.buffer_size = buffer_size

    def list_organization_repos(
        self,
        owner: str,
        scope: CancelScope,
    ) -> tuple[int, RepositoryStream]:
        """Start discovery and return ``(total_count, stream)`` immediately.

        Raises DiscoveryError if the organization metadata cannot be read.
        Individual page failures do not raise; they are logged and recorded
        on ``stream.report`` once the stream is closed.
        """
        org = self.client.get_organization(owner)
        try:
            total = (org.owned_private_repos or 0) + (org.public_repos or 0)
            listing = org.get_repos(type="all")
        except GithubException as e:
            raise DiscoveryError(f"failed to read repository counts for {owner}: {e}") from e

        per_page = self.client.per_page
        num_pages = (total + per_page - 1) // per_page
        logger.info("Total org repos: %d (%d pages)", total, num_pages)

        stream = RepositoryStream(scope, total_count=total, maxsize=self.buffer_size)
        stream.report.pages_total = num_pages

        # a failing page cancels only discovery, never the sync run
        page_scope = scope.child()
        executor = ThreadPoolExecutor(
            max_workers=max(num_pages, 1),
            thread_name_prefix="page-fetch",
        )
        futures = {
            page: executor.submit(self._fetch_page, listing, page, stream, page_scope)
            for page in range(1, num_pages + 1)
        }
        threading.Thread(
            target=self._close_when_done,
            args=(executor, futures, stream),
            name=f"discovery-{owner}",
            daemon=True,
        ).start()
        return total, stream

    def _fetch_page(self, listing, page: int, stream: RepositoryStream, scope: CancelScope) -> int:
        if scope.cancelled:
            raise PageAborted(f"page {page} skipped: {scope.reason}")
        try:
            # PyGithub pages are zero-based
            repos = listing.get_page(page - 1)
        except Exception:
            scope.cancel(f"page {page} failed")
            raise
        if scope.cancelled:
            raise PageAborted(f"page {page} discarded: {scope.reason}")

        emitted = 0
        for repo in repos:
            if repo.archived:
                continue
            if not stream.put(self.client.to_descriptor(repo)):
                raise PageAborted(f"page {page} interrupted: {stream.scope.reason}")
            emitted += 1
        logger.debug("Page %d: %d repositories", page, emitted)
        return emitted

    def _close_when_done(
        self,
        executor: ThreadPoolExecutor,
        futures: dict[int, Future],
        stream: RepositoryStream,
    ) -> None:
        report = stream.report
        try:
            for page, future in futures.items():
                exc = future.exception()
                if exc is None:
                    continue
                if isinstance(exc, PageAborted):
                    report.pages_aborted += 1
                    continue
                report.pages_failed += 1
                report.errors.append(f"page {page}: {exc}")
                logger.error("Error fetching org repos page %d: %s", page, exc)
        finally:
            executor.shutdown(wait=False)
            stream.close()
