"""Tests for organization repository discovery."""

import threading
import time

import pytest
from github import GithubException

from multirepo.crawler.github_client import GitHubClient, RepositoryLister
from multirepo.errors import DiscoveryError
from multirepo.sync.cancel import CancelScope

from conftest import FakeGithub, build_lister, make_api_repo


def test_total_count_drives_page_count(api_repos):
    lister, listing, org = build_lister(api_repos, private=120, public=30)
    total, stream = lister.list_organization_repos("acme", CancelScope())
    list(stream)

    assert total == 150
    assert sorted(listing.requested) == [0, 1, 2]
    assert stream.report.pages_total == 3
    assert org.repo_types == ["all"]


def test_emits_each_non_archived_repo_once(api_repos):
    lister, _, _ = build_lister(api_repos)
    _, stream = lister.list_organization_repos("acme", CancelScope())
    names = [repo.name for repo in stream]

    expected = {r.name for r in api_repos if not r.archived}
    assert len(names) == len(expected) == 120
    assert set(names) == expected
    assert stream.report.complete


def test_archived_repos_never_emitted(api_repos):
    lister, _, _ = build_lister(api_repos)
    _, stream = lister.list_organization_repos("acme", CancelScope())

    assert not any(repo.archived for repo in stream)


def test_descriptor_fields():
    repo = make_api_repo("widget", language=None, branch="trunk", owner="acme")
    lister, _, _ = build_lister([repo])
    _, stream = lister.list_organization_repos("acme", CancelScope())
    (descriptor,) = list(stream)

    assert descriptor.name == "widget"
    assert descriptor.clone_url == "https://github.com/acme/widget.git"
    assert descriptor.default_branch == "trunk"
    assert descriptor.owner == "acme"
    assert descriptor.language is None


def test_small_buffer_still_delivers_everything(api_repos):
    lister, _, _ = build_lister(api_repos, buffer_size=1)
    _, stream = lister.list_organization_repos("acme", CancelScope())

    assert len(list(stream)) == 120


def test_empty_organization_closes_stream():
    lister, listing, _ = build_lister([], private=0, public=0)
    total, stream = lister.list_organization_repos("acme", CancelScope())

    assert total == 0
    assert list(stream) == []
    assert listing.requested == []
    assert stream.report.complete


def test_page_failure_is_reported_not_raised(api_repos):
    lister, _, _ = build_lister(api_repos, fail_pages={1})
    _, stream = lister.list_organization_repos("acme", CancelScope())
    names = {repo.name for repo in stream}

    report = stream.report
    assert report.pages_failed == 1
    assert not report.complete
    assert "page 2" in report.errors[0]
    # page 2 (zero-based 1) holds repo-050 .. repo-099
    assert not any("repo-050" <= name <= "repo-099" for name in names)


def test_page_failure_does_not_cancel_run_scope(api_repos):
    scope = CancelScope()
    lister, _, _ = build_lister(api_repos, fail_pages={0})
    _, stream = lister.list_organization_repos("acme", scope)
    list(stream)

    assert not scope.cancelled


def test_cancelled_run_aborts_pages(api_repos):
    scope = CancelScope()
    scope.cancel("interrupted")
    lister, _, _ = build_lister(api_repos)
    _, stream = lister.list_organization_repos("acme", scope)

    assert list(stream) == []


def test_organization_lookup_failure():
    error = GithubException(404, {"message": "Not Found"}, None)
    lister = RepositoryLister(GitHubClient(token="t", gh=FakeGithub(error=error)))

    with pytest.raises(DiscoveryError, match="acme"):
        lister.list_organization_repos("acme", CancelScope())


def test_missing_private_count_treated_as_zero():
    repos = [make_api_repo(f"r{i}") for i in range(3)]
    lister, _, _ = build_lister(repos, private=None, public=3)
    lister.client.gh.org.owned_private_repos = None
    total, stream = lister.list_organization_repos("acme", CancelScope())

    assert total == 3
    assert len(list(stream)) == 3


def test_stream_returned_before_any_page_completes(api_repos):
    gate = threading.Event()
    lister, _, _ = build_lister(api_repos, gate=gate)
    total, stream = lister.list_organization_repos("acme", CancelScope())

    assert total == 150
    assert not stream.closed
    gate.set()
    assert len(list(stream)) == 120


def test_producers_stall_on_full_buffer(api_repos):
    lister, _, _ = build_lister(api_repos, buffer_size=1)
    _, stream = lister.list_organization_repos("acme", CancelScope())

    time.sleep(0.3)
    assert not stream.closed

    assert len(list(stream)) == 120
    assert stream.closed


def test_sibling_failure_aborts_waiting_pages(api_repos):
    gate = threading.Event()
    lister, listing, _ = build_lister(api_repos, fail_pages={0}, gate=gate)
    scope = CancelScope()
    _, stream = lister.list_organization_repos("acme", scope)

    assert listing.failed.wait(5)
    time.sleep(0.2)
    gate.set()

    assert list(stream) == []
    report = stream.report
    assert report.pages_failed == 1
    assert report.pages_aborted == 2
    assert not report.complete
    assert not scope.cancelled
