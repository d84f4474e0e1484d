"""Main entry point for multirepo."""

import argparse
import logging
import os
import signal
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import SyncConfig, load_config
from .crawler.auth import resolve_token
from .crawler.github_client import GitHubClient, RepositoryLister
from .crawler.local_scanner import scan_directory
from .crawler.models import RepositoryDescriptor
from .errors import CredentialError, MultirepoError
from .sync.cancel import CancelScope
from .sync.outcomes import RunResult, SyncStatus
from .sync.pool import SyncMode, SyncWorkerPool
from .sync.stats import print_language_stats, tally_languages
from .sync.stream import DiscoveryReport, RepositoryStream
from .sync.transfer import GitTransfer

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def setup_logging(level: str) -> None:
    """Route log records to stderr through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


class InterruptHandler:
    """First SIGINT cancels the run, the second one exits immediately."""

    def __init__(self, scope: CancelScope):
        self.scope = scope
        self.count = 0

    def __call__(self, signum, frame) -> None:
        self.count += 1
        if self.count == 1:
            logger.warning("Interrupted, waiting for running operations (interrupt again to exit)")
            self.scope.cancel("interrupted")
            return
        logger.warning("second interrupt, exiting")
        os._exit(1)


@contextmanager
def interrupt_handling(scope: CancelScope):
    previous = signal.signal(signal.SIGINT, InterruptHandler(scope))
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def build_lister(config: SyncConfig, token: str) -> RepositoryLister:
    client = GitHubClient(token=token, api_url=config.api_url)
    return RepositoryLister(client, buffer_size=config.stream_buffer)


def build_transfer(config: SyncConfig, token: str | None) -> GitTransfer:
    return GitTransfer(token=token, force_color=config.force_color, console=console)


def print_summary(result: RunResult) -> None:
    """Print how many repositories ended in each state."""
    counts = result.counts
    table = Table(title="Sync Summary")
    table.add_column("Outcome", style="cyan")
    table.add_column("Repositories", style="magenta", justify="right")
    for status in SyncStatus:
        if counts[status]:
            table.add_row(status.value, str(counts[status]))
    table.add_row("[bold]total[/bold]", f"[bold]{sum(counts.values())}[/bold]")
    console.print(table)


def report_discovery(report: DiscoveryReport | None) -> bool:
    """Log an incomplete listing. Returns True if the listing was complete."""
    if report is None or report.complete:
        return True
    logger.error(
        "Repository discovery incomplete: %d of %d pages failed, %d aborted",
        report.pages_failed, report.pages_total, report.pages_aborted,
    )
    return False


def finish_run(result: RunResult, report: DiscoveryReport | None) -> int:
    """Turn a run result into a process exit code."""
    print_summary(result)
    if result.error is not None:
        logger.error("%s", result.error)
        if result.extra_errors:
            logger.error("%d more repositories failed after the first error", result.extra_errors)
        return 1
    if result.cancelled:
        logger.warning("Run cancelled")
        return 1
    return 0 if report_discovery(report) else 1


def release_discovery(scope: CancelScope, stream: RepositoryStream) -> None:
    """Cancel page fetches still feeding a stream that nobody reads any more."""
    if not stream.closed:
        scope.cancel("discovery abandoned")


def run_org_sync(config: SyncConfig, mode: SyncMode, scope: CancelScope) -> int:
    """Discover an organization's repositories and clone or pull them all."""
    token = resolve_token(config.token)
    lister = build_lister(config, token)
    pool = SyncWorkerPool(build_transfer(config, token), config.parallel_workers, mode)
    config.target_dir.mkdir(parents=True, exist_ok=True)

    _, stream = lister.list_organization_repos(config.owner, scope)
    try:
        result = pool.run(stream, config.target_dir)
        return finish_run(result, stream.report if stream.closed else None)
    finally:
        release_discovery(scope, stream)


def run_folder_pull(config: SyncConfig, scope: CancelScope, directory: Path) -> int:
    """Pull every git checkout directly below *directory*."""
    names = scan_directory(directory)
    logger.info("Found %d repositories in %s", len(names), directory)

    try:
        token = resolve_token(config.token)
    except CredentialError as e:
        logger.debug("Pulling without a token: %s", e)
        token = None

    stream = RepositoryStream.from_iterable(
        (RepositoryDescriptor.local(name) for name in names),
        scope,
        maxsize=config.stream_buffer,
    )
    pool = SyncWorkerPool(build_transfer(config, token), config.parallel_workers, SyncMode.PULL)
    return finish_run(pool.run(stream, directory), None)


def run_stats(config: SyncConfig, scope: CancelScope) -> int:
    """Print the primary-language distribution of an organization."""
    lister = build_lister(config, resolve_token(config.token))
    _, stream = lister.list_organization_repos(config.owner, scope)
    try:
        tally = tally_languages(stream)
    finally:
        release_discovery(scope, stream)
    print_language_stats(tally, console)
    if scope.cancelled:
        logger.warning("Run cancelled")
        return 1
    return 0 if report_discovery(stream.report) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multirepo",
        description="multirepo - clone, pull and inspect every repository of a GitHub organization",
    )
    parser.add_argument("--config", "-c", type=Path, help="Path to YAML configuration file")
    parser.add_argument("--gh-token", help="GitHub token (defaults to GH_TOKEN or the gh CLI login)")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_workers(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--parallel-workers", "-p", type=int, help="Concurrent git operations (default: 10)")

    pull_org = subparsers.add_parser("pull-org", help="Pull every repository of an organization")
    pull_org.add_argument("owner", nargs="?", help="Organization name")
    pull_org.add_argument("--target-dir", "-t", help="Directory holding the organization checkout")
    add_workers(pull_org)

    pull = subparsers.add_parser("pull", help="Pull every git repository in the current directory")
    add_workers(pull)

    clone = subparsers.add_parser("clone", help="Clone every repository of an organization")
    clone.add_argument("owner", nargs="?", help="Organization name")
    clone.add_argument("--target-dir", "-t", help="Directory to clone into")
    add_workers(clone)

    stats = subparsers.add_parser("stats", help="Show primary language statistics")
    stats.add_argument("owner", nargs="?", help="Organization name")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config).with_overrides(
            owner=getattr(args, "owner", None),
            target_dir=getattr(args, "target_dir", None),
            parallel_workers=getattr(args, "parallel_workers", None),
            log_level=args.log_level,
            token=args.gh_token,
        )
    except MultirepoError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        return 1

    setup_logging(config.log_level)

    if args.command in ("pull-org", "clone", "stats") and not config.owner:
        parser.error(f"{args.command}: an organization is required (argument or 'owner' in config)")

    scope = CancelScope()
    try:
        with interrupt_handling(scope):
            if args.command == "pull-org":
                return run_org_sync(config, SyncMode.PULL, scope)
            if args.command == "clone":
                return run_org_sync(config, SyncMode.CLONE, scope)
            if args.command == "stats":
                return run_stats(config, scope)
            return run_folder_pull(config, scope, Path.cwd())
    except (MultirepoError, OSError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
