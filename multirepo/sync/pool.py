"""Fixed-size worker pool that clones or pulls every repository of a stream."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from pathlib import Path

from ..crawler.models import RepositoryDescriptor
from ..errors import TransferError
from .outcomes import RunResult, SyncOutcome, SyncStatus
from .stream import RepositoryStream
from .transfer import GitTransfer

logger = logging.getLogger(__name__)


class SyncMode(str, Enum):
    CLONE = "clone"
    PULL = "pull"


class SyncWorkerPool:
    """Drains a RepositoryStream with exactly ``worker_count`` workers.

    Each worker handles one repository at a time, so ``worker_count`` is
    also the maximum number of concurrent git processes. The first fatal
    TransferError cancels the stream's scope: sibling workers stop taking
    new repositories, producers blocked on a full stream give up, and the
    error is returned on the RunResult once every worker has returned.
    """

    def __init__(self, transfer: GitTransfer, worker_count: int, mode: SyncMode):
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        self.transfer = transfer
        self.worker_count = worker_count
        self.mode = SyncMode(mode)

    def run(self, stream: RepositoryStream, target_dir: Path) -> RunResult:
        """Sync every repository in *stream* below *target_dir*."""
        result = RunResult()
        target_dir = Path(target_dir)

        with ThreadPoolExecutor(
            max_workers=self.worker_count,
            thread_name_prefix=f"{self.mode.value}-worker",
        ) as executor:
            futures = [
                executor.submit(self._work, stream, target_dir, result)
                for _ in range(self.worker_count)
            ]
            for future in as_completed(futures):
                if future.exception() is not None:
                    stream.scope.cancel("sync worker crashed")

        for future in futures:
            future.result()

        result.cancelled = result.error is None and stream.scope.cancelled
        counts = result.counts
        logger.info(
            "%s finished: %d repositories processed, %d failed",
            self.mode.value.capitalize(), len(result.outcomes), counts[SyncStatus.FAILED],
        )
        return result

    def _work(self, stream: RepositoryStream, target_dir: Path, result: RunResult) -> None:
        scope = stream.scope
        for repo in stream:
            try:
                outcome = self.sync_one(repo, target_dir)
            except TransferError as e:
                result.record(SyncOutcome(repo.name, SyncStatus.FAILED, reason=str(e)))
                if scope.cancelled:
                    # a sibling failure or an interrupt got here first
                    logger.debug("Ignoring failure after cancellation: %s", e)
                    return
                if result.fail(e):
                    scope.cancel(f"{self.mode.value} of {repo.name} failed")
                return
            result.record(outcome)

    def sync_one(self, repo: RepositoryDescriptor, target_dir: Path) -> SyncOutcome:
        """Clone or pull a single repository according to the pool's mode."""
        target = target_dir / repo.name
        if self.mode is SyncMode.PULL:
            if repo.archived:
                logger.debug("Repo is archived, skipping: %s", repo.name)
                return SyncOutcome(repo.name, SyncStatus.SKIPPED_ARCHIVED)
            return self.transfer.pull(repo.name, repo.clone_url, repo.default_branch, target)
        return self.transfer.clone(repo.name, repo.clone_url, target)
