"""Per-repository sync outcomes and classification of git output."""

import threading
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from ..errors import MultirepoError

# Substrings git prints for conditions that are expected and ignorable.
MISSING_REMOTE_REF = "couldn't find remote ref"
ALREADY_EXISTS = "already exists and is not an empty directory"
UP_TO_DATE_PREFIX = "Already up to date."


class SyncStatus(str, Enum):
    """What happened to a single repository."""

    CLONED = "cloned"
    PULLED = "pulled"
    UP_TO_DATE = "up-to-date"
    SKIPPED_ARCHIVED = "skipped-archived"
    SKIPPED_NO_DEFAULT_BRANCH = "skipped-no-default-branch"
    SKIPPED_ALREADY_EXISTS = "skipped-already-exists"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncOutcome:
    repo: str
    status: SyncStatus
    reason: str = ""
    output: str = ""

    @property
    def failed(self) -> bool:
        return self.status is SyncStatus.FAILED


def classify_failure(operation: str, stderr: str) -> SyncStatus | None:
    """Map a failed git invocation to an ignorable status.

    Returns None when the failure is not one of the known benign cases and
    must be treated as fatal.
    """
    if operation == "pull" and MISSING_REMOTE_REF in stderr:
        return SyncStatus.SKIPPED_NO_DEFAULT_BRANCH
    if operation == "clone" and ALREADY_EXISTS in stderr:
        return SyncStatus.SKIPPED_ALREADY_EXISTS
    return None


def is_up_to_date(stdout: str) -> bool:
    """True when a successful pull changed nothing."""
    return stdout.startswith(UP_TO_DATE_PREFIX)


@dataclass
class RunResult:
    """Aggregate of every outcome recorded during one sync run.

    Workers call ``record`` and ``fail`` concurrently; only the first fatal
    error is kept as ``error``, later ones are counted in ``extra_errors``.
    """

    outcomes: list[SyncOutcome] = field(default_factory=list)
    error: MultirepoError | None = None
    extra_errors: int = 0
    cancelled: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, outcome: SyncOutcome) -> None:
        with self._lock:
            self.outcomes.append(outcome)

    def fail(self, error: MultirepoError) -> bool:
        """Store *error* if it is the first one. Returns True if it was."""
        with self._lock:
            if self.error is None:
                self.error = error
                return True
            self.extra_errors += 1
            return False

    @property
    def counts(self) -> Counter:
        with self._lock:
            return Counter(o.status for o in self.outcomes)

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled
