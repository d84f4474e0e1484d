"""Repository transfer module."""

from .cancel import CancelScope
from .stream import DiscoveryReport, RepositoryStream
from .outcomes import RunResult, SyncOutcome, SyncStatus
from .transfer import GitTransfer
from .pool import SyncMode, SyncWorkerPool
from .stats import tally_languages

__all__ = [
    "CancelScope",
    "DiscoveryReport",
    "RepositoryStream",
    "RunResult",
    "SyncOutcome",
    "SyncStatus",
    "GitTransfer",
    "SyncMode",
    "SyncWorkerPool",
    "tally_languages",
]
