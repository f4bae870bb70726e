"""Snapshot pipeline - Fetches, classifies and caches GitHub board state."""

from workflow_monitor.snapshot.cache import SnapshotCache, cache_key
from workflow_monitor.snapshot.classifier import (
    calculate_checks_rollup,
    classify_pr,
    map_ci_state,
    time_ago,
)
from workflow_monitor.snapshot.exceptions import (
    InvalidCredentialError,
    InvalidRepositoryError,
    MissingCredentialError,
    RepositoryNotFoundError,
    SnapshotError,
    UpstreamError,
    UpstreamRateLimitedError,
)
from workflow_monitor.snapshot.fetcher import SnapshotFetcher
from workflow_monitor.snapshot.models import (
    BoardGroups,
    Bucket,
    CheckContext,
    CheckRun,
    ChecksRollup,
    CIState,
    CommitList,
    CommitRow,
    FailingCheck,
    PRCard,
    Snapshot,
    StatusContext,
)
from workflow_monitor.snapshot.service import SnapshotService

__all__ = [
    "BoardGroups",
    "Bucket",
    "CIState",
    "CheckContext",
    "CheckRun",
    "ChecksRollup",
    "CommitList",
    "CommitRow",
    "FailingCheck",
    "InvalidCredentialError",
    "InvalidRepositoryError",
    "MissingCredentialError",
    "PRCard",
    "RepositoryNotFoundError",
    "Snapshot",
    "SnapshotCache",
    "SnapshotError",
    "SnapshotFetcher",
    "SnapshotService",
    "StatusContext",
    "UpstreamError",
    "UpstreamRateLimitedError",
    "cache_key",
    "calculate_checks_rollup",
    "classify_pr",
    "map_ci_state",
    "time_ago",
]
