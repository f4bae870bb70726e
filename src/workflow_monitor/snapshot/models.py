"""Data models for snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class CIState(str, Enum):
    """Display CI state of a PR head or a commit."""

    SUCCESS = "success"
    FAILURE = "failure"
    RUNNING = "running"
    UNKNOWN = "unknown"


class Bucket(str, Enum):
    """Board column a pull request is sorted into."""

    OPEN = "open"
    IN_REVIEW = "in_review"
    CHANGES_REQUESTED = "changes_requested"
    CI_FAILING = "ci_failing"
    MERGEABLE = "mergeable"


# Check contexts arrive from GitHub in two shapes. Each variant is parsed
# on its own and then mapped into a CheckContext before any counting.


@dataclass(frozen=True)
class CheckRun:
    """A GitHub Actions / Checks API run."""

    name: str
    conclusion: str | None
    status: str | None
    details_url: str | None

    def to_context(self) -> CheckContext:
        # A run that has not concluded reports its status (QUEUED, IN_PROGRESS)
        return CheckContext(
            name=self.name,
            outcome=(self.conclusion or self.status or "").upper(),
            url=self.details_url or "",
        )


@dataclass(frozen=True)
class StatusContext:
    """A legacy commit status posted through the Statuses API."""

    context: str
    state: str | None
    target_url: str | None

    def to_context(self) -> CheckContext:
        return CheckContext(
            name=self.context,
            outcome=(self.state or "").upper(),
            url=self.target_url or "",
        )


@dataclass(frozen=True)
class CheckContext:
    """Canonical check record the rollup is computed from."""

    name: str
    outcome: str
    url: str


def parse_check_node(node: dict[str, Any]) -> CheckRun | StatusContext:
    """Parse one ``statusCheckRollup.contexts`` node into its variant.

    Anything that is not a StatusContext is read as a CheckRun, so a node
    with no recognisable fields still yields a context (with an empty
    outcome) rather than disappearing from the counts.
    """
    if node.get("__typename") == "StatusContext" or "context" in node:
        return StatusContext(
            context=node.get("context") or "",
            state=node.get("state"),
            target_url=node.get("targetUrl"),
        )
    return CheckRun(
        name=node.get("name") or "",
        conclusion=node.get("conclusion"),
        status=node.get("status"),
        details_url=node.get("detailsUrl"),
    )


@dataclass(frozen=True)
class PRCard:
    """An open pull request as shown on the board."""

    number: int
    title: str
    url: str
    author: str
    head: str
    base: str
    updated_at: str
    updated_rel: str
    ci_state: CIState
    mergeable: bool
    review_decision: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "pr": self.number,
            "title": self.title,
            "url": self.url,
            "author": self.author,
            "head": self.head,
            "base": self.base,
            "updated_at": self.updated_at,
            "updated_rel": self.updated_rel,
            "ci_state": self.ci_state.value,
            "mergeable": self.mergeable,
            "review_decision": self.review_decision,
        }


@dataclass(frozen=True)
class CommitRow:
    """One commit of the focused pull request."""

    sha: str
    short_sha: str
    title: str
    author: str
    time_rel: str
    ci_state: CIState
    commit_url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sha": self.sha,
            "short_sha": self.short_sha,
            "title": self.title,
            "author": self.author,
            "time_rel": self.time_rel,
            "ci_state": self.ci_state.value,
            "commit_url": self.commit_url,
        }


@dataclass(frozen=True)
class FailingCheck:
    name: str
    url: str


@dataclass(frozen=True)
class ChecksRollup:
    """Aggregated check results for the focused PR's newest commit."""

    passed: int = 0
    failed: int = 0
    running: int = 0
    top_failing: tuple[FailingCheck, ...] = ()
    pr_url: str = ""

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.running

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "failed": self.failed,
            "running": self.running,
            "top_failing": [{"name": f.name, "url": f.url} for f in self.top_failing],
            "pr_url": self.pr_url,
        }


@dataclass(frozen=True)
class BoardGroups:
    """Open pull requests partitioned into the five board buckets."""

    open: tuple[PRCard, ...] = ()
    in_review: tuple[PRCard, ...] = ()
    changes_requested: tuple[PRCard, ...] = ()
    ci_failing: tuple[PRCard, ...] = ()
    mergeable: tuple[PRCard, ...] = ()

    @classmethod
    def from_cards(cls, cards: list[tuple[Bucket, PRCard]]) -> BoardGroups:
        """Group classified cards, keeping their input order within a bucket."""
        grouped: dict[Bucket, list[PRCard]] = {bucket: [] for bucket in Bucket}
        for bucket, card in cards:
            grouped[bucket].append(card)
        return cls(**{bucket.value: tuple(items) for bucket, items in grouped.items()})

    def bucket(self, bucket: Bucket) -> tuple[PRCard, ...]:
        result: tuple[PRCard, ...] = getattr(self, bucket.value)
        return result

    def __len__(self) -> int:
        return sum(len(self.bucket(b)) for b in Bucket)

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {b.value: [card.to_dict() for card in self.bucket(b)] for b in Bucket}


@dataclass(frozen=True)
class CommitList:
    """Focused PR commits, oldest first.

    ``count`` is GitHub's total commit count for the PR and can exceed
    ``len(items)`` when the PR has more commits than one page.
    """

    count: int = 0
    items: tuple[CommitRow, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "items": [c.to_dict() for c in self.items]}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time view of a repository's board, focused commits and checks."""

    repository: str
    focused_item_id: int | None
    board_groups: BoardGroups = field(default_factory=BoardGroups)
    commits: CommitList = field(default_factory=CommitList)
    checks_rollup: ChecksRollup = field(default_factory=ChecksRollup)
    generated_at: datetime = field(default_factory=_utcnow)
    served_from_cache: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "repo": self.repository,
            "focused_pr": self.focused_item_id,
            "board_groups": self.board_groups.to_dict(),
            "commits": self.commits.to_dict(),
            "checks_rollup": self.checks_rollup.to_dict(),
            "last_updated_iso": self.generated_at.isoformat().replace("+00:00", "Z"),
            "served_from_cache": self.served_from_cache,
        }
