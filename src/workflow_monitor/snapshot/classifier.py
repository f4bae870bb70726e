"""Deterministic rules turning raw GitHub state into board data."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from workflow_monitor.snapshot.models import (
    Bucket,
    CheckContext,
    ChecksRollup,
    CIState,
    FailingCheck,
)

PASSED_OUTCOMES = frozenset({"SUCCESS", "EXPECTED", "NEUTRAL"})
FAILED_OUTCOMES = frozenset({"FAILURE", "ERROR", "CANCELLED", "TIMED_OUT", "ACTION_REQUIRED"})
MAX_TOP_FAILING = 3

REVIEW_APPROVED = "APPROVED"
REVIEW_CHANGES_REQUESTED = "CHANGES_REQUESTED"
REVIEW_REQUIRED = "REVIEW_REQUIRED"

_ROLLUP_STATES = {
    "SUCCESS": CIState.SUCCESS,
    "FAILURE": CIState.FAILURE,
    "ERROR": CIState.FAILURE,
    "PENDING": CIState.RUNNING,
    "EXPECTED": CIState.RUNNING,
}


def map_ci_state(state: str | None) -> CIState:
    """Map a ``statusCheckRollup.state`` value to a display CI state."""
    if not state:
        return CIState.UNKNOWN
    return _ROLLUP_STATES.get(state.upper(), CIState.UNKNOWN)


def classify_pr(ci_state: CIState, mergeable: bool, review_decision: str) -> Bucket:
    """Pick the single board bucket for a pull request.

    Rules are checked in order and the first match wins. A failing CI run
    outranks every review state, so an approved and mergeable PR with red
    CI still lands in ``ci_failing``.

    Args:
        ci_state: CI state of the PR's head commit.
        mergeable: Whether GitHub reports the PR as MERGEABLE.
        review_decision: Raw GitHub review decision (case-sensitive).

    Returns:
        The bucket the PR belongs to.
    """
    if ci_state is CIState.FAILURE:
        return Bucket.CI_FAILING
    if review_decision == REVIEW_CHANGES_REQUESTED:
        return Bucket.CHANGES_REQUESTED
    if mergeable and ci_state is CIState.SUCCESS and review_decision == REVIEW_APPROVED:
        return Bucket.MERGEABLE
    if review_decision in (REVIEW_REQUIRED, REVIEW_APPROVED):
        return Bucket.IN_REVIEW
    return Bucket.OPEN


def calculate_checks_rollup(contexts: Iterable[CheckContext], pr_url: str) -> ChecksRollup:
    """Count check outcomes for one commit.

    Every context lands in exactly one of passed, failed or running;
    anything not recognised as passed or failed counts as running. At most
    ``MAX_TOP_FAILING`` failing checks are listed, the ``failed`` counter
    keeps counting past that.
    """
    passed = failed = running = 0
    top_failing: list[FailingCheck] = []

    for ctx in contexts:
        outcome = ctx.outcome.upper()
        if outcome in PASSED_OUTCOMES:
            passed += 1
        elif outcome in FAILED_OUTCOMES:
            failed += 1
            if len(top_failing) < MAX_TOP_FAILING:
                top_failing.append(FailingCheck(name=ctx.name, url=ctx.url))
        else:
            running += 1

    return ChecksRollup(
        passed=passed,
        failed=failed,
        running=running,
        top_failing=tuple(top_failing),
        pr_url=pr_url,
    )


def parse_timestamp(value: str) -> datetime:
    """Parse a GitHub ISO-8601 timestamp (``Z`` suffix) into an aware datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def time_ago(timestamp: str | None, now: datetime | None = None) -> str:
    """Render a timestamp as a coarse relative age ("5m ago", "3d ago")."""
    if not timestamp:
        return "unknown"
    try:
        then = parse_timestamp(timestamp)
    except ValueError:
        return "unknown"

    if now is None:
        now = datetime.now(timezone.utc)
    seconds = int((now - then).total_seconds())
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"
