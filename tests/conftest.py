"""Shared pytest fixtures and configuration."""

from collections.abc import Callable
from typing import Any

import pytest

from workflow_monitor.snapshot import (
    BoardGroups,
    Bucket,
    CIState,
    PRCard,
    Snapshot,
)


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures


@pytest.fixture
def make_pr_node() -> Callable[..., dict[str, Any]]:
    """Factory for a ``pullRequests.nodes`` entry as GitHub returns it."""

    def _make(
        number: int = 1,
        rollup_state: str | None = "SUCCESS",
        mergeable: str = "MERGEABLE",
        review_decision: str | None = None,
        author: str | None = "octocat",
        updated_at: str = "2026-01-01T00:00:00Z",
    ) -> dict[str, Any]:
        head = {"commit": {"statusCheckRollup": {"state": rollup_state} if rollup_state else None}}
        return {
            "number": number,
            "title": f"PR {number}",
            "url": f"https://github.com/octocat/Hello-World/pull/{number}",
            "author": {"login": author} if author else None,
            "headRefName": f"feature-{number}",
            "baseRefName": "main",
            "updatedAt": updated_at,
            "mergeable": mergeable,
            "reviewDecision": review_decision,
            "commits": {"nodes": [head]},
        }

    return _make


@pytest.fixture
def make_commit_node() -> Callable[..., dict[str, Any]]:
    """Factory for a focused-PR ``commits.nodes`` entry."""

    def _make(
        oid: str,
        committed_date: str = "2026-01-01T00:00:00Z",
        login: str | None = "octocat",
        name: str = "The Octocat",
        rollup_state: str | None = "SUCCESS",
        contexts: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        rollup = None
        if rollup_state is not None or contexts is not None:
            rollup = {"state": rollup_state, "contexts": {"nodes": contexts or []}}
        return {
            "commit": {
                "oid": oid,
                "messageHeadline": f"Commit {oid[:7]}",
                "committedDate": committed_date,
                "author": {"name": name, "user": {"login": login} if login else None},
                "statusCheckRollup": rollup,
            }
        }

    return _make


@pytest.fixture
def graphql_data() -> Callable[..., dict[str, Any]]:
    """Build the ``data`` object of a snapshot query response."""

    def _make(
        pr_nodes: list[dict[str, Any]] | None = None,
        focused: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        repository: dict[str, Any] = {"pullRequests": {"nodes": pr_nodes or []}}
        if focused is not None:
            repository["pullRequest"] = focused
        return {"repository": repository}

    return _make


@pytest.fixture
def make_snapshot() -> Callable[..., Snapshot]:
    """Factory for a small Snapshot value."""

    def _make(repository: str = "owner/repo", focused_item_id: int | None = None) -> Snapshot:
        card = PRCard(
            number=1,
            title="PR 1",
            url=f"https://github.com/{repository}/pull/1",
            author="octocat",
            head="feature-1",
            base="main",
            updated_at="2026-01-01T00:00:00Z",
            updated_rel="1d ago",
            ci_state=CIState.SUCCESS,
            mergeable=True,
            review_decision="NONE",
        )
        return Snapshot(
            repository=repository,
            focused_item_id=focused_item_id,
            board_groups=BoardGroups.from_cards([(Bucket.OPEN, card)]),
        )

    return _make
