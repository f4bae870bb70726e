"""SnapshotFetcher - Builds a Snapshot from one GitHub GraphQL round trip."""

from __future__ import annotations

import logging
import re
import time
from typing import Any

import httpx

from workflow_monitor.logging import sanitize_for_log, truncate_output
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
    UpstreamError,
    UpstreamRateLimitedError,
)
from workflow_monitor.snapshot.models import (
    BoardGroups,
    Bucket,
    CheckContext,
    ChecksRollup,
    CommitList,
    CommitRow,
    PRCard,
    Snapshot,
    parse_check_node,
)

logger = logging.getLogger("workflow_monitor.fetcher")

PR_PAGE_SIZE = 50
COMMIT_PAGE_SIZE = 50
CHECK_PAGE_SIZE = 20

_REPOSITORY_RE = re.compile(r"^[\w.-]+/[\w.-]+$")
_BAD_CREDENTIALS_RE = re.compile(r"bad credentials", re.IGNORECASE)

SNAPSHOT_QUERY = f"""
query($owner: String!, $name: String!, $prNumber: Int!, $hasPr: Boolean!) {{
    repository(owner: $owner, name: $name) {{
        pullRequests(
            states: OPEN
            first: {PR_PAGE_SIZE}
            orderBy: {{field: UPDATED_AT, direction: DESC}}
        ) {{
            nodes {{
                number
                title
                url
                author {{ login }}
                headRefName
                baseRefName
                updatedAt
                mergeable
                reviewDecision
                commits(last: 1) {{
                    nodes {{
                        commit {{
                            statusCheckRollup {{ state }}
                        }}
                    }}
                }}
            }}
        }}
        pullRequest(number: $prNumber) @include(if: $hasPr) {{
            number
            url
            commits(last: {COMMIT_PAGE_SIZE}) {{
                totalCount
                nodes {{
                    commit {{
                        oid
                        messageHeadline
                        committedDate
                        author {{
                            name
                            user {{ login }}
                        }}
                        statusCheckRollup {{
                            state
                            contexts(first: {CHECK_PAGE_SIZE}) {{
                                nodes {{
                                    __typename
                                    ... on CheckRun {{
                                        name
                                        conclusion
                                        status
                                        detailsUrl
                                    }}
                                    ... on StatusContext {{
                                        context
                                        state
                                        targetUrl
                                    }}
                                }}
                            }}
                        }}
                    }}
                }}
            }}
        }}
    }}
}}
"""


def split_repository(repository: str) -> tuple[str, str]:
    """Split "owner/name" into its parts.

    Raises:
        InvalidRepositoryError: If the identifier is not in owner/name form.
    """
    repository = (repository or "").strip()
    if not _REPOSITORY_RE.match(repository):
        raise InvalidRepositoryError(f"Repository must be 'owner/name', got {repository!r}")
    owner, name = repository.split("/")
    return owner, name


class SnapshotFetcher:
    """Fetches and assembles snapshots from the GitHub GraphQL API.

    Never retries. Rate limiting is reported as ``UpstreamRateLimitedError``
    and left to the caller.
    """

    def __init__(
        self,
        token: str | None,
        base_url: str = "https://api.github.com/graphql",
        timeout: float = 30.0,
    ) -> None:
        """Initialize the fetcher.

        Args:
            token: GitHub token. Required; checked here so no request is
                ever attempted without one.
            base_url: GitHub GraphQL API URL (for testing/enterprise)
            timeout: Request timeout in seconds

        Raises:
            MissingCredentialError: If the token is empty.
        """
        token = (token or "").strip()
        if not token:
            raise MissingCredentialError("GitHub token is not configured")
        self._token = token
        self.base_url = base_url
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client for GraphQL API."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> SnapshotFetcher:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def fetch(self, repository: str, focused_item_id: int | None = None) -> Snapshot:
        """Fetch a fresh snapshot.

        Args:
            repository: GitHub repo in "owner/name" format
            focused_item_id: PR number whose commits and checks to expand

        Returns:
            A newly assembled Snapshot

        Raises:
            InvalidRepositoryError: If repository is malformed
            InvalidCredentialError: If GitHub rejects the token
            RepositoryNotFoundError: If the repository does not exist
            UpstreamRateLimitedError: If GitHub is rate limiting
            UpstreamError: For any other upstream failure
        """
        owner, name = split_repository(repository)
        variables = {
            "owner": owner,
            "name": name,
            "prNumber": focused_item_id or 0,
            "hasPr": bool(focused_item_id),
        }

        logger.debug("Fetching snapshot for %s/%s (pr=%s)", owner, name, focused_item_id)
        data = await self._graphql(SNAPSHOT_QUERY, variables)

        repo = data.get("repository")
        if not repo:
            raise RepositoryNotFoundError(f"Repository {owner}/{name} not found")

        snapshot = self._assemble(owner, name, focused_item_id, repo)
        logger.info(
            "Fetched snapshot for %s/%s: %d open PR(s), %d commit(s)",
            owner,
            name,
            len(snapshot.board_groups),
            len(snapshot.commits.items),
        )
        return snapshot

    async def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Execute a GraphQL query and map failures into the error taxonomy."""
        payload = {"query": query, "variables": variables}
        try:
            response = await self.client.post(self.base_url, json=payload)
        except httpx.HTTPError as e:
            logger.error("GitHub request failed: %s", sanitize_for_log(str(e)))
            raise UpstreamError(f"GitHub request failed: {type(e).__name__}") from e

        self._raise_for_status(response)

        try:
            body: dict[str, Any] = response.json()
        except ValueError as e:
            logger.error(
                "GitHub returned invalid JSON: %s", truncate_output(sanitize_for_log(response.text))
            )
            raise UpstreamError("GitHub returned an invalid response") from e

        errors = body.get("errors")
        if errors:
            self._raise_for_graphql_errors(
                errors, body.get("data"), variables, response.headers
            )

        data = body.get("data")
        if not isinstance(data, dict):
            raise UpstreamError("GitHub response carried no data")
        return data

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status == 200:
            return

        text = sanitize_for_log(response.text)
        if status == 401 or _BAD_CREDENTIALS_RE.search(text):
            logger.warning("GitHub rejected the token (status %d)", status)
            raise InvalidCredentialError("GitHub rejected the configured token")
        if status in (403, 429):
            retry_after = _retry_after(response.headers)
            logger.warning(
                "GitHub rate limited the request (status %d, retry_after=%s)", status, retry_after
            )
            raise UpstreamRateLimitedError("GitHub rate limit exceeded", retry_after=retry_after)

        logger.error("GitHub GraphQL request failed: %d - %s", status, truncate_output(text))
        raise UpstreamError(f"GitHub GraphQL request failed with status {status}")

    def _raise_for_graphql_errors(
        self,
        errors: list[dict[str, Any]],
        data: dict[str, Any] | None,
        variables: dict[str, Any],
        headers: httpx.Headers,
    ) -> None:
        types = {str(err.get("type", "")) for err in errors}
        messages = "; ".join(str(err.get("message", "")) for err in errors)

        if "RATE_LIMITED" in types:
            retry_after = _retry_after(headers)
            logger.warning("GitHub GraphQL rate limit hit (retry_after=%s)", retry_after)
            raise UpstreamRateLimitedError(
                "GitHub GraphQL rate limit exceeded", retry_after=retry_after
            )
        if _BAD_CREDENTIALS_RE.search(messages):
            raise InvalidCredentialError("GitHub rejected the configured token")

        if types == {"NOT_FOUND"}:
            if not (data or {}).get("repository"):
                raise RepositoryNotFoundError(
                    f"Repository {variables['owner']}/{variables['name']} not found"
                )
            # Only the focused PR is missing; the board is still usable.
            logger.info("Focused PR #%s not found, continuing without it", variables["prNumber"])
            return

        logger.error("GitHub GraphQL errors: %s", truncate_output(sanitize_for_log(messages)))
        raise UpstreamError("GitHub GraphQL query returned errors")

    def _assemble(
        self,
        owner: str,
        name: str,
        focused_item_id: int | None,
        repo: dict[str, Any],
    ) -> Snapshot:
        pr_nodes = (repo.get("pullRequests") or {}).get("nodes") or []
        classified: list[tuple[Bucket, PRCard]] = []
        for node in pr_nodes:
            if not node:
                continue
            card = _pr_card(node)
            classified.append(
                (classify_pr(card.ci_state, card.mergeable, card.review_decision), card)
            )

        commits = CommitList()
        rollup = ChecksRollup()
        focused = repo.get("pullRequest")
        if focused:
            commit_data = focused.get("commits") or {}
            commit_nodes = [
                n["commit"] for n in commit_data.get("nodes") or [] if n and n.get("commit")
            ]
            # Host order is newest first; rows read oldest to newest.
            rows = [_commit_row(owner, name, c) for c in reversed(commit_nodes)]
            commits = CommitList(count=commit_data.get("totalCount") or 0, items=tuple(rows))
            if commit_nodes:
                rollup = calculate_checks_rollup(
                    _check_contexts(_latest_commit(commit_nodes)), focused.get("url") or ""
                )

        return Snapshot(
            repository=f"{owner}/{name}",
            focused_item_id=focused_item_id or None,
            board_groups=BoardGroups.from_cards(classified),
            commits=commits,
            checks_rollup=rollup,
        )


def _pr_card(node: dict[str, Any]) -> PRCard:
    head_commits = (node.get("commits") or {}).get("nodes") or []
    rollup_state = None
    if head_commits and head_commits[0]:
        rollup_state = ((head_commits[0].get("commit") or {}).get("statusCheckRollup") or {}).get(
            "state"
        )
    updated_at = node.get("updatedAt") or ""
    return PRCard(
        number=node["number"],
        title=node.get("title") or "",
        url=node.get("url") or "",
        author=(node.get("author") or {}).get("login") or "ghost",
        head=node.get("headRefName") or "",
        base=node.get("baseRefName") or "",
        updated_at=updated_at,
        updated_rel=time_ago(updated_at),
        ci_state=map_ci_state(rollup_state),
        mergeable=node.get("mergeable") == "MERGEABLE",
        review_decision=node.get("reviewDecision") or "NONE",
    )


def _commit_row(owner: str, name: str, commit: dict[str, Any]) -> CommitRow:
    sha = commit["oid"]
    author = commit.get("author") or {}
    user = author.get("user") or {}
    return CommitRow(
        sha=sha,
        short_sha=sha[:7],
        title=commit.get("messageHeadline") or "",
        author=user.get("login") or author.get("name") or "unknown",
        time_rel=time_ago(commit.get("committedDate")),
        ci_state=map_ci_state((commit.get("statusCheckRollup") or {}).get("state")),
        commit_url=f"https://github.com/{owner}/{name}/commit/{sha}",
    )


def _latest_commit(commits: list[dict[str, Any]]) -> dict[str, Any]:
    """Newest commit by committedDate; ties and missing dates keep host order."""
    latest = commits[0]
    latest_date = commits[0].get("committedDate") or ""
    for commit in commits[1:]:
        # ISO-8601 UTC strings compare chronologically
        date = commit.get("committedDate") or ""
        if date > latest_date:
            latest, latest_date = commit, date
    return latest


def _check_contexts(commit: dict[str, Any]) -> list[CheckContext]:
    nodes = ((commit.get("statusCheckRollup") or {}).get("contexts") or {}).get("nodes") or []
    return [parse_check_node(node or {}).to_context() for node in nodes]


def _retry_after(headers: httpx.Headers) -> int | None:
    """Seconds to wait before retrying, from Retry-After or x-ratelimit-reset."""
    retry_after = headers.get("retry-after")
    if retry_after and retry_after.isdigit():
        return int(retry_after)
    reset = headers.get("x-ratelimit-reset")
    if reset and reset.isdigit():
        return max(0, int(reset) - int(time.time()))
    return None
