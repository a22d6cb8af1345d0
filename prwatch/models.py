"""Pull request records and validated parsing of raw GraphQL search nodes.

Raw payloads from ``gh api graphql`` are plain dicts.  They are turned into
``RawPullRequest`` objects here, at the query boundary, so the merger never
sees partial or undefined fields.  Any shape mismatch raises
``FetchFailure`` and fails the whole fetch.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional

# Login GitHub reports for content whose author account was deleted
GHOST_LOGIN = "ghost"


class FetchFailure(Exception):
    """Raised when the query collaborator fails or returns malformed data."""


class Reason(str, Enum):
    """Why a pull request is on the list."""

    REVIEW_REQUESTED = "review-requested"
    UPDATED = "updated"


class Activity(NamedTuple):
    """A comment or review left on a pull request."""

    author: str
    at: datetime


@dataclass(frozen=True)
class RawPullRequest:
    """A pull request as returned by the search query, before merging.

    ``last_commit_at``, ``comments`` and ``reviews`` are only populated for
    the "interacted" search; they are dropped once the merger has run.
    """

    repository: str
    title: str
    url: str
    author: str
    created_at: datetime
    updated_at: datetime
    last_commit_at: Optional[datetime] = None
    comments: tuple[Activity, ...] = ()
    reviews: tuple[Activity, ...] = ()


@dataclass(frozen=True)
class PullRequestRecord:
    """Immutable snapshot of one pull request at fetch time.

    ``url`` is the identity key: two records with the same URL are the same
    pull request.
    """

    repository: str
    title: str
    url: str
    author: str
    created_at: datetime
    updated_at: datetime
    reason: Reason

    @classmethod
    def from_raw(cls, raw: RawPullRequest, reason: Reason) -> "PullRequestRecord":
        return cls(
            repository=raw.repository,
            title=raw.title,
            url=raw.url,
            author=raw.author,
            created_at=raw.created_at,
            updated_at=raw.updated_at,
            reason=reason,
        )

    def to_dict(self) -> dict:
        """JSON-friendly representation (used by ``prwatch list --json``)."""
        return {
            "repository": self.repository,
            "title": self.title,
            "url": self.url,
            "author": self.author,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "reason": self.reason.value,
        }


def parse_timestamp(value) -> datetime:
    """Parse a GitHub ISO 8601 timestamp (e.g. ``2024-05-01T10:00:00Z``)."""
    if not isinstance(value, str):
        raise FetchFailure(f"Expected timestamp string, got {value!r}")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise FetchFailure(f"Invalid timestamp {value!r}") from e


def _login(author) -> str:
    if author is None:
        return GHOST_LOGIN
    login = author.get("login") if isinstance(author, dict) else None
    if not isinstance(login, str):
        raise FetchFailure(f"Malformed author: {author!r}")
    return login


def _require_str(node: dict, key: str) -> str:
    value = node.get(key)
    if not isinstance(value, str):
        raise FetchFailure(f"Pull request field {key!r} missing or not a string")
    return value


def _nodes(node: dict, key: str) -> list:
    """Return ``node[key]["nodes"]``, treating an absent connection as empty."""
    connection = node.get(key)
    if connection is None:
        return []
    nodes = connection.get("nodes") if isinstance(connection, dict) else None
    if not isinstance(nodes, list):
        raise FetchFailure(f"Malformed {key!r} connection")
    return nodes


def _activities(node: dict, key: str, time_field: str) -> tuple[Activity, ...]:
    result = []
    for item in _nodes(node, key):
        if not isinstance(item, dict):
            raise FetchFailure(f"Malformed {key!r} entry: {item!r}")
        at = item.get(time_field)
        if at is None:
            # Pending reviews have no submittedAt yet
            continue
        result.append(Activity(_login(item.get("author")), parse_timestamp(at)))
    return tuple(result)


def _last_commit_at(node: dict) -> Optional[datetime]:
    commits = _nodes(node, "commits")
    if not commits:
        return None
    try:
        committed = commits[-1]["commit"]["committedDate"]
    except (KeyError, TypeError) as e:
        raise FetchFailure("Malformed commits connection") from e
    if committed is None:
        return None
    return parse_timestamp(committed)


def parse_pull_request(node, with_activity: bool = False) -> RawPullRequest:
    """Validate one search result node and build a ``RawPullRequest``.

    Args:
        node: The ``node`` dict of a search edge.
        with_activity: Also read the last commit, comments and reviews
            (only requested for the "interacted" search).

    Raises:
        FetchFailure: If the node does not have the expected shape.
    """
    if not isinstance(node, dict):
        raise FetchFailure(f"Expected pull request object, got {type(node).__name__}")

    repo = node.get("repository")
    if not isinstance(repo, dict) or not isinstance(repo.get("nameWithOwner"), str):
        raise FetchFailure("Pull request field 'repository' missing or malformed")

    fields = dict(
        repository=repo["nameWithOwner"],
        title=_require_str(node, "title"),
        url=_require_str(node, "url"),
        author=_login(node.get("author")),
        created_at=parse_timestamp(node.get("createdAt")),
        updated_at=parse_timestamp(node.get("updatedAt")),
    )
    if with_activity:
        fields.update(
            last_commit_at=_last_commit_at(node),
            comments=_activities(node, "comments", "createdAt"),
            reviews=_activities(node, "reviews", "submittedAt"),
        )
    return RawPullRequest(**fields)


def parse_search(data: dict, alias: str, with_activity: bool = False) -> list[RawPullRequest]:
    """Parse the edges of one aliased ``search`` connection."""
    search = data.get(alias)
    edges = search.get("edges") if isinstance(search, dict) else None
    if not isinstance(edges, list):
        raise FetchFailure(f"Response is missing the {alias!r} search results")
    prs = []
    for edge in edges:
        if not isinstance(edge, dict):
            raise FetchFailure(f"Malformed {alias!r} edge: {edge!r}")
        prs.append(parse_pull_request(edge.get("node"), with_activity=with_activity))
    return prs
