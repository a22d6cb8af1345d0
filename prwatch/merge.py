"""Merge the two search result sets into one deduplicated, reason-tagged list.

This module is pure: it operates on already-fetched ``RawPullRequest``
objects and performs no I/O, so the same inputs always give the same output.

It also owns the display ordering contract.  ``group_records`` is the one
ordering function used both for cursor navigation (via ``display_order``)
and by the renderer.
"""

from datetime import datetime
from typing import Iterable, Optional, Sequence

from prwatch.models import Activity, PullRequestRecord, RawPullRequest, Reason


def _last_by(activities: Sequence[Activity], login: str) -> Optional[datetime]:
    """Timestamp of the last entry authored by ``login`` (sequences are chronological)."""
    mine = [a for a in activities if a.author == login]
    return mine[-1].at if mine else None


def latest_interaction(pr: RawPullRequest, viewer_login: str) -> Optional[datetime]:
    """Latest of the viewer's last comment and last review, or None if neither exists."""
    dates = [d for d in (_last_by(pr.comments, viewer_login),
                         _last_by(pr.reviews, viewer_login)) if d is not None]
    if not dates:
        return None
    return max(dates)


def has_unseen_activity(pr: RawPullRequest, viewer_login: str) -> bool:
    """Check whether a commit landed after the viewer last commented or reviewed.

    Fails closed: a pull request with no known last commit, or one the
    viewer never commented on or reviewed, is excluded.  Equal timestamps
    do not count as new.
    """
    if pr.last_commit_at is None:
        return False
    interacted_at = latest_interaction(pr, viewer_login)
    if interacted_at is None:
        return False
    return pr.last_commit_at > interacted_at


def merge_pull_requests(
    viewer_login: str,
    review_requested: Iterable[RawPullRequest],
    interacted: Iterable[RawPullRequest],
) -> list[PullRequestRecord]:
    """Build the merged result set, one record per URL.

    Review-requested pull requests are always kept.  Interacted pull
    requests are kept only when they have unseen activity.  When a URL is
    in both sets, the review-requested copy wins entirely.
    """
    merged: dict[str, PullRequestRecord] = {}
    for pr in interacted:
        if has_unseen_activity(pr, viewer_login):
            merged[pr.url] = PullRequestRecord.from_raw(pr, Reason.UPDATED)
    for pr in review_requested:
        merged[pr.url] = PullRequestRecord.from_raw(pr, Reason.REVIEW_REQUESTED)
    return list(merged.values())


def group_records(
    records: Iterable[PullRequestRecord],
) -> list[tuple[str, list[PullRequestRecord]]]:
    """Group records by repository, newest first.

    All records are sorted by ``updated_at`` descending, then grouped in the
    order each repository is first seen while walking that list.  A group
    therefore sorts by its most recently updated member, and members within
    a group stay newest first.
    """
    ordered = sorted(records, key=lambda r: r.updated_at, reverse=True)
    groups: dict[str, list[PullRequestRecord]] = {}
    for record in ordered:
        groups.setdefault(record.repository, []).append(record)
    return list(groups.items())


def display_order(records: Iterable[PullRequestRecord]) -> tuple[PullRequestRecord, ...]:
    """Flatten ``group_records`` into the order the cursor moves through."""
    return tuple(r for _, members in group_records(records) for r in members)
