"""Shared fixtures for prwatch tests."""

import os
import tempfile
from datetime import datetime, timezone

import pytest

# Keep log files out of the real home directory.  Must run before any
# prwatch module is imported, since loggers are configured at import time.
os.environ.setdefault("PRWATCH_HOME", tempfile.mkdtemp(prefix="prwatch-test-"))

from prwatch.models import Activity, PullRequestRecord, RawPullRequest, Reason  # noqa: E402


def at(hour: int, minute: int = 0) -> datetime:
    """A fixed UTC timestamp on 2024-05-01."""
    return datetime(2024, 5, 1, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def ts():
    return at


@pytest.fixture
def make_raw():
    """Factory for RawPullRequest objects with sensible defaults."""

    def _make(number: int = 1, repo: str = "acme/app", updated: int = 10,
              last_commit: int | None = None,
              comments: list[tuple[str, int]] = (),
              reviews: list[tuple[str, int]] = ()) -> RawPullRequest:
        return RawPullRequest(
            repository=repo,
            title=f"PR {number}",
            url=f"https://github.com/{repo}/pull/{number}",
            author="alice",
            created_at=at(8),
            updated_at=at(updated),
            last_commit_at=at(last_commit) if last_commit is not None else None,
            comments=tuple(Activity(login, at(h)) for login, h in comments),
            reviews=tuple(Activity(login, at(h)) for login, h in reviews),
        )

    return _make


@pytest.fixture
def make_record():
    """Factory for PullRequestRecord objects with sensible defaults."""

    def _make(name: str, repo: str = "acme/app", updated: int = 10, minute: int = 0,
              reason: Reason = Reason.REVIEW_REQUESTED) -> PullRequestRecord:
        return PullRequestRecord(
            repository=repo,
            title=f"PR {name}",
            url=f"https://github.com/{repo}/pull/{name}",
            author="alice",
            created_at=at(8),
            updated_at=at(updated, minute),
            reason=reason,
        )

    return _make
