"""Periodic and manual refresh of the pull request list.

The blocking ``gh`` call runs on a daemon thread so the TUI stays
responsive while a fetch is in flight, and so quitting never waits on a
stalled fetch.  All state changes happen on the event loop thread, between
awaits, so the app never sees a torn state.

At most one fetch is in flight: ``refresh`` checks and sets ``is_loading``
without awaiting in between, and a request made while loading is a no-op.
"""

import asyncio
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from prwatch import gh_ops
from prwatch.merge import merge_pull_requests
from prwatch.models import FetchFailure, PullRequestRecord
from prwatch.paths import configure_logger
from prwatch.selection import (
    SelectionState,
    apply_fetch_failure,
    apply_fetch_result,
    begin_loading,
)

_log = configure_logger("prwatch.scheduler")

REFRESH_INTERVAL_SECONDS = 5 * 60


def fetch_merged() -> list[PullRequestRecord]:
    """Query GitHub and merge both result sets (blocking)."""
    result = gh_ops.fetch_pull_requests()
    return merge_pull_requests(result.viewer_login, result.review_requested, result.interacted)


class RefreshScheduler:
    """Owns the live ``SelectionState`` and serializes refreshes.

    Args:
        fetch: Blocking callable returning merged records; raises
            FetchFailure on failure.
        on_change: Called with no arguments after every state change.
        clock: Returns the current time (for ``last_fetch_time``).
        cancel: Called by ``close`` to abort whatever the fetch is blocked on.
    """

    def __init__(
        self,
        fetch: Callable[[], list[PullRequestRecord]] = fetch_merged,
        on_change: Optional[Callable[[], None]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        cancel: Callable[[], None] = gh_ops.terminate_running,
    ):
        self.state = SelectionState()
        self.last_error: Optional[str] = None
        self._fetch = fetch
        self.on_change = on_change
        self._clock = clock
        self._cancel = cancel
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def set_state(self, state: SelectionState) -> None:
        self.state = state
        if self.on_change:
            self.on_change()

    async def refresh(self) -> bool:
        """Fetch and apply a new result set.

        Returns True if the list was replaced, False if the refresh was
        skipped (already loading, or closed) or the fetch failed.
        """
        if self._closed:
            _log.debug("refresh skipped: scheduler closed")
            return False
        if self.state.is_loading:
            _log.debug("refresh skipped: fetch already in flight")
            return False

        self.set_state(begin_loading(self.state))
        _log.info("refresh started")

        try:
            records = await self._run_fetch()
        except FetchFailure as e:
            return self._fail(str(e))
        except Exception as e:
            _log.exception("unexpected refresh error")
            return self._fail(f"{type(e).__name__}: {e}")

        if self._closed:
            _log.info("refresh result discarded: scheduler closed")
            return False

        self.last_error = None
        self.set_state(apply_fetch_result(self.state, records, self._clock()))
        _log.info("refresh done: %d PRs", len(self.state.records))
        return True

    def _run_fetch(self) -> asyncio.Future:
        """Run the blocking fetch on a daemon thread.

        Unlike the default executor, the thread is never joined at loop
        shutdown.  A fetch that finishes after the loop has closed is
        dropped.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def _resolve(result, error):
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def _run():
            try:
                result, error = self._fetch(), None
            except Exception as e:
                result, error = None, e
            try:
                loop.call_soon_threadsafe(_resolve, result, error)
            except RuntimeError:
                _log.debug("fetch finished after the event loop closed")

        threading.Thread(target=_run, daemon=True, name="prwatch-fetch").start()
        return future

    def _fail(self, message: str) -> bool:
        _log.warning("refresh failed: %s", message)
        if self._closed:
            return False
        self.last_error = message
        self.set_state(apply_fetch_failure(self.state))
        return False

    def close(self) -> None:
        """Stop accepting refreshes and abort the in-flight fetch, if any.

        A result that still arrives is discarded.
        """
        if self._closed:
            return
        self._closed = True
        self._cancel()
