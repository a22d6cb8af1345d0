"""Textual TUI App for prwatch."""

from datetime import datetime, timezone

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.timer import Timer

from prwatch.browser import open_url
from prwatch.paths import configure_logger
from prwatch.scheduler import REFRESH_INTERVAL_SECONDS, RefreshScheduler
from prwatch.selection import (
    KEY_BINDINGS,
    Action,
    OpenUrl,
    Quit,
    Refresh,
    handle_action,
)
from prwatch.tui.render import render_frame
from prwatch.tui.widgets import ListScroll, LogLine, PRList

_log = configure_logger("prwatch.tui")


class PRWatchApp(App):
    """Interactive list of pull requests waiting on the viewer."""

    TITLE = "prwatch — PR Review Watcher"

    CSS = """
    Screen {
        layout: vertical;
    }
    #list-scroll {
        height: 1fr;
        padding: 0 1;
    }
    PRList {
        width: 100%;
        height: auto;
    }
    LogLine {
        height: 1;
        background: $surface;
        color: $text-muted;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding(keys, f"dispatch('{action.value}')", label,
                show=False, priority=action is Action.QUIT)
        for keys, action, label in KEY_BINDINGS
    ]

    def __init__(self, scheduler: RefreshScheduler | None = None):
        super().__init__()
        self._refresher = scheduler or RefreshScheduler()
        self._refresher.on_change = self._update_display
        self._refresh_timer: Timer | None = None
        self._quitting = False

    def compose(self) -> ComposeResult:
        with ListScroll(id="list-scroll"):
            yield PRList(id="pr-list")
        yield LogLine(id="log-line")

    def on_mount(self) -> None:
        _log.info("TUI mounted")
        self._update_display()
        self._start_refresh()
        self._refresh_timer = self.set_interval(REFRESH_INTERVAL_SECONDS, self._start_refresh)

    # --- Refresh ---

    def _start_refresh(self) -> None:
        """Kick off a refresh unless one is already in flight."""
        if self._quitting or self._refresher.state.is_loading:
            _log.debug("refresh request ignored (quitting=%s, loading=%s)",
                       self._quitting, self._refresher.state.is_loading)
            return
        self.run_worker(self._run_refresh(), group="refresh")

    async def _run_refresh(self) -> None:
        # Another queued worker may have started the fetch since we were scheduled
        if self._refresher.state.is_loading:
            _log.debug("refresh worker skipped: fetch already in flight")
            return
        ok = await self._refresher.refresh()
        if self._quitting:
            return
        if ok:
            self.log_message("")
        elif self._refresher.last_error:
            self.log_message(f"Fetch error: {self._refresher.last_error}")

    # --- Display ---

    def _update_display(self) -> None:
        """Re-render the whole frame from the current state."""
        if self._quitting:
            return
        frame = render_frame(self._refresher.state, datetime.now(timezone.utc))
        try:
            self.query_one("#pr-list", PRList).show(frame)
            self.query_one("#list-scroll", ListScroll).keep_line_visible(frame.cursor_line)
        except Exception as e:
            # Not mounted yet (or already torn down)
            _log.debug("display update skipped: %s", e)

    def log_message(self, msg: str) -> None:
        """Show a message in the log line."""
        try:
            log = self.query_one("#log-line", LogLine)
            log.update(f" {msg}" if msg else "")
        except Exception:
            pass

    # --- Input ---

    def action_dispatch(self, name: str) -> None:
        """Run one input action through the state machine and perform its effects."""
        if self._quitting:
            return
        action = Action.parse(name)
        state = self._refresher.state
        new_state, effects = handle_action(state, action)
        _log.debug("action: %s cursor=%d->%d effects=%s",
                   action.value, state.cursor, new_state.cursor, effects)
        if new_state != state:
            self._refresher.set_state(new_state)

        for effect in effects:
            if isinstance(effect, OpenUrl):
                open_url(effect.url)
            elif isinstance(effect, Refresh):
                self._start_refresh()
            elif isinstance(effect, Quit):
                self._disarm_and_exit()
                return

    def _disarm_and_exit(self) -> None:
        _log.info("quitting")
        self._quitting = True
        if self._refresh_timer is not None:
            self._refresh_timer.stop()
            self._refresh_timer = None
        self._refresher.close()
        self.exit(return_code=0)
