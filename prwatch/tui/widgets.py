"""Reusable TUI widgets for prwatch."""

from textual.containers import ScrollableContainer
from textual.widgets import Static

from prwatch.tui.render import Frame


class ListScroll(ScrollableContainer, can_focus=False):
    """Scrollable container for the pull request list."""

    DEFAULT_CSS = """
    ListScroll {
        scrollbar-background: $surface-darken-1;
        scrollbar-color: $text-muted;
        scrollbar-color-hover: $text;
        scrollbar-color-active: $accent;
        scrollbar-size-vertical: 1;
    }
    """

    def keep_line_visible(self, line: int, context: int = 3) -> None:
        """Scroll just enough to show ``line`` plus a few lines below it."""
        if line < 0:
            return
        top = self.scroll_y
        height = self.size.height
        if line < top:
            self.scroll_to(y=line, animate=False)
        elif height and line + context >= top + height:
            self.scroll_to(y=line + context - height + 1, animate=False)


class PRList(Static):
    """Full-frame text rendering of the current selection state."""

    def show(self, frame: Frame) -> None:
        self.update(frame.text)


class LogLine(Static):
    """Single-line message output at the bottom of the screen."""
    pass
