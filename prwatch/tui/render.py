"""Turn a SelectionState into a complete text frame.

Pure functions only: the same state and clock give the same frame.  The
grouping comes from ``merge.group_records``, the same function that orders
``state.records``, so the highlighted row always matches the cursor.
"""

from datetime import datetime, timedelta
from typing import NamedTuple

from rich.text import Text

from prwatch.merge import group_records
from prwatch.models import Reason
from prwatch.scheduler import REFRESH_INTERVAL_SECONDS
from prwatch.selection import SelectionState

HELP_LINE = "↑/k:up ↓/j:down Enter:open p:mark o:open marked r:refresh q:quit"

REASON_TAGS = {
    Reason.REVIEW_REQUESTED: ("[review requested]", "yellow"),
    Reason.UPDATED: ("[new commits]", "dim"),
}

MARK = "● "
NO_MARK = "  "


class Frame(NamedTuple):
    text: Text
    cursor_line: int  # line of the selected title, -1 when the list is empty


def format_datetime(dt: datetime) -> str:
    """Format a timestamp in local time as ``YYYY-MM-DD HH:MM``."""
    return dt.astimezone().strftime("%Y-%m-%d %H:%M")


def render_frame(state: SelectionState, now: datetime) -> Frame:
    text = Text()
    lines = 0

    def line(content: str = "", style: str = "") -> None:
        nonlocal lines
        text.append(content, style=style)
        text.append("\n")
        lines += 1

    line(f"=== PRs To Review ({len(state.records)}) === {format_datetime(now)}", "bold")
    line(HELP_LINE, "dim")

    cursor_line = -1
    if not state.records:
        line()
        line("No PRs to review")
    else:
        index = 0
        for repo, members in group_records(state.records):
            line()
            line(repo, "cyan")
            for pr in members:
                if index == state.cursor:
                    cursor_line = lines
                if state.is_marked(pr):
                    text.append(MARK, style="green")
                else:
                    text.append(NO_MARK)
                text.append(pr.title, style="reverse" if index == state.cursor else "")
                tag, tag_style = REASON_TAGS[pr.reason]
                text.append(" ")
                line(tag, tag_style)
                line(f"    @{pr.author} | {format_datetime(pr.updated_at)}", "dim")
                line(f"    {pr.url}", "blue")
                index += 1

    line()
    if state.is_loading:
        line("● Loading...", "yellow")
    elif state.last_fetch_time is not None:
        next_fetch = state.last_fetch_time + timedelta(seconds=REFRESH_INTERVAL_SECONDS)
        line(f"Next auto-refresh: {format_datetime(next_fetch)}")
    else:
        # Keep the layout stable before the first fetch completes
        line()

    text.rstrip()
    return Frame(text, cursor_line)
