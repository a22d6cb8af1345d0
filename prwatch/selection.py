"""Selection state and the input state machine.

``SelectionState`` is immutable.  Every change goes through one of the
transition functions below, each of which returns a new state (plus, for
``handle_action``, the side effects the caller must perform).  The TUI owns
the single live instance and swaps it atomically on the event loop.

Invariants kept by every transition:
- ``records`` is in ``display_order``
- ``0 <= cursor < max(1, len(records))``
- ``marked`` only holds URLs present in ``records`` after a refresh
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Union

from prwatch.merge import display_order
from prwatch.models import PullRequestRecord


@dataclass(frozen=True)
class SelectionState:
    records: tuple[PullRequestRecord, ...] = ()
    cursor: int = 0
    marked: frozenset[str] = field(default_factory=frozenset)
    is_loading: bool = False
    last_fetch_time: Optional[datetime] = None

    @property
    def selected(self) -> Optional[PullRequestRecord]:
        if not self.records:
            return None
        return self.records[self.cursor]

    def is_marked(self, record: PullRequestRecord) -> bool:
        return record.url in self.marked


# ---------------------------------------------------------------------------
# Refresh transitions
# ---------------------------------------------------------------------------

def _clamp(index: int, length: int) -> int:
    if length == 0:
        return 0
    return max(0, min(index, length - 1))


def begin_loading(state: SelectionState) -> SelectionState:
    return replace(state, is_loading=True)


def apply_fetch_result(
    state: SelectionState,
    records: Iterable[PullRequestRecord],
    now: datetime,
) -> SelectionState:
    """Replace the list with a fresh merged result set.

    Marks for pull requests that disappeared are dropped and the cursor is
    clamped into the new list.
    """
    ordered = display_order(records)
    urls = {r.url for r in ordered}
    return replace(
        state,
        records=ordered,
        cursor=_clamp(state.cursor, len(ordered)),
        marked=frozenset(u for u in state.marked if u in urls),
        is_loading=False,
        last_fetch_time=now,
    )


def apply_fetch_failure(state: SelectionState) -> SelectionState:
    """Keep the stale list, cursor and marks; only stop loading."""
    return replace(state, is_loading=False)


# ---------------------------------------------------------------------------
# Input state machine
# ---------------------------------------------------------------------------

class Action(str, Enum):
    DOWN = "down"
    UP = "up"
    OPEN_SELECTED = "open_selected"
    TOGGLE_MARK = "toggle_mark"
    OPEN_MARKED = "open_marked"
    REFRESH = "refresh"
    QUIT = "quit"
    IGNORE = "ignore"

    @classmethod
    def parse(cls, name: str) -> "Action":
        try:
            return cls(name)
        except ValueError:
            return cls.IGNORE


# (keys, action, footer label); keys use Textual key names
KEY_BINDINGS: list[tuple[str, Action, str]] = [
    ("k,up", Action.UP, "Up"),
    ("j,down", Action.DOWN, "Down"),
    ("enter", Action.OPEN_SELECTED, "Open"),
    ("p", Action.TOGGLE_MARK, "Mark"),
    ("o", Action.OPEN_MARKED, "Open marked"),
    ("r", Action.REFRESH, "Refresh"),
    ("q,ctrl+c", Action.QUIT, "Quit"),
]


@dataclass(frozen=True)
class OpenUrl:
    url: str


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class Quit:
    pass


Effect = Union[OpenUrl, Refresh, Quit]


def handle_action(state: SelectionState, action: Action) -> tuple[SelectionState, list[Effect]]:
    """Apply one input action.

    Returns the new state and the side effects to perform, in order.
    Actions that need a selected record are no-ops on an empty list.
    """
    count = len(state.records)

    if action is Action.DOWN:
        if count:
            return replace(state, cursor=_clamp(state.cursor + 1, count)), []
    elif action is Action.UP:
        if count:
            return replace(state, cursor=_clamp(state.cursor - 1, count)), []
    elif action is Action.OPEN_SELECTED:
        if count:
            return state, [OpenUrl(state.records[state.cursor].url)]
    elif action is Action.TOGGLE_MARK:
        if count:
            url = state.records[state.cursor].url
            marked = state.marked - {url} if url in state.marked else state.marked | {url}
            # Advance so repeated presses sweep down the list
            return replace(state, marked=marked, cursor=_clamp(state.cursor + 1, count)), []
    elif action is Action.OPEN_MARKED:
        # Display order for marked URLs still listed; fire-and-forget, so
        # marks are cleared whether or not each open succeeds.
        listed = [r.url for r in state.records if r.url in state.marked]
        leftover = sorted(state.marked.difference(listed))
        effects: list[Effect] = [OpenUrl(u) for u in listed + leftover]
        return replace(state, marked=frozenset()), effects
    elif action is Action.REFRESH:
        return state, [Refresh()]
    elif action is Action.QUIT:
        return state, [Quit()]

    return state, []
