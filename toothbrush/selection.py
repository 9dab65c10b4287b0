"""
Selection state for the search screen.

The model holds the current query, the selected row and the last result set
that was applied. It knows nothing about the network or the terminal: the
session feeds it replies, and the renderer reads frozen snapshots of it.
"""

import enum
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

MAX_DISPLAYED_MATCHES = 9
CREATE_MARKER = " [[Create New Note]]"
COMMAND_PREFIX = ":"
QUIT_COMMAND = ":q"


class SessionState(enum.Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    DISPLAYING = "displaying"


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything the renderer needs, copied out of the live model."""
    query: str
    selected_index: int
    rows: Tuple[str, ...]
    scores: Tuple[float, ...]
    selected_name: str
    selected_content: str
    is_more: bool
    state: SessionState
    status: str = ""

    @property
    def has_create_entry(self) -> bool:
        return bool(self.rows) and self.rows[-1] == create_label(self.query)


def create_label(query: str) -> str:
    """Label of the synthetic row offering to create a note named *query*."""
    return query + CREATE_MARKER


def is_command(query: str) -> bool:
    return query.startswith(COMMAND_PREFIX)


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


class SelectionModel:
    """
    Query, selected row and displayed matches.

    Invariants:
        - ``0 <= index <= len(displayed)``
        - ``displayed`` is the server's order, at most nine real matches,
          plus one synthetic create row when the query is non-empty and
          no match equals it verbatim
    """

    def __init__(self, query: str = "", index: int = 0):
        self.query = query
        self.index = index
        self.matches: List[str] = []
        self.scores: List[float] = []
        self.displayed: List[str] = []
        self.selected_name = ""
        self.selected_content = ""
        self.is_more = False

    def adjust_index(self, delta: int) -> None:
        """
        Move the selection by *delta* rows.

        The upper bound is ``len(displayed)``, one past the last row. An
        empty list leaves the index alone.
        """
        if not self.displayed:
            return
        self.index = clamp(self.index + delta, 0, len(self.displayed))
        self.selected_name = self._selected_name()

    def reset(self, query: str) -> None:
        """
        Set a new query.

        The last matches stay on screen until the reply arrives, but the
        create row is rebuilt for the new query right away. The index drops
        to 0 if it is off the rebuilt list.
        """
        self.query = query
        self._rebuild_displayed()
        if len(self.displayed) <= self.index:
            self.index = 0
        self.selected_name = self._selected_name()

    def clear_content(self) -> None:
        self.selected_content = ""

    def clear_results(self) -> None:
        """Forget the last result set (used while a command is typed)."""
        self.matches = []
        self.scores = []
        self.displayed = []
        self.selected_name = ""
        self.selected_content = ""
        self.is_more = False

    def apply_results(
        self,
        matches: Sequence[str],
        scores: Sequence[float] = (),
        selected_content: str = "",
        is_more: bool = False,
    ) -> None:
        """
        Replace the result set with a server reply for the current query.

        Args:
            matches: Note names, best first
            scores: Relevance scores parallel to *matches*
            selected_content: Preview of the selected row
            is_more: Whether the server has more matches than it sent
        """
        self.matches = list(matches[:MAX_DISPLAYED_MATCHES])
        self.scores = list(scores[:MAX_DISPLAYED_MATCHES])
        self.selected_content = selected_content
        self.is_more = is_more

        self._rebuild_displayed()
        if self.index >= len(self.displayed):
            self.index = 0
        self.selected_name = self._selected_name()

    @property
    def selection_is_match(self) -> bool:
        """Whether the highlighted row is a real note rather than the create row."""
        return self.index < len(self.matches)

    def _rebuild_displayed(self) -> None:
        self.displayed = list(self.matches)
        if self.query and self.query not in self.matches:
            self.displayed.append(create_label(self.query))

    def _selected_name(self) -> str:
        if not self.displayed:
            return ""
        if self.index < len(self.matches):
            return self.matches[self.index]
        return self.query

    def snapshot(self, state: SessionState, status: Optional[str] = None) -> SessionSnapshot:
        return SessionSnapshot(
            query=self.query,
            selected_index=self.index,
            rows=tuple(self.displayed),
            scores=tuple(self.scores),
            selected_name=self.selected_name,
            selected_content=self.selected_content,
            is_more=self.is_more,
            state=state,
            status=status or "",
        )
