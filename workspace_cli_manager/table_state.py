"""
Browsing / selection state for the interactive table.

`TableSession` is owned by exactly one render thread. It is driven by two event
types only (`KeyEvent`, `ResizeEvent`) and ends in `CONFIRMED` or `CANCELLED`
(or `IDLE` for static, non-selectable tables which terminate on creation).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from workspace_cli_manager.formatting import clamp
from workspace_cli_manager.layout import FRAME_OVERHEAD, Column, Row, fit_columns, frame_height, project_rows


class SessionState(enum.Enum):
    IDLE = "idle"
    BROWSING = "browsing"
    UNFOCUSED = "unfocused"
    RESIZING = "resizing"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({SessionState.IDLE, SessionState.CONFIRMED, SessionState.CANCELLED})


@dataclass(frozen=True)
class KeyEvent:
    key: str


@dataclass(frozen=True)
class ResizeEvent:
    width: int
    height: int = 0


Event = Union[KeyEvent, ResizeEvent]

TOGGLE_FOCUS_KEYS = frozenset({"esc"})
QUIT_KEYS = frozenset({"q", "ctrl+c"})
CONFIRM_KEYS = frozenset({"enter"})

LINE_UP_KEYS = frozenset({"up", "k"})
LINE_DOWN_KEYS = frozenset({"down", "j"})
PAGE_UP_KEYS = frozenset({"pgup", "b"})
PAGE_DOWN_KEYS = frozenset({"pgdown", "f", "space"})
HALF_PAGE_UP_KEYS = frozenset({"ctrl+u", "u"})
HALF_PAGE_DOWN_KEYS = frozenset({"ctrl+d", "d"})
TOP_KEYS = frozenset({"home", "g"})
BOTTOM_KEYS = frozenset({"end", "G"})


class ListCursor:
    def __init__(self, selected: int = 0) -> None:
        self.selected = selected
        self.scroll = 0

    def clamp(self, n_items: int) -> None:
        if n_items <= 0:
            self.selected = 0
            self.scroll = 0
            return
        self.selected = clamp(self.selected, 0, n_items - 1)
        self.scroll = clamp(self.scroll, 0, n_items - 1)

    def move(self, delta: int, n_items: int) -> None:
        if n_items <= 0:
            self.selected = 0
            self.scroll = 0
            return
        self.selected = clamp(self.selected + delta, 0, n_items - 1)

    def page(self, delta_pages: int, page_size: int, n_items: int) -> None:
        self.move(delta_pages * max(1, page_size), n_items)

    def ensure_visible(self, view_h: int, n_items: int) -> None:
        if n_items <= 0 or view_h <= 0:
            self.scroll = 0
            return
        if self.selected < self.scroll:
            self.scroll = self.selected
        elif self.selected >= self.scroll + view_h:
            self.scroll = self.selected - view_h + 1
        self.scroll = clamp(self.scroll, 0, max(0, n_items - view_h))


class TableSession:
    def __init__(
        self,
        columns: Sequence[Column],
        rows: Sequence[Sequence[str]],
        *,
        width: int,
        height: int = 0,
        active_index: int = 0,
        active_id: Optional[str] = None,
        selectable: bool = True,
    ) -> None:
        self.columns: Tuple[Column, ...] = tuple(columns)
        # Source of truth across resizes; never replaced by a projection.
        self.rows: Tuple[Row, ...] = tuple(tuple(r) for r in rows)
        self.selectable = selectable
        self.cursor = ListCursor(active_index)
        self.cursor.clamp(len(self.rows))

        if active_id is None:
            active_id = self.rows[self.cursor.selected][0] if self.rows else ""
        self.selection = active_id

        self.width = width
        # Terminal lines available; 0 means unbounded.
        self.height = height
        self.visible_columns: Tuple[Column, ...] = ()
        self.visible_rows: Tuple[Row, ...] = ()
        self._relayout(width)
        self.cursor.ensure_visible(self.view_height, len(self.rows))

        self.state = SessionState.BROWSING if selectable else SessionState.IDLE

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def focused(self) -> bool:
        return self.state is SessionState.BROWSING

    @property
    def view_height(self) -> int:
        """Rows drawn at once: all of them unless the terminal is shorter."""
        n = len(self.rows)
        if self.height <= 0:
            return n
        return min(n, max(1, self.height - FRAME_OVERHEAD))

    def window(self) -> Tuple[int, Tuple[Row, ...]]:
        """(index of the first drawn row, projected rows currently in view)."""
        top = self.cursor.scroll
        return top, self.visible_rows[top : top + self.view_height]

    @property
    def frame_height(self) -> int:
        return frame_height(self.view_height, len(self.visible_columns))

    def handle(self, event: Event) -> bool:
        """Apply one event. Returns True once the session has terminated."""
        if self.done:
            return True
        if isinstance(event, ResizeEvent):
            self._resize(event)
        elif isinstance(event, KeyEvent):
            self._key(event.key)
        else:
            raise TypeError(f"unsupported table event: {event!r}")
        return self.done

    def _relayout(self, width: int) -> None:
        self.width = width
        self.visible_columns = fit_columns(self.columns, width)
        self.visible_rows = tuple(project_rows(self.rows, self.columns, len(self.visible_columns)))

    def _resize(self, event: ResizeEvent) -> None:
        prior = self.state
        self.state = SessionState.RESIZING
        if event.height > 0:
            self.height = event.height
        self._relayout(event.width)
        self.cursor.clamp(len(self.rows))
        self.cursor.ensure_visible(self.view_height, len(self.rows))
        self.state = prior

    def _key(self, key: str) -> None:
        if key in QUIT_KEYS:
            self.selection = ""
            self.state = SessionState.CANCELLED
            return
        if key in TOGGLE_FOCUS_KEYS:
            self.state = SessionState.UNFOCUSED if self.state is SessionState.BROWSING else SessionState.BROWSING
            return
        if key in CONFIRM_KEYS:
            if not self.rows:
                return
            self.selection = self.rows[self.cursor.selected][0]
            self.state = SessionState.CONFIRMED
            return
        if self.state is SessionState.UNFOCUSED:
            return
        self._move(key)
        self.cursor.ensure_visible(self.view_height, len(self.rows))

    def _move(self, key: str) -> None:
        n = len(self.rows)
        page = self.view_height
        if key in LINE_UP_KEYS:
            self.cursor.move(-1, n)
        elif key in LINE_DOWN_KEYS:
            self.cursor.move(1, n)
        elif key in PAGE_UP_KEYS:
            self.cursor.page(-1, page, n)
        elif key in PAGE_DOWN_KEYS:
            self.cursor.page(1, page, n)
        elif key in HALF_PAGE_UP_KEYS:
            self.cursor.move(-max(1, page // 2), n)
        elif key in HALF_PAGE_DOWN_KEYS:
            self.cursor.move(max(1, page // 2), n)
        elif key in TOP_KEYS:
            self.cursor.selected = 0
        elif key in BOTTOM_KEYS:
            self.cursor.selected = max(0, n - 1)
