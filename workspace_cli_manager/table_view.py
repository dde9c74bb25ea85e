"""
Inline table rendering and the blocking `run_table` entry point.

The session runs on its own thread, which owns the terminal (input mode and the
rich Live region) for the whole interaction. The calling thread only waits for
the single outcome that thread hands back, then erases the table it left
behind.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence

from rich import box
from rich.console import Console, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from workspace_cli_manager.layout import Column
from workspace_cli_manager.table_state import Event, TableSession
from workspace_cli_manager.terminal import ResizeNotifier, TerminalInput, clear_lines, terminal_size

logger = logging.getLogger(__name__)

HEADING_STYLE = "bold green"
FOCUSED_SELECTED_STYLE = "white on green"
UNFOCUSED_SELECTED_STYLE = "reverse"
NARROW_PLACEHOLDER = "(terminal too narrow to show this table)"

# One exclusive owner of the terminal at a time.
_TERMINAL_LOCK = threading.Lock()


class EventSource(Protocol):
    def __enter__(self) -> "EventSource": ...

    def __exit__(self, *exc: object) -> None: ...

    def read_events(self) -> List[Event]: ...


OpenInput = Callable[[ResizeNotifier], EventSource]


@dataclass
class _Outcome:
    selection: str = ""
    frame_height: int = 0
    error: Optional[BaseException] = None


def print_heading(console: Console, title: str) -> None:
    console.print()
    console.print(Text(title, style=HEADING_STYLE))


def render_session(session: TableSession) -> RenderableType:
    if not session.visible_columns:
        return Text(NARROW_PLACEHOLDER, style="dim", no_wrap=True, overflow="ellipsis")

    table = Table(
        box=box.SIMPLE_HEAD,
        show_edge=False,
        pad_edge=False,
        header_style="bold",
        expand=False,
    )
    for col in session.visible_columns:
        table.add_column(col.title, width=col.width, no_wrap=True, overflow="ellipsis")

    top, rows = session.window()
    for i, row in enumerate(rows, start=top):
        style = None
        if session.selectable and i == session.cursor.selected:
            style = FOCUSED_SELECTED_STYLE if session.focused else UNFOCUSED_SELECTED_STYLE
        table.add_row(*row, style=style)

    return Panel(table, box=box.ROUNDED, padding=(0, 1), expand=False)


def _default_open_input(notifier: ResizeNotifier) -> TerminalInput:
    return TerminalInput(sys.stdin, notifier=notifier)


def _serve(
    session: TableSession,
    console: Console,
    open_input: OpenInput,
    notifier: ResizeNotifier,
    handoff: "queue.Queue[_Outcome]",
) -> None:
    outcome = _Outcome()
    try:
        if session.done:
            # Static tables never take input.
            console.print(render_session(session))
        else:
            with open_input(notifier) as source:
                with Live(
                    render_session(session),
                    console=console,
                    auto_refresh=False,
                    redirect_stdout=False,
                    redirect_stderr=False,
                ) as live:
                    while not session.done:
                        for event in source.read_events():
                            if session.handle(event):
                                break
                        live.update(render_session(session), refresh=True)
        logger.debug("table session finished in state %s", session.state.value)
        outcome.selection = session.selection
        outcome.frame_height = session.frame_height
    except Exception as e:
        outcome.error = e
    finally:
        handoff.put(outcome)


def run_table(
    columns: Sequence[Column],
    rows: Sequence[Sequence[str]],
    *,
    active_index: int = 0,
    active_id: Optional[str] = None,
    selectable: bool = True,
    console: Optional[Console] = None,
    open_input: Optional[OpenInput] = None,
) -> str:
    """
    Show `rows` as a table and return the first cell of the confirmed row.

    Returns "" when the user quits. Non-selectable tables are printed once and
    return `active_id` without touching terminal input. When the terminal is
    shorter than the table, only a window of rows that follows the cursor is
    drawn (a static table is printed whole). A terminal that cannot run the
    interactive table is fatal: the error is reported and the process exits
    with status 1.
    """
    console = console if console is not None else Console()
    width, height = terminal_size()
    session = TableSession(
        columns,
        rows,
        width=width,
        height=height if selectable else 0,
        active_index=active_index,
        active_id=active_id,
        selectable=selectable,
    )
    handoff: "queue.Queue[_Outcome]" = queue.Queue(maxsize=1)

    with _TERMINAL_LOCK:
        with ResizeNotifier(enabled=selectable) as notifier:
            worker = threading.Thread(
                target=_serve,
                args=(session, console, open_input or _default_open_input, notifier, handoff),
                name="wcm-table",
                daemon=True,
            )
            worker.start()
            outcome = handoff.get()
            worker.join()

    if outcome.error is not None:
        logger.debug("table session failed", exc_info=outcome.error)
        print(f"Error running program: {outcome.error}", file=sys.stderr)
        raise SystemExit(1)

    if selectable:
        clear_lines(console.file, outcome.frame_height)
    return outcome.selection
