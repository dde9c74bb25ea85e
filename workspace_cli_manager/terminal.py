"""
Terminal plumbing for the inline table.

The table is drawn inline below the caller's output, not on the alternate
screen, so the session only needs cbreak input and a resize notification.
"""

from __future__ import annotations

import logging
import os
import select
import signal
import sys
from typing import IO, List, Optional, Tuple

from workspace_cli_manager.table_state import Event, KeyEvent, ResizeEvent

logger = logging.getLogger(__name__)

DEFAULT_TERMINAL_SIZE = (80, 24)

_CSI = "\x1b["

_FINAL_KEYS = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
}

_TILDE_KEYS = {
    1: "home",
    2: "insert",
    3: "delete",
    4: "end",
    5: "pgup",
    6: "pgdown",
    7: "home",
    8: "end",
}

_CONTROL_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    " ": "space",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\x03": "ctrl+c",
    "\x04": "ctrl+d",
    "\x15": "ctrl+u",
}


class TerminalError(Exception):
    """The interactive table could not attach to (or keep using) the terminal."""


def terminal_size(stream: Optional[IO[str]] = None) -> Tuple[int, int]:
    """
    (columns, lines) of the terminal behind `stream` (stdout by default).

    Redirected output has no size; fall back to a conventional 80x24.
    """
    s = stream if stream is not None else sys.stdout
    try:
        size = os.get_terminal_size(s.fileno())
    except (AttributeError, OSError, ValueError):
        return DEFAULT_TERMINAL_SIZE
    if size.columns <= 0:
        return DEFAULT_TERMINAL_SIZE
    return size.columns, size.lines


def _map_csi(params: str, final: str) -> Optional[str]:
    if final in _FINAL_KEYS:
        return _FINAL_KEYS[final]
    if final != "~":
        return None
    # Modifiers follow a ';' (e.g. "5;2~" is shift+PgUp); only the key matters.
    head = params.split(";", 1)[0]
    if not head.isdigit():
        return None
    return _TILDE_KEYS.get(int(head))


def decode_keys(data: str) -> List[str]:
    """
    Split a chunk read from the terminal into normalized key names.

    A lone ESC (nothing else in the chunk) is the escape key; unknown escape
    sequences are dropped whole so their bytes never leak in as letters.
    """
    keys: List[str] = []
    i = 0
    n = len(data)
    while i < n:
        ch = data[i]
        if ch != "\x1b":
            keys.append(_CONTROL_KEYS.get(ch, ch))
            i += 1
            continue

        if i + 1 >= n:
            keys.append("esc")
            i += 1
            continue

        nxt = data[i + 1]
        if nxt == "[":
            j = i + 2
            while j < n and (data[j].isdigit() or data[j] == ";"):
                j += 1
            if j >= n:
                keys.append("esc")
                i += 1
                continue
            key = _map_csi(data[i + 2 : j], data[j])
            if key:
                keys.append(key)
            i = j + 1
            continue
        if nxt == "O" and i + 2 < n:
            key = _FINAL_KEYS.get(data[i + 2])
            if key:
                keys.append(key)
            i += 3
            continue

        keys.append("esc")
        i += 1
    return keys


class ResizeNotifier:
    """
    Turn SIGWINCH into a readable byte on a pipe.

    Signal handlers can only be installed from the main thread, so this is
    entered by the caller before the render thread starts; the render thread
    just selects on `fileno()`. When the handler can't be installed the
    notifier is inert and `fileno()` is None.
    """

    def __init__(self, *, enabled: bool = True) -> None:
        self._enabled = enabled
        self._r: Optional[int] = None
        self._w: Optional[int] = None
        self._old_handler: object = None
        self._installed = False

    def fileno(self) -> Optional[int]:
        return self._r

    def _on_winch(self, _signum: int, _frame: object) -> None:
        if self._w is None:
            return
        try:
            os.write(self._w, b"\0")
        except BlockingIOError:
            # Pipe already holds an unread notification.
            pass

    def drain(self) -> None:
        if self._r is None:
            return
        try:
            while os.read(self._r, 64):
                pass
        except BlockingIOError:
            pass

    def __enter__(self) -> "ResizeNotifier":
        sigwinch = getattr(signal, "SIGWINCH", None)
        if not self._enabled or sigwinch is None:
            return self
        self._r, self._w = os.pipe()
        os.set_blocking(self._r, False)
        os.set_blocking(self._w, False)
        try:
            self._old_handler = signal.signal(sigwinch, self._on_winch)
            self._installed = True
        except ValueError:
            logger.debug("resize notifications disabled: not running in the main thread")
            self._close()
        return self

    def __exit__(self, *_exc: object) -> None:
        if self._installed:
            signal.signal(signal.SIGWINCH, self._old_handler)  # type: ignore[arg-type]
            self._installed = False
        self._close()

    def _close(self) -> None:
        for fd in (self._r, self._w):
            if fd is not None:
                os.close(fd)
        self._r = None
        self._w = None


class TerminalInput:
    """
    Cbreak input on a TTY with signal and flow-control keys disabled.

    Ctrl+C must reach the table as a key (it is a quit binding) instead of
    raising KeyboardInterrupt in whichever thread Python picks.
    """

    def __init__(self, stream: Optional[IO[str]] = None, *, notifier: Optional[ResizeNotifier] = None) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._notifier = notifier
        self._fd: Optional[int] = None
        self._saved: Optional[list] = None

    def __enter__(self) -> "TerminalInput":
        try:
            import termios
            import tty
        except ImportError as e:
            raise TerminalError("interactive tables need a POSIX terminal") from e

        try:
            fd = self._stream.fileno()
        except (AttributeError, OSError, ValueError) as e:
            raise TerminalError("stdin has no file descriptor") from e
        if not os.isatty(fd):
            raise TerminalError("stdin is not a terminal")

        try:
            self._saved = termios.tcgetattr(fd)
            tty.setcbreak(fd)
            attrs = termios.tcgetattr(fd)
            attrs[0] &= ~termios.IXON
            attrs[3] &= ~termios.ISIG
            termios.tcsetattr(fd, termios.TCSANOW, attrs)
        except termios.error as e:
            self._restore(fd)
            raise TerminalError(f"cannot configure terminal: {e}") from e
        self._fd = fd
        return self

    def __exit__(self, *_exc: object) -> None:
        if self._fd is not None:
            self._restore(self._fd)
            self._fd = None

    def _restore(self, fd: int) -> None:
        if self._saved is None:
            return
        import termios

        termios.tcsetattr(fd, termios.TCSADRAIN, self._saved)
        self._saved = None

    def read_events(self) -> List[Event]:
        """Block until a key arrives or the terminal is resized."""
        if self._fd is None:
            raise TerminalError("terminal input is not open")
        wake = self._notifier.fileno() if self._notifier is not None else None
        fds = [self._fd] if wake is None else [self._fd, wake]
        ready, _, _ = select.select(fds, [], [])

        events: List[Event] = []
        if wake is not None and wake in ready:
            self._notifier.drain()  # type: ignore[union-attr]
            width, height = terminal_size()
            events.append(ResizeEvent(width=width, height=height))
        if self._fd in ready:
            data = os.read(self._fd, 1024)
            if not data:
                raise TerminalError("terminal input closed")
            events.extend(KeyEvent(k) for k in decode_keys(data.decode("utf-8", "replace")))
        return events


def clear_lines(stream: IO[str], n: int) -> None:
    """Erase the `n` lines above the cursor, leaving the cursor on the topmost."""
    if n <= 0:
        return
    stream.write(f"{_CSI}1A{_CSI}2K" * n)
    stream.flush()
