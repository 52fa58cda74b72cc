"""Keyboard input: raw keys in, control signals out.

Bindings::

    p            pause
    space        pause / resume
    r            resume
    s            skip the current interval
    x            reset the whole plan
    q, Esc, ^C   quit
"""
from __future__ import annotations

import logging
import os
import queue
import select
import sys
import threading
from typing import Iterable, Iterator, Optional

try:
    import termios
    import tty
except ImportError:  # Windows: no key controls, the countdown still runs
    termios = None
    tty = None

from .errors import InputDecodeError
from .timer import Signal

logger = logging.getLogger(__name__)

ESC = "\x1b"
CTRL_C = "\x03"

KEYMAP = {
    "p": Signal.PAUSE,
    " ": Signal.TOGGLE,
    "r": Signal.RESUME,
    "s": Signal.SKIP,
    "x": Signal.RESET,
    "q": Signal.QUIT,
    ESC: Signal.QUIT,
    CTRL_C: Signal.QUIT,
}

LEGEND = "Controls: [p] Pause | [Space] Toggle | [r] Resume | [s] Skip | [x] Reset | [q]/[Esc]/[Ctrl+C] Quit"


def decode(key: str) -> Signal:
    """Map one keypress to its signal; raises InputDecodeError otherwise."""
    try:
        return KEYMAP[key.lower() if len(key) == 1 else key]
    except KeyError:
        raise InputDecodeError(key) from None


def decode_stream(keys: Iterable[str]) -> Iterator[Signal]:
    """Decode keys lazily, dropping the ones with no binding."""
    for key in keys:
        try:
            yield decode(key)
        except InputDecodeError as exc:
            logger.debug("ignored: %s", exc)


def split_chunk(chunk: str) -> Iterator[str]:
    """Split one read into keys, keeping escape sequences (arrows etc.) whole.

    ``ESC [`` and ``ESC O`` open a sequence that runs through any parameter
    bytes up to and including its final byte. Any other ESC is the Esc key.
    """
    i = 0
    while i < len(chunk):
        if chunk[i] == ESC and chunk[i + 1:i + 2] in ("[", "O"):
            end = i + 2
            while end < len(chunk) and "\x20" <= chunk[end] <= "\x3f":
                end += 1
            end = min(end + 1, len(chunk))
            yield chunk[i:end]
            i = end
        else:
            yield chunk[i]
            i += 1


def read_keys(fd: int, stop: threading.Event, poll_seconds: float = 0.1) -> Iterator[str]:
    """Yield keys typed on ``fd`` until ``stop`` is set or input ends."""
    while not stop.is_set():
        ready, _, _ = select.select([fd], [], [], poll_seconds)
        if not ready:
            continue
        data = os.read(fd, 8)
        if not data:
            return
        yield from split_chunk(data.decode("utf-8", errors="ignore"))


class KeyListener:
    """Feeds decoded signals from the terminal into a queue.

    Use as a context manager: the terminal is switched to cbreak mode on
    enter and restored on exit. When stdin is not a terminal the listener
    stays silent.
    """

    def __init__(self, signals: "queue.Queue[Signal]", stream=None) -> None:
        self.signals = signals
        self.stream = stream if stream is not None else sys.stdin
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._saved = None

    @property
    def interactive(self) -> bool:
        if termios is None:
            return False
        try:
            return self.stream.isatty()
        except (AttributeError, ValueError):
            return False

    def __enter__(self) -> "KeyListener":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def start(self) -> None:
        if not self.interactive:
            logger.info("stdin is not a terminal, keyboard controls disabled")
            return
        fd = self.stream.fileno()
        self._saved = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        self._thread = threading.Thread(target=self._pump, args=(fd,), name="key-listener", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        if self._saved is not None:
            termios.tcsetattr(self.stream.fileno(), termios.TCSADRAIN, self._saved)
            self._saved = None

    def _pump(self, fd: int) -> None:
        for signal in decode_stream(read_keys(fd, self._stop)):
            self.signals.put(signal)
