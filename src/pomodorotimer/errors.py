"""Exceptions raised by the Pomodoro timer."""
from __future__ import annotations


class PomodoroError(Exception):
    """Base class for every error the timer raises."""


class InvalidConfigError(PomodoroError, ValueError):
    """A duration or cycle count is not a positive integer."""


class OutOfRangeError(PomodoroError, IndexError):
    """An interval index points past the end of the plan."""


class SoundPlaybackError(PomodoroError):
    """The notification tone could not be played."""


class InputDecodeError(PomodoroError, ValueError):
    """A keypress does not map to any control signal."""

    def __init__(self, key: str) -> None:
        super().__init__(f"no signal bound to key {key!r}")
        self.key = key
