"""Pomodoro schedule helpers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List

from .errors import InvalidConfigError, OutOfRangeError

logger = logging.getLogger(__name__)


class IntervalKind(Enum):
    WORK = "work"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"

    @property
    def is_break(self) -> bool:
        return self is not IntervalKind.WORK


@dataclass(frozen=True)
class Interval:
    """Represents one work or break interval."""

    kind: IntervalKind
    label: str
    duration_seconds: int
    cycle: int


DEFAULTS = {
    "work": 25,
    "short_break": 5,
    "long_break": 15,
    "cycles": 4,
}


@dataclass(frozen=True)
class SessionConfig:
    """Durations in minutes plus the cycle count, fixed for the whole session."""

    work: int = DEFAULTS["work"]
    short_break: int = DEFAULTS["short_break"]
    long_break: int = DEFAULTS["long_break"]
    cycles: int = DEFAULTS["cycles"]
    sound: bool = True

    def validate(self) -> "SessionConfig":
        if self.cycles < 1:
            raise InvalidConfigError(f"cycles must be at least 1, got {self.cycles}")
        for name in ("work", "short_break", "long_break"):
            value = getattr(self, name)
            if value <= 0:
                raise InvalidConfigError(f"{name.replace('_', ' ')} must be a positive number of minutes, got {value}")
        return self


@dataclass
class PomodoroPlan:
    """Holds a full Pomodoro schedule."""

    intervals: List[Interval]

    @property
    def total_seconds(self) -> int:
        return sum(interval.duration_seconds for interval in self.intervals)

    def __iter__(self) -> Iterator[Interval]:
        return iter(self.intervals)

    def __len__(self) -> int:
        return len(self.intervals)

    def __getitem__(self, index: int) -> Interval:
        return self.intervals[index]


def build(config: SessionConfig) -> PomodoroPlan:
    """Create the interval sequence for ``config``.

    Work intervals are separated by short breaks, except that the break
    before the final work interval is the long break. No break follows the
    last work interval, so the plan holds ``2 * cycles - 1`` intervals.

    Raises:
        InvalidConfigError: a duration or the cycle count is not positive.
    """
    config.validate()

    intervals: List[Interval] = []
    for index in range(1, config.cycles + 1):
        intervals.append(
            Interval(
                kind=IntervalKind.WORK,
                label=f"Work {index}",
                duration_seconds=config.work * 60,
                cycle=index,
            )
        )
        if index == config.cycles:
            break
        if index == config.cycles - 1:
            intervals.append(
                Interval(
                    kind=IntervalKind.LONG_BREAK,
                    label="Long break",
                    duration_seconds=config.long_break * 60,
                    cycle=index,
                )
            )
        else:
            intervals.append(
                Interval(
                    kind=IntervalKind.SHORT_BREAK,
                    label=f"Short break {index}",
                    duration_seconds=config.short_break * 60,
                    cycle=index,
                )
            )

    logger.debug("built plan of %d intervals for %d cycle(s)", len(intervals), config.cycles)
    return PomodoroPlan(intervals)


def build_plan(
    *,
    cycles: int = DEFAULTS["cycles"],
    work: int = DEFAULTS["work"],
    short_break: int = DEFAULTS["short_break"],
    long_break: int = DEFAULTS["long_break"],
) -> PomodoroPlan:
    """Keyword shortcut for :func:`build`."""
    return build(SessionConfig(work=work, short_break=short_break, long_break=long_break, cycles=cycles))


class Scheduler:
    """Walks a plan by index. Holds no position of its own."""

    def __init__(self, plan: PomodoroPlan) -> None:
        self.plan = plan

    @classmethod
    def from_config(cls, config: SessionConfig) -> "Scheduler":
        return cls(build(config))

    def __len__(self) -> int:
        return len(self.plan)

    def current(self, index: int) -> Interval:
        if not 0 <= index < len(self.plan):
            raise OutOfRangeError(f"interval {index} is outside a plan of {len(self.plan)}")
        return self.plan[index]

    def next(self, index: int) -> int:
        return index + 1

    def reset(self) -> int:
        return 0

    def is_last(self, index: int) -> bool:
        return index >= len(self.plan) - 1
