"""Countdown loop driving the Pomodoro plan."""
from __future__ import annotations

import logging
import queue
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .errors import OutOfRangeError
from .notify import Notifier
from .scheduler import Interval, IntervalKind, Scheduler

logger = logging.getLogger(__name__)

WARNING_SECONDS = 10


class Signal(Enum):
    """Decoded user control actions."""

    PAUSE = "pause"
    RESUME = "resume"
    TOGGLE = "toggle"
    SKIP = "skip"
    RESET = "reset"
    QUIT = "quit"


class RunState(Enum):
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


@dataclass
class TimerState:
    index: int
    remaining: int
    run_state: RunState = RunState.RUNNING
    completed_work: int = 0


class CountdownTimer:
    """State machine over a :class:`Scheduler`.

    ``tick`` and ``handle`` are the only mutators; ``run`` wires them to a
    signal queue and a wall clock. The timer starts running on the first
    work interval.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        notifier: Optional[Notifier] = None,
        on_change: Optional[Callable[["CountdownTimer"], None]] = None,
    ) -> None:
        self.scheduler = scheduler
        self.notifier = notifier
        self.on_change = on_change
        start = scheduler.reset()
        self.state = TimerState(index=start, remaining=scheduler.current(start).duration_seconds)

    @property
    def interval(self) -> Interval:
        return self.scheduler.current(self.state.index)

    @property
    def run_state(self) -> RunState:
        return self.state.run_state

    @property
    def finished(self) -> bool:
        return self.state.run_state is RunState.FINISHED

    def tick(self) -> None:
        """Advance the countdown by one second if running."""
        if self.state.run_state is not RunState.RUNNING:
            return
        self.state.remaining = max(0, self.state.remaining - 1)
        if self.state.remaining == WARNING_SECONDS and self.notifier is not None:
            self.notifier.ending_soon(self.interval, WARNING_SECONDS)
        if self.state.remaining == 0:
            self._complete()

    def handle(self, signal: Signal) -> bool:
        """Apply one signal. Returns False once the loop has to stop."""
        state = self.state
        logger.debug("signal %s in state %s", signal.value, state.run_state.value)

        if signal is Signal.QUIT:
            return False
        if signal is Signal.RESET:
            state.index = self.scheduler.reset()
            state.remaining = self.scheduler.current(state.index).duration_seconds
            state.run_state = RunState.RUNNING
            state.completed_work = 0
            logger.info("plan reset to %s", self.interval.label)
            return True
        if state.run_state is RunState.FINISHED:
            return True

        if signal is Signal.PAUSE:
            if state.run_state is RunState.RUNNING:
                state.run_state = RunState.PAUSED
        elif signal is Signal.RESUME:
            if state.run_state is RunState.PAUSED:
                state.run_state = RunState.RUNNING
        elif signal is Signal.TOGGLE:
            state.run_state = RunState.PAUSED if state.run_state is RunState.RUNNING else RunState.RUNNING
        elif signal is Signal.SKIP:
            logger.info("skipping %s with %ds left", self.interval.label, state.remaining)
            self._complete()
        return True

    def _complete(self) -> None:
        state = self.state
        ended = self.interval
        logger.info("%s complete", ended.label)
        if ended.kind is IntervalKind.WORK:
            state.completed_work += 1
        if self.notifier is not None:
            self.notifier.interval_complete(ended)

        upcoming = self.scheduler.next(state.index)
        try:
            nxt = self.scheduler.current(upcoming)
        except OutOfRangeError:
            state.remaining = 0
            state.run_state = RunState.FINISHED
            logger.info("plan finished after %d work interval(s)", state.completed_work)
            return
        state.index = upcoming
        state.remaining = nxt.duration_seconds

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self)

    def run(
        self,
        signals: "queue.Queue[Signal]",
        tick_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> bool:
        """Count down until the plan finishes or a quit signal arrives.

        Waits on ``signals`` until the next tick boundary, so a signal is
        acted on as soon as it is queued. While paused the wait is repeated
        in tick-sized slices. Returns True when the plan finished and False
        when it was quit.
        """
        self._changed()
        deadline = clock() + tick_seconds
        while not self.finished:
            try:
                signal = signals.get(timeout=max(0.0, deadline - clock()))
            except queue.Empty:
                if self.state.run_state is RunState.RUNNING:
                    self.tick()
                    deadline += tick_seconds
                else:
                    deadline = clock() + tick_seconds
                self._changed()
                continue

            was_running = self.state.run_state is RunState.RUNNING
            if not self.handle(signal):
                logger.info("quit with %s at %ds", self.interval.label, self.state.remaining)
                return False
            if signal in (Signal.SKIP, Signal.RESET) or (
                not was_running and self.state.run_state is RunState.RUNNING
            ):
                deadline = clock() + tick_seconds
            self._changed()
        return True
