"""Command line interface for the Pomodoro timer."""
from __future__ import annotations

import argparse
import logging
import queue
import sys
from typing import Iterable, Optional

from . import keys, scheduler
from .errors import InvalidConfigError
from .notify import PLAYBACK_TIMEOUT, Notifier
from .timer import CountdownTimer, RunState, Signal

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID_CONFIG = 2

BAR_WIDTH = 30


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pomodoro",
        description="Run a Pomodoro timer in your terminal.",
        epilog=keys.LEGEND,
    )
    parser.add_argument("-w", "--work", type=int, default=scheduler.DEFAULTS["work"], metavar="MINS", help="minutes per work interval (default: %(default)s)")
    parser.add_argument("-s", "--short-break", "--break", dest="short_break", type=int, default=scheduler.DEFAULTS["short_break"], metavar="MINS", help="minutes per short break (default: %(default)s)")
    parser.add_argument("-l", "--long-break", "--long", dest="long_break", type=int, default=scheduler.DEFAULTS["long_break"], metavar="MINS", help="minutes for the long break before the last work interval (default: %(default)s)")
    parser.add_argument("-c", "--cycles", type=int, default=scheduler.DEFAULTS["cycles"], metavar="N", help="number of work intervals (default: %(default)s)")
    parser.add_argument("-n", "--no-sound", action="store_true", help="disable the end-of-interval tone")
    parser.add_argument("--fast", action="store_true", help="treat one real second as one Pomodoro minute (handy for demos)")
    parser.add_argument("--dry-run", action="store_true", help="show the schedule without running timers")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output to stderr")
    return parser.parse_args(list(argv))


def format_time(seconds: int) -> str:
    minutes, remainder = divmod(seconds, 60)
    return f"{minutes:02d}:{remainder:02d}"


def progress_bar(done: int, total: int, width: int = BAR_WIDTH) -> str:
    filled = width if total <= 0 else int(width * done / total)
    return "[" + "#" * filled + "-" * (width - filled) + "]"


class StatusLine:
    """Redraws a single terminal line as the timer changes."""

    def __init__(self, total_cycles: int, stream=None) -> None:
        self.total_cycles = total_cycles
        self.stream = stream if stream is not None else sys.stdout
        self._index: Optional[int] = None

    def __call__(self, timer: CountdownTimer) -> None:
        interval = timer.interval
        state = timer.state
        if self._index is not None and state.index != self._index:
            self.stream.write("\n")
        self._index = state.index

        elapsed = interval.duration_seconds - state.remaining
        suffix = {RunState.PAUSED: " (paused)", RunState.FINISHED: " ✓"}.get(state.run_state, "")
        self.stream.write(
            f"\r▶ {interval.label} (#{interval.cycle}/{self.total_cycles}) "
            f"{progress_bar(elapsed, interval.duration_seconds)} "
            f"{format_time(state.remaining)} remaining{suffix}\033[K"
        )
        self.stream.flush()


def print_plan(config: scheduler.SessionConfig, plan: scheduler.PomodoroPlan) -> None:
    print("Planned intervals:")
    for item in plan:
        minutes = item.duration_seconds // 60
        print(f"- {item.label}: {minutes} minute(s)")
    print(f"Total: {plan.total_seconds // 60} minute(s) over {config.cycles} cycle(s)")


def run_session(
    config: scheduler.SessionConfig,
    *,
    tick_seconds: float = 1.0,
    signals: "Optional[queue.Queue[Signal]]" = None,
    listener: Optional[keys.KeyListener] = None,
    notifier: Optional[Notifier] = None,
) -> int:
    """Run the countdown to completion or quit; returns completed work intervals.

    Waits for a tone that is still playing, so the one for the last
    interval is heard before the process exits.
    """
    signals = signals if signals is not None else queue.Queue()
    notifier = notifier if notifier is not None else Notifier(sound=config.sound)
    timer = CountdownTimer(
        scheduler.Scheduler.from_config(config),
        notifier=notifier,
        on_change=StatusLine(config.cycles),
    )
    listener = listener if listener is not None else keys.KeyListener(signals)
    try:
        with listener:
            timer.run(signals, tick_seconds=tick_seconds)
    except KeyboardInterrupt:
        logger.debug("interrupted")
    finally:
        notifier.wait(PLAYBACK_TIMEOUT)
    print()
    return timer.state.completed_work


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config = scheduler.SessionConfig(
        work=args.work,
        short_break=args.short_break,
        long_break=args.long_break,
        cycles=args.cycles,
        sound=not args.no_sound,
    )
    try:
        plan = scheduler.build(config)
    except InvalidConfigError as exc:
        print(f"pomodoro: error: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    print(
        f"Starting Pomodoro: {config.work} min work, {config.short_break} min short break, "
        f"{config.long_break} min long break, {config.cycles} cycles, sound: {'on' if config.sound else 'off'}"
    )
    print()

    if args.dry_run:
        print_plan(config, plan)
        return EXIT_OK

    print(keys.LEGEND)
    print()
    completed = run_session(config, tick_seconds=1 / 60 if args.fast else 1.0)
    print(
        f"Pomodoro session ended. Total work cycles completed: {completed} "
        f"for a total of {completed * config.work} min"
    )
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
