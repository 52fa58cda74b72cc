import contextlib
import queue
import time

import pytest

from pomodorotimer import cli, scheduler
from pomodorotimer.notify import Notifier, tone_for
from pomodorotimer.scheduler import IntervalKind
from pomodorotimer.timer import Signal


def test_defaults():
    args = cli.parse_args([])
    assert (args.work, args.short_break, args.long_break, args.cycles) == (25, 5, 15, 4)
    assert not args.no_sound


@pytest.mark.parametrize(
    "argv",
    [
        ["-w", "50", "-s", "10", "-l", "30", "-c", "2", "-n"],
        ["--work", "50", "--short-break", "10", "--long-break", "30", "--cycles", "2", "--no-sound"],
        ["--work", "50", "--break", "10", "--long", "30", "--cycles", "2", "--no-sound"],
    ],
)
def test_flag_aliases(argv):
    args = cli.parse_args(argv)
    assert (args.work, args.short_break, args.long_break, args.cycles) == (50, 10, 30, 2)
    assert args.no_sound


def test_format_time():
    assert cli.format_time(0) == "00:00"
    assert cli.format_time(25 * 60) == "25:00"
    assert cli.format_time(61) == "01:01"


def test_progress_bar():
    assert cli.progress_bar(0, 10, width=10) == "[----------]"
    assert cli.progress_bar(5, 10, width=10) == "[#####-----]"
    assert cli.progress_bar(10, 10, width=10) == "[##########]"


def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--help"])
    assert excinfo.value.code == 0
    assert "Skip" in capsys.readouterr().out


@pytest.mark.parametrize("argv", [["-w", "0"], ["-c", "0"], ["-s", "-5"], ["--long", "0"]])
def test_invalid_config_exits_nonzero(argv, capsys):
    assert cli.main(argv) == cli.EXIT_INVALID_CONFIG
    assert "error" in capsys.readouterr().err


def test_dry_run_prints_plan(capsys):
    assert cli.main(["--dry-run", "-c", "2", "-w", "10", "-l", "20"]) == 0
    out = capsys.readouterr().out
    assert "- Work 1: 10 minute(s)" in out
    assert "- Long break: 20 minute(s)" in out
    assert "- Work 2: 10 minute(s)" in out
    assert "Total: 40 minute(s)" in out


def test_main_reports_completed_work(monkeypatch, capsys):
    seen = {}

    def fake_run_session(config, *, tick_seconds=1.0, **kwargs):
        seen["config"] = config
        seen["tick_seconds"] = tick_seconds
        return 2

    monkeypatch.setattr(cli, "run_session", fake_run_session)
    assert cli.main(["-w", "30", "-c", "3", "-n", "--fast"]) == 0
    assert seen["config"] == scheduler.SessionConfig(work=30, cycles=3, sound=False)
    assert seen["tick_seconds"] == pytest.approx(1 / 60)
    assert "Total work cycles completed: 2 for a total of 60 min" in capsys.readouterr().out


def test_run_session_quits_on_signal(capsys):
    signals = queue.Queue()
    signals.put(Signal.SKIP)
    signals.put(Signal.QUIT)
    config = scheduler.SessionConfig(cycles=2, sound=False)
    completed = cli.run_session(config, signals=signals, listener=contextlib.nullcontext())
    assert completed == 1
    assert "Long break" in capsys.readouterr().out


def test_run_session_finishes_plan(capsys):
    signals = queue.Queue()
    for _ in range(3):
        signals.put(Signal.SKIP)
    config = scheduler.SessionConfig(cycles=2, sound=False)
    completed = cli.run_session(config, tick_seconds=5, signals=signals, listener=contextlib.nullcontext())
    assert completed == 2
    assert "✓" in capsys.readouterr().out


def test_run_session_waits_for_the_last_tone(capsys):
    played = []

    def slow_player(data):
        time.sleep(0.3)
        played.append(data)

    signals = queue.Queue()
    signals.put(Signal.SKIP)
    config = scheduler.SessionConfig(cycles=1)
    notifier = Notifier(player=slow_player, desktop=False)
    completed = cli.run_session(
        config, tick_seconds=5, signals=signals, listener=contextlib.nullcontext(), notifier=notifier
    )
    assert completed == 1
    assert played == [tone_for(IntervalKind.WORK)]
