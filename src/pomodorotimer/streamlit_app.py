"""Streamlit dashboard for the Pomodoro timer.

Run with:

    streamlit run src/pomodorotimer/streamlit_app.py

The page drives the same countdown as the terminal CLI. Buttons stand in for
the keyboard: each click is turned into a control signal. Use the "Fast
demo" option to treat one real second as one Pomodoro minute.
"""
from __future__ import annotations

import time
from typing import List

import streamlit as st

from pomodorotimer import scheduler
from pomodorotimer.cli import format_time
from pomodorotimer.errors import InvalidConfigError
from pomodorotimer.notify import Notifier, tone_for
from pomodorotimer.timer import CountdownTimer, RunState, Signal


class DashboardNotifier(Notifier):
    """Collects events so the page can render them after the ticks."""

    def __init__(self, sound: bool = True, desktop: bool = True) -> None:
        super().__init__(sound=sound, desktop=desktop)
        self.completed: List[scheduler.Interval] = []
        self.notices: List[str] = []

    def interval_complete(self, interval: scheduler.Interval):
        if self.sound:
            self.completed.append(interval)
        return None

    def ending_soon(self, interval: scheduler.Interval, seconds_left: int):
        if self.desktop:
            self.notices.append(f"{interval.label}: {seconds_left}s left")
        return None

    def drain(self):
        completed, notices = self.completed, self.notices
        self.completed, self.notices = [], []
        return completed, notices


def plan_key(config: scheduler.SessionConfig):
    return (config.work, config.short_break, config.long_break, config.cycles)


def get_timer(config: scheduler.SessionConfig) -> CountdownTimer:
    """Return the session's timer, rebuilding it when the plan changes.

    Toggling sound keeps the running session.
    """
    if st.session_state.get("plan_key") != plan_key(config) or "timer" not in st.session_state:
        st.session_state.plan_key = plan_key(config)
        st.session_state.timer = CountdownTimer(
            scheduler.Scheduler.from_config(config),
            notifier=DashboardNotifier(sound=config.sound),
        )
        st.session_state.last_tick = time.monotonic()
    timer = st.session_state.timer
    timer.notifier.sound = config.sound
    return timer


def catch_up(timer: CountdownTimer, tick_seconds: float) -> None:
    """Apply the ticks that elapsed since the previous rerun."""
    now = time.monotonic()
    if timer.run_state is not RunState.RUNNING:
        st.session_state.last_tick = now
        return
    due = int((now - st.session_state.last_tick) / tick_seconds)
    for _ in range(due):
        if timer.run_state is not RunState.RUNNING:
            break
        timer.tick()
    st.session_state.last_tick += due * tick_seconds


def send(timer: CountdownTimer, signal: Signal) -> None:
    timer.handle(signal)
    st.session_state.last_tick = time.monotonic()


def main() -> None:
    st.set_page_config(page_title="Pomodoro Dashboard", layout="centered")

    st.title("Pomodoro")

    with st.sidebar:
        work = st.number_input("Work minutes", min_value=1, value=scheduler.DEFAULTS["work"])
        short_break = st.number_input("Short break minutes", min_value=1, value=scheduler.DEFAULTS["short_break"])
        long_break = st.number_input("Long break minutes", min_value=1, value=scheduler.DEFAULTS["long_break"])
        cycles = st.number_input("Cycles", min_value=1, value=scheduler.DEFAULTS["cycles"])
        sound = st.checkbox("Sound", value=True)
        fast = st.checkbox("Fast demo (1s per minute)", value=False)

    config = scheduler.SessionConfig(
        work=int(work),
        short_break=int(short_break),
        long_break=int(long_break),
        cycles=int(cycles),
        sound=sound,
    )
    try:
        timer = get_timer(config)
    except InvalidConfigError as exc:
        st.error(str(exc))
        return
    tick_seconds = 1 / 60 if fast else 1.0

    st.subheader("Planned intervals")
    for index, it in enumerate(timer.scheduler.plan):
        marker = "▶ " if index == timer.state.index and not timer.finished else ""
        st.write(f"- {marker}{it.label}: {it.duration_seconds // 60} min")

    st.markdown(
        """
        <style>
        .big-timer {font-size:56px; font-weight:700; text-align:center; margin: 12px 0}
        div.stButton > button {height:64px; width:100%; font-size:18px}
        </style>
        """,
        unsafe_allow_html=True,
    )

    c1, c2, c3 = st.columns([1, 1, 1])
    if c1.button("Start / Pause"):
        send(timer, Signal.TOGGLE)
    if c2.button("Skip"):
        send(timer, Signal.SKIP)
    if c3.button("Reset"):
        send(timer, Signal.RESET)

    catch_up(timer, tick_seconds)

    notifier = timer.notifier
    if isinstance(notifier, DashboardNotifier):
        completed, notices = notifier.drain()
        for message in notices:
            st.toast(message)
        if completed:
            st.audio(tone_for(completed[-1].kind), format="audio/wav", autoplay=True)

    curr = timer.interval
    state = timer.state
    if timer.finished:
        st.markdown(
            f"<div class='big-timer'>✓ Done: {state.completed_work} work interval(s)</div>",
            unsafe_allow_html=True,
        )
        st.progress(100)
        return

    elapsed = curr.duration_seconds - state.remaining
    label = "⏸" if state.run_state is RunState.PAUSED else "▶"
    st.markdown(
        f"<div class='big-timer'>{label} {curr.label}: {format_time(state.remaining)}</div>",
        unsafe_allow_html=True,
    )
    st.progress(int(min(100, elapsed * 100 / curr.duration_seconds)))

    if state.run_state is RunState.RUNNING:
        time.sleep(min(1.0, tick_seconds * 5))
        st.rerun()


if __name__ == "__main__":
    main()
