"""End-of-interval tones and desktop notifications.

Everything here runs off the timer loop's thread and never raises into it:
playback problems surface as :class:`SoundPlaybackError`, which the
:class:`Notifier` logs and drops.
"""
from __future__ import annotations

import io
import logging
import math
import os
import shutil
import struct
import subprocess
import sys
import tempfile
import threading
import time
import wave
from typing import Callable, List, Optional

from .errors import SoundPlaybackError
from .scheduler import Interval, IntervalKind

logger = logging.getLogger(__name__)

PLAYERS = ("paplay", "aplay", "afplay")
PLAYBACK_TIMEOUT = 3.0

# frequency (Hz) and number of beeps for the kind of interval that just ended
TONES = {
    IntervalKind.WORK: (880.0, 2),
    IntervalKind.SHORT_BREAK: (660.0, 1),
    IntervalKind.LONG_BREAK: (440.0, 1),
}


def generate_beep(
    duration_s: float = 0.25,
    freq: float = 440.0,
    volume: float = 0.2,
    samplerate: int = 44100,
    repeats: int = 1,
    gap_s: float = 0.12,
) -> bytes:
    """Generate a short WAV beep (mono 16-bit PCM) in memory."""
    n_samples = int(samplerate * duration_s)
    n_gap = int(samplerate * gap_s)
    amplitude = int(32767 * volume)
    tone = b"".join(
        struct.pack("<h", int(amplitude * math.sin(2 * math.pi * freq * i / samplerate)))
        for i in range(n_samples)
    )
    silence = b"\x00\x00" * n_gap
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(samplerate)
        for i in range(repeats):
            if i:
                wf.writeframes(silence)
            wf.writeframes(tone)
    return buf.getvalue()


def tone_for(kind: IntervalKind) -> bytes:
    freq, repeats = TONES[kind]
    return generate_beep(freq=freq, repeats=repeats)


def find_player() -> Optional[str]:
    for name in PLAYERS:
        path = shutil.which(name)
        if path:
            return path
    return None


def ring_bell() -> None:
    sys.stdout.write("\a")
    sys.stdout.flush()


def play_wav(data: bytes) -> None:
    """Play WAV bytes with whatever the platform offers.

    Falls back to the terminal bell when no command-line player is
    installed. Raises :class:`SoundPlaybackError` if a player exists but
    fails or hangs.
    """
    if sys.platform == "win32":
        import winsound

        try:
            winsound.PlaySound(data, winsound.SND_MEMORY)
        except RuntimeError as exc:
            raise SoundPlaybackError(str(exc)) from exc
        return

    player = find_player()
    if player is None:
        logger.debug("no audio player on PATH, ringing the terminal bell")
        ring_bell()
        return

    path = None
    try:
        fd, path = tempfile.mkstemp(suffix=".wav", prefix="pomodoro-")
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        subprocess.run(
            [player, path],
            check=True,
            timeout=PLAYBACK_TIMEOUT,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise SoundPlaybackError(f"{os.path.basename(player)} failed: {exc}") from exc
    finally:
        if path is not None:
            try:
                os.unlink(path)
            except OSError:
                pass


def send_desktop_notification(summary: str, body: str) -> None:
    notifier = shutil.which("notify-send")
    if notifier is None:
        return
    try:
        subprocess.run(
            [notifier, "-i", "dialog-information", summary, body],
            check=True,
            timeout=PLAYBACK_TIMEOUT,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise SoundPlaybackError(f"notify-send failed: {exc}") from exc


class Notifier:
    """Fires tones and notifications on short-lived daemon threads."""

    def __init__(
        self,
        sound: bool = True,
        desktop: bool = True,
        player: Callable[[bytes], None] = play_wav,
        announcer: Callable[[str, str], None] = send_desktop_notification,
    ) -> None:
        self.sound = sound
        self.desktop = desktop
        self.player = player
        self.announcer = announcer
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()

    def wait(self, timeout: float = PLAYBACK_TIMEOUT) -> bool:
        """Join outstanding tones, spending at most ``timeout`` seconds.

        Returns True when nothing is left playing.
        """
        deadline = time.monotonic() + timeout
        with self._lock:
            pending, self._threads = self._threads, []
        for thread in pending:
            thread.join(max(0.0, deadline - time.monotonic()))
        alive = [thread for thread in pending if thread.is_alive()]
        if alive:
            logger.debug("%d notification(s) still running after %.1fs", len(alive), timeout)
            with self._lock:
                self._threads.extend(alive)
        return not alive

    def interval_complete(self, interval: Interval) -> Optional[threading.Thread]:
        if not self.sound:
            return None
        return self._spawn(self._play, interval)

    def ending_soon(self, interval: Interval, seconds_left: int) -> Optional[threading.Thread]:
        if not self.desktop:
            return None
        return self._spawn(self._announce, interval, seconds_left)

    def _spawn(self, target, *args) -> threading.Thread:
        thread = threading.Thread(target=target, args=args, daemon=True)
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
            thread.start()
        return thread

    def _play(self, interval: Interval) -> None:
        try:
            self.player(tone_for(interval.kind))
        except SoundPlaybackError as exc:
            logger.warning("could not play the %s tone: %s", interval.label, exc)

    def _announce(self, interval: Interval, seconds_left: int) -> None:
        try:
            self.announcer("Pomodoro Timer", f"{interval.label}: 00:{seconds_left:02d}s left")
        except SoundPlaybackError as exc:
            logger.warning("desktop notification failed: %s", exc)
