import io
import os
import queue
import threading

import pytest

from pomodorotimer import keys
from pomodorotimer.errors import InputDecodeError
from pomodorotimer.timer import Signal


@pytest.mark.parametrize(
    "key, signal",
    [
        ("p", Signal.PAUSE),
        (" ", Signal.TOGGLE),
        ("r", Signal.RESUME),
        ("s", Signal.SKIP),
        ("x", Signal.RESET),
        ("q", Signal.QUIT),
        ("Q", Signal.QUIT),
        ("\x1b", Signal.QUIT),
        ("\x03", Signal.QUIT),
    ],
)
def test_decode(key, signal):
    assert keys.decode(key) is signal


@pytest.mark.parametrize("key", ["z", "\n", "\x1b[A", ""])
def test_decode_rejects_unbound_keys(key):
    with pytest.raises(InputDecodeError):
        keys.decode(key)


def test_decode_stream_drops_unknown_keys():
    assert list(keys.decode_stream(["p", "?", " ", "\x1b[B", "q"])) == [
        Signal.PAUSE,
        Signal.TOGGLE,
        Signal.QUIT,
    ]


def test_split_chunk_keeps_escape_sequences_whole():
    assert list(keys.split_chunk("ps")) == ["p", "s"]
    assert list(keys.split_chunk("\x1b[A")) == ["\x1b[A"]
    assert list(keys.split_chunk("\x1b")) == ["\x1b"]


def test_read_keys_from_pipe():
    read_fd, write_fd = os.pipe()
    os.write(write_fd, b"px")
    os.close(write_fd)
    try:
        assert list(keys.read_keys(read_fd, threading.Event())) == ["p", "x"]
    finally:
        os.close(read_fd)


def test_read_keys_stops_on_event():
    read_fd, write_fd = os.pipe()
    stop = threading.Event()
    stop.set()
    try:
        assert list(keys.read_keys(read_fd, stop)) == []
    finally:
        os.close(read_fd)
        os.close(write_fd)


def test_listener_is_silent_without_a_terminal():
    signals = queue.Queue()
    with keys.KeyListener(signals, stream=io.StringIO("pq")) as listener:
        assert not listener.interactive
    assert signals.empty()


@pytest.mark.parametrize(
    "chunk, expected",
    [
        ("s\x1b[A", ["s", "\x1b[A"]),
        ("\x1b[Ap", ["\x1b[A", "p"]),
        ("\x1bOBx", ["\x1bOB", "x"]),
        ("\x1b[1;5Cq", ["\x1b[1;5C", "q"]),
        ("p\x1b", ["p", "\x1b"]),
    ],
)
def test_split_chunk_separates_keys_around_escape_sequences(chunk, expected):
    assert list(keys.split_chunk(chunk)) == expected


def test_arrow_key_next_to_a_command_is_not_quit():
    assert list(keys.decode_stream(keys.split_chunk("s\x1b[A"))) == [Signal.SKIP]
    assert list(keys.decode_stream(keys.split_chunk("\x1b[Ap"))) == [Signal.PAUSE]


def test_listener_reads_keys_in_cbreak_mode_and_restores_terminal():
    termios = pytest.importorskip("termios")
    pty = pytest.importorskip("pty")
    master_fd, slave_fd = pty.openpty()
    stream = open(slave_fd, "rb", buffering=0, closefd=False)
    try:
        before = termios.tcgetattr(slave_fd)
        signals = queue.Queue()
        with keys.KeyListener(signals, stream=stream) as listener:
            assert listener.interactive
            assert not termios.tcgetattr(slave_fd)[3] & termios.ICANON
            os.write(master_fd, b"p")
            assert signals.get(timeout=2) is Signal.PAUSE
        assert termios.tcgetattr(slave_fd) == before
    finally:
        stream.close()
        os.close(slave_fd)
        os.close(master_fd)
