"""Pytest configuration and shared fixtures."""
import io
import threading
from contextlib import contextmanager

import pytest

from hudchat import plugins
from hudchat.config import ChatConfig
from hudchat.session import ChatSession


class FakeTerminal:
    """Stands in for blessed.Terminal: records writes and mode switches."""

    def __init__(self, width=60, height=20):
        self.width, self.height = width, height
        self.stream = io.StringIO()
        self.normal = "<normal>"
        self.home = "<home>"
        self.clear = "<clear>"
        self.entered = []
        self.exited = []

    def move_yx(self, y, x):
        return f"<{y},{x}>"

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return lambda text: f"<{name}>{text}</>"

    @contextmanager
    def _mode(self, name):
        self.entered.append(name)
        try:
            yield
        finally:
            self.exited.append(name)

    def raw(self):
        return self._mode("raw")

    def hidden_cursor(self):
        return self._mode("hidden_cursor")

    def fullscreen(self):
        return self._mode("fullscreen")

    def kbhit(self, timeout=None):
        return False

    def output(self) -> str:
        return self.stream.getvalue()


class Clock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class GatedGenerator:
    """A generator that blocks until `step()` lets one call finish; records every call."""

    def __init__(self, reply="ok"):
        self.reply = reply
        self.calls = []
        self.active = 0
        self.max_active = 0
        self.gate = threading.Semaphore(0)
        self._cond = threading.Condition()

    def __call__(self, trigger, emit, batch):
        with self._cond:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.calls.append((trigger, list(batch)))
            self._cond.notify_all()
        self.gate.acquire(timeout=5)
        emit(self.reply)
        with self._cond:
            self.active -= 1
        return None

    def wait_calls(self, n, timeout=5):
        with self._cond:
            return self._cond.wait_for(lambda: len(self.calls) >= n, timeout)

    def step(self):
        self.gate.release()


@pytest.fixture
def term():
    return FakeTerminal()


@pytest.fixture
def make_term():
    return FakeTerminal


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def gated():
    gen = GatedGenerator()
    yield gen
    for _ in range(10):
        gen.step()


@pytest.fixture
def make_session(term):
    sessions = []

    def _make(generator=None, **config):
        s = ChatSession(generator or (lambda trigger, emit, batch: "done"), ChatConfig(**config), term=term)
        sessions.append(s)
        return s

    yield _make
    for s in sessions:
        s.cleanup()
        s.queue.wait_idle(2)


@pytest.fixture
def restore_overrides():
    saved, overridden = dict(plugins.OVERRIDES), set(plugins._OVERRIDDEN)
    yield
    plugins.OVERRIDES.clear()
    plugins.OVERRIDES.update(saved)
    plugins._OVERRIDDEN.clear()
    plugins._OVERRIDDEN.update(overridden)
