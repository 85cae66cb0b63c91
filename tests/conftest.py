"""
Pytest configuration and fixtures for SimulPlay tests.

Provides a deterministic stand-in for the pyglet clock, a synchronous
command worker and in-memory players so that controller behaviour can be
tested without audio/video hardware or network access.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from playback.player_capability import PlayerCapability, PlaybackState


# ==================== PYTEST CONFIGURATION ====================

def pytest_configure(config):
    """Add custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: unit test (fast, no I/O)")
    config.addinivalue_line("markers", "integration: integration test (with mocks)")


# ==================== CLOCK / WORKER DOUBLES ====================

class FakeClock:
    """
    Manually advanced replacement for pyglet.clock.

    Implements the subset of the pyglet Clock API used by SimulPlay:
    schedule_once, schedule_interval and unschedule.
    """

    def __init__(self):
        self.now = 0.0
        self._once = []        # [due, func]
        self._intervals = []   # [due, interval, func]

    def schedule_once(self, func, delay, *args, **kwargs):
        self._once.append([self.now + delay, func])

    def schedule_interval(self, func, interval, *args, **kwargs):
        self._intervals.append([self.now + interval, interval, func])

    def unschedule(self, func):
        self._once = [item for item in self._once if item[1] != func]
        self._intervals = [item for item in self._intervals if item[2] != func]

    def is_scheduled(self, func) -> bool:
        return (any(item[1] == func for item in self._once)
                or any(item[2] == func for item in self._intervals))

    @property
    def interval_count(self) -> int:
        return len(self._intervals)

    def step(self) -> bool:
        """Fire only the earliest pending one-shot callback that is due now."""
        due = [item for item in self._once if item[0] <= self.now + 1e-9]
        if not due:
            return False
        item = min(due, key=lambda i: i[0])
        self._once.remove(item)
        item[1](0.0)
        return True

    def advance(self, seconds: float = 0.0):
        """Move time forward, firing everything that falls due (in order)."""
        target = self.now + seconds
        while True:
            candidates = [(item[0], 0, item) for item in self._once]
            candidates += [(item[0], 1, item) for item in self._intervals]
            candidates = [c for c in candidates if c[0] <= target + 1e-9]
            if not candidates:
                break
            due, kind, item = min(candidates, key=lambda c: (c[0], c[1]))
            self.now = max(self.now, due)
            if kind == 0:
                self._once.remove(item)
                item[1](0.0)
            else:
                item[0] += item[1]
                item[2](item[1])
        self.now = target


class ManualWorker:
    """
    Synchronous CommandWorker double.

    submit() runs the callable immediately; completion callbacks are held
    until pump() is called, like the real worker's main-loop delivery.
    """

    def __init__(self):
        self.calls = []
        self._completed = []
        self.shut_down = False

    def submit(self, func, *args, on_done=None):
        self.calls.append((func, args))
        try:
            result, error = func(*args), None
        except Exception as e:
            result, error = None, e
        if on_done is not None:
            self._completed.append(lambda: on_done(result, error))

    def pump(self, dt=0.0):
        delivered = 0
        while self._completed:
            self._completed.pop(0)()
            delivered += 1
        return delivered

    def shutdown(self, wait=False):
        self.shut_down = True


class FakePlayer(PlayerCapability):
    """
    In-memory player.

    Commands that change state echo their correlation id on the next clock
    tick; user_sets() simulates a change made directly on the player.
    """

    def __init__(self, name, clock, ready=True, duration=100.0):
        super().__init__(name, clock)
        self.ready = ready
        self.position = 0.0
        self.duration = duration
        self.state = PlaybackState.UNSTARTED
        self.commands = []
        self.seeks = []
        self.loaded = []

    def is_ready(self):
        return self.ready

    def become_ready(self):
        self.ready = True
        self._flush_pending_load()

    def _load_now(self, identifier):
        self.loaded.append(identifier)

    def play(self, correlation_id=None):
        self.commands.append(('play', correlation_id))
        self._transition(PlaybackState.PLAYING, correlation_id)

    def pause(self, correlation_id=None):
        self.commands.append(('pause', correlation_id))
        self._transition(PlaybackState.PAUSED, correlation_id)

    def _transition(self, state, correlation_id):
        if state != self.state:
            self.state = state
            self._notify_later(state, correlation_id)

    def user_sets(self, state):
        self.state = state
        self._notify_later(state)

    def seek_to(self, seconds):
        self.seeks.append(seconds)
        self.position = seconds

    def get_current_time(self):
        return self.position

    def get_duration(self):
        return self.duration

    def get_state(self):
        return self.state


class FakeMediaPlayer:
    """Minimal stand-in for pyglet.media.Player."""

    def __init__(self):
        self.source = None
        self.playing = False
        self.time = 0.0
        self.texture = MagicMock(name="texture")
        self.handlers = {}
        self.queued = []
        self.deleted = False
        self.next_source_calls = 0

    def push_handlers(self, **handlers):
        self.handlers.update(handlers)

    def queue(self, source):
        self.queued.append(source)
        if self.source is None:
            self.source = source

    def next_source(self):
        self.next_source_calls += 1
        self.source = self.queued[-1]
        self.time = 0.0

    def play(self):
        self.playing = True

    def pause(self):
        self.playing = False

    def seek(self, timestamp):
        self.time = timestamp

    def delete(self):
        self.deleted = True

    def finish(self):
        """Simulate reaching the end of the source; returns the handler's result."""
        self.time = float(self.source.duration)
        return self.handlers['on_eos']()


# ==================== FIXTURES ====================

@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def manual_worker():
    return ManualWorker()


@pytest.fixture
def make_player(fake_clock):
    """Factory for FakePlayer instances sharing the fake clock."""
    def factory(name, ready=True, duration=100.0):
        return FakePlayer(name, fake_clock, ready=ready, duration=duration)
    return factory


@pytest.fixture
def video(make_player):
    return make_player("video")


@pytest.fixture
def audio(make_player):
    return make_player("audio")


@pytest.fixture
def fake_media_player():
    return FakeMediaPlayer()


@pytest.fixture
def mock_spotify_client():
    """
    MagicMock SpotifyWebClient with one available device and nothing playing.
    """
    client = MagicMock(name="SpotifyWebClient")
    client.find_device_id.return_value = "device-1"
    client.get_playback.return_value = None
    return client
