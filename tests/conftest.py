"""Shared fakes for the playback tests. No network, no libmpv."""

from __future__ import annotations

from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest

from videostreamer.core.dispatch import QueueDispatcher
from videostreamer.core.persistence import JsonPersistence
from videostreamer.core.player import MediaPlayer, PlayerStatus, PresentationSurface
from videostreamer.core.resolver import SourceResolver
from videostreamer.core.session import PlaybackController
from videostreamer.core.store import VideoStore


class FakePlayer(MediaPlayer):
    """Records calls. Like most platform players, play() resets the rate to 1.0."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple] = []
        self.position = 0.0
        self.released = False

    def load(self, url):
        self.calls.append(("load", url))

    def play(self):
        self.calls.append(("play",))
        self.rate.set(1.0)

    def pause(self):
        self.calls.append(("pause",))
        self.rate.set(0.0)

    def seek(self, seconds, exact=True):
        self.calls.append(("seek", seconds, exact))
        self.position = seconds

    def current_time(self):
        return self.position

    def set_rate(self, rate):
        self.calls.append(("set_rate", rate))
        self.rate.set(rate)

    def release(self):
        self.calls.append(("release",))
        self.released = True

    # test helpers

    def become_ready(self):
        self.status.set(PlayerStatus.READY_TO_PLAY)

    def fail(self, message="decoder error"):
        self.error = message
        self.status.set(PlayerStatus.FAILED)

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]


@dataclass
class FakeSettings:
    resume_playback: bool = True
    background_play: bool = False
    playback_speed: float = 1.0
    lock_landscape_playback: bool = False


class DeferredSpawn:
    """Collects worker functions instead of starting threads."""

    def __init__(self):
        self.pending = []

    def __call__(self, fn):
        self.pending.append(fn)

    def run_all(self):
        pending, self.pending = self.pending, []
        for fn in pending:
            fn()


@pytest.fixture
def dispatcher():
    return QueueDispatcher()


@pytest.fixture
def settings():
    return FakeSettings()


@pytest.fixture
def catalog():
    return MagicMock()


@pytest.fixture
def spawn():
    return DeferredSpawn()


@pytest.fixture
def resolver(catalog, spawn):
    return SourceResolver(catalog, spawn=spawn)


@pytest.fixture
def players():
    return []


@pytest.fixture
def player_factory(players):
    def _factory():
        player = FakePlayer()
        players.append(player)
        return player
    return _factory


@pytest.fixture
def surface():
    return PresentationSurface()


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def store(tmp_path, dispatcher):
    return VideoStore(JsonPersistence(tmp_path / "videos.json"), dispatcher)


@pytest.fixture
def controller(resolver, player_factory, settings, dispatcher, notifier, surface):
    return PlaybackController(
        resolver=resolver,
        player_factory=player_factory,
        settings=settings,
        dispatcher=dispatcher,
        notifier=notifier,
        surface=surface,
    )
