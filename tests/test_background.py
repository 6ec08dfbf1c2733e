"""Tests for detaching/reattaching the player across background transitions."""

from __future__ import annotations

import pytest

from videostreamer.core.background import BackgroundContinuityManager
from videostreamer.core.models import PlaybackState, VideoEntry


@pytest.fixture
def manager(controller, surface, settings):
    return BackgroundContinuityManager(controller, surface, settings)


@pytest.fixture
def playing(controller, dispatcher, players):
    session = controller.start(VideoEntry(url="https://cdn.example.com/movie.mp4"))
    players[0].become_ready()
    dispatcher.process_pending()
    return session


class TestBackgroundPlayEnabled:
    def test_same_player_comes_back(self, manager, playing, surface, settings, players, dispatcher):
        settings.background_play = True
        player = players[0]
        player.calls.clear()

        manager.enter_background()
        dispatcher.process_pending()
        assert surface.player is None
        assert manager.retained_player is player
        assert playing.state is PlaybackState.PLAYING
        assert "pause" not in player.names()

        manager.enter_foreground()
        assert surface.player is player
        assert manager.retained_player is None
        assert len(players) == 1
        assert not player.released
        assert "seek" not in player.names()

    def test_session_closed_while_backgrounded(self, manager, controller, playing, surface, settings, players):
        settings.background_play = True
        manager.enter_background()
        controller.close()

        manager.enter_foreground()
        assert surface.player is None
        assert players[0].released

    def test_foreground_without_background_is_noop(self, manager, playing, surface, players):
        manager.enter_foreground()
        assert surface.player is players[0]


class TestBackgroundPlayDisabled:
    def test_pauses_and_keeps_surface(self, manager, playing, surface, settings, players, dispatcher):
        settings.background_play = False
        manager.enter_background()
        dispatcher.process_pending()

        assert playing.state is PlaybackState.PAUSED
        assert surface.player is players[0]
        assert manager.retained_player is None

    def test_no_session(self, manager, surface):
        manager.enter_background()
        manager.enter_foreground()
        assert surface.player is None

    def test_backgrounded_while_loading_does_not_start(self, manager, controller, settings, players, dispatcher):
        settings.background_play = False
        session = controller.start(VideoEntry(url="https://cdn.example.com/movie.mp4"))
        manager.enter_background()

        players[0].become_ready()
        dispatcher.process_pending()
        assert session.state is PlaybackState.PAUSED
        assert "play" not in players[0].names()

        manager.enter_foreground()
        assert session.state is PlaybackState.PAUSED
        controller.resume()
        dispatcher.process_pending()
        assert session.state is PlaybackState.PLAYING

    def test_foreground_before_ready_lets_session_start(self, manager, controller, settings, players, dispatcher):
        settings.background_play = False
        session = controller.start(VideoEntry(url="https://cdn.example.com/movie.mp4"))
        manager.enter_background()
        manager.enter_foreground()

        players[0].become_ready()
        dispatcher.process_pending()
        assert session.state is PlaybackState.PLAYING
        assert "play" in players[0].names()
