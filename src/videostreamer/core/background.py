"""Keeping playback alive while the app is in the background."""

import logging
from typing import Optional

from .player import MediaPlayer, PresentationSurface

logger = logging.getLogger(__name__)


class BackgroundContinuityManager:
    """Detaches the active player from the surface on background, reattaches on foreground.

    Foreground-only surfaces must let go of their player when the app is
    backgrounded. With background play enabled the player keeps running
    (audio only) and is held here until the app returns; otherwise it is paused.
    """

    def __init__(self, controller, surface: PresentationSurface, settings):
        self.controller = controller
        self.surface = surface
        self.settings = settings
        self._retained: Optional[MediaPlayer] = None
        self._held = None

    @property
    def retained_player(self) -> Optional[MediaPlayer]:
        return self._retained

    def enter_background(self):
        session = self.controller.active
        if session is None or session.state.is_terminal:
            return
        if not self.settings.background_play:
            # A session still starting is held, so readiness cannot start it unseen
            self._held = session if session.state.is_starting else None
            self.controller.pause()
            logger.info("Entered background: playback paused")
            return
        player = self.controller.active_player
        if player is None:
            return
        if self.surface.player is player:
            self.surface.detach()
        self._retained = player
        logger.info("Entered background: player detached, playback continues")

    def enter_foreground(self):
        held, self._held = self._held, None
        if held is not None and held is self.controller.active and held.hold_playback:
            self.controller.resume()
            logger.info("Entered foreground: held session may start")
        player, self._retained = self._retained, None
        if player is None:
            return
        # The session may have ended (and released this player) while backgrounded
        if player is not self.controller.active_player:
            logger.debug("Retained player no longer active, not reattaching")
            return
        self.surface.attach(player)
        logger.info("Entered foreground: player reattached")
