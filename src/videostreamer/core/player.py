"""Interfaces for the underlying media player and the surface that shows it."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from .observable import ObservableProperty

logger = logging.getLogger(__name__)


class PlayerStatus(str, Enum):
    UNKNOWN = "unknown"
    READY_TO_PLAY = "ready"
    FAILED = "failed"


class MediaPlayer(ABC):
    """A single media pipeline playing one url.

    Backends publish changes through the observable `rate` and `status`
    properties. Those changes may be reported from a backend thread.
    """

    def __init__(self):
        self.rate: ObservableProperty[float] = ObservableProperty("rate", 0.0)
        self.status: ObservableProperty[PlayerStatus] = ObservableProperty("status", PlayerStatus.UNKNOWN)
        self.error: Optional[str] = None

    @abstractmethod
    def load(self, url: str):
        """Start loading url. Status moves to READY_TO_PLAY or FAILED later."""

    @abstractmethod
    def play(self):
        pass

    @abstractmethod
    def pause(self):
        pass

    @abstractmethod
    def seek(self, seconds: float, exact: bool = True):
        pass

    @abstractmethod
    def current_time(self) -> float:
        pass

    @abstractmethod
    def set_rate(self, rate: float):
        pass

    @abstractmethod
    def release(self):
        """Free the media resources. The player is unusable afterwards."""


class PresentationSurface:
    """The visible surface a player renders into.

    Holds at most one player. Subclasses override _show/_hide to wire the
    player into a real view.
    """

    def __init__(self):
        self.player: Optional[MediaPlayer] = None

    def attach(self, player: MediaPlayer):
        if self.player is player:
            return
        if self.player is not None:
            self.detach()
        self.player = player
        self._show(player)

    def detach(self) -> Optional[MediaPlayer]:
        player, self.player = self.player, None
        if player is not None:
            self._hide(player)
        return player

    def _show(self, player: MediaPlayer):
        pass

    def _hide(self, player: MediaPlayer):
        pass
