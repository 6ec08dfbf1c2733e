"""Playback sessions and the controller that owns the single active one.

Everything in this module runs on the main thread. Worker threads (catalog
lookups) and player backends report through the dispatcher, and every
delivered callback checks that its session is still the active one before
touching any state.
"""

import itertools
import logging
import threading
from typing import Callable, Optional

from .errors import PlaybackUnresolvable, PlayerError
from .models import PlaybackState, VideoEntry
from .observable import ObservableProperty, SubscriptionSet
from .player import MediaPlayer, PlayerStatus, PresentationSurface

logger = logging.getLogger(__name__)

_TRANSITIONS = {
    PlaybackState.RESOLVING: {PlaybackState.LOADING, PlaybackState.FAILED, PlaybackState.ENDED},
    PlaybackState.LOADING: {PlaybackState.READY, PlaybackState.FAILED, PlaybackState.ENDED},
    PlaybackState.READY: {PlaybackState.PLAYING, PlaybackState.PAUSED, PlaybackState.FAILED, PlaybackState.ENDED},
    PlaybackState.PLAYING: {PlaybackState.PAUSED, PlaybackState.FAILED, PlaybackState.ENDED},
    PlaybackState.PAUSED: {PlaybackState.PLAYING, PlaybackState.FAILED, PlaybackState.ENDED},
    PlaybackState.FAILED: set(),
    PlaybackState.ENDED: set(),
}

_session_ids = itertools.count(1)


class PlaybackSession:
    """One playback attempt, from resolution until the player view closes.

    The entry is borrowed from the store; the session never outlives it.
    """

    def __init__(self, entry: VideoEntry, desired_rate: float):
        self.id = next(_session_ids)
        self.entry = entry
        self.desired_rate = desired_rate
        self.resolved_url: Optional[str] = None
        self.player: Optional[MediaPlayer] = None
        self.error: Optional[Exception] = None
        self.lookup = None
        self.subscriptions = SubscriptionSet()
        self.state_property: ObservableProperty[PlaybackState] = ObservableProperty(
            "state", PlaybackState.RESOLVING
        )
        self.seek_issued = False
        self.error_reported = False
        # set by pause() before the player is ready; it then stays paused
        self.hold_playback = False

    @property
    def state(self) -> PlaybackState:
        return self.state_property.value

    def transition(self, new: PlaybackState) -> bool:
        old = self.state
        if new not in _TRANSITIONS[old]:
            logger.debug(f"Session {self.id}: ignoring {old.value} -> {new.value}")
            return False
        logger.debug(f"Session {self.id}: {old.value} -> {new.value}")
        self.state_property.set(new)
        return True

    def __repr__(self):
        return f"<PlaybackSession {self.id} {self.state.value} {self.entry.url}>"


class PlaybackController:
    """Creates, drives and tears down the one active PlaybackSession."""

    def __init__(self, resolver, player_factory: Callable[[], MediaPlayer], settings,
                 dispatcher, notifier=None, surface: Optional[PresentationSurface] = None,
                 store=None):
        self.resolver = resolver
        self.player_factory = player_factory
        self.settings = settings
        self.dispatcher = dispatcher
        self.notifier = notifier
        self.surface = surface
        self.store = store
        self._session: Optional[PlaybackSession] = None

    @property
    def active(self) -> Optional[PlaybackSession]:
        return self._session

    @property
    def active_player(self) -> Optional[MediaPlayer]:
        return self._session.player if self._session else None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    # ---- Lifecycle ----

    def start(self, entry: VideoEntry) -> PlaybackSession:
        """Begin playing entry, ending any session that is still active."""
        if self._session is not None:
            self.close()

        session = PlaybackSession(entry, self.settings.playback_speed)
        self._session = session
        logger.info(f"Session {session.id}: starting {entry.url}")

        lock = threading.Lock()
        sync_results = []
        starting = [True]

        def _resolved(url, error):
            with lock:
                if starting[0]:
                    sync_results.append((url, error))
                    return
            self.dispatcher.call_soon(lambda: self._on_resolved(session.id, url, error))

        session.lookup = self.resolver.resolve(entry, _resolved)
        with lock:
            starting[0] = False
        if sync_results:
            self._on_resolved(session.id, *sync_results[0])
        return session

    def close(self):
        """End the active session: pause, drop observers, save position, release."""
        session = self._session
        if session is None:
            return
        self._session = None

        if session.lookup is not None:
            session.lookup.cancel()

        player = session.player
        if player is not None:
            player.pause()
        session.subscriptions.cancel_all()

        if player is not None and session.state is not PlaybackState.FAILED:
            if self.settings.resume_playback:
                session.entry.last_played_time = player.current_time()
            else:
                session.entry.last_played_time = None
            if self.store is not None:
                self.store.persist()

        if player is not None:
            if self.surface is not None and self.surface.player is player:
                self.surface.detach()
            player.release()
            session.player = None

        session.transition(PlaybackState.ENDED)
        logger.info(f"Session {session.id}: closed in state {session.state.value}")

    def shutdown(self):
        self.close()

    # ---- User commands ----

    def pause(self):
        """Pause playback, or keep a session that is still starting from ever playing."""
        session = self._session
        if session is None:
            return
        if session.state.is_starting:
            session.hold_playback = True
            return
        if session.state is not PlaybackState.PLAYING:
            return
        session.transition(PlaybackState.PAUSED)
        session.player.pause()

    def resume(self):
        session = self._session
        if session is None:
            return
        if session.state.is_starting:
            session.hold_playback = False
            return
        if session.state is not PlaybackState.PAUSED:
            return
        session.transition(PlaybackState.PLAYING)
        session.player.play()

    def set_playback_speed(self, speed: float):
        """Change the speed of the active session; a paused player picks it up on resume."""
        session = self._session
        if session is None:
            return
        session.desired_rate = speed
        if session.player is not None and session.state is PlaybackState.PLAYING:
            session.player.set_rate(speed)

    def restart(self):
        session = self._session
        if session is None or session.player is None or session.state.is_terminal:
            return
        session.player.seek(0.0, exact=True)

    # ---- Internal transitions ----

    def _is_current(self, session_id: int) -> Optional[PlaybackSession]:
        session = self._session
        if session is None or session.id != session_id:
            logger.debug(f"Discarding stale callback for session {session_id}")
            return None
        return session

    def _on_resolved(self, session_id: int, url: Optional[str], error: Optional[Exception]):
        session = self._is_current(session_id)
        if session is None:
            return
        session.lookup = None
        if error is not None or not url:
            self._fail(session, error or PlaybackUnresolvable(f"Nothing to play for {session.entry.url}"))
            return
        session.resolved_url = url
        self._load(session, url)

    def _load(self, session: PlaybackSession, url: str):
        session.transition(PlaybackState.LOADING)
        try:
            self._attach_player(session, url)
        except Exception as e:
            logger.exception(f"Session {session.id}: could not load {url}")
            self._discard_player(session)
            self._fail(session, PlayerError(f"Could not load video: {e}"))

    def _attach_player(self, session: PlaybackSession, url: str):
        player = self.player_factory()
        session.player = player

        sid = session.id
        session.subscriptions.add(player.status.subscribe(
            lambda old, new: self.dispatcher.call_soon(lambda: self._on_status(sid, new))
        ))
        session.subscriptions.add(player.rate.subscribe(
            lambda old, new: self.dispatcher.call_soon(lambda: self._on_rate(sid, old, new))
        ))

        if self.surface is not None:
            self.surface.attach(player)
        logger.info(f"Session {sid}: loading {url}")
        player.load(url)

        last_played = session.entry.last_played_time
        if self.settings.resume_playback and last_played is not None and not session.seek_issued:
            session.seek_issued = True
            logger.debug(f"Session {sid}: resuming at {last_played:.2f}s")
            player.seek(last_played, exact=True)

    def _discard_player(self, session: PlaybackSession):
        session.subscriptions.cancel_all()
        player, session.player = session.player, None
        if player is None:
            return
        if self.surface is not None and self.surface.player is player:
            self.surface.detach()
        try:
            player.release()
        except Exception:
            logger.exception(f"Session {session.id}: releasing a half-built player failed")

    def _on_status(self, session_id: int, status: PlayerStatus):
        session = self._is_current(session_id)
        if session is None:
            return
        if status is PlayerStatus.READY_TO_PLAY:
            if not session.transition(PlaybackState.READY):
                return
            if session.hold_playback:
                session.hold_playback = False
                session.transition(PlaybackState.PAUSED)
                logger.debug(f"Session {session_id}: ready, held paused")
                return
            session.transition(PlaybackState.PLAYING)
            session.player.play()
        elif status is PlayerStatus.FAILED:
            reason = session.player.error if session.player else None
            self._fail(session, PlayerError(reason or "Player reported an error"))

    def _on_rate(self, session_id: int, old: float, new: float):
        session = self._is_current(session_id)
        if session is None or session.player is None:
            return

        if old == 0 and new != 0 and new != session.desired_rate:
            # Players reset to their default rate when playback (re)starts
            logger.debug(f"Session {session_id}: rate {new} reset, restoring {session.desired_rate}")
            session.player.set_rate(session.desired_rate)

        if new == 0 and session.state is PlaybackState.PLAYING:
            session.transition(PlaybackState.PAUSED)
        elif old == 0 and new != 0 and session.state is PlaybackState.PAUSED:
            session.transition(PlaybackState.PLAYING)

    def _fail(self, session: PlaybackSession, error: Exception):
        if session.error_reported:
            return
        session.error_reported = True
        session.error = error
        session.transition(PlaybackState.FAILED)
        session.subscriptions.cancel_all()
        if session.player is not None:
            session.player.pause()
        logger.error(f"Session {session.id}: playback failed for {session.entry.url}: {error}")
        if self.notifier is not None:
            self.notifier.present_playback_error(error)
