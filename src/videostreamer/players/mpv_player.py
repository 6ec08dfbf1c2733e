"""libmpv backed player and surface.

mpv reports property changes and events on its own event thread; this
adapter only republishes them through the MediaPlayer observables, so the
session controller still applies them on the main thread.
"""

import logging
import threading
from typing import Optional

import mpv

from ..core.player import MediaPlayer, PlayerStatus, PresentationSurface

logger = logging.getLogger(__name__)


class MpvPlayer(MediaPlayer):
    """MediaPlayer on python-mpv. `rate` is 0 while paused, else mpv's speed."""

    def __init__(self, **mpv_options):
        super().__init__()
        options = {
            "vid": "auto",
            "hr_seek": "yes",
            "keep_open": "yes",
            "input_default_bindings": True,
            "input_vo_keyboard": True,
            "osc": True,
        }
        options.update(mpv_options)
        self._mpv = mpv.MPV(**options)
        self._mpv.pause = True
        self._paused = True
        self._speed = 1.0
        self._position = 0.0
        self._loaded = False
        self._pending_seek: Optional[tuple] = None
        self._released = False
        self.closed = threading.Event()  # user quit mpv (window closed, q pressed)

        self._mpv.observe_property("pause", self._on_pause)
        self._mpv.observe_property("speed", self._on_speed)
        self._mpv.observe_property("time-pos", self._on_time_pos)
        self._mpv.register_event_callback(self._on_event)

    # ---- mpv callbacks (event thread) ----

    def _on_pause(self, _name, value):
        if value is not None:
            self._paused = bool(value)
            self._publish_rate()

    def _on_speed(self, _name, value):
        if value is not None:
            self._speed = float(value)
            self._publish_rate()

    def _on_time_pos(self, _name, value):
        if value is not None:
            self._position = float(value)

    def _publish_rate(self):
        self.rate.set(0.0 if self._paused else self._speed)

    def _on_event(self, event):
        event_id = event.event_id.value
        if event_id == mpv.MpvEventID.FILE_LOADED:
            self._loaded = True
            if self._pending_seek is not None:
                seconds, exact = self._pending_seek
                self._pending_seek = None
                self.seek(seconds, exact)
            self.status.set(PlayerStatus.READY_TO_PLAY)
        elif event_id == mpv.MpvEventID.END_FILE:
            data = event.data
            if data is not None and data.reason == mpv.MpvEventEndFile.ERROR:
                self.error = f"mpv could not play the file (error {data.error})"
                self.status.set(PlayerStatus.FAILED)
        elif event_id == mpv.MpvEventID.SHUTDOWN:
            self.closed.set()

    # ---- MediaPlayer ----

    def load(self, url: str):
        self._loaded = False
        self.status.set(PlayerStatus.UNKNOWN)
        self._mpv.loadfile(url)

    def play(self):
        self._mpv.pause = False

    @property
    def _alive(self) -> bool:
        return not self._released and not self.closed.is_set()

    def pause(self):
        if self._alive:
            self._mpv.pause = True

    def seek(self, seconds: float, exact: bool = True):
        if not self._loaded:
            self._pending_seek = (seconds, exact)
            return
        self._mpv.seek(seconds, reference="absolute", precision="exact" if exact else "keyframes")

    def current_time(self) -> float:
        # the last reported position survives the user closing the window
        return self._position

    def set_rate(self, rate: float):
        self._mpv.speed = rate

    def release(self):
        if self._released:
            return
        self._released = True
        try:
            if self.closed.is_set():
                return
            self._mpv.unobserve_property("pause", self._on_pause)
            self._mpv.unobserve_property("speed", self._on_speed)
            self._mpv.unobserve_property("time-pos", self._on_time_pos)
            self._mpv.unregister_event_callback(self._on_event)
        finally:
            self._mpv.terminate()

    def set_video_enabled(self, enabled: bool):
        if self._alive:
            self._mpv.vid = "auto" if enabled else "no"


class MpvSurface(PresentationSurface):
    """mpv's own window. Detaching switches off the video track; audio keeps playing."""

    def _show(self, player: MediaPlayer):
        if isinstance(player, MpvPlayer):
            player.set_video_enabled(True)

    def _hide(self, player: MediaPlayer):
        if isinstance(player, MpvPlayer):
            player.set_video_enabled(False)
