"""Media player backends.

Backends import their native libraries at module import time, so they are
imported explicitly (e.g. `from videostreamer.players.mpv_player import MpvPlayer`).
"""
