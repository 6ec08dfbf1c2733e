"""Main entry point for VideoStreamer."""

import argparse
import logging
import sys
import threading

from .core import (
    BackgroundContinuityManager,
    JsonPersistence,
    PlaybackController,
    PlaybackState,
    QueueDispatcher,
    SourceResolver,
    VideoStreamerError,
    VideoStore,
    YouTubeClient,
    download_entry,
)
from .utils import PLAYBACK_SPEEDS, Settings, log_error, setup_logging
from .version import __version__

logger = logging.getLogger(__name__)

PLAY_HELP = """Commands while playing:
  p          pause / resume
  s SPEED    playback speed (one of {speeds})
  r          start over
  b          background (audio only when background play is on)
  f          foreground
  q          stop and quit"""


class ConsoleNotifier:
    """Prints playback errors to stderr."""

    def present_playback_error(self, error):
        print(f"Playback error: {error}", file=sys.stderr)


def build_store(settings: Settings, dispatcher=None) -> VideoStore:
    store = VideoStore(JsonPersistence(settings.library_path), dispatcher)
    store.restore()
    return store


def _print_entries(store: VideoStore):
    if not len(store):
        print("No videos saved.")
        return
    for i, entry in enumerate(store):
        flags = []
        if entry.is_downloaded:
            flags.append("downloaded")
        if entry.last_played_time is not None:
            flags.append(f"at {entry.last_played_time:.0f}s")
        suffix = f" ({', '.join(flags)})" if flags else ""
        print(f"{i:3d}  [{entry.type.value}] {entry.url}{suffix}")


def cmd_list(args, settings: Settings):
    _print_entries(build_store(settings))


def cmd_add(args, settings: Settings):
    store = build_store(settings)
    entry = store.add_from_string(args.url, index=0)
    store.persist().join()
    print(f"Added {entry.url} as {entry.type.value}")


def cmd_remove(args, settings: Settings):
    store = build_store(settings)
    entry = store.remove(args.index)
    store.persist().join()
    print(f"Removed {entry.url}")


def cmd_move(args, settings: Settings):
    store = build_store(settings)
    store.move(args.from_index, args.to_index)
    store.persist().join()
    _print_entries(store)


def cmd_resolve(args, settings: Settings):
    store = build_store(settings)
    resolver = SourceResolver(YouTubeClient())
    print(resolver.resolve_blocking(store[args.index]))


def cmd_info(args, settings: Settings):
    dispatcher = QueueDispatcher()
    store = build_store(settings, dispatcher)
    entry = store[args.index]
    result = {}

    def _done(info, error):
        result["info"], result["error"] = info, error
        dispatcher.stop()

    store.fetch_info(entry, YouTubeClient(), _done)
    dispatcher.run()
    if result["error"] is not None:
        raise result["error"]
    info = result["info"]
    print(f"Title:    {info.title}")
    if info.uploader:
        print(f"Uploader: {info.uploader}")
    print(f"Duration: {info.duration}s")
    print(f"Formats:  {len(info.formats)}")
    for fmt in info.formats:
        print(f"  {fmt.format_id:>8}  {fmt.ext:5} {fmt.resolution:>10}  {fmt.note}")


def cmd_download(args, settings: Settings):
    store = build_store(settings)
    entry = store[args.index]

    def _progress(percent, current, total):
        print(f"\r{percent:5.1f}%  {current}/{total} bytes", end="", flush=True)

    path = download_entry(entry, SourceResolver(YouTubeClient()), settings.download_path, _progress)
    print()
    store.mark_downloaded(entry, str(path))
    store.persist().join()
    print(f"Saved to {path}")


def _read_commands(dispatcher: QueueDispatcher, controller: PlaybackController,
                   background: BackgroundContinuityManager, quit_event: threading.Event):
    for line in sys.stdin:
        parts = line.split()
        if not parts:
            continue
        cmd = parts[0].lower()
        if cmd == "q":
            break
        if cmd == "p":
            def _toggle():
                session = controller.active
                if session and session.state is PlaybackState.PAUSED:
                    controller.resume()
                else:
                    controller.pause()
            dispatcher.call_soon(_toggle)
        elif cmd == "s" and len(parts) == 2:
            try:
                speed = float(parts[1])
            except ValueError:
                print(f"Not a speed: {parts[1]}")
                continue
            if speed not in PLAYBACK_SPEEDS:
                print(f"Speed must be one of {PLAYBACK_SPEEDS}")
                continue
            dispatcher.call_soon(lambda s=speed: controller.set_playback_speed(s))
        elif cmd == "r":
            dispatcher.call_soon(controller.restart)
        elif cmd == "b":
            dispatcher.call_soon(background.enter_background)
        elif cmd == "f":
            dispatcher.call_soon(background.enter_foreground)
        else:
            print(PLAY_HELP.format(speeds=", ".join(str(s) for s in PLAYBACK_SPEEDS)))
    quit_event.set()


def cmd_play(args, settings: Settings):
    from .players.mpv_player import MpvPlayer, MpvSurface

    dispatcher = QueueDispatcher()
    store = build_store(settings, dispatcher)
    entry = store[args.index]
    if args.speed is not None:
        settings.set_playback_speed(args.speed)

    players = []

    def _new_player():
        player = MpvPlayer()
        players.append(player)
        return player

    surface = MpvSurface()
    controller = PlaybackController(
        resolver=SourceResolver(YouTubeClient()),
        player_factory=_new_player,
        settings=settings,
        dispatcher=dispatcher,
        notifier=ConsoleNotifier(),
        surface=surface,
        store=store,
    )
    background = BackgroundContinuityManager(controller, surface, settings)
    quit_event = threading.Event()

    def _finished():
        session = controller.active
        if quit_event.is_set() or session is None or session.state.is_terminal:
            return True
        return any(p.closed.is_set() for p in players)

    print(PLAY_HELP.format(speeds=", ".join(str(s) for s in PLAYBACK_SPEEDS)))
    threading.Thread(
        target=_read_commands, args=(dispatcher, controller, background, quit_event), daemon=True
    ).start()

    with controller:
        controller.start(entry)
        dispatcher.run(until=_finished)
        failed = controller.active is not None and controller.active.error is not None
    # the position write-back persists asynchronously; make sure it lands
    store.persist().join()
    if failed:
        raise SystemExit(1)


def cmd_settings(args, settings: Settings):
    if args.resume is not None:
        settings.set_resume_playback(args.resume)
    if args.background is not None:
        settings.set_background_play(args.background)
    if args.speed is not None:
        settings.set_playback_speed(args.speed)
    if args.lock_landscape is not None:
        settings.set_lock_landscape_playback(args.lock_landscape)
    print(f"resume_playback:         {settings.resume_playback}")
    print(f"background_play:         {settings.background_play}")
    print(f"playback_speed:          {settings.playback_speed}")
    print(f"lock_landscape_playback: {settings.lock_landscape_playback}")
    print(f"download_path:           {settings.download_path}")
    print(f"library_path:            {settings.library_path}")


def _speed(value: str) -> float:
    speed = float(value)
    if speed not in PLAYBACK_SPEEDS:
        raise argparse.ArgumentTypeError(f"speed must be one of {PLAYBACK_SPEEDS}")
    return speed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="videostreamer", description="Save and play video streams")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", help="Path to the settings file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List saved videos").set_defaults(func=cmd_list)

    p = sub.add_parser("add", help="Save a video URL at the top of the list")
    p.add_argument("url")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("remove", help="Delete a saved video")
    p.add_argument("index", type=int)
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("move", help="Reorder a saved video")
    p.add_argument("from_index", type=int)
    p.add_argument("to_index", type=int)
    p.set_defaults(func=cmd_move)

    p = sub.add_parser("resolve", help="Print the playable stream URL")
    p.add_argument("index", type=int)
    p.set_defaults(func=cmd_resolve)

    p = sub.add_parser("info", help="Show video metadata")
    p.add_argument("index", type=int)
    p.set_defaults(func=cmd_info)

    p = sub.add_parser("download", help="Download a video for offline playback")
    p.add_argument("index", type=int)
    p.set_defaults(func=cmd_download)

    p = sub.add_parser("play", help="Play a saved video with mpv")
    p.add_argument("index", type=int)
    p.add_argument("--speed", type=_speed, help="Set the playback speed first")
    p.set_defaults(func=cmd_play)

    p = sub.add_parser("settings", help="Show or change settings")
    p.add_argument("--resume", action=argparse.BooleanOptionalAction, default=None,
                   help="Resume videos where they were left")
    p.add_argument("--background", action=argparse.BooleanOptionalAction, default=None,
                   help="Keep playing audio in the background")
    p.add_argument("--speed", type=_speed)
    p.add_argument("--lock-landscape", action=argparse.BooleanOptionalAction, default=None,
                   help="Lock playback to landscape")
    p.set_defaults(func=cmd_settings)
    return parser


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    settings = Settings(args.config) if args.config else Settings()
    try:
        logger.debug(f"Starting VideoStreamer v{__version__}")
        args.func(args, settings)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except VideoStreamerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.error(f"Fatal error in main(): {e}", exc_info=True)
        log_error("Fatal error in main()", e)
        raise
    return 0


if __name__ == "__main__":
    sys.exit(main())
