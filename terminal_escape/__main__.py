import argparse
import logging
import sys

from terminal_escape.config import DEFAULT_THEME, resolve_data_dir
from terminal_escape.effects import THEMES, SoundEngine, VisualFX, make_console
from terminal_escape.menus import App
from terminal_escape.session import GameSession

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="terminal-escape", description="A Linux terminal escape room.")
    parser.add_argument("--data-dir", type=str, help="where saves and the leaderboard are kept")
    parser.add_argument("--no-color", action="store_true")
    parser.add_argument("--sound", action="store_true", help="ring the terminal bell on events")
    parser.add_argument("--theme", choices=sorted(THEMES), default=DEFAULT_THEME)
    parser.add_argument("--skip-intro", action="store_true", help="no boot sequence or animations")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    SoundEngine.enabled = args.sound
    VisualFX.enabled = not args.skip_intro
    console = make_console(args.theme, no_color=args.no_color)

    try:
        session = GameSession(resolve_data_dir(args.data_dir))
        app = App(console, session, args.theme)
    except Exception as e:
        logger.exception("Startup failed")
        print(f"terminal-escape: {e}", file=sys.stderr)
        return 1

    try:
        return app.run(skip_intro=args.skip_intro)
    except (KeyboardInterrupt, EOFError):
        app.shutdown()
        console.print("\n[dim]Session terminated.[/]")
        return 0


if __name__ == "__main__":
    sys.exit(main())
