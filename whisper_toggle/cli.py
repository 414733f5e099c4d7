"""
whisper-toggle CLI

Entry point for the whisper-toggle command. Each hotkey press runs this once.
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from whisper_toggle import __version__
from whisper_toggle.config import Config, ConfigError
from whisper_toggle.controller import Command, RecordingController
from whisper_toggle.lock import InvocationGuard

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_USAGE = 2

COMMAND_HELP = {
    Command.TOGGLE: "Start a toggle recording, or stop one",
    Command.HOLD_START: "Start a hold recording (key pressed)",
    Command.RELEASE: "Stop a hold recording (key released)",
    Command.SWITCH_TO_TOGGLE: "Keep the current hold recording running after release",
}


def setup_logging(log_file: str, verbose: bool = False) -> None:
    """Configure logging to append to the shared log file"""
    level = logging.DEBUG if verbose else logging.INFO
    format_str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    try:
        logging.basicConfig(
            level=level,
            format=format_str,
            datefmt=datefmt,
            filename=log_file,
            filemode="a",
        )
    except OSError as e:
        print(f"Cannot open log file {log_file}: {e}", file=sys.stderr)
        logging.basicConfig(
            level=level,
            format=format_str,
            datefmt=datefmt,
            stream=sys.stderr,
        )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser"""
    parser = argparse.ArgumentParser(
        prog="whisper-toggle",
        description="Hotkey-driven dictation: record, transcribe, paste",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"whisper-toggle {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        help="Path to config file (default: $WHISPER_TOGGLE_CONFIG or ~/.config/whisper-toggle/config.yml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="{toggle,hold-start,release,switch-to-toggle}")
    for command, help_text in COMMAND_HELP.items():
        subparsers.add_parser(command.value, help=help_text)

    return parser


def _exit_on_signal(signum: int, frame) -> None:
    raise SystemExit(128 + signum)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_usage(sys.stderr)
        return EXIT_USAGE

    try:
        config = Config.load(parsed.config)
    except ConfigError as e:
        print(e, file=sys.stderr)
        return EXIT_ERROR

    setup_logging(config.paths.log_file, verbose=parsed.verbose)
    command = Command(parsed.command)

    # Turn termination into SystemExit so the guard is still released
    previous_handlers = {
        signum: signal.signal(signum, _exit_on_signal)
        for signum in (signal.SIGTERM, signal.SIGHUP)
    }
    try:
        guard = InvocationGuard(config.paths.lock_dir)
        with guard as acquired:
            if not acquired:
                logger.info(f"Busy; ignoring cmd={command.value}")
                return EXIT_SUCCESS
            return run_command(config, command, guard)
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)


def run_command(config: Config, command: Command, guard: InvocationGuard) -> int:
    """
    Apply one command while holding the guard

    Runtime failures are logged and swallowed: a hotkey press must never
    leave the next one unusable.
    """
    controller = RecordingController(config, guard)
    try:
        outcome = controller.dispatch(command)
    except OSError as e:
        logger.exception(f"cmd={command.value} failed: {e}")
        return EXIT_SUCCESS
    logger.debug(f"cmd={command.value} outcome={outcome.value}")
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
