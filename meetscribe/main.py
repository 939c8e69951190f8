"""Main application entry point for meetscribe."""

import sys
import argparse
import logging
import threading
from pathlib import Path
from typing import Optional

from rich.console import Console

from . import __version__
from .config import MeetscribeConfig
from .exceptions import MeetscribeError
from .services.factory import create_session
from .services.session_engine import TranscriptionSession
from .ui.console import SessionConsole

logger = logging.getLogger(__name__)

COMMANDS_HELP = "Commands: p=pause, r=resume, s=status, q=quit"


class Server:
    """Runs one transcription session from the command line."""

    def __init__(self, config: MeetscribeConfig, console: Optional[Console] = None):
        self.config = config
        self.console = console or Console()
        self.screen = SessionConsole(self.console)
        self.session: Optional[TranscriptionSession] = None
        self.should_exit = threading.Event()
        self._cleaned_up = False

    def init(self, outfile: Optional[str] = None, backend: Optional[str] = None,
             wav_file: Optional[str] = None) -> None:
        logger.info("Initializing session...")
        self.session = create_session(self.config, outfile=outfile, backend=backend, wav_file=wav_file)
        self.session.subscribe(self.screen.on_event)
        self.console.print(f"🔧 Transcribing with {self.session.gateway.service_name}", style="blue")
        self.console.print(f"📝 Transcript: {self.session.transcript_path}")

    def run(self, duration: Optional[float] = None, interactive: bool = True) -> None:
        self.session.start()
        try:
            if duration:
                self.should_exit.wait(duration)
            elif interactive:
                self.console.print(COMMANDS_HELP, style="dim")
                self._command_loop()
            else:
                source = self.session.source
                if hasattr(source, "wait_finished"):
                    while not self.should_exit.is_set() and not source.wait_finished(1.0):
                        pass
                    # Let the last frames come back from the gateway
                    self.session.wait_idle(self.config.get('transcription.stop_grace_seconds', 5.0))
                else:
                    self.should_exit.wait()
        finally:
            self.cleanup()

    def _command_loop(self) -> None:
        while not self.should_exit.is_set():
            line = sys.stdin.readline()
            if not line:
                break
            self.handle_command(line.strip().lower())

    def handle_command(self, command: str) -> None:
        """Apply one interactive command to the session."""
        try:
            if command == "p":
                self.session.pause()
            elif command == "r":
                self.session.resume()
            elif command == "s":
                self.screen.print_status(self.session.get_status())
            elif command == "q":
                self.should_exit.set()
            elif command:
                self.console.print(COMMANDS_HELP, style="dim")
        except MeetscribeError as e:
            self.console.print(f"❌ {e}", style="red")

    def cleanup(self) -> None:
        if not self.session or self._cleaned_up:
            return
        self._cleaned_up = True
        status = self.session.stop()
        self.session.unsubscribe(self.screen.on_event)
        self.screen.print_summary(status, self.session.transcript_path)


def setup_logging(config: MeetscribeConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/meetscribe.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("meetscribe starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def list_devices(console: Console) -> None:
    from .audio.capture import list_input_devices
    for device in list_input_devices():
        console.print(f"[{device['index']}] {device['name']} ({device['max_input_channels']} ch)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meetscribe",
        description="meetscribe - continuous meeting transcription to Markdown",
        epilog=COMMANDS_HELP,
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: meetscribe.yaml in the current directory)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config)"
    )

    parser.add_argument(
        "--duration",
        type=float,
        help="Stop automatically after this many seconds"
    )

    parser.add_argument(
        "--outfile",
        type=str,
        help="Transcript file path (default: timestamped file in the transcripts directory)"
    )

    parser.add_argument(
        "--backend",
        type=str,
        choices=["whisper", "google"],
        help="Transcription backend (overrides transcription.backend)"
    )

    parser.add_argument(
        "--wav-file",
        type=str,
        help="Transcribe a 16-bit WAV file instead of live audio"
    )

    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List audio input devices and exit"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"meetscribe v{__version__}"
    )
    return parser


def main(argv=None) -> None:
    """Main entry point for meetscribe."""
    args = build_parser().parse_args(argv)
    console = Console()

    if args.list_devices:
        list_devices(console)
        return

    try:
        config = MeetscribeConfig(args.config)
    except MeetscribeError as e:
        console.print(f"❌ {e}", style="red")
        sys.exit(1)

    setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))

    server = Server(config, console)
    try:
        server.init(outfile=args.outfile, backend=args.backend, wav_file=args.wav_file)
        server.run(args.duration, interactive=args.wav_file is None)
    except KeyboardInterrupt:
        server.cleanup()
        console.print("\n👋 Goodbye!")
    except (MeetscribeError, OSError) as e:
        console.print(f"❌ Error: {e}", style="red")
        logger.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
