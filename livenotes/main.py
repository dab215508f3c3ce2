"""Main application entry point for LiveNotes."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from . import __version__
from .config import LiveNotesConfig
from .models.session import SessionSnapshot, SessionStatus
from .services.notes_service import NotesService
from .services.session_controller import status_message

logger = logging.getLogger(__name__)

FILE_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
CONSOLE_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        self.config = LiveNotesConfig(config_path)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)
        self.console = Console()
        self.notes_service: Optional[NotesService] = None
        self._last_status: Optional[SessionStatus] = None

    def init(self) -> None:
        """Create the services; must run on the session's event loop."""
        logger.info("Initializing services...")
        self.notes_service = NotesService(self.config)
        self.notes_service.publisher.subscribe(self._on_snapshot)

    def _on_snapshot(self, snapshot: SessionSnapshot) -> None:
        if snapshot.status != self._last_status:
            self._last_status = snapshot.status
            style = "red" if snapshot.status is SessionStatus.ERROR else "cyan"
            self.console.print(f"[{style}]{status_message(snapshot)}[/{style}]")

    async def run(self, duration: float, export_path: Optional[str] = None) -> SessionSnapshot:
        """Record one session for ``duration`` seconds and wait for the final notes."""
        self.init()
        try:
            snapshot = self.notes_service.toggle_session()
            if snapshot.status is not SessionStatus.ERROR:
                await asyncio.sleep(duration)
                self.notes_service.toggle_session()
            snapshot = await self.notes_service.wait_until_settled(
                timeout=self.config.get('session.finalization_timeout_seconds', 300))
        finally:
            self.cleanup()

        self.print_results(snapshot)
        if export_path and self.notes_service.has_exportable_notes():
            path = self.notes_service.export_notes(export_path)
            self.console.print(f"Notes exported to {path}")
        return snapshot

    def print_results(self, snapshot: SessionSnapshot) -> None:
        self.console.print(Panel(snapshot.transcript or "(no speech transcribed)", title="Transcript"))
        self.console.print(Panel(snapshot.notes or "(no notes)", title="Notes"))
        if snapshot.last_error:
            self.console.print(f"[red]Error: {snapshot.last_error}[/red]")

    def cleanup(self) -> None:
        if self.notes_service:
            self.notes_service.publisher.unsubscribe(self._on_snapshot)
            self.notes_service.cleanup()


def _configured_handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def setup_logging(config: LiveNotesConfig, level: str = "INFO") -> None:
    """Log everything to the configured file; warnings also go to stdout unless disabled."""
    log_file = Path(config.get('logging.file_path', 'logs/livenotes.log'))
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers = [_configured_handler(logging.FileHandler(log_file), logging.DEBUG, FILE_LOG_FORMAT)]
    if config.get('logging.console_output', True):
        handlers.append(_configured_handler(logging.StreamHandler(sys.stdout), logging.WARNING, CONSOLE_LOG_FORMAT))

    logging.basicConfig(level=getattr(logging, level.upper()), handlers=handlers, force=True)

    logger.info(f"LiveNotes v{__version__} logging to {log_file} at {level}")


def main() -> None:
    """Main entry point for LiveNotes."""
    parser = argparse.ArgumentParser(
        description="LiveNotes - live transcription with continuously updated notes"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: livenotes.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--duration",
        type=float,
        default=60.0,
        help="Seconds to record before stopping (default: 60)"
    )

    parser.add_argument(
        "--export",
        type=str,
        help="Write the final notes to this file"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"LiveNotes v{__version__}"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        snapshot = asyncio.run(server.run(args.duration, args.export))
    except KeyboardInterrupt:
        print("\nGoodbye!")
        return
    except Exception as e:
        print(f"Error: {e}")
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)

    if snapshot.status is SessionStatus.ERROR:
        sys.exit(2)


if __name__ == "__main__":
    main()
