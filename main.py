"""
Main entry point for the folder mirroring service.

This module handles:
- Command line argument parsing
- Settings loading
- Logging configuration
- Startup validation
- Exception handling
- Signal handling and the periodic synchronization loop
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import signal
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import QCoreApplication, QTimer

from mirrorsync import __version__
from mirrorsync.core.folder.sync import FolderSync
from mirrorsync.services.settings import ApplicationSettings, LogLevel, SettingsManager
from mirrorsync.services.validation import (
    ConfigurationError,
    validate_configuration,
    validate_log_file,
)
from mirrorsync.workers.sync_worker import SyncScheduler


# =============================================================================
# Constants
# =============================================================================

APP_NAME = "mirrorsync"
APP_VERSION = __version__
LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    source_path: Optional[str] = None
    replica_path: Optional[str] = None
    log_file: Optional[str] = None
    interval_seconds: Optional[int] = None
    log_level: Optional[str] = None
    dry_run: bool = False
    run_once: bool = False
    config_file: Optional[str] = None


# =============================================================================
# Logging Setup
# =============================================================================

class LogFormatter(logging.Formatter):
    """Custom log formatter with colors for console."""

    COLORS = {
        logging.DEBUG: '\033[36m',     # Cyan
        logging.INFO: '\033[32m',      # Green
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.use_colors:
            color = self.COLORS.get(record.levelno, '')
            return f"{color}{formatted}{self.RESET}"

        return formatted


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure application logging.

    Args:
        level: Log level name or short alias (dbg, inf, wrn, err)
        log_file: Optional file path for logging, rotated daily

    Returns:
        Root logger instance
    """
    numeric_level = LogLevel.from_string(level).numeric

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers
    root_logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(LogFormatter(use_colors=True))
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_file,
            when='midnight',
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(LogFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    return root_logger


# =============================================================================
# Exception Handling
# =============================================================================

class ExceptionHandler:
    """
    Global exception handler for unhandled exceptions.

    Logs the exception; per-item filesystem errors never reach here.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def handle_exception(self, exc_type, exc_value, exc_traceback) -> None:
        """Handle an unhandled exception."""
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        details = ''.join(traceback.format_exception(exc_type, exc_value, exc_traceback))
        self.logger.critical(f"Unhandled exception:\n{details}")


# =============================================================================
# Command Line Parsing
# =============================================================================

def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="One-way periodic folder synchronization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s /data/src /backup/replica /var/log/sync.log 60
  %(prog)s src replica sync.log 30 --log-level dbg --dry-run
  %(prog)s -c settings.json --once
        """
    )

    parser.add_argument('source', nargs='?', help='Source folder')
    parser.add_argument('replica', nargs='?', help='Replica folder')
    parser.add_argument('log_file', nargs='?', help='Log file path')
    parser.add_argument(
        'interval',
        nargs='?',
        type=int,
        help='Synchronization interval in seconds'
    )

    parser.add_argument(
        '-l', '--log-level',
        choices=['dbg', 'inf', 'wrn', 'err', 'DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=None,
        help='Log level (default: inf)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Shortcut for --log-level dbg'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Report planned changes without modifying the replica'
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help='Run a single pass and exit'
    )
    parser.add_argument(
        '-c', '--config',
        help='Settings file (JSON)'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'{APP_NAME} {APP_VERSION}'
    )

    parsed = parser.parse_args(args)

    if parsed.config and not Path(parsed.config).is_file():
        parser.error(f"settings file not found: {parsed.config}")

    result = CommandLineArgs()
    result.source_path = parsed.source
    result.replica_path = parsed.replica
    result.log_file = parsed.log_file
    result.interval_seconds = parsed.interval
    result.dry_run = parsed.dry_run
    result.run_once = parsed.once
    result.config_file = parsed.config

    if parsed.verbose:
        result.log_level = 'dbg'
    else:
        result.log_level = parsed.log_level

    return result


def merge_settings(args: CommandLineArgs, settings: ApplicationSettings) -> ApplicationSettings:
    """Apply command line values on top of file settings."""
    if args.source_path:
        settings.source_path = args.source_path
    if args.replica_path:
        settings.replica_path = args.replica_path
    if args.log_file:
        settings.logging.log_file = args.log_file
    if args.interval_seconds is not None:
        settings.sync.interval_seconds = args.interval_seconds
    if args.log_level:
        settings.logging.level = LogLevel.from_string(args.log_level)
    if args.dry_run:
        settings.sync.dry_run = True

    missing = [
        name for name, value in (
            ('source folder', settings.source_path),
            ('replica folder', settings.replica_path),
            ('log file', settings.logging.log_file),
        ) if not value
    ]
    if missing:
        raise ConfigurationError(f"Missing required setting(s): {', '.join(missing)}")

    return settings


# =============================================================================
# Signal Handlers
# =============================================================================

def setup_signal_handlers(scheduler: SyncScheduler) -> QTimer:
    """
    Stop the scheduler on SIGINT/SIGTERM.

    Returns the timer that lets Python handle signals while the Qt
    event loop runs; the caller must keep a reference to it.
    """
    def _signal_handler(signum, frame) -> None:
        logging.info(f"Received signal {signum}, shutting down...")
        scheduler.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    if hasattr(signal, 'SIGTERM'):
        signal.signal(signal.SIGTERM, _signal_handler)

    timer = QTimer()
    timer.timeout.connect(lambda: None)
    timer.start(500)
    return timer


# =============================================================================
# Main Function
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Application main entry point.

    Returns:
        Exit code (0 for success)
    """
    args = parse_arguments(argv)

    config_path = Path(args.config_file) if args.config_file else None
    try:
        settings = merge_settings(args, SettingsManager(config_path).settings)
        validate_log_file(settings.source_path, settings.replica_path, settings.logging.log_file)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    log_file = Path(settings.logging.log_file).resolve()
    logger = setup_logging(settings.logging.level.name, log_file)
    sys.excepthook = ExceptionHandler(logger).handle_exception

    logger.info(f"Starting {APP_NAME} v{APP_VERSION}")
    logger.info(
        "Loaded configuration:\n"
        f"  - Source folder  : {settings.source_path}\n"
        f"  - Replica folder : {settings.replica_path}\n"
        f"  - Sync interval  : {settings.sync.interval_seconds}\n"
        f"  - Log file path  : {log_file}\n"
        f"  - Log level      : {settings.logging.level.name}\n"
        f"  - Dry run mode   : {settings.sync.dry_run}"
    )

    try:
        config = validate_configuration(
            settings.source_path,
            settings.replica_path,
            log_file,
            settings.sync.interval_seconds,
        )
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    logger.info("Configuration validation completed successfully")

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)

    engine = FolderSync(settings.sync.to_options(), logger=logging.getLogger(APP_NAME))
    scheduler = SyncScheduler(
        engine,
        config.source_path,
        config.replica_path,
        config.interval_seconds,
        run_once=args.run_once,
        logger=logging.getLogger(APP_NAME),
    )
    scheduler.stopped.connect(app.quit)

    signal_timer = setup_signal_handlers(scheduler)
    QTimer.singleShot(0, scheduler.start)

    exit_code = app.exec()
    scheduler.stop()
    signal_timer.stop()

    logger.info("Application shutdown complete")
    return exit_code


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == '__main__':
    run()
