"""
Application settings management.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from mirrorsync.core.folder.sync import SyncOptions
from mirrorsync.services.hashing import DEFAULT_CHUNK_SIZE, HashAlgorithm


class LogLevel(Enum):
    """Log level options, with the short aliases accepted on the command line."""
    DEBUG = "dbg"
    INFO = "inf"
    WARNING = "wrn"
    ERROR = "err"

    @classmethod
    def from_string(cls, value: str) -> 'LogLevel':
        """Create from alias or level name; unknown values mean INFO."""
        try:
            for level in cls:
                if level.value == value.lower():
                    return level
            return cls[value.upper()]
        except (KeyError, AttributeError):
            return cls.INFO

    @property
    def numeric(self) -> int:
        return getattr(logging, self.name)


@dataclass
class SyncSettings:
    """Settings for the synchronization pass and its schedule."""
    interval_seconds: int = 60
    dry_run: bool = False
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256
    chunk_size: int = DEFAULT_CHUNK_SIZE
    preserve_timestamps: bool = True
    preserve_permissions: bool = True

    def to_options(self) -> SyncOptions:
        """Build engine options from these settings."""
        return SyncOptions(
            dry_run=self.dry_run,
            hash_algorithm=self.hash_algorithm,
            buffer_size=self.chunk_size,
            preserve_timestamps=self.preserve_timestamps,
            preserve_permissions=self.preserve_permissions,
        )


@dataclass
class LoggingSettings:
    """Settings for log output."""
    level: LogLevel = LogLevel.INFO
    log_file: str = ""


@dataclass
class ApplicationSettings:
    """Main application settings container."""
    sync: SyncSettings = field(default_factory=SyncSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    source_path: str = ""
    replica_path: str = ""


class SettingsManager:
    """Manager for loading/saving application settings."""

    def __init__(
        self,
        settings_path: Optional[Path] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.settings_path = settings_path or self._get_default_path()
        self.logger = logger or logging.getLogger(__name__)
        self._settings: Optional[ApplicationSettings] = None

    @staticmethod
    def _get_default_path() -> Path:
        """Get the default settings file path."""
        if os.name == 'nt':
            # Windows
            app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
            return Path(app_data) / 'mirrorsync' / 'settings.json'
        else:
            # Linux/Mac
            config_home = os.environ.get('XDG_CONFIG_HOME',
                                         os.path.expanduser('~/.config'))
            return Path(config_home) / 'mirrorsync' / 'settings.json'

    @property
    def settings(self) -> ApplicationSettings:
        """Get current settings, loading from disk if needed."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> ApplicationSettings:
        """Load settings from disk; a missing or broken file yields defaults."""
        if not self.settings_path.exists():
            return ApplicationSettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value must be an object")
            return self._from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            self.logger.warning(
                f"SettingsManager - Could not load {self.settings_path}, using defaults: {e}"
            )
            return ApplicationSettings()

    def save(self, settings: Optional[ApplicationSettings] = None) -> bool:
        """Save settings to disk."""
        settings = settings or self._settings
        if settings is None:
            return False

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(self._to_dict(settings), f, indent=2)

            self._settings = settings
            return True

        except OSError as e:
            self.logger.error(f"SettingsManager - Could not save {self.settings_path}: {e}")
            return False

    def _to_dict(self, settings: ApplicationSettings) -> dict:
        """Convert settings to dictionary for JSON serialization."""
        def convert(obj: Any) -> Any:
            if isinstance(obj, Enum):
                return obj.name
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert(item) for item in obj]
            else:
                return obj

        return convert(asdict(settings))

    def _from_dict(self, data: dict) -> ApplicationSettings:
        """Convert dictionary back to settings objects."""
        sync_data = _section(data, 'sync')
        log_data = _section(data, 'logging')
        defaults = SyncSettings()

        sync = SyncSettings(
            interval_seconds=int(sync_data.get('interval_seconds', defaults.interval_seconds)),
            dry_run=bool(sync_data.get('dry_run', defaults.dry_run)),
            hash_algorithm=HashAlgorithm.from_string(
                sync_data.get('hash_algorithm', defaults.hash_algorithm.name)
            ),
            chunk_size=int(sync_data.get('chunk_size', defaults.chunk_size)),
            preserve_timestamps=bool(sync_data.get('preserve_timestamps', defaults.preserve_timestamps)),
            preserve_permissions=bool(sync_data.get('preserve_permissions', defaults.preserve_permissions)),
        )
        if sync.chunk_size <= 0:
            raise ValueError(f"sync.chunk_size must be positive, got {sync.chunk_size}")

        logging_settings = LoggingSettings(
            level=LogLevel.from_string(log_data.get('level', 'INFO')),
            log_file=_text(log_data, 'log_file'),
        )

        return ApplicationSettings(
            sync=sync,
            logging=logging_settings,
            source_path=_text(data, 'source_path'),
            replica_path=_text(data, 'replica_path'),
        )


def _section(data: dict, key: str) -> dict:
    """Return a nested settings object, which must be a JSON object if present."""
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be an object, got {type(value).__name__}")
    return value


def _text(data: dict, key: str) -> str:
    """Return a string setting, empty if absent."""
    value = data.get(key, '')
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string, got {type(value).__name__}")
    return value
