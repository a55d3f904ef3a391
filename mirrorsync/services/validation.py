"""
Startup validation of user-supplied paths and interval.

The engine trusts its inputs; everything it relies on is checked here
once, before the first pass.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


class ConfigurationError(ValueError):
    """Raised when the startup configuration cannot be used."""
    pass


@dataclass(frozen=True)
class ValidatedConfig:
    """Absolute, checked inputs for the scheduler."""
    source_path: Path
    replica_path: Path
    log_file: Path
    interval_seconds: int


def _key(path: Path) -> str:
    """Comparison key: case-insensitive where the platform is."""
    return os.path.normcase(str(path))


def is_same_or_inside(path: Path, parent: Path) -> bool:
    """True if ``path`` equals ``parent`` or lies below it."""
    path_key = _key(path)
    parent_key = _key(parent)
    return path_key == parent_key or path_key.startswith(parent_key.rstrip(os.sep) + os.sep)


def ensure_log_file_writable(log_file: Path) -> None:
    """Create the log file's directory and check it can be appended to."""
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        with open(log_file, 'a', encoding='utf-8'):
            pass
    except OSError as e:
        raise ConfigurationError(
            f"Unable to create or write to the log file '{log_file}': {e}"
        ) from e


def validate_log_file(source: Path | str, replica: Path | str, log_file: Path | str) -> Path:
    """
    Check the log file location.

    Returns the absolute log file path.
    """
    source_path = Path(source).resolve()
    replica_path = Path(replica).resolve()
    log_path = Path(log_file).resolve()

    if is_same_or_inside(log_path, source_path) or is_same_or_inside(log_path, replica_path):
        raise ConfigurationError(
            "Log file must not be located inside the source or the replica folder\n"
            f"- Source folder  : {source}\n"
            f"- Replica folder : {replica}\n"
            f"- Log file path  : {log_file}"
        )

    ensure_log_file_writable(log_path)
    return log_path


def validate_configuration(
    source: Path | str,
    replica: Path | str,
    log_file: Path | str,
    interval_seconds: int
) -> ValidatedConfig:
    """
    Validate everything the scheduler and engine assume.

    Raises:
        ConfigurationError: describing the first problem found
    """
    log_path = validate_log_file(source, replica, log_file)

    source_path = Path(source).resolve()
    replica_path = Path(replica).resolve()

    if not source_path.is_dir():
        raise ConfigurationError(f"Source folder '{source}' does not exist")

    if _key(source_path) == _key(replica_path):
        raise ConfigurationError("Source and replica folders must be different")

    if is_same_or_inside(replica_path, source_path):
        raise ConfigurationError("Replica folder must not be a subfolder of the source folder")

    if is_same_or_inside(source_path, replica_path):
        raise ConfigurationError("Source folder must not be a subfolder of the replica folder")

    if replica_path.exists() and not replica_path.is_dir():
        raise ConfigurationError(f"Replica path '{replica}' exists and is not a folder")

    if interval_seconds <= 0:
        raise ConfigurationError(
            "Synchronization interval must be a positive integer (in seconds) greater than 0"
        )

    return ValidatedConfig(
        source_path=source_path,
        replica_path=replica_path,
        log_file=log_path,
        interval_seconds=interval_seconds,
    )
