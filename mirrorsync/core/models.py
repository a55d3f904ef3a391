"""
Core data models for the folder mirroring engine.

This module defines the data structures shared across the engine:
- Directory listing models
- File action models
- Error models
- Pass result models

All models are:
- Filesystem-agnostic (plain names and paths, no open handles)
- Built fresh for each pass and discarded afterwards
- Type-hinted for IDE support
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Iterator, Optional


# =============================================================================
# Enumerations
# =============================================================================

class EntryKind(Enum):
    """Type of filesystem entry."""
    FILE = auto()
    DIRECTORY = auto()
    OTHER = auto()  # Symlinks, sockets, devices


class SyncAction(Enum):
    """Action to take for a single file name."""
    SKIP = auto()    # Identical on both sides
    COPY = auto()    # Exists only in source
    UPDATE = auto()  # Exists on both sides but differs
    DELETE = auto()  # Exists only in replica


class OutcomeStatus(Enum):
    """Result of applying a single action."""
    DONE = auto()
    DRY_RUN = auto()
    FAILED = auto()


class ErrorKind(Enum):
    """Category of a per-item failure."""
    PATH_NOT_FOUND = auto()
    PERMISSION_DENIED = auto()
    IO_FAILURE = auto()
    TYPE_CONFLICT = auto()  # File on one side, directory on the other


# =============================================================================
# Listing Models
# =============================================================================

@dataclass(frozen=True)
class DirectoryEntry:
    """An immediate child of a directory."""
    name: str
    kind: EntryKind


@dataclass
class DirectoryListing:
    """Immediate entries of one directory, in listing order."""
    path: Path
    files: list[DirectoryEntry] = field(default_factory=list)
    directories: list[DirectoryEntry] = field(default_factory=list)
    others: list[DirectoryEntry] = field(default_factory=list)

    @property
    def file_names(self) -> list[str]:
        return [entry.name for entry in self.files]

    @property
    def directory_names(self) -> list[str]:
        return [entry.name for entry in self.directories]


# =============================================================================
# Action Models
# =============================================================================

@dataclass
class FileAction:
    """An action planned for one file name in one directory."""
    name: str
    action: SyncAction = SyncAction.SKIP
    reason: str = ""
    source_size: Optional[int] = None
    replica_size: Optional[int] = None

    @property
    def is_copy(self) -> bool:
        return self.action in (SyncAction.COPY, SyncAction.UPDATE)

    @property
    def is_delete(self) -> bool:
        return self.action == SyncAction.DELETE


@dataclass
class ActionOutcome:
    """What happened when an action was applied."""
    name: str
    action: SyncAction
    status: OutcomeStatus
    error: Optional['SyncError'] = None

    @property
    def succeeded(self) -> bool:
        return self.status != OutcomeStatus.FAILED


# =============================================================================
# Error Models
# =============================================================================

@dataclass
class SyncError:
    """Error information for a single skipped item."""
    path: str
    kind: ErrorKind
    message: str

    @classmethod
    def from_exception(cls, path: Path | str, error: BaseException) -> 'SyncError':
        """Classify an exception raised by a filesystem call."""
        if isinstance(error, FileNotFoundError):
            kind = ErrorKind.PATH_NOT_FOUND
        elif isinstance(error, PermissionError):
            kind = ErrorKind.PERMISSION_DENIED
        else:
            kind = ErrorKind.IO_FAILURE
        return cls(path=str(path), kind=kind, message=str(error))

    def __str__(self) -> str:
        return f"{self.kind.name}: {self.path} - {self.message}"


# =============================================================================
# Diff Models
# =============================================================================

@dataclass
class DirectoryDiff:
    """
    Differences between one source directory and its replica.

    Only immediate children are described; subdirectories get their
    own diff when the engine descends into them.
    """
    source_dir: Path
    replica_dir: Path
    files_to_copy_or_update: list[FileAction] = field(default_factory=list)
    files_to_delete: list[FileAction] = field(default_factory=list)
    skipped_files: list[FileAction] = field(default_factory=list)
    source_subdirs: list[str] = field(default_factory=list)
    replica_only_subdirs: list[str] = field(default_factory=list)
    type_conflicts: list[str] = field(default_factory=list)
    errors: list[SyncError] = field(default_factory=list)

    @property
    def copy_count(self) -> int:
        return sum(1 for item in self.files_to_copy_or_update if item.action == SyncAction.COPY)

    @property
    def update_count(self) -> int:
        return sum(1 for item in self.files_to_copy_or_update if item.action == SyncAction.UPDATE)

    @property
    def delete_count(self) -> int:
        return len(self.files_to_delete)

    def iter_actions(self) -> Iterator[FileAction]:
        """Iterate over every planned action, skips included."""
        yield from self.files_to_copy_or_update
        yield from self.files_to_delete
        yield from self.skipped_files


# =============================================================================
# Result Models
# =============================================================================

@dataclass
class SyncResult:
    """Result of one synchronization pass."""
    source_path: str = ""
    replica_path: str = ""
    dry_run: bool = False
    files_copied: int = 0
    files_updated: int = 0
    files_deleted: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    folders_created: int = 0
    folders_deleted: int = 0
    directories_visited: list[str] = field(default_factory=list)
    errors: list[SyncError] = field(default_factory=list)
    duration: float = 0.0

    @property
    def total_changes(self) -> int:
        return (self.files_copied + self.files_updated + self.files_deleted
                + self.folders_created + self.folders_deleted)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def record_outcome(self, outcome: ActionOutcome) -> None:
        """Count an executed (or dry-run) action."""
        if outcome.status == OutcomeStatus.FAILED:
            self.files_failed += 1
            if outcome.error:
                self.errors.append(outcome.error)
            return

        if outcome.action == SyncAction.COPY:
            self.files_copied += 1
        elif outcome.action == SyncAction.UPDATE:
            self.files_updated += 1
        elif outcome.action == SyncAction.DELETE:
            self.files_deleted += 1
        else:
            self.files_skipped += 1

    def summary(self) -> str:
        """Single-line summary of the pass."""
        prefix = "[DRY RUN] " if self.dry_run else ""
        return (
            f"{prefix}Files copied: {self.files_copied}, updated: {self.files_updated}, "
            f"deleted: {self.files_deleted}, skipped: {self.files_skipped}, "
            f"failed: {self.files_failed}; "
            f"subfolders created: {self.folders_created}, deleted: {self.folders_deleted}; "
            f"errors: {len(self.errors)} ({self.duration:.2f}s)"
        )
