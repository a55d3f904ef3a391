"""
Folder synchronization engine.

Provides one-way mirroring of a source tree onto a replica tree:
- Replica directories created on demand
- Copy/update/delete of files, decided by size then content hash
- Removal of replica-only subtrees
- Depth-first recursion driven by the source tree
- Dry-run mode that reports without touching the replica
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from mirrorsync.core.models import (
    ErrorKind,
    OutcomeStatus,
    SyncError,
    SyncResult,
)
from mirrorsync.core.folder.comparer import CompareOptions, FolderComparer
from mirrorsync.core.folder.executor import DRY_RUN_PREFIX, ActionExecutor
from mirrorsync.core.folder.scanner import FolderScanner, ScanOptions
from mirrorsync.services.file_io import FileIOService
from mirrorsync.services.hashing import DEFAULT_CHUNK_SIZE, HashAlgorithm, HashingService


@dataclass
class SyncOptions:
    """Options for synchronization."""
    dry_run: bool = False

    # Change detection
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256

    # Performance
    buffer_size: int = DEFAULT_CHUNK_SIZE

    # Metadata
    preserve_timestamps: bool = True
    preserve_permissions: bool = True


class FolderSync:
    """
    Mirrors a source folder onto a replica folder.

    Every directory pair goes through the same sequence: ensure the
    replica exists, diff files, apply file actions, delete replica-only
    subfolders, then recurse into each source subfolder. A failure while
    handling one directory ends that branch only.

    Usage:
        engine = FolderSync(SyncOptions(dry_run=True), logger)
        result = engine.synchronize(source, replica)
        logger.info(result.summary())
    """

    def __init__(
        self,
        options: Optional[SyncOptions] = None,
        logger: Optional[logging.Logger] = None,
        comparer: Optional[FolderComparer] = None,
        executor: Optional[ActionExecutor] = None
    ):
        self.options = options or SyncOptions()
        self.logger = logger or logging.getLogger(__name__)

        self.file_io = FileIOService(
            buffer_size=self.options.buffer_size,
            preserve_timestamps=self.options.preserve_timestamps,
            preserve_permissions=self.options.preserve_permissions,
            logger=self.logger,
        )
        self.comparer = comparer or FolderComparer(
            options=CompareOptions(
                hash_algorithm=self.options.hash_algorithm,
                chunk_size=self.options.buffer_size,
            ),
            scanner=FolderScanner(ScanOptions(), logger=self.logger),
            hashing=HashingService(self.options.hash_algorithm, self.options.buffer_size),
            logger=self.logger,
        )
        self.executor = executor or ActionExecutor(
            file_io=self.file_io,
            dry_run=self.options.dry_run,
            logger=self.logger,
        )

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run

    def synchronize(self, source_path: Path | str, replica_path: Path | str) -> SyncResult:
        """
        Run one full pass.

        Args:
            source_path: Validated, existing source directory
            replica_path: Replica directory (created if missing)

        Returns:
            SyncResult with the counts for this pass
        """
        start_time = time.time()
        source_path = Path(source_path)
        replica_path = Path(replica_path)

        result = SyncResult(
            source_path=str(source_path),
            replica_path=str(replica_path),
            dry_run=self.dry_run,
        )

        self._synchronize_directory(source_path, replica_path, result)

        result.duration = time.time() - start_time
        return result

    def _synchronize_directory(
        self,
        source_dir: Path,
        replica_dir: Path,
        result: SyncResult
    ) -> None:
        """Synchronize one directory pair, then its subdirectories."""
        self.logger.info(f"Synchronizing folder: '{source_dir}'")
        self.logger.info(f"To folder: '{replica_dir}'")
        result.directories_visited.append(str(source_dir))

        try:
            replica_exists = self._ensure_replica_exists(source_dir, replica_dir, result)

            diff = self.comparer.diff(source_dir, replica_dir, replica_exists=replica_exists)
            for error in diff.errors:
                result.errors.append(error)
                if error.kind != ErrorKind.TYPE_CONFLICT:
                    result.files_failed += 1
            result.files_skipped += len(diff.skipped_files)

            for outcome in self.executor.execute(diff.files_to_copy_or_update, source_dir, replica_dir):
                result.record_outcome(outcome)
            for outcome in self.executor.execute(diff.files_to_delete, source_dir, replica_dir):
                result.record_outcome(outcome)

            for outcome in self.executor.delete_subdirectories(diff.replica_only_subdirs, replica_dir):
                if outcome.status == OutcomeStatus.FAILED:
                    if outcome.error:
                        result.errors.append(outcome.error)
                else:
                    result.folders_deleted += 1

            for name in diff.source_subdirs:
                if self.dry_run:
                    self.logger.debug(f"{DRY_RUN_PREFIX} Would synchronize subfolder: '{replica_dir / name}'")
                self._synchronize_directory(source_dir / name, replica_dir / name, result)

        except OSError as e:
            self.logger.error(f"Failed to synchronize folder '{source_dir}': {e}")
            result.errors.append(SyncError.from_exception(source_dir, e))

    def _ensure_replica_exists(
        self,
        source_dir: Path,
        replica_dir: Path,
        result: SyncResult
    ) -> bool:
        """
        Create the replica directory if it is missing.

        Returns whether the replica exists on disk afterwards, which is
        False only in dry-run mode for a folder that would be created.
        """
        if replica_dir.exists():
            return True

        if self.dry_run:
            self.logger.info(f"{DRY_RUN_PREFIX} Would create folder: '{replica_dir}'")
            result.folders_created += 1
            return False

        self.file_io.create_directory(source_dir, replica_dir)
        self.logger.info(f"Replica folder '{replica_dir}' created successfully")
        result.folders_created += 1
        return True
