"""
Folder comparison engine.

Compares one source directory with its replica and classifies:
- Files only in source (copy)
- Files only in replica (delete), along with replica-only symlinks and
  special files
- Files in both (update or skip, by size then content hash)
- Subdirectories to visit and subdirectories to remove
- Type conflicts (file on one side, directory on the other)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from mirrorsync.core.models import (
    DirectoryDiff,
    DirectoryListing,
    ErrorKind,
    FileAction,
    SyncAction,
    SyncError,
)
from mirrorsync.core.folder.scanner import FolderScanner
from mirrorsync.services.hashing import DEFAULT_CHUNK_SIZE, HashAlgorithm, HashingService


@dataclass
class CompareOptions:
    """Options for folder comparison."""
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256
    chunk_size: int = DEFAULT_CHUNK_SIZE


def _join_or(names: list[str], empty: str) -> str:
    return ", ".join(names) if names else empty


class FolderComparer:
    """
    Computes the actions that bring one replica directory in line with
    its source directory.

    Only immediate children are compared; recursion is the engine's job.
    """

    def __init__(
        self,
        options: Optional[CompareOptions] = None,
        scanner: Optional[FolderScanner] = None,
        hashing: Optional[HashingService] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.options = options or CompareOptions()
        self.logger = logger or logging.getLogger(__name__)
        self.scanner = scanner or FolderScanner(logger=self.logger)
        self.hashing = hashing or HashingService(
            default_algorithm=self.options.hash_algorithm,
            chunk_size=self.options.chunk_size,
        )

    def diff(
        self,
        source_dir: Path | str,
        replica_dir: Path | str,
        replica_exists: bool = True
    ) -> DirectoryDiff:
        """
        Compare two directories one level deep.

        Args:
            source_dir: Source directory
            replica_dir: Replica directory
            replica_exists: False when the replica has not been created
                (dry run); it is then treated as empty

        Returns:
            DirectoryDiff with the planned actions

        Raises:
            OSError: if either directory cannot be listed
        """
        source_dir = Path(source_dir)
        replica_dir = Path(replica_dir)
        result = DirectoryDiff(source_dir=source_dir, replica_dir=replica_dir)

        self.logger.info(f"Scanning source folder '{source_dir}'")
        source = self.scanner.list_directory(source_dir)
        self.logger.debug(
            f"Files in source folder: {_join_or(source.file_names, 'no files in source folder')}"
        )

        self.logger.info(f"Scanning replica folder '{replica_dir}'")
        if replica_exists:
            replica = self.scanner.list_directory(replica_dir)
        else:
            replica = FolderScanner.empty_listing(replica_dir)
        self.logger.debug(
            f"Files in replica folder: {_join_or(replica.file_names, 'no files in replica folder')}"
        )

        for entry in source.others:
            self.logger.warning(
                f"Unsupported entry '{entry.name}' in '{source_dir}' will be ignored "
                f"(not a regular file or directory)"
            )

        conflicts = self._find_type_conflicts(source, replica)
        for name in conflicts:
            self.logger.error(
                f"Type conflict: '{name}' is not the same kind of entry in "
                f"'{source_dir}' and '{replica_dir}'"
            )
            self.logger.warning(f"Entry '{name}' will be skipped (type conflict)")
            result.type_conflicts.append(name)
            result.errors.append(SyncError(
                path=str(replica_dir / name),
                kind=ErrorKind.TYPE_CONFLICT,
                message="file on one side, folder on the other",
            ))

        self._diff_files(source, replica, conflicts, result)
        self._diff_subdirs(source, replica, conflicts, result)

        return result

    def _find_type_conflicts(
        self,
        source: DirectoryListing,
        replica: DirectoryListing
    ) -> list[str]:
        """Names present on both sides with a different entry kind."""
        source_kinds = {e.name: e.kind for e in source.files + source.directories + source.others}
        replica_kinds = {e.name: e.kind for e in replica.files + replica.directories + replica.others}

        return [
            name for name, kind in source_kinds.items()
            if name in replica_kinds and replica_kinds[name] != kind
        ]

    def _diff_files(
        self,
        source: DirectoryListing,
        replica: DirectoryListing,
        conflicts: list[str],
        result: DirectoryDiff
    ) -> None:
        source_files = [n for n in source.file_names if n not in conflicts]
        replica_files = [n for n in replica.file_names if n not in conflicts]
        replica_set = set(replica_files)
        source_set = set(source_files)

        for name in source_files:
            if name not in replica_set:
                result.files_to_copy_or_update.append(
                    FileAction(name=name, action=SyncAction.COPY, reason="New file in source")
                )

        for name in source_files:
            if name in replica_set:
                action = self._compare_common_file(name, source.path, replica.path, result)
                if action is None:
                    continue
                if action.action == SyncAction.SKIP:
                    result.skipped_files.append(action)
                else:
                    result.files_to_copy_or_update.append(action)

        for name in replica_files:
            if name not in source_set:
                result.files_to_delete.append(
                    FileAction(name=name, action=SyncAction.DELETE, reason="Not in source")
                )

        source_names = {e.name for e in source.files + source.directories + source.others}
        for entry in replica.others:
            if entry.name not in source_names:
                result.files_to_delete.append(FileAction(
                    name=entry.name,
                    action=SyncAction.DELETE,
                    reason="Unsupported entry not in source",
                ))

        planned = [a.name for a in result.files_to_copy_or_update + result.files_to_delete]
        self.logger.debug(f"Files to synchronize: {_join_or(planned, 'no files to synchronize')}")
        self.logger.info(
            f"Files to update: {result.update_count}, to copy: {result.copy_count}, "
            f"to delete: {result.delete_count}"
        )

    def _compare_common_file(
        self,
        name: str,
        source_dir: Path,
        replica_dir: Path,
        result: DirectoryDiff
    ) -> Optional[FileAction]:
        """
        Classify a file present on both sides.

        Returns None when the comparison itself failed; the error is
        recorded on ``result`` and the file is left alone this pass.
        """
        source_path = source_dir / name
        replica_path = replica_dir / name

        try:
            source_size = source_path.stat().st_size
            replica_size = replica_path.stat().st_size

            if source_size != replica_size:
                self.logger.debug(
                    f"File '{name}' differs by size: source={source_size} bytes, "
                    f"replica={replica_size} bytes"
                )
                return FileAction(
                    name=name,
                    action=SyncAction.UPDATE,
                    reason="Size differs",
                    source_size=source_size,
                    replica_size=replica_size,
                )

            if not self.hashing.files_identical(source_path, replica_path):
                self.logger.debug(f"File '{name}' differs by hash codes")
                return FileAction(
                    name=name,
                    action=SyncAction.UPDATE,
                    reason="Content differs",
                    source_size=source_size,
                    replica_size=replica_size,
                )

            self.logger.debug(f"Skipped: '{name}' (no changes)")
            return FileAction(
                name=name,
                action=SyncAction.SKIP,
                reason="Identical",
                source_size=source_size,
                replica_size=replica_size,
            )

        except OSError as e:
            self.logger.error(f"Failed to compare file '{source_path}': {e}")
            self.logger.warning(f"File '{name}' will be skipped (error)")
            result.errors.append(SyncError.from_exception(replica_path, e))
            return None

    def _diff_subdirs(
        self,
        source: DirectoryListing,
        replica: DirectoryListing,
        conflicts: list[str],
        result: DirectoryDiff
    ) -> None:
        source_dirs = [n for n in source.directory_names if n not in conflicts]
        replica_dirs = [n for n in replica.directory_names if n not in conflicts]
        source_set = set(source_dirs)

        self.logger.debug(
            f"Subfolders in source folder: {_join_or(source_dirs, 'no subfolders in source folder')}"
        )
        self.logger.debug(
            f"Subfolders in replica folder: {_join_or(replica_dirs, 'no subfolders in replica folder')}"
        )

        result.source_subdirs = source_dirs
        result.replica_only_subdirs = [n for n in replica_dirs if n not in source_set]

        self.logger.info(
            f"Subfolders to update: {len(result.source_subdirs)}, "
            f"to delete: {len(result.replica_only_subdirs)}"
        )
