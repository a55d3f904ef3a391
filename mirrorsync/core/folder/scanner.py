"""
Directory scanner for folder mirroring.

Lists the immediate children of one directory, split into files and
subdirectories. The engine descends one level at a time, so the scanner
never walks recursively.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from mirrorsync.core.models import (
    DirectoryEntry,
    DirectoryListing,
    EntryKind,
)


@dataclass
class ScanOptions:
    """Options for directory listing."""
    follow_symlinks: bool = False
    sort_entries: bool = True  # Stable order for reproducible logs


class FolderScanner:
    """
    Lists directories.

    Listing errors (missing directory, permission denied) propagate as
    ``OSError``; an entry whose type cannot be determined is reported as
    ``EntryKind.OTHER``.
    """

    def __init__(
        self,
        options: Optional[ScanOptions] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.options = options or ScanOptions()
        self.logger = logger or logging.getLogger(__name__)

    def list_directory(self, path: Path | str) -> DirectoryListing:
        """List the immediate files and subdirectories of ``path``."""
        path = Path(path)
        listing = DirectoryListing(path=path)

        with os.scandir(path) as it:
            entries = list(it)

        if self.options.sort_entries:
            entries.sort(key=lambda e: e.name)

        for entry in entries:
            kind = self._entry_kind(entry)
            item = DirectoryEntry(name=entry.name, kind=kind)
            if kind == EntryKind.FILE:
                listing.files.append(item)
            elif kind == EntryKind.DIRECTORY:
                listing.directories.append(item)
            else:
                listing.others.append(item)
                self.logger.debug(f"Entry '{entry.name}' in '{path}' is not a regular file or directory")

        return listing

    @staticmethod
    def empty_listing(path: Path | str) -> DirectoryListing:
        """Listing for a directory that does not exist yet."""
        return DirectoryListing(path=Path(path))

    def _entry_kind(self, entry: os.DirEntry) -> EntryKind:
        follow = self.options.follow_symlinks
        try:
            if entry.is_symlink() and not follow:
                return EntryKind.OTHER
            if entry.is_dir(follow_symlinks=follow):
                return EntryKind.DIRECTORY
            if entry.is_file(follow_symlinks=follow):
                return EntryKind.FILE
        except OSError as e:
            self.logger.debug(f"FolderScanner - Failed to stat {entry.path}: {e}")
        return EntryKind.OTHER
