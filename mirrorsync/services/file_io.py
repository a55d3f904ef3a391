"""
File I/O service for replica mutation.

Handles:
- Chunked file copying
- Timestamp, mode and attribute replication
- File and subtree removal, including read-only entries
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from mirrorsync.services.hashing import DEFAULT_CHUNK_SIZE


# Windows attribute bits carried over to the replica
FILE_ATTRIBUTE_READONLY = 0x1
FILE_ATTRIBUTE_HIDDEN = 0x2
FILE_ATTRIBUTE_SYSTEM = 0x4
FILE_ATTRIBUTE_ARCHIVE = 0x20
COPIED_ATTRIBUTES = (
    FILE_ATTRIBUTE_READONLY | FILE_ATTRIBUTE_HIDDEN
    | FILE_ATTRIBUTE_SYSTEM | FILE_ATTRIBUTE_ARCHIVE
)

# Seconds between 1601-01-01 and 1970-01-01, in FILETIME units
_EPOCH_AS_FILETIME = 116444736000000000
_HUNDREDS_OF_NANOSECONDS = 10_000_000


@dataclass
class CopyResult:
    """Result of a file copy."""
    source: Path
    destination: Path
    bytes_copied: int


class FileIOService:
    """
    Service for copying and removing replica entries.

    All methods raise ``OSError`` on failure; callers decide whether
    a failure aborts anything.
    """

    def __init__(
        self,
        buffer_size: int = DEFAULT_CHUNK_SIZE,
        preserve_timestamps: bool = True,
        preserve_permissions: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        self.buffer_size = buffer_size
        self.preserve_timestamps = preserve_timestamps
        self.preserve_permissions = preserve_permissions
        self.logger = logger or logging.getLogger(__name__)

    def copy_file(self, source: Path | str, dest: Path | str) -> CopyResult:
        """
        Copy a file over (or into) the destination, then replicate metadata.

        The bytes go to a temporary file beside the destination, which
        replaces it only once complete; a failed copy leaves the old
        replica file as it was.

        Returns a CopyResult with the number of bytes written.
        """
        source = Path(source)
        dest = Path(dest)

        if dest.exists():
            self._make_writable(dest)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".part", dir=dest.parent)
        tmp_path = Path(tmp_name)
        bytes_copied = 0
        try:
            with os.fdopen(fd, 'wb') as dst, open(source, 'rb') as src:
                while chunk := src.read(self.buffer_size):
                    dst.write(chunk)
                    bytes_copied += len(chunk)

            self.copy_metadata(source, tmp_path)
            os.replace(tmp_path, dest)
        except Exception:
            self._discard(tmp_path)
            raise

        return CopyResult(source=source, destination=dest, bytes_copied=bytes_copied)

    def copy_metadata(self, source: Path | str, dest: Path | str) -> None:
        """
        Replicate timestamps and mode/attribute bits.

        Access and modification times are copied everywhere; creation
        time and attribute bits only where the platform supports setting
        them (Windows).
        """
        source = Path(source)
        dest = Path(dest)
        source_stat = source.stat()

        if self.preserve_timestamps:
            if os.name == 'nt':
                self._set_creation_time(dest, source_stat.st_ctime)
            os.utime(dest, ns=(source_stat.st_atime_ns, source_stat.st_mtime_ns))

        if self.preserve_permissions:
            if os.name == 'nt':
                self._copy_windows_attributes(source, dest)
            else:
                shutil.copymode(source, dest)

    def create_directory(self, source_dir: Path | str, dest_dir: Path | str) -> None:
        """Create a replica directory carrying the source directory's timestamps."""
        source_dir = Path(source_dir)
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)

        if self.preserve_timestamps:
            source_stat = source_dir.stat()
            if os.name == 'nt':
                self._set_creation_time(dest_dir, source_stat.st_ctime)
            os.utime(dest_dir, ns=(source_stat.st_atime_ns, source_stat.st_mtime_ns))

    def delete_file(self, path: Path | str) -> None:
        """Delete a single file, clearing a read-only flag if needed."""
        path = Path(path)
        try:
            path.unlink()
        except PermissionError:
            if os.name != 'nt':
                raise
            self._make_writable(path)
            path.unlink()

    def delete_tree(self, path: Path | str) -> None:
        """Delete a directory and everything below it."""
        if sys.version_info >= (3, 12):
            shutil.rmtree(path, onexc=_retry_writable)
        else:
            shutil.rmtree(path, onerror=_retry_writable)

    def _discard(self, path: Path) -> None:
        """Remove a leftover temporary file."""
        try:
            if path.exists():
                self._make_writable(path)
                path.unlink()
        except OSError as e:
            self.logger.warning(f"Could not remove temporary file '{path}': {e}")

    def _make_writable(self, path: Path) -> None:
        """Add the owner write bit so the entry can be replaced."""
        mode = path.stat().st_mode
        if not mode & stat.S_IWRITE:
            os.chmod(path, mode | stat.S_IWRITE)

    def _set_creation_time(self, path: Path, timestamp: float) -> None:
        """Set the creation time of a file or directory (Windows only)."""
        import ctypes
        from ctypes import wintypes

        kernel32 = ctypes.windll.kernel32
        kernel32.CreateFileW.restype = wintypes.HANDLE

        FILE_WRITE_ATTRIBUTES = 0x100
        SHARE_ALL = 0x7
        OPEN_EXISTING = 3
        FILE_FLAG_BACKUP_SEMANTICS = 0x02000000  # Required to open directories

        handle = kernel32.CreateFileW(
            str(path), FILE_WRITE_ATTRIBUTES, SHARE_ALL, None,
            OPEN_EXISTING, FILE_FLAG_BACKUP_SEMANTICS, None
        )
        if handle in (None, wintypes.HANDLE(-1).value):
            raise ctypes.WinError()

        try:
            value = int(timestamp * _HUNDREDS_OF_NANOSECONDS) + _EPOCH_AS_FILETIME
            creation = wintypes.FILETIME(value & 0xFFFFFFFF, value >> 32)
            if not kernel32.SetFileTime(handle, ctypes.byref(creation), None, None):
                raise ctypes.WinError()
        finally:
            kernel32.CloseHandle(handle)

    def _copy_windows_attributes(self, source: Path, dest: Path) -> None:
        """Copy hidden/read-only/system/archive bits (Windows only)."""
        import ctypes

        kernel32 = ctypes.windll.kernel32
        source_attrs = kernel32.GetFileAttributesW(str(source))
        dest_attrs = kernel32.GetFileAttributesW(str(dest))
        if source_attrs == -1 or dest_attrs == -1:
            raise ctypes.WinError()

        merged = (dest_attrs & ~COPIED_ATTRIBUTES) | (source_attrs & COPIED_ATTRIBUTES)
        if merged != dest_attrs and not kernel32.SetFileAttributesW(str(dest), merged):
            raise ctypes.WinError()


# Removal calls that a cleared read-only bit can unblock
_RETRYABLE_REMOVALS = (os.unlink, os.remove, os.rmdir)


def _retry_writable(func, path, exc) -> None:
    """
    rmtree error hook: clear the read-only bit and retry a removal once.

    ``exc`` is the exception (``onexc``) or an exc_info tuple
    (``onerror``). Failures of any other call, such as opening or
    scanning a nested directory, are re-raised unchanged.
    """
    error = exc[1] if isinstance(exc, tuple) else exc
    if func not in _RETRYABLE_REMOVALS or not isinstance(error, PermissionError):
        raise error

    os.chmod(path, stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC)
    func(path)
