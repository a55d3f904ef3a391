"""
Folder mirroring module.

Provides functionality for:
- Single-level directory listing
- Source/replica comparison by size and content hash
- Applying copy/update/delete actions
- Recursive one-way synchronization
"""

from mirrorsync.core.folder.scanner import (
    FolderScanner,
    ScanOptions,
)
from mirrorsync.core.folder.comparer import (
    FolderComparer,
    CompareOptions as FolderCompareOptions,
)
from mirrorsync.core.folder.executor import (
    ActionExecutor,
)
from mirrorsync.core.folder.sync import (
    FolderSync,
    SyncOptions,
)

__all__ = [
    # Scanner
    'FolderScanner',
    'ScanOptions',
    # Comparer
    'FolderComparer',
    'FolderCompareOptions',
    # Executor
    'ActionExecutor',
    # Sync
    'FolderSync',
    'SyncOptions',
]
