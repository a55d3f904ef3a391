"""
Background workers for periodic synchronization.

Provides QThread-based workers for:
- Running one synchronization pass off the event-loop thread
- Re-running passes on a fixed interval

All workers use Qt signals for thread-safe communication
with the scheduling thread.
"""

from mirrorsync.workers.base_worker import (
    BaseWorker,
    WorkerSignals,
    WorkerState,
    WorkerThread,
)
from mirrorsync.workers.sync_worker import (
    SyncPassWorker,
    SyncScheduler,
)

__all__ = [
    # Base
    'BaseWorker',
    'WorkerSignals',
    'WorkerState',
    'WorkerThread',
    # Sync
    'SyncPassWorker',
    'SyncScheduler',
]
