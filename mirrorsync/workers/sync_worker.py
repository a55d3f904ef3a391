"""
Workers for periodic folder synchronization.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from mirrorsync.workers.base_worker import BaseWorker, WorkerThread
from mirrorsync.core.folder.sync import FolderSync
from mirrorsync.core.models import SyncResult


class SyncPassWorker(BaseWorker):
    """
    Worker that runs exactly one synchronization pass.
    """

    def __init__(
        self,
        engine: FolderSync,
        source_path: str | Path,
        replica_path: str | Path,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self.engine = engine
        self.source_path = Path(source_path)
        self.replica_path = Path(replica_path)

    def do_work(self) -> SyncResult:
        """Run the pass."""
        self.report_status(f"Synchronizing '{self.source_path}' to '{self.replica_path}'")
        return self.engine.synchronize(self.source_path, self.replica_path)


class SyncScheduler(QObject):
    """
    Runs a synchronization pass, waits the interval, and repeats.

    The next pass is armed only after the previous one has finished,
    so at most one pass is ever in flight. Stopping takes effect between
    passes; a running pass is waited for.
    """

    pass_started = pyqtSignal()
    pass_finished = pyqtSignal(object)  # SyncResult
    pass_failed = pyqtSignal(str, str)  # (error_type, message)
    stopped = pyqtSignal()

    def __init__(
        self,
        engine: FolderSync,
        source_path: str | Path,
        replica_path: str | Path,
        interval_seconds: int,
        run_once: bool = False,
        threaded: bool = True,
        logger: Optional[logging.Logger] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self.engine = engine
        self.source_path = Path(source_path)
        self.replica_path = Path(replica_path)
        self.interval_seconds = interval_seconds
        self.run_once = run_once
        self.threaded = threaded
        self.logger = logger or logging.getLogger(__name__)

        self.passes_completed = 0
        self.last_result: Optional[SyncResult] = None
        self._stopping = False
        self._stopped = False
        self._running = False
        self._worker: Optional[SyncPassWorker] = None
        self._thread: Optional[WorkerThread] = None

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._run_pass)

    @property
    def is_running(self) -> bool:
        """True while a pass is in flight."""
        return self._running

    @property
    def is_waiting(self) -> bool:
        """True while waiting for the next pass."""
        return self._timer.isActive()

    def start(self) -> None:
        """Run the first pass now."""
        self._stopping = False
        self._stopped = False
        self._run_pass()

    def stop(self) -> None:
        """Stop scheduling; waits for a running pass to complete."""
        self._stopping = True
        self._timer.stop()

        if self._thread is not None and self._thread.isRunning():
            self.logger.info("Waiting for the current synchronization pass to finish...")
            self._thread.quit()
            self._thread.wait()

        self._finish()

    def _run_pass(self) -> None:
        if self._stopping or self._running:
            return

        if self._thread is not None:
            self._thread.quit()
            self._thread.wait()
            self._thread = None

        self._running = True
        self.logger.info("Synchronization is starting...")
        self.pass_started.emit()

        self._worker = SyncPassWorker(self.engine, self.source_path, self.replica_path)
        self._worker.signals.finished.connect(self._on_pass_finished)
        self._worker.signals.error.connect(self._on_pass_failed)

        if self.threaded:
            self._thread = WorkerThread(self._worker)
            self._thread.start()
        else:
            self._worker.run()

    def _on_pass_finished(self, result: SyncResult) -> None:
        self._running = False
        self.passes_completed += 1
        self.last_result = result

        self.logger.info(f"Synchronization completed. {result.summary()}")
        if result.has_errors:
            self.logger.warning(
                f"{len(result.errors)} item(s) were skipped and will be retried on the next pass"
            )

        self.pass_finished.emit(result)
        self._schedule_next()

    def _on_pass_failed(self, error_type: str, message: str) -> None:
        self._running = False
        self.logger.error(f"Synchronization pass failed: {error_type}: {message}")
        self.pass_failed.emit(error_type, message)
        self._schedule_next()

    def _schedule_next(self) -> None:
        if self.run_once or self._stopping:
            self._finish()
            return

        self.logger.debug(f"Next synchronization in {self.interval_seconds} second(s)")
        self._timer.start(self.interval_seconds * 1000)

    def _finish(self) -> None:
        self._timer.stop()
        self._stopping = True
        if not self._stopped:
            self._stopped = True
            self.stopped.emit()
