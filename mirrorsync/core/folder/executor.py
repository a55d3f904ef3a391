"""
Action executor.

Applies the copy/update/delete actions produced by the comparer to one
replica directory and prunes replica-only subdirectories. Each action is
isolated: a failure is logged and that single item is skipped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from mirrorsync.core.models import (
    ActionOutcome,
    FileAction,
    OutcomeStatus,
    SyncAction,
    SyncError,
)
from mirrorsync.services.file_io import FileIOService


DRY_RUN_PREFIX = "[DRY RUN]"


class ActionExecutor:
    """
    Applies file actions to the replica.

    With ``dry_run`` set nothing on disk is touched; every action is
    reported as what would have happened.
    """

    def __init__(
        self,
        file_io: Optional[FileIOService] = None,
        dry_run: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.file_io = file_io or FileIOService(logger=self.logger)
        self.dry_run = dry_run

    def execute(
        self,
        actions: Iterable[FileAction],
        source_dir: Path | str,
        replica_dir: Path | str
    ) -> list[ActionOutcome]:
        """
        Apply actions in order.

        SKIP actions are passed through untouched. Returns one outcome
        per action.
        """
        source_dir = Path(source_dir)
        replica_dir = Path(replica_dir)
        outcomes = []

        for item in actions:
            if item.action == SyncAction.SKIP:
                outcomes.append(ActionOutcome(item.name, item.action, OutcomeStatus.DONE))
            elif item.is_copy:
                outcomes.append(self._copy_or_update(item, source_dir, replica_dir))
            elif item.is_delete:
                outcomes.append(self._delete(item, replica_dir))

        return outcomes

    def delete_subdirectories(
        self,
        names: Iterable[str],
        replica_dir: Path | str
    ) -> list[ActionOutcome]:
        """Remove whole replica subtrees that have no source counterpart."""
        replica_dir = Path(replica_dir)
        outcomes = []

        for name in names:
            path = replica_dir / name
            try:
                if self.dry_run:
                    self.logger.info(f"{DRY_RUN_PREFIX} Would delete folder: '{path}'")
                    outcomes.append(ActionOutcome(name, SyncAction.DELETE, OutcomeStatus.DRY_RUN))
                else:
                    self.file_io.delete_tree(path)
                    self.logger.info(f"Deleted folder: '{path}'")
                    outcomes.append(ActionOutcome(name, SyncAction.DELETE, OutcomeStatus.DONE))
            except OSError as e:
                self.logger.error(f"Failed to delete folder '{path}': {e}")
                self.logger.warning(f"Folder '{path}' will be skipped (error)")
                outcomes.append(ActionOutcome(
                    name, SyncAction.DELETE, OutcomeStatus.FAILED,
                    error=SyncError.from_exception(path, e),
                ))

        return outcomes

    def _copy_or_update(
        self,
        item: FileAction,
        source_dir: Path,
        replica_dir: Path
    ) -> ActionOutcome:
        verb, past = ("copy", "Copied") if item.action == SyncAction.COPY else ("update", "Updated")
        replica_path = replica_dir / item.name

        try:
            if self.dry_run:
                self.logger.info(f"{DRY_RUN_PREFIX} Would {verb}: '{item.name}'")
                return ActionOutcome(item.name, item.action, OutcomeStatus.DRY_RUN)

            self.file_io.copy_file(source_dir / item.name, replica_path)
            self.logger.info(f"{past}: '{item.name}'")
            return ActionOutcome(item.name, item.action, OutcomeStatus.DONE)

        except OSError as e:
            self.logger.error(f"Failed to {verb} file '{item.name}': {e}")
            self.logger.warning(f"File '{item.name}' will be skipped (error)")
            return ActionOutcome(
                item.name, item.action, OutcomeStatus.FAILED,
                error=SyncError.from_exception(replica_path, e),
            )

    def _delete(self, item: FileAction, replica_dir: Path) -> ActionOutcome:
        replica_path = replica_dir / item.name

        try:
            if self.dry_run:
                self.logger.info(f"{DRY_RUN_PREFIX} Would delete: '{item.name}'")
                return ActionOutcome(item.name, item.action, OutcomeStatus.DRY_RUN)

            self.file_io.delete_file(replica_path)
            self.logger.info(f"Deleted: '{item.name}'")
            return ActionOutcome(item.name, item.action, OutcomeStatus.DONE)

        except OSError as e:
            self.logger.error(f"Failed to delete file '{item.name}': {e}")
            self.logger.warning(f"File '{item.name}' will be skipped (error)")
            return ActionOutcome(
                item.name, item.action, OutcomeStatus.FAILED,
                error=SyncError.from_exception(replica_path, e),
            )
