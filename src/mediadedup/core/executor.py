"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/executor.py
Applies the chosen removal policy to the non-keepers of a Resolution.

Modes:
    - dry-run       : nothing is touched, intended actions are recorded
    - delete        : permanent removal
    - move-to-trash : relocation into a user-given directory, renaming on collision
    - system-trash  : removal to the OS trash (send2trash)

A file that vanished since the scan counts as removed. Any other OSError is
recorded as a failed action and the remaining files are still processed.
"""
import logging
from typing import Optional

from mediadedup.core.exceptions import ExecutionError
from mediadedup.core.interfaces import Executor
from mediadedup.core.models import (
    ExecutionMode, ExecutionResult, FileRecord, RemovalAction, RemovalStatus,
    Resolution, RunStatistics,
)
from mediadedup.services.file_service import FileService

logger = logging.getLogger(__name__)


class ExecutorImpl(Executor):

    def apply(
        self,
        resolution: Resolution,
        mode: ExecutionMode = ExecutionMode.DRY_RUN,
        trash_dir: Optional[str] = None
    ) -> ExecutionResult:
        if mode == ExecutionMode.MOVE_TO_TRASH and not trash_dir:
            raise ValueError("Move-to-trash mode requires a trash directory")

        actions = []
        removed = 0
        freed = 0
        failed = 0

        logger.info(f"Keep: {resolution.keeper.path}")
        for record in resolution.removals:
            action = self._remove(record, mode, trash_dir)
            actions.append(action)
            if action.succeeded:
                removed += 1
                freed += record.size
            else:
                failed += 1

        stats = RunStatistics(files_removed=removed, bytes_freed=freed, removal_failures=failed)
        return ExecutionResult(resolution=resolution, mode=mode, actions=actions, stats=stats)

    def _remove(self, record: FileRecord, mode: ExecutionMode, trash_dir: Optional[str]) -> RemovalAction:
        if mode == ExecutionMode.DRY_RUN:
            logger.info(f"Would remove: {record.path}")
            return RemovalAction(record=record, status=RemovalStatus.WOULD_REMOVE)

        try:
            destination = self._perform(record, mode, trash_dir)
        except FileNotFoundError:
            logger.info(f"Already gone: {record.path}")
            return RemovalAction(record=record, status=RemovalStatus.ALREADY_GONE)
        except (OSError, RuntimeError) as e:
            error = ExecutionError(record.path, str(e))
            logger.warning(f"Failed to remove {error}")
            return RemovalAction(record=record, status=RemovalStatus.FAILED, error=str(e))

        if destination:
            logger.info(f"Moved: {record.path} -> {destination}")
        else:
            logger.info(f"Deleted: {record.path}")
        return RemovalAction(record=record, status=RemovalStatus.REMOVED, destination=destination)

    @staticmethod
    def _perform(record: FileRecord, mode: ExecutionMode, trash_dir: Optional[str]) -> Optional[str]:
        if mode == ExecutionMode.DELETE:
            FileService.delete_file(record.path)
            return None
        if mode == ExecutionMode.MOVE_TO_TRASH:
            return FileService.move_to_directory(record.path, trash_dir)
        if mode == ExecutionMode.SYSTEM_TRASH:
            FileService.move_to_trash(record.path)
            return None
        raise ValueError(f"Unsupported execution mode: {mode!r}")
