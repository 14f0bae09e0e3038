"""
Object lifecycle against the server: save, delete and fetch.

The controller turns a SyncObject's pending operations into RestCommands,
runs them through the request or batch executor and settles the object
with the outcome.

Invariants:
    - Every start_save is matched by exactly one handle_save_result, also
      when encoding fails or the command is cancelled
    - save_all settles every object before raising the first error
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .command.batch import BatchExecutor
from .command.cancellation import CancellationToken
from .command.command import RestCommand
from .command.executor import RequestExecutor
from .context import ClientContext
from .errors import CommandError, ErrorCode
from .object import SyncObject
from .ops.operation_set import OperationSet

logger = logging.getLogger(__name__)


class ObjectController:
    """Saves, deletes and fetches SyncObjects.

    Args:
        context: Client context
        executor: Executor for single commands
        batch_executor: Executor for save_all / delete_all
    """

    def __init__(
        self,
        context: ClientContext,
        executor: RequestExecutor,
        batch_executor: BatchExecutor,
    ) -> None:
        self._context = context
        self._executor = executor
        self._batch_executor = batch_executor

    async def save(
        self,
        obj: SyncObject,
        session_token: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> SyncObject:
        """Send pending operations of ``obj``.

        Raises:
            CommandError: If the save failed (operations are re-queued)
            asyncio.CancelledError: If the save was cancelled
        """
        operations = obj.start_save()
        try:
            command = self._save_command(obj, operations, session_token)
            result = await self._executor.execute(command.with_cancellation(cancellation))
        except BaseException:
            obj.handle_save_result(None, operations)
            raise

        self._settle_save(obj, operations, result)
        return obj

    async def save_all(
        self,
        objects: list[SyncObject],
        session_token: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[SyncObject]:
        """Save ``objects`` in as few batch requests as possible.

        Raises:
            CommandError: First failure, after every object was settled
        """
        started: list[tuple[SyncObject, OperationSet]] = []
        commands: list[RestCommand] = []
        try:
            for obj in objects:
                operations = obj.start_save()
                started.append((obj, operations))
                commands.append(self._save_command(obj, operations, session_token))
        except BaseException:
            for obj, operations in started:
                obj.handle_save_result(None, operations)
            raise

        futures = self._batch_executor.execute_batch(commands, session_token, cancellation)
        outcomes = await asyncio.gather(*futures, return_exceptions=True)

        first_error: BaseException | None = None
        for (obj, operations), outcome in zip(started, outcomes):
            if isinstance(outcome, BaseException):
                obj.handle_save_result(None, operations)
                first_error = first_error or outcome
                continue
            try:
                self._settle_save(obj, operations, outcome)
            except Exception as e:
                first_error = first_error or e

        if first_error is not None:
            raise first_error
        return objects

    async def delete(
        self,
        obj: SyncObject,
        session_token: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Delete ``obj`` on the server. Unsaved objects are only marked."""
        if obj.object_id is not None:
            command = RestCommand.delete_object(obj.state, session_token)
            await self._executor.execute(command.with_cancellation(cancellation))
        obj.handle_delete_result()

    async def delete_all(
        self,
        objects: list[SyncObject],
        session_token: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Delete ``objects`` in as few batch requests as possible.

        Raises:
            CommandError: First failure, after every object was settled
        """
        saved = [obj for obj in objects if obj.object_id is not None]
        commands = [RestCommand.delete_object(obj.state, session_token) for obj in saved]
        futures = self._batch_executor.execute_batch(commands, session_token, cancellation)
        outcomes = await asyncio.gather(*futures, return_exceptions=True)

        first_error: BaseException | None = None
        for obj, outcome in zip(saved, outcomes):
            if isinstance(outcome, BaseException):
                first_error = first_error or outcome
            else:
                obj.handle_delete_result()
        for obj in objects:
            if obj.object_id is None:
                obj.handle_delete_result()

        if first_error is not None:
            raise first_error

    async def fetch(
        self,
        obj: SyncObject,
        session_token: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> SyncObject:
        """Reload server state of ``obj``.

        Raises:
            CommandError: MISSING_OBJECT_ID for unsaved objects, or the
                server's error
        """
        if obj.object_id is None:
            raise CommandError.permanent_failure(
                ErrorCode.MISSING_OBJECT_ID, "Cannot fetch an object without an objectId"
            )
        command = RestCommand.fetch_object(obj.state, session_token)
        result = await self._executor.execute(command.with_cancellation(cancellation))
        state = self._context.decoder().decode_state(result, obj.class_name)
        obj.handle_fetch_result(state)
        return obj

    def _save_command(
        self,
        obj: SyncObject,
        operations: OperationSet,
        session_token: str | None,
    ) -> RestCommand:
        return RestCommand.save_object(obj.state, operations, self._context.encoder(), session_token)

    def _settle_save(self, obj: SyncObject, operations: OperationSet, result: Any) -> None:
        try:
            state = self._context.decoder().decode_state(result or {}, obj.class_name)
        except Exception:
            logger.warning(
                "Undecodable save result, operations re-queued",
                extra={"class_name": obj.class_name},
                exc_info=True,
            )
            obj.handle_save_result(None, operations)
            raise
        obj.handle_save_result(state, operations)
        logger.debug(
            "Saved object",
            extra={"class_name": obj.class_name, "object_id": obj.object_id},
        )
