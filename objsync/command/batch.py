"""
Batch execution: many object commands, few wire exchanges.

Commands are bundled into ``POST batch`` requests of at most
``batch_max_size`` entries. Each input command gets its own future, in
input order, which settles from the matching entry of the batch response.

Invariants:
    - One command bypasses batching entirely
    - Chunks are independent exchanges; one chunk failing does not touch
      the futures of another
    - A response whose length differs from the request fails every future
      of that chunk with BatchProtocolError
    - Every future settles, even when a response entry is malformed
    - If the exchange itself fails or is cancelled, every future of the
      chunk fails or is cancelled the same way
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ..errors import BatchProtocolError, CommandError, ErrorCode
from .cancellation import CancellationToken
from .command import RestCommand, error_fields
from .executor import RequestExecutor

if TYPE_CHECKING:
    from ..context import ClientContext

logger = logging.getLogger(__name__)


class BatchExecutor:
    """Fans commands out into batch requests and results back in.

    Args:
        context: Client context
        executor: Executor used for every wire exchange
        max_batch_size: Cap per exchange (defaults to settings.batch_max_size)
    """

    def __init__(
        self,
        context: ClientContext,
        executor: RequestExecutor,
        max_batch_size: int | None = None,
    ) -> None:
        self._context = context
        self._executor = executor
        self.max_batch_size = max_batch_size or context.settings.batch_max_size
        self._tasks: set[asyncio.Task] = set()

    def execute_batch(
        self,
        commands: list[RestCommand],
        session_token: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[asyncio.Future]:
        """Schedule ``commands`` and return one future per command.

        Must be called from a running event loop.
        """
        if not commands:
            return []

        loop = asyncio.get_running_loop()

        if len(commands) == 1:
            command = commands[0]
            if cancellation is not None:
                command = command.with_cancellation(cancellation)
            return [self._track(loop.create_task(self._executor.execute(command)))]

        if len(commands) > self.max_batch_size:
            futures: list[asyncio.Future] = []
            for start in range(0, len(commands), self.max_batch_size):
                chunk = commands[start:start + self.max_batch_size]
                futures.extend(self.execute_batch(chunk, session_token, cancellation))
            return futures

        futures = [loop.create_future() for _ in commands]
        self._track(loop.create_task(
            self._run_batch(commands, futures, session_token, cancellation)
        ))
        return futures

    async def execute_all(
        self,
        commands: list[RestCommand],
        session_token: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[Any]:
        """Run ``commands`` and gather outcomes (results or exceptions)."""
        futures = self.execute_batch(commands, session_token, cancellation)
        return list(await asyncio.gather(*futures, return_exceptions=True))

    async def _run_batch(
        self,
        commands: list[RestCommand],
        futures: list[asyncio.Future],
        session_token: str | None,
        cancellation: CancellationToken | None,
    ) -> None:
        batch = RestCommand.batch(
            commands, self._context.settings.server_url, session_token
        ).with_cancellation(cancellation)

        try:
            result = await self._executor.execute(batch)
        except asyncio.CancelledError:
            for future in futures:
                if not future.done():
                    future.cancel()
            return
        except Exception as e:
            for future in futures:
                if not future.done():
                    future.set_exception(e)
            return

        if not isinstance(result, list) or len(result) != len(futures):
            actual = len(result) if isinstance(result, list) else 0
            error = BatchProtocolError(len(futures), actual)
            logger.error(
                "Batch response does not match request",
                extra={"expected": len(futures), "actual": actual},
            )
            for future in futures:
                if not future.done():
                    future.set_exception(error)
            return

        try:
            for future, item in zip(futures, result):
                if not future.done():
                    _settle_entry(future, item)
        except Exception as e:
            logger.exception("Failed to settle batch results", extra={"size": len(futures)})
            error = CommandError.permanent_failure(
                ErrorCode.OTHER_CAUSE, f"Failed to settle batch results: {e}"
            )
            for future in futures:
                if not future.done():
                    future.set_exception(error)

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


def _settle_entry(future: asyncio.Future, item: Any) -> None:
    if isinstance(item, dict) and "success" in item:
        future.set_result(item["success"])
    elif isinstance(item, dict) and "error" in item:
        code, message = error_fields(item["error"] or {})
        future.set_exception(CommandError.permanent_failure(code, message))
    else:
        future.set_exception(CommandError.permanent_failure(
            ErrorCode.OTHER_CAUSE, "Invalid batch result entry"
        ))
