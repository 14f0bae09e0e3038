"""
Single-command execution with retry.

State machine per command:

    Idle -> Sending -> Success
                    -> PermanentFailure
                    -> TransientFailure -> WaitingRetry -> Sending
                    -> Cancelled

The first retry waits a jittered delay in ``[d, 2d)`` and every further
retry doubles it. After ``max_retries`` retries the last transient error is
raised.

Invariants:
    - Cancellation is checked before every send and before every retry;
      a cancelled command raises asyncio.CancelledError and is never sent
      again
    - Only CommandError with is_transient is retried
    - The blocking HTTP call runs on the context's worker pool; waits are
      awaited, never slept on a thread
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import httpx

from ..errors import CommandError, ErrorCode
from .cancellation import CancellationToken
from .command import RestCommand

if TYPE_CHECKING:
    from ..context import ClientContext

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class RequestExecutor:
    """Executes RestCommands against the server.

    Args:
        context: Client context (settings, HTTP client, worker pool)
        sleep: Awaitable sleep used between retries
        rng: Random source for the initial jitter
    """

    def __init__(
        self,
        context: ClientContext,
        sleep: SleepFunc | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._context = context
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()

    async def execute(self, command: RestCommand) -> Any:
        """Send ``command``, retrying transient failures.

        Returns:
            Decoded JSON result

        Raises:
            CommandError: Permanent failure, or transient failure after the
                retry budget is spent
            asyncio.CancelledError: If the command was cancelled
        """
        policy = command.retry_policy or self._context.retry_policy
        token = command.cancellation
        delay = policy.first_delay(self._rng)
        attempts_made = 0

        while True:
            _check_cancelled(token)
            try:
                return await self._send(command)
            except CommandError as e:
                if not e.is_transient or attempts_made >= policy.max_retries:
                    logger.debug(
                        "Command failed",
                        extra={
                            "command": str(command),
                            "error_code": e.error_code,
                            "attempts": attempts_made + 1,
                        },
                    )
                    raise
                _check_cancelled(token)
                logger.info(
                    "Request failed. Waiting to retry.",
                    extra={
                        "command": str(command),
                        "error_code": e.error_code,
                        "delay": delay,
                        "attempt": attempts_made + 1,
                    },
                )
                await self._sleep(delay)
                attempts_made += 1
                delay *= 2

    async def _send(self, command: RestCommand) -> Any:
        settings = self._context.settings
        request = command.build_request(
            settings.server_url,
            settings.application_id,
            settings.client_key,
            settings.installation_id,
        )
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(
                self._context.network_pool,
                self._context.http_client.execute,
                request,
            )
        except (httpx.TransportError, OSError) as e:
            raise CommandError.temporary_failure(
                ErrorCode.CONNECTION_FAILED, f"i/o failure: {e}"
            ) from e
        return command.parse_response(response)


def _check_cancelled(token: CancellationToken | None) -> None:
    if token is not None:
        token.raise_if_cancelled()
