"""
Cooperative cancellation shared between a caller and running commands.
"""

from __future__ import annotations

import asyncio
import threading


class CancellationToken:
    """Thread-safe cancellation flag.

    Cancelling never interrupts I/O that is already in flight; executors
    check the token before each send and before each retry.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise asyncio.CancelledError if cancellation was requested."""
        if self._event.is_set():
            raise asyncio.CancelledError()
