"""
Reliable command execution: HTTP primitive, commands, retry and batching.
"""

from .batch import BatchExecutor
from .cancellation import CancellationToken
from .command import RestCommand
from .executor import RequestExecutor
from .http import HttpClient, HttpRequest, HttpResponse, HttpxClient
from .memory import InMemoryHttpClient

__all__ = [
    "BatchExecutor",
    "CancellationToken",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "HttpxClient",
    "InMemoryHttpClient",
    "RequestExecutor",
    "RestCommand",
]
