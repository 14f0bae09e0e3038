"""
Error types for objsync.

This module defines all exception types raised by the library:
- SyncError: Base exception
- InvalidOperationError: Incompatible field operations were combined
- OperationDecodeError: Unknown operation tag on the wire
- EncodingError: Value cannot be encoded for the wire
- CommandError: A request to the backend failed (transient or permanent)
- BatchProtocolError: Batch response does not line up with the request
- RegistryFrozenError / DuplicateRegistrationError: Type registry misuse

Invariants:
    - All errors inherit from SyncError
    - Errors include context for debugging
    - Only CommandError with permanent=False is ever retried
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Optional


class ErrorCode(IntEnum):
    """Error codes reported by the backend (and a few used locally)."""

    OTHER_CAUSE = -1
    CONNECTION_FAILED = 100
    OBJECT_NOT_FOUND = 101
    INVALID_QUERY = 102
    INVALID_CLASS_NAME = 103
    MISSING_OBJECT_ID = 104
    INVALID_KEY_NAME = 105
    INVALID_POINTER = 106
    INVALID_JSON = 107
    COMMAND_UNAVAILABLE = 108
    NOT_INITIALIZED = 109
    INCORRECT_TYPE = 111
    OBJECT_TOO_LARGE = 116
    OPERATION_FORBIDDEN = 119
    CACHE_MISS = 120
    INVALID_NESTED_KEY = 121
    INVALID_ACL = 123
    TIMEOUT = 124
    MISSING_REQUIRED_FIELD_ERROR = 135
    DUPLICATE_VALUE = 137
    EXCEEDED_QUOTA = 140
    SCRIPT_ERROR = 141
    VALIDATION_ERROR = 142
    REQUEST_LIMIT_EXCEEDED = 155
    SESSION_MISSING = 206
    INVALID_SESSION_TOKEN = 209


class SyncError(Exception):
    """Base exception for all objsync errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "SYNC_ERROR"
        self.details = details or {}


class InvalidOperationError(SyncError):
    """A field operation was merged or applied onto an incompatible value.

    Raised when:
    - Add/AddUnique/Remove is combined with a scalar or an Increment
    - Increment is combined with a non-number
    - A relation is modified after being deleted
    """

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="INVALID_OPERATION",
            details={"key": key},
        )
        self.key = key


class OperationDecodeError(SyncError):
    """An encoded operation carries a tag this client does not understand.

    This indicates a protocol/version mismatch and is never recoverable
    for the decode call that hit it.
    """

    def __init__(self, op_name: Optional[str]) -> None:
        super().__init__(
            f"Unable to decode operation of type {op_name}",
            code="OPERATION_DECODE_ERROR",
            details={"op": op_name},
        )
        self.op_name = op_name


class EncodingError(SyncError):
    """A value cannot be represented on the wire."""

    def __init__(self, message: str, value_type: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="ENCODING_ERROR",
            details={"value_type": value_type},
        )
        self.value_type = value_type


class CommandError(SyncError):
    """A command against the backend failed.

    Attributes:
        error_code: Backend error code (see ErrorCode)
        permanent: Whether retrying could possibly help
    """

    def __init__(
        self,
        error_code: int,
        message: str,
        permanent: bool = True,
    ) -> None:
        super().__init__(
            message,
            code="COMMAND_ERROR",
            details={"error_code": error_code, "permanent": permanent},
        )
        self.error_code = error_code
        self.permanent = permanent

    @property
    def is_transient(self) -> bool:
        """Whether the request executor may retry this failure."""
        return not self.permanent

    @classmethod
    def permanent_failure(cls, error_code: int, message: str) -> CommandError:
        """Constructs a permanent error that won't be retried."""
        return cls(error_code, message, permanent=True)

    @classmethod
    def temporary_failure(cls, error_code: int, message: str) -> CommandError:
        """Constructs a temporary error that will be retried."""
        return cls(error_code, message, permanent=False)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class BatchProtocolError(SyncError):
    """Batch response item count differs from the request count."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Batch command result count expected: {expected} but was: {actual}",
            code="BATCH_PROTOCOL_ERROR",
            details={"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


class RegistryFrozenError(SyncError):
    """Registry is frozen and cannot be modified."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="REGISTRY_FROZEN")


class DuplicateRegistrationError(SyncError):
    """A class name is already registered."""

    def __init__(self, message: str, class_name: str) -> None:
        super().__init__(
            message,
            code="DUPLICATE_REGISTRATION",
            details={"class_name": class_name},
        )
        self.class_name = class_name
