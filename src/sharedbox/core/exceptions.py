"""
SharedBox Exceptions

Centralized exception hierarchy for the value codec, the mapping facade and
the key-value engines. Every error also derives from the builtin a plain
``dict`` would raise, so ``except KeyError`` keeps working for callers.
"""
from typing import Optional, Any, Dict


# ==============================================================================
# Base Exception
# ==============================================================================

class SharedBoxError(Exception):
    """
    Base exception for all sharedbox errors.

    Attributes:
        message: Error description
        details: Optional additional error context
        original_exception: Original exception if wrapped
    """
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_exception = original_exception

    def __str__(self) -> str:
        result = self.message
        if self.details:
            result += f" | Details: {self.details}"
        if self.original_exception:
            result += f" | Caused by: {type(self.original_exception).__name__}: {self.original_exception}"
        return result


# ==============================================================================
# Mapping Facade Exceptions
# ==============================================================================

class KeyNotFoundError(SharedBoxError, KeyError):
    """Raised when reading or deleting a key that is not stored."""
    def __init__(self, key: str):
        super().__init__(
            f"Key '{key}' not found",
            details={"key": key}
        )
        self.key = key


class InvalidArgumentError(SharedBoxError, TypeError):
    """Raised for non-string keys, non-mapping bulk input or invalid configuration."""
    pass


class InvalidStateError(SharedBoxError, RuntimeError):
    """Raised when an operation is not valid in the current lifecycle state."""
    pass


class PartialBulkLoadError(SharedBoxError, ValueError):
    """
    Raised when a bulk load stopped after writing some entries.

    Written entries are not rolled back; ``success_count`` tells how many
    made it into the segment.
    """
    def __init__(self, success_count: int, original_exception: Exception):
        super().__init__(
            f"Failed to initialize SharedDict after {success_count} items: {original_exception}",
            details={"success_count": success_count},
            original_exception=original_exception
        )
        self.success_count = success_count


# ==============================================================================
# Codec Exceptions
# ==============================================================================

class CodecError(SharedBoxError):
    """Base exception for value encoding and decoding errors."""
    pass


class MalformedValueError(CodecError, ValueError):
    """Raised when encoded bytes are empty, truncated or inconsistent."""
    pass


class UnsupportedTypeError(CodecError, TypeError):
    """Raised for tensor dtypes outside the supported set or values no codec can serialize."""
    def __init__(
        self,
        type_name: str,
        reason: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            f"Unsupported type '{type_name}'" + (f": {reason}" if reason else ""),
            details={"type": type_name},
            original_exception=original_exception
        )
        self.type_name = type_name


# ==============================================================================
# Engine Exceptions
# ==============================================================================

class EngineError(SharedBoxError):
    """Base exception for key-value engine errors."""
    pass


class SegmentNotFoundError(EngineError):
    """Raised when attaching to a segment that does not exist."""
    def __init__(self, name: str):
        super().__init__(
            f"Shared segment '{name}' does not exist. Create it first with create=True.",
            details={"segment": name}
        )
        self.name = name


class CapacityExceededError(EngineError):
    """Raised when a write would exceed the key limit or the byte capacity of a segment."""
    def __init__(self, name: str, limit: str, requested: int, available: int):
        super().__init__(
            f"Segment '{name}' {limit} exceeded: requested {requested}, available {available}",
            details={
                "segment": name,
                "limit": limit,
                "requested": requested,
                "available": available
            }
        )
        self.limit = limit
