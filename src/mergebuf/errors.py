"""Exception taxonomy shared across mergebuf."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from mergebuf.buffer.state import Position


class MergeBufError(RuntimeError):
    """Base class for every error raised by mergebuf."""


class BufferValidationError(MergeBufError):
    """Raised when a caller passes an out-of-range line or character index."""

    def __init__(self, message: str, *, position: Position | None = None) -> None:
        super().__init__(message)
        self.position = position


class BufferStateError(MergeBufError):
    """Raised when an operation does not fit the buffer lifecycle."""


class TransformError(MergeBufError):
    """Raised by unpack/pack transforms; loader and saver turn it into a result."""

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class SyncPointError(MergeBufError):
    """Raised for malformed or out-of-order sync points."""


__all__ = [
    "BufferStateError",
    "BufferValidationError",
    "MergeBufError",
    "SyncPointError",
    "TransformError",
]
