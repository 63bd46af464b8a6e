"""File loading, saving and the unpack/pack boundary."""

from .loader import FileLoader, LoadState
from .results import LoadOutcome, LoadResult, SaveOutcome, SaveResult
from .saver import FileSaver
from .transform import (
    FileTransform,
    GzipTransform,
    NullTransform,
    PackingInfo,
    UnpackResult,
)

__all__ = [
    "FileLoader",
    "FileSaver",
    "FileTransform",
    "GzipTransform",
    "LoadOutcome",
    "LoadResult",
    "LoadState",
    "NullTransform",
    "PackingInfo",
    "SaveOutcome",
    "SaveResult",
    "UnpackResult",
]
