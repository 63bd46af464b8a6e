"""Result codes returned by the loader and saver."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LoadResult(str, Enum):
    OK = "ok"
    OK_IMPURE = "ok_impure"
    ERROR = "error"
    UNPACK_FAILED = "unpack_failed"
    BINARY = "binary"


class SaveResult(str, Enum):
    DONE = "done"
    FAILED = "failed"
    PACK_FAILED = "pack_failed"


@dataclass(slots=True)
class LoadOutcome:
    """``result`` plus the LOSSY modifier, read-only advice and error text."""

    result: LoadResult
    read_only: bool = False
    lossy: bool = False
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.result in (LoadResult.OK, LoadResult.OK_IMPURE)


@dataclass(slots=True)
class SaveOutcome:
    result: SaveResult
    error: str = ""
    path: str = ""

    @property
    def succeeded(self) -> bool:
        return self.result is SaveResult.DONE


__all__ = ["LoadOutcome", "LoadResult", "SaveOutcome", "SaveResult"]
