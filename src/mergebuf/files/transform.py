"""Unpack/pack transforms applied before loading and after saving.

A transform turns the user's file into a plain text working file and back.
The ``PackingInfo`` descriptor is shared by every pane of a comparison, so
its ``subcode`` must come out the same for all of them.
"""

from __future__ import annotations

import gzip
import os
import shutil
import tempfile
from dataclasses import dataclass
from typing import Optional, Protocol

from mergebuf.errors import TransformError

GZIP_MAGIC = b"\x1f\x8b"


@dataclass(slots=True)
class PackingInfo:
    plugin_name: str = ""
    subcode: int = 0
    disallow_mixed_eol: bool = False


@dataclass(frozen=True, slots=True)
class UnpackResult:
    path: str
    subcode: int = 0
    plugin_name: str = ""


class FileTransform(Protocol):
    def unpack(self, path: str, packing: PackingInfo) -> UnpackResult:
        """Produce a working file for ``path``; raise ``TransformError`` on failure."""
        ...

    def pack(self, path: str, packing: PackingInfo) -> str:
        """Re-apply the transform to ``path``; the returned path may differ."""
        ...


class NullTransform:
    """Pass-through transform used when no plugin applies."""

    def unpack(self, path: str, packing: PackingInfo) -> UnpackResult:
        del packing
        return UnpackResult(path=path)

    def pack(self, path: str, packing: PackingInfo) -> str:
        del packing
        return path


class GzipTransform:
    """Transparently (de)compresses gzip files; plain files pass through.

    Sub-code 1 marks a compressed comparison, 0 a plain one.
    """

    name = "gzip"

    def __init__(self, temp_dir: Optional[str] = None) -> None:
        self.temp_dir = temp_dir

    def _is_gzip(self, path: str) -> bool:
        try:
            with open(path, "rb") as handle:
                return handle.read(2) == GZIP_MAGIC
        except OSError as exc:
            raise TransformError(str(exc), path=path) from exc

    def unpack(self, path: str, packing: PackingInfo) -> UnpackResult:
        del packing
        if not self._is_gzip(path):
            return UnpackResult(path=path)
        fd, working = tempfile.mkstemp(prefix="UNP_", dir=self.temp_dir)
        try:
            with os.fdopen(fd, "wb") as target, gzip.open(path, "rb") as source:
                shutil.copyfileobj(source, target)
        except (OSError, EOFError) as exc:
            os.remove(working)
            raise TransformError(f"gzip unpack failed: {exc}", path=path) from exc
        return UnpackResult(path=working, subcode=1, plugin_name=self.name)

    def pack(self, path: str, packing: PackingInfo) -> str:
        if packing.subcode == 0:
            return path
        packed = f"{path}.gz"
        try:
            with open(path, "rb") as source, gzip.open(packed, "wb") as target:
                shutil.copyfileobj(source, target)
        except OSError as exc:
            if os.path.exists(packed):
                os.remove(packed)
            raise TransformError(f"gzip pack failed: {exc}", path=path) from exc
        return packed


__all__ = [
    "FileTransform",
    "GzipTransform",
    "NullTransform",
    "PackingInfo",
    "UnpackResult",
]
