"""Encoding detection: unicode transform, byte-order mark and code page."""

from __future__ import annotations

import codecs
from dataclasses import dataclass, replace
from enum import Enum
from typing import Tuple

import chardet

from mergebuf.config import CodepageDetectMode

SAMPLE_SIZE = 64 * 1024
CHARDET_MIN_CONFIDENCE = 0.75


class Unicoding(str, Enum):
    """Unicode transform applied to the file bytes."""

    NONE = "none"
    UTF8 = "utf-8"
    UCS2LE = "utf-16-le"
    UCS2BE = "utf-16-be"
    UCS4LE = "utf-32-le"
    UCS4BE = "utf-32-be"

    @property
    def is_wide(self) -> bool:
        return self not in (Unicoding.NONE, Unicoding.UTF8)


# Longest marks first: the UTF-32 LE mark starts with the UTF-16 LE one.
_BOMS: Tuple[Tuple[bytes, Unicoding], ...] = (
    (codecs.BOM_UTF32_LE, Unicoding.UCS4LE),
    (codecs.BOM_UTF32_BE, Unicoding.UCS4BE),
    (codecs.BOM_UTF8, Unicoding.UTF8),
    (codecs.BOM_UTF16_LE, Unicoding.UCS2LE),
    (codecs.BOM_UTF16_BE, Unicoding.UCS2BE),
)


def normalize_codepage(name: str) -> str:
    """Return the canonical Python codec name; raises ``LookupError``."""

    return codecs.lookup(name).name


@dataclass(frozen=True, slots=True)
class FileTextEncoding:
    """Encoding descriptor stored on a buffer so saving can reproduce it."""

    unicoding: Unicoding = Unicoding.NONE
    codepage: str = "cp1252"
    bom: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "codepage", normalize_codepage(self.codepage))

    @property
    def codec(self) -> str:
        if self.unicoding is Unicoding.NONE:
            return self.codepage
        return self.unicoding.value

    @property
    def bom_bytes(self) -> bytes:
        if not self.bom:
            return b""
        for mark, unicoding in _BOMS:
            if unicoding is self.unicoding:
                return mark
        return b""

    def with_codepage(self, codepage: str) -> "FileTextEncoding":
        return replace(self, codepage=codepage)


def sniff_bom(data: bytes) -> Tuple[Unicoding, int]:
    """Return the unicode transform announced by ``data`` and the mark length."""

    for mark, unicoding in _BOMS:
        if data.startswith(mark):
            return unicoding, len(mark)
    return Unicoding.NONE, 0


def _read_sample(path: str, size: int = SAMPLE_SIZE) -> bytes:
    with open(path, "rb") as handle:
        return handle.read(size)


def resolve_encoding(head: bytes, hint: FileTextEncoding) -> FileTextEncoding:
    """Resolve the encoding of a file starting with ``head``.

    A byte-order mark in the file always wins. Without one, a hint that
    forces a unicode transform is honoured (without BOM); otherwise the
    hint's code page interprets the 8-bit bytes.
    """

    unicoding, _ = sniff_bom(head)
    if unicoding is not Unicoding.NONE:
        return FileTextEncoding(unicoding, hint.codepage, bom=True)
    return FileTextEncoding(hint.unicoding, hint.codepage, bom=False)


def detect_encoding(path: str, hint: FileTextEncoding) -> FileTextEncoding:
    return resolve_encoding(_read_sample(path, 4), hint)


def _is_utf8(sample: bytes, truncated: bool) -> bool:
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        decoder.decode(sample, final=not truncated)
    except UnicodeDecodeError:
        return False
    return True


def guess_from_sample(
    sample: bytes,
    mode: CodepageDetectMode,
    *,
    default_codepage: str = "cp1252",
    truncated: bool = False,
) -> FileTextEncoding:
    """Guess an encoding from the leading bytes of a file.

    NONE trusts the default code page, BASIC also recognises BOM-less UTF-8
    and CHARDET finally asks ``chardet`` for a confident 8-bit guess.
    """

    unicoding, _ = sniff_bom(sample)
    if unicoding is not Unicoding.NONE:
        return FileTextEncoding(unicoding, default_codepage, bom=True)

    fallback = FileTextEncoding(Unicoding.NONE, default_codepage)
    if mode is CodepageDetectMode.NONE or sample.isascii():
        return fallback

    if _is_utf8(sample, truncated):
        return FileTextEncoding(Unicoding.UTF8, default_codepage)

    if mode is CodepageDetectMode.CHARDET:
        result = chardet.detect(sample)
        name = result.get("encoding")
        if name and (result.get("confidence") or 0.0) >= CHARDET_MIN_CONFIDENCE:
            try:
                return fallback.with_codepage(name)
            except LookupError:
                return fallback
    return fallback


def guess_encoding(
    path: str,
    mode: CodepageDetectMode,
    *,
    default_codepage: str = "cp1252",
) -> FileTextEncoding:
    """Guess the encoding of ``path`` without any caller hint."""

    sample = _read_sample(path)
    return guess_from_sample(
        sample,
        mode,
        default_codepage=default_codepage,
        truncated=len(sample) == SAMPLE_SIZE,
    )


__all__ = [
    "FileTextEncoding",
    "SAMPLE_SIZE",
    "Unicoding",
    "detect_encoding",
    "guess_encoding",
    "guess_from_sample",
    "normalize_codepage",
    "resolve_encoding",
    "sniff_bom",
]
