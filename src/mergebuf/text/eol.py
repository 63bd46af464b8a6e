"""Line-ending statistics and style classification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EolStyle(str, Enum):
    AUTOMATIC = "automatic"
    DOS = "dos"
    UNIX = "unix"
    MAC = "mac"
    MIXED = "mixed"

    @property
    def terminator(self) -> str:
        """Terminator written for this style; empty for AUTOMATIC and MIXED."""

        return _TERMINATORS.get(self, "")


_TERMINATORS = {
    EolStyle.DOS: "\r\n",
    EolStyle.UNIX: "\n",
    EolStyle.MAC: "\r",
}


@dataclass(slots=True)
class TextStats:
    """Counters gathered while streaming a file into a buffer."""

    ncrlfs: int = 0
    nlfs: int = 0
    ncrs: int = 0
    nzeros: int = 0
    nlosses: int = 0

    def count(self, eol: str) -> None:
        if eol == "\r\n":
            self.ncrlfs += 1
        elif eol == "\n":
            self.nlfs += 1
        elif eol == "\r":
            self.ncrs += 1


def style_of(eol: str) -> EolStyle | None:
    for style, terminator in _TERMINATORS.items():
        if terminator == eol:
            return style
    return None


def is_pure(stats: TextStats) -> bool:
    """True when at most one terminator kind was seen."""

    kinds = sum(1 for n in (stats.ncrlfs, stats.ncrs, stats.nlfs) if n > 0)
    return kinds <= 1


def dominant_style(stats: TextStats) -> EolStyle:
    """Most frequent terminator kind; DOS wins ties, then UNIX, then MAC."""

    if stats.ncrlfs >= stats.nlfs:
        return EolStyle.DOS if stats.ncrlfs >= stats.ncrs else EolStyle.MAC
    return EolStyle.UNIX if stats.nlfs >= stats.ncrs else EolStyle.MAC


def classify(stats: TextStats) -> EolStyle:
    """The sole terminator kind of a pure file, MIXED otherwise.

    A file without any terminator is reported as DOS.
    """

    if not is_pure(stats):
        return EolStyle.MIXED
    return dominant_style(stats)


__all__ = ["EolStyle", "TextStats", "classify", "dominant_style", "is_pure", "style_of"]
