"""Text-level codecs: encodings, line endings and control-character escaping."""

from .encoding import (
    FileTextEncoding,
    Unicoding,
    detect_encoding,
    guess_encoding,
    guess_from_sample,
    normalize_codepage,
    resolve_encoding,
    sniff_bom,
)
from .eol import EolStyle, TextStats, classify, dominant_style, is_pure, style_of
from .escape import escape_control_chars, unescape_control_chars

__all__ = [
    "EolStyle",
    "FileTextEncoding",
    "TextStats",
    "Unicoding",
    "classify",
    "detect_encoding",
    "dominant_style",
    "escape_control_chars",
    "guess_encoding",
    "guess_from_sample",
    "is_pure",
    "normalize_codepage",
    "resolve_encoding",
    "sniff_bom",
    "style_of",
    "unescape_control_chars",
]
