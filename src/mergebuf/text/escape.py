"""Reversible escaping of control characters for diff-engine temp files.

Every character in ``0x00..0x1F`` except TAB becomes four characters: the
lead-in ``\\x0f``, two lowercase hex digits and the lead-out backslash. The
lead-in itself is a control character, so escaped text never contains a bare
lead-in and unescaping is unambiguous.
"""

from __future__ import annotations

import re

LEAD_IN = "\x0f"
LEAD_OUT = "\\"

# OR-ing in 0x100 always yields three hex digits; the first one is dropped.
_ESCAPES = {
    code: LEAD_IN + f"{code | 0x100:x}"[1:] + LEAD_OUT
    for code in range(0x20)
    if code != 0x09
}
_UNESCAPE_RE = re.compile(re.escape(LEAD_IN) + r"([0-9a-f]{2})" + re.escape(LEAD_OUT))


def escape_control_chars(text: str) -> str:
    return text.translate(_ESCAPES)


def unescape_control_chars(text: str) -> str:
    return _UNESCAPE_RE.sub(lambda match: chr(int(match.group(1), 16)), text)


__all__ = [
    "LEAD_IN",
    "LEAD_OUT",
    "escape_control_chars",
    "unescape_control_chars",
]
