"""Options consumed by the loader and saver."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field, replace
from enum import Enum

from mergebuf.runtime.telemetry import ENV_PREFIX, env_flag


class CodepageDetectMode(str, Enum):
    """How hard the loader tries to guess an 8-bit code page."""

    NONE = "none"
    BASIC = "basic"
    CHARDET = "chardet"


@dataclass(frozen=True)
class Options:
    """Plain configuration values supplied by the host application."""

    allow_mixed_eol: bool = False
    cp_detect_mode: CodepageDetectMode = CodepageDetectMode.BASIC
    temp_dir: str = field(default_factory=tempfile.gettempdir)
    default_codepage: str = "cp1252"

    @classmethod
    def from_env(cls) -> "Options":
        """Build options from ``MERGEBUF_*`` environment variables."""

        defaults = cls()
        mode = os.getenv(f"{ENV_PREFIX}CP_DETECT", defaults.cp_detect_mode.value)
        return cls(
            allow_mixed_eol=env_flag("ALLOW_MIXED_EOL", defaults.allow_mixed_eol),
            cp_detect_mode=CodepageDetectMode(mode.strip().lower()),
            temp_dir=os.getenv(f"{ENV_PREFIX}TEMP_DIR") or defaults.temp_dir,
            default_codepage=os.getenv(f"{ENV_PREFIX}DEFAULT_CODEPAGE")
            or defaults.default_codepage,
        )

    def with_overrides(self, **changes: object) -> "Options":
        return replace(self, **changes)


__all__ = ["CodepageDetectMode", "Options"]
