from __future__ import annotations

import pytest

from mergebuf.config import CodepageDetectMode, Options
from mergebuf.runtime import telemetry

ENV_NAMES = ("ALLOW_MIXED_EOL", "CP_DETECT", "TEMP_DIR", "DEFAULT_CODEPAGE")


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(f"MERGEBUF_{name}", raising=False)
    return monkeypatch


def test_defaults_when_environment_is_empty(clean_env) -> None:
    options = Options.from_env()

    assert options.allow_mixed_eol is False
    assert options.cp_detect_mode is CodepageDetectMode.BASIC
    assert options.default_codepage == "cp1252"
    assert options.temp_dir


def test_environment_overrides(clean_env, tmp_path) -> None:
    clean_env.setenv("MERGEBUF_ALLOW_MIXED_EOL", "yes")
    clean_env.setenv("MERGEBUF_CP_DETECT", "Chardet")
    clean_env.setenv("MERGEBUF_TEMP_DIR", str(tmp_path))
    clean_env.setenv("MERGEBUF_DEFAULT_CODEPAGE", "cp1250")

    options = Options.from_env()

    assert options.allow_mixed_eol is True
    assert options.cp_detect_mode is CodepageDetectMode.CHARDET
    assert options.temp_dir == str(tmp_path)
    assert options.default_codepage == "cp1250"


def test_unknown_detect_mode_is_rejected(clean_env) -> None:
    clean_env.setenv("MERGEBUF_CP_DETECT", "psychic")

    with pytest.raises(ValueError):
        Options.from_env()


def test_with_overrides_returns_copy() -> None:
    options = Options()
    relaxed = options.with_overrides(allow_mixed_eol=True)

    assert relaxed.allow_mixed_eol
    assert not options.allow_mixed_eol


def test_telemetry_rejects_conflicting_configuration() -> None:
    with pytest.raises(ValueError):
        telemetry.configure(config=object(), preset="quiet")
    with pytest.raises(ValueError):
        telemetry.configure(preset="chatty")
