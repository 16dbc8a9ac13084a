from __future__ import annotations

from pathlib import Path

import pytest

from pulsettoctl.core.config import Settings, load_settings
from pulsettoctl.core.errors import ConfigError
from pulsettoctl.core.model import Mode


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_missing_config_uses_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("PULSETTOCTL_CONFIG", raising=False)

    settings = load_settings()

    assert settings.timing.pacing_delay_s == 0.1
    assert settings.timing.status_poll_s == 3.0
    assert settings.timing.elapsed_tick_s == 1.0
    assert settings.link.name_prefix == "Pulsetto"
    assert settings.link.service_uuid == "6e400001-b5a3-f393-e0a9-e50e24dcca9e"
    assert settings.controls.mode is Mode.BOTH
    assert settings.controls.intensity == 5
    assert settings.presets_path == tmp_path / "data" / "pulsettoctl" / "presets.yaml"


def test_xdg_config_file_is_loaded(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.delenv("PULSETTOCTL_CONFIG", raising=False)
    _write(
        tmp_path / "cfg" / "pulsettoctl" / "config.yaml",
        """
pacing_delay_s: 0.25
status_poll_s: 5
name_prefix: Pulsetto_A
default_mode: left
default_intensity: 3
write_with_response: false
presets_path: mine.yaml
""",
    )

    settings = load_settings()

    assert settings.timing.pacing_delay_s == 0.25
    assert settings.timing.status_poll_s == 5.0
    assert settings.link.name_prefix == "Pulsetto_A"
    assert settings.link.write_with_response is False
    assert settings.controls.mode is Mode.LEFT
    assert settings.controls.intensity == 3
    assert settings.presets_path == tmp_path / "cfg" / "pulsettoctl" / "mine.yaml"


def test_env_var_points_at_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = _write(tmp_path / "elsewhere.yaml", "default_mode: C\n")
    monkeypatch.setenv("PULSETTOCTL_CONFIG", str(path))

    assert load_settings().controls.mode is Mode.RIGHT


def test_empty_config_is_defaults(tmp_path: Path) -> None:
    path = _write(tmp_path / "config.yaml", "")
    assert load_settings(path).timing == Settings().timing


@pytest.mark.parametrize(
    "content",
    [
        "pacing_delay_s: -1\n",
        "unknown_key: 1\n",
        "default_mode: Z\n",
        "write_with_response: maybe\n",
        "- a\n- b\n",
        "pacing_delay_s: 0.1\npacing_delay_s: 0.2\n",
    ],
)
def test_invalid_config_rejected(tmp_path: Path, content: str) -> None:
    path = _write(tmp_path / "config.yaml", content)
    with pytest.raises(ConfigError):
        load_settings(path)
