"""Settings loaded from the optional YAML configuration file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pulsettoctl.core.documents import config_dir, data_dir, read_yaml, validate
from pulsettoctl.core.errors import CommandError, ConfigError
from pulsettoctl.core.model import Controls, LinkSpec, SessionTiming, coerce_mode

CONFIG_ENV = "PULSETTOCTL_CONFIG"
LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    link: LinkSpec = field(default_factory=LinkSpec)
    timing: SessionTiming = field(default_factory=SessionTiming)
    controls: Controls = field(default_factory=Controls)
    presets_path: Path = field(default_factory=lambda: data_dir() / "presets.yaml")


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override)
    return config_dir() / "config.yaml"


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise ConfigError(f"{context} must be boolean true/false")


def _build_settings(doc: dict[str, Any], source: Path) -> Settings:
    defaults = Settings()

    link = LinkSpec(
        name_prefix=doc.get("name_prefix", defaults.link.name_prefix),
        connect_timeout_s=float(doc.get("connect_timeout_s", defaults.link.connect_timeout_s)),
        scan_timeout_s=float(doc.get("scan_timeout_s", defaults.link.scan_timeout_s)),
        write_with_response=_normalize_bool(
            doc.get("write_with_response", defaults.link.write_with_response),
            context=f"{source}: write_with_response",
        ),
    )
    timing = SessionTiming(
        pacing_delay_s=float(doc.get("pacing_delay_s", defaults.timing.pacing_delay_s)),
        status_poll_s=float(doc.get("status_poll_s", defaults.timing.status_poll_s)),
        elapsed_tick_s=float(doc.get("elapsed_tick_s", defaults.timing.elapsed_tick_s)),
    )

    mode = defaults.controls.mode
    if "default_mode" in doc:
        try:
            mode = coerce_mode(str(doc["default_mode"]))
        except CommandError as exc:
            raise ConfigError(f"{source}: default_mode: {exc}") from exc
    controls = Controls(mode=mode, intensity=int(doc.get("default_intensity", defaults.controls.intensity)))

    presets_path = defaults.presets_path
    if "presets_path" in doc:
        presets_path = Path(doc["presets_path"]).expanduser()
        if not presets_path.is_absolute():
            presets_path = source.parent / presets_path

    return Settings(link=link, timing=timing, controls=controls, presets_path=presets_path)


def load_settings(path: Path | None = None) -> Settings:
    source = path or default_config_path()
    if not source.exists():
        LOGGER.debug("No configuration at %s; using defaults", source)
        return Settings()

    doc = read_yaml(source, error_cls=ConfigError)
    if doc is None:
        return Settings()
    if not isinstance(doc, dict):
        raise ConfigError(f"Configuration file {source} must contain a mapping at root")
    validate(doc, "config.schema.json", source=source, error_cls=ConfigError)
    return _build_settings(doc, source)
