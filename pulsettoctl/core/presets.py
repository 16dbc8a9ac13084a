"""Ordered preset collection persisted as a YAML document."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pulsettoctl.core.documents import read_yaml, validate, write_yaml
from pulsettoctl.core.errors import CommandError, PresetStoreError, PresetValidationError
from pulsettoctl.core.model import Preset, coerce_mode

LOGGER = logging.getLogger(__name__)

_SCHEMA = "presets.schema.json"


def preset_from_record(record: dict[str, Any]) -> Preset:
    try:
        mode = coerce_mode(str(record["mode"]))
    except CommandError as exc:
        raise PresetValidationError(f"Preset '{record.get('name')}': {exc}") from exc
    return Preset(
        name=record["name"],
        mode=mode,
        intensity=record["intensity"],
        duration_minutes=record["duration"],
    )


def preset_to_record(preset: Preset) -> dict[str, Any]:
    return {
        "name": preset.name,
        "mode": preset.mode.value,
        "intensity": preset.intensity,
        "duration": preset.duration_minutes,
    }


class PresetStore:
    """Working copy of the presets, rewritten to disk on every mutation.

    Presets are addressed by position; names may repeat.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._presets: list[Preset] = []

    @property
    def presets(self) -> tuple[Preset, ...]:
        return tuple(self._presets)

    def load(self) -> tuple[Preset, ...]:
        if not self.path.exists():
            self._presets = []
            return self.presets

        doc = read_yaml(self.path, error_cls=PresetStoreError)
        if doc is None:
            self._presets = []
            return self.presets
        validate(doc, _SCHEMA, source=self.path, error_cls=PresetValidationError)
        self._presets = [preset_from_record(record) for record in doc["presets"]]
        LOGGER.debug("Loaded %d presets from %s", len(self._presets), self.path)
        return self.presets

    def add(self, preset: Preset) -> int:
        self._presets.append(preset)
        self._save()
        return len(self._presets) - 1

    def delete(self, index: int) -> Preset:
        removed = self.get(index)
        del self._presets[index]
        self._save()
        return removed

    def get(self, index: int) -> Preset:
        if index < 0 or index >= len(self._presets):
            raise PresetStoreError(
                f"No preset at index {index}. {len(self._presets)} preset(s) saved."
            )
        return self._presets[index]

    def _save(self) -> None:
        doc = {"presets": [preset_to_record(p) for p in self._presets]}
        write_yaml(self.path, doc, error_cls=PresetStoreError)
        LOGGER.debug("Wrote %d presets to %s", len(self._presets), self.path)
