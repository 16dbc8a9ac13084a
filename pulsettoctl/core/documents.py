"""YAML document loading and JSON-schema validation shared by config and presets."""

from __future__ import annotations

import json
import os
from collections.abc import Hashable
from functools import cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from pulsettoctl.core.errors import PulsettoError

APP_NAME = "pulsettoctl"


_BOOL_TAG = "tag:yaml.org,2002:bool"


class DocumentLoader(yaml.SafeLoader):
    """SafeLoader for user-edited files.

    ``yes``/``no``/``on``/``off`` stay strings, and a mapping that repeats a
    key is an error instead of silently keeping the last value.
    """

    yaml_implicit_resolvers = {
        first: [(tag, pattern) for tag, pattern in entries if tag != _BOOL_TAG]
        for first, entries in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        seen: set[Any] = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                continue
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def config_dir() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / APP_NAME


def data_dir() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share")) / APP_NAME


@cache
def _schema_validator(schema_name: str) -> Any:
    schema_text = resources.files("pulsettoctl.schemas").joinpath(schema_name).read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def read_yaml(path: Path, *, error_cls: type[PulsettoError]) -> Any:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise error_cls(f"Could not read {path}: {exc}") from exc

    try:
        return yaml.load(content, Loader=DocumentLoader)
    except yaml.YAMLError as exc:
        raise error_cls(f"Invalid YAML in {path}: {exc}") from exc


def validate(doc: Any, schema_name: str, *, source: Path, error_cls: type[PulsettoError]) -> None:
    validator = _schema_validator(schema_name)
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise error_cls(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def write_yaml(path: Path, doc: Any, *, error_cls: type[PulsettoError]) -> None:
    """Replace the file at ``path`` with ``doc`` in one rename."""
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(yaml.safe_dump(doc, sort_keys=False, allow_unicode=True), encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as exc:
        raise error_cls(f"Could not write {path}: {exc}") from exc
