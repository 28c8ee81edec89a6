"""arki.yaml discovery and the YAML layer of ArkiSettings.

Lookup order: $ARKI_CONFIG (an explicit path; nothing else is tried when it
is set), ./arki.yaml, ./arki.yml, ~/.arki/arki.yaml.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

logger = logging.getLogger("arki.config")

CONFIG_ENV = "ARKI_CONFIG"


def config_candidates() -> list[Path]:
    explicit = os.environ.get(CONFIG_ENV)
    if explicit:
        return [Path(explicit)]
    return [
        Path.cwd() / "arki.yaml",
        Path.cwd() / "arki.yml",
        Path.home() / ".arki" / "arki.yaml",
    ]


def find_config_file() -> Path | None:
    return next((p for p in config_candidates() if p.is_file()), None)


def load_yaml(path: Path) -> dict[str, Any]:
    """Top-level mapping of a YAML file; anything else counts as empty."""
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring {path}: top level is {type(data).__name__}, expected a mapping")
        return {}
    return data


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Settings values read from the discovered arki.yaml (lowest priority after defaults)."""

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        path = find_config_file()
        self.path = path
        self.data = load_yaml(path) if path is not None else {}

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        value = self.data.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return {key: value for key, value in self.data.items() if key in self.settings_cls.model_fields}
