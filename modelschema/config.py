# File: modelschema/config.py
"""
ModelSchema - Settings
=======================
Pydantic V2 settings models for the cache, optimizer and plugin manager.

``ModelSchemaSettings`` aggregates all three and can be built from a plain
mapping or a YAML/JSON file:

    settings = ModelSchemaSettings.from_file("modelschema.yaml")
    cache = SchemaCache(InMemoryCacheStore(), settings.cache)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.config")

_SETTINGS_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    frozen=False,
    extra="forbid",
)

DEFAULT_MANIFEST_NAMES: List[str] = [
    "modelschema_plugins.yaml",
    "modelschema_plugins.yml",
    "modelschema_plugins.json",
]

MIB: int = 1024 * 1024


class CacheSettings(BaseModel):
    """Schema/validation cache toggles."""

    model_config = _SETTINGS_CONFIG

    enabled: bool = Field(default=True, description="Cache parsed schemas and validation results.")
    ttl: int = Field(default=3600, ge=0, description="Entry lifetime in seconds (0 = no expiry).")
    key_prefix: str = Field(default="modelschema:", description="Namespace for every cache key.")


class OptimizerSettings(BaseModel):
    """Thresholds for the optimization layer."""

    model_config = _SETTINGS_CONFIG

    lazy_threshold_bytes: int = Field(
        default=MIB, ge=1, description="Above this size use section-first parsing."
    )
    streaming_threshold_bytes: int = Field(
        default=5 * MIB, ge=1, description="Above this size use streaming parsing."
    )
    section_cache_size: int = Field(
        default=100, ge=2, description="Max memoised section parses."
    )
    section_cache_trim_to: int = Field(
        default=50, ge=1, description="Entries kept when the section cache overflows."
    )
    enable_cache: bool = Field(default=True, description="Consult the schema cache on parse.")

    @model_validator(mode="after")
    def _validate_thresholds(self) -> "OptimizerSettings":
        if self.streaming_threshold_bytes < self.lazy_threshold_bytes:
            raise ValueError(
                f"streaming_threshold_bytes ({self.streaming_threshold_bytes}) must be "
                f">= lazy_threshold_bytes ({self.lazy_threshold_bytes})."
            )
        if self.section_cache_trim_to >= self.section_cache_size:
            raise ValueError(
                f"section_cache_trim_to ({self.section_cache_trim_to}) must be "
                f"< section_cache_size ({self.section_cache_size})."
            )
        return self


class PluginEntry(BaseModel):
    """Explicit plugin registration: ``{class: "pkg.mod:Plugin", config: {...}}``."""

    model_config = _SETTINGS_CONFIG

    class_path: str = Field(..., alias="class", min_length=1)
    config: Dict[str, Any] = Field(default_factory=dict)


class PluginSettings(BaseModel):
    model_config = _SETTINGS_CONFIG

    auto_discovery: bool = Field(default=False, description="Scan plugin directories on load.")
    plugin_directories: List[str] = Field(default_factory=list)
    manifest_names: List[str] = Field(default_factory=lambda: list(DEFAULT_MANIFEST_NAMES))
    plugins: List[PluginEntry] = Field(default_factory=list)


class ModelSchemaSettings(BaseModel):
    """Top-level settings document."""

    model_config = _SETTINGS_CONFIG

    cache: CacheSettings = Field(default_factory=CacheSettings)
    optimizer: OptimizerSettings = Field(default_factory=OptimizerSettings)
    plugins: PluginSettings = Field(default_factory=PluginSettings)

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "ModelSchemaSettings":
        return cls.model_validate(data or {})

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ModelSchemaSettings":
        """
        Load settings from a YAML or JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the file is not a mapping or fails validation.
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Settings file not found: {path}")

        text: str = path.read_text(encoding="utf-8")
        try:
            data: Any = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ValueError(f"Invalid settings file {path}: {exc}") from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Expected a mapping at top level of {path}, got {type(data).__name__}."
            )
        logger.debug("Loaded settings from %s.", path)
        return cls.from_mapping(data)


__all__: List[str] = [
    "DEFAULT_MANIFEST_NAMES",
    "MIB",
    "CacheSettings",
    "OptimizerSettings",
    "PluginEntry",
    "PluginSettings",
    "ModelSchemaSettings",
]

logger.debug("modelschema.config loaded: %d public symbols.", len(__all__))
