# File: modelschema/parser.py
"""
ModelSchema - Schema Parser
============================
Turns YAML/JSON schema text, files or already-decoded mappings into
immutable ``Schema`` entities.

Parsing is fail-fast only for *structural* problems (text that is not a
mapping, ``fields`` that is a scalar, ...), which raise ``MalformedInput``.
Everything semantic (unknown field types, bad enum values, dangling
relationship targets) is kept verbatim and left for the validators to
report in one pass.

Accepted input forms:

    model: Post                   # or ``name:``; else the caller-supplied name
    table: posts                  # else options.table, else snake(plural(model))
    fields:                       # mapping keyed by name, or a list of {name: ...}
      title: {type: string, length: 200}
      status: {type: enum, values: [draft, published]}   # extras → attributes
    relationships:                # ``relations`` is accepted too
      author: {type: belongsTo, model: App\\Models\\User, foreignKey: user_id}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

import yaml
from pydantic import ValidationError

from modelschema.errors import MalformedInput
from modelschema.models import FieldDefinition, RelationshipDefinition, Schema
from modelschema.registry import FieldTypeRegistry, get_default_registry
from modelschema.utils import Timer, table_name_for

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.parser")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_MODEL_NAME: str = "UnknownModel"

CORE_SCHEMA_KEYS: Tuple[str, ...] = (
    "model",
    "table",
    "fields",
    "relationships",
    "options",
    "metadata",
)

FIELD_KEYS: Tuple[str, ...] = (
    "type",
    "nullable",
    "unique",
    "index",
    "default",
    "length",
    "precision",
    "scale",
    "rules",
    "validation",
    "comment",
)

# Canonical relationship key → accepted spellings, first match wins
RELATIONSHIP_KEYS: Dict[str, Tuple[str, ...]] = {
    "type": ("type",),
    "model": ("model",),
    "foreign_key": ("foreign_key", "foreignKey"),
    "local_key": ("local_key", "localKey"),
    "pivot_table": ("pivot_table", "pivotTable"),
    "pivot_fields": ("pivot_fields", "pivotFields"),
    "with_timestamps": ("with_timestamps", "withTimestamps"),
}


# ---------------------------------------------------------------------------
# Text decoding
# ---------------------------------------------------------------------------


def load_mapping(text: str, source: Optional[str] = None) -> Dict[str, Any]:
    """
    Decode YAML or JSON *text* into a mapping.

    Raises:
        MalformedInput: On syntax errors, empty documents, scalars and lists.
    """
    if not isinstance(text, str):
        raise MalformedInput(f"Expected schema text, got {type(text).__name__}.", source)
    if not text.strip():
        raise MalformedInput("Schema content is empty.", source)

    data: Any
    stripped: str = text.lstrip()
    try:
        if stripped.startswith("{"):
            try:
                data = json.loads(text)
            except json.JSONDecodeError:
                data = yaml.safe_load(text)
        else:
            data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise MalformedInput(f"Invalid YAML/JSON: {exc}", source) from exc

    if not isinstance(data, dict):
        raise MalformedInput(
            f"Expected a mapping at top level, got {type(data).__name__}.", source
        )
    return data


def _read_file(path: Path) -> Dict[str, Any]:
    """Read and decode *path*, dispatching on its extension."""
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")
    if not path.is_file():
        raise MalformedInput(f"Schema path is not a file: {path}", str(path))

    try:
        text: str = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise MalformedInput(f"Cannot read schema file: {exc}", str(path)) from exc

    suffix: str = path.suffix.lower()
    if suffix == ".json":
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedInput(f"Invalid JSON: {exc}", str(path)) from exc
        if not isinstance(data, dict):
            raise MalformedInput(
                f"Expected a JSON object at top level, got {type(data).__name__}.", str(path)
            )
        return data
    if suffix not in (".yaml", ".yml"):
        logger.info("Unknown extension '%s', trying JSON then YAML.", suffix)
    return load_mapping(text, source=str(path))


# ---------------------------------------------------------------------------
# Core / extension split
# ---------------------------------------------------------------------------


def get_core_schema_keys() -> List[str]:
    return list(CORE_SCHEMA_KEYS)


def extract_core_schema(data: Mapping[str, Any]) -> Dict[str, Any]:
    """The core keys of *data*, with ``relations`` mapped onto ``relationships``."""
    core: Dict[str, Any] = {key: data[key] for key in CORE_SCHEMA_KEYS if key in data}
    if "relationships" not in core and "relations" in data:
        core["relationships"] = data["relations"]
    return core


def extract_extension_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Everything outside the core keys (``relations`` counts as core)."""
    excluded: Tuple[str, ...] = CORE_SCHEMA_KEYS + ("relations",)
    return {key: value for key, value in data.items() if key not in excluded}


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class SchemaParser:
    """
    Stateless schema parser bound to a field-type registry.

    The registry is used only to normalise type-specific attributes through
    each known handler's ``transform_config``; unknown types pass through.
    """

    def __init__(self, registry: Optional[FieldTypeRegistry] = None) -> None:
        self.registry: FieldTypeRegistry = (
            registry if registry is not None else get_default_registry()
        )

    # -- Public entry points ------------------------------------------------

    def parse(self, text: str, name: str = DEFAULT_MODEL_NAME) -> Schema:
        """Parse YAML or JSON *text*. ``name`` is used when the text names no model."""
        return self.parse_mapping(load_mapping(text), name)

    def parse_file(self, path: Union[str, Path]) -> Schema:
        """
        Parse a schema file. The model name falls back to the file stem.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            MalformedInput: If it cannot be read or decoded.
        """
        path = Path(path)
        with Timer(f"parse {path.name}"):
            data: Dict[str, Any] = _read_file(path)
            return self.parse_mapping(data, path.stem, source=str(path))

    def parse_many(
        self, texts: Union[Mapping[str, str], Iterable[str]]
    ) -> List[Schema]:
        """Parse several documents; a mapping supplies fallback model names."""
        if isinstance(texts, Mapping):
            return [self.parse(text, name) for name, text in texts.items()]
        return [self.parse(text) for text in texts]

    def parse_mapping(
        self,
        data: Mapping[str, Any],
        name: str = DEFAULT_MODEL_NAME,
        source: Optional[str] = None,
    ) -> Schema:
        """Build a ``Schema`` from already-decoded input."""
        if not isinstance(data, Mapping):
            raise MalformedInput(
                f"Expected a mapping at top level, got {type(data).__name__}.", source
            )

        model_name: Any = data.get("model") or data.get("name") or name
        if not isinstance(model_name, str) or not model_name:
            raise MalformedInput(f"Model name must be a non-empty string, got {model_name!r}.", source)

        options: Any = data.get("options") or {}
        metadata: Any = data.get("metadata") or {}
        for key, value in (("options", options), ("metadata", metadata)):
            if not isinstance(value, Mapping):
                raise MalformedInput(
                    f"'{key}' must be a mapping, got {type(value).__name__}.", source
                )

        table: Any = data.get("table") or options.get("table") or table_name_for(model_name)

        raw_relationships: Any = data.get("relationships")
        if raw_relationships is None:
            raw_relationships = data.get("relations")

        fields: Dict[str, FieldDefinition] = {}
        for field_name, config in self._entries(data.get("fields"), "fields", source):
            fields[field_name] = self._parse_field(field_name, config, source)

        relationships: Dict[str, RelationshipDefinition] = {}
        for rel_name, config in self._entries(raw_relationships, "relationships", source):
            relationships[rel_name] = self._parse_relationship(rel_name, config, source)

        try:
            schema: Schema = Schema(
                name=model_name,
                table=table,
                fields=fields,
                relationships=relationships,
                options=dict(options),
                metadata=dict(metadata),
            )
        except ValidationError as exc:
            raise MalformedInput(f"Schema '{model_name}' is malformed: {exc}", source) from exc

        logger.debug(
            "Parsed schema '%s' (%d fields, %d relationships).",
            schema.name,
            len(fields),
            len(relationships),
        )
        return schema

    # -- Internals ----------------------------------------------------------

    @staticmethod
    def _entries(
        raw: Any, section: str, source: Optional[str]
    ) -> List[Tuple[str, Any]]:
        """Normalise the mapping form and the ``[{name: ...}, ...]`` list form."""
        if raw is None:
            return []
        if isinstance(raw, Mapping):
            return [(str(key), value) for key, value in raw.items()]
        if isinstance(raw, list):
            entries: List[Tuple[str, Any]] = []
            for index, item in enumerate(raw):
                if not isinstance(item, Mapping) or not item.get("name"):
                    raise MalformedInput(
                        f"'{section}[{index}]' must be a mapping with a 'name' key.", source
                    )
                config: Dict[str, Any] = {k: v for k, v in item.items() if k != "name"}
                entries.append((str(item["name"]), config))
            return entries
        raise MalformedInput(
            f"'{section}' must be a mapping or a list, got {type(raw).__name__}.", source
        )

    def _parse_field(self, name: str, config: Any, source: Optional[str]) -> FieldDefinition:
        if config is None:
            config = {}
        elif isinstance(config, str):
            config = {"type": config}
        elif not isinstance(config, Mapping):
            raise MalformedInput(
                f"Field '{name}' must be a mapping, got {type(config).__name__}.", source
            )

        values: Dict[str, Any] = {key: config[key] for key in FIELD_KEYS if key in config}
        values["type"] = str(values.get("type") or "string")

        explicit: Any = config.get("attributes") or {}
        if not isinstance(explicit, Mapping):
            raise MalformedInput(f"Field '{name}' attributes must be a mapping.", source)
        attributes: Dict[str, Any] = {
            key: value
            for key, value in config.items()
            if key not in FIELD_KEYS and key not in ("attributes", "name")
        }
        attributes.update(explicit)

        if self.registry.has(values["type"]):
            attributes = self.registry.get(values["type"]).transform_config(attributes)

        try:
            return FieldDefinition(name=name, attributes=attributes, **values)
        except ValidationError as exc:
            raise MalformedInput(f"Field '{name}' is malformed: {exc}", source) from exc

    @staticmethod
    def _parse_relationship(
        name: str, config: Any, source: Optional[str]
    ) -> RelationshipDefinition:
        if config is None:
            config = {}
        elif not isinstance(config, Mapping):
            raise MalformedInput(
                f"Relationship '{name}' must be a mapping, got {type(config).__name__}.", source
            )

        values: Dict[str, Any] = {}
        consumed: Set[str] = {"attributes", "name"}
        for canonical, spellings in RELATIONSHIP_KEYS.items():
            consumed.update(spellings)
            for spelling in spellings:
                if config.get(spelling) is not None:
                    values[canonical] = config[spelling]
                    break
        if "type" in values:
            values["type"] = str(values["type"])

        explicit: Any = config.get("attributes") or {}
        if not isinstance(explicit, Mapping):
            raise MalformedInput(f"Relationship '{name}' attributes must be a mapping.", source)
        attributes: Dict[str, Any] = {k: v for k, v in config.items() if k not in consumed}
        attributes.update(explicit)

        try:
            return RelationshipDefinition(name=name, attributes=attributes, **values)
        except ValidationError as exc:
            raise MalformedInput(f"Relationship '{name}' is malformed: {exc}", source) from exc


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DEFAULT_MODEL_NAME",
    "CORE_SCHEMA_KEYS",
    "FIELD_KEYS",
    "load_mapping",
    "get_core_schema_keys",
    "extract_core_schema",
    "extract_extension_data",
    "SchemaParser",
]

logger.debug("modelschema.parser loaded: %d public symbols.", len(__all__))
