# File: modelschema/models.py
"""
ModelSchema - Core Data Models
===============================
Pydantic V2 models forming the canonical in-memory representation of a
declarative data model: ``FieldDefinition``, ``RelationshipDefinition`` and
``Schema``.  These models are the single source of truth for the pipeline:

    Schema Text → Parser → Entities → Consistency Validation → Consumers

All entities are frozen.  A "changed" schema is always a new instance built
with ``Schema.replace``.

This module also holds the typed per-field-type configuration structs
(``EnumConfig``, ``SpatialConfig``, ...) that field-type handlers produce from
a field's open ``attributes`` map.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    FrozenSet,
    List,
    Literal,
    Optional,
    Union,
)

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from modelschema.utils import class_basename, unique_preserving_order

if TYPE_CHECKING:  # pragma: no cover
    from modelschema.registry import FieldTypeRegistry

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RelationshipType(str, Enum):
    """Supported relationship kinds."""

    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"
    BELONGS_TO_MANY = "belongsToMany"
    HAS_ONE_THROUGH = "hasOneThrough"
    HAS_MANY_THROUGH = "hasManyThrough"
    MORPH_TO = "morphTo"
    MORPH_ONE = "morphOne"
    MORPH_MANY = "morphMany"
    MORPH_TO_MANY = "morphToMany"
    MORPHED_BY_MANY = "morphedByMany"

    @classmethod
    def lookup(cls, value: str) -> Optional["RelationshipType"]:
        """Return the member for *value*, or ``None`` if it is not a known kind."""
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def is_owning(self) -> bool:
        """True when the declaring schema holds a reference to the target."""
        return _RELATIONSHIP_TRAITS[self]["owning"]

    @property
    def requires_inverse(self) -> bool:
        return _RELATIONSHIP_TRAITS[self]["requires_inverse"]

    @property
    def requires_target(self) -> bool:
        return _RELATIONSHIP_TRAITS[self]["requires_target"]

    @property
    def expected_inverse(self) -> Optional["RelationshipType"]:
        return _RELATIONSHIP_TRAITS[self]["inverse"]

    @property
    def description(self) -> str:
        return _RELATIONSHIP_TRAITS[self]["description"]


# One row per member.  Cycle detection, inverse detection and target
# validation read only from here.
_RELATIONSHIP_TRAITS: Dict[RelationshipType, Dict[str, Any]] = {
    RelationshipType.BELONGS_TO: {
        "owning": True,
        "requires_inverse": False,
        "requires_target": True,
        "inverse": RelationshipType.HAS_ONE,
        "description": "Belongs to a single related model",
    },
    RelationshipType.HAS_ONE: {
        "owning": False,
        "requires_inverse": True,
        "requires_target": True,
        "inverse": RelationshipType.BELONGS_TO,
        "description": "Has one related model",
    },
    RelationshipType.HAS_MANY: {
        "owning": False,
        "requires_inverse": True,
        "requires_target": True,
        "inverse": RelationshipType.BELONGS_TO,
        "description": "Has many related models",
    },
    RelationshipType.BELONGS_TO_MANY: {
        "owning": False,
        "requires_inverse": True,
        "requires_target": True,
        "inverse": RelationshipType.BELONGS_TO_MANY,
        "description": "Many-to-many relationship",
    },
    RelationshipType.HAS_ONE_THROUGH: {
        "owning": False,
        "requires_inverse": False,
        "requires_target": True,
        "inverse": None,
        "description": "Has one through intermediate model",
    },
    RelationshipType.HAS_MANY_THROUGH: {
        "owning": False,
        "requires_inverse": False,
        "requires_target": True,
        "inverse": None,
        "description": "Has many through intermediate model",
    },
    RelationshipType.MORPH_TO: {
        "owning": False,
        "requires_inverse": False,
        "requires_target": False,
        "inverse": RelationshipType.MORPH_MANY,
        "description": "Polymorphic belongs to",
    },
    RelationshipType.MORPH_ONE: {
        "owning": False,
        "requires_inverse": False,
        "requires_target": True,
        "inverse": RelationshipType.MORPH_TO,
        "description": "Polymorphic has one",
    },
    RelationshipType.MORPH_MANY: {
        "owning": False,
        "requires_inverse": False,
        "requires_target": True,
        "inverse": RelationshipType.MORPH_TO,
        "description": "Polymorphic has many",
    },
    RelationshipType.MORPH_TO_MANY: {
        "owning": False,
        "requires_inverse": False,
        "requires_target": True,
        "inverse": RelationshipType.MORPHED_BY_MANY,
        "description": "Polymorphic many-to-many",
    },
    RelationshipType.MORPHED_BY_MANY: {
        "owning": False,
        "requires_inverse": False,
        "requires_target": True,
        "inverse": RelationshipType.MORPH_TO_MANY,
        "description": "Inverse polymorphic many-to-many",
    },
}

# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_ENTITY_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="forbid",
)

_TYPE_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)

# Names that are never mass-assignable on a generated model
NON_FILLABLE_FIELDS: FrozenSet[str] = frozenset(
    {"id", "created_at", "updated_at", "deleted_at"}
)

DEFAULT_NAMESPACE: str = "App\\Models"


def _coerce_rule_list(value: Any) -> List[str]:
    """Accept ``None``, a single rule string or a list of rule strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise ValueError(f"Validation rules must be a string or a list, got {type(value).__name__}.")


# ---------------------------------------------------------------------------
# Field
# ---------------------------------------------------------------------------


class FieldDefinition(BaseModel):
    """
    A single field of a schema.

    Type-specific extras (enum ``values``, spatial ``srid`` ...) live in the
    open ``attributes`` map; field-type handlers turn that map into one of the
    typed ``*Config`` structs below.
    """

    model_config = _ENTITY_CONFIG

    name: str = Field(..., min_length=1, description="Field name (unique within a schema).")
    type: str = Field(default="string", min_length=1, description="Field type or alias.")
    nullable: bool = Field(default=False, description="Whether NULL is allowed.")
    unique: bool = Field(default=False, description="Has a UNIQUE constraint?")
    index: bool = Field(default=False, description="Should a single-column index be created?")
    default: Any = Field(default=None, description="Default value (untyped).")
    length: Optional[int] = Field(default=None, description="Max length for string-likes.")
    precision: Optional[int] = Field(default=None, description="Numeric / temporal precision.")
    scale: Optional[int] = Field(default=None, description="Numeric scale.")
    rules: List[str] = Field(default_factory=list, description="Free-form validation rules.")
    validation: List[str] = Field(
        default_factory=list, description="Free-form validation rules (alternate key)."
    )
    comment: Optional[str] = Field(default=None, description="Column comment / doc.")
    attributes: Dict[str, Any] = Field(
        default_factory=dict, description="Type-specific configuration."
    )

    @field_validator("rules", "validation", mode="before")
    @classmethod
    def _wrap_rule_strings(cls, v: Any) -> List[str]:
        return _coerce_rule_list(v)

    @field_validator("attributes", mode="before")
    @classmethod
    def _none_attributes(cls, v: Any) -> Dict[str, Any]:
        return {} if v is None else v

    # -- Derived helpers ----------------------------------------------------

    @property
    def is_fillable(self) -> bool:
        return self.name not in NON_FILLABLE_FIELDS

    @property
    def all_rules(self) -> List[str]:
        """``validation`` followed by ``rules``, in declaration order."""
        return list(self.validation) + list(self.rules)

    def handler_config(self) -> Dict[str, Any]:
        """
        Flat configuration mapping handed to a field-type handler.

        Structural keys are only included when they carry information, so
        handlers see exactly what the author wrote.
        """
        config: Dict[str, Any] = {}
        if self.nullable:
            config["nullable"] = True
        if self.unique:
            config["unique"] = True
        if self.index:
            config["index"] = True
        if self.default is not None:
            config["default"] = self.default
        if self.comment is not None:
            config["comment"] = self.comment
        for key in ("length", "precision", "scale"):
            value: Optional[int] = getattr(self, key)
            if value is not None:
                config[key] = value
        if self.rules:
            config["rules"] = list(self.rules)
        if self.validation:
            config["validation"] = list(self.validation)
        config.update(self.attributes)
        return config

    def validation_rules(self, registry: Optional["FieldTypeRegistry"] = None) -> List[str]:
        """
        Request-validation rules implied by the field, then its explicit ones.

        The type is resolved through *registry* (default registry if omitted),
        so ``int`` or ``varchar`` imply the same rules as their canonical type.
        """
        if registry is None:
            from modelschema.registry import get_default_registry

            registry = get_default_registry()
        type_name: str = registry.resolve(self.type) or self.type

        rules: List[str] = ["nullable" if self.nullable else "required"]
        if type_name == "string":
            rules.append("string")
            if self.length:
                rules.append(f"max:{self.length}")
        elif type_name == "integer":
            rules.append("integer")
        elif type_name == "boolean":
            rules.append("boolean")
        elif type_name == "email":
            rules.append("email")
        elif type_name == "uuid":
            rules.append("uuid")
        elif type_name == "datetime":
            rules.append("date")
        elif type_name == "decimal":
            rules.append("numeric")
        if self.unique:
            rules.append("unique")
        rules.extend(self.all_rules)
        return unique_preserving_order(rules)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "nullable": self.nullable,
            "unique": self.unique,
            "index": self.index,
            "default": self.default,
            "length": self.length,
            "precision": self.precision,
            "scale": self.scale,
            "rules": list(self.rules),
            "validation": list(self.validation),
            "comment": self.comment,
            "attributes": dict(self.attributes),
        }

    def __repr__(self) -> str:
        null_flag: str = " NULL" if self.nullable else " NOT NULL"
        return f"<Field {self.name} {self.type}{null_flag}>"


# ---------------------------------------------------------------------------
# Relationship
# ---------------------------------------------------------------------------


class RelationshipDefinition(BaseModel):
    """
    A named relationship to another model.

    ``type`` is kept as written so that unknown kinds survive parsing and are
    reported by the validator; ``kind`` is the resolved ``RelationshipType``.
    """

    model_config = _ENTITY_CONFIG

    name: str = Field(..., min_length=1, description="Relationship name.")
    type: str = Field(default=RelationshipType.BELONGS_TO.value, description="Relationship kind.")
    model: str = Field(default="", description="Target model identifier.")
    foreign_key: Optional[str] = Field(default=None, description="Foreign key column.")
    local_key: Optional[str] = Field(default=None, description="Local key column.")
    pivot_table: Optional[str] = Field(default=None, description="Pivot table for M2M.")
    pivot_fields: List[str] = Field(default_factory=list, description="Extra pivot columns.")
    with_timestamps: bool = Field(default=False, description="Pivot has timestamps?")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Extra options.")

    @field_validator("model", mode="before")
    @classmethod
    def _none_model(cls, v: Any) -> str:
        return "" if v is None else v

    @field_validator("pivot_fields", mode="before")
    @classmethod
    def _none_pivot_fields(cls, v: Any) -> List[str]:
        return [] if v is None else v

    @field_validator("attributes", mode="before")
    @classmethod
    def _none_attributes(cls, v: Any) -> Dict[str, Any]:
        return {} if v is None else v

    @property
    def kind(self) -> Optional[RelationshipType]:
        return RelationshipType.lookup(self.type)

    @property
    def target_basename(self) -> str:
        return class_basename(self.model)

    @property
    def is_owning(self) -> bool:
        kind: Optional[RelationshipType] = self.kind
        return kind is not None and kind.is_owning

    def foreign_key_column(self) -> str:
        """Column holding the reference for an owning relationship."""
        return self.foreign_key or f"{self.name}_id"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "model": self.model,
            "foreign_key": self.foreign_key,
            "local_key": self.local_key,
            "pivot_table": self.pivot_table,
            "pivot_fields": list(self.pivot_fields),
            "with_timestamps": self.with_timestamps,
            "attributes": dict(self.attributes),
        }

    def __repr__(self) -> str:
        return f"<Relationship {self.name} ({self.type}) → {self.model or '*'}>"


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class Schema(BaseModel):
    """
    Complete, immutable description of one data model.

    ``fields`` and ``relationships`` are ordered mappings keyed by name.  The
    *effective* field set (declared fields plus one synthesised foreign key
    per owning relationship) is derived on demand and never stored.
    """

    model_config = _ENTITY_CONFIG

    name: str = Field(..., min_length=1, description="Model name.")
    table: str = Field(..., description="Table name.")
    fields: Dict[str, FieldDefinition] = Field(default_factory=dict)
    relationships: Dict[str, RelationshipDefinition] = Field(default_factory=dict)
    options: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _keys_match_names(self) -> "Schema":
        for key, fld in self.fields.items():
            if key != fld.name:
                raise ValueError(
                    f"Field key '{key}' does not match field name '{fld.name}' "
                    f"in schema '{self.name}'."
                )
        for key, rel in self.relationships.items():
            if key != rel.name:
                raise ValueError(
                    f"Relationship key '{key}' does not match relationship name "
                    f"'{rel.name}' in schema '{self.name}'."
                )
        return self

    # -- Computed helpers ---------------------------------------------------

    @computed_field  # type: ignore[misc]
    @property
    def field_count(self) -> int:
        return len(self.fields)

    @computed_field  # type: ignore[misc]
    @property
    def relationship_count(self) -> int:
        return len(self.relationships)

    @property
    def effective_fields(self) -> Dict[str, FieldDefinition]:
        """Declared fields plus a foreign-key field per owning relationship."""
        result: Dict[str, FieldDefinition] = dict(self.fields)
        for rel in self.relationships.values():
            if not rel.is_owning:
                continue
            fk_name: str = rel.foreign_key_column()
            if fk_name in result:
                continue
            result[fk_name] = FieldDefinition(
                name=fk_name,
                type="integer",
                nullable=True,
                comment=f"Foreign key for {rel.name} relationship",
            )
        return result

    @property
    def fillable_fields(self) -> Dict[str, FieldDefinition]:
        return {k: f for k, f in self.effective_fields.items() if f.is_fillable}

    @property
    def has_timestamps(self) -> bool:
        return bool(self.options.get("timestamps", True))

    @property
    def has_soft_deletes(self) -> bool:
        return bool(self.options.get("soft_deletes", False))

    @property
    def model_namespace(self) -> str:
        return str(self.options.get("namespace", DEFAULT_NAMESPACE))

    @property
    def model_class(self) -> str:
        return f"{self.model_namespace}\\{self.name}"

    def get_field(self, name: str) -> Optional[FieldDefinition]:
        """Lookup in the effective field set."""
        return self.effective_fields.get(name)

    def castable_fields(self, registry: "FieldTypeRegistry") -> Dict[str, str]:
        """Map of field name → cast type, for fields whose handler defines one."""
        casts: Dict[str, str] = {}
        for fld in self.effective_fields.values():
            if not registry.has(fld.type):
                continue
            cast: Optional[str] = registry.get(fld.type).cast_type(fld.handler_config())
            if cast:
                casts[fld.name] = cast
        return casts

    def validation_rules(
        self, registry: Optional["FieldTypeRegistry"] = None
    ) -> Dict[str, List[str]]:
        return {
            name: fld.validation_rules(registry)
            for name, fld in self.effective_fields.items()
        }

    # -- Copy-on-write ------------------------------------------------------

    def replace(self, **changes: Any) -> "Schema":
        """Return a new, re-validated ``Schema`` with *changes* applied."""
        data: Dict[str, Any] = {
            "name": self.name,
            "table": self.table,
            "fields": self.fields,
            "relationships": self.relationships,
            "options": self.options,
            "metadata": self.metadata,
        }
        data.update(changes)
        return Schema.model_validate(data)

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.name,
            "table": self.table,
            "fields": {k: f.to_dict() for k, f in self.fields.items()},
            "relationships": {k: r.to_dict() for k, r in self.relationships.items()},
            "options": dict(self.options),
            "metadata": dict(self.metadata),
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False, default=str)

    def to_yaml(self) -> str:
        return yaml.safe_dump(
            self.to_dict(),
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )

    def __repr__(self) -> str:
        return (
            f"<Schema {self.name} "
            f"({len(self.fields)} fields, {len(self.relationships)} rels)>"
        )


# ---------------------------------------------------------------------------
# Typed field-type configuration (tagged union over ``kind``)
# ---------------------------------------------------------------------------


class TypeConfig(BaseModel):
    """Attributes every field type understands."""

    model_config = _TYPE_CONFIG

    kind: str = "generic"
    nullable: bool = False
    unique: bool = False
    index: bool = False
    default: Any = None
    comment: Optional[str] = None
    rules: List[str] = Field(default_factory=list)
    validation: List[str] = Field(default_factory=list)


class StringConfig(TypeConfig):
    kind: Literal["string"] = "string"
    length: Optional[int] = Field(default=None, ge=1)
    fixed: bool = False


class NumericConfig(TypeConfig):
    kind: Literal["numeric"] = "numeric"
    precision: Optional[int] = Field(default=None, ge=1)
    scale: Optional[int] = Field(default=None, ge=0)
    unsigned: bool = False
    auto_increment: bool = False

    @model_validator(mode="after")
    def _scale_within_precision(self) -> "NumericConfig":
        if self.precision is not None and self.scale is not None and self.scale > self.precision:
            raise ValueError("scale cannot be greater than precision")
        return self


class TemporalConfig(TypeConfig):
    kind: Literal["temporal"] = "temporal"
    precision: Optional[int] = Field(default=None, ge=0, le=6)
    format: Optional[str] = None
    timezone: Optional[str] = None
    use_current: bool = False


class EnumConfig(TypeConfig):
    kind: Literal["enum"] = "enum"
    values: List[Any] = Field(..., min_length=1)
    strict: bool = False


class SetConfig(TypeConfig):
    kind: Literal["set"] = "set"
    values: List[Any] = Field(..., min_length=1)
    separator: str = Field(default=",", min_length=1)
    max_selections: Optional[int] = Field(default=None, ge=1)


class SpatialConfig(TypeConfig):
    kind: Literal["spatial"] = "spatial"
    srid: Optional[int] = Field(default=None, ge=0)
    dimension: Optional[str] = None
    dimensions: Optional[int] = None
    geometry_type: Optional[str] = None
    allow_holes: Optional[bool] = None


class ForeignIdConfig(TypeConfig):
    kind: Literal["foreign_id"] = "foreign_id"
    references: Optional[str] = None
    on: Optional[str] = None
    on_delete: Optional[str] = Field(default=None, alias="onDelete")
    on_update: Optional[str] = Field(default=None, alias="onUpdate")
    constrained: bool = True


class MorphsConfig(TypeConfig):
    kind: Literal["morphs"] = "morphs"
    morph_name: Optional[str] = None
    id_column: Optional[str] = None
    type_column: Optional[str] = None


class GenericConfig(TypeConfig):
    """Fallback for plugin types: keeps every unknown key as an opaque extra."""

    model_config = ConfigDict(
        strict=False,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )

    kind: Literal["generic"] = "generic"

    @property
    def extras(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


AnyTypeConfig = Union[
    StringConfig,
    NumericConfig,
    TemporalConfig,
    EnumConfig,
    SetConfig,
    SpatialConfig,
    ForeignIdConfig,
    MorphsConfig,
    GenericConfig,
]


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RelationshipType",
    "NON_FILLABLE_FIELDS",
    "DEFAULT_NAMESPACE",
    "FieldDefinition",
    "RelationshipDefinition",
    "Schema",
    "TypeConfig",
    "StringConfig",
    "NumericConfig",
    "TemporalConfig",
    "EnumConfig",
    "SetConfig",
    "SpatialConfig",
    "ForeignIdConfig",
    "MorphsConfig",
    "GenericConfig",
    "AnyTypeConfig",
]

logger.debug("modelschema.models loaded: %d public symbols.", len(__all__))
