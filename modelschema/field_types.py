# File: modelschema/field_types.py
"""
ModelSchema - Field-Type Handlers
==================================
The ``FieldTypeHandler`` capability contract and every built-in handler.

A handler answers all type-specific questions about a field:

    validate(config)               → list of human-readable error messages
    cast_type(config)              → model cast (``"integer"``, ``"array"`` …)
    migration_definition(name, c)  → migration column call string
    default_value(config)          → effective default
    is_fillable(name, config)      → mass-assignable?
    factory_value(config)          → fake-data expression string

Handlers are stateless; the registry memoises one instance per type.

``config`` is always the flat mapping produced by
``FieldDefinition.handler_config()``: structural keys the author set plus the
field's ``attributes``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Tuple, Type

from modelschema.models import (
    NON_FILLABLE_FIELDS,
    EnumConfig,
    ForeignIdConfig,
    GenericConfig,
    MorphsConfig,
    NumericConfig,
    SetConfig,
    SpatialConfig,
    StringConfig,
    TemporalConfig,
    TypeConfig,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.field_types")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

COMMON_ATTRIBUTES: FrozenSet[str] = frozenset(
    {"nullable", "default", "comment", "index", "unique", "rules", "validation"}
)

# Operations a handler (built-in or plugin) must provide
CAPABILITIES: Tuple[str, ...] = (
    "type_name",
    "aliases",
    "validate",
    "cast_type",
    "migration_definition",
    "default_value",
    "is_fillable",
    "factory_value",
)

# MySQL caps a SET column at 64 members
MAX_SET_VALUES: int = 64

FOREIGN_KEY_ACTIONS: Tuple[str, ...] = ("cascade", "restrict", "set null", "no action")

GEOMETRY_TYPES: Tuple[str, ...] = (
    "GEOMETRY",
    "POINT",
    "LINESTRING",
    "POLYGON",
    "MULTIPOINT",
    "MULTILINESTRING",
    "MULTIPOLYGON",
    "GEOMETRYCOLLECTION",
)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _render_param(value: Any) -> str:
    if isinstance(value, str):
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_render_param(v) for v in value) + "]"
    return repr(value)


# ---------------------------------------------------------------------------
# Base handler
# ---------------------------------------------------------------------------


class FieldTypeHandler(ABC):
    """
    Base class for all field-type handlers.

    Subclasses set ``TYPE_NAME`` / ``ALIASES`` / ``SPECIFIC_ATTRIBUTES`` and
    implement ``migration_method`` and ``factory_value``; everything else has
    a sensible default.
    """

    TYPE_NAME: ClassVar[str] = ""
    ALIASES: ClassVar[Tuple[str, ...]] = ()
    SPECIFIC_ATTRIBUTES: ClassVar[Tuple[str, ...]] = ()
    CAST_TYPE: ClassVar[Optional[str]] = None
    config_model: ClassVar[Type[TypeConfig]] = GenericConfig

    # -- Identity -----------------------------------------------------------

    def type_name(self) -> str:
        return self.TYPE_NAME

    def aliases(self) -> List[str]:
        return list(self.ALIASES)

    # -- Attributes ---------------------------------------------------------

    def supported_attributes(self) -> FrozenSet[str]:
        return COMMON_ATTRIBUTES | frozenset(self.SPECIFIC_ATTRIBUTES)

    def supports_attribute(self, attribute: str) -> bool:
        return attribute in self.supported_attributes()

    def unsupported_attributes(self, config: Dict[str, Any]) -> List[str]:
        return [key for key in config if not self.supports_attribute(key)]

    # -- Capabilities -------------------------------------------------------

    def validate(self, config: Dict[str, Any]) -> List[str]:
        """Type-specific error messages; empty list when the config is sound."""
        return []

    def cast_type(self, config: Dict[str, Any]) -> Optional[str]:
        return self.CAST_TYPE

    @abstractmethod
    def migration_method(self) -> str:
        """Name of the migration column builder."""

    def migration_parameters(self, config: Dict[str, Any]) -> List[Any]:
        params: List[Any] = []
        if self.supports_attribute("length") and config.get("length") is not None:
            params.append(config["length"])
        if self.supports_attribute("precision") and config.get("precision") is not None:
            params.append(config["precision"])
            if self.supports_attribute("scale") and config.get("scale") is not None:
                params.append(config["scale"])
        return params

    def migration_definition(self, field_name: str, config: Dict[str, Any]) -> str:
        """
        Render the migration column call, e.g.
        ``table.decimal('price', 10, 2).nullable()``.
        """
        params: List[str] = [repr(field_name)]
        params.extend(_render_param(p) for p in self.migration_parameters(config))
        call: str = f"table.{self.migration_method()}({', '.join(params)})"
        if config.get("nullable"):
            call += ".nullable()"
        if config.get("unique"):
            call += ".unique()"
        if config.get("index"):
            call += ".index()"
        if config.get("default") is not None:
            call += f".default({_render_param(config['default'])})"
        if config.get("comment"):
            call += f".comment({config['comment']!r})"
        return call

    def default_value(self, config: Dict[str, Any]) -> Any:
        return config.get("default")

    def is_fillable(self, field_name: str, config: Dict[str, Any]) -> bool:
        if field_name in NON_FILLABLE_FIELDS:
            return False
        return not config.get("auto_increment", False)

    @abstractmethod
    def factory_value(self, config: Dict[str, Any]) -> str:
        """Fake-data expression used by generated model factories."""

    # -- Parser / typed view ------------------------------------------------

    def transform_config(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """Normalise a field's attribute map at parse time."""
        return dict(attributes)

    def typed_config(self, config: Dict[str, Any]) -> TypeConfig:
        """
        Build the strongly-typed configuration struct for this type.

        Raises ``pydantic.ValidationError`` for configs that ``validate``
        would also reject.
        """
        return self.config_model.model_validate(config)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.type_name()}>"


# ---------------------------------------------------------------------------
# Shared validation snippets
# ---------------------------------------------------------------------------


def _validate_length(config: Dict[str, Any]) -> List[str]:
    if "length" in config and config["length"] is not None:
        length: Any = config["length"]
        if not _is_int(length) or length < 1:
            return ["Length must be a positive integer"]
    return []


def _validate_precision_scale(config: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    precision: Any = config.get("precision")
    scale: Any = config.get("scale")
    if precision is not None and (not _is_int(precision) or precision < 1):
        errors.append("Precision must be a positive integer")
    if scale is not None and (not _is_int(scale) or scale < 0):
        errors.append("Scale must be a non-negative integer")
    if _is_int(precision) and _is_int(scale) and scale > precision:
        errors.append("Scale cannot be greater than precision")
    return errors


def _validate_fractional_seconds(config: Dict[str, Any]) -> List[str]:
    precision: Any = config.get("precision")
    if precision is not None and (not _is_int(precision) or not 0 <= precision <= 6):
        return ["Precision must be an integer between 0 and 6"]
    return []


def _validate_srid(config: Dict[str, Any]) -> List[str]:
    srid: Any = config.get("srid")
    if srid is not None and (not _is_int(srid) or srid < 0):
        return ["SRID must be a positive integer"]
    return []


def _validate_value_list(config: Dict[str, Any], label: str) -> List[str]:
    """Shared ``values`` checks for enum and set. Stops at the first structural problem."""
    if "values" not in config:
        return [f"{label} field requires 'values' to be defined"]
    values: Any = config["values"]
    if not isinstance(values, (list, tuple)):
        return [f"{label} 'values' must be an array"]
    if not values:
        return [f"{label} 'values' cannot be empty"]
    seen: List[Any] = []
    dupes: List[Any] = []
    for v in values:
        if v in seen and v not in dupes:
            dupes.append(v)
        seen.append(v)
    if dupes:
        return [f"{label} 'values' must be unique (duplicates: {dupes})"]
    return []


# ---------------------------------------------------------------------------
# String-likes
# ---------------------------------------------------------------------------


class StringFieldType(FieldTypeHandler):
    TYPE_NAME = "string"
    ALIASES = ("varchar", "char")
    SPECIFIC_ATTRIBUTES = ("length", "fixed")
    CAST_TYPE = "string"
    config_model = StringConfig

    def validate(self, config: Dict[str, Any]) -> List[str]:
        return _validate_length(config)

    def migration_method(self) -> str:
        return "string"

    def migration_definition(self, field_name: str, config: Dict[str, Any]) -> str:
        call: str = super().migration_definition(field_name, config)
        if config.get("fixed"):
            call = call.replace("table.string(", "table.char(", 1)
        return call

    def factory_value(self, config: Dict[str, Any]) -> str:
        length: Any = config.get("length")
        if _is_int(length) and length < 10:
            return f"fake.pystr(max_chars={length})"
        return "fake.sentence(nb_words=3)"


class EmailFieldType(StringFieldType):
    TYPE_NAME = "email"
    ALIASES = ("email_address",)

    def migration_parameters(self, config: Dict[str, Any]) -> List[Any]:
        return [config.get("length", 255)]

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.unique.safe_email()"


class TextFieldType(FieldTypeHandler):
    TYPE_NAME = "text"
    SPECIFIC_ATTRIBUTES = ("size",)
    CAST_TYPE = "string"

    def migration_method(self) -> str:
        return self.TYPE_NAME

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.paragraph()"


class MediumTextFieldType(TextFieldType):
    TYPE_NAME = "mediumText"
    ALIASES = ("mediumtext",)


class LongTextFieldType(TextFieldType):
    TYPE_NAME = "longText"
    ALIASES = ("longtext",)

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.text(max_nb_chars=2000)"


# ---------------------------------------------------------------------------
# Integer-likes
# ---------------------------------------------------------------------------


class IntegerFieldType(FieldTypeHandler):
    TYPE_NAME = "integer"
    ALIASES = ("int",)
    SPECIFIC_ATTRIBUTES = ("unsigned", "auto_increment", "size")
    CAST_TYPE = "integer"
    MAX_VALUE: ClassVar[int] = 2_147_483_647
    config_model = NumericConfig

    def validate(self, config: Dict[str, Any]) -> List[str]:
        errors: List[str] = []
        for flag in ("unsigned", "auto_increment"):
            if flag in config and not isinstance(config[flag], bool):
                errors.append(f"'{flag}' must be a boolean value")
        return errors

    def migration_method(self) -> str:
        return self.TYPE_NAME

    def migration_definition(self, field_name: str, config: Dict[str, Any]) -> str:
        call: str = super().migration_definition(field_name, config)
        if config.get("unsigned"):
            call += ".unsigned()"
        return call

    def factory_value(self, config: Dict[str, Any]) -> str:
        return f"fake.random_int(min=0, max={min(self.MAX_VALUE, 1_000_000)})"


class BigIntegerFieldType(IntegerFieldType):
    TYPE_NAME = "bigInteger"
    ALIASES = ("bigint", "long")
    MAX_VALUE = 9_223_372_036_854_775_807


class TinyIntegerFieldType(IntegerFieldType):
    TYPE_NAME = "tinyInteger"
    ALIASES = ("tinyint",)
    MAX_VALUE = 127


class SmallIntegerFieldType(IntegerFieldType):
    TYPE_NAME = "smallInteger"
    ALIASES = ("smallint",)
    MAX_VALUE = 32_767


class MediumIntegerFieldType(IntegerFieldType):
    TYPE_NAME = "mediumInteger"
    ALIASES = ("mediumint",)
    MAX_VALUE = 8_388_607


class UnsignedBigIntegerFieldType(IntegerFieldType):
    TYPE_NAME = "unsignedBigInteger"
    ALIASES = ("unsigned_big_integer", "unsigned_bigint")
    MAX_VALUE = 9_223_372_036_854_775_807


# ---------------------------------------------------------------------------
# Fixed / floating point
# ---------------------------------------------------------------------------


class DecimalFieldType(FieldTypeHandler):
    TYPE_NAME = "decimal"
    ALIASES = ("numeric", "money")
    SPECIFIC_ATTRIBUTES = ("precision", "scale", "unsigned")
    DEFAULT_PRECISION: ClassVar[int] = 8
    DEFAULT_SCALE: ClassVar[int] = 2
    config_model = NumericConfig

    def validate(self, config: Dict[str, Any]) -> List[str]:
        return _validate_precision_scale(config)

    def cast_type(self, config: Dict[str, Any]) -> Optional[str]:
        return f"decimal:{config.get('scale', self.DEFAULT_SCALE)}"

    def migration_method(self) -> str:
        return "decimal"

    def migration_parameters(self, config: Dict[str, Any]) -> List[Any]:
        return [
            config.get("precision", self.DEFAULT_PRECISION),
            config.get("scale", self.DEFAULT_SCALE),
        ]

    def factory_value(self, config: Dict[str, Any]) -> str:
        precision: Any = config.get("precision", self.DEFAULT_PRECISION)
        scale: Any = config.get("scale", self.DEFAULT_SCALE)
        left: int = max(1, int(precision) - int(scale))
        return f"fake.pydecimal(left_digits={left}, right_digits={int(scale)}, positive=True)"


class FloatFieldType(FieldTypeHandler):
    TYPE_NAME = "float"
    ALIASES = ("real",)
    SPECIFIC_ATTRIBUTES = ("precision", "scale", "unsigned")
    CAST_TYPE = "float"
    config_model = NumericConfig

    def validate(self, config: Dict[str, Any]) -> List[str]:
        return _validate_precision_scale(config)

    def migration_method(self) -> str:
        return self.TYPE_NAME

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.pyfloat(min_value=0, max_value=1000, right_digits=2)"


class DoubleFieldType(FloatFieldType):
    TYPE_NAME = "double"
    ALIASES = ("double_precision",)
    CAST_TYPE = "double"


class BooleanFieldType(FieldTypeHandler):
    TYPE_NAME = "boolean"
    ALIASES = ("bool",)
    CAST_TYPE = "boolean"

    def validate(self, config: Dict[str, Any]) -> List[str]:
        if config.get("default") is not None and not isinstance(config["default"], bool):
            return ["Default value must be a boolean"]
        return []

    def migration_method(self) -> str:
        return "boolean"

    def default_value(self, config: Dict[str, Any]) -> Any:
        return bool(config.get("default", False))

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.pybool()"


# ---------------------------------------------------------------------------
# Temporal
# ---------------------------------------------------------------------------


class DateFieldType(FieldTypeHandler):
    TYPE_NAME = "date"
    SPECIFIC_ATTRIBUTES = ("format", "use_current")
    CAST_TYPE = "date"
    config_model = TemporalConfig

    def migration_method(self) -> str:
        return "date"

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.date_object()"


class DateTimeFieldType(FieldTypeHandler):
    TYPE_NAME = "datetime"
    SPECIFIC_ATTRIBUTES = ("format", "timezone", "use_current", "precision")
    CAST_TYPE = "datetime"
    config_model = TemporalConfig

    def validate(self, config: Dict[str, Any]) -> List[str]:
        return _validate_fractional_seconds(config)

    def migration_method(self) -> str:
        return "dateTime"

    def migration_parameters(self, config: Dict[str, Any]) -> List[Any]:
        precision: Any = config.get("precision")
        return [precision] if precision is not None else []

    def migration_definition(self, field_name: str, config: Dict[str, Any]) -> str:
        call: str = super().migration_definition(field_name, config)
        if config.get("use_current"):
            call += ".use_current()"
        return call

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.date_time()"


class TimeFieldType(DateTimeFieldType):
    TYPE_NAME = "time"
    SPECIFIC_ATTRIBUTES = ("format", "precision")
    CAST_TYPE = "string"

    def migration_method(self) -> str:
        return "time"

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.time()"


class TimestampFieldType(DateTimeFieldType):
    TYPE_NAME = "timestamp"
    SPECIFIC_ATTRIBUTES = ("precision", "use_current", "timezone")
    CAST_TYPE = "datetime"

    def migration_method(self) -> str:
        return "timestamp"


# ---------------------------------------------------------------------------
# Structured / opaque
# ---------------------------------------------------------------------------


class JsonFieldType(FieldTypeHandler):
    TYPE_NAME = "json"
    ALIASES = ("jsonb",)
    SPECIFIC_ATTRIBUTES = ("schema",)
    CAST_TYPE = "array"

    def migration_method(self) -> str:
        return "json"

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.pydict(nb_elements=3, value_types=[str, int])"


class UuidFieldType(FieldTypeHandler):
    TYPE_NAME = "uuid"
    ALIASES = ("guid",)
    CAST_TYPE = "string"

    def migration_method(self) -> str:
        return "uuid"

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.uuid4()"


class BinaryFieldType(FieldTypeHandler):
    TYPE_NAME = "binary"
    ALIASES = ("blob",)
    SPECIFIC_ATTRIBUTES = ("size",)
    SIZES: ClassVar[Dict[str, str]] = {"medium": "mediumBinary", "long": "longBinary"}

    def validate(self, config: Dict[str, Any]) -> List[str]:
        size: Any = config.get("size")
        if size is not None and size not in ("tiny", "medium", "long"):
            return ["Size must be one of: tiny, medium, long"]
        return []

    def migration_method(self) -> str:
        return "binary"

    def migration_definition(self, field_name: str, config: Dict[str, Any]) -> str:
        method: str = self.SIZES.get(config.get("size", ""), "binary")
        return super().migration_definition(field_name, config).replace(
            "table.binary(", f"table.{method}(", 1
        )

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.binary(length=16)"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class EnumFieldType(FieldTypeHandler):
    TYPE_NAME = "enum"
    ALIASES = ("enumeration",)
    SPECIFIC_ATTRIBUTES = ("values", "default_value", "strict")
    CAST_TYPE = "string"
    config_model = EnumConfig

    def validate(self, config: Dict[str, Any]) -> List[str]:
        errors: List[str] = _validate_value_list(config, "Enum")
        if errors:
            return errors
        values: List[Any] = list(config["values"])
        default: Any = self.default_value(config)
        if default is not None and default not in values:
            errors.append(
                f"Default value '{default}' is not one of the enum values: "
                f"{', '.join(str(v) for v in values)}"
            )
        return errors

    def default_value(self, config: Dict[str, Any]) -> Any:
        if config.get("default") is not None:
            return config["default"]
        return config.get("default_value")

    def migration_method(self) -> str:
        return "enum"

    def migration_parameters(self, config: Dict[str, Any]) -> List[Any]:
        return [list(config.get("values", []))]

    def factory_value(self, config: Dict[str, Any]) -> str:
        return f"fake.random_element(elements={_render_param(list(config.get('values', [])))})"


class SetFieldType(FieldTypeHandler):
    TYPE_NAME = "set"
    ALIASES = ("multi_select", "multiple_choice")
    SPECIFIC_ATTRIBUTES = ("values", "separator", "max_selections")
    CAST_TYPE = "array"
    config_model = SetConfig

    def validate(self, config: Dict[str, Any]) -> List[str]:
        errors: List[str] = _validate_value_list(config, "Set")
        if errors:
            return errors
        values: List[Any] = list(config["values"])

        if len(values) > MAX_SET_VALUES:
            errors.append(
                f"Set field cannot have more than {MAX_SET_VALUES} values "
                f"({len(values)} given)"
            )

        if "separator" in config:
            separator: Any = config["separator"]
            if not isinstance(separator, str) or not separator:
                errors.append("Separator must be a non-empty string")

        if "max_selections" in config:
            max_sel: Any = config["max_selections"]
            if not _is_int(max_sel) or max_sel < 1:
                errors.append("max_selections must be a positive integer")
            elif max_sel > len(values):
                errors.append("max_selections cannot be greater than the number of available values")

        for member in self.default_value(config) or []:
            if member not in values:
                errors.append(f"Default value '{member}' is not one of the set values")
        return errors

    def default_value(self, config: Dict[str, Any]) -> Any:
        default: Any = config.get("default")
        if default is None:
            return None
        if isinstance(default, str):
            separator: Any = config.get("separator", ",")
            if not isinstance(separator, str) or not separator:
                separator = ","
            return [part.strip() for part in default.split(separator) if part.strip()]
        if isinstance(default, (list, tuple)):
            return list(default)
        return [default]

    def migration_method(self) -> str:
        return "set"

    def migration_parameters(self, config: Dict[str, Any]) -> List[Any]:
        return [list(config.get("values", []))]

    def factory_value(self, config: Dict[str, Any]) -> str:
        values: List[Any] = list(config.get("values", []))
        length: Any = config.get("max_selections") or max(1, len(values))
        return (
            f"fake.random_elements(elements={_render_param(values)}, "
            f"length={length}, unique=True)"
        )


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------


class ForeignIdFieldType(FieldTypeHandler):
    TYPE_NAME = "foreignId"
    ALIASES = ("foreign_id", "fk")
    SPECIFIC_ATTRIBUTES = (
        "references",
        "on",
        "onDelete",
        "onUpdate",
        "on_delete",
        "on_update",
        "constrained",
    )
    CAST_TYPE = "integer"
    config_model = ForeignIdConfig

    def validate(self, config: Dict[str, Any]) -> List[str]:
        errors: List[str] = []
        for label, keys in (("onDelete", ("onDelete", "on_delete")), ("onUpdate", ("onUpdate", "on_update"))):
            for key in keys:
                if key in config and config[key] not in FOREIGN_KEY_ACTIONS:
                    errors.append(f"{label} must be one of: {', '.join(FOREIGN_KEY_ACTIONS)}")
        return errors

    def transform_config(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(attributes)
        for key in ("onDelete", "onUpdate", "on_delete", "on_update"):
            if isinstance(result.get(key), str):
                result[key] = result[key].lower()
        return result

    def migration_method(self) -> str:
        return "foreignId"

    def migration_definition(self, field_name: str, config: Dict[str, Any]) -> str:
        call: str = super().migration_definition(field_name, config)
        if config.get("constrained", True):
            table: Any = config.get("on")
            call += f".constrained({table!r})" if table else ".constrained()"
        on_delete: Any = config.get("onDelete", config.get("on_delete"))
        if on_delete:
            call += f".on_delete({on_delete!r})"
        on_update: Any = config.get("onUpdate", config.get("on_update"))
        if on_update:
            call += f".on_update({on_update!r})"
        return call

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "fake.random_int(min=1, max=1000)"


class MorphsFieldType(FieldTypeHandler):
    TYPE_NAME = "morphs"
    ALIASES = ("polymorphic",)
    SPECIFIC_ATTRIBUTES = ("morph_name", "id_column", "type_column")
    config_model = MorphsConfig

    def validate(self, config: Dict[str, Any]) -> List[str]:
        if "morph_name" in config and not isinstance(config["morph_name"], str):
            return ["Morph name must be a string"]
        return []

    def migration_method(self) -> str:
        return "morphs"

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "None"


# ---------------------------------------------------------------------------
# Spatial
# ---------------------------------------------------------------------------


class PointFieldType(FieldTypeHandler):
    TYPE_NAME = "point"
    ALIASES = ("geopoint", "coordinates", "latlng")
    SPECIFIC_ATTRIBUTES = ("srid", "dimension", "dimensions")
    CAST_TYPE = "string"
    config_model = SpatialConfig

    def validate(self, config: Dict[str, Any]) -> List[str]:
        errors: List[str] = _validate_srid(config)
        if "dimension" in config and config["dimension"] not in ("2D", "3D"):
            errors.append("Dimension must be either '2D' or '3D'")
        return errors

    def migration_method(self) -> str:
        return "point"

    def migration_parameters(self, config: Dict[str, Any]) -> List[Any]:
        srid: Any = config.get("srid")
        return [srid] if srid is not None else []

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "'POINT(%s %s)' % (fake.longitude(), fake.latitude())"


class GeometryFieldType(PointFieldType):
    TYPE_NAME = "geometry"
    ALIASES = ("geom", "spatial", "geo")
    SPECIFIC_ATTRIBUTES = ("geometry_type", "srid", "dimensions")

    def validate(self, config: Dict[str, Any]) -> List[str]:
        errors: List[str] = _validate_srid(config)
        dimensions: Any = config.get("dimensions")
        if dimensions is not None and (not _is_int(dimensions) or dimensions not in (2, 3)):
            errors.append("Dimensions must be either 2 or 3")
        geometry_type: Any = config.get("geometry_type")
        if geometry_type is not None and str(geometry_type).upper() not in GEOMETRY_TYPES:
            errors.append("Invalid geometry type. Must be one of: " + ", ".join(GEOMETRY_TYPES))
        return errors

    def migration_method(self) -> str:
        return "geometry"


class PolygonFieldType(PointFieldType):
    TYPE_NAME = "polygon"
    ALIASES = ("area", "boundary", "region")
    SPECIFIC_ATTRIBUTES = ("srid", "dimension", "allow_holes")

    def validate(self, config: Dict[str, Any]) -> List[str]:
        errors: List[str] = super().validate(config)
        if "allow_holes" in config and not isinstance(config["allow_holes"], bool):
            errors.append("allow_holes must be a boolean value")
        return errors

    def migration_method(self) -> str:
        return "polygon"

    def factory_value(self, config: Dict[str, Any]) -> str:
        return "'POLYGON((0 0, 0 1, 1 1, 1 0, 0 0))'"


# ---------------------------------------------------------------------------
# Built-in catalogue
# ---------------------------------------------------------------------------

BUILTIN_HANDLERS: Tuple[Type[FieldTypeHandler], ...] = (
    StringFieldType,
    EmailFieldType,
    TextFieldType,
    MediumTextFieldType,
    LongTextFieldType,
    IntegerFieldType,
    BigIntegerFieldType,
    TinyIntegerFieldType,
    SmallIntegerFieldType,
    MediumIntegerFieldType,
    UnsignedBigIntegerFieldType,
    DecimalFieldType,
    FloatFieldType,
    DoubleFieldType,
    BooleanFieldType,
    DateFieldType,
    DateTimeFieldType,
    TimeFieldType,
    TimestampFieldType,
    JsonFieldType,
    UuidFieldType,
    BinaryFieldType,
    EnumFieldType,
    SetFieldType,
    ForeignIdFieldType,
    MorphsFieldType,
    PointFieldType,
    GeometryFieldType,
    PolygonFieldType,
)

TEXT_TYPES: FrozenSet[str] = frozenset({"text", "mediumText", "longText"})


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "COMMON_ATTRIBUTES",
    "CAPABILITIES",
    "MAX_SET_VALUES",
    "FOREIGN_KEY_ACTIONS",
    "GEOMETRY_TYPES",
    "FieldTypeHandler",
    "BUILTIN_HANDLERS",
    "TEXT_TYPES",
] + [h.__name__ for h in BUILTIN_HANDLERS]

logger.debug("modelschema.field_types loaded: %d public symbols.", len(__all__))
