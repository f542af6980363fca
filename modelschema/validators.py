# File: modelschema/validators.py
"""
ModelSchema - Consistency Validators
=====================================
A **pure-function validation pipeline** over parsed ``Schema`` entities.

Pydantic handles per-entity structural correctness at parse time.  This
module adds the semantic checks, in two groups:

- *single-schema* checks: required parts, field types and their
  configuration, performance heuristics;
- *schema-set* checks, which treat the loaded set as a dependency graph:
  circular ``belongsTo`` chains, missing inverse relationships, dangling
  relationship targets and validation rules that reference unknown tables
  or columns.

Every check accumulates into a ``ValidationResult`` (or a report built on
one); nothing raises for a semantic problem.  Warnings never affect
validity.

Usage:
    from modelschema.validators import validate_full
    result = validate_full(schemas, registry)
    if not result.is_valid:
        print(result.format_report())
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from modelschema.errors import (
    DanglingReference,
    InvalidFieldConfig,
    UnknownFieldType,
    UnknownRelationshipType,
)
from modelschema.field_types import TEXT_TYPES, FieldTypeHandler
from modelschema.models import FieldDefinition, RelationshipType, Schema
from modelschema.registry import FieldTypeRegistry, get_default_registry
from modelschema.utils import Timer

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    @property
    def is_info(self) -> bool:
        return self.level == "info"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return (self.level, self.code, self.message) == (other.level, other.code, other.message)

    def __hash__(self) -> int:
        return hash((self.level, self.code, self.message))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """
    Accumulates ``ValidationError`` instances produced by the pipeline.

    Provides O(1) access to counts and O(n) filtering.
    """

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        """Merge another result into this one. O(k) where k = len(other)."""
        self._items.extend(other._items)

    def deduplicated(self) -> "ValidationResult":
        """Copy without repeated (level, code, message) items, first wins."""
        result: ValidationResult = ValidationResult()
        seen: Set[ValidationError] = set()
        for item in self._items:
            if item not in seen:
                seen.add(item)
                result._items.append(item)
        return result

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def infos(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_info]

    @property
    def all_items(self) -> List[ValidationError]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "info": [i.to_dict() for i in self.infos],
        }

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.context:
                for k, v in item.context.items():
                    lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Report records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MissingInverse:
    """A relationship whose target model declares nothing pointing back."""

    from_model: str
    to_model: str
    relationship: str
    expected_inverse: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "from_model": self.from_model,
            "to_model": self.to_model,
            "relationship": self.relationship,
            "expected_inverse": self.expected_inverse,
        }


@dataclass(frozen=False, slots=True)
class RelationshipConsistencyReport:
    """Graph-level relationship checks over a schema set."""

    circular_dependencies: List[Tuple[str, str]] = field(default_factory=list)
    missing_inverse_relationships: List[MissingInverse] = field(default_factory=list)
    result: ValidationResult = field(default_factory=ValidationResult)
    total_schemas: int = 0
    valid_relationships: int = 0

    @property
    def is_consistent(self) -> bool:
        return self.result.is_valid

    @property
    def errors(self) -> List[str]:
        return [e.message for e in self.result.errors]

    @property
    def warnings(self) -> List[str]:
        return [w.message for w in self.result.warnings]

    @property
    def summary(self) -> Dict[str, int]:
        return {
            "total_schemas": self.total_schemas,
            "valid_relationships": self.valid_relationships,
            "issues_found": len(self.circular_dependencies)
            + len(self.missing_inverse_relationships),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_consistent": self.is_consistent,
            "circular_dependencies": [list(c) for c in self.circular_dependencies],
            "missing_inverse_relationships": [
                m.to_dict() for m in self.missing_inverse_relationships
            ],
            "errors": self.errors,
            "warnings": self.warnings,
            "validation_summary": self.summary,
        }


@dataclass(frozen=False, slots=True)
class RuleValidationReport:
    """Outcome of ``validate_validation_rules``."""

    result: ValidationResult = field(default_factory=ValidationResult)
    total_rules: int = 0
    valid_rules: int = 0
    invalid_rules: int = 0
    custom_rules: int = 0

    @property
    def is_valid(self) -> bool:
        return self.result.is_valid

    @property
    def errors(self) -> List[str]:
        return [e.message for e in self.result.errors]

    @property
    def warnings(self) -> List[str]:
        return [w.message for w in self.result.warnings]

    @property
    def statistics(self) -> Dict[str, int]:
        return {
            "total_rules": self.total_rules,
            "valid_rules": self.valid_rules,
            "invalid_rules": self.invalid_rules,
            "custom_rules": self.custom_rules,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "statistics": self.statistics,
        }


@dataclass(frozen=False, slots=True)
class PerformanceReport:
    """Size heuristics for one schema."""

    schema_name: str = ""
    field_count: int = 0
    relationship_count: int = 0
    relationship_types: Dict[str, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def performance_score(self) -> int:
        score: int = 100
        score -= min(50, self.field_count)
        score -= min(30, self.relationship_count * 2)
        return max(0, score)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_name": self.schema_name,
            "field_count": self.field_count,
            "relationship_count": self.relationship_count,
            "relationship_types": dict(self.relationship_types),
            "warnings": list(self.warnings),
            "recommendations": list(self.recommendations),
            "performance_score": self.performance_score,
        }


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SchemaSet = Union[Schema, Iterable[Schema]]

MANY_FIELDS_THRESHOLD: int = 20
MANY_RELATIONSHIPS_THRESHOLD: int = 10
EAGER_LOADING_THRESHOLD: int = 5
LARGE_IN_LIST_THRESHOLD: int = 50
MAX_COLUMN_LENGTH: int = 65535
MAX_DECIMAL_PRECISION: int = 65

NUMERIC_CONSTRAINTS: Tuple[str, ...] = ("length", "precision", "scale")

# Columns every generated table carries even when not declared
IMPLICIT_COLUMNS: Tuple[str, ...] = ("id", "created_at", "updated_at", "deleted_at")

_NUMERIC_PARAM_RULES: Tuple[str, ...] = ("min", "max", "size", "digits")
_RANGE_RULES: Tuple[str, ...] = ("between", "digits_between")
_FIELD_REFERENCE_RULES: Tuple[str, ...] = (
    "required_if",
    "required_unless",
    "required_with",
    "required_with_all",
    "required_without",
    "required_without_all",
    "prohibited_if",
    "prohibited_unless",
)
_REGEX_RULES: Tuple[str, ...] = ("regex", "not_regex")

_BASIC_RULES: frozenset = frozenset(
    {
        "required", "nullable", "sometimes", "present", "filled", "prohibited",
        "string", "integer", "numeric", "decimal", "boolean", "array", "json",
        "email", "url", "active_url", "uuid", "ulid", "ip", "ipv4", "ipv6",
        "mac_address", "date", "date_format", "date_equals", "after",
        "after_or_equal", "before", "before_or_equal", "timezone", "alpha",
        "alpha_num", "alpha_dash", "ascii", "lowercase", "uppercase",
        "accepted", "declined", "confirmed", "same", "different", "distinct",
        "gt", "gte", "lt", "lte", "multiple_of", "starts_with", "ends_with",
        "doesnt_start_with", "doesnt_end_with", "file", "image", "mimes",
        "mimetypes", "dimensions", "bail", "exclude", "current_password",
    }
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _as_list(schemas: SchemaSet) -> List[Schema]:
    if isinstance(schemas, Schema):
        return [schemas]
    return list(schemas)


def _index_by_name(schemas: List[Schema]) -> Dict[str, Schema]:
    return {schema.name: schema for schema in schemas}


def _dependency_graph(schemas: List[Schema]) -> Dict[str, List[str]]:
    """Model → models it owns a reference to (``belongsTo``), self-edges dropped."""
    graph: Dict[str, List[str]] = {}
    for schema in schemas:
        targets: List[str] = graph.setdefault(schema.name, [])
        for rel in schema.relationships.values():
            if not rel.is_owning or not rel.model:
                continue
            target: str = rel.target_basename
            if target != schema.name and target not in targets:
                targets.append(target)
    return graph


def _split_rules(rule: str) -> List[str]:
    """Split ``a|b|regex:/x|y/`` into rules; everything after ``regex:`` stays whole."""
    parts: List[str] = rule.split("|")
    rules: List[str] = []
    for index, part in enumerate(parts):
        stripped: str = part.strip()
        if stripped.startswith(tuple(f"{r}:" for r in _REGEX_RULES)):
            rules.append("|".join(parts[index:]).strip())
            break
        if stripped:
            rules.append(stripped)
    return rules


def _regex_body(pattern: str) -> str:
    """Strip ``/…/flags`` delimiters from a validation-rule pattern."""
    if len(pattern) >= 2 and pattern[0] == "/":
        end: int = pattern.rfind("/")
        if end > 0:
            return pattern[1:end]
    return pattern


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True


# ---------------------------------------------------------------------------
# Schema-set (graph) checks
# ---------------------------------------------------------------------------


def detect_circular_dependencies(schemas: SchemaSet) -> List[Tuple[str, str]]:
    """
    Detect ``belongsTo`` cycles using iterative DFS with a recursion stack.

    Each back-edge is reported once as ``(from_model, conflicting_model)``
    and is not followed further.

    Complexity: O(S + R).
    """
    graph: Dict[str, List[str]] = _dependency_graph(_as_list(schemas))
    visited: Set[str] = set()
    in_stack: Set[str] = set()
    cycles: List[Tuple[str, str]] = []

    for start in graph:
        if start in visited:
            continue

        visited.add(start)
        in_stack.add(start)
        stack: List[Tuple[str, int]] = [(start, 0)]

        while stack:
            node, next_index = stack[-1]
            neighbours: List[str] = graph.get(node, [])
            if next_index >= len(neighbours):
                stack.pop()
                in_stack.discard(node)
                continue

            stack[-1] = (node, next_index + 1)
            neighbour: str = neighbours[next_index]

            if neighbour in in_stack:
                cycles.append((node, neighbour))
                continue
            if neighbour in visited:
                continue

            visited.add(neighbour)
            in_stack.add(neighbour)
            stack.append((neighbour, 0))

    if not cycles:
        logger.debug("No circular dependencies detected.")
    return cycles


def find_missing_inverse_relationships(schemas: SchemaSet) -> List[MissingInverse]:
    """
    Relationships whose kind requires an inverse (hasOne, hasMany,
    belongsToMany) and whose in-set target declares nothing pointing back.
    """
    schema_list: List[Schema] = _as_list(schemas)
    by_name: Dict[str, Schema] = _index_by_name(schema_list)
    missing: List[MissingInverse] = []

    for schema in schema_list:
        for rel in schema.relationships.values():
            kind: Optional[RelationshipType] = rel.kind
            if kind is None or not kind.requires_inverse or not rel.model:
                continue
            target: Optional[Schema] = by_name.get(rel.target_basename)
            if target is None:
                continue

            has_inverse: bool = any(
                back.model and back.target_basename == schema.name
                for back in target.relationships.values()
            )
            if not has_inverse:
                expected: Optional[RelationshipType] = kind.expected_inverse
                missing.append(
                    MissingInverse(
                        from_model=schema.name,
                        to_model=target.name,
                        relationship=rel.name,
                        expected_inverse=expected.value if expected else "",
                    )
                )
    return missing


def validate_relationship_consistency(schemas: SchemaSet) -> RelationshipConsistencyReport:
    """Cycles are errors, missing inverses are warnings."""
    schema_list: List[Schema] = _as_list(schemas)
    report: RelationshipConsistencyReport = RelationshipConsistencyReport(
        total_schemas=len(schema_list),
        valid_relationships=sum(
            1
            for schema in schema_list
            for rel in schema.relationships.values()
            if rel.kind is not None
        ),
    )

    report.circular_dependencies = detect_circular_dependencies(schema_list)
    for from_model, to_model in report.circular_dependencies:
        report.result.add_error(
            "CIRCULAR_DEPENDENCY",
            f"Circular dependency detected between '{from_model}' and '{to_model}'.",
            {"from_model": from_model, "to_model": to_model},
        )

    report.missing_inverse_relationships = find_missing_inverse_relationships(schema_list)
    for item in report.missing_inverse_relationships:
        report.result.add_warning(
            "MISSING_INVERSE_RELATIONSHIP",
            f"Relationship '{item.from_model}.{item.relationship}' has no inverse on "
            f"'{item.to_model}' (expected {item.expected_inverse}).",
            item.to_dict(),
        )
    return report


def validate_relationship_targets(schemas: SchemaSet) -> ValidationResult:
    """Unknown relationship kinds, missing targets and dangling targets are errors."""
    result: ValidationResult = ValidationResult()
    schema_list: List[Schema] = _as_list(schemas)
    known_models: Set[str] = {schema.name for schema in schema_list}

    for schema in schema_list:
        for rel in schema.relationships.values():
            ctx: Dict[str, Any] = {"schema": schema.name, "relationship": rel.name}
            kind: Optional[RelationshipType] = rel.kind
            if kind is None:
                result.add_error(
                    "UNKNOWN_RELATIONSHIP_TYPE",
                    f"{schema.name}: {UnknownRelationshipType(rel.name, rel.type)}",
                    {**ctx, "type": rel.type},
                )
                continue

            if not rel.model:
                if kind.requires_target:
                    result.add_error(
                        "MISSING_RELATIONSHIP_TARGET",
                        f"Relationship '{schema.name}.{rel.name}' ({kind.value}) "
                        f"must declare a target model.",
                        ctx,
                    )
                continue

            target: str = rel.target_basename
            if target not in known_models:
                reference: DanglingReference = DanglingReference(
                    f"Relationship '{schema.name}.{rel.name}' targets unknown model "
                    f"'{rel.model}'."
                )
                result.add_error(
                    "DANGLING_RELATIONSHIP_TARGET",
                    str(reference),
                    {**ctx, "target": rel.model},
                )
    return result


# ---------------------------------------------------------------------------
# Field-type checks
# ---------------------------------------------------------------------------


def _validate_field(
    schema: Schema,
    fld: FieldDefinition,
    registry: FieldTypeRegistry,
    result: ValidationResult,
) -> None:
    ctx: Dict[str, Any] = {"schema": schema.name, "field": fld.name, "type": fld.type}
    label: str = f"{schema.name}.{fld.name}"

    if not registry.has(fld.type):
        result.add_error("UNKNOWN_FIELD_TYPE", f"{label}: {UnknownFieldType(fld.type)}", ctx)
        return

    handler: FieldTypeHandler = registry.get(fld.type)
    config: Dict[str, Any] = fld.handler_config()

    messages: List[str] = handler.validate(config)
    if (
        fld.precision is not None
        and fld.scale is not None
        and fld.scale > fld.precision
        and "Scale cannot be greater than precision" not in messages
    ):
        messages.append("Scale cannot be greater than precision")
    if messages:
        result.add_error(
            "INVALID_FIELD_CONFIG",
            str(InvalidFieldConfig(label, messages)),
            {**ctx, "messages": messages},
        )
    else:
        try:
            handler.typed_config(config)
        except PydanticValidationError as exc:
            result.add_error(
                "INVALID_FIELD_CONFIG",
                f"Invalid configuration for field '{label}': {exc.error_count()} "
                f"attribute error(s) for type '{fld.type}'",
                {**ctx, "details": [err["msg"] for err in exc.errors()]},
            )

    unsupported: List[str] = [
        key for key in handler.unsupported_attributes(config) if key not in NUMERIC_CONSTRAINTS
    ]
    if unsupported:
        result.add_warning(
            "UNSUPPORTED_ATTRIBUTE",
            f"{label}: attribute(s) {', '.join(unsupported)} not supported by type "
            f"'{handler.type_name()}'.",
            {**ctx, "attributes": unsupported},
        )

    ignored: List[str] = [
        key
        for key in NUMERIC_CONSTRAINTS
        if getattr(fld, key) is not None and not handler.supports_attribute(key)
    ]
    if ignored:
        result.add_warning(
            "IGNORED_NUMERIC_CONSTRAINT",
            f"{label}: {', '.join(ignored)} has no effect on type '{handler.type_name()}'.",
            {**ctx, "constraints": ignored},
        )

    if fld.length is not None and fld.length > MAX_COLUMN_LENGTH:
        result.add_warning(
            "LENGTH_EXCEEDS_LIMIT",
            f"{label}: length {fld.length} exceeds the common limit of {MAX_COLUMN_LENGTH}.",
            ctx,
        )
    if fld.precision is not None and fld.precision > MAX_DECIMAL_PRECISION:
        result.add_warning(
            "PRECISION_EXCEEDS_LIMIT",
            f"{label}: precision {fld.precision} exceeds the common limit of "
            f"{MAX_DECIMAL_PRECISION}.",
            ctx,
        )


def validate_field_types(
    schemas: SchemaSet,
    registry: Optional[FieldTypeRegistry] = None,
) -> ValidationResult:
    """
    Check every effective field against its handler.

    Complexity: O(F) handler calls.
    """
    registry = registry if registry is not None else get_default_registry()
    result: ValidationResult = ValidationResult()
    for schema in _as_list(schemas):
        for fld in schema.effective_fields.values():
            _validate_field(schema, fld, registry, result)
    return result


# ---------------------------------------------------------------------------
# Validation-rule checks
# ---------------------------------------------------------------------------


def _check_rule(
    rule: str,
    schema: Schema,
    fld: FieldDefinition,
    tables: Dict[str, Schema],
    report: RuleValidationReport,
    registry: FieldTypeRegistry,
) -> None:
    keyword, _, raw_params = rule.partition(":")
    keyword = keyword.strip()
    params: List[str] = [p.strip() for p in raw_params.split(",")] if raw_params else []
    label: str = f"{schema.name}.{fld.name}"
    ctx: Dict[str, Any] = {"schema": schema.name, "field": fld.name, "rule": rule}
    errors_before: int = report.result.error_count

    if keyword in ("exists", "unique"):
        if params and params[0]:
            table: str = params[0].split(".")[-1]
            target: Optional[Schema] = tables.get(table)
            if target is None:
                report.result.add_error(
                    "RULE_UNKNOWN_TABLE",
                    f"{label}: rule '{rule}' references non-existent table '{table}'.",
                    ctx,
                )
            elif len(params) > 1 and params[1]:
                column: str = params[1]
                if column not in target.effective_fields and column not in IMPLICIT_COLUMNS:
                    report.result.add_error(
                        "RULE_UNKNOWN_COLUMN",
                        f"{label}: rule '{rule}' references non-existent column "
                        f"'{column}' on table '{table}'.",
                        ctx,
                    )
        if keyword == "unique" and (registry.resolve(fld.type) or fld.type) in TEXT_TYPES:
            report.result.add_warning(
                "RULE_UNIQUE_ON_TEXT",
                f"{label}: unique rule on a {fld.type} column may cause performance issues.",
                ctx,
            )

    elif keyword in ("in", "not_in"):
        values: List[str] = [p for p in params if p]
        if not values:
            report.result.add_error(
                "RULE_EMPTY_VALUES",
                f"{label}: rule '{rule}' has an Empty values list.",
                ctx,
            )
        elif len(values) > LARGE_IN_LIST_THRESHOLD:
            report.result.add_warning(
                "RULE_LARGE_VALUES",
                f"{label}: rule '{keyword}' has a Large number of values ({len(values)}).",
                ctx,
            )

    elif keyword in _REGEX_RULES:
        try:
            re.compile(_regex_body(raw_params))
        except re.error as exc:
            report.result.add_error(
                "RULE_INVALID_REGEX",
                f"{label}: Invalid regex pattern in rule '{rule}': {exc}.",
                ctx,
            )

    elif keyword in _NUMERIC_PARAM_RULES:
        if len(params) != 1 or not _is_number(params[0]):
            report.result.add_error(
                "RULE_INVALID_PARAMETER",
                f"{label}: Invalid parameter for rule '{rule}'.",
                ctx,
            )

    elif keyword in _RANGE_RULES:
        if len(params) != 2 or not all(_is_number(p) for p in params):
            report.result.add_error(
                "RULE_INVALID_PARAMETER",
                f"{label}: Invalid parameter for rule '{rule}'.",
                ctx,
            )
        elif float(params[0]) > float(params[1]):
            report.result.add_error(
                "RULE_INVALID_RANGE",
                f"{label}: Invalid range in rule '{rule}' (min > max).",
                ctx,
            )

    elif keyword in _FIELD_REFERENCE_RULES:
        other: str = params[0] if params else ""
        if other not in schema.effective_fields:
            report.result.add_error(
                "RULE_UNKNOWN_FIELD",
                f"{label}: rule '{rule}' references non-existent field '{other}'.",
                ctx,
            )

    elif keyword not in _BASIC_RULES:
        report.custom_rules += 1
        report.result.add_warning(
            "RULE_UNKNOWN",
            f"{label}: Unknown validation rule '{keyword}'.",
            ctx,
        )

    if report.result.error_count > errors_before:
        report.invalid_rules += 1
    else:
        report.valid_rules += 1


def validate_validation_rules(
    schemas: SchemaSet, registry: Optional[FieldTypeRegistry] = None
) -> RuleValidationReport:
    """
    Check the textual ``validation``/``rules`` of every field.

    Field types are resolved through *registry* (default registry if omitted),
    so aliases such as ``mediumtext`` count as their canonical type.

    ``exists``/``unique`` tables and columns are resolved against the schema
    set; conditional rules must name a field of the same schema.
    """
    schema_list: List[Schema] = _as_list(schemas)
    registry = registry if registry is not None else get_default_registry()
    tables: Dict[str, Schema] = {schema.table: schema for schema in schema_list}
    report: RuleValidationReport = RuleValidationReport()

    for schema in schema_list:
        for fld in schema.effective_fields.values():
            for raw in fld.all_rules:
                for rule in _split_rules(raw):
                    report.total_rules += 1
                    _check_rule(rule, schema, fld, tables, report, registry)

    logger.debug("Rule validation: %s", report.statistics)
    return report


# ---------------------------------------------------------------------------
# Single-schema checks
# ---------------------------------------------------------------------------


def analyze_performance(schema: Schema) -> PerformanceReport:
    """Field/relationship counts, a type histogram and size heuristics."""
    report: PerformanceReport = PerformanceReport(
        schema_name=schema.name,
        field_count=len(schema.effective_fields),
        relationship_count=len(schema.relationships),
        relationship_types=dict(Counter(rel.type for rel in schema.relationships.values())),
    )
    if report.field_count > MANY_FIELDS_THRESHOLD:
        report.warnings.append(
            f"Schema {schema.name} has many fields ({report.field_count}), consider splitting"
        )
    if report.relationship_count > MANY_RELATIONSHIPS_THRESHOLD:
        report.warnings.append(
            f"Schema {schema.name} has many relationships ({report.relationship_count}), "
            f"verify complexity"
        )
    if report.relationship_count > EAGER_LOADING_THRESHOLD:
        report.recommendations.append(
            f"Consider using eager loading for {schema.name} relationships"
        )
    return report


def validate_schema(
    schema: Schema,
    registry: Optional[FieldTypeRegistry] = None,
) -> ValidationResult:
    """
    Run all single-schema validators. Returns a merged ``ValidationResult``.

    Complexity: O(F + R).
    """
    result: ValidationResult = ValidationResult()
    ctx: Dict[str, Any] = {"schema": schema.name}

    if not schema.table:
        result.add_error("MISSING_TABLE_NAME", f"Schema '{schema.name}' must have a table name.", ctx)
    if not schema.effective_fields:
        result.add_error(
            "NO_FIELDS", f"Schema '{schema.name}' must have at least one field.", ctx
        )

    result.merge(validate_field_types([schema], registry))

    for rel in schema.relationships.values():
        if rel.kind is None:
            result.add_error(
                "UNKNOWN_RELATIONSHIP_TYPE",
                f"{schema.name}: {UnknownRelationshipType(rel.name, rel.type)}",
                {**ctx, "relationship": rel.name, "type": rel.type},
            )

    performance: PerformanceReport = analyze_performance(schema)
    for warning in performance.warnings:
        result.add_warning("PERFORMANCE", warning, ctx)
    for recommendation in performance.recommendations:
        result.add_info("RECOMMENDATION", recommendation, ctx)

    logger.debug("Schema '%s' validated: %s", schema.name, result.summary())
    return result


def comprehensive_report(
    schema: Schema,
    registry: Optional[FieldTypeRegistry] = None,
) -> Dict[str, Any]:
    """Everything known about one schema, as a plain dict."""
    validation: ValidationResult = validate_schema(schema, registry)
    performance: PerformanceReport = analyze_performance(schema)
    return {
        "schema_name": schema.name,
        "is_valid": validation.is_valid,
        "errors": [e.message for e in validation.errors],
        "warnings": [w.message for w in validation.warnings],
        "recommendations": list(performance.recommendations),
        "performance_analysis": performance.to_dict(),
        "field_validation": validate_field_types([schema], registry).to_dict(),
        "relationship_validation": {
            "relationship_types": dict(performance.relationship_types),
            "total_relationships": performance.relationship_count,
        },
    }


# ---------------------------------------------------------------------------
# Composite validation orchestrator
# ---------------------------------------------------------------------------


def validate_full(
    schemas: SchemaSet,
    registry: Optional[FieldTypeRegistry] = None,
) -> ValidationResult:
    """
    **Master validation entry point.**

    Runs every single-schema validator on each schema, then the set-level
    relationship, target and rule checks.  Pure: the schemas are not
    touched and the same input always yields the same result.

    Complexity: O(S + F + R + rules).
    """
    schema_list: List[Schema] = _as_list(schemas)
    registry = registry if registry is not None else get_default_registry()
    logger.info("Starting full validation of %d schema(s).", len(schema_list))

    result: ValidationResult = ValidationResult()
    with Timer("validate_full"):
        seen: Set[str] = set()
        for schema in schema_list:
            if schema.name in seen:
                result.add_error(
                    "DUPLICATE_MODEL_NAME",
                    f"Model '{schema.name}' is defined more than once in the schema set.",
                    {"schema": schema.name},
                )
            seen.add(schema.name)
            result.merge(validate_schema(schema, registry))

        result.merge(validate_relationship_consistency(schema_list).result)
        result.merge(validate_relationship_targets(schema_list))
        result.merge(validate_validation_rules(schema_list, registry).result)
        result = result.deduplicated()

    if result.has_errors:
        logger.error(
            "Validation FAILED with %d error(s). %s",
            result.error_count,
            result.summary(),
        )
    else:
        logger.info("Validation PASSED. %s", result.summary())

    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "MissingInverse",
    "RelationshipConsistencyReport",
    "RuleValidationReport",
    "PerformanceReport",
    "detect_circular_dependencies",
    "find_missing_inverse_relationships",
    "validate_relationship_consistency",
    "validate_relationship_targets",
    "validate_field_types",
    "validate_validation_rules",
    "analyze_performance",
    "validate_schema",
    "comprehensive_report",
    "validate_full",
]

logger.debug("modelschema.validators loaded: %d public symbols.", len(__all__))
