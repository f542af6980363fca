# File: modelschema/diff.py
"""
ModelSchema - Schema Diff
==========================
Compares two versions of a schema and classifies every change as safe or
breaking for data already stored under the old version.

Usage:
    from modelschema.diff import compare_schemas
    diff = compare_schemas(old_schema, new_schema)
    if diff.compatibility == "incompatible":
        print(diff.format_report())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from modelschema.models import FieldDefinition, RelationshipDefinition, Schema
from modelschema.registry import FieldTypeRegistry

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.diff")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FULLY_COMPATIBLE: str = "fully_compatible"
PARTIALLY_COMPATIBLE: str = "partially_compatible"
INCOMPATIBLE: str = "incompatible"

IMPACT_HIGH: str = "high"
IMPACT_MEDIUM: str = "medium"

# Widening transitions that never lose data
COMPATIBLE_TYPE_CHANGES: Dict[str, FrozenSet[str]] = {
    "string": frozenset({"text", "mediumText", "longText"}),
    "text": frozenset({"mediumText", "longText"}),
    "mediumText": frozenset({"longText"}),
    "integer": frozenset({"bigInteger"}),
    "smallInteger": frozenset({"integer", "bigInteger"}),
    "tinyInteger": frozenset({"smallInteger", "integer", "bigInteger"}),
    "float": frozenset({"double"}),
    "datetime": frozenset({"timestamp"}),
}

FIELD_ATTRIBUTES: Tuple[str, ...] = (
    "type",
    "nullable",
    "unique",
    "index",
    "default",
    "length",
    "precision",
    "scale",
    "comment",
    "rules",
    "attributes",
)

RELATIONSHIP_ATTRIBUTES: Tuple[str, ...] = (
    "type",
    "model",
    "foreign_key",
    "local_key",
    "pivot_table",
    "pivot_fields",
    "with_timestamps",
    "attributes",
)

BREAKING_RELATIONSHIP_ATTRIBUTES: FrozenSet[str] = frozenset({"type", "model", "foreign_key"})


# ---------------------------------------------------------------------------
# Change records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AttributeChange:
    attribute: str
    old: Any
    new: Any
    breaking: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attribute": self.attribute,
            "old": self.old,
            "new": self.new,
            "breaking": self.breaking,
        }


@dataclass(frozen=False, slots=True)
class FieldChange:
    """A field that was added, removed or modified."""

    name: str
    change: str  # "added" | "removed" | "modified"
    old: Optional[FieldDefinition] = None
    new: Optional[FieldDefinition] = None
    attribute_changes: List[AttributeChange] = field(default_factory=list)

    @property
    def breaking(self) -> bool:
        if self.change == "removed":
            return True
        return any(c.breaking for c in self.attribute_changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "change": self.change,
            "breaking": self.breaking,
            "attribute_changes": [c.to_dict() for c in self.attribute_changes],
        }


@dataclass(frozen=False, slots=True)
class RelationshipChange:
    name: str
    change: str
    old: Optional[RelationshipDefinition] = None
    new: Optional[RelationshipDefinition] = None
    attribute_changes: List[AttributeChange] = field(default_factory=list)

    @property
    def breaking(self) -> bool:
        if self.change == "removed":
            return True
        return any(c.breaking for c in self.attribute_changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "change": self.change,
            "breaking": self.breaking,
            "attribute_changes": [c.to_dict() for c in self.attribute_changes],
        }


@dataclass(frozen=True, slots=True)
class BreakingChange:
    kind: str
    target: str
    description: str
    impact: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "kind": self.kind,
            "target": self.target,
            "description": self.description,
            "impact": self.impact,
        }


@dataclass(frozen=False, slots=True)
class SchemaDiff:
    """Full comparison of two schema versions."""

    old_name: str
    new_name: str
    metadata_changes: Dict[str, Tuple[Any, Any]] = field(default_factory=dict)
    field_changes: List[FieldChange] = field(default_factory=list)
    relationship_changes: List[RelationshipChange] = field(default_factory=list)
    breaking_changes: List[BreakingChange] = field(default_factory=list)

    # -- Views --------------------------------------------------------------

    def _fields(self, change: str) -> List[FieldChange]:
        return [c for c in self.field_changes if c.change == change]

    @property
    def added_fields(self) -> List[FieldChange]:
        return self._fields("added")

    @property
    def removed_fields(self) -> List[FieldChange]:
        return self._fields("removed")

    @property
    def modified_fields(self) -> List[FieldChange]:
        return self._fields("modified")

    @property
    def has_changes(self) -> bool:
        return bool(self.metadata_changes or self.field_changes or self.relationship_changes)

    @property
    def is_breaking(self) -> bool:
        return bool(self.breaking_changes)

    @property
    def compatibility(self) -> str:
        if not self.breaking_changes:
            return FULLY_COMPATIBLE
        if any(b.impact == IMPACT_HIGH for b in self.breaking_changes):
            return INCOMPATIBLE
        return PARTIALLY_COMPATIBLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "old_name": self.old_name,
            "new_name": self.new_name,
            "compatibility": self.compatibility,
            "metadata_changes": {
                key: {"old": old, "new": new} for key, (old, new) in self.metadata_changes.items()
            },
            "field_changes": [c.to_dict() for c in self.field_changes],
            "relationship_changes": [c.to_dict() for c in self.relationship_changes],
            "breaking_changes": [b.to_dict() for b in self.breaking_changes],
        }

    def format_report(self) -> str:
        """Human-readable multi-line report."""
        title: str = (
            self.old_name if self.old_name == self.new_name else f"{self.old_name} → {self.new_name}"
        )
        lines: List[str] = [
            "=" * 60,
            f"  Schema diff: {title}",
            "=" * 60,
            f"  Compatibility : {self.compatibility}",
            f"  Fields        : +{len(self.added_fields)} "
            f"-{len(self.removed_fields)} ~{len(self.modified_fields)}",
            f"  Relationships : {len(self.relationship_changes)} change(s)",
        ]

        if self.metadata_changes:
            lines.append("─" * 60)
            for key, (old, new) in self.metadata_changes.items():
                lines.append(f"  {key}: {old!r} → {new!r}")

        if self.field_changes or self.relationship_changes:
            lines.append("─" * 60)
            symbol: Dict[str, str] = {"added": "+", "removed": "-", "modified": "~"}
            for change in self.field_changes:
                lines.append(f"  {symbol[change.change]} field {change.name}")
                for attr in change.attribute_changes:
                    flag: str = " ✗" if attr.breaking else ""
                    lines.append(f"      {attr.attribute}: {attr.old!r} → {attr.new!r}{flag}")
            for rel_change in self.relationship_changes:
                lines.append(f"  {symbol[rel_change.change]} relationship {rel_change.name}")
                for attr in rel_change.attribute_changes:
                    flag = " ✗" if attr.breaking else ""
                    lines.append(f"      {attr.attribute}: {attr.old!r} → {attr.new!r}{flag}")

        if self.breaking_changes:
            lines.append("─" * 60)
            lines.append("  Breaking changes:")
            for item in self.breaking_changes:
                lines.append(f"    ⚠ [{item.impact}] {item.description}")

        lines.append("=" * 60)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Comparison helpers
# ---------------------------------------------------------------------------


def is_compatible_type_change(old_type: str, new_type: str) -> bool:
    if old_type == new_type:
        return True
    return new_type in COMPATIBLE_TYPE_CHANGES.get(old_type, frozenset())


def _canonical_type(type_name: str, registry: Optional[FieldTypeRegistry]) -> str:
    if registry is None:
        return type_name
    return registry.resolve(type_name) or type_name


def _field_value(fld: FieldDefinition, attribute: str, registry: Optional[FieldTypeRegistry]) -> Any:
    if attribute == "type":
        return _canonical_type(fld.type, registry)
    if attribute == "rules":
        return fld.all_rules
    return getattr(fld, attribute)


def _is_breaking_field_change(attribute: str, old: Any, new: Any) -> bool:
    if attribute == "type":
        return not is_compatible_type_change(old, new)
    if attribute == "nullable":
        return bool(old) and not new
    if attribute == "unique":
        return not old and bool(new)
    if attribute in ("length", "precision", "scale"):
        return old is not None and new is not None and new < old
    return False


def _compare_fields(
    old: FieldDefinition,
    new: FieldDefinition,
    registry: Optional[FieldTypeRegistry],
) -> List[AttributeChange]:
    changes: List[AttributeChange] = []
    for attribute in FIELD_ATTRIBUTES:
        before: Any = _field_value(old, attribute, registry)
        after: Any = _field_value(new, attribute, registry)
        if before != after:
            changes.append(
                AttributeChange(
                    attribute=attribute,
                    old=before,
                    new=after,
                    breaking=_is_breaking_field_change(attribute, before, after),
                )
            )
    return changes


def _compare_relationships(
    old: RelationshipDefinition,
    new: RelationshipDefinition,
) -> List[AttributeChange]:
    changes: List[AttributeChange] = []
    for attribute in RELATIONSHIP_ATTRIBUTES:
        before: Any = getattr(old, attribute)
        after: Any = getattr(new, attribute)
        if before != after:
            changes.append(
                AttributeChange(
                    attribute=attribute,
                    old=before,
                    new=after,
                    breaking=attribute in BREAKING_RELATIONSHIP_ATTRIBUTES,
                )
            )
    return changes


def _field_breaking_changes(change: FieldChange) -> List[BreakingChange]:
    if change.change == "removed":
        return [
            BreakingChange(
                kind="field_removed",
                target=change.name,
                description=f"Field '{change.name}' was removed.",
                impact=IMPACT_HIGH,
            )
        ]

    result: List[BreakingChange] = []
    for attr in change.attribute_changes:
        if not attr.breaking:
            continue
        if attr.attribute == "type":
            result.append(
                BreakingChange(
                    kind="type_changed",
                    target=change.name,
                    description=(
                        f"Field '{change.name}' changed type from "
                        f"'{attr.old}' to '{attr.new}'."
                    ),
                    impact=IMPACT_HIGH,
                )
            )
        elif attr.attribute == "nullable":
            result.append(
                BreakingChange(
                    kind="nullable_changed",
                    target=change.name,
                    description=f"Field '{change.name}' is no longer nullable.",
                    impact=IMPACT_MEDIUM,
                )
            )
        else:
            result.append(
                BreakingChange(
                    kind="field_modified",
                    target=change.name,
                    description=(
                        f"Field '{change.name}' {attr.attribute} changed from "
                        f"{attr.old!r} to {attr.new!r}."
                    ),
                    impact=IMPACT_MEDIUM,
                )
            )
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compare_schemas(
    old: Schema,
    new: Schema,
    registry: Optional[FieldTypeRegistry] = None,
) -> SchemaDiff:
    """
    Diff *old* against *new*.

    Fields are compared over effective fields, so the foreign key of an
    added or removed ``belongsTo`` shows up as a field change too.  When a
    *registry* is given, type aliases are resolved before comparison.
    """
    diff: SchemaDiff = SchemaDiff(old_name=old.name, new_name=new.name)

    # -- Metadata -----------------------------------------------------------
    for key in ("name", "table", "options", "metadata"):
        before: Any = getattr(old, key)
        after: Any = getattr(new, key)
        if before != after:
            diff.metadata_changes[key] = (before, after)

    if "table" in diff.metadata_changes:
        diff.breaking_changes.append(
            BreakingChange(
                kind="table_renamed",
                target=new.table,
                description=f"Table renamed from '{old.table}' to '{new.table}'.",
                impact=IMPACT_HIGH,
            )
        )

    # -- Fields -------------------------------------------------------------
    old_fields: Dict[str, FieldDefinition] = old.effective_fields
    new_fields: Dict[str, FieldDefinition] = new.effective_fields

    for name, fld in new_fields.items():
        if name not in old_fields:
            diff.field_changes.append(FieldChange(name=name, change="added", new=fld))
    for name, fld in old_fields.items():
        if name not in new_fields:
            diff.field_changes.append(FieldChange(name=name, change="removed", old=fld))
            continue
        attribute_changes: List[AttributeChange] = _compare_fields(fld, new_fields[name], registry)
        if attribute_changes:
            diff.field_changes.append(
                FieldChange(
                    name=name,
                    change="modified",
                    old=fld,
                    new=new_fields[name],
                    attribute_changes=attribute_changes,
                )
            )

    for change in diff.field_changes:
        diff.breaking_changes.extend(_field_breaking_changes(change))

    # -- Relationships ------------------------------------------------------
    for name, rel in new.relationships.items():
        if name not in old.relationships:
            diff.relationship_changes.append(RelationshipChange(name=name, change="added", new=rel))
    for name, rel in old.relationships.items():
        if name not in new.relationships:
            diff.relationship_changes.append(
                RelationshipChange(name=name, change="removed", old=rel)
            )
            diff.breaking_changes.append(
                BreakingChange(
                    kind="relationship_removed",
                    target=name,
                    description=f"Relationship '{name}' was removed.",
                    impact=IMPACT_HIGH,
                )
            )
            continue
        rel_changes: List[AttributeChange] = _compare_relationships(rel, new.relationships[name])
        if rel_changes:
            change_record: RelationshipChange = RelationshipChange(
                name=name,
                change="modified",
                old=rel,
                new=new.relationships[name],
                attribute_changes=rel_changes,
            )
            diff.relationship_changes.append(change_record)
            if change_record.breaking:
                changed: str = ", ".join(c.attribute for c in rel_changes if c.breaking)
                diff.breaking_changes.append(
                    BreakingChange(
                        kind="relationship_modified",
                        target=name,
                        description=f"Relationship '{name}' changed {changed}.",
                        impact=IMPACT_MEDIUM,
                    )
                )

    logger.debug(
        "Compared '%s' -> '%s': %d field change(s), %d breaking, %s.",
        old.name,
        new.name,
        len(diff.field_changes),
        len(diff.breaking_changes),
        diff.compatibility,
    )
    return diff


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FULLY_COMPATIBLE",
    "PARTIALLY_COMPATIBLE",
    "INCOMPATIBLE",
    "COMPATIBLE_TYPE_CHANGES",
    "AttributeChange",
    "FieldChange",
    "RelationshipChange",
    "BreakingChange",
    "SchemaDiff",
    "is_compatible_type_change",
    "compare_schemas",
]

logger.debug("modelschema.diff loaded: %d public symbols.", len(__all__))
