"""
tests/test_diff.py
Unit tests for modelschema.diff.

Tests cover:
- Type widening table
- Added / removed / modified fields and their breaking classification
- Relationship changes
- Overall compatibility levels and the text report
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

import pytest

from modelschema.diff import (
    FULLY_COMPATIBLE,
    INCOMPATIBLE,
    PARTIALLY_COMPATIBLE,
    compare_schemas,
    is_compatible_type_change,
)
from modelschema.models import Schema
from modelschema.registry import FieldTypeRegistry

MakeSchema = Callable[..., Schema]


def _post(make_schema: MakeSchema, **fields: Dict[str, Any]) -> Schema:
    base: Dict[str, Any] = {"title": {"type": "string", "length": 255}}
    base.update(fields)
    return make_schema("Post", table="posts", fields=base)


# ===========================================================================
# Type widening
# ===========================================================================


class TestTypeCompatibility:
    """Tests for the type widening table."""

    @pytest.mark.parametrize(
        "old, new",
        [("string", "text"), ("integer", "bigInteger"), ("tinyInteger", "integer"), ("text", "text")],
    )
    def test_widening(self, old: str, new: str) -> None:
        assert is_compatible_type_change(old, new)

    @pytest.mark.parametrize("old, new", [("text", "string"), ("bigInteger", "integer"), ("string", "json")])
    def test_narrowing(self, old: str, new: str) -> None:
        assert not is_compatible_type_change(old, new)


# ===========================================================================
# Fields
# ===========================================================================


class TestFieldChanges:
    """Tests for field-level change classification."""

    def test_identical_schemas(self, blog_schemas: List[Schema]) -> None:
        diff = compare_schemas(blog_schemas[1], blog_schemas[1])
        assert not diff.has_changes
        assert diff.compatibility == FULLY_COMPATIBLE

    def test_added_field_is_safe(self, make_schema: MakeSchema) -> None:
        diff = compare_schemas(_post(make_schema), _post(make_schema, body={"type": "text"}))
        assert [c.name for c in diff.added_fields] == ["body"]
        assert diff.compatibility == FULLY_COMPATIBLE

    def test_removed_field_is_incompatible(self, make_schema: MakeSchema) -> None:
        diff = compare_schemas(_post(make_schema, body={"type": "text"}), _post(make_schema))
        assert [c.name for c in diff.removed_fields] == ["body"]
        assert diff.breaking_changes[0].kind == "field_removed"
        assert diff.compatibility == INCOMPATIBLE

    def test_widening_type_is_safe(self, make_schema: MakeSchema) -> None:
        diff = compare_schemas(_post(make_schema), _post(make_schema, title={"type": "text"}))
        assert diff.modified_fields
        assert not diff.is_breaking

    def test_narrowing_type_is_incompatible(self, make_schema: MakeSchema) -> None:
        diff = compare_schemas(
            _post(make_schema, body={"type": "text"}),
            _post(make_schema, body={"type": "string"}),
        )
        assert [b.kind for b in diff.breaking_changes] == ["type_changed"]
        assert diff.compatibility == INCOMPATIBLE

    def test_alias_resolution_with_registry(
        self, make_schema: MakeSchema, registry: FieldTypeRegistry
    ) -> None:
        old = _post(make_schema, votes={"type": "int"})
        new = _post(make_schema, votes={"type": "integer"})
        assert compare_schemas(old, new, registry).modified_fields == []
        assert compare_schemas(old, new).modified_fields != []

    def test_nullable_to_required_is_partial(self, make_schema: MakeSchema) -> None:
        diff = compare_schemas(
            _post(make_schema, body={"type": "text", "nullable": True}),
            _post(make_schema, body={"type": "text"}),
        )
        assert [b.kind for b in diff.breaking_changes] == ["nullable_changed"]
        assert diff.compatibility == PARTIALLY_COMPATIBLE

    def test_required_to_nullable_is_safe(self, make_schema: MakeSchema) -> None:
        diff = compare_schemas(
            _post(make_schema, body={"type": "text"}),
            _post(make_schema, body={"type": "text", "nullable": True}),
        )
        assert diff.compatibility == FULLY_COMPATIBLE

    def test_adding_unique_is_partial(self, make_schema: MakeSchema) -> None:
        diff = compare_schemas(
            _post(make_schema), _post(make_schema, title={"type": "string", "length": 255, "unique": True})
        )
        assert diff.compatibility == PARTIALLY_COMPATIBLE
        assert diff.breaking_changes[0].kind == "field_modified"

    def test_shrinking_length_is_partial(self, make_schema: MakeSchema) -> None:
        diff = compare_schemas(
            _post(make_schema), _post(make_schema, title={"type": "string", "length": 100})
        )
        change = diff.modified_fields[0].attribute_changes[0]
        assert (change.attribute, change.old, change.new, change.breaking) == ("length", 255, 100, True)
        assert diff.compatibility == PARTIALLY_COMPATIBLE

    def test_growing_length_is_safe(self, make_schema: MakeSchema) -> None:
        diff = compare_schemas(
            _post(make_schema), _post(make_schema, title={"type": "string", "length": 500})
        )
        assert diff.compatibility == FULLY_COMPATIBLE

    def test_rule_changes_are_not_breaking(self, make_schema: MakeSchema) -> None:
        diff = compare_schemas(
            _post(make_schema),
            _post(make_schema, title={"type": "string", "length": 255, "rules": ["required"]}),
        )
        assert diff.modified_fields[0].attribute_changes[0].attribute == "rules"
        assert not diff.is_breaking


# ===========================================================================
# Metadata / relationships
# ===========================================================================


class TestSchemaLevelChanges:
    """Tests for table, option and relationship changes."""

    def test_table_rename_is_incompatible(self, blog_schemas: List[Schema]) -> None:
        post = blog_schemas[1]
        diff = compare_schemas(post, post.replace(table="articles"))
        assert diff.metadata_changes == {"table": ("posts", "articles")}
        assert diff.breaking_changes[0].kind == "table_renamed"
        assert diff.compatibility == INCOMPATIBLE

    def test_option_change_is_recorded(self, blog_schemas: List[Schema]) -> None:
        post = blog_schemas[1]
        diff = compare_schemas(post, post.replace(options={"timestamps": True}))
        assert "options" in diff.metadata_changes
        assert not diff.is_breaking

    def test_removed_relationship_drops_foreign_key(self, blog_schemas: List[Schema]) -> None:
        post = blog_schemas[1]
        diff = compare_schemas(post, post.replace(relationships={}))
        kinds = sorted(b.kind for b in diff.breaking_changes)
        assert kinds == ["field_removed", "relationship_removed"]
        assert [c.name for c in diff.removed_fields] == ["user_id"]

    def test_added_relationship_is_safe(self, make_schema: MakeSchema) -> None:
        old = make_schema("Post", fields={"title": "string"})
        new = make_schema(
            "Post",
            fields={"title": "string"},
            relationships={"tags": {"type": "belongsToMany", "model": "Tag"}},
        )
        diff = compare_schemas(old, new)
        assert [c.change for c in diff.relationship_changes] == ["added"]
        assert diff.compatibility == FULLY_COMPATIBLE

    def test_relationship_target_change_is_partial(self, make_schema: MakeSchema) -> None:
        old = make_schema("Post", fields={"title": "string"}, relationships={"owner": {"type": "hasOne", "model": "User"}})
        new = make_schema("Post", fields={"title": "string"}, relationships={"owner": {"type": "hasOne", "model": "Team"}})
        diff = compare_schemas(old, new)
        assert [b.kind for b in diff.breaking_changes] == ["relationship_modified"]
        assert diff.compatibility == PARTIALLY_COMPATIBLE

    def test_relationship_timestamps_change_is_safe(self, make_schema: MakeSchema) -> None:
        old = make_schema("Post", fields={"title": "string"}, relationships={"tags": {"type": "belongsToMany", "model": "Tag"}})
        new = make_schema(
            "Post",
            fields={"title": "string"},
            relationships={"tags": {"type": "belongsToMany", "model": "Tag", "withTimestamps": True}},
        )
        diff = compare_schemas(old, new)
        assert diff.relationship_changes[0].change == "modified"
        assert not diff.is_breaking


# ===========================================================================
# Reporting
# ===========================================================================


class TestReport:
    """Tests for diff serialisation."""

    def test_to_dict(self, blog_schemas: List[Schema]) -> None:
        post = blog_schemas[1]
        data = compare_schemas(post, post.replace(table="articles")).to_dict()
        assert data["compatibility"] == INCOMPATIBLE
        assert data["metadata_changes"]["table"] == {"old": "posts", "new": "articles"}

    def test_format_report(self, make_schema: MakeSchema) -> None:
        diff = compare_schemas(_post(make_schema, body={"type": "text"}), _post(make_schema))
        report = diff.format_report()
        assert "Schema diff: Post" in report
        assert "- field body" in report
        assert "[high] Field 'body' was removed." in report
