"""
tests/test_validators.py
Unit tests for modelschema.validators.

Tests cover:
- ValidationResult container behaviour
- belongsTo cycle detection and missing inverse relationships
- Relationship target checks (unknown kind, missing and dangling targets)
- Field-type / attribute validation
- Textual validation rules (exists/unique, in, regex, ranges, references)
- Performance heuristics and the single-schema / full orchestrators
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

import pytest

from modelschema.models import Schema
from modelschema.registry import FieldTypeRegistry
from modelschema.validators import (
    ValidationError,
    ValidationResult,
    analyze_performance,
    comprehensive_report,
    detect_circular_dependencies,
    find_missing_inverse_relationships,
    validate_field_types,
    validate_full,
    validate_relationship_consistency,
    validate_relationship_targets,
    validate_schema,
    validate_validation_rules,
)

MakeSchema = Callable[..., Schema]


def _belongs_to(target: str) -> Dict[str, Any]:
    return {"type": "belongsTo", "model": target}


def _rules(make_schema: MakeSchema, *rules: str, **field: Any) -> Schema:
    """A ``Post`` schema whose ``title`` field carries *rules*."""
    return make_schema(
        "Post",
        table="posts",
        fields={"title": {"type": field.pop("type", "string"), "rules": list(rules), **field}},
    )


# ===========================================================================
# ValidationResult
# ===========================================================================


class TestValidationResult:
    """Tests for the result container."""

    def test_empty_result_is_valid(self) -> None:
        result = ValidationResult()
        assert result.is_valid
        assert len(result) == 0
        assert result

    def test_warning_does_not_invalidate(self) -> None:
        result = ValidationResult()
        result.add_warning("W", "careful")
        assert result.is_valid
        assert result.warning_count == 1

    def test_error_invalidates(self) -> None:
        result = ValidationResult()
        result.add_error("E", "broken", {"field": "x"})
        assert not result.is_valid
        assert not result
        assert result.errors[0].context == {"field": "x"}

    def test_merge(self) -> None:
        a, b = ValidationResult(), ValidationResult()
        a.add_error("E1", "one")
        b.add_info("I1", "fyi")
        a.merge(b)
        assert a.codes() == ["E1", "I1"]
        assert len(a.infos) == 1

    def test_deduplicated_keeps_first(self) -> None:
        result = ValidationResult()
        result.add_error("E", "same", {"n": 1})
        result.add_error("E", "same", {"n": 2})
        result.add_warning("E", "same")
        deduped = result.deduplicated()
        assert len(deduped) == 2
        assert deduped.errors[0].context == {"n": 1}

    def test_items_compare_by_content(self) -> None:
        assert ValidationError("error", "E", "m") == ValidationError("error", "E", "m", {"x": 1})

    def test_format_report_mentions_codes(self) -> None:
        result = ValidationResult()
        result.add_error("BAD_THING", "broken")
        assert "[BAD_THING] broken" in result.format_report()

    def test_to_dict(self) -> None:
        result = ValidationResult()
        result.add_warning("W", "careful")
        data = result.to_dict()
        assert data["is_valid"] is True
        assert data["warnings"][0]["code"] == "W"


# ===========================================================================
# Relationship graph
# ===========================================================================


class TestCircularDependencies:
    """Tests for ownership cycle detection."""

    def test_consistent_blog_has_no_cycles(self, blog_schemas: List[Schema]) -> None:
        assert detect_circular_dependencies(blog_schemas) == []

    def test_two_node_cycle(self, make_schema: MakeSchema) -> None:
        a = make_schema("A", relationships={"b": _belongs_to("B")})
        b = make_schema("B", relationships={"a": _belongs_to("A")})
        assert detect_circular_dependencies([a, b]) == [("B", "A")]

    def test_three_node_cycle(self, make_schema: MakeSchema) -> None:
        a = make_schema("A", relationships={"b": _belongs_to("B")})
        b = make_schema("B", relationships={"c": _belongs_to("C")})
        c = make_schema("C", relationships={"a": _belongs_to("A")})
        assert detect_circular_dependencies([a, b, c]) == [("C", "A")]

    def test_self_reference_is_not_a_cycle(self, make_schema: MakeSchema) -> None:
        category = make_schema("Category", relationships={"parent": _belongs_to("Category")})
        assert detect_circular_dependencies(category) == []

    def test_has_many_edges_ignored(self, make_schema: MakeSchema) -> None:
        a = make_schema("A", relationships={"bs": {"type": "hasMany", "model": "B"}})
        b = make_schema("B", relationships={"as": {"type": "hasMany", "model": "A"}})
        assert detect_circular_dependencies([a, b]) == []

    def test_diamond_is_not_a_cycle(self, make_schema: MakeSchema) -> None:
        a = make_schema("A", relationships={"b": _belongs_to("B"), "c": _belongs_to("C")})
        b = make_schema("B", relationships={"d": _belongs_to("D")})
        c = make_schema("C", relationships={"d": _belongs_to("D")})
        d = make_schema("D")
        assert detect_circular_dependencies([a, b, c, d]) == []

    def test_deep_chain_does_not_recurse(self, make_schema: MakeSchema) -> None:
        schemas = [
            make_schema(f"M{i}", relationships={"next": _belongs_to(f"M{i + 1}")})
            for i in range(3000)
        ]
        assert detect_circular_dependencies(schemas) == []


class TestMissingInverse:
    """Tests for missing inverse relationship detection."""

    def test_blog_is_complete(self, blog_schemas: List[Schema]) -> None:
        assert find_missing_inverse_relationships(blog_schemas) == []

    def test_has_many_without_back_reference(self, make_schema: MakeSchema) -> None:
        user = make_schema("User", relationships={"posts": {"type": "hasMany", "model": "Post"}})
        post = make_schema("Post")
        missing = find_missing_inverse_relationships([user, post])
        assert len(missing) == 1
        assert missing[0].from_model == "User"
        assert missing[0].to_model == "Post"
        assert missing[0].expected_inverse == "belongsTo"

    def test_target_outside_set_is_skipped(self, make_schema: MakeSchema) -> None:
        user = make_schema("User", relationships={"posts": {"type": "hasMany", "model": "Post"}})
        assert find_missing_inverse_relationships(user) == []

    def test_belongs_to_needs_no_inverse(self, make_schema: MakeSchema) -> None:
        post = make_schema("Post", relationships={"user": _belongs_to("User")})
        user = make_schema("User")
        assert find_missing_inverse_relationships([post, user]) == []


class TestRelationshipConsistency:
    def test_report_for_consistent_set(self, blog_schemas: List[Schema]) -> None:
        report = validate_relationship_consistency(blog_schemas)
        assert report.is_consistent
        assert report.summary == {"total_schemas": 2, "valid_relationships": 2, "issues_found": 0}

    def test_cycle_is_error_missing_inverse_is_warning(self, make_schema: MakeSchema) -> None:
        a = make_schema("A", relationships={"b": _belongs_to("B"), "cs": {"type": "hasMany", "model": "C"}})
        b = make_schema("B", relationships={"a": _belongs_to("A")})
        c = make_schema("C")
        report = validate_relationship_consistency([a, b, c])
        assert not report.is_consistent
        assert report.errors == ["Circular dependency detected between 'B' and 'A'."]
        assert len(report.warnings) == 1
        assert report.summary["issues_found"] == 2
        assert report.to_dict()["circular_dependencies"] == [["B", "A"]]

    def test_only_missing_inverse_stays_consistent(self, make_schema: MakeSchema) -> None:
        user = make_schema("User", relationships={"posts": {"type": "hasMany", "model": "Post"}})
        post = make_schema("Post")
        assert validate_relationship_consistency([user, post]).is_consistent


class TestRelationshipTargets:
    """Tests for relationship kinds and targets."""

    def test_unknown_kind(self, make_schema: MakeSchema) -> None:
        post = make_schema("Post", relationships={"x": {"type": "hasSome", "model": "Post"}})
        assert validate_relationship_targets(post).codes() == ["UNKNOWN_RELATIONSHIP_TYPE"]

    def test_missing_target(self, make_schema: MakeSchema) -> None:
        post = make_schema("Post", relationships={"user": {"type": "belongsTo"}})
        assert validate_relationship_targets(post).codes() == ["MISSING_RELATIONSHIP_TARGET"]

    def test_morph_to_needs_no_target(self, make_schema: MakeSchema) -> None:
        comment = make_schema("Comment", relationships={"commentable": {"type": "morphTo"}})
        assert validate_relationship_targets(comment).is_valid

    def test_dangling_target(self, make_schema: MakeSchema) -> None:
        post = make_schema("Post", relationships={"user": _belongs_to("App\\Models\\Ghost")})
        result = validate_relationship_targets(post)
        assert result.codes() == ["DANGLING_RELATIONSHIP_TARGET"]
        assert "Ghost" in result.errors[0].message


# ===========================================================================
# Field types
# ===========================================================================


class TestFieldTypes:
    """Tests for field type and attribute checks."""

    def test_blog_fields_are_valid(self, blog_schemas: List[Schema], registry: FieldTypeRegistry) -> None:
        result = validate_field_types(blog_schemas, registry)
        assert result.is_valid, f"Expected valid, got errors: {result.errors}"

    def test_unknown_type(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        schema = make_schema("Post", fields={"blob": {"type": "hyperblob"}})
        result = validate_field_types(schema, registry)
        assert result.codes() == ["UNKNOWN_FIELD_TYPE"]
        assert "Post.blob" in result.errors[0].message

    def test_alias_is_known(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        schema = make_schema("Post", fields={"title": {"type": "varchar", "length": 20}})
        assert validate_field_types(schema, registry).is_valid

    def test_enum_without_values(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        schema = make_schema("Post", fields={"status": {"type": "enum"}})
        result = validate_field_types(schema, registry)
        assert result.codes() == ["INVALID_FIELD_CONFIG"]
        assert "requires 'values'" in result.errors[0].message

    def test_scale_above_precision_reported_once(
        self, make_schema: MakeSchema, registry: FieldTypeRegistry
    ) -> None:
        schema = make_schema("Post", fields={"price": {"type": "decimal", "precision": 4, "scale": 6}})
        result = validate_field_types(schema, registry)
        assert result.error_count == 1
        assert result.errors[0].message.count("Scale cannot be greater than precision") == 1

    def test_unsupported_attribute_warns(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        schema = make_schema("Post", fields={"flag": {"type": "boolean", "srid": 4326}})
        result = validate_field_types(schema, registry)
        assert result.is_valid
        assert result.codes() == ["UNSUPPORTED_ATTRIBUTE"]

    def test_ignored_numeric_constraint(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        schema = make_schema("Post", fields={"flag": {"type": "boolean", "length": 1}})
        assert validate_field_types(schema, registry).codes() == ["IGNORED_NUMERIC_CONSTRAINT"]

    def test_length_over_limit(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        schema = make_schema("Post", fields={"title": {"type": "string", "length": 70000}})
        assert "LENGTH_EXCEEDS_LIMIT" in validate_field_types(schema, registry).codes()

    def test_precision_over_limit(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        schema = make_schema("Post", fields={"price": {"type": "decimal", "precision": 70, "scale": 2}})
        assert "PRECISION_EXCEEDS_LIMIT" in validate_field_types(schema, registry).codes()

    def test_synthesised_foreign_key_is_checked(
        self, make_schema: MakeSchema, registry: FieldTypeRegistry
    ) -> None:
        schema = make_schema("Post", relationships={"user": _belongs_to("User")})
        assert validate_field_types(schema, registry).is_valid


# ===========================================================================
# Validation rules
# ===========================================================================


class TestValidationRules:
    """Tests for validation rule parsing."""

    def test_blog_rules_are_valid(self, blog_schemas: List[Schema]) -> None:
        report = validate_validation_rules(blog_schemas)
        assert report.is_valid, f"Unexpected rule errors: {report.errors}"
        assert report.statistics["invalid_rules"] == 0
        assert report.statistics["total_rules"] == report.statistics["valid_rules"]

    def test_pipe_separated_rules_are_split(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "required|max:10|min:2"))
        assert report.total_rules == 3

    def test_exists_unknown_table(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "exists:authors,id"))
        assert report.result.codes() == ["RULE_UNKNOWN_TABLE"]
        assert "references non-existent table 'authors'" in report.errors[0]

    def test_unique_unknown_column(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "unique:posts,slug"))
        assert report.result.codes() == ["RULE_UNKNOWN_COLUMN"]

    def test_implicit_columns_are_known(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "exists:posts,id"))
        assert report.is_valid, f"Unexpected rule errors: {report.errors}"

    def test_unique_on_text_warns(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "unique:posts", type="text"))
        assert report.is_valid, f"Unexpected rule errors: {report.errors}"
        assert report.result.codes() == ["RULE_UNIQUE_ON_TEXT"]

    def test_unique_on_aliased_text_warns(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        report = validate_validation_rules(_rules(make_schema, "unique:posts", type="mediumtext"), registry)
        assert report.result.codes() == ["RULE_UNIQUE_ON_TEXT"]

    def test_in_with_empty_values(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "in:"))
        assert report.result.codes() == ["RULE_EMPTY_VALUES"]
        assert "Empty values list" in report.errors[0]

    def test_in_with_many_values(self, make_schema: MakeSchema) -> None:
        values = ",".join(str(i) for i in range(51))
        report = validate_validation_rules(_rules(make_schema, f"in:{values}"))
        assert report.result.codes() == ["RULE_LARGE_VALUES"]

    def test_invalid_regex(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "regex:/[a-z/"))
        assert report.result.codes() == ["RULE_INVALID_REGEX"]

    def test_regex_with_pipe_is_not_split(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "required|regex:/^(a|b)$/i"))
        assert report.total_rules == 2
        assert report.is_valid, f"Unexpected rule errors: {report.errors}"

    @pytest.mark.parametrize("rule", ["min:abc", "max:", "size:1,2"])
    def test_invalid_numeric_parameter(self, make_schema: MakeSchema, rule: str) -> None:
        report = validate_validation_rules(_rules(make_schema, rule))
        assert report.result.codes() == ["RULE_INVALID_PARAMETER"]

    def test_between_reversed_range(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "between:10,1"))
        assert report.result.codes() == ["RULE_INVALID_RANGE"]

    def test_between_missing_bound(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "between:1"))
        assert report.result.codes() == ["RULE_INVALID_PARAMETER"]

    def test_required_if_unknown_field(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "required_if:status,published"))
        assert report.result.codes() == ["RULE_UNKNOWN_FIELD"]

    def test_required_if_known_field(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "required_if:title,x"))
        assert report.is_valid, f"Unexpected rule errors: {report.errors}"

    def test_unknown_rule_counts_as_custom(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "isbn13"))
        assert report.is_valid, f"Unexpected rule errors: {report.errors}"
        assert report.custom_rules == 1
        assert report.result.codes() == ["RULE_UNKNOWN"]

    def test_invalid_rules_counted(self, make_schema: MakeSchema) -> None:
        report = validate_validation_rules(_rules(make_schema, "required", "min:x", "between:5,1"))
        assert report.statistics == {
            "total_rules": 3,
            "valid_rules": 1,
            "invalid_rules": 2,
            "custom_rules": 0,
        }


# ===========================================================================
# Performance / single schema
# ===========================================================================


class TestPerformance:
    """Tests for the performance heuristics."""

    def test_small_schema(self, blog_schemas: List[Schema]) -> None:
        report = analyze_performance(blog_schemas[1])
        assert report.warnings == []
        assert report.relationship_types == {"belongsTo": 1}
        assert report.performance_score == 100 - 5 - 2

    def test_many_fields_and_relationships(self, make_schema: MakeSchema) -> None:
        fields = {f"f{i}": {"type": "string"} for i in range(25)}
        relationships = {f"r{i}": {"type": "hasMany", "model": f"M{i}"} for i in range(12)}
        report = analyze_performance(make_schema("Wide", fields=fields, relationships=relationships))
        assert report.warnings == [
            "Schema Wide has many fields (25), consider splitting",
            "Schema Wide has many relationships (12), verify complexity",
        ]
        assert report.recommendations == ["Consider using eager loading for Wide relationships"]
        assert report.performance_score == 100 - 25 - 24


class TestValidateSchema:
    def test_valid_schema(self, blog_schemas: List[Schema], registry: FieldTypeRegistry) -> None:
        assert validate_schema(blog_schemas[0], registry).is_valid

    def test_no_fields_is_an_error(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        result = validate_schema(make_schema("Empty"), registry)
        assert [e.code for e in result.errors] == ["NO_FIELDS"]
        assert "NO_FIELDS" not in [w.code for w in result.warnings], f"duplicate warning: {result.warnings}"

    def test_empty_table_name(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        schema = make_schema("Post", fields={"title": "string"}).replace(table="")
        assert "MISSING_TABLE_NAME" in validate_schema(schema, registry).codes()

    def test_performance_items(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        relationships = {f"r{i}": {"type": "hasOne", "model": f"M{i}"} for i in range(6)}
        result = validate_schema(
            make_schema("Hub", fields={"title": "string"}, relationships=relationships), registry
        )
        assert result.is_valid
        assert [i.code for i in result.infos] == ["RECOMMENDATION"]

    def test_comprehensive_report(self, blog_schemas: List[Schema], registry: FieldTypeRegistry) -> None:
        report = comprehensive_report(blog_schemas[1], registry)
        assert report["schema_name"] == "Post"
        assert report["is_valid"] is True
        assert report["relationship_validation"] == {
            "relationship_types": {"belongsTo": 1},
            "total_relationships": 1,
        }
        assert report["performance_analysis"]["field_count"] == 5


# ===========================================================================
# validate_full
# ===========================================================================


class TestValidateFull:
    """Tests for whole-set validation."""

    def test_blog_passes(self, blog_schemas: List[Schema], registry: FieldTypeRegistry) -> None:
        result = validate_full(blog_schemas, registry)
        assert result.is_valid, f"Blog schemas failed validation: {result.errors}"
        assert result.warnings == [], f"Unexpected warnings: {result.warnings}"

    def test_input_is_not_modified(self, blog_schemas: List[Schema], registry: FieldTypeRegistry) -> None:
        before = [s.model_dump() for s in blog_schemas]
        validate_full(blog_schemas, registry)
        assert [s.model_dump() for s in blog_schemas] == before

    def test_deterministic(self, blog_schemas: List[Schema], registry: FieldTypeRegistry) -> None:
        first = validate_full(blog_schemas, registry).to_dict()
        second = validate_full(blog_schemas, registry).to_dict()
        assert first == second

    def test_duplicate_model_name(self, make_schema: MakeSchema, registry: FieldTypeRegistry) -> None:
        a = make_schema("Tag", fields={"label": "string"})
        b = make_schema("Tag", fields={"slug": "string"})
        assert "DUPLICATE_MODEL_NAME" in validate_full([a, b], registry).codes()

    def test_unknown_relationship_type_reported_once(
        self, make_schema: MakeSchema, registry: FieldTypeRegistry
    ) -> None:
        post = make_schema("Post", fields={"title": "string"}, relationships={"x": {"type": "hasSome", "model": "Post"}})
        result = validate_full(post, registry)
        assert result.codes().count("UNKNOWN_RELATIONSHIP_TYPE") == 1

    def test_collects_everything_in_one_pass(
        self, make_schema: MakeSchema, registry: FieldTypeRegistry
    ) -> None:
        a = make_schema(
            "A",
            fields={"blob": {"type": "hyperblob", "rules": ["exists:ghosts,id"]}},
            relationships={"b": _belongs_to("B")},
        )
        b = make_schema(
            "B",
            fields={"title": "string"},
            relationships={"a": _belongs_to("A"), "z": _belongs_to("Zed")},
        )
        codes = validate_full([a, b], registry).codes()
        for expected in (
            "UNKNOWN_FIELD_TYPE",
            "CIRCULAR_DEPENDENCY",
            "DANGLING_RELATIONSHIP_TARGET",
            "RULE_UNKNOWN_TABLE",
        ):
            assert expected in codes

    def test_logs_outcome(
        self,
        blog_schemas: List[Schema],
        registry: FieldTypeRegistry,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level("INFO", logger="modelschema.validators"):
            validate_full(blog_schemas, registry)
        assert "Validation PASSED" in caplog.text
