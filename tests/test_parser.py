"""
tests/test_parser.py
Unit tests for modelschema.parser.

Tests cover:
- YAML / JSON text decoding and structural failures
- Model and table name resolution
- Field and relationship normalisation (mapping and list forms)
- File parsing, including extension dispatch
- Core / extension key split
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, Callable, Dict

import pytest
import yaml

from modelschema.errors import MalformedInput
from modelschema.models import Schema
from modelschema.parser import (
    DEFAULT_MODEL_NAME,
    SchemaParser,
    extract_core_schema,
    extract_extension_data,
    get_core_schema_keys,
    load_mapping,
)
from modelschema.registry import get_default_registry


# ===========================================================================
# load_mapping
# ===========================================================================


class TestLoadMapping:
    """Tests for YAML and JSON decoding."""

    def test_yaml_mapping(self) -> None:
        assert load_mapping("model: Post\ntable: posts\n") == {"model": "Post", "table": "posts"}

    def test_json_mapping(self) -> None:
        assert load_mapping('{"model": "Post"}') == {"model": "Post"}

    def test_yaml_flow_mapping_that_is_not_json(self) -> None:
        assert load_mapping("{model: Post}") == {"model": "Post"}

    @pytest.mark.parametrize("text", ["", "   \n\t"])
    def test_empty_content(self, text: str) -> None:
        with pytest.raises(MalformedInput, match="empty"):
            load_mapping(text)

    @pytest.mark.parametrize("text", ["- a\n- b\n", "just a string", "42"])
    def test_non_mapping_top_level(self, text: str) -> None:
        with pytest.raises(MalformedInput, match="Expected a mapping"):
            load_mapping(text)

    def test_syntax_error(self) -> None:
        with pytest.raises(MalformedInput, match="Invalid YAML/JSON"):
            load_mapping("model: [unclosed\n")

    def test_non_string_input(self) -> None:
        with pytest.raises(MalformedInput):
            load_mapping(b"model: Post")  # type: ignore[arg-type]

    def test_malformed_input_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            load_mapping("")


# ===========================================================================
# SchemaParser.parse / parse_mapping
# ===========================================================================


class TestParse:
    """Tests for top-level schema parsing."""

    def test_parse_yaml(self, parser: SchemaParser, post_yaml: str) -> None:
        schema = parser.parse(post_yaml)
        assert isinstance(schema, Schema)
        assert schema.name == "Post"
        assert schema.table == "posts"
        assert list(schema.fields) == ["title", "body", "status", "price"]
        assert schema.has_soft_deletes

    def test_parse_json(self, parser: SchemaParser, post_schema_dict: Dict[str, Any]) -> None:
        schema = parser.parse(json.dumps(post_schema_dict))
        assert schema.fields["price"].precision == 10
        assert schema.fields["price"].scale == 2

    def test_fallback_model_name(self, parser: SchemaParser) -> None:
        assert parser.parse("fields: {title: string}\n").name == DEFAULT_MODEL_NAME
        assert parser.parse("fields: {title: string}\n", "Article").name == "Article"

    def test_name_key_accepted(self, parser: SchemaParser) -> None:
        assert parser.parse_mapping({"name": "Tag"}).name == "Tag"

    def test_table_derived_from_model(self, parser: SchemaParser) -> None:
        assert parser.parse_mapping({"model": "BlogPost"}).table == "blog_posts"

    def test_table_from_options(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping({"model": "Post", "options": {"table": "articles"}})
        assert schema.table == "articles"

    def test_non_string_model_name(self, parser: SchemaParser) -> None:
        with pytest.raises(MalformedInput, match="Model name"):
            parser.parse_mapping({"model": 42})

    def test_options_must_be_mapping(self, parser: SchemaParser) -> None:
        with pytest.raises(MalformedInput, match="'options' must be a mapping"):
            parser.parse_mapping({"model": "Post", "options": ["timestamps"]})

    def test_empty_schema_is_allowed(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping({"model": "Empty"})
        assert schema.fields == {}
        assert schema.relationships == {}

    def test_default_registry_used_without_argument(self) -> None:
        assert SchemaParser().registry is get_default_registry()

    def test_parse_many_with_names(self, parser: SchemaParser) -> None:
        schemas = parser.parse_many({"Tag": "fields: {label: string}\n", "Note": "fields: {}\n"})
        assert [s.name for s in schemas] == ["Tag", "Note"]

    def test_parse_many_sequence(self, parser: SchemaParser) -> None:
        schemas = parser.parse_many(["model: A\n", "model: B\n"])
        assert [s.name for s in schemas] == ["A", "B"]


# ===========================================================================
# Fields
# ===========================================================================


class TestFields:
    """Tests for field parsing."""

    def test_extra_keys_become_attributes(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping(
            {"model": "Post", "fields": {"status": {"type": "enum", "values": ["a", "b"]}}}
        )
        assert schema.fields["status"].attributes == {"values": ["a", "b"]}

    def test_explicit_attributes_merge(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping(
            {
                "model": "Place",
                "fields": {"location": {"type": "point", "srid": 4326, "attributes": {"dimension": "2D"}}},
            }
        )
        assert schema.fields["location"].attributes == {"srid": 4326, "dimension": "2D"}

    def test_shorthand_type_string(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping({"model": "Post", "fields": {"body": "text"}})
        assert schema.fields["body"].type == "text"

    def test_missing_type_defaults_to_string(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping({"model": "Post", "fields": {"title": None}})
        assert schema.fields["title"].type == "string"

    def test_unknown_type_is_kept(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping({"model": "Post", "fields": {"blob": {"type": "hyperblob"}}})
        assert schema.fields["blob"].type == "hyperblob"

    def test_validation_string_becomes_list(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping(
            {"model": "Post", "fields": {"title": {"validation": "required|max:10"}}}
        )
        assert schema.fields["title"].validation == ["required|max:10"]

    def test_list_form(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping(
            {"model": "Post", "fields": [{"name": "title", "type": "string"}, {"name": "body", "type": "text"}]}
        )
        assert list(schema.fields) == ["title", "body"]

    def test_list_entry_without_name(self, parser: SchemaParser) -> None:
        with pytest.raises(MalformedInput, match=r"fields\[0\]"):
            parser.parse_mapping({"model": "Post", "fields": [{"type": "string"}]})

    def test_scalar_fields_section(self, parser: SchemaParser) -> None:
        with pytest.raises(MalformedInput, match="'fields' must be a mapping or a list"):
            parser.parse_mapping({"model": "Post", "fields": "title"})

    def test_field_config_must_be_mapping(self, parser: SchemaParser) -> None:
        with pytest.raises(MalformedInput, match="Field 'title'"):
            parser.parse_mapping({"model": "Post", "fields": {"title": 5}})

    def test_bad_length_type(self, parser: SchemaParser) -> None:
        with pytest.raises(MalformedInput, match="is malformed"):
            parser.parse_mapping({"model": "Post", "fields": {"title": {"length": "long"}}})


# ===========================================================================
# Relationships
# ===========================================================================


class TestRelationships:
    """Tests for relationship parsing."""

    def test_camel_case_keys(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping(
            {
                "model": "Post",
                "relationships": {
                    "tags": {
                        "type": "belongsToMany",
                        "model": "Tag",
                        "pivotTable": "post_tag",
                        "withTimestamps": True,
                    }
                },
            }
        )
        rel = schema.relationships["tags"]
        assert rel.pivot_table == "post_tag"
        assert rel.with_timestamps is True

    def test_relations_key_accepted(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping(
            {"model": "Post", "relations": {"author": {"type": "belongsTo", "model": "User"}}}
        )
        assert "author" in schema.relationships

    def test_unknown_keys_become_attributes(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping(
            {"model": "Post", "relationships": {"author": {"type": "belongsTo", "model": "User", "eager": True}}}
        )
        assert schema.relationships["author"].attributes == {"eager": True}

    def test_unknown_relationship_type_kept(self, parser: SchemaParser) -> None:
        schema = parser.parse_mapping(
            {"model": "Post", "relationships": {"x": {"type": "hasSome", "model": "User"}}}
        )
        assert schema.relationships["x"].type == "hasSome"

    def test_relationship_config_must_be_mapping(self, parser: SchemaParser) -> None:
        with pytest.raises(MalformedInput, match="Relationship 'author'"):
            parser.parse_mapping({"model": "Post", "relationships": {"author": "User"}})


# ===========================================================================
# Files
# ===========================================================================


class TestParseFile:
    """Tests for file-based parsing."""

    def test_yaml_file(
        self,
        parser: SchemaParser,
        write_yaml: Callable[[str, Any], pathlib.Path],
        post_schema_dict: Dict[str, Any],
    ) -> None:
        schema = parser.parse_file(write_yaml("post.yaml", post_schema_dict))
        assert schema.name == "Post"

    def test_model_name_falls_back_to_stem(
        self, parser: SchemaParser, write_yaml: Callable[[str, Any], pathlib.Path]
    ) -> None:
        schema = parser.parse_file(write_yaml("Comment.yml", {"fields": {"body": "text"}}))
        assert schema.name == "Comment"

    def test_json_file(self, parser: SchemaParser, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "tag.json"
        path.write_text(json.dumps({"model": "Tag"}), encoding="utf-8")
        assert parser.parse_file(path).name == "Tag"

    def test_invalid_json_file(self, parser: SchemaParser, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "tag.json"
        path.write_text("{model: Tag", encoding="utf-8")
        with pytest.raises(MalformedInput, match="Invalid JSON") as exc_info:
            parser.parse_file(path)
        assert exc_info.value.source == str(path)

    def test_unknown_extension_is_decoded(
        self, parser: SchemaParser, write_yaml: Callable[[str, Any], pathlib.Path]
    ) -> None:
        assert parser.parse_file(write_yaml("tag.schema", "model: Tag\n")).name == "Tag"

    def test_missing_file(self, parser: SchemaParser, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError):
            parser.parse_file(tmp_path / "absent.yaml")

    def test_directory_is_rejected(self, parser: SchemaParser, tmp_path: pathlib.Path) -> None:
        with pytest.raises(MalformedInput, match="not a file"):
            parser.parse_file(tmp_path)

    def test_roundtrip_through_yaml(self, parser: SchemaParser, blog_schemas) -> None:
        post = blog_schemas[1]
        reparsed = parser.parse(post.to_yaml())
        assert reparsed == post


# ===========================================================================
# Core / extension split
# ===========================================================================


class TestCoreSplit:
    def test_core_keys(self) -> None:
        assert "relationships" in get_core_schema_keys()

    def test_extract_core_maps_relations(self) -> None:
        data = {"model": "Post", "relations": {"a": {}}, "api": {"prefix": "v1"}}
        assert extract_core_schema(data) == {"model": "Post", "relationships": {"a": {}}}

    def test_extract_extension(self) -> None:
        data = yaml.safe_load("model: Post\nrelations: {}\napi: {prefix: v1}\n")
        assert extract_extension_data(data) == {"api": {"prefix": "v1"}}
