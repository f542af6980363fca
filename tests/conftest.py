"""
tests/conftest.py
Shared fixtures for the modelschema test suite.

No external mocking libraries are used; real file I/O is performed inside
temporary directories managed by pytest's tmp_path fixtures.  Redis-backed
tests use fakeredis.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Callable, Dict, List

import pytest
import yaml

from modelschema.models import Schema
from modelschema.parser import SchemaParser
from modelschema.registry import FieldTypeRegistry, reset_default_registry


# ---------------------------------------------------------------------------
# Raw schema data
# ---------------------------------------------------------------------------

_USER_SCHEMA: Dict[str, Any] = {
    "model": "User",
    "table": "users",
    "fields": {
        "name": {"type": "string", "length": 100, "validation": ["required", "max:100"]},
        "email": {"type": "email", "unique": True, "validation": "required|email|unique:users,email"},
        "is_admin": {"type": "boolean", "default": False},
    },
    "relationships": {
        "posts": {"type": "hasMany", "model": "App\\Models\\Post"},
    },
    "options": {"timestamps": True},
}

_POST_SCHEMA: Dict[str, Any] = {
    "model": "Post",
    "table": "posts",
    "fields": {
        "title": {"type": "string", "length": 255, "validation": ["required", "min:3", "max:255"]},
        "body": {"type": "text", "nullable": True},
        "status": {"type": "enum", "values": ["draft", "published"], "default": "draft"},
        "price": {"type": "decimal", "precision": 10, "scale": 2},
    },
    "relationships": {
        "user": {"type": "belongsTo", "model": "App\\Models\\User", "foreign_key": "user_id"},
    },
    "options": {"timestamps": True, "soft_deletes": True},
}


@pytest.fixture(autouse=True)
def _fresh_default_registry() -> None:
    """Every test starts without a process-wide registry."""
    reset_default_registry()
    yield
    reset_default_registry()


@pytest.fixture()
def user_schema_dict() -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(_USER_SCHEMA)


@pytest.fixture()
def post_schema_dict() -> Dict[str, Any]:
    return copy.deepcopy(_POST_SCHEMA)


@pytest.fixture()
def post_yaml(post_schema_dict: Dict[str, Any]) -> str:
    return yaml.safe_dump(post_schema_dict, default_flow_style=False, sort_keys=False)


# ---------------------------------------------------------------------------
# Registry / parser
# ---------------------------------------------------------------------------


@pytest.fixture()
def registry() -> FieldTypeRegistry:
    """A fresh registry pre-loaded with the built-in field types."""
    return FieldTypeRegistry.with_builtins()


@pytest.fixture()
def parser(registry: FieldTypeRegistry) -> SchemaParser:
    return SchemaParser(registry)


@pytest.fixture()
def blog_schemas(
    parser: SchemaParser,
    user_schema_dict: Dict[str, Any],
    post_schema_dict: Dict[str, Any],
) -> List[Schema]:
    """User hasMany Post / Post belongsTo User: a consistent two-model set."""
    return [parser.parse_mapping(user_schema_dict), parser.parse_mapping(post_schema_dict)]


@pytest.fixture()
def make_schema(parser: SchemaParser) -> Callable[..., Schema]:
    """Build a schema from keyword parts: ``make_schema("Tag", fields={...})``."""

    def _make(name: str, **parts: Any) -> Schema:
        data: Dict[str, Any] = {"model": name}
        data.update(parts)
        return parser.parse_mapping(data)

    return _make


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


@pytest.fixture()
def write_yaml(tmp_path: pathlib.Path) -> Callable[[str, Any], pathlib.Path]:
    """Write *data* (a dict, or raw text) to ``tmp_path/<name>`` and return the path."""

    def _write(name: str, data: Any) -> pathlib.Path:
        path = tmp_path / name
        if isinstance(data, str):
            path.write_text(data, encoding="utf-8")
        else:
            with open(path, "w", encoding="utf-8") as fh:
                yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=False)
        return path

    return _write
