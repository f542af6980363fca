# File: modelschema/errors.py
"""
ModelSchema - Exception Taxonomy
=================================
Every exception raised by the library derives from ``ModelSchemaError``.

Only ``MalformedInput`` is fatal to parsing.  The type / config / reference
errors below are normally *collected* by the validators into a
``ValidationResult``; the exception classes exist so that direct API calls
(``FieldTypeRegistry.get`` and friends) can raise them, and so callers can
catch a single base class.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.errors")


class ModelSchemaError(Exception):
    """Base class for all modelschema errors."""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class MalformedInput(ModelSchemaError, ValueError):
    """Raised when schema text cannot be decoded into a mapping at all."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        self.source: Optional[str] = source
        if source:
            message = f"Invalid schema in '{source}': {message}"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class UnknownFieldType(ModelSchemaError, KeyError):
    """No handler is registered (directly or by alias) for a field type."""

    def __init__(self, type_name: str) -> None:
        self.type_name: str = type_name
        super().__init__(f"Unknown field type: '{type_name}'")

    def __str__(self) -> str:
        return str(self.args[0])


class UnknownBaseType(ModelSchemaError, KeyError):
    """An alias was registered against a type that does not exist."""

    def __init__(self, alias: str, base_type: str) -> None:
        self.alias: str = alias
        self.base_type: str = base_type
        super().__init__(
            f"Cannot register alias '{alias}': base type '{base_type}' is not registered"
        )

    def __str__(self) -> str:
        return str(self.args[0])


class DuplicateType(ModelSchemaError):
    """Re-registration of an existing type while overwriting is disallowed."""

    def __init__(self, type_name: str) -> None:
        self.type_name: str = type_name
        super().__init__(f"Field type '{type_name}' is already registered")


class UnknownRelationshipType(ModelSchemaError):
    def __init__(self, relationship: str, type_name: str) -> None:
        self.relationship: str = relationship
        self.type_name: str = type_name
        super().__init__(
            f"Invalid relationship type '{type_name}' for relationship '{relationship}'"
        )


# ---------------------------------------------------------------------------
# Semantic validation
# ---------------------------------------------------------------------------


class InvalidFieldConfig(ModelSchemaError):
    """Structural rule violation within a single field's configuration."""

    def __init__(self, field: str, messages: Sequence[str]) -> None:
        self.field: str = field
        self.messages: List[str] = list(messages)
        super().__init__(f"Invalid configuration for field '{field}': " + "; ".join(self.messages))


class DanglingReference(ModelSchemaError):
    """A rule or relationship points at a model/column absent from the schema set."""


# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------


class PluginValidationFailed(ModelSchemaError):
    """A plugin failed its self-declared contract. Lists every violation."""

    def __init__(self, plugin: str, violations: Sequence[str]) -> None:
        self.plugin: str = plugin
        self.violations: List[str] = list(violations)
        super().__init__(
            f"Plugin validation failed for '{plugin}': " + "; ".join(self.violations)
        )


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class CacheUnavailable(ModelSchemaError):
    """The backing cache store cannot be reached."""


__all__: List[str] = [
    "ModelSchemaError",
    "MalformedInput",
    "UnknownFieldType",
    "UnknownBaseType",
    "DuplicateType",
    "UnknownRelationshipType",
    "InvalidFieldConfig",
    "DanglingReference",
    "PluginValidationFailed",
    "CacheUnavailable",
]

logger.debug("modelschema.errors loaded: %d public symbols.", len(__all__))
