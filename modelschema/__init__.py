# File: modelschema/__init__.py
"""
ModelSchema — Declarative Data-Model Schemas
=============================================

Parses YAML/JSON model definitions (fields, relationships, options) into
immutable ``Schema`` entities, resolves field types through a pluggable
registry, and checks whole schema sets for consistency.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌──────────────────┐
    │ SchemaParser │────▶│ FieldTypeReg.  │◀────│ PluginManager    │
    │ (parser.py)  │     │ (registry.py)  │     │ (plugins.py)     │
    └──────┬───────┘     └───────┬────────┘     └──────────────────┘
           │                     │
           ▼                     ▼
    ┌──────────────┐     ┌────────────────┐     ┌──────────────────┐
    │   Schema     │────▶│  validators    │     │ SchemaOptimizer  │
    │ (models.py)  │     │  diff          │     │ + SchemaCache    │
    └──────────────┘     └────────────────┘     └──────────────────┘

Usage::

    from modelschema import FieldTypeRegistry, SchemaParser, validate_full
    registry = FieldTypeRegistry.with_builtins()
    parser = SchemaParser(registry)
    schemas = [parser.parse_file(p) for p in paths]
    result = validate_full(schemas, registry)
    print(result.format_report())

Public API:
    - Schema / FieldDefinition / RelationshipDefinition — entities
    - FieldTypeRegistry, FieldTypeHandler — type resolution
    - FieldTypePlugin, FieldTypePluginManager — third-party types
    - SchemaParser — YAML/JSON → Schema
    - validate_full, ValidationResult — consistency checks
    - compare_schemas — version diff
    - SchemaCache, SchemaOptimizer — caching and large-document parsing
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from modelschema.cache import (
    CacheStore,
    InMemoryCacheStore,
    RedisCacheStore,
    SchemaCache,
    content_fingerprint,
    file_fingerprint,
)
from modelschema.config import (
    CacheSettings,
    ModelSchemaSettings,
    OptimizerSettings,
    PluginSettings,
)
from modelschema.diff import SchemaDiff, compare_schemas
from modelschema.errors import (
    CacheUnavailable,
    DanglingReference,
    DuplicateType,
    InvalidFieldConfig,
    MalformedInput,
    ModelSchemaError,
    PluginValidationFailed,
    UnknownBaseType,
    UnknownFieldType,
    UnknownRelationshipType,
)
from modelschema.field_types import BUILTIN_HANDLERS, FieldTypeHandler
from modelschema.models import (
    FieldDefinition,
    RelationshipDefinition,
    RelationshipType,
    Schema,
)
from modelschema.optimization import QuickValidationReport, SchemaOptimizer
from modelschema.parser import SchemaParser, load_mapping
from modelschema.plugins import DiscoveryReport, FieldTypePlugin, FieldTypePluginManager
from modelschema.registry import (
    FieldTypeRegistry,
    get_default_registry,
    reset_default_registry,
)
from modelschema.validators import (
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

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Entities
    "Schema",
    "FieldDefinition",
    "RelationshipDefinition",
    "RelationshipType",
    # Field types
    "BUILTIN_HANDLERS",
    "FieldTypeHandler",
    "FieldTypeRegistry",
    "get_default_registry",
    "reset_default_registry",
    # Plugins
    "FieldTypePlugin",
    "FieldTypePluginManager",
    "DiscoveryReport",
    # Parsing
    "SchemaParser",
    "load_mapping",
    # Validation
    "ValidationResult",
    "validate_full",
    "validate_schema",
    "validate_field_types",
    "validate_validation_rules",
    "validate_relationship_consistency",
    "validate_relationship_targets",
    "detect_circular_dependencies",
    "find_missing_inverse_relationships",
    "analyze_performance",
    "comprehensive_report",
    # Diff
    "SchemaDiff",
    "compare_schemas",
    # Cache & optimization
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "SchemaCache",
    "content_fingerprint",
    "file_fingerprint",
    "SchemaOptimizer",
    "QuickValidationReport",
    # Settings
    "ModelSchemaSettings",
    "CacheSettings",
    "OptimizerSettings",
    "PluginSettings",
    # Errors
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
