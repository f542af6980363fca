# File: modelschema/plugins.py
"""
ModelSchema - Field-Type Plugins
=================================
User-supplied field types with metadata, custom attributes and a lifecycle.

``FieldTypePlugin`` is a ``FieldTypeHandler`` carrying version/author/
description metadata, declared dependencies on other field types, and a
table of *custom attributes* with their own validation.

``FieldTypePluginManager`` validates plugins, checks dependencies, registers
them (and their aliases) into a ``FieldTypeRegistry`` and discovers them from
plugin directories.  Discovery is manifest-based: each directory may carry a
``modelschema_plugins.yaml`` of the form

    plugins:
      - name: url
        factory: my_package.plugins:UrlFieldTypePlugin
        config: {max_length: 2048}

Factories are imported with ``importlib``.  A candidate that fails to import,
instantiate or validate is logged and skipped; the rest carry on.
"""

from __future__ import annotations

import importlib
import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, ClassVar, Dict, FrozenSet, List, Optional, Tuple, Union

import yaml

from modelschema.config import PluginEntry, PluginSettings
from modelschema.errors import ModelSchemaError, PluginValidationFailed
from modelschema.field_types import CAPABILITIES, COMMON_ATTRIBUTES, FieldTypeHandler
from modelschema.registry import FieldTypeRegistry

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.plugins")

_ATTRIBUTE_TYPE_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "float": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, (list, tuple)),
    "object": lambda v: isinstance(v, dict),
}


# ---------------------------------------------------------------------------
# Plugin base class
# ---------------------------------------------------------------------------


class FieldTypePlugin(FieldTypeHandler):
    """
    Base class for field-type plugins.

    Subclasses set ``TYPE_NAME``, ``description`` and implement
    ``migration_method`` / ``factory_value``.  ``validate_plugin`` reports
    anything missing instead of failing at import time.
    """

    version: ClassVar[str] = "1.0.0"
    author: ClassVar[str] = ""
    description: ClassVar[str] = ""
    dependencies: ClassVar[Tuple[str, ...]] = ()
    supported_databases: ClassVar[Tuple[str, ...]] = ("mysql", "postgresql", "sqlite")
    custom_attributes: ClassVar[Tuple[str, ...]] = ()
    custom_attribute_config: ClassVar[Dict[str, Dict[str, Any]]] = {}

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.config: Dict[str, Any] = dict(config or {})
        self.metadata: Dict[str, Any] = dict(metadata or {})
        self.enabled: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldTypePlugin":
        return cls(config=data.get("config"), metadata=data.get("metadata"))

    # -- Placeholders reported by validate_plugin ---------------------------

    def migration_method(self) -> str:
        raise NotImplementedError(f"{type(self).__name__} must implement migration_method()")

    def factory_value(self, config: Dict[str, Any]) -> str:
        raise NotImplementedError(f"{type(self).__name__} must implement factory_value()")

    def _unimplemented_methods(self) -> List[str]:
        missing: List[str] = []
        for name in ("migration_method", "factory_value"):
            if getattr(type(self), name) is getattr(FieldTypePlugin, name):
                missing.append(name)
        for name in CAPABILITIES:
            if not callable(getattr(self, name, None)):
                missing.append(name)
        return missing

    def validate_plugin(self) -> List[str]:
        """Every contract violation, in a stable order. Empty when the plugin is sound."""
        errors: List[str] = []
        if not self.type_name():
            errors.append("Plugin must define a type")
        if not self.description:
            errors.append("Plugin should have a description")
        for method in self._unimplemented_methods():
            errors.append(f"Plugin must implement method: {method}")
        return errors

    # -- Attributes ---------------------------------------------------------

    def supported_attributes(self) -> FrozenSet[str]:
        return (
            COMMON_ATTRIBUTES
            | frozenset(self.SPECIFIC_ATTRIBUTES)
            | frozenset(self.custom_attributes)
        )

    def validate(self, config: Dict[str, Any]) -> List[str]:
        return self.validate_custom_attributes(config)

    def validate_custom_attribute(self, name: str, value: Any) -> List[str]:
        """Check *value* against the ``custom_attribute_config`` entry for *name*."""
        attr_config: Optional[Dict[str, Any]] = self.custom_attribute_config.get(name)
        if attr_config is None:
            return []

        expected: Optional[str] = attr_config.get("type")
        if expected is not None:
            check: Optional[Callable[[Any], bool]] = _ATTRIBUTE_TYPE_CHECKS.get(expected)
            if check is not None and not check(value):
                return [f"Custom attribute '{name}' must be of type {expected}"]

        errors: List[str] = []
        is_number: bool = isinstance(value, (int, float)) and not isinstance(value, bool)
        if is_number and "min" in attr_config and value < attr_config["min"]:
            errors.append(f"Custom attribute '{name}' must be at least {attr_config['min']}")
        if is_number and "max" in attr_config and value > attr_config["max"]:
            errors.append(f"Custom attribute '{name}' must be at most {attr_config['max']}")

        allowed: Optional[List[Any]] = attr_config.get("enum")
        if allowed is not None:
            members: List[Any] = list(value) if isinstance(value, (list, tuple)) else [value]
            invalid: List[Any] = [m for m in members if m not in allowed]
            if invalid:
                errors.append(
                    f"Custom attribute '{name}' must be one of: "
                    + ", ".join(str(a) for a in allowed)
                )

        validator: Any = attr_config.get("validator")
        if callable(validator):
            errors.extend(validator(value))
        return errors

    def validate_custom_attributes(self, config: Dict[str, Any]) -> List[str]:
        errors: List[str] = []
        for name in self.custom_attributes:
            attr_config: Dict[str, Any] = self.custom_attribute_config.get(name, {})
            if name not in config:
                if attr_config.get("required"):
                    errors.append(f"Custom attribute '{name}' is required")
                continue
            errors.extend(self.validate_custom_attribute(name, config[name]))
        return errors

    def apply_custom_attribute_defaults(self, config: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(config)
        for name in self.custom_attributes:
            attr_config: Dict[str, Any] = self.custom_attribute_config.get(name, {})
            if name not in result and "default" in attr_config:
                result[name] = attr_config["default"]
        return result

    def transform_config(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        return self.apply_custom_attribute_defaults(attributes)

    # -- Lifecycle ----------------------------------------------------------

    def initialize(self) -> None:
        """Called once after successful registration."""

    def cleanup(self) -> None:
        """Called when the plugin is unregistered."""

    # -- Metadata -----------------------------------------------------------

    def get_config_value(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def supports_database(self, database: str) -> bool:
        return database in self.supported_databases

    def get_metadata(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.type_name(),
            "version": self.version,
            "author": self.author,
            "description": self.description,
            "enabled": self.enabled,
            "dependencies": list(self.dependencies),
            "aliases": self.aliases(),
            "supported_databases": list(self.supported_databases),
            "attributes": sorted(self.supported_attributes()),
            "custom_attributes": list(self.custom_attributes),
        }
        data.update(self.metadata)
        return data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.get_metadata(),
            "config": dict(self.config),
            "type": self.type_name(),
            "aliases": self.aliases(),
        }

    def __repr__(self) -> str:
        state: str = "enabled" if self.enabled else "disabled"
        return f"<{type(self).__name__} {self.type_name()} v{self.version} {state}>"


# ---------------------------------------------------------------------------
# Discovery report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class DiscoveryReport:
    """Outcome of one ``discover_plugins`` run."""

    registered: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)
    manifests: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        lines: List[str] = [
            f"Plugin discovery: {len(self.registered)} registered, "
            f"{len(self.failed)} failed, {len(self.manifests)} manifest(s)."
        ]
        for name in self.registered:
            lines.append(f"  ✓ {name}")
        for name, reason in self.failed:
            lines.append(f"  ✗ {name}: {reason}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


def _import_factory(reference: str) -> Any:
    """Resolve ``"package.module:Attr"`` (or ``"package.module.Attr"``) to an object."""
    if ":" in reference:
        module_name, _, attr_path = reference.partition(":")
    else:
        module_name, _, attr_path = reference.rpartition(".")
    if not module_name or not attr_path:
        raise ImportError(f"Invalid factory reference '{reference}'")
    obj: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        obj = getattr(obj, part)
    return obj


class FieldTypePluginManager:
    """Registers, tracks and discovers field-type plugins for one registry."""

    def __init__(
        self,
        registry: FieldTypeRegistry,
        settings: Optional[PluginSettings] = None,
    ) -> None:
        self.registry: FieldTypeRegistry = registry
        self.settings: PluginSettings = settings or PluginSettings()
        self._plugins: Dict[str, FieldTypeHandler] = {}
        self._directories: List[Path] = []
        self._manifest_cache: Dict[str, Tuple[int, List[Dict[str, Any]]]] = {}
        self._lock: threading.RLock = threading.RLock()

    # -- Registration -------------------------------------------------------

    def register_plugin(self, plugin: FieldTypeHandler) -> None:
        """
        Validate and register *plugin* with its aliases, then initialise it.

        Raises:
            PluginValidationFailed: Listing every violation found.
        """
        type_name: str = plugin.type_name()
        violations: List[str] = []
        if isinstance(plugin, FieldTypePlugin):
            violations.extend(plugin.validate_plugin())
        else:
            violations.extend(
                f"Plugin must implement method: {name}"
                for name in CAPABILITIES
                if not callable(getattr(plugin, name, None))
            )

        with self._lock:
            if type_name and type_name in self._plugins:
                violations.append(f"Plugin with type '{type_name}' already registered")
            if isinstance(plugin, FieldTypePlugin):
                for dependency in plugin.dependencies:
                    if not self.registry.has(dependency):
                        violations.append(
                            f"Plugin '{type_name}' requires field type "
                            f"'{dependency}' which is not registered"
                        )
            if violations:
                raise PluginValidationFailed(type_name or type(plugin).__name__, violations)

            self.registry.register(type_name, plugin)
            for alias in plugin.aliases():
                self.registry.register_alias(alias, type_name)
            self._plugins[type_name] = plugin

        if isinstance(plugin, FieldTypePlugin):
            plugin.initialize()
        logger.debug("Registered plugin '%s' (%d aliases).", type_name, len(plugin.aliases()))

    def unregister_plugin(self, type_name: str) -> None:
        """Clean up and drop a plugin. Raises ``KeyError`` when it is unknown."""
        with self._lock:
            plugin: Optional[FieldTypeHandler] = self._plugins.pop(type_name, None)
            if plugin is None:
                raise KeyError(f"Plugin '{type_name}' not found")
            self.registry.unregister(type_name)
        if isinstance(plugin, FieldTypePlugin):
            plugin.cleanup()
        logger.debug("Unregistered plugin '%s'.", type_name)

    # -- Lookup -------------------------------------------------------------

    def get_plugins(self) -> Dict[str, FieldTypeHandler]:
        with self._lock:
            return dict(self._plugins)

    def get_plugin(self, type_name: str) -> Optional[FieldTypeHandler]:
        with self._lock:
            return self._plugins.get(type_name)

    def has_plugin(self, type_name: str) -> bool:
        with self._lock:
            return type_name in self._plugins

    def get_enabled_plugins(self) -> Dict[str, FieldTypeHandler]:
        with self._lock:
            return {
                name: plugin
                for name, plugin in self._plugins.items()
                if not isinstance(plugin, FieldTypePlugin) or plugin.enabled
            }

    def _set_enabled(self, type_name: str, enabled: bool) -> bool:
        plugin: Optional[FieldTypeHandler] = self.get_plugin(type_name)
        if not isinstance(plugin, FieldTypePlugin):
            return False
        plugin.enabled = enabled
        logger.debug("Plugin '%s' %s.", type_name, "enabled" if enabled else "disabled")
        return True

    def enable_plugin(self, type_name: str) -> bool:
        return self._set_enabled(type_name, True)

    def disable_plugin(self, type_name: str) -> bool:
        return self._set_enabled(type_name, False)

    def get_plugin_metadata(self, type_name: str) -> Dict[str, Any]:
        plugin: Optional[FieldTypeHandler] = self.get_plugin(type_name)
        if not isinstance(plugin, FieldTypePlugin):
            return {}
        return plugin.get_metadata()

    def get_all_plugin_metadata(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: plugin.get_metadata()
            for name, plugin in self.get_plugins().items()
            if isinstance(plugin, FieldTypePlugin)
        }

    # -- Directories --------------------------------------------------------

    @property
    def plugin_directories(self) -> List[Path]:
        with self._lock:
            return list(self._directories)

    def add_plugin_directory(self, directory: Union[str, Path]) -> None:
        path: Path = Path(directory)
        if not path.is_dir():
            raise FileNotFoundError(f"Plugin directory '{directory}' does not exist")
        with self._lock:
            resolved: Path = path.resolve()
            if resolved not in self._directories:
                self._directories.append(resolved)

    def set_plugin_directories(self, directories: List[Union[str, Path]]) -> None:
        with self._lock:
            self._directories = []
            for directory in directories:
                self.add_plugin_directory(directory)

    # -- Discovery ----------------------------------------------------------

    def _find_manifest(self, directory: Path) -> Optional[Path]:
        for name in self.settings.manifest_names:
            candidate: Path = directory / name
            if candidate.is_file():
                return candidate
        return None

    def _read_manifest(self, path: Path) -> List[Dict[str, Any]]:
        key: str = str(path)
        mtime: int = path.stat().st_mtime_ns
        cached: Optional[Tuple[int, List[Dict[str, Any]]]] = self._manifest_cache.get(key)
        if cached is not None and cached[0] == mtime:
            return cached[1]

        text: str = path.read_text(encoding="utf-8")
        data: Any = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
        entries: Any = data.get("plugins", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise ModelSchemaError(f"Plugin manifest {path} must contain a 'plugins' list")

        self._manifest_cache[key] = (mtime, entries)
        return entries

    def _instantiate(self, reference: str, config: Optional[Dict[str, Any]]) -> FieldTypeHandler:
        factory: Any = _import_factory(reference)
        candidate: Any
        if isinstance(factory, type) and issubclass(factory, FieldTypePlugin):
            candidate = factory(config=config)
        else:
            candidate = factory()
            if isinstance(candidate, FieldTypePlugin) and config:
                candidate.config.update(config)
        if not isinstance(candidate, FieldTypeHandler):
            raise TypeError(f"'{reference}' did not produce a FieldTypeHandler")
        return candidate

    def discover_plugins(self) -> DiscoveryReport:
        """Register every plugin listed in the manifests of the plugin directories."""
        report: DiscoveryReport = DiscoveryReport()
        for directory in self.plugin_directories:
            manifest: Optional[Path] = self._find_manifest(directory)
            if manifest is None:
                logger.debug("No plugin manifest in %s.", directory)
                continue
            report.manifests.append(str(manifest))

            try:
                entries: List[Dict[str, Any]] = self._read_manifest(manifest)
            except (OSError, ValueError, yaml.YAMLError, ModelSchemaError) as exc:
                logger.warning("Unreadable plugin manifest %s: %s", manifest, exc)
                report.failed.append((str(manifest), str(exc)))
                continue

            for entry in entries:
                label: str = str(entry.get("name") or entry.get("factory")) if isinstance(entry, dict) else repr(entry)
                try:
                    if not isinstance(entry, dict) or not entry.get("factory"):
                        raise ModelSchemaError("Manifest entry must define 'factory'")
                    plugin: FieldTypeHandler = self._instantiate(entry["factory"], entry.get("config"))
                    self.register_plugin(plugin)
                except Exception as exc:  # noqa: BLE001
                    logger.warning("Failed to load plugin '%s' from %s: %s", label, manifest, exc)
                    report.failed.append((label, str(exc)))
                    continue
                report.registered.append(plugin.type_name())

        logger.info(
            "Plugin discovery finished: %d registered, %d failed.",
            len(report.registered),
            len(report.failed),
        )
        return report

    def clear_cache(self) -> None:
        self._manifest_cache.clear()

    # -- Configuration ------------------------------------------------------

    def load_from_config(
        self, config: Union[PluginSettings, Dict[str, Any]]
    ) -> Optional[DiscoveryReport]:
        """
        Apply a plugin configuration block.

        Returns the discovery report when auto-discovery ran, else ``None``.
        Explicit ``plugins`` entries are strict: any failure raises.
        """
        settings: PluginSettings = (
            config if isinstance(config, PluginSettings) else PluginSettings.model_validate(config)
        )
        report: Optional[DiscoveryReport] = None
        if settings.auto_discovery and settings.plugin_directories:
            self.set_plugin_directories(list(settings.plugin_directories))
            report = self.discover_plugins()

        for entry in settings.plugins:
            self._load_entry(entry)
        return report

    def _load_entry(self, entry: PluginEntry) -> None:
        try:
            plugin: FieldTypeHandler = self._instantiate(entry.class_path, entry.config)
        except (ImportError, AttributeError) as exc:
            raise PluginValidationFailed(
                entry.class_path, [f"Plugin class '{entry.class_path}' not found"]
            ) from exc
        except TypeError as exc:
            raise PluginValidationFailed(
                entry.class_path,
                [f"Plugin class '{entry.class_path}' must be a FieldTypeHandler: {exc}"],
            ) from exc
        self.register_plugin(plugin)

    def __repr__(self) -> str:
        return (
            f"<FieldTypePluginManager plugins={len(self._plugins)} "
            f"directories={len(self._directories)}>"
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FieldTypePlugin",
    "DiscoveryReport",
    "FieldTypePluginManager",
]

logger.debug("modelschema.plugins loaded: %d public symbols.", len(__all__))
