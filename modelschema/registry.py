# File: modelschema/registry.py
"""
ModelSchema - Field-Type Registry
==================================
Maps field-type identifiers (canonical names and aliases) to handler
factories and memoises one handler instance per canonical type.

The registry is an ordinary object passed to the parser and validators.
``get_default_registry()`` exists only as a composition root for callers who
want a process-wide instance pre-loaded with the built-ins.

Thread-safety:
    - All state is guarded by a read/write lock.
    - Lookups (``get``, ``has``, ``resolve``, enumeration) share the lock.
    - ``register``, ``register_alias`` and ``clear`` are exclusive.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Callable, Dict, Iterator, List, Optional, Type, Union

from modelschema.errors import DuplicateType, UnknownBaseType, UnknownFieldType
from modelschema.field_types import BUILTIN_HANDLERS, FieldTypeHandler

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.registry")

HandlerFactory = Callable[[], FieldTypeHandler]

# Global registry instance
_default_registry: Optional["FieldTypeRegistry"] = None
_default_registry_lock: threading.Lock = threading.Lock()


# ---------------------------------------------------------------------------
# Read/write lock
# ---------------------------------------------------------------------------


class ReadWriteLock:
    """
    Many concurrent readers or a single writer.

    Writers are preferred: once a writer is waiting, new readers queue behind
    it so registration cannot starve.
    """

    __slots__ = ("_cond", "_readers", "_writer", "_writers_waiting")

    def __init__(self) -> None:
        self._cond: threading.Condition = threading.Condition(threading.Lock())
        self._readers: int = 0
        self._writer: bool = False
        self._writers_waiting: int = 0

    @contextlib.contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextlib.contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class FieldTypeRegistry:
    """Central registry of field-type handlers.

    Args:
        allow_overwrite: When False, registering an already-registered type
            raises ``DuplicateType`` instead of replacing it.

    Example:
        >>> registry = FieldTypeRegistry.with_builtins()
        >>> registry.resolve("varchar")
        'string'
        >>> registry.get("bigint").type_name()
        'bigInteger'
    """

    def __init__(self, allow_overwrite: bool = True) -> None:
        self.allow_overwrite: bool = allow_overwrite
        self._factories: Dict[str, HandlerFactory] = {}
        self._aliases: Dict[str, str] = {}
        self._instances: Dict[str, FieldTypeHandler] = {}
        self._lock: ReadWriteLock = ReadWriteLock()

    @classmethod
    def with_builtins(cls, allow_overwrite: bool = True) -> "FieldTypeRegistry":
        registry: FieldTypeRegistry = cls(allow_overwrite=allow_overwrite)
        registry.register_builtins()
        return registry

    # -- Mutation -----------------------------------------------------------

    def register(
        self,
        type_name: str,
        handler: Union[HandlerFactory, Type[FieldTypeHandler], FieldTypeHandler],
    ) -> None:
        """Register *handler* (a factory, a handler class or an instance) as *type_name*.

        Raises:
            DuplicateType: If *type_name* exists and overwriting is disallowed.
        """
        if not type_name:
            raise ValueError("Field type name must be a non-empty string.")

        factory: HandlerFactory
        if isinstance(handler, FieldTypeHandler):
            factory = _InstanceFactory(handler)
        else:
            factory = handler

        with self._lock.write_locked():
            existing: Optional[HandlerFactory] = self._factories.get(type_name)
            if existing is not None:
                if existing == factory:
                    return
                if not self.allow_overwrite:
                    raise DuplicateType(type_name)
                logger.debug("Overwriting field type '%s'.", type_name)

            self._factories[type_name] = factory
            self._instances.pop(type_name, None)
            self._aliases.pop(type_name, None)
            if isinstance(handler, FieldTypeHandler):
                self._instances[type_name] = handler
            logger.debug("Registered field type '%s'.", type_name)

    def register_alias(self, alias: str, base_type: str) -> None:
        """Make *alias* resolve to *base_type* (itself a type or an alias).

        Raises:
            UnknownBaseType: If *base_type* is not known.
        """
        with self._lock.write_locked():
            canonical: Optional[str] = self._resolve_unlocked(base_type)
            if canonical is None:
                raise UnknownBaseType(alias, base_type)
            self._aliases[alias] = canonical
            logger.debug("Registered alias '%s' -> '%s'.", alias, canonical)

    def register_handler(self, handler: Union[Type[FieldTypeHandler], FieldTypeHandler]) -> None:
        """Register a handler under its own type name together with all its aliases."""
        sample: FieldTypeHandler = handler if isinstance(handler, FieldTypeHandler) else handler()
        type_name: str = sample.type_name()
        self.register(type_name, handler)
        for alias in sample.aliases():
            self.register_alias(alias, type_name)

    def register_builtins(self) -> None:
        for handler_cls in BUILTIN_HANDLERS:
            self.register_handler(handler_cls)
        logger.debug("Registered %d built-in field types.", len(BUILTIN_HANDLERS))

    def unregister(self, type_name: str) -> bool:
        """Remove a type and every alias pointing at it. Returns False if absent."""
        with self._lock.write_locked():
            if type_name not in self._factories:
                return False
            del self._factories[type_name]
            self._instances.pop(type_name, None)
            for alias in [a for a, base in self._aliases.items() if base == type_name]:
                del self._aliases[alias]
        logger.debug("Unregistered field type '%s'.", type_name)
        return True

    def clear(self) -> None:
        with self._lock.write_locked():
            self._factories.clear()
            self._aliases.clear()
            self._instances.clear()
        logger.debug("Field-type registry cleared.")

    # -- Lookup -------------------------------------------------------------

    def _resolve_unlocked(self, type_name: str) -> Optional[str]:
        if type_name in self._factories:
            return type_name
        return self._aliases.get(type_name)

    def resolve(self, type_name: str) -> Optional[str]:
        """Canonical name for *type_name*, or ``None`` if unknown."""
        with self._lock.read_locked():
            return self._resolve_unlocked(type_name)

    def has(self, type_name: str) -> bool:
        return self.resolve(type_name) is not None

    def get(self, type_name: str) -> FieldTypeHandler:
        """Return the memoised handler for *type_name*.

        Raises:
            UnknownFieldType: If neither a type nor an alias matches.
        """
        with self._lock.read_locked():
            canonical: Optional[str] = self._resolve_unlocked(type_name)
            if canonical is None:
                raise UnknownFieldType(type_name)
            instance: Optional[FieldTypeHandler] = self._instances.get(canonical)
            if instance is not None:
                return instance

        with self._lock.write_locked():
            canonical = self._resolve_unlocked(type_name)
            if canonical is None:
                raise UnknownFieldType(type_name)
            instance = self._instances.get(canonical)
            if instance is None:
                instance = self._factories[canonical]()
                self._instances[canonical] = instance
            return instance

    # -- Enumeration --------------------------------------------------------

    def all(self) -> Dict[str, HandlerFactory]:
        """Every identifier (types and aliases) mapped to its factory."""
        with self._lock.read_locked():
            result: Dict[str, HandlerFactory] = dict(self._factories)
            for alias, canonical in self._aliases.items():
                result[alias] = self._factories[canonical]
            return result

    def get_base_types(self) -> List[str]:
        """Registered types whose handler reports its own name as canonical."""
        with self._lock.read_locked():
            names: List[str] = list(self._factories)
        return [name for name in names if self.get(name).type_name() == name]

    def get_aliases(self) -> Dict[str, str]:
        with self._lock.read_locked():
            return dict(self._aliases)

    def __contains__(self, type_name: object) -> bool:
        return isinstance(type_name, str) and self.has(type_name)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._factories)

    def __repr__(self) -> str:
        with self._lock.read_locked():
            return (
                f"<FieldTypeRegistry types={len(self._factories)} "
                f"aliases={len(self._aliases)}>"
            )


class _InstanceFactory:
    """Factory returning a pre-built handler; equal when wrapping the same instance."""

    __slots__ = ("instance",)

    def __init__(self, instance: FieldTypeHandler) -> None:
        self.instance: FieldTypeHandler = instance

    def __call__(self) -> FieldTypeHandler:
        return self.instance

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _InstanceFactory) and other.instance is self.instance

    def __hash__(self) -> int:
        return id(self.instance)


# ---------------------------------------------------------------------------
# Composition root
# ---------------------------------------------------------------------------


def get_default_registry() -> FieldTypeRegistry:
    """Process-wide registry with the built-ins, created on first use."""
    global _default_registry
    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = FieldTypeRegistry.with_builtins()
        return _default_registry


def reset_default_registry() -> None:
    """Drop the process-wide registry. For tests."""
    global _default_registry
    with _default_registry_lock:
        _default_registry = None


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "HandlerFactory",
    "ReadWriteLock",
    "FieldTypeRegistry",
    "get_default_registry",
    "reset_default_registry",
]

logger.debug("modelschema.registry loaded: %d public symbols.", len(__all__))
