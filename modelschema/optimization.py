# File: modelschema/optimization.py
"""
ModelSchema - Optimization Layer
=================================
Wraps a ``SchemaParser`` with the schema cache, section-level parsing and a
cheap pre-flight check.

- ``parse`` / ``parse_file`` consult the cache first.  A hit returns the
  stored ``Schema``; results are the same with caching on or off.
- Large documents are decoded section by section (``lazy``) or streamed
  block by block (``streaming``) instead of in one ``yaml.safe_load``.
  Documents whose plain-key split would not match a full decode (quoted or
  repeated top-level keys, shared anchors) are parsed whole.
- ``parse_section`` decodes a single top-level block and memoises it.
- ``quick_validate`` reports problems as messages instead of raising.

Usage:
    optimizer = SchemaOptimizer(SchemaParser(registry), SchemaCache())
    schema = optimizer.parse(text, "Post")
    print(optimizer.metrics.cache_hit_rate)
"""

from __future__ import annotations

import copy
import logging
import math
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from functools import reduce
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import yaml

from modelschema.cache import SchemaCache, content_fingerprint
from modelschema.config import OptimizerSettings
from modelschema.errors import MalformedInput
from modelschema.models import Schema
from modelschema.parser import DEFAULT_MODEL_NAME, SchemaParser, load_mapping
from modelschema.utils import Timer

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.optimization")

STRATEGY_STANDARD: str = "standard"
STRATEGY_LAZY: str = "lazy"
STRATEGY_STREAMING: str = "streaming"

_SECTION_HEADER: re.Pattern = re.compile(r"^([A-Za-z_][A-Za-z0-9_\-]*)\s*:(?:\s|$)")
_CONTROL_CHARS: re.Pattern = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_STR_TAG: str = "tag:yaml.org,2002:str"
_SPECIAL_KEY_LINE: re.Pattern = re.compile(r"^[\"'?]", re.MULTILINE)

_ENTRY_SECTIONS: Tuple[str, ...] = ("fields", "relationships", "relations")
_MAPPING_SECTIONS: Tuple[str, ...] = ("options", "metadata")


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class OptimizationMetrics:
    total_parses: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    section_parses: int = 0
    quick_validations: int = 0
    memory_saved_bytes: int = 0
    time_saved_ms: float = 0.0
    strategies: Dict[str, int] = field(
        default_factory=lambda: {
            STRATEGY_STANDARD: 0,
            STRATEGY_LAZY: 0,
            STRATEGY_STREAMING: 0,
        }
    )

    @property
    def cache_hit_rate(self) -> float:
        lookups: int = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_parses": self.total_parses,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "cache_hit_rate": self.cache_hit_rate,
            "section_parses": self.section_parses,
            "quick_validations": self.quick_validations,
            "memory_saved_bytes": self.memory_saved_bytes,
            "time_saved_ms": round(self.time_saved_ms, 3),
            "strategies": dict(self.strategies),
        }

    def summary(self) -> str:
        lines: List[str] = [
            "=" * 60,
            "  Schema optimizer metrics",
            "=" * 60,
            f"  Parses        : {self.total_parses}",
            f"  Cache hits    : {self.cache_hits} ({self.cache_hit_rate:.0%})",
            f"  Section parses: {self.section_parses}",
            f"  Time saved    : {self.time_saved_ms:.1f} ms",
            f"  Bytes saved   : {self.memory_saved_bytes}",
            "=" * 60,
        ]
        return "\n".join(lines)


@dataclass(frozen=False, slots=True)
class QuickValidationReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


# ---------------------------------------------------------------------------
# Section helpers
# ---------------------------------------------------------------------------


def iter_sections(text: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(key, raw block)`` for every plain top-level key of a YAML document."""
    current: Optional[str] = None
    block: List[str] = []
    for line in text.splitlines(keepends=True):
        match: Optional[re.Match] = _SECTION_HEADER.match(line)
        if match:
            if current is not None:
                yield current, "".join(block)
            current = match.group(1)
            block = [line]
        elif current is not None:
            block.append(line)
    if current is not None:
        yield current, "".join(block)


def _split_sections(text: str) -> Optional[List[Tuple[str, str]]]:
    """
    Section blocks of *text*, or ``None`` when the line-based split cannot
    match a full decode: content before the first plain key, or a repeated key.
    """
    for line in text.splitlines():
        if _SECTION_HEADER.match(line):
            break
        stripped: str = line.strip()
        if stripped and stripped != "---" and not stripped.startswith(("#", "%")):
            return None

    blocks: List[Tuple[str, str]] = list(iter_sections(text))
    names: List[str] = [name for name, _ in blocks]
    if len(set(names)) != len(names):
        return None
    return blocks


def _compose_block(text: str, section: str) -> str:
    """Raw text of *section* located through the YAML node tree; the last duplicate wins."""
    try:
        root: Any = yaml.compose(text, Loader=yaml.SafeLoader)
    except yaml.YAMLError as exc:
        raise MalformedInput(f"Invalid YAML: {exc}") from exc
    if isinstance(root, yaml.MappingNode):
        for key_node, value_node in reversed(root.value):
            if (
                isinstance(key_node, yaml.ScalarNode)
                and key_node.tag == _STR_TAG
                and key_node.value == section
            ):
                return text[key_node.start_mark.index:value_node.end_mark.index]
    raise KeyError(section)


def _decode_block(section: str, block: str) -> Any:
    """Decode one block; it must hold exactly the key *section*."""
    try:
        data: Any = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise MalformedInput(f"Invalid YAML in section '{section}': {exc}") from exc
    if not isinstance(data, dict) or list(data) != [section]:
        raise MalformedInput(f"Section '{section}' could not be decoded on its own.")
    return data[section]


def _looks_like_json(text: str) -> bool:
    return text.lstrip().startswith("{")


# ---------------------------------------------------------------------------
# Optimizer
# ---------------------------------------------------------------------------


class SchemaOptimizer:
    """
    Caching, size-aware front end to ``SchemaParser``.

    Args:
        parser: Parser doing the real work (default: one over the default registry).
        cache: Schema cache (default: an in-memory ``SchemaCache``).
        settings: Thresholds and section-cache sizing.
    """

    def __init__(
        self,
        parser: Optional[SchemaParser] = None,
        cache: Optional[SchemaCache] = None,
        settings: Optional[OptimizerSettings] = None,
    ) -> None:
        self.parser: SchemaParser = parser if parser is not None else SchemaParser()
        self.cache: SchemaCache = cache if cache is not None else SchemaCache()
        self.settings: OptimizerSettings = settings or OptimizerSettings()
        self.metrics: OptimizationMetrics = OptimizationMetrics()
        self._section_cache: "OrderedDict[Tuple[str, str], Any]" = OrderedDict()
        self._parse_times: Dict[str, float] = {}

    @property
    def caching(self) -> bool:
        return self.settings.enable_cache and self.cache.enabled

    # -- Strategy -----------------------------------------------------------

    def choose_strategy(self, text: str) -> str:
        size: int = len(text.encode("utf-8"))
        if size <= self.settings.lazy_threshold_bytes:
            return STRATEGY_STANDARD
        if size <= self.settings.streaming_threshold_bytes:
            return STRATEGY_LAZY
        return STRATEGY_STREAMING

    # -- Parsing ------------------------------------------------------------

    def parse(self, text: str, name: str = DEFAULT_MODEL_NAME) -> Schema:
        """Parse *text*, serving repeated documents from the cache."""
        self.metrics.total_parses += 1

        key: Optional[str] = None
        if self.caching:
            key = self.cache.content_key(text, name)
            cached: Optional[Any] = self.cache.get_schema_by_content(text, name)
            if cached is not None:
                self._record_hit(key, len(text.encode("utf-8")))
                return cached
            self.metrics.cache_misses += 1

        strategy: str = self.choose_strategy(text)
        self.metrics.strategies[strategy] += 1
        with Timer(f"parse ({strategy})") as timer:
            schema: Schema = self._parse_with_strategy(text, name, strategy)

        if key is not None:
            self._parse_times[key] = timer.elapsed_ms
            self.cache.put_schema_by_content(text, schema, name)
        return schema

    def parse_file(self, path: Union[str, Path]) -> Schema:
        """Parse a schema file, keyed in the cache by path and mtime."""
        path = Path(path)
        self.metrics.total_parses += 1

        key: Optional[str] = None
        if self.caching and path.is_file():
            key = self.cache.file_key(path)
            cached: Optional[Any] = self.cache.get_schema_by_file(path)
            if cached is not None:
                self._record_hit(key, path.stat().st_size)
                return cached
            self.metrics.cache_misses += 1

        self.metrics.strategies[STRATEGY_STANDARD] += 1
        with Timer(f"parse_file {path.name}") as timer:
            schema: Schema = self.parser.parse_file(path)

        if key is not None:
            self._parse_times[key] = timer.elapsed_ms
            self.cache.put_schema_by_file(path, schema)
        return schema

    def _record_hit(self, key: str, size: int) -> None:
        self.metrics.cache_hits += 1
        self.metrics.time_saved_ms += self._parse_times.get(key, 0.0)
        self.metrics.memory_saved_bytes += size
        logger.debug("Cache hit for %s.", key)

    def _parse_with_strategy(self, text: str, name: str, strategy: str) -> Schema:
        if strategy == STRATEGY_STANDARD or _looks_like_json(text):
            return self.parser.parse(text, name)

        blocks: Optional[List[Tuple[str, str]]] = _split_sections(text)
        if not blocks:
            logger.debug("Document does not split into plain sections; using a full parse.")
            return self.parser.parse(text, name)

        try:
            data: Dict[str, Any]
            if strategy == STRATEGY_LAZY:
                data = {section: self._memoised_section(text, section, block)
                        for section, block in blocks}
            else:
                data = {section: _decode_block(section, block)
                        for section, block in blocks}
        except MalformedInput as exc:
            # Sections that share anchors only decode as a whole document
            logger.debug("Section-wise decode failed (%s); using a full parse.", exc)
            return self.parser.parse(text, name)

        return self.parser.parse_mapping(data, name)

    # -- Sections -----------------------------------------------------------

    def identify_sections(self, text: str) -> List[str]:
        """Plain top-level keys in document order."""
        return [section for section, _ in iter_sections(text)]

    def extract_section(self, text: str, section: str) -> str:
        """
        Raw text block of one top-level key.

        Quoted or repeated keys are located through the YAML node tree.

        Raises:
            KeyError: If *section* is not a top-level key of *text*.
        """
        blocks: List[str] = [block for key, block in iter_sections(text) if key == section]
        if len(blocks) == 1 and not _SPECIAL_KEY_LINE.search(text):
            return blocks[0]
        return _compose_block(text, section)

    def parse_section(self, text: str, section: str) -> Any:
        """
        Decode only *section*; equal to the full document's value at that key.

        A block that cannot be decoded on its own is read from a full decode.

        Raises:
            KeyError: If the section does not exist.
            MalformedInput: If the document does not decode.
        """
        block: str = self.extract_section(text, section)
        try:
            return self._memoised_section(text, section, block)
        except MalformedInput as exc:
            logger.debug("Section '%s' needs the whole document (%s).", section, exc)
        return copy.deepcopy(load_mapping(text)[section])

    def _memoised_section(self, text: str, section: str, block: str) -> Any:
        self.metrics.section_parses += 1
        cache_key: Tuple[str, str] = (content_fingerprint(text), section)
        if cache_key in self._section_cache:
            self._section_cache.move_to_end(cache_key)
            return copy.deepcopy(self._section_cache[cache_key])

        value: Any = _decode_block(section, block)
        self._section_cache[cache_key] = value
        if len(self._section_cache) > self.settings.section_cache_size:
            while len(self._section_cache) > self.settings.section_cache_trim_to:
                self._section_cache.popitem(last=False)
            logger.debug("Section cache trimmed to %d entries.", len(self._section_cache))
        return copy.deepcopy(value)

    @property
    def section_cache_size(self) -> int:
        return len(self._section_cache)

    # -- Quick validation ---------------------------------------------------

    def quick_validate(self, text: str) -> QuickValidationReport:
        """
        Pre-flight check with readable messages.

        A valid report guarantees that ``parser.parse`` accepts the document.
        """
        self.metrics.quick_validations += 1
        report: QuickValidationReport = QuickValidationReport()

        if not text or not text.strip():
            report.errors.append("Schema content is empty")
            return report

        if "\t" in text:
            report.warnings.append("Content contains tab characters")

        indents: List[int] = [
            len(line) - len(line.lstrip(" "))
            for line in text.splitlines()
            if line.strip() and not line.lstrip().startswith("#") and line.startswith(" ")
        ]
        if indents:
            step: int = reduce(math.gcd, indents)
            if step > 4:
                report.warnings.append(f"Large indentation ({step} spaces)")
            elif step == 1:
                report.warnings.append("Inconsistent indentation")

        if _CONTROL_CHARS.search(text):
            report.warnings.append("Content contains control characters")

        try:
            data: Any = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            report.errors.append(f"YAML syntax error: {exc}")
            return report

        if not isinstance(data, Mapping):
            report.errors.append(
                f"Top level must be a mapping, got {type(data).__name__}"
            )
            return report

        if not data:
            report.warnings.append("No top-level sections found")
        if "fields" not in data:
            report.warnings.append("No 'fields' section found")

        for section in _ENTRY_SECTIONS:
            value: Any = data.get(section)
            if value is not None and not isinstance(value, (Mapping, list)):
                report.errors.append(
                    f"'{section}' must be a mapping or a list, got {type(value).__name__}"
                )
            elif isinstance(value, list):
                for index, item in enumerate(value):
                    if not isinstance(item, Mapping) or not item.get("name"):
                        report.errors.append(
                            f"'{section}[{index}]' must be a mapping with a 'name' key"
                        )
        for section in _MAPPING_SECTIONS:
            value = data.get(section)
            if value and not isinstance(value, Mapping):
                report.errors.append(
                    f"'{section}' must be a mapping, got {type(value).__name__}"
                )

        if not report.errors:
            # Entry-level shapes and attribute values: same rules as a real parse
            try:
                self.parser.parse(text)
            except MalformedInput as exc:
                report.errors.append(str(exc))

        return report

    # -- Housekeeping -------------------------------------------------------

    def clear_cache(self) -> None:
        self._section_cache.clear()
        self._parse_times.clear()
        self.cache.clear_all()

    def reset_metrics(self) -> None:
        self.metrics = OptimizationMetrics()

    def get_metrics(self) -> Dict[str, Any]:
        metrics: Dict[str, Any] = self.metrics.to_dict()
        metrics["section_cache_size"] = len(self._section_cache)
        metrics["cache"] = self.cache.get_stats()
        return metrics


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "STRATEGY_STANDARD",
    "STRATEGY_LAZY",
    "STRATEGY_STREAMING",
    "OptimizationMetrics",
    "QuickValidationReport",
    "iter_sections",
    "SchemaOptimizer",
]

logger.debug("modelschema.optimization loaded: %d public symbols.", len(__all__))
