# File: modelschema/utils.py
"""
ModelSchema - Utility Functions & Helpers
==========================================
String transformation, fingerprinting and timing helpers shared by the
parser, validators and cache layer.

- Case converters are ``@lru_cache``'d: the validator calls them for every
  relationship target of every schema in a set.
- ``canonical_json`` / ``fingerprint`` give the whitespace-insensitive
  content hashes the cache layer keys on.
- No external dependencies beyond the Python standard library.
"""

from __future__ import annotations

import functools
import hashlib
import json
import logging
import re
import time
from typing import Any, Dict, Iterable, List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)
_NAMESPACE_SEPARATOR_RE: re.Pattern[str] = re.compile(r"[\\./:]+")

# Irregular nouns that show up in model names
_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
}


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("BlogPost")
        'blog_post'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation of the *last word* of a name.

    ``BlogPost`` becomes ``BlogPosts`` and ``Category`` becomes ``Categories``,
    which is what default table names are derived from.
    """
    if not name:
        return ""

    words: List[str] = _SPLIT_WORDS_RE.findall(name)
    last: str = words[-1] if words else name
    head: str = name[: len(name) - len(last)] if name.endswith(last) else ""
    lower: str = last.lower()

    if lower in _IRREGULAR_PLURALS:
        plural: str = _IRREGULAR_PLURALS[lower]
        if last[0].isupper():
            plural = plural[0].upper() + plural[1:]
        return head + plural

    if lower.endswith("s") and not lower.endswith("ss"):
        return name
    if lower.endswith(("sh", "ch", "x", "z", "ss")):
        return name + "es"
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    if lower.endswith("fe"):
        return name[:-2] + "ves"
    if lower.endswith("f") and not lower.endswith("ff"):
        return name[:-1] + "ves"

    return name + "s"


@functools.lru_cache(maxsize=None)
def table_name_for(model_name: str) -> str:
    """Default table name for a model: ``BlogPost`` -> ``blog_posts``."""
    return to_snake_case(to_plural(model_name))


@functools.lru_cache(maxsize=None)
def class_basename(identifier: str) -> str:
    """
    Strip any namespace prefix from a model identifier.

        >>> class_basename("App\\\\Models\\\\User")
        'User'
        >>> class_basename("app.models.User")
        'User'
    """
    if not identifier:
        return ""
    parts: List[str] = [p for p in _NAMESPACE_SEPARATOR_RE.split(identifier.strip()) if p]
    return parts[-1] if parts else ""


def unique_preserving_order(items: Iterable[Any]) -> List[Any]:
    """De-duplicate while keeping the first occurrence. O(n)."""
    seen: List[Any] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


# ---------------------------------------------------------------------------
# Checksum & fingerprints
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string. O(n)."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def canonical_json(data: Any) -> str:
    """
    Serialise *data* deterministically: sorted keys, compact separators.

    Two documents that decode to the same value produce the same string
    regardless of their original whitespace, key order or quoting style.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def fingerprint(data: Any) -> str:
    """SHA-256 of the canonical JSON form of *data*."""
    return sha256_hex(canonical_json(data))


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling parse/validate steps.

    Usage:
        with Timer("validate schema set") as t:
            ...
        print(t.elapsed_ms)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug(
            "Timer [%s]: %.4f seconds",
            self.label,
            self.elapsed,
        )

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000.0

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_plural",
    "table_name_for",
    "class_basename",
    "unique_preserving_order",
    "sha256_hex",
    "canonical_json",
    "fingerprint",
    "Timer",
]

logger.debug("modelschema.utils loaded: %d public symbols.", len(__all__))
