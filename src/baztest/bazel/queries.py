"""Bazel query expressions and output parsing.

Two output shapes are consumed:

- ``label_kind``: one ``<kind> rule <label>`` line per target. Source files,
  generated files and tool diagnostics share the stream and are ignored.
- ``streamed_jsonproto``: one JSON object per target carrying rule attributes
  (tags, size, shard_count, ...), used for metadata enrichment.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from baztest.config.constants import TEST_SUITE_KIND

_LABEL_KIND_RE = re.compile(r"^(?P<kind>[A-Za-z_][\w]*) rule (?P<label>(?:@[\w.~+-]*)?//[^\s]*)$")


@dataclass(frozen=True, slots=True)
class RuleLine:
    """A ``<kind> rule <label>`` line."""

    kind: str
    label: str


@dataclass(frozen=True, slots=True)
class RuleMetadata:
    """Attributes read from one streamed_jsonproto RULE record."""

    label: str
    kind: str
    tags: tuple[str, ...] = ()
    srcs: tuple[str, ...] = ()
    shard_count: int | None = None
    size: str | None = None
    timeout: str | None = None
    flaky: bool = False
    location: str | None = None


def normalize_query_path(path: str) -> str:
    """Turn a configured root into a recursive pattern: ``//`` -> ``//...``."""
    path = path.strip()
    if path.endswith("..."):
        return path
    if not path.startswith("//") and not path.startswith("@"):
        path = "//" + path.lstrip("/")
    if not path.endswith("/"):
        path += "/"
    return path + "..."


def all_kinds(test_types: Iterable[str]) -> list[str]:
    """Configured kinds plus test_suite, de-duplicated, order kept."""
    return list(dict.fromkeys([*test_types, TEST_SUITE_KIND]))


def build_discovery_query(paths: Sequence[str], test_types: Sequence[str]) -> str:
    """Union of ``kind(<type>, <path>)`` for every path and kind."""
    kinds = all_kinds(test_types)
    roots = [normalize_query_path(p) for p in paths if p.strip()] or ["//..."]
    return " union ".join(f"kind({kind}, {root})" for root in roots for kind in kinds)


def build_suite_query(label: str) -> str:
    return f"tests({label})"


def build_set_query(labels: Iterable[str]) -> str:
    return "set(" + " ".join(labels) + ")"


def is_test_kind(kind: str, test_types: Iterable[str]) -> bool:
    return kind == TEST_SUITE_KIND or kind in set(test_types) or kind.endswith("_test")


def parse_label_kind_line(line: str) -> RuleLine | None:
    m = _LABEL_KIND_RE.match(line.strip())
    if m is None:
        return None
    return RuleLine(kind=m.group("kind"), label=m.group("label"))


def parse_label_kind_output(text: str, test_types: Sequence[str]) -> list[RuleLine]:
    """Extract test rules from label_kind output, first occurrence wins."""
    seen: dict[str, RuleLine] = {}
    for line in text.splitlines():
        rule = parse_label_kind_line(line)
        if rule is None or not is_test_kind(rule.kind, test_types):
            continue
        seen.setdefault(rule.label, rule)
    return list(seen.values())


def parse_label_output(text: str) -> list[str]:
    """Labels from ``--output=label``; anything not shaped like a label is dropped."""
    labels: list[str] = []
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("//") or (line.startswith("@") and "//" in line):
            labels.append(line)
    return list(dict.fromkeys(labels))


def _attr(rule: dict[str, Any], name: str) -> dict[str, Any] | None:
    for attr in rule.get("attribute") or ():
        if attr.get("name") == name:
            return attr
    return None


def parse_metadata_line(line: str) -> RuleMetadata | None:
    """One streamed_jsonproto line to RuleMetadata; None for non-rules or junk."""
    line = line.strip()
    if not line:
        return None
    try:
        record = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(record, dict) or record.get("type") != "RULE":
        return None
    rule = record.get("rule")
    if not isinstance(rule, dict) or "name" not in rule:
        return None

    def strings(name: str) -> tuple[str, ...]:
        attr = _attr(rule, name)
        return tuple(attr.get("stringListValue") or ()) if attr else ()

    def string(name: str) -> str | None:
        attr = _attr(rule, name)
        return (attr.get("stringValue") or None) if attr else None

    shard_attr = _attr(rule, "shard_count")
    shard_count: int | None = None
    if shard_attr and shard_attr.get("explicitlySpecified", True):
        try:
            value = int(shard_attr.get("intValue"))
        except (TypeError, ValueError):
            value = 0
        shard_count = value if value > 0 else None

    flaky_attr = _attr(rule, "flaky")
    return RuleMetadata(
        label=rule["name"],
        kind=rule.get("ruleClass", ""),
        tags=strings("tags"),
        srcs=strings("srcs"),
        shard_count=shard_count,
        size=string("size"),
        timeout=string("timeout"),
        flaky=bool(flaky_attr and flaky_attr.get("booleanValue")),
        location=rule.get("location") or None,
    )


def parse_metadata_output(text: str) -> dict[str, RuleMetadata]:
    out: dict[str, RuleMetadata] = {}
    for line in text.splitlines():
        meta = parse_metadata_line(line)
        if meta is not None:
            out[meta.label] = meta
    return out


def chunked(items: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]
