# src/augur/core/templates.py
"""Property merging and placeholder substitution for plan node params.

Two placeholder syntaxes are rendered into node params, both by pure
functions that return new structures and never touch their inputs:

- ${name}: alert template properties, resolved once per run before the
  graph is built.
- <enumerator.key>: enumerated variant values, resolved per fan-out
  variant by the engine.

A string that consists of exactly one placeholder is replaced by the raw
value (lists, numbers and mappings keep their type). Placeholders embedded
in longer strings are interpolated with str().

Usage:
    props = merge_properties(template.properties, alert.template_properties)
    nodes = render_template_properties(template.nodes, props)
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from augur.contracts import PlanNodeDefinition, TemplateRenderError

__all__ = [
    "PROPERTY_PATTERN",
    "VARIANT_PATTERN",
    "find_placeholders",
    "merge_properties",
    "render_template_properties",
    "substitute_placeholders",
]

PROPERTY_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_\-]*)\}")
VARIANT_PATTERN = re.compile(r"<([A-Za-z_][A-Za-z0-9_\-]*)\.([A-Za-z_][A-Za-z0-9_\-]*)>")


def merge_properties(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge overrides onto base and return a new dict.

    Nested mappings merge key by key; any other value in overrides
    replaces the base value outright (lists are not concatenated).
    """
    merged: dict[str, Any] = {}
    for key, value in base.items():
        merged[key] = _copy_value(value)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_properties(merged[key], value)
        else:
            merged[key] = _copy_value(value)
    return merged


def _copy_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _copy_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_copy_value(v) for v in value]
    return value


def substitute_placeholders(
    value: Any,
    pattern: re.Pattern[str],
    lookup: Callable[[re.Match[str]], Any],
) -> Any:
    """Return a copy of value with every pattern match replaced.

    lookup receives the match and returns the replacement value. It is
    responsible for raising on unresolved names; this function only walks
    the structure.
    """
    if isinstance(value, str):
        whole = pattern.fullmatch(value)
        if whole is not None:
            return lookup(whole)
        return pattern.sub(lambda m: str(lookup(m)), value)
    if isinstance(value, Mapping):
        return {k: substitute_placeholders(v, pattern, lookup) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [substitute_placeholders(v, pattern, lookup) for v in value]
    return value


def find_placeholders(value: Any, pattern: re.Pattern[str]) -> list[re.Match[str]]:
    """All pattern matches found anywhere inside value, in walk order."""
    found: list[re.Match[str]] = []
    if isinstance(value, str):
        found.extend(pattern.finditer(value))
    elif isinstance(value, Mapping):
        for v in value.values():
            found.extend(find_placeholders(v, pattern))
    elif isinstance(value, list | tuple):
        for v in value:
            found.extend(find_placeholders(v, pattern))
    return found


def render_template_properties(
    nodes: Iterable[PlanNodeDefinition],
    properties: Mapping[str, Any],
) -> tuple[PlanNodeDefinition, ...]:
    """Render ${name} placeholders in every node's params.

    Raises:
        TemplateRenderError: If any placeholder names a missing property
    """
    rendered: list[PlanNodeDefinition] = []
    for node in nodes:
        missing = [m.group(1) for m in find_placeholders(node.params, PROPERTY_PATTERN) if m.group(1) not in properties]
        if missing:
            raise TemplateRenderError(missing, node_name=node.name)
        if not find_placeholders(node.params, PROPERTY_PATTERN):
            rendered.append(node)
            continue

        def lookup(match: re.Match[str]) -> Any:
            return _copy_value(properties[match.group(1)])

        rendered.append(node.with_params(substitute_placeholders(node.params, PROPERTY_PATTERN, lookup)))
    return tuple(rendered)
