"""
Position mapping between SFC and generated-file coordinates.

LSP payloads put positions in differently shaped objects depending on the
method (diagnostics, locations, ranges, text edits, inlay hints, ...). Rather
than knowing every shape, the proxy walks the decoded JSON and rewrites every
field named ``line``.
"""

from __future__ import annotations

from typing import Any, Callable

KeyPredicate = Callable[[str, Any], bool]
ValueTransform = Callable[[Any], Any]


def map_json(value: Any, predicate: KeyPredicate, transform: ValueTransform) -> Any:
    """Return a copy of *value* with ``obj[key]`` replaced by ``transform(obj[key])``
    for every object member where ``predicate(key, obj[key])`` holds.

    Matched members are not descended into. Scalars are returned unchanged.
    """
    if isinstance(value, dict):
        return {
            key: transform(item) if predicate(key, item) else map_json(item, predicate, transform)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [map_json(item, predicate, transform) for item in value]
    return value


def _is_line_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def shift_lines(value: Any, offset: int) -> Any:
    """Add *offset* to every numeric ``line`` field, skipping shifts that would go negative."""
    if offset == 0:
        return value

    def predicate(key: str, item: Any) -> bool:
        return key == "line" and _is_line_number(item) and item + offset >= 0

    return map_json(value, predicate, lambda line: line + offset)


def to_generated_line(line: int, offset: int) -> int:
    """SFC line -> generated-file line."""
    return line - offset


def to_original_line(line: int, offset: int) -> int:
    """Generated-file line -> SFC line."""
    return line + offset
