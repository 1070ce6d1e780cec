"""Flatten nested mappings into name/value pairs."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Callable

from fflags.values import format_float

SetValue = Callable[[str, str], None]


def traverse_map(mapping: Mapping, delimiter: str, set_value: SetValue) -> None:
    """Call set_value for every leaf of mapping.

    Lists produce one call per element; nested mapping keys are joined
    with delimiter.
    """
    _traverse("", mapping, delimiter, set_value)


def _scalar_text(val: Any) -> str | None:
    if isinstance(val, str):
        return val
    if isinstance(val, bool):
        return "true" if val else "false"
    if isinstance(val, (int, Decimal)):
        return str(val)
    if isinstance(val, float):
        return format_float(val)
    if val is None:
        return ""
    return None


def _traverse(key: str, val: Any, delimiter: str, set_value: SetValue) -> None:
    text = _scalar_text(val)
    if text is not None:
        set_value(key, text)
    elif isinstance(val, (list, tuple)):
        for item in val:
            _traverse(key, item, delimiter, set_value)
    elif isinstance(val, Mapping):
        for k, v in val.items():
            name = k if isinstance(k, str) else (_scalar_text(k) or str(k))
            if key:
                name = key + delimiter + name
            _traverse(name, v, delimiter, set_value)
    else:
        raise TypeError(f"couldn't convert {val!r} (type {type(val).__name__}) to string")