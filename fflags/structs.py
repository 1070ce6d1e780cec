"""Define flags from the fields of a dataclass instance."""

from __future__ import annotations

import dataclasses
import json
from typing import Any

from fflags.flag_set import FlagConfig, FlagSet
from fflags.flags import FlagError
from fflags.values import FloatValue, ListValue, Value, value_for_type

TAG_KEY = "ff"


def _split_items(tag: str) -> list[str]:
    """Split on commas or pipes that are not inside 'single quotes'."""
    items: list[str] = []
    current: list[str] = []
    quoted = False
    for ch in tag:
        if ch == "'":
            quoted = not quoted
        if not quoted and ch in ",|":
            if current:
                items.append("".join(current))
                current = []
            continue
        current.append(ch)
    if current:
        items.append("".join(current))
    return items


def _unquote(text: str) -> str | None:
    if len(text) >= 2 and text[0] == text[-1] == '"':
        try:
            result = json.loads(text)
        except ValueError:
            return None
        return result if isinstance(result, str) else None
    if len(text) >= 2 and text[0] == text[-1] == "`" and "`" not in text[1:-1]:
        return text[1:-1]
    return None


def _split_key_value(item: str) -> tuple[str, str]:
    positions = [pos for pos in (item.find("="), item.find(":")) if pos >= 0]
    if not positions:
        return item, ""
    sep = min(positions)
    return item[:sep], item[sep + 1 :]


def parse_tag(tag: str) -> tuple[FlagConfig, str] | None:
    """Parse an ff tag into a flag config (without a value) and a default text.

    Returns None if the tag holds no items at all. Raises FlagError for an
    unknown key or an invalid value.
    """
    items = _split_items(tag)
    if not items:
        return None

    config = FlagConfig()
    default_text = ""
    for raw in items:
        item = raw.strip()
        if not item:
            continue

        key, val = _split_key_value(item)
        key = key.lower().strip()
        if not key:
            raise FlagError(f'"{item}": no key')

        val = val.strip()
        if len(val) >= 2 and val.startswith("'") and val.endswith("'"):
            val = val[1:-1]
        else:
            unquoted = _unquote(val)
            if unquoted is not None:
                val = unquoted

        if key in ("s", "short", "shortname"):
            if len(val) != 1:
                raise FlagError(f'"{item}": invalid short name')
            config.short_name = val
        elif key in ("l", "long", "longname"):
            if not val:
                raise FlagError(f"{item}: invalid (empty) long name")
            config.long_name = val
        elif key in ("u", "usage"):
            if not val:
                raise FlagError(f"{item}: invalid (empty) usage")
            config.usage = val
        elif key in ("d", "def", "default"):
            if val in ("", "-"):
                config.no_default = True
            else:
                default_text = val
        elif key == "nodefault":
            if val:
                raise FlagError(f"{item}: nodefault should not have a value")
            config.no_default = True
        elif key in ("p", "placeholder"):
            if val in ("", "-"):
                config.no_placeholder = True
            else:
                config.placeholder = val
        elif key == "noplaceholder":
            if val:
                raise FlagError(f"{item}: noplaceholder should not have a value")
            config.no_placeholder = True
        else:
            raise FlagError(f"{key}: unknown key")

    return config, default_text


class _FieldValue:
    """A value that mirrors every change into an attribute of an object."""

    def __init__(self, obj: Any, attr: str, inner: Value) -> None:
        self._obj = obj
        self._attr = attr
        self._inner = inner
        self._store()

    def _store(self) -> None:
        setattr(self._obj, self._attr, self._inner.value)

    @property
    def is_bool_flag(self) -> bool:
        return bool(getattr(self._inner, "is_bool_flag", False))

    @property
    def placeholder(self) -> str:
        return getattr(self._inner, "placeholder", "")

    def set(self, text: str) -> None:
        self._inner.set(text)
        self._store()

    def reset(self) -> None:
        self._inner.reset()
        self._store()

    def __str__(self) -> str:
        return str(self._inner)


def _is_flag_value(candidate: Any) -> bool:
    return (
        not isinstance(candidate, type)
        and callable(getattr(candidate, "set", None))
        and callable(getattr(candidate, "reset", None))
    )


def _build_value(obj: Any, field: dataclasses.Field, annotation: Any, default_text: str) -> Any:
    current = getattr(obj, field.name, None)
    if _is_flag_value(current):
        return current

    try:
        inner = value_for_type(annotation, default_text)
    except (TypeError, ValueError) as err:
        raise FlagError(f"{field.name}: {err}") from err

    if not default_text and current is not None and not isinstance(inner, ListValue):
        if isinstance(inner, FloatValue) and isinstance(current, int) and not isinstance(current, bool):
            current = float(current)
        if isinstance(current, type(inner.default)):
            inner.value = inner.default = current

    return _FieldValue(obj, field.name, inner)


def add_struct(fs: FlagSet, obj: Any) -> None:
    """Add a flag to fs for every field of the dataclass instance obj tagged with "ff" metadata.

    Field values are kept in step with their flags. A field whose value is
    itself a flag value is used directly. All fields are checked before any
    flag is added.
    """
    if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
        raise TypeError(f"value ({type(obj).__name__}) must be a dataclass instance")

    configs: list[FlagConfig] = []
    for field in dataclasses.fields(obj):
        tag = field.metadata.get(TAG_KEY)
        if tag is None:
            continue
        try:
            parsed = parse_tag(tag)
        except FlagError as err:
            raise FlagError(f"{field.name}: {err}") from err
        if parsed is None:
            continue
        config, default_text = parsed
        config.value = _build_value(obj, field, field.type, default_text)
        configs.append(config)

    for config in configs:
        fs.add_flag(config)


def new_flag_set_from(name: str, obj: Any) -> FlagSet:
    """Create a flag set named name with flags taken from the dataclass instance obj."""
    fs = FlagSet(name)
    add_struct(fs, obj)
    return fs