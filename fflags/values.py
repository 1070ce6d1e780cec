"""Typed flag values that parse from and format to strings."""

from __future__ import annotations

import math
import re
from datetime import timedelta
from decimal import Decimal
from fractions import Fraction
from typing import Any, Callable, Generic, TypeVar, get_args, get_origin

T = TypeVar("T")

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_INT_MIN, _INT_MAX = -(2**63), 2**63 - 1
_UINT_MAX = 2**64 - 1
_LEGACY_OCTAL = re.compile(r"[+-]?0[0-7_]+")

_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")


def parse_bool(text: str) -> bool:
    """Parse the boolean spellings 1, t, T, TRUE, true, True and their false counterparts."""
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"invalid boolean {text!r}")


def _parse_integer(text: str) -> int:
    if not text or text.strip() != text:
        raise ValueError(f"invalid integer {text!r}")
    try:
        if _LEGACY_OCTAL.fullmatch(text):
            return int(text, 8)
        return int(text, 0)
    except ValueError:
        raise ValueError(f"invalid integer {text!r}") from None


def _parse_int(text: str) -> int:
    number = _parse_integer(text)
    if not _INT_MIN <= number <= _INT_MAX:
        raise ValueError(f"integer {text!r} out of range")
    return number


def _parse_uint(text: str) -> int:
    number = _parse_integer(text)
    if not 0 <= number <= _UINT_MAX:
        raise ValueError(f"unsigned integer {text!r} out of range")
    return number


def _parse_float(text: str) -> float:
    if not text or text.strip() != text:
        raise ValueError(f"invalid float {text!r}")
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"invalid float {text!r}") from None


def format_float(number: float) -> str:
    """Format a float with the fewest digits that round-trip, in %g style."""
    number = float(number)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    sign = "-" if math.copysign(1.0, number) < 0 else ""
    if number == 0:
        return sign + "0"
    decimal = Decimal(repr(abs(number))).normalize()
    _, digit_tuple, exponent = decimal.as_tuple()
    digits = "".join(map(str, digit_tuple))
    point = len(digits) + exponent
    exp = point - 1
    if exp < -4 or exp >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        exp_sign = "+" if exp >= 0 else "-"
        return f"{sign}{mantissa}e{exp_sign}{abs(exp):02d}"
    if point <= 0:
        return f"{sign}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return sign + digits + "0" * (point - len(digits))
    return f"{sign}{digits[:point]}.{digits[point:]}"


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "300ms", "-1.5h" or "2h45m"."""
    rest = text
    negative = False
    if rest[:1] in ("-", "+"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {text!r}")

    total = Fraction(0)
    while rest:
        match = _DURATION_PART.match(rest)
        whole, frac, unit = match.groups()
        if not whole and not frac:
            raise ValueError(f"invalid duration {text!r}")
        if not unit:
            raise ValueError(f"missing unit in duration {text!r}")
        if unit not in _DURATION_UNITS:
            raise ValueError(f"unknown unit {unit!r} in duration {text!r}")
        amount = Fraction(int(whole or "0"))
        if frac:
            amount += Fraction(int(frac), 10 ** len(frac))
        total += amount * _DURATION_UNITS[unit]
        rest = rest[match.end():]

    if total > _INT_MAX:
        raise ValueError(f"invalid duration {text!r}")
    micros = round(total / 1000)
    return timedelta(microseconds=-micros if negative else micros)


def _split_fraction(value: int, precision: int) -> tuple[int, str]:
    whole, frac = divmod(value, 10**precision)
    frac_text = str(frac).rjust(precision, "0").rstrip("0")
    return whole, ("." + frac_text if frac_text else "")


def format_duration(delta: timedelta) -> str:
    """Format a duration as e.g. "1h2m3.5s", "250ms" or "0s"."""
    nanos = ((delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds) * 1000
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos == 0:
        return "0s"
    if nanos < 1_000:
        return f"{sign}{nanos}ns"
    if nanos < 1_000_000:
        whole, frac = _split_fraction(nanos, 3)
        return f"{sign}{whole}{frac}\u00b5s"
    if nanos < 1_000_000_000:
        whole, frac = _split_fraction(nanos, 6)
        return f"{sign}{whole}{frac}ms"
    seconds, frac = _split_fraction(nanos, 9)
    text = f"{seconds % 60}{frac}s"
    if seconds >= 60:
        text = f"{seconds // 60 % 60}m{text}"
    if seconds >= 3600:
        text = f"{seconds // 3600}h{text}"
    return sign + text


class Value(Generic[T]):
    """A flag value: parses text into `value` and formats it back."""

    is_bool_flag = False

    def __init__(
        self,
        default: T = None,
        parse: Callable[[str], T] = str,
        fmt: Callable[[T], str] = str,
        placeholder: str = "",
    ) -> None:
        self.default = default
        self.value = default
        self.placeholder = placeholder
        self._parse = parse
        self._fmt = fmt

    def set(self, text: str) -> None:
        """Parse text and store the result; raises ValueError on bad input."""
        self.value = self._parse(text)

    def reset(self) -> None:
        """Restore the default value."""
        self.value = self.default

    def __str__(self) -> str:
        return self._fmt(self.value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class BoolValue(Value[bool]):
    """A boolean value; flags using it need no argument."""

    is_bool_flag = True

    def __init__(self, default: bool = False) -> None:
        super().__init__(
            default,
            parse_bool,
            lambda flag: "true" if flag else "false",
            "BOOL",
        )


class StringValue(Value[str]):
    """A plain string value."""

    def __init__(self, default: str = "") -> None:
        super().__init__(default, str, str, "STRING")


class IntValue(Value[int]):
    """A signed 64-bit integer value."""

    def __init__(self, default: int = 0) -> None:
        super().__init__(default, _parse_int, str, "INT")


class UintValue(Value[int]):
    """An unsigned 64-bit integer value."""

    def __init__(self, default: int = 0) -> None:
        super().__init__(default, _parse_uint, str, "UINT")


class FloatValue(Value[float]):
    """A floating-point value."""

    def __init__(self, default: float = 0.0) -> None:
        super().__init__(float(default), _parse_float, format_float, "FLOAT64")


class DurationValue(Value[timedelta]):
    """A duration value, written like "1h30m" or "250ms"."""

    def __init__(self, default: timedelta = timedelta(0)) -> None:
        super().__init__(default, parse_duration, format_duration, "DURATION")


class ListValue(Value[list]):
    """A list of strings; every set appends one element."""

    def __init__(self) -> None:
        super().__init__((), str, ", ".join, "STRING")
        self.value = []

    def set(self, text: str) -> None:
        self.value.append(text)

    def reset(self) -> None:
        self.value = []

    def __str__(self) -> str:
        return ", ".join(self.value)


class UniqueListValue(ListValue):
    """A list of strings in which duplicates are silently dropped."""

    def set(self, text: str) -> None:
        if text not in self.value:
            self.value.append(text)


class EnumValue(Value[str]):
    """A string restricted to a fixed set of choices; the first is the default."""

    def __init__(self, *args: str) -> None:
        if not args:
            raise ValueError("at least one valid value is required")
        self.valid = tuple(args)
        super().__init__(args[0], str, str, "STRING")

    def set(self, text: str) -> None:
        if text not in self.valid:
            raise ValueError(f"{text!r}: must be one of: {', '.join(self.valid)}")
        self.value = text

    def reset(self) -> None:
        self.value = self.valid[0]

    def __str__(self) -> str:
        return self.value


class FuncValue(Value[None]):
    """A value that hands every string it is set to a callback."""

    def __init__(self, fn: Callable[[str], Any]) -> None:
        super().__init__(None, str, lambda _: "", "FUNC")
        self.fn = fn

    def set(self, text: str) -> None:
        self.fn(text)

    def __str__(self) -> str:
        return ""


_SCALAR_TYPES: dict[Any, type[Value]] = {
    bool: BoolValue,
    str: StringValue,
    int: IntValue,
    float: FloatValue,
    timedelta: DurationValue,
    "bool": BoolValue,
    "str": StringValue,
    "int": IntValue,
    "float": FloatValue,
    "timedelta": DurationValue,
}
_LIST_NAMES = frozenset({"list", "list[str]", "List[str]"})


def _is_list_type(annotation: Any) -> bool:
    if annotation is list or annotation in _LIST_NAMES:
        return True
    return get_origin(annotation) is list and get_args(annotation) in ((), (str,))


def value_for_type(annotation: Any, default: str = "") -> Value:
    """Build a value for a field annotation, with default given as text."""
    if _is_list_type(annotation):
        if default:
            raise ValueError("default values are not supported for list fields")
        return ListValue()
    try:
        factory = _SCALAR_TYPES.get(annotation)
    except TypeError:
        factory = None
    if factory is None:
        raise TypeError(f"unsupported field type {annotation!r}")
    value = factory()
    if default:
        try:
            value.set(default)
        except ValueError as err:
            raise ValueError(f"default {default!r}: {err}") from err
        value.default = value.value
    return value