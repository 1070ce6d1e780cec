"""Flag and flag-set interfaces, errors, and name helpers."""

from __future__ import annotations

from typing import Iterator, Protocol, runtime_checkable


class FlagError(Exception):
    """Base class for errors raised while defining or parsing flags."""


class HelpRequested(FlagError):
    """Raised when the user asks for help, e.g. with -h or --help."""

    def __init__(self, message: str = "flag: help requested") -> None:
        super().__init__(message)


class UnknownFlagError(FlagError):
    """Raised when an argument or config entry names an undefined flag."""

    def __init__(self, name: str = "", message: str | None = None) -> None:
        self.name = name
        if message is None:
            message = f'unknown flag "{name}"' if name else "unknown flag"
        super().__init__(message)


class AlreadyParsedError(FlagError):
    """Raised when a flag set is parsed a second time without a reset."""

    def __init__(self, message: str = "flag set already parsed") -> None:
        super().__init__(message)


class DuplicateFlagError(FlagError):
    """Raised when two flags share a short or long name."""

    def __init__(self, message: str = "duplicate flag") -> None:
        super().__init__(message)


@runtime_checkable
class Flag(Protocol):
    """A single configuration parameter whose value is parsed from a string."""

    @property
    def flags(self) -> Flags:
        """The flag set in which this flag is defined."""

    @property
    def short_name(self) -> str | None:
        """The single-character short name, or None."""

    @property
    def long_name(self) -> str | None:
        """The long name, or None."""

    @property
    def placeholder(self) -> str:
        """Example value shown in help text; may be empty."""

    @property
    def usage(self) -> str:
        """Short description shown in help text."""

    @property
    def default(self) -> str:
        """Default value as shown in help text; may be empty."""

    @property
    def is_set(self) -> bool:
        """True once the value has been set successfully."""

    def set_value(self, text: str) -> None:
        """Parse text and assign it to the flag."""

    def get_value(self) -> str:
        """Return the current value as a string."""


@runtime_checkable
class Flags(Protocol):
    """A collection of flags, typically belonging to one command."""

    @property
    def name(self) -> str:
        """The name of the flag set."""

    @property
    def is_parsed(self) -> bool:
        """True once the flag set has been parsed successfully."""

    @property
    def args(self) -> list[str]:
        """Arguments left over after a successful parse."""

    def parse(self, args: list[str]) -> None:
        """Parse args against the flag set."""

    def walk_flags(self) -> Iterator[Flag]:
        """Yield every flag known to the flag set, parents included."""

    def get_flag(self, name: str) -> Flag | None:
        """Return the first flag matching name, or None."""


@runtime_checkable
class Resetter(Protocol):
    """Something that can be reverted to its initial state."""

    def reset(self) -> None:
        """Revert to the initial state."""


_BAD_LONG_NAME_CHARS = frozenset("\x00 \t\n\v\f\r\x85\xa0\"'`\\")


def is_valid_short_name(short: str | None) -> bool:
    """Return True if short is a single usable character."""
    return (
        isinstance(short, str)
        and len(short) == 1
        and short not in ("\x00", "\ufffd")
    )


def is_valid_long_name(long: str | None) -> bool:
    """Return True if long is non-empty and free of whitespace, quotes and backslashes."""
    return bool(long) and not any(ch in _BAD_LONG_NAME_CHARS for ch in long)


def name_strings(flag: Flag) -> list[str]:
    """Return the flag's valid names, short name first, without dashes."""
    names = []
    if is_valid_short_name(flag.short_name):
        names.append(flag.short_name)
    if is_valid_long_name(flag.long_name):
        names.append(flag.long_name)
    return names


def name_string(flag: Flag) -> str:
    """Return the flag's names as they appear on a command line, e.g. "-f, --foo"."""
    names = []
    if is_valid_short_name(flag.short_name):
        names.append(f"-{flag.short_name}")
    if is_valid_long_name(flag.long_name):
        names.append(f"--{flag.long_name}")
    return ", ".join(names)