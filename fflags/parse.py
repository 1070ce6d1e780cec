"""Parse flags from the command line, the environment and config files."""

from __future__ import annotations

import os
from typing import Callable, Iterable, Mapping, TextIO

from fflags.flags import (
    DuplicateFlagError,
    Flag,
    FlagError,
    Flags,
    UnknownFlagError,
    name_string,
    name_strings,
)

SetValue = Callable[[str, str], None]
ConfigFileParser = Callable[[TextIO, SetValue], None]
ConfigOpener = Callable[[str], TextIO]

_ENV_SEPARATORS = str.maketrans({"-": "_", ".": "_", "/": "_"})


def _default_open(path: str) -> TextIO:
    return open(path, encoding="utf-8")


def get_env_var_key(flag_name: str, prefix: str = "") -> str:
    """Turn a flag name into its environment variable key, e.g. "log-level" -> "LOG_LEVEL"."""
    key = flag_name.lstrip("-").upper().translate(_ENV_SEPARATORS)
    if prefix:
        key = f"{prefix.upper()}_{key}"
    return key


def plain_parser(stream: Iterable[str], set_value: SetValue) -> None:
    """Read a plain config file: one "name value" pair per line.

    The first space-separated token is the flag name, the rest of the line
    is the value. A name without a value means "true". Lines starting with
    "#" are comments, as is anything after " #" within the value.
    """
    for raw in stream:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        name, sep, rest = line.partition(" ")
        value = rest.strip() if sep else "true"

        comment = value.find(" #")
        if comment >= 0:
            value = value[:comment].strip()

        set_value(name, value)


class _Provided:
    """Tracks which flags were set by a higher-priority source."""

    def __init__(self) -> None:
        self._ids: set[int] = set()

    def mark(self, fs: Flags) -> None:
        self._ids.update(id(flag) for flag in fs.walk_flags() if flag.is_set)

    def __contains__(self, flag: Flag) -> bool:
        return id(flag) in self._ids


def _index_env_keys(fs: Flags, prefix: str) -> dict[str, Flag]:
    env2flag: dict[str, Flag] = {}
    for flag in fs.walk_flags():
        for name in name_strings(flag):
            key = get_env_var_key(name, prefix)
            existing = env2flag.get(key)
            if existing is not None:
                raise DuplicateFlagError(
                    f"{name_string(flag)}: duplicate flag ({name_string(existing)})"
                )
            env2flag[key] = flag
    return env2flag


def _parse_environment(
    fs: Flags,
    provided: _Provided,
    prefix: str,
    split: str,
    environ: Mapping[str, str],
) -> None:
    for flag in fs.walk_flags():
        if flag in provided:
            continue
        for name in name_strings(flag):
            key = get_env_var_key(name, prefix)
            val = environ.get(key, "")
            if not val:
                continue
            parts = val.split(split) if split else [val]
            for part in parts:
                try:
                    flag.set_value(part)
                except ValueError as err:
                    raise FlagError(f'parse environment: {key}="{val}": {err}') from err


def parse(
    fs: Flags,
    args: Iterable[str],
    *,
    env_vars: bool = False,
    env_var_prefix: str | None = None,
    env_var_split: str | None = None,
    config_file: str | None = None,
    config_file_flag: str | None = None,
    config_file_parser: ConfigFileParser | None = None,
    config_open: ConfigOpener | None = None,
    config_allow_missing_file: bool = False,
    config_ignore_undefined_flags: bool = False,
    environ: Mapping[str, str] | None = None,
) -> None:
    """Parse fs from args, then the environment, then a config file.

    Earlier sources take priority: a flag set on the command line is not
    touched by the environment or the config file, and one set from the
    environment is not touched by the config file.

    env_vars enables environment lookup; giving env_var_prefix or
    env_var_split enables it too. config_file names a config file directly
    and wins over config_file_flag, which names the flag holding the path.
    Config files are only read when config_file_parser is given.
    """
    if not isinstance(fs, Flags):
        raise TypeError(f"unsupported flag set {type(fs).__name__}")

    prefix = env_var_prefix or ""
    env_enabled = env_vars or env_var_prefix is not None or env_var_split is not None
    if environ is None:
        environ = os.environ

    env2flag = _index_env_keys(fs, prefix)
    provided = _Provided()

    fs.parse(list(args))
    provided.mark(fs)

    if env_enabled:
        _parse_environment(fs, provided, prefix, env_var_split or "", environ)
    provided.mark(fs)

    path = config_file or ""
    if not path and config_file_flag:
        flag = fs.get_flag(config_file_flag)
        if flag is not None:
            path = flag.get_value()

    if path and config_file_parser is not None:
        opener = config_open or _default_open
        try:
            stream = opener(path)
        except FileNotFoundError:
            if not config_allow_missing_file:
                raise
        else:
            with stream:
                config_file_parser(
                    stream,
                    _config_setter(fs, env2flag, provided, config_ignore_undefined_flags),
                )

    provided.mark(fs)


def _config_setter(
    fs: Flags,
    env2flag: Mapping[str, Flag],
    provided: _Provided,
    ignore_undefined: bool,
) -> SetValue:
    def set_value(name: str, value: str) -> None:
        target = fs.get_flag(name)
        if target is None:
            target = env2flag.get(name)
        if target is None:
            if ignore_undefined:
                return
            raise UnknownFlagError(name, f"parse config file: {name}: unknown flag")
        if target in provided:
            return
        try:
            target.set_value(value)
        except ValueError as err:
            raise FlagError(f"parse config file: {name}: {err}") from err

    return set_value