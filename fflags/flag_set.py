"""A getopt-style flag set with short and long flag names."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Any, Callable, Iterable, Iterator

from fflags.flags import (
    AlreadyParsedError,
    DuplicateFlagError,
    FlagError,
    HelpRequested,
    Resetter,
    UnknownFlagError,
    is_valid_long_name,
    is_valid_short_name,
    name_string,
)
from fflags.values import (
    BoolValue,
    DurationValue,
    EnumValue,
    FloatValue,
    FuncValue,
    IntValue,
    ListValue,
    StringValue,
    UintValue,
    UniqueListValue,
    parse_bool,
)

_ABSENT_SHORT = (None, "", "\x00")


def _parses_as(text: str, expected: bool) -> bool:
    try:
        return parse_bool(text) is expected
    except ValueError:
        return False


def _value_is_bool(value: Any) -> bool:
    attr = getattr(value, "is_bool_flag", False)
    if callable(attr):
        attr = attr()
    return bool(attr)


@dataclass
class FlagConfig:
    """Everything needed to define one flag in a flag set."""

    short_name: str | None = None
    long_name: str | None = None
    usage: str = ""
    value: Any = None
    placeholder: str = ""
    no_placeholder: bool = False
    no_default: bool = False

    def is_bool_flag(self) -> bool:
        """True if the value is boolean, so the flag takes no argument."""
        return _value_is_bool(self.value)

    def help_placeholder(self) -> str:
        """The placeholder to show for the flag in help text."""
        if self.no_placeholder:
            return ""
        if self.placeholder:
            return self.placeholder

        start = self.usage.find("`")
        if start >= 0:
            end = self.usage.find("`", start + 1)
            if end >= 0:
                return self.usage[start + 1 : end]

        if self.is_bool_flag() and _parses_as(str(self.value), False):
            return ""

        own = getattr(self.value, "placeholder", "")
        if isinstance(own, str) and own:
            return own

        type_name = type(self.value).__qualname__.upper()
        type_name = type_name.removesuffix("VALUE")
        last_dot = type_name.rfind(".")
        if last_dot > 0:
            type_name = type_name[last_dot + 1 :]
        return type_name

    def help_default(self) -> str:
        """The default value to show for the flag in help text."""
        if self.no_default:
            return ""
        if self.is_bool_flag() and _parses_as(str(self.value), False):
            return ""
        return str(self.value)


@dataclass(eq=False, repr=False)
class CoreFlag:
    """A flag defined in a FlagSet."""

    flags: FlagSet
    short_name: str | None
    long_name: str | None
    usage: str
    value: Any
    placeholder: str
    default: str
    is_bool_flag: bool
    true_default: str
    is_set: bool = field(default=False)

    @property
    def is_std_flag(self) -> bool:
        return self.flags._is_std_adapter

    def set_value(self, text: str) -> None:
        """Parse text into the flag's value and mark the flag as set."""
        self.value.set(text)
        self.is_set = True

    def get_value(self) -> str:
        """Return the current value as a string."""
        return str(self.value)

    def reset(self) -> None:
        """Restore the flag's default value and clear its set state."""
        if isinstance(self.value, Resetter):
            self.value.reset()
        else:
            self.value.set(self.true_default)
        self.is_set = False

    def __repr__(self) -> str:
        return f"CoreFlag({name_string(self)!r}, value={self.get_value()!r})"


def _is_duplicate(incoming: CoreFlag, existing: CoreFlag) -> bool:
    in_short, in_long = incoming.short_name, incoming.long_name
    ex_short, ex_long = existing.short_name, existing.long_name
    same_short = is_valid_short_name(in_short) and is_valid_short_name(ex_short) and in_short == ex_short
    same_long = is_valid_long_name(in_long) and is_valid_long_name(ex_long) and in_long == ex_long
    short_is_long = is_valid_short_name(in_short) and is_valid_long_name(ex_long) and in_short == ex_long
    long_is_short = is_valid_long_name(in_long) and is_valid_short_name(ex_short) and in_long == ex_short
    return same_short or same_long or short_is_long or long_is_short


class FlagSet:
    """A set of flags parsed getopt-style: -a -bc -sVALUE --long=VALUE."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._flags: list[CoreFlag] = []
        self._is_parsed = False
        self._args: list[str] = []
        self._is_std_adapter = False
        self._parent: FlagSet | None = None

    def __repr__(self) -> str:
        return f"FlagSet({self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_parsed(self) -> bool:
        return self._is_parsed

    @property
    def args(self) -> list[str]:
        return self._args

    def set_parent(self, parent: FlagSet) -> FlagSet:
        """Make all of parent's flags available to this set; returns self."""
        self._parent = parent
        return self

    def parse(self, args: Iterable[str]) -> None:
        """Parse args, assigning flag values; leftovers go to `args`."""
        if self._is_parsed:
            raise AlreadyParsedError()
        try:
            self._parse_args(list(args))
        except Exception:
            self._args = []
            raise
        self._is_parsed = True

    def _parse_args(self, args: list[str]) -> None:
        self._args = args
        while args:
            arg, args = args[0], args[1:]
            if not arg or arg[0] != "-":
                return
            if arg == "--":
                self._args = args
                return

            is_long = len(arg) > 2 and arg.startswith("--")
            is_short = len(arg) > 1 and not is_long
            if is_short and self._is_std_adapter:
                is_short, is_long = False, True
                arg = "-" + arg

            if is_short:
                args = self._parse_short(arg, args)
            elif is_long:
                args = self._parse_long(arg, args)
            self._args = args

    def _set(self, flag: CoreFlag, text: str) -> None:
        try:
            flag.set_value(text)
        except ValueError as err:
            raise FlagError(f'{name_string(flag)}: set "{text}": {err}') from err

    def _parse_short(self, arg: str, args: list[str]) -> list[str]:
        body = arg[1:]
        for index, char in enumerate(body):
            flag = self._find_flag(short=char)
            if flag is None:
                if body == "-":
                    return args
                if char == "h":
                    raise HelpRequested()
                raise UnknownFlagError(char)

            if flag.is_bool_flag:
                text = "true"
            else:
                text = body[index + 1 :]
                if not text:
                    if not args:
                        raise FlagError(f"{name_string(flag)}: set: missing argument")
                    text, args = args[0], args[1:]

            self._set(flag, text)
            if not flag.is_bool_flag:
                return args
        return args

    def _parse_long(self, arg: str, args: list[str]) -> list[str]:
        text = ""
        equals = arg.find("=")
        if equals > 0:
            arg, text = arg[:equals], arg[equals + 1 :]
        name = arg.removeprefix("--")

        flag = self._find_flag(long=name)
        if flag is None:
            if name.casefold() == "help":
                raise HelpRequested()
            if self._is_std_adapter and name.casefold() == "h":
                raise HelpRequested()
            raise UnknownFlagError(name)

        if not text:
            if flag.is_bool_flag:
                text = "true"
                if args and (_parses_as(args[0], True) or _parses_as(args[0], False)):
                    text, args = args[0], args[1:]
            elif args:
                text, args = args[0], args[1:]
            else:
                raise FlagError("missing value")

        self._set(flag, text)
        return args

    def _find_flag(self, short: str | None = None, long: str | None = None) -> CoreFlag | None:
        have_short = is_valid_short_name(short)
        have_long = is_valid_long_name(long)
        for flag in self.walk_flags():
            if have_short and flag.short_name == short:
                return flag
            if have_long and flag.long_name == long:
                return flag
        return None

    def walk_flags(self) -> Iterator[CoreFlag]:
        """Yield every flag in this set, then those of each parent in turn."""
        cursor: FlagSet | None = self
        while cursor is not None:
            yield from cursor._flags
            cursor = cursor._parent

    def get_flag(self, name: str) -> CoreFlag | None:
        """Find a flag by long name, or by short name if name is one character."""
        if not name:
            return None
        short = name if len(name) == 1 else None
        return self._find_flag(short=short, long=name)

    def reset(self) -> None:
        """Restore every flag's default and allow the set to be parsed again."""
        for flag in self._flags:
            try:
                flag.reset()
            except ValueError as err:
                raise FlagError(f"{name_string(flag)}: {err}") from err
        self._args = []
        self._is_parsed = False

    def add_flag(self, config: FlagConfig) -> CoreFlag:
        """Define a flag from config; raises FlagError if it is invalid."""
        if self._is_std_adapter:
            raise FlagError("cannot add flags to standard flag set adapter")
        if config.value is None:
            raise FlagError("value is required")

        config = replace(config, long_name=(config.long_name or "").strip())
        short, long = config.short_name, config.long_name
        has_short = short not in _ABSENT_SHORT
        valid_short = is_valid_short_name(short)
        valid_long = is_valid_long_name(long)
        is_bool = config.is_bool_flag()
        true_default = str(config.value)

        if has_short and not valid_short:
            raise FlagError(f"-{short}: invalid short name")
        if long and not valid_long:
            raise FlagError(f"--{long}: invalid long name")
        if not valid_short and not valid_long:
            raise FlagError("at least one valid name is required")
        if valid_short and valid_long and short == long:
            raise FlagError(f"-{short}, --{long}: same short and long name")
        if is_bool and not valid_long and _parses_as(true_default, True):
            raise FlagError(f"-{short}: default true boolean flag requires a long name")

        flag = CoreFlag(
            flags=self,
            short_name=short if valid_short else None,
            long_name=long if valid_long else None,
            usage=config.usage,
            value=config.value,
            placeholder=config.help_placeholder(),
            default=config.help_default(),
            is_bool_flag=is_bool,
            true_default=true_default,
        )

        for existing in self._flags:
            if _is_duplicate(flag, existing):
                raise DuplicateFlagError(
                    f"{name_string(flag)}: duplicate flag ({name_string(existing)})"
                )

        self._flags.append(flag)
        return flag

    def value(self, value: Any, short: str | None = None, long: str | None = None, usage: str = "") -> CoreFlag:
        """Define a flag backed by value."""
        return self.add_flag(FlagConfig(short_name=short, long_name=long, usage=usage, value=value))

    def bool(self, short=None, long=None, usage: str = "", default: bool = False) -> BoolValue:
        """Define a boolean flag and return its value holder."""
        holder = BoolValue(default)
        self.value(holder, short, long, usage)
        return holder

    def string(self, short=None, long=None, default: str = "", usage: str = "") -> StringValue:
        """Define a string flag and return its value holder."""
        holder = StringValue(default)
        self.value(holder, short, long, usage)
        return holder

    def string_list(self, short=None, long=None, usage: str = "") -> ListValue:
        """Define a repeatable string flag; every occurrence is appended."""
        holder = ListValue()
        self.value(holder, short, long, usage)
        return holder

    def string_set(self, short=None, long=None, usage: str = "") -> UniqueListValue:
        """Define a repeatable string flag that drops duplicate values."""
        holder = UniqueListValue()
        self.value(holder, short, long, usage)
        return holder

    def string_enum(self, short=None, long=None, usage: str = "", *args: str) -> EnumValue:
        """Define a flag limited to args; the first one is the default."""
        holder = EnumValue(*args)
        self.value(holder, short, long, usage)
        return holder

    def float(self, short=None, long=None, default: float = 0.0, usage: str = "") -> FloatValue:
        """Define a floating-point flag and return its value holder."""
        holder = FloatValue(default)
        self.value(holder, short, long, usage)
        return holder

    def int(self, short=None, long=None, default: int = 0, usage: str = "") -> IntValue:
        """Define a signed integer flag and return its value holder."""
        holder = IntValue(default)
        self.value(holder, short, long, usage)
        return holder

    def uint(self, short=None, long=None, default: int = 0, usage: str = "") -> UintValue:
        """Define an unsigned integer flag and return its value holder."""
        holder = UintValue(default)
        self.value(holder, short, long, usage)
        return holder

    def duration(self, short=None, long=None, default: timedelta = timedelta(0), usage: str = "") -> DurationValue:
        """Define a duration flag and return its value holder."""
        holder = DurationValue(default)
        self.value(holder, short, long, usage)
        return holder

    def func(self, short=None, long=None, fn: Callable[[str], Any] | None = None, usage: str = "") -> CoreFlag:
        """Define a flag that calls fn with every value it is given."""
        if fn is None:
            raise FlagError("a function is required")
        return self.value(FuncValue(fn), short, long, usage)


def new_std_flag_set(name: str, entries: Iterable[tuple]) -> FlagSet:
    """Build a fixed flag set that treats -name and --name alike.

    entries holds (name, value) or (name, value, usage) tuples; every name
    becomes a long name, and flags are kept in lexicographic order. No
    further flags may be added to the result.
    """
    fs = FlagSet(name)
    for entry in sorted(entries, key=lambda item: item[0]):
        flag_name, holder, *rest = entry
        usage = rest[0] if rest else ""
        try:
            fs.add_flag(FlagConfig(long_name=flag_name, usage=usage, value=holder))
        except FlagError as err:
            raise FlagError(f"add {flag_name}: {err}") from err
    fs._is_std_adapter = True
    return fs