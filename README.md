# fflags

Flag parsing for command-line programs, with getopt-style short and long
flags, and optional configuration from environment variables and config
files.

Values are resolved in priority order:

1. the command line,
2. environment variables,
3. a config file.

A flag set by a higher-priority source is never overwritten by a lower one.

The package has no third-party dependencies.

## Installation

```
pip install .
```

## Defining flags

`fflags.flag_set.FlagSet` holds the flags. Each typed helper defines a flag
and returns the value holder; the parsed value is in its `value` attribute.

```python
from datetime import timedelta

from fflags.flag_set import FlagSet

fs = FlagSet("myprogram")
listen = fs.string(short="l", long="listen", default="localhost:8080", usage="listen address")
refresh = fs.duration(short="r", long="refresh", default=timedelta(seconds=15), usage="refresh interval")
debug = fs.bool(short="d", long="debug", usage="log debug information")
fs.string(short="c", long="config", default="", usage="path to config file")
```

Short flags may be combined (`-dr 1s`), a short flag's value may be attached
(`-r1s`), and long flags accept either `--refresh=1s` or `--refresh 1s`.
`--` ends flag parsing, as does the first argument that does not start with
`-`; the remaining arguments are available as `fs.args`. A boolean long flag
may be given on its own (`--debug`) or followed by an explicit value
(`--debug=false`, `--debug false`); a boolean short flag never takes a value.

Other helpers are `int`, `uint`, `float`, `string_list` (repeatable),
`string_set` (repeatable, duplicates dropped), `string_enum` (the first valid
value is the default, others are rejected) and `func` (calls a function with
each value). `FlagSet.value` and `FlagSet.add_flag` with a
`FlagConfig` accept any object with `set(text)` and `__str__`; value classes
live in `fflags.values`.

Every flag needs a valid short name (one character) or long name, and names
may not clash. A boolean flag that defaults to true needs a long name, so it
can be switched off with `--name=false`.

`FlagSet.set_parent` makes a parent's flags available to a child flag set,
which is useful for subcommands that share global flags. `FlagSet.reset`
restores every default so the set can be parsed again.

`fflags.flag_set.new_std_flag_set(name, entries)` builds a fixed flag set from
`(name, value)` or `(name, value, usage)` tuples. Every name is a long name,
flags are kept in lexicographic order, `-name` and `--name` are treated
alike, and no further flags can be added.

## Flags from a dataclass

`fflags.structs.add_struct` adds a flag for every dataclass field that carries
an `ff` tag in its metadata, and keeps the field in step with the flag:

```python
from dataclasses import dataclass, field

from fflags.flag_set import FlagSet
from fflags.structs import add_struct


@dataclass
class Options:
    alpha: str = field(default="", metadata={"ff": "short: a, long: alpha, default: abc, usage: alpha string"})
    beta: int = field(default=0, metadata={"ff": "long=beta | placeholder=N | usage='beta: an int'"})


opts = Options()
fs = FlagSet("mycommand")
add_struct(fs, opts)
fs.parse(["--beta", "7"])
print(opts.alpha, opts.beta)  # abc 7
```

Tag items are separated by `,` or `|`, and written `key=value` or
`key: value`; values may be `'single quoted'`. Keys are `s`/`short`/`shortname`,
`l`/`long`/`longname`, `u`/`usage`, `d`/`def`/`default`, `p`/`placeholder`,
`nodefault` and `noplaceholder`. Field types may be `bool`, `str`, `int`,
`float`, `timedelta` or `list[str]`; a field whose value is already a flag
value object is used as it is. `new_flag_set_from(name, obj)` creates the
flag set and adds the fields in one step.

## Parsing

```python
from fflags.parse import parse, plain_parser

parse(
    fs,
    ["--refresh=1s", "-d"],
    env_var_prefix="MYPROGRAM",
    config_file_flag="config",
    config_file_parser=plain_parser,
)

print(fs.get_flag("refresh").get_value())  # 1s
print(fs.get_flag("d").get_value())        # true
```

Environment variables are read when `env_vars=True`, `env_var_prefix` or
`env_var_split` is given. With `env_var_prefix="MYPROGRAM"`, the variable
`MYPROGRAM_LISTEN` sets `--listen`; `get_env_var_key` shows the mapping (names
are upper-cased, and `-`, `.` and `/` become `_`). `env_var_split=","` sets a
flag once for each part of a variable's value, without trimming. The
`environ` argument replaces `os.environ`.

## Config files

A config file is read only when `config_file_parser` is given, from the path
in `config_file` or, failing that, the value of the flag named by
`config_file_flag`. `config_open` replaces the default opener.

`plain_parser` reads one flag per line: the name, a space, and the value.
A name on its own sets the flag to `true`. Lines starting with `#` are
comments, and ` #` starts a comment at the end of a line. Values are trimmed
but otherwise taken literally.

```
# full-line comment
listen localhost:9999   # end-of-line comment
debug
```

A config file can also name flags by their environment-variable form
(`LISTEN localhost:9999`), so `.env`-style files work. Unknown names are an
error unless `config_ignore_undefined_flags=True` is passed. A missing file
raises `FileNotFoundError` unless `config_allow_missing_file=True` is passed.

`fflags.traverse.traverse_map(mapping, delimiter, set_value)` flattens nested
mappings into name/value calls (nested keys joined with `delimiter`, one call
per list element), for writing parsers of structured config formats.

## Errors

Problems are raised as exceptions from `fflags.flags`, all subclasses of
`FlagError`:

- `HelpRequested` for `-h` or `--help` when no such flag is defined,
- `UnknownFlagError` for a flag that is not defined,
- `DuplicateFlagError` when two flags share a name,
- `AlreadyParsedError` when a flag set is parsed twice without `reset()`.

Invalid values and invalid flag definitions raise `FlagError` itself.

## What it does not do

The package does not print help or usage text and does not dispatch
subcommands. Each flag exposes `usage`, `placeholder` and `default` for
building help text, but laying it out is left to the caller.