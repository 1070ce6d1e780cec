import io
from datetime import timedelta

import pytest

from fflags.flag_set import FlagSet, new_std_flag_set
from fflags.flags import DuplicateFlagError, FlagError, HelpRequested, UnknownFlagError
from fflags.parse import get_env_var_key, parse, plain_parser
from fflags.values import BoolValue, DurationValue, FloatValue, IntValue, ListValue, StringValue


PREFIX = "TEST_PARSE"


def _core_set(default_a=False, default_b=False):
    fs = FlagSet("test")
    holders = {
        "s": fs.string("s", "str", "", "string"),
        "i": fs.int("i", "int", 0, "int"),
        "f": fs.float("f", "flt", 0.0, "float"),
        "a": fs.bool("a", "aflag", "bool a", default_a),
        "b": fs.bool("b", "bflag", "bool b", default_b),
        "c": fs.bool("c", "cflag", "bool c"),
        "d": fs.duration("d", "dur", timedelta(0), "duration"),
        "x": fs.string_list("x", "xflag", "list"),
    }
    return fs, holders


def _std_set(default_a=False, default_b=False):
    holders = {
        "s": StringValue(""),
        "i": IntValue(0),
        "f": FloatValue(0.0),
        "a": BoolValue(default_a),
        "b": BoolValue(default_b),
        "c": BoolValue(False),
        "d": DurationValue(timedelta(0)),
        "x": ListValue(),
    }
    fs = new_std_flag_set("test", [(name, value, name) for name, value in holders.items()])
    return fs, holders


def _values(holders):
    return {name: holder.value for name, holder in holders.items()}


def _expect(**overrides):
    expected = {
        "s": "",
        "i": 0,
        "f": 0.0,
        "a": False,
        "b": False,
        "c": False,
        "d": timedelta(0),
        "x": [],
    }
    expected.update(overrides)
    return expected


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


CONF_1 = "s bar\ni 99\nb\nd 1h\n"
CONF_2 = "s from file\ni 99\nd 3s\n"
CONF_3 = "s from file\ni 99\nd 34s\n"
CONF_4 = "s from file\ni 200\nf 0.99\nd 1m\n"
CONF_5 = "s s.file.1\ns s.file.2\nx x.file.1\nx x.file.2\n"


def test_parse_empty():
    fs, holders = _core_set()
    parse(fs, [])
    assert _values(holders) == _expect()


def test_parse_args():
    fs, holders = _core_set()
    parse(fs, ["-s", "foo", "-i", "123", "-b", "-d", "24m"])
    assert _values(holders) == _expect(s="foo", i=123, b=True, d=timedelta(minutes=24))


@pytest.mark.parametrize(
    "conf, args, env, expected",
    [
        (CONF_1, [], None, _expect(s="bar", i=99, b=True, d=timedelta(hours=1))),
        (None, [], {"TEST_PARSE_S": "baz", "TEST_PARSE_F": "0.99", "TEST_PARSE_D": "100s"},
         _expect(s="baz", f=0.99, d=timedelta(seconds=100))),
        (CONF_2, ["-s", "foo", "-i", "1234"], None,
         _expect(s="foo", i=1234, d=timedelta(seconds=3))),
        (None, ["-s", "explicit wins", "-i", "7"],
         {"TEST_PARSE_S": "should be overridden", "TEST_PARSE_B": "true"},
         _expect(s="explicit wins", i=7, b=True)),
        (CONF_3, [], {"TEST_PARSE_S": "env takes priority", "TEST_PARSE_B": "true"},
         _expect(s="env takes priority", i=99, b=True, d=timedelta(seconds=34))),
        (CONF_4, ["-s", "from arg", "-i", "100"],
         {"TEST_PARSE_S": "from env", "TEST_PARSE_I": "300", "TEST_PARSE_F": "0.15", "TEST_PARSE_B": "true"},
         _expect(s="from arg", i=100, f=0.15, b=True, d=timedelta(minutes=1))),
        (CONF_5, [], None, _expect(s="s.file.2", x=["x.file.1", "x.file.2"])),
        (CONF_5, ["-s", "s.arg.1", "-s", "s.arg.2", "-x", "x.arg.1", "-x", "x.arg.2"],
         {"TEST_PARSE_S": "s.env", "TEST_PARSE_X": "x.env.1"},
         _expect(s="s.arg.2", x=["x.arg.1", "x.arg.2"])),
    ],
)
def test_parse_priorities(tmp_path, conf, args, env, expected):
    fs, holders = _core_set()
    options = {}
    if conf is not None:
        options["config_file"] = _write(tmp_path, "test.conf", conf)
        options["config_file_parser"] = plain_parser
    if env is not None:
        options["env_var_prefix"] = PREFIX
        options["environ"] = env
    parse(fs, args, **options)
    assert _values(holders) == expected


def test_parse_repeated_args():
    fs, holders = _core_set()
    parse(fs, ["-s", "foo", "-s", "bar", "-d", "1m", "-d", "1h", "-x", "1", "-x", "2", "-x", "3"])
    assert _values(holders) == _expect(s="bar", d=timedelta(hours=1), x=["1", "2", "3"])


@pytest.mark.parametrize(
    "options, env, expected",
    [
        ({"env_vars": True}, {"S": "xxx", "F": "9.87"}, _expect(s="xxx", f=9.87)),
        ({"env_var_prefix": PREFIX}, {"TEST_PARSE_S": "foo", "S": "bar"}, _expect(s="foo")),
        ({"env_vars": True}, {"TEST_PARSE_S": "foo", "S": "bar"}, _expect(s="bar")),
        ({"env_var_prefix": PREFIX, "env_var_split": ","},
         {"TEST_PARSE_S": "one,two,three", "TEST_PARSE_X": "one,two,three"},
         _expect(s="three", x=["one", "two", "three"])),
        ({"env_var_prefix": PREFIX},
         {"TEST_PARSE_S": "one,two,three", "TEST_PARSE_X": "one,two,three"},
         _expect(s="one,two,three", x=["one,two,three"])),
        ({"env_var_prefix": PREFIX, "env_var_split": ","},
         {"TEST_PARSE_S": "one, two, three ", "TEST_PARSE_X": "one, two, three "},
         _expect(s=" three ", x=["one", " two", " three "])),
    ],
)
def test_parse_environment(options, env, expected):
    fs, holders = _core_set()
    parse(fs, [], environ=env, **options)
    assert _values(holders) == expected


def test_environment_ignored_without_option():
    fs, holders = _core_set()
    parse(fs, [], environ={"S": "xxx"})
    assert holders["s"].value == ""


def test_environment_bad_value():
    fs, _ = _core_set()
    with pytest.raises(FlagError, match="TEST_PARSE_I"):
        parse(fs, [], env_var_prefix=PREFIX, environ={"TEST_PARSE_I": "nope"})


@pytest.mark.parametrize(
    "args, expected, rest",
    [
        (["--str=foo", "--int", "123", "--bflag", "-d", "13m"],
         _expect(s="foo", i=123, b=True, d=timedelta(minutes=13)), []),
        (["-b"], _expect(b=True), []),
        (["--str", "abc"], _expect(s="abc"), []),
        (["-s", "xxx"], _expect(s="xxx"), []),
        (["-s=xxx"], _expect(s="=xxx"), []),
        (["-str=xxx"], _expect(s="tr=xxx"), []),
        (["-s", "-b"], _expect(s="-b"), []),
        (["-a", "-b", "-c"], _expect(a=True, b=True, c=True), []),
        (["-ab", "-c"], _expect(a=True, b=True, c=True), []),
        (["-ab", "-sfoo", "-bc"], _expect(a=True, b=True, c=True, s="foo"), []),
        (["-absfoo", "-c"], _expect(a=True, b=True, c=True, s="foo"), []),
        (["-acs", "foo", "-b"], _expect(a=True, b=True, c=True, s="foo"), []),
        (["-a", "true", "-b", "false", "-c", "true"], _expect(a=True),
         ["true", "-b", "false", "-c", "true"]),
        (["-s", "foo", "-f", "1.23"], _expect(s="foo", f=1.23), []),
        (["-a", "true", "-b", "true"], _expect(a=True), ["true", "-b", "true"]),
        (["--aflag", "true", "--cflag", "true"], _expect(a=True, c=True), []),
    ],
)
def test_parse_flag_set(args, expected, rest):
    fs, holders = _core_set()
    parse(fs, args)
    assert _values(holders) == expected
    assert fs.args == rest


def test_parse_flag_set_default_true_set_false():
    fs, holders = _core_set(default_a=True, default_b=True)
    parse(fs, ["-a", "--bflag=false"])
    assert _values(holders) == _expect(a=True, b=False)
    assert fs.args == []


def test_parse_flag_set_default_true_positional_false():
    fs, holders = _core_set(default_a=True, default_b=True)
    parse(fs, ["-a", "false"])
    assert _values(holders) == _expect(a=True, b=True)
    assert fs.args == ["false"]


def test_parse_help_after_value():
    fs, holders = _core_set()
    with pytest.raises(HelpRequested):
        parse(fs, ["--str", "foo", "-h"])
    assert holders["s"].value == "foo"


def test_parse_long_help_stops_parsing():
    fs, holders = _core_set()
    with pytest.raises(HelpRequested):
        parse(fs, ["--str", "foo", "--help", "-b"])
    assert holders["s"].value == "foo"
    assert holders["b"].value is False


@pytest.mark.parametrize(
    "defaults, args, expected",
    [
        ({}, ["-s", "foo", "-f", "1.23"], _expect(s="foo", f=1.23)),
        ({}, ["-a", "true", "-b", "true"], _expect(a=True, b=True)),
        ({}, ["--a", "true", "--c", "true"], _expect(a=True, c=True)),
        ({"default_a": True, "default_b": True}, ["-a", "-b=false"], _expect(a=True, b=False)),
        ({"default_a": True, "default_b": True}, ["-a", "false"], _expect(a=False, b=True)),
    ],
)
def test_parse_std_adapter(defaults, args, expected):
    fs, holders = _std_set(**defaults)
    parse(fs, args)
    assert _values(holders) == expected


COMMENTS_CONF = """\
# full line comment
x foo#bar
x foo# bar
x foo #bar
x foo # bar
x "foo#bar"#baz
x "foo#bar" #baz
x "foo #bar"
"""


@pytest.mark.parametrize(
    "conf, options, expected",
    [
        ("s x\nb\n", {}, _expect(s="x", b=True)),
        ("s i am the very model of a modern major general\n", {},
         _expect(s="i am the very model of a modern major general")),
        (COMMENTS_CONF, {}, _expect(x=[
            "foo#bar", "foo# bar", "foo", "foo", '"foo#bar"#baz', '"foo#bar"', '"foo',
        ])),
        ('x hello\\nworld\\n\nx "hello\\nworld\\n"\n', {},
         _expect(x=["hello\\nworld\\n", '"hello\\nworld\\n"'])),
        ("s one\nundefined two\n", {"config_ignore_undefined_flags": True}, _expect(s="one")),
    ],
)
def test_parse_plain_parser(tmp_path, conf, options, expected):
    fs, holders = _core_set()
    path = _write(tmp_path, "test.conf", conf)
    parse(fs, [], config_file=path, config_file_parser=plain_parser, **options)
    assert _values(holders) == expected


def test_parse_undefined_config_flag(tmp_path):
    fs, _ = _core_set()
    path = _write(tmp_path, "test.conf", "s one\nundefined two\n")
    with pytest.raises(UnknownFlagError):
        parse(fs, [], config_file=path, config_file_parser=plain_parser)


def test_parse_config_env_style_names(tmp_path):
    fs, holders = _core_set()
    path = _write(tmp_path, "test.env", "TEST_PARSE_STR hello\n")
    parse(fs, [], env_var_prefix=PREFIX, environ={}, config_file=path, config_file_parser=plain_parser)
    assert holders["s"].value == "hello"


def test_parse_with_custom_opener():
    files = {"testdata/1.conf": CONF_1}

    def opener(path):
        if path not in files:
            raise FileNotFoundError(path)
        return io.StringIO(files[path])

    fs, holders = _core_set()
    parse(fs, [], config_file="testdata/1.conf", config_file_parser=plain_parser, config_open=opener)
    assert _values(holders) == _expect(s="bar", i=99, b=True, d=timedelta(hours=1))


def test_parse_missing_config_file(tmp_path):
    fs, _ = _core_set()
    missing = str(tmp_path / "missing.conf")
    with pytest.raises(FileNotFoundError):
        parse(fs, [], config_file=missing, config_file_parser=plain_parser)


def test_parse_missing_config_file_allowed(tmp_path):
    fs, holders = _core_set()
    missing = str(tmp_path / "missing.conf")
    parse(fs, ["-s", "ok"], config_file=missing, config_file_parser=plain_parser,
          config_allow_missing_file=True)
    assert holders["s"].value == "ok"


def test_parse_config_without_parser_is_ignored(tmp_path):
    fs, holders = _core_set()
    path = _write(tmp_path, "test.conf", "s ignored\n")
    parse(fs, [], config_file=path)
    assert holders["s"].value == ""


def test_parse_config_bad_value(tmp_path):
    fs, _ = _core_set()
    path = _write(tmp_path, "test.conf", "i nope\n")
    with pytest.raises(FlagError, match="parse config file"):
        parse(fs, [], config_file=path, config_file_parser=plain_parser)


def test_parse_types_flag_set():
    fs = FlagSet("types")
    foo = fs.string("f", "foo", "default-value", "foo string")
    parse(fs, ["--foo=bar"])
    assert foo.value == "bar"


def test_parse_types_std_flag_set():
    foo = StringValue("default-value")
    fs = new_std_flag_set("types", [("foo", foo, "foo string")])
    parse(fs, ["-foo", "bar"])
    assert foo.value == "bar"


def test_parse_types_invalid():
    with pytest.raises(TypeError):
        parse("xxx", ["-foo", "bar"])


def test_parse_std_config_flag(tmp_path):
    path = _write(tmp_path, "config.conf", "foo hello")
    foo = StringValue("abc")
    fs = new_std_flag_set("std", [("foo", foo, "foo string"), ("config", StringValue(""), "config file")])
    parse(fs, ["-config", path], config_file_flag="config", config_file_parser=plain_parser)
    assert foo.value == "hello"


def test_parse_duplicate_env_keys():
    fs = FlagSet("dupes")
    fs.string(None, "foo-bar", "", "one")
    fs.string(None, "foo.bar", "", "two")
    with pytest.raises(DuplicateFlagError):
        parse(fs, [])


def test_example_args():
    fs = FlagSet("myprogram")
    listen = fs.string(None, "listen", "localhost:8080", "listen address")
    refresh = fs.duration("r", "refresh", timedelta(seconds=15), "refresh interval")
    debug = fs.bool("d", "debug", "log debug information")
    parse(fs, ["--refresh=1s", "-d"])
    assert listen.value == "localhost:8080"
    assert refresh.value == timedelta(seconds=1)
    assert debug.value is True


def test_example_env():
    fs = FlagSet("myprogramenv")
    listen = fs.string(None, "listen", "localhost:8080", "listen address")
    refresh = fs.duration("r", "refresh", timedelta(seconds=15), "refresh interval")
    debug = fs.bool("d", "debug", "log debug information")
    parse(fs, [], env_var_prefix="MY_PROGRAM_ENV", environ={"MY_PROGRAM_ENV_REFRESH": "3s"})
    assert listen.value == "localhost:8080"
    assert refresh.value == timedelta(seconds=3)
    assert debug.value is False


def test_example_config(tmp_path):
    fs = FlagSet("myprogram")
    listen = fs.string(None, "listen", "localhost:8080", "listen address")
    refresh = fs.duration("r", "refresh", timedelta(seconds=15), "refresh interval")
    debug = fs.bool("d", "debug", "log debug information")
    fs.string("c", "config", "", "path to config file")
    path = _write(tmp_path, "example.conf", "\n\t\tdebug\n\t\tlisten localhost:9999\n\t")
    parse(fs, ["-c", path], config_file_flag="config", config_file_parser=plain_parser)
    assert listen.value == "localhost:9999"
    assert refresh.value == timedelta(seconds=15)
    assert debug.value is True


def test_example_flag_set_features():
    fs = FlagSet("myprogram")
    addrs = fs.string_set("a", "addr", "remote address (repeatable)")
    refresh = fs.duration(None, "refresh", timedelta(seconds=15), "refresh interval")
    compress = fs.bool("c", "compress", "enable compression")
    transform = fs.bool("t", "transform", "enable transformation")
    loglevel = fs.string_enum("l", "log", "log level: debug, info, error", "info", "debug", "error")
    fs.string(None, "config", "", "config file (optional)")
    parse(
        fs,
        ["-afoo", "-a", "bar", "--log=debug", "-ct"],
        env_var_prefix="MY_PROGRAM",
        environ={},
        config_file_flag="config",
        config_file_parser=plain_parser,
    )
    assert addrs.value == ["foo", "bar"]
    assert refresh.value == timedelta(seconds=15)
    assert compress.value is True
    assert transform.value is True
    assert loglevel.value == "debug"


def test_example_parent(tmp_path):
    parent = FlagSet("mycommand")
    loglevel = parent.string_enum("l", "log", "log level: debug, info, error", "info", "debug", "error")
    parent.string(None, "config", "", "config file (optional)")
    child = FlagSet("subcommand").set_parent(parent)
    compress = child.bool("c", "compress", "enable compression")
    transform = child.bool("t", "transform", "enable transformation")
    refresh = child.duration(None, "refresh", timedelta(seconds=15), "refresh interval")
    path = _write(tmp_path, "parent.conf", "\n\t\tlog error\n\t\tcompress\n\t\trefresh 3s\n")
    parse(
        child,
        ["--config", path, "--refresh=1s"],
        env_var_prefix="MY_PROGRAM",
        environ={},
        config_file_flag="config",
        config_file_parser=plain_parser,
    )
    assert loglevel.value == "error"
    assert compress.value is True
    assert transform.value is False
    assert refresh.value == timedelta(seconds=1)


def test_example_stdlib():
    listen = StringValue("localhost:8080")
    refresh = DurationValue(timedelta(seconds=15))
    debug = BoolValue(False)
    fs = new_std_flag_set(
        "myprogram",
        [("listen", listen, "listen address"), ("refresh", refresh, "refresh interval"),
         ("debug", debug, "log debug information")],
    )
    parse(fs, ["--debug", "-refresh=2s", "-listen", "localhost:9999"])
    assert listen.value == "localhost:9999"
    assert refresh.value == timedelta(seconds=2)
    assert debug.value is True


def test_example_help():
    fs = FlagSet("myprogram")
    fs.string_set("a", "addr", "remote address (repeatable)")
    fs.bool("c", "compress", "enable compression")
    with pytest.raises(HelpRequested, match="help requested"):
        parse(fs, ["-h"], env_var_prefix="MY_PROGRAM", environ={},
              config_file_flag="config", config_file_parser=plain_parser)


@pytest.mark.parametrize(
    "name, prefix, expected",
    [
        ("foo", "", "FOO"),
        ("--foo-bar", "", "FOO_BAR"),
        ("a.b/c-d", "", "A_B_C_D"),
        ("refresh", "my_program_env", "MY_PROGRAM_ENV_REFRESH"),
        ("s", "TEST_PARSE", "TEST_PARSE_S"),
    ],
)
def test_get_env_var_key(name, prefix, expected):
    assert get_env_var_key(name, prefix) == expected


def test_plain_parser_pairs():
    calls = []
    plain_parser(
        io.StringIO("# comment\n\n  verbose  \ntimeout 250ms   # eol\nfoo   abc def\n"),
        lambda name, value: calls.append((name, value)),
    )
    assert calls == [("verbose", "true"), ("timeout", "250ms"), ("foo", "abc def")]


def test_plain_parser_propagates_set_errors():
    def reject(name, value):
        raise FlagError(f"rejected {name}")

    with pytest.raises(FlagError, match="rejected foo"):
        plain_parser(io.StringIO("foo bar\n"), reject)