import json

import pytest

from kiosk_bootstrap.config import ConfigSource, load_config
from kiosk_bootstrap.config_sources import DictSource, IniTreeSource, JsonTreeSource, TreeSource, expand_dotted
from kiosk_bootstrap.exceptions import ConfigError, ConfigFileError, ConfigKeyMissing, ConfigTypeError


def test_dotted_and_nested_keys_are_equivalent():
    cfg = ConfigSource.from_mapping(
        {
            "logs.primary_channel": "app",
            "logs": {"default_log": "app.log"},
            "directories": {"root": "/var/app/"},
        }
    )

    assert cfg.get_string("logs.primary_channel") == "app"
    assert cfg.get_string("logs.default_log") == "app.log"
    assert cfg.get_string("directories.root") == "/var/app/"


def test_expand_dotted_merges_branches():
    assert expand_dotted({"a.b": 1, "a.c": 2, "d": {"e.f": 3}}) == {"a": {"b": 1, "c": 2}, "d": {"e": {"f": 3}}}


def test_missing_key_names_the_path():
    cfg = ConfigSource.from_mapping({"logs": {}})

    with pytest.raises(ConfigKeyMissing) as exc:
        cfg.get_string("logs.primary_channel")

    assert exc.value.path == "logs.primary_channel"
    assert isinstance(exc.value, ConfigError)


def test_path_through_scalar_is_missing():
    cfg = ConfigSource.from_mapping({"logs": "flat"})
    assert cfg.has("logs") is True
    assert cfg.has("logs.primary_channel") is False


@pytest.mark.parametrize(
    "raw, expected",
    [(True, True), (False, False), (1, True), (0, False), ("yes", True), ("Off", False), (" true ", True), ("0", False)],
)
def test_get_bool_coercion(raw, expected):
    cfg = ConfigSource.from_mapping({"debug.cli": raw})
    assert cfg.get_bool("debug.cli") is expected


@pytest.mark.parametrize("raw", ["maybe", 2, 1.5, None, ["true"]])
def test_get_bool_rejects_other_values(raw):
    cfg = ConfigSource.from_mapping({"debug.cli": raw})
    with pytest.raises(ConfigTypeError) as exc:
        cfg.get_bool("debug.cli")
    assert exc.value.path == "debug.cli"
    assert exc.value.expected == "bool"


def test_get_string_accepts_numbers_but_not_structures():
    cfg = ConfigSource.from_mapping({"a": 5, "b": 2.5, "c": {"x": 1}, "d": True, "e": None})

    assert cfg.get_string("a") == "5"
    assert cfg.get_string("b") == "2.5"
    for path in ("c", "d", "e"):
        with pytest.raises(ConfigTypeError):
            cfg.get_string(path)


def test_get_int():
    cfg = ConfigSource.from_mapping({"n": 24, "s": " 12 ", "bad": "twelve", "flag": True, "f": 1.0})

    assert cfg.get_int("n") == 24
    assert cfg.get_int("s") == 12
    for path in ("bad", "flag", "f"):
        with pytest.raises(ConfigTypeError):
            cfg.get_int(path)


def test_get_with_default_and_copy_semantics():
    cfg = ConfigSource.from_mapping({"logs": {"levels": ["a"]}})

    assert cfg.get("logs.missing", None) is None
    assert cfg.get("logs.missing", "x") == "x"
    cfg.get("logs.levels").append("b")
    assert cfg.get("logs.levels") == ["a"]
    snapshot = cfg.as_dict()
    snapshot["logs"]["levels"] = []
    assert cfg.get("logs.levels") == ["a"]


def test_later_sources_win():
    cfg = ConfigSource(
        DictSource({"logs": {"primary_channel": "base", "default_log": "app.log"}}),
        DictSource({"logs.primary_channel": "override"}),
    )

    assert cfg.get_string("logs.primary_channel") == "override"
    assert cfg.get_string("logs.default_log") == "app.log"


def test_tree_source_is_abstract():
    with pytest.raises(NotImplementedError):
        TreeSource().get_tree()


def test_load_json(tmp_path):
    f = tmp_path / "app.json"
    f.write_text(json.dumps({"logs": {"primary_channel": "kiosk"}, "debug": {"cli": "true"}}), encoding="utf-8")

    cfg = load_config(str(f))

    assert cfg.get_string("logs.primary_channel") == "kiosk"
    assert cfg.get_bool("debug.cli") is True


def test_load_invalid_json(tmp_path):
    f = tmp_path / "bad.json"
    f.write_text("{ not json }", encoding="utf-8")

    with pytest.raises(ConfigFileError, match="Failed to load JSON"):
        JsonTreeSource(str(f)).get_tree()


def test_load_ini(tmp_path):
    f = tmp_path / "app.ini"
    f.write_text("[debug]\ncli = on\nsystem = 0\n\n[logs]\nprimary_channel = app\n", encoding="utf-8")

    cfg = load_config(str(f))

    assert cfg.get_bool("debug.cli") is True
    assert cfg.get_bool("debug.system") is False
    assert cfg.get_string("logs.primary_channel") == "app"
    assert IniTreeSource(str(f)).get_tree()["logs"] == {"primary_channel": "app"}


def test_load_yaml(tmp_path):
    pytest.importorskip("yaml")
    f = tmp_path / "app.yaml"
    f.write_text("logs:\n  primary_channel: app\ndebug:\n  cli: false\n", encoding="utf-8")

    cfg = load_config(str(f))

    assert cfg.get_string("logs.primary_channel") == "app"
    assert cfg.get_bool("debug.cli") is False


def test_load_missing_or_unknown_file(tmp_path):
    with pytest.raises(ConfigFileError, match="does not exist"):
        load_config(str(tmp_path / "nope.json"))

    other = tmp_path / "app.toml"
    other.write_text("x = 1", encoding="utf-8")
    with pytest.raises(ConfigFileError, match="Unsupported"):
        load_config(str(other))


def test_load_none_gives_empty_config():
    cfg = load_config(None)
    assert cfg.as_dict() == {}
    assert cfg.has("logs.primary_channel") is False
