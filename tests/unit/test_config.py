import json

import pytest

from grove import config as config_module
from grove.errors import ConfigError


def test_load_config_defaults(temp_config_home):
    cfg = config_module.load_config()

    assert cfg.forester_path == "forester"
    assert cfg.forest_config == "forest.toml"
    assert cfg.show_id is False
    assert cfg.random_ids is False
    assert cfg.extensions == (".tree",)
    assert cfg.exclude_patterns == ()


def test_setters_persist_json(temp_config_home):
    config_module.set_forester_path("  /opt/bin/forester ")
    config_module.set_show_id(True)
    config_module.set_extensions(["tree", "md"])
    config_module.set_exclude_patterns([".bak"])

    stored = json.loads(temp_config_home.read_text())
    assert stored["forester_path"] == "/opt/bin/forester"
    assert stored["show_id"] is True
    assert stored["random_ids"] is False
    assert stored["extensions"] == [".md", ".tree"]
    assert stored["exclude_patterns"] == ["**/*.bak"]

    cfg = config_module.load_config()
    assert cfg.forester_path == "/opt/bin/forester"
    assert cfg.extensions == (".md", ".tree")


def test_blank_values_fall_back_to_defaults(temp_config_home):
    config_module.set_forester_path("")
    config_module.set_forest_config(None)
    config_module.set_extensions([])

    cfg = config_module.load_config()
    assert cfg.forester_path == "forester"
    assert cfg.forest_config == "forest.toml"
    assert cfg.extensions == (".tree",)


def test_config_from_json_coerces_and_keeps_base():
    base = config_module.Config(forester_path="/usr/bin/forester")

    cfg = config_module.config_from_json('{"show_id": "yes", "random_ids": 0}', base=base)

    assert cfg.forester_path == "/usr/bin/forester"
    assert cfg.show_id is True
    assert cfg.random_ids is False
    assert base.show_id is False


@pytest.mark.parametrize(
    "payload",
    ["[1, 2]", "not json", '{"show_id": "maybe"}', '{"extensions": 3}', '{"forester_path": 1}'],
)
def test_config_from_json_rejects_invalid(payload):
    with pytest.raises(ValueError):
        config_module.config_from_json(payload)


def test_update_config_from_json_saves(temp_config_home):
    config_module.update_config_from_json({"random_ids": True})

    assert json.loads(temp_config_home.read_text())["random_ids"] is True


def test_config_dir_context_overrides_location(tmp_path, temp_config_home):
    override = tmp_path / "override"

    with config_module.config_dir_context(override):
        config_module.set_show_id(True)
        assert config_module.load_config().show_id is True

    assert (override / "config.json").exists()
    assert not temp_config_home.exists()
    assert config_module.load_config().show_id is False


def test_resolve_forester_path_prefers_environment(monkeypatch):
    assert config_module.resolve_forester_path(None) == "forester"
    assert config_module.resolve_forester_path("/bin/f") == "/bin/f"

    monkeypatch.setenv("GROVE_FORESTER_PATH", "/env/forester")

    assert config_module.resolve_forester_path("/bin/f") == "/env/forester"


def test_load_forest_settings_reads_prefixes(tmp_path):
    (tmp_path / "forest.toml").write_text(
        '[forest]\ntrees = ["trees"]\nprefixes = ["abc", "xyz"]\n',
        encoding="utf-8",
    )

    settings = config_module.load_forest_settings(tmp_path)

    assert settings.prefixes == ("abc", "xyz")
    assert settings.trees == ("trees",)
    assert settings.path == tmp_path / "forest.toml"


def test_load_forest_settings_without_forest_table(tmp_path):
    (tmp_path / "site.toml").write_text("[other]\nkey = 1\n", encoding="utf-8")

    settings = config_module.load_forest_settings(tmp_path, "site.toml")

    assert settings.prefixes == ()


def test_load_forest_settings_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        config_module.load_forest_settings(tmp_path)


@pytest.mark.parametrize(
    "content",
    ["[forest\nprefixes = 1", "forest = 3\n", "[forest]\nprefixes = \"abc\"\n"],
)
def test_load_forest_settings_malformed(tmp_path, content):
    (tmp_path / "forest.toml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError, match="invalid"):
        config_module.load_forest_settings(tmp_path)
