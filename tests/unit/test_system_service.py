from __future__ import annotations

from grove.config import Config
from grove.services import system_service


def test_forester_check_uses_path_lookup(monkeypatch):
    monkeypatch.setattr(system_service, "find_command_on_path", lambda cmd: f"/usr/bin/{cmd}")

    result = system_service.check_forester_available("forester")

    assert result.passed is True
    assert "/usr/bin/forester" in result.message


def test_forester_check_reports_missing(monkeypatch):
    monkeypatch.setattr(system_service, "find_command_on_path", lambda cmd: None)

    result = system_service.check_forester_available("/nowhere/forester")

    assert result.passed is False
    assert "/nowhere/forester" in result.message
    assert result.detail


def test_forester_check_prefers_environment(monkeypatch):
    seen: list[str] = []
    monkeypatch.setenv("GROVE_FORESTER_PATH", "/env/forester")
    monkeypatch.setattr(
        system_service,
        "find_command_on_path",
        lambda cmd: seen.append(cmd) or None,
    )

    system_service.check_forester_available("forester")

    assert seen == ["/env/forester"]


def test_config_check_passes_with_or_without_file(temp_config_home):
    missing = system_service.check_config_exists()
    temp_config_home.parent.mkdir(parents=True)
    temp_config_home.write_text("{}")
    present = system_service.check_config_exists()

    assert missing.passed is True
    assert missing.detail == str(temp_config_home)
    assert present.passed is True
    assert str(temp_config_home) in present.message


def test_load_config_for_doctor_reports_bad_json(temp_config_home):
    temp_config_home.parent.mkdir(parents=True)
    temp_config_home.write_text("{not json")

    config, problem = system_service.load_config_for_doctor()

    assert config == Config()
    assert problem is not None
    assert problem.passed is False


def test_forest_config_check(tmp_path):
    failing = system_service.check_forest_config(tmp_path, None)
    (tmp_path / "forest.toml").write_text('[forest]\nprefixes = ["abc"]\n')
    passing = system_service.check_forest_config(tmp_path, None)

    assert failing.passed is False
    assert "not found" in failing.detail
    assert passing.passed is True
    assert "abc" in passing.message


def test_run_all_doctor_checks(tmp_path, monkeypatch):
    monkeypatch.setattr(system_service, "find_command_on_path", lambda cmd: "/usr/bin/forester")

    names = [check.name for check in system_service.run_all_doctor_checks(Config(), tmp_path)]
    missing_root = system_service.run_all_doctor_checks(Config(), tmp_path / "nope")

    assert names == ["Forester", "Config", "Workspace", "Forest config"]
    assert [check.name for check in missing_root] == ["Forester", "Config", "Workspace"]
    assert missing_root[-1].passed is False
