"""Logic helpers for diagnostics."""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .. import config as config_module
from ..config import Config, load_config, load_forest_settings, resolve_forester_path
from ..errors import ConfigError
from ..text import Messages


@dataclass
class DoctorCheckResult:
    """Result of a single doctor check."""

    name: str
    passed: bool
    message: str
    detail: str | None = None


def find_command_on_path(command: str) -> Optional[str]:
    """Return the resolved path for *command* if present on PATH."""

    return shutil.which(command)


def check_forester_available(forester_path: str | None) -> DoctorCheckResult:
    """Check that the forester executable can be found."""
    program = resolve_forester_path(forester_path)
    path = find_command_on_path(program)
    if path:
        return DoctorCheckResult(
            name="Forester",
            passed=True,
            message=Messages.DOCTOR_FORESTER_FOUND.format(path=path),
        )
    return DoctorCheckResult(
        name="Forester",
        passed=False,
        message=Messages.DOCTOR_FORESTER_MISSING.format(program=program),
        detail=Messages.DOCTOR_FORESTER_MISSING_DETAIL,
    )


def check_config_exists() -> DoctorCheckResult:
    """Check if config file exists."""
    config_file = config_module.CONFIG_FILE
    if config_file.exists():
        return DoctorCheckResult(
            name="Config",
            passed=True,
            message=Messages.DOCTOR_CONFIG_EXISTS.format(path=config_file),
        )
    return DoctorCheckResult(
        name="Config",
        passed=True,
        message=Messages.DOCTOR_CONFIG_DEFAULT,
        detail=str(config_file),
    )


def check_workspace_root(root: Path) -> DoctorCheckResult:
    if root.is_dir():
        return DoctorCheckResult(
            name="Workspace",
            passed=True,
            message=Messages.DOCTOR_ROOT_FOUND.format(path=root),
        )
    return DoctorCheckResult(
        name="Workspace",
        passed=False,
        message=Messages.DOCTOR_ROOT_MISSING.format(path=root),
    )


def check_forest_config(root: Path, forest_config: str | None) -> DoctorCheckResult:
    """Check that the workspace forest configuration parses."""
    try:
        settings = load_forest_settings(root, forest_config)
    except ConfigError as exc:
        return DoctorCheckResult(
            name="Forest config",
            passed=False,
            message=Messages.DOCTOR_FOREST_CONFIG_INVALID,
            detail=str(exc),
        )
    prefixes = ", ".join(settings.prefixes) or Messages.INFO_NONE
    return DoctorCheckResult(
        name="Forest config",
        passed=True,
        message=Messages.DOCTOR_FOREST_CONFIG_OK.format(path=settings.path, prefixes=prefixes),
    )


def load_config_for_doctor() -> tuple[Config, DoctorCheckResult | None]:
    """Load the config, reporting (not raising) a malformed JSON file."""
    try:
        return load_config(), None
    except (json.JSONDecodeError, OSError, UnicodeDecodeError, ValueError) as exc:
        return Config(), DoctorCheckResult(
            name="Config JSON",
            passed=False,
            message=Messages.DOCTOR_CONFIG_INVALID.format(path=config_module.CONFIG_FILE),
            detail=str(exc),
        )


def run_all_doctor_checks(config: Config, root: Path) -> list[DoctorCheckResult]:
    """Run all doctor checks and return results."""
    results = [
        check_forester_available(config.forester_path),
        check_config_exists(),
        check_workspace_root(root),
    ]
    if root.is_dir():
        results.append(check_forest_config(root, config.forest_config))
    return results
