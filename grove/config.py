"""Global configuration management for Grove."""

from __future__ import annotations

import json
import os
import tomllib
from contextlib import contextmanager
from contextvars import ContextVar
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from .errors import ConfigError
from .indexer import DEFAULT_FOREST_CONFIG, DEFAULT_FORESTER_PATH
from .text import Messages
from .utils import normalize_exclude_patterns, normalize_extensions

DEFAULT_CONFIG_DIR = Path(os.path.expanduser("~")) / ".grove"
CONFIG_DIR = DEFAULT_CONFIG_DIR
CONFIG_FILE = CONFIG_DIR / "config.json"
_CONFIG_DIR_OVERRIDE: ContextVar[Path | None] = ContextVar(
    "grove_config_dir_override",
    default=None,
)
DEFAULT_EXTENSIONS: tuple[str, ...] = (".tree",)
TEMPLATES_DIR_NAME = "templates"
ENV_FORESTER_PATH = "GROVE_FORESTER_PATH"


@dataclass
class Config:
    forester_path: str = DEFAULT_FORESTER_PATH
    forest_config: str = DEFAULT_FOREST_CONFIG
    show_id: bool = False
    random_ids: bool = False
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    exclude_patterns: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ForestSettings:
    """Values read from the workspace ``forest.toml``."""

    path: Path
    prefixes: tuple[str, ...] = ()
    trees: tuple[str, ...] = field(default_factory=tuple)


def _resolve_config_dir() -> Path:
    override = _CONFIG_DIR_OVERRIDE.get()
    return override if override is not None else CONFIG_DIR


def _resolve_config_file() -> Path:
    override = _CONFIG_DIR_OVERRIDE.get()
    if override is not None:
        return override / "config.json"
    return CONFIG_FILE


@contextmanager
def config_dir_context(path: Path | str | None):
    """Temporarily override the config directory for the current context."""

    if path is None:
        yield
        return
    dir_path = Path(path).expanduser().resolve()
    if dir_path.exists() and not dir_path.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {dir_path}")
    token = _CONFIG_DIR_OVERRIDE.set(dir_path)
    try:
        yield
    finally:
        _CONFIG_DIR_OVERRIDE.reset(token)


def load_config() -> Config:
    config_file = _resolve_config_file()
    if not config_file.exists():
        return Config()
    raw = json.loads(config_file.read_text(encoding="utf-8"))
    config = Config()
    _apply_config_payload(config, raw if isinstance(raw, Mapping) else {})
    return config


def save_config(config: Config) -> None:
    config_dir = _resolve_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    data: Dict[str, Any] = {}
    if config.forester_path:
        data["forester_path"] = config.forester_path
    if config.forest_config:
        data["forest_config"] = config.forest_config
    data["show_id"] = bool(config.show_id)
    data["random_ids"] = bool(config.random_ids)
    data["extensions"] = list(config.extensions)
    if config.exclude_patterns:
        data["exclude_patterns"] = list(config.exclude_patterns)
    config_file = _resolve_config_file()
    config_file.write_text(
        json.dumps(data, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


def config_from_json(
    payload: str | Mapping[str, object], *, base: Config | None = None
) -> Config:
    """Return a Config from a JSON string or mapping without saving it."""
    data = _coerce_config_payload(payload)
    config = Config() if base is None else _clone_config(base)
    _apply_config_payload(config, data)
    return config


def update_config_from_json(
    payload: str | Mapping[str, object], *, replace: bool = False
) -> Config:
    """Update config from a JSON string or mapping and persist it."""
    base = None if replace else load_config()
    config = config_from_json(payload, base=base)
    save_config(config)
    return config


def set_forester_path(value: str | None) -> None:
    config = load_config()
    config.forester_path = (value or "").strip() or DEFAULT_FORESTER_PATH
    save_config(config)


def set_forest_config(value: str | None) -> None:
    config = load_config()
    config.forest_config = (value or "").strip() or DEFAULT_FOREST_CONFIG
    save_config(config)


def set_show_id(value: bool) -> None:
    config = load_config()
    config.show_id = bool(value)
    save_config(config)


def set_random_ids(value: bool) -> None:
    config = load_config()
    config.random_ids = bool(value)
    save_config(config)


def set_extensions(values: list[str] | tuple[str, ...] | None) -> None:
    config = load_config()
    config.extensions = normalize_extensions(values) or DEFAULT_EXTENSIONS
    save_config(config)


def set_exclude_patterns(values: list[str] | tuple[str, ...] | None) -> None:
    config = load_config()
    config.exclude_patterns = normalize_exclude_patterns(values)
    save_config(config)


def resolve_forester_path(configured: str | None) -> str:
    """Return the forester executable from the environment or config."""

    env_value = (os.getenv(ENV_FORESTER_PATH) or "").strip()
    if env_value:
        return env_value
    return (configured or "").strip() or DEFAULT_FORESTER_PATH


def load_forest_settings(root: Path, forest_config: str | None = None) -> ForestSettings:
    """Read the workspace forest configuration.

    Raises ConfigError when the file is missing or is not valid TOML.
    """

    path = Path(root) / (forest_config or DEFAULT_FOREST_CONFIG)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(Messages.ERROR_FOREST_CONFIG_MISSING.format(path=path)) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(
            Messages.ERROR_FOREST_CONFIG_INVALID.format(path=path, reason=str(exc))
        ) from exc
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            Messages.ERROR_FOREST_CONFIG_INVALID.format(path=path, reason=str(exc))
        ) from exc
    forest = data.get("forest")
    if forest is None:
        return ForestSettings(path=path)
    if not isinstance(forest, Mapping):
        raise ConfigError(
            Messages.ERROR_FOREST_CONFIG_INVALID.format(
                path=path, reason=Messages.REASON_FOREST_TABLE
            )
        )
    return ForestSettings(
        path=path,
        prefixes=_coerce_str_list(forest.get("prefixes"), path, "prefixes"),
        trees=_coerce_str_list(forest.get("trees"), path, "trees"),
    )


def templates_dir(root: Path) -> Path:
    return Path(root) / TEMPLATES_DIR_NAME


def _coerce_str_list(value: object, path: Path, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise ConfigError(
        Messages.ERROR_FOREST_CONFIG_INVALID.format(
            path=path,
            reason=Messages.REASON_FOREST_LIST.format(field=field_name),
        )
    )


def _coerce_config_payload(payload: str | Mapping[str, object]) -> Mapping[str, object]:
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValueError(Messages.ERROR_CONFIG_JSON_INVALID) from exc
    elif isinstance(payload, Mapping):
        data = dict(payload)
    else:
        raise ValueError(Messages.ERROR_CONFIG_JSON_INVALID)
    if not isinstance(data, Mapping):
        raise ValueError(Messages.ERROR_CONFIG_JSON_INVALID)
    return data


def _clone_config(config: Config) -> Config:
    return Config(
        forester_path=config.forester_path,
        forest_config=config.forest_config,
        show_id=config.show_id,
        random_ids=config.random_ids,
        extensions=tuple(config.extensions),
        exclude_patterns=tuple(config.exclude_patterns),
    )


def _apply_config_payload(config: Config, payload: Mapping[str, object]) -> None:
    if "forester_path" in payload:
        config.forester_path = _coerce_required_str(
            payload["forester_path"], "forester_path", DEFAULT_FORESTER_PATH
        )
    if "forest_config" in payload:
        config.forest_config = _coerce_required_str(
            payload["forest_config"], "forest_config", DEFAULT_FOREST_CONFIG
        )
    if "show_id" in payload:
        config.show_id = _coerce_bool(payload["show_id"], "show_id")
    if "random_ids" in payload:
        config.random_ids = _coerce_bool(payload["random_ids"], "random_ids")
    if "extensions" in payload:
        config.extensions = (
            normalize_extensions(_coerce_str_sequence(payload["extensions"], "extensions"))
            or DEFAULT_EXTENSIONS
        )
    if "exclude_patterns" in payload:
        config.exclude_patterns = normalize_exclude_patterns(
            _coerce_str_sequence(payload["exclude_patterns"], "exclude_patterns")
        )


def _coerce_required_str(value: object, field: str, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, str):
        cleaned = value.strip()
        return cleaned or default
    raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))


def _coerce_bool(value: object, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        cleaned = value.strip().lower()
        if cleaned in {"true", "1", "yes", "on"}:
            return True
        if cleaned in {"false", "0", "no", "off"}:
            return False
    raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))


def _coerce_str_sequence(value: object, field: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return list(value)
    raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
