"""Logic helpers for the `grove config` command."""

from __future__ import annotations

from dataclasses import dataclass

from ..config import (
    Config,
    load_config,
    set_exclude_patterns,
    set_extensions,
    set_forest_config,
    set_forester_path,
    set_random_ids,
    set_show_id,
)


@dataclass(slots=True)
class ConfigUpdateResult:
    forester_path_set: bool = False
    forest_config_set: bool = False
    show_id_set: bool = False
    random_ids_set: bool = False
    extensions_set: bool = False
    extensions_cleared: bool = False
    exclude_patterns_set: bool = False
    exclude_patterns_cleared: bool = False

    @property
    def changed(self) -> bool:
        return any(
            (
                self.forester_path_set,
                self.forest_config_set,
                self.show_id_set,
                self.random_ids_set,
                self.extensions_set,
                self.extensions_cleared,
                self.exclude_patterns_set,
                self.exclude_patterns_cleared,
            )
        )


def apply_config_updates(
    *,
    forester_path: str | None = None,
    forest_config: str | None = None,
    show_id: bool | None = None,
    random_ids: bool | None = None,
    extensions: list[str] | None = None,
    clear_extensions: bool = False,
    exclude_patterns: list[str] | None = None,
    clear_exclude_patterns: bool = False,
) -> ConfigUpdateResult:
    """Apply config mutations and report which fields were updated."""

    result = ConfigUpdateResult()
    if forester_path is not None:
        set_forester_path(forester_path)
        result.forester_path_set = True
    if forest_config is not None:
        set_forest_config(forest_config)
        result.forest_config_set = True
    if show_id is not None:
        set_show_id(show_id)
        result.show_id_set = True
    if random_ids is not None:
        set_random_ids(random_ids)
        result.random_ids_set = True
    if extensions is not None:
        set_extensions(extensions)
        result.extensions_set = True
    if clear_extensions:
        set_extensions(None)
        result.extensions_cleared = True
    if exclude_patterns is not None:
        set_exclude_patterns(exclude_patterns)
        result.exclude_patterns_set = True
    if clear_exclude_patterns:
        set_exclude_patterns(None)
        result.exclude_patterns_cleared = True
    return result


def get_config_snapshot() -> Config:
    """Return the current configuration dataclass."""

    return load_config()
