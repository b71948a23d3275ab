"""Create new trees through ``forester new``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ..config import templates_dir
from ..text import Messages

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..indexer import Indexer

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".tree"


@dataclass(frozen=True, slots=True)
class NewTreeRequest:
    dest: Path
    """Folder the new tree is written to."""
    prefix: str
    template: str | None = None
    random: bool = False


def list_templates(root: Path) -> list[str]:
    """Return template names (file stems) found under ``templates/``."""

    directory = templates_dir(root)
    if not directory.is_dir():
        return []
    return sorted(
        path.stem
        for path in directory.iterdir()
        if path.is_file() and path.suffix == TEMPLATE_SUFFIX
    )


def build_new_tree_argv(
    dest: Path | str,
    prefix: str,
    template: str | None = None,
    random: bool = False,
) -> list[str]:
    clean_prefix = prefix.strip()
    if not clean_prefix:
        raise ValueError(Messages.ERROR_PREFIX_EMPTY)
    argv = ["new", "--dest", str(dest), "--prefix", clean_prefix]
    if template:
        argv.append(f"--template={template}")
    if random:
        argv.append("--random")
    return argv


async def create_tree(indexer: "Indexer", root: Path, request: NewTreeRequest) -> Path | None:
    """Run ``forester new`` and return the path it reports, if any.

    Relative paths printed by forester are resolved against *root*.
    """

    argv = build_new_tree_argv(
        request.dest,
        request.prefix,
        template=request.template,
        random=request.random,
    )
    output = (await indexer.command(root, argv)).strip()
    if not output:
        logger.warning(Messages.WARNING_NEW_NO_OUTPUT)
        return None
    created = Path(output.splitlines()[-1].strip())
    if not created.is_absolute():
        created = Path(root) / created
    logger.info("Created %s", created)
    return created
