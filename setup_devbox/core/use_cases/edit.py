"""
Edit use case — locate the document to open in the user's editor.

The CLI opens the file with ``click.edit`` and re-applies when a
configuration document's content changed.
"""

from __future__ import annotations

import logging
from pathlib import Path

from setup_devbox.core.config.loader import ConfigError, document_paths
from setup_devbox.core.config.paths import PathResolver
from setup_devbox.core.services.config_tracker import file_sha256

logger = logging.getLogger(__name__)

EDITABLE_CONFIGS = ("tools", "fonts", "shellrc", "settings", "config")


def config_document(
    kind: str,
    config_path: str | Path | None = None,
) -> Path:
    """Path of the configuration document of type ``kind``.

    Raises:
        ConfigError: If the document does not exist.
    """
    paths = PathResolver.resolve(config_path=config_path)
    if kind == "config":
        target = paths.config_file
    else:
        target = document_paths(paths.config_file).get(kind)
        if target is None:
            raise ConfigError(f"'{kind}' is not part of {paths.config_file}")
    if not target.is_file():
        raise ConfigError(
            f"Configuration file for '{kind}' does not exist at {target}. "
            "Run 'setup-devbox generate' first."
        )
    return target


def state_document(state_path: str | Path | None = None) -> Path:
    """Path of the state file, created empty if missing."""
    paths = PathResolver.resolve(state_path=state_path)
    if not paths.state_file.exists():
        logger.warning("State file %s does not exist, creating it", paths.state_file)
        paths.state_file.parent.mkdir(parents=True, exist_ok=True)
        paths.state_file.write_text("{}\n", encoding="utf-8")
    return paths.state_file


def content_digest(path: Path) -> str | None:
    """Digest used to detect whether an edit changed the file."""
    try:
        return file_sha256(path)
    except OSError:
        return None
