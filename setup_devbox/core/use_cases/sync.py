"""Sync-config use case — regenerate configuration from state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from setup_devbox.core.config.paths import CONFIGS_DIR, PathResolver, expand_path
from setup_devbox.core.errors import DevboxError
from setup_devbox.core.persistence.state_file import StateStore
from setup_devbox.core.services.synthesizer import synthesize

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    written: list[Path] = field(default_factory=list)
    output_dir: Path | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "output_dir": str(self.output_dir),
            "written": [str(p) for p in self.written],
        }


def sync_config(
    state_path: str | Path | None = None,
    output_dir: str | Path | None = None,
) -> SyncResult:
    """Write a configuration family reproducing the recorded state.

    The default output directory is ``<base_dir>/configs``.
    """
    result = SyncResult()
    try:
        paths = PathResolver.resolve(state_path=state_path)
        if not paths.state_file.is_file():
            result.error = f"State file not found: {paths.state_file}"
            return result
        state = StateStore(paths.state_file).load()
        target = expand_path(output_dir) if output_dir else paths.base_dir / CONFIGS_DIR
        result.output_dir = target
        result.written = synthesize(state, target)
    except (DevboxError, OSError) as e:
        logger.error("%s", e)
        result.error = str(e)
    return result
