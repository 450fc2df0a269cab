"""
Path resolution — where the master config and the state file live.

Resolution precedence:

    config:  caller override  >  $SDB_CONFIG_PATH/configs/config.yaml
             >  ~/.setup-devbox/configs/config.yaml
    state:   caller override  >  $SDB_STATE_FILE_PATH/state.json
             >  $SDB_CONFIG_PATH/state.json  >  ~/.setup-devbox/state.json

A leading ``~`` is expanded to the invoking user's home directory.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from setup_devbox.core.errors import DevboxError

logger = logging.getLogger(__name__)

ENV_CONFIG_PATH = "SDB_CONFIG_PATH"
ENV_STATE_FILE_PATH = "SDB_STATE_FILE_PATH"
ENV_TOOLS_SOURCE_CONFIG_PATH = "SDB_TOOLS_SOURCE_CONFIG_PATH"

DEFAULT_BASE_DIR = "~/.setup-devbox"
CONFIGS_DIR = "configs"
CONFIG_FILE = "config.yaml"
STATE_FILE = "state.json"


class PathUnresolvable(DevboxError):
    """Raised when a path needs the home directory and none can be found."""


def expand_path(raw: str | os.PathLike[str]) -> Path:
    """Expand a leading ``~`` and return a Path.

    Raises:
        PathUnresolvable: If the home directory cannot be determined.
    """
    path = Path(raw)
    if not str(path).startswith("~"):
        return path
    try:
        return path.expanduser()
    except RuntimeError as e:
        raise PathUnresolvable(f"Cannot expand '{raw}': home directory is unknown") from e


def _env(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


@dataclass(frozen=True)
class PathResolver:
    """Resolved on-disk locations for one invocation."""

    base_dir: Path
    config_file: Path
    state_file: Path
    tools_config_dir: Path

    @classmethod
    def resolve(
        cls,
        config_path: str | os.PathLike[str] | None = None,
        state_path: str | os.PathLike[str] | None = None,
    ) -> PathResolver:
        """Resolve all paths from optional caller overrides and the environment."""
        env_config = _env(ENV_CONFIG_PATH)
        env_state = _env(ENV_STATE_FILE_PATH)

        def base() -> Path:
            return expand_path(env_config or DEFAULT_BASE_DIR)

        # Caller overrides that are already absolute never need $HOME
        if config_path is not None:
            config_file = expand_path(config_path)
        else:
            config_file = base() / CONFIGS_DIR / CONFIG_FILE

        if state_path is not None:
            state_file = expand_path(state_path)
        elif env_state:
            state_file = expand_path(env_state) / STATE_FILE
        else:
            state_file = base() / STATE_FILE

        try:
            base_dir = base()
        except PathUnresolvable:
            base_dir = config_file.parent.parent

        env_tools = _env(ENV_TOOLS_SOURCE_CONFIG_PATH)
        if env_tools:
            tools_config_dir = expand_path(env_tools)
        else:
            tools_config_dir = base_dir / CONFIGS_DIR / "tools"

        resolver = cls(
            base_dir=base_dir,
            config_file=config_file,
            state_file=state_file,
            tools_config_dir=tools_config_dir,
        )
        logger.debug(
            "Resolved paths: config=%s state=%s tools=%s",
            config_file,
            state_file,
            tools_config_dir,
        )
        return resolver

    @property
    def configs_dir(self) -> Path:
        """Directory holding the master config and its siblings."""
        return self.config_file.parent

    @property
    def config_filename(self) -> str:
        return self.config_file.name
