"""
Configuration-file tracker — deploy and drift-check tool config files.

A tool opts in with a ``configuration_manager`` block. The tracker
keeps two SHA-256 digests per tool:

    source       the user-authored file (``tools_configuration_path``)
    destination  the deployed copy the tool actually reads

A changed source, a missing destination, or a hand-edited destination
all lead to a redeploy. Hand edits are logged as drift and the source
wins.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import tomllib
from dataclasses import dataclass
from pathlib import Path

import yaml

from setup_devbox.core.config.paths import expand_path
from setup_devbox.core.errors import DevboxError
from setup_devbox.core.models.state import ConfigurationManagerState
from setup_devbox.core.models.tools import ConfigurationManager, ToolEntry

logger = logging.getLogger(__name__)

_CONVERTIBLE_TARGETS = {".json", ".yaml", ".yml"}


class ConfigTrackerError(DevboxError):
    """The source or destination could not be read or written."""


@dataclass(frozen=True)
class ConfigEvaluation:
    """Whether a tracked file needs redeploying, and why."""

    needs_refresh: bool
    reason: str
    source_sha: str = ""
    destination_sha: str | None = None


def file_sha256(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def config_home() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else Path.home() / ".config"


class ConfigTracker:
    """Evaluates and deploys tracked configuration files."""

    def __init__(self, tools_config_dir: Path, destination_root: Path | None = None):
        self.tools_config_dir = tools_config_dir
        self._destination_root = destination_root

    # ── Paths ───────────────────────────────────────────────────

    def source_path(self, manager: ConfigurationManager) -> Path:
        path = expand_path(manager.tools_configuration_path)
        if not path.is_absolute():
            path = self.tools_config_dir / path
        return path

    def destination_path(self, tool_name: str, manager: ConfigurationManager) -> Path:
        if manager.destination_path:
            return expand_path(manager.destination_path)
        root = self._destination_root or config_home()
        return root / tool_name / self.source_path(manager).name

    # ── Evaluation ──────────────────────────────────────────────

    def evaluate(
        self,
        tool: ToolEntry,
        prior: ConfigurationManagerState | None,
    ) -> ConfigEvaluation | None:
        """Compare the files on disk with the recorded digests.

        Returns None when tracking is disabled for the tool.

        Raises:
            ConfigTrackerError: If the source file is missing or unreadable.
        """
        manager = tool.configuration_manager
        if not manager.enabled:
            return None

        source = self.source_path(manager)
        if not source.is_file():
            raise ConfigTrackerError(f"Source configuration not found: {source}")
        destination = self.destination_path(tool.name, manager)

        try:
            source_sha = file_sha256(source)
            destination_sha = file_sha256(destination) if destination.is_file() else None
        except OSError as e:
            raise ConfigTrackerError(f"Cannot hash configuration for {tool.name}: {e}") from e

        def result(needs: bool, reason: str) -> ConfigEvaluation:
            return ConfigEvaluation(needs, reason, source_sha, destination_sha)

        if prior is None or not prior.source_configuration_sha:
            return result(True, "no existing state")
        if source_sha != prior.source_configuration_sha:
            return result(True, "source file changed")
        if destination_sha is None:
            return result(True, "destination file missing")
        if destination_sha != prior.destination_configuration_sha:
            logger.warning(
                "[%s] %s was modified outside setup-devbox, overwriting from %s",
                tool.name,
                destination,
                source,
            )
            return result(True, "destination file modified")
        return result(False, "configuration up-to-date")

    # ── Deployment ──────────────────────────────────────────────

    def sync(
        self,
        tool: ToolEntry,
        prior: ConfigurationManagerState | None,
        evaluation: ConfigEvaluation | None = None,
    ) -> ConfigurationManagerState | None:
        """Deploy the source if needed and return the new tracker state.

        Returns None when tracking is disabled, which clears any
        previously recorded state.

        Raises:
            ConfigTrackerError: If the source is missing or deploy fails.
        """
        manager = tool.configuration_manager
        if not manager.enabled:
            if prior is not None:
                logger.info("[%s] Configuration tracking disabled, clearing state", tool.name)
            return None

        if evaluation is None:
            evaluation = self.evaluate(tool, prior)
        assert evaluation is not None  # tracking is enabled

        if not evaluation.needs_refresh and prior is not None:
            logger.debug("[%s] %s", tool.name, evaluation.reason)
            return prior

        source = self.source_path(manager)
        destination = self.destination_path(tool.name, manager)
        logger.info("[%s] Deploying %s → %s (%s)", tool.name, source, destination, evaluation.reason)
        self.deploy(source, destination)
        try:
            destination_sha = file_sha256(destination)
        except OSError as e:
            raise ConfigTrackerError(f"Cannot hash {destination}: {e}") from e

        return ConfigurationManagerState(
            enabled=True,
            tools_configuration_path=manager.tools_configuration_path,
            destination_path=manager.destination_path,
            source_configuration_sha=evaluation.source_sha,
            destination_configuration_sha=destination_sha,
        )

    def deploy(self, source: Path, destination: Path) -> None:
        """Copy ``source`` to ``destination``, converting TOML when needed.

        Raises:
            ConfigTrackerError: On read, parse, or write errors.
        """
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            target_suffix = destination.suffix.lower()
            if source.suffix.lower() == ".toml" and target_suffix in _CONVERTIBLE_TARGETS:
                with open(source, "rb") as fh:
                    data = tomllib.load(fh)
                if target_suffix == ".json":
                    content = json.dumps(data, indent=2, default=str) + "\n"
                else:
                    content = yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
                destination.write_text(content, encoding="utf-8")
            else:
                shutil.copyfile(source, destination)
        except tomllib.TOMLDecodeError as e:
            raise ConfigTrackerError(f"Invalid TOML in {source}: {e}") from e
        except OSError as e:
            raise ConfigTrackerError(f"Cannot deploy {source} to {destination}: {e}") from e

    def remove_destination(self, tool_name: str, state: ConfigurationManagerState) -> None:
        """Delete a tracked tool's deployed file (warning on failure)."""
        manager = ConfigurationManager(
            enabled=True,
            tools_configuration_path=state.tools_configuration_path,
            destination_path=state.destination_path,
        )
        destination = self.destination_path(tool_name, manager)
        try:
            destination.unlink(missing_ok=True)
            logger.info("[%s] Removed tracked configuration %s", tool_name, destination)
        except OSError as e:
            logger.warning("[%s] Cannot remove %s: %s", tool_name, destination, e)
