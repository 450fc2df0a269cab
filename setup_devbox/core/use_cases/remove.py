"""Remove use case — uninstall items and forget them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from setup_devbox.core.config.loader import ConfigError, document_paths
from setup_devbox.core.config.paths import PathResolver
from setup_devbox.core.errors import DevboxError
from setup_devbox.core.persistence.state_file import StateStore
from setup_devbox.core.services.removal import (
    RemovalOrchestrator,
    RemovalRequest,
    RemovalSummary,
)
from setup_devbox.core.use_cases.runtime import Runtime

logger = logging.getLogger(__name__)


@dataclass
class RemoveResult:
    summary: RemovalSummary | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return self.summary.to_dict() if self.summary else {}


def remove_items(
    requests: list[RemovalRequest],
    config_path: str | Path | None = None,
    state_path: str | Path | None = None,
    runtime: Runtime | None = None,
) -> RemoveResult:
    """Uninstall each requested item and drop it from state and config."""
    result = RemoveResult()
    try:
        paths = PathResolver.resolve(config_path, state_path)
        store = StateStore(paths.state_file)
        state = store.load()
    except DevboxError as e:
        result.error = str(e)
        return result

    try:
        documents = document_paths(paths.config_file)
    except ConfigError as e:
        # State can still be cleaned up without the documents
        logger.warning("Configuration documents will not be updated: %s", e)
        documents = {}

    runtime = runtime or Runtime.default(paths)
    orchestrator = RemovalOrchestrator(
        registry=runtime.registry,
        store=store,
        tracker=runtime.tracker,
        documents=documents,
        shell_manager=runtime.shell_manager,
        settings_backend=runtime.settings_backend,
    )
    try:
        result.summary = orchestrator.remove(requests, state)
    except DevboxError as e:
        result.error = str(e)
    return result
