"""Generate use case — write starter configuration documents."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from setup_devbox.core.config.paths import PathResolver
from setup_devbox.core.config.templates import GeneratedTemplates, write_templates
from setup_devbox.core.errors import DevboxError


@dataclass
class GenerateResult:
    templates: GeneratedTemplates | None = None
    configs_dir: Path | None = None
    error: str | None = None


def generate_configs(
    config_path: str | Path | None = None,
    state_path: str | Path | None = None,
) -> GenerateResult:
    """Write every missing template next to the master config."""
    result = GenerateResult()
    try:
        paths = PathResolver.resolve(config_path, state_path)
        result.configs_dir = paths.configs_dir
        result.templates = write_templates(paths.configs_dir)
    except (DevboxError, OSError) as e:
        result.error = str(e)
    return result
