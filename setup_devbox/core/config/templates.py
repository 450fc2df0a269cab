"""
Starter documents written by ``generate``.

Each template is a complete, loadable document with a few commented
examples. Existing files are never overwritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from setup_devbox.core.persistence.state_file import atomic_write_text

logger = logging.getLogger(__name__)


# ── Templates ───────────────────────────────────────────────────

_MASTER_TEMPLATE = """\
# setup-devbox master configuration.
# Each entry points at a sub-document; relative paths are resolved
# against this file's directory.
tools: tools.yaml
fonts: fonts.yaml
shellrc: shellrc.yaml
settings: settings.yaml
"""

_TOOLS_TEMPLATE = """\
# Minimum age of a 'latest' install before it is updated again.
update_latest_only_after: "7 days"

tools:
  - name: ripgrep
    source: brew
  - name: bat
    source: cargo
    version: 0.24.0
  # - name: fzf
  #   source: github
  #   repo: junegunn/fzf
  #   tag: v0.54.0
  #   version: 0.54.0
  # - name: starship
  #   source: brew
  #   configuration_manager:
  #     enabled: true
  #     tools_configuration_path: starship/starship.toml
"""

_FONTS_TEMPLATE = """\
fonts:
  - name: FiraCode
    version: 3.2.1
    source: github
    repo: ryanoasis/nerd-fonts
    tag: v3.2.1
    install_only:
      - Regular
      - Bold
"""

_SHELLRC_TEMPLATE = """\
run_commands:
  shell: zsh
  run_commands:
    - command: export EDITOR=vim
      section: Exports
    - command: export PATH="$HOME/bin:$PATH"
      section: Paths

aliases:
  - name: ll
    value: ls -la
"""

_SETTINGS_TEMPLATE = """\
settings:
  macos:
    - domain: com.apple.finder
      key: AppleShowAllFiles
      value: true
      type: bool
"""

TEMPLATES: dict[str, str] = {
    "config.yaml": _MASTER_TEMPLATE,
    "tools.yaml": _TOOLS_TEMPLATE,
    "fonts.yaml": _FONTS_TEMPLATE,
    "shellrc.yaml": _SHELLRC_TEMPLATE,
    "settings.yaml": _SETTINGS_TEMPLATE,
}


# ── Public API ──────────────────────────────────────────────────


@dataclass
class GeneratedTemplates:
    created: list[Path] = field(default_factory=list)
    existing: list[Path] = field(default_factory=list)


def write_templates(configs_dir: Path) -> GeneratedTemplates:
    """Write every missing template into ``configs_dir``."""
    result = GeneratedTemplates()
    configs_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in TEMPLATES.items():
        path = configs_dir / filename
        if path.exists():
            logger.info("Keeping existing %s", path)
            result.existing.append(path)
            continue
        atomic_write_text(path, content, prefix=f".{path.stem}_")
        logger.info("Created %s", path)
        result.created.append(path)
    return result
