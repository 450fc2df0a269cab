"""
State → configuration synthesizer.

Writes a sub-document family that, applied to an empty state, would
reproduce the recorded installation. Used by ``sync-config`` for
backups and for moving a setup to another machine.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from setup_devbox.core.models.policy import DEFAULT_WINDOW_TEXT
from setup_devbox.core.models.state import DevBoxState, FontState, ToolState
from setup_devbox.core.persistence.state_file import atomic_write_text

logger = logging.getLogger(__name__)

DOCUMENT_NAMES = {
    "tools": "tools.yaml",
    "fonts": "fonts.yaml",
    "shellrc": "shellrc.yaml",
    "settings": "settings.yaml",
}


def synthesize(state: DevBoxState, output_dir: Path) -> list[Path]:
    """Write config.yaml and its four sub-documents under ``output_dir``.

    Returns:
        The written paths, master document first.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    documents = {
        "config.yaml": dict(DOCUMENT_NAMES),
        DOCUMENT_NAMES["tools"]: tools_document(state),
        DOCUMENT_NAMES["fonts"]: fonts_document(state),
        DOCUMENT_NAMES["shellrc"]: shell_document(state),
        DOCUMENT_NAMES["settings"]: settings_document(state),
    }

    written: list[Path] = []
    for filename, data in documents.items():
        path = output_dir / filename
        _write_yaml(path, data)
        written.append(path)
    logger.info("Synthesized %d documents into %s", len(written), output_dir)
    return written


# ── Documents ───────────────────────────────────────────────────


def tools_document(state: DevBoxState) -> dict[str, Any]:
    return {
        "update_latest_only_after": DEFAULT_WINDOW_TEXT,
        "tools": [tool_entry(state.tools[key]) for key in sorted(state.tools)],
    }


def tool_entry(tool: ToolState) -> dict[str, Any]:
    """Desired-tool mapping that reinstalls ``tool``."""
    entry: dict[str, Any] = {
        "name": tool.name,
        "version": tool.version,
        "source": str(tool.source),
    }
    optional = {
        "repo": tool.repo,
        "tag": tool.tag,
        "url": tool.url,
        "rename_to": tool.renamed_to,
        "options": tool.options,
        "executable_path_after_extract": (
            "/".join(tool.executable_path_after_extract)
            if tool.executable_path_after_extract
            else None
        ),
        "post_installation_hooks": tool.post_installation_hooks,
    }
    entry.update({k: v for k, v in optional.items() if v})

    tracked = tool.configuration_manager_state
    if tracked is not None and tracked.enabled:
        manager: dict[str, Any] = {
            "enabled": True,
            "tools_configuration_path": tracked.tools_configuration_path,
        }
        if tracked.destination_path:
            manager["destination_path"] = tracked.destination_path
        entry["configuration_manager"] = manager
    return entry


def font_entry(font: FontState) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "name": font.name,
        "version": font.version,
        "source": font.source,
        "repo": font.repo,
        "tag": font.tag,
    }
    if font.install_only:
        entry["install_only"] = font.install_only
    return entry


def fonts_document(state: DevBoxState) -> dict[str, Any]:
    return {"fonts": [font_entry(state.fonts[key]) for key in sorted(state.fonts)]}


def shell_document(state: DevBoxState) -> dict[str, Any]:
    shell = state.shell
    if shell is None:
        return {"run_commands": {"shell": "zsh", "run_commands": []}, "aliases": []}
    return {
        "run_commands": {
            "shell": str(shell.shell),
            "run_commands": [c.model_dump(mode="json") for c in shell.run_commands],
        },
        "aliases": [a.model_dump(mode="json") for a in shell.aliases],
    }


def settings_document(state: DevBoxState) -> dict[str, Any]:
    by_os: dict[str, list[dict[str, str]]] = {}
    for key in sorted(state.settings):
        setting = state.settings[key]
        by_os.setdefault(setting.os, []).append(
            {
                "domain": setting.domain,
                "key": setting.key,
                "value": setting.value,
                "type": str(setting.value_type),
            }
        )
    return {"settings": by_os}


def _write_yaml(path: Path, data: dict[str, Any]) -> None:
    content = yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)
    atomic_write_text(path, content, prefix=f".{path.stem}_")
    logger.debug("Wrote %s", path)
