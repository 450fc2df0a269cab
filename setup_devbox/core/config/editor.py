"""
Sub-document editing — used by ``add`` and ``remove``.

Entries live in lists inside the YAML documents (``tools``, ``fonts``,
``aliases``, ``settings.<os>``). The editor finds the list by key path,
then inserts, replaces, or deletes entries matched on identity fields.
Comments in the edited file are not preserved.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from setup_devbox.core.errors import DevboxError
from setup_devbox.core.persistence.state_file import atomic_write_text

logger = logging.getLogger(__name__)


class DocumentEditError(DevboxError):
    """A sub-document could not be read, understood, or written."""


def _matches(entry: Any, match: dict[str, Any]) -> bool:
    return isinstance(entry, dict) and all(entry.get(k) == v for k, v in match.items())


class DocumentEditor:
    """Edits one YAML sub-document in place."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> dict[str, Any]:
        """Current document; a missing or empty file is ``{}``."""
        if not self.path.exists():
            return {}
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise DocumentEditError(f"Cannot read {self.path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise DocumentEditError(f"Expected a YAML mapping in {self.path}")
        return data

    def save(self, data: dict[str, Any]) -> None:
        content = yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)
        try:
            atomic_write_text(self.path, content, prefix=f".{self.path.stem}_")
        except OSError as e:
            raise DocumentEditError(f"Cannot write {self.path}: {e}") from e
        logger.debug("Wrote %s", self.path)

    def _entries(self, data: dict[str, Any], keys: tuple[str, ...], create: bool) -> list[Any] | None:
        node: Any = data
        for i, key in enumerate(keys):
            last = i == len(keys) - 1
            if not isinstance(node, dict):
                raise DocumentEditError(f"'{'.'.join(keys[:i])}' is not a mapping in {self.path}")
            if node.get(key) is None:
                if not create:
                    return None
                node[key] = [] if last else {}
            node = node[key]
        if not isinstance(node, list):
            raise DocumentEditError(f"'{'.'.join(keys)}' is not a list in {self.path}")
        return node

    def upsert(self, keys: tuple[str, ...], entry: dict[str, Any], match: dict[str, Any]) -> bool:
        """Replace the entry matching ``match`` or append ``entry``.

        Returns:
            True if an existing entry was replaced.
        """
        data = self.load()
        entries = self._entries(data, keys, create=True)
        assert entries is not None  # created on demand
        for index, existing in enumerate(entries):
            if _matches(existing, match):
                entries[index] = entry
                self.save(data)
                logger.info("Updated %s in %s", match, self.path)
                return True
        entries.append(entry)
        self.save(data)
        logger.info("Added %s to %s", match, self.path)
        return False

    def remove(self, keys: tuple[str, ...], match: dict[str, Any]) -> int:
        """Delete every entry matching ``match``; returns how many were removed."""
        if not self.path.exists():
            return 0
        data = self.load()
        entries = self._entries(data, keys, create=False)
        if not entries:
            return 0
        kept = [e for e in entries if not _matches(e, match)]
        removed = len(entries) - len(kept)
        if removed:
            entries[:] = kept
            self.save(data)
            logger.info("Removed %s from %s", match, self.path)
        return removed
