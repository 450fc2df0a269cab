"""
State file persistence — atomic read/write for DevBoxState.

State is stored as JSON in ``state.json``. Writes are atomic (write to
a temp file in the same directory, fsync, then rename) so a reader
never sees a truncated document. The temp file must live on the same
filesystem as the target for the rename to be atomic, which is why it
is created next to it.

No file locking is performed: concurrent invocations against the same
state file are unsupported.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError

from setup_devbox.core.errors import DevboxError
from setup_devbox.core.models.state import DevBoxState

logger = logging.getLogger(__name__)


class StateError(DevboxError):
    """Raised when the state file is unparsable or cannot be written."""


def atomic_write_text(path: Path, content: str, prefix: str = ".tmp_") -> None:
    """Replace ``path`` with ``content`` atomically.

    Writes to a sibling temp file, fsyncs it, then renames it over the
    target. The parent directory is created if needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        if path.exists():
            # Keep the permissions of the file being replaced
            os.chmod(tmp, path.stat().st_mode & 0o777)
        else:
            os.chmod(tmp, 0o666 & ~_umask())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def _umask() -> int:
    current = os.umask(0)
    os.umask(current)
    return current


class StateStore:
    """Load, update, and persist the installation-state document."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> DevBoxState:
        """Load state from disk.

        Returns:
            DevBoxState. If the file doesn't exist, returns a fresh state.

        Raises:
            StateError: If the file exists but is not a valid state document.
        """
        if not self.path.is_file():
            logger.info("No state file at %s, starting fresh", self.path)
            return DevBoxState()

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StateError(f"Cannot read state file {self.path}: {e}") from e

        if not raw.strip():
            logger.warning("State file %s is empty, starting fresh", self.path)
            return DevBoxState()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StateError(f"Corrupt state file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StateError(f"State file {self.path} must contain a JSON object")

        try:
            state = DevBoxState.model_validate(data)
        except ValidationError as e:
            raise StateError(f"Invalid state file {self.path}: {e}") from e

        logger.debug(
            "Loaded state from %s (%d tools, %d fonts, %d settings)",
            self.path,
            len(state.tools),
            len(state.fonts),
            len(state.settings),
        )
        return state

    def save(self, state: DevBoxState) -> None:
        """Save state to disk (atomic write).

        Raises:
            StateError: If the file cannot be written.
        """
        state.touch()
        data = state.model_dump(mode="json", exclude_none=True)
        content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        try:
            atomic_write_text(self.path, content, prefix=".state_")
        except OSError as e:
            logger.error("Failed to save state to %s: %s", self.path, e)
            raise StateError(f"Cannot write state file {self.path}: {e}") from e
        logger.debug("State saved to %s", self.path)

    @contextmanager
    def transaction(self, state: DevBoxState) -> Iterator[DevBoxState]:
        """Mutate ``state`` in memory and commit it on exit.

        If the block raises (including KeyboardInterrupt), the in-memory
        state is restored to the snapshot taken on entry, that snapshot
        is persisted, and the exception propagates.
        """
        snapshot = state.model_copy(deep=True)
        try:
            yield state
        except BaseException:
            logger.warning("Interrupted, restoring last committed state")
            _restore(state, snapshot)
            self.save(state)
            raise
        self.save(state)


def _restore(state: DevBoxState, snapshot: DevBoxState) -> None:
    for field_name in DevBoxState.model_fields:
        setattr(state, field_name, getattr(snapshot, field_name))
