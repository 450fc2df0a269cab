"""
OS preference application.

Each SettingEntry is read back first; when the current value already
equals the desired one (compared by type) nothing is written. Backends:

    macos  ``defaults read|write|delete <domain> <key>``
    linux  ``gsettings get|set|reset <schema> <key>``

Backends return Receipts like installers do and never raise.
"""

from __future__ import annotations

import logging
import platform
from abc import ABC, abstractmethod

from setup_devbox.adapters.shell.command import CommandResult, run_command
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.settings import SettingEntry, ValueType, setting_key

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def values_equal(current: str | None, desired: str, value_type: ValueType) -> bool:
    """Type-aware comparison of a read-back value with the desired one."""
    if current is None:
        return False
    current = current.strip().strip("'\"")
    desired = desired.strip()
    if value_type == ValueType.BOOL:
        lhs, rhs = current.lower(), desired.lower()
        if lhs in _TRUE | _FALSE and rhs in _TRUE | _FALSE:
            return (lhs in _TRUE) == (rhs in _TRUE)
        return lhs == rhs
    if value_type in (ValueType.INT, ValueType.FLOAT):
        try:
            return float(current) == float(desired)
        except ValueError:
            return current == desired
    return current == desired


class SettingsBackend(ABC):
    """Reads and writes preferences for one OS."""

    os_name: str = ""
    name: str = ""

    @abstractmethod
    def read(self, domain: str, key: str) -> str | None:
        """Current value, or None when unset or unreadable."""

    @abstractmethod
    def write(self, entry: SettingEntry) -> Receipt:
        """Write the desired value."""

    @abstractmethod
    def delete(self, domain: str, key: str) -> Receipt:
        """Remove the key (reset to the system default)."""

    def apply(self, entry: SettingEntry) -> Receipt:
        """Write ``entry`` unless the read-back already matches."""
        item = entry.state_key
        current = self.read(entry.domain, entry.key)
        if values_equal(current, entry.value, entry.value_type):
            logger.debug("[settings] %s already %s", item, entry.value)
            return Receipt.skip(installer=self.name, item=item, reason="already set")
        logger.info("[settings] %s: %s → %s", item, current, entry.value)
        return self.write(entry)


class MacDefaultsBackend(SettingsBackend):
    os_name = "macos"
    name = "defaults"

    _TYPE_FLAGS = {
        ValueType.BOOL: "-bool",
        ValueType.INT: "-int",
        ValueType.FLOAT: "-float",
        ValueType.STRING: "-string",
    }

    def read(self, domain: str, key: str) -> str | None:
        result = run_command(["defaults", "read", domain, key], timeout=30)
        return result.stdout.strip() if result.ok else None

    def write(self, entry: SettingEntry) -> Receipt:
        cmd = [
            "defaults", "write", entry.domain, entry.key,
            self._TYPE_FLAGS[entry.value_type], entry.value,
        ]
        return _receipt(self.name, entry.state_key, "install", run_command(cmd, timeout=30))

    def delete(self, domain: str, key: str) -> Receipt:
        result = run_command(["defaults", "delete", domain, key], timeout=30)
        return _receipt(self.name, setting_key(domain, key), "uninstall", result)


class GsettingsBackend(SettingsBackend):
    """GNOME settings; ``domain`` is the gsettings schema."""

    os_name = "linux"
    name = "gsettings"

    def read(self, domain: str, key: str) -> str | None:
        result = run_command(["gsettings", "get", domain, key], timeout=30)
        return result.stdout.strip() if result.ok else None

    def write(self, entry: SettingEntry) -> Receipt:
        value = entry.value
        if entry.value_type == ValueType.BOOL:
            value = "true" if value.strip().lower() in _TRUE else "false"
        elif entry.value_type == ValueType.STRING:
            value = "'" + value.replace("'", "\\'") + "'"
        result = run_command(["gsettings", "set", entry.domain, entry.key, value], timeout=30)
        return _receipt(self.name, entry.state_key, "install", result)

    def delete(self, domain: str, key: str) -> Receipt:
        result = run_command(["gsettings", "reset", domain, key], timeout=30)
        return _receipt(self.name, setting_key(domain, key), "uninstall", result)


class InMemoryBackend(SettingsBackend):
    """Dictionary-backed preferences for tests and dry runs."""

    name = "memory"

    def __init__(self, os_name: str = "macos", values: dict[str, str] | None = None):
        self.os_name = os_name
        self.values: dict[str, str] = dict(values or {})
        self.writes: list[str] = []
        self.failures: set[str] = set()

    def read(self, domain: str, key: str) -> str | None:
        return self.values.get(setting_key(domain, key))

    def write(self, entry: SettingEntry) -> Receipt:
        item = entry.state_key
        if item in self.failures:
            return Receipt.failure(installer=self.name, item=item, error="write refused")
        self.values[item] = entry.value
        self.writes.append(item)
        return Receipt.success(installer=self.name, item=item)

    def delete(self, domain: str, key: str) -> Receipt:
        item = setting_key(domain, key)
        self.values.pop(item, None)
        return Receipt.success(installer=self.name, item=item, operation="uninstall")


def _receipt(name: str, item: str, operation: str, result: CommandResult) -> Receipt:
    if result.ok:
        return Receipt.success(
            installer=name, item=item, operation=operation, output=result.stdout.strip()
        )
    return Receipt.failure(installer=name, item=item, operation=operation, error=result.message)


def backend_for_platform(system: str | None = None) -> SettingsBackend | None:
    """Backend for the running OS, or None when unsupported."""
    system = system or platform.system()
    if system == "Darwin":
        return MacDefaultsBackend()
    if system == "Linux":
        return GsettingsBackend()
    logger.debug("No OS settings backend for %s", system)
    return None
