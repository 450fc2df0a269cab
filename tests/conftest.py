"""
Shared test fixtures and configuration.
"""

from datetime import UTC, datetime
from pathlib import Path

import pytest
import yaml

from setup_devbox.adapters.mock import MockFontInstaller, MockInstaller
from setup_devbox.adapters.registry import InstallerRegistry
from setup_devbox.core.engine.hooks import HookOutcome
from setup_devbox.core.engine.reconciler import Reconciler, RunOptions
from setup_devbox.core.models.tools import SourceKind
from setup_devbox.core.persistence.state_file import StateStore
from setup_devbox.core.services.config_tracker import ConfigTracker
from setup_devbox.core.services.os_settings import InMemoryBackend
from setup_devbox.core.services.shell_rc import ShellRcManager
from setup_devbox.core.use_cases.runtime import Runtime

FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path_factory, monkeypatch) -> Path:
    """Point HOME and the SDB_* variables away from the real machine."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    for name in (
        "SDB_CONFIG_PATH",
        "SDB_STATE_FILE_PATH",
        "SDB_TOOLS_SOURCE_CONFIG_PATH",
        "SDB_LOG_LEVEL",
        "SDB_LOG_FILE",
        "SDB_LOG_FILE_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def call_log() -> list[tuple[str, str, str]]:
    """``(source, operation, item)`` across every mock installer."""
    return []


@pytest.fixture
def mocks(call_log) -> dict[SourceKind, MockInstaller]:
    return {source: MockInstaller(source=source, call_log=call_log) for source in SourceKind}


@pytest.fixture
def font_installer() -> MockFontInstaller:
    return MockFontInstaller()


@pytest.fixture
def registry(mocks, font_installer) -> InstallerRegistry:
    reg = InstallerRegistry()
    for installer in mocks.values():
        reg.register(installer)
    reg.register_font_installer(font_installer)
    return reg


@pytest.fixture
def tools_config_dir(tmp_path: Path) -> Path:
    path = tmp_path / "tool-configs"
    path.mkdir()
    return path


@pytest.fixture
def tracker(tools_config_dir: Path, isolated_home: Path) -> ConfigTracker:
    return ConfigTracker(tools_config_dir, destination_root=isolated_home / ".config")


@pytest.fixture
def rc_file(isolated_home: Path) -> Path:
    return isolated_home / ".zshrc"


@pytest.fixture
def shell_manager(rc_file: Path) -> ShellRcManager:
    return ShellRcManager(rc_path=rc_file)


@pytest.fixture
def settings_backend() -> InMemoryBackend:
    return InMemoryBackend(os_name="macos")


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "state.json"


@pytest.fixture
def store(state_path: Path) -> StateStore:
    return StateStore(state_path)


@pytest.fixture
def hook_calls() -> list[tuple[str, str]]:
    return []


@pytest.fixture
def hook_runner(hook_calls):
    """Records hooks instead of running them; ``fail`` in a command fails it."""

    def run(tool_name: str, hooks: list[str] | None) -> HookOutcome:
        outcome = HookOutcome()
        for command in hooks or []:
            hook_calls.append((tool_name, command))
            outcome.ran += 1
            if "fail" in command:
                outcome.failed_command = command
                outcome.error = "exit 1"
                break
        return outcome

    return run


@pytest.fixture
def make_reconciler(registry, store, tracker, shell_manager, settings_backend, hook_runner, now):
    """Factory for a Reconciler wired to the mocks and a fixed clock."""

    def make(clock_time: datetime | None = None, force_update_latest: bool = False) -> Reconciler:
        moment = clock_time or now
        return Reconciler(
            registry=registry,
            store=store,
            tracker=tracker,
            shell_manager=shell_manager,
            settings_backend=settings_backend,
            options=RunOptions(force_update_latest=force_update_latest, clock=lambda: moment),
            hook_runner=hook_runner,
        )

    return make


@pytest.fixture
def runtime(registry, tracker, shell_manager, settings_backend) -> Runtime:
    return Runtime(
        registry=registry,
        tracker=tracker,
        shell_manager=shell_manager,
        settings_backend=settings_backend,
    )


@pytest.fixture
def write_yaml():
    """Write a mapping as YAML and return the path."""

    def write(path: Path, data: dict) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return write


@pytest.fixture
def configs_dir(tmp_path: Path, write_yaml) -> Path:
    """A master config with one document per category."""
    root = tmp_path / "configs"
    write_yaml(
        root / "config.yaml",
        {
            "tools": "tools.yaml",
            "fonts": "fonts.yaml",
            "shellrc": "shellrc.yaml",
            "settings": "settings.yaml",
        },
    )
    write_yaml(
        root / "tools.yaml",
        {
            "update_latest_only_after": "7 days",
            "tools": [
                {"name": "ripgrep", "source": "brew", "version": "14.1.0"},
                {"name": "bat", "source": "cargo"},
            ],
        },
    )
    write_yaml(
        root / "fonts.yaml",
        {
            "fonts": [
                {
                    "name": "FiraCode",
                    "version": "3.2.1",
                    "repo": "ryanoasis/nerd-fonts",
                    "tag": "v3.2.1",
                }
            ]
        },
    )
    write_yaml(
        root / "shellrc.yaml",
        {
            "run_commands": {
                "shell": "zsh",
                "run_commands": [{"command": "export EDITOR=vim", "section": "Exports"}],
            },
            "aliases": [{"name": "ll", "value": "ls -la"}],
        },
    )
    write_yaml(
        root / "settings.yaml",
        {
            "settings": {
                "macos": [
                    {
                        "domain": "com.apple.finder",
                        "key": "AppleShowAllFiles",
                        "value": True,
                        "type": "bool",
                    }
                ]
            }
        },
    )
    return root
