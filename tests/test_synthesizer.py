"""
Tests for state → configuration synthesis and starter templates.
"""

from pathlib import Path

import yaml

from setup_devbox.core.config.loader import load_desired
from setup_devbox.core.config.templates import TEMPLATES, write_templates
from setup_devbox.core.models.shell import AliasEntry, RunCommandEntry
from setup_devbox.core.models.state import (
    ConfigurationManagerState,
    DevBoxState,
    FontState,
    SettingState,
    ShellState,
    ToolState,
)
from setup_devbox.core.persistence.state_file import StateStore
from setup_devbox.core.services.synthesizer import (
    settings_document,
    shell_document,
    synthesize,
    tool_entry,
)


def _read(path: Path) -> dict:
    return yaml.safe_load(path.read_text())


class TestEntries:
    def test_minimal_tool(self):
        entry = tool_entry(ToolState(name="jq", version="1.7", source="brew"))
        assert entry == {"name": "jq", "version": "1.7", "source": "brew"}

    def test_full_tool(self):
        state = ToolState(
            name="nvim",
            version="0.10.0",
            source="github",
            repo="neovim/neovim",
            tag="v0.10.0",
            renamed_to="vi",
            executable_path_after_extract=["nvim-macos", "bin", "nvim"],
            post_installation_hooks=["nvim --version"],
            configuration_manager_state=ConfigurationManagerState(
                tools_configuration_path="nvim/init.lua",
                destination_path="~/.config/nvim/init.lua",
            ),
        )
        entry = tool_entry(state)
        assert entry["rename_to"] == "vi"
        assert entry["executable_path_after_extract"] == "nvim-macos/bin/nvim"
        assert entry["configuration_manager"] == {
            "enabled": True,
            "tools_configuration_path": "nvim/init.lua",
            "destination_path": "~/.config/nvim/init.lua",
        }

    def test_empty_shell(self):
        assert shell_document(DevBoxState()) == {
            "run_commands": {"shell": "zsh", "run_commands": []},
            "aliases": [],
        }

    def test_settings_grouped_by_os(self):
        state = DevBoxState()
        state.set_setting(SettingState(domain="a", key="b", value="1", value_type="int"))
        state.set_setting(SettingState(domain="org.gnome", key="c", value="x", os="linux"))
        assert settings_document(state) == {
            "settings": {
                "macos": [{"domain": "a", "key": "b", "value": "1", "type": "int"}],
                "linux": [{"domain": "org.gnome", "key": "c", "value": "x", "type": "string"}],
            }
        }


class TestSynthesize:
    def test_writes_master_first(self, tmp_path):
        written = synthesize(DevBoxState(), tmp_path / "out")
        assert [p.name for p in written] == [
            "config.yaml",
            "tools.yaml",
            "fonts.yaml",
            "shellrc.yaml",
            "settings.yaml",
        ]
        assert _read(written[0]) == {
            "tools": "tools.yaml",
            "fonts": "fonts.yaml",
            "shellrc": "shellrc.yaml",
            "settings": "settings.yaml",
        }
        assert _read(written[1]) == {"update_latest_only_after": "7 days", "tools": []}

    def test_round_trip_reproduces_installation(self, tmp_path, make_reconciler, configs_dir, call_log):
        state = DevBoxState()
        make_reconciler().run(load_desired(configs_dir / "config.yaml"), state)
        synthesize(state, tmp_path / "backup")

        replay = StateStore(tmp_path / "replay.json")
        reconciler = make_reconciler()
        reconciler.store = replay
        fresh = DevBoxState()
        report = reconciler.run(load_desired(tmp_path / "backup" / "config.yaml"), fresh)

        assert report.status == "ok"
        assert set(fresh.tools) == set(state.tools)
        assert {k: t.version for k, t in fresh.tools.items()} == {
            k: t.version for k, t in state.tools.items()
        }
        assert set(fresh.fonts) == set(state.fonts)
        assert set(fresh.settings) == set(state.settings)
        assert fresh.shell.aliases == state.shell.aliases
        assert fresh.shell.run_commands == state.shell.run_commands

    def test_font_and_shell_content(self, tmp_path):
        state = DevBoxState()
        state.fonts["Hack"] = FontState(name="Hack", version="3.0", repo="a/Hack", tag="v3.0", install_only=["Regular"])
        state.shell = ShellState(
            run_commands=[RunCommandEntry(command="export A=1", section="Exports")],
            aliases=[AliasEntry(name="ll", value="ls -la")],
        )
        synthesize(state, tmp_path)

        assert _read(tmp_path / "fonts.yaml")["fonts"][0]["install_only"] == ["Regular"]
        assert _read(tmp_path / "shellrc.yaml") == {
            "run_commands": {
                "shell": "zsh",
                "run_commands": [{"command": "export A=1", "section": "Exports"}],
            },
            "aliases": [{"name": "ll", "value": "ls -la"}],
        }


class TestTemplates:
    def test_writes_all_and_loads(self, tmp_path):
        result = write_templates(tmp_path / "configs")
        assert sorted(p.name for p in result.created) == sorted(TEMPLATES)

        desired = load_desired(tmp_path / "configs" / "config.yaml")
        assert desired.invalid_entries == []
        assert [t.name for t in desired.tools.tools] == ["ripgrep", "bat"]

    def test_existing_files_kept(self, tmp_path):
        configs = tmp_path / "configs"
        configs.mkdir()
        (configs / "tools.yaml").write_text("tools: []\n")

        result = write_templates(configs)
        assert [p.name for p in result.existing] == ["tools.yaml"]
        assert (configs / "tools.yaml").read_text() == "tools: []\n"
