"""
Tests for the reconciliation engine — scenarios, invariants, failures.
"""

from datetime import timedelta
from pathlib import Path

import pytest

from setup_devbox.core.models.desired import DesiredState, InvalidEntry
from setup_devbox.core.models.fonts import FontConfig, FontEntry
from setup_devbox.core.models.settings import SettingEntry, SettingsConfig
from setup_devbox.core.models.shell import (
    AliasEntry,
    RunCommandEntry,
    ShellConfig,
    ShellRunCommands,
)
from setup_devbox.core.models.state import DevBoxState, ToolState
from setup_devbox.core.models.tools import SourceKind, ToolConfig, ToolEntry


def _tools(*entries: dict, window: str = "7 days") -> DesiredState:
    return DesiredState(
        tools=ToolConfig(
            update_latest_only_after=window,
            tools=[ToolEntry.model_validate(e) for e in entries],
        )
    )


def _installs(call_log) -> list[tuple[str, str, str]]:
    return [c for c in call_log if c[1] in ("install", "update")]


# ── Concrete scenarios ───────────────────────────────────────────────


class TestScenarios:
    def test_fresh_install(self, make_reconciler, store, call_log, now):
        desired = _tools({"name": "ripgrep", "version": "14.1.0", "source": "brew"})
        state = DevBoxState()
        report = make_reconciler().run(desired, state)

        assert call_log == [("brew", "install", "ripgrep")]
        saved = store.load().tools["ripgrep"]
        assert saved.version == "14.1.0"
        assert saved.source == SourceKind.BREW
        assert saved.installed_at == now.isoformat()
        assert report.summary("tools").installed == 1
        assert report.status == "ok"

    def test_latest_within_window_skips(self, make_reconciler, store, call_log, now):
        state = DevBoxState()
        installed_at = (now - timedelta(days=3)).isoformat()
        state.tools["jq"] = ToolState(
            name="jq", version="latest", source="brew", installed_at=installed_at
        )
        report = make_reconciler().run(_tools({"name": "jq", "source": "brew"}), state)

        assert call_log == []
        assert store.load().tools["jq"].installed_at == installed_at
        assert report.summary("tools").skipped == 1

    def test_forced_latest_update(self, make_reconciler, store, call_log, now):
        state = DevBoxState()
        state.tools["jq"] = ToolState(
            name="jq",
            version="latest",
            source="brew",
            installed_at=(now - timedelta(days=3)).isoformat(),
        )
        report = make_reconciler(force_update_latest=True).run(
            _tools({"name": "jq", "source": "brew"}), state
        )

        assert call_log == [("brew", "update", "jq")]
        assert store.load().tools["jq"].installed_at == now.isoformat()
        assert report.summary("tools").updated == 1

    def test_source_change_reinstalls(self, make_reconciler, store, call_log):
        state = DevBoxState()
        state.tools["gh"] = ToolState(name="gh", version="latest", source="brew")
        desired = _tools(
            {
                "name": "gh",
                "version": "2.50.0",
                "source": "github",
                "repo": "cli/cli",
                "tag": "v2.50.0",
            }
        )
        report = make_reconciler().run(desired, state)

        assert call_log == [("brew", "uninstall", "gh"), ("github", "install", "gh")]
        saved = store.load().tools["gh"]
        assert saved.source == SourceKind.GITHUB
        assert saved.repo == "cli/cli"
        assert report.summary("tools").reinstalled == 1

    def test_config_tracker_refresh(
        self, make_reconciler, store, call_log, isolated_home: Path, now
    ):
        source = isolated_home / ".config" / "starship.toml"
        source.parent.mkdir(parents=True)
        source.write_text('format = "$all"\n')
        desired = _tools(
            {
                "name": "starship",
                "source": "brew",
                "configuration_manager": {
                    "enabled": True,
                    "tools_configuration_path": "~/.config/starship.toml",
                },
            }
        )
        state = DevBoxState()
        make_reconciler().run(desired, state)

        deployed = isolated_home / ".config" / "starship" / "starship.toml"
        first = store.load().tools["starship"].configuration_manager_state
        assert deployed.read_text() == 'format = "$all"\n'
        assert first.source_configuration_sha
        assert first.destination_configuration_sha

        source.write_text('format = "$directory"\n')
        call_log.clear()
        report = make_reconciler(now + timedelta(minutes=5)).run(desired, state)

        second = store.load().tools["starship"].configuration_manager_state
        assert call_log == []
        assert report.summary("tools").refreshed == 1
        assert deployed.read_text() == 'format = "$directory"\n'
        assert second.source_configuration_sha != first.source_configuration_sha
        assert second.destination_configuration_sha != first.destination_configuration_sha

    def test_shell_block_preservation(self, make_reconciler, rc_file: Path):
        rc_file.write_text(
            "export FOO=bar\n"
            "# >>> setup-devbox Exports >>>\n"
            "export OLD=1\n"
            "# <<< setup-devbox Exports <<<\n"
            "# >>> setup-devbox Aliases >>>\n"
            "alias old='obsolete'\n"
            "# <<< setup-devbox Aliases <<<\n"
        )
        desired = DesiredState(shell=ShellConfig(aliases=[AliasEntry(name="gs", value="git status")]))
        state = DevBoxState()
        report = make_reconciler().run(desired, state)

        text = rc_file.read_text()
        assert text.startswith("export FOO=bar\n")
        assert "alias old" not in text
        assert (
            "# >>> setup-devbox Aliases >>>\n"
            "alias gs='git status'\n"
            "# <<< setup-devbox Aliases <<<\n"
        ) in text
        assert "Exports" not in text
        assert report.summary("shell").installed == 1
        assert [a.name for a in state.shell.aliases] == ["gs"]


# ── Invariants ───────────────────────────────────────────────────────


class TestInvariants:
    def _full_desired(self) -> DesiredState:
        return DesiredState(
            tools=ToolConfig(
                update_latest_only_after="7 days",
                tools=[
                    ToolEntry(name="ripgrep", source="brew", version="14.1.0"),
                    ToolEntry(name="bat", source="cargo"),
                ],
            ),
            fonts=FontConfig(
                fonts=[FontEntry(name="Hack", version="3.0", repo="source-foundry/Hack", tag="v3.0")]
            ),
            shell=ShellConfig(
                run_commands=ShellRunCommands(
                    run_commands=[RunCommandEntry(command="export EDITOR=vim", section="Exports")]
                ),
                aliases=[AliasEntry(name="ll", value="ls -la")],
            ),
            settings=SettingsConfig(
                settings={"macos": [SettingEntry(domain="d", key="k", value="1", type="int")]}
            ),
        )

    def test_idempotent(self, make_reconciler, call_log, font_installer, settings_backend, rc_file):
        desired = self._full_desired()
        state = DevBoxState()
        make_reconciler().run(desired, state)
        rc_after_first = rc_file.read_text()
        writes_after_first = len(settings_backend.writes)

        call_log.clear()
        font_installer.call_log.clear()
        report = make_reconciler().run(desired, state)

        assert _installs(call_log) == []
        assert font_installer.call_log == []
        assert len(settings_backend.writes) == writes_after_first
        assert rc_file.read_text() == rc_after_first
        assert report.changed == 0

    def test_latest_updates_after_window(self, make_reconciler, call_log, now):
        desired = _tools({"name": "bat", "source": "cargo"})
        state = DevBoxState()
        make_reconciler().run(desired, state)
        call_log.clear()

        make_reconciler(now + timedelta(days=8)).run(desired, state)
        assert call_log == [("cargo", "update", "bat")]

    def test_installed_at_never_decreases(self, make_reconciler, store, now):
        desired = _tools({"name": "jq", "source": "brew", "version": "1.7"})
        state = DevBoxState()
        make_reconciler().run(desired, state)

        earlier = now - timedelta(days=30)
        make_reconciler(earlier).run(
            _tools({"name": "jq", "source": "brew", "version": "1.8"}), state
        )
        saved = store.load().tools["jq"]
        assert saved.version == "1.8"
        assert saved.installed_at == now.isoformat()

    def test_document_order_preserved(self, make_reconciler, call_log):
        desired = _tools(
            {"name": "zoxide", "source": "cargo"},
            {"name": "atuin", "source": "brew"},
            {"name": "eza", "source": "cargo"},
        )
        make_reconciler().run(desired, DevBoxState())
        assert [c[2] for c in call_log] == ["zoxide", "atuin", "eza"]

    def test_interrupted_category_discarded(self, make_reconciler, store, mocks):
        state = DevBoxState()
        make_reconciler().run(_tools({"name": "jq", "source": "brew", "version": "1"}), state)

        def interrupt(tool):
            raise KeyboardInterrupt

        mocks[SourceKind.CARGO].install = interrupt
        desired = DesiredState(
            tools=ToolConfig(
                tools=[
                    ToolEntry(name="fd", source="brew", version="9"),
                    ToolEntry(name="bat", source="cargo", version="1"),
                ]
            )
        )
        with pytest.raises(KeyboardInterrupt):
            make_reconciler().run(desired, state)

        assert set(store.load().tools) == {"jq"}
        assert set(state.tools) == {"jq"}


# ── Failures ─────────────────────────────────────────────────────────


class TestFailures:
    def test_install_failure_recorded_and_run_continues(self, make_reconciler, mocks, store):
        mocks[SourceKind.BREW].set_failure("jq", error="formula not found")
        desired = _tools(
            {"name": "jq", "source": "brew"},
            {"name": "fd", "source": "brew"},
        )
        report = make_reconciler().run(desired, DevBoxState())

        assert set(store.load().tools) == {"fd"}
        assert report.summary("tools").failed == 1
        assert report.failures[0].kind == "install"
        assert report.failures[0].message == "formula not found"
        assert report.status == "partial"

    def test_update_failure_keeps_prior_state(self, make_reconciler, mocks, store, now):
        state = DevBoxState()
        make_reconciler().run(_tools({"name": "jq", "source": "brew", "version": "1.6"}), state)
        mocks[SourceKind.BREW].set_failure("jq", operation="update")

        report = make_reconciler().run(
            _tools({"name": "jq", "source": "brew", "version": "1.7"}), state
        )
        assert store.load().tools["jq"].version == "1.6"
        assert report.failures[0].kind == "update"

    def test_reinstall_uninstall_failure(self, make_reconciler, mocks, call_log, store):
        state = DevBoxState()
        state.tools["gh"] = ToolState(name="gh", version="latest", source="brew")
        mocks[SourceKind.BREW].set_failure("gh", operation="uninstall")
        desired = _tools({"name": "gh", "source": "cargo", "version": "1"})

        report = make_reconciler().run(desired, state)
        assert call_log == [("brew", "uninstall", "gh")]
        assert report.failures[0].kind == "reinstall"
        assert store.load().tools["gh"].source == SourceKind.BREW

    def test_reinstall_install_failure_drops_state(self, make_reconciler, mocks, store):
        state = DevBoxState()
        state.tools["gh"] = ToolState(name="gh", version="latest", source="brew")
        mocks[SourceKind.CARGO].set_failure("gh")

        report = make_reconciler().run(_tools({"name": "gh", "source": "cargo", "version": "1"}), state)
        assert "gh" not in store.load().tools
        assert report.failures[0].kind == "reinstall"

    def test_hook_failure_keeps_install(self, make_reconciler, store, hook_calls):
        desired = _tools(
            {
                "name": "jq",
                "source": "brew",
                "post_installation_hooks": ["echo one", "fail here", "echo never"],
            }
        )
        report = make_reconciler().run(desired, DevBoxState())

        assert "jq" in store.load().tools
        assert [c for _, c in hook_calls] == ["echo one", "fail here"]
        assert report.hook_failures == 1
        assert report.summary("tools").installed == 1
        assert report.summary("tools").failed == 0
        assert report.failures[0].kind == "hook"

    def test_missing_config_source_is_config_failure(self, make_reconciler, store):
        desired = _tools(
            {
                "name": "starship",
                "source": "brew",
                "configuration_manager": {
                    "enabled": True,
                    "tools_configuration_path": "starship.toml",
                },
            }
        )
        report = make_reconciler().run(desired, DevBoxState())

        assert "starship" in store.load().tools
        assert [f.kind for f in report.failures] == ["config"]

    def test_config_failure_on_skipped_tool_counted_once(self, make_reconciler, tools_config_dir):
        (tools_config_dir / "starship.toml").write_text("a = 1\n")
        entry = {
            "name": "starship",
            "source": "brew",
            "version": "1.0",
            "configuration_manager": {"enabled": True, "tools_configuration_path": "starship.toml"},
        }
        state = DevBoxState()
        make_reconciler().run(_tools(entry), state)

        (tools_config_dir / "starship.toml").unlink()
        report = make_reconciler().run(_tools(entry), state)

        summary = report.summary("tools")
        assert [f.kind for f in report.failures] == ["config"]
        assert summary.failed == 1
        assert summary.skipped == 0

    def test_disabling_tracking_clears_state(self, make_reconciler, store, tools_config_dir):
        (tools_config_dir / "starship.toml").write_text("a = 1\n")
        entry = {
            "name": "starship",
            "source": "brew",
            "version": "1.0",
            "configuration_manager": {"enabled": True, "tools_configuration_path": "starship.toml"},
        }
        state = DevBoxState()
        make_reconciler().run(_tools(entry), state)
        assert state.tools["starship"].configuration_manager_state is not None

        entry["configuration_manager"] = {"enabled": False}
        make_reconciler().run(_tools(entry), state)
        assert store.load().tools["starship"].configuration_manager_state is None

    def test_invalid_entries_reported(self, make_reconciler):
        desired = DesiredState(
            invalid_entries=[InvalidEntry(category="tools", name="fzf", error="tag: missing")]
        )
        report = make_reconciler().run(desired, DevBoxState())
        assert report.failures[0].kind == "invalid"
        assert report.status == "failed"

    def test_broken_rc_markers_fail_shell_only(self, make_reconciler, rc_file: Path):
        rc_file.write_text("# >>> setup-devbox Aliases >>>\nalias x=y\n")
        desired = DesiredState(
            shell=ShellConfig(aliases=[AliasEntry(name="gs", value="git status")]),
            settings=SettingsConfig(settings={"macos": [SettingEntry(domain="d", key="k", value="v")]}),
        )
        state = DevBoxState()
        report = make_reconciler().run(desired, state)

        assert rc_file.read_text() == "# >>> setup-devbox Aliases >>>\nalias x=y\n"
        assert report.failures[0].kind == "shell"
        assert state.get_setting("d", "k") is not None


# ── Fonts and settings ───────────────────────────────────────────────


class TestFontsAndSettings:
    def test_font_update_removes_stale_files(self, make_reconciler, font_installer, store):
        state = DevBoxState()
        font = {"name": "Hack", "repo": "source-foundry/Hack", "tag": "v3.0"}
        make_reconciler().run(
            DesiredState(fonts=FontConfig(fonts=[FontEntry(version="2.0", **font)])), state
        )
        state.fonts["Hack"].installed_files.append("/mock/fonts/Hack-Old.ttf")

        report = make_reconciler().run(
            DesiredState(fonts=FontConfig(fonts=[FontEntry(version="3.0", **font)])), state
        )
        assert ("uninstall", "Hack") in font_installer.call_log
        assert store.load().fonts["Hack"].version == "3.0"
        assert report.summary("fonts").updated == 1

    def test_font_failure(self, make_reconciler, font_installer, store):
        font_installer.set_failure("Hack", error="404")
        desired = DesiredState(
            fonts=FontConfig(fonts=[FontEntry(name="Hack", repo="a/b", tag="v1")])
        )
        report = make_reconciler().run(desired, DevBoxState())
        assert "Hack" not in store.load().fonts
        assert report.failures[0].message == "404"

    def test_settings_applied_and_recorded(self, make_reconciler, settings_backend, store):
        desired = DesiredState(
            settings=SettingsConfig(
                settings={
                    "macos": [SettingEntry(domain="com.apple.dock", key="autohide", value="true", type="bool")],
                    "linux": [SettingEntry(domain="org.gnome", key="x", value="1")],
                }
            )
        )
        report = make_reconciler().run(desired, DevBoxState())

        saved = store.load().settings
        assert set(saved) == {"com.apple.dock.autohide"}
        assert saved["com.apple.dock.autohide"].os == "macos"
        assert len(settings_backend.writes) == 1
        assert report.summary("settings").installed == 1

    def test_matching_setting_not_rewritten(self, make_reconciler, settings_backend):
        settings_backend.values["com.apple.dock.autohide"] = "1"
        desired = DesiredState(
            settings=SettingsConfig(
                settings={"macos": [SettingEntry(domain="com.apple.dock", key="autohide", value="true", type="bool")]}
            )
        )
        state = DevBoxState()
        report = make_reconciler().run(desired, state)
        assert settings_backend.writes == []
        assert report.summary("settings").skipped == 1
        assert state.get_setting("com.apple.dock", "autohide") is not None

    def test_setting_failure(self, make_reconciler, settings_backend):
        settings_backend.failures.add("d.k")
        desired = DesiredState(
            settings=SettingsConfig(settings={"macos": [SettingEntry(domain="d", key="k", value="v")]})
        )
        report = make_reconciler().run(desired, DevBoxState())
        assert report.failures[0].kind == "setting"
