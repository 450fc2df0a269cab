"""
Tests for domain models — validation, normalization, lookups.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from setup_devbox.core.models import (
    ConfigSection,
    DevBoxState,
    FontEntry,
    Receipt,
    SettingEntry,
    SettingState,
    SourceKind,
    ToolEntry,
    ToolState,
    ValueType,
)
from setup_devbox.core.models.policy import DEFAULT_WINDOW, UpdatePolicy, parse_duration
from setup_devbox.core.models.state import parse_timestamp


class TestSourceKind:
    def test_case_insensitive(self):
        assert SourceKind.parse(" Brew ") == SourceKind.BREW

    @pytest.mark.parametrize(
        ("legacy", "expected"),
        [
            ("cargo-install", SourceKind.CARGO),
            ("go-install", SourceKind.GO),
            ("uv-tool", SourceKind.UV),
            ("uv-python", SourceKind.UV),
            ("direct-url", SourceKind.URL),
        ],
    )
    def test_legacy_names(self, legacy, expected):
        assert SourceKind.parse(legacy) == expected

    def test_unknown_lists_supported(self):
        with pytest.raises(ValueError, match="Supported sources are"):
            SourceKind.parse("apt")


class TestToolEntry:
    def test_minimal(self):
        tool = ToolEntry(name="jq", source="brew")
        assert tool.version == "latest"
        assert tool.is_latest
        assert tool.binary_name == "jq"
        assert not tool.configuration_manager.enabled

    def test_rename_changes_binary_name(self):
        tool = ToolEntry(name="ripgrep", source="cargo", rename_to="rg")
        assert tool.binary_name == "rg"

    def test_numeric_version_coerced(self):
        tool = ToolEntry.model_validate({"name": "go", "source": "brew", "version": 1.22})
        assert tool.version == "1.22"

    def test_additional_cmd_alias(self):
        tool = ToolEntry.model_validate(
            {"name": "jq", "source": "brew", "additional_cmd": ["jq --version"]}
        )
        assert tool.post_installation_hooks == ["jq --version"]

    def test_executable_path_string_split(self):
        tool = ToolEntry(
            name="nvim",
            source="github",
            repo="neovim/neovim",
            tag="v0.10.0",
            executable_path_after_extract="nvim-macos/bin/nvim",
        )
        assert tool.executable_path_after_extract == ["nvim-macos", "bin", "nvim"]

    def test_github_requires_repo_and_tag(self):
        with pytest.raises(ValidationError, match="repo"):
            ToolEntry(name="fzf", source="github", tag="v1")
        with pytest.raises(ValidationError, match="tag"):
            ToolEntry(name="fzf", source="github", repo="junegunn/fzf")

    def test_github_forbids_url(self):
        with pytest.raises(ValidationError, match="url"):
            ToolEntry(name="fzf", source="github", repo="a/b", tag="v1", url="https://x")

    def test_url_requires_url(self):
        with pytest.raises(ValidationError, match="url"):
            ToolEntry(name="thing", source="url")

    def test_url_forbids_repo(self):
        with pytest.raises(ValidationError, match="Conflicting"):
            ToolEntry(name="thing", source="url", url="https://x/t.tar.gz", repo="a/b")

    def test_package_manager_forbids_release_fields(self):
        with pytest.raises(ValidationError, match="Conflicting"):
            ToolEntry(name="jq", source="brew", repo="jqlang/jq")

    def test_rustup_requires_toolchain(self):
        with pytest.raises(ValidationError, match="toolchain"):
            ToolEntry(name="rust", source="rustup")
        assert ToolEntry(name="rust", source="rustup", version="stable").version == "stable"

    def test_tracking_requires_path(self):
        with pytest.raises(ValidationError, match="tools_configuration_path"):
            ToolEntry.model_validate(
                {"name": "starship", "source": "brew", "configuration_manager": {"enabled": True}}
            )


class TestFontEntry:
    def test_only_github(self):
        with pytest.raises(ValidationError, match="Only 'github'"):
            FontEntry(name="Hack", source="brew", repo="a/b", tag="v1")

    def test_version_defaults_latest(self):
        assert FontEntry(name="Hack", repo="a/b", tag="v1").version == "latest"


class TestSettingEntry:
    def test_bool_value_normalized(self):
        entry = SettingEntry.model_validate(
            {"domain": "d", "key": "k", "value": True, "type": "Bool"}
        )
        assert entry.value == "true"
        assert entry.value_type == ValueType.BOOL
        assert entry.state_key == "d.k"

    def test_default_type_string(self):
        entry = SettingEntry(domain="d", key="k", value="x")
        assert entry.value_type == ValueType.STRING


class TestRunCommandEntry:
    def test_default_section(self):
        from setup_devbox.core.models.shell import RunCommandEntry

        assert RunCommandEntry(command="echo hi").section == ConfigSection.OTHER


class TestDevBoxState:
    def test_find_tool_by_rename(self):
        state = DevBoxState()
        state.tools["ripgrep"] = ToolState(
            name="ripgrep", version="14", source="cargo", renamed_to="rg"
        )
        assert state.find_tool("ripgrep") == "ripgrep"
        assert state.find_tool("rg") == "ripgrep"
        assert state.find_tool("fd") is None

    def test_settings_keyed_by_domain_and_key(self):
        state = DevBoxState()
        state.set_setting(SettingState(domain="NSGlobalDomain", key="KeyRepeat", value="2"))
        assert "NSGlobalDomain.KeyRepeat" in state.settings
        assert state.get_setting("NSGlobalDomain", "KeyRepeat").value == "2"

    def test_legacy_source_in_state(self):
        state = DevBoxState.model_validate(
            {"tools": {"bat": {"name": "bat", "version": "0.24", "source": "cargo-install"}}}
        )
        assert state.tools["bat"].source == SourceKind.CARGO


class TestTimestamps:
    def test_parse_z_suffix(self):
        parsed = parse_timestamp("2025-01-01T00:00:00Z")
        assert parsed is not None
        assert parsed.tzinfo is not None

    def test_naive_assumed_utc(self):
        assert parse_timestamp("2025-01-01T00:00:00").utcoffset() == timedelta(0)

    def test_garbage_is_none(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None


class TestUpdatePolicy:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("7 days", timedelta(days=7)),
            ("1 day", timedelta(days=1)),
            ("12 hours", timedelta(hours=12)),
            ("30 minutes", timedelta(minutes=30)),
            ("1 minute", timedelta(minutes=1)),
        ],
    )
    def test_parse_duration(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["7", "days", "2 weeks", "-1 days", ""])
    def test_unparsable(self, text):
        assert parse_duration(text) is None

    def test_fallback_to_default(self):
        assert UpdatePolicy.from_config(None).window == DEFAULT_WINDOW
        assert UpdatePolicy.from_config("soon").window == DEFAULT_WINDOW
        assert UpdatePolicy.from_config("2 hours").window == timedelta(hours=2)


class TestReceipt:
    def test_success(self):
        r = Receipt.success(installer="brew", item="jq", output="done")
        assert r.ok
        assert not r.failed

    def test_failure(self):
        r = Receipt.failure(installer="brew", item="jq", error="boom")
        assert r.failed
        assert r.error == "boom"

    def test_skip(self):
        r = Receipt.skip(installer="defaults", item="d.k", reason="already set")
        assert r.status == "skipped"
        assert r.output == "already set"
