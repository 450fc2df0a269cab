"""
Tests for shell RC owned blocks.
"""

from pathlib import Path

import pytest

from setup_devbox.core.models.shell import (
    AliasEntry,
    ConfigSection,
    RunCommandEntry,
    ShellConfig,
    ShellRunCommands,
)
from setup_devbox.core.services.shell_rc import (
    Block,
    ShellRcError,
    ShellRcManager,
    desired_blocks,
    end_marker,
    parse_rc,
    render_alias,
    render_rc,
    start_marker,
)


def _config(commands=(), aliases=(), shell="zsh") -> ShellConfig:
    return ShellConfig(
        run_commands=ShellRunCommands(
            shell=shell,
            run_commands=[RunCommandEntry(command=c, section=s) for c, s in commands],
        ),
        aliases=[AliasEntry(name=n, value=v) for n, v in aliases],
    )


def _block(section: ConfigSection, *lines: str) -> str:
    body = "".join(line + "\n" for line in lines)
    return f"{start_marker(section)}\n{body}{end_marker(section)}\n"


class TestParse:
    def test_foreign_lines_and_blocks(self):
        text = "a\n" + _block(ConfigSection.PATHS, "export PATH=x") + "b\n"
        segments = parse_rc(text)
        assert segments[0] == "a\n"
        assert segments[1] == Block(ConfigSection.PATHS, ["export PATH=x\n"])
        assert segments[2] == "b\n"

    @pytest.mark.parametrize(
        "text",
        [
            "# >>> setup-devbox Paths >>>\nx\n",
            "# <<< setup-devbox Paths <<<\n",
            "# >>> setup-devbox Paths >>>\n# >>> setup-devbox Evals >>>\n",
            "# >>> setup-devbox Paths >>>\n# <<< setup-devbox Evals <<<\n",
            _block(ConfigSection.PATHS) + _block(ConfigSection.PATHS),
            "# >>> setup-devbox Bogus >>>\n# <<< setup-devbox Bogus <<<\n",
        ],
    )
    def test_broken_markers(self, text):
        with pytest.raises(ShellRcError):
            parse_rc(text)


class TestRender:
    def test_alias_quoting(self):
        assert render_alias(AliasEntry(name="gs", value="git status")) == "alias gs='git status'"
        assert render_alias(AliasEntry(name="x", value="echo 'hi'")) == "alias x='echo '\"'\"'hi'\"'\"''"

    def test_desired_blocks_group_and_dedupe(self):
        config = _config(
            commands=[("eval \"$(starship init zsh)\"", "Evals"), ("export A=1\nexport B=2", "Exports")],
            aliases=[("ll", "ls -l"), ("ll", "ls -la")],
        )
        blocks = desired_blocks(config)
        assert blocks[ConfigSection.EXPORTS] == ["export A=1", "export B=2"]
        assert blocks[ConfigSection.ALIASES] == ["alias ll='ls -la'"]

    def test_missing_blocks_appended_in_order(self):
        blocks = {
            ConfigSection.ALIASES: ["alias a=b"],
            ConfigSection.PATHS: ["export PATH=x"],
        }
        rendered = render_rc("user line", blocks)
        assert rendered == (
            "user line\n"
            + _block(ConfigSection.PATHS, "export PATH=x")
            + _block(ConfigSection.ALIASES, "alias a=b")
        )

    def test_block_replaced_in_place(self):
        text = "top\n" + _block(ConfigSection.EXPORTS, "export OLD=1") + "bottom\n"
        rendered = render_rc(text, {ConfigSection.EXPORTS: ["export NEW=1"]})
        assert rendered == "top\n" + _block(ConfigSection.EXPORTS, "export NEW=1") + "bottom\n"

    def test_empty_section_removed(self):
        text = "top\n" + _block(ConfigSection.EVALS, "eval x") + "bottom\n"
        assert render_rc(text, {}) == "top\nbottom\n"

    def test_crlf_preserved(self):
        text = "top\r\n# >>> setup-devbox Exports >>>\r\nexport A=1\r\n# <<< setup-devbox Exports <<<\r\n"
        rendered = render_rc(text, {ConfigSection.EXPORTS: ["export A=2"]})
        assert rendered == (
            "top\r\n# >>> setup-devbox Exports >>>\r\nexport A=2\r\n# <<< setup-devbox Exports <<<\r\n"
        )


class TestManager:
    def test_creates_missing_file(self, tmp_path: Path):
        rc = tmp_path / ".zshrc"
        result = ShellRcManager(rc).apply(_config(aliases=[("ll", "ls -la")]))
        assert result.changed
        assert result.sections == [ConfigSection.ALIASES]
        assert rc.read_text() == _block(ConfigSection.ALIASES, "alias ll='ls -la'")

    def test_unchanged_file_not_rewritten(self, tmp_path: Path):
        rc = tmp_path / ".zshrc"
        manager = ShellRcManager(rc)
        config = _config(commands=[("export A=1", "Exports")])
        manager.apply(config)
        mtime = rc.stat().st_mtime_ns

        result = manager.apply(config)
        assert not result.changed
        assert rc.stat().st_mtime_ns == mtime

    def test_foreign_content_untouched(self, tmp_path: Path):
        rc = tmp_path / ".zshrc"
        user = "# my stuff\nsetopt autocd\n\n"
        rc.write_text(user)
        ShellRcManager(rc).apply(_config(commands=[("export A=1", "Exports")]))
        assert rc.read_text().startswith(user)

    def test_broken_file_left_alone(self, tmp_path: Path):
        rc = tmp_path / ".zshrc"
        rc.write_text("# >>> setup-devbox Paths >>>\n")
        with pytest.raises(ShellRcError):
            ShellRcManager(rc).apply(_config(aliases=[("a", "b")]))
        assert rc.read_text() == "# >>> setup-devbox Paths >>>\n"

    def test_default_path_follows_shell(self, isolated_home: Path):
        manager = ShellRcManager()
        result = manager.apply(_config(shell="bash", aliases=[("a", "b")]))
        assert result.rc_file == isolated_home / ".bashrc"
