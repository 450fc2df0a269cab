"""
Tests for in-place YAML sub-document edits.
"""

from pathlib import Path

import pytest
import yaml

from setup_devbox.core.config.editor import DocumentEditError, DocumentEditor


@pytest.fixture
def tools_doc(tmp_path: Path, write_yaml) -> Path:
    return write_yaml(
        tmp_path / "tools.yaml",
        {
            "update_latest_only_after": "7 days",
            "tools": [{"name": "jq", "source": "brew"}, {"name": "fd", "source": "cargo"}],
        },
    )


class TestUpsert:
    def test_append(self, tools_doc):
        replaced = DocumentEditor(tools_doc).upsert(
            ("tools",), {"name": "bat", "source": "cargo"}, {"name": "bat"}
        )
        data = yaml.safe_load(tools_doc.read_text())
        assert not replaced
        assert [t["name"] for t in data["tools"]] == ["jq", "fd", "bat"]
        assert data["update_latest_only_after"] == "7 days"

    def test_replace_in_place(self, tools_doc):
        replaced = DocumentEditor(tools_doc).upsert(
            ("tools",), {"name": "jq", "source": "github", "repo": "jqlang/jq"}, {"name": "jq"}
        )
        data = yaml.safe_load(tools_doc.read_text())
        assert replaced
        assert data["tools"][0] == {"name": "jq", "source": "github", "repo": "jqlang/jq"}
        assert len(data["tools"]) == 2

    def test_creates_file_and_nested_keys(self, tmp_path):
        path = tmp_path / "new" / "settings.yaml"
        entry = {"domain": "d", "key": "k", "value": "v"}
        DocumentEditor(path).upsert(("settings", "macos"), entry, {"domain": "d", "key": "k"})
        assert yaml.safe_load(path.read_text()) == {"settings": {"macos": [entry]}}

    def test_non_list_target(self, tmp_path, write_yaml):
        path = write_yaml(tmp_path / "tools.yaml", {"tools": {"jq": "brew"}})
        with pytest.raises(DocumentEditError, match="not a list"):
            DocumentEditor(path).upsert(("tools",), {"name": "x"}, {"name": "x"})

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "tools.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(DocumentEditError, match="mapping"):
            DocumentEditor(path).upsert(("tools",), {"name": "x"}, {"name": "x"})


class TestRemove:
    def test_remove_matching(self, tools_doc):
        assert DocumentEditor(tools_doc).remove(("tools",), {"name": "fd"}) == 1
        assert yaml.safe_load(tools_doc.read_text())["tools"] == [{"name": "jq", "source": "brew"}]

    def test_no_match_leaves_file(self, tools_doc):
        before = tools_doc.read_text()
        assert DocumentEditor(tools_doc).remove(("tools",), {"name": "zz"}) == 0
        assert tools_doc.read_text() == before

    def test_missing_file_or_key(self, tmp_path, write_yaml):
        assert DocumentEditor(tmp_path / "none.yaml").remove(("tools",), {"name": "x"}) == 0
        path = write_yaml(tmp_path / "fonts.yaml", {"other": 1})
        assert DocumentEditor(path).remove(("fonts",), {"name": "x"}) == 0

    def test_empty_document_loads_as_mapping(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert DocumentEditor(path).load() == {}
