from __future__ import annotations

from pathlib import Path

import pytest

from comptrack.config import (
    WorkspaceConfig,
    build_ignore_rules,
    find_workspace_root,
    load_workspace_config,
    parse_workspace_config,
)
from comptrack.errors import ConfigError
from comptrack.ids import ComponentId
from comptrack.index import ComponentEntry, ComponentIndex, FileRecord, Origin


def test_parse_workspace_config() -> None:
    config = parse_workspace_config(
        {"ignore": "*.log", "dist-target": "build", "dist-dirname": " out "}
    )
    assert config == WorkspaceConfig(ignore=("*.log",), dist_target="build", dist_dirname="out")
    assert parse_workspace_config(None) == WorkspaceConfig()


@pytest.mark.parametrize(
    "data",
    [
        ["ignore"],
        {"unknown": 1},
        {"ignore": [1]},
        {"dist-target": 3},
        {"dist-dirname": ""},
    ],
)
def test_parse_workspace_config_rejects_bad_values(data) -> None:
    with pytest.raises(ConfigError):
        parse_workspace_config(data)


def test_load_workspace_config(tmp_path: Path) -> None:
    assert load_workspace_config(tmp_path) == WorkspaceConfig()
    (tmp_path / "comptrack.yaml").write_text("ignore: [a: b", encoding="utf-8")
    with pytest.raises(ConfigError, match="unable to parse"):
        load_workspace_config(tmp_path)


def test_find_workspace_root(tmp_path: Path) -> None:
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    (tmp_path / "comptrack.yaml").write_text("{}\n", encoding="utf-8")
    assert find_workspace_root(nested) == tmp_path.resolve()


def test_ignore_rules_cover_gitignore_and_imported_dist(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").write_text("# comment\n*.log\n", encoding="utf-8")
    index = ComponentIndex(
        tmp_path,
        [
            ComponentEntry(
                id=ComponentId.parse("ui/button@1.0.0"),
                files=[FileRecord("button/index.js")],
                main_file="button/index.js",
                origin=Origin.IMPORTED,
                root_dir="button",
            )
        ],
    )
    rules = build_ignore_rules(tmp_path, WorkspaceConfig(ignore=("tmp/",)), index)
    assert rules.is_ignored("debug.log")
    assert rules.is_ignored("tmp/x.js")
    assert rules.is_ignored("button/dist/index.js")
    assert rules.is_ignored("node_modules/x/index.js")
    assert not rules.is_ignored("button/index.js")

    with_target = build_ignore_rules(
        tmp_path, WorkspaceConfig(dist_target="out"), index
    )
    assert not with_target.is_ignored("button/dist/index.js")
