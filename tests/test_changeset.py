from __future__ import annotations

import itertools
import threading
from pathlib import Path

import pytest

from comptrack.errors import ChangeSetPathError, DirectoryCollisionError
from comptrack.persist import (
    ChangeSet,
    CommitTarget,
    FileToWrite,
    LocalFilesystemTarget,
    PathToRemove,
    Symlink,
)


class _RecordingTarget:
    def __init__(self, fail_on: str | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self.fail_on = fail_on
        self._lock = threading.Lock()

    def _record(self, kind: str, path: str) -> None:
        with self._lock:
            self.calls.append((kind, path))
        if path == self.fail_on:
            raise OSError(f"cannot touch {path}")

    def write_file(self, path: str, contents: str | bytes) -> None:
        self._record("write", path)

    def remove_path(self, path: str, remove_empty_parents: bool = False) -> None:
        self._record("prune" if remove_empty_parents else "remove", path)

    def symlink(self, src: str, dest: str) -> None:
        self._record("symlink", dest)


def test_recording_target_satisfies_protocol() -> None:
    assert isinstance(_RecordingTarget(), CommitTarget)
    assert isinstance(LocalFilesystemTarget(), CommitTarget)


def test_disjoint_files_are_order_independent() -> None:
    files = ["a/one.js", "a/two.js", "b/three.js", "c.js"]
    results = set()
    for order in itertools.permutations(files):
        change_set = ChangeSet()
        for path in order:
            change_set.add_file(FileToWrite(path, path))
        results.add(frozenset((f.path, f.contents) for f in change_set.files))
    assert len(results) == 1


def test_second_write_respects_override() -> None:
    change_set = ChangeSet()
    change_set.add_file(FileToWrite("a.js", "first"))
    change_set.add_file(FileToWrite("a.js", "second", override=False))
    assert [f.contents for f in change_set.files] == ["first"]

    change_set.add_file(FileToWrite("a.js", "third"))
    assert [f.contents for f in change_set.files] == ["third"]


@pytest.mark.parametrize("order", [("bar", "bar/foo"), ("bar/foo", "bar")])
def test_file_and_directory_at_same_path_collide(order: tuple[str, str]) -> None:
    change_set = ChangeSet()
    change_set.add_file(FileToWrite(order[0], "x"))
    with pytest.raises(DirectoryCollisionError):
        change_set.add_file(FileToWrite(order[1], "y"))


def test_similar_prefixes_do_not_collide() -> None:
    change_set = ChangeSet()
    change_set.add_many_files([FileToWrite("bar", "x"), FileToWrite("barfoo/a", "y")])
    assert len(change_set.files) == 2


def test_file_without_path_is_rejected() -> None:
    with pytest.raises(ChangeSetPathError):
        ChangeSet().add_file(FileToWrite("", "x"))


def test_removals_are_deduplicated_by_identity() -> None:
    change_set = ChangeSet()
    removal = PathToRemove("dist")
    change_set.remove_path(removal)
    change_set.remove_path(removal)
    change_set.remove_path(PathToRemove("dist"))
    assert len(change_set.remove) == 2


def test_symlinks_need_both_ends() -> None:
    change_set = ChangeSet()
    with pytest.raises(ChangeSetPathError, match="src"):
        change_set.add_symlink(Symlink("", "dest"))
    with pytest.raises(ChangeSetPathError, match="dest"):
        change_set.add_symlink(Symlink("src", ""))


def test_merge_goes_through_the_same_checks() -> None:
    change_set = ChangeSet()
    change_set.add_file(FileToWrite("a.js", "mine"))
    other = ChangeSet()
    other.add_file(FileToWrite("a.js", "theirs", override=False))
    other.add_symlink(Symlink("a.js", "b.js"))
    other.remove_path(PathToRemove("old"))

    change_set.merge(other)
    change_set.merge(None)

    assert [f.contents for f in change_set.files] == ["mine"]
    assert [s.dest for s in change_set.symlinks] == ["b.js"]
    assert [r.path for r in change_set.remove] == ["old"]


def test_add_base_path_once_only(tmp_path: Path) -> None:
    change_set = ChangeSet()
    change_set.add_file(FileToWrite("a.js", "x"))
    change_set.add_symlink(Symlink("a.js", "link.js"))
    change_set.remove_path(PathToRemove("old"))

    change_set.add_base_path(str(tmp_path))
    assert change_set.files[0].path == str(tmp_path / "a.js")
    assert change_set.symlinks[0].src == str(tmp_path / "a.js")
    assert change_set.remove[0].path == str(tmp_path / "old")

    with pytest.raises(ChangeSetPathError, match="relative"):
        change_set.add_base_path(str(tmp_path))
    assert change_set.files[0].path == str(tmp_path / "a.js")


def test_add_base_path_requires_absolute_base() -> None:
    with pytest.raises(ChangeSetPathError):
        ChangeSet().add_base_path("relative/base")


def test_commit_requires_absolute_paths() -> None:
    change_set = ChangeSet()
    change_set.add_file(FileToWrite("a.js", "x"))
    target = _RecordingTarget()
    with pytest.raises(ChangeSetPathError, match="absolute"):
        change_set.commit(target)
    assert target.calls == []


def test_commit_runs_phases_in_order() -> None:
    change_set = ChangeSet()
    change_set.add_many_symlinks([Symlink("/ws/a.js", "/ws/link-a.js")])
    change_set.add_many_files([FileToWrite("/ws/a.js", "x"), FileToWrite("/ws/b.js", "y")])
    change_set.remove_many_paths(
        [PathToRemove("/ws/old.js"), PathToRemove("/ws/gone/x.js", remove_dir_if_empty=True)]
    )
    target = _RecordingTarget()

    change_set.commit(target, max_workers=4)

    kinds = [kind for kind, _ in target.calls]
    assert kinds[0] == "prune"
    assert set(kinds[1:2]) == {"remove"}
    assert sorted(kinds[2:4]) == ["write", "write"]
    assert kinds[4] == "symlink"


def test_failed_phase_stops_the_commit() -> None:
    change_set = ChangeSet()
    change_set.add_file(FileToWrite("/ws/a.js", "x"))
    change_set.add_symlink(Symlink("/ws/a.js", "/ws/link.js"))
    target = _RecordingTarget(fail_on="/ws/a.js")

    with pytest.raises(OSError, match="cannot touch"):
        change_set.commit(target)

    assert ("symlink", "/ws/link.js") not in target.calls


def test_remove_then_write_same_path_on_disk(tmp_path: Path) -> None:
    existing = tmp_path / "out" / "a.js"
    existing.parent.mkdir()
    existing.write_text("old", encoding="utf-8")

    change_set = ChangeSet()
    change_set.remove_path(PathToRemove("out/a.js"))
    change_set.add_file(FileToWrite("out/a.js", "new"))
    change_set.add_symlink(Symlink("out/a.js", "links/a.js"))
    change_set.add_base_path(str(tmp_path))
    change_set.commit()

    assert existing.read_text(encoding="utf-8") == "new"
    link = tmp_path / "links" / "a.js"
    assert link.is_symlink()
    assert link.read_text(encoding="utf-8") == "new"


def test_pruning_removes_empty_parents(tmp_path: Path) -> None:
    target_file = tmp_path / "a" / "b" / "c.js"
    target_file.parent.mkdir(parents=True)
    target_file.write_text("x", encoding="utf-8")
    (tmp_path / "a" / "keep.js").write_text("k", encoding="utf-8")

    change_set = ChangeSet()
    change_set.remove_path(PathToRemove(str(target_file), remove_dir_if_empty=True))
    change_set.commit(LocalFilesystemTarget(stop_at=tmp_path))

    assert not (tmp_path / "a" / "b").exists()
    assert (tmp_path / "a" / "keep.js").exists()


def test_default_target_prunes_no_further_than_the_base_path(tmp_path: Path) -> None:
    workspace = tmp_path / "ws"
    only_file = workspace / "a" / "b.js"
    only_file.parent.mkdir(parents=True)
    only_file.write_text("x", encoding="utf-8")

    change_set = ChangeSet()
    change_set.remove_path(PathToRemove("a/b.js", remove_dir_if_empty=True))
    change_set.add_base_path(str(workspace))
    change_set.commit()

    assert not (workspace / "a").exists()
    assert workspace.is_dir()


def test_default_target_stops_at_the_working_directory(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    only_file = tmp_path / "a" / "b.js"
    only_file.parent.mkdir()
    only_file.write_text("x", encoding="utf-8")

    LocalFilesystemTarget().remove_path(str(only_file), remove_empty_parents=True)

    assert not (tmp_path / "a").exists()
    assert tmp_path.is_dir()


def test_pruning_outside_stop_at_leaves_parents(tmp_path: Path) -> None:
    outside = tmp_path / "other" / "x.js"
    outside.parent.mkdir()
    outside.write_text("x", encoding="utf-8")
    (tmp_path / "ws").mkdir()

    LocalFilesystemTarget(stop_at=tmp_path / "ws").remove_path(
        str(outside), remove_empty_parents=True
    )

    assert not outside.exists()
    assert (tmp_path / "other").is_dir()


def test_describe_lists_each_phase() -> None:
    change_set = ChangeSet()
    change_set.add_file(FileToWrite("/ws/a.js", "x"))
    change_set.remove_path(PathToRemove("/ws/old"))
    text = change_set.describe()
    assert "paths-to-delete:\n  /ws/old" in text
    assert "paths-to-write:\n  /ws/a.js" in text
    assert ChangeSet().describe() == ""


def test_package_commit_rebases_then_applies(tmp_path: Path) -> None:
    import comptrack

    change_set = ChangeSet()
    change_set.add_file(FileToWrite("out/a.js", "x"))
    comptrack.commit(change_set, base_path=tmp_path)

    assert (tmp_path / "out" / "a.js").read_text(encoding="utf-8") == "x"
