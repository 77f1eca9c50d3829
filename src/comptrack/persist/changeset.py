"""Pending filesystem mutations, applied in one ordered commit.

A change-set collects files to write, paths to remove and symlinks to create
while an operation runs, and applies them once at the end. Commit order is
fixed: removals first, then writes, then symlinks. Inside a phase the tasks
run concurrently.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import PurePath

from ..concurrency import run_tasks_fail_fast
from ..errors import ChangeSetPathError, DirectoryCollisionError
from ..runtime import get_commit_jobs
from ..utils import is_ancestor_path
from .targets import CommitTarget, LocalFilesystemTarget


def _log(msg: str) -> None:
    from ..runtime import get_verbose_logging

    if get_verbose_logging():
        print(f"[persist] {msg}", file=sys.stderr, flush=True)


@dataclass
class FileToWrite:
    path: str
    contents: str | bytes
    override: bool = True


@dataclass(eq=False)
class PathToRemove:
    path: str
    remove_dir_if_empty: bool = False


@dataclass
class Symlink:
    src: str
    dest: str


def _is_absolute(path: str) -> bool:
    return os.path.isabs(path) or PurePath(path).is_absolute()


def _assert_relative(path: str) -> None:
    if _is_absolute(path):
        raise ChangeSetPathError(
            f"ChangeSet expects {path} to be relative, but found it absolute"
        )


@dataclass
class ChangeSet:
    files: list[FileToWrite] = field(default_factory=list)
    remove: list[PathToRemove] = field(default_factory=list)
    symlinks: list[Symlink] = field(default_factory=list)
    base_path: str | None = None

    def add_file(self, file: FileToWrite) -> None:
        if file is None:
            raise ChangeSetPathError("failed adding an empty file into the ChangeSet")
        if not file.path:
            raise ChangeSetPathError(
                "failed adding a file into the ChangeSet as it does not have a path"
            )
        existing_index = next(
            (i for i, existing in enumerate(self.files) if existing.path == file.path),
            None,
        )
        if existing_index is not None:
            if not file.override:
                return
            del self.files[existing_index]
        self._throw_for_directory_collision(file)
        self.files.append(file)

    def add_many_files(self, files: list[FileToWrite] | None = None) -> None:
        for file in files or []:
            self.add_file(file)

    def remove_path(self, path_to_remove: PathToRemove) -> None:
        if path_to_remove is None or not path_to_remove.path:
            raise ChangeSetPathError("failed adding a path to remove into the ChangeSet")
        if path_to_remove not in self.remove:
            self.remove.append(path_to_remove)

    def remove_many_paths(self, paths: list[PathToRemove] | None = None) -> None:
        for path_to_remove in paths or []:
            self.remove_path(path_to_remove)

    def add_symlink(self, symlink: Symlink) -> None:
        if not symlink.src:
            raise ChangeSetPathError("failed adding a symlink into the ChangeSet, src is empty")
        if not symlink.dest:
            raise ChangeSetPathError("failed adding a symlink into the ChangeSet, dest is empty")
        self.symlinks.append(symlink)

    def add_many_symlinks(self, symlinks: list[Symlink] | None = None) -> None:
        for symlink in symlinks or []:
            self.add_symlink(symlink)

    def merge(self, other: "ChangeSet | None") -> None:
        if other is None:
            return
        self.add_many_files(other.files)
        self.remove_many_paths(other.remove)
        self.add_many_symlinks(other.symlinks)

    def add_base_path(self, base_path: str) -> None:
        """Rebase every (relative) path onto ``base_path``.

        Fails without touching anything when a path is already absolute.
        """
        if not _is_absolute(base_path):
            raise ChangeSetPathError(
                f"ChangeSet expects the base path {base_path} to be absolute"
            )
        for file in self.files:
            _assert_relative(file.path)
        for symlink in self.symlinks:
            _assert_relative(symlink.src)
            _assert_relative(symlink.dest)
        for path_to_remove in self.remove:
            _assert_relative(path_to_remove.path)

        for file in self.files:
            file.path = os.path.join(base_path, file.path)
        for symlink in self.symlinks:
            symlink.src = os.path.join(base_path, symlink.src)
            symlink.dest = os.path.join(base_path, symlink.dest)
        for path_to_remove in self.remove:
            path_to_remove.path = os.path.join(base_path, path_to_remove.path)
        self.base_path = base_path

    def validate(self) -> None:
        # relative paths would resolve against whatever directory the command
        # runs from
        def validate_absolute_path(path: str) -> None:
            if not _is_absolute(path):
                raise ChangeSetPathError(
                    f"ChangeSet expects {path} to be absolute, got relative"
                )

        for file in self.files:
            validate_absolute_path(file.path)
        for path_to_remove in self.remove:
            validate_absolute_path(path_to_remove.path)
        for symlink in self.symlinks:
            validate_absolute_path(symlink.src)
            validate_absolute_path(symlink.dest)

    def is_empty(self) -> bool:
        return not (self.files or self.remove or self.symlinks)

    def describe(self) -> str:
        lines = []
        if self.remove:
            lines.append("paths-to-delete:")
            lines.extend(f"  {r.path}" for r in self.remove)
        if self.files:
            lines.append("paths-to-write:")
            lines.extend(f"  {f.path}" for f in self.files)
        if self.symlinks:
            lines.append("symlinks:")
            lines.extend(
                f"  src (existing): {s.src}, dest (new): {s.dest}" for s in self.symlinks
            )
        return "\n".join(lines)

    def commit(
        self, target: CommitTarget | None = None, *, max_workers: int | None = None
    ) -> None:
        """Apply the change-set: remove, then write, then symlink.

        Without a target, changes land on the local disk and pruned
        directories stop at the base path (or the current directory).
        """
        self.validate()
        if target is None:
            target = LocalFilesystemTarget(stop_at=self.base_path)
        jobs = max_workers if max_workers is not None else get_commit_jobs()
        if not self.is_empty():
            _log(f"committing change-set\n{self.describe()}")

        self._remove_paths(target, jobs)
        run_tasks_fail_fast(
            [
                (lambda file=file: target.write_file(file.path, file.contents))
                for file in self.files
            ],
            max_workers=jobs,
        )
        run_tasks_fail_fast(
            [
                (lambda link=link: target.symlink(link.src, link.dest))
                for link in self.symlinks
            ],
            max_workers=jobs,
        )

    def _remove_paths(self, target: CommitTarget, jobs: int) -> None:
        prune = [r.path for r in self.remove if r.remove_dir_if_empty]
        rest = [r.path for r in self.remove if not r.remove_dir_if_empty]
        # pruning walks shared parent directories, keep it sequential
        for path in prune:
            target.remove_path(path, remove_empty_parents=True)
        run_tasks_fail_fast(
            [(lambda path=path: target.remove_path(path)) for path in rest],
            max_workers=jobs,
        )

    def _throw_for_directory_collision(self, file: FileToWrite) -> None:
        """Refuse "bar" next to "bar/foo": one would have to be a directory."""
        collision = next(
            (
                existing
                for existing in self.files
                if is_ancestor_path(file.path, existing.path)
                or is_ancestor_path(existing.path, file.path)
            ),
            None,
        )
        if collision is not None:
            raise DirectoryCollisionError(file.path, collision.path)
