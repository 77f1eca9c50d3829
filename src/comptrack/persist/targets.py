from __future__ import annotations

import errno
import os
import shutil
import sys
from pathlib import Path
from typing import Protocol, runtime_checkable


def _log(msg: str) -> None:
    from ..runtime import get_verbose_logging

    if get_verbose_logging():
        print(f"[persist] {msg}", file=sys.stderr, flush=True)


@runtime_checkable
class CommitTarget(Protocol):
    """Where a change-set lands: the local disk or an isolated environment."""

    def write_file(self, path: str, contents: str | bytes) -> None: ...
    def remove_path(self, path: str, remove_empty_parents: bool = False) -> None: ...
    def symlink(self, src: str, dest: str) -> None: ...


class LocalFilesystemTarget:
    """Writes to the local disk.

    Pruning empty parents never removes ``stop_at`` (the current working
    directory by default) or anything outside of it.
    """

    def __init__(self, stop_at: str | Path | None = None):
        self.stop_at = Path(stop_at if stop_at is not None else os.getcwd()).resolve()

    def write_file(self, path: str, contents: str | bytes) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(contents, bytes):
            target.write_bytes(contents)
        else:
            target.write_text(contents, encoding="utf-8")

    def remove_path(self, path: str, remove_empty_parents: bool = False) -> None:
        target = Path(path)
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            try:
                target.unlink()
            except FileNotFoundError:
                pass
        if remove_empty_parents:
            self._remove_empty_parents(target.parent)

    def symlink(self, src: str, dest: str) -> None:
        link = Path(dest)
        link.parent.mkdir(parents=True, exist_ok=True)
        if link.is_symlink() or link.is_file():
            link.unlink()
        link.symlink_to(src)

    def _remove_empty_parents(self, directory: Path) -> None:
        current = directory.resolve()
        while self.stop_at in current.parents:
            try:
                current.rmdir()
            except FileNotFoundError:
                pass
            except OSError as exc:
                if exc.errno in (errno.ENOTEMPTY, errno.EEXIST):
                    return
                raise
            else:
                _log(f"removed empty directory {current}")
            current = current.parent
