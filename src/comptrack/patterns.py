"""Glob expansion, ignore rules and file-name templates."""

from __future__ import annotations

import glob
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .errors import PathOutsideWorkspaceError, TemplateError
from .utils import brace_expand, normalize_to_linux

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

PLACEHOLDERS: dict[str, str] = {
    "dir": "dir",
    "parent": "parent",
    "base": "base",
    "name": "name",
    "ext": "ext",
    "PARENT": "parent",
    "FILE_NAME": "name",
    "EXT": "ext",
}


@dataclass(frozen=True)
class FileInfo:
    dir: str
    parent: str
    base: str
    name: str
    ext: str

    @classmethod
    def from_path(cls, path: str) -> "FileInfo":
        normalized = normalize_to_linux(path)
        directory, _, base = normalized.rpartition("/")
        stem, dot, ext = base.rpartition(".")
        if not dot or not stem:
            stem, ext = base, ""
        return cls(
            dir=directory,
            parent=directory.rpartition("/")[2],
            base=base,
            name=stem,
            ext=ext,
        )

    def get(self, field: str) -> str:
        return getattr(self, field)


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Placeholder:
    field: str
    token: str


@dataclass(frozen=True)
class PathTemplate:
    pattern: str
    segments: tuple[Literal | Placeholder, ...]

    @classmethod
    def parse(cls, pattern: str) -> "PathTemplate":
        segments: list[Literal | Placeholder] = []
        pos = 0
        for match in _PLACEHOLDER_RE.finditer(pattern):
            token = match.group(1)
            field = PLACEHOLDERS.get(token)
            if field is None:
                known = ", ".join(f"{{{name}}}" for name in PLACEHOLDERS)
                raise TemplateError(
                    pattern, f"unknown placeholder {{{token}}}, expected one of {known}"
                )
            if match.start() > pos:
                segments.append(Literal(pattern[pos : match.start()]))
            segments.append(Placeholder(field, token))
            pos = match.end()
        if pos < len(pattern):
            segments.append(Literal(pattern[pos:]))
        return cls(pattern, tuple(segments))

    @property
    def has_placeholders(self) -> bool:
        return any(isinstance(segment, Placeholder) for segment in self.segments)

    def render(self, info: FileInfo) -> str:
        out = []
        for segment in self.segments:
            if isinstance(segment, Literal):
                out.append(segment.text)
            else:
                out.append(info.get(segment.field))
        rendered = "".join(out)
        # an empty {dir} leaves a leading slash behind
        if rendered.startswith("/") and not self.pattern.startswith("/"):
            rendered = rendered.lstrip("/")
        return rendered


def is_template(pattern: str) -> bool:
    return bool(_PLACEHOLDER_RE.search(pattern))


def substitute(pattern: str, file_info: FileInfo | str) -> str:
    if isinstance(file_info, str):
        file_info = FileInfo.from_path(file_info)
    return PathTemplate.parse(pattern).render(file_info)


def has_glob_magic(pattern: str) -> bool:
    return glob.has_magic(pattern) or len(brace_expand(pattern)) > 1


class IgnoreRules:
    """Gitignore-style ignore rules, evaluated on tree-relative paths."""

    def __init__(self, patterns: Iterable[str] = ()):
        from pathspec import PathSpec

        self.patterns = list(patterns)
        self._spec = PathSpec.from_lines("gitwildmatch", self.patterns)

    def is_ignored(self, path: str, *, is_dir: bool = False) -> bool:
        normalized = normalize_to_linux(path)
        if not normalized:
            return False
        if is_dir:
            normalized = normalized + "/"
        return self._spec.match_file(normalized)

    def filter(self, paths: Iterable[str], *, root: str | Path | None = None) -> list[str]:
        kept = []
        for path in paths:
            is_dir = root is not None and os.path.isdir(os.path.join(root, path))
            if not self.is_ignored(path, is_dir=is_dir):
                kept.append(path)
        return kept


def expand(
    pattern: str, root: str | Path, ignore: IgnoreRules | None = None
) -> set[str]:
    """Expand a glob pattern against the tree at ``root``.

    Returns tree-relative forward-slash paths. A pattern matching nothing
    yields an empty set.
    """
    root = str(root)
    matches: set[str] = set()
    for variant in brace_expand(normalize_to_linux(pattern)):
        if not variant:
            continue
        for match in glob.glob(variant, root_dir=root, recursive=True):
            normalized = normalize_to_linux(match)
            if normalized:
                matches.add(normalized)
    if ignore is not None:
        matches = set(ignore.filter(matches, root=root))
    return matches


def list_files(
    root: str | Path, directory: str, ignore: IgnoreRules | None = None
) -> list[str]:
    """Every file beneath ``directory`` (tree-relative), ignored dirs pruned."""
    root = str(root)
    start = os.path.join(root, directory) if directory else root
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(start):
        rel_dir = normalize_to_linux(os.path.relpath(dirpath, root))
        kept_dirs = []
        for name in sorted(dirnames):
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if ignore is None or not ignore.is_ignored(rel, is_dir=True):
                kept_dirs.append(name)
        dirnames[:] = kept_dirs
        for name in filenames:
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if ignore is None or not ignore.is_ignored(rel):
                found.append(rel)
    return sorted(found)


def to_tree_relative(path: str, root: str | Path, cwd: str | Path | None = None) -> str:
    root_abs = os.path.abspath(str(root))
    base = os.path.abspath(str(cwd)) if cwd is not None else os.getcwd()
    absolute = os.path.normpath(os.path.join(base, path))
    relative = os.path.relpath(absolute, root_abs)
    if relative == os.pardir or relative.startswith(os.pardir + os.sep):
        raise PathOutsideWorkspaceError(path, root_abs)
    return normalize_to_linux(relative)


def path_exists(root: str | Path, relative_path: str) -> bool:
    return os.path.exists(os.path.join(str(root), relative_path))
