"""Resolve user supplied paths into tracked components.

The resolver turns paths (files, directories or glob patterns) into candidate
components, classifies their files (test files and main file located through
path templates), then reconciles the candidates with the component index.
Nothing in the index changes until every candidate has been validated, and
the index is written once at the end.
"""

from __future__ import annotations

import os
import sys
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from .errors import (
    DuplicateIdsError,
    EmptyDirectoryError,
    MissingMainFileError,
    NoFilesError,
    PathNotExistsError,
)
from .ids import ComponentId
from .index import (
    AddWarnings,
    ComponentDescriptor,
    ComponentIndex,
    FileRecord,
    Origin,
    resolve_main_file,
)
from .patterns import (
    FileInfo,
    IgnoreRules,
    PathTemplate,
    expand,
    has_glob_magic,
    is_template,
    list_files,
    path_exists,
    to_tree_relative,
)
from .utils import is_ancestor_path, normalize_to_linux


def _log(msg: str) -> None:
    from .runtime import get_verbose_logging

    if get_verbose_logging():
        print(f"[add] {msg}", file=sys.stderr, flush=True)


@dataclass(frozen=True)
class AddRequest:
    paths: tuple[str, ...]
    id: str | None = None
    main: str | None = None
    namespace: str | None = None
    tests: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    override: bool = False


@dataclass(frozen=True)
class AddedComponent:
    id: str
    files: list[str]


@dataclass(frozen=True)
class AddResult:
    added: list[AddedComponent]
    warnings: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class _PathFiles:
    path: str
    default_id: ComponentId
    files: list[FileRecord]
    main_file: str | None


@dataclass
class _Candidate:
    sources: list[str]
    id: ComponentId
    files: list[FileRecord]
    main_file: str | None


@dataclass
class _PlannedGroup:
    sources: list[str]
    id: ComponentId
    files: list[FileRecord]
    main_file: str | None


class AddResolver:
    def __init__(
        self,
        index: ComponentIndex,
        *,
        ignore: IgnoreRules | None = None,
        cwd: str | Path | None = None,
    ):
        self.index = index
        self.root = str(index.root)
        self.ignore = ignore if ignore is not None else IgnoreRules()
        self.cwd = str(cwd) if cwd is not None else os.getcwd()

    def resolve(self, request: AddRequest) -> AddResult:
        explicit_id = ComponentId.parse(request.id) if request.id else None
        tests = [self._tree_pattern(pattern) for pattern in request.tests]
        exclude = [self._tree_pattern(pattern) for pattern in request.exclude]
        main = self._tree_pattern(request.main) if request.main else None

        self._check_test_paths(tests)
        roots = self._resolve_roots(request.paths, tests, explicit_id)

        if len(roots) > 1 and explicit_id is None:
            _log(f"multiple components from {len(roots)} paths")
            test_roots = self._match(list(roots), tests, files_only=True)
            candidates = [
                self._build_candidate(
                    {path: is_dir},
                    explicit_id=None,
                    namespace=request.namespace,
                    tests=tests,
                    main=main,
                    exclude=exclude,
                )
                for path, is_dir in roots.items()
                if path not in test_roots
            ]
        else:
            _log("one component")
            candidates = [
                self._build_candidate(
                    roots,
                    explicit_id=explicit_id,
                    namespace=request.namespace,
                    tests=tests,
                    main=main,
                    exclude=exclude,
                )
            ]

        candidates = [candidate for candidate in candidates if candidate.files]
        if not candidates:
            raise NoFilesError()

        plan = self._plan(candidates, explicit_id, request.id)

        warnings = AddWarnings()
        added: list[AddedComponent] = []
        for group in plan:
            entry = self.index.upsert(
                ComponentDescriptor(group.id, group.files, group.main_file),
                override=request.override,
                warnings=warnings,
                supplied_id=request.id,
            )
            if entry is not None and entry.files:
                added.append(AddedComponent(str(entry.id), entry.paths()))

        self.index.persist()
        return AddResult(added=added, warnings=warnings.to_dict())

    def _tree_pattern(self, pattern: str) -> str:
        # templates are evaluated against tree-relative file names
        if is_template(pattern):
            return normalize_to_linux(pattern)
        return to_tree_relative(pattern, self.root, self.cwd)

    def _check_test_paths(self, tests: list[str]) -> None:
        missing = [
            pattern
            for pattern in tests
            if not is_template(pattern) and not expand(pattern, self.root)
        ]
        if missing:
            raise PathNotExistsError(missing)

    def _resolve_roots(
        self,
        paths: tuple[str, ...],
        tests: list[str],
        explicit_id: ComponentId | None,
    ) -> dict[str, bool]:
        resolved: list[str] = []
        missing: list[str] = []
        for raw_path in paths:
            relative = to_tree_relative(raw_path, self.root, self.cwd)
            if has_glob_magic(relative):
                matches = sorted(expand(relative, self.root))
            elif path_exists(self.root, relative):
                matches = [relative]
            else:
                matches = []
                missing.append(raw_path)
            for match in matches:
                if match not in resolved:
                    resolved.append(match)

        if not resolved and tests and explicit_id is not None:
            # only test files were given, track them under the supplied id
            test_files: set[str] = set()
            for pattern in tests:
                if not is_template(pattern):
                    test_files |= expand(pattern, self.root, self.ignore)
            if not test_files:
                raise PathNotExistsError(list(paths))
            return {path: self._is_dir(path) for path in sorted(test_files)}

        if missing:
            raise PathNotExistsError(missing)
        if not resolved:
            raise PathNotExistsError(list(paths))

        kept = self.ignore.filter(resolved, root=self.root)
        if not kept:
            raise NoFilesError(resolved)
        return {path: self._is_dir(path) for path in kept}

    def _is_dir(self, relative_path: str) -> bool:
        return os.path.isdir(os.path.join(self.root, relative_path))

    def _build_candidate(
        self,
        roots: dict[str, bool],
        *,
        explicit_id: ComponentId | None,
        namespace: str | None,
        tests: list[str],
        main: str | None,
        exclude: list[str],
    ) -> _Candidate:
        pieces = [
            self._collect_dir(path, namespace, tests, main)
            if is_dir
            else self._collect_file(path, namespace, tests, main)
            for path, is_dir in roots.items()
        ]
        first = pieces[0]
        component_id = explicit_id or first.default_id

        if exclude:
            all_paths = [record.relative_path for piece in pieces for record in piece.files]
            excluded = self._match(all_paths, exclude)
            for piece in pieces:
                if piece.main_file and _is_excluded(piece.main_file, excluded):
                    # no component without its entry point
                    piece.files = []
                else:
                    piece.files = [
                        record
                        for record in piece.files
                        if not _is_excluded(record.relative_path, excluded)
                    ]
            pieces = [piece for piece in pieces if piece.files]
            if not pieces:
                return _Candidate([first.path], component_id, [], None)

        if len(pieces) == 1:
            files = pieces[0].files
        else:
            by_path: dict[str, FileRecord] = {}
            for piece in pieces:
                for record in piece.files:
                    current = by_path.get(record.relative_path)
                    if current is None:
                        by_path[record.relative_path] = record
                    else:
                        current.test = current.test or record.test
                        current.name = current.name or record.name
            files = list(by_path.values())

        _log(f"candidate {component_id}: {len(files)} files")
        return _Candidate(
            sources=[piece.path or "." for piece in pieces],
            id=component_id,
            files=files,
            main_file=pieces[0].main_file,
        )

    def _collect_dir(
        self, path: str, namespace: str | None, tests: list[str], main: str | None
    ) -> _PathFiles:
        files = list_files(self.root, path, self.ignore)
        if not files:
            raise EmptyDirectoryError(path or ".")
        parts = Path(os.path.abspath(os.path.join(self.root, path))).parts
        last_dir = parts[-1]
        box = namespace or (parts[-2] if len(parts) > 1 else None)
        records = self._merge_test_files([FileRecord(f) for f in files], tests)
        main_file = self._add_main_file(records, main)
        return _PathFiles(path, ComponentId.from_parts(box, last_dir), records, main_file)

    def _collect_file(
        self, path: str, namespace: str | None, tests: list[str], main: str | None
    ) -> _PathFiles:
        absolute = Path(os.path.abspath(os.path.join(self.root, path)))
        box = namespace or absolute.parent.name or None
        records = self._merge_test_files([FileRecord(path)], tests)
        main_file = self._add_main_file(records, main)
        return _PathFiles(
            path, ComponentId.from_parts(box, absolute.stem), records, main_file
        )

    def _match(
        self, paths: list[str], patterns: list[str], *, files_only: bool = False
    ) -> set[str]:
        """Resolve templates against every path, plain globs once."""
        matched: set[str] = set()
        for pattern in patterns:
            template = PathTemplate.parse(pattern)
            if template.has_placeholders:
                for path in paths:
                    generated = template.render(FileInfo.from_path(path))
                    matched |= expand(generated, self.root, self.ignore)
            else:
                matched |= expand(pattern, self.root, self.ignore)
        if files_only:
            matched = {
                path
                for path in matched
                if os.path.isfile(os.path.join(self.root, path))
            }
        return matched

    def _merge_test_files(
        self, records: list[FileRecord], tests: list[str]
    ) -> list[FileRecord]:
        if not tests:
            return records
        test_paths = self._match(
            [record.relative_path for record in records], tests, files_only=True
        )
        merged: list[FileRecord] = []
        seen: set[str] = set()
        for record in records:
            if record.relative_path in test_paths:
                record = FileRecord(record.relative_path, test=True, name=record.name)
            merged.append(record)
            seen.add(record.relative_path)
        for path in sorted(test_paths - seen):
            merged.append(FileRecord(path, test=True))
        return merged

    def _add_main_file(self, records: list[FileRecord], main: str | None) -> str | None:
        if not main:
            return None
        template = PathTemplate.parse(main)
        if not template.has_placeholders:
            return normalize_to_linux(main)

        main_file = main
        known = {record.relative_path for record in records}
        for record in list(records):
            generated = normalize_to_linux(
                template.render(FileInfo.from_path(record.relative_path))
            )
            if generated in known:
                main_file = generated
            elif os.path.isfile(os.path.join(self.root, generated)):
                records.append(FileRecord(generated))
                known.add(generated)
                main_file = generated
        return main_file

    def _plan(
        self,
        candidates: list[_Candidate],
        explicit_id: ComponentId | None,
        supplied_id: str | None,
    ) -> list[_PlannedGroup]:
        sources_by_id: dict[str, list[str]] = {}
        counts: Counter[str] = Counter()
        targets: list[ComponentId] = []
        for candidate in candidates:
            candidate_paths = [record.relative_path for record in candidate.files]
            if candidate.main_file and candidate.main_file not in candidate_paths:
                raise MissingMainFileError(str(candidate.id), candidate.main_file)
            target = self.index.existing_id(explicit_id or candidate.id) or (
                explicit_id or candidate.id
            )
            targets.append(target)
            counts[str(target)] += 1
            sources_by_id.setdefault(str(target), []).extend(candidate.sources)

        duplicates = {
            key: sources_by_id[key] for key, count in counts.items() if count > 1
        }
        if duplicates:
            raise DuplicateIdsError(duplicates)

        planned: dict[str, _PlannedGroup] = {}
        for candidate, target in zip(candidates, targets):
            grouped: dict[str, tuple[ComponentId, list[FileRecord]]] = {}
            for record in candidate.files:
                owner = self.index.lookup_by_path(record.relative_path)
                if explicit_id is not None and owner is not None:
                    if str(owner) != str(target):
                        self._check_foreign_owner(owner, supplied_id)
                    owner = None
                # without an explicit id, files already tracked stay with their owner
                owner = owner or target
                grouped.setdefault(str(owner), (owner, []))[1].append(record)

            for key, (component_id, records) in grouped.items():
                group = planned.get(key)
                if group is None:
                    planned[key] = _PlannedGroup(
                        list(candidate.sources), component_id, list(records), None
                    )
                    group = planned[key]
                else:
                    known = {record.relative_path for record in group.files}
                    group.files.extend(
                        record for record in records if record.relative_path not in known
                    )
                    group.sources.extend(candidate.sources)
                paths = [record.relative_path for record in records]
                if group.main_file is None and candidate.main_file in paths:
                    group.main_file = candidate.main_file

        for group in planned.values():
            existing = self.index.lookup_by_id(group.id, allow_fuzzy=True)
            if existing is not None:
                self.index.assert_can_update(existing, supplied_id)
            else:
                resolve_main_file(group.id, group.files, group.main_file)
        return list(planned.values())

    def _check_foreign_owner(
        self, owner: ComponentId, supplied_id: str | None
    ) -> None:
        """Imported and nested components only change under their own id."""
        entry = self.index.lookup_by_id(owner)
        if entry is not None and entry.origin is not Origin.AUTHORED:
            self.index.assert_can_update(entry, supplied_id)


def _is_excluded(path: str, excluded: set[str]) -> bool:
    if path in excluded:
        return True
    return any(is_ancestor_path(match, path) for match in excluded)


def add_components(
    paths: list[str] | tuple[str, ...],
    *,
    id: str | None = None,
    main: str | None = None,
    namespace: str | None = None,
    tests: list[str] | tuple[str, ...] = (),
    exclude: list[str] | tuple[str, ...] = (),
    override: bool = False,
    root: str | Path | None = None,
    cwd: str | Path | None = None,
) -> AddResult:
    """Track ``paths`` as components of the workspace and persist the index."""
    from .config import build_ignore_rules, find_workspace_root, load_workspace_config

    cwd = str(cwd) if cwd is not None else os.getcwd()
    workspace_root = Path(root) if root is not None else find_workspace_root(cwd)
    config = load_workspace_config(workspace_root)
    index = ComponentIndex.load(workspace_root)
    ignore = build_ignore_rules(workspace_root, config, index)
    resolver = AddResolver(index, ignore=ignore, cwd=cwd)
    return resolver.resolve(
        AddRequest(
            paths=tuple(paths),
            id=id,
            main=main,
            namespace=namespace,
            tests=tuple(tests),
            exclude=tuple(exclude),
            override=override,
        )
    )
