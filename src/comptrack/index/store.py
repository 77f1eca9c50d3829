"""The persistent component index: which files belong to which component."""

from __future__ import annotations

import os
import posixpath
import sys
import tempfile
from pathlib import Path
from typing import Any, Iterable

import yaml

from ..errors import (
    IncorrectComponentIdError,
    IndexSchemaError,
    MissingComponentIdError,
    MissingMainFileError,
    NestedComponentError,
)
from ..ids import ComponentId
from ..utils import normalize_to_linux
from .models import (
    AddWarnings,
    ComponentDescriptor,
    ComponentEntry,
    FileRecord,
    Origin,
)

INDEX_DIRNAME = ".comptrack"
INDEX_FILENAME = "index.yaml"
INDEX_SCHEMA_VERSION = 1


def _log(msg: str) -> None:
    from ..runtime import get_verbose_logging

    if get_verbose_logging():
        print(f"[index] {msg}", file=sys.stderr, flush=True)


def index_path(root: str | Path) -> Path:
    return Path(root) / INDEX_DIRNAME / INDEX_FILENAME


def guess_main_file(files: list[FileRecord]) -> str | None:
    paths = [record.relative_path for record in files if not record.test]
    if not paths:
        paths = [record.relative_path for record in files]
    if len(paths) == 1:
        return paths[0]
    index_files = [
        path
        for path in paths
        if posixpath.splitext(posixpath.basename(path))[0] == "index"
    ]
    if not index_files:
        return None
    return min(index_files, key=lambda path: (path.count("/"), path))


def resolve_main_file(
    component_id: ComponentId | str,
    files: list[FileRecord],
    explicit: str | None = None,
    previous: str | None = None,
) -> str | None:
    """Pick the entry point of a component among its files.

    An explicit main file must be one of ``files``. Without one, the previous
    main file is kept while still tracked, then a lone non-test file or an
    ``index.*`` file is used.
    """
    paths = [record.relative_path for record in files]
    if not paths:
        return None
    if explicit:
        explicit = normalize_to_linux(explicit)
        if explicit not in paths:
            raise MissingMainFileError(str(component_id), explicit)
        return explicit
    if previous and previous in paths:
        return previous
    main_file = guess_main_file(files)
    if main_file is None:
        raise MissingMainFileError(str(component_id))
    return main_file


class ComponentIndex:
    def __init__(self, root: str | Path, entries: Iterable[ComponentEntry] = ()):
        self.root = Path(root)
        self._entries: dict[str, ComponentEntry] = {}
        owners: dict[str, str] = {}
        for entry in entries:
            key = str(entry.id)
            for path in entry.paths():
                if path in owners and owners[path] != key:
                    raise ValueError(
                        f"File {path} is tracked by both {owners[path]} and {key}"
                    )
                owners[path] = key
            self._entries[key] = entry

    @property
    def path(self) -> Path:
        return index_path(self.root)

    @classmethod
    def load(cls, root: str | Path) -> "ComponentIndex":
        path = index_path(root)
        if not path.exists():
            return cls(root)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ValueError(f"unable to parse {path}: {exc}") from exc
        return cls.from_dict(root, data)

    @classmethod
    def from_dict(cls, root: str | Path, data: Any) -> "ComponentIndex":
        if data is None:
            return cls(root)
        if not isinstance(data, dict):
            raise ValueError("Component index must be a YAML mapping")
        version = data.get("version")
        if version != INDEX_SCHEMA_VERSION:
            raise IndexSchemaError(version, INDEX_SCHEMA_VERSION)
        components = data.get("components") or {}
        if not isinstance(components, dict):
            raise ValueError("'components' must be a mapping")
        entries = [
            ComponentEntry.from_dict(str(raw_id), value)
            for raw_id, value in components.items()
        ]
        return cls(root, entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": INDEX_SCHEMA_VERSION,
            "components": {
                key: entry.to_dict() for key, entry in sorted(self._entries.items())
            },
        }

    def persist(self) -> Path:
        """Write the whole index, replacing the previous file atomically."""
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        content = yaml.safe_dump(
            self.to_dict(), sort_keys=True, default_flow_style=False
        )
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{INDEX_FILENAME}.", dir=str(path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        _log(f"wrote {len(self._entries)} components to {path}")
        return path

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, component_id: object) -> bool:
        if not isinstance(component_id, (str, ComponentId)):
            return False
        return self.lookup_by_id(component_id) is not None

    def entries(self, origin: Origin | None = None) -> list[ComponentEntry]:
        return [
            entry
            for _, entry in sorted(self._entries.items())
            if origin is None or entry.origin is origin
        ]

    def lookup_by_path(self, path: str) -> ComponentId | None:
        relative_path = normalize_to_linux(path)
        for entry in self._entries.values():
            if entry.find_file(relative_path) is not None:
                return entry.id
        return None

    def lookup_by_id(
        self, component_id: ComponentId | str, allow_fuzzy: bool = False
    ) -> ComponentEntry | None:
        parsed = ComponentId.parse(component_id)
        exact = self._entries.get(str(parsed))
        if exact is not None or not allow_fuzzy:
            return exact
        matches = [
            entry for entry in self._entries.values() if entry.id.same_component(parsed)
        ]
        if not matches:
            return None
        return max(
            matches, key=lambda entry: (entry.id.has_version(), entry.id.version or "")
        )

    def existing_id(self, component_id: ComponentId | str) -> ComponentId | None:
        entry = self.lookup_by_id(component_id, allow_fuzzy=True)
        return entry.id if entry is not None else None

    def assert_can_update(
        self, entry: ComponentEntry, supplied_id: ComponentId | str | None = None
    ) -> None:
        if entry.origin is Origin.NESTED:
            raise NestedComponentError(str(entry.id))
        if entry.origin is Origin.IMPORTED:
            expected = entry.id.without_version()
            if not supplied_id:
                raise MissingComponentIdError(str(expected))
            if not ComponentId.parse(supplied_id).same_component(expected):
                raise IncorrectComponentIdError(str(expected), str(supplied_id))

    def upsert(
        self,
        descriptor: ComponentDescriptor,
        origin: Origin = Origin.AUTHORED,
        override: bool = False,
        warnings: AddWarnings | None = None,
        supplied_id: ComponentId | str | None = None,
    ) -> ComponentEntry | None:
        """Create or update the entry for ``descriptor``.

        Files tracked by another component are recorded in ``warnings`` and
        skipped, unless ``override`` is set, in which case they move to this
        component and the existing file set is replaced. The returned entry
        carries the canonical tracked id. Returns None when no file could be
        tracked and no entry exists.
        """
        existing = self.lookup_by_id(descriptor.id, allow_fuzzy=True)
        if existing is not None:
            self.assert_can_update(existing, supplied_id)
        canonical = existing.id if existing is not None else descriptor.id
        canonical_key = str(canonical)

        accepted: list[FileRecord] = []
        to_detach: list[tuple[ComponentId, str]] = []
        for record in descriptor.files:
            owner = self.lookup_by_path(record.relative_path)
            if owner is not None and str(owner) != canonical_key:
                if not override:
                    if warnings is not None:
                        warnings.add(owner, record.relative_path)
                    continue
                owner_entry = self._entries[str(owner)]
                if owner_entry.origin is Origin.NESTED:
                    raise NestedComponentError(str(owner))
                to_detach.append((owner, record.relative_path))
            accepted.append(record)

        if existing is None:
            if not accepted:
                return None
            main_file = resolve_main_file(canonical, accepted, descriptor.main_file)
            for owner, path in to_detach:
                self._detach(owner, path)
            entry = ComponentEntry(
                id=canonical, files=list(accepted), main_file=main_file, origin=origin
            )
            self._entries[canonical_key] = entry
            _log(f"added {canonical_key} ({len(entry.files)} files)")
            return entry

        promoted: list[FileRecord] = []
        if override and accepted:
            merged = list(accepted)
        else:
            merged = list(existing.files)
            for record in accepted:
                current = existing.find_file(record.relative_path)
                if current is None:
                    merged.append(record)
                elif record.test and not current.test:
                    promoted.append(current)
        main_file = resolve_main_file(
            canonical,
            merged,
            descriptor.main_file,
            existing.main_file,
        )
        for owner, path in to_detach:
            self._detach(owner, path)
        existing.files = merged
        for record in promoted:
            record.test = True
        existing.main_file = main_file
        _log(f"updated {canonical_key} ({len(existing.files)} files)")
        return existing

    def _detach(self, owner: ComponentId, relative_path: str) -> None:
        entry = self._entries[str(owner)]
        entry.files = [
            record for record in entry.files if record.relative_path != relative_path
        ]
        if entry.main_file == relative_path:
            entry.main_file = guess_main_file(entry.files)
        _log(f"moved {relative_path} out of {owner}")
