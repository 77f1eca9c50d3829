from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..ids import ComponentId
from ..utils import normalize_to_linux


class Origin(str, Enum):
    AUTHORED = "AUTHORED"
    IMPORTED = "IMPORTED"
    NESTED = "NESTED"


@dataclass
class FileRecord:
    relative_path: str
    test: bool = False
    name: str = ""

    def __post_init__(self) -> None:
        self.relative_path = normalize_to_linux(self.relative_path)
        if not self.name:
            self.name = posixpath.basename(self.relative_path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "relativePath": self.relative_path,
            "test": self.test,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileRecord":
        relative_path = data.get("relativePath")
        if not isinstance(relative_path, str) or not relative_path:
            raise ValueError(f"Invalid file record; expected 'relativePath': {data}")
        return cls(
            relative_path=relative_path,
            test=bool(data.get("test", False)),
            name=data.get("name") or "",
        )


@dataclass
class ComponentDescriptor:
    id: ComponentId
    files: list[FileRecord] = field(default_factory=list)
    main_file: str | None = None


@dataclass
class ComponentEntry:
    id: ComponentId
    files: list[FileRecord] = field(default_factory=list)
    main_file: str | None = None
    origin: Origin = Origin.AUTHORED
    root_dir: str | None = None

    def paths(self) -> list[str]:
        return [record.relative_path for record in self.files]

    def find_file(self, relative_path: str) -> FileRecord | None:
        for record in self.files:
            if record.relative_path == relative_path:
                return record
        return None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "files": [record.to_dict() for record in self.files],
            "mainFile": self.main_file,
            "origin": self.origin.value,
        }
        if self.root_dir:
            data["rootDir"] = self.root_dir
        return data

    @classmethod
    def from_dict(cls, raw_id: str, data: dict[str, Any]) -> "ComponentEntry":
        if not isinstance(data, dict):
            raise ValueError(f"Component '{raw_id}' must be a mapping")
        files = data.get("files") or []
        if not isinstance(files, list):
            raise ValueError(f"Component '{raw_id}' files must be a list")
        origin = data.get("origin", Origin.AUTHORED.value)
        try:
            origin = Origin(origin)
        except ValueError:
            raise ValueError(f"Component '{raw_id}' has an invalid origin: {origin}")
        root_dir = data.get("rootDir")
        return cls(
            id=ComponentId.parse(raw_id),
            files=[FileRecord.from_dict(item) for item in files],
            main_file=data.get("mainFile"),
            origin=origin,
            root_dir=normalize_to_linux(root_dir) if root_dir else None,
        )


@dataclass
class AddWarnings:
    """Files skipped because another component already tracks them."""

    by_component: dict[str, list[str]] = field(default_factory=dict)

    def add(self, component_id: ComponentId | str, relative_path: str) -> None:
        paths = self.by_component.setdefault(str(component_id), [])
        if relative_path not in paths:
            paths.append(relative_path)

    def __bool__(self) -> bool:
        return bool(self.by_component)

    def to_dict(self) -> dict[str, list[str]]:
        return {key: list(paths) for key, paths in self.by_component.items()}
