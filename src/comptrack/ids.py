from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import InvalidComponentIdError

DEFAULT_BOX = "global"
VERSION_DELIMITER = "@"

_INVALID_CHUNK_CHARS_RE = re.compile(r"[^a-z0-9_.\-]")


def valid_id_chunk(value: str) -> str:
    chunk = re.sub(r"\s+", "-", value.strip().lower())
    return _INVALID_CHUNK_CHARS_RE.sub("-", chunk)


@dataclass(frozen=True)
class ComponentId:
    box: str
    name: str
    version: str | None = None

    @classmethod
    def parse(cls, raw: str | "ComponentId") -> "ComponentId":
        if isinstance(raw, ComponentId):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            raise InvalidComponentIdError(str(raw))
        text = raw.strip()
        version = None
        head, delimiter, tail = text.rpartition(VERSION_DELIMITER)
        if delimiter and "/" not in tail:
            text, version = head, tail
            if not version:
                raise InvalidComponentIdError(raw)
        parts = text.split("/")
        if len(parts) == 1:
            parts = [DEFAULT_BOX, parts[0]]
        if len(parts) != 2 or not all(parts):
            raise InvalidComponentIdError(raw)
        return cls(box=parts[0], name=parts[1], version=version)

    @classmethod
    def from_parts(cls, box: str | None, name: str) -> "ComponentId":
        """Build an id from path segments, sanitizing each segment."""
        box_chunk = valid_id_chunk(box) if box else ""
        name_chunk = valid_id_chunk(name)
        if not name_chunk:
            raise InvalidComponentIdError(f"{box}/{name}")
        return cls(box=box_chunk or DEFAULT_BOX, name=name_chunk)

    def box_and_name(self) -> str:
        return f"{self.box}/{self.name}"

    def without_version(self) -> "ComponentId":
        return ComponentId(self.box, self.name)

    def has_version(self) -> bool:
        return bool(self.version)

    def same_component(self, other: "ComponentId") -> bool:
        return self.box == other.box and self.name == other.name

    def __str__(self) -> str:
        if self.version:
            return f"{self.box_and_name()}{VERSION_DELIMITER}{self.version}"
        return self.box_and_name()
