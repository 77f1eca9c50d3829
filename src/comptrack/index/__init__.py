from .models import (
    AddWarnings,
    ComponentDescriptor,
    ComponentEntry,
    FileRecord,
    Origin,
)
from .store import (
    INDEX_DIRNAME,
    INDEX_FILENAME,
    INDEX_SCHEMA_VERSION,
    ComponentIndex,
    guess_main_file,
    index_path,
    resolve_main_file,
)

__all__ = [
    "AddWarnings",
    "ComponentDescriptor",
    "ComponentEntry",
    "ComponentIndex",
    "FileRecord",
    "INDEX_DIRNAME",
    "INDEX_FILENAME",
    "INDEX_SCHEMA_VERSION",
    "Origin",
    "guess_main_file",
    "index_path",
    "resolve_main_file",
]
