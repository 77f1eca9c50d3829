from .changeset import ChangeSet, FileToWrite, PathToRemove, Symlink
from .targets import CommitTarget, LocalFilesystemTarget

__all__ = [
    "ChangeSet",
    "FileToWrite",
    "PathToRemove",
    "Symlink",
    "CommitTarget",
    "LocalFilesystemTarget",
]
