from __future__ import annotations

from collections.abc import Iterable, Mapping


class ComptrackError(ValueError):
    """Base class for every error raised by comptrack."""


class PathNotExistsError(ComptrackError):
    def __init__(self, paths: str | Iterable[str]):
        self.paths = [paths] if isinstance(paths, str) else list(paths)
        super().__init__(
            f"error: file or directory {', '.join(self.paths)} was not found"
        )


class EmptyDirectoryError(ComptrackError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"directory {path} contains no files to track")


class NoFilesError(ComptrackError):
    def __init__(self, ignored: Iterable[str] = ()):
        self.ignored = sorted(ignored)
        if self.ignored:
            message = (
                "no files were added, the following files were ignored: "
                + ", ".join(self.ignored)
            )
        else:
            message = "no files were added"
        super().__init__(message)


class PathOutsideWorkspaceError(ComptrackError):
    def __init__(self, path: str, root: str):
        self.path = path
        self.root = root
        super().__init__(f"path {path} is outside of the workspace {root}")


class MissingMainFileError(ComptrackError):
    def __init__(self, component_id: str, main_file: str | None = None):
        self.component_id = component_id
        self.main_file = main_file
        if main_file:
            message = (
                f"main file {main_file} of component {component_id} "
                "is not one of its files"
            )
        else:
            message = (
                f"unable to determine the main file of component {component_id}, "
                "please specify one"
            )
        super().__init__(message)


class TemplateError(ComptrackError):
    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"invalid path pattern '{pattern}': {reason}")


class InvalidComponentIdError(ComptrackError):
    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"invalid component id '{raw}'")


class ConfigError(ComptrackError):
    pass


class IndexSchemaError(ComptrackError):
    def __init__(self, found: object, expected: int):
        self.found = found
        self.expected = expected
        super().__init__(
            f"unsupported index schema version {found!r}, expected {expected}"
        )


class MissingComponentIdError(ComptrackError):
    def __init__(self, component_id: str):
        self.component_id = component_id
        super().__init__(
            f"component {component_id} was imported, "
            "please specify its id to add files to it"
        )


class IncorrectComponentIdError(ComptrackError):
    def __init__(self, expected: str, supplied: str):
        self.expected = expected
        self.supplied = supplied
        super().__init__(
            f"the id {supplied} does not match the imported component {expected}"
        )


class DuplicateIdsError(ComptrackError):
    def __init__(self, duplicates: Mapping[str, Iterable[str]]):
        self.duplicates = {key: list(value) for key, value in duplicates.items()}
        details = "; ".join(
            f"{key} (from {', '.join(paths)})"
            for key, paths in sorted(self.duplicates.items())
        )
        super().__init__(
            f"unable to add components with the same id in one command: {details}"
        )


class NestedComponentError(ComptrackError):
    def __init__(self, component_id: str):
        self.component_id = component_id
        super().__init__(
            f"one of your dependencies ({component_id}) already has the same "
            "namespace and name. To add a new component, choose a different "
            "namespace or name. To update the dependency, re-import it individually"
        )


class DirectoryCollisionError(ComptrackError):
    def __init__(self, path: str, existing: str):
        self.path = path
        self.existing = existing
        super().__init__(
            f'unable to add the file "{path}", because another file "{existing}" '
            "is going to be written. One of them is a directory of the other one, "
            "and it is not possible to have them both"
        )


class ChangeSetPathError(ComptrackError):
    pass


class InstallerError(ComptrackError):
    def __init__(self, tool: str, returncode: int | None, stderr: str):
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "unknown error"
        super().__init__(f"{tool} failed: {detail}")
