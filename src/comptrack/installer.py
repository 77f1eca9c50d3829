from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass, field
from typing import Protocol

from .errors import InstallerError
from .persist import ChangeSet, CommitTarget


def _log(msg: str) -> None:
    from .runtime import get_verbose_logging

    if get_verbose_logging():
        print(f"[install] {msg}", file=sys.stderr, flush=True)


@dataclass(frozen=True)
class InstallRequest:
    tool: str
    args: tuple[str, ...] = ()
    cwd: str | None = None


@dataclass(frozen=True)
class InstallOutput:
    stdout: str = ""
    stderr: str = ""


class PackageInstaller(Protocol):
    def install(self, request: InstallRequest) -> InstallOutput: ...


@dataclass
class SubprocessInstaller:
    """Run a package manager executable and hand back its raw output."""

    env: dict[str, str] | None = field(default=None)

    def install(self, request: InstallRequest) -> InstallOutput:
        cmd = [request.tool, *request.args]
        _log(f"running {' '.join(cmd)} in {request.cwd or '.'}")
        try:
            completed = subprocess.run(
                cmd,
                cwd=request.cwd,
                env=self.env,
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise InstallerError(request.tool, None, str(exc)) from exc
        if completed.returncode != 0:
            raise InstallerError(
                request.tool, completed.returncode, completed.stderr or ""
            )
        return InstallOutput(
            stdout=completed.stdout or "", stderr=completed.stderr or ""
        )


def install_then_commit(
    change_set: ChangeSet,
    target: CommitTarget | None = None,
    *,
    request: InstallRequest,
    installer: PackageInstaller | None = None,
) -> InstallOutput:
    """Install dependencies, then commit ``change_set``.

    Nothing is written when the installer fails.
    """
    installer = installer or SubprocessInstaller()
    output = installer.install(request)
    change_set.commit(target)
    return output
