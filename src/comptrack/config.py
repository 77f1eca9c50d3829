from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .index import INDEX_DIRNAME, ComponentIndex, Origin
from .patterns import IgnoreRules

CONFIG_FILENAME = "comptrack.yaml"
DEFAULT_DIST_DIRNAME = "dist"

DEFAULT_IGNORE_PATTERNS = (
    ".git/",
    ".gitignore",
    f"{INDEX_DIRNAME}/",
    CONFIG_FILENAME,
    "node_modules/",
    "__pycache__/",
    ".venv/",
    ".tox/",
    ".pytest_cache/",
    ".mypy_cache/",
    ".ruff_cache/",
    ".cache/",
)

_CONFIG_KEYS = {"ignore", "dist-target", "dist-dirname"}


@dataclass(frozen=True)
class WorkspaceConfig:
    ignore: tuple[str, ...] = ()
    dist_target: str | None = None
    dist_dirname: str = DEFAULT_DIST_DIRNAME


def find_workspace_root(cwd: str | Path | None = None) -> Path:
    start = Path(cwd or os.getcwd()).resolve()
    for candidate in (start, *start.parents):
        if (candidate / CONFIG_FILENAME).is_file() or (
            candidate / INDEX_DIRNAME
        ).is_dir():
            return candidate
    return start


def parse_workspace_config(data: Any) -> WorkspaceConfig:
    if data is None:
        return WorkspaceConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must be a YAML mapping")

    unknown_keys = sorted(set(data) - _CONFIG_KEYS)
    if unknown_keys:
        raise ConfigError(
            f"{CONFIG_FILENAME} has invalid keys: {', '.join(unknown_keys)}"
        )

    ignore = data.get("ignore") or []
    if isinstance(ignore, str):
        ignore = [ignore]
    if not isinstance(ignore, list) or not all(isinstance(p, str) for p in ignore):
        raise ConfigError("ignore must be a list of strings")

    dist_target = data.get("dist-target")
    if dist_target is not None and not isinstance(dist_target, str):
        raise ConfigError("dist-target must be a string")

    dist_dirname = data.get("dist-dirname", DEFAULT_DIST_DIRNAME)
    if not isinstance(dist_dirname, str) or not dist_dirname.strip():
        raise ConfigError("dist-dirname must be a non-empty string")

    return WorkspaceConfig(
        ignore=tuple(ignore),
        dist_target=dist_target or None,
        dist_dirname=dist_dirname.strip(),
    )


def load_workspace_config(root: str | Path) -> WorkspaceConfig:
    import yaml

    config_path = Path(root) / CONFIG_FILENAME
    try:
        with open(config_path, "r", encoding="utf-8") as file:
            data = yaml.safe_load(file)
    except FileNotFoundError:
        return WorkspaceConfig()
    except yaml.YAMLError as exc:
        raise ConfigError(f"unable to parse {config_path}: {exc}") from exc
    return parse_workspace_config(data)


def read_gitignore_patterns(root: str | Path) -> list[str]:
    path = Path(root) / ".gitignore"
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return []
    return [line for line in lines if line.strip() and not line.startswith("#")]


def build_ignore_rules(
    root: str | Path, config: WorkspaceConfig, index: ComponentIndex | None = None
) -> IgnoreRules:
    """Default patterns, .gitignore, configured patterns and dist dirs."""
    patterns = list(DEFAULT_IGNORE_PATTERNS)
    patterns.extend(read_gitignore_patterns(root))
    patterns.extend(config.ignore)
    if index is not None and not config.dist_target:
        for entry in index.entries(Origin.IMPORTED):
            if entry.root_dir:
                patterns.append(f"/{entry.root_dir}/{config.dist_dirname}/")
    return IgnoreRules(patterns)
