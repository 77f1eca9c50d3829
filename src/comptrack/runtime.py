from __future__ import annotations

from contextvars import ContextVar, Token
import os

_VERBOSE_LOGGING: ContextVar[bool | None] = ContextVar(
    "comptrack_verbose_logging", default=None
)

_DEFAULT_COMMIT_JOBS = 8
_MAX_COMMIT_JOBS = 64


def _read_positive_int_env(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    return min(value, _MAX_COMMIT_JOBS)


def get_verbose_logging() -> bool:
    value = _VERBOSE_LOGGING.get()
    if value is None:
        return (os.environ.get("COMPTRACK_VERBOSE") or "").strip() in {"1", "true"}
    return value


def set_verbose_logging(enabled: bool) -> Token[bool | None]:
    return _VERBOSE_LOGGING.set(bool(enabled))


def reset_verbose_logging(token: Token[bool | None]) -> None:
    _VERBOSE_LOGGING.reset(token)


def get_commit_jobs() -> int:
    return _read_positive_int_env("COMPTRACK_COMMIT_JOBS", _DEFAULT_COMMIT_JOBS)
