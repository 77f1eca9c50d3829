import os
import posixpath


def _split_brace_options(s: str) -> list[str]:
    """Split brace options on commas, handling nested braces."""
    opts = []
    buf = ""
    depth = 0
    for ch in s:
        if ch == "," and depth == 0:
            opts.append(buf)
            buf = ""
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        buf += ch
    opts.append(buf)
    return opts


def brace_expand(pattern: str) -> list[str]:
    """Expand shell-style brace patterns like {a,b,c} into multiple strings.

    Braces without a comma inside (template placeholders such as ``{name}``)
    are left untouched.
    """
    start = -1
    end = -1
    search_from = 0
    while True:
        start = pattern.find("{", search_from)
        if start == -1:
            return [pattern]
        depth = 0
        end = -1
        for i in range(start, len(pattern)):
            if pattern[i] == "{":
                depth += 1
            elif pattern[i] == "}":
                depth -= 1
                if depth == 0:
                    end = i
                    break
        if end == -1:
            return [pattern]
        if "," in pattern[start + 1 : end]:
            break
        search_from = start + 1

    inside = pattern[start + 1 : end]
    rest = pattern[end + 1 :]
    prefix = pattern[:start]
    out = []
    for opt in _split_brace_options(inside):
        for expanded in brace_expand(opt + rest):
            out.append(prefix + expanded)
    return out


def normalize_to_linux(path: str) -> str:
    """Forward-slash, collapsed, no leading './'."""
    if not path:
        return path
    normalized = posixpath.normpath(path.replace(os.sep, "/").replace("\\", "/"))
    return "" if normalized == "." else normalized


def is_ancestor_path(ancestor: str, path: str) -> bool:
    ancestor = ancestor.rstrip("/\\")
    for sep in {os.sep, "/"}:
        if path.startswith(f"{ancestor}{sep}"):
            return True
    return False
