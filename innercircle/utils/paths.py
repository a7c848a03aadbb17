from __future__ import annotations

import os
import re

from ..errors import AccessDenied, BadRequest

INVALID_NAME_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")


def normalize_rel_path(value: str | None) -> str:
    """Return ``value`` as a ``/``-separated relative path without empty or ``.`` parts.

    ``..`` parts are kept; containment is decided by :func:`resolve_within_root`.
    """
    if value is None:
        return ""
    value = str(value)
    if "\x00" in value:
        raise AccessDenied("Invalid path")
    value = value.replace("\\", "/")
    return "/".join(part for part in value.split("/") if part and part != ".")


def is_within(root: str, path: str) -> bool:
    if path == root:
        return True
    return path.startswith(root.rstrip(os.sep) + os.sep)


def resolve_within_root(base_root: str, relative_path: str | None) -> str:
    """Join ``relative_path`` onto ``base_root`` and refuse anything that escapes it.

    The lexical result must sit under the root, and so must its symlink-resolved
    target. Raises :class:`AccessDenied` otherwise. Returns the lexical path.
    """
    root = os.path.normpath(os.path.abspath(base_root))
    rel = normalize_rel_path(relative_path)
    candidate = os.path.normpath(os.path.join(root, *rel.split("/"))) if rel else root
    if not is_within(root, candidate):
        raise AccessDenied()

    real_root = os.path.realpath(root)
    if not is_within(real_root, os.path.realpath(candidate)):
        raise AccessDenied()
    return candidate


def relative_to_root(base_root: str, path: str) -> str:
    root = os.path.normpath(os.path.abspath(base_root))
    rel = os.path.relpath(path, root)
    if rel == ".":
        return ""
    return rel.replace(os.sep, "/")


def safe_filename(value: str | None) -> str:
    name = (value or "").replace("\\", "/").rsplit("/", 1)[-1].strip()
    if not name or name in {".", ".."} or INVALID_NAME_CHARS_RE.search(name):
        raise BadRequest("Invalid file name")
    return name


def unique_path(directory: str, filename: str, max_attempts: int = 1000) -> str:
    path = os.path.join(directory, filename)
    if not os.path.exists(path):
        return path
    stem, ext = os.path.splitext(filename)
    for idx in range(1, max_attempts):
        candidate = os.path.join(directory, f"{stem} ({idx}){ext}")
        if not os.path.exists(candidate):
            return candidate
    raise RuntimeError("Too many duplicate filenames")
