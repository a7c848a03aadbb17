from __future__ import annotations

import uuid
from datetime import UTC, datetime

from ..utils.paths import normalize_rel_path
from .json_store import JsonArrayStore


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _is_same_or_nested(path: str, parent: str) -> bool:
    return path == parent or path.startswith(parent + "/")


class UserContentRegistry:
    """Tracks folders and files created through this server.

    Only tracked content may be deleted, so the pre-existing library under the
    base root cannot be removed through the API.
    """

    def __init__(self, directories_path: str, files_path: str):
        self.directories = JsonArrayStore(directories_path)
        self.files = JsonArrayStore(files_path)

    def add_directory(self, rel_path: str) -> str:
        entry_id = str(uuid.uuid4())
        self.directories.append(
            {"id": entry_id, "path": normalize_rel_path(rel_path), "createdAt": _now_iso()}
        )
        return entry_id

    def add_file(self, rel_path: str) -> str:
        entry_id = str(uuid.uuid4())
        self.files.append(
            {"id": entry_id, "path": normalize_rel_path(rel_path), "createdAt": _now_iso()}
        )
        return entry_id

    def directory_is_user_content(self, rel_path: str) -> bool:
        """True if ``rel_path`` is a user folder or sits inside one."""
        target = normalize_rel_path(rel_path)
        if not target:
            return False
        return any(
            _is_same_or_nested(target, normalize_rel_path(item.get("path")))
            for item in self.directories.read()
            if item.get("path")
        )

    def file_is_user_content(self, rel_path: str) -> bool:
        target = normalize_rel_path(rel_path)
        if any(normalize_rel_path(item.get("path")) == target for item in self.files.read()):
            return True
        parent = target.rsplit("/", 1)[0] if "/" in target else ""
        return self.directory_is_user_content(parent)

    def forget_directory(self, rel_path: str) -> None:
        target = normalize_rel_path(rel_path)
        self.directories.remove_where(
            lambda item: _is_same_or_nested(normalize_rel_path(item.get("path")), target)
        )
        self.files.remove_where(
            lambda item: _is_same_or_nested(normalize_rel_path(item.get("path")), target)
        )

    def forget_file(self, rel_path: str) -> None:
        target = normalize_rel_path(rel_path)
        self.files.remove_where(lambda item: normalize_rel_path(item.get("path")) == target)
