from __future__ import annotations

import logging
import os
import shutil
import stat
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import ClassVar, Union

from ..errors import AccessDenied, BadRequest, Conflict, NotFound, PayloadTooLarge
from ..utils.paths import (
    normalize_rel_path,
    relative_to_root,
    resolve_within_root,
    safe_filename,
    unique_path,
)
from .links import LinkRecord
from .user_content import UserContentRegistry

logger = logging.getLogger("innercircle.files")

AUDIO_EXTS = {".mp3", ".wav", ".ogg", ".flac", ".m4a", ".aac"}
VIDEO_EXTS = {".mp4", ".webm", ".avi", ".mov", ".mkv"}
IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp"}

COPY_CHUNK_BYTES = 1024 * 1024


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, UTC).isoformat().replace("+00:00", "Z")


def media_type(filename: str) -> str:
    ext = os.path.splitext(filename)[1].lower()
    if ext in AUDIO_EXTS:
        return "audio"
    if ext in VIDEO_EXTS:
        return "video"
    if ext in IMAGE_EXTS:
        return "image"
    return "other"


@dataclass(frozen=True)
class _Entry:
    name: str
    path: str
    size: int
    date_added: str
    last_modified: str

    kind: ClassVar[str] = "file"

    @property
    def is_directory(self) -> bool:
        return self.kind == "directory"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "size": self.size,
            "dateAdded": self.date_added,
            "lastModified": self.last_modified,
            "isDirectory": self.is_directory,
            "type": self.kind,
        }


@dataclass(frozen=True)
class FileItem(_Entry):
    kind: ClassVar[str] = "file"


@dataclass(frozen=True)
class DirectoryItem(_Entry):
    kind: ClassVar[str] = "directory"


FileEntry = Union[FileItem, DirectoryItem]


def _copy_stream_with_limit(src, dst, max_bytes: int | None) -> int:
    total = 0
    while True:
        chunk = src.read(COPY_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if max_bytes and total > max_bytes:
            raise PayloadTooLarge()
        dst.write(chunk)
    return total


class FileService:
    def __init__(
        self,
        base_root: str,
        user_content: UserContentRegistry,
        *,
        page_size: int = 1000,
        upload_max_bytes: int = 0,
    ):
        self.base_root = os.path.normpath(os.path.abspath(base_root))
        self.user_content = user_content
        self.page_size = page_size
        self.upload_max_bytes = upload_max_bytes

    def resolve(self, rel_path: str | None) -> str:
        return resolve_within_root(self.base_root, rel_path)

    def _entry_for(self, full_path: str, name: str) -> FileEntry:
        st = os.stat(full_path)
        created = getattr(st, "st_birthtime", None) or st.st_ctime
        cls = DirectoryItem if stat.S_ISDIR(st.st_mode) else FileItem
        return cls(
            name=name,
            path=relative_to_root(self.base_root, full_path),
            size=st.st_size,
            date_added=_iso(created),
            last_modified=_iso(st.st_mtime),
        )

    def _scan(self, directory: str) -> list[FileEntry]:
        if not os.path.isdir(directory):
            raise NotFound("Directory not found")
        entries: list[FileEntry] = []
        with os.scandir(directory) as it:
            for dirent in it:
                try:
                    entries.append(self._entry_for(dirent.path, dirent.name))
                except OSError as exc:
                    logger.debug("Skipping unreadable entry %s: %s", dirent.path, exc)
        entries.sort(key=lambda e: (not e.is_directory, e.name.lower()))
        return entries

    def list_directory(self, subdir: str | None = "", search: str | None = "", page: int = 1) -> dict:
        entries = self._scan(self.resolve(subdir))

        needle = (search or "").strip().lower()
        if needle:
            entries = [entry for entry in entries if needle in entry.name.lower()]

        page = max(1, page)
        start = (page - 1) * self.page_size
        return {
            "files": [entry.to_dict() for entry in entries[start : start + self.page_size]],
            "currentPage": page,
            "totalCount": len(entries),
            "itemsPerPage": self.page_size,
        }

    def create_folder(self, rel_path: str | None, folder_name: str | None) -> dict:
        if rel_path is None or not folder_name:
            raise BadRequest("Missing path or folder name")
        name = safe_filename(folder_name)
        parent = normalize_rel_path(rel_path)
        target = self.resolve(f"{parent}/{name}" if parent else name)

        os.makedirs(os.path.dirname(target), exist_ok=True)
        rel = relative_to_root(self.base_root, target)
        try:
            os.mkdir(target)
        except FileExistsError:
            # Only folders made by this call are registered as user content.
            raise Conflict(f"Folder already exists: {rel}") from None
        folder_id = self.user_content.add_directory(rel)
        logger.info("Created folder %s", rel)
        return {"folderId": folder_id, "path": rel}

    def _open_new_file(self, directory: str, name: str, attempts: int = 5):
        for _ in range(attempts):
            dest = unique_path(directory, name)
            try:
                return dest, open(dest, "xb")
            except FileExistsError:
                logger.debug("Lost race for %s, picking another name", dest)
        raise RuntimeError("Too many duplicate filenames")

    def save_uploads(self, rel_path: str | None, uploads: list) -> list[str]:
        if not uploads:
            raise BadRequest("No files uploaded")
        directory = self.resolve(rel_path)
        names = [safe_filename(getattr(upload, "filename", None)) for upload in uploads]
        os.makedirs(directory, exist_ok=True)

        saved = []
        for upload, name in zip(uploads, names):
            dest, handle = self._open_new_file(directory, name)
            try:
                with handle:
                    _copy_stream_with_limit(upload.stream, handle, self.upload_max_bytes)
            except BaseException:
                try:
                    os.remove(dest)
                except OSError:
                    pass
                raise
            rel = relative_to_root(self.base_root, dest)
            self.user_content.add_file(rel)
            saved.append(os.path.basename(dest))
            logger.info("Stored upload %s", rel)
        return saved

    def delete_entry(self, file_path: str | None, current_directory: str | None) -> str:
        if not file_path or current_directory is None:
            raise BadRequest("Missing file path or current directory")
        target = self.resolve(file_path)
        current = self.resolve(current_directory)

        if target == self.base_root:
            raise AccessDenied("Cannot delete the base directory.")
        if target == current:
            raise AccessDenied("Cannot delete current directory.")
        if not os.path.lexists(target):
            raise NotFound("File or directory not found")

        rel = relative_to_root(self.base_root, target)
        if os.path.isdir(target) and not os.path.islink(target):
            if not self.user_content.directory_is_user_content(rel):
                logger.warning("Refused delete of library directory %s", rel)
                raise AccessDenied("Access denied. Can only delete user-generated content.")
            shutil.rmtree(target)
            self.user_content.forget_directory(rel)
        else:
            if not self.user_content.file_is_user_content(rel):
                logger.warning("Refused delete of library file %s", rel)
                raise AccessDenied("Access denied. Can only delete user-added files.")
            os.remove(target)
            self.user_content.forget_file(rel)

        logger.info("Deleted %s", rel)
        return rel

    def list_gallery(self, link: LinkRecord) -> dict:
        if not link.is_directory:
            raise NotFound("Link not found")
        directory = self.resolve(link.target_path)
        files = []
        for entry in self._scan(directory):
            if entry.is_directory:
                continue
            item = entry.to_dict()
            item["type"] = media_type(entry.name)
            files.append(item)
        folder_name = os.path.basename(directory) if link.target_path else ""
        return {"files": files, "folderName": folder_name}
