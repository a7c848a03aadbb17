from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from ..errors import NotFound
from ..metrics import LINKS_CREATED
from ..utils.paths import normalize_rel_path
from .json_store import JsonArrayStore

logger = logging.getLogger("innercircle.links")


def is_valid_link_id(value: str | None) -> bool:
    if not value or len(value) != 36:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class LinkRecord:
    id: str
    target_path: str
    display_name: str
    is_directory: bool
    created_at: str

    @classmethod
    def from_dict(cls, data: dict) -> "LinkRecord":
        # Older files use filePath/fileName for file links and directoryPath for folders.
        target = data.get("targetPath") or data.get("filePath") or data.get("directoryPath") or ""
        target = normalize_rel_path(target)
        name = data.get("displayName") or data.get("fileName") or target.rsplit("/", 1)[-1]
        is_directory = data.get("isDirectory")
        if is_directory is None:
            is_directory = "directoryPath" in data
        return cls(
            id=str(data.get("id") or ""),
            target_path=target,
            display_name=str(name),
            is_directory=bool(is_directory),
            created_at=str(data.get("createdAt") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "targetPath": self.target_path,
            "displayName": self.display_name,
            "isDirectory": self.is_directory,
            "createdAt": self.created_at,
        }


class LinkRegistry:
    def __init__(self, path: str, kind: str = "file"):
        self.kind = kind
        self.store = JsonArrayStore(path)

    def create(self, target_path: str, display_name: str, is_directory: bool) -> LinkRecord:
        record = LinkRecord(
            id=str(uuid.uuid4()),
            target_path=normalize_rel_path(target_path),
            display_name=display_name,
            is_directory=bool(is_directory),
            created_at=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        )
        self.store.append(record.to_dict())
        if LINKS_CREATED is not None:
            LINKS_CREATED.labels(self.kind).inc()
        logger.info(
            "Created %s link %s -> %s",
            self.kind,
            record.id,
            record.target_path,
            extra={"link_id": record.id},
        )
        return record

    def lookup(self, link_id: str) -> LinkRecord:
        if not is_valid_link_id(link_id):
            raise NotFound("Link not found")
        data = self.store.find(lambda item: item.get("id") == link_id)
        if data is None:
            raise NotFound("Link not found")
        return LinkRecord.from_dict(data)

    def all(self) -> list[LinkRecord]:
        return [LinkRecord.from_dict(item) for item in self.store.read()]
