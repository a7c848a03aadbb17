from __future__ import annotations

import os
import re
from typing import Any

DEFAULT_PUBLIC_PATH_PREFIXES = (
    "/media-gallery/",
    "/download/",
    "/thumbnails/",
    "/static/",
    "/api/",
)
DEFAULT_IP_RANGES = "192.168.2.1-192.168.2.255"
# Client-supplied headers are only honoured when listed here, i.e. behind a
# proxy that overwrites them (e.g. "X-Real-IP,X-Forwarded-For").
DEFAULT_TRUSTED_PROXY_HEADERS = ""


def parse_bool(value) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def parse_int(value, default: int, minimum: int | None = None) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = default
    if minimum is not None:
        parsed = max(minimum, parsed)
    return parsed


def split_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [part for part in re.split(r"[,\s]+", value.strip()) if part]


def parse_ip_ranges(value: str | None) -> list[tuple[str, str]]:
    """Parse ``start-end`` pairs, e.g. ``192.168.2.1-192.168.2.255``."""
    ranges = []
    for part in split_list(value):
        if "-" not in part:
            continue
        start, _, end = part.partition("-")
        start, end = start.strip(), end.strip()
        if start and end:
            ranges.append((start, end))
    return ranges


def _env(name: str, default: str | None = None) -> str | None:
    return os.environ.get(f"INNERCIRCLE_{name}", default)


def load_flask_config() -> dict[str, Any]:
    data_dir = (_env("DATA_DIR") or os.getcwd()).strip()
    prefixes = split_list(_env("PUBLIC_PATH_PREFIXES"))
    return {
        "FILE_DIRECTORY": os.path.abspath(
            (_env("FILE_DIRECTORY") or os.path.join(os.getcwd(), "innercircle")).strip()
        ),
        "PUBLIC_BASE_URL": (_env("PUBLIC_BASE_URL") or "").strip().rstrip("/"),
        "DATA_DIR": data_dir,
        "PUBLIC_LINKS_FILE": os.path.join(data_dir, "public-links.json"),
        "PUBLIC_DIRECTORY_LINKS_FILE": os.path.join(data_dir, "public-directory-links.json"),
        "USER_DIRECTORIES_FILE": os.path.join(data_dir, "user-directories.json"),
        "USER_FILES_FILE": os.path.join(data_dir, "user-files.json"),
        "IP_WHITELIST": split_list(_env("IP_WHITELIST")),
        "IP_RANGES": parse_ip_ranges(_env("IP_RANGES", DEFAULT_IP_RANGES)),
        "PUBLIC_PATH_PREFIXES": tuple(prefixes) if prefixes else DEFAULT_PUBLIC_PATH_PREFIXES,
        "TRUSTED_PROXY_HEADERS": split_list(
            _env("TRUSTED_PROXY_HEADERS", DEFAULT_TRUSTED_PROXY_HEADERS)
        ),
        "SUSPICIOUS_LOG_PATH": (
            _env("SUSPICIOUS_LOG_PATH") or os.path.join(data_dir, "suspiciousips.list")
        ).strip(),
        "SUSPICIOUS_FLUSH_SECONDS": parse_int(_env("SUSPICIOUS_FLUSH_SECONDS"), 300, minimum=1),
        "DOWNLOAD_CHUNK_BYTES": parse_int(
            _env("DOWNLOAD_CHUNK_BYTES"), 2 * 1024 * 1024, minimum=4096
        ),
        "LIST_PAGE_SIZE": parse_int(_env("LIST_PAGE_SIZE"), 1000, minimum=1),
        "UPLOAD_MAX_BYTES": parse_int(_env("UPLOAD_MAX_BYTES"), 0, minimum=0),
        "RATELIMIT_STORAGE_URI": _env("RATE_LIMIT_STORAGE_URI", "memory://"),
        "RATELIMIT_ENABLED": parse_bool(_env("RATE_LIMIT_ENABLED", "true")),
        "RATE_LIMIT_DOWNLOADS": _env("RATE_LIMIT_DOWNLOADS", "1000 per hour"),
        "RATE_LIMIT_UPLOADS": _env("RATE_LIMIT_UPLOADS", "100 per hour"),
        "RATE_LIMIT_LINK_CREATE": _env("RATE_LIMIT_LINK_CREATE", "60 per hour"),
    }
