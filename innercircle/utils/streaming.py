from __future__ import annotations

import logging
import os
import re
import stat
from urllib.parse import quote

from flask import Response

from ..errors import NotFound, RangeNotSatisfiable
from ..metrics import BYTES_STREAMED

logger = logging.getLogger("innercircle.streaming")

DEFAULT_CHUNK_SIZE = 2 * 1024 * 1024
RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")

CONTENT_TYPES = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",
    ".avi": "video/x-msvideo",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".zip": "application/zip",
    ".rar": "application/x-rar-compressed",
    ".7z": "application/x-7z-compressed",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
}
FALLBACK_CONTENT_TYPE = "application/octet-stream"


def content_type_for(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    return CONTENT_TYPES.get(ext, FALLBACK_CONTENT_TYPE)


def parse_range_header(value: str | None, size: int) -> tuple[int, int] | None:
    """Parse a single ``bytes=`` range against a file of ``size`` bytes.

    Returns an inclusive ``(start, end)`` pair, or ``None`` when the header is
    absent or not a single well-formed byte range (the full body is served).
    ``end`` is clamped to the last byte. A start at or past the end of the file,
    or a start after the end, raises :class:`RangeNotSatisfiable`.
    """
    if not value:
        return None
    match = RANGE_RE.fullmatch(value.strip())
    if not match:
        return None
    start_raw, end_raw = match.groups()

    if not start_raw:
        if not end_raw:
            return None
        suffix = int(end_raw)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiable(size)
        return max(0, size - suffix), size - 1

    start = int(start_raw)
    end = int(end_raw) if end_raw else size - 1
    if start >= size or start > end:
        raise RangeNotSatisfiable(size)
    return start, min(end, size - 1)


def content_disposition(filename: str, disposition: str = "attachment") -> str:
    ascii_name = filename.encode("ascii", "ignore").decode("ascii")
    ascii_name = ascii_name.replace("\\", "_").replace('"', "_") or "download"
    value = f'{disposition}; filename="{ascii_name}"'
    if ascii_name != filename:
        value += f"; filename*=UTF-8''{quote(filename, safe='')}"
    return value


def iter_file_range(path: str, start: int, length: int, chunk_size: int = DEFAULT_CHUNK_SIZE, status: int = 200):
    sent = 0
    try:
        with open(path, "rb") as handle:
            handle.seek(start)
            remaining = length
            while remaining > 0:
                chunk = handle.read(min(chunk_size, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                sent += len(chunk)
                yield chunk
    except OSError as exc:
        logger.error("Streaming %s aborted: %s", path, exc, extra={"bytes_sent": sent})
        raise
    finally:
        if BYTES_STREAMED is not None and sent:
            BYTES_STREAMED.labels(str(status)).inc(sent)


def build_file_response(
    path: str,
    *,
    range_header: str | None = None,
    download: bool = False,
    download_name: str | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Response:
    try:
        st = os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        raise NotFound("File not found") from None
    if not stat.S_ISREG(st.st_mode):
        raise NotFound("File not found")

    size = st.st_size
    name = download_name or os.path.basename(path)
    byte_range = parse_range_header(range_header, size)

    if byte_range is None:
        status, start, length = 200, 0, size
    else:
        start, end = byte_range
        status, length = 206, end - start + 1

    resp = Response(
        iter_file_range(path, start, length, chunk_size, status),
        status=status,
        content_type=content_type_for(name),
        direct_passthrough=True,
    )
    resp.headers["Content-Length"] = str(length)
    resp.headers["Accept-Ranges"] = "bytes"
    if byte_range is not None:
        resp.headers["Content-Range"] = f"bytes {start}-{start + length - 1}/{size}"
    if download:
        resp.headers["Content-Disposition"] = content_disposition(name)
    return resp
