from __future__ import annotations

import ipaddress
import re

from flask import current_app, has_app_context, request

from ..config import DEFAULT_TRUSTED_PROXY_HEADERS, split_list


def _normalize_ip(value: str | None) -> str | None:
    if not value:
        return None

    value = (value.split(",")[0] if "," in value else value).strip()

    if value.startswith("[") and "]" in value:
        value = value[1 : value.index("]")]
    elif re.fullmatch(r"\d+\.\d+\.\d+\.\d+:\d+", value):
        value = value.split(":")[0]

    try:
        addr = ipaddress.ip_address(value)
    except ValueError:
        return None
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped
    return str(addr)


def _trusted_proxy_headers() -> list[str]:
    if has_app_context():
        headers = current_app.config.get("TRUSTED_PROXY_HEADERS")
        if headers is not None:
            return list(headers)
    return split_list(DEFAULT_TRUSTED_PROXY_HEADERS)


def _get_request_ip() -> str | None:
    candidates = [request.headers.get(name) for name in _trusted_proxy_headers()]
    candidates.append(request.remote_addr)

    for candidate in candidates:
        ip = _normalize_ip(candidate)
        if ip:
            return ip
    return None


def _get_rate_limit_key() -> str:
    try:
        ip = _get_request_ip()
    except RuntimeError:
        ip = None
    return ip or "unknown"
