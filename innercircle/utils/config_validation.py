from __future__ import annotations

import logging
import os

logger = logging.getLogger("innercircle.config")


def validate_config(config: dict) -> list[str]:
    problems = []

    base_root = config.get("FILE_DIRECTORY")
    if not base_root or not os.path.isdir(base_root):
        problems.append(f"INNERCIRCLE_FILE_DIRECTORY is not a directory: {base_root}")

    if not config.get("PUBLIC_BASE_URL"):
        logger.warning(
            "INNERCIRCLE_PUBLIC_BASE_URL not set; share links will use the request host."
        )

    if config.get("TRUSTED_PROXY_HEADERS"):
        logger.info(
            "Taking the client IP from %s; the fronting proxy must overwrite these headers.",
            ", ".join(config["TRUSTED_PROXY_HEADERS"]),
        )

    if not config.get("IP_WHITELIST") and not config.get("IP_RANGES"):
        logger.warning("No whitelisted IPs or ranges; every private path will be denied.")

    for problem in problems:
        logger.error(problem)
    return problems
