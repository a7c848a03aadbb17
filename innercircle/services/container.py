from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from .files import FileService
from .links import LinkRegistry
from .suspicious import SuspiciousRequestLog
from .user_content import UserContentRegistry


@dataclass
class ServiceContainer:
    files: FileService
    file_links: LinkRegistry
    directory_links: LinkRegistry
    user_content: UserContentRegistry
    suspicious_log: SuspiciousRequestLog


def build_services(config: dict) -> ServiceContainer:
    user_content = UserContentRegistry(
        config["USER_DIRECTORIES_FILE"], config["USER_FILES_FILE"]
    )
    return ServiceContainer(
        files=FileService(
            config["FILE_DIRECTORY"],
            user_content,
            page_size=config.get("LIST_PAGE_SIZE", 1000),
            upload_max_bytes=config.get("UPLOAD_MAX_BYTES", 0),
        ),
        file_links=LinkRegistry(config["PUBLIC_LINKS_FILE"], kind="file"),
        directory_links=LinkRegistry(config["PUBLIC_DIRECTORY_LINKS_FILE"], kind="directory"),
        user_content=user_content,
        suspicious_log=SuspiciousRequestLog(
            config["SUSPICIOUS_LOG_PATH"], config.get("SUSPICIOUS_FLUSH_SECONDS", 300)
        ),
    )


def init_services(app, services: ServiceContainer | None = None) -> ServiceContainer:
    container = services or build_services(app.config)
    app.extensions["services"] = container
    return container


def get_services() -> ServiceContainer:
    container = current_app.extensions.get("services")
    if container is None:
        container = build_services(current_app.config)
        current_app.extensions["services"] = container
    return container
