from __future__ import annotations

import logging
import os

from flask import Blueprint, current_app, jsonify, redirect, request

from ..config import parse_bool
from ..errors import BadRequest, FileServiceError, NotFound
from ..middleware.rate_limit import configured_limit, limiter
from ..services.links import is_valid_link_id
from ..utils.paths import normalize_rel_path
from ..utils.streaming import build_file_response

logger = logging.getLogger("innercircle.links")


def _public_base_url() -> str:
    return current_app.config.get("PUBLIC_BASE_URL") or request.host_url.rstrip("/")


def _public_url(link_id: str, is_directory: bool) -> str:
    page = "media-gallery" if is_directory else "download"
    return f"{_public_base_url()}/{page}/{link_id}"


def create_links_blueprint(deps: dict):
    get_services = deps["get_services"]

    bp = Blueprint("links", __name__)

    def _find_directory_link(link_id: str):
        services = get_services()
        try:
            return services.directory_links.lookup(link_id)
        except NotFound:
            record = services.file_links.lookup(link_id)
            if not record.is_directory:
                raise
            return record

    def _require_existing(rel_path: str) -> str:
        full_path = get_services().files.resolve(rel_path)
        if not os.path.exists(full_path):
            raise NotFound("File or directory not found")
        return full_path

    @bp.route("/api/create-public-link", methods=["POST"])
    @limiter.limit(configured_limit("RATE_LIMIT_LINK_CREATE"))
    def create_public_link():
        payload = request.get_json(silent=True) or {}
        target = payload.get("targetPath") or payload.get("filePath")
        if not target:
            raise BadRequest("Missing target path")

        full_path = _require_existing(target)
        is_directory = payload.get("isDirectory")
        if is_directory is None:
            is_directory = os.path.isdir(full_path)
        is_directory = parse_bool(is_directory)
        display_name = (
            payload.get("displayName") or payload.get("fileName") or os.path.basename(full_path)
        )

        try:
            record = get_services().file_links.create(target, str(display_name), is_directory)
        except FileServiceError:
            raise
        except OSError as exc:
            logger.error("Failed to create public link: %s", exc)
            return jsonify({"error": "Failed to create public link"}), 500
        return jsonify({"id": record.id, "publicLink": _public_url(record.id, is_directory)})

    @bp.route("/api/create-public-directory-link", methods=["POST"])
    @limiter.limit(configured_limit("RATE_LIMIT_LINK_CREATE"))
    def create_public_directory_link():
        payload = request.get_json(silent=True) or {}
        directory = payload.get("directoryPath")
        if directory is None:
            raise BadRequest("Missing directory path")

        full_path = _require_existing(directory)
        if not os.path.isdir(full_path):
            raise BadRequest("Not a directory")

        rel = normalize_rel_path(directory)
        name = rel.rsplit("/", 1)[-1] if rel else os.path.basename(full_path)
        try:
            record = get_services().directory_links.create(rel, name, True)
        except FileServiceError:
            raise
        except OSError as exc:
            logger.error("Failed to create public directory link: %s", exc)
            return jsonify({"error": "Failed to create public directory link"}), 500
        return jsonify({"id": record.id, "publicDirectoryLink": _public_url(record.id, True)})

    @bp.route("/api/public-download/<link_id>")
    @limiter.limit(configured_limit("RATE_LIMIT_DOWNLOADS"))
    def public_download(link_id: str):
        services = get_services()
        record = services.file_links.lookup(link_id)
        if record.is_directory:
            raise BadRequest("Link points to a directory")

        full_path = services.files.resolve(record.target_path)
        return build_file_response(
            full_path,
            range_header=request.headers.get("Range"),
            download=parse_bool(request.args.get("download")),
            download_name=record.display_name,
            chunk_size=current_app.config.get("DOWNLOAD_CHUNK_BYTES", 2 * 1024 * 1024),
        )

    @bp.route("/api/public-links/<link_id>")
    def public_link_info(link_id: str):
        record = get_services().file_links.lookup(link_id)
        return jsonify(
            {
                "id": record.id,
                "filePath": record.target_path,
                "fileName": record.display_name,
                "isDirectory": record.is_directory,
                "createdAt": record.created_at,
                "publicLink": _public_url(record.id, record.is_directory),
            }
        )

    @bp.route("/api/media-gallery/<link_id>")
    def media_gallery(link_id: str):
        record = _find_directory_link(link_id)
        gallery = get_services().files.list_gallery(record)
        resp = jsonify(gallery)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    @bp.route("/download/<link_id>")
    def download_page(link_id: str):
        if not is_valid_link_id(link_id):
            raise NotFound("Link not found")
        return redirect(f"/api/public-download/{link_id}?download=true", code=302)

    @bp.route("/media-gallery/<link_id>")
    def gallery_page(link_id: str):
        if not is_valid_link_id(link_id):
            raise NotFound("Link not found")
        return redirect(f"/api/media-gallery/{link_id}", code=302)

    return bp
