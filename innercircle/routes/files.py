from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from ..config import parse_int
from ..errors import BadRequest, FileServiceError
from ..middleware.rate_limit import configured_limit, limiter
from ..utils.streaming import build_file_response

logger = logging.getLogger("innercircle.files")


def create_files_blueprint(deps: dict):
    get_services = deps["get_services"]

    bp = Blueprint("files", __name__)

    @bp.route("/api/files")
    def list_files():
        services = get_services()
        listing = services.files.list_directory(
            request.args.get("subdir") or "",
            request.args.get("search") or "",
            parse_int(request.args.get("page"), 1, minimum=1),
        )
        resp = jsonify(listing)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    @bp.route("/api/files/download")
    @limiter.limit(configured_limit("RATE_LIMIT_DOWNLOADS"))
    def download_file():
        rel_path = request.args.get("file")
        if not rel_path:
            raise BadRequest("No file specified")

        services = get_services()
        full_path = services.files.resolve(rel_path)
        resp = build_file_response(
            full_path,
            range_header=request.headers.get("Range"),
            download=True,
            chunk_size=current_app.config.get("DOWNLOAD_CHUNK_BYTES", 2 * 1024 * 1024),
        )
        resp.headers["Cache-Control"] = "public, max-age=3600"
        return resp

    @bp.route("/api/create-folder", methods=["POST"])
    def create_folder():
        payload = request.get_json(silent=True) or {}
        services = get_services()
        try:
            result = services.files.create_folder(payload.get("path"), payload.get("folderName"))
        except FileServiceError:
            raise
        except OSError as exc:
            logger.error("Failed to create folder: %s", exc)
            return jsonify({"error": "Failed to create folder"}), 500
        return jsonify({"message": "Folder created successfully", **result})

    @bp.route("/api/upload", methods=["POST"])
    @limiter.limit(configured_limit("RATE_LIMIT_UPLOADS"))
    def upload_files():
        uploads = [f for f in request.files.getlist("files") if f and f.filename]
        services = get_services()
        try:
            saved = services.files.save_uploads(request.form.get("path") or "", uploads)
        except FileServiceError:
            raise
        except OSError as exc:
            logger.error("Failed to upload files: %s", exc)
            return jsonify({"error": "Failed to upload files"}), 500
        return jsonify(
            {
                "success": True,
                "message": f"{len(saved)} file(s) uploaded successfully",
                "files": saved,
            }
        )

    @bp.route("/api/delete-file", methods=["POST"])
    def delete_file():
        payload = request.get_json(silent=True) or {}
        services = get_services()
        try:
            services.files.delete_entry(payload.get("filePath"), payload.get("currentDirectory"))
        except FileServiceError:
            raise
        except OSError as exc:
            logger.error("Failed to delete file: %s", exc)
            return jsonify({"error": "Failed to delete file or directory"}), 500
        return jsonify({"message": "File or directory deleted successfully"})

    return bp
