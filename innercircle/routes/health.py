from __future__ import annotations

import os

from flask import Blueprint, current_app, jsonify

from ..middleware.rate_limit import limiter

health_bp = Blueprint("health", __name__)

VERSION = os.environ.get("INNERCIRCLE_VERSION", "0.1.0-dev")


@health_bp.route("/health")
@limiter.exempt
def health_check():
    status = {"status": "healthy", "services": {}}
    overall_healthy = True

    base_root = current_app.config.get("FILE_DIRECTORY") or ""
    if os.path.isdir(base_root) and os.access(base_root, os.R_OK):
        status["services"]["file_directory"] = "ok"
    else:
        status["services"]["file_directory"] = "missing or unreadable"
        overall_healthy = False

    data_dir = current_app.config.get("DATA_DIR") or ""
    if os.path.isdir(data_dir) and os.access(data_dir, os.W_OK):
        status["services"]["data_dir"] = "ok"
    else:
        status["services"]["data_dir"] = "missing or read-only"
        overall_healthy = False

    if not overall_healthy:
        status["status"] = "unhealthy"
        return jsonify(status), 503

    return jsonify(status)


@health_bp.route("/version")
def version():
    return jsonify(
        {
            "version": VERSION,
            "release": os.environ.get("INNERCIRCLE_RELEASE", "none"),
            "environment": os.environ.get("INNERCIRCLE_ENV", "production"),
        }
    )
