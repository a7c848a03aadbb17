from __future__ import annotations

from flask import current_app
from flask_limiter import Limiter

from ..utils.request import _get_rate_limit_key

limiter = Limiter(key_func=_get_rate_limit_key, default_limits=[])


def configured_limit(config_key: str, fallback: str = "1000 per hour"):
    """Limit string looked up on the current app, so tests and deployments can tune it."""

    def _limit() -> str:
        return current_app.config.get(config_key) or fallback

    return _limit


def init_rate_limiter(app) -> None:
    limiter.init_app(app)
