import os
import sys
import tempfile

BASE_DIR = tempfile.mkdtemp(prefix="innercircle-tests-")

os.environ["INNERCIRCLE_FILE_DIRECTORY"] = os.path.join(BASE_DIR, "library")
os.environ["INNERCIRCLE_DATA_DIR"] = os.path.join(BASE_DIR, "data")
os.environ["INNERCIRCLE_PUBLIC_BASE_URL"] = "https://media.example.test"
os.environ["INNERCIRCLE_IP_WHITELIST"] = "10.0.0.7"
os.environ["INNERCIRCLE_IP_RANGES"] = "192.168.2.1-192.168.2.255"
os.environ["INNERCIRCLE_LOG_FORMAT"] = "plain"
os.environ["INNERCIRCLE_METRICS_ENABLED"] = "false"
os.environ["INNERCIRCLE_RATE_LIMIT_ENABLED"] = "false"
os.environ["INNERCIRCLE_OTEL_ENABLED"] = "false"
os.environ["INNERCIRCLE_TRUSTED_PROXY_HEADERS"] = "X-Real-IP,X-Forwarded-For"

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest


@pytest.fixture()
def library(tmp_path, monkeypatch):
    root = tmp_path / "library"
    data = tmp_path / "data"
    root.mkdir()
    data.mkdir()
    monkeypatch.setenv("INNERCIRCLE_FILE_DIRECTORY", str(root))
    monkeypatch.setenv("INNERCIRCLE_DATA_DIR", str(data))
    return root


@pytest.fixture()
def data_dir(library):
    return library.parent / "data"


@pytest.fixture()
def app(library):
    from innercircle.server import create_app

    app = create_app({"TESTING": True, "SUSPICIOUS_FLUSH_ENABLED": False})
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def services(app):
    return app.extensions["services"]


@pytest.fixture()
def sample_bytes():
    return (bytes(range(256)) * 4)[:1000]
