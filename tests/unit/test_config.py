import os

from innercircle.config import (
    DEFAULT_PUBLIC_PATH_PREFIXES,
    load_flask_config,
    parse_bool,
    parse_int,
    parse_ip_ranges,
    split_list,
)
from innercircle.utils.config_validation import validate_config


def test_parse_helpers():
    assert parse_bool("Yes") is True
    assert parse_bool("0") is False
    assert parse_bool(None) is False
    assert parse_bool(True) is True
    assert parse_int("12", 5) == 12
    assert parse_int("x", 5) == 5
    assert parse_int("1", 4096, minimum=4096) == 4096
    assert split_list(" a, b  c ") == ["a", "b", "c"]
    assert split_list(None) == []


def test_parse_ip_ranges():
    assert parse_ip_ranges("192.168.2.1-192.168.2.255, 10.0.0.1-10.0.0.9") == [
        ("192.168.2.1", "192.168.2.255"),
        ("10.0.0.1", "10.0.0.9"),
    ]
    assert parse_ip_ranges("10.0.0.1 -") == []
    assert parse_ip_ranges("") == []


def test_load_flask_config_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("INNERCIRCLE_FILE_DIRECTORY", str(tmp_path / "lib"))
    monkeypatch.setenv("INNERCIRCLE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("INNERCIRCLE_PUBLIC_BASE_URL", "https://files.example.test/")
    monkeypatch.setenv("INNERCIRCLE_IP_WHITELIST", "10.0.0.7, 10.0.0.8")
    monkeypatch.delenv("INNERCIRCLE_IP_RANGES", raising=False)
    monkeypatch.delenv("INNERCIRCLE_PUBLIC_PATH_PREFIXES", raising=False)

    config = load_flask_config()

    assert config["FILE_DIRECTORY"] == str(tmp_path / "lib")
    assert config["PUBLIC_BASE_URL"] == "https://files.example.test"
    assert config["PUBLIC_LINKS_FILE"] == os.path.join(str(tmp_path / "data"), "public-links.json")
    assert config["SUSPICIOUS_LOG_PATH"] == os.path.join(str(tmp_path / "data"), "suspiciousips.list")
    assert config["IP_WHITELIST"] == ["10.0.0.7", "10.0.0.8"]
    assert config["IP_RANGES"] == [("192.168.2.1", "192.168.2.255")]
    assert config["PUBLIC_PATH_PREFIXES"] == DEFAULT_PUBLIC_PATH_PREFIXES
    assert config["SUSPICIOUS_FLUSH_SECONDS"] == 300


def test_public_prefixes_override(monkeypatch):
    monkeypatch.setenv("INNERCIRCLE_PUBLIC_PATH_PREFIXES", "/share/,/api/")
    assert load_flask_config()["PUBLIC_PATH_PREFIXES"] == ("/share/", "/api/")


def test_validate_config(tmp_path, caplog):
    assert validate_config({"FILE_DIRECTORY": str(tmp_path), "IP_RANGES": [("a", "b")]}) == []
    assert "PUBLIC_BASE_URL not set" in caplog.text

    problems = validate_config({"FILE_DIRECTORY": str(tmp_path / "missing")})
    assert len(problems) == 1
    assert "No whitelisted IPs or ranges" in caplog.text


def test_proxy_headers_untrusted_by_default(monkeypatch):
    monkeypatch.delenv("INNERCIRCLE_TRUSTED_PROXY_HEADERS", raising=False)
    assert load_flask_config()["TRUSTED_PROXY_HEADERS"] == []

    monkeypatch.setenv("INNERCIRCLE_TRUSTED_PROXY_HEADERS", "X-Real-IP")
    assert load_flask_config()["TRUSTED_PROXY_HEADERS"] == ["X-Real-IP"]
