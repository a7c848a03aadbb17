import pytest
from flask import Flask

from innercircle.utils.request import _get_rate_limit_key, _get_request_ip, _normalize_ip


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10.0.0.7", "10.0.0.7"),
        (" 10.0.0.7 ", "10.0.0.7"),
        ("10.0.0.7, 172.16.0.1", "10.0.0.7"),
        ("10.0.0.7:51234", "10.0.0.7"),
        ("[2001:db8::1]:443", "2001:db8::1"),
        ("::ffff:192.168.2.40", "192.168.2.40"),
        ("2001:db8::1", "2001:db8::1"),
        ("unknown", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_ip(raw, expected):
    assert _normalize_ip(raw) == expected


@pytest.fixture
def app():
    app = Flask(__name__)
    app.config["TRUSTED_PROXY_HEADERS"] = ["X-Real-IP", "X-Forwarded-For"]
    return app


def test_proxy_header_preferred(app):
    with app.test_request_context(
        "/", headers={"X-Real-IP": "192.168.2.5"}, environ_base={"REMOTE_ADDR": "127.0.0.1"}
    ):
        assert _get_request_ip() == "192.168.2.5"


def test_forwarded_for_first_hop(app):
    with app.test_request_context(
        "/", headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}, environ_base={"REMOTE_ADDR": "127.0.0.1"}
    ):
        assert _get_request_ip() == "203.0.113.9"


def test_garbage_header_falls_back_to_peer(app):
    with app.test_request_context(
        "/", headers={"X-Real-IP": "nonsense"}, environ_base={"REMOTE_ADDR": "10.0.0.7"}
    ):
        assert _get_request_ip() == "10.0.0.7"


def test_untrusted_headers_are_ignored(app):
    app.config["TRUSTED_PROXY_HEADERS"] = []
    with app.test_request_context(
        "/", headers={"X-Real-IP": "10.0.0.7"}, environ_base={"REMOTE_ADDR": "203.0.113.9"}
    ):
        assert _get_request_ip() == "203.0.113.9"
        assert _get_rate_limit_key() == "203.0.113.9"


def test_rate_limit_key_outside_request():
    assert _get_rate_limit_key() == "unknown"


def test_headers_ignored_without_trusted_proxy():
    app = Flask(__name__)
    with app.test_request_context(
        "/", headers={"X-Real-IP": "10.0.0.7", "X-Forwarded-For": "10.0.0.7"}, environ_base={"REMOTE_ADDR": "203.0.113.9"}
    ):
        assert _get_request_ip() == "203.0.113.9"
