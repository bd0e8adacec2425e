import os

import pytest

from appdeployer.services.validation import (
    ValidationService,
    derive_repo_name,
    expand_key_path,
    is_valid_ipv4,
    is_valid_port,
    is_valid_ssh_key,
    is_valid_url,
)


@pytest.mark.parametrize(
    "value",
    ["https://github.com/acme/widget.git", "http://git.internal/team/app"],
)
def test_url_validator_accepts_http_and_https(value):
    assert is_valid_url(value)


@pytest.mark.parametrize(
    "value",
    ["", "git@github.com:acme/widget.git", "ftp://example.com/repo", "ssh://host/repo", "github.com/acme"],
)
def test_url_validator_rejects_other_schemes(value):
    assert not is_valid_url(value)


@pytest.mark.parametrize("value", ["0.0.0.0", "192.168.1.10", "255.255.255.255", "10.0.0.1"])
def test_ipv4_validator_accepts_dotted_quads(value):
    assert is_valid_ipv4(value)


@pytest.mark.parametrize(
    "value",
    ["256.1.1.1", "1.2.3", "1.2.3.4.5", "a.b.c.d", "1.2.3.-4", "1..3.4", "", "1.2.3.1000", " 1.2.3.4"],
)
def test_ipv4_validator_rejects_malformed_addresses(value):
    assert not is_valid_ipv4(value)


@pytest.mark.parametrize("value", ["1", "80", "3000", "65535", 8080])
def test_port_validator_accepts_range(value):
    assert is_valid_port(value)


@pytest.mark.parametrize("value", ["0", "65536", "-1", "80a", "", None, "3.5", " 80"])
def test_port_validator_rejects_out_of_range_and_garbage(value):
    assert not is_valid_port(value)


def test_ssh_key_validator_requires_regular_readable_file(tmp_path):
    key = tmp_path / "id_ed25519"
    key.write_text("key", encoding="utf-8")

    assert is_valid_ssh_key(str(key))
    assert not is_valid_ssh_key(str(tmp_path))
    assert not is_valid_ssh_key(str(tmp_path / "missing"))
    assert not is_valid_ssh_key("")


def test_expand_key_path_expands_tilde(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))

    assert expand_key_path("~/.ssh/id_rsa") == os.path.join(str(tmp_path), ".ssh", "id_rsa")


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://github.com/acme/widget.git", "widget"),
        ("https://gitlab.com/group/sub/api", "api"),
        ("https://example.com/repos/site.git/", "site"),
    ],
)
def test_derive_repo_name_strips_git_suffix(url, expected):
    assert derive_repo_name(url) == expected


class FakeResponse:
    def __init__(self, requests_module, status_error=False):
        self.requests_module = requests_module
        self.status_error = status_error
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *_exc_info):
        self.closed = True
        return False

    def raise_for_status(self):
        if self.status_error:
            raise self.requests_module.RequestException("503 Service Unavailable")


class FakeRequestsModule:
    class RequestException(Exception):
        pass

    def __init__(self, fail_methods=(), error_status_methods=()):
        self.fail_methods = set(fail_methods)
        self.error_status_methods = set(error_status_methods)
        self.methods = []
        self.responses = []

    def request(self, method, *_args, **_kwargs):
        self.methods.append(method)
        if method in self.fail_methods:
            raise self.RequestException(f"{method} refused")
        response = FakeResponse(self, status_error=method in self.error_status_methods)
        self.responses.append(response)
        return response


def test_probe_http_falls_back_to_get():
    fake_requests = FakeRequestsModule(fail_methods={"HEAD"})
    service = ValidationService(requests_module=fake_requests)

    assert service.probe_http("http://203.0.113.10") is True
    assert fake_requests.methods == ["HEAD", "GET"]


def test_probe_http_returns_false_when_unreachable():
    fake_requests = FakeRequestsModule(fail_methods={"HEAD", "GET"})
    service = ValidationService(requests_module=fake_requests)

    assert service.probe_http("http://203.0.113.10") is False


def test_probe_http_closes_responses_with_error_status():
    fake_requests = FakeRequestsModule(error_status_methods={"HEAD", "GET"})
    service = ValidationService(requests_module=fake_requests)

    assert service.probe_http("http://203.0.113.10") is False
    assert [response.closed for response in fake_requests.responses] == [True, True]
