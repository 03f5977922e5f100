"""Tests for the GitHub REST client."""

import json
import sys
from pathlib import Path

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))

from errors import UpstreamError
from github_client import GitHubClient


def make_response(status_code=200, body=None, headers=None):
    response = requests.Response()
    response.status_code = status_code
    response.url = "https://api.github.com/test"
    response._content = json.dumps(body).encode() if body is not None else b""
    response.headers.update(headers or {})
    return response


@pytest.fixture
def client():
    return GitHubClient("ghp_test", api_url="https://ghe.example.com/api/v3/")


def respond_with(monkeypatch, client, response):
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append((method, url, kwargs))
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(client.session, "request", fake_request)
    return calls


class TestRequests:
    def test_sets_auth_and_api_headers(self, client):
        headers = client.session.headers
        assert headers["Authorization"] == "Bearer ghp_test"
        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"

    def test_get_builds_url_and_params(self, monkeypatch, client):
        calls = respond_with(monkeypatch, client, make_response(200, [{"login": "alice"}]))

        result = client.get("/orgs/acme/members", params={"per_page": 100, "page": 1})

        assert result == [{"login": "alice"}]
        method, url, kwargs = calls[0]
        assert method == "GET"
        assert url == "https://ghe.example.com/api/v3/orgs/acme/members"
        assert kwargs["params"] == {"per_page": 100, "page": 1}
        assert kwargs["timeout"] == 30

    def test_write_sends_json_payload(self, monkeypatch, client):
        calls = respond_with(monkeypatch, client, make_response(200, {"role": "admin"}))

        result = client.put("/orgs/acme/memberships/alice", {"role": "admin"})

        assert result == {"role": "admin"}
        assert calls[0][0] == "PUT"
        assert calls[0][2]["json"] == {"role": "admin"}

    def test_no_content_returns_none(self, monkeypatch, client):
        respond_with(monkeypatch, client, make_response(204))
        assert client.delete("/orgs/acme/memberships/alice") is None

    def test_empty_body_returns_none(self, monkeypatch, client):
        respond_with(monkeypatch, client, make_response(201))
        assert client.put("/repos/acme/api/collaborators/alice", {"permission": "push"}) is None


class TestErrors:
    def test_not_found_carries_github_message(self, monkeypatch, client):
        respond_with(monkeypatch, client, make_response(404, {"message": "Not Found"}))

        with pytest.raises(UpstreamError) as exc:
            client.get("/orgs/acme/teams/ghost")

        assert exc.value.status_code == 404
        assert exc.value.kind == "not_found"
        assert "Not Found" in str(exc.value)

    def test_validation_failure_is_conflict(self, monkeypatch, client):
        respond_with(monkeypatch, client, make_response(422, {"message": "Validation Failed"}))

        with pytest.raises(UpstreamError) as exc:
            client.post("/orgs/acme/teams", {"name": "core"})

        assert exc.value.kind == "conflict"

    def test_forbidden_without_rate_limit_is_unauthorized(self, monkeypatch, client):
        respond_with(monkeypatch, client, make_response(
            403, {"message": "Must have admin rights"}, {"X-RateLimit-Remaining": "4999"},
        ))

        with pytest.raises(UpstreamError) as exc:
            client.get("/orgs/acme/memberships/alice")

        assert exc.value.kind == "unauthorized"
        assert exc.value.rate_limit_reset is None

    def test_exhausted_rate_limit(self, monkeypatch, client):
        respond_with(monkeypatch, client, make_response(
            403,
            {"message": "API rate limit exceeded"},
            {"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"},
        ))

        with pytest.raises(UpstreamError) as exc:
            client.get("/orgs/acme/repos")

        assert exc.value.kind == "rate_limited"
        assert exc.value.rate_limit_reset == 1700000000

    def test_too_many_requests(self, monkeypatch, client):
        respond_with(monkeypatch, client, make_response(429, {"message": "slow down"}))

        with pytest.raises(UpstreamError) as exc:
            client.get("/orgs/acme/repos")

        assert exc.value.kind == "rate_limited"

    def test_server_error_without_json_body(self, monkeypatch, client):
        response = make_response(502)
        response._content = b"<html>Bad Gateway</html>"
        respond_with(monkeypatch, client, response)

        with pytest.raises(UpstreamError) as exc:
            client.get("/orgs/acme/members")

        assert exc.value.status_code == 502
        assert exc.value.kind == "upstream"

    def test_network_failure(self, monkeypatch, client):
        respond_with(monkeypatch, client, requests.ConnectionError("connection refused"))

        with pytest.raises(UpstreamError) as exc:
            client.get("/orgs/acme/members")

        assert exc.value.status_code is None
        assert exc.value.kind == "network"
        assert "connection refused" in str(exc.value)

    def test_invalid_json_body(self, monkeypatch, client):
        response = make_response(200)
        response._content = b"not json"
        respond_with(monkeypatch, client, response)

        with pytest.raises(UpstreamError, match="invalid JSON"):
            client.get("/orgs/acme/members")
