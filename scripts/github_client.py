#!/usr/bin/env python3

import logging
from typing import Any, Optional, Protocol

import requests

from errors import UpstreamError

DEFAULT_API_URL = "https://api.github.com"


class RestClient(Protocol):
    """Capability the aggregator needs from a GitHub REST client.

    Every method returns the decoded JSON body (None for empty bodies)
    and raises UpstreamError for network failures and non-2xx responses.
    """

    def get(self, path: str, params: Optional[dict] = None) -> Any: ...

    def post(self, path: str, payload: Optional[dict] = None) -> Any: ...

    def patch(self, path: str, payload: Optional[dict] = None) -> Any: ...

    def put(self, path: str, payload: Optional[dict] = None) -> Any: ...

    def delete(self, path: str) -> Any: ...


class GitHubClient:
    """Client for interacting with GitHub API for organization management."""

    def __init__(self, token, api_url=DEFAULT_API_URL, timeout=30):
        """Initialize GitHub client with authorization token."""
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "github-org-console/1.0.0",
        })

    def get(self, path, params=None):
        return self._request("GET", path, params=params)

    def post(self, path, payload=None):
        return self._request("POST", path, payload=payload)

    def patch(self, path, payload=None):
        return self._request("PATCH", path, payload=payload)

    def put(self, path, payload=None):
        return self._request("PUT", path, payload=payload)

    def delete(self, path):
        return self._request("DELETE", path)

    def _request(self, method, path, params=None, payload=None):
        """
        Send a single request to the GitHub API.

        Args:
            method (str): HTTP method
            path (str): API path starting with '/', e.g. '/orgs/acme/members'
            params (dict): Query string parameters
            payload (dict): JSON body for write requests

        Returns:
            The decoded JSON body, or None when the response has no body.

        Raises:
            UpstreamError: On network failure or any non-2xx response
        """
        url = f"{self.api_url}{path}"
        logging.debug(f"{method} {url} params={params}")

        try:
            response = self.session.request(
                method, url, params=params, json=payload, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise UpstreamError(f"{method} {path} failed: {e}") from e

        if not response.ok:
            raise self._error_from_response(method, path, response)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"{method} {path} returned invalid JSON", response.status_code
            ) from e

    def _error_from_response(self, method, path, response):
        """Build an UpstreamError carrying GitHub's status and message."""
        error_message = f"{method} {path} failed with status code: {response.status_code}"
        try:
            error_data = response.json()
            if isinstance(error_data, dict) and "message" in error_data:
                error_message += f" - {error_data['message']}"
        except ValueError:
            pass

        rate_limit_reset = None
        remaining = response.headers.get("X-RateLimit-Remaining")
        if response.status_code == 429 or (response.status_code == 403 and remaining == "0"):
            reset = response.headers.get("X-RateLimit-Reset")
            rate_limit_reset = int(reset) if reset and reset.isdigit() else 0

        return UpstreamError(error_message, response.status_code, rate_limit_reset)
