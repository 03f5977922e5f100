#!/usr/bin/env python3
"""Error types for organization console operations.

Configuration and argument errors are raised before any call to GitHub.
Upstream errors carry the HTTP status so callers can map them to messages.
"""

from typing import Optional


class ConsoleError(Exception):
    """Base class for all console failures."""


class ConfigurationError(ConsoleError):
    """Organization name, token or config file is missing or invalid."""


class InvalidArgumentError(ConsoleError):
    """An argument was rejected locally before reaching GitHub."""


class UpstreamError(ConsoleError):
    """A GitHub API call failed (network error or non-2xx response)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        rate_limit_reset: Optional[int] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.rate_limit_reset = rate_limit_reset  # Unix timestamp
        super().__init__(message)

    @property
    def kind(self) -> str:
        if self.status_code is None:
            return "network"
        if self.status_code == 429 or (
            self.status_code == 403 and self.rate_limit_reset is not None
        ):
            return "rate_limited"
        if self.status_code == 404:
            return "not_found"
        if self.status_code in (409, 422):
            return "conflict"
        if self.status_code in (401, 403):
            return "unauthorized"
        return "upstream"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "status": self.status_code,
            "message": self.message,
        }

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.status_code}: {self.message}"
