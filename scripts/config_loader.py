#!/usr/bin/env python3

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from errors import ConfigurationError
from github_client import DEFAULT_API_URL
from validators import validate_console_config


DEFAULT_CONFIG_FILE = Path(__file__).parent.parent / "config" / "console.yml"

DEFAULT_PAGE_SIZE = 100
# GitHub silently caps per_page at 100
MAX_PAGE_SIZE = 100
DEFAULT_MAX_WORKERS = 8
DEFAULT_TIMEOUT = 30


@dataclass
class ConsoleConfig:
    """Everything an aggregator needs to talk to one organization."""
    org_name: str
    token: str
    api_url: str = DEFAULT_API_URL
    page_size: int = DEFAULT_PAGE_SIZE
    max_workers: int = DEFAULT_MAX_WORKERS
    timeout: float = DEFAULT_TIMEOUT
    audit_log_dir: Optional[str] = None

    def __post_init__(self):
        if not self.org_name:
            raise ConfigurationError("Organization name is required")
        if not self.token:
            raise ConfigurationError("Access token is required")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ConfigurationError(
                f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {self.page_size}"
            )
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be positive, got {self.max_workers}")

    def __repr__(self) -> str:
        return (
            f"ConsoleConfig(org_name={self.org_name!r}, api_url={self.api_url!r}, "
            f"page_size={self.page_size}, max_workers={self.max_workers})"
        )


def load_yaml_file(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}

    return data


def load_config(
    config_file: Optional[str] = None,
    env: Optional[dict] = None,
) -> ConsoleConfig:
    """Build a ConsoleConfig from an optional YAML file and the environment.

    Environment variables GITHUB_ORG, GITHUB_TOKEN and GITHUB_API_URL take
    precedence over the file. The token is only ever read from the environment.

    Raises:
        ConfigurationError: If the file is invalid or org/token are missing
    """
    env = os.environ if env is None else env

    if config_file:
        config_path = Path(config_file)
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
    else:
        config_path = DEFAULT_CONFIG_FILE

    raw = {}
    if config_path.exists():
        logging.info(f"Loading config from: {config_path}")
        try:
            raw = load_yaml_file(config_path)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping")

        errors = validate_console_config(raw)
        if errors:
            raise ConfigurationError(
                "Invalid console configuration:\n" + "\n".join(f"  - {e}" for e in errors)
            )

    org_config = raw.get("organization", {}) or {}
    api_config = raw.get("api", {}) or {}
    audit_config = raw.get("audit", {}) or {}

    org_name = env.get("GITHUB_ORG") or org_config.get("name", "")
    if not org_name:
        raise ConfigurationError(
            "GitHub organization not configured (set GITHUB_ORG or organization.name)"
        )

    token = env.get("GITHUB_TOKEN", "")
    if not token:
        raise ConfigurationError("GITHUB_TOKEN environment variable not set")

    config = ConsoleConfig(
        org_name=org_name,
        token=token,
        api_url=env.get("GITHUB_API_URL") or api_config.get("url", DEFAULT_API_URL),
        page_size=api_config.get("page_size", DEFAULT_PAGE_SIZE),
        max_workers=api_config.get("max_workers", DEFAULT_MAX_WORKERS),
        timeout=api_config.get("timeout", DEFAULT_TIMEOUT),
        audit_log_dir=audit_config.get("log_dir"),
    )

    logging.info(f"Config loaded for organization '{config.org_name}' ({config.api_url})")

    return config
