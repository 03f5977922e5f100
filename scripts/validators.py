#!/usr/bin/env python3
"""Validation for console configuration and caller-supplied arguments.

Config files are checked against a JSON schema. Argument checks here
belong to the caller-facing boundary; the aggregator only rejects what
it cannot send to GitHub at all.
"""

import json
import re
from pathlib import Path

import jsonschema

from errors import InvalidArgumentError


SCHEMA_DIR = Path(__file__).parent.parent / "schemas"

REPO_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


def _load_schema(schema_name: str) -> dict:
    """Load a JSON schema file from the schemas directory."""
    schema_path = SCHEMA_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_path}")
    with open(schema_path, "r") as f:
        return json.load(f)


def validate_schema(data: dict, schema_name: str) -> list[str]:
    """Validate data against a JSON schema. Returns list of errors."""
    try:
        schema = _load_schema(schema_name)
    except FileNotFoundError as e:
        return [str(e)]

    errors = []
    validator = jsonschema.Draft7Validator(schema)
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        path = " → ".join(str(p) for p in error.absolute_path) or "(root)"
        errors.append(f"[{schema_name}] {path}: {error.message}")

    return errors


def validate_console_config(config_data: dict) -> list[str]:
    """Validate console.yml structure and content."""
    return validate_schema(config_data, "console")


def validate_repo_name(name: str) -> str:
    """Check a new repository name against GitHub's allowed characters."""
    if not name or not isinstance(name, str):
        raise InvalidArgumentError("New repository name is required")
    if not REPO_NAME_PATTERN.match(name):
        raise InvalidArgumentError(
            "Repository name can only contain letters, numbers, dots, "
            "underscores, and hyphens"
        )
    return name


def validate_username(username: str) -> str:
    """Reject obviously malformed GitHub usernames before any API call."""
    if not isinstance(username, str) or not username.strip():
        raise InvalidArgumentError("Username is required")
    if " " in username or "@" in username or "/" in username:
        raise InvalidArgumentError(f"Invalid GitHub username: {username!r}")
    return username
