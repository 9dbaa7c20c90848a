"""Shared utilities for the task estimator."""

import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# Taskwarrior and timewarrior both use basic ISO 8601 in UTC
COMPACT_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"


def resolve_env_vars(value: str) -> str:
    """Resolve ${ENV_VAR} syntax in a string.

    Args:
        value: String potentially containing ${VAR} patterns

    Returns:
        String with environment variables resolved

    Raises:
        ValueError: If referenced env var is not set
    """
    pattern = r"\$\{([^}]+)\}"

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            raise ValueError(f"Environment variable '{var_name}' is not set")
        return env_value

    return re.sub(pattern, replacer, value)


def resolve_env_vars_in_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve ${ENV_VAR} syntax in a dictionary.

    Args:
        data: Dictionary potentially containing ${VAR} patterns in string values

    Returns:
        New dictionary with environment variables resolved
    """
    result = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = resolve_env_vars_in_dict(value)
        elif isinstance(value, list):
            result[key] = [
                (
                    resolve_env_vars_in_dict(item)
                    if isinstance(item, dict)
                    else (
                        resolve_env_vars(item)
                        if isinstance(item, str)
                        else item
                    )
                )
                for item in value
            ]
        else:
            result[key] = value
    return result


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists

    Returns:
        The path that was ensured
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_data_dir() -> Path:
    """Directory shared with tasksh for local databases."""
    return Path.home() / ".local" / "share" / "tasksh"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a taskwarrior/timewarrior timestamp.

    Accepts the compact form (20240131T170000Z) and ISO 8601. Naive
    results are assumed to be UTC.

    Args:
        value: Raw timestamp string

    Returns:
        Aware datetime, or None if the value is empty or unparseable
    """
    if not value or not value.strip() or value.strip() == "null":
        return None

    raw = value.strip()
    try:
        parsed = datetime.strptime(raw, COMPACT_TIMESTAMP_FORMAT)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_compact_timestamp(value: datetime) -> str:
    """Format a datetime in timewarrior's compact UTC form."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(COMPACT_TIMESTAMP_FORMAT)
