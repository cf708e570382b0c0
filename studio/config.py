"""Configuration loading: config.yaml plus the DASHSCOPE_API_KEY environment variable."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from wanx_client.client import DEFAULT_BASE_URL
from wanx_client.models import PollSettings

_DEFAULT_CONFIG = "config.yaml"
_API_KEY_ENV = "DASHSCOPE_API_KEY"
_PLACEHOLDER_KEY = "YOUR_DASHSCOPE_API_KEY"

_DEFAULT_POLLING = {
    "image": {"max_attempts": 60, "interval": 2.0},
    "video": {"max_attempts": 100, "interval": 10.0},
}


def load_config(config_path: str | None = None) -> dict:
    """Load the YAML configuration file.

    The default ./config.yaml is optional; an explicitly given path must exist.

    Args:
        config_path: Path to config.yaml. Defaults to ./config.yaml.

    Returns:
        Parsed config dict (empty if the default file is absent).

    Raises:
        FileNotFoundError: If an explicit config path doesn't exist.
        ValueError: If the file does not hold a mapping.
    """
    path = Path(config_path or _DEFAULT_CONFIG)
    if not path.exists():
        if config_path and config_path != _DEFAULT_CONFIG:
            raise FileNotFoundError(f"Config not found: {path}")
        return {}
    with open(path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError(f"{path.name} must be a mapping, got {type(config).__name__}")
    return config


def get_api_key(config: dict) -> str | None:
    """Return the API key from the environment or config, None if unset.

    A missing key is not an error here; requests fail with ConfigurationError.
    """
    api_key = os.environ.get(_API_KEY_ENV) or (config.get("api") or {}).get("api_key") or ""
    if not api_key or api_key == _PLACEHOLDER_KEY:
        return None
    return api_key


def get_base_url(config: dict) -> str:
    return (config.get("api") or {}).get("base_url") or DEFAULT_BASE_URL


def get_timeout(config: dict) -> float:
    return float((config.get("api") or {}).get("timeout", 60.0))


def get_poll_settings(config: dict, kind: str) -> PollSettings:
    """Polling budget for ``kind`` ("image" or "video")."""
    section = {**_DEFAULT_POLLING[kind], **((config.get("polling") or {}).get(kind) or {})}
    return PollSettings(
        max_attempts=int(section["max_attempts"]),
        interval=float(section["interval"]),
    )
