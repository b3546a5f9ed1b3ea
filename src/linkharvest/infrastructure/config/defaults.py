"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "linkharvest",
    "environment": "dev",
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "resolver": {
        "require_referer": False,
        "follow_redirects": True,
        "timeout_ms": 15_000,
        "max_concurrent_hops": 4,
        "mirror_bases": {},
    },
}
