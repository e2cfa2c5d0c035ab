"""Helpers for typed settings access from the environment."""

from __future__ import annotations

import os
from typing import Any


def _coerce_value(raw: str, value_type: str, default: Any) -> Any:
    if raw is None or raw == "":
        return default
    try:
        if value_type == "int":
            return int(raw)
        if value_type == "bool":
            return raw.strip().lower() in ("true", "1", "yes", "on")
        return raw
    except ValueError:
        return default


def get_setting(env_var: str, default: Any, value_type: str = "string") -> Any:
    """Get a setting value from the environment, falling back to default."""
    raw = os.getenv(env_var)
    if raw is not None and raw != "":
        return _coerce_value(raw, value_type, default)
    return default


def get_int_setting(env_var: str, default: int) -> int:
    return int(get_setting(env_var, default, "int"))


def get_bool_setting(env_var: str, default: bool) -> bool:
    return bool(get_setting(env_var, default, "bool"))
