"""
Runtime settings.

Resolution order (last wins):
    built-in defaults -> optional override file -> STAGEWISE_* environment

Override file (YAML or JSON), located by STAGEWISE_CONFIG_FILE:
    retention_days: 90
    workspace: /data/stagewise
    default_schema: analytics
    source_schema: landing

Unknown keys and values of the wrong type are logged and skipped.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

_log = logging.getLogger("stagewise.config")

DEFAULT_RETENTION_DAYS = 90


@dataclass(frozen=True)
class Settings:
    env: str = "dev"
    retention_days: int = DEFAULT_RETENTION_DAYS
    workspace: str = "workspace"
    default_schema: Optional[str] = None
    source_schema: str = "source"

    @property
    def workspace_path(self) -> Path:
        return Path(self.workspace)


_ENV_KEYS: Dict[str, str] = {
    "env": "STAGEWISE_ENV",
    "retention_days": "STAGEWISE_RETENTION_DAYS",
    "workspace": "STAGEWISE_WORKSPACE",
    "default_schema": "STAGEWISE_DEFAULT_SCHEMA",
    "source_schema": "STAGEWISE_SOURCE_SCHEMA",
}

_settings: Optional[Settings] = None


def _coerce(key: str, value: Any) -> Any:
    if key == "retention_days":
        days = int(value)
        if days <= 0:
            raise ValueError("retention_days must be positive")
        return days
    if value is None:
        return None
    return str(value).strip()


def _parse_overrides(raw: dict) -> Dict[str, Any]:
    known = {f.name for f in fields(Settings)}
    out: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            _log.warning("Skipping unknown settings key %r", key)
            continue
        try:
            out[key] = _coerce(key, value)
        except (ValueError, TypeError) as exc:
            _log.warning("Skipping invalid settings entry %r: %s", key, exc)
    return out


def load_settings_file(path: Optional[Path]) -> Dict[str, Any]:
    if path is None or not path.exists():
        return {}

    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        _log.warning("Cannot read settings file %s: %s", path, exc)
        return {}

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            _log.warning("Failed to parse settings file %s as JSON or YAML: %s", path, exc)
            return {}

    if not isinstance(data, dict):
        _log.warning("Settings file %s must be a mapping, got %s", path, type(data).__name__)
        return {}

    overrides = _parse_overrides(data)
    if overrides:
        _log.info("Loaded %d settings overrides from %s", len(overrides), path)
    return overrides


def _env_overrides() -> Dict[str, Any]:
    raw: Dict[str, Any] = {}
    for key, env_key in _ENV_KEYS.items():
        val = os.getenv(env_key)
        if val is not None and val.strip():
            raw[key] = val
    return _parse_overrides(raw)


def load_settings(path: Optional[Path] = None) -> Settings:
    if path is None:
        env_path = (os.getenv("STAGEWISE_CONFIG_FILE") or "").strip()
        path = Path(env_path) if env_path else None

    merged: Dict[str, Any] = {}
    merged.update(load_settings_file(path))
    merged.update(_env_overrides())
    if "env" in merged:
        merged["env"] = str(merged["env"]).lower()
    return replace(Settings(), **merged)


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Test helper: forget cached settings so env changes are picked up."""
    global _settings
    _settings = None
