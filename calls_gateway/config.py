"""Configuration loading, validation, and defaults."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .types import (
    DEFAULT_CALL_BASE_URL,
    GatewayConfig,
    ServerConfig,
    TimeoutConfig,
    UpstreamConfig,
)

CONFIG_FILENAMES = [
    "calls-gateway.yaml",
    "calls-gateway.yml",
    "calls-gateway.json",
    "cfappsettings.json",
]

# Keys used by the original cfappsettings.json settings file
_LEGACY_KEYS = {
    "AppID": "app_id",
    "AppSecret": "app_secret",
    "CallBaseUrl": "call_base_url",
}

_PORT_ENV_VARS = ("port", "PORT")


def _discover_config() -> Path | None:
    """First settings file found walking up from CWD; stops at home or root."""
    home = Path.home()
    for directory in (Path.cwd(), *Path.cwd().parents):
        found = next(
            (directory / n for n in CONFIG_FILENAMES if (directory / n).is_file()),
            None,
        )
        if found is not None or directory == home:
            return found
    return None


def _read_settings(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text()
    if path.suffix == ".json":
        return json.loads(text)
    return yaml.safe_load(text) or {}


def _normalize_legacy(raw: dict[str, Any]) -> dict[str, Any]:
    """Map cfappsettings.json keys onto the YAML schema."""
    out = dict(raw)
    for legacy, key in _LEGACY_KEYS.items():
        if legacy in out and key not in out:
            out[key] = out.pop(legacy)
    if "WebApplicationServerPort" in out:
        server = dict(out.get("server") or {})
        server.setdefault("port", out.pop("WebApplicationServerPort"))
        out["server"] = server
    return out


def _env_port(env: Mapping[str, str]) -> int | None:
    for name in _PORT_ENV_VARS:
        value = env.get(name)
        if value:
            return int(value)
    return None


def _build_config(raw: dict[str, Any], env: Mapping[str, str]) -> GatewayConfig:
    """Build a GatewayConfig from a raw dict."""
    raw = _normalize_legacy(raw)

    upstream = UpstreamConfig(
        app_id=str(raw.get("app_id", "")),
        app_secret=str(raw.get("app_secret", "")),
        call_base_url=raw.get("call_base_url", DEFAULT_CALL_BASE_URL),
        debug=bool(raw.get("debug", False)),
    )

    # An empty YAML section ("timeouts:") loads as None
    timeouts_raw = raw.get("timeouts") or {}
    timeouts = TimeoutConfig(
        connect=float(timeouts_raw.get("connect", 10.0)),
        upstream=float(timeouts_raw.get("upstream", 30.0)),
        body_read=float(timeouts_raw.get("body_read", 30.0)),
    )

    server_raw = raw.get("server") or {}
    port = _env_port(env)
    server = ServerConfig(
        host=server_raw.get("host", "127.0.0.1"),
        port=port if port is not None else int(server_raw.get("port", 5757)),
    )

    return GatewayConfig(upstream=upstream, timeouts=timeouts, server=server)


def validate_config(config: GatewayConfig) -> list[str]:
    """Validate a config. Returns list of error strings (empty = valid)."""
    errors: list[str] = []
    upstream = config.upstream

    if not upstream.app_id:
        errors.append("app_id must be set")
    if not upstream.app_secret:
        errors.append("app_secret must be set")

    if not upstream.call_base_url.startswith(("http://", "https://")):
        errors.append(
            f"call_base_url ({upstream.call_base_url!r}) must be an http(s) URL"
        )
    elif not upstream.call_base_url.endswith("/"):
        errors.append(
            f"call_base_url ({upstream.call_base_url!r}) must end with '/'"
        )

    for name in ("connect", "upstream", "body_read"):
        value = getattr(config.timeouts, name)
        if value <= 0:
            errors.append(f"timeouts.{name} ({value}) must be > 0")

    if not 1 <= config.server.port <= 65535:
        errors.append(f"server.port ({config.server.port}) must be in 1-65535")

    return errors


def load_config(
    config_path: str | Path | None = None,
    config_dict: dict | None = None,
    env: Mapping[str, str] | None = None,
) -> GatewayConfig:
    """Load config from dict, explicit path, or auto-discover."""
    if env is None:
        env = os.environ

    if config_dict is not None:
        raw = config_dict
    else:
        path = Path(config_path) if config_path is not None else _discover_config()
        # No file anywhere: run on defaults
        raw = _read_settings(path) if path is not None else {}

    return _build_config(raw, env)
