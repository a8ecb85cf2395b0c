from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .utils import parse_int

try:
    import tomllib as toml
except ImportError:
    try:
        import tomli as toml
    except ImportError:  # pragma: no cover - optional dependency
        toml = None

try:
    import yaml
except ImportError:  # pragma: no cover - optional dependency
    yaml = None

DEFAULT_API_BASE = "https://api.are.na/v2"
DEFAULT_POLL_INTERVAL = 5 * 60 * 1000


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    """Process configuration, read from the environment once at startup."""

    channel_slug: str
    access_token: str
    output_dir: Optional[Path] = None
    poll_interval: int = DEFAULT_POLL_INTERVAL
    api_base: str = DEFAULT_API_BASE

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        output_dir: Optional[str] = None,
        require_output: bool = True,
    ) -> "Settings":
        env = os.environ if env is None else env
        channel_slug = (env.get("CHANNEL_SLUG") or "").strip()
        if not channel_slug:
            raise ConfigError("CHANNEL_SLUG is required")
        access_token = (env.get("ARENA_ACCESS_TOKEN") or "").strip()
        if not access_token:
            raise ConfigError("ARENA_ACCESS_TOKEN is required")
        output_value = (output_dir or env.get("OUTPUT_DIR") or "").strip()
        if require_output and not output_value:
            raise ConfigError("OUTPUT_DIR is required (or pass --output)")
        poll_interval = parse_int(env.get("POLL_INTERVAL"), DEFAULT_POLL_INTERVAL)
        if poll_interval <= 0:
            poll_interval = DEFAULT_POLL_INTERVAL
        return cls(
            channel_slug=channel_slug,
            access_token=access_token,
            output_dir=Path(output_value) if output_value else None,
            poll_interval=poll_interval,
            api_base=(env.get("ARENA_API_BASE") or DEFAULT_API_BASE).rstrip("/"),
        )


def load_config(path: Path) -> dict:
    """Load the site file as TOML, YAML or JSON depending on its suffix."""
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        if toml is None:
            raise ConfigError("TOML config requires tomllib (Python 3.11+) or tomli.")
        try:
            data = toml.loads(text)
        except Exception as exc:  # pragma: no cover - depends on parser
            raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        if yaml is None:
            raise ConfigError("YAML config requires PyYAML.")
        try:
            data = yaml.safe_load(text)
        except Exception as exc:  # pragma: no cover - depends on parser
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            return {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return data
