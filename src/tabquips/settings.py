"""Configuration loading for tabquips.

All user-editable settings (catalog, personality, delivery, logging) live in
a single JSON file for quick edits without touching Python. The file path can
be overridden with TABQUIPS_CONFIG, read from the environment or a .env file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

from tabquips.core.config import ContextCacheConfig, DeliveryConfig
from tabquips.core.models import HumorLevel

PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Default location; TABQUIPS_CONFIG takes precedence when set.
CONFIG_PATH = PROJECT_ROOT / "config.json"

DEFAULT_PERSONALITY = "passive_aggressive"


@dataclass(frozen=True)
class Settings:
    """Parsed application settings with defaults for every key."""

    catalog_path: Optional[Path] = None
    personality: str = DEFAULT_PERSONALITY
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)
    context_cache: ContextCacheConfig = field(default_factory=ContextCacheConfig)
    logging: Dict[str, Any] = field(default_factory=dict)
    source: Optional[Path] = None


def resolve_config_path(path: Optional[Union[str, os.PathLike]] = None) -> Path:
    if path is not None:
        return Path(path)
    load_dotenv()
    override = os.getenv("TABQUIPS_CONFIG")
    return Path(override) if override else CONFIG_PATH


def _load_json_config(path: Path) -> Dict[str, Any]:
    """Load the JSON config; a missing file means "use defaults"."""

    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be an object: {path}")
    return data


def _positive_int(section: Dict[str, Any], key: str, default: int, where: str) -> int:
    value = section.get(key, default)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{where}.{key} must be an integer, got {value!r}") from None
    if number < 0:
        raise ValueError(f"{where}.{key} must be >= 0, got {number}")
    return number


def _parse_delivery(raw: Dict[str, Any]) -> DeliveryConfig:
    defaults = DeliveryConfig()
    level_raw = raw.get("level", defaults.level.value)
    try:
        level = HumorLevel(level_raw)
    except ValueError:
        raise ValueError(f"delivery.level must be one of default, mild, intense; got {level_raw!r}") from None
    max_recent = _positive_int(raw, "max_recent", defaults.max_recent, "delivery")
    if max_recent < 1:
        raise ValueError("delivery.max_recent must be >= 1")
    return DeliveryConfig(
        throttle_ms=_positive_int(raw, "throttle_ms", defaults.throttle_ms, "delivery"),
        display_duration_ms=_positive_int(raw, "display_duration_ms", defaults.display_duration_ms, "delivery"),
        level=level,
        max_recent=max_recent,
    )


def load_settings(path: Optional[Union[str, os.PathLike]] = None) -> Settings:
    """Parse the config file into ``Settings``.

    Relative catalog paths are resolved against the config file's directory.
    Invalid values raise ``ValueError`` naming the offending key.
    """

    config_path = resolve_config_path(path)
    raw = _load_json_config(config_path)

    catalog_path = None
    catalog_raw = raw.get("catalog_path")
    if catalog_raw:
        catalog_path = Path(catalog_raw)
        if not catalog_path.is_absolute():
            catalog_path = config_path.parent / catalog_path

    cache_raw = raw.get("context_cache", {}) or {}
    return Settings(
        catalog_path=catalog_path,
        personality=str(raw.get("personality", DEFAULT_PERSONALITY)),
        delivery=_parse_delivery(raw.get("delivery", {}) or {}),
        context_cache=ContextCacheConfig(
            ttl_ms=_positive_int(cache_raw, "ttl_ms", ContextCacheConfig().ttl_ms, "context_cache")
        ),
        logging=dict(raw.get("logging", {}) or {}),
        source=config_path if raw else None,
    )
