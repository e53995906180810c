"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

from tabquips.core.models import HumorLevel


@dataclass(frozen=True)
class DeliveryConfig:
    """Throttling, display, and dedup settings for the orchestrator."""

    throttle_ms: int = 100
    display_duration_ms: int = 5000
    level: HumorLevel = HumorLevel.DEFAULT
    max_recent: int = 10


@dataclass(frozen=True)
class ContextCacheConfig:
    """How long a context snapshot stays fresh."""

    ttl_ms: int = 500
