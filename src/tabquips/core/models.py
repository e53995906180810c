"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any browser-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import urlparse


class HumorLevel(str, Enum):
    """Intensity tier attached to every piece of content."""

    DEFAULT = "default"
    MILD = "mild"
    INTENSE = "intense"


class TriggerType(str, Enum):
    """Known events that may warrant a delivered message."""

    TAB_GROUP_CREATED = "TabGroupCreated"
    TAB_CLOSED = "TabClosed"
    FEELING_LUCKY_CLICKED = "FeelingLuckyClicked"
    TAB_OPENED = "TabOpened"
    TOO_MANY_TABS = "TooManyTabs"
    MANUAL_TRIGGER = "ManualTrigger"


class DeliveryChannel(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    NONE = "none"


class DeliveryStatus(str, Enum):
    """Outcome kind of a single delivery attempt."""

    DELIVERED = "delivered"
    THROTTLED = "throttled"
    NO_CONTENT = "no_content"
    NOT_READY = "not_ready"
    DELIVERY_FAILED = "delivery_failed"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def extract_domain(url: str) -> str:
    """Return the hostname of a URL, or an empty string when there is none."""

    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


@dataclass(frozen=True)
class ActiveTab:
    url: str
    title: str
    domain: str

    @classmethod
    def from_url(cls, url: str, title: str = "Untitled") -> "ActiveTab":
        return cls(url=url, title=title, domain=extract_domain(url))


@dataclass(frozen=True)
class BrowserContext:
    """Point-in-time snapshot of observable browser state."""

    tab_count: int
    active_tab: Optional[ActiveTab]
    current_hour: int
    recent_events: Tuple[str, ...] = ()
    group_count: int = 0

    def __post_init__(self) -> None:
        if self.tab_count < 0:
            raise ValueError(f"tab_count must be >= 0, got {self.tab_count}")
        if self.group_count < 0:
            raise ValueError(f"group_count must be >= 0, got {self.group_count}")
        if not 0 <= self.current_hour <= 23:
            raise ValueError(f"current_hour must be within 0..23, got {self.current_hour}")


@dataclass(frozen=True)
class Trigger:
    """An external event handed to the orchestrator."""

    type: TriggerType
    data: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class ContentEntry:
    """A unit of deliverable text.

    Regular quips carry ``trigger_types``; easter-egg entries carry a
    ``rule_type`` and may hold several text variants.
    """

    id: str
    texts: Tuple[str, ...]
    level: HumorLevel
    trigger_types: Tuple[str, ...] = ()
    rule_type: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.texts[0]

    @property
    def is_easter_egg(self) -> bool:
        return self.rule_type is not None

    def variants(self) -> List["ContentEntry"]:
        """Split a multi-text entry into one entry per text variant."""

        if len(self.texts) <= 1:
            return [self]
        expanded: List[ContentEntry] = []
        for index, text in enumerate(self.texts):
            variant_id = self.id if index == 0 else f"{self.id}:{index}"
            expanded.append(replace(self, id=variant_id, texts=(text,)))
        return expanded


@dataclass(frozen=True)
class Match:
    """The rule chosen for a context."""

    rule_id: str
    rule_type: str
    matched_conditions: Tuple[str, ...]
    priority: int
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QuipNotification:
    """Record emitted on the notification stream for UI display."""

    id: str
    text: str
    title: str
    is_rule_match: bool
    timestamp: datetime
    display_duration_ms: int


@dataclass(frozen=True)
class DeliveryResult:
    delivered: bool
    text: Optional[str]
    channel: DeliveryChannel
    is_rule_match: bool
    timestamp: datetime
    status: DeliveryStatus
    entry_id: Optional[str] = None
    rule_id: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def not_delivered(cls, status: DeliveryStatus, reason: str) -> "DeliveryResult":
        return cls(
            delivered=False,
            text=None,
            channel=DeliveryChannel.NONE,
            is_rule_match=False,
            timestamp=_utcnow(),
            status=status,
            reason=reason,
        )
