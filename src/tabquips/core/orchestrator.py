"""Delivery orchestration (core domain).

The orchestrator is integration-agnostic. It relies on the context cache,
the rule registry, a personality, and an optional notifier port, so hosts
can wire it to any browser or UI without changes here.

Every trigger goes through a strict order:
1) Throttle check against the last successful delivery
2) Rule matching on the cached browser context
3) Rule content, or regular content for the trigger type
4) Deduplicated selection
5) Dispatch, stream emission, then history and throttle bookkeeping
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
import logging
import time
import uuid
from typing import Callable, List, Optional, Tuple, Union

from tabquips.core.config import DeliveryConfig
from tabquips.core.context_cache import ContextCache
from tabquips.core.dedup import ContentSelector
from tabquips.core.errors import (
    ContentStoreNotReadyError,
    NoRulesRegisteredError,
    UnsupportedLevelError,
)
from tabquips.core.models import (
    BrowserContext,
    ContentEntry,
    DeliveryChannel,
    DeliveryResult,
    DeliveryStatus,
    HumorLevel,
    Match,
    QuipNotification,
    Trigger,
)
from tabquips.core.observable import NotificationStream
from tabquips.core.personality import Personality
from tabquips.core.ports import NotifierPort
from tabquips.core.rules_engine import RuleRegistry

LOGGER = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    THROTTLED = "throttled"
    DELIVERING = "delivering"


def _expand(entries: List[ContentEntry]) -> List[ContentEntry]:
    return [variant for entry in entries for variant in entry.variants()]


class DeliveryOrchestrator:
    """Turns triggers into at most one delivered quip each.

    ``deliver`` never raises: every failure comes back as a
    ``DeliveryResult`` with a non-delivered status, so humor can fall silent
    without disturbing tab management.
    """

    def __init__(
        self,
        context_cache: ContextCache,
        registry: RuleRegistry,
        personality: Personality,
        config: Optional[DeliveryConfig] = None,
        notifier: Optional[NotifierPort] = None,
        selector: Optional[ContentSelector] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or DeliveryConfig()
        self._context_cache = context_cache
        self._registry = registry
        self._personality = personality
        self._notifier = notifier
        self._selector = selector or ContentSelector(max_recent=self._config.max_recent)
        self._clock = clock
        self._level = HumorLevel(self._config.level)
        self._last_delivery: Optional[float] = None
        self._lock = asyncio.Lock()
        self.state = OrchestratorState.IDLE
        self.notifications: NotificationStream[QuipNotification] = NotificationStream()

        if not personality.supports_level(self._level):
            LOGGER.warning(
                "Personality %s does not support level %s",
                personality.metadata.name,
                self._level.value,
            )

    @property
    def level(self) -> HumorLevel:
        return self._level

    def set_level(self, level: Union[HumorLevel, str]) -> None:
        level = HumorLevel(level)
        if not self._personality.supports_level(level):
            raise UnsupportedLevelError(level.value, self._personality.metadata.name)
        self._level = level

    def reset(self) -> None:
        """Forget throttle timing, selection history, and the cached context."""

        self._last_delivery = None
        self._selector.reset()
        self._context_cache.reset()
        self.state = OrchestratorState.IDLE

    async def check_rules(self, context: Optional[BrowserContext] = None) -> Optional[Match]:
        """Diagnostic rule check; raises ``NoRulesRegisteredError`` on an empty registry."""

        if context is None:
            context = await self._context_cache.get_context()
        return self._registry.match(context)

    async def deliver(self, trigger: Trigger) -> DeliveryResult:
        # Triggers are serialized: throttle timestamp and history are single-writer state.
        async with self._lock:
            try:
                return await self._deliver(trigger)
            except Exception as exc:
                LOGGER.exception("Unexpected error while delivering for %s", trigger.type)
                return DeliveryResult.not_delivered(DeliveryStatus.ERROR, f"Unexpected error: {exc}")
            finally:
                self.state = OrchestratorState.IDLE

    async def _deliver(self, trigger: Trigger) -> DeliveryResult:
        self.state = OrchestratorState.EVALUATING
        now = self._clock()
        if self._is_throttled(now):
            self.state = OrchestratorState.THROTTLED
            LOGGER.debug("Delivery throttled for %s", trigger.type)
            return DeliveryResult.not_delivered(DeliveryStatus.THROTTLED, "Delivery throttled")

        try:
            chosen, match = await self._select(trigger)
        except ContentStoreNotReadyError as exc:
            LOGGER.warning("Content store not ready: %s", exc)
            return DeliveryResult.not_delivered(DeliveryStatus.NOT_READY, str(exc))

        if chosen is None:
            LOGGER.info("No content available for %s at level %s", trigger.type, self._level.value)
            return DeliveryResult.not_delivered(
                DeliveryStatus.NO_CONTENT,
                f"No content available for trigger {trigger.type}",
            )

        self.state = OrchestratorState.DELIVERING
        is_rule_match = match is not None
        notification = QuipNotification(
            id=uuid.uuid4().hex,
            text=chosen.text,
            title=self._personality.notification_title(is_rule_match),
            is_rule_match=is_rule_match,
            timestamp=datetime.now(timezone.utc),
            display_duration_ms=self._config.display_duration_ms,
        )

        # An open popup (a live subscriber) takes precedence over the
        # external notifier; with neither, the event is still emitted.
        channel = DeliveryChannel.PRIMARY
        if self.notifications.subscriber_count == 0 and self._notifier is not None:
            try:
                await self._notifier.send(notification)
            except Exception as exc:
                LOGGER.exception("Notifier failed for %s", chosen.id)
                return DeliveryResult.not_delivered(DeliveryStatus.DELIVERY_FAILED, f"Notifier failed: {exc}")
            channel = DeliveryChannel.SECONDARY

        self.notifications.emit(notification)
        self._selector.record(chosen.id)
        self._last_delivery = now
        LOGGER.info(
            "Delivered %s via %s (%s)",
            chosen.id,
            channel.value,
            f"rule {match.rule_id}" if match else trigger.type,
        )
        return DeliveryResult(
            delivered=True,
            text=chosen.text,
            channel=channel,
            is_rule_match=is_rule_match,
            timestamp=notification.timestamp,
            status=DeliveryStatus.DELIVERED,
            entry_id=chosen.id,
            rule_id=match.rule_id if match else None,
        )

    def _is_throttled(self, now: float) -> bool:
        if self._last_delivery is None:
            return False
        return (now - self._last_delivery) * 1000.0 < self._config.throttle_ms

    async def _select(self, trigger: Trigger) -> Tuple[Optional[ContentEntry], Optional[Match]]:
        match = await self._match_rule()
        if match is not None:
            chosen = self._selector.pick(_expand(self._personality.rule_candidates(match, self._level)))
            if chosen is not None:
                return chosen, match
            # Rule content may exist only at other levels; regular quips still apply.
            LOGGER.info(
                "Rule %s matched without %s content; using regular content",
                match.rule_id,
                self._level.value,
            )

        candidates = _expand(self._personality.regular_candidates(trigger, self._level))
        return self._selector.pick(candidates), None

    async def _match_rule(self) -> Optional[Match]:
        try:
            context = await self._context_cache.get_context()
        except Exception:
            LOGGER.warning("Browser context unavailable; skipping rule matching", exc_info=True)
            return None
        try:
            return self._registry.match(context)
        except NoRulesRegisteredError:
            LOGGER.debug("No rules registered; skipping rule matching")
            return None
