"""Ports (interfaces) used by the core.

Ports define the minimal contracts for context, catalog, and notification
adapters so that the core can be reused with different hosts.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol

from tabquips.core.models import BrowserContext, QuipNotification


class ContextProvider(Protocol):
    """Produces a fresh browser snapshot; may be slow."""

    async def get_context(self) -> BrowserContext:
        ...


class CatalogSource(Protocol):
    """Loads the raw catalog document once at startup."""

    async def load(self) -> Dict[str, Any]:
        ...


class NotifierPort(Protocol):
    """External notification channel (system notification, console, ...)."""

    async def send(self, notification: QuipNotification) -> None:
        ...
