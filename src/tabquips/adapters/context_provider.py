"""Context provider adapters.

The real snapshot comes from the browser host; these providers serve fixed
or caller-supplied snapshots for the CLI and for tests.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from tabquips.core.models import ActiveTab, BrowserContext


def context_from_dict(raw: Mapping[str, Any], now: Optional[datetime] = None) -> BrowserContext:
    """Build a BrowserContext from JSON-like data.

    ``current_hour`` defaults to the local hour; an active tab needs at least
    a url, and its domain is derived when omitted.
    """

    active_raw = raw.get("active_tab")
    active_tab = None
    if active_raw:
        url = str(active_raw.get("url", ""))
        title = str(active_raw.get("title") or "Untitled")
        domain = active_raw.get("domain")
        active_tab = ActiveTab(url=url, title=title, domain=domain) if domain else ActiveTab.from_url(url, title)

    hour = raw.get("current_hour")
    if hour is None:
        hour = (now or datetime.now()).hour

    return BrowserContext(
        tab_count=int(raw.get("tab_count", 0)),
        active_tab=active_tab,
        current_hour=int(hour),
        recent_events=tuple(raw.get("recent_events", ())),
        group_count=int(raw.get("group_count", 0)),
    )


class StaticContextProvider:
    """Serves one snapshot until it is replaced; counts provider calls."""

    def __init__(self, context: BrowserContext) -> None:
        self._context = context
        self.calls = 0

    def update(self, context: BrowserContext) -> None:
        self._context = context

    async def get_context(self) -> BrowserContext:
        self.calls += 1
        return self._context
