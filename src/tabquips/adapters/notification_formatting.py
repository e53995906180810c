"""Shared notification formatting helpers.

Keeping formatting here prevents drift between notifiers and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html

from tabquips.core.models import QuipNotification


def _timestamp(notification: QuipNotification) -> str:
    return notification.timestamp.astimezone().strftime("%H:%M:%S %d-%m-%Y").strip()


def _format_plain(notification: QuipNotification) -> str:
    return f"[{_timestamp(notification)}] {notification.title}: {notification.text}"


def _format_markdown(notification: QuipNotification) -> str:
    def escape_md(value: str) -> str:
        for ch in r"*_[`":
            value = value.replace(ch, f"\\{ch}")
        return value

    lines = [
        f"[{_timestamp(notification)}]",
        f"**{escape_md(notification.title)}**",
        "",
        escape_md(notification.text),
    ]
    return "\n".join(lines)


def _format_html(notification: QuipNotification) -> str:
    parts = [
        f"[{html.escape(_timestamp(notification))}]",
        f"<b>{html.escape(notification.title)}</b>",
        "",
        html.escape(notification.text),
    ]
    return "\n".join(parts)


_FORMATTERS = {
    "plain": _format_plain,
    "markdown": _format_markdown,
    "html": _format_html,
}


def format_notification(notification: QuipNotification, mode: str) -> str:
    """Return the notification formatted for the requested mode."""

    formatter = _FORMATTERS.get(mode)
    if formatter is None:
        raise ValueError(f"Unsupported notification format: {mode}")
    return formatter(notification)
