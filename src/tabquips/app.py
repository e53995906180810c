"""Application entry point for tabquips.

The browser host normally owns the engine; this shell wires the same pieces
for operators: one-off deliveries, catalog validation, and rule listings.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from logging.handlers import RotatingFileHandler
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from art import tprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tabquips import settings as settings_module
from tabquips.adapters.console_notifier import RichConsoleNotifier
from tabquips.adapters.context_provider import StaticContextProvider, context_from_dict
from tabquips.adapters.json_catalog import JsonCatalogSource, bundled_catalog_path
from tabquips.adapters.notification_formatting import format_notification
from tabquips.core.content_store import ContentStore, validate_catalog
from tabquips.core.context_cache import ContextCache
from tabquips.core.errors import CatalogLoadError, QuipEngineError
from tabquips.core.models import QuipNotification, Trigger, TriggerType
from tabquips.core.orchestrator import DeliveryOrchestrator
from tabquips.core.personality import build_personality
from tabquips.core.ports import ContextProvider, NotifierPort
from tabquips.core.rules_engine import RuleRegistry, build_rules
from tabquips.settings import Settings

NAME = "TABQUIPS"
FONT = "small"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _configure_logging(config: Dict[str, Any]) -> None:
    if not config.get("enabled", False):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/tabquips.log")
        if not os.path.isabs(path):
            path = os.path.join(settings_module.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _catalog_path(settings: Settings, override: Optional[str]) -> Path:
    if override:
        return Path(override)
    return settings.catalog_path or bundled_catalog_path()


async def build_engine(
    settings: Settings,
    catalog_path: Path,
    provider: ContextProvider,
    notifier: Optional[NotifierPort] = None,
) -> Tuple[DeliveryOrchestrator, ContentStore, RuleRegistry]:
    """Load the catalog and assemble a ready orchestrator."""

    store = ContentStore(JsonCatalogSource(catalog_path))
    await store.initialize()

    registry = RuleRegistry()
    registry.register_all(build_rules(store.rule_definitions()))
    LOGGER.info("%s rules are loaded", len(registry))

    personality = build_personality(settings.personality, store)
    orchestrator = DeliveryOrchestrator(
        context_cache=ContextCache(provider, ttl_ms=settings.context_cache.ttl_ms),
        registry=registry,
        personality=personality,
        config=settings.delivery,
        notifier=notifier,
    )
    return orchestrator, store, registry


def _read_context(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    if raw.startswith("@"):
        with open(raw[1:], "r", encoding="utf-8") as handle:
            data = json.load(handle)
    else:
        data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("context must be a JSON object")
    return data


def _deliver(args: argparse.Namespace, settings: Settings) -> int:
    console = Console()
    if args.output == "rich":
        _print_banner()

    try:
        provider = StaticContextProvider(context_from_dict(_read_context(args.context)))
    except (ValueError, TypeError, AttributeError, OSError) as exc:
        console.print(f"[red]Invalid --context:[/] {escape(str(exc))}")
        return 1
    notifier = RichConsoleNotifier(console) if args.output == "rich" else None

    async def _run_deliver() -> int:
        orchestrator, _, _ = await build_engine(settings, _catalog_path(settings, args.catalog), provider, notifier)
        if args.level:
            orchestrator.set_level(args.level)
        if args.output != "rich":

            def _print(notification: QuipNotification) -> None:
                print(format_notification(notification, args.output))

            orchestrator.notifications.subscribe(_print)

        result = await orchestrator.deliver(Trigger(type=TriggerType(args.trigger)))
        if not result.delivered:
            console.print(f"[yellow]Nothing delivered[/] ({result.status.value}): {result.reason}")
            return 1
        return 0

    try:
        return asyncio.run(_run_deliver())
    except QuipEngineError as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        return 1


def _validate(args: argparse.Namespace, settings: Settings) -> int:
    console = Console()
    path = _catalog_path(settings, args.catalog)
    try:
        raw = asyncio.run(JsonCatalogSource(path).load())
    except CatalogLoadError as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        return 1
    if not isinstance(raw, dict):
        console.print("[red]Catalog root must be an object[/]")
        return 1

    report = validate_catalog(raw)
    console.print(
        f"{path}: quips={len(report.quips)} easter_eggs={len(report.easter_eggs)} rules={len(report.rules)}"
    )
    rule_types = {rule["type"] for rule in report.rules}
    content_types = {egg.rule_type for egg in report.easter_eggs}
    for orphan in sorted(rule_types - content_types):
        console.print(f"[yellow]warning[/] rule type {escape(repr(orphan))} has no easter-egg content")

    if report.ok:
        console.print("[green]Catalog is valid[/]")
        return 0
    for violation in report.violations:
        console.print(f"[red]violation[/] {escape(violation)}")
    return 1


def _rules(args: argparse.Namespace, settings: Settings) -> int:
    console = Console()
    _print_banner()

    async def _load() -> RuleRegistry:
        _, _, registry = await build_engine(
            settings,
            _catalog_path(settings, args.catalog),
            StaticContextProvider(context_from_dict({})),
        )
        return registry

    try:
        registry = asyncio.run(_load())
    except QuipEngineError as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        return 1

    table = Table(title="Rules in match order")
    table.add_column("Priority", justify="right")
    table.add_column("Id", no_wrap=True)
    table.add_column("Type")
    table.add_column("Conditions")
    for rule in registry.all():
        table.add_row(str(rule.priority), rule.id, rule.type, json.dumps(rule.conditions.to_dict()))
    console.print(table)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="tabquips")
    parser.add_argument("--config", help="Path to config.json (defaults to TABQUIPS_CONFIG or ./config.json)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    deliver_parser = subparsers.add_parser("deliver", help="Deliver one quip for a trigger")
    deliver_parser.add_argument("--trigger", required=True, choices=[item.value for item in TriggerType])
    deliver_parser.add_argument("--context", help="Browser context as JSON, or @path to a JSON file")
    deliver_parser.add_argument("--level", choices=["default", "mild", "intense"])
    deliver_parser.add_argument("--catalog", help="Catalog JSON path")
    deliver_parser.add_argument("--output", choices=["rich", "plain", "markdown", "html"], default="rich")

    validate_parser = subparsers.add_parser("validate", help="Report every catalog violation")
    validate_parser.add_argument("--catalog", help="Catalog JSON path")

    rules_parser = subparsers.add_parser("rules", help="List rules in match order")
    rules_parser.add_argument("--catalog", help="Catalog JSON path")

    args = parser.parse_args(argv)
    settings = settings_module.load_settings(args.config)
    _configure_logging(settings.logging)

    commands = {
        "deliver": _deliver,
        "validate": _validate,
        "rules": _rules,
    }
    return commands[args.command](args, settings)


if __name__ == "__main__":
    raise SystemExit(main())
