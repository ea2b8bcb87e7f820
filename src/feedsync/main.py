#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from signal import SIGINT
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from feedsync.adapters.feed import HttpFeedFetcher
from feedsync.adapters.notifiers import LoggingProgressNotifier
from feedsync.adapters.shopify import ShopifyAdminClient
from feedsync.adapters.sqlalchemy import SqlAlchemySyncUnitOfWork, startup
from feedsync.app import read_feed, summarize_feed, sync_due_providers, sync_feed, sync_provider
from feedsync.config import (
    ConfigurationError,
    configure_logging,
    get_feed_config,
    get_shopify_config,
    get_sync_config,
    normalize_shop_domain,
)
from feedsync.domain.model import DEFAULT_SYNC_FREQUENCY_HOURS, FeedProvider, SyncStatus
from feedsync.domain.scheduling import providers_due

if TYPE_CHECKING:
    from collections.abc import Sequence

    from feedsync.config import SyncConfig
    from feedsync.domain.reconciliation import ReconciliationPipeline, SyncReport

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="feedsync",
        description="Reconcile supplier XML product feeds with a Shopify catalog",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Reconcile one feed URL with a shop")
    sync.add_argument("--feed-url", required=True, help="URL of the XML feed")
    sync.add_argument("--shop", help="Shop domain (default: $SHOPIFY_SHOP_DOMAIN)")
    sync.add_argument(
        "--auto-delete",
        action="store_true",
        help="Delete tracked products that are missing from the feed",
    )
    sync.add_argument("--batch-size", type=int, help="Groups reconciled concurrently")
    sync.add_argument("--max-groups", type=int, help="Stop after this many groups")
    sync.add_argument(
        "--track",
        action="store_true",
        help="Record product mappings in the local database (implied by --auto-delete)",
    )

    parse = commands.add_parser("parse", help="Parse a feed file and print its groups")
    parse.add_argument("file", type=Path, help="Path to an XML feed document")

    providers = commands.add_parser("providers", help="Manage scheduled feed providers")
    provider_commands = providers.add_subparsers(dest="providers_command", required=True)

    add = provider_commands.add_parser("add", help="Register a feed provider")
    add.add_argument("name")
    add.add_argument("feed_url")
    add.add_argument("--shop", required=True)
    add.add_argument(
        "--frequency",
        type=int,
        default=DEFAULT_SYNC_FREQUENCY_HOURS,
        help="Hours between syncs (default: %(default)s)",
    )
    add.add_argument("--auto-delete", action="store_true")

    due = provider_commands.add_parser("due", help="List providers that are due for a sync")
    due.add_argument("--shop")

    run = provider_commands.add_parser("run", help="Sync every provider that is due")
    run.add_argument("--shop")

    return parser.parse_args(list(argv))


def _build_sync_config(args: argparse.Namespace) -> SyncConfig:
    config = get_sync_config()
    overrides: dict[str, object] = {}
    if getattr(args, "batch_size", None) is not None:
        overrides["batch_size"] = args.batch_size
    if getattr(args, "max_groups", None) is not None:
        overrides["max_groups"] = args.max_groups
    if getattr(args, "auto_delete", False):
        overrides["auto_delete"] = True
    return replace(config, **overrides) if overrides else config


def _stop_on_sigint(pipeline: ReconciliationPipeline) -> None:
    def request_stop() -> None:
        print("\nStopping after the current batch (Ctrl+C)", file=sys.stderr)
        pipeline.request_stop()

    try:
        asyncio.get_running_loop().add_signal_handler(SIGINT, request_stop)
    except NotImplementedError:
        log.debug("Signal handlers are not supported on this platform")


def _exit_code(status: SyncStatus) -> int:
    return 1 if status is SyncStatus.ERROR else 0


def _print_report(report: SyncReport) -> None:
    stats = report.stats
    print(
        f"{report.status.value}: {stats.created} created, {stats.updated} updated, "
        f"{stats.skipped} skipped, {stats.deleted} deleted, {stats.errored} errors "
        f"({report.total_groups} groups in {report.duration_seconds:.1f}s)"
    )
    if report.stopped:
        print("Run stopped before all groups were processed")
    for error in stats.errors:
        print(f"  {error.title}: {error.message}")


async def _sync_once(args: argparse.Namespace, config: SyncConfig) -> int:
    shopify = get_shopify_config(shop=args.shop)
    fetcher = HttpFeedFetcher(get_feed_config())
    notifier = LoggingProgressNotifier()

    if not (args.track or config.auto_delete):
        items = read_feed(await fetcher.fetch(args.feed_url), config)
        async with ShopifyAdminClient(shopify) as client:
            report = await sync_feed(
                items,
                shop=shopify.shop,
                client=client,
                notifier=notifier,
                config=config,
                on_pipeline=_stop_on_sigint,
            )
        _print_report(report)
        return _exit_code(report.status)

    startup()
    with SqlAlchemySyncUnitOfWork() as uow:
        provider = uow.repositories.providers.find(shop=shopify.shop, name=args.feed_url)
        if provider is None:
            provider = FeedProvider(shop=shopify.shop, name=args.feed_url, feed_url=args.feed_url)
            uow.repositories.providers.add(provider)
        provider.auto_delete = config.auto_delete
        async with ShopifyAdminClient(shopify) as client:
            run = await sync_provider(
                provider,
                fetcher=fetcher,
                client=client,
                unit_of_work=uow,
                notifier=notifier,
                config=config,
                on_pipeline=_stop_on_sigint,
            )
    print(
        f"{run.status.value}: {run.created} created, {run.updated} updated, "
        f"{run.deleted} deleted, {run.errors} errors ({run.total_groups} groups)"
    )
    if run.error_message:
        print(f"  {run.error_message}")
    return _exit_code(run.status)


def _print_groups(path: Path, config: SyncConfig) -> int:
    groups = summarize_feed(path.read_bytes(), config)
    for group in groups:
        master = group.master
        print(f"{group.key}\t{len(group.items)} variant(s)\t{master.price}\t{master.title}")
    print(f"{sum(len(group.items) for group in groups)} items in {len(groups)} groups")
    return 0


def _add_provider(args: argparse.Namespace) -> int:
    if args.frequency < 1:
        raise ValueError("Sync frequency must be at least one hour")
    shop = normalize_shop_domain(args.shop)
    startup()
    with SqlAlchemySyncUnitOfWork() as uow:
        if uow.repositories.providers.find(shop=shop, name=args.name) is not None:
            raise ValueError(f"Provider {args.name!r} already exists for {shop}")
        provider = FeedProvider(
            shop=shop,
            name=args.name,
            feed_url=args.feed_url,
            sync_frequency_hours=args.frequency,
            auto_delete=args.auto_delete,
        )
        uow.repositories.providers.add(provider)
        uow.commit()
    print(f"Added provider {provider.name} ({provider.id}) for {shop}")
    return 0


def _list_due(args: argparse.Namespace) -> int:
    shop = normalize_shop_domain(args.shop) if args.shop else None
    startup()
    with SqlAlchemySyncUnitOfWork() as uow:
        providers = uow.repositories.providers.list_providers(shop=shop, active_only=True)
        due = providers_due(providers, datetime.now(UTC))
    for provider in due:
        last = provider.last_sync.isoformat() if provider.last_sync else "never"
        print(f"{provider.shop}\t{provider.name}\tlast sync: {last}")
    print(f"{len(due)} of {len(providers)} providers due")
    return 0


async def _run_due(args: argparse.Namespace, config: SyncConfig) -> int:
    shop = normalize_shop_domain(args.shop) if args.shop else None
    startup()
    results = await sync_due_providers(
        fetcher=HttpFeedFetcher(get_feed_config()),
        client_factory=lambda provider_shop: ShopifyAdminClient(get_shopify_config(shop=provider_shop)),
        unit_of_work_factory=SqlAlchemySyncUnitOfWork,
        notifier=LoggingProgressNotifier(),
        config=config,
        shop=shop,
        on_pipeline=_stop_on_sigint,
    )
    for result in results:
        outcome = result.run.status.value if result.ok else f"failed: {result.error}"
        print(f"{result.shop}\t{result.provider_name}\t{outcome}")
    failed = any(not result.ok or result.run.status is SyncStatus.ERROR for result in results)
    return 1 if failed else 0


def _dispatch(args: argparse.Namespace, config: SyncConfig) -> int:
    if args.command == "parse":
        return _print_groups(args.file, config)
    if args.command == "sync":
        return asyncio.run(_sync_once(args, config))
    if args.providers_command == "add":
        return _add_provider(args)
    if args.providers_command == "due":
        return _list_due(args)
    return asyncio.run(_run_due(args, config))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(sys.argv[1:] if argv is None else argv)
        config = _build_sync_config(parsed_args)
    except (ValueError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        code = _dispatch(parsed_args, config)
    except (ValueError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
