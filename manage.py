#!/usr/bin/env python3
"""
TaxBridge offline sync management CLI.

Usage:
    python manage.py migrate     Apply schema migrations and prune expired records
    python manage.py sync        Run one sync pass now
    python manage.py status      Show queue size and reachability
    python manage.py serve       Start the local API (with background sync)
"""

import argparse
import asyncio
import sys


async def _migrate() -> None:
    from taxbridge_sync.application.services import init_db
    from taxbridge_sync.infrastructure.storage.sqlite import close_pool

    try:
        removed = await init_db()
    finally:
        await close_pool()
    print(f"Database ready. Removed {removed} expired synced invoice(s).")


async def _sync() -> int:
    from taxbridge_sync.application.services import get_sync_orchestrator, init_db
    from taxbridge_sync.infrastructure.storage.sqlite import close_pool

    try:
        await init_db()
        orchestrator = await get_sync_orchestrator()
        result = await orchestrator.run_sync_pass()
    finally:
        await close_pool()

    if result.skipped is not None:
        print(f"Sync skipped: {result.skipped.value}.")
        return 1
    print(f"Synced {result.synced}, deferred {result.deferred}, failed {result.failed}.")
    return 0


async def _status() -> None:
    from taxbridge_sync.application.services import get_reachability_monitor, init_db
    from taxbridge_sync.infrastructure.storage.sqlite import close_pool, get_record_store

    try:
        await init_db()
        store = await get_record_store()
        total = await store.count_all()
        unsynced = await store.count_unsynced()
        reachable = await get_reachability_monitor().force_check()
    finally:
        await close_pool()

    print(f"Invoices on device: {total} ({unsynced} not yet synced).")
    print(f"Internet reachable: {'yes' if reachable else 'no'}.")


def cmd_migrate(args: argparse.Namespace) -> None:
    """Apply migrations."""
    asyncio.run(_migrate())


def cmd_sync(args: argparse.Namespace) -> None:
    """Run a single sync pass."""
    sys.exit(asyncio.run(_sync()))


def cmd_status(args: argparse.Namespace) -> None:
    """Show queue and network status."""
    asyncio.run(_status())


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the local API server."""
    import uvicorn

    print(f"Starting local API on {args.host}:{args.port}...")
    uvicorn.run(
        "taxbridge_sync.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


def main() -> None:
    from taxbridge_sync.config import configure_logging, get_settings

    configure_logging()
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="TaxBridge offline sync management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_migrate = sub.add_parser("migrate", help="Apply schema migrations")
    p_migrate.set_defaults(func=cmd_migrate)

    p_sync = sub.add_parser("sync", help="Run one sync pass")
    p_sync.set_defaults(func=cmd_sync)

    p_status = sub.add_parser("status", help="Show queue size and reachability")
    p_status.set_defaults(func=cmd_status)

    p_serve = sub.add_parser("serve", help="Start the local API")
    p_serve.add_argument(
        "--host", default=settings.api.host, help=f"Bind host (default: {settings.api.host})"
    )
    p_serve.add_argument(
        "--port", type=int, default=settings.api.port, help=f"Bind port (default: {settings.api.port})"
    )
    p_serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    p_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
