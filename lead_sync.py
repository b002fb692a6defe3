"""Live lead view — command line entry point.

Mounts one lead view against the configured database and keeps it in sync
through row change notifications.

Usage:
  # Print the caller's leads after every change until Ctrl-C
  python lead_sync.py watch --user-id 6f1c...e2

  # Override the roles looked up in crm.user_roles
  python lead_sync.py watch --user-id 6f1c...e2 --role manager

  # One-shot load, printed as JSON
  python lead_sync.py snapshot --user-id 6f1c...e2
"""
import argparse
import asyncio
import json
import logging
import sys
import uuid
from typing import Optional

from db.connection import connect_listener, dispose_engine, get_db
import db.repositories.roles as roles_repo
from schemas.lead import Caller, LeadsSnapshot
from sync import (
    ChangeChannelAdapter,
    LeadPipeline,
    LeadStore,
    LiveLeads,
    SubscriptionBinder,
    SyncSettings,
)
from sync.transport import PostgresChangeTransport

logger = logging.getLogger(__name__)


async def resolve_caller(user_id: uuid.UUID, roles: Optional[list[str]] = None) -> Caller:
    """Build the caller, reading active roles from crm.user_roles unless given."""
    if roles:
        return Caller(user_id=user_id, roles=frozenset(roles))
    found: set[str] = set()
    try:
        async with get_db() as session:
            found = await roles_repo.get_active_roles(session, user_id)
    except Exception as e:
        logger.warning("Role lookup failed for %s (continuing without roles): %s", user_id, e, exc_info=True)
    return Caller(user_id=user_id, roles=frozenset(found))


def _render(snapshot: LeadsSnapshot) -> None:
    if snapshot.loading:
        print("  loading...")
        return
    if snapshot.error:
        print(f"  error: {snapshot.error}")
        return
    print(f"\n[{len(snapshot.records)} leads]")
    for lead in snapshot.records:
        amount = f"${lead.loan_amount:,.0f}" if lead.loan_amount else "-"
        print(
            f"  #{lead.lead_number or '?':<6} {lead.name or '(unnamed)':<28} "
            f"{lead.stage:<18} {lead.priority:<8} {amount}"
        )


async def run_watch(user_id: uuid.UUID, roles: Optional[list[str]] = None) -> None:
    settings = SyncSettings.from_env()
    caller = await resolve_caller(user_id, roles)
    print(f"Watching leads for {caller.user_id} (roles: {', '.join(sorted(caller.roles)) or 'none'})")

    transport = PostgresChangeTransport(connect_listener, notify_channel=settings.notify_channel)
    adapter = ChangeChannelAdapter(transport, namespace=settings.namespace)
    store = LeadStore(LeadPipeline(get_db, settings), settings, caller=caller)
    store.subscribe(_render)
    try:
        async with LiveLeads(store, SubscriptionBinder(adapter)) as live:
            if not live.binding.is_connected:
                print("  live updates unavailable; showing last loaded state")
            await asyncio.Event().wait()
    finally:
        await transport.close()
        await dispose_engine()


async def run_snapshot(user_id: uuid.UUID, roles: Optional[list[str]] = None) -> None:
    settings = SyncSettings.from_env()
    caller = await resolve_caller(user_id, roles)
    try:
        leads = await LeadPipeline(get_db, settings).load_composite(caller)
        print(json.dumps([lead.model_dump(mode="json") for lead in leads], indent=2))
    finally:
        await dispose_engine()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Real-time lead view")
    parser.add_argument("--log-level", default="INFO", help="Python logging level (default: INFO)")
    sub = parser.add_subparsers(dest="command")

    for name, help_text in (
        ("watch", "Keep the lead list in sync and print it after every change"),
        ("snapshot", "Load the lead list once and print it as JSON"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--user-id", required=True, type=uuid.UUID)
        cmd.add_argument(
            "--role",
            action="append",
            default=None,
            help="Caller role (repeatable); defaults to active roles in crm.user_roles",
        )

    return parser


if __name__ == "__main__":
    parser = _build_arg_parser()
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(message)s")

    if args.command == "watch":
        try:
            asyncio.run(run_watch(args.user_id, args.role))
        except KeyboardInterrupt:
            print("\nStopped.")

    elif args.command == "snapshot":
        asyncio.run(run_snapshot(args.user_id, args.role))

    else:
        parser.print_help()
        sys.exit(1)
