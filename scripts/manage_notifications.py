"""Maintenance commands for the notification tables."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from sqlalchemy.exc import SQLAlchemyError

from notifyhub.application.services import NotificationService
from notifyhub.application.use_cases.notifications import (
    archive_old_notifications,
    seed_notification_types,
)
from notifyhub.config import get_settings
from notifyhub.domain.entities import PRIORITIES
from notifyhub.infrastructure.database import SessionLocal, initialize_database
from notifyhub.infrastructure.permissions import PERMISSION_GRANTED, LoggingPermissionBridge
from notifyhub.interfaces.backend import LocalBackendClient


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage notifyhub notifications.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("seed-types", help="Create the default notification types")

    archive = commands.add_parser("archive", help="Archive notifications older than N days")
    archive.add_argument(
        "--days",
        type=int,
        default=None,
        help="Age in days (defaults to NOTIFICATION_RETENTION_DAYS)",
    )

    send = commands.add_parser(
        "send", help="Create a notification for a user and show it as a native notification"
    )
    send.add_argument("--user", required=True, help="Recipient user id")
    send.add_argument("--type", dest="type_name", default="system_alert")
    send.add_argument("--title", required=True)
    send.add_argument("--message", required=True)
    send.add_argument("--priority", choices=PRIORITIES, default="normal")
    send.add_argument("--data", default="{}", help="JSON object stored with the notification")
    return parser.parse_args(argv)


def _seed_types() -> None:
    with SessionLocal() as session:
        created = seed_notification_types(session)
    print(f"{len(created)} notification types available")


def _archive(days: int | None) -> None:
    days_old = get_settings().notification_retention_days if days is None else days
    with SessionLocal() as session:
        archived = archive_old_notifications(session, days_old=days_old)
    print(f"Archived {archived} notifications older than {days_old} days")


async def _send(args: argparse.Namespace) -> None:
    backend = LocalBackendClient(SessionLocal)
    backend.sign_in(args.user)
    service = NotificationService(
        backend, permissions=LoggingPermissionBridge(PERMISSION_GRANTED)
    )
    await service.start()
    try:
        notification_id = await service.create_notification(
            args.user,
            args.type_name,
            args.title,
            args.message,
            json.loads(args.data),
            args.priority,
        )
        await backend.publisher.flush()
    finally:
        await service.disconnect()
    if notification_id is None:
        raise SystemExit("The notification could not be created; see the log for details.")
    print(f"Created notification {notification_id}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    initialize_database()
    try:
        if args.command == "seed-types":
            _seed_types()
        elif args.command == "archive":
            _archive(args.days)
        elif args.command == "send":
            asyncio.run(_send(args))
    except SQLAlchemyError as exc:
        raise SystemExit(f"Database error: {exc}") from exc


if __name__ == "__main__":
    main()
