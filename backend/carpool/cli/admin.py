"""CLI for carpool administration: offices and groups."""

import argparse
import asyncio
import logging
import sys
from typing import Any, Optional

from carpool.config import get_settings
from carpool.engine import CarpoolEngine, CommandResult, build_dispatcher
from carpool.geo.geocoder import NominatimGeocoder
from carpool.infrastructure.database import create_session_factory, create_tables
from carpool.models.records import GroupCandidate, OfficeSummary
from carpool.repositories.sql_repository import create_sql_store
from carpool.services.notification_service import LoggingNotifier

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def run_admin_command(
    name: str,
    options: dict[str, Any],
    database_url: Optional[str] = None,
) -> CommandResult:
    """
    Run one admin command against the configured database.

    Notifications raised by the command are logged rather than delivered.

    Args:
        name: Chat-style command name, e.g. ``add-office`` or ``admin``
        options: Command options keyed by their chat option names
        database_url: Overrides the configured database URL

    Returns:
        The dispatcher's CommandResult
    """
    settings = get_settings()
    db_engine, session_factory = create_session_factory(
        database_url or settings.database_url,
        echo=settings.debug,
    )

    try:
        await create_tables(db_engine)
        async with session_factory() as session:
            engine = CarpoolEngine(
                create_sql_store(session),
                NominatimGeocoder.from_settings(settings),
                LoggingNotifier(),
                settings,
            )
            dispatcher = build_dispatcher(engine)
            return await dispatcher.execute(name, "cli", options, is_admin=True)
    finally:
        await db_engine.dispose()


def log_result(result: CommandResult) -> None:
    if not result.ok:
        logger.error("%s: %s", result.error_code, result.detail)
        return

    value = result.value
    if isinstance(value, list):
        if not value:
            logger.info("Nothing found")
        for item in value:
            logger.info(describe(item))
    else:
        logger.info(describe(value))


def describe(item: Any) -> str:
    if isinstance(item, OfficeSummary):
        line = (
            f"{item.office.name} ({item.office.address}): "
            f"{item.users_in_carpools}/{item.total_users} users in carpools "
            f"({item.participation_rate:.1f}%)"
        )
        if item.distance_km is not None:
            line += f", {item.distance_km:.1f}km away"
        return line

    if isinstance(item, GroupCandidate):
        office = item.office.name if item.office else "unknown office"
        return (
            f"{item.group.name} @ {office}: "
            f"{item.member_count}/{item.group.max_size} members"
        )

    return str(item)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Administer carpool offices and groups",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m carpool.cli.admin add-office HQ "1 Main St, Springfield"
  python -m carpool.cli.admin create-group "HQ Early" HQ 4
  python -m carpool.cli.admin list-offices --near 10001
  python -m carpool.cli.admin list-groups
        """,
    )
    parser.add_argument(
        "--database-url",
        help="Database URL (default: from settings)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="action", required=True)

    add_office = subparsers.add_parser("add-office", help="Register a new office")
    add_office.add_argument("name")
    add_office.add_argument("address")

    create_group = subparsers.add_parser("create-group", help="Create a carpool group")
    create_group.add_argument("name")
    create_group.add_argument("office")
    create_group.add_argument("max_size", type=int)

    list_offices = subparsers.add_parser("list-offices", help="Office participation summary")
    list_offices.add_argument("--near", help="Address or zip code to measure distance from")

    subparsers.add_parser("list-groups", help="List every carpool group")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.action == "add-office":
        name, options = "add-office", {"name": args.name, "address": args.address}
    elif args.action == "create-group":
        name, options = "admin", {
            "action": "create",
            "name": args.name,
            "location": args.office,
            "max-size": args.max_size,
        }
    elif args.action == "list-offices":
        name, options = "find-offices", {"zipcode": args.near}
    else:
        name, options = "admin", {"action": "list"}

    try:
        result = asyncio.run(run_admin_command(name, options, args.database_url))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)

    log_result(result)
    if not result.ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
