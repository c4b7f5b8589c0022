"""CLI entry point for slotbook."""

from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import sys
from datetime import date, datetime
from pathlib import Path

from . import __version__

MINIMAL_CONFIG = """\
owner:
  name: "Your Name"

engine:
  timezone: "UTC"
  slot_granularity_minutes: 15

database:
  path: "slotbook.db"

event_types:
  - id: "intro-call"
    name: "Intro call"
    duration: 30
    availability:
      - {day: monday, hours: "09:00-17:00"}
"""


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def _open(args: argparse.Namespace):
    """Load config and connect the store. Returns (config, db, engine)."""
    from .config import load_config
    from .core.engine import SchedulingEngine
    from .database import Database

    config = load_config(args.config)
    db = Database(config.database.path)
    db.connect()
    return config, db, SchedulingEngine(config.engine, db)


def _run(coro, db) -> None:
    """Run a display coroutine, reporting engine errors without a traceback."""
    from .errors import SlotbookError

    try:
        asyncio.run(coro)
    except SlotbookError as e:
        print(f"[FAIL] {e}")
        sys.exit(1)
    finally:
        db.close()


def _parse_day(value: str | None) -> date | None:
    if not value:
        return None
    return datetime.strptime(value, "%Y-%m-%d").date()


def cmd_init(args: argparse.Namespace) -> None:
    """Initialize slotbook configuration in the current directory."""
    config_dest = Path("config.yaml")

    # Find example file from package
    pkg_dir = Path(__file__).parent.parent.parent  # src/slotbook -> project root
    config_src = pkg_dir / "config.example.yaml"

    if config_dest.exists() and not args.force:
        print("config.yaml already exists. Use --force to overwrite.")
        return
    if config_src.exists():
        shutil.copy(config_src, config_dest)
    else:
        config_dest.write_text(MINIMAL_CONFIG)
    print(f"Created {config_dest}")

    print("\nNext steps:")
    print("  1. Edit config.yaml with your event types")
    print("  2. Load them into the store: slotbook import")
    print("  3. Check open times: slotbook slots <event-type-id> --date YYYY-MM-DD")


def cmd_check(args: argparse.Namespace) -> None:
    """Check config, store and event type settings."""
    from .core.rules import validate_event_type

    print(f"slotbook v{__version__} — configuration check\n")

    try:
        config, db, _ = _open(args)
        print(f"[OK] Config loaded from {args.config}")
        print(f"[OK] Store at {config.database.path}")
    except Exception as e:
        print(f"[FAIL] {e}")
        sys.exit(1)

    for event_type in db.get_event_types():
        problems = validate_event_type(event_type)
        if problems:
            print(f"[WARN] Event type {event_type.id}: {'; '.join(problems)}")
        else:
            print(f"[OK] Event type {event_type.id} ({event_type.duration} min)")
    db.close()


def cmd_import(args: argparse.Namespace) -> None:
    """Save the event types declared in config.yaml into the store."""
    config, db, _ = _open(args)
    if not config.event_types:
        print("No event_types in config.")
    for event_type in config.event_types:
        saved = db.save_event_type(event_type)
        print(f"Saved event type {saved.id} ({saved.name})")
    db.close()


def cmd_slots(args: argparse.Namespace) -> None:
    """Display available slots for one event type and date."""
    _setup_logging(args.verbose)
    config, db, engine = _open(args)
    day = _parse_day(args.date) or engine.availability.today()

    async def show():
        slots = await engine.availability.get_available_slots(args.event_type, day)
        if not slots:
            print(f"No available slots on {day.isoformat()}.")
            return
        print(f"Available slots on {day.isoformat()}:\n")
        for i, slot in enumerate(slots, 1):
            print(f"  {i}. {slot}")
        print(f"\nTotal: {len(slots)} slots")

    _run(show(), db)


def cmd_dates(args: argparse.Namespace) -> None:
    """Display the bookable dates of a month."""
    config, db, engine = _open(args)
    today = engine.availability.today()
    month = datetime.strptime(args.month, "%Y-%m") if args.month else today

    async def show():
        dates = await engine.availability.get_bookable_dates(args.event_type, month.year, month.month)
        if not dates:
            print("No bookable dates this month.")
            return
        for d in dates:
            print(f"  {d.isoformat()} {d.strftime('%A')}")

    _run(show(), db)


def cmd_layout(args: argparse.Namespace) -> None:
    """Display the column layout of a day's bookings."""
    config, db, engine = _open(args)
    day = _parse_day(args.date) or engine.availability.today()

    async def show():
        positioned = await engine.day_layout(day, args.event_type or "")
        if not positioned:
            print(f"No bookings on {day.isoformat()}.")
            return
        for p in positioned:
            b = p.booking
            print(
                f"  {b.start:%H:%M}-{b.end:%H:%M} {b.booker_name or b.id:<24} "
                f"width={p.width_fraction:.3f} left={p.left_offset_fraction:.3f}"
            )

    _run(show(), db)


def cmd_mcp(args: argparse.Namespace) -> None:
    """Run the MCP server (stdio transport for local agents)."""
    from .mcp_server import create_mcp_server

    _setup_logging(args.verbose)
    config, db, engine = _open(args)
    mcp = create_mcp_server(config, engine)
    mcp.run(transport=args.transport or config.mcp.transport)


def main():
    parser = argparse.ArgumentParser(
        prog="slotbook",
        description="Availability and booking engine for meeting event types",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    # init
    init_parser = subparsers.add_parser("init", help="Initialize configuration")
    init_parser.add_argument("--force", action="store_true", help="Overwrite existing files")

    # check
    check_parser = subparsers.add_parser("check", help="Check config and store")
    check_parser.add_argument("-c", "--config", default="config.yaml", help="Config file path")

    # import
    import_parser = subparsers.add_parser("import", help="Save config event types into the store")
    import_parser.add_argument("-c", "--config", default="config.yaml", help="Config file path")

    # slots
    slots_parser = subparsers.add_parser("slots", help="Show available time slots")
    slots_parser.add_argument("event_type", help="Event type ID")
    slots_parser.add_argument("-d", "--date", default=None, help="Date (YYYY-MM-DD), default today")
    slots_parser.add_argument("-c", "--config", default="config.yaml", help="Config file path")
    slots_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    # dates
    dates_parser = subparsers.add_parser("dates", help="Show bookable dates of a month")
    dates_parser.add_argument("event_type", help="Event type ID")
    dates_parser.add_argument("-m", "--month", default=None, help="Month (YYYY-MM), default current")
    dates_parser.add_argument("-c", "--config", default="config.yaml", help="Config file path")

    # layout
    layout_parser = subparsers.add_parser("layout", help="Show calendar columns for a day")
    layout_parser.add_argument("-d", "--date", default=None, help="Date (YYYY-MM-DD), default today")
    layout_parser.add_argument("-e", "--event-type", default=None, help="Only this event type")
    layout_parser.add_argument("-c", "--config", default="config.yaml", help="Config file path")

    # mcp
    mcp_parser = subparsers.add_parser("mcp", help="Run the MCP server")
    mcp_parser.add_argument("-c", "--config", default="config.yaml", help="Config file path")
    mcp_parser.add_argument("-t", "--transport", default=None, choices=["stdio", "streamable-http"], help="MCP transport")
    mcp_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    commands = {
        "init": cmd_init,
        "check": cmd_check,
        "import": cmd_import,
        "slots": cmd_slots,
        "dates": cmd_dates,
        "layout": cmd_layout,
        "mcp": cmd_mcp,
    }
    commands[args.command](args)
