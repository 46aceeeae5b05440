"""Command-line admin for the booking service.

Usage:
    # All bookings, newest first
    python -m moving.admin list

    # Only pending ones
    python -m moving.admin list --status pending

    # One booking in full
    python -m moving.admin show 12

    # Confirm a booking
    python -m moving.admin set-status 12 confirmed

    # Poll the list every 30 seconds (Ctrl-C to stop)
    python -m moving.admin watch --interval 30

    # Against another server
    API_BASE_URL=http://localhost:8000 ADMIN_API_KEY=... python -m moving.admin list
"""

import argparse
import asyncio
import json
import sys

from moving.client import ApiError, BookingClient
from moving.config import settings
from moving.models.booking import BookingStatus

DEFAULT_INTERVAL = 30.0


def format_booking(booking: dict) -> str:
    """One summary line per booking."""
    move_type = booking.get("moveType", "")
    if move_type == "other" and booking.get("customMoveType"):
        move_type = f"other ({booking['customMoveType']})"
    photos = len(booking.get("housePhotos") or []) + len(booking.get("itemsPhotos") or [])
    return (
        f"#{booking.get('id'):<5} {booking.get('status', ''):<10} "
        f"{booking.get('selectedDate', '')} {booking.get('timePreference', ''):<9} "
        f"{booking.get('fullName', '')} {booking.get('countryCode', '')} {booking.get('phoneNumber', '')} "
        f"| {booking.get('startLocation', '')} -> {booking.get('endLocation', '')} "
        f"| {move_type} | {photos} photos"
    )


async def list_bookings(client: BookingClient, status: str | None = None) -> None:
    bookings = await client.list_bookings(status)
    for booking in bookings:
        print(format_booking(booking))
    print(f"{len(bookings)} booking(s)")


async def show_booking(client: BookingClient, booking_id: int) -> None:
    booking = await client.get_booking(booking_id)
    print(json.dumps(booking, indent=2, ensure_ascii=False))


async def set_status(client: BookingClient, booking_id: int, status: str) -> None:
    booking = await client.update_status(booking_id, status)
    print(format_booking(booking))


async def watch_bookings(
    client: BookingClient,
    interval: float = DEFAULT_INTERVAL,
    status: str | None = None,
    rounds: int | None = None,
) -> None:
    """Re-fetch the list every ``interval`` seconds and print new arrivals."""
    seen: set = set()
    done = 0
    while rounds is None or done < rounds:
        bookings = await client.list_bookings(status)
        fresh = [b for b in reversed(bookings) if b.get("id") not in seen]
        for booking in fresh:
            print(format_booking(booking))
        seen.update(b.get("id") for b in bookings)
        done += 1
        if rounds is None or done < rounds:
            await asyncio.sleep(interval)


async def run(args: argparse.Namespace) -> int:
    async with BookingClient(base_url=args.base_url, token=args.token) as client:
        try:
            if args.command == "list":
                await list_bookings(client, args.status)
            elif args.command == "show":
                await show_booking(client, args.booking_id)
            elif args.command == "set-status":
                await set_status(client, args.booking_id, args.status)
            elif args.command == "watch":
                await watch_bookings(client, args.interval, args.status)
        except ApiError as exc:
            print(f"Error ({exc.status_code or 'network'}): {exc.message}", file=sys.stderr)
            for error in exc.errors:
                print(f"  {error.get('field')}: {error.get('message')}", file=sys.stderr)
            return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    statuses = [s.value for s in BookingStatus]

    parser = argparse.ArgumentParser(
        description="Review and update moving bookings",
        prog="python -m moving.admin",
    )
    parser.add_argument(
        "--base-url",
        default=settings.api_base_url,
        help="Booking API base URL (default: API_BASE_URL)",
    )
    parser.add_argument(
        "--token",
        default=settings.admin_api_key,
        help="Admin bearer token (default: ADMIN_API_KEY)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List bookings, newest first")
    p_list.add_argument("--status", choices=statuses)

    p_show = sub.add_parser("show", help="Show one booking")
    p_show.add_argument("booking_id", type=int)

    p_set = sub.add_parser("set-status", help="Change a booking's status")
    p_set.add_argument("booking_id", type=int)
    p_set.add_argument("status", choices=statuses)

    p_watch = sub.add_parser("watch", help="Poll for new bookings")
    p_watch.add_argument("--interval", type=float, default=DEFAULT_INTERVAL)
    p_watch.add_argument("--status", choices=statuses)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
