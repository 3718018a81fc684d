"""
Command-line entry point for browsing availability and booking a slot.

Runs against the seeded in-memory salons, so no backend is required.

Usage:
    python main.py --salon salon-001 --service haircut
    python main.py --salon salon-001 --service braids --employee emp-aline --date 2026-10-20
    python main.py --salon salon-001 --service haircut --date 2026-10-20 --book 10:00
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from salon_availability.booking.flow import BookingFlow, create_booking_flow
from salon_availability.config import settings
from salon_availability.errors import BookingError
from salon_availability.schemas.booking_schema import ANY_EMPLOYEE, DayStatus
from salon_availability.utils import parse_date_key

logger = logging.getLogger(__name__)

GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

_STATUS_COLORS = {
    DayStatus.AVAILABLE: GREEN,
    DayStatus.PARTIALLY_BOOKED: YELLOW,
    DayStatus.FULLY_BOOKED: RED,
    DayStatus.UNAVAILABLE: DIM,
}


def _print_calendar(flow: BookingFlow, days: int) -> None:
    calendar = asyncio.run(flow.load_calendar(days=days))
    if not calendar:
        print(f"{DIM}No staff available for booking.{RESET}")
        return
    print(f"\n{BOLD}Availability for {flow.service.name}{RESET}")
    for day in calendar:
        color = _STATUS_COLORS[day.status]
        print(
            f"  {day.date}  {color}{day.status.value:<17}{RESET}"
            f" {day.available_slots:>3}/{day.total_slots:<3}"
        )


def _print_slots(flow: BookingFlow) -> None:
    print(f"\n{BOLD}Slots on {flow.selected_date}{RESET}")
    if not flow.slots:
        print(f"  {DIM}No slots on this day.{RESET}")
        return
    for slot in flow.slots:
        if slot.available:
            staff = ", ".join(slot.employee_ids)
            print(f"  {GREEN}{slot.start_time}-{slot.end_time}{RESET}  {DIM}{staff}{RESET}")
        else:
            print(f"  {DIM}{slot.start_time}-{slot.end_time}  ({slot.reason}){RESET}")


async def _book(flow: BookingFlow, start_time: str) -> int:
    flow.choose_time(start_time)
    outcome = await flow.confirm()
    if outcome.booked:
        appointment = outcome.appointment
        print(
            f"\n{GREEN}Booked {appointment.id}{RESET} with {appointment.employee_id}"
            f" at {appointment.scheduled_start.isoformat()}"
        )
        return 0
    print(f"\n{RED}Could not book {start_time}: {outcome.reason}{RESET}")
    if outcome.suggestions:
        print("Try instead: " + ", ".join(s.start_time for s in outcome.suggestions))
    return 1


def run(args: argparse.Namespace) -> int:
    flow = create_booking_flow(args.salon, args.customer)
    if flow.hours.degraded:
        print(f"{YELLOW}Operating hours unreadable; showing default business hours.{RESET}")

    flow.choose_service(args.service)
    flow.choose_employee(args.employee)

    if args.date is None:
        _print_calendar(flow, args.days)
        return 0

    asyncio.run(flow.choose_date(parse_date_key(args.date)))
    _print_slots(flow)
    if args.book:
        return asyncio.run(_book(flow, args.book))
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Browse salon availability and book appointments."
    )
    parser.add_argument("--salon", type=str, default="salon-001", help="Salon ID.")
    parser.add_argument("--service", type=str, required=True, help="Service ID, e.g. haircut.")
    parser.add_argument(
        "--employee",
        type=str,
        default=ANY_EMPLOYEE,
        help="Employee ID, or 'any' for the first available staff member.",
    )
    parser.add_argument("--customer", type=str, default="cust-demo", help="Customer ID.")
    parser.add_argument(
        "--date", type=str, default=None, help="Show slots for YYYY-MM-DD instead of the calendar."
    )
    parser.add_argument(
        "--days",
        type=int,
        default=settings.slots.availability_window_days,
        help="Calendar window length in days.",
    )
    parser.add_argument("--book", type=str, default=None, help="Book the slot starting at HH:MM.")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging output.")

    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        code = run(args)
    except (BookingError, ValueError) as exc:
        logger.error("%s", exc)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
