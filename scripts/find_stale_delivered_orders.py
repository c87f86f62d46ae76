"""List customers with orders left in ``delivered`` for too long.

Customers have a window after delivery to keep or return their records;
orders still marked ``delivered`` past that window need a follow-up.

Usage:
    python -m scripts.find_stale_delivered_orders
    python -m scripts.find_stale_delivered_orders --days 14
"""

import argparse
import asyncio

from dissonant.core.config import get_settings
from dissonant.core.logging_config import bind_invocation, setup_logging
from dissonant.services.tracking_service import StaleDeliveredUser
from dissonant.workers.runtime import open_services


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--days", type=int, help="days since delivery (defaults to STALE_DELIVERED_DAYS)"
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> list[StaleDeliveredUser]:
    async with open_services() as services:
        return await services.tracking.find_stale_delivered(days=args.days)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(debug=get_settings().debug)
    with bind_invocation():
        users = asyncio.run(run(args))

    if not users:
        print("No stale delivered orders.")
        return

    for user in users:
        print(f"{user.email or 'NO EMAIL'} (user {user.user_id or '-'})")
        for order in user.orders:
            age = order["days_delivered"]
            print(f"  {order['order_id']}: {age if age is not None else '?'} days")
    print(f"\n{sum(len(u.orders) for u in users)} order(s) across {len(users)} customer(s)")


if __name__ == "__main__":
    main()
