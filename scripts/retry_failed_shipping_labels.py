"""Retry shipping label creation for orders that never got labels.

Finds orders in ``new``, ``curator_assigned`` or ``ready_to_ship`` whose
labels are missing or failed and runs them through the same duplicate-safe
label flow as the API.

Usage:
    python -m scripts.retry_failed_shipping_labels --dry-run
    python -m scripts.retry_failed_shipping_labels --order-id abc123
    python -m scripts.retry_failed_shipping_labels --limit 10
"""

import argparse
import asyncio

from dissonant.core.config import get_settings
from dissonant.core.logging_config import bind_invocation, setup_logging
from dissonant.services.label_service import RetrySummary
from dissonant.workers.runtime import open_services


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--dry-run", action="store_true", help="list orders without creating labels"
    )
    parser.add_argument("--order-id", help="retry a single order")
    parser.add_argument("--limit", type=int, help="process at most this many orders")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> RetrySummary:
    async with open_services() as services:
        return await services.labels.retry_failed_labels(
            dry_run=args.dry_run, order_id=args.order_id, limit=args.limit
        )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(debug=get_settings().debug)
    with bind_invocation():
        summary = asyncio.run(run(args))

    print(f"Total:   {summary.total}")
    print(f"Success: {summary.success}")
    print(f"Failed:  {summary.failed}")
    print(f"Skipped: {summary.skipped}")
    for error in summary.errors:
        print(f"  {error['order_id']}: {error['outcome']}")


if __name__ == "__main__":
    main()
