"""Register tracking numbers of in-flight orders with Shippo.

Orders whose labels were bought before the webhook was configured never
produce tracking webhooks. Registering them once makes Shippo start
delivering updates.

Usage:
    python -m scripts.register_existing_tracking --dry-run
    python -m scripts.register_existing_tracking --carrier usps
"""

import argparse
import asyncio

from dissonant.core.config import get_settings
from dissonant.core.logging_config import bind_invocation, setup_logging
from dissonant.services.tracking_service import BatchCounts
from dissonant.workers.runtime import open_services


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--dry-run", action="store_true", help="list without registering")
    parser.add_argument("--carrier", help="carrier token (defaults to DEFAULT_CARRIER)")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> BatchCounts:
    async with open_services() as services:
        return await services.tracking.register_existing(
            dry_run=args.dry_run, carrier=args.carrier
        )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(debug=get_settings().debug)
    with bind_invocation():
        counts = asyncio.run(run(args))

    print(f"Processed:  {counts.processed}")
    print(f"Registered: {counts.updated}")
    print(f"Skipped:    {counts.skipped}")
    print(f"Failed:     {counts.failed}")


if __name__ == "__main__":
    main()
