"""
Basic usage example for cwtransport.

Ships stdlib logging records to CloudWatch Logs through a dispatcher. Set
CWTRANSPORT_AWS__ENDPOINT_URL to point at localstack when trying this
without an AWS account.
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cwtransport import (
    CloudWatchHandler,
    Delivered,
    DeliveryResult,
    StreamOptions,
    create_dispatcher,
)


def report(result: DeliveryResult) -> None:
    if isinstance(result, Delivered):
        print(f"delivered {len(result.batch)} events")
    else:
        print(f"gave up on {len(result.batch)} events: {result.error}")


async def main() -> None:
    """Ship a few records and drain before exiting."""
    dispatcher = create_dispatcher()
    dispatcher.subscribe(report)

    sink = dispatcher.stream(
        "web-application",
        "errors",
        StreamOptions(
            create_log_group=True,
            create_log_stream=True,
            group_tags={"environment": "development"},
        ),
    )

    logger = logging.getLogger("example")
    logger.setLevel(logging.DEBUG)
    logger.addHandler(logging.StreamHandler())
    # Records below WARNING only ship when hidden logs are transported
    logger.addHandler(CloudWatchHandler(sink, printed_level=logging.WARNING))

    dispatcher.process_all()

    logger.info("Application started", extra={"source": "example"})
    logger.error("Foo bar!")
    try:
        1 / 0
    except ZeroDivisionError:
        logger.exception("Calculation failed")

    await dispatcher.drain(timeout=10.0)


if __name__ == "__main__":
    asyncio.run(main())
