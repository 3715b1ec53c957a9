"""
Worker entry point: ``python -m reelgen``.

Runs startup checks, recovers interrupted jobs and then keeps the cache
sweep alive until interrupted.
"""

import asyncio

from reelgen.core import get_logger
from reelgen.services.registry import get_services

logger = get_logger(__name__, component="worker")


async def main() -> None:
    services = get_services()
    await services.lifecycle.startup()
    try:
        await asyncio.Event().wait()
    finally:
        await services.lifecycle.shutdown()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Worker stopped")


if __name__ == "__main__":
    run()
