"""Protean Engine runner for the storefront.

Runs alongside the API whenever ``event_processing = "async"``, which is
every overlay except ``test``. The Engine picks up ``OrderPlaced`` and
runs the confirmation notification outside the request that placed the order.

Usage:
    PROTEAN_ENV=production python src/server.py
"""

import asyncio

from protean.server.engine import Engine
from storefront.domain import storefront
from storefront.utils.logging import configure_logging


async def run():
    storefront.init()
    await Engine(storefront).run()


def main():
    configure_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
