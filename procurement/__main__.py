"""
Main entry point for running the application with `python -m procurement`.

    python -m procurement          serve the API with uvicorn
    python -m procurement seed     create tables and insert reference data
"""
import argparse
import asyncio

import uvicorn

from procurement.core.config import settings
from procurement.core.logging import logger


async def seed() -> None:
    from procurement.db.seed import create_schema, seed_reference_data
    from procurement.db.session import AsyncSessionLocal, engine

    await create_schema(engine)
    async with AsyncSessionLocal() as session:
        await seed_reference_data(session)
    await engine.dispose()


def serve() -> None:
    """Run the application with uvicorn."""
    logger.info(f"Starting {settings.api.title} on {settings.host}:{settings.port}")
    logger.info(f"Environment: {settings.environment.value}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Log level: {settings.logging.level}")

    uvicorn.run(
        "procurement.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.logging.level.lower(),
        access_log=True,
    )


def main():
    parser = argparse.ArgumentParser(prog="procurement")
    parser.add_argument("command", nargs="?", choices=["serve", "seed"], default="serve")
    args = parser.parse_args()

    if args.command == "seed":
        asyncio.run(seed())
    else:
        serve()


if __name__ == "__main__":
    main()
