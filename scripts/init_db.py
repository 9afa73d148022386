"""Initialize database tables."""
import asyncio

from catalog_engine.database import init_db
from catalog_engine.logging_config import setup_logging


async def init():
    """Create all tables."""
    print("Creating database tables...")
    await init_db()
    print("Database tables created successfully!")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init())
