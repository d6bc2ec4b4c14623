#!/usr/bin/env python3
"""Database bootstrap script - creates the preparation and order tables."""

import asyncio

from fusiondonate.config import get_settings
from fusiondonate.store.database import close_db, init_db
from fusiondonate.store.models import Base


async def main():
    """Create any missing tables."""
    settings = get_settings()

    print(f"Database URL: {settings._redact_url(settings.database_url)}")
    print(f"Creating tables: {', '.join(sorted(Base.metadata.tables))}")

    try:
        await init_db()
        print("Database tables created successfully!")
    except Exception as e:
        print(f"Error creating tables: {e}")
        raise
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
