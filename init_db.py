#!/usr/bin/env python3
"""Create the bid history tables and check the Redis profile cache."""
import asyncio

from auction_analytics.core.database import close_db, init_db
from auction_analytics.core.redis import redis_client


async def main():
    print("Initializing database...")
    try:
        await init_db()
        print("✅ Database tables created successfully!")
    except Exception as e:
        print(f"❌ Database initialization failed: {e}")
        return
    finally:
        await close_db()

    print("\nTesting Redis connection...")
    try:
        await redis_client.connect()
        if await redis_client.ping():
            print("✅ Redis connection successful! User profile cache enabled.")
        else:
            print("⚠ Redis ping failed, the service will run without the profile cache")
        await redis_client.disconnect()
    except Exception as e:
        print(f"⚠ Redis connection failed: {e}")


if __name__ == "__main__":
    asyncio.run(main())
