"""Redis connection pool."""

import redis.asyncio as redis


def create_redis(url: str) -> redis.Redis:
    """Create a Redis client backed by its own connection pool."""
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis(client: redis.Redis | None) -> None:
    """Close the Redis connection pool, if one was opened."""
    if client is not None:
        await client.aclose()
