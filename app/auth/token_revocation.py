"""Redis-backed JWT deny-list.

A revoked token's ``jti`` (JWT ID) claim is stored in Redis with a TTL
matching the token's remaining lifetime::

    await revoke_token(redis, jti, expires_in_seconds=1800)
    assert await is_token_revoked(redis, jti)
"""

from typing import Any

from redis.asyncio import Redis

_DENY_PREFIX = "token:deny:"


async def revoke_token(redis: Redis, jti: str, expires_in_seconds: int) -> None:
    """Add *jti* to the deny-list with a TTL equal to the token's remaining lifetime."""
    if expires_in_seconds > 0:
        await redis.setex(f"{_DENY_PREFIX}{jti}", expires_in_seconds, "1")


async def is_token_revoked(redis: Redis, jti: str) -> bool:
    """Return ``True`` if *jti* has been revoked."""
    return await redis.exists(f"{_DENY_PREFIX}{jti}") > 0


async def is_payload_revoked(redis: Redis | None, payload: dict[str, Any]) -> bool:
    """Check a decoded token payload against the deny-list.

    Tokens without a ``jti`` claim, or a missing Redis client, are treated
    as not revoked.
    """
    jti: str | None = payload.get("jti")
    if not jti or redis is None:
        return False
    return await is_token_revoked(redis, jti)
