import logging

from upstash_redis.asyncio import Redis

from app.config import get_settings
from app.services.game.store import GameStore

logger = logging.getLogger(__name__)

_redis_client: Redis | None = None
_game_store: GameStore | None = None


def get_redis_client() -> Redis:
    """Get the singleton async Redis client.

    Returns the existing client if initialized, otherwise creates a new one.
    """
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        logger.info("Initializing Upstash Redis client")
        _redis_client = Redis(
            url=settings.UPSTASH_REDIS_REST_URL,
            token=settings.UPSTASH_REDIS_REST_TOKEN,
        )
        logger.debug("Redis client initialized with URL: %s", settings.UPSTASH_REDIS_REST_URL)
    return _redis_client


def get_game_store() -> GameStore:
    """FastAPI dependency returning the process-wide game store.

    One store per process so every request for a room shares its lock.
    """
    global _game_store
    if _game_store is None:
        settings = get_settings()
        _game_store = GameStore(
            get_redis_client(),
            ttl_seconds=settings.GAME_STATE_TTL_SECONDS,
            max_retries=settings.GAME_SAVE_MAX_RETRIES,
        )
    return _game_store


async def close_redis_client() -> None:
    """Close the Redis client connection and drop the store using it."""
    global _redis_client, _game_store
    _game_store = None
    if _redis_client is not None:
        logger.info("Closing Upstash Redis client")
        await _redis_client.close()
        _redis_client = None
        logger.debug("Redis client closed")
