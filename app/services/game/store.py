"""Authoritative game state storage - one writer per room.

Each room's GameState lives in a Redis hash next to a version counter.
Writes go through apply_action(), which:
1. Serializes writers inside this process with a per-room asyncio.Lock
2. Runs the pure engine on the stored snapshot
3. Commits with a compare-and-set on the version, so a writer in another
   process that got there first forces a reload and retry
"""

import asyncio
import json
import logging
import weakref
from dataclasses import dataclass

from upstash_redis.asyncio import Redis

from app.schemas.game_engine import GameSettings, GameState

from .engine import GameAction, ProcessResult, process_action
from .start_game import initialize_game

logger = logging.getLogger(__name__)

# KEYS[1] = game hash; ARGV = expected version, new version, state json, ttl
_COMPARE_AND_SET = """
local current = redis.call('HGET', KEYS[1], 'version')
if (current or '0') ~= ARGV[1] then
    return 0
end
redis.call('HSET', KEYS[1], 'version', ARGV[2], 'state', ARGV[3])
redis.call('EXPIRE', KEYS[1], tonumber(ARGV[4]))
return 1
"""


class GameAlreadyExistsError(Exception):
    """A game is already stored for this room."""


@dataclass
class StoredGame:
    """A snapshot together with the version it was stored under."""

    state: GameState
    version: int


class GameStore:
    """Loads, applies actions to, and saves game states per room."""

    def __init__(self, redis_client: Redis, ttl_seconds: int, max_retries: int = 3):
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds
        self._max_retries = max_retries
        # Locks live only while some caller holds or awaits them
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _redis_game_key(self, room_id: str) -> str:
        return f"game:{room_id}"

    def _room_lock(self, room_id: str) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[room_id] = lock
        return lock

    async def get_game(self, room_id: str) -> StoredGame | None:
        """Fetch the current snapshot for a room, or None if there is no game."""
        state_json, version = await self._redis.hmget(
            self._redis_game_key(room_id), "state", "version"
        )
        if state_json is None:
            return None
        state = GameState.model_validate(json.loads(state_json))
        return StoredGame(state=state, version=int(version or 0))

    async def create_game(self, room_id: str, settings: GameSettings) -> GameState:
        """Deal a new game for a room.

        Raises:
            ValueError: If the settings are invalid.
            GameAlreadyExistsError: If the room already has a game.
        """
        state = initialize_game(settings)
        async with self._room_lock(room_id):
            saved = await self._compare_and_set(room_id, 0, state)
        if not saved:
            logger.warning("Game already exists for room %s", room_id)
            raise GameAlreadyExistsError(f"Room {room_id} already has a game")
        logger.info("Game created: room=%s, players=%d", room_id, len(state.players))
        return state

    async def apply_action(
        self, room_id: str, action: GameAction, player_id: str
    ) -> ProcessResult:
        """Apply one player action to the room's game and persist the result.

        Rejected actions are returned without touching storage. A version
        conflict on commit reloads the snapshot and re-runs the action.
        """
        async with self._room_lock(room_id):
            for attempt in range(1, self._max_retries + 1):
                stored = await self.get_game(room_id)
                if stored is None:
                    return ProcessResult.failure(
                        "GAME_NOT_FOUND", "No game in progress for this room"
                    )

                result = process_action(stored.state, action, player_id)
                if not result.success or result.state is None:
                    return result

                if await self._compare_and_set(room_id, stored.version, result.state):
                    logger.debug(
                        "Game saved: room=%s, version=%d", room_id, stored.version + 1
                    )
                    return result

                logger.warning(
                    "Version conflict saving room %s (attempt %d/%d, version %d)",
                    room_id,
                    attempt,
                    self._max_retries,
                    stored.version,
                )

        logger.error("Giving up on room %s after %d conflicts", room_id, self._max_retries)
        return ProcessResult.failure(
            "STATE_CONFLICT", "The game changed while your action was processed, try again"
        )

    async def _compare_and_set(
        self, room_id: str, expected_version: int, state: GameState
    ) -> bool:
        saved = await self._redis.eval(
            _COMPARE_AND_SET,
            keys=[self._redis_game_key(room_id)],
            args=[
                str(expected_version),
                str(expected_version + 1),
                state.model_dump_json(),
                str(self._ttl_seconds),
            ],
        )
        return bool(saved)
