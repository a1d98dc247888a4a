"""Shared fixtures and builders for game engine tests."""

import pytest

from app.schemas.game_engine import (
    INITIAL_CASH,
    SAFE_CHAIN_SIZE,
    STOCKS_PER_CHAIN,
    Chain,
    ChainName,
    GamePhase,
    GameState,
    Player,
    Tile,
    empty_holdings,
)
from app.services.game.engine.board import all_tile_ids

# Fixed ids for deterministic testing
PLAYER_1_ID = "player-1"
PLAYER_2_ID = "player-2"
PLAYER_3_ID = "player-3"
PLAYER_4_ID = "player-4"

PLAYER_IDS = [PLAYER_1_ID, PLAYER_2_ID, PLAYER_3_ID, PLAYER_4_ID]


def create_player(
    number: int,
    cash: int = INITIAL_CASH,
    tiles: list[str] | None = None,
    stocks: dict[ChainName, int] | None = None,
) -> Player:
    """Helper to create a player; number is 1-based."""
    holdings = empty_holdings()
    holdings.update(stocks or {})
    return Player(
        player_id=f"player-{number}",
        name=f"Player {number}",
        cash=cash,
        tiles=list(tiles or []),
        stocks=holdings,
    )


def create_players(**overrides: dict) -> list[Player]:
    """Four players; pass p1={...}, p3={...} to customise individual seats."""
    return [create_player(n, **overrides.get(f"p{n}", {})) for n in range(1, 5)]


def build_state(
    players: list[Player] | None = None,
    chains: dict[ChainName, list[str]] | None = None,
    loose: list[str] | None = None,
    phase: GamePhase = GamePhase.PLACE_TILE,
    current_player_index: int = 0,
    tile_bag: list[str] | None = None,
    **updates,
) -> GameState:
    """Build a consistent GameState from a compact description.

    chains maps active chains to their tiles; loose lists placed tiles
    outside any chain. Banks are whatever the players don't hold. Tiles not
    on the board or in a hand go to the bag, or, when tile_bag is given,
    to the discard pile so the tile count still balances.
    """
    players = players or create_players()
    chains = chains or {}

    board = {tile_id: Tile(id=tile_id) for tile_id in all_tile_ids()}
    chain_models = {name: Chain(name=name) for name in ChainName}
    for name, tiles in chains.items():
        chain_models[name] = Chain(
            name=name,
            tiles=list(tiles),
            is_active=True,
            is_safe=len(tiles) >= SAFE_CHAIN_SIZE,
        )
        for tile_id in tiles:
            board[tile_id] = Tile(id=tile_id, placed=True, chain=name)
    for tile_id in loose or []:
        board[tile_id] = Tile(id=tile_id, placed=True)

    in_hands = {t for p in players for t in p.tiles}
    free = [t for t in all_tile_ids() if not board[t].placed and t not in in_hands]
    discarded: list[str] = []
    if tile_bag is None:
        tile_bag = free
    else:
        discarded = [t for t in free if t not in tile_bag]

    stock_bank = {
        name: STOCKS_PER_CHAIN - sum(p.stocks.get(name, 0) for p in players)
        for name in ChainName
    }

    state = GameState(
        phase=phase,
        board=board,
        chains=chain_models,
        stock_bank=stock_bank,
        tile_bag=list(tile_bag),
        players=players,
        current_player_index=current_player_index,
        discarded_tiles=discarded,
    )
    if updates:
        state = state.model_copy(update=updates)
    return state


def row_tiles(row: int, columns: str) -> list[str]:
    """Tile ids along one row, e.g. row_tiles(5, "ABC") -> ["5A", "5B", "5C"]."""
    return [f"{row}{column}" for column in columns]


class FakeRedis:
    """In-memory stand-in for the async Upstash client.

    Supports the two calls the game store makes: HMGET and the
    compare-and-set script via EVAL. conflicts makes the next N EVALs
    lose the race, as if another process had committed first.
    """

    def __init__(self, conflicts: int = 0):
        self.hashes: dict[str, dict[str, str]] = {}
        self.ttls: dict[str, int] = {}
        self.conflicts = conflicts
        self.eval_calls = 0

    async def hmget(self, key: str, *fields: str) -> list[str | None]:
        stored = self.hashes.get(key, {})
        return [stored.get(field) for field in fields]

    async def eval(self, script: str, keys: list[str], args: list[str]) -> int:
        self.eval_calls += 1
        key = keys[0]
        expected, new_version, state_json, ttl = args
        stored = self.hashes.setdefault(key, {})

        if self.conflicts > 0:
            self.conflicts -= 1
            stored["version"] = str(int(stored.get("version", "0")) + 1)
            return 0

        if stored.get("version", "0") != expected:
            return 0
        stored["version"] = new_version
        stored["state"] = state_json
        self.ttls[key] = int(ttl)
        return 1

    async def close(self) -> None:
        pass


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def empty_state() -> GameState:
    """Four players, empty hands, empty board, first player to place."""
    return build_state()
