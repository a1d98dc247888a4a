import logging
import random

from app.schemas.game_engine import (
    MAX_PLAYERS,
    MIN_PLAYERS,
    STOCKS_PER_CHAIN,
    Chain,
    ChainName,
    GamePhase,
    GameSettings,
    GameState,
    Player,
    Tile,
    empty_holdings,
)
from app.services.game.engine.board import all_tile_ids
from app.services.game.engine.narration import system_entry

logger = logging.getLogger(__name__)


def validate_game_settings(game_settings: GameSettings) -> None:
    """Validate game settings before initializing a game."""
    num_players = len(game_settings.player_attributes)
    if not MIN_PLAYERS <= num_players <= MAX_PLAYERS:
        raise ValueError(f"A game needs {MIN_PLAYERS} to {MAX_PLAYERS} players, got {num_players}.")
    if game_settings.starting_cash < 0:
        raise ValueError("Starting cash cannot be negative.")
    if game_settings.tiles_per_player < 1:
        raise ValueError("Each player must be dealt at least one tile.")

    # Ensure each player has a unique id and name
    player_ids: set[str] = set()
    player_names: set[str] = set()
    for player in game_settings.player_attributes:
        if not player.name.strip():
            raise ValueError("Player names cannot be blank.")
        if player.player_id in player_ids:
            raise ValueError(f"Duplicate player ID found: {player.player_id}")
        if player.name in player_names:
            raise ValueError(f"Duplicate player name found: {player.name}")
        player_ids.add(player.player_id)
        player_names.add(player.name)


def _create_board() -> dict[str, Tile]:
    return {tile_id: Tile(id=tile_id) for tile_id in all_tile_ids()}


def _create_chains() -> dict[ChainName, Chain]:
    return {name: Chain(name=name) for name in ChainName}


def _initialize_players(game_settings: GameSettings, tile_bag: list[str]) -> list[Player]:
    """Deal hands from the front of the bag, in seat order."""
    players = []
    for player_attr in game_settings.player_attributes:
        hand = tile_bag[: game_settings.tiles_per_player]
        del tile_bag[: game_settings.tiles_per_player]
        players.append(
            Player(
                player_id=player_attr.player_id,
                name=player_attr.name,
                cash=game_settings.starting_cash,
                tiles=hand,
                stocks=empty_holdings(),
            )
        )
    return players


def initialize_game(game_settings: GameSettings, rng: random.Random | None = None) -> GameState:
    """
    Validate game settings and return a freshly dealt GameState.

    One random tile starts on the board, the rest of the shuffled bag deals
    each player a hand, every chain is inactive and every bank is full.

    Args:
        game_settings: Seats (ids and names), starting cash and hand size.
        rng: Source of randomness for the shuffle; pass a seeded
             random.Random for reproducible games.

    Returns:
        A GameState with the first player to place a tile.

    Raises:
        ValueError: If game settings are invalid.
    """
    validate_game_settings(game_settings)
    rng = rng or random.Random()

    tile_bag = all_tile_ids()
    rng.shuffle(tile_bag)

    board = _create_board()
    starting_tile = tile_bag.pop()
    board[starting_tile] = board[starting_tile].model_copy(update={"placed": True})

    players = _initialize_players(game_settings, tile_bag)
    logger.info(
        "Game initialized: players=%s, starting_tile=%s, bag=%d",
        [p.player_id for p in players],
        starting_tile,
        len(tile_bag),
    )

    return GameState(
        phase=GamePhase.PLACE_TILE,
        board=board,
        chains=_create_chains(),
        stock_bank={name: STOCKS_PER_CHAIN for name in ChainName},
        tile_bag=tile_bag,
        players=players,
        current_player_index=0,
        game_log=[system_entry("Game started", f"Starting tile {starting_tile} placed on board")],
    )
