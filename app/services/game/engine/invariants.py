"""Economic and board invariants checked after every accepted transition.

A violation means the engine has a bug, never that a player did something
wrong, so it raises instead of producing a rejection.
"""

import logging

from app.schemas.game_engine import STOCKS_PER_CHAIN, ChainName, GameState

from .board import all_tile_ids

logger = logging.getLogger(__name__)

TOTAL_TILES = len(all_tile_ids())


class InvariantViolationError(AssertionError):
    """A transition produced a state the rules can never reach."""


def check_invariants(state: GameState) -> None:
    """Check a single snapshot.

    Raises:
        InvariantViolationError: On negative cash or bank counts, a bank
            that no longer balances against holdings, or tiles appearing
            or disappearing.
    """
    for player in state.players:
        if player.cash < 0:
            _fail("Player %s has negative cash %d", player.player_id, player.cash)
        for chain, shares in player.stocks.items():
            if shares < 0:
                _fail("Player %s holds %d shares of %s", player.player_id, shares, chain.value)

    for chain in ChainName:
        bank = state.stock_bank[chain]
        if bank < 0:
            _fail("Stock bank for %s is negative: %d", chain.value, bank)
        held = sum(p.stocks.get(chain, 0) for p in state.players)
        if bank + held != STOCKS_PER_CHAIN:
            _fail(
                "Shares of %s do not balance: bank=%d, held=%d",
                chain.value,
                bank,
                held,
            )

    placed = sum(1 for tile in state.board.values() if tile.placed)
    in_hands = sum(len(p.tiles) for p in state.players)
    accounted = placed + in_hands + len(state.tile_bag) + len(state.discarded_tiles)
    if accounted != TOTAL_TILES:
        _fail("Tile count mismatch: %d accounted for, expected %d", accounted, TOTAL_TILES)


def check_transition(before: GameState, after: GameState) -> None:
    """Check what may change between two consecutive snapshots.

    Placed tiles stay placed, and a chain's tile count only drops when a
    merger dissolves it (inactive with no tiles afterwards).
    """
    for tile_id, tile in before.board.items():
        if tile.placed and not after.board[tile_id].placed:
            _fail("Tile %s was removed from the board", tile_id)

    for name, chain in before.chains.items():
        new_chain = after.chains[name]
        if new_chain.size >= chain.size:
            continue
        dissolved = not new_chain.is_active and new_chain.size == 0
        if not dissolved:
            _fail(
                "Chain %s shrank from %d to %d outside a merger",
                name.value,
                chain.size,
                new_chain.size,
            )


def _fail(message: str, *args: object) -> None:
    logger.error("Invariant violated: " + message, *args)
    raise InvariantViolationError(message % args)
