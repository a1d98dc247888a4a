"""Placement classification - what a tile would do if placed."""

import logging
from dataclasses import dataclass, field

from app.schemas.game_engine import (
    MAX_ACTIVE_CHAINS,
    ChainName,
    GameState,
    PlacementAction,
    PlacementRejection,
)

from .board import adjacent_tiles

logger = logging.getLogger(__name__)

_REJECTION_MESSAGES = {
    PlacementRejection.CANNOT_MERGE_SAFE_CHAINS: "Cannot merge two or more safe chains (11+ tiles)",
    PlacementRejection.MAX_CHAINS_REACHED: "Cannot create an 8th hotel chain",
}


@dataclass(frozen=True)
class PlacementAnalysis:
    """Consequence of placing a tile, computed without changing the board."""

    valid: bool
    action: PlacementAction
    adjacent_chains: list[ChainName] = field(default_factory=list)
    adjacent_unincorporated: list[str] = field(default_factory=list)
    rejection: PlacementRejection | None = None

    @property
    def reason(self) -> str | None:
        if self.rejection is None:
            return None
        return _REJECTION_MESSAGES[self.rejection]


def active_chain_count(state: GameState) -> int:
    return sum(1 for chain in state.chains.values() if chain.is_active)


def analyze_tile_placement(state: GameState, tile_id: str) -> PlacementAnalysis:
    """Classify a placement of tile_id against the current board.

    Neighbours that belong to an active chain are collected as a set of
    chain names (in discovery order); placed neighbours without a chain are
    the unincorporated tiles a founding, growth or merger will absorb.
    """
    adjacent_chains: list[ChainName] = []
    adjacent_unincorporated: list[str] = []

    for adj_id in adjacent_tiles(tile_id):
        tile = state.board.get(adj_id)
        if tile is None or not tile.placed:
            continue
        if tile.chain is not None and state.chains[tile.chain].is_active:
            if tile.chain not in adjacent_chains:
                adjacent_chains.append(tile.chain)
        elif tile.chain is None:
            adjacent_unincorporated.append(adj_id)

    if len(adjacent_chains) >= 2:
        safe = [c for c in adjacent_chains if state.chains[c].is_safe]
        if len(safe) >= 2:
            logger.debug("Placement %s rejected: touches safe chains %s", tile_id, safe)
            return PlacementAnalysis(
                valid=False,
                action=PlacementAction.MERGE_CHAINS,
                adjacent_chains=adjacent_chains,
                adjacent_unincorporated=adjacent_unincorporated,
                rejection=PlacementRejection.CANNOT_MERGE_SAFE_CHAINS,
            )
        action = PlacementAction.MERGE_CHAINS
    elif len(adjacent_chains) == 1:
        action = PlacementAction.GROW_CHAIN
    elif adjacent_unincorporated:
        if active_chain_count(state) >= MAX_ACTIVE_CHAINS:
            logger.debug("Placement %s rejected: all chains already active", tile_id)
            return PlacementAnalysis(
                valid=False,
                action=PlacementAction.FORM_CHAIN,
                adjacent_chains=adjacent_chains,
                adjacent_unincorporated=adjacent_unincorporated,
                rejection=PlacementRejection.MAX_CHAINS_REACHED,
            )
        action = PlacementAction.FORM_CHAIN
    else:
        action = PlacementAction.PLACE_ONLY

    return PlacementAnalysis(
        valid=True,
        action=action,
        adjacent_chains=adjacent_chains,
        adjacent_unincorporated=adjacent_unincorporated,
    )


def has_playable_tiles(state: GameState, player_index: int) -> bool:
    """True if any tile in the player's hand can legally be placed."""
    player = state.players[player_index]
    return any(analyze_tile_placement(state, tile_id).valid for tile_id in player.tiles)
