"""Tile placement and the chain lifecycle: founding and growth."""

import logging

logger = logging.getLogger(__name__)

from app.schemas.game_engine import (
    CHAINS,
    SAFE_CHAIN_SIZE,
    ChainName,
    GamePhase,
    GameState,
    PlacementAction,
    RejectionCode,
)

from .board import assign_chain
from .economy import available_chains_for_foundation, enter_buy_stock
from .events import (
    AnyGameEvent,
    AwaitingChainFoundation,
    ChainFounded,
    ChainGrew,
    TilePlaced,
)
from .merger import begin_merger
from .narration import player_entry, with_log
from .placement import analyze_tile_placement
from .validation import ProcessResult


def place_tile(state: GameState, tile_id: str) -> GameState:
    """Put a tile from the current player's hand on the board.

    Only marks the tile placed and logs it; chain membership is settled by
    the follow-up founding, growth or merger.
    """
    player = state.current_player
    board = dict(state.board)
    board[tile_id] = board[tile_id].model_copy(update={"placed": True, "chain": None})

    players = list(state.players)
    players[state.current_player_index] = player.model_copy(
        update={"tiles": [t for t in player.tiles if t != tile_id]}
    )
    return state.model_copy(
        update={
            "board": board,
            "players": players,
            "last_placed_tile": tile_id,
            "game_log": with_log(state, player_entry(player, "Placed tile", tile_id)),
        }
    )


def found_chain(state: GameState, chain: ChainName) -> tuple[GameState, bool]:
    """Turn the pending tiles into a new chain and reward the founder.

    The founder gets one free share if the bank has any left.

    Returns:
        The new state (phase not yet moved on) and whether a share was granted.
    """
    tiles = list(state.pending_chain_foundation or [])
    player = state.current_player

    chains = dict(state.chains)
    chains[chain] = chains[chain].model_copy(
        update={"tiles": tiles, "is_active": True, "is_safe": len(tiles) >= SAFE_CHAIN_SIZE}
    )

    granted = state.stock_bank[chain] > 0
    players = list(state.players)
    bank = dict(state.stock_bank)
    if granted:
        stocks = dict(player.stocks)
        stocks[chain] += 1
        bank[chain] -= 1
        players[state.current_player_index] = player.model_copy(update={"stocks": stocks})

    details = "Received 1 bonus share" if granted else "No shares left for a founder's bonus"
    new_state = state.model_copy(
        update={
            "board": assign_chain(state.board, tiles, chain),
            "chains": chains,
            "players": players,
            "stock_bank": bank,
            "pending_chain_foundation": None,
            "game_log": with_log(
                state, player_entry(player, f"Founded {CHAINS[chain].display_name}", details)
            ),
        }
    )
    return new_state, granted


def grow_chain(
    state: GameState, chain: ChainName, unincorporated: list[str]
) -> tuple[GameState, list[str]]:
    """Add the last placed tile and its loose neighbours to an active chain.

    Returns:
        The new state and the tiles that were added.
    """
    added = [state.last_placed_tile, *unincorporated]
    all_tiles = [*state.chains[chain].tiles, *added]

    chains = dict(state.chains)
    chains[chain] = chains[chain].model_copy(
        update={"tiles": all_tiles, "is_safe": len(all_tiles) >= SAFE_CHAIN_SIZE}
    )
    player = state.current_player
    new_state = state.model_copy(
        update={
            "board": assign_chain(state.board, added, chain),
            "chains": chains,
            "game_log": with_log(
                state,
                player_entry(
                    player,
                    f"Extended {CHAINS[chain].display_name}",
                    f"Chain now has {len(all_tiles)} tiles",
                ),
            ),
        }
    )
    return new_state, added


def process_place_tile(state: GameState, tile_id: str, player_id: str) -> ProcessResult:
    """Place a tile and carry out what the placement triggers.

    - place_only: straight to buying stock
    - grow_chain: the touched chain absorbs the tile, then buying stock
    - form_chain: wait for the player to name the new chain
    - merge_chains: start the merger protocol
    """
    analysis = analyze_tile_placement(state, tile_id)
    if not analysis.valid:
        logger.warning(
            "Invalid placement: player=%s, tile=%s, reason=%s",
            player_id,
            tile_id,
            analysis.rejection.value,
        )
        return ProcessResult.failure(RejectionCode.INVALID_PLACEMENT, analysis.reason)

    logger.info(
        "Placing tile: player=%s, tile=%s, action=%s, chains=%s",
        player_id,
        tile_id,
        analysis.action.value,
        [c.value for c in analysis.adjacent_chains],
    )
    events: list[AnyGameEvent] = [
        TilePlaced(player_id=player_id, tile_id=tile_id, placement=analysis.action)
    ]
    new_state = place_tile(state, tile_id)

    if analysis.action == PlacementAction.GROW_CHAIN:
        chain = analysis.adjacent_chains[0]
        new_state, added = grow_chain(new_state, chain, analysis.adjacent_unincorporated)
        grown = new_state.chains[chain]
        events.append(
            ChainGrew(chain=chain, added_tiles=added, size=grown.size, is_safe=grown.is_safe)
        )
        new_state = enter_buy_stock(new_state, events)

    elif analysis.action == PlacementAction.FORM_CHAIN:
        pending = [tile_id, *analysis.adjacent_unincorporated]
        new_state = new_state.model_copy(
            update={"phase": GamePhase.FOUND_CHAIN, "pending_chain_foundation": pending}
        )
        events.append(
            AwaitingChainFoundation(
                player_id=player_id,
                tiles=pending,
                available_chains=available_chains_for_foundation(new_state),
            )
        )

    elif analysis.action == PlacementAction.MERGE_CHAINS:
        new_state = begin_merger(new_state, analysis.adjacent_chains, events)

    else:
        new_state = enter_buy_stock(new_state, events)

    return ProcessResult.ok(new_state, events)


def process_found_chain(state: GameState, chain: str, player_id: str) -> ProcessResult:
    name = ChainName(chain)
    if state.chains[name].is_active:
        return ProcessResult.failure(
            RejectionCode.CHAIN_ALREADY_ACTIVE,
            f"{CHAINS[name].display_name} is already on the board",
        )

    events: list[AnyGameEvent] = []
    tiles = list(state.pending_chain_foundation or [])
    new_state, granted = found_chain(state, name)
    events.append(
        ChainFounded(
            player_id=player_id,
            chain=name,
            tiles=tiles,
            founder_share_granted=granted,
        )
    )
    logger.info(
        "Chain founded: player=%s, chain=%s, size=%d, founder_share=%s",
        player_id,
        name.value,
        len(tiles),
        granted,
    )
    return ProcessResult.ok(enter_buy_stock(new_state, events), events)
