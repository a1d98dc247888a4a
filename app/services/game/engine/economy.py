"""Turn and economy operations: buying, drawing, turn flow, game end, scoring."""

import logging
import random

logger = logging.getLogger(__name__)

from app.schemas.game_engine import (
    CHAINS,
    END_GAME_CHAIN_SIZE,
    MAX_STOCKS_PER_TURN,
    ChainName,
    FinalStanding,
    GamePhase,
    GameState,
    PlacementRejection,
    Player,
    RejectionCode,
    StockPurchase,
)

from .events import (
    AnyGameEvent,
    BonusesPaid,
    EndGameVoteCast,
    GameEnded,
    StocksBought,
    TileDiscarded,
    TurnEnded,
    TurnStarted,
)
from .narration import player_entry, system_entry, with_log
from .placement import analyze_tile_placement, has_playable_tiles
from .pricing import bonus_payouts, stock_price
from .validation import ProcessResult

VOTE_PHASES = (GamePhase.PLACE_TILE, GamePhase.BUY_STOCK)


def _replace_player(players: list[Player], index: int, player: Player) -> list[Player]:
    new_players = list(players)
    new_players[index] = player
    return new_players


def chain_size(state: GameState, chain: ChainName) -> int:
    return state.chains[chain].size


def available_chains_for_foundation(state: GameState) -> list[ChainName]:
    return [name for name, chain in state.chains.items() if not chain.is_active]


def player_net_worth(player: Player, state: GameState) -> int:
    """Cash plus holdings in active chains at their current price."""
    total = player.cash
    for chain, shares in player.stocks.items():
        if shares > 0 and state.chains[chain].is_active:
            total += shares * stock_price(chain, chain_size(state, chain))
    return total


def check_game_end(state: GameState) -> bool:
    """True when a chain has 41+ tiles or every active chain is safe."""
    active = [chain for chain in state.chains.values() if chain.is_active]
    if not active:
        return False
    if any(chain.size >= END_GAME_CHAIN_SIZE for chain in active):
        return True
    return all(chain.is_safe for chain in active)


def draw_tile(state: GameState) -> GameState:
    """Move the top tile of the bag into the current player's hand.

    An empty bag is not an error; the state comes back unchanged.
    """
    if not state.tile_bag:
        logger.debug("Tile bag empty, no tile drawn")
        return state

    tile_bag = list(state.tile_bag)
    drawn = tile_bag.pop()
    player = state.current_player
    updated = player.model_copy(update={"tiles": [*player.tiles, drawn]})
    return state.model_copy(
        update={
            "tile_bag": tile_bag,
            "players": _replace_player(state.players, state.current_player_index, updated),
        }
    )


def score_players(state: GameState) -> tuple[list[Player], dict[ChainName, int]]:
    """Pay final bonuses and liquidate every active chain's shares.

    Chains are independent: each uses its own final price and the bonus
    rules of a merger payout. Liquidated shares go back to the bank.

    Returns:
        The players (in turn order) and the stock bank after scoring.
    """
    cash = {p.player_id: p.cash for p in state.players}
    stocks = {p.player_id: dict(p.stocks) for p in state.players}
    bank = dict(state.stock_bank)

    for name, chain in state.chains.items():
        if not chain.is_active:
            continue
        for player_id, amount in bonus_payouts(state.players, name, chain.size).items():
            cash[player_id] += amount

        price = stock_price(name, chain.size)
        for player in state.players:
            shares = stocks[player.player_id][name]
            if shares:
                cash[player.player_id] += shares * price
                stocks[player.player_id][name] = 0
                bank[name] += shares

    players = [
        p.model_copy(update={"cash": cash[p.player_id], "stocks": stocks[p.player_id]})
        for p in state.players
    ]
    return players, bank


def rank_players(players: list[Player]) -> list[FinalStanding]:
    """Richest first; equal cash keeps turn order."""
    ranked = sorted(players, key=lambda p: p.cash, reverse=True)
    return [FinalStanding(player_id=p.player_id, name=p.name, cash=p.cash) for p in ranked]


def calculate_final_scores(state: GameState) -> list[FinalStanding]:
    players, _ = score_players(state)
    return rank_players(players)


def finish_game(
    state: GameState, reason: str, events: list[AnyGameEvent]
) -> GameState:
    """Score the game and move it to GAME_OVER, appending the events."""
    for name, chain in state.chains.items():
        if chain.is_active:
            payouts = bonus_payouts(state.players, name, chain.size)
            if payouts:
                events.append(BonusesPaid(chain=name, payouts=payouts))

    players, bank = score_players(state)
    standings = rank_players(players)
    winner = standings[0]
    events.append(
        GameEnded(winner_id=winner.player_id, reason=reason, final_standings=standings)
    )
    logger.info(
        "Game over: reason=%s, winner=%s, standings=%s",
        reason,
        winner.player_id,
        [(s.player_id, s.cash) for s in standings],
    )
    return state.model_copy(
        update={
            "phase": GamePhase.GAME_OVER,
            "players": players,
            "stock_bank": bank,
            "merger": None,
            "winner": winner.player_id,
            "final_standings": standings,
            "game_log": with_log(
                state,
                system_entry("Game over", f"{winner.name} wins with ${winner.cash}"),
            ),
        }
    )


def enter_buy_stock(state: GameState, events: list[AnyGameEvent]) -> GameState:
    """Hand control to the purchase step, or end the game if it is over."""
    if check_game_end(state):
        return finish_game(state, "board_condition", events)
    return state.model_copy(update={"phase": GamePhase.BUY_STOCK})


def process_buy_stocks(
    state: GameState, purchases: list[StockPurchase], player_id: str
) -> ProcessResult:
    """Buy shares for the current player, all or nothing.

    Every purchase must be of an active chain with enough shares in the
    bank, the batch must fit under the per-turn limit and the player's cash.
    """
    player = state.current_player
    logger.info("Processing purchase: player=%s, purchases=%s", player_id, purchases)

    requested: dict[ChainName, int] = {}
    for purchase in purchases:
        chain = ChainName(purchase.chain)
        requested[chain] = requested.get(chain, 0) + purchase.quantity

    total_shares = sum(requested.values())
    if state.stocks_purchased_this_turn + total_shares > MAX_STOCKS_PER_TURN:
        return ProcessResult.failure(
            RejectionCode.OVER_PURCHASE_LIMIT,
            f"You can buy at most {MAX_STOCKS_PER_TURN} shares per turn "
            f"({state.stocks_purchased_this_turn} already bought)",
        )

    total_cost = 0
    for chain, quantity in requested.items():
        if not state.chains[chain].is_active:
            return ProcessResult.failure(
                RejectionCode.CHAIN_NOT_ACTIVE,
                f"{CHAINS[chain].display_name} is not on the board",
            )
        if state.stock_bank[chain] < quantity:
            return ProcessResult.failure(
                RejectionCode.INSUFFICIENT_BANK_SHARES,
                f"Only {state.stock_bank[chain]} {CHAINS[chain].display_name} shares left",
            )
        total_cost += stock_price(chain, chain_size(state, chain)) * quantity

    if total_cost > player.cash:
        return ProcessResult.failure(
            RejectionCode.INSUFFICIENT_FUNDS,
            f"Purchase costs ${total_cost} but you have ${player.cash}",
        )

    if not requested:
        return ProcessResult.ok(state)

    stocks = dict(player.stocks)
    bank = dict(state.stock_bank)
    for chain, quantity in requested.items():
        stocks[chain] += quantity
        bank[chain] -= quantity

    updated = player.model_copy(update={"cash": player.cash - total_cost, "stocks": stocks})
    details = ", ".join(f"{q} {CHAINS[c].display_name}" for c, q in requested.items())
    new_state = state.model_copy(
        update={
            "players": _replace_player(state.players, state.current_player_index, updated),
            "stock_bank": bank,
            "stocks_purchased_this_turn": state.stocks_purchased_this_turn + total_shares,
            "game_log": with_log(state, player_entry(player, "Bought stocks", details)),
        }
    )
    logger.info(
        "Stocks bought: player=%s, shares=%s, cost=%d",
        player_id,
        {c.value: q for c, q in requested.items()},
        total_cost,
    )
    return ProcessResult.ok(
        new_state,
        [StocksBought(player_id=player_id, shares=requested, total_cost=total_cost)],
    )


def process_end_turn(state: GameState, player_id: str) -> ProcessResult:
    """Draw for the current player and pass the turn on.

    From PLACE_TILE this is a pass, only allowed when nothing in hand can
    be placed. Nothing was placed, so a pass draws nothing.
    """
    passing = state.phase == GamePhase.PLACE_TILE
    if passing and has_playable_tiles(state, state.current_player_index):
        return ProcessResult.failure(
            RejectionCode.TILES_STILL_PLAYABLE,
            "You must place a tile before ending your turn",
        )

    events: list[AnyGameEvent] = []
    drawn = state if passing else draw_tile(state)
    next_index = (state.current_player_index + 1) % len(state.players)
    next_player = state.players[next_index]

    events.append(TurnEnded(player_id=player_id, next_player_id=next_player.player_id))
    new_state = drawn.model_copy(
        update={
            "current_player_index": next_index,
            "phase": GamePhase.PLACE_TILE,
            "stocks_purchased_this_turn": 0,
            "last_placed_tile": None,
        }
    )

    if check_game_end(new_state):
        return ProcessResult.ok(finish_game(new_state, "board_condition", events), events)

    events.append(TurnStarted(player_id=next_player.player_id))
    logger.info("Turn ended: player=%s, next_player=%s", player_id, next_player.player_id)
    return ProcessResult.ok(new_state, events)


def process_discard_tile(state: GameState, tile_id: str, player_id: str) -> ProcessResult:
    """Trade a tile in for a fresh draw when the hand has no legal placement.

    A tile that would merge two safe chains can never be played and leaves
    the game. Any other dead tile (one that would found an 8th chain) goes
    back into the bag at a random position after the replacement is drawn.
    """
    if has_playable_tiles(state, state.current_player_index):
        return ProcessResult.failure(
            RejectionCode.TILES_STILL_PLAYABLE,
            "You can only discard when none of your tiles can be placed",
        )

    retired = (
        analyze_tile_placement(state, tile_id).rejection
        == PlacementRejection.CANNOT_MERGE_SAFE_CHAINS
    )
    player = state.current_player
    remaining = [t for t in player.tiles if t != tile_id]
    updated = player.model_copy(update={"tiles": remaining})
    new_state = state.model_copy(
        update={
            "players": _replace_player(state.players, state.current_player_index, updated),
            "game_log": with_log(state, player_entry(player, "Discarded tile", tile_id)),
        }
    )
    new_state = draw_tile(new_state)

    if retired:
        new_state = new_state.model_copy(
            update={"discarded_tiles": [*new_state.discarded_tiles, tile_id]}
        )
    else:
        tile_bag = list(new_state.tile_bag)
        tile_bag.insert(random.randint(0, len(tile_bag)), tile_id)
        new_state = new_state.model_copy(update={"tile_bag": tile_bag})
    logger.info(
        "Tile discarded: player=%s, tile=%s, retired=%s", player_id, tile_id, retired
    )
    return ProcessResult.ok(new_state, [TileDiscarded(player_id=player_id, tile_id=tile_id)])


def votes_needed(state: GameState) -> int:
    return (len(state.players) + 1) // 2


def process_end_game_vote(state: GameState, player_id: str) -> ProcessResult:
    """Record a vote to end now; a majority (rounded up) ends the game."""
    if state.phase not in VOTE_PHASES:
        return ProcessResult.failure(
            RejectionCode.VOTE_NOT_ALLOWED,
            "Votes can only be cast between placements, not during a merger or founding",
        )
    if not any(chain.is_active and chain.is_safe for chain in state.chains.values()):
        return ProcessResult.failure(
            RejectionCode.VOTE_NOT_ALLOWED,
            "The game can only be ended once a chain is safe",
        )
    if player_id in state.end_game_votes:
        return ProcessResult.failure(RejectionCode.ALREADY_VOTED, "You have already voted")

    player = state.players[state.player_index(player_id)]
    votes = [*state.end_game_votes, player_id]
    needed = votes_needed(state)
    events: list[AnyGameEvent] = [
        EndGameVoteCast(player_id=player_id, votes=len(votes), votes_needed=needed)
    ]
    new_state = state.model_copy(
        update={
            "end_game_votes": votes,
            "game_log": with_log(
                state, player_entry(player, "Voted to end the game", f"{len(votes)}/{needed}")
            ),
        }
    )
    logger.info("End game vote: player=%s, votes=%d/%d", player_id, len(votes), needed)

    if len(votes) >= needed:
        new_state = finish_game(new_state, "vote", events)
    return ProcessResult.ok(new_state, events)
