"""Merger protocol: survivor choice, bonus payment, stock disposal, completion.

A merger moves through three phases:

    MERGER_CHOOSE_SURVIVOR  (only when the largest chains are tied)
    MERGER_PAY_BONUSES      (once per defunct chain, largest first)
    MERGER_HANDLE_STOCK     (each holder of that chain, in turn order)

and completes by folding every defunct chain into the survivor.
"""

import logging

logger = logging.getLogger(__name__)

from app.schemas.game_engine import (
    CHAINS,
    SAFE_CHAIN_SIZE,
    ChainName,
    GamePhase,
    GameState,
    MergerState,
    MergerStockDecision,
    Player,
    RejectionCode,
)

from .board import adjacent_tiles, assign_chain
from .economy import enter_buy_stock
from .events import (
    AnyGameEvent,
    AwaitingStockDecision,
    AwaitingSurvivorChoice,
    BonusesPaid,
    MergerCompleted,
    MergerStarted,
    StockDisposed,
)
from .narration import player_entry, system_entry, with_log
from .pricing import bonus_payouts, stock_price
from .validation import ProcessResult


def order_by_size(state: GameState, chains: list[ChainName]) -> list[ChainName]:
    """Largest first; equal sizes keep the order the chains were touched in."""
    return sorted(chains, key=lambda c: state.chains[c].size, reverse=True)


def candidate_survivors(state: GameState, chains: list[ChainName]) -> list[ChainName]:
    """Chains allowed to survive a merger of the given chains.

    A single safe chain always survives; otherwise the largest chains do,
    which is more than one only when their sizes are tied.
    """
    safe = [c for c in chains if state.chains[c].is_safe]
    if len(safe) == 1:
        return safe
    ordered = order_by_size(state, chains)
    largest = state.chains[ordered[0]].size
    return [c for c in ordered if state.chains[c].size == largest]


def survivor_candidates(state: GameState) -> list[ChainName]:
    """Tied chains on offer while waiting for a survivor choice."""
    if state.phase != GamePhase.MERGER_CHOOSE_SURVIVOR or not state.merger_adjacent_chains:
        return []
    return candidate_survivors(state, state.merger_adjacent_chains)


def first_holder_index(players: list[Player], chain: ChainName, start: int) -> int | None:
    """First player from start (inclusive), wrapping, holding shares of chain."""
    count = len(players)
    for step in range(count):
        index = (start + step) % count
        if players[index].stocks.get(chain, 0) > 0:
            return index
    return None


def next_holder_index(
    players: list[Player], chain: ChainName, anchor: int, current: int
) -> int | None:
    """Next holder after current, or None once the walk is back at anchor.

    anchor is the merger maker, where the disposal walk began; current is
    the player who just decided. Each holder is visited at most once.
    """
    count = len(players)
    for step in range(1, count):
        index = (current + step) % count
        if index == anchor:
            return None
        if players[index].stocks.get(chain, 0) > 0:
            return index
    return None


def begin_merger(
    state: GameState, chains: list[ChainName], events: list[AnyGameEvent]
) -> GameState:
    """Start a merger of the touched chains after the trigger tile is placed."""
    player = state.current_player
    candidates = candidate_survivors(state, chains)
    if len(candidates) > 1:
        logger.info(
            "Merger needs a survivor choice: player=%s, tied=%s",
            player.player_id,
            [c.value for c in candidates],
        )
        events.append(AwaitingSurvivorChoice(player_id=player.player_id, candidates=candidates))
        return state.model_copy(
            update={
                "phase": GamePhase.MERGER_CHOOSE_SURVIVOR,
                "merger_adjacent_chains": chains,
            }
        )
    return _start_merger(state, candidates[0], chains, events)


def _start_merger(
    state: GameState,
    survivor: ChainName,
    chains: list[ChainName],
    events: list[AnyGameEvent],
) -> GameState:
    player = state.current_player
    defunct = [c for c in order_by_size(state, chains) if c != survivor]
    merger = MergerState(
        surviving_chain=survivor,
        defunct_chains=defunct,
        current_defunct_chain=defunct[0],
        current_player_index=state.current_player_index,
        bonuses_paid=False,
    )
    events.append(
        MergerStarted(player_id=player.player_id, surviving_chain=survivor, defunct_chains=defunct)
    )
    details = (
        f"{CHAINS[survivor].display_name} acquires "
        f"{', '.join(CHAINS[c].display_name for c in defunct)}"
    )
    logger.info(
        "Merger started: survivor=%s, defunct=%s",
        survivor.value,
        [c.value for c in defunct],
    )
    return state.model_copy(
        update={
            "phase": GamePhase.MERGER_PAY_BONUSES,
            "merger": merger,
            "merger_adjacent_chains": chains,
            "game_log": with_log(state, player_entry(player, "Merger", details)),
        }
    )


def process_choose_survivor(state: GameState, chain: str, player_id: str) -> ProcessResult:
    survivor = ChainName(chain)
    candidates = survivor_candidates(state)
    if survivor not in candidates:
        return ProcessResult.failure(
            RejectionCode.INVALID_MERGER_STATE,
            f"{CHAINS[survivor].display_name} is not one of the tied chains "
            f"({', '.join(c.value for c in candidates)})",
        )

    events: list[AnyGameEvent] = []
    new_state = _start_merger(state, survivor, list(state.merger_adjacent_chains or []), events)
    return ProcessResult.ok(new_state, events)


def process_pay_bonuses(state: GameState, player_id: str) -> ProcessResult:
    """Pay the current defunct chain's bonuses and move on.

    With holders left, disposal starts at the first holder from the merger
    maker; without any, the merger goes straight to the next defunct chain
    or completes.
    """
    merger = state.merger
    if merger is None or merger.bonuses_paid:
        return ProcessResult.failure(
            RejectionCode.INVALID_MERGER_STATE,
            "Bonuses for this chain have already been paid",
        )

    defunct = merger.current_defunct_chain
    size = state.chains[defunct].size
    payouts = bonus_payouts(state.players, defunct, size)
    events: list[AnyGameEvent] = [BonusesPaid(chain=defunct, payouts=payouts)]

    players = [
        p.model_copy(update={"cash": p.cash + payouts[p.player_id]})
        if p.player_id in payouts
        else p
        for p in state.players
    ]
    details = ", ".join(
        f"{p.name} ${payouts[p.player_id]}" for p in state.players if p.player_id in payouts
    )
    new_state = state.model_copy(
        update={
            "players": players,
            "game_log": with_log(
                state,
                system_entry(
                    f"{CHAINS[defunct].display_name} bonuses paid",
                    details or "No shareholders",
                ),
            ),
        }
    )
    logger.info("Merger bonuses paid: chain=%s, size=%d, payouts=%s", defunct.value, size, payouts)

    holder = first_holder_index(players, defunct, state.current_player_index)
    if holder is None:
        logger.debug("No holders of %s, skipping stock disposal", defunct.value)
        new_state = _advance_defunct_chain(new_state, events)
        return ProcessResult.ok(new_state, events)

    new_state = new_state.model_copy(
        update={
            "phase": GamePhase.MERGER_HANDLE_STOCK,
            "merger": merger.model_copy(
                update={"bonuses_paid": True, "current_player_index": holder}
            ),
        }
    )
    events.append(_awaiting_decision(new_state, holder, defunct))
    return ProcessResult.ok(new_state, events)


def process_stock_decision(
    state: GameState, decision: MergerStockDecision, player_id: str
) -> ProcessResult:
    """Apply one holder's sell / trade / keep split of the defunct shares.

    Sold shares are paid at the defunct chain's price. Traded shares go back
    to the bank at two for one surviving share, capped by what the
    survivor's bank still holds. Kept shares stay with the player.
    """
    merger = state.merger
    if merger is None:
        return ProcessResult.failure(RejectionCode.INVALID_MERGER_STATE, "No merger in progress")

    defunct = merger.current_defunct_chain
    survivor = merger.surviving_chain
    index = merger.current_player_index
    player = state.players[index]
    holding = player.stocks.get(defunct, 0)

    if decision.sell + decision.trade + decision.keep != holding:
        return ProcessResult.failure(
            RejectionCode.INVALID_MERGER_STATE,
            f"Sell, trade and keep must add up to your {holding} "
            f"{CHAINS[defunct].display_name} shares",
        )
    if decision.trade % 2 != 0:
        return ProcessResult.failure(
            RejectionCode.INVALID_MERGER_STATE,
            "Trades must be in even numbers (2 for 1)",
        )

    price = stock_price(defunct, state.chains[defunct].size)
    cash_received = decision.sell * price
    received = min(decision.trade // 2, state.stock_bank[survivor])

    stocks = dict(player.stocks)
    stocks[defunct] -= decision.sell + decision.trade
    stocks[survivor] += received
    bank = dict(state.stock_bank)
    bank[defunct] += decision.sell + decision.trade
    bank[survivor] -= received

    updated = player.model_copy(update={"cash": player.cash + cash_received, "stocks": stocks})
    players = list(state.players)
    players[index] = updated

    actions = []
    if decision.sell:
        actions.append(f"sold {decision.sell} for ${cash_received}")
    if decision.trade:
        actions.append(
            f"traded {decision.trade} for {received} {CHAINS[survivor].display_name}"
        )
    if decision.keep:
        actions.append(f"kept {decision.keep}")

    events: list[AnyGameEvent] = [
        StockDisposed(
            player_id=player.player_id,
            defunct_chain=defunct,
            surviving_chain=survivor,
            sold=decision.sell,
            cash_received=cash_received,
            traded=decision.trade,
            received=received,
            kept=decision.keep,
        )
    ]
    if received < decision.trade // 2:
        logger.info(
            "Survivor bank short: player=%s, requested=%d, received=%d",
            player_id,
            decision.trade // 2,
            received,
        )

    new_state = state.model_copy(
        update={
            "players": players,
            "stock_bank": bank,
            "game_log": with_log(
                state,
                player_entry(
                    player,
                    f"{CHAINS[defunct].display_name} stock decision",
                    ", ".join(actions) or "no shares",
                ),
            ),
        }
    )

    next_index = next_holder_index(players, defunct, state.current_player_index, index)
    if next_index is None:
        new_state = _advance_defunct_chain(new_state, events)
        return ProcessResult.ok(new_state, events)

    new_state = new_state.model_copy(
        update={"merger": merger.model_copy(update={"current_player_index": next_index})}
    )
    events.append(_awaiting_decision(new_state, next_index, defunct))
    return ProcessResult.ok(new_state, events)


def _awaiting_decision(state: GameState, index: int, chain: ChainName) -> AwaitingStockDecision:
    player = state.players[index]
    return AwaitingStockDecision(
        player_id=player.player_id,
        defunct_chain=chain,
        shares=player.stocks[chain],
    )


def _advance_defunct_chain(state: GameState, events: list[AnyGameEvent]) -> GameState:
    """Move on to the next defunct chain's bonuses, or complete the merger."""
    merger = state.merger
    position = merger.defunct_chains.index(merger.current_defunct_chain)
    if position + 1 < len(merger.defunct_chains):
        next_chain = merger.defunct_chains[position + 1]
        logger.debug("Merger moves on to defunct chain %s", next_chain.value)
        return state.model_copy(
            update={
                "phase": GamePhase.MERGER_PAY_BONUSES,
                "merger": merger.model_copy(
                    update={
                        "current_defunct_chain": next_chain,
                        "current_player_index": state.current_player_index,
                        "bonuses_paid": False,
                    }
                ),
            }
        )
    return complete_merger(state, events)


def complete_merger(state: GameState, events: list[AnyGameEvent]) -> GameState:
    """Fold the trigger tile, its loose neighbours and all defunct chains
    into the survivor, then hand over to the purchase step."""
    merger = state.merger
    survivor = merger.surviving_chain
    trigger = state.last_placed_tile

    absorbed: list[str] = [trigger]
    for adj_id in adjacent_tiles(trigger):
        tile = state.board.get(adj_id)
        if tile is not None and tile.placed and tile.chain is None:
            absorbed.append(adj_id)
    for defunct in merger.defunct_chains:
        absorbed.extend(state.chains[defunct].tiles)

    existing = state.chains[survivor].tiles
    all_tiles = list(dict.fromkeys([*existing, *absorbed]))

    chains = dict(state.chains)
    chains[survivor] = chains[survivor].model_copy(
        update={"tiles": all_tiles, "is_safe": len(all_tiles) >= SAFE_CHAIN_SIZE}
    )
    for defunct in merger.defunct_chains:
        chains[defunct] = chains[defunct].model_copy(
            update={"tiles": [], "is_active": False, "is_safe": False}
        )

    events.append(
        MergerCompleted(
            surviving_chain=survivor,
            defunct_chains=list(merger.defunct_chains),
            size=len(all_tiles),
        )
    )
    details = (
        f"{CHAINS[survivor].display_name} absorbed "
        f"{', '.join(CHAINS[c].display_name for c in merger.defunct_chains)}. "
        f"Now has {len(all_tiles)} tiles."
    )
    logger.info("Merger complete: survivor=%s, size=%d", survivor.value, len(all_tiles))

    new_state = state.model_copy(
        update={
            "board": assign_chain(state.board, absorbed, survivor),
            "chains": chains,
            "merger": None,
            "merger_adjacent_chains": None,
            "game_log": with_log(state, system_entry("Merger complete", details)),
        }
    )
    return enter_buy_stock(new_state, events)
