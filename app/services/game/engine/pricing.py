"""Stock prices, merger bonuses and stockholder rankings."""

import logging
from dataclasses import dataclass, field

from app.schemas.game_engine import CHAINS, ChainName, ChainTier, Player

logger = logging.getLogger(__name__)

# Upper bound (inclusive) of each size bracket; the last bracket is open-ended
CHAIN_SIZE_BRACKETS = (2, 3, 5, 10, 20, 30, 40)

BASE_PRICES: dict[ChainTier, tuple[int, ...]] = {
    ChainTier.BUDGET: (200, 300, 400, 500, 600, 700, 800, 900),
    ChainTier.MIDRANGE: (300, 400, 500, 600, 700, 800, 900, 1000),
    ChainTier.PREMIUM: (400, 500, 600, 700, 800, 900, 1000, 1100),
}

MAJORITY_BONUS_MULTIPLIER = 10
MINORITY_BONUS_MULTIPLIER = 5


@dataclass(frozen=True)
class Bonuses:
    majority: int
    minority: int


@dataclass(frozen=True)
class StockholderRankings:
    """Majority and minority holders of one chain, as player ids.

    When every holder is tied for the top count, minority is empty and the
    majority holders split both bonus pools.
    """

    majority: list[str] = field(default_factory=list)
    minority: list[str] = field(default_factory=list)


def size_bracket(size: int) -> int:
    for index, upper in enumerate(CHAIN_SIZE_BRACKETS):
        if size <= upper:
            return index
    return len(CHAIN_SIZE_BRACKETS)


def stock_price(chain: ChainName, size: int) -> int:
    """Price of one share of a chain with the given number of tiles."""
    if size <= 0:
        return 0
    tier = CHAINS[chain].tier
    return BASE_PRICES[tier][size_bracket(size)]


def bonuses(chain: ChainName, size: int) -> Bonuses:
    price = stock_price(chain, size)
    return Bonuses(
        majority=price * MAJORITY_BONUS_MULTIPLIER,
        minority=price * MINORITY_BONUS_MULTIPLIER,
    )


def stockholder_rankings(players: list[Player], chain: ChainName) -> StockholderRankings:
    """Rank the holders of a chain by share count.

    Players holding zero shares are left out of both sets.
    """
    holders = sorted(
        (p for p in players if p.stocks.get(chain, 0) > 0),
        key=lambda p: p.stocks[chain],
        reverse=True,
    )
    if not holders:
        return StockholderRankings()

    max_shares = holders[0].stocks[chain]
    majority = [p for p in holders if p.stocks[chain] == max_shares]
    remaining = [p for p in holders if p.stocks[chain] < max_shares]
    if not remaining:
        return StockholderRankings(majority=[p.player_id for p in majority])

    second_shares = remaining[0].stocks[chain]
    minority = [p for p in remaining if p.stocks[chain] == second_shares]
    return StockholderRankings(
        majority=[p.player_id for p in majority],
        minority=[p.player_id for p in minority],
    )


def bonus_payouts(players: list[Player], chain: ChainName, size: int) -> dict[str, int]:
    """Cash each player receives when a chain's bonuses are paid.

    Pools are split with floor division; any remainder goes unpaid.
    """
    rankings = stockholder_rankings(players, chain)
    if not rankings.majority:
        return {}

    pools = bonuses(chain, size)
    payouts: dict[str, int] = {}
    if not rankings.minority:
        per_player = (pools.majority + pools.minority) // len(rankings.majority)
        for player_id in rankings.majority:
            payouts[player_id] = per_player
    else:
        majority_share = pools.majority // len(rankings.majority)
        minority_share = pools.minority // len(rankings.minority)
        for player_id in rankings.majority:
            payouts[player_id] = majority_share
        for player_id in rankings.minority:
            payouts[player_id] = minority_share

    logger.debug(
        "Bonus payouts: chain=%s, size=%d, majority=%s, minority=%s, payouts=%s",
        chain.value,
        size,
        rankings.majority,
        rankings.minority,
        payouts,
    )
    return payouts
