"""Tests for buying stock, turn flow, game end and scoring.

Critical scenarios tested:
- Purchases are all or nothing and capped at 3 shares per turn
- Ending a turn draws a tile and passes control on
- Passing and discarding only with an unplayable hand
- End-of-game conditions, votes and final scoring
"""

from app.schemas.game_engine import ChainName, GamePhase, RejectionCode, StockPurchase
from app.services.game.engine import (
    BuyStocksAction,
    DiscardTileAction,
    EndGameVoteAction,
    EndTurnAction,
    GameEnded,
    PlaceTileAction,
    StocksBought,
    TileDiscarded,
    TurnEnded,
    TurnStarted,
    calculate_final_scores,
    check_game_end,
    player_net_worth,
    process_action,
)
from app.services.game.engine.economy import draw_tile, votes_needed

from .conftest import (
    PLAYER_1_ID,
    PLAYER_2_ID,
    PLAYER_3_ID,
    PLAYER_4_ID,
    build_state,
    create_players,
    row_tiles,
)

SAFE_TOWER = [*row_tiles(5, "GHIJKL"), *row_tiles(4, "GHIJK")]


def buy(*purchases: tuple[str, int]) -> BuyStocksAction:
    return BuyStocksAction(
        purchases=[StockPurchase(chain=chain, quantity=quantity) for chain, quantity in purchases]
    )


def buying_state(**player_overrides):
    """Player 1 to buy; Tower has 2 tiles (200 a share)."""
    return build_state(
        players=create_players(**player_overrides),
        chains={ChainName.TOWER: ["5G", "5H"]},
        phase=GamePhase.BUY_STOCK,
        last_placed_tile="5H",
    )


class TestBuyStocks:
    def test_buy_shares(self):
        state = buying_state()

        result = process_action(state, buy(("tower", 3)), PLAYER_1_ID)

        assert result.success
        player = result.state.players[0]
        assert player.cash == 6000 - 600
        assert player.stocks[ChainName.TOWER] == 3
        assert result.state.stock_bank[ChainName.TOWER] == 22
        assert result.state.stocks_purchased_this_turn == 3
        assert result.state.phase == GamePhase.BUY_STOCK
        bought = result.events[0]
        assert isinstance(bought, StocksBought)
        assert bought.shares == {ChainName.TOWER: 3}
        assert bought.total_cost == 600

    def test_limit_spans_several_purchases(self):
        state = process_action(buying_state(), buy(("tower", 2)), PLAYER_1_ID).state

        result = process_action(state, buy(("tower", 2)), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.OVER_PURCHASE_LIMIT

        result = process_action(state, buy(("tower", 1)), PLAYER_1_ID)
        assert result.success
        assert result.state.stocks_purchased_this_turn == 3

    def test_more_than_three_in_one_batch(self):
        result = process_action(buying_state(), buy(("tower", 2), ("tower", 2)), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.OVER_PURCHASE_LIMIT

    def test_inactive_chain_rejects_whole_batch(self):
        state = buying_state()
        before = state.model_dump()

        result = process_action(state, buy(("tower", 1), ("sackson", 1)), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.CHAIN_NOT_ACTIVE
        assert state.model_dump() == before

    def test_insufficient_funds(self):
        state = buying_state(p1={"cash": 300})

        result = process_action(state, buy(("tower", 2)), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.INSUFFICIENT_FUNDS

    def test_exact_cash_is_enough(self):
        state = buying_state(p1={"cash": 400})

        result = process_action(state, buy(("tower", 2)), PLAYER_1_ID)

        assert result.success
        assert result.state.players[0].cash == 0

    def test_insufficient_bank_shares(self):
        state = buying_state(p2={"stocks": {ChainName.TOWER: 24}})

        result = process_action(state, buy(("tower", 2)), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.INSUFFICIENT_BANK_SHARES

    def test_unknown_chain(self):
        result = process_action(buying_state(), buy(("hilton", 1)), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.UNKNOWN_CHAIN

    def test_empty_purchase_changes_nothing(self):
        state = buying_state()

        result = process_action(state, buy(), PLAYER_1_ID)

        assert result.success
        assert result.events == []
        assert result.state == state

    def test_cannot_buy_before_placing(self):
        state = buying_state().model_copy(update={"phase": GamePhase.PLACE_TILE})

        result = process_action(state, buy(("tower", 1)), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.INVALID_ACTION


class TestEndTurn:
    def test_end_turn_draws_and_passes_control(self):
        state = buying_state(p1={"tiles": ["9L"]})
        state = process_action(state, buy(("tower", 1)), PLAYER_1_ID).state
        drawn = state.tile_bag[-1]

        result = process_action(state, EndTurnAction(), PLAYER_1_ID)

        assert result.success
        new_state = result.state
        assert new_state.players[0].tiles == ["9L", drawn]
        assert drawn not in new_state.tile_bag
        assert new_state.current_player_index == 1
        assert new_state.phase == GamePhase.PLACE_TILE
        assert new_state.stocks_purchased_this_turn == 0
        assert new_state.last_placed_tile is None
        assert [type(e) for e in result.events] == [TurnEnded, TurnStarted]
        assert result.events[0].next_player_id == PLAYER_2_ID
        assert result.events[1].player_id == PLAYER_2_ID

    def test_turn_wraps_to_first_player(self):
        state = buying_state().model_copy(update={"current_player_index": 3})

        result = process_action(state, EndTurnAction(), PLAYER_4_ID)

        assert result.state.current_player_index == 0

    def test_empty_bag_is_not_an_error(self):
        state = build_state(
            players=create_players(p1={"tiles": ["9L"]}),
            chains={ChainName.TOWER: ["5G", "5H"]},
            phase=GamePhase.BUY_STOCK,
            tile_bag=[],
        )

        result = process_action(state, EndTurnAction(), PLAYER_1_ID)

        assert result.success
        assert result.state.players[0].tiles == ["9L"]
        assert result.state.current_player_index == 1

    def test_draw_tile_on_empty_bag_returns_same_state(self):
        state = build_state(tile_bag=[])
        assert draw_tile(state) is state

    def test_cannot_pass_with_playable_tile(self):
        state = build_state(players=create_players(p1={"tiles": ["5F"]}))

        result = process_action(state, EndTurnAction(), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.TILES_STILL_PLAYABLE

    def test_pass_with_unplayable_hand(self):
        state = build_state()

        result = process_action(state, EndTurnAction(), PLAYER_1_ID)

        assert result.success
        assert result.state.current_player_index == 1

    def test_pass_draws_nothing(self):
        # Column C sits between safe Sackson (A-B) and safe Tower (D-E)
        hand = [f"{row}C" for row in range(1, 7)]
        state = build_state(
            players=create_players(p1={"tiles": hand}),
            chains={
                ChainName.SACKSON: [t for row in range(1, 7) for t in row_tiles(row, "AB")],
                ChainName.TOWER: [t for row in range(1, 7) for t in row_tiles(row, "DE")],
                ChainName.FESTIVAL: ["9A", "9B"],
            },
        )

        result = process_action(state, EndTurnAction(), PLAYER_1_ID)

        assert result.success
        assert result.state.players[0].tiles == hand
        assert result.state.tile_bag == state.tile_bag
        assert result.state.current_player_index == 1

    def test_cannot_end_turn_mid_founding(self):
        state = build_state(
            loose=["5F", "5G"],
            phase=GamePhase.FOUND_CHAIN,
            pending_chain_foundation=["5F", "5G"],
            last_placed_tile="5F",
        )

        result = process_action(state, EndTurnAction(), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.INVALID_ACTION


class TestDiscardTile:
    def _dead_hand_state(self, hand):
        return build_state(
            players=create_players(p1={"tiles": hand}),
            chains={
                ChainName.SACKSON: [*row_tiles(5, "ABCDE"), *row_tiles(4, "ABCDE"), "6A"],
                ChainName.TOWER: SAFE_TOWER,
            },
        )

    def test_discard_dead_tile(self):
        state = self._dead_hand_state(["5F"])
        drawn = state.tile_bag[-1]

        result = process_action(state, DiscardTileAction(tile_id="5F"), PLAYER_1_ID)

        assert result.success
        assert result.state.discarded_tiles == ["5F"]
        assert "5F" not in result.state.tile_bag
        assert not result.state.board["5F"].placed
        assert result.state.players[0].tiles == [drawn]
        assert isinstance(result.events[0], TileDiscarded)
        # Still player 1's turn to place
        assert result.state.phase == GamePhase.PLACE_TILE
        assert result.state.current_player_index == 0

    def test_eighth_chain_tile_goes_back_to_the_bag(self):
        state = build_state(
            players=create_players(p1={"tiles": ["9B"]}),
            chains={
                ChainName.SACKSON: ["1A", "1B"],
                ChainName.TOWER: ["1D", "1E"],
                ChainName.WORLDWIDE: ["1G", "1H"],
                ChainName.AMERICAN: ["1J", "1K"],
                ChainName.FESTIVAL: ["3A", "3B"],
                ChainName.CONTINENTAL: ["3D", "3E"],
                ChainName.IMPERIAL: ["3G", "3H"],
            },
            loose=["9A"],
        )
        drawn = state.tile_bag[-1]

        result = process_action(state, DiscardTileAction(tile_id="9B"), PLAYER_1_ID)

        assert result.success
        assert result.state.players[0].tiles == [drawn]
        assert "9B" in result.state.tile_bag
        assert result.state.discarded_tiles == []
        assert len(result.state.tile_bag) == len(state.tile_bag)

    def test_cannot_discard_with_playable_tile(self):
        state = self._dead_hand_state(["5F", "9L"])

        result = process_action(state, DiscardTileAction(tile_id="5F"), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.TILES_STILL_PLAYABLE


class TestGameEnd:
    def test_no_chains_no_end(self, empty_state):
        assert not check_game_end(empty_state)

    def test_41_tile_chain_ends_game(self):
        tower = [*row_tiles(1, "ABCDEFGHIJKL"), *row_tiles(2, "ABCDEFGHIJKL"),
                 *row_tiles(3, "ABCDEFGHIJKL"), *row_tiles(4, "ABCDE")]
        state = build_state(chains={ChainName.TOWER: tower, ChainName.SACKSON: ["9A", "9B"]})
        assert check_game_end(state)

    def test_all_active_chains_safe_ends_game(self):
        state = build_state(chains={ChainName.TOWER: SAFE_TOWER})
        assert check_game_end(state)

    def test_one_unsafe_chain_keeps_game_going(self):
        state = build_state(chains={ChainName.TOWER: SAFE_TOWER, ChainName.SACKSON: ["9A", "9B"]})
        assert not check_game_end(state)

    def test_end_condition_checked_at_end_of_turn(self):
        state = build_state(
            chains={ChainName.TOWER: SAFE_TOWER},
            phase=GamePhase.BUY_STOCK,
        )

        result = process_action(state, EndTurnAction(), PLAYER_1_ID)

        assert result.success
        assert result.state.phase == GamePhase.GAME_OVER
        assert isinstance(result.events[-1], GameEnded)

    def test_no_actions_after_game_over(self):
        state = build_state(
            players=create_players(p1={"tiles": ["9L"]}),
            phase=GamePhase.GAME_OVER,
        )

        result = process_action(state, PlaceTileAction(tile_id="9L"), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.GAME_FINISHED


class TestScoring:
    def _scoring_state(self):
        return build_state(
            players=create_players(
                p1={"stocks": {ChainName.TOWER: 3}},
                p2={"stocks": {ChainName.TOWER: 1}},
            ),
            chains={ChainName.TOWER: ["5G", "5H"]},
        )

    def test_final_scores_pay_bonuses_and_liquidate(self):
        standings = calculate_final_scores(self._scoring_state())

        # Tower at 2 tiles: 200 a share, bonuses 2000 / 1000
        assert [(s.player_id, s.cash) for s in standings] == [
            (PLAYER_1_ID, 6000 + 2000 + 600),
            (PLAYER_2_ID, 6000 + 1000 + 200),
            (PLAYER_3_ID, 6000),
            (PLAYER_4_ID, 6000),
        ]

    def test_inactive_chain_shares_are_worthless(self):
        state = build_state(players=create_players(p4={"stocks": {ChainName.IMPERIAL: 10}}))
        standings = calculate_final_scores(state)
        assert all(s.cash == 6000 for s in standings)
        # Equal cash keeps turn order
        assert [s.player_id for s in standings] == [
            PLAYER_1_ID,
            PLAYER_2_ID,
            PLAYER_3_ID,
            PLAYER_4_ID,
        ]

    def test_net_worth_counts_active_holdings(self):
        state = self._scoring_state()
        assert player_net_worth(state.players[0], state) == 6000 + 600
        assert player_net_worth(state.players[2], state) == 6000


class TestEndGameVote:
    def _vote_state(self, phase=GamePhase.PLACE_TILE):
        return build_state(
            chains={ChainName.TOWER: SAFE_TOWER, ChainName.SACKSON: ["9A", "9B"]},
            phase=phase,
        )

    def test_majority_vote_ends_game(self):
        state = self._vote_state()
        assert votes_needed(state) == 2

        result = process_action(state, EndGameVoteAction(), PLAYER_2_ID)
        assert result.success
        assert result.state.end_game_votes == [PLAYER_2_ID]
        assert result.events[0].votes == 1
        assert result.events[0].votes_needed == 2
        assert result.state.phase == GamePhase.PLACE_TILE

        result = process_action(result.state, EndGameVoteAction(), PLAYER_3_ID)
        assert result.success
        assert result.state.phase == GamePhase.GAME_OVER
        ended = result.events[-1]
        assert isinstance(ended, GameEnded)
        assert ended.reason == "vote"

    def test_cannot_vote_twice(self):
        state = process_action(self._vote_state(), EndGameVoteAction(), PLAYER_2_ID).state

        result = process_action(state, EndGameVoteAction(), PLAYER_2_ID)

        assert not result.success
        assert result.error_code == RejectionCode.ALREADY_VOTED

    def test_vote_needs_a_safe_chain(self):
        state = build_state(chains={ChainName.SACKSON: ["9A", "9B"]})

        result = process_action(state, EndGameVoteAction(), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.VOTE_NOT_ALLOWED

    def test_no_votes_during_founding(self):
        state = self._vote_state(phase=GamePhase.FOUND_CHAIN)

        result = process_action(state, EndGameVoteAction(), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == RejectionCode.VOTE_NOT_ALLOWED
