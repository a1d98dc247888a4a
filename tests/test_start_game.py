"""Tests for dealing a new game and restarting one."""

import random

import pytest

from app.schemas.game_engine import (
    STOCKS_PER_CHAIN,
    GamePhase,
    GameSettings,
    PlayerAttributes,
)
from app.services.game import initialize_game, validate_game_settings
from app.services.game.engine import (
    GameStarted,
    NewGameAction,
    TurnStarted,
    check_invariants,
    process_action,
)

from .conftest import PLAYER_1_ID, build_state, create_players

NAMES = ["Ada", "Brook", "Cy", "Dee"]


class TestInitializeGame:
    def test_fresh_game_layout(self):
        state = initialize_game(GameSettings.from_names(NAMES), rng=random.Random(7))

        assert state.phase == GamePhase.PLACE_TILE
        assert state.current_player_index == 0
        assert [p.player_id for p in state.players] == [
            "player-0",
            "player-1",
            "player-2",
            "player-3",
        ]
        assert all(len(p.tiles) == 6 for p in state.players)
        assert all(p.cash == 6000 for p in state.players)
        assert sum(1 for t in state.board.values() if t.placed) == 1
        assert len(state.tile_bag) == 108 - 1 - 24
        assert all(count == STOCKS_PER_CHAIN for count in state.stock_bank.values())
        assert not any(chain.is_active for chain in state.chains.values())
        assert state.last_placed_tile is None
        check_invariants(state)

    def test_same_seed_same_deal(self):
        settings = GameSettings.from_names(NAMES)
        first = initialize_game(settings, rng=random.Random(42))
        second = initialize_game(settings, rng=random.Random(42))

        assert first.tile_bag == second.tile_bag
        assert [p.tiles for p in first.players] == [p.tiles for p in second.players]

    def test_six_players(self):
        state = initialize_game(GameSettings.from_names([*NAMES, "Eve", "Fox"]))
        assert len(state.players) == 6
        assert len(state.tile_bag) == 108 - 1 - 36


class TestValidateGameSettings:
    @pytest.mark.parametrize("names", [NAMES[:3], [*NAMES, "Eve", "Fox", "Gus"]])
    def test_player_count(self, names):
        with pytest.raises(ValueError):
            validate_game_settings(GameSettings.from_names(names))

    def test_duplicate_names(self):
        with pytest.raises(ValueError, match="Duplicate player name"):
            validate_game_settings(GameSettings.from_names(["Ada", "Ada", "Cy", "Dee"]))

    def test_duplicate_ids(self):
        settings = GameSettings(
            player_attributes=[
                PlayerAttributes(player_id="same", name=name) for name in NAMES
            ]
        )
        with pytest.raises(ValueError, match="Duplicate player ID"):
            validate_game_settings(settings)

    def test_blank_name(self):
        with pytest.raises(ValueError):
            validate_game_settings(GameSettings.from_names(["Ada", " ", "Cy", "Dee"]))


class TestNewGame:
    def test_restart_keeps_seats_and_event_stream(self):
        finished = build_state(
            players=create_players(p1={"cash": 20000}, p2={"cash": 100}),
            phase=GamePhase.GAME_OVER,
            event_seq=40,
            winner=PLAYER_1_ID,
        )

        result = process_action(finished, NewGameAction(), PLAYER_1_ID)

        assert result.success
        state = result.state
        assert [p.player_id for p in state.players] == [p.player_id for p in finished.players]
        assert all(p.cash == 6000 for p in state.players)
        assert state.winner is None
        assert state.phase == GamePhase.PLACE_TILE
        assert [type(e) for e in result.events] == [GameStarted, TurnStarted]
        assert [e.seq for e in result.events] == [40, 41]
        assert state.event_seq == 42
