"""Game engine module - pure functional game logic.

This module provides the core rules engine with:
- Action types for explicit player intents
- Event types for broadcasts
- ProcessResult pattern for error handling
- Modular processing logic (placement, chains, mergers, economy)

Usage:
    from app.services.game.engine import (
        process_action,
        ProcessResult,
        PlaceTileAction,
    )

    # Process an action
    result = process_action(state, PlaceTileAction(tile_id="3C"), player_id)

    if result.success:
        new_state = result.state
        events = result.events  # Broadcast these to the room
    else:
        # Handle error
        print(f"Error: {result.error_code} - {result.error_message}")
"""

# Actions - explicit player intents
from .actions import (
    BuyStocksAction,
    ChooseSurvivorAction,
    DiscardTileAction,
    EndGameVoteAction,
    EndTurnAction,
    FoundChainAction,
    GameAction,
    NewGameAction,
    PayBonusesAction,
    PlaceTileAction,
    StockDecisionAction,
    build_action_from_payload,
)

# Board
from .board import InvalidCoordinateError, adjacent_tiles, parse_tile_id

# Economy and game end
from .economy import (
    available_chains_for_foundation,
    calculate_final_scores,
    check_game_end,
    draw_tile,
    player_net_worth,
)

# Events - for broadcasts
from .events import (
    AnyGameEvent,
    AwaitingChainFoundation,
    AwaitingStockDecision,
    AwaitingSurvivorChoice,
    BonusesPaid,
    ChainFounded,
    ChainGrew,
    EndGameVoteCast,
    GameEnded,
    GameEvent,
    GameStarted,
    MergerCompleted,
    MergerStarted,
    StockDisposed,
    StocksBought,
    TileDiscarded,
    TilePlaced,
    TurnEnded,
    TurnStarted,
)

# Invariants
from .invariants import InvariantViolationError, check_invariants

# Mergers
from .merger import first_holder_index, next_holder_index, survivor_candidates

# Placement
from .placement import PlacementAnalysis, analyze_tile_placement, has_playable_tiles

# Pricing
from .pricing import bonuses, stock_price, stockholder_rankings

# Main processing
from .process import process_action

# Result types
from .validation import ProcessResult, ValidationResult, validate_action

__all__ = [
    # Actions
    "GameAction",
    "PlaceTileAction",
    "FoundChainAction",
    "ChooseSurvivorAction",
    "PayBonusesAction",
    "StockDecisionAction",
    "BuyStocksAction",
    "EndTurnAction",
    "DiscardTileAction",
    "EndGameVoteAction",
    "NewGameAction",
    "build_action_from_payload",
    # Board
    "InvalidCoordinateError",
    "adjacent_tiles",
    "parse_tile_id",
    # Economy
    "available_chains_for_foundation",
    "calculate_final_scores",
    "check_game_end",
    "draw_tile",
    "player_net_worth",
    # Events
    "GameEvent",
    "AnyGameEvent",
    "GameStarted",
    "TilePlaced",
    "AwaitingChainFoundation",
    "ChainFounded",
    "ChainGrew",
    "AwaitingSurvivorChoice",
    "MergerStarted",
    "BonusesPaid",
    "AwaitingStockDecision",
    "StockDisposed",
    "MergerCompleted",
    "StocksBought",
    "TileDiscarded",
    "TurnEnded",
    "TurnStarted",
    "EndGameVoteCast",
    "GameEnded",
    # Invariants
    "InvariantViolationError",
    "check_invariants",
    # Mergers
    "first_holder_index",
    "next_holder_index",
    "survivor_candidates",
    # Placement
    "PlacementAnalysis",
    "analyze_tile_placement",
    "has_playable_tiles",
    # Pricing
    "bonuses",
    "stock_price",
    "stockholder_rankings",
    # Processing
    "process_action",
    # Validation
    "ProcessResult",
    "ValidationResult",
    "validate_action",
]
