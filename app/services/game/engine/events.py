"""Game event types - emitted during state transitions for broadcasts.

Events describe what happened during a game action, enabling:
- Efficient client updates (only send what changed)
- Narration of the game log on the client
- Action replay / audit logging
- Reconnection state catch-up
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from app.schemas.game_engine import ChainName, FinalStanding, PlacementAction


class GameEvent(BaseModel):
    """Base class for all game events."""

    event_type: str
    seq: int = 0  # Sequence number assigned during processing


class GameStarted(GameEvent):
    """A new game has been dealt."""

    event_type: Literal["game_started"] = "game_started"
    player_order: list[str] = Field(..., description="Player IDs in turn order")
    first_player_id: str
    starting_tile: str


class TilePlaced(GameEvent):
    """A tile went onto the board."""

    event_type: Literal["tile_placed"] = "tile_placed"
    player_id: str
    tile_id: str
    placement: PlacementAction


class AwaitingChainFoundation(GameEvent):
    """Placement formed a new chain; the player must name it."""

    event_type: Literal["awaiting_chain_foundation"] = "awaiting_chain_foundation"
    player_id: str
    tiles: list[str]
    available_chains: list[ChainName]


class ChainFounded(GameEvent):
    event_type: Literal["chain_founded"] = "chain_founded"
    player_id: str
    chain: ChainName
    tiles: list[str]
    founder_share_granted: bool


class ChainGrew(GameEvent):
    event_type: Literal["chain_grew"] = "chain_grew"
    chain: ChainName
    added_tiles: list[str]
    size: int
    is_safe: bool


class AwaitingSurvivorChoice(GameEvent):
    """Largest merging chains are tied; the merger maker picks the survivor."""

    event_type: Literal["awaiting_survivor_choice"] = "awaiting_survivor_choice"
    player_id: str
    candidates: list[ChainName]


class MergerStarted(GameEvent):
    event_type: Literal["merger_started"] = "merger_started"
    player_id: str
    surviving_chain: ChainName
    defunct_chains: list[ChainName] = Field(..., description="Largest first")


class BonusesPaid(GameEvent):
    """Majority/minority bonuses for a chain were paid out."""

    event_type: Literal["bonuses_paid"] = "bonuses_paid"
    chain: ChainName
    payouts: dict[str, int] = Field(..., description="Player ID -> cash received")


class AwaitingStockDecision(GameEvent):
    event_type: Literal["awaiting_stock_decision"] = "awaiting_stock_decision"
    player_id: str
    defunct_chain: ChainName
    shares: int


class StockDisposed(GameEvent):
    """A shareholder sold, traded and/or kept defunct-chain shares."""

    event_type: Literal["stock_disposed"] = "stock_disposed"
    player_id: str
    defunct_chain: ChainName
    surviving_chain: ChainName
    sold: int
    cash_received: int
    traded: int
    received: int = Field(
        ..., description="Surviving-chain shares granted; may be short of traded/2"
    )
    kept: int


class MergerCompleted(GameEvent):
    event_type: Literal["merger_completed"] = "merger_completed"
    surviving_chain: ChainName
    defunct_chains: list[ChainName]
    size: int


class StocksBought(GameEvent):
    event_type: Literal["stocks_bought"] = "stocks_bought"
    player_id: str
    shares: dict[ChainName, int]
    total_cost: int


class TileDiscarded(GameEvent):
    event_type: Literal["tile_discarded"] = "tile_discarded"
    player_id: str
    tile_id: str


class TurnEnded(GameEvent):
    """A player's turn has ended."""

    event_type: Literal["turn_ended"] = "turn_ended"
    player_id: str
    next_player_id: str


class TurnStarted(GameEvent):
    """A new turn has begun."""

    event_type: Literal["turn_started"] = "turn_started"
    player_id: str


class EndGameVoteCast(GameEvent):
    event_type: Literal["end_game_vote_cast"] = "end_game_vote_cast"
    player_id: str
    votes: int
    votes_needed: int


class GameEnded(GameEvent):
    """The game has finished and been scored."""

    event_type: Literal["game_ended"] = "game_ended"
    winner_id: str
    reason: str = Field(..., description="'board_condition' or 'vote'")
    final_standings: list[FinalStanding] = Field(
        ..., description="Players by final cash, richest first"
    )


# Union of all event types for type checking
AnyGameEvent = Annotated[
    GameStarted
    | TilePlaced
    | AwaitingChainFoundation
    | ChainFounded
    | ChainGrew
    | AwaitingSurvivorChoice
    | MergerStarted
    | BonusesPaid
    | AwaitingStockDecision
    | StockDisposed
    | MergerCompleted
    | StocksBought
    | TileDiscarded
    | TurnEnded
    | TurnStarted
    | EndGameVoteCast
    | GameEnded,
    Field(discriminator="event_type"),
]
