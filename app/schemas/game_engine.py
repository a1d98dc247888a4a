from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# Game phases
class GamePhase(str, Enum):
    PLACE_TILE = "place_tile"
    FOUND_CHAIN = "found_chain"
    BUY_STOCK = "buy_stock"
    MERGER_CHOOSE_SURVIVOR = "merger_choose_survivor"
    MERGER_PAY_BONUSES = "merger_pay_bonuses"
    MERGER_HANDLE_STOCK = "merger_handle_stock"
    GAME_OVER = "game_over"


MERGER_PHASES = (
    GamePhase.MERGER_CHOOSE_SURVIVOR,
    GamePhase.MERGER_PAY_BONUSES,
    GamePhase.MERGER_HANDLE_STOCK,
)


class ChainName(str, Enum):
    SACKSON = "sackson"
    TOWER = "tower"
    WORLDWIDE = "worldwide"
    AMERICAN = "american"
    FESTIVAL = "festival"
    CONTINENTAL = "continental"
    IMPERIAL = "imperial"


class ChainTier(str, Enum):
    BUDGET = "budget"
    MIDRANGE = "midrange"
    PREMIUM = "premium"


# What a tile placement would do to the board
class PlacementAction(str, Enum):
    PLACE_ONLY = "place_only"
    FORM_CHAIN = "form_chain"
    GROW_CHAIN = "grow_chain"
    MERGE_CHAINS = "merge_chains"


class PlacementRejection(str, Enum):
    CANNOT_MERGE_SAFE_CHAINS = "cannot_merge_safe_chains"
    MAX_CHAINS_REACHED = "max_chains_reached"


class RejectionCode(str, Enum):
    """Machine-readable reasons an intent was rejected."""

    INVALID_COORDINATE = "INVALID_COORDINATE"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    TILE_NOT_IN_HAND = "TILE_NOT_IN_HAND"
    INVALID_PLACEMENT = "INVALID_PLACEMENT"
    INVALID_MERGER_STATE = "INVALID_MERGER_STATE"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INSUFFICIENT_BANK_SHARES = "INSUFFICIENT_BANK_SHARES"
    OVER_PURCHASE_LIMIT = "OVER_PURCHASE_LIMIT"
    CHAIN_ALREADY_ACTIVE = "CHAIN_ALREADY_ACTIVE"
    UNKNOWN_CHAIN = "UNKNOWN_CHAIN"
    CHAIN_NOT_ACTIVE = "CHAIN_NOT_ACTIVE"
    INVALID_ACTION = "INVALID_ACTION"
    GAME_FINISHED = "GAME_FINISHED"
    UNKNOWN_PLAYER = "UNKNOWN_PLAYER"
    TILES_STILL_PLAYABLE = "TILES_STILL_PLAYABLE"
    ALREADY_VOTED = "ALREADY_VOTED"
    VOTE_NOT_ALLOWED = "VOTE_NOT_ALLOWED"
    NOT_HOST = "NOT_HOST"


# Rule constants
STOCKS_PER_CHAIN = 25
INITIAL_CASH = 6000
INITIAL_TILES_PER_PLAYER = 6
MAX_STOCKS_PER_TURN = 3
SAFE_CHAIN_SIZE = 11
END_GAME_CHAIN_SIZE = 41
MAX_ACTIVE_CHAINS = 7
MIN_PLAYERS = 4
MAX_PLAYERS = 6


class ChainInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: ChainName
    display_name: str
    tier: ChainTier


CHAINS: dict[ChainName, ChainInfo] = {
    ChainName.SACKSON: ChainInfo(name=ChainName.SACKSON, display_name="Sackson", tier=ChainTier.BUDGET),
    ChainName.TOWER: ChainInfo(name=ChainName.TOWER, display_name="Tower", tier=ChainTier.BUDGET),
    ChainName.WORLDWIDE: ChainInfo(
        name=ChainName.WORLDWIDE, display_name="Worldwide", tier=ChainTier.MIDRANGE
    ),
    ChainName.AMERICAN: ChainInfo(
        name=ChainName.AMERICAN, display_name="American", tier=ChainTier.MIDRANGE
    ),
    ChainName.FESTIVAL: ChainInfo(
        name=ChainName.FESTIVAL, display_name="Festival", tier=ChainTier.MIDRANGE
    ),
    ChainName.CONTINENTAL: ChainInfo(
        name=ChainName.CONTINENTAL, display_name="Continental", tier=ChainTier.PREMIUM
    ),
    ChainName.IMPERIAL: ChainInfo(
        name=ChainName.IMPERIAL, display_name="Imperial", tier=ChainTier.PREMIUM
    ),
}


def parse_chain_name(value: str) -> ChainName | None:
    try:
        return ChainName(value)
    except ValueError:
        return None


def empty_holdings() -> dict[ChainName, int]:
    return {chain: 0 for chain in ChainName}


# Data models for game entities
# Defined pre-initialization from the lobby's seat list
class PlayerAttributes(BaseModel):
    player_id: str
    name: str


class GameSettings(BaseModel):
    player_attributes: list[PlayerAttributes]
    starting_cash: int = INITIAL_CASH
    tiles_per_player: int = INITIAL_TILES_PER_PLAYER

    @classmethod
    def from_names(cls, player_names: list[str]) -> "GameSettings":
        """Build settings with positional ids (player-0, player-1, ...)."""
        return cls(
            player_attributes=[
                PlayerAttributes(player_id=f"player-{index}", name=name)
                for index, name in enumerate(player_names)
            ]
        )


class Tile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    placed: bool = False
    chain: ChainName | None = None


class Chain(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: ChainName
    tiles: list[str] = []
    is_active: bool = False
    is_safe: bool = False

    @property
    def size(self) -> int:
        return len(self.tiles)


class Player(PlayerAttributes):
    model_config = ConfigDict(frozen=True)

    cash: int
    tiles: list[str] = []
    stocks: dict[ChainName, int] = Field(default_factory=empty_holdings)


class MergerState(BaseModel):
    """Bookkeeping for a merger in progress; only present in merger phases."""

    model_config = ConfigDict(frozen=True)

    surviving_chain: ChainName
    defunct_chains: list[ChainName]
    current_defunct_chain: ChainName
    current_player_index: int
    bonuses_paid: bool = False


class GameLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_id: str
    player_name: str
    action: str
    details: str | None = None


class FinalStanding(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_id: str
    name: str
    cash: int


# Action payload pieces
class StockPurchase(BaseModel):
    chain: str
    quantity: int = Field(..., ge=1)


class MergerStockDecision(BaseModel):
    sell: int = Field(0, ge=0)
    trade: int = Field(0, ge=0)
    keep: int = Field(0, ge=0)


# Game state for broadcasting and game flow
class GameState(BaseModel):
    """Aggregate root of a game - one immutable snapshot per accepted action.

    Player intents are handled via explicit action types in
    app.services.game.engine.actions; every transition returns a new
    snapshot built with model_copy, so snapshots can be shared freely.
    """

    model_config = ConfigDict(frozen=True)

    phase: GamePhase
    board: dict[str, Tile]
    chains: dict[ChainName, Chain]
    stock_bank: dict[ChainName, int]
    tile_bag: list[str]
    players: list[Player]
    current_player_index: int = 0
    last_placed_tile: str | None = None
    pending_chain_foundation: list[str] | None = None
    merger_adjacent_chains: list[ChainName] | None = None
    merger: MergerState | None = None
    stocks_purchased_this_turn: int = 0
    discarded_tiles: list[str] = []
    game_log: list[GameLogEntry] = []
    end_game_votes: list[str] = []
    winner: str | None = None
    final_standings: list[FinalStanding] | None = None
    event_seq: int = 0  # Next sequence number for events (monotonically increasing)

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    def player_index(self, player_id: str) -> int | None:
        for index, player in enumerate(self.players):
            if player.player_id == player_id:
                return index
        return None
