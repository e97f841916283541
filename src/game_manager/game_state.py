"""Game state data models - single source of truth for all game information."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from src.game_manager.config import DEFAULT_GAME_CONFIG


class TransactionType(str, Enum):
    """Every kind of ledger entry. The set is fixed."""

    PLAYER_JOINED = "player_joined"
    BANK_CONTRIBUTION = "bank_contribution"
    LEVEL_UP = "level_up"
    LEVEL_DOWN = "level_down"
    LOTTERY_JOIN = "lottery_join"
    LOTTERY_WIN = "lottery_win"
    AUCTION_WIN = "auction_win"
    PENALTY_PAYMENT = "penalty_payment"
    MULTIPLIER_BONUS = "multiplier_bonus"
    BANK_DISTRIBUTION = "bank_distribution"
    PLAYER_EXIT = "player_exit"


class TurnPhase(str, Enum):
    START = "start"
    ACTIONS = "actions"
    AUCTION = "auction"
    FINISHED = "finished"


@dataclass(frozen=True)
class BotPersonality:
    """Tuning knobs for a bot-controlled player."""

    risk_tolerance: float
    competitiveness: float
    max_bid_multiplier: float
    exit_threshold: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "risk_tolerance": self.risk_tolerance,
            "competitiveness": self.competitiveness,
            "max_bid_multiplier": self.max_bid_multiplier,
            "exit_threshold": self.exit_threshold,
        }


@dataclass(frozen=True)
class Player:
    """A registered player. Elimination lives in the ledger, not here."""

    id: str
    name: str
    is_bot: bool = False
    bot_personality: Optional[BotPersonality] = None


@dataclass(frozen=True)
class GameConfig:
    """Numeric tunables, fixed once the first player registers."""

    initial_money_per_player: float = DEFAULT_GAME_CONFIG["initial_money_per_player"]
    bank_contribution_per_player: float = DEFAULT_GAME_CONFIG["bank_contribution_per_player"]
    cost_to_raise_level: float = DEFAULT_GAME_CONFIG["cost_to_raise_level"]
    refund_to_lower_level: float = DEFAULT_GAME_CONFIG["refund_to_lower_level"]
    lottery_base_cost: float = DEFAULT_GAME_CONFIG["lottery_base_cost"]
    lottery_base_reward: float = DEFAULT_GAME_CONFIG["lottery_base_reward"]
    auction_base_increment: float = DEFAULT_GAME_CONFIG["auction_base_increment"]
    penalty_increment: float = DEFAULT_GAME_CONFIG["penalty_increment"]

    @property
    def starting_balance(self) -> float:
        """Money a player holds right after joining."""
        return self.initial_money_per_player - self.bank_contribution_per_player

    def to_dict(self) -> Dict[str, float]:
        return {key: getattr(self, key) for key in DEFAULT_GAME_CONFIG}

    @classmethod
    def from_dict(cls, data: Dict) -> "GameConfig":
        return cls(**{key: data[key] for key in DEFAULT_GAME_CONFIG if key in data})


@dataclass(frozen=True)
class Transaction:
    """A single immutable ledger entry."""

    turn: int
    type: TransactionType
    player_id: str
    timestamp: str
    details: str = ""
    amount: Optional[float] = None
    multiplier_change: Optional[float] = None
    level_change: Optional[int] = None

    @classmethod
    def create(
        cls,
        turn: int,
        type: TransactionType,
        player_id: str,
        details: str = "",
        amount: Optional[float] = None,
        multiplier_change: Optional[float] = None,
        level_change: Optional[int] = None,
    ) -> "Transaction":
        return cls(
            turn=turn,
            type=TransactionType(type),
            player_id=player_id,
            timestamp=datetime.now().isoformat(),
            details=details,
            amount=amount,
            multiplier_change=multiplier_change,
            level_change=level_change,
        )


@dataclass
class GameState:
    """Complete game state - everything a snapshot holds."""

    players: List[Player] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    turn_number: int = 1
    turn_phase: TurnPhase = TurnPhase.START
    game_started: bool = False
    current_player_index: int = 0
    lottery_participants: List[str] = field(default_factory=list)
    config: GameConfig = field(default_factory=GameConfig)

    def get_player(self, player_id: str) -> Optional[Player]:
        """Look up a registered player by id."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def registration_index(self, player_id: str) -> int:
        """Position of a player in registration order (-1 if unknown)."""
        for index, player in enumerate(self.players):
            if player.id == player_id:
                return index
        return -1


@dataclass
class TurnActions:
    """A human player's selections for one turn, committed together."""

    level_change: Optional[str] = None  # "up", "down" or None
    join_lottery: bool = False
    exit: bool = False
