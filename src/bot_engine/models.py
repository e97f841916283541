"""Data models for the bot engine."""

from dataclasses import dataclass
from typing import List, Optional


@dataclass
class BotContext:
    """Everything a bot may look at when deciding, for one player at one moment."""

    player_id: str
    balance: float
    multiplier: float
    level: int
    active_balances: List[float]
    active_multipliers: List[float]
    penalty_amount: float
    turn_number: int
    level_cost: float
    lottery_fee: float
    has_changed_level: bool = False
    has_joined_lottery: bool = False

    @property
    def average_multiplier(self) -> float:
        if not self.active_multipliers:
            return 1.0
        return sum(self.active_multipliers) / len(self.active_multipliers)


@dataclass
class PositionEvaluation:
    """How a bot sees its standing among the active players."""

    is_leading: bool
    relative_profitability: float
    risk_level: float


@dataclass
class TurnPlan:
    """Actions a bot commits for its turn."""

    exit: bool = False
    level_change: Optional[str] = None  # "up", "down" or None
    join_lottery: bool = False
