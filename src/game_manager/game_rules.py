"""Game rule enforcement and action validation."""

import random
from typing import Optional, Tuple

from src.game_manager.config import (
    BASE_PENALTY,
    LAST_FIXED_MODIFIER_TURN,
    MIN_PLAYERS,
    MODIFIER_BAND_LENGTH,
    RANDOM_MODIFIER_CHOICES,
)
from src.game_manager.game_state import GameConfig, GameState, TurnPhase
from src.game_manager.ledger import Ledger


class ValidationError(Exception):
    """Raised when an operation violates game rules."""

    pass


class GameStartError(ValidationError):
    """Raised when the game cannot be started."""

    pass


def penalty_amount(turn_number: int, config: GameConfig) -> float:
    """Penalty charged to the lowest multiplier(s) at the end of a turn."""
    return BASE_PENALTY + (turn_number - 1) * config.penalty_increment


def modifier(turn_number: int, rng: random.Random) -> int:
    """Reward/cost scaling for the turn.

    Turns 1-3 -> 1, 4-6 -> 2, 7-9 -> 3. Later turns draw a fresh value from
    ``RANDOM_MODIFIER_CHOICES`` on every call.
    """
    if turn_number > LAST_FIXED_MODIFIER_TURN:
        return rng.choice(RANDOM_MODIFIER_CHOICES)
    return (max(turn_number, 1) - 1) // MODIFIER_BAND_LENGTH + 1


class GameRules:
    """Enforces per-action rules against the current state."""

    def __init__(self, state: GameState, ledger: Ledger):
        self.state = state
        self.ledger = ledger

    def can_afford(self, player_id: str, amount: float) -> bool:
        return self.ledger.balance(player_id) >= amount

    def validate_start(self) -> Tuple[bool, Optional[str]]:
        if self.state.game_started:
            return False, "Game has already started"
        if len(self.state.players) < MIN_PLAYERS:
            return (
                False,
                f"At least {MIN_PLAYERS} players are required to start the game",
            )
        return True, None

    def validate_player_action(self, player_id: str) -> Tuple[bool, Optional[str]]:
        """Common checks for level changes, lottery entries and exits."""
        if self.state.turn_phase != TurnPhase.ACTIONS:
            return (
                False,
                f"Player actions are only allowed in the actions phase "
                f"(current: {self.state.turn_phase.value})",
            )
        if self.state.get_player(player_id) is None:
            return False, f"Player {player_id} not found"
        if self.ledger.has_exited(player_id):
            return False, f"Player {player_id} has already exited"
        return True, None

    def validate_level_change(
        self, player_id: str, direction: str
    ) -> Tuple[bool, Optional[str]]:
        """Validate a level change.

        Returns:
            (is_valid, error_message) - (True, None) if valid
        """
        if direction not in ("up", "down"):
            return False, f"Invalid level direction {direction!r}"

        if direction == "up":
            cost = self.state.config.cost_to_raise_level
            if not self.can_afford(player_id, cost):
                return (
                    False,
                    f"Insufficient funds to raise level "
                    f"(need {cost}, have {self.ledger.balance(player_id)})",
                )
        elif self.ledger.level(player_id) <= 0:
            return False, "Cannot lower level below 0"

        return True, None

    def validate_lottery_join(
        self, player_id: str, cost: float
    ) -> Tuple[bool, Optional[str]]:
        if not self.can_afford(player_id, cost):
            return (
                False,
                f"Insufficient funds to join lottery "
                f"(need {cost}, have {self.ledger.balance(player_id)})",
            )
        return True, None

    def validate_once_per_turn(
        self, player_id: str, action: str
    ) -> Tuple[bool, Optional[str]]:
        """A player gets one level change and one lottery ticket per turn."""
        turn = self.state.turn_number
        if action == "level" and self.ledger.has_changed_level(player_id, turn):
            return False, f"Player {player_id} already changed level this turn"
        if action == "lottery" and self.ledger.has_joined_lottery(player_id, turn):
            return False, f"Player {player_id} already joined the lottery this turn"
        return True, None
