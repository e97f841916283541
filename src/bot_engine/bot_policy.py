"""Heuristic decision policy for bot-controlled players.

Each decision weighs the bot's personality against its position in the game:

* **Position**: whether it leads on money, how its balance compares to the
  active average, and a risk score built from penalty exposure, multiplier
  rank and game length.
* **Reserve**: bots try to keep 1.5x the current penalty untouched, so only
  the money above that reserve funds levels, lottery tickets and bids.

The policy is stateless: game data arrives in a :class:`BotContext` and every
random draw comes from the ``random.Random`` passed to the constructor.
"""

import logging
import random
from typing import Optional

from src.bot_engine.config import (
    BELOW_AVERAGE_MARGIN,
    BID_PROBABILITY_CHEAP,
    BID_PROBABILITY_EXPENSIVE,
    BID_STEP,
    EXIT_WEIGHTS,
    HIGH_RISK_LEVEL,
    HIGH_RISK_PROFITABILITY,
    LEADING_LATE_TURN,
    LEADING_PROFITABILITY,
    LEVEL_DOWN_PROBABILITY,
    LEVEL_UP_PROBABILITY,
    LOTTERY_PROBABILITY_AHEAD,
    LOTTERY_PROBABILITY_BEHIND,
    MODERATE_RISK_LEVEL,
    PENALTY_COVERAGE,
    PENALTY_RESERVE_FACTOR,
    TURN_RISK_SPAN,
    TURN_RISK_START,
    WEAK_LATE_TURN,
    WEAK_PROFITABILITY,
)
from src.bot_engine.models import BotContext, PositionEvaluation, TurnPlan

logger = logging.getLogger(__name__)


class BotPolicy:
    """Decide level changes, lottery entries, exits and bids for a bot."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def evaluate_position(self, context: BotContext) -> PositionEvaluation:
        """Score the bot's standing among the active players.

        Formula::

            risk = (penalty / balance
                    + (1 if at minimum multiplier else 0)
                    + clamp((turn - 6) / 10, 0, 1)) / 3
        """
        if not context.active_balances:
            return PositionEvaluation(
                is_leading=False, relative_profitability=0.0, risk_level=0.0
            )

        balance = context.balance
        average_balance = sum(context.active_balances) / len(context.active_balances)

        is_leading = balance == max(context.active_balances)
        relative_profitability = (
            balance / average_balance if average_balance > 0 else 0.0
        )

        penalty_risk = (
            context.penalty_amount / balance if balance > 0 else float("inf")
        )
        multiplier_risk = (
            1.0 if context.multiplier == min(context.active_multipliers) else 0.0
        )
        turn_risk = min(
            max((context.turn_number - TURN_RISK_START) / TURN_RISK_SPAN, 0.0), 1.0
        )
        risk_level = (penalty_risk + multiplier_risk + turn_risk) / 3

        return PositionEvaluation(
            is_leading=is_leading,
            relative_profitability=relative_profitability,
            risk_level=risk_level,
        )

    def exit_probability(self, context: BotContext, personality) -> float:
        """Average weight of the exit conditions that hold, scaled by risk tolerance."""
        position = self.evaluate_position(context)
        profitability = position.relative_profitability
        conditions = {
            "leading_late": (
                position.is_leading
                and profitability > LEADING_PROFITABILITY
                and context.turn_number > LEADING_LATE_TURN
            ),
            "high_risk_profitable": (
                position.risk_level > HIGH_RISK_LEVEL
                and profitability > HIGH_RISK_PROFITABILITY
            ),
            "below_threshold_risky": (
                profitability < personality.exit_threshold
                and position.risk_level > MODERATE_RISK_LEVEL
            ),
            "cannot_cover_penalties": (
                context.balance < context.penalty_amount * PENALTY_COVERAGE
            ),
            "weak_late": (
                context.turn_number > WEAK_LATE_TURN
                and profitability < WEAK_PROFITABILITY
            ),
        }
        weighted = sum(
            EXIT_WEIGHTS[name] for name, holds in conditions.items() if holds
        )
        base_probability = weighted / len(conditions)
        return base_probability * (2 - personality.risk_tolerance)

    def should_exit(self, context: BotContext, personality) -> bool:
        """Draw once against the exit probability."""
        return self.rng.random() < self.exit_probability(context, personality)

    def plan_turn(self, context: BotContext, personality) -> TurnPlan:
        """Choose this turn's actions.

        An exit ends the plan. Otherwise the bot may change its level once
        and buy one lottery ticket, spending only money above its reserve.
        """
        if self.should_exit(context, personality):
            return TurnPlan(exit=True)

        plan = TurnPlan()
        reserve = self.penalty_reserve(context)
        available = context.balance - reserve
        average = context.average_multiplier

        if not context.has_changed_level:
            is_below_average = context.multiplier < average - BELOW_AVERAGE_MARGIN
            level_up_probability = LEVEL_UP_PROBABILITY * personality.competitiveness
            if (
                available > 0
                and available >= context.level_cost
                and is_below_average
                and self.rng.random() < level_up_probability
            ):
                plan.level_change = "up"
            elif (
                context.balance < reserve
                and context.level > 0
                and self.rng.random() < LEVEL_DOWN_PROBABILITY
            ):
                plan.level_change = "down"

        if not context.has_joined_lottery and available >= context.lottery_fee:
            base = (
                LOTTERY_PROBABILITY_BEHIND
                if context.multiplier < average
                else LOTTERY_PROBABILITY_AHEAD
            )
            if self.rng.random() < base * personality.risk_tolerance:
                plan.join_lottery = True

        return plan

    def should_bid(
        self,
        context: BotContext,
        personality,
        current_bid: float,
        current_winner: Optional[str],
    ) -> bool:
        """Decide whether to raise the current auction bid by one step."""
        available = context.balance - self.penalty_reserve(context)
        if available < current_bid + BID_STEP:
            return False
        if current_winner == context.player_id:
            return False

        cheap = current_bid < available * personality.max_bid_multiplier
        probability = personality.competitiveness * (
            BID_PROBABILITY_CHEAP if cheap else BID_PROBABILITY_EXPENSIVE
        )
        return self.rng.random() < probability

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def penalty_reserve(context: BotContext) -> float:
        return context.penalty_amount * PENALTY_RESERVE_FACTOR
