"""Shared fixtures for the game engine test suite."""

import random

import pytest

from src.bot_engine.bot_policy import BotPolicy
from src.bot_engine.models import TurnPlan
from src.game_manager.state_persistence import InMemorySnapshotStore
from src.game_manager.turn_controller import TurnController


class ScriptedRandom(random.Random):
    """random.Random whose ``random()`` replays a fixed list, then ``default``."""

    def __init__(self, values=(), default=0.99):
        super().__init__(0)
        self.values = list(values)
        self.default = default

    def random(self):
        if self.values:
            return self.values.pop(0)
        return self.default


class PassivePolicy(BotPolicy):
    """Bots that never act on their turn and always try to raise a bid."""

    def plan_turn(self, context, personality):
        return TurnPlan()

    def should_bid(self, context, personality, current_bid, current_winner):
        if current_winner == context.player_id:
            return False
        return context.balance >= current_bid + 100


# ------------------------------------------------------------------
# Factories
# ------------------------------------------------------------------

@pytest.fixture
def scripted_random():
    """Factory for :class:`ScriptedRandom`."""
    return ScriptedRandom


@pytest.fixture
def passive_policy():
    return PassivePolicy()


@pytest.fixture
def store():
    return InMemorySnapshotStore()


@pytest.fixture
def controller(store):
    """Fresh controller with a seeded RNG and no players."""
    return TurnController(store=store, rng=random.Random(42))


@pytest.fixture
def two_player_game(controller):
    """Two humans, game started and first turn begun."""
    controller.add_player("Alice")
    controller.add_player("Bob")
    controller.start_game()
    controller.begin_turn()
    return controller
