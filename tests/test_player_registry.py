"""Tests for player registration."""

import random

import pytest

from src.game_manager.config import BOT_PERSONALITY_RANGES
from src.game_manager.player_registry import PlayerRegistry


def _make_registry(seed=1):
    return PlayerRegistry([], random.Random(seed))


class TestAdd:
    def test_ids_follow_registration(self):
        registry = _make_registry()
        assert registry.add("Alice").id == "player-1"
        assert registry.add("Bob").id == "player-2"
        assert len(registry) == 2

    def test_name_is_trimmed(self):
        assert _make_registry().add("  Alice ").name == "Alice"

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="empty"):
            _make_registry().add("   ")

    def test_humans_have_no_personality(self):
        player = _make_registry().add("Alice")
        assert player.is_bot is False
        assert player.bot_personality is None

    def test_bots_get_a_personality(self):
        player = _make_registry().add("Robo", is_bot=True)
        assert player.is_bot is True
        assert player.bot_personality is not None


class TestRemove:
    def test_remove_returns_player(self):
        registry = _make_registry()
        alice = registry.add("Alice")
        assert registry.remove(alice.id) == alice
        assert registry.get(alice.id) is None

    def test_remove_unknown(self):
        assert _make_registry().remove("player-7") is None

    def test_ids_are_not_renumbered(self):
        registry = _make_registry()
        registry.add("Alice")
        registry.add("Bob")
        registry.add("Carol")
        registry.remove("player-2")
        assert [p.id for p in registry.players] == ["player-1", "player-3"]
        assert registry.add("Dave").id == "player-4"


class TestPersonality:
    def test_traits_within_ranges(self):
        registry = _make_registry(seed=123)
        for _ in range(50):
            personality = registry.sample_personality()
            for trait, (low, high) in BOT_PERSONALITY_RANGES.items():
                assert low <= getattr(personality, trait) <= high

    def test_same_seed_same_personality(self):
        assert _make_registry(7).sample_personality() == _make_registry(7).sample_personality()
