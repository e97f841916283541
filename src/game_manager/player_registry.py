"""Player registry - identity and bot personalities, editable before the game starts."""

import logging
import random
from typing import List, Optional

from src.game_manager.config import BOT_PERSONALITY_RANGES
from src.game_manager.game_state import BotPersonality, Player

logger = logging.getLogger(__name__)


class PlayerRegistry:
    """Owns the ordered player list of a game.

    Registration order is the turn order and the tie-break order for every
    rule that picks among players.
    """

    ID_PREFIX = "player-"

    def __init__(self, players: List[Player], rng: random.Random):
        self.players = players
        self.rng = rng

    def add(self, name: str, is_bot: bool = False) -> Player:
        """Register a new player, sampling a personality for bots."""
        name = name.strip()
        if not name:
            raise ValueError("Player name cannot be empty")

        player = Player(
            id=self._next_player_id(),
            name=name,
            is_bot=is_bot,
            bot_personality=self.sample_personality() if is_bot else None,
        )
        self.players.append(player)
        logger.info(
            "Registered %s %s (%s)", "bot" if is_bot else "player", name, player.id
        )
        return player

    def remove(self, player_id: str) -> Optional[Player]:
        """Unregister a player. Returns the removed player, or None."""
        player = self.get(player_id)
        if player is None:
            return None
        self.players.remove(player)
        logger.info("Removed player %s (%s)", player.name, player_id)
        return player

    def get(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def sample_personality(self) -> BotPersonality:
        """Draw each personality trait uniformly within its range."""
        traits = {
            trait: low + self.rng.random() * (high - low)
            for trait, (low, high) in BOT_PERSONALITY_RANGES.items()
        }
        return BotPersonality(**traits)

    def __len__(self) -> int:
        return len(self.players)

    def _next_player_id(self) -> str:
        """Next unused id. Existing ids are never renumbered."""
        highest = 0
        for player in self.players:
            suffix = player.id[len(self.ID_PREFIX):]
            if player.id.startswith(self.ID_PREFIX) and suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{self.ID_PREFIX}{highest + 1}"
