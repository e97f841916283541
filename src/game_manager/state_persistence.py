"""State persistence - snapshot port plus JSON-file and in-memory stores."""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Tuple

from src.game_manager.config import DEFAULT_GAME_CONFIG, SAVES_DIR, SNAPSHOT_FILENAME
from src.game_manager.game_state import (
    BotPersonality,
    GameConfig,
    GameState,
    Player,
    Transaction,
    TransactionType,
    TurnPhase,
)

logger = logging.getLogger(__name__)

PERSONALITY_KEYS = (
    "risk_tolerance",
    "competitiveness",
    "max_bid_multiplier",
    "exit_threshold",
)


class CorruptSnapshotError(ValueError):
    """Raised when a stored snapshot exists but cannot be read."""

    pass


class SnapshotStore(ABC):
    """Abstract load/save port for a single game snapshot."""

    @abstractmethod
    def load(self) -> Optional[Dict]:
        """Return the stored snapshot dict, or None if nothing is stored."""
        pass

    @abstractmethod
    def save(self, snapshot: Dict) -> None:
        """Replace the stored snapshot."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Forget the stored snapshot."""
        pass


class InMemorySnapshotStore(SnapshotStore):
    """Keeps the latest snapshot in memory (tests, throwaway games)."""

    def __init__(self, snapshot: Optional[Dict] = None):
        self.snapshot = snapshot
        self.save_count = 0

    def load(self) -> Optional[Dict]:
        return self.snapshot

    def save(self, snapshot: Dict) -> None:
        self.snapshot = snapshot
        self.save_count += 1

    def clear(self) -> None:
        self.snapshot = None


class JsonSnapshotStore(SnapshotStore):
    """Handles saving and loading the game snapshot to/from a JSON file."""

    def __init__(
        self,
        storage_dir: Optional[Path] = None,
        filename: str = SNAPSHOT_FILENAME,
    ):
        self.storage_dir = storage_dir or SAVES_DIR
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.filepath = self.storage_dir / filename

    def load(self) -> Optional[Dict]:
        """Load the snapshot file.

        Returns:
            The parsed snapshot, or None if no file is stored.

        Raises:
            CorruptSnapshotError: If the file cannot be read or is not JSON.
        """
        if not self.filepath.exists():
            return None

        try:
            with open(self.filepath, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Corrupt snapshot file %s: %s", self.filepath, e)
            raise CorruptSnapshotError(f"{self.filepath}: {e}") from e

    def save(self, snapshot: Dict) -> None:
        with open(self.filepath, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2)

        logger.debug(
            "Saved snapshot (turn %s, %s) to %s",
            snapshot.get("turn_number"),
            snapshot.get("turn_phase"),
            self.filepath,
        )

    def clear(self) -> None:
        if self.filepath.exists():
            self.filepath.unlink()
            logger.info("Deleted snapshot %s", self.filepath)


# ----------------------------------------------------------------------
# Conversion
# ----------------------------------------------------------------------


def state_to_snapshot(state: GameState) -> Dict:
    """Convert GameState to a JSON-serializable dict."""
    return {
        "players": [
            {
                "id": player.id,
                "name": player.name,
                "is_bot": player.is_bot,
                "bot_personality": (
                    player.bot_personality.to_dict()
                    if player.bot_personality
                    else None
                ),
            }
            for player in state.players
        ],
        "transactions": [
            {
                "turn": tx.turn,
                "type": tx.type.value,
                "player_id": tx.player_id,
                "amount": tx.amount,
                "multiplier_change": tx.multiplier_change,
                "level_change": tx.level_change,
                "timestamp": tx.timestamp,
                "details": tx.details,
            }
            for tx in state.transactions
        ],
        "turn_number": state.turn_number,
        "turn_phase": state.turn_phase.value,
        "game_started": state.game_started,
        "current_player_index": state.current_player_index,
        "lottery_participants": list(state.lottery_participants),
        "config": state.config.to_dict(),
    }


def snapshot_to_state(data: Dict) -> GameState:
    """Reconstruct GameState from a snapshot dict that passed validation."""
    players = [
        Player(
            id=pd["id"],
            name=pd["name"],
            is_bot=pd["is_bot"],
            bot_personality=(
                BotPersonality(**{key: pd["bot_personality"][key] for key in PERSONALITY_KEYS})
                if pd.get("bot_personality")
                else None
            ),
        )
        for pd in data["players"]
    ]

    transactions = [
        Transaction(
            turn=td["turn"],
            type=TransactionType(td["type"]),
            player_id=td["player_id"],
            timestamp=td.get("timestamp", ""),
            details=td.get("details", ""),
            amount=td.get("amount"),
            multiplier_change=td.get("multiplier_change"),
            level_change=td.get("level_change"),
        )
        for td in data["transactions"]
    ]

    return GameState(
        players=players,
        transactions=transactions,
        turn_number=data["turn_number"],
        turn_phase=TurnPhase(data["turn_phase"]),
        game_started=data["game_started"],
        current_player_index=data["current_player_index"],
        lottery_participants=list(data["lottery_participants"]),
        config=GameConfig.from_dict(data["config"]),
    )


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


_FIELD_VALIDATORS = {
    "players": lambda v: isinstance(v, list),
    "transactions": lambda v: isinstance(v, list),
    "turn_number": lambda v: _is_int(v) and v > 0,
    "turn_phase": lambda v: v in {phase.value for phase in TurnPhase},
    "game_started": lambda v: isinstance(v, bool),
    "current_player_index": lambda v: _is_int(v) and v >= 0,
    "lottery_participants": lambda v: isinstance(v, list),
    "config": lambda v: isinstance(v, dict),
}

_TRANSACTION_TYPES = {tx_type.value for tx_type in TransactionType}


def _validate_player(player) -> Optional[str]:
    if not isinstance(player, dict):
        return "player entry is not an object"
    if not isinstance(player.get("id"), str):
        return "player id must be a string"
    if not isinstance(player.get("name"), str):
        return f"player {player['id']} name must be a string"
    if not isinstance(player.get("is_bot"), bool):
        return f"player {player['id']} is_bot must be a boolean"

    personality = player.get("bot_personality")
    if personality is not None:
        if not isinstance(personality, dict) or not all(
            _is_number(personality.get(key)) for key in PERSONALITY_KEYS
        ):
            return f"player {player['id']} has a malformed bot personality"
    return None


def _validate_transaction(tx) -> Optional[str]:
    if not isinstance(tx, dict):
        return "transaction entry is not an object"
    if not (_is_int(tx.get("turn")) and tx["turn"] > 0):
        return "transaction turn must be a positive integer"
    if tx.get("type") not in _TRANSACTION_TYPES:
        return f"unknown transaction type {tx.get('type')!r}"
    if not isinstance(tx.get("player_id"), str):
        return "transaction player_id must be a string"
    for key in ("amount", "multiplier_change", "level_change"):
        if tx.get(key) is not None and not _is_number(tx[key]):
            return f"transaction {key} must be numeric"
    return None


def validate_snapshot(data) -> Tuple[bool, Optional[str]]:
    """Check a loaded snapshot before it replaces the live state.

    Returns:
        (is_valid, error_message) - (True, None) if valid
    """
    if not isinstance(data, dict):
        return False, "Snapshot is not an object"

    for key, validator in _FIELD_VALIDATORS.items():
        if key not in data:
            return False, f"Missing required property: {key}"
        if not validator(data[key]):
            return False, f"Invalid type for property: {key}"

    for player in data["players"]:
        error = _validate_player(player)
        if error:
            return False, error

    config = data["config"]
    for key in DEFAULT_GAME_CONFIG:
        if not _is_number(config.get(key)):
            return False, f"Config value {key} must be numeric"

    for tx in data["transactions"]:
        error = _validate_transaction(tx)
        if error:
            return False, error

    if not all(isinstance(pid, str) for pid in data["lottery_participants"]):
        return False, "Lottery participants must be player ids"

    return True, None
