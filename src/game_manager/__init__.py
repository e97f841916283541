from src.game_manager.auction_engine import AuctionEngine, AuctionResult
from src.game_manager.game_rules import GameRules, GameStartError, ValidationError
from src.game_manager.game_state import (
    BotPersonality,
    GameConfig,
    GameState,
    Player,
    Transaction,
    TransactionType,
    TurnActions,
    TurnPhase,
)
from src.game_manager.ledger import Ledger
from src.game_manager.player_registry import PlayerRegistry
from src.game_manager.state_persistence import (
    CorruptSnapshotError,
    InMemorySnapshotStore,
    JsonSnapshotStore,
    SnapshotStore,
)
from src.game_manager.turn_controller import TurnController

__all__ = [
    "AuctionEngine",
    "AuctionResult",
    "BotPersonality",
    "CorruptSnapshotError",
    "GameConfig",
    "GameRules",
    "GameStartError",
    "GameState",
    "InMemorySnapshotStore",
    "JsonSnapshotStore",
    "Ledger",
    "Player",
    "PlayerRegistry",
    "SnapshotStore",
    "Transaction",
    "TransactionType",
    "TurnActions",
    "TurnController",
    "TurnPhase",
    "ValidationError",
]
