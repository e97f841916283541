"""Transaction ledger - append-only log and the folds that derive state from it.

Nothing numeric is stored anywhere else: balances, levels, multipliers, the
bank balance and the active-player set are recomputed from the log on every
query.
"""

import logging
from typing import Callable, Iterable, List, Optional

from src.game_manager.config import MULTIPLIER_PRECISION
from src.game_manager.game_state import (
    GameConfig,
    Player,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

# Effect of each transaction type on the owning player's balance
PLAYER_DEBITS = {
    TransactionType.LEVEL_UP,
    TransactionType.LOTTERY_JOIN,
    TransactionType.AUCTION_WIN,
    TransactionType.PENALTY_PAYMENT,
}
PLAYER_CREDITS = {
    TransactionType.LEVEL_DOWN,
    TransactionType.BANK_DISTRIBUTION,
}

# Effect of each transaction type on the shared bank
BANK_CREDITS = {
    TransactionType.BANK_CONTRIBUTION,
    TransactionType.LEVEL_UP,
    TransactionType.LOTTERY_JOIN,
    TransactionType.AUCTION_WIN,
    TransactionType.PENALTY_PAYMENT,
}
BANK_DEBITS = {
    TransactionType.LEVEL_DOWN,
    TransactionType.BANK_DISTRIBUTION,
}

LEVEL_TYPES = {TransactionType.LEVEL_UP, TransactionType.LEVEL_DOWN}


class Ledger:
    """Append-only transaction log with pure derivation functions.

    The ledger never refuses an entry: affordability and turn rules are
    checked by the caller before anything is appended.
    """

    def __init__(
        self,
        transactions: List[Transaction],
        config: GameConfig,
        on_append: Optional[Callable[[Transaction], None]] = None,
    ):
        self.transactions = transactions
        self.config = config
        self.on_append = on_append

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def append(
        self,
        turn: int,
        type: TransactionType,
        player_id: str,
        details: str = "",
        amount: Optional[float] = None,
        multiplier_change: Optional[float] = None,
        level_change: Optional[int] = None,
    ) -> Transaction:
        """Record a transaction and notify the append hook."""
        transaction = Transaction.create(
            turn=turn,
            type=type,
            player_id=player_id,
            details=details,
            amount=amount,
            multiplier_change=multiplier_change,
            level_change=level_change,
        )
        self.transactions.append(transaction)
        logger.debug("Turn %d %s: %s", turn, transaction.type.value, details)

        if self.on_append is not None:
            self.on_append(transaction)
        return transaction

    def discard_player(self, player_id: str) -> int:
        """Drop every entry of a player removed before the game started.

        Returns:
            Number of transactions removed.
        """
        kept = [tx for tx in self.transactions if tx.player_id != player_id]
        removed = len(self.transactions) - len(kept)
        self.transactions[:] = kept
        return removed

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def balance(self, player_id: str) -> float:
        """Player's money, folded over their transactions."""
        balance = 0
        for tx in self.for_player(player_id):
            if tx.type == TransactionType.PLAYER_JOINED:
                balance = self.config.starting_balance
            elif tx.type in PLAYER_DEBITS:
                balance -= tx.amount or 0
            elif tx.type in PLAYER_CREDITS:
                balance += tx.amount or 0
        return balance

    def multiplier(self, player_id: str) -> float:
        """Base 1.0 plus every multiplier change the player received."""
        multiplier = 1.0
        for tx in self.for_player(player_id):
            if tx.multiplier_change:
                multiplier += tx.multiplier_change
        return round(multiplier, MULTIPLIER_PRECISION)

    def level(self, player_id: str) -> int:
        """Base 0 plus every level change of the player."""
        level = 0
        for tx in self.for_player(player_id):
            if tx.type in LEVEL_TYPES and tx.level_change:
                level += tx.level_change
        return level

    def bank_balance(self) -> float:
        """Shared pool, folded over every transaction."""
        balance = 0
        for tx in self.transactions:
            if tx.type in BANK_CREDITS:
                balance += tx.amount or 0
            elif tx.type in BANK_DEBITS:
                balance -= tx.amount or 0
        return balance

    def exited_player_ids(self) -> set:
        return {
            tx.player_id
            for tx in self.transactions
            if tx.type == TransactionType.PLAYER_EXIT
        }

    def has_exited(self, player_id: str) -> bool:
        return player_id in self.exited_player_ids()

    def active_players(self, players: Iterable[Player]) -> List[Player]:
        """Registered players without an exit, in registration order."""
        exited = self.exited_player_ids()
        return [p for p in players if p.id not in exited]

    def exit_amount(self, player_id: str) -> Optional[float]:
        """Balance recorded when the player left, if they did."""
        for tx in self.for_player(player_id):
            if tx.type == TransactionType.PLAYER_EXIT:
                return tx.amount
        return None

    # ------------------------------------------------------------------
    # Turn-scoped lookups
    # ------------------------------------------------------------------

    def has_changed_level(self, player_id: str, turn: int) -> bool:
        """Whether the player already raised or lowered their level this turn."""
        return any(
            tx.turn == turn and tx.player_id == player_id and tx.type in LEVEL_TYPES
            for tx in self.transactions
        )

    def has_joined_lottery(self, player_id: str, turn: int) -> bool:
        """Whether the player already bought a lottery ticket this turn."""
        return any(
            tx.turn == turn
            and tx.player_id == player_id
            and tx.type == TransactionType.LOTTERY_JOIN
            for tx in self.transactions
        )

    def for_player(self, player_id: str) -> List[Transaction]:
        return [tx for tx in self.transactions if tx.player_id == player_id]

    def for_turn(self, turn: int) -> List[Transaction]:
        return [tx for tx in self.transactions if tx.turn == turn]
