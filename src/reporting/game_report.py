"""Tabular reports over a game's transaction log.

Builds pandas DataFrames for the activity log, the final standings and the
money flows of each turn. Reports read a GameState and fold its transactions
through a private Ledger, so they work on live games and loaded snapshots
alike.
"""

import logging

import pandas as pd

from src.game_manager.game_state import GameState, TransactionType
from src.game_manager.ledger import BANK_CREDITS, BANK_DEBITS, Ledger

logger = logging.getLogger(__name__)

TRANSACTION_COLUMNS = [
    "turn",
    "type",
    "player_id",
    "player_name",
    "amount",
    "multiplier_change",
    "level_change",
    "timestamp",
    "details",
]

STANDINGS_COLUMNS = [
    "rank",
    "player_id",
    "name",
    "is_bot",
    "status",
    "balance",
    "level",
    "multiplier",
    "exit_amount",
]


class GameReport:
    """Builds DataFrames describing a game."""

    def __init__(self, state: GameState):
        self.state = state
        self.ledger = Ledger(state.transactions, state.config)

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------
    def transactions_frame(self) -> pd.DataFrame:
        """One row per transaction, in log order."""
        names = {p.id: p.name for p in self.state.players}
        rows = [
            {
                "turn": tx.turn,
                "type": tx.type.value,
                "player_id": tx.player_id,
                "player_name": names.get(tx.player_id),
                "amount": tx.amount,
                "multiplier_change": tx.multiplier_change,
                "level_change": tx.level_change,
                "timestamp": tx.timestamp,
                "details": tx.details,
            }
            for tx in self.state.transactions
        ]
        return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)

    def recent_activity(self, limit: int = 20) -> pd.DataFrame:
        """Most recent transactions first."""
        frame = self.transactions_frame()
        return frame.iloc[::-1].head(limit).reset_index(drop=True)

    # ------------------------------------------------------------------
    # Standings
    # ------------------------------------------------------------------
    def standings(self) -> pd.DataFrame:
        """Every registered player ranked by balance (highest first).

        Ties keep registration order.
        """
        exited = self.ledger.exited_player_ids()
        rows = [
            {
                "player_id": p.id,
                "name": p.name,
                "is_bot": p.is_bot,
                "status": "Exited" if p.id in exited else "Active",
                "balance": self.ledger.balance(p.id),
                "level": self.ledger.level(p.id),
                "multiplier": self.ledger.multiplier(p.id),
                "exit_amount": self.ledger.exit_amount(p.id),
            }
            for p in self.state.players
        ]
        frame = pd.DataFrame(rows, columns=STANDINGS_COLUMNS[1:])
        frame = frame.sort_values("balance", ascending=False, kind="stable")
        frame = frame.reset_index(drop=True)
        frame.insert(0, "rank", range(1, len(frame) + 1))
        return frame

    # ------------------------------------------------------------------
    # Money flows
    # ------------------------------------------------------------------
    def turn_flows(self) -> pd.DataFrame:
        """Total amount moved per turn and transaction type.

        Returns:
            DataFrame indexed by turn with one column per transaction type
            that carried an amount; missing combinations are 0.
        """
        frame = self.transactions_frame()
        frame = frame.dropna(subset=["amount"])
        if frame.empty:
            return pd.DataFrame()

        flows = frame.pivot_table(
            index="turn",
            columns="type",
            values="amount",
            aggfunc="sum",
            fill_value=0,
        )
        flows.columns.name = None
        return flows

    def bank_history(self) -> pd.Series:
        """Bank balance at the end of each turn."""
        frame = self.transactions_frame()
        if frame.empty:
            return pd.Series(dtype=float, name="bank_balance")

        credits = {t.value for t in BANK_CREDITS}
        debits = {t.value for t in BANK_DEBITS}
        sign = frame["type"].map(
            lambda t: 1 if t in credits else (-1 if t in debits else 0)
        )
        signed = frame["amount"].fillna(0) * sign
        history = signed.groupby(frame["turn"]).sum().cumsum()
        history.name = "bank_balance"
        return history

    def summary(self) -> dict:
        """Headline numbers for a finished (or running) game."""
        standings = self.standings()
        winner = standings.iloc[0] if not standings.empty else None
        exits = sum(
            1 for tx in self.state.transactions
            if tx.type == TransactionType.PLAYER_EXIT
        )
        return {
            "turns_played": self.state.turn_number - 1,
            "phase": self.state.turn_phase.value,
            "players": len(self.state.players),
            "exits": exits,
            "bank_balance": self.ledger.bank_balance(),
            "leader": winner["name"] if winner is not None else None,
            "leader_balance": float(winner["balance"]) if winner is not None else None,
        }
