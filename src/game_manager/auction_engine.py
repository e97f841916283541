"""Auction engine - open ascending bidding closed by a countdown."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from src.game_manager.config import AUCTION_DURATION, BID_STEP, BOT_AUCTION_DURATION
from src.game_manager.game_state import Player, TurnPhase

logger = logging.getLogger(__name__)


@dataclass
class AuctionResult:
    """Outcome of a finished auction."""

    winner_id: Optional[str]
    amount: float
    recorded: bool  # whether an auction_win transaction was appended


class AuctionEngine:
    """Runs one auction round for a turn.

    Every participant may raise the high bid by exactly ``BID_STEP``. The
    countdown restarts after each bid unless all participants are bots, in
    which case the short bot countdown runs out untouched. The engine does
    not keep time itself: the caller drives it with :meth:`tick`.
    """

    def __init__(self, controller):
        self.controller = controller
        self.participants: List[Player] = list(controller.active_players)
        self.all_bots = all(p.is_bot for p in self.participants)
        self.duration = BOT_AUCTION_DURATION if self.all_bots else AUCTION_DURATION

        self.time_left = self.duration
        self.current_bid = 0
        self.current_winner: Optional[str] = None
        self.is_active = True
        self.result: Optional[AuctionResult] = None

        logger.info(
            "Auction opened for turn %d: %d participants, %d tick countdown",
            controller.state.turn_number,
            len(self.participants),
            self.duration,
        )

    @property
    def next_bid(self) -> float:
        return self.current_bid + BID_STEP

    def is_participant(self, player_id: str) -> bool:
        return any(p.id == player_id for p in self.participants)

    def place_bid(self, player_id: str) -> bool:
        """Raise the high bid by one step on behalf of a player.

        Returns:
            True if the bid was accepted.
        """
        if not self.is_active:
            logger.warning("Bid from %s refused: auction is closed", player_id)
            return False
        if not self.is_participant(player_id):
            logger.warning("Bid from %s refused: not a participant", player_id)
            return False
        if player_id == self.current_winner:
            logger.warning("Bid from %s refused: already the high bidder", player_id)
            return False

        new_bid = self.next_bid
        if self.controller.get_player_balance(player_id) < new_bid:
            logger.warning(
                "Bid from %s refused: insufficient funds for %s", player_id, new_bid
            )
            return False

        self.current_bid = new_bid
        self.current_winner = player_id
        if not self.all_bots:
            self.time_left = self.duration

        logger.info("Bid %s by %s", new_bid, player_id)
        return True

    def tick(self) -> bool:
        """Advance the countdown by one tick, letting bots bid first.

        Returns:
            True while the auction is still open.
        """
        if not self.is_active:
            return False

        for player in self.participants:
            if not player.is_bot:
                continue
            if self.controller.handle_bot_auction(
                player.id, self.current_bid, self.current_winner
            ):
                self.place_bid(player.id)

        self.time_left -= 1
        if self.time_left <= 0:
            self.close()
        return self.is_active

    def close(self) -> Optional[str]:
        """Stop accepting bids. Returns the high bidder, if any."""
        if self.is_active:
            self.is_active = False
            self.time_left = 0
            if self.current_winner:
                logger.info(
                    "Auction closed: %s leads with %s",
                    self.current_winner,
                    self.current_bid,
                )
            else:
                logger.info("Auction closed with no bids")
        return self.current_winner

    def finish(self) -> Optional[AuctionResult]:
        """Settle the auction and resolve the turn.

        Returns None if the game is no longer in the auction phase.
        """
        if self.result is not None:
            return self.result
        if self.controller.state.turn_phase != TurnPhase.AUCTION:
            logger.warning("Auction finish ignored outside the auction phase")
            return None

        self.close()
        recorded = False
        if self.current_winner and self.current_bid > 0:
            recorded = self.controller.resolve_auction(
                self.current_winner, self.current_bid
            )

        self.result = AuctionResult(
            winner_id=self.current_winner,
            amount=self.current_bid,
            recorded=recorded,
        )
        self.controller.resolve_turn()
        return self.result

    def run(self) -> Optional[AuctionResult]:
        """Tick until the countdown expires, then settle."""
        while self.tick():
            pass
        return self.finish()
