"""Turn controller - owns a game session and sequences its phases."""

import logging
import math
import random
from dataclasses import replace
from typing import Callable, List, Optional

from src.bot_engine.bot_policy import BotPolicy
from src.bot_engine.models import BotContext
from src.game_manager.auction_engine import AuctionEngine
from src.game_manager.config import LEVEL_MULTIPLIER_STEP, TURN_BONUS_MULTIPLIER
from src.game_manager.game_rules import (
    GameRules,
    GameStartError,
    modifier,
    penalty_amount,
)
from src.game_manager.game_state import (
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
    SnapshotStore,
    snapshot_to_state,
    state_to_snapshot,
    validate_snapshot,
)

logger = logging.getLogger(__name__)

StateListener = Callable[[str, GameState], None]


class TurnController:
    """Main controller for a game session.

    Coordinates PlayerRegistry (who plays), Ledger (what happened),
    GameRules (what is allowed), BotPolicy (what bots do) and AuctionEngine
    (the end-of-rotation auction). All mutation goes through this class;
    every ledger append is persisted through the snapshot store and
    announced to subscribers.

    Operations that are not valid in the current phase are refused with a
    log message and a falsy return value. Only :meth:`start_game` raises.
    """

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        rng: Optional[random.Random] = None,
        bot_policy: Optional[BotPolicy] = None,
        config: Optional[GameConfig] = None,
    ):
        self.store = store or InMemorySnapshotStore()
        self.rng = rng or random.Random()
        self.bot_policy = bot_policy or BotPolicy(self.rng)
        self.auction: Optional[AuctionEngine] = None
        self._listeners: List[StateListener] = []

        self._bind(GameState(config=config or GameConfig()))
        self.load_game()

    # ------------------------------------------------------------------
    # Subscriptions and persistence
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener(event, state)``. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load_game(self) -> bool:
        """Replace the live state with the stored snapshot, if it is valid.

        An unreadable or invalid snapshot is discarded and the game is reset.
        """
        try:
            data = self.store.load()
        except CorruptSnapshotError as e:
            logger.warning("Unreadable saved state (%s), resetting game", e)
            self.reset_game()
            return False
        if data is None:
            return False

        is_valid, error = validate_snapshot(data)
        if not is_valid:
            logger.warning("Invalid saved state detected (%s), resetting game", error)
            self.reset_game()
            return False

        try:
            state = snapshot_to_state(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Error loading game state: %s, resetting game", e)
            self.reset_game()
            return False

        self._bind(state)
        if state.turn_phase == TurnPhase.AUCTION:
            self.auction = AuctionEngine(self)

        logger.info(
            "Loaded game: %d players, %d transactions, turn %d (%s)",
            len(state.players),
            len(state.transactions),
            state.turn_number,
            state.turn_phase.value,
        )
        self._notify("loaded")
        return True

    def save_game(self):
        self.store.save(state_to_snapshot(self.state))

    def reset_game(self):
        """Clear players, transactions, phase and the stored snapshot."""
        config = self.state.config
        self.store.clear()
        self.auction = None
        self._bind(GameState(config=config))
        logger.info("Game reset")
        self._notify("reset")

    # ------------------------------------------------------------------
    # Setup (pre-game only)
    # ------------------------------------------------------------------

    def configure(self, **changes) -> bool:
        """Change GameConfig tunables before any player has registered."""
        if self.state.game_started or self.state.players:
            logger.warning(
                "Config can only change before players register; ignoring %s",
                sorted(changes),
            )
            return False

        self.state.config = replace(self.state.config, **changes)
        self.ledger.config = self.state.config
        self.save_game()
        self._notify("config_changed")
        return True

    def add_player(self, name: str, is_bot: bool = False) -> Optional[Player]:
        """Register a player and record their join and bank contribution."""
        if self.state.game_started:
            logger.warning("Cannot add player %r after the game started", name)
            return None

        player = self.registry.add(name, is_bot)
        contribution = self.state.config.bank_contribution_per_player
        self._record(
            TransactionType.PLAYER_JOINED,
            player.id,
            details=f"{player.name} joined the game",
        )
        self._record(
            TransactionType.BANK_CONTRIBUTION,
            player.id,
            amount=contribution,
            details=f"{player.name} contributed {contribution:,} to the bank",
        )
        self._notify("player_added")
        return player

    def remove_player(self, player_id: str) -> bool:
        """Unregister a player and drop their registration entries."""
        if self.state.game_started:
            logger.warning("Cannot remove player %s after the game started", player_id)
            return False

        if self.registry.remove(player_id) is None:
            logger.warning("Cannot remove unknown player %s", player_id)
            return False

        self.ledger.discard_player(player_id)
        self.save_game()
        self._notify("player_removed")
        return True

    def start_game(self):
        """Start play with the registered players.

        Raises:
            GameStartError: With fewer than two players, or if already started.
        """
        is_valid, error = self.rules.validate_start()
        if not is_valid:
            logger.warning("Game start refused: %s", error)
            raise GameStartError(error)

        self.state.turn_number = 1
        self.state.current_player_index = 0
        self.state.lottery_participants.clear()
        self.state.game_started = True
        self._record(
            TransactionType.BANK_CONTRIBUTION,
            self.state.players[0].id,
            details="Game started",
        )

        logger.info(
            "Game started with %d players (%d bots)",
            len(self.state.players),
            sum(1 for p in self.state.players if p.is_bot),
        )
        self._notify("game_started")
        self.set_turn_phase(TurnPhase.START)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.state.get_player(player_id)

    def get_player_balance(self, player_id: str) -> float:
        return self.ledger.balance(player_id)

    def get_player_level(self, player_id: str) -> int:
        return self.ledger.level(player_id)

    def get_player_multiplier(self, player_id: str) -> float:
        return self.ledger.multiplier(player_id)

    @property
    def bank_balance(self) -> float:
        return self.ledger.bank_balance()

    @property
    def active_players(self) -> List[Player]:
        return self.ledger.active_players(self.state.players)

    @property
    def current_player(self) -> Optional[Player]:
        """The player on turn, only defined during the actions phase."""
        if self.state.turn_phase != TurnPhase.ACTIONS:
            return None
        active = self.active_players
        if 0 <= self.state.current_player_index < len(active):
            return active[self.state.current_player_index]
        return None

    @property
    def penalty_amount(self) -> float:
        return penalty_amount(self.state.turn_number, self.state.config)

    @property
    def modifier(self) -> int:
        """Current modifier. After turn 9 every read draws a new value."""
        return modifier(self.state.turn_number, self.rng)

    @property
    def average_multiplier(self) -> float:
        active = self.active_players
        if not active:
            return 1.0
        return sum(self.ledger.multiplier(p.id) for p in active) / len(active)

    @property
    def is_finished(self) -> bool:
        return self.state.turn_phase == TurnPhase.FINISHED

    # ------------------------------------------------------------------
    # Phase machine
    # ------------------------------------------------------------------

    def set_turn_phase(self, phase: TurnPhase):
        """Move to ``phase``.

        Entering ``start`` with one or no active players finishes the game;
        entering it with a bot first in order moves straight on to
        ``actions``. Ignored before the game starts.
        """
        phase = TurnPhase(phase)
        if not self.state.game_started:
            logger.warning("Game not started; ignoring phase change to %s", phase.value)
            return
        if self.is_finished:
            logger.warning("Game is finished; ignoring phase change to %s", phase.value)
            return

        if phase == TurnPhase.START:
            active = self.active_players
            if len(active) <= 1:
                self._finish_game()
                return
            self._set_phase(TurnPhase.START)
            if active[0].is_bot:
                self._enter_actions()
        elif phase == TurnPhase.ACTIONS:
            self._enter_actions()
        elif phase == TurnPhase.AUCTION:
            self.start_auction_phase()
        else:
            self._finish_game()

    def begin_turn(self) -> bool:
        """External signal that a human is ready to start the turn."""
        if not self.state.game_started or self.state.turn_phase != TurnPhase.START:
            logger.warning(
                "begin_turn ignored in phase %s", self.state.turn_phase.value
            )
            return False
        if len(self.active_players) <= 1:
            self.set_turn_phase(TurnPhase.START)
            return False
        self._enter_actions()
        return True

    def move_to_next_player(self):
        """Advance the cursor past the current player."""
        if self.state.turn_phase != TurnPhase.ACTIONS:
            logger.warning(
                "move_to_next_player ignored in phase %s", self.state.turn_phase.value
            )
            return

        current = self.current_player
        if current is None:
            if len(self.active_players) <= 1:
                self.set_turn_phase(TurnPhase.START)
            else:
                self.start_auction_phase()
            return
        self._advance_after(current.id)

    def start_auction_phase(self) -> Optional[AuctionEngine]:
        """Close the rotation and open the turn's auction."""
        if self.state.turn_phase != TurnPhase.ACTIONS:
            logger.warning(
                "Auction can only start after the actions phase (current: %s)",
                self.state.turn_phase.value,
            )
            return None

        self.state.current_player_index = 0
        self.state.turn_phase = TurnPhase.AUCTION
        self._record(
            TransactionType.BANK_CONTRIBUTION,
            self.state.players[0].id,
            details=f"Turn {self.state.turn_number} auction phase started",
        )
        self.auction = AuctionEngine(self)
        logger.info("Turn %d: auction phase", self.state.turn_number)
        self._notify("phase_changed")
        return self.auction

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    def adjust_level(self, player_id: str, direction: str) -> bool:
        """Raise or lower a player's level.

        Unaffordable changes and a second change in the same turn are voided.
        """
        is_valid, error = self.rules.validate_player_action(player_id)
        if not is_valid:
            logger.warning("Level change refused: %s", error)
            return False
        return self._apply_level_change(player_id, direction)

    def join_lottery(self, player_id: str) -> bool:
        """Buy this turn's lottery ticket. Unaffordable or repeat tickets are voided."""
        is_valid, error = self.rules.validate_player_action(player_id)
        if not is_valid:
            logger.warning("Lottery entry refused: %s", error)
            return False
        return self._apply_lottery_join(player_id)

    def exit_player(self, player_id: str) -> bool:
        """Leave the game, locking in the current balance.

        When the player on turn exits, the turn passes to the next player.
        """
        is_valid, error = self.rules.validate_player_action(player_id)
        if not is_valid:
            logger.warning("Exit refused: %s", error)
            return False

        self._voluntary_exit(player_id)
        return True

    def finish_turn(self, player_id: str, actions: Optional[TurnActions] = None) -> bool:
        """Commit the current player's selected actions and move on.

        Commit order is exit, level change, lottery. An exiting player's
        other selections still apply to this turn unless the exit ended
        the game. A second level change or lottery ticket in the same turn
        is voided.
        """
        if self.state.turn_phase != TurnPhase.ACTIONS:
            logger.warning("finish_turn ignored in phase %s", self.state.turn_phase.value)
            return False

        current = self.current_player
        if current is None or current.id != player_id:
            logger.warning(
                "Not %s's turn (current: %s)",
                player_id,
                current.id if current else None,
            )
            return False

        actions = actions or TurnActions()
        if actions.exit:
            self._voluntary_exit(player_id, keep_cursor=True)

        if self.state.turn_phase == TurnPhase.ACTIONS:
            if actions.level_change:
                self._apply_level_change(player_id, actions.level_change)
            if actions.join_lottery:
                self._apply_lottery_join(player_id)

        if self.state.turn_phase == TurnPhase.ACTIONS:
            self._advance_after(player_id)
        return True

    # ------------------------------------------------------------------
    # Bots
    # ------------------------------------------------------------------

    def bot_context(self, player_id: str) -> BotContext:
        """Snapshot of derived state as seen by a bot."""
        active = self.active_players
        turn = self.state.turn_number
        return BotContext(
            player_id=player_id,
            balance=self.ledger.balance(player_id),
            multiplier=self.ledger.multiplier(player_id),
            level=self.ledger.level(player_id),
            active_balances=[self.ledger.balance(p.id) for p in active],
            active_multipliers=[self.ledger.multiplier(p.id) for p in active],
            penalty_amount=self.penalty_amount,
            turn_number=turn,
            level_cost=self.state.config.cost_to_raise_level,
            lottery_fee=self.state.config.lottery_base_cost * self.modifier,
            has_changed_level=self.ledger.has_changed_level(player_id, turn),
            has_joined_lottery=self.ledger.has_joined_lottery(player_id, turn),
        )

    def handle_bot_turn(self, player_id: str) -> bool:
        """Let BotPolicy pick and apply a bot's actions for this turn."""
        player = self.get_player(player_id)
        if player is None or not player.is_bot or player.bot_personality is None:
            return False
        is_valid, error = self.rules.validate_player_action(player_id)
        if not is_valid:
            logger.warning("Bot turn refused: %s", error)
            return False

        plan = self.bot_policy.plan_turn(
            self.bot_context(player_id), player.bot_personality
        )
        logger.debug("Bot %s plan: %s", player.name, plan)

        if plan.exit:
            self.exit_player(player_id)
            return True
        if plan.level_change:
            self.adjust_level(player_id, plan.level_change)
        if plan.join_lottery:
            self.join_lottery(player_id)
        return True

    def play_bot_turn(self) -> bool:
        """Play the current player if it is a bot, then advance the cursor."""
        current = self.current_player
        if current is None or not current.is_bot:
            return False

        self.handle_bot_turn(current.id)
        # an exit has already passed the turn on
        if (
            self.state.turn_phase == TurnPhase.ACTIONS
            and not self.ledger.has_exited(current.id)
        ):
            self._advance_after(current.id)
        return True

    def run_bot_turns(self) -> int:
        """Play consecutive bots until a human is on turn or the rotation ends.

        Returns:
            Number of bot turns played.
        """
        played = 0
        while self.play_bot_turn():
            played += 1
        return played

    def handle_bot_auction(
        self, player_id: str, current_bid: float, current_winner: Optional[str]
    ) -> bool:
        """Ask BotPolicy whether a bot raises the current bid."""
        player = self.get_player(player_id)
        if player is None or not player.is_bot or player.bot_personality is None:
            return False
        if self.ledger.has_exited(player_id):
            return False
        return self.bot_policy.should_bid(
            self.bot_context(player_id),
            player.bot_personality,
            current_bid,
            current_winner,
        )

    # ------------------------------------------------------------------
    # Auction and turn resolution
    # ------------------------------------------------------------------

    def resolve_auction(self, winner_id: str, amount: float) -> bool:
        """Charge the auction winner and grant the multiplier reward."""
        if self.state.turn_phase != TurnPhase.AUCTION:
            logger.warning("resolve_auction ignored in phase %s", self.state.turn_phase.value)
            return False

        winner = self.get_player(winner_id)
        if winner is None:
            logger.warning("Auction winner %s not found", winner_id)
            return False
        if not self.rules.can_afford(winner_id, amount):
            logger.info(
                "Auction void: %s can no longer afford %s", winner.name, amount
            )
            return False

        self._record(
            TransactionType.AUCTION_WIN,
            winner_id,
            amount=amount,
            multiplier_change=self.state.config.auction_base_increment * self.modifier,
            details=f"{winner.name} won the auction for ${amount:,}",
        )
        return True

    def resolve_turn(self) -> bool:
        """Settle the turn: lottery, penalty, bonus, bank distribution.

        Returns:
            False if called outside the auction phase.
        """
        if self.state.turn_phase != TurnPhase.AUCTION:
            logger.warning("resolve_turn ignored in phase %s", self.state.turn_phase.value)
            return False

        turn = self.state.turn_number
        config = self.state.config

        # 1. Lottery
        if self.state.lottery_participants:
            winner_id = self.rng.choice(self.state.lottery_participants)
            winner = self.get_player(winner_id)
            if winner is not None:
                self._record(
                    TransactionType.LOTTERY_WIN,
                    winner_id,
                    multiplier_change=config.lottery_base_reward * self.modifier,
                    details=f"{winner.name} won the lottery!",
                )

        # 2. Penalty for the lowest multiplier(s)
        penalty = self.penalty_amount
        active = self.active_players
        multipliers = {p.id: self.ledger.multiplier(p.id) for p in active}
        lowest = min(multipliers.values())
        for player in active:
            if self.is_finished:
                break
            if multipliers[player.id] != lowest:
                continue
            balance = self.ledger.balance(player.id)
            if balance < penalty:
                self._exit(
                    player.id,
                    f"{player.name} exited due to insufficient funds "
                    f"(needed ${penalty:,}, had ${balance:,})",
                )
            else:
                self._record(
                    TransactionType.PENALTY_PAYMENT,
                    player.id,
                    amount=penalty,
                    details=f"{player.name} paid ${penalty:,} penalty",
                )

        if self.is_finished:
            self._close_turn()
            return True

        # 3. Re-evaluate after eliminations
        remaining = self.active_players
        if not remaining:
            self._close_turn()
            self._finish_game()
            return True

        # 4. Bonus for the highest multiplier(s)
        highest = max(self.ledger.multiplier(p.id) for p in remaining)
        for player in remaining:
            if self.ledger.multiplier(player.id) == highest:
                self._record(
                    TransactionType.MULTIPLIER_BONUS,
                    player.id,
                    multiplier_change=TURN_BONUS_MULTIPLIER,
                    details=f"{player.name} received +{TURN_BONUS_MULTIPLIER} multiplier bonus",
                )

        # 5. Bank distribution, weighted by multiplier and rounded down
        total_distribution = self.ledger.bank_balance() / len(remaining)
        shares = {p.id: self.ledger.multiplier(p.id) for p in remaining}
        total_multipliers = sum(shares.values())
        for player in remaining:
            multiplier = shares[player.id]
            share = math.floor((multiplier / total_multipliers) * total_distribution)
            if share > 0:
                self._record(
                    TransactionType.BANK_DISTRIBUTION,
                    player.id,
                    amount=share,
                    details=f"{player.name} received ${share:,} (x{multiplier:.1f})",
                )

        # 6. Next turn
        self._close_turn()
        logger.info(
            "Turn %d resolved: %d players remain, bank %s",
            turn,
            len(remaining),
            self.ledger.bank_balance(),
        )
        self._notify("turn_resolved")
        self.set_turn_phase(TurnPhase.START)
        return True

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _bind(self, state: GameState):
        self.state = state
        self.ledger = Ledger(state.transactions, state.config, on_append=self._on_append)
        self.registry = PlayerRegistry(state.players, self.rng)
        self.rules = GameRules(state, self.ledger)

    def _record(self, tx_type: TransactionType, player_id: str, **fields) -> Transaction:
        return self.ledger.append(self.state.turn_number, tx_type, player_id, **fields)

    def _on_append(self, transaction: Transaction):
        self.save_game()
        self._notify("transaction")

    def _notify(self, event: str):
        for listener in list(self._listeners):
            try:
                listener(event, self.state)
            except Exception:
                logger.exception("State listener failed on %r", event)

    def _set_phase(self, phase: TurnPhase):
        self.state.turn_phase = phase
        self.save_game()
        logger.info("Turn %d: %s phase", self.state.turn_number, phase.value)
        self._notify("phase_changed")

    def _enter_actions(self):
        self.state.current_player_index = 0
        self._set_phase(TurnPhase.ACTIONS)

    def _advance_after(self, player_id: str):
        """Put the next active player (registration order) on turn.

        Past the last player the auction opens. With one or no active players
        left the turn short-circuits to ``start``, which ends the game.
        """
        active = self.active_players
        if len(active) <= 1:
            self.set_turn_phase(TurnPhase.START)
            return

        position = self.state.registration_index(player_id)
        for index, player in enumerate(active):
            if self.state.registration_index(player.id) > position:
                self.state.current_player_index = index
                self.save_game()
                self._notify("turn_advanced")
                return

        self.start_auction_phase()

    def _apply_level_change(self, player_id: str, direction: str) -> bool:
        is_valid, error = self.rules.validate_once_per_turn(player_id, "level")
        if is_valid:
            is_valid, error = self.rules.validate_level_change(player_id, direction)
        if not is_valid:
            logger.info("Level change voided for %s: %s", player_id, error)
            return False

        player = self.get_player(player_id)
        level = self.ledger.level(player_id)
        config = self.state.config
        if direction == "up":
            self._record(
                TransactionType.LEVEL_UP,
                player_id,
                amount=config.cost_to_raise_level,
                level_change=1,
                multiplier_change=LEVEL_MULTIPLIER_STEP,
                details=f"{player.name} raised their level to {level + 1}",
            )
        else:
            self._record(
                TransactionType.LEVEL_DOWN,
                player_id,
                amount=config.refund_to_lower_level,
                level_change=-1,
                multiplier_change=-LEVEL_MULTIPLIER_STEP,
                details=f"{player.name} lowered their level to {level - 1}",
            )
        return True

    def _apply_lottery_join(self, player_id: str) -> bool:
        is_valid, error = self.rules.validate_once_per_turn(player_id, "lottery")
        if not is_valid:
            logger.info("Lottery entry voided for %s: %s", player_id, error)
            return False

        cost = self.state.config.lottery_base_cost * self.modifier
        is_valid, error = self.rules.validate_lottery_join(player_id, cost)
        if not is_valid:
            logger.info("Lottery entry voided for %s: %s", player_id, error)
            return False

        player = self.get_player(player_id)
        self.state.lottery_participants.append(player_id)
        self._record(
            TransactionType.LOTTERY_JOIN,
            player_id,
            amount=cost,
            details=f"{player.name} joined the lottery",
        )
        return True

    def _voluntary_exit(self, player_id: str, keep_cursor: bool = False):
        player = self.get_player(player_id)
        balance = self.ledger.balance(player_id)
        self._exit(
            player_id,
            f"{player.name} exited with ${balance:,}",
            keep_cursor=keep_cursor,
        )

    def _exit(self, player_id: str, details: str, keep_cursor: bool = False):
        """Record an exit; the last player standing ends the game.

        During the actions phase the cursor is kept on the player who is on
        turn. If that is the exiting player, the turn passes to the next one
        in order, or to the auction after the last. ``keep_cursor`` leaves
        the cursor for the caller to move.
        """
        active_ids = [p.id for p in self.active_players]
        position = active_ids.index(player_id) if player_id in active_ids else None

        balance = self.ledger.balance(player_id)
        self._record(
            TransactionType.PLAYER_EXIT,
            player_id,
            amount=balance,
            details=details,
        )
        logger.info(details)

        remaining = len(self.active_players)
        if remaining <= 1:
            self._finish_game()
            return
        if keep_cursor or position is None or self.state.turn_phase != TurnPhase.ACTIONS:
            return

        index = self.state.current_player_index
        if position < index:
            self.state.current_player_index = index - 1
            self.save_game()
        elif position == index:
            # the list shrank, so the index already names the next player
            if index >= remaining:
                self.start_auction_phase()
            else:
                self.save_game()
                self._notify("turn_advanced")

    def _finish_game(self):
        """Pay the bank to the last player standing and end the game."""
        active = self.active_players
        if len(active) == 1:
            last_player = active[0]
            bank = self.ledger.bank_balance()
            if bank > 0:
                self._record(
                    TransactionType.BANK_DISTRIBUTION,
                    last_player.id,
                    amount=bank,
                    details=f"{last_player.name} wins and claims the bank's ${bank:,}!",
                )

        self.auction = None
        self._set_phase(TurnPhase.FINISHED)
        logger.info("Game finished on turn %d", self.state.turn_number)

    def _close_turn(self):
        self.state.lottery_participants.clear()
        self.state.turn_number += 1
        self.auction = None
        self.save_game()
