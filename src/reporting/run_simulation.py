"""Play a complete all-bot game and export its reports.

Usage:
    python -m src.reporting.run_simulation [num_bots] [seed]

Examples:
    python -m src.reporting.run_simulation 4
    python -m src.reporting.run_simulation 6 1234
"""

import logging
import random
import sys
from pathlib import Path
from typing import Optional

from src.game_manager.config import PROJECT_ROOT
from src.game_manager.game_state import TurnPhase
from src.game_manager.state_persistence import InMemorySnapshotStore
from src.game_manager.turn_controller import TurnController
from src.logging_config import setup_logging
from src.reporting.game_report import GameReport

logger = logging.getLogger(__name__)

SIMULATIONS_DIR = PROJECT_ROOT / "data" / "simulations"
MAX_TURNS = 200


def play_bot_game(
    num_bots: int = 4,
    seed: Optional[int] = None,
    max_turns: int = MAX_TURNS,
) -> TurnController:
    """Register ``num_bots`` bots and play until the game finishes.

    Args:
        num_bots: Number of bot players (at least 2).
        seed: Seed for every random draw (personalities, bots, lottery,
            late-game modifiers).
        max_turns: Safety cap; the game is left unfinished past it.

    Returns:
        The controller holding the final state.
    """
    controller = TurnController(
        store=InMemorySnapshotStore(), rng=random.Random(seed)
    )
    for i in range(num_bots):
        controller.add_player(f"Bot {i + 1}", is_bot=True)
    controller.start_game()

    while not controller.is_finished and controller.state.turn_number <= max_turns:
        phase = controller.state.turn_phase
        if phase == TurnPhase.ACTIONS:
            if controller.run_bot_turns() == 0:
                controller.move_to_next_player()
        elif phase == TurnPhase.AUCTION:
            controller.auction.run()
        else:
            # All-bot games never wait in the start phase
            controller.begin_turn()

    if not controller.is_finished:
        logger.warning("Simulation stopped at the %d turn cap", max_turns)
    return controller


def run_simulation(
    num_bots: int = 4,
    seed: Optional[int] = None,
    output_dir: Optional[Path] = None,
) -> Path:
    """Play a bot game and write its standings and transaction log as CSV.

    Returns:
        Path to the standings CSV.
    """
    if num_bots < 2:
        raise ValueError("A simulation needs at least 2 bots")
    if seed is None:
        seed = random.randrange(1_000_000)
    if output_dir is None:
        output_dir = SIMULATIONS_DIR

    logger.info("Starting simulation: %d bots, seed %d", num_bots, seed)
    controller = play_bot_game(num_bots, seed)
    report = GameReport(controller.state)

    output_dir.mkdir(parents=True, exist_ok=True)
    standings_file = output_dir / f"standings_{seed}.csv"
    transactions_file = output_dir / f"transactions_{seed}.csv"
    report.standings().to_csv(standings_file, index=False)
    report.transactions_frame().to_csv(transactions_file, index=False)

    summary = report.summary()
    logger.info("Simulation complete! Output: %s", standings_file)
    logger.info(
        "  %d turns, %d exits, leader %s with %s",
        summary["turns_played"],
        summary["exits"],
        summary["leader"],
        summary["leader_balance"],
    )

    return standings_file


if __name__ == "__main__":
    setup_logging()

    num_bots = int(sys.argv[1]) if len(sys.argv) > 1 else 4
    seed = int(sys.argv[2]) if len(sys.argv) > 2 else None

    try:
        output = run_simulation(num_bots, seed)
        print(f"Simulation complete: {output}")
    except Exception:
        logger.exception("Simulation failed")
        sys.exit(1)
