from pathlib import Path

# Base project directory
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Data directories
SAVES_DIR = PROJECT_ROOT / "data" / "saves"
SNAPSHOT_FILENAME = "game_state.json"

# Default game tunables (GameConfig)
DEFAULT_GAME_CONFIG = {
    "initial_money_per_player": 10000,
    "bank_contribution_per_player": 1000,
    "cost_to_raise_level": 500,
    "refund_to_lower_level": 250,
    "lottery_base_cost": 100,
    "lottery_base_reward": 0.1,
    "auction_base_increment": 0.2,
    "penalty_increment": 50,
}

MIN_PLAYERS = 2

# Fixed rules
LEVEL_MULTIPLIER_STEP = 0.2
TURN_BONUS_MULTIPLIER = 0.1
BASE_PENALTY = 100

# Modifier bands: turns 1-3 -> x1, 4-6 -> x2, 7-9 -> x3, then random
MODIFIER_BAND_LENGTH = 3
LAST_FIXED_MODIFIER_TURN = 9
RANDOM_MODIFIER_CHOICES = (1, 2, 3, 4)

# Auction (countdown measured in ticks, one tick per second in a UI)
BID_STEP = 100
AUCTION_DURATION = 10
BOT_AUCTION_DURATION = 1

# Bot personality sampling ranges (inclusive lower, exclusive upper)
BOT_PERSONALITY_RANGES = {
    "risk_tolerance": (0.3, 0.8),
    "competitiveness": (0.4, 0.8),
    "max_bid_multiplier": (0.1, 0.3),
    "exit_threshold": (2.0, 3.0),
}

# Multipliers are rounded so that equal values tie exactly
MULTIPLIER_PRECISION = 6
