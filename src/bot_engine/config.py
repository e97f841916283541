# Money a bot keeps back, as a multiple of the current penalty
PENALTY_RESERVE_FACTOR = 1.5

# Auction raise size the bot assumes when pricing its next bid
BID_STEP = 100

# Risk evaluation: turn risk ramps from 0 at TURN_RISK_START over TURN_RISK_SPAN turns
TURN_RISK_START = 6
TURN_RISK_SPAN = 10

# Exit conditions: weight applied when the condition holds
EXIT_WEIGHTS = {
    "leading_late": 0.8,
    "high_risk_profitable": 0.6,
    "below_threshold_risky": 0.7,
    "cannot_cover_penalties": 0.9,
    "weak_late": 0.5,
}

# Exit condition thresholds
LEADING_PROFITABILITY = 1.3
LEADING_LATE_TURN = 8
HIGH_RISK_LEVEL = 0.7
HIGH_RISK_PROFITABILITY = 1.1
MODERATE_RISK_LEVEL = 0.5
PENALTY_COVERAGE = 2
WEAK_LATE_TURN = 10
WEAK_PROFITABILITY = 0.8

# Turn actions
LEVEL_UP_PROBABILITY = 0.8  # scaled by competitiveness
LEVEL_DOWN_PROBABILITY = 0.8
BELOW_AVERAGE_MARGIN = 0.1
LOTTERY_PROBABILITY_BEHIND = 0.7  # scaled by risk tolerance
LOTTERY_PROBABILITY_AHEAD = 0.3

# Auction bidding (scaled by competitiveness)
BID_PROBABILITY_CHEAP = 0.8
BID_PROBABILITY_EXPENSIVE = 0.2
