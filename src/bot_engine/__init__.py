from src.bot_engine.bot_policy import BotPolicy
from src.bot_engine.models import BotContext, PositionEvaluation, TurnPlan

__all__ = ["BotContext", "BotPolicy", "PositionEvaluation", "TurnPlan"]
