"""Calculation rules, calculator sessions and result messaging."""

from .bonus import (
    BonusCalculator,
    BoostResult,
    BreakdownEntry,
    Contribution,
    GroupTaskResult,
    ParticipantBonus,
    diminishing_returns,
    order_contributions,
    round_half_up,
)
from .boost import BoostCalcState, BoostSkillSession, ComplementSlot
from .group_task import GroupCalcState, GroupTaskSession
from .launcher import Launcher
from .messaging import ChatLog, can_apply_bonus, resolve_recipients

__all__ = [
    "BonusCalculator",
    "BoostCalcState",
    "BoostResult",
    "BoostSkillSession",
    "BreakdownEntry",
    "ChatLog",
    "ComplementSlot",
    "Contribution",
    "GroupCalcState",
    "GroupTaskResult",
    "GroupTaskSession",
    "Launcher",
    "ParticipantBonus",
    "can_apply_bonus",
    "diminishing_returns",
    "order_contributions",
    "resolve_recipients",
    "round_half_up",
]
