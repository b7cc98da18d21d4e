"""Bonus calculation rules for boosted and group skill checks.

Boost checks add complementary ranks to a primary skill bonus with
diminishing returns: the largest contribution counts in full, the next at
half, the next at a quarter, and so on, each rounded down.

Group tasks average every participant's bonus for one skill and add the
leader's Leadership ranks.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from typing import Literal

from compskills.config import Settings, get_settings
from compskills.game.character.participants import Participant

NO_LEADER_NAME = "None"


@dataclass(frozen=True)
class Contribution:
    """Ranks offered toward a check by one skill."""

    source_label: str
    ranks: int


@dataclass(frozen=True)
class BreakdownEntry:
    """A contribution with the bonus it ended up granting."""

    source_label: str
    ranks: int
    bonus: int


@dataclass
class BoostResult:
    """Result of a boosted skill check."""

    primary_bonus: int = 0
    complement_bonus: int = 0
    total: int = 0
    breakdown: list[BreakdownEntry] = field(default_factory=list)


@dataclass(frozen=True)
class ParticipantBonus:
    """One participant's bonus for the task skill."""

    name: str
    bonus: int


@dataclass
class GroupTaskResult:
    """Result of a group task check."""

    task_skill_name: str | None = None
    per_participant: list[ParticipantBonus] = field(default_factory=list)
    average_bonus: int = 0
    leader_name: str = NO_LEADER_NAME
    leadership_bonus: int = 0
    total: int = 0


def contribution_label(participant_name: str, skill_name: str) -> str:
    """Format the label of a complementary contribution."""
    return f"{participant_name}'s {skill_name}"


def round_half_up(value: Fraction | float | int) -> int:
    """Round to the nearest integer, halves away from zero."""
    if isinstance(value, Fraction):
        exact = Decimal(value.numerator) / Decimal(value.denominator)
    else:
        exact = Decimal(str(value))
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def order_contributions(
    contributions: Iterable[Contribution],
    tie_break: Literal["label", "insertion"] = "label",
) -> list[Contribution]:
    """
    Drop empty contributions and sort the rest largest first.

    Args:
        contributions: Candidate contributions in insertion order
        tie_break: "label" orders equal ranks by source label, "insertion"
            keeps their original order

    Returns:
        Contributions with positive ranks, ranks descending
    """
    positive = [c for c in contributions if c.ranks > 0]
    if tie_break == "label":
        return sorted(positive, key=lambda c: (-c.ranks, c.source_label))
    return sorted(positive, key=lambda c: -c.ranks)


def diminishing_returns(ordered: Sequence[Contribution]) -> list[BreakdownEntry]:
    """
    Apply diminishing returns to ordered contributions.

    The contribution at position ``i`` grants ``ranks // 2**i``.

    Args:
        ordered: Contributions, largest first

    Returns:
        Breakdown entries in the same order
    """
    return [
        BreakdownEntry(source_label=c.source_label, ranks=c.ranks, bonus=c.ranks // (2**index))
        for index, c in enumerate(ordered)
    ]


class BonusCalculator:
    """Computes boost and group task totals."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def boost(self, primary_bonus: int, contributions: Iterable[Contribution]) -> BoostResult:
        """
        Combine a primary bonus with complementary contributions.

        Args:
            primary_bonus: Bonus of the primary skill (0 if none selected)
            contributions: Complementary contributions in insertion order

        Returns:
            BoostResult with the breakdown of granted bonuses
        """
        ordered = order_contributions(contributions, self.settings.tie_break)
        breakdown = diminishing_returns(ordered)
        complement_bonus = sum(entry.bonus for entry in breakdown)

        return BoostResult(
            primary_bonus=primary_bonus,
            complement_bonus=complement_bonus,
            total=primary_bonus + complement_bonus,
            breakdown=breakdown,
        )

    def group_task(
        self,
        task_skill_name: str | None,
        participants: Sequence[Participant],
        leader: Participant | None,
    ) -> GroupTaskResult:
        """
        Average participant bonuses for a task skill and add leadership.

        Args:
            task_skill_name: Shared skill, or None if not chosen yet
            participants: Enabled participants
            leader: Designated leader, if any

        Returns:
            GroupTaskResult
        """
        per_participant = [
            ParticipantBonus(name=p.name, bonus=p.bonus_for(task_skill_name))
            for p in participants
            if p.enabled
        ]

        if per_participant:
            average = Fraction(sum(pb.bonus for pb in per_participant), len(per_participant))
        else:
            average = Fraction(0)
        average_bonus = round_half_up(average)

        leadership_bonus = leader.leadership_ranks if leader and leader.enabled else 0

        return GroupTaskResult(
            task_skill_name=task_skill_name,
            per_participant=per_participant,
            average_bonus=average_bonus,
            leader_name=leader.name if leader else NO_LEADER_NAME,
            leadership_bonus=leadership_bonus,
            total=average_bonus + leadership_bonus,
        )
