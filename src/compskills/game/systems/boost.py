"""Boost skill check session.

One primary character rolls a skill; helpers and the primary character's
own complementary skills add ranks with diminishing returns.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from compskills.config import Settings, get_settings
from compskills.game.character.participants import (
    Participant,
    ParticipantRegistry,
    RefreshOptions,
)
from compskills.game.character.skills import SkillGroup, find_skill, group_by_category
from compskills.game.interfaces import SubmitResult, UserLike, WarningKind
from compskills.game.systems.bonus import (
    BonusCalculator,
    BoostResult,
    Contribution,
    contribution_label,
)
from compskills.game.systems.messaging import (
    ROLL_TYPE_BOOST,
    build_message,
    render_boost_summary,
    resolve_recipients,
)

if TYPE_CHECKING:
    from compskills.game.interfaces import CharacterRef, ResultSink

logger = structlog.get_logger(__name__)

NO_PRIMARY_SKILL_WARNING = "Please select a Primary Skill first."


@dataclass
class ComplementSlot:
    """A complementary skill row chosen for the primary character."""

    name: str | None = None
    ranks: int = 0


@dataclass
class BoostCalcState:
    """User choices for a boost check."""

    primary_actor_id: str | None = None
    primary_skill_name: str | None = None
    primary_actor_skills: list[ComplementSlot] = field(default_factory=list)
    other_actor_skills: dict[str, str] = field(default_factory=dict)


@dataclass
class BoostContext:
    """Plain data for presenting a boost check."""

    participants: list[Participant]
    primary_actor_id: str | None = None
    primary_skill_options: list[SkillGroup] = field(default_factory=list)
    primary_skill_name: str | None = None
    primary_complement_options: list[SkillGroup] = field(default_factory=list)
    primary_actor_skills: list[ComplementSlot] = field(default_factory=list)
    other_participants: list[Participant] = field(default_factory=list)
    other_complement_options: dict[str, list[SkillGroup]] = field(default_factory=dict)
    other_actor_skills: dict[str, str] = field(default_factory=dict)
    bonus_for_selected_skill: dict[str, int] = field(default_factory=dict)
    calculation: BoostResult = field(default_factory=BoostResult)


class BoostSkillSession:
    """
    State and actions of one boost skill calculator.

    Every action runs to completion and leaves the state consistent; call
    ``context()`` afterwards to get fresh presentation data.
    """

    def __init__(
        self,
        registry: ParticipantRegistry,
        tokens: Sequence["CharacterRef"] = (),
        calculator: BonusCalculator | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry
        self.tokens: list["CharacterRef"] = list(tokens)
        self.settings = settings or get_settings()
        self.calculator = calculator or BonusCalculator(self.settings)
        self.calc_state = BoostCalcState(primary_actor_id=self.tokens[0].id if self.tokens else None)

    async def prepare(self, options: RefreshOptions | None = None) -> None:
        """Hydrate participants from the session's tokens."""
        await self.registry.prepare(self.tokens, options)
        self._reconcile()

    @property
    def primary_actor(self) -> Participant | None:
        """Get the primary participant."""
        return self.registry.get(self.calc_state.primary_actor_id)

    def _reset_primary(self, participant_id: str | None) -> None:
        self.calc_state.primary_actor_id = participant_id
        self.calc_state.primary_skill_name = None
        self.calc_state.primary_actor_skills = []

    def _reconcile(self) -> None:
        """Move the primary role to an enabled participant if needed."""
        primary = self.primary_actor
        if primary is not None and primary.enabled:
            return
        enabled = self.registry.enabled_participants()
        new_id = enabled[0].id if enabled else None
        if new_id != self.calc_state.primary_actor_id:
            logger.debug(
                "primary_actor_reset",
                previous=self.calc_state.primary_actor_id,
                current=new_id,
            )
        self._reset_primary(new_id)

    def change_primary_actor(self, participant_id: str) -> None:
        """Choose the primary character, clearing every skill choice."""
        self._reset_primary(participant_id)
        self.calc_state.other_actor_skills = {}
        self._reconcile()

    def change_primary_skill(self, skill_name: str | None) -> None:
        """Choose the skill being checked."""
        self.calc_state.primary_skill_name = skill_name or None

    def add_primary_complement(self) -> None:
        """Add an empty complementary row for the primary character."""
        self.calc_state.primary_actor_skills.append(ComplementSlot())

    def change_primary_complement(self, index: int, skill_name: str | None) -> None:
        """
        Set the skill of a primary complementary row.

        Args:
            index: Row index
            skill_name: Chosen skill; its ranks are looked up on the primary character
        """
        if not 0 <= index < len(self.calc_state.primary_actor_skills):
            logger.warning("complement_row_out_of_range", index=index)
            return
        primary = self.primary_actor
        skill = find_skill(primary.complement_skills, skill_name) if primary else None
        self.calc_state.primary_actor_skills[index] = ComplementSlot(
            name=skill_name or None,
            ranks=skill.ranks if skill else 0,
        )

    def delete_primary_complement(self, index: int) -> None:
        """Remove a primary complementary row."""
        if 0 <= index < len(self.calc_state.primary_actor_skills):
            del self.calc_state.primary_actor_skills[index]

    def change_other_complement(self, participant_id: str, skill_name: str | None) -> None:
        """Choose the complementary skill another participant offers."""
        if skill_name:
            self.calc_state.other_actor_skills[participant_id] = skill_name
        else:
            self.calc_state.other_actor_skills.pop(participant_id, None)

    def toggle_participant(self, participant_id: str, enabled: bool) -> None:
        """Include or exclude a participant."""
        if self.registry.set_enabled(participant_id, enabled):
            self._reconcile()

    async def add_participants(self, tokens: Sequence["CharacterRef"]) -> None:
        """Add characters picked in the add-participant dialog."""
        for token in tokens:
            if all(t.id != token.id for t in self.tokens):
                self.tokens.append(token)
        await self.registry.add_many(tokens)
        self._reconcile()

    def primary_bonus(self) -> int:
        """Get the bonus of the selected primary skill (0 if none)."""
        primary = self.primary_actor
        if primary is None:
            return 0
        skill = find_skill(primary.rollable_skills, self.calc_state.primary_skill_name)
        return skill.bonus if skill else 0

    def contributions(self) -> list[Contribution]:
        """Gather complementary contributions in insertion order."""
        primary = self.primary_actor
        if primary is None:
            return []

        contributions = [
            Contribution(contribution_label(primary.name, slot.name or ""), slot.ranks)
            for slot in self.calc_state.primary_actor_skills
            if slot.ranks > 0
        ]

        for participant_id, skill_name in self.calc_state.other_actor_skills.items():
            participant = self.registry.get(participant_id)
            if participant is None or not participant.enabled or participant.id == primary.id:
                continue
            skill = find_skill(participant.complement_skills, skill_name)
            if skill and skill.ranks > 0:
                contributions.append(
                    Contribution(contribution_label(participant.name, skill.name), skill.ranks)
                )

        return contributions

    def calculate(self) -> BoostResult:
        """Compute the current boost result."""
        if self.primary_actor is None:
            return BoostResult()
        return self.calculator.boost(self.primary_bonus(), self.contributions())

    def context(self) -> BoostContext:
        """Build presentation data for the current state."""
        self._reconcile()
        primary = self.primary_actor
        if primary is None:
            return BoostContext(participants=[])

        others = [p for p in self.registry.enabled_participants() if p.id != primary.id]
        selected = self.calc_state.primary_skill_name

        return BoostContext(
            participants=self.registry.participants(),
            primary_actor_id=primary.id,
            primary_skill_options=group_by_category(primary.rollable_skills),
            primary_skill_name=selected,
            primary_complement_options=group_by_category(primary.complement_skills),
            primary_actor_skills=list(self.calc_state.primary_actor_skills),
            other_participants=others,
            other_complement_options={p.id: group_by_category(p.complement_skills) for p in others},
            other_actor_skills=dict(self.calc_state.other_actor_skills),
            bonus_for_selected_skill={p.id: p.bonus_for(selected) for p in self.registry},
            calculation=self.calculate(),
        )

    async def submit(
        self,
        sender: UserLike,
        users: Sequence[UserLike],
        sink: "ResultSink",
    ) -> SubmitResult:
        """
        Publish the current result.

        Refused without a primary skill; the state is left untouched.

        Args:
            sender: User sending the result
            users: All known users (for GM recipients)
            sink: Where to publish

        Returns:
            SubmitResult describing what happened
        """
        primary = self.primary_actor
        if primary is None or not self.calc_state.primary_skill_name:
            logger.info("boost_submission_refused", reason="no_primary_skill")
            return SubmitResult(
                success=False,
                message=NO_PRIMARY_SKILL_WARNING,
                warning=WarningKind.NO_SELECTION,
            )

        result = self.calculate()
        content = render_boost_summary(primary.name, self.calc_state.primary_skill_name, result)
        message = build_message(
            sender_id=sender.id,
            content=content,
            recipients=resolve_recipients(self.registry, users),
            roll_type=ROLL_TYPE_BOOST,
            actor_id=primary.id,
            skill_name=self.calc_state.primary_skill_name,
            bonus=result.total,
            settings=self.settings,
        )

        try:
            await sink.create(message)
        except Exception as e:
            logger.error("boost_submission_failed", error=str(e))
            return SubmitResult(success=False, message="Could not send the result to chat.")

        logger.info(
            "boost_submitted",
            actor_id=primary.id,
            skill_name=self.calc_state.primary_skill_name,
            total=result.total,
            recipients=len(message.whisper),
        )
        return SubmitResult(success=True, message="Result sent to chat.", chat_message=message)
