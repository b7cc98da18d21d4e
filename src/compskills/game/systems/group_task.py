"""Group task session.

Every enabled participant attempts the same skill. Their bonuses are
averaged and the leader adds Leadership ranks on top.
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
from compskills.game.character.skills import (
    SkillGroup,
    SkillRecord,
    group_by_category,
    sort_skills,
)
from compskills.game.interfaces import SubmitResult, UserLike, WarningKind
from compskills.game.systems.bonus import BonusCalculator, GroupTaskResult
from compskills.game.systems.messaging import (
    ROLL_TYPE_GROUP,
    build_message,
    render_group_summary,
    resolve_recipients,
)

if TYPE_CHECKING:
    from compskills.game.interfaces import CharacterRef, ResultSink

logger = structlog.get_logger(__name__)

NO_TASK_SKILL_WARNING = "Please select a Task Skill first."


@dataclass
class GroupCalcState:
    """User choices for a group task."""

    leader_id: str | None = None
    task_skill_name: str | None = None


@dataclass
class GroupTaskContext:
    """Plain data for presenting a group task."""

    participants: list[Participant]
    leader_id: str | None = None
    skill_options: list[SkillGroup] = field(default_factory=list)
    task_skill_name: str | None = None
    bonus_for_selected_skill: dict[str, int] = field(default_factory=dict)
    calculation: GroupTaskResult = field(default_factory=GroupTaskResult)


class GroupTaskSession:
    """State and actions of one group task calculator."""

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
        self.calc_state = GroupCalcState()

    async def prepare(self, options: RefreshOptions | None = None) -> None:
        """Hydrate participants and pick a default leader."""
        await self.registry.prepare(self.tokens, options)
        self._reconcile()

    @property
    def leader(self) -> Participant | None:
        """Get the designated leader."""
        return self.registry.get(self.calc_state.leader_id)

    def _reconcile(self) -> None:
        """Fall back to the default leader when the current one is not usable."""
        leader = self.leader
        if leader is not None and leader.enabled:
            return
        new_id = self.registry.default_leader_id()
        if new_id != self.calc_state.leader_id:
            logger.debug("leader_reset", previous=self.calc_state.leader_id, current=new_id)
        self.calc_state.leader_id = new_id

    def change_leader(self, participant_id: str | None) -> None:
        """Designate the group leader."""
        self.calc_state.leader_id = participant_id or None
        self._reconcile()

    def change_task_skill(self, skill_name: str | None) -> None:
        """Choose the shared task skill."""
        self.calc_state.task_skill_name = skill_name or None

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

    def skill_options(self) -> list[SkillRecord]:
        """Get every rollable skill known to any participant, last record per name wins."""
        pooled = {skill.name: skill for p in self.registry for skill in p.rollable_skills}
        return sort_skills(pooled.values())

    def calculate(self) -> GroupTaskResult:
        """Compute the current group task result."""
        return self.calculator.group_task(
            self.calc_state.task_skill_name,
            self.registry.enabled_participants(),
            self.leader,
        )

    def context(self) -> GroupTaskContext:
        """Build presentation data for the current state."""
        self._reconcile()
        selected = self.calc_state.task_skill_name
        return GroupTaskContext(
            participants=self.registry.participants(),
            leader_id=self.calc_state.leader_id,
            skill_options=group_by_category(self.skill_options()),
            task_skill_name=selected,
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

        Refused without a task skill; the state is left untouched.

        Args:
            sender: User sending the result
            users: All known users (for GM recipients)
            sink: Where to publish

        Returns:
            SubmitResult describing what happened
        """
        if not self.calc_state.task_skill_name:
            logger.info("group_submission_refused", reason="no_task_skill")
            return SubmitResult(
                success=False,
                message=NO_TASK_SKILL_WARNING,
                warning=WarningKind.NO_SELECTION,
            )

        result = self.calculate()
        leader = self.leader
        message = build_message(
            sender_id=sender.id,
            content=render_group_summary(result),
            recipients=resolve_recipients(self.registry, users),
            roll_type=ROLL_TYPE_GROUP,
            actor_id=leader.id if leader else None,
            skill_name=result.task_skill_name,
            bonus=result.total,
            settings=self.settings,
        )

        try:
            await sink.create(message)
        except Exception as e:
            logger.error("group_submission_failed", error=str(e))
            return SubmitResult(success=False, message="Could not send the result to chat.")

        logger.info(
            "group_task_submitted",
            skill_name=result.task_skill_name,
            total=result.total,
            participants=len(result.per_participant),
        )
        return SubmitResult(success=True, message="Result sent to chat.", chat_message=message)
