"""Participant registry for the complementary skills calculator.

Tracks which characters take part in a calculation, whether each one is
currently included, and who leads by default.
"""

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from compskills.config import Settings, get_settings
from compskills.game.character.skills import (
    SkillExtractor,
    SkillGroup,
    SkillRecord,
    find_skill,
    group_by_category,
    leadership_ranks,
    project_all,
)
from compskills.game.interfaces import WarningKind

if TYPE_CHECKING:
    from compskills.game.interfaces import CharacterRef

logger = structlog.get_logger(__name__)


@dataclass
class RefreshOptions:
    """
    Options for preparing a registry.

    Attributes:
        force_reload: Re-read skill data for participants already present
    """

    force_reload: bool = False


@dataclass
class Participant:
    """A character included in a calculation."""

    id: str
    name: str
    img: str = ""
    enabled: bool = True
    leadership_ranks: int = 0
    skills: list[SkillRecord] = field(default_factory=list)
    owner_ids: list[str] = field(default_factory=list)
    actor_id: str | None = None
    allow_ineligible_complements: bool = False
    warning: WarningKind | None = None

    @property
    def skills_by_category(self) -> list[SkillGroup]:
        """Get every skill grouped by category."""
        return group_by_category(self.skills)

    @property
    def rollable_skills(self) -> list[SkillRecord]:
        """Get skills that may be chosen as a primary or task skill."""
        return [skill for skill in self.skills if skill.eligible]

    @property
    def complement_skills(self) -> list[SkillRecord]:
        """Get ranked skills usable as complementary contributions."""
        return [
            skill
            for skill in self.skills
            if skill.ranks > 0 and (skill.eligible or self.allow_ineligible_complements)
        ]

    def find_skill(self, name: str | None) -> SkillRecord | None:
        """Find one of this participant's skills by display name."""
        return find_skill(self.skills, name)

    def bonus_for(self, name: str | None) -> int:
        """Get the bonus for a skill, 0 if the participant lacks it."""
        skill = self.find_skill(name)
        return skill.bonus if skill else 0


def owner_ids_for(token: "CharacterRef", owner_level: int) -> list[str]:
    """
    Get user IDs with owner-level access to a token's actor.

    Args:
        token: Character token
        owner_level: Minimum ownership level counting as owner

    Returns:
        User IDs in ownership order (the ``default`` entry is ignored)
    """
    actor = getattr(token, "actor", None)
    ownership = getattr(actor, "ownership", None) or {}
    return [
        user_id
        for user_id, level in ownership.items()
        if user_id != "default" and isinstance(level, int) and level >= owner_level
    ]


class ParticipantRegistry:
    """
    Owns the participants of one calculation session.

    Participants are keyed by token ID and kept in insertion order. They are
    never removed; disabling one excludes it from every calculation.
    """

    def __init__(
        self,
        extractor: SkillExtractor | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.extractor = extractor or SkillExtractor()
        self.settings = settings or get_settings()
        self._participants: dict[str, Participant] = {}

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._participants

    def __len__(self) -> int:
        return len(self._participants)

    def __iter__(self) -> Iterator[Participant]:
        return iter(list(self._participants.values()))

    def ids(self) -> set[str]:
        """Get the IDs of every registered participant."""
        return set(self._participants)

    def get(self, participant_id: str | None) -> Participant | None:
        """Get a participant by ID."""
        if participant_id is None:
            return None
        return self._participants.get(participant_id)

    def participants(self) -> list[Participant]:
        """Get all participants, enabled or not."""
        return list(self._participants.values())

    async def _hydrate(self, token: "CharacterRef") -> Participant:
        raw_skills = await self.extractor.skills_for(token)
        actor = getattr(token, "actor", None)
        return Participant(
            id=token.id,
            name=token.name,
            img=getattr(token, "img", "") or "",
            leadership_ranks=leadership_ranks(raw_skills, self.settings.leadership_skill_name),
            skills=project_all(raw_skills),
            owner_ids=owner_ids_for(token, self.settings.owner_level),
            actor_id=getattr(actor, "id", None),
            allow_ineligible_complements=self.settings.allow_ineligible_complements,
            warning=WarningKind.MISSING_DATA if token.id in self.extractor.missing_data else None,
        )

    async def add_or_update(self, token: "CharacterRef") -> Participant:
        """
        Add a character to the registry.

        Adding a character already present is a no-op.

        Args:
            token: Character to add

        Returns:
            The registered participant
        """
        existing = self._participants.get(token.id)
        if existing is not None:
            logger.debug("participant_already_registered", participant_id=token.id)
            return existing

        participant = await self._hydrate(token)
        self._participants[token.id] = participant

        logger.info(
            "participant_added",
            participant_id=participant.id,
            participant_name=participant.name,
            skill_count=len(participant.skills),
            leadership_ranks=participant.leadership_ranks,
        )
        return participant

    async def add_many(self, tokens: Iterable["CharacterRef"]) -> list[Participant]:
        """Add several characters, one after another."""
        added = []
        for token in tokens:
            added.append(await self.add_or_update(token))
        return added

    async def prepare(
        self, tokens: Sequence["CharacterRef"], options: RefreshOptions | None = None
    ) -> None:
        """
        Populate the registry from tokens.

        Hydrates when the registry is empty or a reload is forced. A forced
        reload re-reads skill data but keeps each participant's enabled flag.

        Args:
            tokens: Characters to include
            options: Refresh options
        """
        options = options or RefreshOptions()
        if self._participants and not options.force_reload:
            return

        previous = self._participants
        self._participants = {}
        for token in tokens:
            if token.id in self._participants:
                continue
            participant = await self._hydrate(token)
            if token.id in previous:
                participant.enabled = previous[token.id].enabled
            self._participants[token.id] = participant

        logger.info(
            "participants_prepared",
            count=len(self._participants),
            force_reload=options.force_reload,
        )

    def set_enabled(self, participant_id: str, enabled: bool) -> bool:
        """
        Include or exclude a participant.

        Args:
            participant_id: Participant to toggle
            enabled: New inclusion state

        Returns:
            True if the participant exists
        """
        participant = self._participants.get(participant_id)
        if participant is None:
            logger.warning("toggle_unknown_participant", participant_id=participant_id)
            return False

        participant.enabled = enabled
        logger.debug("participant_toggled", participant_id=participant_id, enabled=enabled)
        return True

    def enabled_participants(self) -> list[Participant]:
        """Get participants currently included in calculations."""
        return [p for p in self._participants.values() if p.enabled]

    def available_candidates(self, all_tokens: Iterable["CharacterRef"]) -> list["CharacterRef"]:
        """
        Get tokens that could still be added.

        Args:
            all_tokens: Every token present in the scene

        Returns:
            Tokens with an actor that are not yet registered
        """
        return [
            token
            for token in all_tokens
            if getattr(token, "actor", None) is not None and token.id not in self._participants
        ]

    def default_leader_id(self) -> str | None:
        """
        Pick the leader to use when none valid is designated.

        Returns:
            First enabled participant with Leadership ranks, else the first
            enabled participant, else None
        """
        enabled = self.enabled_participants()
        for participant in enabled:
            if participant.leadership_ranks > 0:
                return participant.id
        return enabled[0].id if enabled else None
