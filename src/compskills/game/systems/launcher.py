"""Launcher that wires calculator sessions to the current selection."""

from typing import TYPE_CHECKING

import structlog

from compskills.config import Settings, get_settings
from compskills.game.character.participants import ParticipantRegistry
from compskills.game.character.skills import SkillExtractor
from compskills.game.systems.bonus import BonusCalculator
from compskills.game.systems.boost import BoostSkillSession
from compskills.game.systems.group_task import GroupTaskSession

if TYPE_CHECKING:
    from compskills.game.interfaces import CharacterRef, SelectionSource, UserLike

logger = structlog.get_logger(__name__)

NO_SELECTION_WARNING = (
    "Please select at least one token to use the Complementary Skills calculator."
)


class Launcher:
    """
    Opens boost or group task sessions for the selected characters.

    A single SkillExtractor is shared so each character is hydrated once
    no matter how many sessions are opened.
    """

    def __init__(
        self,
        selection: "SelectionSource",
        settings: Settings | None = None,
        extractor: SkillExtractor | None = None,
    ) -> None:
        self.selection = selection
        self.settings = settings or get_settings()
        self.extractor = extractor or SkillExtractor()
        self.calculator = BonusCalculator(self.settings)

    def _selected_tokens(self, user: "UserLike | None") -> list["CharacterRef"]:
        if user is not None and not user.is_gm:
            logger.warning("launch_denied_not_gm", user_id=user.id)
            return []
        tokens = list(self.selection.controlled())
        if not tokens:
            logger.warning("launch_without_selection")
        return tokens

    def _registry(self) -> ParticipantRegistry:
        return ParticipantRegistry(self.extractor, self.settings)

    async def open_boost(self, user: "UserLike | None" = None) -> BoostSkillSession | None:
        """
        Open a boost skill session for the selected tokens.

        Args:
            user: User opening the calculator; only GMs may open it

        Returns:
            Prepared session, or None when nothing is selected or the user is not a GM
        """
        tokens = self._selected_tokens(user)
        if not tokens:
            return None
        session = BoostSkillSession(self._registry(), tokens, self.calculator, self.settings)
        await session.prepare()
        logger.info("boost_session_opened", participants=len(session.registry))
        return session

    async def open_group_task(self, user: "UserLike | None" = None) -> GroupTaskSession | None:
        """
        Open a group task session for the selected tokens.

        Args:
            user: User opening the calculator; only GMs may open it

        Returns:
            Prepared session, or None when nothing is selected or the user is not a GM
        """
        tokens = self._selected_tokens(user)
        if not tokens:
            return None
        session = GroupTaskSession(self._registry(), tokens, self.calculator, self.settings)
        await session.prepare()
        logger.info("group_task_session_opened", participants=len(session.registry))
        return session

    def add_candidates(self, registry: ParticipantRegistry) -> list["CharacterRef"]:
        """Get scene tokens that can still be added to a session."""
        return registry.available_candidates(self.selection.placeables())
