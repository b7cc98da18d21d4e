"""
Scene module for the complementary skills calculator.

Defines the actors, tokens and users of a scene and the in-memory
selection source built from them.
"""

from typing import Any

import structlog
from pydantic import BaseModel, Field

from compskills.game.character.skills import flatten

logger = structlog.get_logger(__name__)


class UserData(BaseModel):
    """
    A user who can see results.

    Attributes:
        id: Unique user identifier
        name: Display name
        is_gm: Whether the user is a game master
    """

    id: str = Field(..., description="Unique user identifier")
    name: str = Field(default="", description="Display name")
    is_gm: bool = Field(default=False, description="Game master flag")


class ActorData(BaseModel):
    """
    Character sheet data behind one or more tokens.

    Attributes:
        id: Unique actor identifier
        name: Character name
        system: Rule-system data; skills live under ``_skills`` in any nesting
        ownership: Maps user ID to ownership level (3 = owner)
    """

    id: str = Field(..., description="Unique actor identifier")
    name: str = Field(..., description="Character name")
    system: dict[str, Any] = Field(default_factory=dict, description="Rule-system data")
    ownership: dict[str, int] = Field(
        default_factory=dict, description="Maps user ID to ownership level"
    )


class TokenData(BaseModel):
    """
    A character placed in the scene.

    Attributes:
        id: Unique token identifier
        name: Token display name
        img: Image reference
        actor_id: Actor this token represents (None for props)
        derivable: Whether the token supports refreshing derived skill data
    """

    id: str = Field(..., description="Unique token identifier")
    name: str = Field(..., description="Token display name")
    img: str = Field(default="", description="Image reference")
    actor_id: str | None = Field(default=None, description="Actor represented by this token")
    derivable: bool = Field(default=True, description="Supports derive_extended_data")


def derive_skill_fields(skill: dict[str, Any]) -> None:
    """
    Fill computed totals on one raw skill leaf.

    ``_totalRanks`` comes from ``ranks`` and ``_bonus`` from the sum of the
    ``bonuses`` mapping, unless already present.
    """
    section = skill.get("system")
    if not isinstance(section, dict):
        return
    if "_totalRanks" not in section:
        section["_totalRanks"] = section.get("ranks", 0)
    if "_bonus" not in section:
        bonuses = section.get("bonuses") or {}
        section["_bonus"] = sum(v for v in bonuses.values() if isinstance(v, int))


class SceneToken:
    """Token bound to its actor, usable as a calculator character."""

    def __init__(self, data: TokenData, actor: ActorData | None) -> None:
        self.data = data
        self._actor = actor
        self.derive_count = 0

    @property
    def id(self) -> str:
        """Get token ID."""
        return self.data.id

    @property
    def name(self) -> str:
        """Get token name."""
        return self.data.name

    @property
    def img(self) -> str:
        """Get token image reference."""
        return self.data.img

    @property
    def actor(self) -> ActorData | None:
        """Get the actor behind this token."""
        return self._actor


class DerivingSceneToken(SceneToken):
    """Token whose skill totals can be computed on demand."""

    async def derive_extended_data(self) -> None:
        """Compute skill totals and mark the actor's data as initialized."""
        if self._actor is None:
            return
        for skill in flatten(self._actor.system.get("_skills")):
            derive_skill_fields(skill)
        self._actor.system["_hudInitialized"] = True
        self.derive_count += 1
        logger.debug("extended_data_derived", token_id=self.id, actor_id=self._actor.id)


class Scene:
    """
    The active scene: every token present plus the current selection.

    Attributes:
        users: Users who may receive results
        tokens: Tokens in placement order
    """

    def __init__(
        self,
        users: list[UserData] | None = None,
        tokens: list[SceneToken] | None = None,
        controlled_ids: list[str] | None = None,
    ) -> None:
        self.users = users or []
        self.tokens = tokens or []
        self.controlled_ids = controlled_ids or []

    def get_token(self, token_id: str) -> SceneToken | None:
        """Get a token by ID."""
        for token in self.tokens:
            if token.id == token_id:
                return token
        return None

    def get_user(self, user_id: str) -> UserData | None:
        """Get a user by ID."""
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def select(self, token_ids: list[str]) -> None:
        """Replace the current selection."""
        self.controlled_ids = [tid for tid in token_ids if self.get_token(tid) is not None]

    def controlled(self) -> list[SceneToken]:
        """Get the selected tokens in selection order."""
        selected = [self.get_token(tid) for tid in self.controlled_ids]
        return [token for token in selected if token is not None]

    def placeables(self) -> list[SceneToken]:
        """Get every token in the scene."""
        return list(self.tokens)

    def gm_users(self) -> list[UserData]:
        """Get all game masters."""
        return [user for user in self.users if user.is_gm]
