"""Shared fixtures for all tests."""

from typing import Any

import pytest

from compskills.config import Settings, get_settings
from compskills.game.character import ParticipantRegistry, SkillExtractor
from compskills.game.systems import ChatLog
from compskills.game.world import ActorData, DerivingSceneToken, Scene, TokenData, UserData


def make_skill(
    name: str,
    category: str = "General",
    ranks: int = 0,
    bonus: int = 0,
    specialization: str | None = None,
    disabled: bool = False,
) -> dict[str, Any]:
    """Build a raw skill leaf as found in actor data."""
    system: dict[str, Any] = {
        "name": name,
        "category": category,
        "_totalRanks": ranks,
        "_bonus": bonus,
    }
    if specialization is not None:
        system["specialization"] = specialization
    if disabled:
        system["_disableSkillRoll"] = True
    return {"system": system}


class FakeActor:
    """Minimal actor with prepared skill data."""

    def __init__(
        self,
        actor_id: str,
        name: str,
        skills: Any = None,
        ownership: dict[str, int] | None = None,
        initialized: bool = True,
    ) -> None:
        self.id = actor_id
        self.name = name
        self.system: dict[str, Any] = {"_skills": skills if skills is not None else []}
        if initialized:
            self.system["_hudInitialized"] = True
        self.ownership = ownership or {}


class FakeToken:
    """Minimal token without derive capability."""

    def __init__(self, token_id: str, name: str, actor: FakeActor | None, img: str = "") -> None:
        self.id = token_id
        self.name = name
        self.img = img
        self.actor = actor


def make_token(
    token_id: str,
    name: str,
    skills: Any = None,
    owners: list[str] | None = None,
) -> FakeToken:
    """Build a token whose actor already has derived data."""
    ownership = {user_id: 3 for user_id in owners or []}
    return FakeToken(token_id, name, FakeActor(f"actor-{token_id}", name, skills, ownership))


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make every test start from default settings."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """Default settings."""
    return Settings()


@pytest.fixture
def registry(settings):
    """Empty participant registry."""
    return ParticipantRegistry(SkillExtractor(), settings)


@pytest.fixture
def chat_log():
    """In-memory result sink."""
    return ChatLog()


@pytest.fixture
def users():
    """A GM and two players."""
    return [
        UserData(id="gm", name="Game Master", is_gm=True),
        UserData(id="alice", name="Alice"),
        UserData(id="bob", name="Bob"),
    ]


@pytest.fixture
def party_tokens():
    """Three characters with overlapping skills."""
    aldric = make_token(
        "t-aldric",
        "Aldric",
        {
            "Athletic": [
                make_skill("Climbing", "Athletic", ranks=10, bonus=45),
                make_skill("Swimming", "Athletic", ranks=2, bonus=15),
            ],
            "Influence": {
                "list": [make_skill("Leadership", "Influence", ranks=0, bonus=0)],
            },
            "Lore": [make_skill("Lore", "Lore", ranks=4, bonus=20, specialization="Dragons")],
        },
        owners=["alice"],
    )
    brenna = make_token(
        "t-brenna",
        "Brenna",
        [
            make_skill("Climbing", "Athletic", ranks=8, bonus=40),
            make_skill("Leadership", "Influence", ranks=2, bonus=12),
            make_skill("Tracking", "Outdoor", ranks=6, bonus=30),
        ],
        owners=["bob"],
    )
    corin = make_token(
        "t-corin",
        "Corin",
        [
            make_skill("Climbing", "Athletic", ranks=4, bonus=25),
            make_skill("Spell Mastery", "Arcane", ranks=5, bonus=30, disabled=True),
        ],
    )
    return [aldric, brenna, corin]


@pytest.fixture
def scene(users):
    """Scene with two selected characters, one unselected and one prop."""
    rhea = ActorData(
        id="a-rhea",
        name="Rhea",
        system={
            "_skills": {
                "Athletic": [
                    {
                        "system": {
                            "name": "Climbing",
                            "category": "Athletic",
                            "ranks": 6,
                            "bonuses": {"stat": 5, "ranks": 30},
                        }
                    }
                ]
            }
        },
        ownership={"alice": 3, "default": 0},
    )
    tomas = ActorData(
        id="a-tomas",
        name="Tomas",
        system={
            "_skills": [
                {
                    "system": {
                        "name": "Leadership",
                        "category": "Influence",
                        "ranks": 3,
                        "bonuses": {"ranks": 15},
                    }
                }
            ]
        },
        ownership={"bob": 3},
    )
    vesna = ActorData(id="a-vesna", name="Vesna", system={"_skills": []})
    tokens = [
        DerivingSceneToken(TokenData(id="rhea", name="Rhea", actor_id="a-rhea"), rhea),
        DerivingSceneToken(TokenData(id="tomas", name="Tomas", actor_id="a-tomas"), tomas),
        DerivingSceneToken(TokenData(id="vesna", name="Vesna", actor_id="a-vesna"), vesna),
        DerivingSceneToken(TokenData(id="crate", name="Crate"), None),
    ]
    return Scene(users=users, tokens=tokens, controlled_ids=["rhea", "tomas"])
