"""Collaborator contracts consumed by the calculator core.

The core never talks to a concrete virtual tabletop. Character tokens, the
current selection and the chat log are reached through these protocols, and
the composition root decides what implements them.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class ActorLike(Protocol):
    """Character data behind a token."""

    id: str
    name: str
    system: dict[str, Any]
    ownership: dict[str, int]


class CharacterRef(Protocol):
    """
    A character instance placed in the scene.

    Tokens may additionally expose an async ``derive_extended_data()``
    that refreshes the actor's computed skill fields. The capability is
    optional and detected at call time.
    """

    id: str
    name: str
    img: str

    @property
    def actor(self) -> ActorLike | None: ...


class UserLike(Protocol):
    """A user who may receive results."""

    id: str
    name: str
    is_gm: bool


class SelectionSource(Protocol):
    """The active scene: selected tokens and every token present."""

    def controlled(self) -> Sequence[CharacterRef]: ...

    def placeables(self) -> Sequence[CharacterRef]: ...


class ResultSink(Protocol):
    """Receives finished result messages."""

    async def create(self, message: "ChatMessage") -> None: ...


class WarningKind(Enum):
    """Non-fatal conditions reported back to the caller."""

    MISSING_DATA = "missing_data"
    NO_SELECTION = "no_selection"
    PERMISSION_DENIED = "permission_denied"


@dataclass
class ChatMessage:
    """A published calculation summary."""

    user_id: str
    content: str
    whisper: list[str]
    flags: dict[str, dict[str, Any]]


@dataclass
class SubmitResult:
    """Outcome of a submit action."""

    success: bool
    message: str
    warning: WarningKind | None = None
    chat_message: ChatMessage | None = None
