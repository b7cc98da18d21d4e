"""Result messages for the complementary skills calculator.

Builds whispered chat messages for finished calculations, works out who
receives them, and checks who may apply a published bonus to a live roll.
"""

from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from compskills.config import Settings, get_settings
from compskills.game.character.participants import Participant
from compskills.game.interfaces import ChatMessage, UserLike, WarningKind
from compskills.game.systems.bonus import BoostResult, GroupTaskResult

logger = structlog.get_logger(__name__)

ROLL_TYPE_BOOST = "boost"
ROLL_TYPE_GROUP = "group"


def resolve_recipients(
    participants: Iterable[Participant], users: Iterable[UserLike]
) -> list[str]:
    """
    Get user IDs that should see a result.

    Args:
        participants: Participants of the calculation (only enabled ones count)
        users: All known users

    Returns:
        Owners of enabled participants followed by GMs, de-duplicated
    """
    recipients: list[str] = []
    for participant in participants:
        if not participant.enabled:
            continue
        recipients.extend(participant.owner_ids)
    recipients.extend(user.id for user in users if user.is_gm)
    return list(dict.fromkeys(recipients))


def render_boost_summary(actor_name: str, skill_name: str, result: BoostResult) -> str:
    """Render a boost result as plain text."""
    lines = [
        f"Boost Skill Check: {actor_name} - {skill_name}",
        f"Primary bonus: {result.primary_bonus:+d}",
    ]
    if result.breakdown:
        lines.append("Complementary skills:")
        for entry in result.breakdown:
            lines.append(f"  {entry.source_label}: {entry.ranks} ranks -> {entry.bonus:+d}")
    lines.append(f"Complementary bonus: {result.complement_bonus:+d}")
    lines.append(f"Total: {result.total:+d}")
    return "\n".join(lines)


def render_group_summary(result: GroupTaskResult) -> str:
    """Render a group task result as plain text."""
    lines = [f"Group Task: {result.task_skill_name}"]
    for pb in result.per_participant:
        lines.append(f"  {pb.name}: {pb.bonus:+d}")
    lines.append(f"Average bonus: {result.average_bonus:+d}")
    lines.append(f"Leader: {result.leader_name} ({result.leadership_bonus:+d})")
    lines.append(f"Total: {result.total:+d}")
    return "\n".join(lines)


def build_message(
    sender_id: str,
    content: str,
    recipients: Sequence[str],
    roll_type: str,
    actor_id: str | None,
    skill_name: str | None,
    bonus: int,
    settings: Settings | None = None,
) -> ChatMessage:
    """
    Wrap a rendered summary with its roll metadata.

    Args:
        sender_id: User sending the message
        content: Rendered summary
        recipients: Whisper recipients
        roll_type: "boost" or "group"
        actor_id: Acting character's token ID
        skill_name: Checked skill
        bonus: Final bonus
        settings: Settings providing the flag namespace

    Returns:
        ChatMessage ready for a result sink
    """
    settings = settings or get_settings()
    metadata: dict[str, Any] = {
        "is_calc": True,
        "roll_type": roll_type,
        "actor_id": actor_id,
        "skill_name": skill_name,
        "bonus": bonus,
    }
    return ChatMessage(
        user_id=sender_id,
        content=content,
        whisper=list(recipients),
        flags={settings.chat_flag_scope: metadata},
    )


def message_metadata(message: ChatMessage, settings: Settings | None = None) -> dict[str, Any]:
    """Get the calculator metadata attached to a message, if any."""
    settings = settings or get_settings()
    return message.flags.get(settings.chat_flag_scope, {})


def can_apply_bonus(
    user: UserLike,
    message: ChatMessage,
    participants: Iterable[Participant],
    settings: Settings | None = None,
) -> bool:
    """
    Check whether a user may apply a published bonus to a roll.

    GMs always may. Other users must own the acting character.

    Args:
        user: User attempting the action
        message: Published calculator message
        participants: Participants known to the calculation
        settings: Settings providing the flag namespace

    Returns:
        True if the action is allowed
    """
    metadata = message_metadata(message, settings)
    if not metadata.get("is_calc"):
        return False
    if user.is_gm:
        return True

    actor_id = metadata.get("actor_id")
    for participant in participants:
        if participant.id == actor_id and user.id in participant.owner_ids:
            return True

    logger.info(
        "apply_bonus_denied",
        user_id=user.id,
        actor_id=actor_id,
        reason=WarningKind.PERMISSION_DENIED.value,
    )
    return False


class ChatLog:
    """In-memory result sink keeping published messages in order."""

    def __init__(self) -> None:
        self.messages: list[ChatMessage] = []

    async def create(self, message: ChatMessage) -> None:
        """Store a published message."""
        self.messages.append(message)
        logger.debug("chat_message_created", recipients=len(message.whisper))

    def visible_to(self, user: UserLike) -> list[ChatMessage]:
        """Get messages whispered to a user (GMs see everything)."""
        if user.is_gm:
            return list(self.messages)
        return [m for m in self.messages if user.id in m.whisper]

    def clear(self) -> None:
        """Remove all stored messages."""
        self.messages.clear()
