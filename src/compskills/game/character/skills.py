"""Skill extraction for the complementary skills calculator.

Flattens a character's nested skill container into raw skill entries and
projects them into sorted, de-duplicated skill records.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from compskills.config import get_settings

if TYPE_CHECKING:
    from compskills.game.interfaces import CharacterRef

logger = structlog.get_logger(__name__)

# Key marking a mapping as a skill leaf
RECORD_MARKER = "system"

UNKNOWN_SKILL_NAME = "Unknown Skill"
UNKNOWN_CATEGORY = "Unknown"
OTHER_CATEGORY = "Other"


@dataclass(frozen=True)
class SkillRecord:
    """Normalized view of a single skill."""

    name: str
    category: str
    ranks: int = 0
    bonus: int = 0
    eligible: bool = True


@dataclass
class SkillGroup:
    """Skills sharing a category, for grouped option lists."""

    label: str
    skills: list[SkillRecord] = field(default_factory=list)


def _as_count(value: Any) -> int:
    """Coerce a rank or bonus value to a non-negative integer."""
    if isinstance(value, bool):
        return 0
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(count, 0)


def _record_section(node: Mapping[str, Any]) -> Mapping[str, Any] | None:
    section = node.get(RECORD_MARKER)
    if isinstance(section, Mapping):
        return section
    return None


def flatten(container: Any) -> list[Mapping[str, Any]]:
    """
    Walk a nested skill container and collect raw skill entries.

    Lists and tuples are expanded element-wise. A mapping carrying a mapping
    under ``"system"`` is a skill leaf; any other mapping has its values
    expanded. Traversal is depth-first and keeps source order.

    Args:
        container: Skill data of arbitrary shape

    Returns:
        Raw skill entries in traversal order (empty on malformed input)
    """
    out: list[Mapping[str, Any]] = []
    seen: set[int] = set()
    stack: list[Any] = [container]

    try:
        while stack:
            node = stack.pop()
            if node is None or isinstance(node, (str, bytes)):
                continue

            if isinstance(node, Mapping):
                if _record_section(node) is not None:
                    out.append(node)
                    continue
                children = list(node.values())
            elif isinstance(node, (list, tuple)):
                children = list(node)
            else:
                continue

            if id(node) in seen:
                continue
            seen.add(id(node))

            # Reversed so the first child is popped first
            stack.extend(reversed(children))
    except Exception as e:
        logger.warning("skill_flatten_failed", error=str(e), container_type=type(container).__name__)
        return []

    return out


def project(raw_skill: Mapping[str, Any]) -> SkillRecord:
    """
    Extract the calculator-relevant fields from a raw skill entry.

    Args:
        raw_skill: A leaf produced by ``flatten``

    Returns:
        SkillRecord with defaults substituted for missing fields
    """
    section: Mapping[str, Any] = {}
    if isinstance(raw_skill, Mapping):
        section = _record_section(raw_skill) or {}

    base_name = section.get("name")
    if base_name is None:
        base_name = UNKNOWN_SKILL_NAME
    base_name = str(base_name)

    specialization = section.get("specialization")
    if isinstance(specialization, str) and specialization.strip():
        name = f"{base_name} ({specialization})"
    else:
        name = base_name

    category = section.get("category")
    if category is None:
        category = UNKNOWN_CATEGORY

    return SkillRecord(
        name=name,
        category=str(category),
        ranks=_as_count(section.get("_totalRanks")),
        bonus=_as_count(section.get("_bonus")),
        eligible=section.get("_disableSkillRoll") is not True,
    )


def leadership_ranks(raw_skills: Iterable[Mapping[str, Any]], skill_name: str | None = None) -> int:
    """
    Find the Leadership skill and return its total ranks.

    Only the first entry whose base name matches exactly is used.

    Args:
        raw_skills: Raw entries from ``flatten``
        skill_name: Base skill name to look for (defaults to the configured name)

    Returns:
        Total ranks in Leadership, or 0 if absent
    """
    skill_name = skill_name or get_settings().leadership_skill_name
    sections = [
        section
        for section in (_record_section(raw) for raw in raw_skills if isinstance(raw, Mapping))
        if section is not None and section.get("name") == skill_name
    ]
    if not sections:
        return 0
    if len(sections) > 1:
        logger.debug("multiple_leadership_entries", skill_name=skill_name, count=len(sections))
    return _as_count(sections[0].get("_totalRanks"))


def _text_key(value: str) -> tuple[str, str]:
    return (value.casefold(), value)


def sort_key(record: SkillRecord) -> tuple[tuple[str, str], tuple[str, str]]:
    """Order skills by category, then name."""
    return (_text_key(record.category), _text_key(record.name))


def sort_skills(records: Iterable[SkillRecord]) -> list[SkillRecord]:
    """Return records in canonical dropdown order."""
    return sorted(records, key=sort_key)


def dedupe_by_name(records: Iterable[SkillRecord]) -> list[SkillRecord]:
    """Drop records whose name was already seen, keeping the first."""
    seen: set[str] = set()
    unique: list[SkillRecord] = []
    for record in records:
        if record.name in seen:
            continue
        seen.add(record.name)
        unique.append(record)
    return unique


def project_all(raw_skills: Iterable[Mapping[str, Any]]) -> list[SkillRecord]:
    """Project, de-duplicate and sort raw skill entries."""
    return sort_skills(dedupe_by_name(project(raw) for raw in raw_skills))


def group_by_category(records: Sequence[SkillRecord]) -> list[SkillGroup]:
    """
    Partition skills into category buckets.

    Args:
        records: Skills, normally already sorted

    Returns:
        Groups ordered by category label, members in input order
    """
    if not records:
        return []

    groups: dict[str, SkillGroup] = {}
    for record in records:
        label = record.category or OTHER_CATEGORY
        if label not in groups:
            groups[label] = SkillGroup(label=label)
        groups[label].skills.append(record)

    return sorted(groups.values(), key=lambda group: _text_key(group.label))


def find_skill(records: Iterable[SkillRecord], name: str | None) -> SkillRecord | None:
    """Look up a skill by display name."""
    if not name:
        return None
    for record in records:
        if record.name == name:
            return record
    return None


class SkillExtractor:
    """
    Reads raw skill data off character tokens.

    Hydrates each character's derived data at most once before flattening.
    """

    def __init__(self) -> None:
        self._hydrated: set[str] = set()
        self.missing_data: set[str] = set()

    def is_hydrated(self, character_id: str) -> bool:
        """Check whether a character's derived data has been refreshed."""
        return character_id in self._hydrated

    async def skills_for(self, token: "CharacterRef") -> list[Mapping[str, Any]]:
        """
        Hydrate a token's actor if needed and return its flat raw skills.

        Args:
            token: Character to read

        Returns:
            Raw skill entries, empty when the character has no usable data
        """
        actor = getattr(token, "actor", None)
        if actor is None:
            logger.warning(
                "token_missing_actor",
                token_id=getattr(token, "id", None),
                token_name=getattr(token, "name", None),
            )
            self.missing_data.add(token.id)
            return []

        system = getattr(actor, "system", None)
        if not isinstance(system, Mapping):
            logger.warning("actor_missing_system_data", actor_name=getattr(actor, "name", None))
            self.missing_data.add(token.id)
            return []

        if not await self._hydrate(token, system):
            return []

        # derive_extended_data may replace the system data
        system = getattr(token.actor, "system", None)
        if not isinstance(system, Mapping):
            logger.warning("actor_missing_system_data", actor_name=getattr(actor, "name", None))
            self.missing_data.add(token.id)
            return []

        raw_skills = flatten(system.get("_skills"))
        logger.debug("skills_extracted", token_id=token.id, count=len(raw_skills))
        return raw_skills

    async def _hydrate(self, token: "CharacterRef", system: Mapping[str, Any]) -> bool:
        """Run derive_extended_data once per character. Returns False if it failed."""
        if token.id in self._hydrated or system.get("_hudInitialized") is True:
            self._hydrated.add(token.id)
            return True

        derive = getattr(token, "derive_extended_data", None)
        if not callable(derive):
            logger.warning(
                "token_cannot_derive_extended_data", token_id=token.id, token_name=token.name
            )
            self.missing_data.add(token.id)
            self._hydrated.add(token.id)
            return True

        try:
            await derive()
        except Exception as e:
            logger.error(
                "derive_extended_data_failed",
                token_id=token.id,
                token_name=token.name,
                error=str(e),
            )
            self.missing_data.add(token.id)
            return False

        self._hydrated.add(token.id)
        return True
