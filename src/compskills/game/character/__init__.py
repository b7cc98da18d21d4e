"""Character skill data and calculation participants."""

from .participants import Participant, ParticipantRegistry, RefreshOptions
from .skills import (
    SkillExtractor,
    SkillGroup,
    SkillRecord,
    flatten,
    group_by_category,
    leadership_ranks,
    project,
    project_all,
    sort_key,
    sort_skills,
)

__all__ = [
    "Participant",
    "ParticipantRegistry",
    "RefreshOptions",
    "SkillExtractor",
    "SkillGroup",
    "SkillRecord",
    "flatten",
    "group_by_category",
    "leadership_ranks",
    "project",
    "project_all",
    "sort_key",
    "sort_skills",
]
