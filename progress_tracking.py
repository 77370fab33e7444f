"""
Learner progress snapshot and pantheon mastery.

The progress store belongs to a collaborator; this module only defines the
snapshot it hands over (with a default-fill step for records written by
older clients) and derives mastery levels from it.
"""

from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import logfire
from pydantic import Field, ValidationError, field_validator

from learning_entities import ContentCatalogue, LearningModel


logger = logging.getLogger(__name__)


PROGRESS_SCHEMA_VERSION = 2


class ProgressSnapshot(LearningModel):
    """What the learner has engaged with so far."""

    schema_version: int = Field(default=PROGRESS_SCHEMA_VERSION, ge=1)
    deities_viewed: List[str] = Field(default_factory=list)
    stories_read: List[str] = Field(default_factory=list)
    pantheons_explored: List[str] = Field(default_factory=list)
    locations_visited: List[str] = Field(default_factory=list)
    quiz_scores: Dict[str, float] = Field(default_factory=dict)
    achievements: List[str] = Field(default_factory=list)
    daily_streak: int = Field(default=0, ge=0)
    last_visit: Optional[date] = None
    total_xp: int = Field(default=0, ge=0)

    @field_validator("deities_viewed", "stories_read", "pantheons_explored",
                     "locations_visited", "achievements")
    @classmethod
    def dedupe_ids(cls, v: List[str]) -> List[str]:
        """Keep first occurrence of each id."""
        return list(dict.fromkeys(v))

    @field_validator("last_visit", mode="before")
    @classmethod
    def blank_visit(cls, v: Any) -> Any:
        """Older clients stored an empty string before the first visit."""
        return None if v == "" else v


def load_progress(record: Optional[Mapping[str, Any]]) -> ProgressSnapshot:
    """Load a persisted progress record, filling any missing fields.

    Unreadable records are logged and replaced by an empty snapshot.
    """
    if not record:
        return ProgressSnapshot()
    try:
        snapshot = ProgressSnapshot.model_validate(dict(record))
    except ValidationError as e:
        logger.warning("Discarding unreadable progress record: %s", e)
        return ProgressSnapshot()
    if snapshot.schema_version < PROGRESS_SCHEMA_VERSION:
        logger.info(
            "Upgrading progress record from schema %d to %d",
            snapshot.schema_version, PROGRESS_SCHEMA_VERSION,
        )
        snapshot = snapshot.model_copy(update={"schema_version": PROGRESS_SCHEMA_VERSION})
    return snapshot


class MasteryLevel(str, Enum):
    """Mastery tiers, lowest first."""
    NOVICE = "novice"
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    MYTHIC = "mythic"


MASTERY_THRESHOLDS: Dict[MasteryLevel, int] = {
    MasteryLevel.NOVICE: 0,
    MasteryLevel.BRONZE: 20,
    MasteryLevel.SILVER: 40,
    MasteryLevel.GOLD: 70,
    MasteryLevel.MYTHIC: 90,
}

# Weights of deities viewed, stories read and quiz average in overall progress
DEITY_WEIGHT = 0.4
STORY_WEIGHT = 0.3
QUIZ_WEIGHT = 0.3


class PantheonMastery(LearningModel):
    """Mastery summary for one pantheon."""

    pantheon_id: str
    pantheon_name: str
    level: MasteryLevel
    progress: int = Field(ge=0, le=100)
    deities_viewed: int = 0
    total_deities: int = 0
    stories_read: int = 0
    total_stories: int = 0
    quiz_score: int = 0


def get_mastery_level(progress: float) -> MasteryLevel:
    """Highest tier whose threshold ``progress`` reaches."""
    level = MasteryLevel.NOVICE
    for candidate, threshold in MASTERY_THRESHOLDS.items():
        if progress >= threshold:
            level = candidate
    return level


def _round(value: float) -> int:
    return int(value + 0.5)


def calculate_pantheon_mastery(pantheon_id: str,
                               catalogue: ContentCatalogue,
                               progress: ProgressSnapshot) -> PantheonMastery:
    """Weighted progress through one pantheon's deities, stories and quizzes."""
    deity_ids = [
        deity_id for deity_id, deity in catalogue.deities.items()
        if deity.pantheon_id == pantheon_id
    ]
    story_ids = [
        story_id for story_id, story in catalogue.stories.items()
        if story.pantheon_id == pantheon_id
    ]

    viewed = set(progress.deities_viewed)
    read = set(progress.stories_read)
    viewed_count = sum(1 for deity_id in deity_ids if deity_id in viewed)
    read_count = sum(1 for story_id in story_ids if story_id in read)

    pantheon_scores = [
        score for quiz_id, score in progress.quiz_scores.items()
        if pantheon_id in quiz_id
    ]
    quiz_average = sum(pantheon_scores) / len(pantheon_scores) if pantheon_scores else 0.0

    deity_progress = viewed_count / len(deity_ids) * 100 if deity_ids else 0.0
    story_progress = read_count / len(story_ids) * 100 if story_ids else 0.0
    overall = min(100, _round(
        deity_progress * DEITY_WEIGHT + story_progress * STORY_WEIGHT + quiz_average * QUIZ_WEIGHT
    ))

    return PantheonMastery(
        pantheon_id=pantheon_id,
        pantheon_name=catalogue.pantheon_name(pantheon_id),
        level=get_mastery_level(overall),
        progress=overall,
        deities_viewed=viewed_count,
        total_deities=len(deity_ids),
        stories_read=read_count,
        total_stories=len(story_ids),
        quiz_score=_round(quiz_average),
    )


def get_all_pantheon_masteries(catalogue: ContentCatalogue,
                               progress: ProgressSnapshot) -> List[PantheonMastery]:
    """Mastery for every pantheon in the catalogue, most advanced first."""
    with logfire.span("progress_tracking.all_masteries") as span:
        pantheon_ids = list(dict.fromkeys(deity.pantheon_id for deity in catalogue.deities.values()))
        masteries = [
            calculate_pantheon_mastery(pantheon_id, catalogue, progress)
            for pantheon_id in pantheon_ids
        ]
        span.set_attribute("pantheons", len(masteries))
        return sorted(masteries, key=lambda mastery: mastery.progress, reverse=True)


def get_overall_mastery_level(masteries: List[PantheonMastery]) -> MasteryLevel:
    """Mastery tier of the average pantheon progress."""
    if not masteries:
        return MasteryLevel.NOVICE
    average = sum(mastery.progress for mastery in masteries) / len(masteries)
    return get_mastery_level(average)
