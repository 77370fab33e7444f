"""
Pydantic entity models for the relationship quiz.

These models describe the read-only content projection the quiz is built
from and the multiple-choice questions the synthesizer hands to the
presentation layer.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


OPTION_COUNT = 4


class LearningModel(BaseModel):
    """Base class for engine records.

    Accepts both snake_case and the camelCase keys written by the browser
    client, and serialises by field name.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class DifficultyLevel(str, Enum):
    """Quiz difficulty levels."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(str, Enum):
    """Kinds of relationship quiz questions."""
    PARENT = "parent"
    CHILD = "child"
    SIBLING = "sibling"
    SPOUSE = "spouse"
    DOMAIN = "domain"


class Entity(LearningModel):
    """Minimal projection of a content item (usually a deity)."""

    id: str = Field(..., min_length=1, description="Unique entity identifier")
    name: str = Field(..., min_length=1, description="Display name")
    domain: List[str] = Field(
        default_factory=list,
        description="Domain tags such as 'sky' or 'wisdom'"
    )
    image_url: Optional[str] = Field(default=None, description="Portrait URL")
    pantheon_id: Optional[str] = Field(default=None, description="Owning pantheon")

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        """Strip surrounding whitespace from the name."""
        v = v.strip()
        if not v:
            raise ValueError("Entity name cannot be blank")
        return v

    @field_validator("domain", mode="before")
    @classmethod
    def normalize_domain(cls, v: Optional[List[str]]) -> List[str]:
        """Strip and deduplicate domain tags, dropping blanks."""
        if not v:
            return []
        cleaned = [tag.strip() for tag in v if tag and tag.strip()]
        return list(dict.fromkeys(cleaned))

    def has_domain(self, tag: str) -> bool:
        """Check whether this entity carries a domain tag (case-insensitive)."""
        wanted = tag.lower()
        return any(existing.lower() == wanted for existing in self.domain)


class RelationshipQuestion(LearningModel):
    """A single multiple-choice question in a relationship quiz."""

    id: str = Field(default_factory=lambda: str(uuid4()), description="Question identifier")
    entity_id: str = Field(..., description="Entity the question is about")
    entity_name: str = Field(..., description="Name of the entity the question is about")
    entity_image_url: Optional[str] = Field(default=None)
    question_type: QuestionType
    question_text: str = Field(..., min_length=1)
    correct_answer: str = Field(..., min_length=1)
    correct_entity_id: Optional[str] = Field(
        default=None,
        description="Entity whose name is the correct answer"
    )
    options: List[str] = Field(..., description="Shuffled answer options")
    difficulty: DifficultyLevel = DifficultyLevel.MEDIUM

    @field_validator("question_text")
    @classmethod
    def clean_question_text(cls, v: str) -> str:
        """Normalize question text."""
        v = v.strip()
        # Ensure question ends with a question mark
        if v and not v.endswith("?"):
            v += "?"
        return v

    @model_validator(mode="after")
    def validate_options(self) -> "RelationshipQuestion":
        """Exactly four distinct options, one of which is the answer."""
        if len(self.options) != OPTION_COUNT:
            raise ValueError(f"Questions need exactly {OPTION_COUNT} options, got {len(self.options)}")
        if len(set(self.options)) != len(self.options):
            raise ValueError("Question options must be distinct")
        if self.options.count(self.correct_answer) != 1:
            raise ValueError("Correct answer must appear exactly once in options")
        return self

    @property
    def dedup_key(self) -> tuple:
        """Key under which two questions count as the same question."""
        return (self.entity_id, QuestionType(self.question_type).value, self.correct_entity_id or "")

    def is_correct(self, choice: str) -> bool:
        """Grade a chosen option."""
        return choice == self.correct_answer


class DeityRecord(LearningModel):
    """Catalogue entry used to mint review cards for a deity."""

    name: str = Field(..., min_length=1)
    domains: List[str] = Field(default_factory=list)
    symbols: List[str] = Field(default_factory=list)
    pantheon_id: str = Field(..., min_length=1)
    image_url: Optional[str] = None


class StoryRecord(LearningModel):
    """Catalogue entry used to mint review cards for a story."""

    title: str = Field(..., min_length=1)
    characters: List[str] = Field(default_factory=list)
    pantheon_id: Optional[str] = None


class ContentCatalogue(LearningModel):
    """Read-only content snapshot keyed by entity id."""

    deities: Dict[str, DeityRecord] = Field(default_factory=dict)
    stories: Dict[str, StoryRecord] = Field(default_factory=dict)
    pantheon_names: Dict[str, str] = Field(default_factory=dict)

    def find_deity(self, deity_id: str) -> Optional[DeityRecord]:
        """Look up a deity, tolerating id casing differences."""
        return self.deities.get(deity_id) or self.deities.get(deity_id.lower())

    def find_story(self, story_id: str) -> Optional[StoryRecord]:
        """Look up a story, tolerating id casing differences."""
        return self.stories.get(story_id) or self.stories.get(story_id.lower())

    def pantheon_name(self, pantheon_id: str) -> str:
        """Display name of a pantheon, derived from its id when unknown."""
        if pantheon_id in self.pantheon_names:
            return self.pantheon_names[pantheon_id]
        return pantheon_id.replace("-pantheon", "").replace("-", " ").title()
