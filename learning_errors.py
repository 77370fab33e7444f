"""
Error types and degradation records for the learning engine.

Expected edge cases (undersized content, missing edges) never raise; they are
described by a ``QuizDegradation`` record and logged. Programming errors at
the engine boundary raise subclasses of ``LearningEngineError``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict

import logfire
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


class LearningEngineError(Exception):
    """Base class for errors raised by the learning engine."""


class InvalidRatingError(LearningEngineError, ValueError):
    """Raised when a recall rating falls outside Again..Easy."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Recall rating must be an integer from 1 to 4, got {value!r}")


class DegradationType(str, Enum):
    """Ways quiz synthesis can fall short of the request."""

    NO_ENTITIES = "no_entities"
    NO_QUALIFYING_EDGES = "no_qualifying_edges"
    DANGLING_EDGE = "dangling_edge"
    INSUFFICIENT_DISTRACTORS = "insufficient_distractors"
    SHORT_QUIZ = "short_quiz"


class QuizDegradation(BaseModel):
    """Structured record of a graceful degradation during quiz synthesis."""

    degradation_type: DegradationType
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)

    def to_log_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            'degradation_type': self.degradation_type.value,
            'message': self.message,
            'context': self.context,
            'timestamp': self.timestamp.isoformat(),
        }


def report_degradation(
    degradation_type: DegradationType,
    message: str,
    **context: Any,
) -> QuizDegradation:
    """Log a degradation and return its record."""
    degradation = QuizDegradation(
        degradation_type=degradation_type,
        message=message,
        context=context,
    )
    logfire.warning(
        "Quiz degraded: {degradation_type}",
        degradation_type=degradation_type.value,
        detail=message,
        context=context,
    )
    logger.info("Quiz degraded: %s", degradation.to_log_dict())
    return degradation
