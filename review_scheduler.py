"""
Spaced-repetition scheduling for review cards.

An SM-2 family scheduler: each recall rating moves a card's interval and ease
factor, and the next review lands ``interval`` calendar days after the review.
All functions are pure; the caller owns and persists the returned states.
"""

from __future__ import annotations

import logging
import math
from datetime import date, timedelta
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, List, Mapping, Optional, TypeVar

import logfire
from pydantic import Field, ValidationError

from learning_config import SchedulerSettings, get_config
from learning_entities import LearningModel
from learning_errors import InvalidRatingError


logger = logging.getLogger(__name__)

C = TypeVar("C")


class DifficultyRating(IntEnum):
    """Learner's self-reported recall quality."""
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @property
    def is_correct(self) -> bool:
        """Good and Easy count as a correct recall."""
        return self >= DifficultyRating.GOOD


class CardPhase(str, Enum):
    """Conceptual learning phase of a card."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    LAPSED = "lapsed"


RATING_LABELS: Dict[DifficultyRating, Dict[str, str]] = {
    DifficultyRating.AGAIN: {"label": "Forgot", "description": "Could not remember"},
    DifficultyRating.HARD: {"label": "Hard", "description": "Remembered with difficulty"},
    DifficultyRating.GOOD: {"label": "Good", "description": "Remembered correctly"},
    DifficultyRating.EASY: {"label": "Easy", "description": "Remembered easily"},
}


class CardState(LearningModel):
    """Scheduling state of one review card."""

    interval: int = Field(default=1, ge=1, description="Days until the next review")
    next_review: date = Field(..., description="Calendar date the card is due")
    ease_factor: float = Field(default=2.5, ge=1.3, description="Interval growth multiplier")
    reviews: int = Field(default=0, ge=0, description="Completed reviews")
    lapses: int = Field(default=0, ge=0, description="Again ratings received")
    last_rating: Optional[DifficultyRating] = Field(default=None, description="Most recent rating")
    last_reviewed: Optional[date] = Field(default=None, description="Date of the most recent review")


def coerce_rating(value: Any) -> DifficultyRating:
    """Validate a rating coming from the presentation layer."""
    if isinstance(value, bool):
        raise InvalidRatingError(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidRatingError(value)
        value = int(value)
    try:
        return DifficultyRating(value)
    except (ValueError, TypeError) as e:
        raise InvalidRatingError(value) from e


def create_initial_card_state(today: Optional[date] = None,
                              settings: Optional[SchedulerSettings] = None) -> CardState:
    """State for a card surfaced for the first time; due immediately."""
    settings = settings or get_config().scheduler
    return CardState(
        interval=1,
        next_review=today or date.today(),
        ease_factor=settings.default_ease_factor,
    )


def load_card_state(record: Mapping[str, Any],
                    today: Optional[date] = None,
                    settings: Optional[SchedulerSettings] = None) -> CardState:
    """Rebuild a persisted card state, filling fields older records lack."""
    settings = settings or get_config().scheduler
    present = {key: value for key, value in record.items() if value is not None}
    if "next_review" not in present and "nextReview" not in present:
        present["next_review"] = today or date.today()
    state = CardState.model_validate(present)
    missing = {}
    if "ease_factor" not in state.model_fields_set:
        missing["ease_factor"] = settings.default_ease_factor
    return state.model_copy(update=missing) if missing else state


def _grow(interval: int, multiplier: float, max_interval: int) -> int:
    # Round before ceil so float noise (2.3 * 10 = 22.999...) does not add a day
    return min(max_interval, max(1, math.ceil(round(interval * multiplier, 6))))


def review(state: CardState,
           rating: Any,
           today: Optional[date] = None,
           settings: Optional[SchedulerSettings] = None) -> CardState:
    """Apply one recall rating and return the card's next state.

    Args:
        state: Current card state
        rating: 1=Again, 2=Hard, 3=Good, 4=Easy
        today: Review date (defaults to the local date)
        settings: Scheduler constants override

    Returns:
        New card state; ``state`` is left untouched

    Raises:
        InvalidRatingError: If ``rating`` is not 1-4
    """
    rating = coerce_rating(rating)
    settings = settings or get_config().scheduler
    today = today or date.today()

    interval = state.interval
    ease = state.ease_factor
    lapses = state.lapses

    if rating == DifficultyRating.AGAIN:
        lapses += 1
        interval = 1
        ease = max(settings.min_ease_factor, ease - settings.again_ease_penalty)
    elif rating == DifficultyRating.HARD:
        interval = _grow(interval, settings.hard_interval_multiplier, settings.max_interval_days)
        ease = max(settings.min_ease_factor, ease - settings.hard_ease_penalty)
    elif rating == DifficultyRating.GOOD:
        interval = _grow(interval, ease, settings.max_interval_days)
    else:
        interval = _grow(interval, ease * settings.easy_bonus, settings.max_interval_days)
        ease = ease + settings.easy_ease_increment

    updated = state.model_copy(update={
        "interval": interval,
        "next_review": today + timedelta(days=interval),
        "ease_factor": round(ease, 2),
        "reviews": state.reviews + 1,
        "lapses": lapses,
        "last_rating": rating,
        "last_reviewed": today,
    })
    logger.debug(
        "Card reviewed with %s: interval %d -> %d, ease %.2f -> %.2f",
        rating.name, state.interval, updated.interval, state.ease_factor, updated.ease_factor,
    )
    return updated


def card_phase(state: CardState, settings: Optional[SchedulerSettings] = None) -> CardPhase:
    """Conceptual phase of a card.

    NEW until the first review, LAPSED after an Again rating until the next
    successful one, then LEARNING below the graduation interval and REVIEW
    at or above it.
    """
    settings = settings or get_config().scheduler
    if state.reviews == 0:
        return CardPhase.NEW
    if state.last_rating == DifficultyRating.AGAIN:
        return CardPhase.LAPSED
    if state.interval < settings.graduation_interval_days:
        return CardPhase.LEARNING
    return CardPhase.REVIEW


def is_card_due(state: CardState, today: Optional[date] = None) -> bool:
    """A card is due on or after its scheduled date."""
    return state.next_review <= (today or date.today())


def select_due_cards(cards: Iterable[C],
                     states: Mapping[str, CardState],
                     today: Optional[date] = None,
                     key=lambda card: card.id) -> List[C]:
    """Cards whose state is due today; cards without a state count as new and due.

    Args:
        cards: Cards to filter, order preserved
        states: Card states keyed by card id
        today: Comparison date
        key: Extracts the card id from a card

    Returns:
        The due subset of ``cards``
    """
    today = today or date.today()
    with logfire.span("review_scheduler.select_due_cards") as span:
        due = []
        for card in cards:
            state = states.get(key(card))
            if state is None or is_card_due(state, today):
                due.append(card)
        span.set_attribute("due_count", len(due))
        return due


def due_count(states: Mapping[str, CardState], today: Optional[date] = None) -> int:
    """Number of tracked cards due today."""
    today = today or date.today()
    return sum(1 for state in states.values() if is_card_due(state, today))


def try_load_card_state(record: Any,
                        today: Optional[date] = None,
                        settings: Optional[SchedulerSettings] = None) -> Optional[CardState]:
    """Like ``load_card_state`` but logs and returns None for unreadable records."""
    if not isinstance(record, Mapping):
        logger.warning("Discarding card state that is not a mapping: %r", record)
        return None
    try:
        return load_card_state(record, today, settings)
    except ValidationError as e:
        logger.warning("Discarding unreadable card state: %s", e)
        return None
