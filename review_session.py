"""
Review session aggregation.

``ReviewTracker`` is the scheduler's facade for the presentation layer: it
mints cards from learner progress, keeps the due list, applies ratings and
maintains the daily counters and review streak. It never persists anything;
``export_state()`` returns the record the progress collaborator stores.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

import logfire
from pydantic import Field, ValidationError, field_validator

from learning_config import SchedulerSettings, get_config
from learning_entities import ContentCatalogue, LearningModel
from learning_errors import InvalidRatingError
from progress_tracking import ProgressSnapshot
from quiz_scoring import score_percentage
from review_cards import ReviewCard, mint_cards
from review_scheduler import (
    CardState,
    coerce_rating,
    create_initial_card_state,
    is_card_due,
    review,
    try_load_card_state,
)


logger = logging.getLogger(__name__)


REVIEW_SCHEMA_VERSION = 2


class ReviewStats(LearningModel):
    """Running review statistics."""
    total_reviewed: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    average_accuracy: int = Field(default=0, ge=0, le=100)
    correct_today: int = Field(default=0, ge=0)
    incorrect_today: int = Field(default=0, ge=0)


class TodayStats(LearningModel):
    """Reviews completed since local midnight."""
    reviewed: int = 0
    correct: int = 0
    accuracy: int = 0


class ReviewState(LearningModel):
    """Everything the scheduler needs to resume, as handed to persistence."""
    schema_version: int = Field(default=REVIEW_SCHEMA_VERSION, ge=1)
    cards: Dict[str, CardState] = Field(default_factory=dict)
    today_reviewed: List[str] = Field(default_factory=list)
    last_review_date: Optional[date] = None
    stats: ReviewStats = Field(default_factory=ReviewStats)

    @field_validator("last_review_date", mode="before")
    @classmethod
    def blank_review_date(cls, v: Any) -> Any:
        """Older clients stored an empty string before the first review."""
        return None if v == "" else v


def load_review_state(record: Optional[Mapping[str, Any]],
                      today: Optional[date] = None,
                      settings: Optional[SchedulerSettings] = None) -> ReviewState:
    """Load a persisted review record, filling fields older versions lack.

    Card states are loaded one by one so a single unreadable card does not
    cost the learner the rest of their history.
    """
    if not record:
        return ReviewState()

    record = dict(record)
    raw_cards = record.pop("cards", None) or {}
    try:
        state = ReviewState.model_validate(record)
    except ValidationError as e:
        logger.warning("Discarding unreadable review record: %s", e)
        state = ReviewState()

    cards: Dict[str, CardState] = {}
    if isinstance(raw_cards, Mapping):
        for card_id, card_record in raw_cards.items():
            card_state = try_load_card_state(card_record, today, settings)
            if card_state is not None:
                cards[card_id] = card_state
    else:
        logger.warning("Discarding card map that is not a mapping")

    if state.schema_version < REVIEW_SCHEMA_VERSION:
        logger.info(
            "Upgrading review record from schema %d to %d",
            state.schema_version, REVIEW_SCHEMA_VERSION,
        )
    return state.model_copy(update={"cards": cards, "schema_version": REVIEW_SCHEMA_VERSION})


class ReviewTracker:
    """Per-learner review session state.

    A tracker belongs to exactly one learner and is not shared across
    threads.
    """

    def __init__(self,
                 state: Optional[ReviewState] = None,
                 clock: Callable[[], date] = date.today,
                 settings: Optional[SchedulerSettings] = None):
        """Initialize the tracker.

        Args:
            state: Previously exported state; a fresh one when omitted
            clock: Returns the learner's local date
            settings: Scheduler constants override
        """
        self.state = state or ReviewState()
        self.clock = clock
        self.settings = settings or get_config().scheduler
        self._cards: List[ReviewCard] = []
        self._due_cards: List[ReviewCard] = []
        self.roll_over()

    @classmethod
    def from_record(cls,
                    record: Optional[Mapping[str, Any]],
                    clock: Callable[[], date] = date.today,
                    settings: Optional[SchedulerSettings] = None) -> ReviewTracker:
        """Build a tracker from a persisted record."""
        return cls(load_review_state(record, clock(), settings), clock=clock, settings=settings)

    # region Day boundaries
    def roll_over(self) -> None:
        """Reset daily counters when the local date has moved on.

        A gap of more than one day since the last review breaks the streak.
        """
        today = self.clock()
        last = self.state.last_review_date
        if last is None or last == today:
            return

        stats = self.state.stats
        stats.correct_today = 0
        stats.incorrect_today = 0
        self.state.today_reviewed = []
        if last < today - timedelta(days=1) and stats.current_streak:
            logger.info("Review streak of %d days broken", stats.current_streak)
            stats.current_streak = 0

    def _advance_streak(self, today: date) -> None:
        stats = self.state.stats
        last = self.state.last_review_date
        if last == today:
            return
        if last == today - timedelta(days=1):
            stats.current_streak += 1
        else:
            stats.current_streak = 1
        stats.longest_streak = max(stats.longest_streak, stats.current_streak)
        logfire.info("Review streak advanced", current_streak=stats.current_streak)
    # endregion

    # region Cards
    def generate_cards_from_progress(self,
                                     progress: ProgressSnapshot,
                                     catalogue: ContentCatalogue) -> List[ReviewCard]:
        """Mint cards for the learner's progress and refresh the due list.

        Args:
            progress: What the learner has viewed and read
            catalogue: Content records to mint cards from

        Returns:
            Every minted card; ``due_cards`` holds the subset to review now
        """
        self.roll_over()
        today = self.clock()
        with logfire.span("review_session.generate_cards") as span:
            cards = mint_cards(progress, catalogue)
            new_cards = 0
            for card in cards:
                if card.id not in self.state.cards:
                    self.state.cards[card.id] = create_initial_card_state(today, self.settings)
                    new_cards += 1

            self._cards = cards
            self._refresh_due(today)
            span.set_attribute("cards", len(cards))
            span.set_attribute("new_cards", new_cards)
            span.set_attribute("due_cards", len(self._due_cards))
            logger.info("Minted %d cards (%d new, %d due)", len(cards), new_cards, len(self._due_cards))
            return cards

    def _refresh_due(self, today: date) -> None:
        reviewed_today = set(self.state.today_reviewed)
        self._due_cards = [
            card for card in self._cards
            if is_card_due(self.state.cards[card.id], today) and card.id not in reviewed_today
        ]

    @property
    def due_cards(self) -> List[ReviewCard]:
        """Cards due for review that have not been reviewed today."""
        return list(self._due_cards)

    @property
    def due_count(self) -> int:
        """Number of due cards."""
        return len(self._due_cards)

    def get_card_state(self, card_id: str) -> Optional[CardState]:
        """Current scheduling state of a card, if it is tracked."""
        return self.state.cards.get(card_id)
    # endregion

    # region Reviews
    def review_card(self, card_id: str, rating: Any) -> CardState:
        """Apply a recall rating to a card.

        Args:
            card_id: Card being reviewed; untracked ids start from a new state
            rating: 1=Again, 2=Hard, 3=Good, 4=Easy

        Returns:
            The card's updated state

        Raises:
            InvalidRatingError: If ``rating`` is not 1-4
        """
        try:
            rating = coerce_rating(rating)
        except InvalidRatingError:
            logger.error("Rejected rating %r for card %s", rating, card_id)
            raise

        self.roll_over()
        today = self.clock()
        with logfire.span("review_session.review_card") as span:
            current = self.state.cards.get(card_id) or create_initial_card_state(today, self.settings)
            updated = review(current, rating, today=today, settings=self.settings)
            self.state.cards[card_id] = updated

            stats = self.state.stats
            correct = rating.is_correct
            previous_total = stats.total_reviewed
            previous_correct = int(stats.average_accuracy / 100 * previous_total + 0.5)
            stats.total_reviewed = previous_total + 1
            stats.average_accuracy = score_percentage(
                previous_correct + (1 if correct else 0), stats.total_reviewed
            )
            if correct:
                stats.correct_today += 1
            else:
                stats.incorrect_today += 1

            self._advance_streak(today)
            self.state.today_reviewed.append(card_id)
            self.state.last_review_date = today
            self._due_cards = [card for card in self._due_cards if card.id != card_id]

            span.set_attribute("card_id", card_id)
            span.set_attribute("rating", int(rating))
            span.set_attribute("next_review", updated.next_review.isoformat())
            return updated

    def get_today_stats(self) -> TodayStats:
        """Reviews, correct answers and accuracy since local midnight."""
        self.roll_over()
        reviewed = len(self.state.today_reviewed)
        correct = self.state.stats.correct_today
        return TodayStats(
            reviewed=reviewed,
            correct=correct,
            accuracy=score_percentage(correct, reviewed),
        )

    def reset_today_progress(self) -> None:
        """Forget today's reviews without touching card schedules.

        Cards reviewed today that are still due by their schedule return to
        the due list.
        """
        self.state.today_reviewed = []
        self.state.stats.correct_today = 0
        self.state.stats.incorrect_today = 0
        self._refresh_due(self.clock())
    # endregion

    def export_state(self) -> Dict[str, Any]:
        """JSON-ready record for the persistence collaborator."""
        return self.state.model_dump(mode="json")
