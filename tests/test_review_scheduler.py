"""
Tests for the spaced-repetition scheduler.
"""

import logging
from datetime import date, timedelta
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from learning_config import SchedulerSettings
from learning_errors import InvalidRatingError
from review_scheduler import (
    CardPhase,
    CardState,
    DifficultyRating,
    RATING_LABELS,
    card_phase,
    coerce_rating,
    create_initial_card_state,
    due_count,
    is_card_due,
    load_card_state,
    review,
    select_due_cards,
    try_load_card_state,
)


TODAY = date(2026, 3, 14)


@pytest.fixture
def settings():
    """Default scheduler constants."""
    return SchedulerSettings()


@pytest.fixture
def new_card(settings):
    """A card surfaced today."""
    return create_initial_card_state(TODAY, settings)


class TestInitialState:
    """Cards start due with the default ease."""

    def test_defaults(self, new_card):
        """Interval 1, default ease, due today, nothing reviewed."""
        assert new_card.interval == 1
        assert new_card.ease_factor == 2.5
        assert new_card.next_review == TODAY
        assert new_card.reviews == 0
        assert new_card.lapses == 0
        assert is_card_due(new_card, TODAY)

    def test_ease_floor_enforced_on_model(self):
        """A state below the ease floor is invalid."""
        with pytest.raises(ValueError):
            CardState(next_review=TODAY, ease_factor=1.2)

    def test_due_date_required(self):
        """A state never picks its due date from the wall clock."""
        with pytest.raises(ValidationError):
            CardState(interval=3)


class TestReview:
    """State transitions for each rating."""

    def test_again_resets_interval(self, settings):
        """Again resets to one day and counts a lapse."""
        state = CardState(interval=20, next_review=TODAY, ease_factor=2.5)
        updated = review(state, 1, today=TODAY, settings=settings)
        assert updated.interval == 1
        assert updated.lapses == 1
        assert updated.ease_factor == 2.3
        assert updated.reviews == 1
        assert updated.next_review == TODAY + timedelta(days=1)

    def test_hard_grows_slowly(self, settings):
        """Hard multiplies the interval by 1.2 and lowers ease."""
        state = CardState(interval=10, next_review=TODAY, ease_factor=2.5)
        updated = review(state, DifficultyRating.HARD, today=TODAY, settings=settings)
        assert updated.interval == 12
        assert updated.ease_factor == 2.4
        assert updated.lapses == 0

    def test_hard_from_one_day(self, new_card, settings):
        """Hard on a new card still moves it forward a day."""
        updated = review(new_card, 2, today=TODAY, settings=settings)
        assert updated.interval == 2

    def test_good_multiplies_by_ease(self, new_card, settings):
        """Good multiplies by ease and leaves ease alone."""
        updated = review(new_card, 3, today=TODAY, settings=settings)
        assert updated.interval == 3
        assert updated.ease_factor == 2.5
        assert updated.next_review == TODAY + timedelta(days=3)

    def test_easy_adds_bonus(self, new_card, settings):
        """Easy multiplies by ease and the easy bonus, then raises ease."""
        updated = review(new_card, 4, today=TODAY, settings=settings)
        assert updated.interval == 4
        assert updated.ease_factor == 2.6

    def test_good_run_never_shrinks(self, new_card, settings):
        """A run of Good ratings gives a non-decreasing interval sequence."""
        state = new_card
        intervals = []
        day = TODAY
        for _ in range(8):
            state = review(state, 3, today=day, settings=settings)
            intervals.append(state.interval)
            day = state.next_review
        assert intervals[:4] == [3, 8, 20, 50]
        assert intervals == sorted(intervals)

    def test_ease_never_below_floor(self, new_card, settings):
        """Repeated Again ratings bottom out at 1.3."""
        state = new_card
        for _ in range(12):
            state = review(state, 1, today=TODAY, settings=settings)
            assert state.ease_factor >= 1.3
        assert state.ease_factor == 1.3
        assert state.lapses == 12

    def test_mixed_ratings_keep_invariants(self, new_card, settings):
        """Interval stays at least one day and ease stays above the floor."""
        state = new_card
        for rating in [2, 2, 1, 2, 4, 1, 1, 3, 2, 2, 2, 2, 4]:
            previous = state
            state = review(state, rating, today=TODAY, settings=settings)
            assert state.interval >= 1
            assert state.ease_factor >= 1.3
            assert state.reviews == previous.reviews + 1
            if rating == 1:
                assert state.interval == 1
                assert state.lapses == previous.lapses + 1

    def test_input_state_not_mutated(self, new_card, settings):
        """Review returns a new state."""
        review(new_card, 4, today=TODAY, settings=settings)
        assert new_card.interval == 1
        assert new_card.reviews == 0

    def test_records_last_rating(self, new_card, settings):
        """The last rating and review date are stored."""
        updated = review(new_card, 3, today=TODAY, settings=settings)
        assert updated.last_rating == DifficultyRating.GOOD
        assert updated.last_reviewed == TODAY

    def test_easy_run_stays_within_cap(self, new_card, settings):
        """Thirty Easy ratings never push the interval past the cap."""
        state = new_card
        for _ in range(30):
            state = review(state, 4, today=TODAY, settings=settings)
            assert 1 <= state.interval <= settings.max_interval_days
            assert state.next_review == TODAY + timedelta(days=state.interval)
        assert state.interval == settings.max_interval_days

    def test_custom_interval_cap(self, new_card):
        """Good ratings grow up to a configured cap and stay there."""
        settings = SchedulerSettings(max_interval_days=30)
        state = new_card
        intervals = []
        for _ in range(6):
            state = review(state, 3, today=TODAY, settings=settings)
            intervals.append(state.interval)
        assert intervals == [3, 8, 20, 30, 30, 30]

    def test_custom_settings(self, new_card):
        """Scheduler constants come from settings."""
        settings = SchedulerSettings(again_ease_penalty=0.5)
        updated = review(new_card, 1, today=TODAY, settings=settings)
        assert updated.ease_factor == 2.0


class TestRatingValidation:
    """Out-of-range ratings are rejected at the boundary."""

    @pytest.mark.parametrize("value", [0, 5, -1, "good", None, True, 2.5])
    def test_rejects(self, value):
        """Anything but 1-4 raises."""
        with pytest.raises(InvalidRatingError):
            coerce_rating(value)

    def test_invalid_rating_is_value_error(self):
        """Callers catching ValueError see the rejection too."""
        with pytest.raises(ValueError):
            coerce_rating(9)

    @pytest.mark.parametrize("value,expected", [
        (1, DifficultyRating.AGAIN),
        (4, DifficultyRating.EASY),
        (3.0, DifficultyRating.GOOD),
    ])
    def test_accepts(self, value, expected):
        """Integers and integral floats are accepted."""
        assert coerce_rating(value) == expected

    def test_review_rejects_without_touching_state(self, new_card, settings):
        """An invalid rating leaves the state unchanged."""
        with pytest.raises(InvalidRatingError):
            review(new_card, 7, today=TODAY, settings=settings)
        assert new_card.reviews == 0

    def test_rating_labels(self):
        """Every rating has a label."""
        assert RATING_LABELS[DifficultyRating.AGAIN]["label"] == "Forgot"
        assert set(RATING_LABELS) == set(DifficultyRating)


class TestCardPhase:
    """Conceptual phases derived from state."""

    def test_phases(self, new_card, settings):
        """New, learning, review and lapsed."""
        assert card_phase(new_card, settings) == CardPhase.NEW

        learning = review(new_card, 3, today=TODAY, settings=settings)
        assert card_phase(learning, settings) == CardPhase.LEARNING

        graduated = review(learning, 3, today=TODAY, settings=settings)
        assert graduated.interval >= settings.graduation_interval_days
        assert card_phase(graduated, settings) == CardPhase.REVIEW

        lapsed = review(graduated, 1, today=TODAY, settings=settings)
        assert card_phase(lapsed, settings) == CardPhase.LAPSED


class TestDueSelection:
    """Due-set selection."""

    def test_due_on_and_after_scheduled_date(self):
        """Due on the day and every day after."""
        state = CardState(next_review=TODAY)
        assert is_card_due(state, TODAY)
        assert is_card_due(state, TODAY + timedelta(days=5))
        assert not is_card_due(state, TODAY - timedelta(days=1))

    def test_select_due_cards(self):
        """Future cards are excluded; untracked cards are due."""
        cards = [SimpleNamespace(id=card_id) for card_id in ["past", "today", "future", "untracked"]]
        states = {
            "past": CardState(next_review=TODAY - timedelta(days=3)),
            "today": CardState(next_review=TODAY),
            "future": CardState(next_review=TODAY + timedelta(days=1)),
        }
        due = select_due_cards(cards, states, TODAY)
        assert [card.id for card in due] == ["past", "today", "untracked"]

    def test_select_due_cards_custom_key(self):
        """Card ids can be read through a key function."""
        cards = [{"card": "a"}, {"card": "b"}]
        states = {"a": CardState(next_review=TODAY + timedelta(days=2)), "b": CardState(next_review=TODAY)}
        assert select_due_cards(cards, states, TODAY, key=lambda card: card["card"]) == [{"card": "b"}]

    def test_due_count(self):
        """Counts tracked cards only."""
        states = {
            "a": CardState(next_review=TODAY),
            "b": CardState(next_review=TODAY + timedelta(days=1)),
            "c": CardState(next_review=TODAY - timedelta(days=9)),
        }
        assert due_count(states, TODAY) == 2


class TestLoadCardState:
    """Persisted card states are default-filled on load."""

    def test_fills_missing_fields(self, settings):
        """Older records without ease or lapses load with defaults."""
        state = load_card_state({"interval": 4, "nextReview": "2026-03-01"}, TODAY, settings)
        assert state.interval == 4
        assert state.next_review == date(2026, 3, 1)
        assert state.ease_factor == 2.5
        assert state.lapses == 0
        assert state.reviews == 0

    def test_missing_next_review_is_due_today(self, settings):
        """A record with no due date is due on load."""
        state = load_card_state({"interval": 6, "easeFactor": 2.1}, TODAY, settings)
        assert state.next_review == TODAY
        assert state.ease_factor == 2.1

    def test_null_fields_treated_as_missing(self, settings):
        """Null values fall back to defaults."""
        state = load_card_state({"interval": 2, "easeFactor": None, "nextReview": None}, TODAY, settings)
        assert state.ease_factor == 2.5
        assert state.next_review == TODAY

    def test_snake_case_record(self, settings):
        """Field names load as well as camelCase aliases."""
        state = load_card_state({"interval": 3, "next_review": "2026-03-20", "ease_factor": 1.9}, TODAY, settings)
        assert state.next_review == date(2026, 3, 20)
        assert state.ease_factor == 1.9

    def test_try_load_discards_garbage(self, settings):
        """Unreadable records are dropped instead of raising."""
        assert try_load_card_state("nonsense", TODAY, settings) is None
        assert try_load_card_state({"interval": 0}, TODAY, settings) is None
        assert try_load_card_state({"interval": 2}, TODAY, settings).interval == 2

    def test_try_load_logs_discarded_state(self, settings, caplog):
        """Discarded states are reported in the log."""
        with caplog.at_level(logging.WARNING, logger="review_scheduler"):
            try_load_card_state({"interval": "soon"}, TODAY, settings)
        assert "Discarding unreadable card state" in caplog.text

