"""
Example usage of the review scheduler.

Mints cards from a learner's progress, reviews whatever is due and prints
the exported state the progress store would persist.
"""

import json
import logging
import random

from learning_config import configure_observability
from learning_entities import ContentCatalogue, DeityRecord, StoryRecord
from progress_tracking import get_all_pantheon_masteries, load_progress
from review_scheduler import RATING_LABELS, card_phase
from review_session import ReviewTracker


CATALOGUE = ContentCatalogue(
    deities={
        "odin": DeityRecord(name="Odin", domains=["Wisdom", "War", "Poetry"],
                            symbols=["Ravens", "Gungnir"], pantheon_id="norse"),
        "thor": DeityRecord(name="Thor", domains=["Thunder"], symbols=["Mjolnir"], pantheon_id="norse"),
        "ra": DeityRecord(name="Ra", domains=["Sun"], symbols=["Sun disk"], pantheon_id="egyptian-pantheon"),
    },
    stories={
        "ragnarok": StoryRecord(title="Ragnarok", characters=["Odin", "Fenrir"], pantheon_id="norse"),
    },
)

# Record as an older client might have stored it
PROGRESS_RECORD = {
    "deitiesViewed": ["odin", "thor", "ra"],
    "storiesRead": ["ragnarok"],
    "quizScores": {"norse-relationships": 80},
}


def main():
    """Main example function."""
    configure_observability()
    logger = logging.getLogger(__name__)

    progress = load_progress(PROGRESS_RECORD)
    for mastery in get_all_pantheon_masteries(CATALOGUE, progress):
        logger.info(f"{mastery.pantheon_name}: {mastery.progress}% ({mastery.level.value})")

    tracker = ReviewTracker()
    tracker.generate_cards_from_progress(progress, CATALOGUE)
    logger.info(f"{tracker.due_count} cards due")

    rng = random.Random(7)
    for card in tracker.due_cards:
        rating = rng.randint(1, 4)
        state = tracker.review_card(card.id, rating)
        logger.info(
            f"{card.question} -> {card.answer} "
            f"[{RATING_LABELS[rating]['label']}] next review {state.next_review} "
            f"({card_phase(state).value})"
        )

    today = tracker.get_today_stats()
    logger.info(f"Today: {today.reviewed} reviewed, {today.accuracy}% accuracy")
    print(json.dumps(tracker.export_state(), indent=2))


if __name__ == "__main__":
    main()
