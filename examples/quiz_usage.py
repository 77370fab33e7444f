"""
Example usage of the relationship quiz synthesizer.

Builds a quiz from a handful of Olympians, grades it with random answers
and converts the result into XP.
"""

import logging
import random

from learning_config import configure_observability, get_config
from learning_entities import DifficultyLevel, Entity
from learning_relationships import ConfidenceLevel, RelationshipEdge, RelationshipType
from quiz_generation import RelationshipQuizGenerator
from quiz_scoring import TIME_LIMITS, calculate_quiz_xp, get_question_type_label, score_percentage


ENTITIES = [
    Entity(id="zeus", name="Zeus", pantheon_id="greek", domain=["sky", "thunder"]),
    Entity(id="hera", name="Hera", pantheon_id="greek", domain=["marriage"]),
    Entity(id="athena", name="Athena", pantheon_id="greek", domain=["wisdom"]),
    Entity(id="apollo", name="Apollo", pantheon_id="greek", domain=["music", "sun"]),
    Entity(id="artemis", name="Artemis", pantheon_id="greek", domain=["hunt"]),
    Entity(id="poseidon", name="Poseidon", pantheon_id="greek", domain=["sea"]),
]

EDGES = [
    RelationshipEdge(from_id="zeus", to_id="athena", type=RelationshipType.PARENT_OF, confidence=ConfidenceLevel.HIGH),
    RelationshipEdge(from_id="zeus", to_id="apollo", type=RelationshipType.PARENT_OF, confidence=ConfidenceLevel.HIGH),
    RelationshipEdge(from_id="zeus", to_id="hera", type=RelationshipType.SPOUSE_OF, confidence=ConfidenceLevel.HIGH),
    RelationshipEdge(from_id="apollo", to_id="artemis", type=RelationshipType.SIBLING_OF, confidence=ConfidenceLevel.MEDIUM),
    # Low-confidence edges never reach the quiz
    RelationshipEdge(from_id="poseidon", to_id="athena", type=RelationshipType.ENEMY_OF, confidence=ConfidenceLevel.LOW),
]


def main():
    """Main example function."""
    configure_observability()
    logger = logging.getLogger(__name__)

    difficulty = DifficultyLevel.EASY
    rng = random.Random(42)
    generator = RelationshipQuizGenerator(ENTITIES, EDGES, rng=rng)
    quiz = generator.generate(count=get_config().quiz.default_question_count, difficulty=difficulty)

    logger.info(f"Generated {len(quiz)} questions, {TIME_LIMITS[difficulty]}s each")
    for degradation in generator.degradations:
        logger.info(f"Degraded: {degradation.message}")

    correct = 0
    for number, question in enumerate(quiz, start=1):
        choice = rng.choice(question.options)
        label = get_question_type_label(question.question_type)
        result = "correct" if question.is_correct(choice) else f"wrong, it was {question.correct_answer}"
        logger.info(f"{number}. [{label}] {question.question_text} -> {choice} ({result})")
        correct += question.is_correct(choice)

    xp = calculate_quiz_xp(correct, len(quiz), difficulty, timer_enabled=True)
    logger.info(f"Score: {score_percentage(correct, len(quiz))}% for {xp} XP")


if __name__ == "__main__":
    main()
