"""
Relationship quiz synthesis.

Builds multiple-choice questions from the entity/relationship graph. A quiz
mixes relationship questions ("Who is a child of Zeus?") with domain
questions ("Which deity is associated with wisdom?") in a ratio set by the
difficulty, every question carrying exactly four shuffled options.

Synthesis never raises on thin content: it returns fewer questions and logs
why.
"""

from __future__ import annotations

import logging
import math
import random
from itertools import islice
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Tuple, TypeVar

import logfire

from learning_config import QuizSettings, get_config
from learning_entities import (
    OPTION_COUNT,
    DifficultyLevel,
    Entity,
    QuestionType,
    RelationshipQuestion,
)
from learning_errors import DegradationType, QuizDegradation, report_degradation
from learning_relationships import (
    QUIZZABLE_TYPES,
    Direction,
    RelationshipEdge,
    RelationshipGraphIndex,
    RelationshipType,
    question_type_for,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

DISTRACTOR_COUNT = OPTION_COUNT - 1

QUESTION_TEMPLATES = {
    QuestionType.PARENT: "Who is a parent of {name}?",
    QuestionType.CHILD: "Who is a child of {name}?",
    QuestionType.SIBLING: "Who is a sibling of {name}?",
    QuestionType.SPOUSE: "Who is the spouse/consort of {name}?",
    QuestionType.DOMAIN: "Which deity is associated with {domain}?",
}

DedupKey = Tuple[str, str, str]


def fisher_yates_shuffle(items: Iterable[T], rng: random.Random) -> List[T]:
    """Return a uniformly shuffled copy of ``items``."""
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def plan_question_mix(
    count: int,
    difficulty: DifficultyLevel,
    settings: Optional[QuizSettings] = None,
) -> Tuple[int, int]:
    """Split ``count`` into (relationship, domain) question targets."""
    settings = settings or get_config().quiz
    share = settings.domain_share(difficulty)
    domain_target = min(count, math.floor(count * share + 0.5))
    return count - domain_target, domain_target


def question_text_for(question_type: QuestionType, name: str = "", domain: str = "") -> str:
    """Phrase a question about ``name`` (or about ``domain`` for domain questions)."""
    return QUESTION_TEMPLATES[QuestionType(question_type)].format(name=name, domain=domain)


class RelationshipQuizGenerator:
    """Synthesizes one quiz from a content snapshot.

    The generator is cheap to build and meant to be thrown away after a
    single ``generate`` call; the relationship index is rebuilt from the
    edges passed in.
    """

    def __init__(self,
                 entities: Sequence[Entity],
                 edges: Sequence[RelationshipEdge],
                 rng: Optional[random.Random] = None,
                 settings: Optional[QuizSettings] = None):
        """Initialize the generator.

        Args:
            entities: Content items questions may be asked about
            edges: Typed relationships between the entities
            rng: Random source; a fresh ``random.Random()`` when omitted
            settings: Quiz settings; the global configuration when omitted
        """
        self.entities = list(entities)
        self.rng = rng or random.Random()
        self.settings = settings or get_config().quiz
        self.index = RelationshipGraphIndex.build(edges)
        self.degradations: List[QuizDegradation] = []
        self._entity_map = {entity.id: entity for entity in self.entities}

    def generate(self,
                 count: Optional[int] = None,
                 difficulty: Optional[DifficultyLevel] = None) -> List[RelationshipQuestion]:
        """Generate up to ``count`` deduplicated questions.

        Args:
            count: Maximum number of questions
            difficulty: Difficulty stamped on every question; also picks the mix

        Returns:
            Shuffled list of at most ``count`` questions
        """
        count = self.settings.default_question_count if count is None else count
        difficulty = DifficultyLevel(difficulty or self.settings.default_difficulty)

        with logfire.span("quiz_generation.generate") as span:
            span.set_attribute("requested_count", count)
            span.set_attribute("difficulty", difficulty.value)

            if count <= 0:
                return []
            if not self.entities:
                self._degrade(DegradationType.NO_ENTITIES, "No entities to build questions from")
                return []

            relationship_target, domain_target = plan_question_mix(count, difficulty, self.settings)
            logger.debug(
                "Quiz mix for %d %s questions: %d relationship, %d domain",
                count, difficulty.value, relationship_target, domain_target,
            )
            if not any(RelationshipType(edge.type) in QUIZZABLE_TYPES for edge in self.index.edges):
                self._degrade(
                    DegradationType.NO_QUALIFYING_EDGES,
                    "No qualifying relationships, falling back to domain questions",
                    edges_indexed=len(self.index),
                )

            seen: Set[DedupKey] = set()
            relationship_source = self._relationship_questions(difficulty, seen)
            domain_source = self._domain_questions(difficulty, seen)

            relationship_questions = list(islice(relationship_source, relationship_target))
            domain_questions = list(islice(domain_source, count - len(relationship_questions)))
            # Domain pool ran short: top up with more relationship questions
            shortfall = count - len(relationship_questions) - len(domain_questions)
            if shortfall > 0:
                relationship_questions.extend(islice(relationship_source, shortfall))

            questions = fisher_yates_shuffle(relationship_questions + domain_questions, self.rng)[:count]

            if len(questions) < count:
                self._degrade(
                    DegradationType.SHORT_QUIZ,
                    "Quiz is shorter than requested",
                    requested=count,
                    generated=len(questions),
                )

            span.set_attribute("relationship_questions", len(relationship_questions))
            span.set_attribute("domain_questions", len(domain_questions))
            logfire.info(
                "Relationship quiz generated",
                generated=len(questions),
                target_relationship=relationship_target,
                target_domain=domain_target,
            )
            return questions

    def _relationship_questions(self,
                                difficulty: DifficultyLevel,
                                seen: Set[DedupKey]) -> Iterator[RelationshipQuestion]:
        candidates = [
            edge for edge in self.index.edges
            if RelationshipType(edge.type) in QUIZZABLE_TYPES
        ]
        for edge in fisher_yates_shuffle(candidates, self.rng):
            source = self._entity_map.get(edge.from_id)
            target = self._entity_map.get(edge.to_id)
            if source is None or target is None:
                self._degrade(
                    DegradationType.DANGLING_EDGE,
                    "Relationship references an unknown entity",
                    edge_id=edge.id,
                )
                continue

            relation = RelationshipType(edge.type)
            if relation.is_symmetric:
                orientations = [
                    (source, target, Direction.SYMMETRIC),
                    (target, source, Direction.SYMMETRIC),
                ]
            else:
                # Asked about the source: "who is a child of"; about the target: "who is a parent of"
                orientations = [
                    (source, target, Direction.FORWARD),
                    (target, source, Direction.REVERSE),
                ]

            for subject, answer, direction in fisher_yates_shuffle(orientations, self.rng):
                question_type = question_type_for(relation, direction)
                if question_type is None:
                    continue
                question = self._build_question(
                    subject=subject,
                    answer=answer,
                    question_type=question_type,
                    question_text=question_text_for(question_type, name=subject.name),
                    excluded_ids=self.index.answers_for(subject.id, question_type),
                    difficulty=difficulty,
                    seen=seen,
                )
                if question is not None:
                    yield question
                    break

    def _domain_questions(self,
                          difficulty: DifficultyLevel,
                          seen: Set[DedupKey]) -> Iterator[RelationshipQuestion]:
        tagged = [entity for entity in self.entities if entity.domain]
        for entity in fisher_yates_shuffle(tagged, self.rng):
            tag = self.rng.choice(entity.domain)
            question = self._build_question(
                subject=entity,
                answer=entity,
                question_type=QuestionType.DOMAIN,
                question_text=question_text_for(QuestionType.DOMAIN, domain=tag),
                excluded_ids={other.id for other in self.entities if other.has_domain(tag)},
                difficulty=difficulty,
                seen=seen,
            )
            if question is not None:
                yield question

    def _build_question(self,
                        subject: Entity,
                        answer: Entity,
                        question_type: QuestionType,
                        question_text: str,
                        excluded_ids: Set[str],
                        difficulty: DifficultyLevel,
                        seen: Set[DedupKey]) -> Optional[RelationshipQuestion]:
        key = (subject.id, question_type.value, answer.id)
        if key in seen:
            return None

        distractors = self.pick_distractors(subject, answer, excluded_ids)
        if len(distractors) < DISTRACTOR_COUNT:
            self._degrade(
                DegradationType.INSUFFICIENT_DISTRACTORS,
                "Not enough distinct entities for four options",
                entity_id=subject.id,
                question_type=question_type.value,
                available=len(distractors),
            )
            return None

        seen.add(key)
        return RelationshipQuestion(
            entity_id=subject.id,
            entity_name=subject.name,
            entity_image_url=subject.image_url,
            question_type=question_type,
            question_text=question_text,
            correct_answer=answer.name,
            correct_entity_id=answer.id,
            options=fisher_yates_shuffle([answer.name, *distractors], self.rng),
            difficulty=difficulty,
        )

    def pick_distractors(self,
                         subject: Entity,
                         answer: Entity,
                         excluded_ids: Set[str]) -> List[str]:
        """Pick up to three wrong option names.

        Entities that would also answer the question correctly are only used
        when nothing else is left; among the rest, the subject's own pantheon
        is preferred.
        """
        same_pantheon: List[Entity] = []
        elsewhere: List[Entity] = []
        also_correct: List[Entity] = []
        subject_only: List[Entity] = []
        for entity in self.entities:
            if entity.id == answer.id or entity.name == answer.name:
                continue
            if entity.id == subject.id:
                subject_only.append(entity)
            elif entity.id in excluded_ids:
                also_correct.append(entity)
            elif subject.pantheon_id and entity.pantheon_id == subject.pantheon_id:
                same_pantheon.append(entity)
            else:
                elsewhere.append(entity)

        chosen: List[str] = []
        for tier in (same_pantheon, elsewhere, also_correct, subject_only):
            for entity in fisher_yates_shuffle(tier, self.rng):
                if len(chosen) == DISTRACTOR_COUNT:
                    return chosen
                if entity.name not in chosen:
                    chosen.append(entity.name)
        return chosen

    def _degrade(self, degradation_type: DegradationType, message: str, **context) -> None:
        self.degradations.append(report_degradation(degradation_type, message, **context))


def generate_relationship_quiz(entities: Sequence[Entity],
                               edges: Sequence[RelationshipEdge],
                               count: Optional[int] = None,
                               difficulty: Optional[DifficultyLevel] = None,
                               rng: Optional[random.Random] = None,
                               settings: Optional[QuizSettings] = None) -> List[RelationshipQuestion]:
    """Generate a relationship quiz.

    Args:
        entities: Content items questions may be asked about
        edges: Typed relationships; low-confidence edges are ignored
        count: Maximum number of questions (default from settings, 10)
        difficulty: Quiz difficulty (default from settings, medium)
        rng: Random source for deterministic runs
        settings: Quiz settings override

    Returns:
        At most ``count`` questions, each with four shuffled options
    """
    generator = RelationshipQuizGenerator(entities, edges, rng=rng, settings=settings)
    return generator.generate(count=count, difficulty=difficulty)
