"""
Relationship models and graph index for the mythology knowledge graph.

Edges are typed and carry a confidence tag. The index turns a flat edge list
into bidirectional adjacency so the quiz synthesizer can answer "who are the
children of X" or "who is X married to" in constant time.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple
from uuid import uuid4

import logfire
from pydantic import Field, field_validator

from learning_entities import LearningModel, QuestionType


logger = logging.getLogger(__name__)


class RelationshipType(str, Enum):
    """Types of relationships between mythological figures."""
    PARENT_OF = "parent_of"
    SPOUSE_OF = "spouse_of"
    SIBLING_OF = "sibling_of"
    CREATED = "created"
    KILLED = "killed"
    TRANSFORMED = "transformed"
    ENEMY_OF = "enemy_of"
    ALLY_OF = "ally_of"
    TAUGHT = "taught"
    SERVED = "served"

    @property
    def is_symmetric(self) -> bool:
        """Whether A-rel-B implies B-rel-A."""
        return self in SYMMETRIC_TYPES


SYMMETRIC_TYPES: FrozenSet[RelationshipType] = frozenset({
    RelationshipType.SPOUSE_OF,
    RelationshipType.SIBLING_OF,
    RelationshipType.ENEMY_OF,
    RelationshipType.ALLY_OF,
})


class ConfidenceLevel(str, Enum):
    """Scholarly confidence in a relationship."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_score(cls, score: float) -> ConfidenceLevel:
        """Convert numeric score (0-1) to confidence level."""
        if score < 0.4:
            return cls.LOW
        elif score < 0.75:
            return cls.MEDIUM
        else:
            return cls.HIGH


class Direction(str, Enum):
    """Which way an indexed edge is read from the subject entity."""
    FORWARD = "forward"
    REVERSE = "reverse"
    SYMMETRIC = "symmetric"


class RelationshipEdge(LearningModel):
    """A typed, confidence-tagged edge between two entities."""

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique relationship identifier"
    )
    from_id: str = Field(..., min_length=1, description="Source entity")
    to_id: str = Field(..., min_length=1, description="Target entity")
    type: RelationshipType = Field(..., description="Type of relationship")
    confidence: ConfidenceLevel = Field(
        default=ConfidenceLevel.LOW,
        description="Confidence tag; untagged edges count as low"
    )

    @field_validator("confidence", mode="before")
    @classmethod
    def default_missing_confidence(cls, v):
        """Treat a missing confidence tag as low."""
        if v is None or v == "":
            return ConfidenceLevel.LOW
        return v

    @property
    def is_quiz_eligible(self) -> bool:
        """Low-confidence edges and self-loops never feed question synthesis."""
        return self.confidence != ConfidenceLevel.LOW and self.from_id != self.to_id


# (relationship type, direction read from the subject) -> question asked about the subject
QUESTION_TYPE_BY_RELATION: Dict[Tuple[RelationshipType, Direction], QuestionType] = {
    (RelationshipType.PARENT_OF, Direction.FORWARD): QuestionType.CHILD,
    (RelationshipType.PARENT_OF, Direction.REVERSE): QuestionType.PARENT,
    (RelationshipType.SIBLING_OF, Direction.SYMMETRIC): QuestionType.SIBLING,
    (RelationshipType.SPOUSE_OF, Direction.SYMMETRIC): QuestionType.SPOUSE,
}

QUIZZABLE_TYPES: FrozenSet[RelationshipType] = frozenset(
    relation for relation, _ in QUESTION_TYPE_BY_RELATION
)


def question_type_for(relation: RelationshipType, direction: Direction) -> Optional[QuestionType]:
    """Question asked about a subject reached through ``relation`` in ``direction``."""
    return QUESTION_TYPE_BY_RELATION.get((RelationshipType(relation), direction))


def relation_for_question(question_type: QuestionType) -> Optional[Tuple[RelationshipType, Direction]]:
    """Inverse of ``question_type_for``."""
    for key, value in QUESTION_TYPE_BY_RELATION.items():
        if value == question_type:
            return key
    return None


class RelationshipGraphIndex:
    """Bidirectional adjacency over quiz-eligible edges.

    ``related(a, PARENT_OF, FORWARD)`` returns the children of ``a``;
    ``related(b, PARENT_OF, REVERSE)`` returns the parents of ``b``;
    symmetric types are always read with ``Direction.SYMMETRIC``.
    """

    def __init__(self, edges: Iterable[RelationshipEdge] = ()):
        self._adjacency: Dict[str, Dict[Tuple[RelationshipType, Direction], Set[str]]] = defaultdict(
            lambda: defaultdict(set)
        )
        self._by_type: Dict[RelationshipType, List[RelationshipEdge]] = defaultdict(list)
        self._edges: List[RelationshipEdge] = []
        for edge in edges:
            self._add(edge)

    @classmethod
    def build(cls, edges: Iterable[RelationshipEdge]) -> RelationshipGraphIndex:
        """Index every quiz-eligible edge."""
        edges = list(edges)
        with logfire.span("relationship_index.build") as span:
            eligible = [edge for edge in edges if edge.is_quiz_eligible]
            index = cls(eligible)
            span.set_attribute("edges_total", len(edges))
            span.set_attribute("edges_indexed", len(eligible))
            logger.debug(
                "Indexed %d of %d relationships (%d ineligible skipped)",
                len(eligible), len(edges), len(edges) - len(eligible),
            )
            return index

    def _add(self, edge: RelationshipEdge) -> None:
        relation = RelationshipType(edge.type)
        if relation.is_symmetric:
            self._adjacency[edge.from_id][(relation, Direction.SYMMETRIC)].add(edge.to_id)
            self._adjacency[edge.to_id][(relation, Direction.SYMMETRIC)].add(edge.from_id)
        else:
            self._adjacency[edge.from_id][(relation, Direction.FORWARD)].add(edge.to_id)
            self._adjacency[edge.to_id][(relation, Direction.REVERSE)].add(edge.from_id)
        self._by_type[relation].append(edge)
        self._edges.append(edge)

    @property
    def edges(self) -> List[RelationshipEdge]:
        """Indexed (quiz-eligible) edges in insertion order."""
        return list(self._edges)

    def __len__(self) -> int:
        return len(self._edges)

    def related(
        self,
        entity_id: str,
        relation: RelationshipType,
        direction: Optional[Direction] = None,
    ) -> Set[str]:
        """Ids related to ``entity_id`` through ``relation``.

        ``direction`` defaults to SYMMETRIC for symmetric types and FORWARD
        otherwise.
        """
        relation = RelationshipType(relation)
        if direction is None:
            direction = Direction.SYMMETRIC if relation.is_symmetric else Direction.FORWARD
        neighbours = self._adjacency.get(entity_id)
        if not neighbours:
            return set()
        return set(neighbours.get((relation, direction), ()))

    def answers_for(self, entity_id: str, question_type: QuestionType) -> Set[str]:
        """Every entity id that correctly answers ``question_type`` about ``entity_id``."""
        key = relation_for_question(QuestionType(question_type))
        if key is None:
            return set()
        relation, direction = key
        return self.related(entity_id, relation, direction)

    def edges_of_type(self, relation: RelationshipType) -> List[RelationshipEdge]:
        """Indexed edges of one relationship type."""
        return list(self._by_type.get(RelationshipType(relation), ()))

    def entity_ids(self) -> Set[str]:
        """Ids touched by at least one indexed edge."""
        return set(self._adjacency)
