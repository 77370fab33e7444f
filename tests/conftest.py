"""
Shared fixtures for the learning engine tests.
"""

import random

import logfire
import pytest

from learning_entities import ContentCatalogue, DeityRecord, Entity, StoryRecord
from learning_relationships import ConfidenceLevel, RelationshipEdge, RelationshipType


# Keep spans local during tests
logfire.configure(send_to_logfire=False, console=False)


def make_edge(from_id: str, to_id: str, relation: str, confidence: str = "high") -> RelationshipEdge:
    """Build a relationship edge with a readable id."""
    return RelationshipEdge(
        id=f"{from_id}-{relation}-{to_id}",
        from_id=from_id,
        to_id=to_id,
        type=RelationshipType(relation),
        confidence=ConfidenceLevel(confidence),
    )


@pytest.fixture
def greek_entities():
    """Eight Olympians, all tagged with at least one domain."""
    return [
        Entity(id="zeus", name="Zeus", pantheon_id="greek-pantheon", domain=["sky", "thunder"]),
        Entity(id="athena", name="Athena", pantheon_id="greek-pantheon", domain=["wisdom", "war"]),
        Entity(id="apollo", name="Apollo", pantheon_id="greek-pantheon", domain=["sun", "music"]),
        Entity(id="artemis", name="Artemis", pantheon_id="greek-pantheon", domain=["hunt", "moon"]),
        Entity(id="poseidon", name="Poseidon", pantheon_id="greek-pantheon", domain=["sea"]),
        Entity(id="hades", name="Hades", pantheon_id="greek-pantheon", domain=["underworld"]),
        Entity(id="hera", name="Hera", pantheon_id="greek-pantheon", domain=["marriage"]),
        Entity(id="ares", name="Ares", pantheon_id="greek-pantheon", domain=["war"]),
    ]


@pytest.fixture
def greek_edges():
    """Family relationships between the Olympians."""
    return [
        make_edge("zeus", "athena", "parent_of"),
        make_edge("zeus", "apollo", "parent_of"),
        make_edge("zeus", "artemis", "parent_of"),
        make_edge("zeus", "ares", "parent_of"),
        make_edge("zeus", "hera", "spouse_of"),
        make_edge("poseidon", "zeus", "sibling_of"),
        make_edge("hades", "zeus", "sibling_of"),
        make_edge("apollo", "artemis", "sibling_of"),
    ]


@pytest.fixture
def rng():
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture
def catalogue():
    """Small content catalogue for card minting and mastery."""
    return ContentCatalogue(
        deities={
            "zeus": DeityRecord(
                name="Zeus",
                domains=["Sky", "Thunder", "Lightning"],
                symbols=["Thunderbolt", "Eagle", "Oak"],
                pantheon_id="greek",
            ),
            "athena": DeityRecord(
                name="Athena",
                domains=["Wisdom", "War"],
                symbols=["Owl"],
                pantheon_id="greek",
                image_url="https://example.org/athena.png",
            ),
            "thor": DeityRecord(
                name="Thor",
                domains=["Thunder"],
                symbols=[],
                pantheon_id="norse",
            ),
        },
        stories={
            "odyssey": StoryRecord(
                title="The Odyssey",
                characters=["Poseidon", "Athena"],
                pantheon_id="greek",
            ),
        },
        pantheon_names={"greek": "Greek", "norse": "Norse"},
    )
