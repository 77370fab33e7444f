"""
Review card model and card minting.

A review card is a source-agnostic fact envelope. Each card type carries
only the metadata needed to trace it back to the content it came from, so
the union is discriminated on ``type``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

import logfire
from pydantic import Field, TypeAdapter

from learning_entities import ContentCatalogue, DeityRecord, LearningModel
from progress_tracking import ProgressSnapshot


logger = logging.getLogger(__name__)


class FlashcardType(str, Enum):
    """Kinds of review card."""
    DEITY_RECOGNITION = "deity-recognition"
    DOMAIN_MATCH = "domain-match"
    SYMBOL_MATCH = "symbol-match"
    PANTHEON_MATCH = "pantheon-match"
    STORY_CHARACTER = "story-character"


# Metadata variants

class DeityMetadata(LearningModel):
    """Trace back to a deity."""
    deity_id: str
    pantheon_id: str


class DomainMetadata(DeityMetadata):
    """Trace back to a deity and the domains the card asks about."""
    domains: List[str] = Field(min_length=1)


class SymbolMetadata(DeityMetadata):
    """Trace back to a deity and its symbols."""
    symbols: List[str] = Field(min_length=1)


class StoryMetadata(LearningModel):
    """Trace back to a story and the character asked about."""
    story_id: str
    character: str


# Card variants

class _BaseReviewCard(LearningModel):
    id: str = Field(..., min_length=1)
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    hint: Optional[str] = None
    image_url: Optional[str] = None


class DeityRecognitionCard(_BaseReviewCard):
    """Show a portrait, recall the deity's name."""
    type: Literal["deity-recognition"] = "deity-recognition"
    image_url: str
    metadata: DeityMetadata


class DomainMatchCard(_BaseReviewCard):
    """Show domains, recall the deity."""
    type: Literal["domain-match"] = "domain-match"
    metadata: DomainMetadata


class SymbolMatchCard(_BaseReviewCard):
    """Show a symbol, recall the deity."""
    type: Literal["symbol-match"] = "symbol-match"
    metadata: SymbolMetadata


class PantheonMatchCard(_BaseReviewCard):
    """Show a deity, recall its pantheon."""
    type: Literal["pantheon-match"] = "pantheon-match"
    metadata: DeityMetadata


class StoryCharacterCard(_BaseReviewCard):
    """Recall whether a character appears in a story."""
    type: Literal["story-character"] = "story-character"
    metadata: StoryMetadata


ReviewCard = Annotated[
    Union[
        DeityRecognitionCard,
        DomainMatchCard,
        SymbolMatchCard,
        PantheonMatchCard,
        StoryCharacterCard,
    ],
    Field(discriminator="type"),
]

review_card_adapter: TypeAdapter = TypeAdapter(ReviewCard)


def parse_review_card(payload: dict) -> ReviewCard:
    """Validate a serialised card into its concrete variant."""
    return review_card_adapter.validate_python(payload)


def generate_card_id(card_type: Union[FlashcardType, str], identifier: str) -> str:
    """Stable card id from its type and source identifier."""
    return f"{FlashcardType(card_type).value}:{identifier}"


def _deity_cards(deity_id: str, deity: DeityRecord, catalogue: ContentCatalogue) -> List[ReviewCard]:
    pantheon = catalogue.pantheon_name(deity.pantheon_id)
    cards: List[ReviewCard] = []

    if deity.image_url:
        cards.append(DeityRecognitionCard(
            id=generate_card_id(FlashcardType.DEITY_RECOGNITION, deity_id),
            question="Who is this deity?",
            answer=deity.name,
            image_url=deity.image_url,
            hint=f"Hint: This deity belongs to the {pantheon} pantheon",
            metadata=DeityMetadata(deity_id=deity_id, pantheon_id=deity.pantheon_id),
        ))

    if deity.domains:
        cards.append(DomainMatchCard(
            id=generate_card_id(FlashcardType.DOMAIN_MATCH, deity_id),
            question=f"Which deity is the god/goddess of {' and '.join(deity.domains[:2])}?",
            answer=deity.name,
            hint=f"Hint: This deity belongs to the {pantheon} pantheon",
            metadata=DomainMetadata(
                deity_id=deity_id,
                pantheon_id=deity.pantheon_id,
                domains=deity.domains,
            ),
        ))

    if deity.symbols:
        other_symbols = deity.symbols[1:]
        cards.append(SymbolMatchCard(
            id=generate_card_id(FlashcardType.SYMBOL_MATCH, deity_id),
            question=f"Which deity is symbolized by the {deity.symbols[0]}?",
            answer=deity.name,
            hint=f"Hint: Other symbols include {', '.join(other_symbols)}" if other_symbols else None,
            metadata=SymbolMetadata(
                deity_id=deity_id,
                pantheon_id=deity.pantheon_id,
                symbols=deity.symbols,
            ),
        ))

    cards.append(PantheonMatchCard(
        id=generate_card_id(FlashcardType.PANTHEON_MATCH, deity_id),
        question=f"Which pantheon does {deity.name} belong to?",
        answer=pantheon,
        metadata=DeityMetadata(deity_id=deity_id, pantheon_id=deity.pantheon_id),
    ))
    return cards


def mint_cards(progress: ProgressSnapshot, catalogue: ContentCatalogue) -> List[ReviewCard]:
    """Mint review cards for everything the learner has viewed or read.

    Ids missing from the catalogue are skipped. Card ids are stable, so
    minting the same progress twice yields the same ids.
    """
    with logfire.span("review_cards.mint") as span:
        cards: List[ReviewCard] = []
        skipped = 0

        for deity_id in progress.deities_viewed:
            deity = catalogue.find_deity(deity_id)
            if deity is None:
                skipped += 1
                continue
            cards.extend(_deity_cards(deity_id, deity, catalogue))

        for story_id in progress.stories_read:
            story = catalogue.find_story(story_id)
            if story is None:
                skipped += 1
                continue
            for character in story.characters:
                cards.append(StoryCharacterCard(
                    id=generate_card_id(FlashcardType.STORY_CHARACTER, f"{story_id}-{character}"),
                    question=f'Does {character} appear in "{story.title}"?',
                    answer="Yes",
                    metadata=StoryMetadata(story_id=story_id, character=character),
                ))

        if skipped:
            logger.info("Skipped %d progress ids with no catalogue entry", skipped)
        span.set_attribute("cards_minted", len(cards))
        span.set_attribute("ids_skipped", skipped)
        return cards
