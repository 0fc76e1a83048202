"""Relevance scoring of items against weighted user interests."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol, Sequence

import numpy as np

from newsreadr.database import Database
from newsreadr.embeddings import EmbeddingError
from newsreadr.models import Interest, Item

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    def embed(self, text: str) -> list[float]: ...


@dataclass
class ScoreResult:
    """Relevance of one item, with how many interests contributed."""

    score: float
    interests_used: int = 0
    interests_skipped: int = 0


@dataclass
class ScoringSummary:
    """Outcome of a scoring pass over the unread working set."""

    scored: int = 0
    failed: int = 0
    skipped_interests: int = 0


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 for empty vectors, mismatched dimensions or zero norms.
    """
    if len(a) == 0 or len(b) == 0 or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / norm, -1.0, 1.0))


def item_text(item: Item) -> str:
    """Text used to embed an item: its title plus description."""
    description = item.summary or item.body
    return f"{item.title}. {description}"


class Scorer:
    """Scores items using cached interest embeddings."""

    def __init__(self, db: Database, embedder: Embedder):
        self.db = db
        self.embedder = embedder

    def interest_embedding(self, interest: Interest) -> list[float]:
        """Return an interest's embedding, computing and caching it once.

        Raises:
            EmbeddingError: If the provider cannot embed the description.
        """
        if interest.embedding:
            return interest.embedding

        embedding = self.embedder.embed(interest.description)
        interest.embedding = embedding
        if interest.id is not None:
            self.db.set_interest_embedding(interest.id, embedding)
        return embedding

    def score_item(self, item: Item, interests: list[Interest]) -> ScoreResult:
        """Weighted average cosine similarity of an item to the interests.

        An interest whose embedding cannot be obtained is left out of both
        the weighted sum and the total weight.

        Raises:
            EmbeddingError: If the item text itself cannot be embedded.
        """
        weighted = [i for i in interests if i.weight > 0]
        if not weighted:
            return ScoreResult(score=0.0)

        item_vec = self.embedder.embed(item_text(item))

        total_score = 0.0
        total_weight = 0.0
        used = 0
        skipped = 0
        for interest in weighted:
            try:
                interest_vec = self.interest_embedding(interest)
            except EmbeddingError as e:
                logger.warning(
                    "Failed to get embedding for interest '%s': %s",
                    interest.description,
                    e,
                )
                skipped += 1
                continue

            total_score += cosine_similarity(item_vec, interest_vec) * interest.weight
            total_weight += interest.weight
            used += 1

        if total_weight == 0:
            return ScoreResult(score=0.0, interests_used=used, interests_skipped=skipped)

        return ScoreResult(
            score=total_score / total_weight,
            interests_used=used,
            interests_skipped=skipped,
        )

    def score_all_unscored(self, max_age: timedelta) -> ScoringSummary:
        """Score unread items within max_age whose score is still 0."""
        summary = ScoringSummary()

        interests = self.db.list_interests()
        if not interests:
            logger.info("No interests configured, skipping scoring")
            return summary

        items = [
            item for item in self.db.unread_items(max_age)
            if item.relevance_score == 0
        ]
        for item in items:
            try:
                result = self.score_item(item, interests)
            except EmbeddingError as e:
                logger.warning("Failed to score item '%s': %s", item.title, e)
                summary.failed += 1
                continue

            self.db.update_relevance(item.id, result.score)
            item.relevance_score = result.score
            summary.scored += 1
            summary.skipped_interests += result.interests_skipped

        if items:
            logger.info(
                "Scored %d/%d items (%d failed)",
                summary.scored,
                len(items),
                summary.failed,
            )
        return summary
