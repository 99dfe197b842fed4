"""Keyword-overlap relevance scoring over a static document set.

This is a lexical heuristic, not semantic search.  Each document collects
points for keyword and title overlap with the normalised query; documents
with a positive score are returned best-first.  Ties keep the document
store's order because :func:`sorted` is stable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .loader import DocEntry, DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringWeights:
    """Points awarded per kind of overlap."""

    keyword_phrase: int = 3
    word_overlap: int = 1
    title_phrase: int = 4
    title_word: int = 2


@dataclass(frozen=True)
class ScoredDoc:
    doc: DocEntry
    score: int


DEFAULT_WEIGHTS = ScoringWeights()


def normalise_query(query: str) -> str:
    return query.lower().strip()


def query_words(normalised: str) -> List[str]:
    return [word for word in normalised.split() if len(word) > 1]


def score_document(
    normalised: str,
    words: Sequence[str],
    doc: DocEntry,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """Score one document against an already normalised query."""
    score = 0
    for keyword in doc.keywords:
        if keyword in normalised:
            score += weights.keyword_phrase

    # Quadratic over words x keywords; both lists are tiny.
    for word in words:
        for keyword in doc.keywords:
            if keyword in word or word in keyword:
                score += weights.word_overlap

    title = doc.title.lower()
    if title in normalised:
        score += weights.title_phrase

    for title_word in title.split():
        if title_word in words:
            score += weights.title_word
    return score


def rank(
    query: str,
    docs: Sequence[DocEntry],
    top_k: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[ScoredDoc]:
    """Return up to ``top_k`` scored documents, best first."""
    if top_k <= 0:
        return []
    normalised = normalise_query(query)
    words = query_words(normalised)

    scored = [ScoredDoc(doc=doc, score=score_document(normalised, words, doc, weights)) for doc in docs]
    matches = [item for item in scored if item.score > 0]
    matches = sorted(matches, key=lambda item: item.score, reverse=True)
    return matches[:top_k]


def score(
    query: str,
    docs: Sequence[DocEntry],
    top_k: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[DocEntry]:
    """Return the ``top_k`` most relevant documents for ``query``."""
    return [item.doc for item in rank(query, docs, top_k, weights)]


def build_context(docs: Sequence[DocEntry], separator: str = " ") -> str:
    """Concatenate document contents for an extractive reply or prompt."""
    return separator.join(doc.content for doc in docs)


class RelevanceScorer:
    """Bind a read-only :class:`DocumentStore` to scoring settings."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        top_k: int = 3,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ) -> None:
        self.store = store
        self.top_k = top_k
        self.weights = weights

    def rank(self, query: str, top_k: Optional[int] = None) -> List[ScoredDoc]:
        k = self.top_k if top_k is None else top_k
        results = rank(query, self.store, k, self.weights)
        logger.debug("Query matched %d document(s) (top_k=%d)", len(results), k)
        return results

    def score(self, query: str, top_k: Optional[int] = None) -> List[DocEntry]:
        return [item.doc for item in self.rank(query, top_k)]
