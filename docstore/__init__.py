"""Static documentation set and keyword relevance scoring."""

from .corpus import general_store, product_store
from .loader import DocEntry, DocumentStore, load_documents
from .scorer import RelevanceScorer, ScoredDoc, ScoringWeights, build_context, rank, score

__all__ = [
    "DocEntry",
    "DocumentStore",
    "RelevanceScorer",
    "ScoredDoc",
    "ScoringWeights",
    "build_context",
    "general_store",
    "load_documents",
    "product_store",
    "rank",
    "score",
]
