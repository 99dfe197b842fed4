"""API entry point for serving keyword retrieval results.

Run this module to expose a lightweight HTTP endpoint that scores incoming
queries against the static document set and returns the matches along with
the concatenated context string used for extractive replies and prompts.
The document set is loaded once at startup.
"""

from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from pydantic import BaseModel, Field, validator
import uvicorn

from support_chat.utils import setup_logging
from .corpus import general_store, product_store
from .loader import DocumentStore, load_documents
from .scorer import RelevanceScorer, build_context

logger = logging.getLogger(__name__)


class QueryRequest(BaseModel):
    query: str = Field(..., description="User question to score against the documents.")
    top_k: int = Field(3, gt=0, description="Maximum number of documents to return.")

    @validator("query")
    def validate_query(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be empty")
        return value


class QueryResponse(BaseModel):
    results: List[Dict[str, Any]]
    context: str


def run_query(scorer: RelevanceScorer, query: str, top_k: int) -> QueryResponse:
    ranked = scorer.rank(query, top_k)
    results = [{"title": item.doc.title, "score": item.score, "content": item.doc.content} for item in ranked]
    return QueryResponse(results=results, context=build_context([item.doc for item in ranked]))


def create_app(store: DocumentStore, log_dir: Optional[str] = None) -> FastAPI:
    """Create and return a FastAPI app bound to a document store."""
    if log_dir:
        setup_logging(log_dir, logging.INFO)

    app = FastAPI(title="Document Retrieval", version="0.1.0")
    app.state.scorer = RelevanceScorer(store)

    @app.get("/health")
    async def health() -> Dict[str, str]:
        logger.debug("Health check requested")
        return {"status": "ok"}

    @app.post("/query", response_model=QueryResponse)
    async def query(request: QueryRequest) -> QueryResponse:
        logger.info("Received query request with top_k=%d", request.top_k)
        payload = run_query(app.state.scorer, request.query, request.top_k)
        logger.info("Returning %d result(s) for query", len(payload.results))
        return payload

    return app


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the documentation set as a retrieval API.")
    parser.add_argument("--docs_path", help="Optional JSON file with {title, content, keywords} entries.")
    parser.add_argument(
        "--corpus",
        choices=["product", "general"],
        default="product",
        help="Built-in corpus used when --docs_path is not set.",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Host interface to bind the HTTP server.")
    parser.add_argument("--port", type=int, default=8003, help="Port for the HTTP server.")
    parser.add_argument("--log_dir", help="Optional log directory.")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    if args.docs_path:
        try:
            store = load_documents(args.docs_path)
        except (OSError, ValueError) as exc:
            raise SystemExit(f"Failed to load --docs_path: {exc}")
    else:
        store = general_store() if args.corpus == "general" else product_store()

    app = create_app(store, log_dir=args.log_dir)

    logger.info("Starting Document Retrieval API on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
