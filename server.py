"""Unified FastAPI server exposing support chat, sessions, and document retrieval."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from fastapi import FastAPI
import uvicorn

from docstore.api import QueryRequest, QueryResponse, run_query
from support_chat import ChatConfig
from support_chat.api import add_chat_arguments, config_from_args, register_chat_routes
from support_chat.service import ChatService
from support_chat.utils import setup_logging

logger = logging.getLogger(__name__)


# ---------- FastAPI Factory ----------
def create_app(
    log_dir: str = "./logs",
    chat_config: Optional[ChatConfig] = None,
    *,
    service: Optional[ChatService] = None,
) -> FastAPI:
    setup_logging(log_dir, logging.INFO)

    chat_service = service or ChatService(chat_config)

    app = FastAPI(title="Support Chat Server", version="0.1.0")
    app.state.chat_service = chat_service
    register_chat_routes(app)

    @app.post("/docs/query", response_model=QueryResponse)
    async def query_docs(request: QueryRequest) -> QueryResponse:
        logger.info("Querying documents with top_k=%d", request.top_k)
        return run_query(app.state.chat_service.scorer, request.query, request.top_k)

    return app


# ---------- CLI ----------
def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the support chat server.")
    parser.add_argument("--host", default="0.0.0.0", help="Host interface to bind.")
    parser.add_argument("--port", type=int, default=8010, help="Port to bind.")
    parser.add_argument("--log_dir", default="./logs", help="Directory for application logs.")
    add_chat_arguments(parser)
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    app = create_app(args.log_dir, config_from_args(args))
    logger.info("Starting support chat server on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
