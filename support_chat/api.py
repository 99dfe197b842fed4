"""FastAPI entry point for the support chat module."""

from __future__ import annotations

import argparse
import json
import logging
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field
import uvicorn

from .config import AnswerPolicy, ChatConfig, ChatLLMConfig
from .exceptions import (
    ChatGatewayError,
    CreditsExhaustedError,
    RateLimitError,
    SessionBusyError,
    UpstreamHTTPError,
)
from .service import ChatService, ReplyStream
from .utils import setup_logging

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
CREDITS_MESSAGE = "AI credits exhausted. Please add credits."


class ChatRequest(BaseModel):
    session_id: Optional[str] = Field(None, alias="sessionId", description="Chat session identifier.")
    message: Optional[str] = Field(None, description="User message to answer.")


class ChatResponse(BaseModel):
    reply: str
    tokensUsed: int


def to_http_exception(exc: Exception) -> HTTPException:
    """Translate service errors into HTTP errors for the widget."""
    if isinstance(exc, SessionBusyError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, RateLimitError):
        return HTTPException(status_code=429, detail=RATE_LIMIT_MESSAGE)
    if isinstance(exc, CreditsExhaustedError):
        return HTTPException(status_code=402, detail=CREDITS_MESSAGE)
    if isinstance(exc, (UpstreamHTTPError, ChatGatewayError)):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail="Chat request failed")


def sse_frame(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


async def sse_events(stream: ReplyStream) -> AsyncGenerator[str, None]:
    """Re-emit a reply stream in chat-completions SSE framing."""
    try:
        async for delta in stream:
            yield sse_frame({"choices": [{"delta": {"content": delta}}]})
        yield sse_frame({"usage": {"total_tokens": stream.tokens_used}})
        yield "data: [DONE]\n\n"
    except ChatGatewayError as exc:
        logger.error("Stream failed for session %s: %s", stream.session_id, exc)
        yield sse_frame({"error": str(exc)})
    finally:
        await stream.aclose()


class ReplyStreamingResponse(StreamingResponse):
    """SSE response that releases its reply stream however the send ends.

    The body generator never starts when the client disconnects before the
    response head is sent, so its own cleanup cannot be relied on.
    """

    def __init__(self, stream: ReplyStream) -> None:
        super().__init__(
            sse_events(stream),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )
        self.reply_stream = stream

    async def __call__(self, scope, receive, send) -> None:  # type: ignore[override]
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.reply_stream.aclose()


def register_chat_routes(app: FastAPI) -> None:
    """Attach chat and session routes; expects ``app.state.chat_service``."""

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/chat", response_model=ChatResponse)
    async def chat(request: ChatRequest) -> ChatResponse:
        if not request.session_id or not request.message:
            raise HTTPException(status_code=400, detail="Missing sessionId or message")
        logger.info("Chat request for session %s", request.session_id)
        try:
            result = await run_in_threadpool(app.state.chat_service.reply, request.session_id, request.message)
        except Exception as exc:
            if not isinstance(exc, (ValueError, SessionBusyError, ChatGatewayError)):
                logger.exception("Chat request failed (session_id=%s)", request.session_id)
            raise to_http_exception(exc) from exc
        return ChatResponse(reply=result.reply, tokensUsed=result.tokens_used)

    @app.post("/chat/stream")
    async def chat_stream(request: ChatRequest) -> StreamingResponse:
        if not request.session_id or not request.message:
            raise HTTPException(status_code=400, detail="Missing sessionId or message")
        logger.info("Streaming chat for session %s", request.session_id)
        try:
            stream = await app.state.chat_service.stream_reply(request.session_id, request.message)
        except Exception as exc:
            if not isinstance(exc, (ValueError, SessionBusyError, ChatGatewayError)):
                logger.exception("Chat stream failed (session_id=%s)", request.session_id)
            raise to_http_exception(exc) from exc

        return ReplyStreamingResponse(stream)

    @app.get("/sessions")
    async def list_sessions() -> List[Dict[str, object]]:
        return [s.to_dict() for s in app.state.chat_service.list_sessions()]

    @app.post("/sessions")
    async def create_session() -> Dict[str, object]:
        return app.state.chat_service.create_session().to_dict()

    @app.delete("/sessions/{session_id}")
    async def delete_session(session_id: str) -> Dict[str, bool]:
        deleted = app.state.chat_service.delete_session(session_id)
        logger.info("Delete requested for session %s (existed=%s)", session_id, deleted)
        return {"success": True}

    @app.get("/conversations")
    async def conversations(session_id: Optional[str] = Query(None, alias="sessionId")) -> List[Dict[str, object]]:
        if not session_id:
            raise HTTPException(status_code=400, detail="Missing sessionId")
        return [m.to_dict() for m in app.state.chat_service.get_messages(session_id)]


def create_app(
    chat_config: Optional[ChatConfig] = None,
    *,
    service: Optional[ChatService] = None,
    log_dir: Optional[str] = None,
) -> FastAPI:
    if log_dir:
        setup_logging(log_dir, logging.INFO)

    app = FastAPI(title="Support Chat", version="0.1.0")
    app.state.chat_service = service or ChatService(chat_config)
    register_chat_routes(app)
    return app


def add_chat_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--llm_endpoint", default=ChatLLMConfig.endpoint, help="Chat-completions endpoint.")
    parser.add_argument("--llm_model", default=ChatLLMConfig.model, help="Model name for completions.")
    parser.add_argument("--request_timeout", type=int, default=60, help="Timeout for LLM calls (seconds).")
    parser.add_argument("--api_key", help="Gateway API key (defaults to $LLM_API_KEY).")
    parser.add_argument(
        "--policy",
        choices=[p.value for p in AnswerPolicy],
        default=AnswerPolicy.STRICT.value,
        help="strict: answer only from product docs; general: allow general-knowledge fallback.",
    )
    parser.add_argument("--top_k", type=int, help="Documents per query (defaults per policy).")
    parser.add_argument("--history_pairs", type=int, default=5, help="User/assistant pairs sent as context.")
    parser.add_argument("--docs_path", help="Optional JSON file replacing the built-in documents.")
    parser.add_argument("--offline", action="store_true", help="Answer extractively without calling the gateway.")


def config_from_args(args: argparse.Namespace) -> ChatConfig:
    llm = ChatLLMConfig(
        endpoint=args.llm_endpoint,
        model=args.llm_model,
        request_timeout=args.request_timeout,
    )
    if args.api_key:
        llm.api_key = args.api_key
    return ChatConfig(
        llm=llm,
        policy=AnswerPolicy(args.policy),
        top_k=args.top_k,
        history_pairs=args.history_pairs,
        docs_path=args.docs_path,
        offline=args.offline,
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the support chat service with streaming responses.")
    parser.add_argument("--host", default="0.0.0.0", help="Host interface to bind.")
    parser.add_argument("--port", type=int, default=8004, help="Port to bind.")
    parser.add_argument("--log_dir", help="Directory for application logs.")
    add_chat_arguments(parser)
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    app = create_app(config_from_args(args), log_dir=args.log_dir)
    logger.info("Starting support chat service on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
