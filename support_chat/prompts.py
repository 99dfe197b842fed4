"""System prompts and canned replies."""

from __future__ import annotations

from typing import Sequence

from docstore.loader import DocEntry

from .config import AnswerPolicy

FALLBACK_REPLY = "Sorry, I don't have information about that."

GREETINGS = (
    "hi",
    "hello",
    "hellow",
    "hey",
    "howdy",
    "good morning",
    "good evening",
    "good afternoon",
    "sup",
    "yo",
)

GREETING_REPLY = (
    "Hello! I'm your AI Support Assistant. I can help you with questions about password reset, refund policy, "
    "billing, account settings, and contacting support. How can I help you today?"
)
GREETING_TOKENS = 20

NO_DOCS_FOUND = "No relevant documentation found."

STRICT_RULES = f"""## STRICT RULES:
1. If the user's question can be answered using the product documentation above, provide a helpful answer based ONLY on that documentation.
2. If the user sends a greeting (hi, hello, hey, etc.), respond with a friendly greeting and briefly list what you can help with (password reset, refund policy, billing, account settings, contact support).
3. If the question CANNOT be answered from the documentation above, you MUST respond EXACTLY with: "{FALLBACK_REPLY}"
4. Do NOT make up information, guess, or provide answers outside the documentation.
5. Keep responses concise and helpful."""

GENERAL_RULES = """## RULES:
1. Prefer the documentation above whenever it answers the user's question.
2. If the user sends a greeting, respond with a friendly greeting and briefly list what you can help with.
3. If the documentation does not cover the question, you may answer from general knowledge, and say that the answer is not from the product documentation.
4. Never invent product-specific details such as prices, policies, or settings paths.
5. Keep responses concise and helpful."""


def is_greeting(message: str) -> bool:
    lower = message.strip().lower()
    return any(lower == g or lower == g + "!" for g in GREETINGS)


def format_docs(docs: Sequence[DocEntry]) -> str:
    return "\n\n".join(f"**{doc.title}**: {doc.content}" for doc in docs)


def build_system_prompt(policy: AnswerPolicy, docs: Sequence[DocEntry]) -> str:
    docs_context = format_docs(docs)
    docs_section = f"## Product Documentation:\n{docs_context}" if docs_context else NO_DOCS_FOUND

    if policy is AnswerPolicy.STRICT:
        header = (
            "You are a product support assistant. You MUST ONLY answer questions using the provided "
            "product documentation below."
        )
        rules = STRICT_RULES
    else:
        header = (
            "You are a friendly support assistant. Use the documentation below when it is relevant, "
            "and general knowledge otherwise."
        )
        rules = GENERAL_RULES
    return f"{header}\n\n{docs_section}\n\n{rules}"
