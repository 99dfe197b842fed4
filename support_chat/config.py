"""Configuration objects for the support chat module."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from docstore.scorer import ScoringWeights


class AnswerPolicy(str, Enum):
    """How far the assistant may stray from the documentation."""

    STRICT = "strict"
    GENERAL = "general"


# Strict mode never awards title-word matches.
STRICT_WEIGHTS = ScoringWeights(title_word=0)
GENERAL_WEIGHTS = ScoringWeights()

POLICY_TOP_K = {AnswerPolicy.STRICT: 3, AnswerPolicy.GENERAL: 2}


@dataclass
class ChatLLMConfig:
    """LLM gateway connection details."""

    endpoint: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    model: str = "google/gemini-3-flash-preview"
    request_timeout: int = 60
    api_key: Optional[str] = field(default_factory=lambda: os.getenv("LLM_API_KEY"))


@dataclass
class ChatConfig:
    """Runtime controls for chat behaviour."""

    llm: ChatLLMConfig = field(default_factory=ChatLLMConfig)
    policy: AnswerPolicy = AnswerPolicy.STRICT
    top_k: Optional[int] = None
    history_pairs: int = 5
    docs_path: Optional[str] = None
    offline: bool = False
    model_kwargs: Dict[str, object] = field(default_factory=lambda: {"max_tokens": 500, "temperature": 0.1})

    def __post_init__(self) -> None:
        self.policy = AnswerPolicy(self.policy)
        if self.history_pairs < 0:
            raise ValueError("history_pairs must not be negative")

    @property
    def effective_top_k(self) -> int:
        return self.top_k if self.top_k is not None else POLICY_TOP_K[self.policy]

    @property
    def weights(self) -> ScoringWeights:
        return STRICT_WEIGHTS if self.policy is AnswerPolicy.STRICT else GENERAL_WEIGHTS
