"""Answer questions from retrieved snippets with an OpenRouter model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from recall.clients.base import ClientError
from recall.clients.openrouter import ChatMessage, OpenRouterClient
from recall.exceptions import AnswerError
from recall.hybrid.models import SearchResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions based on provided context "
    "from conversation transcripts.\n"
    "Use ONLY the information from the provided context to answer questions.\n"
    "If the answer cannot be determined from the context, say so clearly.\n"
    "Do not make up information or use external knowledge.\n"
    "Format your answer concisely and directly address the question."
)
KEYWORD_ONLY_NOTE = "Note: This search used keyword matching only, not semantic search."

EMPTY_CHOICE_ANSWER = "Sorry, I couldn't generate an answer based on the available context."
NO_CONTEXT_ANSWER = (
    "I couldn't find any logged snippets related to your question, "
    "so there is no supporting context to answer from."
)
FAILURE_ANSWER = (
    "I couldn't process your question due to technical issues. "
    "The language model request failed; the retrieved snippets are listed as sources."
)

TEMPERATURE = 0.3
MAX_TOKENS = 500


@dataclass
class Answer:
    answer: str
    sources: List[SearchResult] = field(default_factory=list)
    keyword_only: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "sources": [source.to_dict() for source in self.sources],
            "keyword_only": self.keyword_only,
        }


def format_context(results: Sequence[SearchResult]) -> str:
    """Render results as ``[timestamp] text`` lines separated by blank lines."""

    lines = []
    for result in results:
        when = result.timestamp.strftime("%Y-%m-%d %H:%M:%S") if result.timestamp else "unknown time"
        lines.append(f"[{when}] {result.text}")
    return "\n\n".join(lines)


class AnswerService:
    def __init__(self, client: Optional[OpenRouterClient] = None) -> None:
        self.client = client or OpenRouterClient()

    def build_messages(
        self, question: str, results: Sequence[SearchResult], *, keyword_only: bool = False
    ) -> List[ChatMessage]:
        system_prompt = SYSTEM_PROMPT
        heading = "Context from conversation transcripts"
        if keyword_only:
            system_prompt = f"{SYSTEM_PROMPT}\n{KEYWORD_ONLY_NOTE}"
            heading = f"{heading} (keyword search only)"

        return [
            {"role": "system", "content": system_prompt},
            {
                "role": "user",
                "content": f"{heading}:\n\n{format_context(results)}\n\nQuestion: {question}",
            },
        ]

    def answer(
        self, question: str, results: Sequence[SearchResult], *, keyword_only: bool = False
    ) -> Answer:
        sources = list(results)
        if not sources:
            return Answer(NO_CONTEXT_ANSWER, [], keyword_only)

        messages = self.build_messages(question, sources, keyword_only=keyword_only)
        try:
            content = self.client.chat(messages, temperature=TEMPERATURE, max_tokens=MAX_TOKENS)
        except (ClientError, AnswerError) as exc:
            logger.warning("Answer generation failed: %s", exc)
            return Answer(FAILURE_ANSWER, sources, keyword_only)

        return Answer(content.strip() or EMPTY_CHOICE_ANSWER, sources, keyword_only)


__all__ = ["Answer", "AnswerService", "format_context"]
