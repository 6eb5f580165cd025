"""Classify logged transcripts into football incident tags."""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from recall.clients.base import ClientError
from recall.clients.openrouter import OpenRouterClient
from recall.exceptions import AnswerError

logger = logging.getLogger(__name__)

TAG_SCHEMA = (
    # actions
    "goal",
    "assist",
    "bad pass",
    "interception",
    "foul",
    "save",
    "missed shot",
    # outcomes
    "conceded goal",
    "red card",
    "yellow card",
    "penalty",
    "own goal",
    # modifiers
    "reckless",
    "lazy",
    "clutch",
    "risky",
)

TEMPERATURE = 0.2
MAX_TOKENS = 60


def _system_prompt() -> str:
    tag_lines = "\n".join(f"- {tag}" for tag in TAG_SCHEMA)
    return (
        "You are a football (soccer) log classifier. Your job is to assign 1 to 4 tags "
        "to the following log transcript.\n\n"
        f"Available tags (choose only from this list):\n{tag_lines}\n\n"
        'Return ONLY a JSON array of the most relevant tags, e.g. ["bad pass", '
        '"conceded goal"]. Do not explain or add anything else.'
    )


def parse_tags(content: str) -> List[str]:
    """Parse a JSON array reply and keep only known tags, in reply order."""

    try:
        tags = json.loads(content)
    except ValueError as exc:
        raise AnswerError("Failed to parse tags from LLM response") from exc
    if not isinstance(tags, list):
        raise AnswerError("Failed to parse tags from LLM response: not an array")
    return [tag for tag in tags if isinstance(tag, str) and tag in TAG_SCHEMA]


class TaggingService:
    def __init__(self, client: Optional[OpenRouterClient] = None) -> None:
        self.client = client or OpenRouterClient()

    def tag(self, text: str) -> List[str]:
        if not text or not text.strip():
            raise ValueError("Text is required")

        try:
            content = self.client.chat(
                [
                    {"role": "system", "content": _system_prompt()},
                    {"role": "user", "content": f"Transcript: {text}"},
                ],
                temperature=TEMPERATURE,
                max_tokens=MAX_TOKENS,
                title=f"{self.client.app_title} Tagger",
            )
        except ClientError as exc:
            raise AnswerError(f"Tagging request failed: {exc}") from exc
        tags = parse_tags(content)
        logger.debug("Tagged transcript with %s", tags)
        return tags


__all__ = ["TAG_SCHEMA", "TaggingService", "parse_tags"]
