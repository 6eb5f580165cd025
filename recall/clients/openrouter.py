"""Client for OpenRouter chat completions."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from recall.clients.base import BaseHttpClient
from recall.config import RecallConfig
from recall.exceptions import AnswerError

ChatMessage = Dict[str, str]


class OpenRouterClient(BaseHttpClient):
    """Thin wrapper around the OpenAI-compatible ``/chat/completions`` endpoint."""

    BASE_URL = "https://openrouter.ai/api/v1"
    SERVICE_NAME = "OpenRouter"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: str = "google/gemini-2.0-flash-001",
        app_url: Optional[str] = None,
        app_title: str = "VAR Vendetta",
        session: Optional[requests.Session] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(session=session, base_url=base_url, timeout=timeout)
        self.api_key = api_key
        self.model = model
        self.app_url = app_url
        self.app_title = app_title

    @classmethod
    def from_config(cls, config: RecallConfig) -> "OpenRouterClient":
        return cls(
            config.openrouter_api_key,
            model=config.openrouter_model,
            app_url=config.app_url,
            app_title=config.app_title,
            base_url=config.openrouter_base_url,
            timeout=config.request_timeout_s,
        )

    def chat(
        self,
        messages: List[ChatMessage],
        *,
        temperature: float,
        max_tokens: int,
        title: Optional[str] = None,
    ) -> str:
        """Return the content of the first choice, or ``""`` when there is none.

        HTTP failures surface as :class:`~recall.clients.base.ClientError`.
        """

        if not self.api_key:
            raise AnswerError("OpenRouter API key is not set")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": title or self.app_title,
        }
        if self.app_url:
            headers["HTTP-Referer"] = self.app_url

        response = self._request(
            "POST",
            "/chat/completions",
            headers=headers,
            json={
                "model": self.model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        )
        try:
            payload = response.json()
        except ValueError as exc:
            raise AnswerError("Chat completion response was not valid JSON") from exc
        return _first_choice_content(payload)


def _first_choice_content(payload: Any) -> str:
    choices = payload.get("choices") if isinstance(payload, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""
