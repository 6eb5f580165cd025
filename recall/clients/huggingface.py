"""Client for the HuggingFace feature-extraction inference pipeline."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import requests

from recall.clients.base import BaseHttpClient, ClientError
from recall.config import RecallConfig
from recall.exceptions import EmbeddingError

logger = logging.getLogger(__name__)


class HuggingFaceEmbedder(BaseHttpClient):
    """Embed text with ``sentence-transformers/all-MiniLM-L6-v2``.

    The pipeline URL is the whole endpoint, so requests go to ``BASE_URL``
    with an empty path.
    """

    BASE_URL = (
        "https://api-inference.huggingface.co/pipeline/feature-extraction/"
        "sentence-transformers/all-MiniLM-L6-v2"
    )
    SERVICE_NAME = "HuggingFace"

    def __init__(
        self,
        api_token: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(session=session, base_url=base_url, timeout=timeout)
        self.api_token = api_token

    @classmethod
    def from_config(cls, config: RecallConfig) -> "HuggingFaceEmbedder":
        return cls(
            config.hf_api_token,
            base_url=config.hf_embedding_url,
            timeout=config.request_timeout_s,
        )

    def embed(self, text: str) -> List[float]:
        """Return the embedding vector for ``text``."""

        if not text or not text.strip():
            raise EmbeddingError("Text is required")
        if not self.api_token:
            raise EmbeddingError("HuggingFace API token is not set")

        try:
            response = self._request(
                "POST",
                headers={
                    "Authorization": f"Bearer {self.api_token}",
                    "Content-Type": "text/plain",
                },
                data=text.encode("utf-8"),
            )
            payload = response.json()
        except ClientError as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc
        except ValueError as exc:
            raise EmbeddingError("Embedding response was not valid JSON") from exc

        return _first_vector(payload)


def _first_vector(payload: Any) -> List[float]:
    # One input yields either [[...]] or a bare [...] depending on the pipeline.
    if isinstance(payload, list) and payload and isinstance(payload[0], list):
        payload = payload[0]
    if not isinstance(payload, list) or not payload:
        raise EmbeddingError("Embedding response did not contain a vector")
    try:
        return [float(value) for value in payload]
    except (TypeError, ValueError) as exc:
        raise EmbeddingError("Embedding response contained non-numeric values") from exc
