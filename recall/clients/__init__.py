"""HTTP clients for the external embedding and language model services."""

from .base import BaseHttpClient, ClientError
from .huggingface import HuggingFaceEmbedder
from .openrouter import OpenRouterClient

__all__ = ["BaseHttpClient", "ClientError", "HuggingFaceEmbedder", "OpenRouterClient"]
