"""Application configuration for session recall."""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RecallConfig(BaseSettings):  # type: ignore[misc]
    """Settings controlling the snippet store, ranking and external services."""

    db_dsn: str | None = Field(None, description="PostgreSQL DSN for sessions and snippets")

    bm25_k1: float = Field(1.2, gt=0, description="BM25 term-frequency saturation")
    bm25_b: float = Field(0.75, ge=0, le=1, description="BM25 length normalization")
    bm25_min_documents: int = Field(
        3, ge=1, description="Documents required before the lexical index can be finalized"
    )
    lexical_weight: float = Field(0.6, description="Fusion weight for lexical scores")
    vector_weight: float = Field(0.4, description="Fusion weight for vector scores")
    default_k: int = Field(5, gt=0, description="Number of snippets retrieved per question")

    hf_api_token: str | None = Field(None, description="HuggingFace inference API token")
    hf_embedding_url: str = Field(
        "https://api-inference.huggingface.co/pipeline/feature-extraction/"
        "sentence-transformers/all-MiniLM-L6-v2",
        description="Feature-extraction endpoint producing 384-dimensional embeddings",
    )
    openrouter_api_key: str | None = Field(None, description="OpenRouter API key")
    openrouter_base_url: str = Field("https://openrouter.ai/api/v1")
    openrouter_model: str = Field("google/gemini-2.0-flash-001")
    app_url: str | None = Field(None, description="Referer reported to OpenRouter")
    app_title: str = Field("VAR Vendetta")
    request_timeout_s: float = Field(
        30.0, description="Default timeout (in seconds) for outbound HTTP requests"
    )
    log_level: str = Field("INFO")

    model_config = SettingsConfigDict(env_prefix="RECALL_", env_file=".env", extra="ignore")

    @field_validator("lexical_weight", "vector_weight")
    @classmethod
    def validate_weight(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("fusion weights must lie within [0, 1]")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def validate_weights_not_both_zero(self) -> "RecallConfig":
        if self.lexical_weight == 0.0 and self.vector_weight == 0.0:
            raise ValueError("at least one fusion weight must be positive")
        return self
