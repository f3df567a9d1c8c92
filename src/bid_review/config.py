"""Configuration models for the bid review system."""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL_MAP: dict[str, str] = {
    "default": "google/gemini-2.5-flash",
    "gpt5": "openai/gpt-5",
    "gemini3": "google/gemini-3-pro-preview",
    "claude35": "anthropic/claude-3.5-sonnet",
}


class ChunkingConfig(BaseModel):
    """Configures fixed-window splitting of extracted document text."""

    max_chunk_chars: int = Field(default=100_000, ge=1)
    overlap_chars: int = Field(default=0, ge=0)


class PromptConfig(BaseModel):
    """Bounds applied while rendering one review prompt.

    `max_prompt_chars` is enforced on every chunk regardless of how the text
    was chunked upstream.
    """

    max_prompt_chars: int = Field(default=80_000, ge=1)
    min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    max_findings_per_rule: int = Field(default=5, ge=1)
    max_low_priority_findings: int = Field(default=5, ge=1)


class InvokerConfig(BaseModel):
    """Configures the OpenAI-compatible reasoning gateway."""

    base_url: str = "https://openrouter.ai/api/v1"
    model_map: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_MODEL_MAP))
    default_model_key: str = "default"
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=8000, ge=1)
    # Header values must stay ASCII.
    referer: str = "https://rfpai.io"
    app_title: str = "rfpai RFP Checker"


class MatrixConfig(BaseModel):
    """Configures compliance-matrix extraction from an RFP."""

    max_input_chars: int = Field(default=80_000, ge=1)
    chunk_chars: int = Field(default=30_000, ge=1)
    overlap_chars: int = Field(default=1_000, ge=0)
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=3500, ge=1)
    max_items_per_chunk: int = Field(default=120, ge=1)


class CacheConfig(BaseModel):
    """Configures the in-process result cache."""

    ttl_ms: int = Field(default=3_600_000, ge=1)


class ReviewSettings(BaseSettings):
    """Environment-driven settings (credential and log level)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    openrouter_api_key: str | None = None
    bid_review_log_level: str = "INFO"


class CompareConfig(BaseModel):
    """Configures the requirement-by-requirement bid coverage comparison."""

    max_bid_chars: int = Field(default=80_000, ge=1)
    max_requirements: int = Field(default=25, ge=1)
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=6000, ge=1)
