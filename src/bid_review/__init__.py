"""Bid review package."""

from .config import (
    CacheConfig,
    ChunkingConfig,
    CompareConfig,
    InvokerConfig,
    MatrixConfig,
    PromptConfig,
)

__all__ = [
    "CacheConfig",
    "ChunkingConfig",
    "CompareConfig",
    "InvokerConfig",
    "MatrixConfig",
    "PromptConfig",
]
