"""
Prompt token estimation.
"""

from functools import lru_cache

import tiktoken


@lru_cache(maxsize=64)
def get_encoding(model: str) -> tiktoken.Encoding:
    """Get tiktoken encoding for a model."""
    try:
        return tiktoken.encoding_for_model(model)
    except KeyError:
        # Fall back to cl100k_base for unknown models
        return tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str, model: str) -> int:
    """Count tokens in text for a given model."""
    if not text:
        return 0
    return len(get_encoding(model).encode(text))
