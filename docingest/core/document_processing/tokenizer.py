"""
Token counting with tiktoken and a character-based fallback.

The cl100k_base encoding is loaded lazily once per process. When tiktoken
is missing or its encoding cannot be loaded, counts fall back to
ceil(len(text) / 4).

Dependencies: tiktoken
System role: Shared token measure for chunking and embedding
"""

import logging
import math
from functools import lru_cache
from typing import Protocol

logger = logging.getLogger(__name__)

ENCODING_NAME = "cl100k_base"


class Encoding(Protocol):
    def encode(self, text: str) -> list[int]: ...

    def decode(self, tokens: list[int]) -> str: ...


@lru_cache(maxsize=1)
def get_encoding() -> Encoding | None:
    """
    Load the cl100k_base encoding.

    Returns:
        Encoding if tiktoken is usable, None otherwise
    """
    try:
        import tiktoken

        return tiktoken.get_encoding(ENCODING_NAME)
    except Exception as e:
        logger.warning(
            f"{__name__}:get_encoding - tiktoken unavailable, using length/4 estimate",
            extra={"error": str(e)},
        )
        return None


def estimate_tokens(text: str) -> int:
    """Approximate token count as ceil(len / 4)."""
    return math.ceil(len(text) / 4)


def count_tokens(text: str, encoding: Encoding | None = None) -> int:
    """
    Count tokens in text.

    Args:
        text: Text to measure
        encoding: Explicit encoding (defaults to the lazily loaded cl100k_base)

    Returns:
        int: Exact token count when an encoding is usable, else the estimate
    """
    enc = encoding if encoding is not None else get_encoding()
    if enc is None:
        return estimate_tokens(text)
    try:
        return len(enc.encode(text))
    except Exception as e:
        logger.warning(
            f"{__name__}:count_tokens - encode failed, using estimate",
            extra={"error": str(e)},
        )
        return estimate_tokens(text)
