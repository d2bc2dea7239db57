# llm_rotator/engine/estimator.py
"""
Pre-flight token count estimation.

This is a cheap proxy for admission control, not a tokenizer: total
character length of all message contents divided by CHARS_PER_TOKEN,
rounded up. Over- or under-counting by a few percent only shifts when a
model is considered full; the provider's own headers correct the budget
after every call.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

from ..constants import CHARS_PER_TOKEN


def _content_length(content: Any) -> int:
    if isinstance(content, str):
        return len(content)
    # OpenAI-style content parts: [{"type": "text", "text": "..."}, ...]
    if isinstance(content, list):
        return sum(
            len(part["text"])
            for part in content
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
    return 0


def estimate_tokens(messages: Iterable[dict[str, Any]]) -> int:
    """
    Estimate the token cost of a list of chat messages.

    >>> estimate_tokens([{"role": "user", "content": "x" * 400}])
    100
    """
    total_chars = sum(_content_length(m.get("content")) for m in messages)
    return math.ceil(total_chars / CHARS_PER_TOKEN)
