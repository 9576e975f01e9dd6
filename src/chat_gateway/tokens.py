"""Client-side token counting for streamed calls that report no prompt usage."""

from __future__ import annotations

import logging

import tiktoken

logger = logging.getLogger(__name__)

_FALLBACK_ENCODING = "cl100k_base"

_encodings: dict[str, tiktoken.Encoding] = {}


def get_encoding(model: str) -> tiktoken.Encoding:
    """Get or create the tiktoken encoding for a model."""
    if model not in _encodings:
        try:
            _encodings[model] = tiktoken.encoding_for_model(model)
        except KeyError:
            logger.debug("No tiktoken encoding for %s, using %s", model, _FALLBACK_ENCODING)
            _encodings[model] = tiktoken.get_encoding(_FALLBACK_ENCODING)
    return _encodings[model]


def count_tokens(text: str, model: str) -> int:
    """Count tokens in text for a given model."""
    return len(get_encoding(model).encode(text))
