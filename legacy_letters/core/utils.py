"""Shared utility functions for Legacy Letters."""

import json


def encode_answer(value: str | list[str]) -> str:
    """Serialize an answer value for the ``answer_text`` column.

    Strings are stored unchanged; lists are stored as JSON array text.
    """
    if isinstance(value, list):
        return json.dumps(value, ensure_ascii=False)
    return value


def decode_answer(text: str | None) -> str | list[str]:
    """Inverse of :func:`encode_answer`. Never raises.

    Only a JSON array of strings is turned back into a list; malformed JSON,
    JSON scalars and plain text come back as the raw string.
    """
    if text is None:
        return ""
    if not text.startswith("["):
        return text
    try:
        decoded = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return text
    if isinstance(decoded, list) and all(isinstance(item, str) for item in decoded):
        return decoded
    return text


def format_hms(seconds: int) -> str:
    """Format a non-negative second count as zero-padded ``HH:MM:SS``."""
    seconds = max(int(seconds), 0)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
