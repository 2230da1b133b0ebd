"""
wedjat/core/i18n.py — Localized message resolution.

A message is either a plain string (spoken as-is) or a mapping from language
code to text. Missing languages fall back to English.
"""

from __future__ import annotations

from typing import Mapping, Union

Message = Union[str, Mapping[str, str]]

_FALLBACK = "en"


def localize(message: Message, language: str) -> str:
    """
    Return the text of *message* for *language*.

    Args:
        message: Plain string or ``{language: text}`` mapping.
        language: Two-letter language code.

    Returns:
        The localized text; the English text if *language* is missing;
        an empty string if neither is present.
    """
    if isinstance(message, str):
        return message
    if language in message:
        return message[language]
    return message.get(_FALLBACK, "")


def capitalize(text: str) -> str:
    """Upper-case the first character of *text* (empty text is returned unchanged)."""
    return text[:1].upper() + text[1:]
