"""
wedjat/board/guesser.py — Word completion through the Wordnik search API.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import requests

from wedjat.core.config import WordsConfig

logger = logging.getLogger(__name__)


def last_word(text: str) -> str:
    """The (possibly partial) word at the end of *text*."""
    return text.split(" ")[-1]


class WordGuesser:
    """
    Suggests completions for the word being typed.

    Args:
        config: API endpoint, key and limits.
    """

    def __init__(self, config: WordsConfig) -> None:
        self._cfg = config

    @property
    def n_guesses(self) -> int:
        return self._cfg.n_guesses

    def should_query(self, text: str, language: str) -> bool:
        """True when a request would be made for *text*."""
        return bool(
            self._cfg.enabled
            and self._cfg.api_key
            and language == "en"
            and last_word(text)
        )

    def guess(self, text: str, language: str) -> list[str]:
        """
        Completions for the last word of *text*.

        Returns:
            Exactly ``n_guesses`` words, padded with ``""``. No request is made
            (and all entries are empty) for empty text, a non-English
            language, or a missing API key.

        Raises:
            requests.RequestException: On network or HTTP errors.
            ValueError: If the response is not the expected JSON.
        """
        n = self._cfg.n_guesses
        if not self.should_query(text, language):
            return [""] * n

        # wildcard so a completed word still yields guesses
        query = quote(last_word(text) + "*")
        response = requests.get(
            self._cfg.base_url + query,
            params={
                "minCorpusCount": self._cfg.min_corpus_count,
                "api_key": self._cfg.api_key,
                "caseSensitive": "false",
                "limit": n,
            },
            timeout=self._cfg.timeout_s,
        )
        response.raise_for_status()
        data = response.json()
        try:
            words = [str(entry["word"]) for entry in data["searchResults"][1:]]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Unexpected guess response: {exc!r}") from exc
        logger.debug("Guesses for %r: %s", text, words)
        return (words + [""] * n)[:n]
