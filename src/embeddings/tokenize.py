"""Text tokenization shared by the hashed embedding tier and keyword search."""

import re

# Runs of letters and digits in any script; underscores count as separators.
_ALNUM_RUN = re.compile(r"[^\W_]+")

MIN_KEYWORD_LENGTH = 3


def word_tokens(text: str) -> list[str]:
    """Split text into lower-cased alphanumeric words, keeping duplicates."""
    return _ALNUM_RUN.findall(text.lower())


def extract_keywords(text: str) -> list[str]:
    """Lower-case, split on non-alphanumerics and drop tokens shorter than 3.

    Order and duplicates are preserved: a repeated query word carries
    proportionally more weight in keyword scoring.
    """
    return [token for token in word_tokens(text) if len(token) >= MIN_KEYWORD_LENGTH]
