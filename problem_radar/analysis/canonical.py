"""Phrase canonicalization for Problem Radar.

Turns a free-text problem phrase into an order-independent signature:
lower-cased, stopword-free, stemmed tokens sorted and joined by "_".
"""

import re

from problem_radar.vocabulary import Vocabulary, default_vocabulary

# Tried in order; first suffix whose result keeps MIN_STEM_LENGTH chars wins.
SUFFIX_RULES = (
    ("ies", "y"),
    ("ings", "ing"),
    ("ing", ""),
    ("ed", ""),
    ("ers", "er"),
    ("er", ""),
    ("es", "e"),
    ("s", ""),
)

MIN_STEM_LENGTH = 3

_NON_WORD = re.compile(r"[^a-z0-9\s'-]")
_HAS_ALNUM = re.compile(r"[a-z0-9]")


def stem_word(word: str) -> str:
    """Strip a common English suffix from a word.

    Args:
        word: Lower-cased token.

    Returns:
        Stemmed token, or the input if no rule applies.
    """
    if len(word) <= 2:
        return word

    for suffix, replacement in SUFFIX_RULES:
        if not word.endswith(suffix):
            continue
        candidate = word[: -len(suffix)] + replacement
        if len(candidate) >= MIN_STEM_LENGTH:
            return candidate

    return word


def stem_tokens(tokens: list[str]) -> list[str]:
    """Stem every token, keeping order."""
    return [stem_word(token) for token in tokens]


def tokenize(phrase: str, stopwords: frozenset[str] | None = None) -> list[str]:
    """Lower-case and split a phrase, dropping punctuation and stopwords."""
    cleaned = _NON_WORD.sub(" ", phrase.lower())
    # bare "-" or "'" left over from punctuation is not a token
    tokens = [token for token in cleaned.split() if _HAS_ALNUM.search(token)]
    if stopwords is None:
        return tokens
    return [token for token in tokens if token not in stopwords]


def canonicalize(phrase: str, vocabulary: Vocabulary | None = None) -> str:
    """Build the canonical signature of a phrase.

    Args:
        phrase: Raw problem phrase.
        vocabulary: Word lists to use. Defaults to the built-in vocabulary.

    Returns:
        Sorted, de-duplicated stems joined by "_", or "" when nothing
        meaningful is left.
    """
    vocab = vocabulary or default_vocabulary()
    stems = stem_tokens(tokenize(phrase, vocab.stopwords))
    return "_".join(sorted(set(stems)))
