"""Problem phrase extraction for Problem Radar.

Two paths produce ProblemPhrase records from posts:
- Regex cues run sentence by sentence (no external calls)
- An LLM classifier decides whether a whole post is an actionable problem
"""

import logging
import re
from typing import Any

from problem_radar.analysis.canonical import canonicalize
from problem_radar.models import ProblemPhrase, RedditPost
from problem_radar.vocabulary import Vocabulary, default_vocabulary

logger = logging.getLogger(__name__)

MAX_WORDS = 12
MAX_TITLE_LENGTH = 80
LLM_CUE_ID = "llm_detected"

SENTENCE_SPLIT = re.compile(r"[.!?\n]+")
_LEADING_JUNK = re.compile(r"^[^a-z0-9]+", re.IGNORECASE)
_DISALLOWED = re.compile(r"[^a-z0-9\s'-]", re.IGNORECASE)
_LEADING_FILLER = re.compile(r"^(?:to|that|for|about|with)\s+", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

LLM_SYSTEM_PROMPT = (
    "Analyze this Reddit post and determine if it contains an actionable "
    "business problem. Respond with JSON: "
    '{"isActionableProblem": boolean, "problemStatement": string, "confidence": number}'
)


# =============================================================================
# TEXT HELPERS
# =============================================================================

def normalize_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def split_sentences(text: str) -> list[str]:
    """Split text on sentence punctuation and newlines, dropping blanks."""
    return [s.strip() for s in SENTENCE_SPLIT.split(text or "") if s.strip()]


def clean_clause(clause: str, max_words: int = MAX_WORDS) -> str:
    """Normalize a captured clause into a short lower-case phrase."""
    sanitized = _LEADING_JUNK.sub("", clause)
    sanitized = _DISALLOWED.sub(" ", sanitized)
    sanitized = _LEADING_FILLER.sub("", sanitized)
    words = normalize_whitespace(sanitized).lower().split()
    return " ".join(words[:max_words])


def build_problem_title(raw: str) -> str:
    """Sentence-case a phrase and cap it at 80 characters."""
    trimmed = normalize_whitespace(raw.lower())
    if not trimmed:
        return trimmed
    return (trimmed[0].upper() + trimmed[1:])[:MAX_TITLE_LENGTH]


# =============================================================================
# REGEX PATH
# =============================================================================

def _phrase_from_cue(
    post_id: str,
    sentence: str,
    cue_id: str,
    clause: str | None,
    vocabulary: Vocabulary,
) -> ProblemPhrase | None:
    cleaned = clean_clause(sentence if clause is None else clause)
    if not cleaned:
        return None
    canonical = canonicalize(cleaned, vocabulary)
    if not canonical:
        return None
    return ProblemPhrase(
        post_id=post_id,
        phrase=build_problem_title(cleaned),
        canonical=canonical,
        snippet=sentence.strip(),
        cue_id=cue_id,
    )


def match_sentence(
    post_id: str,
    sentence: str,
    vocabulary: Vocabulary | None = None,
) -> ProblemPhrase | None:
    """Run the cues over one sentence.

    Problem cues are tried before keyword cues; the first cue that yields
    a usable phrase wins.
    """
    vocab = vocabulary or default_vocabulary()
    for cue in (*vocab.problem_cues, *vocab.keyword_cues):
        match = cue.regex.search(sentence)
        if not match:
            continue
        clause = match.groupdict().get("clause")
        phrase = _phrase_from_cue(post_id, sentence, cue.cue_id, clause, vocab)
        if phrase is not None:
            return phrase
    return None


def dedupe_phrases(phrases: list[ProblemPhrase]) -> list[ProblemPhrase]:
    """Keep the first phrase per (post, signature)."""
    seen: set[tuple[str, str]] = set()
    result = []
    for phrase in phrases:
        key = (phrase.post_id, phrase.canonical)
        if key in seen:
            continue
        seen.add(key)
        result.append(phrase)
    return result


def extract_problem_phrases(
    post: RedditPost,
    vocabulary: Vocabulary | None = None,
) -> list[ProblemPhrase]:
    """Detect problem phrases in a post with the regex cues.

    Args:
        post: Post to scan (title and body).
        vocabulary: Word lists and cues to use.

    Returns:
        Phrases in sentence order, one per (post, signature).
    """
    vocab = vocabulary or default_vocabulary()
    phrases = []
    for sentence in split_sentences(post.text):
        phrase = match_sentence(post.post_id, sentence, vocab)
        if phrase is not None:
            phrases.append(phrase)
    return dedupe_phrases(phrases)


def extract_from_posts(
    posts: list[RedditPost],
    vocabulary: Vocabulary | None = None,
) -> list[ProblemPhrase]:
    """Run the regex path over many posts."""
    phrases = []
    for post in posts:
        phrases.extend(extract_problem_phrases(post, vocabulary))
    logger.info(f"[Extract] {len(phrases)} phrases from {len(posts)} posts")
    return phrases


# =============================================================================
# LLM PATH
# =============================================================================

def _as_confidence(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def extract_problems_with_llm(
    post: RedditPost,
    client=None,
    min_confidence: float = 0.5,
    vocabulary: Vocabulary | None = None,
) -> tuple[list[ProblemPhrase], dict[str, Any]]:
    """Ask an LLM whether a post describes an actionable problem.

    Args:
        post: Post to classify.
        client: LLMClient to use. If None, one is built from config.
        min_confidence: Confidence the model must exceed.
        vocabulary: Word lists used for the signature.

    Returns:
        Tuple of (phrases, raw analysis). At most one phrase is returned.

    Raises:
        LLMClientError: If the call fails or the reply is not valid JSON.
    """
    if client is None:
        from problem_radar.llm_client import get_llm_client
        client = get_llm_client()

    analysis = client.generate_json(post.text, system_prompt=LLM_SYSTEM_PROMPT)

    statement = str(analysis.get("problemStatement") or "")
    actionable = bool(analysis.get("isActionableProblem"))
    confidence = _as_confidence(analysis.get("confidence"))

    if not actionable or confidence <= min_confidence or not statement.strip():
        return [], analysis

    canonical = canonicalize(statement, vocabulary)
    if not canonical:
        logger.debug(f"[Extract] LLM statement for {post.post_id} has no signature")
        return [], analysis

    phrase = ProblemPhrase(
        post_id=post.post_id,
        phrase=build_problem_title(statement),
        canonical=canonical,
        snippet=post.title,
        cue_id=LLM_CUE_ID,
    )
    return [phrase], analysis
