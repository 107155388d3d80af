"""Scoring module for Problem Radar.

Scores individual posts from engagement, recency and textual signal,
then aggregates post scores into a single idea score.
"""

import logging
import math
import re
import time
from dataclasses import dataclass

from problem_radar.models import RedditPost
from problem_radar.vocabulary import Vocabulary, default_vocabulary

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0

# =============================================================================
# WEIGHTS
# =============================================================================

W_UPVOTES = 1.0
W_COMMENTS = 0.5
W_RECENCY = 0.8
W_PATTERN = 2.0
W_PAIN = 1.0

PATTERN_MATCH_BONUS = 1.0
HIGHLIGHT_BONUS = 0.25
PAIN_WORD_STEP = 0.3
PAIN_WORD_CAP = 1.2

MAX_DIVERSITY = 1.5
DIVERSITY_STEP = 0.1


@dataclass
class PostScore:
    """Post score with every contributing factor."""
    post_id: str
    total: float
    age_days: float
    recency: float
    upvotes: int
    comments: int
    pattern_bonus: float
    pain_words_bonus: float


@dataclass
class IdeaScore:
    """Aggregated idea score with its multipliers."""
    total: float
    post_sum: float
    diversity: float
    volume: float

    @property
    def rounded(self) -> float:
        return round(self.total, 2)


# =============================================================================
# PAIN WORDS
# =============================================================================

def count_pain_words(text: str, vocabulary: Vocabulary | None = None) -> int:
    """Count pain-indicator occurrences in text.

    Every occurrence counts, matched case-insensitively on word boundaries.

    Args:
        text: Text to scan.
        vocabulary: Word lists to use.

    Returns:
        Total number of hits.
    """
    if not text:
        return 0
    vocab = vocabulary or default_vocabulary()
    lower = text.lower()
    hits = 0
    for word in vocab.pain_words:
        hits += len(re.findall(rf"\b{re.escape(word.lower())}\b", lower))
    return hits


# =============================================================================
# SCORE COMPUTATION
# =============================================================================

def compute_post_score(
    post: RedditPost,
    pattern_matched: bool,
    representative_phrase: str,
    now: float | None = None,
    tau_days: float = 30.0,
    vocabulary: Vocabulary | None = None,
) -> PostScore:
    """Compute the score of a single post.

    Args:
        post: Post to score.
        pattern_matched: Whether a primary problem cue matched the post.
        representative_phrase: Phrase chosen for the post.
        now: Reference unix time. Defaults to the current time.
        tau_days: Recency decay constant in days.
        vocabulary: Word lists to use.

    Returns:
        PostScore with the total and each factor.
    """
    vocab = vocabulary or default_vocabulary()
    if now is None:
        now = time.time()

    age_days = max(0.0, (now - post.created_utc) / SECONDS_PER_DAY)
    recency = math.exp(-age_days / tau_days)
    upvotes = max(0, post.upvotes or 0)
    comments = max(0, post.num_comments or 0)

    pattern_bonus = 0.0
    if pattern_matched:
        pattern_bonus = PATTERN_MATCH_BONUS
        phrase_lower = representative_phrase.lower()
        if any(keyword in phrase_lower for keyword in vocab.highlight_keywords):
            pattern_bonus += HIGHLIGHT_BONUS

    pain_hits = count_pain_words(post.text, vocab)
    pain_words_bonus = min(PAIN_WORD_CAP, pain_hits * PAIN_WORD_STEP)

    total = (
        W_UPVOTES * math.log1p(upvotes)
        + W_COMMENTS * math.log1p(comments)
        + W_RECENCY * recency
        + W_PATTERN * pattern_bonus
        + W_PAIN * pain_words_bonus
    )

    return PostScore(
        post_id=post.post_id,
        total=total,
        age_days=age_days,
        recency=recency,
        upvotes=upvotes,
        comments=comments,
        pattern_bonus=pattern_bonus,
        pain_words_bonus=pain_words_bonus,
    )


def compute_idea_score(post_scores: list[float], unique_subreddits: int) -> IdeaScore:
    """Aggregate post scores into an idea score.

    Spreading across subreddits raises the score up to a 1.5x cap; more
    posts raise it logarithmically.

    Args:
        post_scores: Totals of the posts in the idea.
        unique_subreddits: Number of distinct subreddits among those posts.

    Returns:
        IdeaScore.
    """
    post_sum = sum(post_scores)
    diversity = min(MAX_DIVERSITY, 1 + DIVERSITY_STEP * max(0, unique_subreddits - 1))
    volume = math.log1p(len(post_scores))
    total = post_sum * diversity * (0.8 + 0.2 * volume)
    return IdeaScore(total=total, post_sum=post_sum, diversity=diversity, volume=volume)
