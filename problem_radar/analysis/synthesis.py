"""Idea synthesis for Problem Radar.

Maps a finished IdeaCluster onto a structured business-idea description
using keyword rules only. Every field always gets a value; missing signal
falls back to generic defaults.
"""

import logging
import re

from problem_radar.analysis.scoring import count_pain_words
from problem_radar.models import IdeaCluster, IdeaDetails
from problem_radar.vocabulary import Vocabulary, default_vocabulary

logger = logging.getLogger(__name__)

# =============================================================================
# COMPLEXITY
# =============================================================================

COMPLEXITY_BASE = 1.0
COMPLEXITY_PER_REQUIREMENT = 0.6

# (tokens, points) added once when any token appears at a word start
COMPLEXITY_RULES = (
    (("pdf",), 0.8),
    (("email",), 0.4),
    (("webhook", "web"), 0.9),
    (("realtime", "live"), 0.7),
    (("model", "ml"), 1.2),
    (("billing", "oauth"), 0.8),
    (("designer", "thumbnail", "editor", "dashboard"), 0.6),
    (("invoice", "ledger", "finance", "medical"), 0.7),
)

# (max score, tier, effort days)
COMPLEXITY_TIERS = (
    (2.0, "Weekend build", 2),
    (3.5, "1–2 weeks", 7),
)
COMPLEX_TIER = ("Complex", 14)

# =============================================================================
# WORTH
# =============================================================================

# (min wtp mentions, upvotes strictly above, bucket, monetization)
WORTH_BUCKETS = (
    (8, 1500, "$99+/mo", "Tiered subscription per workspace (from $129/mo)"),
    (5, 600, "$19–$99/mo", "Subscription per workspace (from $29/mo)"),
    (2, 250, "$10–$49/mo", "Subscription per user (from $14/mo)"),
)
DEFAULT_WORTH = ("$5–$19/mo", "Starter plan $5/mo or credit bundle")

RISKS = [
    "Respect upstream platform Terms of Service",
    "Handle rate limits and retries for third-party APIs",
    "Ensure outputs are auditable and reversible",
]

MAX_EVIDENCE_KEYWORDS = 8


def _keyword_text(cluster: IdeaCluster) -> str:
    return f"{cluster.title} {' '.join(cluster.top_keywords)}".lower()


def guess_requirements(cluster: IdeaCluster, vocabulary: Vocabulary) -> list[str]:
    """Requirements whose trigger words appear in the title or keywords."""
    text = _keyword_text(cluster)
    requirements: list[str] = []
    for triggers, requirement in vocabulary.requirement_rules:
        if requirement in requirements:
            continue
        if any(trigger in text for trigger in triggers):
            requirements.append(requirement)
    return requirements


def complexity_score(requirements: list[str], cluster: IdeaCluster) -> float:
    """Estimate build complexity from requirements and cluster wording."""
    score = COMPLEXITY_BASE + COMPLEXITY_PER_REQUIREMENT * len(requirements)
    text = f"{' '.join(requirements)} {_keyword_text(cluster)}".lower()
    for tokens, points in COMPLEXITY_RULES:
        if any(re.search(rf"\b{re.escape(token)}", text) for token in tokens):
            score += points
    return score


def complexity_tier(score: float) -> tuple[str, int]:
    """Map a complexity score to (tier, effort days)."""
    for max_score, tier, days in COMPLEXITY_TIERS:
        if score <= max_score:
            return tier, days
    return COMPLEX_TIER


def worth_bucket(wtp_mentions: int, upvotes_sum: int) -> tuple[str, str]:
    """Map willingness-to-pay signal to (worth estimate, monetization)."""
    for min_mentions, min_upvotes, bucket, monetization in WORTH_BUCKETS:
        if wtp_mentions >= min_mentions or upvotes_sum > min_upvotes:
            return bucket, monetization
    return DEFAULT_WORTH


def choose_audience(cluster: IdeaCluster, vocabulary: Vocabulary) -> str:
    text = _keyword_text(cluster)
    for pattern, persona in vocabulary.audience_rules:
        if re.search(pattern, text):
            return persona
    return vocabulary.default_audience


def build_key_features(cluster: IdeaCluster, vocabulary: Vocabulary) -> list[str]:
    text = _keyword_text(cluster)
    features = list(vocabulary.base_features)
    for triggers, feature in vocabulary.feature_rules:
        if feature not in features and any(t in text for t in triggers):
            features.append(feature)
    return features


def cluster_text(cluster: IdeaCluster) -> str:
    """All text that belongs to a cluster, for phrase counting."""
    parts = [cluster.title, cluster.sample_snippet or "", " ".join(cluster.phrases)]
    parts.extend(f"{post.title} {post.matched_snippet}" for post in cluster.posts)
    return " ".join(parts)


def synthesize_idea(cluster: IdeaCluster, vocabulary: Vocabulary | None = None) -> IdeaDetails:
    """Derive a business-idea description from a cluster.

    Args:
        cluster: Finished idea cluster. It is not modified.
        vocabulary: Word lists to use.

    Returns:
        IdeaDetails with every field populated.
    """
    vocab = vocabulary or default_vocabulary()

    requirements = guess_requirements(cluster, vocab)
    complexity = complexity_score(requirements, cluster)
    tier, effort_days = complexity_tier(complexity)

    text = cluster_text(cluster)
    wtp_mentions = len(re.findall(vocab.wtp_pattern, text, re.IGNORECASE))
    worth, monetization = worth_bucket(wtp_mentions, cluster.upvotes_sum)

    pain = max(1, count_pain_words(text, vocab))
    title_lower = cluster.title.lower()

    evidence = list(dict.fromkeys([*cluster.top_keywords, *vocab.highlight_keywords]))

    logger.debug(
        f"[Synthesis] {cluster.idea_id}: complexity={complexity:.1f} "
        f"tier={tier} wtp={wtp_mentions}"
    )

    return IdeaDetails(
        problem_title=cluster.title,
        summary=(
            f'Users report manual, time-consuming work around "{title_lower}" with '
            f"{cluster.posts_count} posts across {cluster.subs_count} subreddits "
            f"(Σ upvotes {cluster.upvotes_sum})."
        ),
        target_users=choose_audience(cluster, vocab),
        job_to_be_done=(
            f"When {title_lower}, I want automation so I can focus on "
            f"high-value work and avoid errors."
        ),
        solution=(
            f"Opinionated workflow that handles {title_lower} with built-in "
            f"templates, batching, and safe approvals."
        ),
        key_features=build_key_features(cluster, vocab),
        requirements=requirements or list(vocab.default_requirements),
        complexity_tier=tier,
        predicted_effort_days=effort_days,
        value_prop=(
            f"Saves {pain}–{max(pain + 2, pain * 2)} hours per week and "
            f"eliminates copy/paste mistakes."
        ),
        worth_estimate=worth,
        monetization=monetization,
        risks=list(RISKS),
        wtp_mentions=wtp_mentions,
        evidence_keywords=evidence[:MAX_EVIDENCE_KEYWORDS],
    )
