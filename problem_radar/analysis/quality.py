"""Post quality filters for Problem Radar.

Drops low-signal posts (announcements, hiring, rants, spam) before
extraction so clusters are built from genuine workflow complaints.
"""

import logging
import re
import time
from dataclasses import dataclass, field

from problem_radar.models import RedditPost

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_PATTERNS = [
    # Announcements and promotion
    r"\b(launched|announcing|proud to|excited to share|just released)\b",
    r"\b(check out|shameless plug|self promotion)\b",
    # Gratitude and celebration
    r"\b(thank you|thanks|grateful|appreciate|congrat)",
    # Recruiting
    r"\b(hiring|looking for team|cofounder|join us|we're hiring)\b",
    # Open-ended discussion
    r"\b(what do you think|opinion|thoughts|unpopular opinion|debate)\b",
    r"\b(shower thought|random thought|discussion)\b",
    # Meta posts
    r"\b(meta|reddit|subreddit|mods|moderator)\b",
    # Off-topic personal posts
    r"\b(rant|vent|personal|relationship|family|health)\b",
    # Bare questions without context
    r"^(what|who|when|where|why|how)\s+\w+\s*\??\s*$",
]

DEFAULT_REQUIRED_PATTERNS = [
    r"\b(automate|automation|tool|app|solution|script|workflow|process|integration"
    r"|sync|convert|export|import|batch|manual|repetitive|tedious|streamline"
    r"|optimize|efficient)\b",
]

SPAM_PATTERNS = [
    re.compile(r"\b(click here|visit now|limited time|act now|special offer)\b", re.IGNORECASE),
    re.compile(r"\b(100% free|guaranteed|risk free|no obligation)", re.IGNORECASE),
    re.compile(r"\$\d+.*?(earn|make|profit|income).*?(daily|weekly|monthly)", re.IGNORECASE),
    re.compile(r"(bit\.ly|tinyurl|goo\.gl)/\w+", re.IGNORECASE),
    re.compile(r"(.)\1{4,}"),
]


@dataclass
class QualityFilters:
    """Thresholds and patterns a post must satisfy."""
    min_upvotes: int = 2
    min_comments: int = 1
    min_content_length: int = 50
    max_age_hours: float = 24 * 30
    exclude_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    required_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_REQUIRED_PATTERNS))


@dataclass
class QualityReport:
    """Result of running the filters over a batch of posts."""
    passed: list[RedditPost] = field(default_factory=list)
    failed: list[RedditPost] = field(default_factory=list)
    reasons: dict[str, str] = field(default_factory=dict)


def _full_text(post: RedditPost) -> str:
    return f"{post.title} {post.body or ''}"


def check_post(post: RedditPost, filters: QualityFilters, now: float) -> str | None:
    """Return the first reason a post fails, or None if it passes."""
    if post.upvotes < filters.min_upvotes:
        return f"Low upvotes: {post.upvotes} < {filters.min_upvotes}"
    if post.num_comments < filters.min_comments:
        return f"Low comments: {post.num_comments} < {filters.min_comments}"

    text = _full_text(post)
    if len(text) < filters.min_content_length:
        return f"Short content: {len(text)} < {filters.min_content_length}"

    age_hours = (now - post.created_utc) / 3600
    if age_hours > filters.max_age_hours:
        return f"Too old: {round(age_hours)}h > {filters.max_age_hours}h"

    for pattern in filters.exclude_patterns:
        if re.search(pattern, text, re.IGNORECASE):
            return f"Excluded by pattern: {pattern}"

    if filters.required_patterns and not any(
        re.search(pattern, text, re.IGNORECASE) for pattern in filters.required_patterns
    ):
        return "Missing required workflow patterns"

    return None


def apply_quality_filters(
    posts: list[RedditPost],
    filters: QualityFilters | None = None,
    now: float | None = None,
) -> QualityReport:
    """Split posts into passed and failed.

    Args:
        posts: Posts to check.
        filters: Filter settings. Defaults to QualityFilters().
        now: Reference unix time. Defaults to the current time.

    Returns:
        QualityReport with the first failure reason per failed post.
    """
    filters = filters or QualityFilters()
    if now is None:
        now = time.time()

    report = QualityReport()
    for post in posts:
        reason = check_post(post, filters, now)
        if reason is None:
            report.passed.append(post)
        else:
            report.failed.append(post)
            report.reasons[post.post_id] = reason

    logger.info(f"[Quality] {len(report.passed)}/{len(posts)} posts passed filters")
    return report


def calculate_engagement_score(post: RedditPost) -> int:
    """Upvotes plus comments, with comments weighted 3x."""
    return post.upvotes + 3 * post.num_comments


def is_high_quality_author(author: str | None) -> bool:
    """Heuristic check that an author is not a throwaway or bot account.

    Not part of `apply_quality_filters`; callers that want to screen
    authors apply it themselves.
    """
    if not author:
        return False
    name = re.sub(r"^u/", "", author, flags=re.IGNORECASE)

    if re.search(r"throwaway|temp|burner", name, re.IGNORECASE):
        return False
    digits = sum(1 for ch in name if ch.isdigit())
    if digits > len(name) / 2:
        return False
    return 3 <= len(name) <= 20


def detect_spam(post: RedditPost) -> bool:
    text = _full_text(post)
    return any(pattern.search(text) for pattern in SPAM_PATTERNS)


def rank_posts_by_quality(posts: list[RedditPost]) -> list[RedditPost]:
    """Order by engagement, then content length, then recency."""
    return sorted(
        posts,
        key=lambda p: (
            calculate_engagement_score(p),
            len(_full_text(p)),
            p.created_utc,
        ),
        reverse=True,
    )


def deduplicate_posts(posts: list[RedditPost]) -> list[RedditPost]:
    """Drop posts whose titles share the same first five sorted words."""
    seen: set[str] = set()
    unique = []
    for post in posts:
        words = sorted(re.sub(r"[^\w\s]", "", post.title.lower()).split())[:5]
        key = " ".join(words)
        if key in seen:
            continue
        seen.add(key)
        unique.append(post)
    return unique


def is_opted_out(
    subreddit: str,
    author: str | None,
    opt_out_subreddits: list[str],
    opt_out_authors: list[str],
) -> bool:
    """Check the opt-out lists. Matching is case-insensitive; "u/" is ignored."""
    if subreddit.lower() in {s.lower() for s in opt_out_subreddits}:
        return True
    if author:
        normalized = re.sub(r"^u/", "", author, flags=re.IGNORECASE).lower()
        blocked = {re.sub(r"^u/", "", a, flags=re.IGNORECASE).lower() for a in opt_out_authors}
        return normalized in blocked
    return False
