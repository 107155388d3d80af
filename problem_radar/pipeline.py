"""Analysis pipeline for Problem Radar.

Wires the collaborators together:
stored posts -> quality filters -> phrase extraction -> clustering ->
synthesis -> idea store. Each window is cached in the meta table and only
recomputed when the cache expires or a refresh is forced.
"""

import logging
import time
from dataclasses import dataclass

from problem_radar.analysis.clustering import build_clusters
from problem_radar.analysis.extraction import extract_from_posts, extract_problems_with_llm
from problem_radar.analysis.quality import (
    QualityFilters,
    apply_quality_filters,
    deduplicate_posts,
    detect_spam,
    rank_posts_by_quality,
)
from problem_radar.analysis.synthesis import synthesize_idea
from problem_radar.config import Config, get_config
from problem_radar.database import Database
from problem_radar.llm_client import LLMClient, LLMClientError
from problem_radar.models import ProblemPhrase, RedditPost
from problem_radar.reddit_client import fetch_posts_from_subreddits

logger = logging.getLogger(__name__)

WINDOW_DAYS = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "365d": 365,
}

DEFAULT_WINDOW_KEY = "30d"

SECONDS_PER_DAY = 86400


class PipelineError(Exception):
    """Raised when a run cannot start."""
    pass


@dataclass
class RunSummary:
    """Counts from one analysis run."""
    subreddits: int
    posts_loaded: int
    posts_relevant: int
    phrases: int
    ideas: int
    duration_seconds: float


def resolve_window_key(key: str | None) -> tuple[str, int]:
    """Map a window key like "30d" to (key, days), defaulting to 30d."""
    if key and key in WINDOW_DAYS:
        return key, WINDOW_DAYS[key]
    return DEFAULT_WINDOW_KEY, WINDOW_DAYS[DEFAULT_WINDOW_KEY]


def cache_key(window_days: int) -> str:
    return f"ideas_cache_ts:{window_days}"


# =============================================================================
# STAGES
# =============================================================================

def ingest_posts(
    db: Database,
    config: Config | None = None,
    subreddits: list[str] | None = None,
    window_days: int | None = None,
    client=None,
) -> list[RedditPost]:
    """Fetch new posts from Reddit and store them.

    Args:
        db: Target database.
        config: Configuration. Defaults to the global config.
        subreddits: Override for the configured subreddit list.
        window_days: Override for the configured window.
        client: Reddit client. If None, one is built from config.

    Returns:
        Posts that were fetched and stored.
    """
    config = config or get_config()
    if window_days is None:
        _, window_days = resolve_window_key(config.collection.window)

    posts = fetch_posts_from_subreddits(
        subreddits or config.collection.subreddits,
        window_days=window_days,
        posts_per_sub=config.collection.posts_per_subreddit,
        client=client,
        database=db,
        opt_out_subreddits=config.collection.opt_out_subreddits,
        opt_out_authors=config.collection.opt_out_authors,
        request_delay=config.collection.request_delay_seconds,
    )
    db.upsert_posts(posts)
    logger.info(f"[Pipeline] Stored {len(posts)} posts")
    return posts


def select_relevant_posts(
    posts: list[RedditPost],
    config: Config,
    window_days: int,
    now: float,
) -> list[RedditPost]:
    """Apply quality filters and spam detection, then de-duplicate titles.

    Survivors are ranked by engagement first, so the strongest post of a
    duplicate group is the one kept.
    """
    if not config.quality.enabled:
        return list(posts)

    filters = QualityFilters(
        min_upvotes=config.quality.min_upvotes,
        min_comments=config.quality.min_comments,
        min_content_length=config.quality.min_content_length,
        # never reject a post the window itself still covers
        max_age_hours=max(config.quality.max_age_hours, window_days * 24),
    )
    report = apply_quality_filters(posts, filters, now=now)
    clean = [post for post in report.passed if not detect_spam(post)]
    return deduplicate_posts(rank_posts_by_quality(clean))


def extract_phrases(
    posts: list[RedditPost],
    config: Config,
    use_llm: bool = False,
    llm_client=None,
) -> list[ProblemPhrase]:
    """Extract problem phrases with the regex cues or the LLM classifier.

    Only the `llm.max_posts` strongest posts by engagement are sent to the
    LLM. Calls are made in batches with a pause in between; a failed call
    skips that post.

    Raises:
        PipelineError: If the LLM path is requested without credentials.
    """
    if not use_llm:
        return extract_from_posts(posts, config.vocabulary)

    if llm_client is None:
        if not config.llm_credentials.has_key_for_provider(config.llm.provider):
            raise PipelineError(
                f"LLM extraction requires an API key for '{config.llm.provider}'"
            )
        llm_client = LLMClient(
            provider=config.llm.provider,
            model=config.llm.model,
            api_key=config.llm_credentials.get_key_for_provider(config.llm.provider),
            temperature=config.llm.temperature,
            max_tokens=config.llm.max_tokens,
        )

    candidates = deduplicate_posts(rank_posts_by_quality(posts))[: config.llm.max_posts]
    batch_size = max(1, config.llm.batch_size)
    phrases: list[ProblemPhrase] = []

    for start in range(0, len(candidates), batch_size):
        if start > 0 and config.llm.batch_delay_seconds > 0:
            time.sleep(config.llm.batch_delay_seconds)
        for post in candidates[start:start + batch_size]:
            try:
                found, _ = extract_problems_with_llm(
                    post,
                    client=llm_client,
                    min_confidence=config.llm.min_confidence,
                    vocabulary=config.vocabulary,
                )
            except LLMClientError as e:
                logger.warning(f"[Pipeline] LLM analysis failed for {post.post_id}: {e}")
                continue
            phrases.extend(found)

    logger.info(f"[Pipeline] LLM flagged {len(phrases)} of {len(candidates)} posts")
    return phrases


# =============================================================================
# RUNS
# =============================================================================

def refresh_ideas(
    db: Database,
    window_days: int,
    config: Config | None = None,
    use_llm: bool = False,
    llm_client=None,
    now: float | None = None,
) -> RunSummary:
    """Recompute and store the ideas for a window.

    Args:
        db: Database holding the posts; receives the ideas.
        window_days: Window length in days.
        config: Configuration. Defaults to the global config.
        use_llm: Use the LLM classifier instead of the regex cues.
        llm_client: LLM client for the LLM path.
        now: Reference unix time. Defaults to the current time.

    Returns:
        RunSummary for the run.
    """
    started = time.time()
    config = config or get_config()
    if now is None:
        now = started

    posts = db.load_posts_since(now - window_days * SECONDS_PER_DAY)
    relevant = select_relevant_posts(posts, config, window_days, now)
    phrases = extract_phrases(relevant, config, use_llm=use_llm, llm_client=llm_client)
    db.replace_problems([post.post_id for post in relevant], phrases)

    clusters = build_clusters(
        relevant,
        phrases,
        window_days,
        now=now,
        config=config.engine,
        vocabulary=config.vocabulary,
    )
    details = {c.idea_id: synthesize_idea(c, config.vocabulary) for c in clusters}

    db.store_ideas(window_days, clusters, details)
    db.set_meta(cache_key(window_days), str(now))

    summary = RunSummary(
        subreddits=len({post.subreddit for post in relevant}),
        posts_loaded=len(posts),
        posts_relevant=len(relevant),
        phrases=len(phrases),
        ideas=len(clusters),
        duration_seconds=time.time() - started,
    )
    logger.info(
        f"[Pipeline] {window_days}d: {summary.posts_relevant}/{summary.posts_loaded} "
        f"relevant posts, {summary.phrases} phrases, {summary.ideas} ideas"
    )
    return summary


def ensure_ideas(
    db: Database,
    window_days: int,
    config: Config | None = None,
    force: bool = False,
    use_llm: bool = False,
    llm_client=None,
    now: float | None = None,
) -> RunSummary | None:
    """Refresh the ideas for a window unless the cached set is still fresh.

    Returns:
        RunSummary if a refresh ran, None on a cache hit.
    """
    config = config or get_config()
    if now is None:
        now = time.time()

    last = db.get_meta(cache_key(window_days))
    last_time = float(last) if last else 0.0
    expired = now - last_time > config.engine.cache_ttl_hours * 3600

    if not force and not expired and last_time > 0:
        logger.info(f"[Pipeline] Cache hit for {window_days}d window")
        return None

    return refresh_ideas(
        db,
        window_days,
        config=config,
        use_llm=use_llm,
        llm_client=llm_client,
        now=now,
    )
