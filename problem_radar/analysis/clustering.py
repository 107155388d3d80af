"""Clustering module for Problem Radar.

Groups problem phrases into ideas without any model calls:
- Exact grouping by canonical signature into drafts
- Fuzzy merging of drafts whose representative phrases are near-duplicates
- One representative phrase per post, then scoring, trend and keywords
"""

import hashlib
import logging
import re
import time
from collections import Counter
from dataclasses import dataclass

from problem_radar.analysis.scoring import compute_idea_score, compute_post_score
from problem_radar.analysis.similarity import phrase_similarity
from problem_radar.analysis.trend import compute_trend
from problem_radar.config import EngineConfig
from problem_radar.models import ClusterPost, IdeaCluster, ProblemPhrase, RedditPost
from problem_radar.vocabulary import Vocabulary, default_vocabulary

logger = logging.getLogger(__name__)

_KEYWORD_STRIP = re.compile(r"[^a-z0-9\s]")

# A single post is never an idea, whatever the configured minimum.
MIN_CLUSTER_POSTS = 2


# =============================================================================
# DRAFTS
# =============================================================================

@dataclass(frozen=True)
class DraftEntry:
    """A phrase paired with the post it came from."""
    post: RedditPost
    phrase: ProblemPhrase


@dataclass(frozen=True)
class ClusterDraft:
    """Working group of entries before an idea is finalized.

    `phrase_counts` keeps (phrase, count) pairs in first-seen order.
    """
    canonical: str
    entries: tuple[DraftEntry, ...] = ()
    phrase_counts: tuple[tuple[str, int], ...] = ()

    @property
    def representative_phrase(self) -> str:
        """Most frequent phrase; the earliest one wins a tie."""
        best_phrase = ""
        best_count = -1
        for phrase, count in self.phrase_counts:
            if count > best_count:
                best_phrase = phrase
                best_count = count
        return best_phrase

    @property
    def phrases(self) -> list[str]:
        return [phrase for phrase, _ in self.phrase_counts]

    @property
    def post_ids(self) -> list[str]:
        """Distinct post ids in first-seen order."""
        return list(dict.fromkeys(entry.post.post_id for entry in self.entries))


def merge_drafts(target: ClusterDraft, source: ClusterDraft) -> ClusterDraft:
    """Combine two drafts into a new one. Neither input is modified.

    Args:
        target: Draft that keeps its canonical signature.
        source: Draft folded into the target.

    Returns:
        New draft with the entries of both and summed phrase counts.
    """
    counts = dict(target.phrase_counts)
    for phrase, count in source.phrase_counts:
        counts[phrase] = counts.get(phrase, 0) + count

    return ClusterDraft(
        canonical=target.canonical,
        entries=target.entries + source.entries,
        phrase_counts=tuple(counts.items()),
    )


def build_drafts(posts: list[RedditPost], phrases: list[ProblemPhrase]) -> list[ClusterDraft]:
    """Group phrases by canonical signature.

    Phrases with an empty signature or an unknown post are skipped.

    Args:
        posts: Posts the phrases refer to.
        phrases: Detected problem phrases.

    Returns:
        Drafts in first-seen signature order.
    """
    post_map = {post.post_id: post for post in posts}
    entries: dict[str, list[DraftEntry]] = {}
    counts: dict[str, dict[str, int]] = {}

    for phrase in phrases:
        if not phrase.canonical:
            logger.debug(f"[Cluster] Skipping phrase with empty signature: {phrase.phrase!r}")
            continue
        post = post_map.get(phrase.post_id)
        if post is None:
            logger.debug(f"[Cluster] Skipping phrase for unknown post {phrase.post_id}")
            continue

        entries.setdefault(phrase.canonical, []).append(DraftEntry(post=post, phrase=phrase))
        phrase_counts = counts.setdefault(phrase.canonical, {})
        phrase_counts[phrase.phrase] = phrase_counts.get(phrase.phrase, 0) + 1

    return [
        ClusterDraft(
            canonical=canonical,
            entries=tuple(draft_entries),
            phrase_counts=tuple(counts[canonical].items()),
        )
        for canonical, draft_entries in entries.items()
    ]


def merge_similar_drafts(
    drafts: list[ClusterDraft],
    threshold: float = 0.85,
    largest_first: bool = True,
) -> list[ClusterDraft]:
    """Merge drafts whose representative phrases are near-duplicates.

    Larger drafts are visited first so they absorb their smaller variants.
    Each draft merges into the first accepted draft it matches.

    Args:
        drafts: Drafts from build_drafts.
        threshold: Minimum phrase similarity for a merge.
        largest_first: Visit drafts by descending entry count.

    Returns:
        Accepted drafts.
    """
    ordered = list(drafts)
    if largest_first:
        # sorted() is stable, equal sizes keep first-seen order
        ordered = sorted(ordered, key=lambda d: len(d.entries), reverse=True)

    accepted: list[ClusterDraft] = []
    for draft in ordered:
        representative = draft.representative_phrase.lower()
        for i, existing in enumerate(accepted):
            score = phrase_similarity(representative, existing.representative_phrase.lower())
            if score >= threshold:
                accepted[i] = merge_drafts(existing, draft)
                break
        else:
            accepted.append(draft)

    if len(accepted) < len(drafts):
        logger.debug(f"[Cluster] Merged {len(drafts)} drafts into {len(accepted)}")
    return accepted


def select_cluster_posts(
    draft: ClusterDraft,
    primary_cue_ids: frozenset[str],
) -> list[DraftEntry]:
    """Pick one entry per post.

    Entries from primary cues win, then the longer phrase, then the first seen.

    Returns:
        Chosen entries in first-seen post order.
    """
    by_post: dict[str, list[DraftEntry]] = {}
    for entry in draft.entries:
        by_post.setdefault(entry.post.post_id, []).append(entry)

    chosen = []
    for post_entries in by_post.values():
        ranked = sorted(
            post_entries,
            key=lambda e: (e.phrase.cue_id not in primary_cue_ids, -len(e.phrase.phrase)),
        )
        chosen.append(ranked[0])
    return chosen


# =============================================================================
# FINALIZATION
# =============================================================================

def make_idea_id(canonical: str, window_days: int) -> str:
    """Stable idea id from the signature and window length."""
    digest = hashlib.sha1(f"{canonical}_{window_days}".encode("utf-8")).hexdigest()
    return f"idea_{digest[:10]}"


def top_keywords(
    phrases: list[str],
    stopwords: frozenset[str],
    limit: int = 5,
) -> list[str]:
    """Most frequent tokens across phrases, first-seen order on ties."""
    counts: Counter = Counter()
    for phrase in phrases:
        for token in _KEYWORD_STRIP.sub(" ", phrase.lower()).split():
            if token not in stopwords:
                counts[token] += 1
    return [keyword for keyword, _ in counts.most_common(limit)]


def _to_cluster_post(entry: DraftEntry) -> ClusterPost:
    post = entry.post
    return ClusterPost(
        post_id=post.post_id,
        subreddit=post.subreddit,
        title=post.title,
        url=post.url,
        created_utc=post.created_utc,
        upvotes=post.upvotes,
        num_comments=post.num_comments,
        matched_snippet=entry.phrase.snippet,
        problem_phrase=entry.phrase.phrase,
        author=post.author,
    )


def finalize_draft(
    draft: ClusterDraft,
    window_days: int,
    now: float,
    config: EngineConfig,
    vocabulary: Vocabulary,
) -> IdeaCluster | None:
    """Score a merged draft and turn it into an IdeaCluster.

    Returns:
        The idea, or None when the draft has too few distinct posts.
    """
    primary = vocabulary.primary_cue_ids
    chosen = select_cluster_posts(draft, primary)
    if len(chosen) < max(MIN_CLUSTER_POSTS, config.min_cluster_posts):
        return None

    post_scores = []
    for entry in chosen:
        pattern_matched = any(
            e.phrase.cue_id in primary
            for e in draft.entries
            if e.post.post_id == entry.post.post_id
        )
        score = compute_post_score(
            entry.post,
            pattern_matched=pattern_matched,
            representative_phrase=entry.phrase.phrase,
            now=now,
            tau_days=config.tau_days,
            vocabulary=vocabulary,
        )
        post_scores.append(score.total)

    if not post_scores:
        return None

    cluster_posts = [_to_cluster_post(entry) for entry in chosen]
    subs_count = len({post.subreddit for post in cluster_posts})
    idea_score = compute_idea_score(post_scores, subs_count)
    trend = compute_trend(cluster_posts, window_days, now)

    return IdeaCluster(
        idea_id=make_idea_id(draft.canonical, window_days),
        title=draft.representative_phrase,
        canonical=draft.canonical,
        phrases=draft.phrases,
        posts=cluster_posts,
        score=idea_score.rounded,
        posts_count=len(cluster_posts),
        subs_count=subs_count,
        upvotes_sum=sum(max(0, p.upvotes or 0) for p in cluster_posts),
        comments_sum=sum(max(0, p.num_comments or 0) for p in cluster_posts),
        trend=trend.bins,
        trend_slope=trend.slope,
        top_keywords=top_keywords(draft.phrases, vocabulary.keyword_stopwords, config.keyword_limit),
        sample_snippet=cluster_posts[0].matched_snippet,
    )


def build_clusters(
    posts: list[RedditPost],
    phrases: list[ProblemPhrase],
    window_days: int,
    now: float | None = None,
    config: EngineConfig | None = None,
    vocabulary: Vocabulary | None = None,
) -> list[IdeaCluster]:
    """Cluster problem phrases into scored ideas.

    Args:
        posts: Posts referenced by the phrases.
        phrases: Detected problem phrases.
        window_days: Window length, used for the trend and the idea id.
        now: Reference unix time. Defaults to the current time.
        config: Engine tunables.
        vocabulary: Word lists to use.

    Returns:
        Ideas sorted by descending score.
    """
    if not phrases:
        return []

    config = config or EngineConfig()
    vocab = vocabulary or default_vocabulary()
    if now is None:
        now = time.time()

    drafts = build_drafts(posts, phrases)
    merged = merge_similar_drafts(
        drafts,
        threshold=config.similarity_threshold,
        largest_first=config.largest_first,
    )

    clusters = []
    for draft in merged:
        cluster = finalize_draft(draft, window_days, now, config, vocab)
        if cluster is not None:
            clusters.append(cluster)

    clusters.sort(key=lambda c: c.score, reverse=True)

    logger.info(
        f"[Cluster] {len(phrases)} phrases -> {len(drafts)} drafts -> "
        f"{len(merged)} merged -> {len(clusters)} ideas"
    )
    return clusters
