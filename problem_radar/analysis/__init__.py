"""Analysis module for Problem Radar.

Provides canonicalization, similarity, clustering, scoring, trend and
idea synthesis, plus phrase extraction and post quality filters.
"""

from problem_radar.analysis.canonical import (
    canonicalize,
    stem_tokens,
    stem_word,
)

from problem_radar.analysis.similarity import (
    dice_coefficient,
    jaro,
    jaro_winkler,
    phrase_similarity,
)

from problem_radar.analysis.scoring import (
    IdeaScore,
    PostScore,
    compute_idea_score,
    compute_post_score,
    count_pain_words,
)

from problem_radar.analysis.trend import (
    TrendResult,
    compute_trend,
)

from problem_radar.analysis.clustering import (
    ClusterDraft,
    DraftEntry,
    build_clusters,
    build_drafts,
    merge_drafts,
    merge_similar_drafts,
    select_cluster_posts,
)

from problem_radar.analysis.synthesis import (
    synthesize_idea,
)

from problem_radar.analysis.extraction import (
    build_problem_title,
    extract_problem_phrases,
    extract_problems_with_llm,
)

from problem_radar.analysis.quality import (
    QualityFilters,
    QualityReport,
    apply_quality_filters,
    deduplicate_posts,
    detect_spam,
    is_opted_out,
)

__all__ = [
    # Canonical
    "canonicalize",
    "stem_tokens",
    "stem_word",
    # Similarity
    "dice_coefficient",
    "jaro",
    "jaro_winkler",
    "phrase_similarity",
    # Scoring
    "IdeaScore",
    "PostScore",
    "compute_idea_score",
    "compute_post_score",
    "count_pain_words",
    # Trend
    "TrendResult",
    "compute_trend",
    # Clustering
    "ClusterDraft",
    "DraftEntry",
    "build_clusters",
    "build_drafts",
    "merge_drafts",
    "merge_similar_drafts",
    "select_cluster_posts",
    # Synthesis
    "synthesize_idea",
    # Extraction
    "build_problem_title",
    "extract_problem_phrases",
    "extract_problems_with_llm",
    # Quality
    "QualityFilters",
    "QualityReport",
    "apply_quality_filters",
    "deduplicate_posts",
    "detect_spam",
    "is_opted_out",
]
