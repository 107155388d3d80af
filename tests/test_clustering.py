"""Tests for the clustering module."""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from problem_radar.analysis.canonical import canonicalize
from problem_radar.analysis.clustering import (
    ClusterDraft,
    DraftEntry,
    build_clusters,
    build_drafts,
    make_idea_id,
    merge_drafts,
    merge_similar_drafts,
    select_cluster_posts,
    top_keywords,
)
from problem_radar.config import EngineConfig
from problem_radar.models import ProblemPhrase, RedditPost
from problem_radar.vocabulary import DEFAULT_KEYWORD_STOPWORDS

NOW = 1_700_000_000.0
DAY = 86400.0


def make_post(post_id: str, subreddit: str = "productivity", days_ago: float = 1.0, **kwargs) -> RedditPost:
    return RedditPost(
        post_id=post_id,
        subreddit=subreddit,
        title=kwargs.pop("title", f"Post {post_id}"),
        body=kwargs.pop("body", ""),
        url=f"https://reddit.com/r/{subreddit}/comments/{post_id}",
        created_utc=NOW - days_ago * DAY,
        upvotes=kwargs.pop("upvotes", 5),
        num_comments=kwargs.pop("num_comments", 2),
        **kwargs,
    )


def make_phrase(post_id: str, text: str, cue_id: str = "how_do_i") -> ProblemPhrase:
    return ProblemPhrase(
        post_id=post_id,
        phrase=text,
        canonical=canonicalize(text),
        snippet=f"How do I automate {text.lower()}",
        cue_id=cue_id,
    )


class TestBuildDrafts:
    """Tests for grouping phrases by signature."""

    def test_groups_by_signature(self):
        posts = [make_post("a"), make_post("b")]
        phrases = [
            make_phrase("a", "Meeting notes to jira tasks"),
            make_phrase("b", "Jira tasks from meeting notes"),
        ]
        drafts = build_drafts(posts, phrases)
        assert len(drafts) == 1
        assert drafts[0].canonical == "jira_meet_note_task"
        assert drafts[0].post_ids == ["a", "b"]

    def test_skips_empty_signature_and_unknown_post(self):
        posts = [make_post("a")]
        phrases = [
            ProblemPhrase("a", "How do I", "", "How do I", "how_do_i"),
            make_phrase("missing", "Export invoices to csv"),
        ]
        assert build_drafts(posts, phrases) == []

    def test_phrase_counts(self):
        posts = [make_post("a"), make_post("b"), make_post("c")]
        phrases = [
            make_phrase("a", "Export invoices to csv"),
            make_phrase("b", "Exporting invoices to csv"),
            make_phrase("c", "Exporting invoices to csv"),
        ]
        draft = build_drafts(posts, phrases)[0]
        assert dict(draft.phrase_counts) == {
            "Export invoices to csv": 1,
            "Exporting invoices to csv": 2,
        }
        assert draft.representative_phrase == "Exporting invoices to csv"


class TestClusterDraft:
    """Tests for draft helpers."""

    def test_representative_tie_prefers_first_seen(self):
        draft = ClusterDraft("x", (), (("first", 2), ("second", 2)))
        assert draft.representative_phrase == "first"

    def test_merge_is_pure(self):
        post_a, post_b = make_post("a"), make_post("b")
        target = ClusterDraft(
            "csv_export_invoice",
            (DraftEntry(post_a, make_phrase("a", "Export invoices to csv")),),
            (("Export invoices to csv", 1),),
        )
        source = ClusterDraft(
            "csv_export_invoice_now",
            (DraftEntry(post_b, make_phrase("b", "Export invoices to csv now")),),
            (("Export invoices to csv now", 1), ("Export invoices to csv", 1)),
        )

        merged = merge_drafts(target, source)

        assert merged.canonical == "csv_export_invoice"
        assert len(merged.entries) == 2
        assert dict(merged.phrase_counts)["Export invoices to csv"] == 2
        # inputs untouched
        assert len(target.entries) == 1
        assert target.phrase_counts == (("Export invoices to csv", 1),)
        assert len(source.entries) == 1


class TestMergeSimilarDrafts:
    """Tests for fuzzy draft merging."""

    def _drafts(self):
        posts = [make_post("a"), make_post("b"), make_post("c"), make_post("d")]
        phrases = [
            make_phrase("a", "Export invoice to csv now"),
            make_phrase("b", "Export invoice to csv"),
            make_phrase("c", "Export invoice to csv"),
            make_phrase("d", "Design youtube thumbnails"),
        ]
        return build_drafts(posts, phrases)

    def test_near_duplicates_merge(self):
        merged = merge_similar_drafts(self._drafts(), threshold=0.85)
        assert len(merged) == 2

    def test_largest_draft_absorbs_smaller(self):
        merged = merge_similar_drafts(self._drafts(), threshold=0.85, largest_first=True)
        assert merged[0].canonical == canonicalize("Export invoice to csv")
        assert len(merged[0].entries) == 3

    def test_input_order_without_largest_first(self):
        merged = merge_similar_drafts(self._drafts(), threshold=0.85, largest_first=False)
        assert merged[0].canonical == canonicalize("Export invoice to csv now")

    def test_threshold_one_keeps_all(self):
        assert len(merge_similar_drafts(self._drafts(), threshold=1.01)) == 3


class TestSelectClusterPosts:
    """Tests for per-post phrase selection."""

    def test_primary_cue_preferred_over_longer_keyword_phrase(self):
        post = make_post("a")
        keyword = make_phrase("a", "Manual csv export of every single invoice", cue_id="manual")
        primary = make_phrase("a", "Export invoices to csv", cue_id="how_do_i")
        draft = ClusterDraft("x", (DraftEntry(post, keyword), DraftEntry(post, primary)), ())

        chosen = select_cluster_posts(draft, frozenset(["how_do_i"]))

        assert len(chosen) == 1
        assert chosen[0].phrase.cue_id == "how_do_i"

    def test_longer_phrase_wins_between_equal_cues(self):
        post = make_post("a")
        short = make_phrase("a", "Export csv")
        long = make_phrase("a", "Export invoices to csv")
        draft = ClusterDraft("x", (DraftEntry(post, short), DraftEntry(post, long)), ())

        chosen = select_cluster_posts(draft, frozenset(["how_do_i"]))

        assert chosen[0].phrase.phrase == "Export invoices to csv"


class TestHelpers:
    """Tests for ids and keywords."""

    def test_idea_id_stable(self):
        assert make_idea_id("csv_export", 30) == make_idea_id("csv_export", 30)
        assert make_idea_id("csv_export", 30).startswith("idea_")
        assert len(make_idea_id("csv_export", 30)) == 15

    def test_idea_id_depends_on_window(self):
        assert make_idea_id("csv_export", 30) != make_idea_id("csv_export", 7)

    def test_top_keywords(self):
        phrases = ["Export invoices to csv", "Export receipts to csv"]
        assert top_keywords(phrases, DEFAULT_KEYWORD_STOPWORDS, limit=3) == [
            "export", "csv", "invoices",
        ]


class TestBuildClusters:
    """Tests for the full clustering run."""

    def test_cross_subreddit_cluster(self):
        posts = [
            make_post("a", subreddit="productivity", days_ago=2),
            make_post("b", subreddit="projectmanagement", days_ago=3),
        ]
        phrases = [
            make_phrase("a", "Meeting notes to jira tasks"),
            make_phrase("b", "Jira tasks from meeting notes"),
        ]

        clusters = build_clusters(posts, phrases, 30, now=NOW)

        assert len(clusters) == 1
        idea = clusters[0]
        assert idea.posts_count == 2
        assert idea.subs_count == 2
        assert idea.title == "Meeting notes to jira tasks"
        assert idea.idea_id == make_idea_id("jira_meet_note_task", 30)
        assert sum(idea.trend) == 2
        assert idea.upvotes_sum == 10
        assert idea.comments_sum == 4
        assert idea.sample_snippet == idea.posts[0].matched_snippet

    def test_single_post_dropped(self):
        posts = [make_post("a")]
        phrases = [make_phrase("a", "Export invoices to csv")]
        assert build_clusters(posts, phrases, 30, now=NOW) == []

    def test_same_post_twice_counts_once(self):
        posts = [make_post("a")]
        phrases = [
            make_phrase("a", "Export invoices to csv"),
            make_phrase("a", "Exporting invoices to csv"),
        ]
        assert build_clusters(posts, phrases, 30, now=NOW) == []

    def test_min_cluster_posts_floor(self):
        """A configured minimum below two still drops single-post drafts."""
        posts = [make_post("a")]
        phrases = [make_phrase("a", "Export invoices to csv")]
        config = EngineConfig(min_cluster_posts=1)
        assert build_clusters(posts, phrases, 30, now=NOW, config=config) == []

    def test_min_cluster_posts_raised(self):
        posts = [make_post("a"), make_post("b")]
        phrases = [
            make_phrase("a", "Export invoices to csv"),
            make_phrase("b", "Export invoices to csv"),
        ]
        config = EngineConfig(min_cluster_posts=3)
        assert build_clusters(posts, phrases, 30, now=NOW, config=config) == []
        assert len(build_clusters(posts, phrases, 30, now=NOW)) == 1

    def test_empty_input(self):
        assert build_clusters([], [], 30, now=NOW) == []

    def test_sorted_by_score(self):
        posts = [
            make_post("a", upvotes=500, num_comments=80),
            make_post("b", upvotes=400, num_comments=60),
            make_post("c", upvotes=0, num_comments=0),
            make_post("d", upvotes=1, num_comments=0),
        ]
        phrases = [
            make_phrase("a", "Export invoices to csv"),
            make_phrase("b", "Export invoices to csv"),
            make_phrase("c", "Design youtube thumbnails"),
            make_phrase("d", "Design youtube thumbnails"),
        ]

        clusters = build_clusters(posts, phrases, 30, now=NOW)

        assert len(clusters) == 2
        assert clusters[0].score >= clusters[1].score
        assert clusters[0].canonical == canonicalize("Export invoices to csv")

    def test_deterministic(self):
        posts = [make_post(pid, days_ago=i + 1) for i, pid in enumerate("abcd")]
        phrases = [
            make_phrase("a", "Export invoice to csv now"),
            make_phrase("b", "Export invoice to csv"),
            make_phrase("c", "Export invoice to csv"),
            make_phrase("d", "Design youtube thumbnails"),
        ]

        first = build_clusters(posts, phrases, 30, now=NOW)
        second = build_clusters(posts, phrases, 30, now=NOW)

        assert [(c.idea_id, c.score, c.title) for c in first] == [
            (c.idea_id, c.score, c.title) for c in second
        ]
        assert first[0].posts_count == 3
