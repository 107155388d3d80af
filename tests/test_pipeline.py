"""Tests for the analysis pipeline."""

import os
import sys
import tempfile
from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from problem_radar.config import Config, LLMCredentials
from problem_radar.database import Database
from problem_radar.llm_client import LLMClientError
from problem_radar.models import RedditPost
from problem_radar.pipeline import (
    PipelineError,
    cache_key,
    ensure_ideas,
    extract_phrases,
    ingest_posts,
    refresh_ideas,
    resolve_window_key,
    select_relevant_posts,
)

NOW = 1_700_000_000.0
DAY = 86400.0


def make_post(post_id, subreddit, title, body, days_ago=1.0, upvotes=15, num_comments=4):
    return RedditPost(
        post_id=post_id,
        subreddit=subreddit,
        title=title,
        body=body,
        url=f"https://reddit.com/r/{subreddit}/comments/{post_id}",
        created_utc=NOW - days_ago * DAY,
        upvotes=upvotes,
        num_comments=num_comments,
        author="u/tester",
    )


SAMPLE_POSTS = [
    make_post(
        "p1", "productivity",
        "How do I automate turning meeting notes into Jira tasks?",
        "Every standup produces notes and copying them by hand into the tracker is tedious.",
        days_ago=2,
    ),
    make_post(
        "p2", "projectmanagement",
        "Is there a tool for turning meeting notes into Jira tasks?",
        "Our team loses action items after every meeting and the manual work is painful.",
        days_ago=5,
    ),
    make_post(
        "p3", "productivity",
        "Is there an app to automate invoice exports?",
        "Nobody upvoted this but it still describes a real workflow problem for us.",
        upvotes=0,
    ),
    make_post(
        "p4", "excel",
        "How do I automate turning meeting notes into Jira tasks?",
        "Old post from last quarter about the same workflow with a manual process.",
        days_ago=60,
    ),
]


@pytest.fixture
def temp_db():
    """Create a temporary database with sample posts."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    db = Database(db_path)
    db.initialize()
    db.upsert_posts(SAMPLE_POSTS)

    yield db

    os.unlink(db_path)


@pytest.fixture
def config():
    config = Config()
    config.llm.batch_delay_seconds = 0
    config.collection.request_delay_seconds = 0
    return config


def llm_reply(statement="Turning meeting notes into Jira tasks", actionable=True):
    return {"isActionableProblem": actionable, "problemStatement": statement, "confidence": 0.9}


class TestWindows:
    """Tests for window keys."""

    def test_known_keys(self):
        assert resolve_window_key("7d") == ("7d", 7)
        assert resolve_window_key("365d") == ("365d", 365)

    def test_unknown_key_defaults(self):
        assert resolve_window_key("14d") == ("30d", 30)
        assert resolve_window_key(None) == ("30d", 30)

    def test_cache_key(self):
        assert cache_key(30) == "ideas_cache_ts:30"


class TestSelectRelevantPosts:
    """Tests for the quality stage."""

    def test_filters_low_engagement(self, config):
        relevant = select_relevant_posts(SAMPLE_POSTS[:3], config, 30, NOW)
        assert sorted(p.post_id for p in relevant) == ["p1", "p2"]

    def test_strongest_duplicate_kept(self, config):
        weak = replace(SAMPLE_POSTS[0], post_id="weak", upvotes=3, num_comments=1)
        strong = replace(SAMPLE_POSTS[0], post_id="strong", upvotes=300, num_comments=40)
        relevant = select_relevant_posts([weak, strong], config, 30, NOW)
        assert [p.post_id for p in relevant] == ["strong"]

    def test_window_extends_max_age(self, config):
        relevant = select_relevant_posts([SAMPLE_POSTS[3]], config, 90, NOW)
        assert [p.post_id for p in relevant] == ["p4"]

    def test_disabled(self, config):
        config.quality.enabled = False
        assert len(select_relevant_posts(SAMPLE_POSTS, config, 30, NOW)) == 4


class TestExtractPhrases:
    """Tests for the extraction stage."""

    def test_regex_path(self, config):
        phrases = extract_phrases(SAMPLE_POSTS[:2], config)
        canonicals = {(p.post_id, p.canonical) for p in phrases}
        assert ("p1", "jira_meet_note_task_turn") in canonicals
        assert ("p2", "jira_meet_note_task_turn") in canonicals

    def test_llm_path(self, config):
        client = MagicMock()
        client.generate_json.return_value = llm_reply()

        phrases = extract_phrases(SAMPLE_POSTS[:2], config, use_llm=True, llm_client=client)

        assert len(phrases) == 2
        assert all(p.cue_id == "llm_detected" for p in phrases)
        assert client.generate_json.call_count == 2

    def test_llm_failures_skip_post(self, config):
        posts = [replace(SAMPLE_POSTS[0], upvotes=40), SAMPLE_POSTS[1]]
        client = MagicMock()
        client.generate_json.side_effect = [LLMClientError("timeout"), llm_reply()]

        phrases = extract_phrases(posts, config, use_llm=True, llm_client=client)

        assert [p.post_id for p in phrases] == ["p2"]

    def test_llm_max_posts(self, config):
        config.llm.max_posts = 1
        client = MagicMock()
        client.generate_json.return_value = llm_reply()

        extract_phrases(SAMPLE_POSTS[:2], config, use_llm=True, llm_client=client)

        assert client.generate_json.call_count == 1

    def test_llm_slots_go_to_strongest_posts(self, config):
        """An older high-engagement post outranks a fresh quiet one."""
        config.llm.max_posts = 1
        fresh = make_post(
            "fresh", "productivity",
            "Any way to sync calendar invites into Notion?",
            "Copying every invite by hand takes forever.",
            days_ago=1, upvotes=2, num_comments=1,
        )
        older = make_post(
            "older", "projectmanagement",
            "How do I automate turning meeting notes into Jira tasks?",
            "Hundreds of people here seem to fight the same manual process.",
            days_ago=20, upvotes=900, num_comments=300,
        )
        client = MagicMock()
        client.generate_json.return_value = llm_reply()

        phrases = extract_phrases([fresh, older], config, use_llm=True, llm_client=client)

        assert client.generate_json.call_count == 1
        assert [p.post_id for p in phrases] == ["older"]

    def test_llm_client_built_from_config(self, config):
        config.llm.provider = "deepseek"
        config.llm.model = "deepseek-chat"
        config.llm_credentials = LLMCredentials(deepseek_api_key="k")

        with patch("problem_radar.pipeline.LLMClient") as client_cls:
            client_cls.return_value.generate_json.return_value = llm_reply()
            phrases = extract_phrases(SAMPLE_POSTS[:2], config, use_llm=True)

        client_cls.assert_called_once_with(
            provider="deepseek",
            model="deepseek-chat",
            api_key="k",
            temperature=config.llm.temperature,
            max_tokens=config.llm.max_tokens,
        )
        assert len(phrases) == 2

    def test_llm_without_key(self, config):
        config.llm_credentials = LLMCredentials()
        with pytest.raises(PipelineError):
            extract_phrases(SAMPLE_POSTS[:2], config, use_llm=True)


class TestRefreshIdeas:
    """Tests for a full analysis run."""

    def test_refresh_stores_ideas(self, temp_db, config):
        summary = refresh_ideas(temp_db, 30, config=config, now=NOW)

        assert summary.posts_loaded == 3
        assert summary.posts_relevant == 2
        assert summary.ideas == 1
        assert summary.subreddits == 2

        stored = temp_db.load_ideas(30)
        assert len(stored) == 1
        assert stored[0].idea.title == "Turning meeting notes into jira tasks"
        assert stored[0].idea.subs_count == 2
        assert stored[0].details is not None
        assert "Jira" in stored[0].details.requirements[0]
        assert temp_db.get_meta(cache_key(30)) == str(NOW)

    def test_refresh_stores_problems(self, temp_db, config):
        refresh_ideas(temp_db, 30, config=config, now=NOW)
        stored = temp_db.load_problems_for_posts(["p1", "p2"])
        assert {p.post_id for p in stored} == {"p1", "p2"}

    def test_refresh_replaces_previous_ideas(self, temp_db, config):
        refresh_ideas(temp_db, 30, config=config, now=NOW)
        temp_db.upsert_posts([
            make_post("p2", "projectmanagement", "Renamed post", "Nothing to see here at all today.", days_ago=5)
        ])
        refresh_ideas(temp_db, 30, config=config, now=NOW)
        assert temp_db.load_ideas(30) == []

    def test_refresh_with_llm(self, temp_db, config):
        client = MagicMock()
        client.generate_json.return_value = llm_reply()

        summary = refresh_ideas(temp_db, 30, config=config, use_llm=True, llm_client=client, now=NOW)

        assert summary.ideas == 1


class TestEnsureIdeas:
    """Tests for the cached refresh."""

    def test_cache(self, temp_db, config):
        assert ensure_ideas(temp_db, 30, config=config, now=NOW) is not None
        assert ensure_ideas(temp_db, 30, config=config, now=NOW + 60) is None

    def test_force(self, temp_db, config):
        ensure_ideas(temp_db, 30, config=config, now=NOW)
        assert ensure_ideas(temp_db, 30, config=config, force=True, now=NOW + 60) is not None

    def test_expired(self, temp_db, config):
        ensure_ideas(temp_db, 30, config=config, now=NOW)
        later = NOW + (config.engine.cache_ttl_hours + 1) * 3600
        assert ensure_ideas(temp_db, 30, config=config, now=later) is not None

    def test_windows_cached_separately(self, temp_db, config):
        ensure_ideas(temp_db, 30, config=config, now=NOW)
        assert ensure_ideas(temp_db, 7, config=config, now=NOW + 60) is not None


class TestIngestPosts:
    """Tests for the ingest stage."""

    def test_ingest_stores_posts(self, temp_db, config):
        new_post = make_post(
            "n1", "automation",
            "Is there a script to rename files?",
            "Renaming thousands of scans by hand every week.",
        )
        client = MagicMock()
        client.get_new_posts.return_value = [new_post]

        posts = ingest_posts(temp_db, config, subreddits=["automation"], window_days=7, client=client)

        assert [p.post_id for p in posts] == ["n1"]
        assert temp_db.get_post("n1") is not None
        client.get_new_posts.assert_called_once_with(
            "automation", window_days=7, limit=config.collection.posts_per_subreddit, since_utc=None
        )
