"""Tests for CLI commands."""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from click.testing import CliRunner


def test_cli_imports():
    """Test that CLI imports correctly."""
    from main import cli
    assert cli is not None


def test_cli_help():
    """Test CLI --help works."""
    from main import cli

    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Problem Radar" in result.output
    for command in ["init", "ingest", "analyze", "ideas", "show", "stats", "check"]:
        assert command in result.output


def test_analyze_help():
    """Test analyze command help."""
    from main import cli

    runner = CliRunner()
    result = runner.invoke(cli, ["analyze", "--help"])

    assert result.exit_code == 0
    assert "--window" in result.output
    assert "--llm" in result.output
    assert "--force" in result.output


def test_ideas_help():
    """Test ideas command help."""
    from main import cli

    runner = CliRunner()
    result = runner.invoke(cli, ["ideas", "--help"])

    assert result.exit_code == 0
    assert "--sort" in result.output
    assert "--top" in result.output


def test_ingest_help():
    """Test ingest command help."""
    from main import cli

    runner = CliRunner()
    result = runner.invoke(cli, ["ingest", "--help"])

    assert result.exit_code == 0
    assert "--subreddits" in result.output
    assert "--window" in result.output


def test_invalid_window():
    from main import cli

    runner = CliRunner()
    result = runner.invoke(cli, ["ideas", "--window", "14d"])

    assert result.exit_code != 0


def test_missing_config_file():
    from main import cli

    runner = CliRunner()
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["--config", "nope.yaml", "stats"])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_init_and_stats():
    """Init creates the database; stats lists every table."""
    from main import cli

    runner = CliRunner()
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "Initialized database" in result.output

        result = runner.invoke(cli, ["stats"])
        assert result.exit_code == 0
        for table in ["posts", "problems", "ideas", "idea_posts", "meta"]:
            assert table in result.output


def test_ideas_empty():
    from main import cli

    runner = CliRunner()
    with runner.isolated_filesystem():
        runner.invoke(cli, ["init"])
        result = runner.invoke(cli, ["ideas"])

    assert result.exit_code == 0
    assert "No ideas found" in result.output


def test_analyze_empty_database():
    from main import cli

    runner = CliRunner()
    with runner.isolated_filesystem():
        runner.invoke(cli, ["init"])
        result = runner.invoke(cli, ["analyze", "--force"])

    assert result.exit_code == 0
    assert "Ideas" in result.output


def test_show_missing_idea():
    from main import cli

    runner = CliRunner()
    with runner.isolated_filesystem():
        runner.invoke(cli, ["init"])
        result = runner.invoke(cli, ["show", "idea_missing"])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_show_and_list_stored_idea():
    from main import cli
    from problem_radar.analysis.synthesis import synthesize_idea
    from problem_radar.database import get_database
    from problem_radar.models import ClusterPost, IdeaCluster

    post = ClusterPost(
        post_id="a1",
        subreddit="excel",
        title="Merging monthly invoice sheets",
        url="https://reddit.com/r/excel/comments/a1",
        created_utc=1_700_000_000.0,
        upvotes=9,
        num_comments=3,
        matched_snippet="Is there a tool to merge invoice sheets",
        problem_phrase="Merge invoice sheets",
    )
    idea = IdeaCluster(
        idea_id="idea_abcdef0123",
        title="Merge invoice sheets",
        canonical="invoice_merge_sheet",
        phrases=["Merge invoice sheets"],
        posts=[post],
        score=3.21,
        posts_count=1,
        subs_count=1,
        upvotes_sum=9,
        comments_sum=3,
        trend=[0, 1, 0, 2, 1],
        trend_slope=0.2,
        top_keywords=["merge", "invoice", "sheets"],
        sample_snippet=post.matched_snippet,
    )

    runner = CliRunner()
    with runner.isolated_filesystem():
        runner.invoke(cli, ["init"])
        get_database().store_ideas(30, [idea], {idea.idea_id: synthesize_idea(idea)})

        listed = runner.invoke(cli, ["ideas", "--window", "30d"])
        shown = runner.invoke(cli, ["show", "idea_abcdef0123"])

    assert listed.exit_code == 0
    assert "No ideas found" not in listed.output
    assert "3.21" in listed.output
    assert shown.exit_code == 0
    assert "Merge invoice sheets" in shown.output
    assert "r/excel" in shown.output
