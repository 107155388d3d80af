"""Core records shared by the Problem Radar engine, store and CLI."""

from dataclasses import dataclass, field


@dataclass
class RedditPost:
    """Reddit submission as seen by the engine."""
    post_id: str
    subreddit: str
    title: str
    body: str
    url: str
    created_utc: float
    upvotes: int = 0
    num_comments: int = 0
    author: str | None = None  # stored as "u/name"

    @property
    def text(self) -> str:
        """Title and body joined for text matching."""
        return f"{self.title}\n{self.body or ''}"


@dataclass(frozen=True)
class ProblemPhrase:
    """A detected problem statement tied to a source post."""
    post_id: str
    phrase: str
    canonical: str
    snippet: str
    cue_id: str


@dataclass
class ClusterPost:
    """One post inside an idea, with the phrase chosen for it."""
    post_id: str
    subreddit: str
    title: str
    url: str
    created_utc: float
    upvotes: int
    num_comments: int
    matched_snippet: str
    problem_phrase: str
    author: str | None = None


@dataclass
class IdeaCluster:
    """A scored group of near-duplicate problem statements."""
    idea_id: str
    title: str
    canonical: str
    phrases: list[str]
    posts: list[ClusterPost]
    score: float
    posts_count: int
    subs_count: int
    upvotes_sum: int
    comments_sum: int
    trend: list[int] = field(default_factory=list)
    trend_slope: float = 0.0
    top_keywords: list[str] = field(default_factory=list)
    sample_snippet: str | None = None


@dataclass
class IdeaDetails:
    """Rule-based business-idea description derived from an IdeaCluster."""
    problem_title: str
    summary: str
    target_users: str
    job_to_be_done: str
    solution: str
    key_features: list[str]
    requirements: list[str]
    complexity_tier: str
    predicted_effort_days: int
    value_prop: str
    worth_estimate: str
    monetization: str
    risks: list[str]
    wtp_mentions: int
    evidence_keywords: list[str]
