"""Reddit API client for Problem Radar.

This module handles all Reddit API interactions using PRAW.
Uses application-only (read-only) OAuth authentication.
"""

import logging
import time

try:
    import praw
    HAS_PRAW = True
except ImportError:
    HAS_PRAW = False
    praw = None

from problem_radar.analysis.quality import is_opted_out
from problem_radar.config import RedditCredentials, get_config
from problem_radar.models import RedditPost

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class RedditClientError(Exception):
    """Base exception for Reddit client errors."""
    pass


class AuthenticationError(RedditClientError):
    """Raised when authentication fails."""
    pass


def last_fetched_key(subreddit: str) -> str:
    """Meta key holding the newest created_utc seen for a subreddit."""
    return f"last_fetched:{subreddit.lower()}"


class RedditClient:
    """Reddit API client using PRAW for application-only OAuth.

    This client only requires client_id and client_secret (no username/password)
    and provides read-only access to public Reddit data.
    """

    def __init__(self, credentials: RedditCredentials | None = None):
        """Initialize Reddit client.

        Args:
            credentials: Reddit API credentials. If None, loads from config.

        Raises:
            ImportError: If PRAW is not installed.
            AuthenticationError: If credentials are invalid or missing.
        """
        if not HAS_PRAW:
            raise ImportError(
                "PRAW is required for Reddit API access. "
                "Install it with: pip install praw"
            )

        if credentials is None:
            credentials = get_config().reddit

        if not credentials.is_valid():
            raise AuthenticationError(
                "Reddit API credentials not configured. "
                "Set REDDIT_CLIENT_ID and REDDIT_CLIENT_SECRET environment variables."
            )

        self._credentials = credentials
        self._reddit = praw.Reddit(
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
            user_agent=credentials.user_agent,
        )

    def verify_connection(self) -> bool:
        """Verify that the Reddit connection works.

        Raises:
            AuthenticationError: If authentication fails.
        """
        try:
            self._reddit.subreddit("python").id
            return True
        except Exception as e:
            raise AuthenticationError(f"Failed to connect to Reddit: {e}")

    def get_new_posts(
        self,
        subreddit: str,
        window_days: int = 30,
        limit: int = 100,
        since_utc: float | None = None,
    ) -> list[RedditPost]:
        """Get new posts from a subreddit inside a time window.

        Args:
            subreddit: Subreddit name (without r/).
            window_days: Only keep posts younger than this many days.
            limit: Maximum number of submissions to request.
            since_utc: Optional watermark; posts at or before it are skipped.

        Returns:
            List of RedditPost objects. Empty if the fetch fails.
        """
        cutoff = time.time() - window_days * SECONDS_PER_DAY
        if since_utc is not None:
            cutoff = max(cutoff, since_utc)

        posts = []
        try:
            for submission in self._reddit.subreddit(subreddit).new(limit=limit):
                if submission.created_utc <= cutoff:
                    continue
                posts.append(self._submission_to_post(submission))
        except Exception as e:
            logger.warning(f"[Reddit] Failed to fetch new posts from r/{subreddit}: {e}")

        return posts

    def _submission_to_post(self, submission) -> RedditPost:
        """Convert a PRAW Submission to a RedditPost."""
        author = submission.author.name if submission.author else None
        return RedditPost(
            post_id=submission.id,
            subreddit=submission.subreddit.display_name,
            title=submission.title,
            body=submission.selftext if submission.is_self else "",
            url=f"https://reddit.com{submission.permalink}",
            created_utc=submission.created_utc,
            upvotes=submission.score,
            num_comments=submission.num_comments,
            author=f"u/{author}" if author else None,
        )


def get_reddit_client(credentials: RedditCredentials | None = None) -> RedditClient:
    """Get a Reddit client instance."""
    return RedditClient(credentials)


def fetch_posts_from_subreddits(
    subreddits: list[str],
    window_days: int = 30,
    posts_per_sub: int = 100,
    client: RedditClient | None = None,
    database=None,
    opt_out_subreddits: list[str] | None = None,
    opt_out_authors: list[str] | None = None,
    request_delay: float = 0.0,
) -> list[RedditPost]:
    """Fetch new posts from several subreddits.

    Posts are de-duplicated by id and opted-out subreddits and authors are
    dropped. When a database is given, a per-subreddit watermark stored in
    its meta table limits each fetch to posts not seen before.

    Args:
        subreddits: Subreddit names.
        window_days: Window length in days.
        posts_per_sub: Submissions to request per subreddit.
        client: Reddit client. If None, one is built from config.
        database: Optional Database for watermarks.
        opt_out_subreddits: Subreddits never fetched.
        opt_out_authors: Authors whose posts are dropped.
        request_delay: Seconds to sleep between subreddits.

    Returns:
        All fetched posts.
    """
    client = client or get_reddit_client()
    opt_out_subreddits = opt_out_subreddits or []
    opt_out_authors = opt_out_authors or []

    seen: set[str] = set()
    all_posts: list[RedditPost] = []

    for i, subreddit in enumerate(subreddits):
        if is_opted_out(subreddit, None, opt_out_subreddits, []):
            logger.info(f"[Reddit] Skipping opted-out r/{subreddit}")
            continue

        if i > 0 and request_delay > 0:
            time.sleep(request_delay)

        since_utc = None
        if database is not None:
            stored = database.get_meta(last_fetched_key(subreddit))
            since_utc = float(stored) if stored else None

        posts = client.get_new_posts(
            subreddit,
            window_days=window_days,
            limit=posts_per_sub,
            since_utc=since_utc,
        )

        kept = 0
        for post in posts:
            if post.post_id in seen:
                continue
            if is_opted_out(post.subreddit, post.author, opt_out_subreddits, opt_out_authors):
                continue
            seen.add(post.post_id)
            all_posts.append(post)
            kept += 1

        if database is not None and posts:
            newest = max(post.created_utc for post in posts)
            database.set_meta(last_fetched_key(subreddit), str(newest))

        logger.info(f"[Reddit] r/{subreddit}: {kept} new posts")

    return all_posts
