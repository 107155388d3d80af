"""Configuration management for Problem Radar."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from problem_radar.vocabulary import Vocabulary

# Load environment variables from .env file
load_dotenv()


@dataclass
class CollectionConfig:
    """Data collection configuration."""
    subreddits: list[str] = field(default_factory=lambda: [
        "productivity", "smallbusiness", "Entrepreneur", "automation",
        "excel", "sysadmin", "freelance", "NewTubers",
    ])
    posts_per_subreddit: int = 100
    window: str = "30d"  # 7d / 30d / 90d / 365d
    request_delay_seconds: float = 1.1
    opt_out_subreddits: list[str] = field(default_factory=list)
    opt_out_authors: list[str] = field(default_factory=list)


@dataclass
class EngineConfig:
    """Clustering and scoring tunables."""
    similarity_threshold: float = 0.85
    largest_first: bool = True
    min_cluster_posts: int = 2
    tau_days: float = 30.0
    keyword_limit: int = 5
    cache_ttl_hours: float = 6.0


@dataclass
class QualityConfig:
    """Post quality filter configuration."""
    enabled: bool = True
    min_upvotes: int = 2
    min_comments: int = 1
    min_content_length: int = 50
    max_age_hours: int = 24 * 30


@dataclass
class LLMConfig:
    """LLM configuration."""
    enabled: bool = False
    provider: str = "openai"
    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_tokens: int = 500
    batch_size: int = 5
    batch_delay_seconds: float = 2.0
    max_posts: int = 100
    min_confidence: float = 0.5


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str = "./problem_radar.db"


@dataclass
class RedditCredentials:
    """Reddit API credentials from environment."""
    client_id: str = ""
    client_secret: str = ""
    user_agent: str = "ProblemRadar/0.1"

    @classmethod
    def from_env(cls) -> "RedditCredentials":
        """Load credentials from environment variables."""
        return cls(
            client_id=os.getenv("REDDIT_CLIENT_ID", ""),
            client_secret=os.getenv("REDDIT_CLIENT_SECRET", ""),
            user_agent=os.getenv("REDDIT_USER_AGENT", "ProblemRadar/0.1"),
        )

    def is_valid(self) -> bool:
        """Check if credentials are configured."""
        return bool(self.client_id and self.client_secret)


@dataclass
class LLMCredentials:
    """LLM API credentials from environment."""
    openai_api_key: str = ""
    deepseek_api_key: str = ""

    @classmethod
    def from_env(cls) -> "LLMCredentials":
        """Load credentials from environment variables."""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            deepseek_api_key=os.getenv("DEEPSEEK_API_KEY", ""),
        )

    def get_key_for_provider(self, provider: str) -> str:
        """Get API key for a specific provider."""
        mapping = {
            "openai": self.openai_api_key,
            "deepseek": self.deepseek_api_key,
        }
        return mapping.get(provider, "")

    def has_key_for_provider(self, provider: str) -> bool:
        """Check if API key is configured for provider."""
        return bool(self.get_key_for_provider(provider))


@dataclass
class Config:
    """Main configuration container."""
    collection: CollectionConfig = field(default_factory=CollectionConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    vocabulary: Vocabulary = field(default_factory=Vocabulary)

    # Credentials (loaded from environment)
    reddit: RedditCredentials = field(default_factory=RedditCredentials.from_env)
    llm_credentials: LLMCredentials = field(default_factory=LLMCredentials.from_env)


def _dict_to_dataclass(data: dict[str, Any], cls: type) -> Any:
    """Convert a dictionary to a dataclass instance, ignoring unknown keys."""
    if not data:
        return cls()

    field_names = set(cls.__dataclass_fields__)
    kwargs = {key: value for key, value in data.items() if key in field_names}
    return cls(**kwargs)


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses config/local.yaml,
            then config/default.yaml, then built-in defaults.

    Returns:
        Config object with all settings.

    Raises:
        FileNotFoundError: If an explicit config path does not exist.
    """
    if config_path is None:
        local_config = Path("config/local.yaml")
        default_config = Path("config/default.yaml")

        if local_config.exists():
            config_path = local_config
        elif default_config.exists():
            config_path = default_config
        else:
            return Config()

    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    return Config(
        collection=_dict_to_dataclass(data.get("collection", {}), CollectionConfig),
        engine=_dict_to_dataclass(data.get("engine", {}), EngineConfig),
        quality=_dict_to_dataclass(data.get("quality", {}), QualityConfig),
        llm=_dict_to_dataclass(data.get("llm", {}), LLMConfig),
        database=_dict_to_dataclass(data.get("database", {}), DatabaseConfig),
        vocabulary=Vocabulary.from_dict(data.get("vocabulary")),
        reddit=RedditCredentials.from_env(),
        llm_credentials=LLMCredentials.from_env(),
    )


# Global config instance (lazy loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get the global config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: str | Path | None = None) -> Config:
    """Reload configuration from file."""
    global _config
    _config = load_config(config_path)
    return _config
