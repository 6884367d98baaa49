"""Shared configuration utilities."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Generic, TypeVar

import yaml

T = TypeVar("T")

CONFIG_DIR = Path(__file__).resolve().parents[2] / "configs"

DEFAULT_HUGGINGFACE_API_URL = "https://api-inference.huggingface.co/models"


def find_config_path(
    config_name: str | None,
    config_dir: Path,
    default_name: str = "default",
    env_var: str | None = None,
) -> Path:
    """Find config file path, checking env var and defaults.

    Args:
        config_name: Name of config (without .yaml) or None for default
        config_dir: Directory containing config files
        default_name: Default config name if config_name is None
        env_var: Environment variable to check for config name

    Returns:
        Path to the config file

    Raises:
        FileNotFoundError: If config file doesn't exist
    """
    if config_name is None:
        config_name = os.environ.get(env_var, default_name) if env_var else default_name

    config_path = config_dir / f"{config_name}.yaml"
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return config_path


def load_yaml(path: Path) -> dict:
    """Load YAML file and return dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


class ConfigSingleton(Generic[T]):
    """Generic config singleton manager.

    Provides get/set/reset pattern for managing a global config instance.

    Example:
        >>> _manager = ConfigSingleton(load_config)
        >>> get_config = _manager.get
        >>> set_config = _manager.set
        >>> reset_config = _manager.reset
    """

    def __init__(self, loader: Callable[[], T] | None = None):
        self._config: T | None = None
        self._loader = loader

    def get(self) -> T:
        """Get the config, loading it lazily if needed."""
        if self._config is None:
            if self._loader is None:
                raise RuntimeError("No config loaded and no loader set")
            self._config = self._loader()
        return self._config

    def set(self, config: T) -> None:
        """Set the config directly."""
        self._config = config

    def reset(self) -> None:
        """Reset the config, forcing reload on next get()."""
        self._config = None


@dataclass
class DatabaseConfig:
    url: str | None = None
    echo: bool = False


@dataclass
class HttpConfig:
    feed_timeout: int = 30
    scrape_timeout: int = 15
    feed_user_agent: str = "news-ingest/1.0 (RSS reader)"
    browser_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    max_articles_per_fetch: int = 50


@dataclass
class AIConfig:
    backend: str = "api"  # "api", "local" or "none"
    api_url: str = DEFAULT_HUGGINGFACE_API_URL
    api_key: str | None = None
    summarization_model: str = "facebook/bart-large-cnn"
    summarization_fallback_model: str = "sshleifer/distilbart-cnn-12-6"
    summarization_timeout: int = 30
    summarization_fallback_timeout: int = 25
    classification_model: str = "facebook/bart-large-mnli"
    classification_timeout: int = 30
    spacy_model: str = "en_core_web_sm"


@dataclass
class ResearchConfig:
    enabled: bool = True
    max_results: int = 5
    search_timeout: int = 10
    page_timeout: int = 8
    pause_seconds: float = 1.0


@dataclass
class StageQueueConfig:
    concurrency: int = 1
    attempts: int = 1
    backoff_type: str | None = None  # "exponential", "fixed" or None
    backoff_delay_ms: int = 0
    remove_on_complete: int = 100
    remove_on_fail: int = 500


def _default_queues() -> dict[str, StageQueueConfig]:
    return {
        "fetch-articles": StageQueueConfig(
            concurrency=5, attempts=3, backoff_type="exponential", backoff_delay_ms=5000
        ),
        "process-articles": StageQueueConfig(
            concurrency=3, attempts=2, backoff_type="exponential", backoff_delay_ms=10000
        ),
        "publish-articles": StageQueueConfig(concurrency=10, attempts=1),
    }


@dataclass
class QueueConfig:
    poll_interval_seconds: float = 1.0
    stall_timeout_seconds: int = 600
    stages: dict[str, StageQueueConfig] = field(default_factory=_default_queues)


@dataclass
class SchedulerConfig:
    interval_minutes: int = 30
    batch_size: int = 5


@dataclass
class Config:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    research: ResearchConfig = field(default_factory=ResearchConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)


def load_config(config_name: str | None = None, config_dir: Path = CONFIG_DIR) -> Config:
    """Load configuration from YAML file, then apply environment overrides.

    Args:
        config_name: Name of config file (without .yaml extension).
                    If None, uses PIPELINE_CONFIG env var or "default".
        config_dir: Directory containing config files.

    Returns:
        Loaded Config object
    """
    path = find_config_path(config_name, config_dir, env_var="PIPELINE_CONFIG")
    config = _parse_config(load_yaml(path))
    _apply_env_overrides(config)
    return config


def _parse_config(data: dict) -> Config:
    """Parse config dictionary into Config object."""
    database = data.get("database", {})
    http = data.get("http", {})
    ai = data.get("ai", {})
    research = data.get("research", {})
    queue = data.get("queue", {})
    scheduler = data.get("scheduler", {})

    stages = _default_queues()
    for name, values in (queue.get("stages") or {}).items():
        base = stages.get(name, StageQueueConfig())
        stages[name] = StageQueueConfig(
            concurrency=values.get("concurrency", base.concurrency),
            attempts=values.get("attempts", base.attempts),
            backoff_type=values.get("backoff_type", base.backoff_type),
            backoff_delay_ms=values.get("backoff_delay_ms", base.backoff_delay_ms),
            remove_on_complete=values.get("remove_on_complete", base.remove_on_complete),
            remove_on_fail=values.get("remove_on_fail", base.remove_on_fail),
        )

    return Config(
        database=DatabaseConfig(
            url=database.get("url"),
            echo=database.get("echo", False),
        ),
        http=HttpConfig(**{k: v for k, v in http.items() if k in HttpConfig.__dataclass_fields__}),
        ai=AIConfig(**{k: v for k, v in ai.items() if k in AIConfig.__dataclass_fields__}),
        research=ResearchConfig(
            **{k: v for k, v in research.items() if k in ResearchConfig.__dataclass_fields__}
        ),
        queue=QueueConfig(
            poll_interval_seconds=queue.get("poll_interval_seconds", 1.0),
            stall_timeout_seconds=queue.get("stall_timeout_seconds", 600),
            stages=stages,
        ),
        scheduler=SchedulerConfig(
            interval_minutes=scheduler.get("interval_minutes", 30),
            batch_size=scheduler.get("batch_size", 5),
        ),
    )


def _apply_env_overrides(config: Config) -> None:
    """Environment values win over YAML for secrets and deployment settings."""
    if os.environ.get("DATABASE_URL"):
        config.database.url = os.environ["DATABASE_URL"]
    if os.environ.get("HUGGINGFACE_API_KEY"):
        config.ai.api_key = os.environ["HUGGINGFACE_API_KEY"]
    if os.environ.get("HUGGINGFACE_API_URL"):
        config.ai.api_url = os.environ["HUGGINGFACE_API_URL"]
    if os.environ.get("SCHEDULER_INTERVAL_MINUTES"):
        config.scheduler.interval_minutes = int(os.environ["SCHEDULER_INTERVAL_MINUTES"])
    if os.environ.get("MAX_ARTICLES_PER_FETCH"):
        config.http.max_articles_per_fetch = int(os.environ["MAX_ARTICLES_PER_FETCH"])


_manager: ConfigSingleton[Config] = ConfigSingleton(load_config)
get_config = _manager.get
set_config = _manager.set
reset_config = _manager.reset
