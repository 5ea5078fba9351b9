"""
ArtPulse Configuration Module
=============================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    STORE_BACKEND: "postgres" or "memory" (default: postgres)

    DATABASE_HOST: PostgreSQL host (default: localhost)
    DATABASE_PORT: PostgreSQL port (default: 5432)
    DATABASE_NAME: Database name (default: artpulse)
    DATABASE_USER: Database user (default: artpulse_app)
    DATABASE_PASSWORD: Database password (required for the postgres backend)
    DATABASE_POOL_MIN: Minimum pool connections (default: 1)
    DATABASE_POOL_MAX: Maximum pool connections (default: 5)

    PIPELINE_MAX_LISTINGS: Listings processed per run (default: 500)
    PIPELINE_PUBLISH_TOP_N: Opportunities published per day (default: 10)
    PIPELINE_MIN_CONFIDENCE: Publish confidence floor (default: 0.6)
    PIPELINE_MIN_EVIDENCE: Evidence URLs required per opportunity (default: 5)
    PIPELINE_HOT_WVS: WVS that triggers an external alert (default: 4.5)
    PIPELINE_ENABLE_ENRICHMENT: LLM fallback for low-confidence titles (default: false)
    PIPELINE_ENABLE_VISUAL: Run the visual analysis side stage (default: false)
    PIPELINE_RUN_LOCK_MINUTES: Window during which a running run blocks a new one (default: 60)

    NOTIFY_WEBHOOK_URL: Notification sink endpoint
    ENABLE_NOTIFICATIONS: "true" to post to the sink (default: false)

    LLM_PROVIDER: anthropic or openai (default: anthropic)
    LOG_LEVEL / LOG_FILE / LOG_JSON: logging options
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


# Load environment variables from .env file if present
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Raises:
        ValueError: If required=True and variable is not set
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a float, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration."""

    host: str = field(default_factory=lambda: get_env("DATABASE_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("DATABASE_PORT", 5432))
    name: str = field(default_factory=lambda: get_env("DATABASE_NAME", "artpulse"))
    user: str = field(default_factory=lambda: get_env("DATABASE_USER", "artpulse_app"))
    password: str = field(default_factory=lambda: get_env("DATABASE_PASSWORD", ""))

    # Connection pool settings
    pool_min_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MIN", 1))
    pool_max_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MAX", 5))

    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))

    # SSL mode: disable, allow, prefer, require, verify-ca, verify-full
    ssl_mode: str = field(default_factory=lambda: get_env("DATABASE_SSL_MODE", "prefer"))

    @property
    def connection_dict(self) -> dict:
        """Connection parameters as dictionary for psycopg2."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.name,
            "user": self.user,
            "password": self.password,
            "sslmode": self.ssl_mode,
            "connect_timeout": self.connect_timeout,
        }

    def __post_init__(self):
        """Validate configuration."""
        if self.pool_min_size > self.pool_max_size:
            raise ValueError("pool_min_size cannot exceed pool_max_size")


# Settings may raise these publishing limits, never lower them
PUBLISH_EVIDENCE_FLOOR = 5
PUBLISH_CONFIDENCE_FLOOR = 0.6


@dataclass
class PipelineConfig:
    """Demand intelligence pipeline configuration."""

    # Bounds total run time
    max_listings_per_run: int = field(default_factory=lambda: get_env_int("PIPELINE_MAX_LISTINGS", 500))

    # Publishing
    publish_top_n: int = field(default_factory=lambda: get_env_int("PIPELINE_PUBLISH_TOP_N", 10))
    min_publish_confidence: float = field(default_factory=lambda: get_env_float("PIPELINE_MIN_CONFIDENCE", 0.6))
    min_evidence_urls: int = field(default_factory=lambda: get_env_int("PIPELINE_MIN_EVIDENCE", 5))
    max_evidence_urls: int = field(default_factory=lambda: get_env_int("PIPELINE_MAX_EVIDENCE", 10))
    hot_wvs_threshold: float = field(default_factory=lambda: get_env_float("PIPELINE_HOT_WVS", 4.5))

    # Parsing
    enable_enrichment: bool = field(default_factory=lambda: get_env_bool("PIPELINE_ENABLE_ENRICHMENT", False))
    enrichment_threshold: float = field(default_factory=lambda: get_env_float("PIPELINE_ENRICHMENT_THRESHOLD", 0.6))

    # Scoring
    default_median_price: float = field(default_factory=lambda: get_env_float("PIPELINE_DEFAULT_MEDIAN_PRICE", 150.0))
    refresh_benchmarks: bool = field(default_factory=lambda: get_env_bool("PIPELINE_REFRESH_BENCHMARKS", False))

    # Optional visual analysis side stage
    enable_visual: bool = field(default_factory=lambda: get_env_bool("PIPELINE_ENABLE_VISUAL", False))
    visual_limit: int = field(default_factory=lambda: get_env_int("PIPELINE_VISUAL_LIMIT", 25))

    # Per-owner run exclusivity
    run_lock_minutes: int = field(default_factory=lambda: get_env_int("PIPELINE_RUN_LOCK_MINUTES", 60))

    def __post_init__(self):
        """Validate configuration."""
        if self.max_listings_per_run <= 0:
            raise ValueError("max_listings_per_run must be positive")
        if self.publish_top_n <= 0:
            raise ValueError("publish_top_n must be positive")
        if not 0.0 <= self.min_publish_confidence <= 1.0:
            raise ValueError("min_publish_confidence must be within [0, 1]")
        if self.min_publish_confidence < PUBLISH_CONFIDENCE_FLOOR:
            raise ValueError(f"min_publish_confidence cannot be lower than {PUBLISH_CONFIDENCE_FLOOR}")
        if self.min_evidence_urls < PUBLISH_EVIDENCE_FLOOR:
            raise ValueError(f"min_evidence_urls cannot be lower than {PUBLISH_EVIDENCE_FLOOR}")
        if self.max_evidence_urls < self.min_evidence_urls:
            raise ValueError("max_evidence_urls cannot be lower than min_evidence_urls")


@dataclass
class NotificationConfig:
    """Notification sink configuration."""

    webhook_url: str = field(default_factory=lambda: get_env("NOTIFY_WEBHOOK_URL", ""))
    enabled: bool = field(default_factory=lambda: get_env_bool("ENABLE_NOTIFICATIONS", False))
    app_url: str = field(default_factory=lambda: get_env("APP_URL", "http://localhost:3000"))
    timeout_seconds: int = field(default_factory=lambda: get_env_int("NOTIFY_TIMEOUT", 10))


@dataclass
class LLMConfig:
    """Optional LLM provider configuration (enrichment and visual analysis)."""

    provider: str = field(default_factory=lambda: get_env("LLM_PROVIDER", "anthropic"))
    anthropic_api_key: Optional[str] = field(default_factory=lambda: get_env("ANTHROPIC_API_KEY"))
    openai_api_key: Optional[str] = field(default_factory=lambda: get_env("OPENAI_API_KEY"))
    model: Optional[str] = field(default_factory=lambda: get_env("LLM_MODEL"))

    def __post_init__(self):
        if self.provider not in ("anthropic", "openai"):
            raise ValueError(f"Unsupported LLM_PROVIDER: {self.provider}")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))


@dataclass
class Settings:
    """Main application settings container."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    store_backend: str = field(default_factory=lambda: get_env("STORE_BACKEND", "postgres"))

    app_name: str = "artpulse"
    app_version: str = "2.0.0"
    environment: str = field(default_factory=lambda: get_env("ENVIRONMENT", "development"))

    def __post_init__(self):
        if self.store_backend not in ("postgres", "memory"):
            raise ValueError(f"Unsupported STORE_BACKEND: {self.store_backend}")

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() in ("production", "prod")


def load_settings() -> Settings:
    """
    Load and validate all application settings.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
