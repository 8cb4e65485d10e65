"""
Settings for the course paper service, read from the environment or `.env`.

Covers the Claude models, the job queue (database path, concurrency,
retention), quality gating and the HTTP surface.
"""

import sys

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Validated once at import; field names match the environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===== API Keys =====
    ANTHROPIC_API_KEY: str | None = Field(
        default=None,
        description="Anthropic API key for Claude (required for paper generation)"
    )

    # ===== LLM Configuration =====
    PLANNER_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Model used to plan chapters and sections"
    )

    RESEARCH_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Model used to gather research notes per section"
    )

    WRITER_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Model used for introduction, chapters, conclusion and bibliography"
    )

    EVALUATOR_MODEL: str = Field(
        default="claude-3-5-haiku-20241022",
        description="Fast, cheap model used to score generated content"
    )

    TEMPERATURE: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="LLM temperature for writing agents"
    )

    MAX_TOKENS: int = Field(
        default=8000,
        ge=100,
        le=16000,
        description="Maximum tokens per LLM response"
    )

    LLM_TIMEOUT_SECONDS: float = Field(
        default=300.0,
        ge=1.0,
        description="Timeout for a single LLM call"
    )

    # ===== Job Queue =====
    JOBS_DB_PATH: str = Field(
        default="./data/jobs.db",
        description="Path to the SQLite database holding job records"
    )

    DOCUMENTS_DIR: str = Field(
        default="./generated_documents",
        description="Directory where rendered .docx papers are written"
    )

    MAX_CONCURRENT_JOBS: int = Field(
        default=3,
        ge=1,
        le=50,
        description="Maximum number of papers generated at the same time"
    )

    JOB_RETENTION_HOURS: int = Field(
        default=24,
        ge=1,
        description="Completed/failed jobs older than this are purged"
    )

    RETENTION_SWEEP_INTERVAL_SECONDS: int = Field(
        default=3600,
        ge=1,
        description="How often the retention sweeper runs"
    )

    WEBHOOK_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        ge=0.1,
        description="Timeout for outbound webhook POSTs"
    )

    # ===== Quality Evaluation =====
    QUALITY_THRESHOLD: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Minimum evaluator score (0-1) before content is accepted without retry"
    )

    INTRO_MAX_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Generation attempts for the introduction and the conclusion"
    )

    SECTION_MAX_ATTEMPTS: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Generation attempts for each chapter section"
    )

    # ===== Application Settings =====
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment mode: development or production"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable auto-reload when running the API directly"
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="API server host"
    )

    API_PORT: int = Field(
        default=3000,
        ge=1024,
        le=65535,
        description="API server port"
    )

    # ===== Security Settings =====
    REQUIRE_API_KEY: bool = Field(
        default=False,
        description="Require an API key on /api/v1 routes"
    )

    @field_validator('REQUIRE_API_KEY', 'DEBUG', mode='before')
    @classmethod
    def parse_bool_string(cls, v):
        """Parse boolean from string values (platform env vars are strings)."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes", "on")
        return False

    API_KEYS: str | None = Field(
        default=None,
        description="Comma-separated list of valid API keys"
    )

    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for all (dev only)."
    )

    @property
    def api_keys_list(self) -> list[str]:
        """Get list of valid API keys."""
        if not self.API_KEYS:
            return []
        return [k.strip() for k in self.API_KEYS.split(",") if k.strip()]

    @property
    def allowed_origins_list(self) -> list[str]:
        """Get list of allowed CORS origins."""
        if self.ALLOWED_ORIGINS == "*":
            if self.ENVIRONMENT == "production":
                print(
                    "WARNING: ALLOWED_ORIGINS='*' in production. "
                    "Set ALLOWED_ORIGINS explicitly.",
                    file=sys.stderr
                )
            return ["*"]
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def auth_required(self) -> bool:
        """Authentication is enforced only when requested and keys exist."""
        return self.REQUIRE_API_KEY and bool(self.api_keys_list)

    @property
    def llm_configured(self) -> bool:
        return self.ANTHROPIC_API_KEY is not None


# Global configuration instance
# Import this in other modules: from coursework.config import config
config = AppConfig()


if __name__ == "__main__":
    print("Configuration loaded successfully!")
    print(f"Writer model: {config.WRITER_MODEL}")
    print(f"Jobs DB: {config.JOBS_DB_PATH}")
    print(f"Max concurrent jobs: {config.MAX_CONCURRENT_JOBS}")
    print(f"Quality threshold: {config.QUALITY_THRESHOLD:.0%}")
    print(f"LLM configured: {'✓' if config.llm_configured else '✗'}")
