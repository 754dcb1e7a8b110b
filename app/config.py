"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./research_reports.db"

    # Research backend (OpenAI Responses API)
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    RESEARCH_MODEL: str = "o3-deep-research-2025-06-26"
    RESEARCH_REASONING_EFFORT: str = "medium"
    RESEARCH_SYSTEM_MESSAGE: str = (
        "You are a professional business research analyst. Provide comprehensive, "
        "well-structured research reports with citations."
    )
    RESEARCH_HTTP_TIMEOUT: float = 60.0

    # Polling
    POLL_INTERVAL_SECONDS: float = 30.0
    POLL_MAX_ATTEMPTS: int = 60  # ~30 minutes at the default interval

    # Google Docs export
    GOOGLE_DOCS_BASE_URL: str = "https://docs.googleapis.com/v1"
    GOOGLE_DRIVE_BASE_URL: str = "https://www.googleapis.com/drive/v3"
    GOOGLE_ACCESS_TOKEN: str = ""  # When set, completed reports are exported automatically
    REPORT_LOGO_URL: str = ""
    DOC_BODY_START_INDEX: int = 1
    PAGE_BREAK_MARKER: str = "<pagebreak>"

    # Worker
    WORKER_POLL_INTERVAL: int = 5

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


# Global settings instance
settings = Settings()
