"""Application configuration using pydantic-settings."""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase (optional - analysis history is disabled when not set)
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_service_key: Optional[str] = None

    # Anthropic API key - first configured variable wins
    anthropic_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "ANTHROPIC_API_KEY", "CLAUDE_API_KEY", "AI_API_KEY"
        ),
    )
    claude_model: str = "claude-sonnet-4-20250514"
    # Tried once, only after the primary model times out or errors
    claude_fallback_model: str = "claude-3-5-haiku-20241022"

    # Workload identity federation (alternate auth path through Vertex AI)
    gcp_project_id: Optional[str] = None
    gcp_project_number: Optional[str] = None
    gcp_workload_identity_pool_id: Optional[str] = None
    gcp_workload_identity_pool_provider_id: Optional[str] = None
    gcp_oidc_token_file: Optional[str] = None
    gcp_location: str = "us-east5"
    vertex_model: str = "claude-sonnet-4@20250514"
    vertex_fallback_model: str = "claude-3-5-haiku@20241022"

    # AI call bounds (seconds, per model attempt)
    analysis_timeout_seconds: float = 30.0
    control_text_timeout_seconds: float = 15.0
    workload_identity_timeout_seconds: float = 30.0
    analysis_max_tokens: int = 8000
    control_text_max_tokens: int = 2000

    # Prompt bounds (characters of document text sent to the model)
    analysis_max_chars: int = 8000
    control_text_max_chars: int = 4000

    # Uploads
    max_upload_bytes: int = 10 * 1024 * 1024

    # History
    history_page_size: int = 10
    history_timeout_seconds: float = 10.0

    # CORS
    cors_origins: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def workload_identity_configured(self) -> bool:
        """True when every identifier needed for the Vertex AI path is set."""
        return all(
            [
                self.gcp_project_id,
                self.gcp_project_number,
                self.gcp_workload_identity_pool_id,
                self.gcp_workload_identity_pool_provider_id,
                self.gcp_oidc_token_file,
            ]
        )

    @property
    def history_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings for testing."""
    global _settings
    _settings = None
