"""Configuration settings using Pydantic"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # API Keys
    gemini_api_key: str = Field(..., alias="GEMINI_API_KEY")

    # Supabase Configuration
    supabase_url: str = Field(..., alias="SUPABASE_URL")
    supabase_key: str = Field(..., alias="SUPABASE_KEY")

    # Application Settings
    env: str = Field(default="development", alias="ENV")
    log_level: str = Field(default="info", alias="LOG_LEVEL")

    # Model Settings
    # Search grounding and function calling are both used on the chat model
    model_name: str = Field(default="gemini-3-flash-preview", alias="MODEL_NAME")
    tts_model_name: str = Field(default="gemini-2.5-flash-preview-tts", alias="TTS_MODEL_NAME")
    tts_voice_name: str = Field(default="Kore", alias="TTS_VOICE_NAME")
    model_temperature: float = 0.7

    # Input Validation
    max_input_length: int = 2500
    max_trip_days: int = 14
    max_travelers: int = 20
    min_password_length: int = 6

    # Rate Limits (client-side quotas, not a security boundary)
    ai_requests_limit: int = 10
    ai_window_ms: int = 60 * 1000
    auth_attempts_limit: int = 5
    auth_window_ms: int = 5 * 60 * 1000
    rate_limit_store_dir: str = Field(default=".kanso_ratelimit", alias="RATE_LIMIT_STORE_DIR")

    # Session Settings
    session_cookie_name: str = "kanso_session"
    session_ttl_seconds: int = Field(default=24 * 60 * 60, alias="SESSION_TTL_SECONDS")

    # CORS Settings
    allowed_origins: str = Field(
        default="http://localhost:5173",
        alias="ALLOWED_ORIGINS",
        description="Comma-separated list of allowed origins for CORS"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
