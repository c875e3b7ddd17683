"""
Configuration management for Hooshyar.

Uses Pydantic Settings for type-safe environment variable handling.
All configuration is loaded from environment variables or .env file.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = "Hooshyar"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    
    # ==========================================================================
    # Server
    # ==========================================================================
    host: str = "0.0.0.0"
    port: int = 8000
    
    # ==========================================================================
    # Generation Service
    # ==========================================================================
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    generation_temperature: float = 0.2
    request_timeout_ms: int = 120_000
    
    # ==========================================================================
    # Rate Limiting
    # ==========================================================================
    rate_limit_per_minute: int = 30
    
    # ==========================================================================
    # Sessions
    # ==========================================================================
    session_cookie_name: str = "hooshyar_session"
    max_sessions: int = 1000
    
    # ==========================================================================
    # Document Export
    # ==========================================================================
    document_font: str = "Vazirmatn"
    document_creator: str = "Hooshyar Health Assistant"
    
    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def gemini_configured(self) -> bool:
        """Whether an API credential for the generation service is set."""
        return bool(self.gemini_api_key.strip())


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience access
settings = get_settings()
