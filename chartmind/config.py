"""
Central configuration for the ChartMind backend
"""

import os
import tempfile
from typing import List, Optional
from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # API Configuration
    api_title: str = Field(default="ChartMind Secure Backend")
    api_description: str = Field(default="Clinical audio transcription and SOAP note generation")
    api_version: str = Field(default="1.0.0")
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3000)

    # External Service APIs
    openai_api_key: Optional[str] = Field(default=None)
    openai_base_url: str = Field(default="https://api.openai.com/v1")

    # STT Configuration
    stt_model: str = Field(default="whisper-1")
    stt_timeout: int = Field(default=120)  # seconds

    # LLM Configuration
    llm_model: str = Field(default="gpt-4")
    llm_temperature: float = Field(default=0.3)
    llm_max_tokens: int = Field(default=2000)
    llm_timeout: int = Field(default=120)  # seconds

    # Audio Upload Limits
    max_file_size_mb: int = Field(default=25)
    allowed_audio_types: List[str] = Field(
        default=["audio/mp3", "audio/mpeg", "audio/wav", "audio/m4a", "audio/x-m4a"]
    )
    allowed_audio_extensions: List[str] = Field(default=[".mp3", ".wav", ".m4a"])

    # Temp file staging
    temp_dir: str = Field(default=os.path.join(tempfile.gettempdir(), "chartmind_audio"))
    temp_cleanup_interval_seconds: int = Field(default=15 * 60)
    temp_file_max_age_seconds: int = Field(default=60 * 60)

    # CORS Configuration (ALLOWED_ORIGINS is a comma separated list)
    allowed_origins: Optional[str] = Field(default=None)
    cors_allow_credentials: bool = Field(default=True)
    cors_allow_methods: List[str] = Field(default=["GET", "POST"])
    cors_allow_headers: List[str] = Field(default=["*"])

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_requests: int = Field(default=30)  # per minute

    # Monitoring
    enable_metrics: bool = Field(default=True)

    # Frontend
    static_dir: str = Field(default="public")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def cors_origins(self) -> List[str]:
        if self.allowed_origins:
            return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]
        return ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8080"]

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


# Global settings instance
settings = Settings()
