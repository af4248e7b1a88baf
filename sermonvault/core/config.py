"""
Configuration management using Pydantic Settings.
All environment variables are loaded and validated here.
"""

from typing import List, Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ================================
    # Application Configuration
    # ================================
    APP_NAME: str = "SermonVault"
    APP_ENV: Literal["development", "testing", "staging", "production"] = "development"
    DEBUG: bool = True
    SECRET_KEY: str = Field(..., min_length=32)
    VERSION: str = "0.1.0"

    # API Configuration
    API_PREFIX: str = "/api"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def parse_origins(cls, v: str) -> List[str]:
        """Parse comma-separated origins into list."""
        return [origin.strip() for origin in v.split(",")]

    # ================================
    # Database Configuration
    # ================================
    DATABASE_URL: str = Field(..., description="PostgreSQL connection string")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # ================================
    # JWT Authentication
    # ================================
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # one day
    JWT_ALGORITHM: str = "HS256"

    # ================================
    # Anthropic (metadata, routing, answers)
    # ================================
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-20241022"
    # Used for the one-word NEEDS_CONTEXT / NO_CONTEXT decision
    ANTHROPIC_CLASSIFIER_MODEL: str = "claude-3-5-haiku-20241022"
    ANTHROPIC_MAX_TOKENS: int = 2048
    LLM_TIMEOUT_SECONDS: float = 60.0

    # ================================
    # OpenAI Embeddings
    # ================================
    OPENAI_API_KEY: Optional[str] = None
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSION: int = 1536
    EMBEDDING_BATCH_SIZE: int = 5
    EMBEDDING_TIMEOUT_SECONDS: float = 30.0

    # ================================
    # Object Storage (S3 compatible)
    # ================================
    STORAGE_BUCKET: str = "sermons"
    STORAGE_REGION: str = "us-east-1"
    STORAGE_ENDPOINT_URL: Optional[str] = None
    SIGNED_URL_EXPIRE_SECONDS: int = 3600
    MAX_UPLOAD_BYTES: int = 8 * 1024 * 1024

    # ================================
    # Ingestion Pipeline
    # ================================
    CHUNK_MAX_CHARS: int = 1000
    CHUNK_OVERLAP_CHARS: int = 200
    # Texts longer than this are head/tail sampled before metadata extraction
    METADATA_SAMPLE_THRESHOLD: int = 6000
    METADATA_SAMPLE_CHARS: int = 3000
    SERMON_VALIDATION_ENABLED: bool = False

    # ================================
    # Chat / Retrieval
    # ================================
    CHAT_HISTORY_LIMIT: int = 5
    CHAT_HISTORY_MAX_CHARS: int = 500
    RAG_SIMPLE_THRESHOLD: float = 0.3
    RAG_SIMPLE_COUNT: int = 5
    RAG_ANALYTICAL_THRESHOLD: float = 0.2
    RAG_ANALYTICAL_COUNT: int = 30

    # ================================
    # Logging Configuration
    # ================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"

    @property
    def is_sqlite(self) -> bool:
        """True when DATABASE_URL points at SQLite (local tests)."""
        return self.DATABASE_URL.startswith("sqlite")


# Global settings instance
settings = Settings()
