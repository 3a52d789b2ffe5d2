"""Application configuration."""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""
    # Server
    SERVICE_NAME: str = "frame-rag"
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "info"

    # Qdrant configuration (QDRANT_URL wins over host/port when set)
    QDRANT_URL: Optional[str] = None
    QDRANT_HOST: str = "localhost"
    QDRANT_PORT: int = 6333
    QDRANT_API_KEY: Optional[str] = None

    # Embedding API configuration (OpenAI-compatible)
    EMBEDDING_API_BASE: str = "https://api.openai.com/v1"
    EMBEDDING_API_KEY: str = "sk-dummy-key"
    EMBEDDING_MODEL: str = "text-embedding-3-large"
    EMBEDDING_DIMENSION: int = 3072
    # Some OpenAI-compatible servers reject the `dimensions` argument
    EMBEDDING_SEND_DIMENSIONS: bool = True

    # Generation API configuration (OpenAI-compatible chat completions)
    LLM_API_BASE: str = "https://api.openai.com/v1"
    LLM_API_KEY: str = "sk-dummy-key"
    LLM_MODEL: str = "gpt-4o"
    LLM_TEMPERATURE: float = 0.2
    LLM_MAX_TOKENS: int = 2048

    # Collections and namespaces
    DEFAULT_INDEX_NAME: str = "video-frames"
    DEFAULT_NAMESPACE: str = "frames"

    # Provisioning: poll every 2s, up to 150 attempts (~5 minutes)
    PROVISION_POLL_INTERVAL: float = 2.0
    PROVISION_MAX_ATTEMPTS: int = 150

    # Analyze: attach frame images inline when they can be loaded
    ANALYZE_ATTACH_IMAGES: bool = True
    FRAME_IMAGE_ROOT: str = "."
    # Fetch frame images given as http(s) URLs; off so stored paths cannot reach the network
    FRAME_IMAGE_ALLOW_REMOTE: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
