from typing import Literal, Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.errors import ConfigurationError


class Settings(BaseSettings):
    # Embedding model (Hugging Face feature-extraction)
    huggingface_api_key: Optional[SecretStr] = None
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_dimension: int = 384
    embedding_base_url: str = "https://router.huggingface.co/hf-inference/models"
    embedding_timeout: float = 30.0

    # Chat model (OpenAI-compatible chat completions)
    chat_model: str = "meta-llama/Llama-3.2-3B-Instruct"
    chat_base_url: str = "https://router.huggingface.co/v1/chat/completions"
    chat_max_tokens: int = 500
    chat_temperature: float = 0.7
    chat_timeout: float = 30.0

    # Vector store
    vector_backend: Literal["pinecone", "memory"] = "pinecone"
    pinecone_api_key: Optional[SecretStr] = None
    pinecone_controller_url: str = "https://api.pinecone.io"
    pinecone_api_version: str = "2024-07"
    vector_index_name: str = "support-docs"
    vector_namespace: str = "articles"
    vector_cloud: str = "aws"
    vector_region: str = "us-east-1"
    index_ready_timeout: float = 60.0
    index_poll_initial_delay: float = 1.0
    index_poll_max_delay: float = 10.0

    # CMS (Contentstack delivery API)
    contentstack_api_key: Optional[SecretStr] = None
    contentstack_delivery_token: Optional[SecretStr] = None
    contentstack_environment: str = "production"
    contentstack_region: Literal["us", "eu"] = "us"

    # CDP (Lytics)
    lytics_account_id: Optional[str] = None
    lytics_api_token: Optional[SecretStr] = None
    lytics_base_url: str = "https://api.lytics.io"
    cdp_ready_timeout: float = 5.0

    # Document sync
    sync_batch_limit: int = 100
    sync_delay_seconds: float = 0.2
    sync_content_max_chars: int = 2000
    stored_content_max_chars: int = 1000

    # Retrieval / ranking
    rag_top_k: int = 3
    strict_topic_matching: bool = False

    admin_api_key: Optional[SecretStr] = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )


def require_secret(value: Optional[SecretStr], env_name: str) -> str:
    """Return a configured secret or fail with the variable that is missing."""
    if value is None or not value.get_secret_value():
        raise ConfigurationError(f"{env_name} is not configured")
    return value.get_secret_value()


settings = Settings()
