from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, PostgresDsn, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CustomSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


class AppSettings(CustomSettings):
    ENVIRONMENT: Literal["local", "dev", "prod"] = Field(default="local")
    LOG_LEVEL: str = Field(default="INFO")


class PgDbSettings(CustomSettings):
    POSTGRES_ENGINE: str = Field(default="postgresql+asyncpg")
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: SecretStr = Field(default="postgres")
    POSTGRES_DB: str = Field(default="chat")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)
    DATABASE_URL: PostgresDsn | str = Field(default="")

    @model_validator(mode="before")
    def validate_postgres_dsn(cls, data: dict):
        if isinstance(data, dict) and not data.get("DATABASE_URL"):
            _built_uri = PostgresDsn.build(
                scheme=data.get("POSTGRES_ENGINE", "postgresql+asyncpg"),
                username=data.get("POSTGRES_USER", "postgres"),
                password=data.get("POSTGRES_PASSWORD", "postgres"),
                host=data.get("POSTGRES_HOST", "localhost"),
                port=int(data.get("POSTGRES_PORT", 5432)),
                path=data.get("POSTGRES_DB", "chat"),
            ).unicode_string()
            data["DATABASE_URL"] = _built_uri
        return data


class CompletionSettings(CustomSettings):
    """Configuration for the external chat completion endpoint.

    Any OpenAI-compatible API works; the default points at DeepSeek.

    Env vars:
    - OPENAI_API_KEY
    - COMPLETION_BASE_URL
    - COMPLETION_MODEL
    - COMPLETION_TEMPERATURE
    - COMPLETION_MAX_TOKENS
    - COMPLETION_TIMEOUT_SECONDS
    - SYSTEM_PROMPT
    """

    OPENAI_API_KEY: SecretStr = Field(default="")
    COMPLETION_BASE_URL: str = Field(default="https://api.deepseek.com")
    COMPLETION_MODEL: str = Field(default="deepseek-chat")
    COMPLETION_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0)
    COMPLETION_MAX_TOKENS: int = Field(default=150, ge=1)
    COMPLETION_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    SYSTEM_PROMPT: str = Field(default="You are a helpful assistant.")


class ConversationSettings(CustomSettings):
    DEFAULT_TITLE: str = Field(default="New Chat")
    TITLE_MAX_LENGTH: int = Field(default=100)
    LIST_LIMIT: int = Field(default=50)


class UiSettings(CustomSettings):
    """Configuration for the Streamlit chat UI.

    Set via env vars:
    - API_BASE_URL
    - UI_USER_ID
    """

    API_BASE_URL: str = Field(default="http://localhost:8000")
    UI_USER_ID: int = Field(default=1)


class Settings(BaseModel):
    APP: AppSettings = Field(default_factory=AppSettings)
    DATABASE: PgDbSettings = Field(default_factory=PgDbSettings)
    COMPLETION: CompletionSettings = Field(default_factory=CompletionSettings)
    CONVERSATION: ConversationSettings = Field(default_factory=ConversationSettings)
    UI: UiSettings = Field(default_factory=UiSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()


SETTINGS = get_settings()
