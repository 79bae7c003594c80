from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Server
    APP_ENV: str = "dev"
    PORT: int = 8080

    # Database
    DATABASE_URL: str

    # Queue
    REDIS_URL: str = "redis://localhost:6379/0"

    # Object storage
    STORAGE_DIR: str = "data/uploads"
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024

    # LLM endpoint (LiteLLM model string, e.g. "openai/gpt-4o-mini")
    LLM_MODEL: str = "openai/gpt-4o-mini"
    LLM_API_KEY: str | None = None
    LLM_API_BASE: str | None = None
    LLM_SUPPORTS_ROLES: bool = True

    # Analysis
    ANALYSIS_TEMPERATURE: float = 0.3
    ANALYSIS_MAX_TOKENS: int = 2000
    ANALYSIS_MAX_INPUT_CHARS: int = 8000

    # Extraction / persistence
    MIN_EXTRACTED_CHARS: int = 50
    PLACEHOLDER_BELOW_CHARS: int = 20
    ORIGINAL_TEXT_MAX_CHARS: int = 10_000

    # Chat
    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_TOKENS: int = 1000
    CHAT_HISTORY_LIMIT: int = 20
    CHAT_CONTEXT_TEXT_CHARS: int = 2000


TORTOISE_ORM = {
    "connections": {"default": Settings().DATABASE_URL},
    "apps": {
        "models": {
            "models": ["legalease.models", "aerich.models"],
            "default_connection": "default",
        },
    },
}
