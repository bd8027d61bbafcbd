from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configuração da API lida do ambiente (ou do arquivo .env).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATABASE_URL: str = "sqlite:///./deck_ai.db"
    GROQ_API_KEY: str = ""

    # Modelos por tarefa
    QUIZ_MODEL: str = "llama-3.3-70b-versatile"
    # Quando a cota diária do modelo principal acaba, caímos para este
    QUIZ_MODEL_ECONOMY: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    MODERATION_MODEL: str = "llama-3.3-70b-versatile"
    FLASHCARD_MODEL: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    PRIMARY_MODEL_DAILY_TOKEN_LIMIT: int = 85000

    # Tempos (segundos)
    GENERATION_TIMEOUT_SECONDS: float = 60.0
    REQUEST_TIMEOUT_SECONDS: float = 120.0
    RATE_LIMIT_RETRY_SECONDS: float = 2.0

    # 0 = o deck inteiro num único lote
    MODERATION_BATCH_SIZE: int = 0

    TMP_DIR: str = "/tmp"
    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
