"""Settings via pydantic-settings with RELAY_ env prefix.

DB connection fields and provider API keys use validation_alias to read
the same unprefixed env vars that docker-compose and the provider SDKs use,
so a single .env file drives both the container and the Python app.
"""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_PROVIDERS = ("anthropic", "gemini", "openai", "deepseek")

_BUNDLED_PERSONAS = Path(__file__).resolve().parent / "constitutions"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RELAY_", env_file=".env")

    # DB connection: unprefixed aliases match docker-compose env vars
    db_host: str = Field("localhost", validation_alias="DB_HOST")
    db_port: int = Field(5432, validation_alias="DB_PORT")
    db_user: str = Field("relay", validation_alias="DB_USER")
    db_password: str = Field("relay_dev_password", validation_alias="DB_PASSWORD")
    db_name: str = Field("relay", validation_alias="DB_NAME")

    db_pool_size: int = 10
    db_max_overflow: int = 5
    log_level: str = "info"

    # Runtime
    host: str = "0.0.0.0"
    port: int = 3000
    api_key: str = Field("", validation_alias="API_KEY")

    # Budget
    cost_per_1k_tokens: float = Field(0.02, validation_alias="COST_PER_1K_TOKENS")
    budget_threshold: float = Field(10.0, validation_alias="BUDGET_THRESHOLD")

    # Providers, best quality first
    provider_order: list[str] = ["anthropic", "gemini", "openai", "deepseek"]
    anthropic_api_key: str = Field("", validation_alias="ANTHROPIC_API_KEY")
    anthropic_model: str = "claude-sonnet-4-5-20250514"
    anthropic_base_url: str = "https://api.anthropic.com"
    gemini_api_key: str = Field("", validation_alias="GEMINI_API_KEY")
    gemini_model: str = "gemini-1.5-pro"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    openai_api_key: str = Field("", validation_alias="OPENAI_API_KEY")
    openai_model: str = "gpt-4o"
    openai_base_url: str = "https://api.openai.com"
    deepseek_api_key: str = Field("", validation_alias="DEEPSEEK_API_KEY")
    deepseek_model: str = "deepseek-chat"
    deepseek_base_url: str = "https://api.deepseek.com"

    api_timeout_connect: int = 10  # seconds
    api_timeout_read: int = 60  # seconds
    classify_max_tokens: int = 1000
    generate_max_tokens: int = 2048

    # Conversation
    history_window: int = 10  # message/response events handed to the backend
    default_persona: str = "conversational-programming"
    persona_dir: Path = _BUNDLED_PERSONAS

    @model_validator(mode="after")
    def _validate(self) -> "Settings":
        if self.cost_per_1k_tokens < 0:
            raise ValueError("cost_per_1k_tokens must be >= 0")
        if self.budget_threshold < 0:
            raise ValueError("budget_threshold must be >= 0")
        if self.history_window < 1:
            raise ValueError("history_window must be >= 1")
        unknown = [p for p in self.provider_order if p not in KNOWN_PROVIDERS]
        if unknown:
            raise ValueError(
                f"Unknown providers in provider_order: {unknown} "
                f"(expected any of {list(KNOWN_PROVIDERS)})"
            )
        return self

    @property
    def db_url(self) -> str:
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"
