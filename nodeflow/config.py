"""Engine configuration."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="NodeFlow", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Node SDK
    node_sdk_version: str = Field(
        default="1.0.0", description="SDK version custom nodes are checked against"
    )

    # LLM execution
    llm_timeout_ms: int = Field(default=60000, description="LLM call timeout in ms")
    llm_retry_count: int = Field(default=0, description="LLM call retries")
    llm_retry_delay_ms: int = Field(
        default=1000, description="Delay between LLM retries in ms"
    )

    # HTTP execution
    http_timeout_ms: int = Field(default=30000, description="HTTP request timeout in ms")

    # Loops
    loop_max_iterations: int = Field(
        default=1000, description="Default loop iteration cap"
    )
    loop_iteration_limit: int = Field(
        default=10000, description="Hard ceiling for any loop, regardless of config"
    )

    # Node logs
    log_preview_length: int = Field(
        default=100, description="Max characters of values echoed into node logs"
    )

    # AI providers
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1", description="OpenAI API base URL"
    )
    anthropic_api_key: Optional[str] = Field(
        default=None, description="Anthropic API key"
    )
    anthropic_base_url: str = Field(
        default="https://api.anthropic.com/v1", description="Anthropic API base URL"
    )
    local_llm_base_url: str = Field(
        default="http://localhost:11434/v1", description="Local model server URL"
    )
    local_llm_api_key: Optional[str] = Field(
        default=None, description="Local model server API key"
    )

    # Monitoring
    metrics_enabled: bool = Field(default=True, description="Enable metrics")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ("development", "dev")

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment.lower() in ("testing", "test")


@lru_cache()
def get_settings() -> Settings:
    """Get engine settings (cached)."""
    return Settings()


# Global settings instance
settings = get_settings()
