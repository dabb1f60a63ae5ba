"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BotSettings(BaseSettings):
    """Discord bot configuration."""

    name: str = Field(default="butler", description="Bot display name")
    command_prefix: str = Field(default="!", description="Command prefix for bot commands")
    token: str = Field(default="", description="Discord bot token")
    allowed_channel_ids: list[int] = Field(
        default_factory=list,
        description="If non-empty, bot only responds in these channel IDs. "
                    "Set via BOT_ALLOWED_CHANNEL_IDS='[123456,789012]'",
    )
    dev_guild_id: int | None = Field(
        default=None,
        description="If set, syncs slash commands to this guild instantly (dev mode). "
                    "If None, syncs globally (up to 1 hour propagation).",
    )

    model_config = SettingsConfigDict(env_prefix="BOT_")


class AISettings(BaseSettings):
    """AI vendor configuration."""

    provider: str = Field(
        default="gemini",
        description="AI vendor: gemini, openai, claude or workersai. "
                    "Validated by the provider factory, not here.",
    )
    api_key: str = Field(default="", description="API key for the selected vendor")
    model: str | None = Field(
        default=None,
        description="Model name. Required for every vendor except gemini, "
                    "which falls back to gemini-2.5-flash.",
    )
    cloudflare_account_id: str | None = Field(
        default=None, description="Cloudflare account ID (workersai only)"
    )
    prompt_append: str = Field(
        default="", description="Extra policy text appended to the system prompt"
    )
    max_iterations: int = Field(default=3, ge=1, description="Tool-calling loop bound")
    request_timeout: float = Field(
        default=60.0, gt=0, description="Timeout in seconds for a single HTTP attempt"
    )
    tool_timeout: float = Field(
        default=60.0,
        ge=0,
        description="Timeout in seconds for one tool call. 0 disables the limit.",
    )
    timezone: str = Field(
        default="Asia/Tokyo", description="Time zone of the clock line in the system prompt"
    )
    debug: bool = Field(default=False, description="Log request summaries for every round")

    model_config = SettingsConfigDict(env_prefix="AI_")


class ConversationSettings(BaseSettings):
    """In-memory conversation limits."""

    max_sessions: int = Field(default=5, ge=1, description="Sessions kept before LRU eviction")
    max_messages: int = Field(default=20, ge=1, description="Messages kept per session")
    max_reply_chain: int = Field(
        default=20, ge=1, description="Messages walked when rebuilding a session from replies"
    )

    model_config = SettingsConfigDict(env_prefix="CONVERSATION_")


class ToolSettings(BaseSettings):
    """Bundled tool configuration."""

    wikipedia_enabled: bool = Field(default=True, description="Register the wiki tool")
    wikipedia_host: str = Field(
        default="https://ja.wikipedia.org/",
        description="MediaWiki host queried by the wiki tool (trailing slash included)",
    )
    memo_enabled: bool = Field(default=True, description="Register the memo tool")
    event_reminder_enabled: bool = Field(
        default=True, description="Register the event reminder tools and run the reminder loop"
    )
    event_reminder_channel_id: int | None = Field(
        default=None,
        description="Text channel that receives event reminders. "
                    "If None, reminders are logged and dropped.",
    )
    event_reminder_interval: float = Field(
        default=300.0, gt=0, description="Seconds between event reminder checks"
    )

    model_config = SettingsConfigDict(env_prefix="TOOL_")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    bot: BotSettings = Field(default_factory=BotSettings)
    ai: AISettings = Field(default_factory=AISettings)
    conversation: ConversationSettings = Field(default_factory=ConversationSettings)
    tools: ToolSettings = Field(default_factory=ToolSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    global _settings
    if env_file:
        _settings = Settings(_env_file=env_file)
    else:
        _settings = Settings()
    return _settings
