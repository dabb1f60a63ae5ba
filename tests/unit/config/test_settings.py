"""Tests for Settings defaults and environment loading."""

from butler.config.logging import get_logger
from butler.config.settings import AISettings, ConversationSettings, Settings, ToolSettings, load_settings


class TestDefaults:
    def test_ai_defaults(self, monkeypatch):
        for name in ("AI_PROVIDER", "AI_MODEL", "AI_API_KEY", "AI_MAX_ITERATIONS"):
            monkeypatch.delenv(name, raising=False)
        ai = AISettings()
        assert ai.provider == "gemini"
        assert ai.model is None
        assert ai.max_iterations == 3
        assert ai.tool_timeout == 60.0

    def test_conversation_defaults(self, monkeypatch):
        monkeypatch.delenv("CONVERSATION_MAX_SESSIONS", raising=False)
        monkeypatch.delenv("CONVERSATION_MAX_MESSAGES", raising=False)
        conversation = ConversationSettings()
        assert conversation.max_sessions == 5
        assert conversation.max_messages == 20

    def test_tool_defaults(self, monkeypatch):
        for name in ("TOOL_MEMO_ENABLED", "TOOL_EVENT_REMINDER_ENABLED",
                     "TOOL_EVENT_REMINDER_CHANNEL_ID", "TOOL_EVENT_REMINDER_INTERVAL"):
            monkeypatch.delenv(name, raising=False)
        tools = ToolSettings()
        assert tools.memo_enabled is True
        assert tools.event_reminder_enabled is True
        assert tools.event_reminder_channel_id is None
        assert tools.event_reminder_interval == 300.0


class TestEnvironment:
    def test_prefixed_env_vars(self, monkeypatch):
        monkeypatch.setenv("AI_PROVIDER", "claude")
        monkeypatch.setenv("AI_MODEL", "claude-sonnet-4-5")
        monkeypatch.setenv("BOT_ALLOWED_CHANNEL_IDS", "[1, 2]")
        monkeypatch.setenv("TOOL_EVENT_REMINDER_CHANNEL_ID", "555")

        settings = Settings()

        assert settings.ai.provider == "claude"
        assert settings.ai.model == "claude-sonnet-4-5"
        assert settings.bot.allowed_channel_ids == [1, 2]
        assert settings.tools.event_reminder_channel_id == 555

    def test_env_file_nested_keys(self, tmp_path, monkeypatch):
        monkeypatch.delenv("AI_API_KEY", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        env_file = tmp_path / "test.env"
        env_file.write_text("LOG_LEVEL=DEBUG\nAI__API_KEY=from-file\n", encoding="utf-8")

        settings = load_settings(env_file=env_file)

        assert settings.log_level == "DEBUG"
        assert settings.ai.api_key == "from-file"


class TestGetLogger:
    def test_module_names_are_not_double_prefixed(self):
        assert get_logger("butler.llm.agent").name == "butler.llm.agent"

    def test_short_names_are_nested(self):
        assert get_logger("cli").name == "butler.cli"
