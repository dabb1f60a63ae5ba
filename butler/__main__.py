"""
Butler CLI entry point.

Provides command-line interface for running the bot and utility commands.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from butler import __version__
from butler.config.logging import get_logger, setup_logging
from butler.config.settings import Settings, load_settings


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="butler",
        description="Discord helper bot with a tool-calling AI layer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"butler {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Run the Discord bot")
    subparsers.add_parser("config", help="Show current configuration (secrets masked)")
    subparsers.add_parser("tools", help="List the tools exposed to the AI and /butler")

    ask_parser = subparsers.add_parser(
        "ask",
        help="Send one prompt through the AI orchestrator, without Discord",
    )
    ask_parser.add_argument("prompt", help='Prompt text, e.g. "What is Mount Fuji on Wikipedia?"')
    ask_parser.add_argument(
        "--no-tools",
        action="store_true",
        help="Do not advertise any tools to the model",
    )

    return parser


def _mask(value: str | None) -> str:
    return "Set" if value else "Not set"


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    logger = get_logger(__name__)

    logger.info("\n=== Butler Configuration ===\n")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log Level: {settings.log_level}")
    logger.info(f"Log File: {settings.log_file or 'None (console only)'}")
    logger.info(f"\nBot Name: {settings.bot.name}")
    logger.info(f"Bot Token: {_mask(settings.bot.token)}")
    logger.info(f"Dev Guild: {settings.bot.dev_guild_id or 'None (global sync)'}")
    logger.info(f"Allowed Channels: {settings.bot.allowed_channel_ids or 'all'}")
    logger.info(f"\nAI Provider: {settings.ai.provider}")
    logger.info(f"AI Model: {settings.ai.model or '(provider default)'}")
    logger.info(f"AI API Key: {_mask(settings.ai.api_key)}")
    logger.info(f"Cloudflare Account: {_mask(settings.ai.cloudflare_account_id)}")
    logger.info(f"Prompt Append: {'Set' if settings.ai.prompt_append.strip() else 'None'}")
    logger.info(f"Max Iterations: {settings.ai.max_iterations}")
    logger.info(f"Tool Timeout: {settings.ai.tool_timeout or 'disabled'}")
    logger.info(f"\nSessions: {settings.conversation.max_sessions} "
                f"x {settings.conversation.max_messages} messages")
    logger.info(f"\nWikipedia Tool: {settings.tools.wikipedia_enabled} ({settings.tools.wikipedia_host})")
    logger.info(f"Memo Tool: {settings.tools.memo_enabled}")
    logger.info(f"Event Reminders: {settings.tools.event_reminder_enabled} "
                f"(channel: {settings.tools.event_reminder_channel_id or 'not set'}, "
                f"every {settings.tools.event_reminder_interval:g}s)")

    return 0


def cmd_tools(settings: Settings) -> int:
    """List registered tools."""
    from butler.tools import ToolRegistry, load_plugins

    registry = ToolRegistry()
    load_plugins(settings.tools, registry)

    if not len(registry):
        print("No tools registered.")
        return 0

    for spec in registry.specs():
        print(f"{spec.name} - {spec.description}")
        for arg in spec.arguments:
            flag = "required" if arg.required else "optional"
            print(f"    {arg.name} ({flag}): {arg.description}")
        if spec.ai_hint:
            print(f"    AI policy: {spec.ai_hint}")
    return 0


def cmd_run(settings: Settings) -> int:
    """Start the Discord bot."""
    logger = get_logger(__name__)

    if not settings.bot.token:
        logger.error("Discord bot token not set. Add BOT_TOKEN=<your-token> to your environment.")
        return 1

    from butler.bot import ButlerBot
    from butler.llm import ProviderConfigError

    try:
        bot = ButlerBot(settings)
    except ProviderConfigError as e:
        logger.error(f"AI configuration error: {e}")
        return 1

    logger.info(f"Starting {settings.bot.name} (AI provider: {settings.ai.provider})...")
    # log_handler=None: disable discord.py's default logging setup and use ours
    bot.run(settings.bot.token, log_handler=None)
    return 0


async def cmd_ask(args, settings: Settings) -> int:
    """
    Run one prompt through the orchestrator and print the reply.

    Useful for checking vendor credentials and tool wiring before starting
    the bot.
    """
    logger = get_logger(__name__)

    from butler.llm import AgentOrchestrator, ProviderConfigError, TextMessage
    from butler.llm.providers import create_provider
    from butler.tools import ToolRegistry, load_plugins

    try:
        provider = create_provider(settings.ai)
    except ProviderConfigError as e:
        logger.error(f"AI configuration error: {e}")
        return 1

    registry = ToolRegistry()
    plugins = [] if args.no_tools else load_plugins(settings.tools, registry)

    async with provider:
        for plugin in plugins:
            await plugin.start()
        try:
            orchestrator = AgentOrchestrator(
                provider=provider,
                tools=registry.definitions(),
                tool_executor=registry.execute,
                prompt_append=settings.ai.prompt_append,
                max_iterations=settings.ai.max_iterations,
                tool_timeout=settings.ai.tool_timeout,
                timezone=settings.ai.timezone,
                debug=settings.ai.debug,
            )
            logger.info(f"Sending to {settings.ai.provider}...")
            text = await orchestrator.reply([TextMessage(role="user", content=args.prompt)])
        finally:
            for plugin in plugins:
                await plugin.shutdown()

    print(text)
    return 0


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    if args.log_level:
        settings.log_level = args.log_level

    setup_logging(settings)

    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "tools":
        return cmd_tools(settings)
    elif args.command == "run":
        return cmd_run(settings)
    elif args.command == "ask":
        return asyncio.run(cmd_ask(args, settings))
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
