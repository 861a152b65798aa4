"""
SupportGuard
============

A Telegram moderation bot for a support group. It classifies each sender's
recent messages with a language model and deletes and bans senders whose
messages look like spam or scams.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Directory holding ``.env``, ``config/`` and ``logs/``.

    ``SUPPORTGUARD_HOME`` wins when set. A frozen build uses the directory of
    its executable, and a source checkout uses the repository root.
    """
    if env_home := os.getenv("SUPPORTGUARD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
from dataclasses import dataclass

from aiogram import Bot, Dispatcher
from openai import AsyncOpenAI

from supportguard.ai.classifier_gateway import ClassifierGateway
from supportguard.ai.prompts import build_system_prompt
from supportguard.configuration.app_configuration import AppConfig, app_config
from supportguard.configuration.env_settings import BotSettings, load_settings
from supportguard.datatypes.errors import ConfigError
from supportguard.history.history_store import HistoryStore
from supportguard.history.prune_scheduler import PruneScheduler
from supportguard.listener import message_listener
from supportguard.messaging.telegram_platform import TelegramPlatform
from supportguard.moderation.moderation_engine import EngineConfig, ModerationEngine
from supportguard.util.logger import get_logger, handle_async_exception, handle_exception


logger = get_logger("main")


@dataclass
class Runtime:
    """Everything created at startup that needs closing at shutdown."""
    bot: Bot
    dispatcher: Dispatcher
    gateway: ClassifierGateway
    history: HistoryStore
    engine: ModerationEngine
    pruner: PruneScheduler | None = None


def build_engine_config(settings: BotSettings, config: AppConfig) -> EngineConfig:
    """Combine environment identities with YAML tuning into an engine config."""
    return EngineConfig(
        owner_id=settings.owner_user_id,
        support_chat_id=settings.support_chat_id,
        audit_chat_id=settings.audit_chat_id,
        bypass_whitelist=settings.whitelist_user_ids,
        role_check_timing=config.role_check_timing,
        batch_size=config.batch_size,
        max_attempts=config.ai_settings.max_attempts,
    )


def build_gateway(settings: BotSettings, config: AppConfig) -> ClassifierGateway:
    """Create the classifier gateway and its AsyncOpenAI client."""
    ai_settings = config.ai_settings
    client = AsyncOpenAI(
        api_key=settings.classifier_api_key,
        base_url=settings.classifier_base_url or ai_settings.base_url,
    )
    system_prompt = build_system_prompt(
        config.community_name,
        config.community_topics,
        override=ai_settings.system_prompt,
    )
    return ClassifierGateway(
        client,
        model_name=ai_settings.model_name,
        system_prompt=system_prompt,
        timeout=ai_settings.request_timeout_seconds,
    )


def build_runtime(settings: BotSettings, config: AppConfig) -> Runtime:
    """Wire the bot, dispatcher, classifier, history and engine together."""
    bot = Bot(token=settings.bot_token)
    gateway = build_gateway(settings, config)
    history = HistoryStore(capacity=config.history_capacity)
    engine = ModerationEngine(
        build_engine_config(settings, config),
        history=history,
        classifier=gateway,
        platform=TelegramPlatform(bot),
    )

    dispatcher = Dispatcher()
    dispatcher.include_router(message_listener.setup(engine))

    pruner = None
    if config.history_idle_ttl_seconds > 0:
        pruner = PruneScheduler(
            history,
            idle_ttl=config.history_idle_ttl_seconds,
            interval=config.history_prune_interval_seconds,
        )

    return Runtime(bot=bot, dispatcher=dispatcher, gateway=gateway, history=history, engine=engine, pruner=pruner)


async def shutdown_runtime(runtime: Runtime) -> None:
    """Stop background work and close network clients."""
    if runtime.pruner is not None:
        await runtime.pruner.shutdown()

    try:
        await runtime.gateway.close()
    except Exception as exc:
        logger.exception("Error closing classifier client: %s", exc)

    try:
        await runtime.bot.session.close()
    except Exception as exc:
        logger.exception("Error closing Telegram session: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Validate configuration, start polling and return an exit code."""
    try:
        settings = load_settings(BASE_DIR / ".env")
    except ConfigError as exc:
        logger.critical("Configuration error: %s", exc)
        return 1

    asyncio.get_running_loop().set_exception_handler(handle_async_exception)

    try:
        runtime = build_runtime(settings, app_config)
    except Exception as exc:
        logger.critical("Failed to initialize bot: %s", exc)
        return 1

    if runtime.pruner is not None:
        runtime.pruner.start()

    exit_code = 0
    logger.info("Telegram bot is running…")
    try:
        await runtime.dispatcher.start_polling(runtime.bot)
    except asyncio.CancelledError:
        logger.info("Polling cancelled; shutting down")
    except Exception as exc:
        logger.critical("Telegram bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(runtime)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting SupportGuard…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
