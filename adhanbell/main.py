"""Main entry point for the AdhanBell bot."""

import logging
import sys

from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes

from adhanbell.bot.callbacks import callback_router
from adhanbell.bot.handlers import (
    adhan_command,
    help_command,
    mute_command,
    now_command,
    refresh_command,
    reminder_command,
    settings_command,
    start_command,
    stop_command,
    today_command,
    unmute_command,
    upcoming_command,
)
from adhanbell.config import Config
from adhanbell.db.migrations import run_migrations
from adhanbell.db.repository import Repository
from adhanbell.engine.heartbeat import heartbeat, startup_recovery
from adhanbell.engine.time_source import AladhanClient, MonthlyTimeSource
from adhanbell.utils.error_handler import error_handler

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, Config.LOG_LEVEL),
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)


async def heartbeat_job(context: "ContextTypes.DEFAULT_TYPE") -> None:
    """Job callback for the heartbeat."""
    repo: Repository = context.bot_data["repo"]
    await heartbeat(context.bot_data, context.job_queue, repo)  # type: ignore


async def startup_job(context: "ContextTypes.DEFAULT_TYPE") -> None:
    """One-off job callback for startup recovery."""
    repo: Repository = context.bot_data["repo"]
    await startup_recovery(context.bot_data, context.job_queue, repo)  # type: ignore


async def post_init(application: Application) -> None:
    """Initialize bot resources after application is created."""
    # Initialize database
    await run_migrations(Config.DATABASE_PATH)

    repo = Repository(Config.DATABASE_PATH)
    await repo.connect()
    application.bot_data["repo"] = repo

    fetcher = AladhanClient(
        base_url=Config.ALADHAN_BASE_URL,
        latitude=Config.LATITUDE,
        longitude=Config.LONGITUDE,
        method=Config.CALCULATION_METHOD,
        school=Config.ASR_SCHOOL,
        timeout=Config.FETCH_TIMEOUT,
    )
    application.bot_data["time_source"] = MonthlyTimeSource(
        repo,
        fetcher,
        retries=Config.FETCH_RETRIES,
        failure_ttl=Config.FETCH_FAILURE_TTL,
    )
    application.bot_data["coordinators"] = {}

    job_queue = application.job_queue
    if job_queue is None:
        raise RuntimeError("JobQueue unavailable; install python-telegram-bot[job-queue]")

    # Jobs are in memory only, so every chat is rescheduled on start.
    # Polling must not wait for it.
    job_queue.run_once(startup_job, when=0, name="startup_recovery")

    job_queue.run_repeating(
        heartbeat_job,
        interval=Config.TICK_INTERVAL,
        first=10,  # Start after 10 seconds
        name="heartbeat",
    )
    logger.info(f"Heartbeat job scheduled (interval: {Config.TICK_INTERVAL}s)")

    logger.info("AdhanBell initialized successfully")


async def post_shutdown(application: Application) -> None:
    """Cleanup resources on shutdown."""
    repo: Repository = application.bot_data.get("repo")
    if repo:
        await repo.close()

    logger.info("AdhanBell shut down")


def main() -> None:
    """Start the bot."""
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    application = (
        Application.builder()
        .token(Config.TELEGRAM_BOT_TOKEN)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    # Prayer times
    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("now", now_command))
    application.add_handler(CommandHandler("today", today_command))
    application.add_handler(CommandHandler("upcoming", upcoming_command))

    # Notification settings
    application.add_handler(CommandHandler("settings", settings_command))
    application.add_handler(CommandHandler("mute", mute_command))
    application.add_handler(CommandHandler("unmute", unmute_command))
    application.add_handler(CommandHandler("adhan", adhan_command))
    application.add_handler(CommandHandler("reminder", reminder_command))
    application.add_handler(CommandHandler("refresh", refresh_command))
    application.add_handler(CommandHandler("stop", stop_command))

    # Callback queries (buttons)
    application.add_handler(CallbackQueryHandler(callback_router))

    # Error handler
    application.add_error_handler(error_handler)

    logger.info("Starting AdhanBell bot...")
    application.run_polling(allowed_updates=["message", "callback_query"])


if __name__ == "__main__":
    main()
