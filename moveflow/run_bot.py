"""
MoveFlow Bot - Entry Point
Run this script to start the Telegram bot
"""

import asyncio
import logging

from dotenv import load_dotenv

load_dotenv()

from moveflow.infrastructure.config import get_config, get_secrets  # noqa: E402
from moveflow.sentry_config import init_sentry  # noqa: E402
from moveflow.tg_handlers.bot import run_bot  # noqa: E402

logging.basicConfig(
    level=get_config().monitoring.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    if not get_secrets().has("TELEGRAM_BOT_TOKEN"):
        logger.error(
            "\n" + "=" * 50 + "\n"
            "❌ TELEGRAM_BOT_TOKEN not set!\n\n"
            "1. Message @BotFather on Telegram and send /newbot\n"
            "2. Export the token: export TELEGRAM_BOT_TOKEN=your_token\n"
            "   or add it to .env\n"
            + "=" * 50
        )
        return

    init_sentry()
    logger.info("🌊 Starting MoveFlow Telegram Bot...")
    asyncio.run(run_bot())


if __name__ == "__main__":
    main()
