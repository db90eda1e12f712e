"""
MoveFlow Telegram Bot - Main Bot Module
Initializes and runs the bot with all handlers
"""

import asyncio
import logging
from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import ErrorEvent

from moveflow.agents.vault_refresh_job import VaultRefreshJob
from moveflow.data_sources.movement import MovementChainReader
from moveflow.infrastructure.config import MoveFlowConfig, get_config, get_secrets
from moveflow.infrastructure.errors import error_tracker
from .handlers import commands, transactions
from .models.wallet_store import WalletStore

logger = logging.getLogger(__name__)


class MoveFlowBot:
    """
    Main MoveFlow Telegram Bot class
    """

    def __init__(
        self,
        token: Optional[str] = None,
        settings: Optional[MoveFlowConfig] = None,
        refresh_job: Optional[VaultRefreshJob] = None,
        wallet_store: Optional[WalletStore] = None,
    ):
        self.token = token or get_secrets().get("TELEGRAM_BOT_TOKEN")
        if not self.token:
            raise ValueError(
                "TELEGRAM_BOT_TOKEN not set. "
                "Create a bot via @BotFather and set the token."
            )

        self.settings = settings or get_config()
        self.refresh_job = refresh_job or VaultRefreshJob(MovementChainReader())
        self.wallet_store = wallet_store or WalletStore(self.settings.bot.wallet_db_path)

        self.bot = Bot(
            token=self.token,
            default=DefaultBotProperties(parse_mode=ParseMode.MARKDOWN)
        )

        # FSM storage keys prompt state by bot/chat/user
        self.dp = Dispatcher(
            storage=MemoryStorage(),
            refresh_job=self.refresh_job,
            wallet_store=self.wallet_store,
            settings=self.settings,
        )
        self._setup_handlers()

        logger.info("🤖 MoveFlow Bot initialized")

    def _setup_handlers(self):
        # Commands first so /help etc. still work while a prompt is open
        self.dp.include_router(commands.router)
        self.dp.include_router(transactions.router)
        self.dp.errors.register(self._on_error)
        logger.info("📋 Handlers registered")

    async def _on_error(self, event: ErrorEvent):
        error_tracker.track(event.exception)
        logger.error(f"Error for update {event.update.update_id}: {event.exception}")

        message = event.update.message or (
            event.update.callback_query.message if event.update.callback_query else None
        )
        if message is not None:
            await message.answer("Sorry, something went wrong. Please try again later.")

    async def start(self):
        """
        Start the bot (polling mode) with background refresh
        """
        await self.wallet_store.init_db()
        logger.info("🗄️ Wallet store initialized")

        if self.settings.features.enable_auto_refresh:
            self.refresh_job.start()

        logger.info("🚀 Starting MoveFlow Bot...")
        await self.bot.delete_webhook(drop_pending_updates=True)
        await self.dp.start_polling(self.bot)

    async def stop(self):
        """
        Stop the bot gracefully
        """
        logger.info("🛑 Stopping MoveFlow Bot...")
        self.refresh_job.stop()
        await self.refresh_job.reader.rpc.close()
        await self.bot.session.close()


async def run_bot():
    """
    Run the bot (entry point)
    """
    bot = MoveFlowBot()
    try:
        await bot.start()
    finally:
        await bot.stop()


if __name__ == "__main__":
    asyncio.run(run_bot())
