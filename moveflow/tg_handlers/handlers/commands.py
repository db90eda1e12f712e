"""
MoveFlow Telegram Bot - Command Handlers
Handles /start, /help, /vault, /strategies, /portfolio, /connect, etc.

Dependencies (refresh_job, wallet_store, settings) are injected by the
Dispatcher workflow data, see tg_handlers/bot.py.
"""

import logging

from aiogram import Router, F
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import (
    CallbackQuery,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    Message,
    ReplyKeyboardMarkup,
)

from moveflow.agents.vault_refresh_job import VAULT, VaultRefreshJob, position_key
from moveflow.infrastructure.config import MoveFlowConfig
from moveflow.infrastructure.errors import ValidationError
from moveflow.security.validation import validate_movement_address
from moveflow.services.payloads import build_harvest_payload
from moveflow.services.protocol_registry import get_strategy
from moveflow.services.vault_metrics import summarize_position, summarize_vault
from ..models.wallet_store import WalletStore
from ..services.formatting import (
    format_best_apy,
    format_harvest,
    format_portfolio,
    format_risk_analysis,
    format_strategy_detail,
    format_strategy_list,
    format_vault_overview,
    short_address,
)

logger = logging.getLogger(__name__)

router = Router()

MAIN_KEYBOARD = ReplyKeyboardMarkup(
    keyboard=[
        [KeyboardButton(text="Vault"), KeyboardButton(text="My Portfolio")],
        [KeyboardButton(text="Best APY"), KeyboardButton(text="Risk Analysis")],
        [KeyboardButton(text="Help")],
    ],
    resize_keyboard=True,
)

HELP_TEXT = """
📚 *MoveFlow Bot Commands*

━━━━ *Wallet* ━━━━
/connect [address] - Link your wallet
/disconnect - Unlink wallet

━━━━ *Vault* ━━━━
/vault - Vault overview
/strategies - Strategy allocations
/best - Strategies ranked by APY
/risk - Risk breakdown
/refresh - Re-read on-chain data

━━━━ *Transactions* ━━━━
Tap a strategy, then Deposit or Withdraw
/harvest - Compound accrued yield

━━━━ *Portfolio* ━━━━
/portfolio - Your position and P&L
"""


def strategy_keyboard(refresh_job: VaultRefreshJob) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=s.name, callback_data=f"strategy:{s.id}")]
        for s in refresh_job.state.strategies
    ])


def strategy_actions_keyboard(strategy_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="📥 Deposit", callback_data=f"deposit:{strategy_id}"),
            InlineKeyboardButton(text="📤 Withdraw", callback_data=f"withdraw:{strategy_id}"),
        ],
        [InlineKeyboardButton(text="⬅️ Back to Strategies", callback_data="back_strategies")],
    ])


# ===========================================
# /start, /help
# ===========================================

@router.message(CommandStart())
async def cmd_start(message: Message):
    """Welcome message"""
    welcome_text = """
🌊 *Welcome to MoveFlow!*
Your yield aggregator on Movement Network.

I can help you:
• View vault APY, TVL and risk
• Preview deposits and withdrawals
• Track your position and P&L

Use the buttons below or /help for all commands.
"""
    await message.answer(welcome_text, reply_markup=MAIN_KEYBOARD)


@router.message(Command("help"))
@router.message(F.text == "Help")
async def cmd_help(message: Message):
    await message.answer(HELP_TEXT)


# ===========================================
# Vault + strategies
# ===========================================

@router.message(Command("vault"))
@router.message(F.text == "Vault")
async def cmd_vault(message: Message, refresh_job: VaultRefreshJob):
    state = refresh_job.state
    metrics = summarize_vault(state.strategies, state.vault)
    await message.answer(
        format_vault_overview(metrics, stale=state.is_stale(VAULT)),
        reply_markup=strategy_keyboard(refresh_job),
    )


@router.message(Command("strategies"))
async def cmd_strategies(message: Message, refresh_job: VaultRefreshJob):
    await message.answer(
        format_strategy_list(refresh_job.state.strategies),
        reply_markup=strategy_keyboard(refresh_job),
    )


@router.callback_query(F.data.startswith("strategy:"))
async def cb_strategy_detail(callback: CallbackQuery, refresh_job: VaultRefreshJob):
    strategy_id = callback.data.split(":", 1)[1]
    strategy = get_strategy(strategy_id, refresh_job.state.strategies)
    if strategy is None:
        await callback.answer("Strategy not found", show_alert=True)
        return

    await callback.message.edit_text(
        format_strategy_detail(strategy),
        reply_markup=strategy_actions_keyboard(strategy.id),
        disable_web_page_preview=True,
    )
    await callback.answer()


@router.callback_query(F.data == "back_strategies")
async def cb_back_strategies(callback: CallbackQuery, refresh_job: VaultRefreshJob):
    await callback.message.edit_text(
        format_strategy_list(refresh_job.state.strategies),
        reply_markup=strategy_keyboard(refresh_job),
    )
    await callback.answer()


@router.message(Command("best"))
@router.message(F.text == "Best APY")
async def cmd_best(message: Message, refresh_job: VaultRefreshJob):
    await message.answer(format_best_apy(refresh_job.state.strategies))


@router.message(Command("risk"))
@router.message(F.text == "Risk Analysis")
async def cmd_risk(message: Message, refresh_job: VaultRefreshJob):
    state = refresh_job.state
    metrics = summarize_vault(state.strategies, state.vault)
    await message.answer(format_risk_analysis(state.strategies, metrics))


@router.message(Command("refresh"))
async def cmd_refresh(message: Message, refresh_job: VaultRefreshJob):
    state = await refresh_job.refresh_now()
    metrics = summarize_vault(state.strategies, state.vault)
    await message.answer(format_vault_overview(metrics, stale=state.is_stale(VAULT)))


# ===========================================
# Wallet
# ===========================================

@router.message(Command("connect"))
async def cmd_connect(
    message: Message,
    command: CommandObject,
    wallet_store: WalletStore,
    refresh_job: VaultRefreshJob,
):
    try:
        address = validate_movement_address(command.args or "")
    except ValidationError:
        await message.answer("Please provide a valid wallet address: /connect 0x...")
        return

    await wallet_store.set_wallet(message.from_user.id, address)
    refresh_job.watch(address)
    logger.info(f"Wallet linked for {message.from_user.id}: {address[:10]}...")
    await message.answer(
        f"✅ Wallet connected: `{short_address(address)}`\n\n"
        "You can now view your portfolio and preview vault transactions!"
    )


@router.message(Command("disconnect"))
async def cmd_disconnect(message: Message, wallet_store: WalletStore, refresh_job: VaultRefreshJob):
    wallet = await wallet_store.get_wallet(message.from_user.id)
    if wallet is None:
        await message.answer("No wallet is linked.")
        return

    await wallet_store.remove_wallet(message.from_user.id)
    refresh_job.unwatch(wallet)
    await message.answer("Wallet disconnected successfully.")


@router.message(Command("portfolio"))
@router.message(F.text == "My Portfolio")
async def cmd_portfolio(message: Message, wallet_store: WalletStore, refresh_job: VaultRefreshJob):
    wallet = await wallet_store.get_wallet(message.from_user.id)
    if wallet is None:
        await message.answer(
            "You haven't connected a wallet yet. Use /connect <wallet\\_address> to link your wallet."
        )
        return

    position = await refresh_job.refresh_position(wallet)
    if refresh_job.state.vault is None:
        await refresh_job.refresh_vault()

    state = refresh_job.state
    if position is None or state.vault is None:
        await message.answer("⏳ Vault data is temporarily unavailable. Please try again shortly.")
        return

    await message.answer(format_portfolio(
        wallet,
        summarize_position(state.vault, position),
        stale=state.is_stale(position_key(wallet)),
    ))


# ===========================================
# /harvest
# ===========================================

@router.message(Command("harvest"))
async def cmd_harvest(message: Message, settings: MoveFlowConfig):
    chain = settings.chain
    payload = build_harvest_payload(chain.contract_address, chain.vault_address, chain.coin_type)
    await message.answer(format_harvest(payload, settings.bot.app_url), disable_web_page_preview=True)
