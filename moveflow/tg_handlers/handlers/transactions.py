"""
MoveFlow Telegram Bot - Deposit/Withdraw Prompt
Deposit/Withdraw buttons open an amount prompt; the next text message in
that conversation is parsed as the amount and answered with a preview plus
the unsigned payload.
"""

import logging

from aiogram import Router, F
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, ForceReply, Message

from moveflow.agents.vault_refresh_job import VaultRefreshJob
from moveflow.infrastructure.config import MoveFlowConfig
from moveflow.infrastructure.errors import ValidationError
from moveflow.security.validation import parse_amount, parse_shares
from moveflow.services.allocation import weighted_apy
from moveflow.services.payloads import build_deposit_payload, build_withdraw_payload
from moveflow.services.protocol_registry import get_strategy
from moveflow.services.valuation import estimate_shares, projected_returns, withdrawal_preview
from ..models.wallet_store import WalletStore
from ..services.formatting import format_deposit_preview, format_withdraw_preview
from ..states import DEPOSIT, WITHDRAW, AmountPrompt

logger = logging.getLogger(__name__)

router = Router()


@router.callback_query(F.data.startswith(f"{DEPOSIT}:") | F.data.startswith(f"{WITHDRAW}:"))
async def cb_start_prompt(callback: CallbackQuery, state: FSMContext, refresh_job: VaultRefreshJob):
    """Idle -> AwaitingAmount"""
    action, strategy_id = callback.data.split(":", 1)
    strategy = get_strategy(strategy_id, refresh_job.state.strategies)
    if strategy is None:
        await callback.answer("Strategy not found", show_alert=True)
        return

    await state.set_state(AmountPrompt.awaiting_amount)
    await state.update_data(action=action, strategy_id=strategy_id)

    if action == DEPOSIT:
        prompt = f"Enter the amount of MOVE to deposit via *{strategy.name}*:"
    else:
        prompt = f"Enter the number of shares to withdraw from *{strategy.name}*:"

    await callback.message.answer(prompt, reply_markup=ForceReply())
    await callback.answer()


@router.message(StateFilter(AmountPrompt.awaiting_amount), F.text)
async def on_amount(
    message: Message,
    state: FSMContext,
    wallet_store: WalletStore,
    refresh_job: VaultRefreshJob,
    settings: MoveFlowConfig,
):
    """AwaitingAmount -> Idle (or stay, on an invalid amount)"""
    data = await state.get_data()
    action = data.get("action")
    strategy = get_strategy(data.get("strategy_id", ""), refresh_job.state.strategies)
    if strategy is None or action not in (DEPOSIT, WITHDRAW):
        await state.clear()
        await message.answer("That request expired. Pick a strategy again with /strategies.")
        return

    try:
        value = parse_amount(message.text) if action == DEPOSIT else parse_shares(message.text)
    except ValidationError as e:
        await message.answer(f"{e.message}.", reply_markup=ForceReply())
        return

    wallet = await wallet_store.get_wallet(message.from_user.id)
    if wallet is None:
        await state.clear()
        await message.answer("Please connect your wallet first: /connect <address>")
        return

    chain = settings.chain
    vault = refresh_job.state.vault

    if action == DEPOSIT:
        balance = await refresh_job.reader.get_balance(wallet)
        if balance is not None and value > balance:
            await message.answer(
                f"Your wallet holds {balance:,.4f} MOVE. Enter a smaller amount.",
                reply_markup=ForceReply(),
            )
            return
        payload = build_deposit_payload(chain.contract_address, chain.vault_address, value, chain.coin_type)
        text = format_deposit_preview(
            strategy,
            value,
            estimate_shares(vault, value) if vault is not None else None,
            projected_returns(value, weighted_apy(refresh_job.state.strategies)),
            payload,
            settings.bot.app_url,
            wallet_balance=balance,
        )
    else:
        position = refresh_job.state.position(wallet)
        if position is not None and value > position.shares:
            await message.answer(
                f"You only hold {position.shares:,} shares. Enter a smaller amount.",
                reply_markup=ForceReply(),
            )
            return
        payload = build_withdraw_payload(chain.contract_address, chain.vault_address, value, chain.coin_type)
        fee_bps = settings.fees.withdrawal_fee_bps
        text = format_withdraw_preview(
            strategy,
            withdrawal_preview(vault, value, fee_bps) if vault is not None else None,
            value,
            fee_bps,
            payload,
            settings.bot.app_url,
        )

    await state.clear()
    logger.info(f"{action} preview built for {wallet[:10]}... ({strategy.id})")
    await message.answer(text, disable_web_page_preview=True)


@router.message(StateFilter(None), F.text)
async def on_free_text(message: Message):
    """Anything else while Idle"""
    await message.answer("I didn't catch that. Use /help to see what I can do.")
