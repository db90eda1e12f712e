"""
MoveFlow Telegram Bot - Message Formatting
Turns vault metrics and previews into Telegram Markdown
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from moveflow.services.allocation import RISK_SCORE_UNDEFINED
from moveflow.services.payloads import EntryFunctionPayload
from moveflow.services.protocol_registry import (
    PROTOCOLS,
    RiskLevel,
    Strategy,
    format_allocation,
)
from moveflow.services.valuation import ProjectedReturns, WithdrawalPreview
from moveflow.services.vault_metrics import PositionMetrics, VaultMetrics

TOKEN = "MOVE"
DIVIDER = "━━━━━━━━━━━━━━━"

RISK_EMOJI = {
    RiskLevel.LOW: "🟢",
    RiskLevel.MEDIUM: "🟡",
    RiskLevel.HIGH: "🔴",
}


def risk_badge(level: Optional[RiskLevel]) -> str:
    if level is None:
        return "⚪ n/a"
    return f"{RISK_EMOJI.get(level, '⚪')} {level.value.capitalize()}"


def format_tvl(value: Decimal) -> str:
    if value >= 1_000_000:
        return f"{value / 1_000_000:.2f}M {TOKEN}"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K {TOKEN}"
    return f"{value:,.2f} {TOKEN}"


def short_address(address: str) -> str:
    return f"{address[:8]}...{address[-6:]}"


def format_vault_overview(metrics: VaultMetrics, stale: bool = False) -> str:
    lines = [
        "🏦 *MOVE Maximizer Vault*\n",
        f"├ Target APY: *{metrics.blended_apy:.2f}%*",
        f"├ Risk: {risk_badge(metrics.risk_level)} ({metrics.risk_score:.1f}/10)",
        f"├ Deployed: {format_allocation(metrics.allocation_coverage_bps)}",
    ]

    if metrics.tvl is None:
        lines.append("└ On-chain data: ⏳ _unavailable, showing targets only_")
    else:
        lines.extend([
            f"├ TVL: {format_tvl(metrics.tvl)}",
            f"├ Realized APY: {metrics.realized_apy:.2f}%",
            f"├ Share price: {metrics.share_price:.6f} {TOKEN}",
            f"└ Status: {'⏸️ Paused' if metrics.is_paused else '✅ Active'}",
        ])

    if stale:
        lines.append("\n_⚠️ Last refresh failed, numbers may be out of date_")

    return "\n".join(lines)


def format_strategy_list(strategies: Iterable[Strategy]) -> str:
    strategies = list(strategies)
    if not strategies:
        return "❌ No strategies configured."

    lines = ["📊 *Vault Strategies*\n"]
    for strategy in strategies:
        status = "" if strategy.active else " _(inactive)_"
        lines.append(
            f"*{strategy.name}*{status}\n"
            f"├ Allocation: {format_allocation(strategy.allocation_bps)}\n"
            f"├ APY: *{strategy.target_apy:.2f}%*\n"
            f"└ Risk: {risk_badge(strategy.risk_level)}\n"
        )
    lines.append("_Tap a strategy for details_")
    return "\n".join(lines)


def format_strategy_detail(strategy: Strategy) -> str:
    protocol = PROTOCOLS.get(strategy.protocol_id)
    protocol_line = f"[{protocol.name}]({protocol.url})" if protocol else strategy.protocol_id

    text = (
        f"*{strategy.name}*\n\n"
        f"*Protocol:* {protocol_line}\n"
        f"*Allocation:* {format_allocation(strategy.allocation_bps)}\n"
        f"*APY:* {strategy.target_apy:.2f}%\n"
        f"*Risk Level:* {risk_badge(strategy.risk_level)}\n"
        f"*Status:* {'✅ Active' if strategy.active else '⏸️ Inactive'}\n"
    )
    if protocol:
        text += f"*Protocol risk score:* {protocol.risk_score}/10\n"
    if strategy.description:
        text += f"\n{strategy.description}\n"
    return text


def format_best_apy(strategies: Iterable[Strategy]) -> str:
    ranked = sorted(strategies, key=lambda s: s.target_apy, reverse=True)
    medals = ["🥇", "🥈", "🥉"]

    lines = ["🏆 *Best APY Strategies*\n"]
    for i, strategy in enumerate(ranked):
        medal = medals[i] if i < len(medals) else "  "
        lines.append(f"{medal} *{strategy.name}*")
        lines.append(f"   {strategy.target_apy:.2f}% APY | {risk_badge(strategy.risk_level)}\n")
    lines.append("_Higher APY often comes with higher risk_")
    return "\n".join(lines)


def format_risk_analysis(strategies: Iterable[Strategy], metrics: VaultMetrics) -> str:
    lines = ["🛡️ *Risk Analysis*\n"]
    for strategy in strategies:
        protocol = PROTOCOLS.get(strategy.protocol_id)
        score = protocol.risk_score if protocol else "?"
        lines.append(f"• {strategy.name}: {score}/10 × {format_allocation(strategy.allocation_bps)}")

    lines.append(f"\n{DIVIDER}")
    if metrics.risk_score == RISK_SCORE_UNDEFINED:
        lines.append("*Blended risk:* n/a (no allocation)")
    else:
        lines.append(f"*Blended risk:* {metrics.risk_score:.2f}/10 {risk_badge(metrics.risk_level)}")
    lines.append("_Scores run from 1 (safest) to 10 (riskiest)_")
    return "\n".join(lines)


def format_portfolio(address: str, position: PositionMetrics, stale: bool = False) -> str:
    if position.shares == 0:
        return (
            "💼 *Your Portfolio*\n\n"
            "You don't have any active positions yet.\n\n"
            "Use /strategies to start earning yield!"
        )

    pnl = position.pnl
    sign = "+" if pnl.pnl >= 0 else ""
    since = datetime.fromtimestamp(position.deposit_time, tz=timezone.utc).strftime("%Y-%m-%d")

    text = (
        f"💼 *Your Portfolio* (`{short_address(address)}`)\n\n"
        f"├ Shares: {position.shares:,}\n"
        f"├ Value: {position.current_value:,.4f} {TOKEN}\n"
        f"├ Deposited: {position.total_deposited:,.4f} {TOKEN}\n"
        f"├ Withdrawn: {position.total_withdrawn:,.4f} {TOKEN}\n"
        f"├ P&L: {sign}{pnl.pnl:,.4f} {TOKEN} ({sign}{pnl.pnl_percent:.2f}%)\n"
        f"└ Since: {since}"
    )
    if stale:
        text += "\n\n_⚠️ Position could not be refreshed, showing last known values_"
    return text


def format_payload(payload: EntryFunctionPayload) -> str:
    return f"```\n{json.dumps(payload.to_dict(), indent=2)}\n```"


def _signing_steps(app_url: str) -> List[str]:
    return [
        "To complete this transaction:",
        f"1. Open [MoveFlow]({app_url})",
        "2. Connect your wallet",
        "3. Review and sign the payload below",
    ]


def format_deposit_preview(
    strategy: Strategy,
    amount: Decimal,
    estimated_shares: Optional[int],
    returns: ProjectedReturns,
    payload: EntryFunctionPayload,
    app_url: str,
    wallet_balance: Optional[Decimal] = None,
) -> str:
    shares_line = f"{estimated_shares:,}" if estimated_shares is not None else "n/a (vault data unavailable)"
    lines = [
        "📥 *Deposit Preview*\n",
        f"*Strategy:* {strategy.name}",
        f"*Amount:* {amount} {TOKEN}",
        f"*Estimated Shares:* {shares_line}\n",
        "*Projected Returns:*",
        f"• Daily: ~{returns.daily:,.4f} {TOKEN}",
        f"• Monthly: ~{returns.monthly:,.2f} {TOKEN}",
        f"• Yearly: ~{returns.yearly:,.2f} {TOKEN}\n",
        *_signing_steps(app_url),
        format_payload(payload),
        "_Transaction signing required in wallet_",
    ]
    if wallet_balance is not None:
        lines.insert(3, f"*Wallet Balance:* {wallet_balance:,.4f} {TOKEN}")
    return "\n".join(lines)


def format_withdraw_preview(
    strategy: Strategy,
    preview: Optional[WithdrawalPreview],
    shares: int,
    withdrawal_fee_bps: int,
    payload: EntryFunctionPayload,
    app_url: str,
) -> str:
    lines = [
        "📤 *Withdrawal Preview*\n",
        f"*Strategy:* {strategy.name}",
        f"*Shares to Withdraw:* {shares:,}\n",
    ]
    if preview is None:
        lines.append("_Estimated output unavailable until vault data refreshes_\n")
    else:
        lines.extend([
            "*Estimated Output:*",
            f"• Gross: {preview.gross:,.4f} {TOKEN}",
            f"• Fee ({withdrawal_fee_bps / 100:.1f}%): {preview.fee:,.4f} {TOKEN}",
            f"• Net: {preview.net:,.4f} {TOKEN}\n",
        ])
    lines.extend([
        *_signing_steps(app_url),
        format_payload(payload),
        "_Transaction signing required in wallet_",
    ])
    return "\n".join(lines)


def format_harvest(payload: EntryFunctionPayload, app_url: str) -> str:
    return "\n".join([
        "🌾 *Harvest Rewards*\n",
        "Compounds accrued strategy yield back into the vault.\n",
        *_signing_steps(app_url),
        format_payload(payload),
    ])
