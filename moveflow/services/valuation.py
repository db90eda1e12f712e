"""
Vault valuation helpers.
Share pricing, realized APY, P&L and deposit/withdraw previews.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import Union

from moveflow.data_sources.movement import UserPosition, VaultSnapshot
from moveflow.infrastructure.rpc import to_octas

DAYS_PER_YEAR = 365
MONTHS_PER_YEAR = 12
BPS = Decimal(10_000)

Amount = Union[int, Decimal]


@dataclass(frozen=True)
class PnL:
    pnl: Decimal
    pnl_percent: float


@dataclass(frozen=True)
class WithdrawalPreview:
    shares: int
    gross: Decimal
    fee: Decimal
    net: Decimal


@dataclass(frozen=True)
class ProjectedReturns:
    daily: Decimal
    monthly: Decimal
    yearly: Decimal


def share_value(vault: VaultSnapshot, shares: int) -> Decimal:
    """Asset value of `shares` at the vault's current exchange rate."""
    if vault.total_shares == 0:
        return Decimal(0)
    return Decimal(shares) * vault.total_assets / Decimal(vault.total_shares)


def realized_apy(vault: VaultSnapshot) -> float:
    """
    Cumulative yield over current assets, annualized as a daily rate.

    Not corrected for the vault's age, so only meaningful once the vault
    has been running for a representative period.
    """
    if vault.total_assets <= 0:
        return 0.0
    return float(vault.total_yield_earned / vault.total_assets * DAYS_PER_YEAR * 100)


def unrealized_pnl(position: UserPosition, current_value: Decimal) -> PnL:
    pnl = current_value - position.total_deposited + position.total_withdrawn
    if position.total_deposited == 0:
        return PnL(pnl=pnl, pnl_percent=0.0)
    return PnL(pnl=pnl, pnl_percent=float(pnl / position.total_deposited * 100))


def estimate_shares(vault: VaultSnapshot, amount: Decimal) -> int:
    """
    Whole shares a deposit of `amount` would mint, floored.
    An empty vault mints one share per octa.
    """
    if vault.total_shares == 0 or vault.total_assets == 0:
        return to_octas(amount)
    shares = amount * Decimal(vault.total_shares) / vault.total_assets
    return int(shares.to_integral_value(rounding=ROUND_FLOOR))


def withdrawal_preview(vault: VaultSnapshot, shares: int, withdrawal_fee_bps: int) -> WithdrawalPreview:
    gross = share_value(vault, shares)
    fee = gross * Decimal(withdrawal_fee_bps) / BPS
    return WithdrawalPreview(shares=shares, gross=gross, fee=fee, net=gross - fee)


def projected_returns(amount: Decimal, apy: float) -> ProjectedReturns:
    """Simple (non-compounding) projection of `amount` at `apy` percent."""
    yearly = amount * Decimal(str(apy)) / 100
    return ProjectedReturns(
        daily=yearly / DAYS_PER_YEAR,
        monthly=yearly / MONTHS_PER_YEAR,
        yearly=yearly,
    )
