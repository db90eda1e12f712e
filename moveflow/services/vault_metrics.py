"""
Vault metrics shown by both the bot and the API.
One place computes them so the two surfaces always agree.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from moveflow.data_sources.movement import UserPosition, VaultSnapshot
from .allocation import allocation_coverage, risk_level_for_score, risk_score, weighted_apy, RISK_SCORE_UNDEFINED
from .protocol_registry import RiskLevel, Strategy
from .valuation import PnL, realized_apy, share_value, unrealized_pnl


@dataclass(frozen=True)
class VaultMetrics:
    blended_apy: float
    risk_score: float
    risk_level: Optional[RiskLevel]
    allocation_coverage_bps: int
    # None while the vault snapshot is unavailable
    tvl: Optional[Decimal] = None
    total_shares: Optional[int] = None
    realized_apy: Optional[float] = None
    share_price: Optional[Decimal] = None
    is_paused: Optional[bool] = None


@dataclass(frozen=True)
class PositionMetrics:
    shares: int
    current_value: Decimal
    total_deposited: Decimal
    total_withdrawn: Decimal
    pnl: PnL
    deposit_time: int


def summarize_vault(strategies: Iterable[Strategy], vault: Optional[VaultSnapshot]) -> VaultMetrics:
    strategies = tuple(strategies)
    score = risk_score(strategies)
    metrics = dict(
        blended_apy=weighted_apy(strategies),
        risk_score=score,
        risk_level=None if score == RISK_SCORE_UNDEFINED else risk_level_for_score(score),
        allocation_coverage_bps=allocation_coverage(strategies),
    )
    if vault is not None:
        metrics.update(
            tvl=vault.total_assets,
            total_shares=vault.total_shares,
            realized_apy=realized_apy(vault),
            share_price=share_value(vault, 1) if vault.total_shares else Decimal(1),
            is_paused=vault.is_paused,
        )
    return VaultMetrics(**metrics)


def summarize_position(vault: VaultSnapshot, position: UserPosition) -> PositionMetrics:
    current_value = share_value(vault, position.shares)
    return PositionMetrics(
        shares=position.shares,
        current_value=current_value,
        total_deposited=position.total_deposited,
        total_withdrawn=position.total_withdrawn,
        pnl=unrealized_pnl(position, current_value),
        deposit_time=position.deposit_time,
    )
