"""
Strategy Aggregation & Reconciliation
Pure functions over strategy tables. Safe to call on every render/tick.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, Mapping, Sequence

from moveflow.data_sources.movement import ProtocolSnapshot
from moveflow.infrastructure.errors import ValidationError
from .protocol_registry import (
    MAX_ALLOCATION_BPS,
    PROTOCOLS,
    Protocol,
    RiskLevel,
    Strategy,
    StrategyTable,
)

logger = logging.getLogger("Allocation")

# Returned by risk_score() when there is no allocation to weight by.
# Real scores are always >= 1, so 0.0 cannot be mistaken for one.
RISK_SCORE_UNDEFINED = 0.0


def weighted_apy(strategies: Iterable[Strategy]) -> float:
    """
    Blended APY of the active strategies, in percent.

    Normalized by the full 10000 bps rather than by the active allocation,
    so a vault that has deployed only part of its capital reports a
    proportionally lower APY.
    """
    total = 0.0
    for strategy in strategies:
        if strategy.active:
            total += strategy.target_apy * strategy.allocation_bps
    return total / MAX_ALLOCATION_BPS


def risk_score(
    strategies: Iterable[Strategy],
    catalog: Mapping[str, Protocol] = PROTOCOLS,
) -> float:
    """
    Allocation-weighted protocol risk (1 = safest, 10 = riskiest).

    Weights every entry, active or not, by its share of the total allocation.
    Returns RISK_SCORE_UNDEFINED for an empty table or zero total allocation.
    """
    weighted = 0
    total_bps = 0
    for strategy in strategies:
        protocol = catalog.get(strategy.protocol_id)
        if protocol is None:
            raise ValidationError(
                f"Strategy '{strategy.id}' references unknown protocol '{strategy.protocol_id}'",
                {"strategy_id": strategy.id, "protocol_id": strategy.protocol_id},
            )
        weighted += protocol.risk_score * strategy.allocation_bps
        total_bps += strategy.allocation_bps

    if total_bps == 0:
        return RISK_SCORE_UNDEFINED
    return weighted / total_bps


def allocation_coverage(strategies: Iterable[Strategy]) -> int:
    """Sum of active allocation in bps (10000 = fully deployed)."""
    return sum(s.allocation_bps for s in strategies if s.active)


def risk_level_for_score(score: float) -> RiskLevel:
    """Map a 1-10 risk score onto the product's low/medium/high bands."""
    if score < 4:
        return RiskLevel.LOW
    if score < 7:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def _validate_table(strategies: Sequence[Strategy]):
    seen_indices: Dict[int, str] = {}
    for strategy in strategies:
        if not 0 <= strategy.allocation_bps <= MAX_ALLOCATION_BPS:
            raise ValidationError(
                f"Strategy '{strategy.id}' allocation must be within 0-{MAX_ALLOCATION_BPS} bps",
                {"strategy_id": strategy.id, "allocation_bps": strategy.allocation_bps},
            )
        index = strategy.onchain_index
        if index is None:
            continue
        if index < 0:
            raise ValidationError(
                f"Strategy '{strategy.id}' has negative on-chain index",
                {"strategy_id": strategy.id, "onchain_index": index},
            )
        if index in seen_indices:
            raise ValidationError(
                f"Strategies '{seen_indices[index]}' and '{strategy.id}' share on-chain index {index}",
                {"onchain_index": index},
            )
        seen_indices[index] = strategy.id


def reconcile_strategies(
    strategies: Sequence[Strategy],
    snapshots: Iterable[ProtocolSnapshot],
) -> StrategyTable:
    """
    Merge on-chain router stats into a strategy table.

    Matching is by explicit mapping: a strategy's `onchain_index` names the
    router entry it tracks. Matched strategies take the router's current APY
    and active flag; everything else passes through unchanged. Returns a new
    table and leaves the input untouched.

    Raises:
        ValidationError: malformed table or duplicate router indices
    """
    _validate_table(strategies)

    by_index: Dict[int, ProtocolSnapshot] = {}
    for snapshot in snapshots:
        if snapshot.index in by_index:
            raise ValidationError(
                f"Duplicate router protocol index {snapshot.index}",
                {"index": snapshot.index},
            )
        by_index[snapshot.index] = snapshot

    reconciled = []
    for strategy in strategies:
        snapshot = by_index.get(strategy.onchain_index) if strategy.onchain_index is not None else None
        if snapshot is None:
            logger.debug(f"No router entry for strategy '{strategy.id}', keeping local values")
            reconciled.append(strategy)
            continue
        reconciled.append(replace(
            strategy,
            target_apy=snapshot.current_apy,
            active=snapshot.is_active,
        ))
    return tuple(reconciled)
