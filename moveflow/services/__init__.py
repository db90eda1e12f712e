"""
MoveFlow Services
Protocol catalog, allocation math, valuation and transaction payloads
"""

from .protocol_registry import (
    PROTOCOLS,
    VAULT_STRATEGIES,
    Protocol,
    ProtocolCategory,
    RiskLevel,
    Strategy,
    get_protocol,
    get_strategy,
)
from .allocation import (
    RISK_SCORE_UNDEFINED,
    allocation_coverage,
    reconcile_strategies,
    risk_level_for_score,
    risk_score,
    weighted_apy,
)
from .valuation import estimate_shares, projected_returns, realized_apy, share_value, unrealized_pnl, withdrawal_preview
from .payloads import (
    EntryFunctionPayload,
    build_deposit_payload,
    build_harvest_payload,
    build_withdraw_payload,
    submit_payload,
)

__all__ = [
    "PROTOCOLS",
    "VAULT_STRATEGIES",
    "Protocol",
    "ProtocolCategory",
    "RiskLevel",
    "Strategy",
    "get_protocol",
    "get_strategy",
    "RISK_SCORE_UNDEFINED",
    "allocation_coverage",
    "reconcile_strategies",
    "risk_level_for_score",
    "risk_score",
    "weighted_apy",
    "estimate_shares",
    "projected_returns",
    "realized_apy",
    "share_value",
    "unrealized_pnl",
    "withdrawal_preview",
    "EntryFunctionPayload",
    "build_deposit_payload",
    "build_harvest_payload",
    "build_withdraw_payload",
    "submit_payload",
]
