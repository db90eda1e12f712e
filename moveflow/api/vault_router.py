"""
Vault Router - API endpoints for the MoveFlow web UI
Vault metrics, strategies, router protocols, positions and unsigned
transaction payloads. Reads come from the refresh job's latest snapshots;
positions are read on demand.
"""
import logging
from decimal import Decimal
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request

from moveflow.agents.vault_refresh_job import ROUTER, VAULT, VaultRefreshJob, position_key
from moveflow.infrastructure.config import MoveFlowConfig
from moveflow.infrastructure.errors import ChainReadUnavailableError, NotFoundError, ValidationError
from moveflow.security.validation import DepositRequest, WithdrawRequest, validate_movement_address
from moveflow.sentry_config import capture_transaction_breadcrumb
from moveflow.services.allocation import weighted_apy
from moveflow.services.payloads import (
    EntryFunctionPayload,
    build_deposit_payload,
    build_harvest_payload,
    build_withdraw_payload,
)
from moveflow.services.protocol_registry import (
    PROTOCOLS,
    Strategy,
    get_strategy,
    protocol_type_to_string,
)
from moveflow.services.valuation import estimate_shares, projected_returns, withdrawal_preview
from moveflow.services.vault_metrics import summarize_position, summarize_vault

logger = logging.getLogger("VaultRouter")

router = APIRouter(prefix="/api", tags=["Vault"])


# ============================================
# DEPENDENCIES
# ============================================

def get_refresh_job(request: Request) -> VaultRefreshJob:
    return request.app.state.refresh_job


def get_settings(request: Request) -> MoveFlowConfig:
    return request.app.state.settings


# ============================================
# REQUEST MODELS
# ============================================

class DepositPayloadRequest(DepositRequest):
    strategy_id: Optional[str] = None
    address: Optional[str] = None


class WithdrawPayloadRequest(WithdrawRequest):
    strategy_id: Optional[str] = None


# ============================================
# SERIALIZATION
# ============================================

def _amount(value: Optional[Decimal]) -> Optional[str]:
    # Decimal amounts are serialized as strings
    return None if value is None else str(value)


def _strategy_dict(strategy: Strategy) -> Dict:
    return {
        "id": strategy.id,
        "protocol_id": strategy.protocol_id,
        "name": strategy.name,
        "allocation_bps": strategy.allocation_bps,
        "allocation_pct": strategy.allocation_pct,
        "target_apy": strategy.target_apy,
        "risk_level": strategy.risk_level.value,
        "active": strategy.active,
        "description": strategy.description,
        "onchain_index": strategy.onchain_index,
    }


def _payload_response(payload: EntryFunctionPayload, **extra) -> Dict:
    capture_transaction_breadcrumb(payload.entry, {"function": payload.function})
    return {"success": True, "payload": payload.to_dict(), **extra}


def _require_strategy(strategy_id: Optional[str], job: VaultRefreshJob) -> Optional[Strategy]:
    if strategy_id is None:
        return None
    strategy = get_strategy(strategy_id, job.state.strategies)
    if strategy is None:
        raise NotFoundError("Strategy", strategy_id)
    return strategy


# ============================================
# READ ENDPOINTS
# ============================================

@router.get("/vault")
async def get_vault(job: VaultRefreshJob = Depends(get_refresh_job)):
    """Vault overview: blended APY, risk, TVL and share price."""
    state = job.state
    metrics = summarize_vault(state.strategies, state.vault)
    return {
        "success": True,
        "stale": state.is_stale(VAULT),
        "available": state.vault is not None,
        "updated_at": state.updated_at.isoformat() if state.updated_at else None,
        "vault": {
            "blended_apy": metrics.blended_apy,
            "risk_score": metrics.risk_score,
            "risk_level": metrics.risk_level.value if metrics.risk_level else None,
            "allocation_coverage_bps": metrics.allocation_coverage_bps,
            "tvl": _amount(metrics.tvl),
            "total_shares": metrics.total_shares,
            "realized_apy": metrics.realized_apy,
            "share_price": _amount(metrics.share_price),
            "is_paused": metrics.is_paused,
        },
    }


@router.get("/strategies")
async def get_strategies(job: VaultRefreshJob = Depends(get_refresh_job)):
    strategies = job.state.strategies
    return {
        "success": True,
        "count": len(strategies),
        "strategies": [_strategy_dict(s) for s in strategies],
    }


@router.get("/protocols")
async def get_protocols():
    """Static catalog of known Movement protocols."""
    return {
        "success": True,
        "protocols": [
            {
                "id": p.id,
                "name": p.name,
                "category": p.category.value,
                "url": p.url,
                "base_apy": p.base_apy,
                "risk_score": p.risk_score,
                "description": p.description,
            }
            for p in PROTOCOLS.values()
        ],
    }


@router.get("/router")
async def get_router(job: VaultRefreshJob = Depends(get_refresh_job)):
    """Strategy router state and the protocols registered in it."""
    state = job.state
    info = None
    if state.router is not None:
        info = {
            "protocol_count": state.router.protocol_count,
            "total_routed": _amount(state.router.total_routed),
            "auto_rebalance": state.router.auto_rebalance,
            "last_rebalance": state.router.last_rebalance,
        }
    return {
        "success": True,
        "stale": state.is_stale(ROUTER),
        "router": info,
        "protocols": [
            {
                "index": p.index,
                "name": p.name,
                "type": protocol_type_to_string(p.protocol_type),
                "is_active": p.is_active,
                "current_apy": p.current_apy,
                "total_deposited": _amount(p.total_deposited),
                "risk_score": p.risk_score,
            }
            for p in state.protocols
        ],
    }


@router.get("/positions/{address}")
async def get_position(address: str, job: VaultRefreshJob = Depends(get_refresh_job)):
    """
    A wallet's vault position with current value and P&L.
    Read on demand; 503 when the position or the vault cannot be read.
    """
    address = validate_movement_address(address)
    position = await job.refresh_position(address)
    if job.state.vault is None:
        await job.refresh_vault()

    state = job.state
    if position is None or state.vault is None:
        raise ChainReadUnavailableError("vault::get_user_position", "Position data is temporarily unavailable")

    metrics = summarize_position(state.vault, position)
    balance = await job.reader.get_balance(address)
    return {
        "success": True,
        "address": address,
        "stale": state.is_stale(position_key(address)),
        "wallet_balance": _amount(balance),
        "position": {
            "shares": metrics.shares,
            "current_value": _amount(metrics.current_value),
            "total_deposited": _amount(metrics.total_deposited),
            "total_withdrawn": _amount(metrics.total_withdrawn),
            "pnl": _amount(metrics.pnl.pnl),
            "pnl_percent": round(metrics.pnl.pnl_percent, 2),
            "deposit_time": metrics.deposit_time,
        },
    }


# ============================================
# PAYLOAD ENDPOINTS
# ============================================

@router.post("/tx/deposit")
async def deposit_payload(
    request: DepositPayloadRequest,
    job: VaultRefreshJob = Depends(get_refresh_job),
    settings: MoveFlowConfig = Depends(get_settings),
):
    """
    Unsigned deposit payload plus a share estimate and projected returns.
    With an `address`, the wallet balance is read and caps the amount.
    """
    _require_strategy(request.strategy_id, job)
    amount = request.parsed_amount()
    balance = None
    if request.address is not None:
        address = validate_movement_address(request.address)
        balance = await job.reader.get_balance(address)
        if balance is not None and amount > balance:
            raise ValidationError(
                "Amount exceeds wallet balance",
                {"amount": str(amount), "wallet_balance": str(balance)},
            )
    chain = settings.chain
    payload = build_deposit_payload(chain.contract_address, chain.vault_address, amount, chain.coin_type)

    vault = job.state.vault
    returns = projected_returns(amount, weighted_apy(job.state.strategies))
    return _payload_response(
        payload,
        estimated_shares=estimate_shares(vault, amount) if vault is not None else None,
        wallet_balance=_amount(balance),
        projected_returns={
            "daily": _amount(returns.daily),
            "monthly": _amount(returns.monthly),
            "yearly": _amount(returns.yearly),
        },
    )


@router.post("/tx/withdraw")
async def withdraw_payload(
    request: WithdrawPayloadRequest,
    job: VaultRefreshJob = Depends(get_refresh_job),
    settings: MoveFlowConfig = Depends(get_settings),
):
    _require_strategy(request.strategy_id, job)
    shares = request.parsed_shares()
    chain = settings.chain
    payload = build_withdraw_payload(chain.contract_address, chain.vault_address, shares, chain.coin_type)

    vault = job.state.vault
    preview = None
    if vault is not None:
        result = withdrawal_preview(vault, shares, settings.fees.withdrawal_fee_bps)
        preview = {
            "gross": _amount(result.gross),
            "fee": _amount(result.fee),
            "net": _amount(result.net),
        }
    return _payload_response(payload, preview=preview)


@router.post("/tx/harvest")
async def harvest_payload(settings: MoveFlowConfig = Depends(get_settings)):
    chain = settings.chain
    return _payload_response(
        build_harvest_payload(chain.contract_address, chain.vault_address, chain.coin_type)
    )


@router.post("/refresh")
async def refresh(job: VaultRefreshJob = Depends(get_refresh_job)):
    """Re-read vault and router now."""
    state = await job.refresh_now()
    return {
        "success": True,
        "vault_stale": state.is_stale(VAULT),
        "router_stale": state.is_stale(ROUTER),
        "updated_at": state.updated_at.isoformat() if state.updated_at else None,
    }
