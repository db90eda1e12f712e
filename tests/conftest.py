"""
Pytest Configuration for MoveFlow Tests

Run all tests: python -m pytest tests/ -v
Run unit tests only: python -m pytest tests/ -v -m "not integration"
"""

from decimal import Decimal

import pytest

from moveflow.data_sources.movement import ProtocolSnapshot, UserPosition, VaultSnapshot
from moveflow.infrastructure.config import MoveFlowConfig, RefreshConfig
from moveflow.services.protocol_registry import RiskLevel, Strategy


# =============================================================================
# FIXTURES - Shared across all test files
# =============================================================================

@pytest.fixture
def test_addresses():
    """Standard Movement test addresses"""
    return {
        "contract": "0xc2272925a3bd1ebcbac2ab2c4e7b7b2e1b4a6d8f9e0c1b2a3d4e5f6a7b8c3857",
        "vault": "0xc2272925a3bd1ebcbac2ab2c4e7b7b2e1b4a6d8f9e0c1b2a3d4e5f6a7b8c3857",
        "user": "0x" + "ab" * 32,
        "other_user": "0x" + "cd" * 32,
    }


@pytest.fixture
def sample_strategies():
    """Three strategies at 40/35/25%, all active"""
    return (
        Strategy(
            id="meridian-staking", protocol_id="meridian", name="Meridian Staking",
            allocation_bps=4000, target_apy=12.0, risk_level=RiskLevel.LOW, onchain_index=0,
        ),
        Strategy(
            id="echelon-supply", protocol_id="echelon", name="Echelon Supply",
            allocation_bps=3500, target_apy=8.5, risk_level=RiskLevel.LOW, onchain_index=1,
        ),
        Strategy(
            id="liquidswap-lp", protocol_id="liquidswap", name="LiquidSwap LP",
            allocation_bps=2500, target_apy=15.0, risk_level=RiskLevel.MEDIUM, onchain_index=2,
        ),
    )


@pytest.fixture
def protocol_snapshots():
    """Router entries 0 and 1; nothing registered at index 2"""
    return [
        ProtocolSnapshot(
            index=0, name="Meridian", protocol_type=1, is_active=True,
            current_apy=13.25, total_deposited=Decimal("500"), risk_score=3,
        ),
        ProtocolSnapshot(
            index=1, name="Echelon", protocol_type=2, is_active=False,
            current_apy=7.0, total_deposited=Decimal("250"), risk_score=4,
        ),
    ]


@pytest.fixture
def vault_snapshot():
    return VaultSnapshot(
        total_assets=Decimal(1000),
        total_shares=1_000_000,
        total_yield_earned=Decimal(5),
        is_paused=False,
        strategy_count=3,
    )


@pytest.fixture
def user_position(test_addresses):
    return UserPosition(
        address=test_addresses["user"],
        shares=200_000,
        deposit_time=1_700_000_000,
        total_deposited=Decimal(150),
        total_withdrawn=Decimal(0),
    )


@pytest.fixture
def settings(tmp_path):
    """Config with instant retries and a throwaway wallet DB"""
    settings = MoveFlowConfig()
    settings.refresh = RefreshConfig(retry_attempts=2, retry_delay=0, retry_backoff=1.0)
    settings.bot.wallet_db_path = str(tmp_path / "wallets.db")
    settings.features.enable_auto_refresh = False
    return settings


# =============================================================================
# MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (use real RPC)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )
