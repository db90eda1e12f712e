"""
Vault API Tests
FastAPI endpoints via TestClient with a mocked chain reader

Run: python -m pytest tests/test_vault_router.py -v
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from moveflow.agents.vault_refresh_job import VaultRefreshJob
from moveflow.app import create_app
from moveflow.data_sources.movement import RouterSnapshot
from moveflow.infrastructure.config import RefreshConfig


@pytest.fixture
def reader(vault_snapshot, user_position, protocol_snapshots):
    mock = MagicMock()
    mock.get_vault_info = AsyncMock(return_value=vault_snapshot)
    mock.get_user_position = AsyncMock(return_value=user_position)
    mock.get_balance = AsyncMock(return_value=Decimal("25.5"))
    mock.get_router_with_protocols = AsyncMock(return_value=(
        RouterSnapshot(protocol_count=2, total_routed=750, auto_rebalance=True, last_rebalance=1_700_000_000),
        protocol_snapshots,
    ))
    mock.rpc.close = AsyncMock()
    return mock


@pytest.fixture
def refresh_job(reader, sample_strategies):
    return VaultRefreshJob(
        reader,
        vault_address="0xvault",
        router_address="0xrouter",
        base_strategies=sample_strategies,
        refresh_config=RefreshConfig(retry_attempts=1, retry_delay=0),
    )


@pytest.fixture
def client(settings, refresh_job):
    app = create_app(settings, refresh_job=refresh_job, start_refresh=False)
    with TestClient(app) as client:
        yield client


# =============================================================================
# TEST: Reads
# =============================================================================

class TestReadEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_vault_before_refresh(self, client):
        data = client.get("/api/vault").json()

        assert data["available"] is False
        assert data["vault"]["blended_apy"] == pytest.approx(11.525)
        assert data["vault"]["tvl"] is None

    def test_vault_after_refresh(self, client):
        refreshed = client.post("/api/refresh").json()
        assert refreshed["vault_stale"] is False

        vault = client.get("/api/vault").json()["vault"]
        assert vault["tvl"] == "1000"
        assert vault["share_price"] == "0.001"
        assert vault["realized_apy"] == pytest.approx(182.5)

    def test_strategies_reflect_router(self, client):
        before = client.get("/api/strategies").json()
        assert before["count"] == 3
        assert before["strategies"][0]["target_apy"] == 12.0

        client.post("/api/refresh")
        after = client.get("/api/strategies").json()
        assert after["strategies"][0]["target_apy"] == 13.25
        assert after["strategies"][1]["active"] is False

    def test_protocol_catalog(self, client):
        protocols = client.get("/api/protocols").json()["protocols"]
        assert {p["id"] for p in protocols} >= {"meridian", "echelon", "liquidswap"}

    def test_router(self, client):
        client.post("/api/refresh")
        data = client.get("/api/router").json()

        assert data["router"]["protocol_count"] == 2
        assert data["protocols"][0]["type"] == "Staking"
        assert data["protocols"][1]["type"] == "Lending"


class TestPositionEndpoint:

    def test_position(self, client, test_addresses):
        data = client.get(f"/api/positions/{test_addresses['user']}").json()

        assert data["position"]["shares"] == 200_000
        assert data["position"]["current_value"] == "200"
        assert data["position"]["pnl"] == "50"
        assert data["wallet_balance"] == "25.5"

    def test_position_balance_unavailable(self, client, reader, test_addresses):
        reader.get_balance.return_value = None

        data = client.get(f"/api/positions/{test_addresses['user']}").json()

        assert data["wallet_balance"] is None
        assert data["position"]["shares"] == 200_000

    def test_invalid_address(self, client):
        response = client.get("/api/positions/not-an-address")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_chain_unavailable(self, client, reader, test_addresses):
        reader.get_user_position.return_value = None

        response = client.get(f"/api/positions/{test_addresses['user']}")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "CHAIN_READ_UNAVAILABLE"


# =============================================================================
# TEST: Payloads
# =============================================================================

class TestPayloadEndpoints:

    def test_deposit(self, client):
        data = client.post("/api/tx/deposit", json={"amount": "1.23456789"}).json()

        assert data["payload"]["type"] == "entry_function_payload"
        assert data["payload"]["function"].endswith("::vault::deposit")
        assert data["payload"]["arguments"][1] == "123456789"
        assert data["estimated_shares"] is None

    def test_deposit_estimate_after_refresh(self, client):
        client.post("/api/refresh")
        data = client.post("/api/tx/deposit", json={"amount": 2, "strategy_id": "meridian-staking"}).json()
        assert data["estimated_shares"] == 2000

    def test_deposit_invalid_amount(self, client):
        response = client.post("/api/tx/deposit", json={"amount": "-1"})
        assert response.status_code == 400

    def test_deposit_reports_wallet_balance(self, client, reader, test_addresses):
        data = client.post("/api/tx/deposit", json={"amount": "10", "address": test_addresses["user"]}).json()

        assert data["wallet_balance"] == "25.5"
        reader.get_balance.assert_awaited_with(test_addresses["user"])

    def test_deposit_above_wallet_balance(self, client, test_addresses):
        response = client.post("/api/tx/deposit", json={"amount": "30", "address": test_addresses["user"]})

        assert response.status_code == 400
        assert response.json()["error"]["details"]["wallet_balance"] == "25.5"

    def test_deposit_balance_unknown_is_not_capped(self, client, reader, test_addresses):
        reader.get_balance.return_value = None
        data = client.post("/api/tx/deposit", json={"amount": "30", "address": test_addresses["user"]}).json()

        assert data["success"] is True
        assert data["wallet_balance"] is None

    @pytest.mark.parametrize("amount,message", [
        ("0.000000001", "Amount is below the smallest unit (0.00000001)"),
        ("1e20", "Amount is too large"),
    ])
    def test_deposit_amount_outside_octa_range(self, client, amount, message):
        response = client.post("/api/tx/deposit", json={"amount": amount})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == message

    def test_deposit_unknown_strategy(self, client):
        response = client.post("/api/tx/deposit", json={"amount": "1", "strategy_id": "nope"})
        assert response.status_code == 404

    def test_withdraw_preview(self, client):
        client.post("/api/refresh")
        data = client.post("/api/tx/withdraw", json={"shares": "100000"}).json()

        assert data["payload"]["arguments"][1] == "100000"
        assert data["preview"] == {"gross": "100", "fee": "0.1", "net": "99.9"}

    def test_withdraw_fractional_shares_rejected(self, client):
        response = client.post("/api/tx/withdraw", json={"shares": "1.5"})
        assert response.status_code == 400

    @pytest.mark.parametrize("shares", ["\u00b2", str(2 ** 64)])
    def test_withdraw_unusable_shares_rejected(self, client, shares):
        response = client.post("/api/tx/withdraw", json={"shares": shares})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_harvest(self, client):
        data = client.post("/api/tx/harvest").json()
        assert data["payload"]["function"].endswith("::vault::harvest")
