"""
Valuation Tests
Share value, realized APY, P&L and deposit/withdraw previews

Run: python -m pytest tests/test_valuation.py -v
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from moveflow.services.valuation import (
    estimate_shares,
    projected_returns,
    realized_apy,
    share_value,
    unrealized_pnl,
    withdrawal_preview,
)
from moveflow.services.vault_metrics import summarize_position, summarize_vault


class TestShareValue:

    def test_scenario(self, vault_snapshot):
        """1000 assets / 1,000,000 shares -> 200,000 shares worth 200"""
        assert share_value(vault_snapshot, 200_000) == Decimal(200)

    def test_zero_shares(self, vault_snapshot):
        assert share_value(vault_snapshot, 0) == 0

    def test_empty_vault(self, vault_snapshot):
        empty = replace(vault_snapshot, total_assets=Decimal(0), total_shares=0)
        assert share_value(empty, 500) == 0

    @pytest.mark.parametrize("a,b", [(1, 2), (123, 877), (200_000, 50_000)])
    def test_linear_in_shares(self, vault_snapshot, a, b):
        assert share_value(vault_snapshot, a + b) == share_value(vault_snapshot, a) + share_value(vault_snapshot, b)
        assert share_value(vault_snapshot, 3 * a) == 3 * share_value(vault_snapshot, a)


class TestRealizedAPY:

    def test_scenario(self, vault_snapshot):
        """(5 / 1000) x 365 x 100"""
        assert realized_apy(vault_snapshot) == pytest.approx(182.5)

    def test_empty_vault_is_zero(self, vault_snapshot):
        assert realized_apy(replace(vault_snapshot, total_assets=Decimal(0))) == 0.0


class TestPnL:

    def test_gain(self, user_position):
        result = unrealized_pnl(user_position, Decimal(200))
        assert result.pnl == Decimal(50)
        assert result.pnl_percent == pytest.approx(33.333, rel=1e-3)

    def test_withdrawals_count_as_realized(self, user_position):
        position = replace(user_position, total_withdrawn=Decimal(30))
        assert unrealized_pnl(position, Decimal(100)).pnl == Decimal(-20)

    def test_no_deposits_guard(self, user_position):
        position = replace(user_position, total_deposited=Decimal(0))
        result = unrealized_pnl(position, Decimal(10))
        assert result.pnl == Decimal(10)
        assert result.pnl_percent == 0.0


class TestPreviews:

    def test_estimate_shares_at_current_rate(self, vault_snapshot):
        assert estimate_shares(vault_snapshot, Decimal(2)) == 2000

    def test_estimate_shares_floors_to_whole_shares(self, vault_snapshot):
        shares = estimate_shares(vault_snapshot, Decimal("0.0029999"))
        assert shares == 2
        assert isinstance(shares, int)

    def test_estimate_shares_empty_vault_mints_one_per_octa(self, vault_snapshot):
        empty = replace(vault_snapshot, total_assets=Decimal(0), total_shares=0)
        assert estimate_shares(empty, Decimal("12.5")) == 1_250_000_000

    def test_withdrawal_preview_applies_fee(self, vault_snapshot):
        preview = withdrawal_preview(vault_snapshot, 200_000, withdrawal_fee_bps=10)
        assert preview.gross == Decimal(200)
        assert preview.fee == Decimal("0.2")
        assert preview.net == Decimal("199.8")

    def test_projected_returns(self):
        returns = projected_returns(Decimal(1000), 11.525)
        assert returns.yearly == Decimal("115.25")
        assert returns.monthly == Decimal("115.25") / 12
        assert returns.daily == Decimal("115.25") / 365


class TestVaultMetrics:

    def test_summary_without_vault(self, sample_strategies):
        metrics = summarize_vault(sample_strategies, None)
        assert metrics.blended_apy == pytest.approx(11.525)
        assert metrics.tvl is None
        assert metrics.share_price is None

    def test_summary_with_vault(self, sample_strategies, vault_snapshot):
        metrics = summarize_vault(sample_strategies, vault_snapshot)
        assert metrics.tvl == Decimal(1000)
        assert metrics.share_price == Decimal("0.001")
        assert metrics.realized_apy == pytest.approx(182.5)
        assert metrics.allocation_coverage_bps == 10000

    def test_empty_table_has_no_risk_level(self):
        assert summarize_vault((), None).risk_level is None

    def test_position_summary(self, vault_snapshot, user_position):
        metrics = summarize_position(vault_snapshot, user_position)
        assert metrics.current_value == Decimal(200)
        assert metrics.pnl.pnl == Decimal(50)
