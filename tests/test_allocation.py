"""
Allocation Tests
Blended APY, allocation-weighted risk score and risk bands

Run: python -m pytest tests/test_allocation.py -v
"""

import math
from dataclasses import replace

import pytest

from moveflow.infrastructure.errors import ValidationError
from moveflow.services.allocation import (
    RISK_SCORE_UNDEFINED,
    allocation_coverage,
    risk_level_for_score,
    risk_score,
    weighted_apy,
)
from moveflow.services.protocol_registry import (
    PROTOCOLS,
    VAULT_STRATEGIES,
    Protocol,
    ProtocolCategory,
    RiskLevel,
    Strategy,
    build_catalog,
)


def _strategy(idx, bps, apy, active=True, protocol_id="meridian"):
    return Strategy(
        id=f"s{idx}", protocol_id=protocol_id, name=f"Strategy {idx}",
        allocation_bps=bps, target_apy=apy, risk_level=RiskLevel.LOW, active=active,
    )


# =============================================================================
# TEST: Weighted APY
# =============================================================================

class TestWeightedAPY:
    """Blended APY across active strategies"""

    def test_three_strategy_scenario(self, sample_strategies):
        """4000x12.0 + 3500x8.5 + 2500x15.0 over 10000 bps"""
        assert weighted_apy(sample_strategies) == pytest.approx(11.525)

    def test_default_vault_table(self):
        assert weighted_apy(VAULT_STRATEGIES) == pytest.approx(11.525)

    def test_empty_table_is_zero(self):
        assert weighted_apy(()) == 0.0

    def test_inactive_strategies_ignored(self, sample_strategies):
        table = (sample_strategies[0], replace(sample_strategies[1], active=False), sample_strategies[2])
        assert weighted_apy(table) == pytest.approx(4.8 + 3.75)

    def test_partial_allocation_is_not_renormalized(self):
        """Half the capital deployed at 10% reports 5%, not 10%"""
        assert weighted_apy((_strategy(0, 5000, 10.0),)) == pytest.approx(5.0)

    @pytest.mark.parametrize("table", [
        ((0, 10000, 20.0),),
        ((0, 2500, 3.0), (1, 2500, 40.0), (2, 5000, 7.5)),
        ((0, 1, 99.0), (1, 9999, 0.1)),
        ((0, 3000, 5.0), (1, 3000, 30.0)),
    ])
    def test_bounded_by_best_active_apy(self, table):
        strategies = [_strategy(*row) for row in table]
        apy = weighted_apy(strategies)
        assert 0 <= apy <= max(s.target_apy for s in strategies)

    @pytest.mark.parametrize("table", [
        ((0, 10000, 20.0),),
        ((0, 2500, 3.0), (1, 2500, 40.0), (2, 5000, 7.5)),
        ((0, 1234, 6.0), (1, 8766, 11.0)),
    ])
    def test_full_allocation_is_true_weighted_mean(self, table):
        strategies = [_strategy(*row) for row in table]
        expected = sum(s.target_apy * s.allocation_bps for s in strategies) / sum(s.allocation_bps for s in strategies)
        assert weighted_apy(strategies) == pytest.approx(expected)


# =============================================================================
# TEST: Risk Score
# =============================================================================

class TestRiskScore:
    """Allocation-weighted protocol risk"""

    def test_weighted_by_allocation(self, sample_strategies):
        # meridian 2, echelon 3, liquidswap 4
        assert risk_score(sample_strategies) == pytest.approx((2 * 4000 + 3 * 3500 + 4 * 2500) / 10000)

    def test_empty_table_returns_sentinel(self):
        score = risk_score(())
        assert score == RISK_SCORE_UNDEFINED
        assert not math.isnan(score)

    def test_zero_allocation_returns_sentinel(self):
        assert risk_score([_strategy(0, 0, 10.0)]) == RISK_SCORE_UNDEFINED

    def test_inactive_entries_still_weighted(self, sample_strategies):
        table = tuple(replace(s, active=False) for s in sample_strategies)
        assert risk_score(table) == risk_score(sample_strategies)

    def test_unknown_protocol_rejected(self):
        with pytest.raises(ValidationError) as exc:
            risk_score([_strategy(0, 10000, 5.0, protocol_id="nowhere")])
        assert exc.value.status_code == 400

    def test_custom_catalog(self):
        catalog = build_catalog([
            Protocol(id="risky", name="Risky", category=ProtocolCategory.DEX, url="", base_apy=50.0, risk_score=9),
        ])
        assert risk_score([_strategy(0, 10000, 50.0, protocol_id="risky")], catalog) == 9


class TestRiskBands:

    @pytest.mark.parametrize("score,level", [
        (1.0, RiskLevel.LOW),
        (3.99, RiskLevel.LOW),
        (4.0, RiskLevel.MEDIUM),
        (6.5, RiskLevel.MEDIUM),
        (7.0, RiskLevel.HIGH),
        (10.0, RiskLevel.HIGH),
    ])
    def test_band_edges(self, score, level):
        assert risk_level_for_score(score) == level


class TestCatalog:

    def test_all_strategies_reference_known_protocols(self):
        for strategy in VAULT_STRATEGIES:
            assert strategy.protocol_id in PROTOCOLS

    def test_default_allocation_is_fully_deployed(self):
        assert allocation_coverage(VAULT_STRATEGIES) == 10000

    def test_duplicate_protocol_ids_rejected(self):
        p = Protocol(id="dup", name="Dup", category=ProtocolCategory.DEX, url="", base_apy=1.0, risk_score=1)
        with pytest.raises(ValidationError):
            build_catalog([p, p])

    @pytest.mark.parametrize("score", [0, 11])
    def test_risk_score_range_enforced(self, score):
        with pytest.raises(ValidationError):
            Protocol(id="x", name="X", category=ProtocolCategory.DEX, url="", base_apy=1.0, risk_score=score)

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            PROTOCOLS["new"] = PROTOCOLS["meridian"]
