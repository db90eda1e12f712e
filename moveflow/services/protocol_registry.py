"""
Movement DeFi Protocol Registry
Static catalog of yield sources plus the vault's default strategy table.

The catalog is process-wide and read-only. Strategy tables are plain tuples
of frozen Strategy records; refreshes build new tuples instead of editing
entries in place.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from moveflow.infrastructure.errors import ValidationError

MAX_ALLOCATION_BPS = 10_000


class ProtocolCategory(str, Enum):
    DEX = "dex"
    LENDING = "lending"
    STAKING = "staking"
    YIELD = "yield"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# On-chain strategy_router protocol type codes
PROTOCOL_TYPE_LABELS = {
    1: "Staking",
    2: "Lending",
    3: "DEX/LP",
}


@dataclass(frozen=True)
class Protocol:
    """Catalog entry for a yield source"""
    id: str
    name: str
    category: ProtocolCategory
    url: str
    base_apy: float
    risk_score: int
    description: str = ""

    def __post_init__(self):
        if not 1 <= self.risk_score <= 10:
            raise ValidationError(
                f"Protocol '{self.id}' risk score must be within 1-10",
                {"protocol_id": self.id, "risk_score": self.risk_score},
            )


@dataclass(frozen=True)
class Strategy:
    """Allocation of vault capital to one protocol"""
    id: str
    protocol_id: str
    name: str
    allocation_bps: int
    target_apy: float
    risk_level: RiskLevel
    active: bool = True
    description: str = ""
    onchain_index: Optional[int] = None  # position in strategy_router

    @property
    def allocation_pct(self) -> float:
        return self.allocation_bps / 100


StrategyTable = Tuple[Strategy, ...]


def build_catalog(protocols: Iterable[Protocol]) -> Mapping[str, Protocol]:
    """Index protocols by id, rejecting duplicate identifiers."""
    catalog: Dict[str, Protocol] = {}
    for protocol in protocols:
        if protocol.id in catalog:
            raise ValidationError(f"Duplicate protocol id '{protocol.id}'", {"protocol_id": protocol.id})
        catalog[protocol.id] = protocol
    return MappingProxyType(catalog)


PROTOCOLS: Mapping[str, Protocol] = build_catalog([
    Protocol(
        id="meridian",
        name="Meridian",
        category=ProtocolCategory.STAKING,
        url="https://app.meridian.money",
        base_apy=12.0,
        risk_score=2,
        description="Movement native liquidity layer with liquid staking",
    ),
    Protocol(
        id="echelon",
        name="Echelon",
        category=ProtocolCategory.LENDING,
        url="https://app.echelon.market",
        base_apy=8.5,
        risk_score=3,
        description="Isolated money markets with dynamic interest rates",
    ),
    Protocol(
        id="liquidswap",
        name="Liquidswap",
        category=ProtocolCategory.DEX,
        url="https://liquidswap.com",
        base_apy=15.0,
        risk_score=4,
        description="Capital-efficient AMM with concentrated liquidity",
    ),
    Protocol(
        id="moveposition",
        name="MovePosition",
        category=ProtocolCategory.LENDING,
        url="https://testnet.moveposition.xyz",
        base_apy=9.2,
        risk_score=3,
        description="Institutional-grade lending with adaptive rates",
    ),
    Protocol(
        id="canopy",
        name="Canopy",
        category=ProtocolCategory.YIELD,
        url="https://canopyhub.xyz",
        base_apy=11.0,
        risk_score=4,
        description="Unified yield aggregation dashboard",
    ),
    Protocol(
        id="thunderhead",
        name="Thunderhead",
        category=ProtocolCategory.STAKING,
        url="https://thunderhead.xyz",
        base_apy=6.5,
        risk_score=2,
        description="MOVE liquid staking protocol",
    ),
])


VAULT_STRATEGIES: StrategyTable = (
    Strategy(
        id="meridian-staking",
        protocol_id="meridian",
        name="Meridian Staking",
        allocation_bps=4000,
        target_apy=12.0,
        risk_level=RiskLevel.LOW,
        description="Stake MOVE via Meridian for network validation rewards",
        onchain_index=0,
    ),
    Strategy(
        id="echelon-supply",
        protocol_id="echelon",
        name="Echelon Supply",
        allocation_bps=3500,
        target_apy=8.5,
        risk_level=RiskLevel.LOW,
        description="Supply MOVE to Echelon isolated lending pools",
        onchain_index=1,
    ),
    Strategy(
        id="liquidswap-lp",
        protocol_id="liquidswap",
        name="Liquidswap LP",
        allocation_bps=2500,
        target_apy=15.0,
        risk_level=RiskLevel.MEDIUM,
        description="Provide MOVE/USDC liquidity on Liquidswap",
        onchain_index=2,
    ),
)


def get_protocol(protocol_id: str, catalog: Mapping[str, Protocol] = PROTOCOLS) -> Optional[Protocol]:
    return catalog.get(protocol_id)


def get_strategy(strategy_id: str, strategies: Iterable[Strategy] = VAULT_STRATEGIES) -> Optional[Strategy]:
    for strategy in strategies:
        if strategy.id == strategy_id:
            return strategy
    return None


def format_allocation(bps: int) -> str:
    """4000 -> '40%'"""
    return f"{bps / 100:.0f}%"


def protocol_type_to_string(protocol_type: int) -> str:
    return PROTOCOL_TYPE_LABELS.get(protocol_type, "Unknown")
