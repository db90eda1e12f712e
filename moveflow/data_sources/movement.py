"""
Movement Chain State Reader
Read-only queries against the MoveFlow vault and strategy_router
modules, normalized into immutable snapshots.

Every public method returns None when the chain read is unavailable
(network error, HTTP error, missing resource, malformed output). Callers
render a stale/loading state instead of crashing. Retries belong to the
refresh job, not to this reader.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from moveflow.infrastructure.config import get_config
from moveflow.infrastructure.errors import ChainReadUnavailableError
from moveflow.infrastructure.rpc import MovementRPC, from_octas, get_rpc

logger = logging.getLogger("ChainReader")

COIN_STORE = "0x1::coin::CoinStore<{coin_type}>"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class VaultSnapshot:
    total_assets: Decimal
    total_shares: int
    total_yield_earned: Decimal
    is_paused: bool
    strategy_count: int
    fetched_at: datetime = field(default_factory=_now, compare=False)


@dataclass(frozen=True)
class UserPosition:
    address: str
    shares: int
    deposit_time: int  # unix seconds of first deposit
    total_deposited: Decimal
    total_withdrawn: Decimal
    fetched_at: datetime = field(default_factory=_now, compare=False)


@dataclass(frozen=True)
class RouterSnapshot:
    protocol_count: int
    total_routed: Decimal
    auto_rebalance: bool
    last_rebalance: int  # unix seconds
    fetched_at: datetime = field(default_factory=_now, compare=False)


@dataclass(frozen=True)
class ProtocolSnapshot:
    index: int
    name: str
    protocol_type: int
    is_active: bool
    current_apy: float  # percent, converted from bps
    total_deposited: Decimal
    risk_score: int


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


class MovementChainReader:
    """
    Normalizes MoveFlow view outputs.
    Octas-denominated values are scaled by 10^8; shares and bps are not.
    """

    def __init__(
        self,
        rpc: Optional[MovementRPC] = None,
        contract_address: Optional[str] = None,
        coin_type: Optional[str] = None,
    ):
        chain = get_config().chain
        self.rpc = rpc or get_rpc()
        self.contract_address = contract_address or chain.contract_address
        self.coin_type = coin_type or chain.coin_type

    def _fn(self, module: str, name: str) -> str:
        return f"{self.contract_address}::{module}::{name}"

    async def _view(self, module: str, name: str, *args: Any) -> Optional[List[Any]]:
        function = self._fn(module, name)
        try:
            return await self.rpc.view(function, args, [self.coin_type])
        except ChainReadUnavailableError as e:
            logger.warning(f"{name} unavailable: {e.message}")
            return None

    async def get_vault_info(self, vault_address: str) -> Optional[VaultSnapshot]:
        result = await self._view("vault", "get_vault_info", vault_address)
        if result is None:
            return None
        try:
            return VaultSnapshot(
                total_assets=from_octas(result[0]),
                total_shares=int(result[1]),
                total_yield_earned=from_octas(result[2]),
                is_paused=_as_bool(result[3]),
                strategy_count=int(result[4]),
            )
        except (IndexError, TypeError, ValueError) as e:
            logger.warning(f"Malformed get_vault_info output {result!r}: {e}")
            return None

    async def get_user_position(self, user_address: str) -> Optional[UserPosition]:
        result = await self._view("vault", "get_user_position", user_address)
        if result is None:
            return None
        try:
            return UserPosition(
                address=user_address,
                shares=int(result[0]),
                deposit_time=int(result[1]),
                total_deposited=from_octas(result[2]),
                total_withdrawn=from_octas(result[3]),
            )
        except (IndexError, TypeError, ValueError) as e:
            logger.warning(f"Malformed get_user_position output {result!r}: {e}")
            return None

    async def get_share_value(self, vault_address: str, shares: int) -> Optional[Decimal]:
        """On-chain valuation of `shares`, in asset units."""
        result = await self._view("vault", "get_share_value", vault_address, int(shares))
        if result is None:
            return None
        try:
            return from_octas(result[0])
        except (IndexError, TypeError, ValueError) as e:
            logger.warning(f"Malformed get_share_value output {result!r}: {e}")
            return None

    async def get_router_info(self, router_address: str) -> Optional[RouterSnapshot]:
        result = await self._view("strategy_router", "get_router_info", router_address)
        if result is None:
            return None
        try:
            return RouterSnapshot(
                protocol_count=int(result[0]),
                total_routed=from_octas(result[1]),
                auto_rebalance=_as_bool(result[2]),
                last_rebalance=int(result[3]),
            )
        except (IndexError, TypeError, ValueError) as e:
            logger.warning(f"Malformed get_router_info output {result!r}: {e}")
            return None

    async def get_protocol_info(self, router_address: str, index: int) -> Optional[ProtocolSnapshot]:
        result = await self._view("strategy_router", "get_protocol_info", router_address, int(index))
        if result is None:
            return None
        try:
            return ProtocolSnapshot(
                index=index,
                name=str(result[0]),
                protocol_type=int(result[1]),
                is_active=_as_bool(result[2]),
                current_apy=int(result[3]) / 100,
                total_deposited=from_octas(result[4]),
                risk_score=int(result[5]),
            )
        except (IndexError, TypeError, ValueError) as e:
            logger.warning(f"Malformed get_protocol_info output {result!r}: {e}")
            return None

    async def get_router_with_protocols(
        self,
        router_address: str,
    ) -> Optional[Tuple[RouterSnapshot, List[ProtocolSnapshot]]]:
        """
        Read the router and every protocol registered in it.

        The count is only known after the router read, so entries are read
        one by one. Unavailable entries are skipped; None means the router
        itself could not be read.
        """
        router = await self.get_router_info(router_address)
        if router is None:
            return None

        protocols: List[ProtocolSnapshot] = []
        for index in range(router.protocol_count):
            protocol = await self.get_protocol_info(router_address, index)
            if protocol is not None:
                protocols.append(protocol)

        if len(protocols) < router.protocol_count:
            logger.info(f"Read {len(protocols)}/{router.protocol_count} router protocols")
        return router, protocols

    async def get_all_protocols(self, router_address: str) -> Optional[List[ProtocolSnapshot]]:
        result = await self.get_router_with_protocols(router_address)
        if result is None:
            return None
        return result[1]

    async def get_balance(self, address: str) -> Optional[Decimal]:
        """Wallet balance of the vault coin; accounts without a CoinStore hold 0."""
        resource_type = COIN_STORE.format(coin_type=self.coin_type)
        try:
            resource = await self.rpc.get_account_resource(address, resource_type)
        except ChainReadUnavailableError as e:
            logger.warning(f"Balance unavailable for {address[:10]}...: {e.message}")
            return None
        if resource is None:
            return Decimal(0)
        try:
            return from_octas(resource["data"]["coin"]["value"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed CoinStore resource for {address[:10]}...: {e}")
            return None
