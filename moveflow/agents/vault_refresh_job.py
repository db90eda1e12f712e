"""
Vault Refresh Job
Background task that keeps vault, position and router snapshots fresh.

- Vault + watched positions every 30s, router + protocols every 60s
- Manual refresh_now() may overlap with a timer-driven run
- Last write wins: each refresh of a resource takes a generation number
  before fetching and is applied only if no newer one was applied first
- State is an immutable RefreshState swapped in one assignment, so readers
  never see a half-updated table
"""
import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Mapping, Optional, Set, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from moveflow.data_sources.movement import (
    MovementChainReader,
    ProtocolSnapshot,
    RouterSnapshot,
    UserPosition,
    VaultSnapshot,
)
from moveflow.infrastructure.config import RefreshConfig, get_config
from moveflow.infrastructure.errors import ChainReadUnavailableError, retry
from moveflow.services.allocation import reconcile_strategies
from moveflow.services.protocol_registry import VAULT_STRATEGIES, StrategyTable

logger = logging.getLogger("VaultRefresh")

VAULT = "vault"
ROUTER = "router"


def position_key(address: str) -> str:
    return f"position:{address.lower()}"


def _frozen(mapping: Dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class RefreshState:
    """Latest applied snapshots. Replaced wholesale, never edited."""
    vault: Optional[VaultSnapshot] = None
    router: Optional[RouterSnapshot] = None
    protocols: Tuple[ProtocolSnapshot, ...] = ()
    strategies: StrategyTable = VAULT_STRATEGIES
    positions: Mapping[str, UserPosition] = field(default_factory=lambda: _frozen({}))
    stale: FrozenSet[str] = frozenset()
    generations: Mapping[str, int] = field(default_factory=lambda: _frozen({}))
    updated_at: Optional[datetime] = None

    def is_stale(self, resource: str) -> bool:
        return resource in self.stale

    def position(self, address: str) -> Optional[UserPosition]:
        return self.positions.get(position_key(address))


class VaultRefreshJob:
    """
    Periodic and on-demand refresh of chain snapshots.
    """

    def __init__(
        self,
        reader: MovementChainReader,
        vault_address: Optional[str] = None,
        router_address: Optional[str] = None,
        base_strategies: StrategyTable = VAULT_STRATEGIES,
        refresh_config: Optional[RefreshConfig] = None,
    ):
        config = get_config()
        self.reader = reader
        self.vault_address = vault_address or config.chain.vault_address
        self.router_address = router_address or config.chain.router_address
        self.base_strategies = tuple(base_strategies)
        self.refresh_config = refresh_config or config.refresh

        self._state = RefreshState(strategies=self.base_strategies)
        self._issued: Dict[str, int] = {}
        self._watched: Set[str] = set()
        self._scheduler: Optional[AsyncIOScheduler] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> RefreshState:
        return self._state

    def watch(self, address: str):
        """Include an address in every vault refresh cycle."""
        self._watched.add(address.lower())

    def unwatch(self, address: str):
        self._watched.discard(address.lower())

    @property
    def watched(self) -> FrozenSet[str]:
        return frozenset(self._watched)

    def _next_generation(self, resource: str) -> int:
        generation = self._issued.get(resource, 0) + 1
        self._issued[resource] = generation
        return generation

    def _apply(self, resource: str, generation: int, value: Any, **changes) -> bool:
        """
        Swap in a new state for `resource` unless a newer generation already
        landed. `value` None means the read stayed unavailable after retries:
        the previous snapshot is kept and flagged stale.
        """
        current = self._state
        if generation <= current.generations.get(resource, 0):
            logger.debug(f"Discarding late {resource} result (gen {generation})")
            return False

        generations = dict(current.generations)
        generations[resource] = generation

        if value is None:
            self._state = replace(
                current,
                stale=current.stale | {resource},
                generations=_frozen(generations),
            )
            return True

        self._state = replace(
            current,
            stale=current.stale - {resource},
            generations=_frozen(generations),
            updated_at=datetime.now(timezone.utc),
            **changes,
        )
        return True

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _read(self, resource: str, read: Callable[[], Awaitable[Any]]) -> Any:
        """Run a reader call with retry/backoff; None once all attempts fail."""
        cfg = self.refresh_config

        @retry(
            max_attempts=cfg.retry_attempts,
            delay=cfg.retry_delay,
            backoff=cfg.retry_backoff,
            exceptions=(ChainReadUnavailableError,),
        )
        async def attempt():
            value = await read()
            if value is None:
                raise ChainReadUnavailableError(resource)
            return value

        try:
            return await attempt()
        except ChainReadUnavailableError:
            logger.warning(f"{resource} unavailable, keeping previous snapshot")
            return None

    async def refresh_vault(self) -> RefreshState:
        """Vault info and every watched position, read concurrently."""
        addresses = sorted(self._watched)
        vault_gen = self._next_generation(VAULT)
        position_gens = {a: self._next_generation(position_key(a)) for a in addresses}

        results = await asyncio.gather(
            self._read(VAULT, lambda: self.reader.get_vault_info(self.vault_address)),
            *[self._read(position_key(a), self._position_reader(a)) for a in addresses],
        )

        vault = results[0]
        self._apply(VAULT, vault_gen, vault, vault=vault)

        for address, position in zip(addresses, results[1:]):
            key = position_key(address)
            positions = dict(self._state.positions)
            if position is not None:
                positions[key] = position
            self._apply(key, position_gens[address], position, positions=_frozen(positions))

        return self._state

    def _position_reader(self, address: str) -> Callable[[], Awaitable[Optional[UserPosition]]]:
        return lambda: self.reader.get_user_position(address)

    async def refresh_position(self, address: str) -> Optional[UserPosition]:
        """On-demand read of a single position (e.g. a bot /portfolio)."""
        key = position_key(address)
        generation = self._next_generation(key)
        position = await self._read(key, self._position_reader(address))

        positions = dict(self._state.positions)
        if position is not None:
            positions[key] = position
        self._apply(key, generation, position, positions=_frozen(positions))
        return self._state.position(address)

    async def refresh_router(self) -> RefreshState:
        """Router info, then each protocol, then reconcile the strategy table."""
        generation = self._next_generation(ROUTER)
        result = await self._read(
            ROUTER,
            lambda: self.reader.get_router_with_protocols(self.router_address),
        )

        if result is None:
            self._apply(ROUTER, generation, None)
            return self._state

        router, protocols = result
        strategies = reconcile_strategies(self.base_strategies, protocols)
        self._apply(
            ROUTER, generation, router,
            router=router,
            protocols=tuple(protocols),
            strategies=strategies,
        )
        return self._state

    async def refresh_now(self) -> RefreshState:
        """Manual trigger: vault and router refreshed concurrently."""
        logger.info("[VaultRefresh] Manual refresh triggered")
        await asyncio.gather(self.refresh_vault(), self.refresh_router())
        return self._state

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def _run_vault_cycle(self):
        try:
            await self.refresh_vault()
        except Exception as e:
            logger.error(f"[VaultRefresh] Vault cycle error: {e}")

    async def _run_router_cycle(self):
        try:
            await self.refresh_router()
        except Exception as e:
            logger.error(f"[VaultRefresh] Router cycle error: {e}")

    def start(self, scheduler: Optional[AsyncIOScheduler] = None):
        """Register interval jobs; both run once immediately."""
        self._scheduler = scheduler or AsyncIOScheduler()
        cfg = self.refresh_config
        now = datetime.now(timezone.utc)

        self._scheduler.add_job(
            self._run_vault_cycle,
            IntervalTrigger(seconds=cfg.vault_interval_seconds),
            id="vault_refresh",
            name="Refresh vault and positions",
            replace_existing=True,
            coalesce=True,
            next_run_time=now,
        )
        self._scheduler.add_job(
            self._run_router_cycle,
            IntervalTrigger(seconds=cfg.router_interval_seconds),
            id="router_refresh",
            name="Refresh router protocols",
            replace_existing=True,
            coalesce=True,
            next_run_time=now,
        )

        if not self._scheduler.running:
            self._scheduler.start()
        logger.info(
            f"[VaultRefresh] Scheduled (vault: {cfg.vault_interval_seconds}s, "
            f"router: {cfg.router_interval_seconds}s)"
        )

    def stop(self):
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("[VaultRefresh] Scheduler stopped")
        self._scheduler = None

