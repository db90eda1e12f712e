# infrastructure/rpc.py
"""
Centralized RPC access for MoveFlow.
Movement exposes the Aptos REST API: view functions are POSTed to /view,
account resources are read from /accounts/{address}/resource/{type}.
"""
import logging
from decimal import Decimal, ROUND_FLOOR, localcontext
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from .config import get_config
from .errors import ChainReadUnavailableError

logger = logging.getLogger("MovementRPC")

# Movement chain constants
CHAIN_NAME = "Movement"
OCTA_DECIMALS = 8
OCTAS_PER_UNIT = Decimal(10) ** OCTA_DECIMALS
ONE_OCTA = Decimal(1).scaleb(-OCTA_DECIMALS)
U64_MAX = 2 ** 64 - 1

Number = Union[int, float, str, Decimal]


def from_octas(value: Number) -> Decimal:
    """Integer octas (as returned by u64 view outputs) -> asset units."""
    return Decimal(int(value)) / OCTAS_PER_UNIT


def to_octas(amount: Number) -> int:
    """
    Asset units -> integer octas, truncated toward negative infinity.
    Floats go through str() so 1.23456789 stays 123456789 and not ...788.
    Digits past the 8th decimal are floored off before scaling, so the
    context precision never rounds a long input up.
    """
    if isinstance(amount, float):
        amount = str(amount)
    value = Decimal(amount)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + OCTA_DECIMALS + 2)
        truncated = value.quantize(ONE_OCTA, rounding=ROUND_FLOOR)
        return int(truncated.scaleb(OCTA_DECIMALS))


def get_rpc_url() -> str:
    """Get the configured Movement fullnode URL."""
    return get_config().chain.rpc_url


class MovementRPC:
    """
    Thin async client over the Movement fullnode REST API.
    Every failure is raised as ChainReadUnavailableError; no retries here.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.rpc_url = (rpc_url or get_rpc_url()).rstrip("/")
        self.timeout = timeout or get_config().chain.request_timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def view(
        self,
        function: str,
        arguments: Sequence[Any] = (),
        type_arguments: Sequence[str] = (),
    ) -> List[Any]:
        """
        Call a Move view function.

        Args:
            function: Fully qualified name, e.g. "0x1::vault::get_vault_info"
            arguments: View arguments; integers are sent as strings (u64)
            type_arguments: Generic type arguments

        Returns:
            The decoded JSON result list
        """
        payload = {
            "function": function,
            "type_arguments": list(type_arguments),
            "arguments": [str(a) if isinstance(a, int) and not isinstance(a, bool) else a for a in arguments],
        }
        try:
            response = await self._get_client().post(f"{self.rpc_url}/view", json=payload)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            raise ChainReadUnavailableError(function, f"View '{function}' failed with HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ChainReadUnavailableError(function, f"View '{function}' failed: {e}") from e

        if not isinstance(result, list):
            raise ChainReadUnavailableError(function, f"View '{function}' returned {type(result).__name__}, expected list")
        return result

    async def get_account_resource(self, address: str, resource_type: str) -> Optional[Dict[str, Any]]:
        """
        Read one account resource. Returns None when the account does not
        hold the resource (HTTP 404).
        """
        url = f"{self.rpc_url}/accounts/{address}/resource/{resource_type}"
        try:
            response = await self._get_client().get(url)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ChainReadUnavailableError(resource_type, f"Resource read failed with HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ChainReadUnavailableError(resource_type, f"Resource read failed: {e}") from e

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


_rpc: Optional[MovementRPC] = None


def get_rpc() -> MovementRPC:
    """Get cached RPC client (lazy initialization)."""
    global _rpc
    if _rpc is None:
        _rpc = MovementRPC()
    return _rpc
