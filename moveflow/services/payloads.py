"""
Transaction Payload Builder
Entry-function payloads for vault::deposit, vault::withdraw and vault::harvest.

Builders are pure: no network, no signing. Signing and broadcasting belong
to the user's wallet; submit_payload() is the seam where its failures are
turned into ChainWriteRejectedError.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol, Tuple, Union

from moveflow.infrastructure.config import DEFAULT_COIN_TYPE
from moveflow.infrastructure.errors import ChainWriteRejectedError
from moveflow.infrastructure.rpc import to_octas

logger = logging.getLogger("Payloads")


@dataclass(frozen=True)
class EntryFunctionPayload:
    function: str
    type_arguments: Tuple[str, ...]
    arguments: Tuple[Any, ...]

    @property
    def entry(self) -> str:
        """'deposit', 'withdraw' or 'harvest'"""
        return self.function.rsplit("::", 1)[-1]

    def to_dict(self) -> Dict[str, Any]:
        """Aptos JSON payload; u64 arguments are encoded as strings."""
        return {
            "type": "entry_function_payload",
            "function": self.function,
            "type_arguments": list(self.type_arguments),
            "arguments": [str(a) if isinstance(a, int) else a for a in self.arguments],
        }


def _vault_fn(contract_address: str, name: str) -> str:
    return f"{contract_address}::vault::{name}"


def build_deposit_payload(
    contract_address: str,
    vault_address: str,
    amount: Union[Decimal, int, float, str],
    coin_type: str = DEFAULT_COIN_TYPE,
) -> EntryFunctionPayload:
    """
    Deposit `amount` asset units. The amount is truncated to whole octas,
    never rounded up, so the payload can't ask for more than the user has.
    """
    return EntryFunctionPayload(
        function=_vault_fn(contract_address, "deposit"),
        type_arguments=(coin_type,),
        arguments=(vault_address, to_octas(amount)),
    )


def build_withdraw_payload(
    contract_address: str,
    vault_address: str,
    shares: int,
    coin_type: str = DEFAULT_COIN_TYPE,
) -> EntryFunctionPayload:
    return EntryFunctionPayload(
        function=_vault_fn(contract_address, "withdraw"),
        type_arguments=(coin_type,),
        arguments=(vault_address, int(shares)),
    )


def build_harvest_payload(
    contract_address: str,
    vault_address: str,
    coin_type: str = DEFAULT_COIN_TYPE,
) -> EntryFunctionPayload:
    return EntryFunctionPayload(
        function=_vault_fn(contract_address, "harvest"),
        type_arguments=(coin_type,),
        arguments=(vault_address,),
    )


class Signer(Protocol):
    """Wallet that signs and broadcasts a payload, returning the tx hash."""

    async def sign_and_submit(self, payload: Dict[str, Any]) -> str:
        ...


async def submit_payload(signer: Optional[Signer], payload: EntryFunctionPayload) -> str:
    """
    Hand a payload to the user's wallet. Failures are not retried.

    Raises:
        ChainWriteRejectedError: no wallet connected, or the wallet/broadcast failed
    """
    if signer is None:
        raise ChainWriteRejectedError("No wallet connected", payload.function)

    try:
        tx_hash = await signer.sign_and_submit(payload.to_dict())
    except ChainWriteRejectedError:
        raise
    except Exception as e:
        logger.warning(f"{payload.entry} rejected: {e}")
        raise ChainWriteRejectedError(f"Transaction rejected: {e}", payload.function) from e

    if not tx_hash:
        raise ChainWriteRejectedError("Wallet returned no transaction hash", payload.function)

    logger.info(f"{payload.entry} submitted: {tx_hash}")
    return tx_hash
