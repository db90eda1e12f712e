"""
Input validation for MoveFlow
All user-supplied amounts, share counts and addresses are checked here
before any payload is built.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Union

from pydantic import BaseModel, Field, field_validator

from moveflow.infrastructure.errors import ValidationError
from moveflow.infrastructure.rpc import ONE_OCTA, U64_MAX, to_octas

MOVEMENT_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{1,64}$")


# ============================================
# CUSTOM VALIDATORS
# ============================================

def validate_movement_address(address: str) -> str:
    """Validate Movement (Aptos-style) account address format"""
    address = (address or "").strip()
    if not address:
        raise ValidationError("Address is required")
    if not MOVEMENT_ADDRESS_RE.match(address):
        raise ValidationError(
            "Invalid wallet address. Expected 0x followed by up to 64 hex characters",
            {"address": address[:80]},
        )
    return address.lower()


def parse_amount(value: Union[str, int, float, Decimal]) -> Decimal:
    """Parse a positive asset amount"""
    try:
        amount = Decimal(str(value).strip().replace(",", ""))
    except (InvalidOperation, ValueError):
        raise ValidationError("Please enter a valid amount", {"amount": str(value)[:40]})
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Please enter a valid amount", {"amount": str(value)[:40]})
    # u64 octas top out near 1.8e11 units
    octas = to_octas(amount) if amount.adjusted() <= 20 else U64_MAX + 1
    if octas > U64_MAX:
        raise ValidationError("Amount is too large", {"amount": str(value)[:40]})
    if octas == 0:
        raise ValidationError(f"Amount is below the smallest unit ({ONE_OCTA:f})", {"amount": str(value)[:40]})
    return amount


def parse_shares(value: Union[str, int]) -> int:
    """Parse a positive whole number of shares"""
    text = str(value).strip().replace(",", "")
    digits = text.lstrip("0")
    if not (text.isascii() and text.isdigit()) or not digits:
        raise ValidationError("Please enter a whole, positive number of shares", {"shares": text[:40]})
    if len(digits) > len(str(U64_MAX)) or int(digits) > U64_MAX:
        raise ValidationError("Share amount is too large", {"shares": text[:40]})
    return int(digits)


# ============================================
# REQUEST MODELS
# ============================================

class DepositRequest(BaseModel):
    """Deposit payload request"""
    amount: str = Field(..., min_length=1, max_length=40)

    @field_validator("amount", mode="before")
    @classmethod
    def amount_as_text(cls, v):
        return str(v)

    def parsed_amount(self) -> Decimal:
        return parse_amount(self.amount)


class WithdrawRequest(BaseModel):
    """Withdraw payload request"""
    shares: str = Field(..., min_length=1, max_length=40)

    @field_validator("shares", mode="before")
    @classmethod
    def shares_as_text(cls, v):
        return str(v)

    def parsed_shares(self) -> int:
        return parse_shares(self.shares)
