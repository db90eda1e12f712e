"""
MoveFlow Security Module
Input validation for addresses, amounts and share counts
"""

from .validation import (
    DepositRequest,
    WithdrawRequest,
    parse_amount,
    parse_shares,
    validate_movement_address,
)

__all__ = [
    "DepositRequest",
    "WithdrawRequest",
    "parse_amount",
    "parse_shares",
    "validate_movement_address",
]
