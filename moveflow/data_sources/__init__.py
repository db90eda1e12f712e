"""
MoveFlow Data Sources
On-chain reads from the Movement vault and router modules
"""

from .movement import (
    MovementChainReader,
    ProtocolSnapshot,
    RouterSnapshot,
    UserPosition,
    VaultSnapshot,
)

__all__ = [
    "MovementChainReader",
    "ProtocolSnapshot",
    "RouterSnapshot",
    "UserPosition",
    "VaultSnapshot",
]
