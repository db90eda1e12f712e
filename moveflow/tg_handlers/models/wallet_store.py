"""
MoveFlow Telegram Bot - Wallet Store
Persists which Movement wallet each Telegram user has linked.

The pending deposit/withdraw prompt is NOT stored here: it lives in the
aiogram FSM context of the conversation (see tg_handlers/states.py).
"""

import os
import aiosqlite
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class WalletLink:
    """A Telegram user's linked wallet"""
    telegram_id: int
    wallet_address: str
    linked_at: str

    def to_dict(self) -> dict:
        return asdict(self)


class WalletStore:
    """SQLite-based storage for wallet links"""

    def __init__(self, db_path: str):
        self.db_path = db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    async def init_db(self):
        """Initialize database schema"""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS wallet_links (
                    telegram_id INTEGER PRIMARY KEY,
                    wallet_address TEXT NOT NULL,
                    linked_at TEXT
                )
            """)
            await db.commit()

    async def set_wallet(self, telegram_id: int, wallet_address: str) -> WalletLink:
        link = WalletLink(telegram_id=telegram_id, wallet_address=wallet_address, linked_at=_utcnow())
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                INSERT INTO wallet_links (telegram_id, wallet_address, linked_at)
                VALUES (?, ?, ?)
                ON CONFLICT(telegram_id) DO UPDATE SET
                    wallet_address = excluded.wallet_address,
                    linked_at = excluded.linked_at
            """, (link.telegram_id, link.wallet_address, link.linked_at))
            await db.commit()
        return link

    async def get_wallet(self, telegram_id: int) -> Optional[str]:
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(
                "SELECT wallet_address FROM wallet_links WHERE telegram_id = ?",
                (telegram_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else None

    async def remove_wallet(self, telegram_id: int) -> bool:
        """Unlink a wallet. Returns False if none was linked."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM wallet_links WHERE telegram_id = ?",
                (telegram_id,)
            )
            await db.commit()
            return cursor.rowcount > 0
