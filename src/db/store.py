# key-value access to the local store, mirrors the browser localStorage API
from __future__ import annotations

from typing import Optional

from db.database import connect

CART_KEY = "cart"
TOKEN_KEY = "token"


async def get_item(key: str) -> Optional[str]:
    """Return the stored string for key, or None if absent."""
    async with connect() as conn:
        cur = await conn.execute("SELECT value FROM kv WHERE key = ?;", (key,))
        row = await cur.fetchone()
        await cur.close()
    return row[0] if row else None


async def set_item(key: str, value: str) -> None:
    async with connect() as conn:
        await conn.execute(
            """
            INSERT INTO kv(key, value, updated_at) VALUES (?, ?, datetime('now'))
            ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                           updated_at = excluded.updated_at;
            """,
            (key, value),
        )
        await conn.commit()


async def remove_item(key: str) -> None:
    """Delete key; no-op if absent."""
    async with connect() as conn:
        await conn.execute("DELETE FROM kv WHERE key = ?;", (key,))
        await conn.commit()


async def get_token() -> Optional[str]:
    token = await get_item(TOKEN_KEY)
    return token or None


async def set_token(token: str) -> None:
    await set_item(TOKEN_KEY, token)


async def clear_token() -> None:
    await remove_item(TOKEN_KEY)
