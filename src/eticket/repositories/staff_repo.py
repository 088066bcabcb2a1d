"""
Repository for the staff table.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from eticket.datatypes.discord_datatypes import UserID
from eticket.datatypes.ticket_datatypes import StaffEntry
from eticket.util.logger import get_logger

logger = get_logger("staff_repo")


class StaffRepository:
    """CRUD for the staff table."""

    async def get_all(self, conn: aiosqlite.Connection) -> List[StaffEntry]:
        async with conn.execute(
            "SELECT user_id, display_name FROM staff ORDER BY user_id"
        ) as cursor:
            rows = await cursor.fetchall()
        return [StaffEntry(id=UserID(row[0]), display_name=row[1]) for row in rows]

    async def upsert(self, conn: aiosqlite.Connection, entry: StaffEntry) -> None:
        await conn.execute(
            """
            INSERT INTO staff (user_id, display_name) VALUES (?, ?)
            ON CONFLICT(user_id) DO UPDATE SET display_name = excluded.display_name
            """,
            (entry.id.to_int(), entry.display_name),
        )

    async def delete(self, conn: aiosqlite.Connection, user_id: UserID) -> bool:
        """Delete one entry; returns False when it did not exist."""
        cursor = await conn.execute(
            "DELETE FROM staff WHERE user_id = ?", (user_id.to_int(),)
        )
        return cursor.rowcount > 0
