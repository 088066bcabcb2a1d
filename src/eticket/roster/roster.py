"""
Authorization roster: a fixed owner plus delegated staff.

Reads are served from an in-memory map so permission checks stay synchronous;
writes update the map and, when a database is attached, the ``staff`` table.
"""

from __future__ import annotations

from typing import Dict, List, Union

from eticket.database.db_connection import ConnectionManager
from eticket.datatypes.discord_datatypes import UserID
from eticket.datatypes.ticket_datatypes import StaffEntry
from eticket.repositories.staff_repo import StaffRepository
from eticket.util.logger import get_logger

logger = get_logger("roster")

IdLike = Union[UserID, int, str]


def _as_user_id(value: IdLike) -> UserID | None:
    return value if isinstance(value, UserID) else UserID.parse(value)  # type: ignore[return-value]


class Roster:
    """
    Owner + staff membership.

    Args:
        owner_id: Fixed owner identity.
        db: Open connection manager used for persistence, or None to keep
            the roster in memory only.
        repository: Staff table repository (defaults to StaffRepository).
    """

    def __init__(
        self,
        owner_id: IdLike,
        db: ConnectionManager | None = None,
        repository: StaffRepository | None = None,
    ) -> None:
        self._owner_id = _as_user_id(owner_id)
        self._db = db
        self._repository = repository or StaffRepository()
        self._staff: Dict[UserID, StaffEntry] = {}
        if self._owner_id is None:
            logger.warning("[ROSTER] No valid owner id configured; owner-only commands are disabled")

    @property
    def owner_id(self) -> UserID | None:
        return self._owner_id

    async def load(self) -> int:
        """Replace the in-memory roster with the persisted one. Returns the entry count."""
        if self._db is None:
            return len(self._staff)
        async with self._db.read() as conn:
            entries = await self._repository.get_all(conn)
        self._staff = {entry.id: entry for entry in entries}
        logger.info("[ROSTER] Loaded %d staff entries", len(self._staff))
        return len(self._staff)

    # ========== Predicates ==========

    def is_owner(self, user_id: IdLike) -> bool:
        uid = _as_user_id(user_id)
        return uid is not None and self._owner_id is not None and uid == self._owner_id

    def is_staff(self, user_id: IdLike) -> bool:
        uid = _as_user_id(user_id)
        return uid is not None and uid in self._staff

    def is_privileged(self, user_id: IdLike) -> bool:
        return self.is_owner(user_id) or self.is_staff(user_id)

    # ========== Mutations ==========

    async def add_staff(self, entry: StaffEntry) -> None:
        """Insert or rename a staff entry."""
        previous = self._staff.get(entry.id)
        self._staff[entry.id] = entry
        if self._db is not None:
            try:
                async with self._db.transaction() as conn:
                    await self._repository.upsert(conn, entry)
            except Exception:
                if previous is None:
                    self._staff.pop(entry.id, None)
                else:
                    self._staff[entry.id] = previous
                logger.exception("[ROSTER] Failed to persist staff %s", entry.id)
                raise
        logger.info("[ROSTER] Added staff %s (%s)", entry.id, entry.display_name)

    async def remove_staff(self, user_id: IdLike) -> bool:
        """Remove a staff entry. Unknown ids are a no-op returning False.

        The in-memory entry is dropped before persisting so privileges are
        revoked even if the database write fails.
        """
        uid = _as_user_id(user_id)
        if uid is None or self._staff.pop(uid, None) is None:
            return False
        if self._db is not None:
            async with self._db.transaction() as conn:
                await self._repository.delete(conn, uid)
        logger.info("[ROSTER] Removed staff %s", uid)
        return True

    def get_staff(self, user_id: IdLike) -> StaffEntry | None:
        uid = _as_user_id(user_id)
        return self._staff.get(uid) if uid is not None else None

    def list_staff(self) -> List[StaffEntry]:
        """Snapshot of staff entries sorted by id."""
        return sorted(self._staff.values(), key=lambda entry: entry.id.to_int())

    def __len__(self) -> int:
        return len(self._staff)
