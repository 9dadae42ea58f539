"""Notes reader service."""

from uuid import UUID

from src.core.repository import CassandraRepository


class NotesReader(CassandraRepository):
    """Read-only access to the notes subsystem's per-user lookup."""

    def _prepare_statements(self) -> None:
        self._count_user_notes = self._prepare("""
            SELECT COUNT(*) FROM {keyspace}.notes_by_user WHERE user_id = ?
        """)

    async def count_user_notes(self, user_id: UUID) -> int:
        """Count notes written by a user."""
        return await self._count(self._count_user_notes, [user_id])
