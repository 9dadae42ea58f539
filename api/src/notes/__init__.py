"""Notes collaborator: read-only note counts per user."""

from .models import NOTES_TABLES_CQL


__all__ = ["NOTES_TABLES_CQL"]
