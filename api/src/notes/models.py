"""Database models for the notes lookup.

The notes subsystem owns note content and writes `notes_by_user`; this
service only counts rows per user for statistics.
"""

# Lookup: notas por usuario - particionado por user_id
NOTES_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notes_by_user (
    user_id UUID,
    created_at TIMESTAMP,
    note_id UUID,
    content_id UUID,
    PRIMARY KEY (user_id, created_at, note_id)
) WITH CLUSTERING ORDER BY (created_at DESC, note_id ASC)
"""

NOTES_TABLES_CQL = [
    NOTES_BY_USER_TABLE_CQL,
]
