"""Database models for the content catalog.

Cassandra table definitions for:
- Contents: Books, videos and course items that progress is tracked against
- Courses: Ordered collections of content
- Junction table: course_contents (ordered membership)
- Lookup table: courses_by_content (reverse membership, uniqueness guard)
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from src.core.timestamps import ensure_utc_aware


class ContentType(str, Enum):
    """Kind of trackable content."""

    BOOK = "book"
    VIDEO = "video"
    COURSE_ITEM = "course-item"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CONTENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.contents (
    id UUID PRIMARY KEY,
    content_type TEXT,
    owner_id UUID,
    created_at TIMESTAMP
)
"""

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    owner_id UUID,
    created_at TIMESTAMP
)
"""

# Conteudo do curso, ordenado por posicao
COURSE_CONTENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_contents (
    course_id UUID,
    position INT,
    content_id UUID,
    added_at TIMESTAMP,
    PRIMARY KEY (course_id, position, content_id)
) WITH CLUSTERING ORDER BY (position ASC, content_id ASC)
"""

# Cursos que contem um conteudo (propagacao de progresso)
COURSES_BY_CONTENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_content (
    content_id UUID,
    course_id UUID,
    position INT,
    added_at TIMESTAMP,
    PRIMARY KEY (content_id, course_id)
)
"""

CATALOG_TABLES_CQL = [
    CONTENT_TABLE_CQL,
    COURSE_TABLE_CQL,
    COURSE_CONTENTS_TABLE_CQL,
    COURSES_BY_CONTENT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Content:
    """Trackable content item."""

    def __init__(
        self,
        id: UUID,
        content_type: str,
        owner_id: UUID,
        created_at: datetime | None = None,
    ):
        self.id = id
        self.content_type = content_type
        self.owner_id = owner_id
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Content":
        """Create Content instance from Cassandra row."""
        return cls(
            id=row.id,
            content_type=row.content_type,
            owner_id=row.owner_id,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Content {self.id} {self.content_type}>"


class Course:
    """Course entity (ordered collection of content)."""

    def __init__(
        self,
        id: UUID,
        title: str,
        owner_id: UUID,
        created_at: datetime | None = None,
    ):
        self.id = id
        self.title = title
        self.owner_id = owner_id
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title or "",
            owner_id=row.owner_id,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Course {self.id} {self.title!r}>"


class CourseContent:
    """Membership of a content item in a course."""

    def __init__(
        self,
        course_id: UUID,
        content_id: UUID,
        position: int,
        added_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.content_id = content_id
        self.position = position
        self.added_at = ensure_utc_aware(added_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "CourseContent":
        """Create CourseContent instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            content_id=row.content_id,
            position=row.position or 0,
            added_at=row.added_at,
        )

    def __repr__(self) -> str:
        return f"<CourseContent course={self.course_id} #{self.position} {self.content_id}>"
