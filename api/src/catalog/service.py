"""Catalog service layer.

Registers content and courses and maintains ordered course membership.
Other modules use it as a read-mostly reference: existence checks,
member content of a course, and the courses a content item belongs to.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

import structlog

from src.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.core.repository import CQL_INT_MAX, CassandraRepository

from .models import Content, ContentType, Course, CourseContent


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ContentNotFoundError(NotFoundError):
    """Content not found."""

    default_code = "content_not_found"

    def __init__(self, message: str = "Conteudo nao encontrado"):
        super().__init__(message)


class CourseNotFoundError(NotFoundError):
    """Course not found."""

    default_code = "course_not_found"

    def __init__(self, message: str = "Curso nao encontrado"):
        super().__init__(message)


class AlreadyLinkedError(ConflictError):
    """Content already belongs to the course."""

    default_code = "already_linked"

    def __init__(self, message: str = "Conteudo ja vinculado a este curso"):
        super().__init__(message)


# ==============================================================================
# Catalog Service
# ==============================================================================


class CatalogService(CassandraRepository):
    """Service for content and course references."""

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Contents
        self._insert_content = self._prepare("""
            INSERT INTO {keyspace}.contents (id, content_type, owner_id, created_at)
            VALUES (?, ?, ?, ?)
        """)

        self._get_content = self._prepare("""
            SELECT * FROM {keyspace}.contents WHERE id = ?
        """)

        self._count_contents = self._prepare("""
            SELECT COUNT(*) FROM {keyspace}.contents
        """)

        # Courses
        self._insert_course = self._prepare("""
            INSERT INTO {keyspace}.courses (id, title, owner_id, created_at)
            VALUES (?, ?, ?, ?)
        """)

        self._get_course = self._prepare("""
            SELECT * FROM {keyspace}.courses WHERE id = ?
        """)

        self._count_courses = self._prepare("""
            SELECT COUNT(*) FROM {keyspace}.courses
        """)

        # Membership
        self._insert_course_content = self._prepare("""
            INSERT INTO {keyspace}.course_contents
            (course_id, position, content_id, added_at)
            VALUES (?, ?, ?, ?)
        """)

        self._get_course_contents = self._prepare("""
            SELECT * FROM {keyspace}.course_contents WHERE course_id = ?
        """)

        self._link_content = self._prepare("""
            INSERT INTO {keyspace}.courses_by_content
            (content_id, course_id, position, added_at)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._get_courses_by_content = self._prepare("""
            SELECT course_id FROM {keyspace}.courses_by_content WHERE content_id = ?
        """)

    # ==========================================================================
    # Registration
    # ==========================================================================

    async def register_content(
        self,
        content_type: ContentType | str,
        owner_id: UUID,
        content_id: UUID | None = None,
    ) -> Content:
        """Register a trackable content item.

        Args:
            content_type: book, video or course-item
            owner_id: User that owns the content
            content_id: Existing id from the content subsystem (generated if omitted)
        """
        content = Content(
            id=content_id or uuid4(),
            content_type=ContentType(content_type).value,
            owner_id=owner_id,
        )
        await self._execute(
            self._insert_content,
            [content.id, content.content_type, content.owner_id, content.created_at],
        )

        logger.info(
            "content_registered",
            content_id=str(content.id),
            content_type=content.content_type,
        )
        return content

    async def create_course(
        self,
        title: str,
        owner_id: UUID,
        course_id: UUID | None = None,
    ) -> Course:
        """Create a course."""
        if not title or not title.strip():
            msg = "Titulo do curso e obrigatorio"
            raise ValidationError(msg)

        course = Course(id=course_id or uuid4(), title=title.strip(), owner_id=owner_id)
        await self._execute(
            self._insert_course,
            [course.id, course.title, course.owner_id, course.created_at],
        )

        logger.info("course_created", course_id=str(course.id))
        return course

    async def add_content_to_course(
        self,
        course_id: UUID,
        content_id: UUID,
        position: int | None = None,
    ) -> CourseContent:
        """Link a content item to a course.

        Args:
            course_id: Course UUID
            content_id: Content UUID
            position: Order inside the course (appended when omitted)

        Raises:
            CourseNotFoundError: If the course does not exist
            ContentNotFoundError: If the content does not exist
            AlreadyLinkedError: If the content is already in the course
        """
        if not await self.get_course(course_id):
            raise CourseNotFoundError
        if not await self.get_content(content_id):
            raise ContentNotFoundError

        if position is None:
            position = len(await self.get_course_content_ids(course_id))
        elif not 0 <= position <= CQL_INT_MAX:
            msg = f"Posicao deve estar entre 0 e {CQL_INT_MAX}"
            raise ValidationError(msg)

        now = datetime.now(UTC)
        link = CourseContent(
            course_id=course_id,
            content_id=content_id,
            position=position,
            added_at=now,
        )

        # Reverse lookup first: it doubles as the uniqueness guard
        applied = await self._execute_conditional(
            self._link_content, [content_id, course_id, position, now]
        )
        if not applied:
            raise AlreadyLinkedError

        await self._execute(
            self._insert_course_content, [course_id, position, content_id, now]
        )

        logger.info(
            "content_linked",
            course_id=str(course_id),
            content_id=str(content_id),
            position=position,
        )
        return link

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_content(self, content_id: UUID) -> Content | None:
        """Get content by ID."""
        row = await self._fetch_one(self._get_content, [content_id])
        return Content.from_row(row) if row else None

    async def get_course(self, course_id: UUID) -> Course | None:
        """Get course by ID."""
        row = await self._fetch_one(self._get_course, [course_id])
        return Course.from_row(row) if row else None

    async def get_course_contents(self, course_id: UUID) -> list[CourseContent]:
        """Get course membership ordered by position."""
        rows = await self._fetch_all(self._get_course_contents, [course_id])
        return [CourseContent.from_row(row) for row in rows]

    async def get_course_content_ids(self, course_id: UUID) -> list[UUID]:
        """Get member content ids ordered by position."""
        return [link.content_id for link in await self.get_course_contents(course_id)]

    async def get_course_ids_for_content(self, content_id: UUID) -> list[UUID]:
        """Get ids of the courses that contain a content item."""
        rows = await self._fetch_all(self._get_courses_by_content, [content_id])
        return [row.course_id for row in rows]

    async def count_contents(self) -> int:
        """Count registered content items."""
        return await self._count(self._count_contents)

    async def count_courses(self) -> int:
        """Count courses."""
        return await self._count(self._count_courses)
