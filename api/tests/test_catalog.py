"""Tests for the catalog service."""

from uuid import uuid4

import pytest

from src.catalog.models import ContentType
from src.catalog.service import (
    AlreadyLinkedError,
    CatalogService,
    ContentNotFoundError,
    CourseNotFoundError,
)
from src.core.exceptions import ValidationError
from tests.fakes import content_row, count_row, course_content_row, course_row, not_applied, rows


@pytest.fixture
def catalog_service(mock_session) -> CatalogService:
    return CatalogService(session=mock_session, keyspace="test_keyspace")


def test_statements_use_keyspace(mock_session, catalog_service) -> None:
    prepared = [call.args[0] for call in mock_session.prepare.call_args_list]
    assert prepared
    assert all("test_keyspace." in cql for cql in prepared)


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_content(self, catalog_service, responder) -> None:
        owner_id, content_id = uuid4(), uuid4()

        content = await catalog_service.register_content(
            ContentType.BOOK, owner_id, content_id=content_id
        )

        assert content.id == content_id
        assert content.content_type == "book"
        (params,) = responder.calls_to(catalog_service._insert_content)
        assert params[:3] == [content_id, "book", owner_id]

    @pytest.mark.asyncio
    async def test_register_course_item(self, catalog_service, responder) -> None:
        content = await catalog_service.register_content("course-item", uuid4())

        assert content.content_type == "course-item"
        (params,) = responder.calls_to(catalog_service._insert_content)
        assert params[1] == "course-item"

    @pytest.mark.asyncio
    async def test_register_unknown_type(self, catalog_service) -> None:
        with pytest.raises(ValueError):
            await catalog_service.register_content("podcast", uuid4())

    @pytest.mark.asyncio
    async def test_create_course_requires_title(self, catalog_service, mock_session) -> None:
        with pytest.raises(ValidationError):
            await catalog_service.create_course("   ", uuid4())
        mock_session.aexecute.assert_not_called()


class TestCourseMembership:
    @pytest.mark.asyncio
    async def test_append_uses_next_position(self, catalog_service, responder) -> None:
        course = course_row()
        content = content_row()
        responder.on(catalog_service._get_course, rows(course))
        responder.on(catalog_service._get_content, rows(content))
        responder.on(
            catalog_service._get_course_contents,
            rows(
                course_content_row(course.id, uuid4(), 0),
                course_content_row(course.id, uuid4(), 1),
            ),
        )

        link = await catalog_service.add_content_to_course(course.id, content.id)

        assert link.position == 2
        (member,) = responder.calls_to(catalog_service._insert_course_content)
        assert member[:3] == [course.id, 2, content.id]

    @pytest.mark.asyncio
    async def test_already_linked(self, catalog_service, responder) -> None:
        course = course_row()
        content = content_row()
        responder.on(catalog_service._get_course, rows(course))
        responder.on(catalog_service._get_content, rows(content))
        responder.on(catalog_service._link_content, not_applied())

        with pytest.raises(AlreadyLinkedError):
            await catalog_service.add_content_to_course(course.id, content.id, position=0)
        assert responder.calls_to(catalog_service._insert_course_content) == []

    @pytest.mark.asyncio
    async def test_unknown_course(self, catalog_service) -> None:
        with pytest.raises(CourseNotFoundError):
            await catalog_service.add_content_to_course(uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_unknown_content(self, catalog_service, responder) -> None:
        responder.on(catalog_service._get_course, rows(course_row()))
        with pytest.raises(ContentNotFoundError):
            await catalog_service.add_content_to_course(uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_negative_position(self, catalog_service, responder) -> None:
        responder.on(catalog_service._get_course, rows(course_row()))
        responder.on(catalog_service._get_content, rows(content_row()))
        with pytest.raises(ValidationError):
            await catalog_service.add_content_to_course(uuid4(), uuid4(), position=-1)

    @pytest.mark.asyncio
    async def test_position_beyond_int_column(self, catalog_service, responder) -> None:
        responder.on(catalog_service._get_course, rows(course_row()))
        responder.on(catalog_service._get_content, rows(content_row()))
        with pytest.raises(ValidationError):
            await catalog_service.add_content_to_course(uuid4(), uuid4(), position=2**31)
        assert responder.calls_to(catalog_service._insert_course_content) == []

    @pytest.mark.asyncio
    async def test_course_ids_for_content(self, catalog_service, responder) -> None:
        first, second = uuid4(), uuid4()
        responder.on(
            catalog_service._get_courses_by_content,
            rows(course_content_row(first, uuid4(), 0), course_content_row(second, uuid4(), 3)),
        )

        assert await catalog_service.get_course_ids_for_content(uuid4()) == [first, second]


class TestCounts:
    @pytest.mark.asyncio
    async def test_counts(self, catalog_service, responder) -> None:
        responder.on(catalog_service._count_contents, count_row(4))
        responder.on(catalog_service._count_courses, count_row(2))

        assert await catalog_service.count_contents() == 4
        assert await catalog_service.count_courses() == 2

    @pytest.mark.asyncio
    async def test_count_empty_result(self, catalog_service) -> None:
        assert await catalog_service.count_courses() == 0
