"""Content catalog module.

Provides:
- Content and course registration
- Ordered course membership
- Reverse lookup of the courses containing a content item
"""

from .models import (
    CATALOG_TABLES_CQL,
    Content,
    ContentType,
    Course,
    CourseContent,
)


__all__ = [
    "CATALOG_TABLES_CQL",
    "Content",
    "ContentType",
    "Course",
    "CourseContent",
]
