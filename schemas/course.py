"""
Course-level schemas: curriculum courses, MOOC results and textbooks.

Stored learning paths come in two shapes. Early records hold plain course-name
strings, later ones hold {name, description} objects, and some were written as a
JSON-encoded string. `normalize_courses` resolves all of them into CourseEntry;
nothing past the repository sees the raw shapes.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase JSON while accepting snake_case too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CourseEntry(CamelModel):
    name: str = Field(min_length=2, max_length=50, description="Course name")
    description: str = Field(default="", description="Short course description")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    def sort_key(self) -> tuple:
        return (self.name, self.description)


class MOOCCourse(CamelModel):
    title: str
    platform: str = Field(description="Display name of a known provider, or 'other'")
    url: str
    instructor: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)


class Textbook(CamelModel):
    title: str
    url: str
    source: str = Field(description="Hostname the document is served from")


class LearningPathCourse(CourseEntry):
    mooc_courses: List[MOOCCourse] = Field(default_factory=list)


# On-disk course shapes
PlainCourse = str
StructuredCourse = Dict[str, Any]
StoredCourse = Union[PlainCourse, StructuredCourse]


def to_course_entry(item: StoredCourse) -> Optional[CourseEntry]:
    """Resolve one stored course into a CourseEntry, or None when unusable."""
    if isinstance(item, CourseEntry):
        return item
    if isinstance(item, str):
        name, description = item, ""
    elif isinstance(item, dict):
        name, description = item.get("name"), item.get("description") or ""
    else:
        return None
    if not isinstance(name, str) or not isinstance(description, str):
        return None
    name = name.strip()
    if not 2 <= len(name) <= 50:
        return None
    return CourseEntry(name=name, description=description)


def normalize_courses(raw: Union[str, List[StoredCourse], None]) -> List[CourseEntry]:
    """Turn any stored course list into an ordered list of CourseEntry."""
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return []
    if not isinstance(raw, list):
        return []
    courses = []
    for item in raw:
        entry = to_course_entry(item)
        if entry is not None:
            courses.append(entry)
    return courses


def canonical_courses_key(courses: List[CourseEntry]) -> str:
    """Order-independent serialization used to detect duplicate learning paths."""
    ordered = sorted(courses, key=CourseEntry.sort_key)
    return json.dumps(
        [{"name": c.name, "description": c.description} for c in ordered],
        ensure_ascii=False,
        sort_keys=True,
    )
