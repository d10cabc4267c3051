"""
API contract schemas for the learning path endpoints.

Notes:
- Request models are deliberately lenient (everything optional); routes check the
  required fields themselves so a missing value becomes a 400 with a bilingual
  message instead of FastAPI's generic 422.
- All JSON keys are camelCase on the wire; CamelModel also accepts snake_case.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from .course import CamelModel, CourseEntry, LearningPathCourse, MOOCCourse, Textbook


class CurriculumSearchRequest(CamelModel):
    major: Optional[str] = ""
    language: Optional[str] = "zh"


class MoocSearchRequest(CamelModel):
    course_name: Optional[str] = ""
    major: Optional[str] = ""
    language: Optional[str] = "zh"


class CourseCacheWriteRequest(CamelModel):
    # language doubles as the cache key component and the message language
    course_name: Optional[str] = None
    major: Optional[str] = None
    language: Optional[str] = None
    mooc_courses: Optional[List[MOOCCourse]] = None
    textbooks: Optional[List[Textbook]] = None


class VoteRequest(CamelModel):
    record_id: Optional[str] = None
    language: Optional[str] = "zh"


class SaveRecordRequest(CamelModel):
    major: Optional[str] = None
    language: Optional[str] = "zh"
    # Plain names (legacy clients) or {name, description} objects
    courses: Optional[List[Union[str, Dict[str, Any]]]] = None


class LearningPathRequest(CamelModel):
    major: Optional[str] = ""
    language: Optional[str] = "zh"


class CurriculumSearchResponse(CamelModel):
    major: str
    description: str
    courses: List[CourseEntry] = Field(default_factory=list)
    record_id: Optional[str] = Field(default=None, description="Learning record the result was saved as")


class MoocSearchResponse(CamelModel):
    course_name: str
    courses: List[MOOCCourse] = Field(default_factory=list)
    textbooks: List[Textbook] = Field(default_factory=list)
    from_cache: bool = False


class CourseCache(CamelModel):
    id: int
    course_name: str
    major: str
    language: str
    mooc_courses: List[MOOCCourse] = Field(default_factory=list)
    textbooks: List[Textbook] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LearningRecord(CamelModel):
    id: str
    major: str
    courses: List[CourseEntry] = Field(default_factory=list)
    votes: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CourseCacheResponse(CamelModel):
    success: bool = True
    cache: Optional[CourseCache] = None


class RecordsResponse(CamelModel):
    success: bool = True
    records: List[LearningRecord] = Field(default_factory=list)


class RecordResponse(CamelModel):
    success: bool = True
    record: LearningRecord


class VoteResponse(CamelModel):
    success: bool = True
    votes: int


class SaveRecordResponse(CamelModel):
    success: bool = True
    record_id: str
    existing: bool = False


class LearningPathResponse(CamelModel):
    major: str
    description: str
    courses: List[LearningPathCourse] = Field(default_factory=list)


class ErrorResponse(CamelModel):
    success: bool = False
    error: str
