"""
Curriculum search: major -> web search -> LLM extraction -> learning record.

The search and LLM clients are passed in per request so tests can swap them for
fakes; the record repository is optional (no persistence when it is None).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from core.exceptions import ConfigurationError, NoCoursesExtractedError, NoSearchResultsError
from core.messages import message
from repository import LearningPathRepository
from schemas.course import CourseEntry
from services.llm_client import SiliconFlowClient
from services.query_builder import build_curriculum_queries
from services.search_client import BraveSearchClient, SearchResult
from services.text_extractor import extract_major_description

logger = logging.getLogger(__name__)

RESULTS_PER_QUERY = 8
MAX_RESPONSE_COURSES = 15


@dataclass
class CurriculumResult:
    major: str
    description: str
    courses: List[CourseEntry] = field(default_factory=list)
    record_id: Optional[str] = None


def aggregate_snippets(results: Sequence[SearchResult]) -> str:
    """Concatenate "title description" of every result that has both."""
    return "".join(f"{r.title} {r.description} " for r in results if r.title and r.description)


async def save_learning_record(
    records: Optional[LearningPathRepository], major: str, courses: Sequence[CourseEntry]
) -> Optional[str]:
    """Persist the curriculum off the event loop; a storage failure is logged and never fails the search."""
    if records is None:
        return None
    try:
        record_id, created = await run_in_threadpool(records.save, major, list(courses))
    except SQLAlchemyError as e:
        logger.error("learning_record_save_failed", extra={"major": major, "error": str(e)})
        return None
    logger.info("learning_record_saved", extra={"major": major, "record_id": record_id, "courses": len(courses)})
    return record_id


async def search_curriculum(
    major: str,
    language: str,
    search_client: BraveSearchClient,
    llm_client: SiliconFlowClient,
    records: Optional[LearningPathRepository] = None,
) -> CurriculumResult:
    """Build the core course list for `major`.

    Raises ConfigurationError when an API key is missing, NoSearchResultsError
    when no query produced text and NoCoursesExtractedError when the model
    returned nothing usable.
    """
    if not search_client.api_key:
        raise ConfigurationError("BRAVE_API_KEY", "brave_key_missing")
    if not llm_client.api_key:
        raise ConfigurationError("SILICONFLOW_API_KEY", "llm_key_missing")

    queries = build_curriculum_queries(major, language)
    results = await search_client.search_many(queries, count=RESULTS_PER_QUERY)
    search_text = aggregate_snippets(results)
    if not search_text.strip():
        logger.warning("curriculum_search_empty", extra={"major": major, "results": len(results)})
        raise NoSearchResultsError(major)

    logger.info("curriculum_search_completed", extra={"major": major, "results": len(results)})

    courses = await llm_client.extract_courses_with_ai(search_text, major, language)
    if not courses:
        raise NoCoursesExtractedError(major)
    courses = courses[:MAX_RESPONSE_COURSES]

    description = extract_major_description(results, major) or message(
        "default_major_description", language, major=major
    )
    record_id = await save_learning_record(records, major, courses)
    return CurriculumResult(major=major, description=description, courses=courses, record_id=record_id)
