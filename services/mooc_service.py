"""
MOOC and textbook discovery for one course of a major, with a per-course cache.

Flow: cache lookup -> MOOC queries -> textbook queries -> classify -> dedupe ->
cap -> cache upsert. Cache trouble in either direction degrades to "no cache". Cache reads and
writes run in the threadpool so a slow database never stalls the event loop.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from core.exceptions import ConfigurationError
from repository import CourseCacheRepository
from schemas.api import CourseCache
from schemas.course import MOOCCourse, Textbook
from services.classifier import classify_moocs, classify_textbooks
from services.deduplicator import dedupe_mooc_courses, dedupe_textbooks
from services.query_builder import build_mooc_queries, build_textbook_queries, clean_subject
from services.search_client import BraveSearchClient

logger = logging.getLogger(__name__)

MOOC_RESULTS_PER_QUERY = 8
TEXTBOOK_RESULTS_PER_QUERY = 5
MAX_MOOC_COURSES = 8
MAX_TEXTBOOKS = 5


@dataclass
class MoocSearchResult:
    course_name: str
    courses: List[MOOCCourse] = field(default_factory=list)
    textbooks: List[Textbook] = field(default_factory=list)
    from_cache: bool = False


async def read_cache(
    cache: Optional[CourseCacheRepository], course_name: str, major: str, language: str
) -> Optional[CourseCache]:
    if cache is None:
        return None
    try:
        return await run_in_threadpool(cache.get, course_name, major, language)
    except SQLAlchemyError as e:
        logger.error("course_cache_read_failed", extra={"course_name": course_name, "error": str(e)})
        return None


async def write_cache(
    cache: Optional[CourseCacheRepository],
    course_name: str,
    major: str,
    language: str,
    courses: List[MOOCCourse],
    textbooks: List[Textbook],
) -> None:
    if cache is None:
        return
    try:
        await run_in_threadpool(cache.upsert, course_name, major, language, courses, textbooks)
    except SQLAlchemyError as e:
        logger.error("course_cache_write_failed", extra={"course_name": course_name, "error": str(e)})
        return
    logger.info("course_cache_saved", extra={"course_name": course_name, "major": major, "language": language})


async def find_moocs(course_name: str, major: str, language: str, search_client: BraveSearchClient) -> List[MOOCCourse]:
    subject = clean_subject(course_name)
    results = await search_client.search_many(
        build_mooc_queries(course_name, major, language), count=MOOC_RESULTS_PER_QUERY
    )
    return dedupe_mooc_courses(classify_moocs(results, subject))[:MAX_MOOC_COURSES]


async def find_textbooks(course_name: str, major: str, language: str, search_client: BraveSearchClient) -> List[Textbook]:
    subject = clean_subject(course_name)
    results = await search_client.search_many(
        build_textbook_queries(course_name, major, language), count=TEXTBOOK_RESULTS_PER_QUERY
    )
    return dedupe_textbooks(classify_textbooks(results, subject))[:MAX_TEXTBOOKS]


async def search_mooc(
    course_name: str,
    major: str,
    language: str,
    search_client: BraveSearchClient,
    cache: Optional[CourseCacheRepository] = None,
) -> MoocSearchResult:
    cached = await read_cache(cache, course_name, major, language)
    if cached is not None:
        logger.info("course_cache_hit", extra={"course_name": course_name, "major": major, "language": language})
        return MoocSearchResult(
            course_name=course_name,
            courses=cached.mooc_courses,
            textbooks=cached.textbooks,
            from_cache=True,
        )

    logger.info("course_cache_miss", extra={"course_name": course_name, "major": major, "language": language})
    if not search_client.api_key:
        raise ConfigurationError("BRAVE_API_KEY", "brave_key_missing")

    courses = await find_moocs(course_name, major, language, search_client)
    textbooks = await find_textbooks(course_name, major, language, search_client)
    logger.info(
        "mooc_search_completed",
        extra={"course_name": course_name, "courses": len(courses), "textbooks": len(textbooks)},
    )

    await write_cache(cache, course_name, major, language, courses, textbooks)
    return MoocSearchResult(course_name=course_name, courses=courses, textbooks=textbooks, from_cache=False)
