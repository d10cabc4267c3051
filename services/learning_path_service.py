"""
Regex-based learning path generator.

Unlike the curriculum search this path needs no LLM: course names are mined from
search snippets with the text extractor, topped up with a canned curriculum when
fewer than five are found, and every course gets up to three MOOCs (or provider
search links when none qualify).
"""
from __future__ import annotations

import logging
from typing import Dict, List

from core.exceptions import ConfigurationError
from core.messages import message
from schemas.api import LearningPathResponse
from schemas.course import LearningPathCourse, MOOCCourse, to_course_entry
from services.classifier import classify_moocs, has_subject_keywords, search_links
from services.deduplicator import dedupe_mooc_courses
from services.query_builder import build_legacy_curriculum_queries, build_legacy_mooc_queries, clean_subject
from services.search_client import BraveSearchClient
from services.text_extractor import default_courses, extract_course_names

logger = logging.getLogger(__name__)

CURRICULUM_RESULTS_PER_QUERY = 10
MOOC_RESULTS_PER_QUERY = 6
MIN_MINED_COURSES = 5
MAX_COURSES = 8
MAX_MOOCS_PER_COURSE = 3


async def mine_course_names(major: str, search_client: BraveSearchClient) -> List[str]:
    results = await search_client.search_many(
        build_legacy_curriculum_queries(major), count=CURRICULUM_RESULTS_PER_QUERY
    )
    names: Dict[str, None] = {}
    for result in results:
        for name in sorted(extract_course_names(result.text, major)):
            names.setdefault(name, None)

    if len(names) < MIN_MINED_COURSES:
        logger.info("curriculum_defaults_used", extra={"major": major, "courses": len(names)})
        for name in default_courses(major):
            names.setdefault(name, None)

    return list(names)[:MAX_COURSES]


async def find_course_moocs(course_name: str, major: str, search_client: BraveSearchClient) -> List[MOOCCourse]:
    subject = clean_subject(course_name)
    results = await search_client.search_many(
        build_legacy_mooc_queries(course_name, major), count=MOOC_RESULTS_PER_QUERY
    )
    # Relevance is judged on the title alone here
    relevant = [r for r in results if has_subject_keywords(r.title, subject)]
    courses = dedupe_mooc_courses(classify_moocs(relevant, subject, only_course_paths=True))
    if not courses:
        courses = search_links(subject, major)
    return courses[:MAX_MOOCS_PER_COURSE]


async def generate_learning_path(major: str, language: str, search_client: BraveSearchClient) -> LearningPathResponse:
    if not search_client.api_key:
        raise ConfigurationError("BRAVE_API_KEY", "brave_key_missing")

    names = await mine_course_names(major, search_client)
    courses: List[LearningPathCourse] = []
    for name in names:
        entry = to_course_entry(name)
        if entry is None:
            continue
        moocs = await find_course_moocs(entry.name, major, search_client)
        courses.append(
            LearningPathCourse(
                name=entry.name,
                description=message("learning_path_course_description", language, course=entry.name, major=major),
                mooc_courses=moocs,
            )
        )

    logger.info("learning_path_generated", extra={"major": major, "courses": len(courses)})
    return LearningPathResponse(
        major=major,
        description=message("learning_path_description", language, major=major),
        courses=courses,
    )
