"""Order-preserving de-duplication of MOOC and textbook results (first seen wins)."""
from __future__ import annotations

from typing import Iterable, List

from schemas.course import MOOCCourse, Textbook


def mooc_key(course: MOOCCourse) -> str:
    return f"{course.title.lower()}-{course.platform}"


def dedupe_mooc_courses(courses: Iterable[MOOCCourse]) -> List[MOOCCourse]:
    """Drop repeats by (lowercased title, platform) and by URL."""
    seen_keys = set()
    seen_urls = set()
    unique: List[MOOCCourse] = []
    for course in courses:
        key = mooc_key(course)
        if key in seen_keys or course.url in seen_urls:
            continue
        seen_keys.add(key)
        seen_urls.add(course.url)
        unique.append(course)
    return unique


def dedupe_textbooks(textbooks: Iterable[Textbook]) -> List[Textbook]:
    seen = set()
    unique: List[Textbook] = []
    for textbook in textbooks:
        key = textbook.url.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(textbook)
    return unique
