"""
Search query templates.

Every builder is deterministic and never rejects input; URL-encoding is left to
the search client.
"""
from __future__ import annotations

import re
from typing import List

_SUBJECT_NOISE = re.compile(r"[《》\"“”()（）]")


def clean_subject(text: str) -> str:
    """Drop book-title brackets, quotes and parentheses that confuse phrase search."""
    return _SUBJECT_NOISE.sub("", text or "").strip()


def build_curriculum_queries(major: str, language: str = "zh") -> List[str]:
    """Queries that surface a major's curriculum / syllabus pages."""
    if language == "en":
        return [
            f"{major} curriculum courses syllabus",
            f"{major} degree program course structure",
            f"{major} major courses requirements",
            f"{major} academic program curriculum",
        ]
    return [
        f"{major} 专业课程设置 课程大纲",
        f"{major} 专业培养方案 课程体系",
        f"{major} curriculum courses syllabus",
        f"{major} 专业核心课程 必修课程",
    ]


def build_legacy_curriculum_queries(major: str) -> List[str]:
    """Queries used by the regex-based learning path generator."""
    return [
        f"{major} 专业课程设置 培养方案",
        f"{major} 本科课程体系 必修课程",
        f"{major} curriculum required courses university",
        f"{major} 学科课程 教学计划",
    ]


def build_mooc_queries(course_name: str, major: str = "", language: str = "zh") -> List[str]:
    """Provider-scoped `site:` queries first, then general free-text queries."""
    name = clean_subject(course_name)
    major = (major or "").strip()
    scoped = [
        f'"{name}" MOOC 慕课 site:icourse163.org',
        f'"{name}" 在线课程 site:xuetangx.com',
        f'"{name}" {major} course site:coursera.org'.replace("  ", " "),
        f'"{name}" online course site:edx.org',
    ]
    if language == "en":
        general = [
            f'"{name}" MOOC online course free',
            f'"{name}" Coursera edX Udacity FutureLearn',
            f'{major} "{name}" video lectures online learning'.strip(),
        ]
    else:
        general = [
            f'"{name}" MOOC 慕课 在线课程',
            f'"{name}" 中国大学MOOC 学堂在线 华文慕课',
            f'"{name}" 智慧树 超星尔雅 好大学在线',
            f'"{name}" Coursera edX Udacity FutureLearn',
            f'{major} "{name}" 网课 视频教程 在线学习'.strip(),
        ]
    return scoped + general


def build_textbook_queries(course_name: str, major: str = "", language: str = "zh") -> List[str]:
    name = clean_subject(course_name)
    major = (major or "").strip()
    if language == "en":
        return [
            f'"{name}" textbook PDF download',
            f'"{name}" lecture notes filetype:pdf',
            f'{major} "{name}" textbook PDF'.strip(),
        ]
    return [
        f'"{name}" 教材 PDF 电子书',
        f'"{name}" textbook PDF download',
        f'{major} "{name}" 课本 PDF'.strip(),
        f'"{name}" 讲义 filetype:pdf',
    ]


def build_legacy_mooc_queries(course_name: str, major: str = "") -> List[str]:
    """Four provider-scoped queries plus one general query, for the learning path generator."""
    name = clean_subject(course_name)
    major = (major or "").strip()
    return [
        f'"{name}" MOOC 慕课 site:icourse163.org',
        f'"{name}" 在线课程 site:xuetangx.com',
        f'"{name}" {major} course site:coursera.org'.replace("  ", " "),
        f'"{name}" online course site:edx.org',
        f"{name} {major} 网课 在线学习".replace("  ", " "),
    ]
