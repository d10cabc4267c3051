"""
Classify web search results as MOOC courses, textbooks, or noise.

Each rule is its own predicate; `classify_mooc` / `classify_textbook` chain them.
A result is a MOOC only when its host is a known provider and the URL looks like
a course page; it is a textbook only when the URL points straight at a document.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import quote, urlparse

from schemas.course import MOOCCourse, Textbook
from services.search_client import SearchResult

MOOC_PLATFORMS: Dict[str, str] = {
    "icourse163.org": "中国大学MOOC",
    "xuetangx.com": "学堂在线",
    "coursera.org": "Coursera",
    "edx.org": "edX",
    "udacity.com": "Udacity",
    "udemy.com": "Udemy",
    "bilibili.com": "哔哩哔哩",
    "study.163.com": "网易云课堂",
    "ewant.org": "华文慕课",
    "zhihuishu.com": "智慧树",
    "chaoxing.com": "超星尔雅",
    "cnmooc.org": "好大学在线",
    "futurelearn.com": "FutureLearn",
    "swayam.gov.in": "SWAYAM",
    "france-universite-numerique-mooc.fr": "FUN MOOC",
    "iversity.org": "Iversity",
    "kadenze.com": "Kadenze",
    "canvas.net": "Canvas Network",
    "alison.com": "Alison",
    "skillshare.com": "Skillshare",
    "khanacademy.org": "Khan Academy",
    "ocw.mit.edu": "MIT OpenCourseWare",
}

# Providers whose course pages live under a recognisable path; anything else on
# these hosts (home page, search, news) is not a course.
COURSE_PATH_MARKERS: Dict[str, Tuple[str, ...]] = {
    "icourse163.org": ("/course/", "/learn/"),
    "xuetangx.com": ("/course", "/learn/"),
    "coursera.org": ("/learn/", "/specializations/", "/professional-certificates/"),
    "edx.org": ("/course/", "/learn/"),
    "udacity.com": ("/course/",),
    "zhihuishu.com": ("coursedetail",),
}

DOCUMENT_EXTENSIONS = (".pdf", ".epub", ".djvu")

LISTING_URL_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (r"/search", r"/category", r"/browse", r"/list", r"/tag", r"/subject", r"/directory")
)

DISALLOWED_MOOC_CONTENT = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"招生|录取|考试|报名|学费|\badmissions?\b|\btuition\b",
        r"新闻|资讯|公告|通知|\bnews\b|\bannouncement",
        r"论坛|讨论|问答|\bforum\b",
        r"搜索结果|相关课程|推荐课程|search results|related courses|recommended courses",
    )
)

DISALLOWED_TEXTBOOK_CONTENT = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"搜索结果|相关文档|推荐资料|search results",
        r"广告|招生|培训|考试|\badvertisement\b|\badmissions?\b",
    )
)

INSTRUCTOR_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"(?:讲师|教师|教授|主讲|授课)[：:]\s*([^，。；,;\n]{2,20})",
        r"(?:Instructors?|Professor|Lecturer)[：:]\s*([^，。；,;\n]{2,40})",
        r"Taught by[：:]?\s*([^，。；,;\n]{2,40})",
    )
)

_NUMBER = r"(\d+(?:\.\d+)?)"
RATING_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        rf"(?:评分|评价|星级|\brating\b)[：:]?\s*{_NUMBER}",
        rf"{_NUMBER}\s*分?\s*/\s*5(?![\d.])",
        rf"{_NUMBER}\s*stars?\b",
    )
)


def _hostname(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def _match_domain(url: str) -> Optional[str]:
    host = _hostname(url)
    if not host:
        return None
    for domain in MOOC_PLATFORMS:
        if host == domain or host.endswith("." + domain):
            return domain
    return None


def platform_for_url(url: str) -> Optional[str]:
    """Display name of the provider hosting `url`, or None for unknown hosts."""
    domain = _match_domain(url)
    return MOOC_PLATFORMS[domain] if domain else None


def has_course_path(url: str) -> bool:
    domain = _match_domain(url)
    markers = COURSE_PATH_MARKERS.get(domain or "")
    if not markers:
        return True
    lowered = url.lower()
    return any(marker in lowered for marker in markers)


def is_listing_url(url: str) -> bool:
    path = urlparse(url).path if url else ""
    return any(pattern.search(path) for pattern in LISTING_URL_PATTERNS)


def has_disallowed_content(text: str) -> bool:
    return any(pattern.search(text) for pattern in DISALLOWED_MOOC_CONTENT)


def has_disallowed_textbook_content(text: str) -> bool:
    return any(pattern.search(text) for pattern in DISALLOWED_TEXTBOOK_CONTENT)


def subject_keywords(subject: str) -> List[str]:
    """Whitespace tokens of the subject longer than one character."""
    return [word for word in subject.lower().split() if len(word) > 1]


def has_subject_keywords(text: str, subject: str) -> bool:
    """True if `text` mentions any significant keyword of `subject`.

    A subject without significant keywords places no constraint.
    """
    keywords = subject_keywords(subject)
    if not keywords:
        return True
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def is_document_url(url: str) -> bool:
    return url.lower().endswith(DOCUMENT_EXTENSIONS)


def extract_instructor(description: str) -> Optional[str]:
    for pattern in INSTRUCTOR_PATTERNS:
        match = pattern.search(description or "")
        if match:
            name = match.group(1).strip()
            if name:
                return name
    return None


def extract_rating(description: str) -> Optional[float]:
    """Rating out of five found in `description`; values outside [0, 5] are dropped."""
    for pattern in RATING_PATTERNS:
        match = pattern.search(description or "")
        if match:
            rating = float(match.group(1))
            return rating if 0 <= rating <= 5 else None
    return None


def clean_mooc_title(title: str) -> str:
    title = re.sub(r"^\[.*?\]\s*", "", title)
    title = re.sub(r"\s*[-_|]\s*[^-_|]*MOOC.*$", "", title, flags=re.IGNORECASE)
    return title.strip()


def clean_textbook_title(title: str) -> str:
    title = re.sub(r"\.(?:pdf|epub|djvu)$", "", title.strip(), flags=re.IGNORECASE)
    return re.sub(r"^\[.*?\]\s*", "", title).strip()


def extract_domain(url: str) -> str:
    return _hostname(url) or "Unknown"


def classify_mooc(result: SearchResult, subject: str, only_course_paths: bool = False) -> Optional[MOOCCourse]:
    """MOOCCourse for a course page on a known provider, else None.

    With `only_course_paths` the provider must also be one whose course pages
    have a recognisable path.
    """
    url, title, description = result.url, result.title, result.description
    platform = platform_for_url(url)
    if platform is None or not title:
        return None
    if only_course_paths and _match_domain(url) not in COURSE_PATH_MARKERS:
        return None
    text = f"{title} {description}"
    if not has_course_path(url) or is_listing_url(url):
        return None
    if has_disallowed_content(text) or not has_subject_keywords(text, subject):
        return None
    return MOOCCourse(
        title=clean_mooc_title(title) or title,
        platform=platform,
        url=url,
        instructor=extract_instructor(description),
        rating=extract_rating(description),
    )


def classify_textbook(result: SearchResult, subject: str) -> Optional[Textbook]:
    url, title, description = result.url, result.title, result.description
    if not url or not is_document_url(url):
        return None
    text = f"{title} {description}"
    if has_disallowed_textbook_content(text) or not has_subject_keywords(text, subject):
        return None
    return Textbook(
        title=clean_textbook_title(title) or extract_domain(url),
        url=url,
        source=extract_domain(url),
    )


def classify(result: SearchResult, subject: str) -> Union[MOOCCourse, Textbook, None]:
    """MOOCCourse, Textbook, or None when the result is neither."""
    return classify_mooc(result, subject) or classify_textbook(result, subject)


def classify_moocs(
    results: Sequence[SearchResult], subject: str, only_course_paths: bool = False
) -> List[MOOCCourse]:
    courses = (classify_mooc(r, subject, only_course_paths) for r in results)
    return [course for course in courses if course is not None]


def classify_textbooks(results: Sequence[SearchResult], subject: str) -> List[Textbook]:
    return [book for book in (classify_textbook(r, subject) for r in results) if book is not None]


def search_links(course_name: str, major: str = "") -> List[MOOCCourse]:
    """Provider search pages offered when no concrete MOOC was found."""
    course = quote(course_name)
    coursera_query = f"{course}%20{quote(major)}" if major else course
    return [
        MOOCCourse(
            title=f"在中国大学MOOC搜索\"{course_name}\"",
            platform=MOOC_PLATFORMS["icourse163.org"],
            url=f"https://www.icourse163.org/search.htm?search={course}",
            instructor="多位知名教授",
        ),
        MOOCCourse(
            title=f"在学堂在线搜索\"{course_name}\"",
            platform=MOOC_PLATFORMS["xuetangx.com"],
            url=f"https://www.xuetangx.com/search?query={course}",
            instructor="清华北大等名校教师",
        ),
        MOOCCourse(
            title=f"Search \"{course_name}\" on Coursera",
            platform=MOOC_PLATFORMS["coursera.org"],
            url=f"https://www.coursera.org/search?query={coursera_query}",
            instructor="University Professors",
        ),
    ]
