"""
Regex-based course-name mining from search snippets.

The pipeline is: match candidate phrases -> clean them -> keep the ones that pass
`is_valid_course_name`. Every predicate is a small function so it can be tested
on its own. The filter favours precision: missing a real course is acceptable,
letting an unrelated phrase into a curriculum is not.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Pattern, Sequence, Set

MIN_NAME_LENGTH = 3
MAX_CANDIDATE_LENGTH = 20
MAX_NAME_LENGTH = 25

# Characters that end a phrase in Chinese snippets
_SEP = r'\s，。；！？、：:,;|·\n《》“”"「」()（）'

DOMAIN_KEYWORDS_ZH = (
    "数学", "物理", "化学", "生物", "计算机", "编程", "算法", "数据结构", "机器学习",
    "人工智能", "统计", "概率", "线性代数", "微积分", "离散数学", "操作系统", "数据库",
    "网络", "软件工程", "心理学", "经济学", "管理学", "会计", "金融", "市场营销", "法学",
    "哲学", "文学", "历史", "政治", "社会学", "教育学", "医学", "工程", "建筑", "设计",
    "艺术", "语言学",
)

DOMAIN_KEYWORDS_EN = (
    "mathematics", "math", "physics", "chemistry", "biology", "computer science", "computing",
    "programming", "algorithms", "data structures", "machine learning", "artificial intelligence",
    "statistics", "probability", "linear algebra", "calculus", "discrete mathematics",
    "operating systems", "databases", "networks", "software engineering", "psychology",
    "economics", "management", "accounting", "finance", "marketing", "law", "philosophy",
    "literature", "history", "politics", "sociology", "education", "medicine", "engineering",
    "architecture", "design", "linguistics",
)

COURSE_SUFFIXES_ZH = (
    "基础", "概论", "原理", "导论", "入门", "进阶", "高级", "实践", "实验", "项目", "设计",
    "分析", "理论", "方法", "技术", "系统", "应用",
)

COURSE_SUFFIXES_EN = (
    "survey", "introduction", "principles", "practicum", "fundamentals", "foundations",
    "theory", "methods", "analysis", "design", "systems", "laboratory", "seminar", "workshop",
)


def _alternation(words: Iterable[str]) -> str:
    # Longest first so "离散数学" wins over "数学"
    return "|".join(re.escape(w) for w in sorted(set(words), key=len, reverse=True))


QUOTED_PATTERN = re.compile(r"[《“\"「]([^》”\"」]{3,20})[》”\"」]")
DOMAIN_PATTERN_ZH = re.compile(
    rf"([^{_SEP}]{{2,15}}(?:{_alternation(DOMAIN_KEYWORDS_ZH)})[^{_SEP}]{{0,10}})"
)
DOMAIN_PATTERN_EN = re.compile(
    rf"\b((?:[A-Za-z]+ ){{0,2}}(?:{_alternation(DOMAIN_KEYWORDS_EN)})(?: [A-Z][a-z]+){{0,2}})\b",
    re.IGNORECASE,
)
SUFFIX_PATTERN_ZH = re.compile(rf"([^{_SEP}]{{2,15}}(?:{_alternation(COURSE_SUFFIXES_ZH)}))")
SUFFIX_PATTERN_EN = re.compile(
    rf"\b((?:[A-Z][A-Za-z]+ ){{1,3}}(?:{_alternation(COURSE_SUFFIXES_EN)})"
    r"|Introduction to(?: [A-Z][A-Za-z]+){1,3})\b",
    re.IGNORECASE,
)

CANDIDATE_PATTERNS: Sequence[Pattern[str]] = (
    QUOTED_PATTERN,
    DOMAIN_PATTERN_ZH,
    DOMAIN_PATTERN_EN,
    SUFFIX_PATTERN_ZH,
    SUFFIX_PATTERN_EN,
)

NUMERIC_PATTERN = re.compile(r"^[0-9]+$")
PURE_LATIN_PATTERN = re.compile(r"^[a-zA-Z]+$")
CJK_PATTERN = re.compile(r"[\u4e00-\u9fff]")

INSTITUTION_PATTERN = re.compile(
    r"专业|学院|大学|学校|系部|招生|就业|毕业|学位|证书"
    r"|\b(?:university|college|school|admissions?|degree|certificate|graduat\w*)\b",
    re.IGNORECASE,
)
CONTACT_PATTERN = re.compile(
    r"网站|链接|地址|电话|邮箱|QQ|微信|\b(?:website|phone|e-?mail|contact)\b|https?://|www\.",
    re.IGNORECASE,
)
DATE_PLACE_PATTERN = re.compile(r"年|月|日|时间|地点")
PRICE_PATTERN = re.compile(
    r"价格|费用|收费|免费|优惠|\b(?:price|tuition|fees?|free|discount)\b|[$¥￥]",
    re.IGNORECASE,
)
CALL_TO_ACTION_PATTERN = re.compile(
    r"点击|查看|详情|更多|登录|注册|\b(?:click|login|log in|sign up|register|read more|learn more)\b",
    re.IGNORECASE,
)

BLOCKLIST: Sequence[Pattern[str]] = (
    INSTITUTION_PATTERN,
    CONTACT_PATTERN,
    DATE_PLACE_PATTERN,
    PRICE_PATTERN,
    CALL_TO_ACTION_PATTERN,
)

ACADEMIC_WORD_PATTERN = re.compile(
    r"math|physics|chemistry|biology|computer|programming|algorithm|data|machine|learning|"
    r"algebra|calculus|probability|software|network|intelligence|statistics|psychology|economics|management|accounting|finance|marketing|law|philosophy|"
    r"literature|history|politics|sociology|education|medicine|engineering|architecture|design|art",
    re.IGNORECASE,
)


def clean_candidate(match: str) -> str:
    return re.sub(r"[《》“”\"「」]", "", match).strip()


def is_numeric(name: str) -> bool:
    return bool(NUMERIC_PATTERN.match(name))


def is_pure_latin(name: str) -> bool:
    return bool(PURE_LATIN_PATTERN.match(name))


def is_blocklisted(name: str) -> bool:
    return any(pattern.search(name) for pattern in BLOCKLIST)


def has_valid_length(name: str) -> bool:
    return MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH


def has_academic_content(name: str) -> bool:
    return bool(CJK_PATTERN.search(name) or ACADEMIC_WORD_PATTERN.search(name))


def is_valid_course_name(name: str) -> bool:
    """True when `name` looks like a real course title."""
    return (
        not is_numeric(name)
        and not is_pure_latin(name)
        and not is_blocklisted(name)
        and has_valid_length(name)
        and has_academic_content(name)
    )


def find_candidates(text: str) -> List[str]:
    return [m for pattern in CANDIDATE_PATTERNS for m in pattern.findall(text or "")]


def extract_course_names(text: str, subject_hint: str = "") -> Set[str]:
    """Candidate course names mined from `text`.

    `subject_hint` is the major being searched; the major itself is never
    returned as one of its own courses.
    """
    hint = (subject_hint or "").strip().lower()
    cleaned = (clean_candidate(m) for m in find_candidates(text))
    return {
        name
        for name in cleaned
        if MIN_NAME_LENGTH <= len(name) <= MAX_CANDIDATE_LENGTH
        and name.lower() != hint
        and is_valid_course_name(name)
    }


def extract_major_description(results: Sequence, major: str) -> str:
    """First snippet that mentions the major and says something, cut to 200 chars."""
    for result in results:
        text = getattr(result, "description", "") or getattr(result, "title", "") or ""
        if major in text and len(text) > 20:
            return text[:200] + ("..." if len(text) > 200 else "")
    return ""


def default_courses(major: str) -> List[str]:
    """Fallback curriculum when too few course names could be mined."""
    major_lower = major.lower()

    if any(k in major_lower for k in ("计算机", "软件", "computer")):
        return [
            "计算机科学导论", "程序设计基础", "数据结构与算法", "计算机组成原理",
            "操作系统", "数据库系统", "计算机网络", "软件工程",
        ]
    if "数据" in major_lower or "data" in major_lower:
        return ["数据科学导论", "统计学基础", "Python编程", "数据挖掘", "机器学习", "数据可视化", "大数据技术", "深度学习"]
    if "心理" in major_lower or "psychology" in major_lower:
        return ["普通心理学", "发展心理学", "社会心理学", "认知心理学", "心理统计学", "实验心理学", "心理测量学", "异常心理学"]
    if "经济" in major_lower or "economics" in major_lower:
        return ["微观经济学", "宏观经济学", "计量经济学", "货币银行学", "国际经济学", "发展经济学", "产业经济学", "经济史"]
    return [
        f"{major}概论", f"{major}基础理论", f"{major}研究方法", f"{major}实践应用",
        f"{major}前沿发展", f"{major}案例分析", f"{major}专业技能", f"{major}综合实践",
    ]
