from core.messages import message, normalize_language
from services.query_builder import (
    build_curriculum_queries,
    build_legacy_mooc_queries,
    build_mooc_queries,
    build_textbook_queries,
    clean_subject,
)


def test_clean_subject_drops_brackets_and_quotes():
    assert clean_subject("《数据结构》（第二版）") == "数据结构第二版"
    assert clean_subject('"Linear Algebra"') == "Linear Algebra"


def test_curriculum_queries_follow_language():
    zh = build_curriculum_queries("心理学", "zh")
    en = build_curriculum_queries("Psychology", "en")
    assert len(zh) == len(en) == 4
    assert all("心理学" in q for q in zh)
    assert all(q.startswith("Psychology") for q in en)


def test_mooc_queries_start_with_provider_scoped_searches():
    queries = build_mooc_queries("《数据结构》", "计算机", "zh")
    assert [q.split("site:")[-1] for q in queries[:4]] == [
        "icourse163.org", "xuetangx.com", "coursera.org", "edx.org",
    ]
    assert all("《" not in q for q in queries)
    assert not any("site:" in q for q in queries[4:])


def test_queries_without_major_have_no_double_spaces():
    for query in build_mooc_queries("Calculus", "", "en") + build_legacy_mooc_queries("Calculus"):
        assert "  " not in query
        assert query == query.strip()


def test_textbook_queries_mention_pdf():
    assert all("PDF" in q or "pdf" in q for q in build_textbook_queries("Calculus", "Math", "en"))


def test_messages_fall_back_to_chinese():
    assert normalize_language("EN") == "en"
    assert normalize_language("fr") == "zh"
    assert normalize_language(None) == "zh"
    assert message("no_search_results", "en", major="Law").count("Law") == 1
    assert message("empty_major", "de") == "专业名称不能为空"
