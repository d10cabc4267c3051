import time

from conftest import make_settings, result
from core.config import get_settings
from core.exceptions import RecordNotFoundError
from main import app
from models import CourseCacheRow, LearningRecordRow
from repository import LearningPathRepository
from schemas.course import CourseEntry, MOOCCourse


def _curriculum_courses():
    return [
        CourseEntry(name="数据结构", description="线性表、树和图"),
        CourseEntry(name="操作系统", description="进程、内存和文件系统"),
    ]


def test_root_reports_running(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Server running"}


def test_curriculum_search_returns_courses_and_record(client, fake_search, fake_llm, db_session):
    fake_search._results = [result("计算机科学与技术 培养方案", "计算机科学与技术专业的核心课程包括数据结构和操作系统等内容")]
    fake_llm._courses = _curriculum_courses()

    resp = client.post("/api/curriculum-search", json={"major": "计算机科学与技术", "language": "zh"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["major"] == "计算机科学与技术"
    assert [c["name"] for c in body["courses"]] == ["数据结构", "操作系统"]
    assert body["description"].startswith("计算机科学与技术专业")
    assert body["recordId"]

    row = db_session.get(LearningRecordRow, body["recordId"])
    assert row is not None and row.votes == 0


def test_curriculum_search_rejects_empty_major(client):
    resp = client.post("/api/curriculum-search", json={"major": "   ", "language": "en"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Major name cannot be empty"}


def test_curriculum_search_without_results_is_429_and_saves_nothing(client, fake_search, fake_llm, db_session):
    fake_search._results = []
    fake_llm._courses = _curriculum_courses()

    resp = client.post("/api/curriculum-search", json={"major": "心理学"})
    assert resp.status_code == 429
    assert "心理学" in resp.json()["error"]
    assert fake_llm.calls == 0
    assert db_session.query(LearningRecordRow).count() == 0


def test_curriculum_search_without_courses_is_404(client, fake_search, fake_llm):
    fake_search._results = [result("Economics curriculum", "Economics majors take micro and macro courses")]
    fake_llm._courses = []

    resp = client.post("/api/curriculum-search", json={"major": "Economics", "language": "en"})
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_curriculum_search_missing_key_is_500(client, fake_search):
    fake_search.api_key = None
    resp = client.post("/api/curriculum-search", json={"major": "Physics", "language": "en"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Brave API key not configured"


def test_malformed_body_is_400(client):
    resp = client.post("/api/curriculum-search", json={"major": ["not", "a", "string"]})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_mooc_search_classifies_and_caches(client, fake_search, db_session):
    fake_search._results = [
        result("数据结构 - 中国大学MOOC", "主讲：陈越 评分 4.8", "https://www.icourse163.org/course/ZJU-93001"),
        result("数据结构 搜索结果", "更多数据结构课程", "https://www.icourse163.org/search.htm?search=x"),
        result("数据结构 教材.pdf", "数据结构 讲义", "https://cs.example.edu/ds/notes.pdf"),
    ]

    resp = client.post("/api/mooc-search", json={"courseName": "数据结构", "major": "计算机", "language": "zh"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["fromCache"] is False
    assert len(body["courses"]) == 1
    assert body["courses"][0]["platform"] == "中国大学MOOC"
    assert body["courses"][0]["rating"] == 4.8
    assert [t["url"] for t in body["textbooks"]] == ["https://cs.example.edu/ds/notes.pdf"]

    assert db_session.query(CourseCacheRow).count() == 1


def test_mooc_search_serves_cache_hit_without_searching(client, fake_search):
    cached = {
        "courseName": "线性代数",
        "major": "数学",
        "language": "zh",
        "moocCourses": [
            {"title": "线性代数", "platform": "学堂在线", "url": "https://www.xuetangx.com/course/THU001"}
        ],
        "textbooks": [],
    }
    assert client.post("/api/course-cache", json=cached).status_code == 200

    resp = client.post("/api/mooc-search", json={"courseName": "线性代数", "major": "数学", "language": "zh"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["fromCache"] is True
    assert body["courses"][0]["url"] == "https://www.xuetangx.com/course/THU001"
    assert fake_search.queries == []


def test_mooc_search_rejects_empty_course_name(client):
    resp = client.post("/api/mooc-search", json={"courseName": "", "language": "en"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Course name cannot be empty"


def test_course_cache_get_miss_and_upsert(client):
    params = {"courseName": "概率论", "major": "统计学", "language": "zh"}
    resp = client.get("/api/course-cache", params=params)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "cache": None}

    first = {
        **params,
        "moocCourses": [{"title": "概率论", "platform": "Coursera", "url": "https://www.coursera.org/learn/prob"}],
        "textbooks": [],
    }
    second = {**params, "moocCourses": [], "textbooks": [
        {"title": "概率论讲义", "url": "https://example.edu/prob.pdf", "source": "example.edu"}
    ]}
    first_id = client.post("/api/course-cache", json=first).json()["cache"]["id"]
    second_cache = client.post("/api/course-cache", json=second).json()["cache"]

    assert second_cache["id"] == first_id
    assert second_cache["moocCourses"] == []
    assert second_cache["textbooks"][0]["url"] == "https://example.edu/prob.pdf"

    fetched = client.get("/api/course-cache", params=params).json()["cache"]
    assert fetched["textbooks"] == second_cache["textbooks"]


def test_course_cache_requires_all_parameters(client):
    resp = client.get("/api/course-cache", params={"courseName": "概率论"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_save_record_is_idempotent_across_course_order(client):
    courses = [
        {"name": "微观经济学", "description": "价格理论"},
        {"name": "宏观经济学", "description": "总量分析"},
    ]
    first = client.post("/api/save-record", json={"major": "经济学", "courses": courses})
    second = client.post("/api/save-record", json={"major": "经济学", "courses": list(reversed(courses))})

    assert first.status_code == 200 and second.status_code == 200
    assert first.json()["existing"] is False
    assert second.json()["existing"] is True
    assert first.json()["recordId"] == second.json()["recordId"]


def test_save_record_accepts_plain_course_names(client):
    resp = client.post("/api/save-record", json={"major": "哲学", "courses": ["逻辑学", "伦理学"]})
    assert resp.status_code == 200
    record = client.get(f"/api/record/{resp.json()['recordId']}").json()["record"]
    assert [c["name"] for c in record["courses"]] == ["逻辑学", "伦理学"]
    assert all(c["description"] == "" for c in record["courses"])


def test_save_record_requires_major_and_courses(client):
    resp = client.post("/api/save-record", json={"major": "哲学", "language": "en"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Major name and course list are required"


def test_vote_increments_by_exactly_one(client):
    record_id = client.post(
        "/api/save-record", json={"major": "化学", "courses": ["无机化学", "有机化学"]}
    ).json()["recordId"]

    assert client.post("/api/vote", json={"recordId": record_id}).json() == {"success": True, "votes": 1}
    assert client.post("/api/vote", json={"recordId": record_id}).json()["votes"] == 2
    assert client.get(f"/api/record/{record_id}").json()["record"]["votes"] == 2


def test_vote_unknown_record_is_404(client):
    resp = client.post("/api/vote", json={"recordId": "does-not-exist"})
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_vote_requires_record_id(client):
    resp = client.post("/api/vote", json={})
    assert resp.status_code == 400


def test_get_unknown_record_is_404(client):
    resp = client.get("/api/record/missing-id", params={"language": "en"})
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Learning path not found"}


def test_records_are_ordered_by_votes(client):
    low = client.post("/api/save-record", json={"major": "物理学", "courses": ["力学", "热学"]}).json()["recordId"]
    high = client.post("/api/save-record", json={"major": "生物学", "courses": ["遗传学", "生态学"]}).json()["recordId"]
    client.post("/api/vote", json={"recordId": high})

    records = client.get("/api/records").json()["records"]
    assert [r["id"] for r in records] == [high, low]
    assert records[0]["votes"] == 1


def test_learning_path_attaches_moocs_to_mined_courses(client, fake_search):
    fake_search._results = [
        result(
            "软件工程 课程体系",
            "核心课程：《程序设计基础》《软件测试技术》",
            "https://www.icourse163.org/course/SE-001",
        )
    ]

    resp = client.post("/api/learning-path", json={"major": "软件工程", "language": "zh"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["major"] == "软件工程"
    assert 5 <= len(body["courses"]) <= 8
    for course in body["courses"]:
        assert course["name"] in course["description"]
        assert 1 <= len(course["moocCourses"]) <= 3


def test_request_id_header_is_echoed(client):
    resp = client.get("/", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"


def test_mooc_platforms_are_known(client, fake_search):
    fake_search._results = [
        result("Machine Learning | Coursera", "Taught by: Andrew Ng", "https://www.coursera.org/learn/machine-learning"),
    ]
    resp = client.post("/api/mooc-search", json={"courseName": "Machine Learning", "language": "en"})
    course = MOOCCourse(**resp.json()["courses"][0])
    assert course.platform == "Coursera"
    assert course.instructor == "Andrew Ng"


def test_record_fetch_times_out_with_408_and_fresh_session_per_attempt(client, monkeypatch):
    record_id = client.post("/api/save-record", json={"major": "天文学", "courses": ["天体物理", "观测天文"]}).json()["recordId"]
    sessions = []

    def slow_get(self, record_id):
        sessions.append(self.db)
        time.sleep(0.3)
        raise RecordNotFoundError(record_id)

    monkeypatch.setattr(LearningPathRepository, "get", slow_get)
    app.dependency_overrides[get_settings] = lambda: make_settings(record_fetch_timeout=0.05)

    resp = client.get(f"/api/record/{record_id}", params={"language": "en"})
    assert resp.status_code == 408
    assert resp.json() == {"success": False, "error": "Connection timed out, please try again later"}

    # Let the abandoned attempts finish before the database is torn down
    time.sleep(0.5)
    assert len(sessions) == 3
    assert len({id(s) for s in sessions}) == 3


def test_course_cache_language_is_normalized(client, fake_search):
    entry = {
        "courseName": "Calculus",
        "major": "Math",
        "language": "EN",
        "moocCourses": [{"title": "Calculus", "platform": "edX", "url": "https://www.edx.org/course/calc"}],
        "textbooks": [],
    }
    assert client.post("/api/course-cache", json=entry).json()["cache"]["language"] == "en"

    cached = client.get("/api/course-cache", params={"courseName": "Calculus", "major": "Math", "language": "en"})
    assert cached.json()["cache"]["moocCourses"][0]["url"] == "https://www.edx.org/course/calc"

    resp = client.post("/api/mooc-search", json={"courseName": "Calculus", "major": "Math", "language": "en"})
    assert resp.json()["fromCache"] is True
    assert fake_search.queries == []
