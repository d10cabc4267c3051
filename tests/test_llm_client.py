import pytest

from conftest import make_settings
from core.exceptions import RateLimitError, UpstreamRequestError, UpstreamServerError
from services.llm_client import SiliconFlowClient, build_system_prompt, parse_course_array, strip_code_fences


def test_plain_json_array_is_parsed():
    courses = parse_course_array('[{"name": "数据结构", "description": "线性表与树"}]')
    assert [(c.name, c.description) for c in courses] == [("数据结构", "线性表与树")]


def test_code_fences_are_stripped():
    assert strip_code_fences('```json\n[1, 2]\n```') == "[1, 2]"
    courses = parse_course_array('```json\n[{"name": "Calculus I", "description": "Limits"}]\n```')
    assert [c.name for c in courses] == ["Calculus I"]


def test_array_embedded_in_prose_is_found():
    reply = 'Here are the courses:\n[{"name": "Microeconomics", "description": "Markets"}]\nHope this helps.'
    assert [c.name for c in parse_course_array(reply)] == ["Microeconomics"]


def test_unusable_replies_give_empty_list():
    assert parse_course_array(None) == []
    assert parse_course_array("") == []
    assert parse_course_array("no json here") == []
    assert parse_course_array('{"name": "not an array"}') == []


def test_malformed_items_are_skipped_and_duplicates_dropped():
    reply = """[
        {"name": "A", "description": "too short"},
        {"name": "Algorithms", "description": ""},
        {"name": "Algorithms", "description": "Sorting"},
        {"name": "algorithms", "description": "Duplicate"},
        {"name": 42, "description": "Not a string"},
        "Operating Systems",
        {"name": "Databases", "description": "SQL"}
    ]"""
    assert [c.name for c in parse_course_array(reply)] == ["Algorithms", "Databases"]


def test_at_most_twelve_courses():
    items = ",".join(f'{{"name": "Course {i}", "description": "d"}}' for i in range(20))
    assert len(parse_course_array(f"[{items}]")) == 12


def test_prompts_are_bilingual():
    assert "Physics" in build_system_prompt("Physics", "en")
    assert "物理学专业" in build_system_prompt("物理学", "zh")


class ScriptedClient(SiliconFlowClient):
    """Replays a list of outcomes instead of calling the API."""

    def __init__(self, outcomes):
        super().__init__(make_settings())
        self.outcomes = list(outcomes)
        self.calls = 0

    async def _complete(self, system_prompt, user_prompt):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.mark.asyncio
async def test_rate_limit_is_retried():
    client = ScriptedClient([
        RateLimitError("HTTP 429", 429),
        '[{"name": "Genetics", "description": "Heredity"}]',
    ])
    courses = await client.extract_courses_with_ai("text", "Biology", "en")
    assert [c.name for c in courses] == ["Genetics"]
    assert client.calls == 2


@pytest.mark.asyncio
async def test_server_error_is_not_retried():
    client = ScriptedClient([UpstreamServerError("HTTP 503", 503), "[]"])
    assert await client.extract_courses_with_ai("text", "Biology", "en") == []
    assert client.calls == 1


@pytest.mark.asyncio
async def test_auth_error_gives_empty_list():
    client = ScriptedClient([UpstreamRequestError("HTTP 401", 401)])
    assert await client.extract_courses_with_ai("text", "Biology", "en") == []
    assert client.calls == 1


@pytest.mark.asyncio
async def test_exhausted_retries_give_empty_list():
    client = ScriptedClient([RateLimitError("HTTP 429", 429)] * 4)
    assert await client.extract_courses_with_ai("text", "Biology", "en") == []
    assert client.calls == 4
