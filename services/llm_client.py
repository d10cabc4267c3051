"""
SiliconFlow chat-completion client used to pull a course list out of search text.

This service provides:
- Bilingual system prompts demanding a bare JSON array of {name, description}
- Retries (shared RetryPolicy) on transport errors, timeouts and HTTP 429
- Tolerant parsing: code fences are stripped and the first [...] span is tried
  when the whole reply is not valid JSON
An empty list is the only failure signal; callers decide what "no courses" means.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional

import aiohttp

from core.config import Settings
from core.exceptions import UpstreamError, UpstreamRequestError, UpstreamTimeoutError, error_for_status
from schemas.course import CourseEntry
from services.retry_policy import RetryPolicy, is_retryable

logger = logging.getLogger(__name__)

MAX_COURSES = 12
MAX_PROMPT_CHARS = 2500

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")
_ARRAY_SPAN = re.compile(r"\[[\s\S]*\]")


def _llm_retryable(exc: BaseException) -> bool:
    # 5xx from the model API is reported as an empty result rather than retried
    if isinstance(exc, UpstreamError) and not isinstance(exc, UpstreamTimeoutError):
        return exc.status == 429
    return is_retryable(exc)


def build_system_prompt(major: str, language: str) -> str:
    if language == "en":
        return f"""You are a professional educational curriculum analyst. Please extract the core course list for {major} major from the given search results.

Requirements:
1. Extract only real course names, no irrelevant information
2. Course names should be accurate and concise
3. Provide brief descriptions for each course
4. Must return pure JSON format, no markdown tags or code blocks
5. Format: [{{"name": "Course Name", "description": "Course Description"}}]
6. Maximum {MAX_COURSES} courses
7. Filter out duplicate courses

Important: Return JSON array directly, do not wrap with ```json, do not add any explanatory text."""
    return f"""你是一个专业的教育课程分析专家。请从给定的搜索结果中提取{major}专业的核心课程列表。

要求：
1. 只提取真正的课程名称，不要包含无关信息
2. 课程名称要准确、简洁
3. 为每门课程提供简短的描述
4. 必须返回纯JSON格式，不要包含任何markdown标记或代码块
5. 格式：[{{"name": "课程名称", "description": "课程描述"}}]
6. 最多返回{MAX_COURSES}门课程
7. 过滤掉重复的课程

重要：直接返回JSON数组，不要用```json包围，不要添加任何解释文字。"""


def build_user_prompt(search_text: str, major: str, language: str) -> str:
    excerpt = search_text[:MAX_PROMPT_CHARS]
    if language == "en":
        return f"Please extract the course list for {major} major from the following search results:\n\n{excerpt}"
    return f"请从以下搜索结果中提取{major}专业的课程列表：\n\n{excerpt}"


def strip_code_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = _FENCE_END.sub("", _FENCE_START.sub("", content))
    return content.strip()


def _valid_courses(items: List[Any]) -> List[CourseEntry]:
    courses: List[CourseEntry] = []
    seen = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        name, description = item.get("name"), item.get("description")
        if not isinstance(name, str) or not isinstance(description, str):
            continue
        name = name.strip()
        if not name or not description or not 1 < len(name) < 50:
            continue
        if name.lower() in seen:
            continue
        seen.add(name.lower())
        courses.append(CourseEntry(name=name, description=description))
        if len(courses) >= MAX_COURSES:
            break
    return courses


def parse_course_array(content: Optional[str]) -> List[CourseEntry]:
    """Parse the model reply into at most 12 well-formed courses; [] on failure."""
    if not content:
        return []
    content = strip_code_fences(content)

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        match = _ARRAY_SPAN.search(content)
        if not match:
            logger.warning("llm_reply_unparseable", extra={"error": content[:200]})
            return []
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.warning("llm_reply_unparseable", extra={"error": str(e)})
            return []

    if not isinstance(parsed, list):
        logger.warning("llm_reply_not_array", extra={"error_type": type(parsed).__name__})
        return []
    return _valid_courses(parsed)


class SiliconFlowClient:
    def __init__(
        self,
        settings: Settings,
        policy: Optional[RetryPolicy] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.settings = settings
        self.api_key = settings.siliconflow_api_key
        self.base_url = settings.llm_api_base.rstrip("/")
        self.model = settings.llm_model
        self.timeout = settings.llm_timeout
        self.policy = replace(policy or settings.llm_policy(), retryable=_llm_retryable)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "SiliconFlowClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def aclose(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    def _request_body(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": 0.1,
            "max_tokens": 1500,
            "stream": False,
        }

    async def _complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        """One chat-completion attempt; returns the reply text (None when empty)."""
        session = self._get_session()
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with session.post(
                f"{self.base_url}/chat/completions",
                json=self._request_body(system_prompt, user_prompt),
                headers=headers,
                timeout=timeout,
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error("llm_api_error", extra={"status": response.status, "error": error_text[:200]})
                    raise error_for_status(response.status, error_text)
                data = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeoutError(f"LLM request timed out after {self.timeout}s") from e

        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None

    async def extract_courses_with_ai(self, search_text: str, major: str, language: str = "zh") -> List[CourseEntry]:
        """Ask the model for the major's core courses. Never raises for upstream trouble."""
        system_prompt = build_system_prompt(major, language)
        user_prompt = build_user_prompt(search_text, major, language)

        content: Optional[str] = None
        try:
            async for attempt in self.policy.retrying():
                with attempt:
                    content = await self._complete(system_prompt, user_prompt)
        except UpstreamRequestError as e:
            if e.status == 401:
                logger.error("llm_api_unauthorized", extra={"status": e.status})
            else:
                logger.error("llm_request_rejected", extra={"status": e.status, "error": str(e)})
            return []
        except UpstreamError as e:
            logger.error("llm_call_failed", extra={"status": e.status, "error": str(e), "error_type": type(e).__name__})
            return []
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error("llm_call_failed", extra={"error": str(e), "error_type": type(e).__name__})
            return []

        if not content:
            logger.error("llm_reply_empty", extra={"major": major})
            return []

        courses = parse_course_array(content)
        logger.info("llm_courses_extracted", extra={"major": major, "courses": len(courses)})
        return courses
