"""User-facing error messages in Chinese and English.

Routes pick the message in the caller's language; unknown languages fall back to Chinese.
"""
from __future__ import annotations

from typing import Dict

DEFAULT_LANGUAGE = "zh"
SUPPORTED_LANGUAGES = ("zh", "en")

MESSAGES: Dict[str, Dict[str, str]] = {
    "empty_major": {
        "zh": "专业名称不能为空",
        "en": "Major name cannot be empty",
    },
    "empty_course_name": {
        "zh": "课程名称不能为空",
        "en": "Course name cannot be empty",
    },
    "brave_key_missing": {
        "zh": "Brave API密钥未配置",
        "en": "Brave API key not configured",
    },
    "llm_key_missing": {
        "zh": "SiliconFlow API密钥未配置",
        "en": "SiliconFlow API key not configured",
    },
    "no_search_results": {
        "zh": "由于API速率限制，暂时无法获取\"{major}\"专业的课程信息。请稍等片刻后重试。",
        "en": "Due to API rate limits, unable to retrieve course information for \"{major}\" at the moment. Please try again later.",
    },
    "no_courses_extracted": {
        "zh": "未能从搜索结果中提取到\"{major}\"专业的有效课程信息",
        "en": "Unable to extract valid course information for \"{major}\" from search results",
    },
    "default_major_description": {
        "zh": "{major}专业的核心课程体系，涵盖理论基础和实践应用。",
        "en": "Core curriculum for {major}, covering theoretical foundations and practical applications.",
    },
    "internal_error": {
        "zh": "服务器内部错误，请稍后重试",
        "en": "Internal server error, please try again later",
    },
    "invalid_request": {
        "zh": "请求参数格式错误",
        "en": "Malformed request parameters",
    },
    "missing_parameters": {
        "zh": "缺少必需的参数",
        "en": "Missing required parameters",
    },
    "cache_read_failed": {
        "zh": "获取缓存失败",
        "en": "Failed to read course cache",
    },
    "cache_write_failed": {
        "zh": "保存缓存失败",
        "en": "Failed to save course cache",
    },
    "records_read_failed": {
        "zh": "获取记录失败",
        "en": "Failed to load learning records",
    },
    "record_not_found": {
        "zh": "学习路径不存在",
        "en": "Learning path not found",
    },
    "record_timeout": {
        "zh": "网络连接超时，请稍后重试",
        "en": "Connection timed out, please try again later",
    },
    "record_read_failed": {
        "zh": "网络连接失败，请稍后重试",
        "en": "Connection failed, please try again later",
    },
    "record_id_required": {
        "zh": "记录ID是必需的",
        "en": "Record id is required",
    },
    "vote_failed": {
        "zh": "投票失败",
        "en": "Vote failed",
    },
    "invalid_record": {
        "zh": "专业名称和课程列表是必需的",
        "en": "Major name and course list are required",
    },
    "record_save_failed": {
        "zh": "保存记录失败",
        "en": "Failed to save learning record",
    },
    "learning_path_failed": {
        "zh": "生成学习路径时发生错误，请稍后重试",
        "en": "Failed to generate the learning path, please try again later",
    },
    "learning_path_description": {
        "zh": "{major}专业的完整学习路径，包含核心课程和推荐的在线学习资源。建议按顺序学习，每门课程都有对应的MOOC课程可供选择。",
        "en": "A complete learning path for {major} with core courses and recommended online resources. Take the courses in order; each one links to matching MOOCs.",
    },
    "learning_path_course_description": {
        "zh": "{course}是{major}专业的重要课程，涵盖该领域的核心理论和实践知识。",
        "en": "{course} is a key course of {major}, covering core theory and practice of the field.",
    },
}


def normalize_language(language: str | None) -> str:
    if language and language.lower() in SUPPORTED_LANGUAGES:
        return language.lower()
    return DEFAULT_LANGUAGE


def message(key: str, language: str | None = None, **params: str) -> str:
    """Return the message `key` in `language`, formatted with `params`."""
    texts = MESSAGES[key]
    text = texts.get(normalize_language(language), texts[DEFAULT_LANGUAGE])
    return text.format(**params) if params else text
