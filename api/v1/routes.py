"""
Learning path API routes.

Design choices:
- The router does not hardcode a prefix; main.py mounts it using settings.api_v1_prefix.
- HTTP clients and repositories are FastAPI dependencies built per request, so no
  client or database session is shared across requests and tests can override them.
- Error bodies are rendered by the handlers in main.py as {"success": false, "error": ...}.
"""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from core.config import Settings, get_settings
from core.database import get_db, get_session_factory
from core.exceptions import ConfigurationError, NoCoursesExtractedError, NoSearchResultsError, RecordNotFoundError
from core.logging_config import get_request_id, set_request_id
from core.messages import message, normalize_language
from repository import CourseCacheRepository, LearningPathRepository
from schemas.api import (
    CourseCacheResponse,
    CourseCacheWriteRequest,
    CurriculumSearchRequest,
    CurriculumSearchResponse,
    LearningPathRequest,
    LearningPathResponse,
    MoocSearchRequest,
    MoocSearchResponse,
    RecordResponse,
    RecordsResponse,
    SaveRecordRequest,
    SaveRecordResponse,
    VoteRequest,
    VoteResponse,
)
from schemas.course import normalize_courses
from services.curriculum_service import search_curriculum
from services.learning_path_service import generate_learning_path
from services.llm_client import SiliconFlowClient
from services.mooc_service import search_mooc
from services.search_client import BraveSearchClient

router = APIRouter(tags=["learning-path"])  # mounted under /api by main.py
logger = logging.getLogger("api")

TOP_RECORDS_LIMIT = 20


# Dependencies
async def get_search_client(settings: Settings = Depends(get_settings)) -> AsyncIterator[BraveSearchClient]:
    async with BraveSearchClient(settings) as client:
        yield client


async def get_llm_client(settings: Settings = Depends(get_settings)) -> AsyncIterator[SiliconFlowClient]:
    async with SiliconFlowClient(settings) as client:
        yield client


def get_learning_path_repository(db: Session = Depends(get_db)) -> LearningPathRepository:
    return LearningPathRepository(db)


def get_course_cache_repository(db: Session = Depends(get_db)) -> CourseCacheRepository:
    return CourseCacheRepository(db)


def _load_record(session_factory: sessionmaker, record_id: str):
    db = session_factory()
    try:
        return LearningPathRepository(db).get(record_id)
    finally:
        db.close()


def _current_request_id() -> str:
    req_id = get_request_id()
    if not req_id:
        req_id = str(uuid4())
        set_request_id(req_id)
    return req_id


@router.post("/curriculum-search", response_model=CurriculumSearchResponse)
async def post_curriculum_search(
    request: CurriculumSearchRequest,
    search_client: BraveSearchClient = Depends(get_search_client),
    llm_client: SiliconFlowClient = Depends(get_llm_client),
    records: LearningPathRepository = Depends(get_learning_path_repository),
) -> CurriculumSearchResponse:
    """Find the core courses of a major and save them as a learning record."""
    req_id = _current_request_id()
    language = normalize_language(request.language)
    major = (request.major or "").strip()
    if not major:
        raise HTTPException(status_code=400, detail=message("empty_major", language))

    logger.info("curriculum_search_request", extra={"request_id": req_id, "major": major, "language": language})
    try:
        result = await search_curriculum(major, language, search_client, llm_client, records)
    except ConfigurationError as e:
        logger.error("curriculum_search_misconfigured", extra={"request_id": req_id, "error": str(e)})
        raise HTTPException(status_code=500, detail=message(e.message_key, language))
    except NoSearchResultsError:
        raise HTTPException(status_code=429, detail=message("no_search_results", language, major=major))
    except NoCoursesExtractedError:
        raise HTTPException(status_code=404, detail=message("no_courses_extracted", language, major=major))
    except Exception as e:
        logger.error("curriculum_search_failed", extra={
            "request_id": req_id,
            "error": str(e),
            "error_type": type(e).__name__,
        })
        raise HTTPException(status_code=500, detail=message("internal_error", language))

    return CurriculumSearchResponse(
        major=result.major,
        description=result.description,
        courses=result.courses,
        record_id=result.record_id,
    )


@router.post("/mooc-search", response_model=MoocSearchResponse)
async def post_mooc_search(
    request: MoocSearchRequest,
    search_client: BraveSearchClient = Depends(get_search_client),
    cache: CourseCacheRepository = Depends(get_course_cache_repository),
) -> MoocSearchResponse:
    """Free MOOCs and textbook PDFs for one course, served from the cache when possible."""
    req_id = _current_request_id()
    language = normalize_language(request.language)
    course_name = (request.course_name or "").strip()
    major = (request.major or "").strip()
    if not course_name:
        raise HTTPException(status_code=400, detail=message("empty_course_name", language))

    try:
        result = await search_mooc(course_name, major, language, search_client, cache)
    except ConfigurationError as e:
        logger.error("mooc_search_misconfigured", extra={"request_id": req_id, "error": str(e)})
        raise HTTPException(status_code=500, detail=message(e.message_key, language))
    except Exception as e:
        logger.error("mooc_search_failed", extra={
            "request_id": req_id,
            "course_name": course_name,
            "error": str(e),
            "error_type": type(e).__name__,
        })
        raise HTTPException(status_code=500, detail=message("internal_error", language))

    return MoocSearchResponse(
        course_name=result.course_name,
        courses=result.courses,
        textbooks=result.textbooks,
        from_cache=result.from_cache,
    )


@router.post("/learning-path", response_model=LearningPathResponse)
async def post_learning_path(
    request: LearningPathRequest,
    search_client: BraveSearchClient = Depends(get_search_client),
) -> LearningPathResponse:
    """Regex-mined curriculum with up to three MOOCs per course; no LLM involved."""
    req_id = _current_request_id()
    language = normalize_language(request.language)
    major = (request.major or "").strip()
    if not major:
        raise HTTPException(status_code=400, detail=message("empty_major", language))

    try:
        return await generate_learning_path(major, language, search_client)
    except ConfigurationError as e:
        logger.error("learning_path_misconfigured", extra={"request_id": req_id, "error": str(e)})
        raise HTTPException(status_code=500, detail=message(e.message_key, language))
    except Exception as e:
        logger.error("learning_path_failed", extra={
            "request_id": req_id,
            "major": major,
            "error": str(e),
            "error_type": type(e).__name__,
        })
        raise HTTPException(status_code=500, detail=message("learning_path_failed", language))


@router.get("/course-cache", response_model=CourseCacheResponse)
def get_course_cache(
    course_name: Optional[str] = Query(None, alias="courseName"),
    major: Optional[str] = Query(None),
    language: Optional[str] = Query(None),
    cache: CourseCacheRepository = Depends(get_course_cache_repository),
) -> CourseCacheResponse:
    req_id = _current_request_id()
    lang = normalize_language(language)
    if not course_name or not major or not language:
        raise HTTPException(status_code=400, detail=message("missing_parameters", lang))

    try:
        entry = cache.get(course_name, major, lang)
    except SQLAlchemyError as e:
        logger.error("course_cache_read_failed", extra={"request_id": req_id, "course_name": course_name, "error": str(e)})
        raise HTTPException(status_code=500, detail=message("cache_read_failed", lang))

    return CourseCacheResponse(success=True, cache=entry)


@router.post("/course-cache", response_model=CourseCacheResponse)
def post_course_cache(
    request: CourseCacheWriteRequest,
    cache: CourseCacheRepository = Depends(get_course_cache_repository),
) -> CourseCacheResponse:
    req_id = _current_request_id()
    lang = normalize_language(request.language)
    if not request.course_name or not request.major or not request.language:
        raise HTTPException(status_code=400, detail=message("missing_parameters", lang))

    try:
        entry = cache.upsert(
            request.course_name,
            request.major,
            lang,
            request.mooc_courses or [],
            request.textbooks or [],
        )
    except SQLAlchemyError as e:
        logger.error("course_cache_write_failed", extra={
            "request_id": req_id,
            "course_name": request.course_name,
            "error": str(e),
        })
        raise HTTPException(status_code=500, detail=message("cache_write_failed", lang))

    return CourseCacheResponse(success=True, cache=entry)


@router.get("/records", response_model=RecordsResponse)
def get_records(
    language: Optional[str] = Query(None),
    records: LearningPathRepository = Depends(get_learning_path_repository),
) -> RecordsResponse:
    """Most voted learning paths, newest first among equal votes."""
    req_id = _current_request_id()
    try:
        top = records.list_top(limit=TOP_RECORDS_LIMIT)
    except SQLAlchemyError as e:
        logger.error("records_read_failed", extra={"request_id": req_id, "error": str(e)})
        raise HTTPException(status_code=500, detail=message("records_read_failed", language))
    return RecordsResponse(success=True, records=top)


@router.get("/record/{record_id}", response_model=RecordResponse)
async def get_record(
    record_id: str,
    language: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings),
    session_factory: sessionmaker = Depends(get_session_factory),
) -> RecordResponse:
    """A single learning path, used by the share page.

    Every attempt opens its own session: a timed-out attempt keeps running in
    its worker thread and must not share a Session with the next one.
    """
    req_id = _current_request_id()
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, settings.record_fetch_retries)),
        wait=wait_fixed(settings.record_fetch_retry_delay),
        retry=retry_if_exception_type(asyncio.TimeoutError),
        reraise=True,
    )
    try:
        async for attempt in retrying:
            with attempt:
                record = await asyncio.wait_for(
                    run_in_threadpool(_load_record, session_factory, record_id),
                    timeout=settings.record_fetch_timeout,
                )
    except RecordNotFoundError:
        logger.info("record_not_found", extra={"request_id": req_id, "record_id": record_id})
        raise HTTPException(status_code=404, detail=message("record_not_found", language))
    except asyncio.TimeoutError:
        logger.error("record_fetch_timeout", extra={"request_id": req_id, "record_id": record_id})
        raise HTTPException(status_code=408, detail=message("record_timeout", language))
    except Exception as e:
        logger.error("record_fetch_failed", extra={
            "request_id": req_id,
            "record_id": record_id,
            "error": str(e),
            "error_type": type(e).__name__,
        })
        raise HTTPException(status_code=500, detail=message("record_read_failed", language))

    return RecordResponse(success=True, record=record)


@router.post("/vote", response_model=VoteResponse)
def post_vote(
    request: VoteRequest,
    records: LearningPathRepository = Depends(get_learning_path_repository),
) -> VoteResponse:
    req_id = _current_request_id()
    language = normalize_language(request.language)
    if not request.record_id:
        raise HTTPException(status_code=400, detail=message("record_id_required", language))

    try:
        votes = records.increment_votes(request.record_id)
    except RecordNotFoundError:
        logger.info("vote_record_not_found", extra={"request_id": req_id, "record_id": request.record_id})
        raise HTTPException(status_code=404, detail=message("record_not_found", language))
    except SQLAlchemyError as e:
        logger.error("vote_failed", extra={"request_id": req_id, "record_id": request.record_id, "error": str(e)})
        raise HTTPException(status_code=500, detail=message("vote_failed", language))

    logger.info("vote_recorded", extra={"request_id": req_id, "record_id": request.record_id})
    return VoteResponse(success=True, votes=votes)


@router.post("/save-record", response_model=SaveRecordResponse)
def post_save_record(
    request: SaveRecordRequest,
    records: LearningPathRepository = Depends(get_learning_path_repository),
) -> SaveRecordResponse:
    """Store a learning path; the same major and course set always maps to one record."""
    req_id = _current_request_id()
    language = normalize_language(request.language)
    major = (request.major or "").strip()
    if not major or request.courses is None or not normalize_courses(request.courses):
        raise HTTPException(status_code=400, detail=message("invalid_record", language))

    try:
        record_id, created = records.save(major, request.courses)
    except SQLAlchemyError as e:
        logger.error("record_save_failed", extra={"request_id": req_id, "major": major, "error": str(e)})
        raise HTTPException(status_code=500, detail=message("record_save_failed", language))

    logger.info("record_saved", extra={"request_id": req_id, "record_id": record_id, "major": major})
    return SaveRecordResponse(success=True, record_id=record_id, existing=not created)
