from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import RecordNotFoundError
from models import CourseCacheRow, LearningRecordRow
from schemas.api import CourseCache, LearningRecord
from schemas.course import CourseEntry, MOOCCourse, StoredCourse, Textbook, canonical_courses_key, normalize_courses


def courses_for_storage(courses: Sequence[CourseEntry]) -> List[dict]:
    return [c.model_dump(include={"name", "description"}) for c in courses]


def _to_record(row: LearningRecordRow) -> LearningRecord:
    return LearningRecord(
        id=row.id,
        major=row.major,
        courses=normalize_courses(row.courses),
        votes=row.votes or 0,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_cache(row: CourseCacheRow) -> CourseCache:
    return CourseCache(
        id=row.id,
        course_name=row.course_name,
        major=row.major,
        language=row.language,
        mooc_courses=row.mooc_courses or [],
        textbooks=row.textbooks or [],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class LearningPathRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_duplicate(self, major: str, courses_key: str) -> Optional[str]:
        stmt = (
            select(LearningRecordRow.id)
            .where(LearningRecordRow.major == major, LearningRecordRow.courses_key == courses_key)
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def save(self, major: str, courses: Sequence[StoredCourse]) -> Tuple[str, bool]:
        """Store a learning path and return (record_id, created).

        A path with the same major and the same set of courses is saved only
        once; later saves return the existing id.
        """
        entries = normalize_courses(list(courses))
        courses_key = canonical_courses_key(entries)

        existing_id = self.find_duplicate(major, courses_key)
        if existing_id is not None:
            return existing_id, False

        row = LearningRecordRow(
            major=major,
            courses=courses_for_storage(entries),
            courses_key=courses_key,
            votes=0,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row.id, True

    def get(self, record_id: str) -> LearningRecord:
        row = self.db.get(LearningRecordRow, record_id)
        if row is None:
            raise RecordNotFoundError(record_id)
        return _to_record(row)

    def list_top(self, limit: int = 20) -> List[LearningRecord]:
        stmt = (
            select(LearningRecordRow)
            .order_by(LearningRecordRow.votes.desc(), LearningRecordRow.created_at.desc())
            .limit(limit)
        )
        return [_to_record(row) for row in self.db.execute(stmt).scalars()]

    def increment_votes(self, record_id: str) -> int:
        """Add one vote and return the new total.

        The increment is a single UPDATE with `votes = votes + 1`, so concurrent
        votes on one record are never lost.
        """
        stmt = (
            update(LearningRecordRow)
            .where(LearningRecordRow.id == record_id)
            .values(votes=LearningRecordRow.votes + 1, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount == 0:
            self.db.rollback()
            raise RecordNotFoundError(record_id)
        votes = self.db.execute(
            select(LearningRecordRow.votes).where(LearningRecordRow.id == record_id)
        ).scalar_one()
        self.db.commit()
        return votes


class CourseCacheRepository:
    def __init__(self, db: Session):
        self.db = db

    def _find(self, course_name: str, major: str, language: str) -> Optional[CourseCacheRow]:
        stmt = select(CourseCacheRow).where(
            CourseCacheRow.course_name == course_name,
            CourseCacheRow.major == major,
            CourseCacheRow.language == language,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get(self, course_name: str, major: str, language: str) -> Optional[CourseCache]:
        """Cached results for the triple, or None on a cache miss."""
        row = self._find(course_name, major, language)
        return _to_cache(row) if row is not None else None

    def upsert(
        self,
        course_name: str,
        major: str,
        language: str,
        mooc_courses: Sequence[MOOCCourse],
        textbooks: Sequence[Textbook],
    ) -> CourseCache:
        mooc_data = [c.model_dump(exclude_none=True) for c in mooc_courses]
        textbook_data = [t.model_dump() for t in textbooks]
        now = datetime.now(timezone.utc)

        row = self._find(course_name, major, language)
        if row is None:
            row = CourseCacheRow(
                course_name=course_name,
                major=major,
                language=language,
                mooc_courses=mooc_data,
                textbooks=textbook_data,
                updated_at=now,
            )
            self.db.add(row)
            try:
                self.db.commit()
            except IntegrityError:
                # Another request inserted the same key first; last write wins
                self.db.rollback()
                row = self._find(course_name, major, language)
                if row is None:
                    raise
                row.mooc_courses = mooc_data
                row.textbooks = textbook_data
                row.updated_at = now
                self.db.commit()
        else:
            row.mooc_courses = mooc_data
            row.textbooks = textbook_data
            row.updated_at = now
            self.db.commit()
        self.db.refresh(row)
        return _to_cache(row)
