import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, UniqueConstraint

from core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LearningRecordRow(Base):
    __tablename__ = "learning_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    major = Column(String(200), nullable=False, index=True)
    courses = Column(JSON, nullable=False, default=list)
    # Sorted, serialized course list; (major, courses_key) identifies a duplicate path
    courses_key = Column(Text, nullable=False, index=True)
    votes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class CourseCacheRow(Base):
    __tablename__ = "course_cache"
    __table_args__ = (UniqueConstraint("course_name", "major", "language", name="uq_course_cache_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_name = Column(String(200), nullable=False)
    major = Column(String(200), nullable=False)
    language = Column(String(8), nullable=False)
    mooc_courses = Column(JSON, nullable=False, default=list)
    textbooks = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
