import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import relationship

from database import Base

SECTION_MAX_LENGTH = 10
NAME_MAX_LENGTH = 100


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SelectionPhase(str, enum.Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    SETTLED = "SETTLED"


class Classroom(Base):
    __tablename__ = "classrooms"

    id = Column(String(36), primary_key=True, default=_new_id)
    grade = Column(Integer, nullable=False)
    section = Column(String(SECTION_MAX_LENGTH), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # No delete-orphan cascade: removing classrooms is not handled here
    students = relationship("Student", back_populates="classroom")

    __table_args__ = (
        Index("ix_classrooms_section_lower", func.lower(section), unique=True),
    )

    def __repr__(self):
        return f"<Classroom {self.grade}{self.section} ({self.id})>"


class Student(Base):
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=_new_id)
    first_name = Column(String(NAME_MAX_LENGTH), nullable=False)
    last_name = Column(String(NAME_MAX_LENGTH), nullable=False)
    # External URL or an embedded (data URI) square-cropped image
    photo_url = Column(String, nullable=True)
    classroom_id = Column(String(36), ForeignKey("classrooms.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    classroom = relationship("Classroom", back_populates="students")

    def __repr__(self):
        return f"<Student {self.first_name} {self.last_name} ({self.id})>"
