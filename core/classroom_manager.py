"""
Classroom Manager: the classroom half of the roster store

Responsibilities:
1. Create classrooms (section unique, case-insensitive)
2. List classrooms in display order
3. Look classrooms up by section or id

Classrooms are never updated or deleted here.
"""
from typing import List
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import Classroom
from core.exceptions import ClassroomNotFound, DuplicateSectionError
from services.validation_service import normalize_section, section_key, validate_grade
from database import transactional

logger = logging.getLogger(__name__)


class ClassroomManager:
    """Classroom record operations"""

    @staticmethod
    @transactional
    def create_classroom(db: Session, grade: int, section: str) -> Classroom:
        """
        Create a classroom

        Flow:
        1. Validate grade and section
        2. Reject a section already used by another classroom (any case)
        3. Insert

        Args:
            db: SQLAlchemy Session
            grade: positive integer
            section: short section name, e.g. "A"

        Returns:
            the new Classroom

        Raises:
            ValidationError: invalid grade or section
            DuplicateSectionError: the section is already taken

        Note:
            The unique index on lower(section) still catches two requests
            racing past the pre-check; that IntegrityError is reported as a
            duplicate too.
        """
        grade = validate_grade(grade)
        section = normalize_section(section)

        existing = db.query(Classroom).filter(
            func.lower(Classroom.section) == section_key(section)
        ).first()
        if existing:
            logger.warning(f"Rejected duplicate section '{section}' (taken by {existing.id})")
            raise DuplicateSectionError(section)

        classroom = Classroom(grade=grade, section=section)
        db.add(classroom)
        try:
            db.flush()
        except IntegrityError as e:
            raise DuplicateSectionError(section) from e

        logger.info(f"Created classroom {classroom.id} (grade {grade}, section {section})")
        return classroom

    @staticmethod
    def list_classrooms(db: Session) -> List[Classroom]:
        """All classrooms, grade ascending then section ascending"""
        return db.query(Classroom).order_by(
            Classroom.grade.asc(),
            func.lower(Classroom.section).asc(),
            Classroom.section.asc()
        ).all()

    @staticmethod
    def get_classroom_by_section(db: Session, section: str) -> Classroom:
        """
        Case-insensitive exact match on section

        "A" and "a" resolve to the same classroom.

        Raises:
            ClassroomNotFound: no classroom uses this section
        """
        key = section_key(section or "")
        classroom = db.query(Classroom).filter(
            func.lower(Classroom.section) == key
        ).first()
        if not classroom:
            raise ClassroomNotFound(f"with section '{section}'")
        return classroom

    @staticmethod
    def get_classroom_by_id(db: Session, classroom_id: str) -> Classroom:
        classroom = db.query(Classroom).filter(Classroom.id == classroom_id).first()
        if not classroom:
            raise ClassroomNotFound(classroom_id)
        return classroom
