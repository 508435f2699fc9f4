"""
Student Manager: the student half of the roster store

Responsibilities:
1. Create students (always inside an existing classroom)
2. List a classroom's roster in display order
3. Partial update (only supplied fields change)
4. Delete
"""
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import Classroom, Student
from core.exceptions import ClassroomNotFound, StudentNotFound, ValidationError
from services.validation_service import normalize_name, normalize_photo
from database import transactional

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("first_name", "last_name", "photo_url")


class StudentManager:
    """Student record operations"""

    @staticmethod
    @transactional
    def create_student(
        db: Session,
        first_name: str,
        last_name: str,
        classroom_id: str,
        photo_url: Optional[str] = None
    ) -> Student:
        """
        Create a student in a classroom

        Preconditions:
        1. first_name and last_name are non-empty
        2. classroom_id references an existing classroom

        Args:
            db: SQLAlchemy Session
            first_name, last_name: student names
            classroom_id: owning classroom
            photo_url: optional URL or embedded image; "" means no photo

        Returns:
            the new Student

        Raises:
            ValidationError: missing name
            ClassroomNotFound: classroom_id does not exist
        """
        first_name = normalize_name(first_name, "First name")
        last_name = normalize_name(last_name, "Last name")
        if not classroom_id:
            raise ValidationError("Classroom is required")

        classroom = db.query(Classroom).filter(Classroom.id == classroom_id).first()
        if not classroom:
            raise ClassroomNotFound(classroom_id)

        student = Student(
            first_name=first_name,
            last_name=last_name,
            photo_url=normalize_photo(photo_url),
            classroom_id=classroom.id
        )
        db.add(student)
        db.flush()

        logger.info(
            f"Created student {student.id} ({first_name} {last_name}) in classroom {classroom.id}"
        )
        return student

    @staticmethod
    def list_students_by_classroom(db: Session, classroom_id: str) -> List[Student]:
        """
        A classroom's roster, last name then first name ascending, ignoring case

        Creation order never matters. An unknown classroom simply has an
        empty roster.
        """
        return db.query(Student).filter(
            Student.classroom_id == classroom_id
        ).order_by(
            func.lower(Student.last_name).asc(),
            func.lower(Student.first_name).asc(),
            Student.last_name.asc(),
            Student.first_name.asc(),
            Student.id.asc()
        ).all()

    @staticmethod
    def get_student(db: Session, student_id: str) -> Student:
        student = db.query(Student).filter(Student.id == student_id).first()
        if not student:
            raise StudentNotFound(student_id)
        return student

    @staticmethod
    @transactional
    def update_student(db: Session, student_id: str, fields: Dict[str, Any]) -> Student:
        """
        Partial update

        Only keys present in `fields` are touched; omitted fields keep their
        values. photo_url set to "" or None clears the photo.

        Args:
            db: SQLAlchemy Session
            student_id: student to update
            fields: subset of first_name / last_name / photo_url

        Returns:
            the updated Student

        Raises:
            ValidationError: unknown field or empty name
            StudentNotFound: student does not exist
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        # Validate everything before touching the record
        changes: Dict[str, Any] = {}
        if "first_name" in fields:
            changes["first_name"] = normalize_name(fields["first_name"], "First name")
        if "last_name" in fields:
            changes["last_name"] = normalize_name(fields["last_name"], "Last name")
        if "photo_url" in fields:
            changes["photo_url"] = normalize_photo(fields["photo_url"])

        student = db.query(Student).filter(Student.id == student_id).first()
        if not student:
            raise StudentNotFound(student_id)

        for key, value in changes.items():
            setattr(student, key, value)
        db.flush()

        logger.info(f"Updated student {student_id}: {sorted(changes)}")
        return student

    @staticmethod
    @transactional
    def delete_student(db: Session, student_id: str) -> None:
        student = db.query(Student).filter(Student.id == student_id).first()
        if not student:
            raise StudentNotFound(student_id)

        db.delete(student)
        logger.info(f"Deleted student {student_id}")
