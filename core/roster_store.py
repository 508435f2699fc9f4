"""
Roster Store: asynchronous facade over the classroom/student managers

Every call:
1. opens its own DB session
2. runs the manager method on the worker pool (run_blocking)
3. converts ORM rows into detached response models before the session closes

Storage failures surface as StoreUnavailable and are never retried here.
"""
from typing import Any, Callable, Dict, List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError

from core.classroom_manager import ClassroomManager
from core.concurrency import run_blocking
from core.exceptions import StoreUnavailable
from core.student_manager import StudentManager
from database import session_scope
from schemas import ClassroomResponse, StudentResponse

logger = logging.getLogger(__name__)


class RosterStore:
    """Request/response roster operations used by the session controller"""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory

    def _execute(self, operation: Callable, convert: Callable, *args, **kwargs):
        with session_scope(self._session_factory) as db:
            try:
                return convert(operation(db, *args, **kwargs))
            except SQLAlchemyError as e:
                logger.error(f"Store call {operation.__name__} failed: {e}", exc_info=True)
                raise StoreUnavailable(str(e)) from e

    async def _call(self, operation: Callable, convert: Callable, *args, **kwargs):
        return await run_blocking(self._execute, operation, convert, *args, **kwargs)

    # ============ Classrooms ============

    async def create_classroom(self, grade: int, section: str) -> ClassroomResponse:
        return await self._call(
            ClassroomManager.create_classroom, ClassroomResponse.model_validate, grade, section
        )

    async def list_classrooms(self) -> List[ClassroomResponse]:
        return await self._call(ClassroomManager.list_classrooms, _many(ClassroomResponse))

    async def find_classroom_by_section(self, section: str) -> ClassroomResponse:
        return await self._call(
            ClassroomManager.get_classroom_by_section, ClassroomResponse.model_validate, section
        )

    # ============ Students ============

    async def create_student(
        self,
        first_name: str,
        last_name: str,
        classroom_id: str,
        photo_url: Optional[str] = None
    ) -> StudentResponse:
        return await self._call(
            StudentManager.create_student,
            StudentResponse.model_validate,
            first_name,
            last_name,
            classroom_id,
            photo_url=photo_url
        )

    async def list_students_by_classroom(self, classroom_id: str) -> List[StudentResponse]:
        return await self._call(
            StudentManager.list_students_by_classroom, _many(StudentResponse), classroom_id
        )

    async def get_student(self, student_id: str) -> StudentResponse:
        return await self._call(StudentManager.get_student, StudentResponse.model_validate, student_id)

    async def update_student(self, student_id: str, fields: Dict[str, Any]) -> StudentResponse:
        return await self._call(
            StudentManager.update_student, StudentResponse.model_validate, student_id, dict(fields)
        )

    async def delete_student(self, student_id: str) -> None:
        await self._call(StudentManager.delete_student, _discard, student_id)


def _many(model):
    def convert(rows):
        return [model.model_validate(row) for row in rows]
    return convert


def _discard(_result):
    return None
