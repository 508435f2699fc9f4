"""
Session Controller: one classroom view = one roster + one selection engine

Responsibilities:
1. Load the roster for a section (last request wins)
2. Route user actions (start, reset, close winner, edit) to the engine/store
3. Track the winner-visible flag and the open edit context
4. Re-load after any roster mutation

All methods run on the event loop. Loads suspend on the store, and while a
load is in flight start/reset keep working against the last-known candidate
list.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import EditNotAllowed, RosterException, StudentNotFound, ValidationError
from core.roster_store import RosterStore
from core.selection_engine import SelectionConfig, SelectionEngine, SelectionRun
from models import SelectionPhase
from schemas import StudentResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditContext:
    student_id: str


class SessionController:
    """Mediates user actions for one classroom view"""

    def __init__(
        self,
        store: RosterStore,
        engine: Optional[SelectionEngine] = None,
        config: Optional[SelectionConfig] = None,
        section: Optional[str] = None,
    ):
        self.store = store
        self.engine = engine or SelectionEngine(config)
        self.section = section
        self.classroom_id: Optional[str] = None
        self.students: List[StudentResponse] = []
        self.candidates: Tuple[str, ...] = ()
        self.winner_visible = False
        self.loading = False
        self.edit_context: Optional[EditContext] = None
        self.state_version = 0

        self._load_seq = 0

        self.engine.on_winner_ready(lambda run: self.on_winner_ready())
        self.engine.on_change(lambda run: self._bump())

    def _bump(self) -> None:
        self.state_version += 1

    # ============ Derived state ============

    @property
    def run(self) -> SelectionRun:
        return self.engine.run

    @property
    def candidate_count(self) -> int:
        return len(self.candidates)

    @property
    def winner_student(self) -> Optional[StudentResponse]:
        winner = self.engine.winner
        if winner is None:
            return None
        for student in self.students:
            if student.id == winner:
                return student
        return None

    # ============ Loading ============

    async def load(self, section: Optional[str] = None) -> bool:
        """
        Resolve the classroom by section and load its roster

        Every call takes a new sequence number; a response is applied only if
        no newer load was requested meanwhile (last request wins).

        Returns:
            True if this load's result was applied, False if it was superseded

        Raises:
            NotFound / StoreUnavailable: only for the latest request; prior
            state is kept intact
        """
        if section is not None:
            self.section = section
        if not self.section:
            raise ValidationError("Section is required")

        self._load_seq += 1
        seq = self._load_seq
        target = self.section
        self.loading = True
        self._bump()

        try:
            classroom = await self.store.find_classroom_by_section(target)
            students = await self.store.list_students_by_classroom(classroom.id)
        except RosterException:
            if seq != self._load_seq:
                logger.debug(f"Discarding failed stale load #{seq} for section {target}")
                return False
            self.loading = False
            self._bump()
            raise

        if seq != self._load_seq:
            logger.debug(f"Discarding stale load #{seq} (latest is #{self._load_seq})")
            return False

        self.classroom_id = classroom.id
        self.students = list(students)
        self.candidates = tuple(student.id for student in students)
        self.loading = False
        self._bump()
        logger.info(
            f"Loaded section {target}: classroom {classroom.id}, {len(self.candidates)} students"
        )
        return True

    async def on_roster_mutated(self) -> bool:
        return await self.load()

    # ============ Selection actions ============

    def on_start_randomizer(self) -> bool:
        if not self.candidates:
            logger.debug(f"Section {self.section}: nothing to pick from")
            return False
        if self.engine.is_running:
            return False
        self.winner_visible = False
        return self.engine.start(self.candidates)

    def on_reset(self) -> None:
        self.engine.reset()
        self.winner_visible = False
        self._bump()

    def on_winner_ready(self) -> bool:
        if self.engine.phase is SelectionPhase.SETTLED and self.engine.winner is not None:
            self.winner_visible = True
            self._bump()
            return True
        return False

    def on_close_winner(self) -> None:
        self.winner_visible = False
        self.engine.close()
        self._bump()

    # ============ Editing ============

    def on_edit_student(self, student_id: str) -> EditContext:
        """
        Open the edit context for a student

        Raises:
            EditNotAllowed: a run is spinning
            StudentNotFound: the id is not on the loaded roster
        """
        if self.engine.is_running:
            logger.warning(f"Rejected edit of {student_id} while selection is running")
            raise EditNotAllowed("Cannot edit a student while the randomizer is running")
        if student_id not in self.candidates:
            raise StudentNotFound(student_id)

        self.edit_context = EditContext(student_id=student_id)
        self._bump()
        return self.edit_context

    def on_close_edit(self) -> None:
        self.edit_context = None
        self._bump()

    async def save_edit(self, fields: Dict[str, Any]) -> StudentResponse:
        """
        Apply a partial update to the student being edited, then re-load

        Raises:
            EditNotAllowed: a run started after the edit was opened; the edit
            context stays open
        """
        if self.engine.is_running:
            logger.warning("Rejected saving an edit while selection is running")
            raise EditNotAllowed("Cannot edit a student while the randomizer is running")
        if self.edit_context is None:
            raise ValidationError("No student is open for editing")

        student = await self.store.update_student(self.edit_context.student_id, fields)
        self.edit_context = None
        self._bump()
        await self.on_roster_mutated()
        return student

    # ============ Roster mutations ============

    async def add_student(
        self,
        first_name: str,
        last_name: str,
        photo_url: Optional[str] = None
    ) -> StudentResponse:
        if self.classroom_id is None:
            raise ValidationError("Session has not loaded a classroom yet")

        student = await self.store.create_student(
            first_name, last_name, self.classroom_id, photo_url=photo_url
        )
        await self.on_roster_mutated()
        return student

    async def delete_student(self, student_id: str) -> None:
        """
        Delete a student from this session's roster

        Raises:
            StudentNotFound: the id is not on the loaded roster (students of
            other classrooms cannot be deleted through this session)
        """
        if student_id not in self.candidates:
            raise StudentNotFound(student_id)

        await self.store.delete_student(student_id)
        if self.edit_context is not None and self.edit_context.student_id == student_id:
            self.edit_context = None
        await self.on_roster_mutated()
