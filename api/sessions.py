"""
Session API Endpoints - short polling

Key points:
1. One session per classroom section; the selection engine runs on the
   server's event loop
2. Clients poll GET /state and redraw when state_version changes
3. start/reset never fail on precondition: a no-op is reported with
   accepted=false
"""
from fastapi import APIRouter, Depends, HTTPException, Response
import logging

from schemas import (
    ActionResponse,
    EditContextResponse,
    SessionStateResponse,
    SessionStudentCreate,
    StudentResponse,
    StudentUpdate
)
from core.session_controller import SessionController
from core.session_registry import SessionRegistry, get_session_registry
from core.exceptions import (
    EditNotAllowed,
    NotFound,
    SessionNotFound,
    StoreUnavailable,
    ValidationError
)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])
logger = logging.getLogger(__name__)


def build_state(controller: SessionController) -> SessionStateResponse:
    run = controller.run
    edit = controller.edit_context
    return SessionStateResponse(
        section=controller.section,
        classroom_id=controller.classroom_id,
        candidates=list(controller.candidates),
        candidate_count=controller.candidate_count,
        phase=run.phase,
        current_highlight=run.current_highlight,
        winner=run.winner,
        winner_visible=controller.winner_visible,
        winner_student=controller.winner_student,
        loading=controller.loading,
        edit_context=EditContextResponse(student_id=edit.student_id) if edit else None,
        state_version=controller.state_version
    )


@router.post("/{section}", response_model=SessionStateResponse)
async def open_session(section: str, registry: SessionRegistry = Depends(get_session_registry)):
    """
    Open (or refresh) the session for a classroom section

    Loads the classroom and its roster; opening an already open session
    re-loads it without touching the selection state.
    """
    try:
        controller = await registry.open(section)
        return build_state(controller)

    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFound:
        raise HTTPException(status_code=404, detail="Classroom not found")
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Failed to load classroom")
    except Exception as e:
        logger.error(f"Failed to open session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{section}/state", response_model=SessionStateResponse)
async def get_session_state(section: str, registry: SessionRegistry = Depends(get_session_registry)):
    try:
        return build_state(registry.get(section))

    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


@router.delete("/{section}", status_code=204)
async def close_session(section: str, registry: SessionRegistry = Depends(get_session_registry)):
    try:
        registry.close(section)
        return Response(status_code=204)

    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


@router.post("/{section}/start", response_model=ActionResponse)
async def start_randomizer(section: str, registry: SessionRegistry = Depends(get_session_registry)):
    """
    Start the randomizer

    accepted=false when the roster is empty or a run is already spinning.
    """
    try:
        accepted = registry.get(section).on_start_randomizer()
        return ActionResponse(status="ok", accepted=accepted)

    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


@router.post("/{section}/reset", response_model=ActionResponse)
async def reset_randomizer(section: str, registry: SessionRegistry = Depends(get_session_registry)):
    try:
        registry.get(section).on_reset()
        return ActionResponse(status="ok")

    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


@router.post("/{section}/winner/close", response_model=ActionResponse)
async def close_winner(section: str, registry: SessionRegistry = Depends(get_session_registry)):
    try:
        registry.get(section).on_close_winner()
        return ActionResponse(status="ok")

    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


@router.post("/{section}/edit/{student_id}", response_model=EditContextResponse)
async def open_edit(
    section: str,
    student_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Open the edit form for a student; 409 while the randomizer is spinning"""
    try:
        context = registry.get(section).on_edit_student(student_id)
        return EditContextResponse(student_id=context.student_id)

    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except EditNotAllowed as e:
        raise HTTPException(status_code=409, detail=str(e))
    except NotFound:
        raise HTTPException(status_code=404, detail="Student not found")


@router.delete("/{section}/edit", status_code=204)
async def close_edit(section: str, registry: SessionRegistry = Depends(get_session_registry)):
    try:
        registry.get(section).on_close_edit()
        return Response(status_code=204)

    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


@router.patch("/{section}/edit", response_model=StudentResponse)
async def save_edit(
    section: str,
    payload: StudentUpdate,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Save the open edit (partial update) and refresh the roster; 409 while spinning"""
    try:
        controller = registry.get(section)
        return await controller.save_edit(payload.model_dump(exclude_unset=True))

    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except EditNotAllowed as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFound:
        raise HTTPException(status_code=404, detail="Student not found")
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Failed to update student")
    except Exception as e:
        logger.error(f"Failed to save edit: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{section}/students", response_model=StudentResponse, status_code=201)
async def add_student(
    section: str,
    payload: SessionStudentCreate,
    registry: SessionRegistry = Depends(get_session_registry)
):
    try:
        controller = registry.get(section)
        return await controller.add_student(
            payload.first_name,
            payload.last_name,
            photo_url=payload.photo_url
        )

    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFound:
        raise HTTPException(status_code=404, detail="Classroom not found")
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Failed to add student")
    except Exception as e:
        logger.error(f"Failed to add student: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{section}/students/{student_id}", status_code=204)
async def delete_student(
    section: str,
    student_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    try:
        await registry.get(section).delete_student(student_id)
        return Response(status_code=204)

    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except NotFound:
        raise HTTPException(status_code=404, detail="Student not found")
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Failed to delete student")
    except Exception as e:
        logger.error(f"Failed to delete student: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
