"""
Classroom API Endpoints

Responsibilities:
1. Create classrooms
2. List classrooms
3. Look a classroom up by section
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import ClassroomCreate, ClassroomResponse, StudentResponse
from core.classroom_manager import ClassroomManager
from core.student_manager import StudentManager
from core.exceptions import (
    ClassroomNotFound,
    DuplicateSectionError,
    StoreUnavailable,
    ValidationError
)

router = APIRouter(prefix="/api/classrooms", tags=["classrooms"])
logger = logging.getLogger(__name__)


@router.post("", response_model=ClassroomResponse, status_code=201)
def create_classroom(payload: ClassroomCreate, db: Session = Depends(get_db)):
    """
    Create a classroom

    Returns 409 if another classroom already uses the section in any case
    ("A" blocks "a").
    """
    try:
        classroom = ClassroomManager.create_classroom(db, payload.grade, payload.section)
        return ClassroomResponse.model_validate(classroom)

    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateSectionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Failed to create classroom")
    except Exception as e:
        logger.error(f"Failed to create classroom: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("", response_model=List[ClassroomResponse])
def list_classrooms(db: Session = Depends(get_db)):
    """Classrooms ordered by grade, then section"""
    try:
        return [ClassroomResponse.model_validate(c) for c in ClassroomManager.list_classrooms(db)]

    except Exception as e:
        logger.error(f"Failed to list classrooms: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/by-section/{section}", response_model=ClassroomResponse)
def get_classroom_by_section(section: str, db: Session = Depends(get_db)):
    try:
        classroom = ClassroomManager.get_classroom_by_section(db, section)
        return ClassroomResponse.model_validate(classroom)

    except ClassroomNotFound:
        raise HTTPException(status_code=404, detail="Classroom not found")
    except Exception as e:
        logger.error(f"Failed to fetch classroom: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{classroom_id}/students", response_model=List[StudentResponse])
def list_classroom_students(classroom_id: str, db: Session = Depends(get_db)):
    """Roster ordered by last name, then first name"""
    try:
        ClassroomManager.get_classroom_by_id(db, classroom_id)
        students = StudentManager.list_students_by_classroom(db, classroom_id)
        return [StudentResponse.model_validate(s) for s in students]

    except ClassroomNotFound:
        raise HTTPException(status_code=404, detail="Classroom not found")
    except Exception as e:
        logger.error(f"Failed to list students: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
