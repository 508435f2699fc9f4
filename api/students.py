"""
Student API Endpoints

Responsibilities:
1. Add a student to a classroom
2. Read / partially update / delete a student
"""
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import StudentCreate, StudentResponse, StudentUpdate
from core.student_manager import StudentManager
from core.exceptions import (
    ClassroomNotFound,
    StoreUnavailable,
    StudentNotFound,
    ValidationError
)

router = APIRouter(prefix="/api/students", tags=["students"])
logger = logging.getLogger(__name__)


@router.post("", response_model=StudentResponse, status_code=201)
def create_student(payload: StudentCreate, db: Session = Depends(get_db)):
    """
    Add a student

    The classroom must exist; an empty photo_url is stored as no photo.
    """
    try:
        student = StudentManager.create_student(
            db,
            payload.first_name,
            payload.last_name,
            payload.classroom_id,
            photo_url=payload.photo_url
        )
        return StudentResponse.model_validate(student)

    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ClassroomNotFound:
        raise HTTPException(status_code=404, detail="Classroom not found")
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Failed to create student")
    except Exception as e:
        logger.error(f"Failed to create student: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{student_id}", response_model=StudentResponse)
def get_student(student_id: str, db: Session = Depends(get_db)):
    try:
        return StudentResponse.model_validate(StudentManager.get_student(db, student_id))

    except StudentNotFound:
        raise HTTPException(status_code=404, detail="Student not found")
    except Exception as e:
        logger.error(f"Failed to fetch student: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.patch("/{student_id}", response_model=StudentResponse)
def update_student(student_id: str, payload: StudentUpdate, db: Session = Depends(get_db)):
    """
    Partial update

    Only the fields sent in the body change; {"photo_url": ""} clears the photo.
    """
    try:
        fields = payload.model_dump(exclude_unset=True)
        student = StudentManager.update_student(db, student_id, fields)
        return StudentResponse.model_validate(student)

    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StudentNotFound:
        raise HTTPException(status_code=404, detail="Student not found")
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Failed to update student")
    except Exception as e:
        logger.error(f"Failed to update student: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{student_id}", status_code=204)
def delete_student(student_id: str, db: Session = Depends(get_db)):
    try:
        StudentManager.delete_student(db, student_id)
        return Response(status_code=204)

    except StudentNotFound:
        raise HTTPException(status_code=404, detail="Student not found")
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Failed to delete student")
    except Exception as e:
        logger.error(f"Failed to delete student: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
