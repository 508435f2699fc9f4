from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import NAME_MAX_LENGTH, SECTION_MAX_LENGTH, SelectionPhase


# ============ Classroom ============

class ClassroomCreate(BaseModel):
    grade: int = Field(..., ge=1)
    section: str = Field(..., min_length=1, max_length=SECTION_MAX_LENGTH)


class ClassroomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    grade: int
    section: str


# ============ Student ============

class StudentCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    last_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    photo_url: Optional[str] = None
    classroom_id: str


class SessionStudentCreate(BaseModel):
    """Adding a student through a session: the classroom comes from the session"""
    first_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    last_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    photo_url: Optional[str] = None


class StudentUpdate(BaseModel):
    """
    Partial update

    Only fields present in the request body are applied
    (model_dump(exclude_unset=True)); photo_url "" or null clears the photo.
    """
    first_name: Optional[str] = Field(None, min_length=1, max_length=NAME_MAX_LENGTH)
    last_name: Optional[str] = Field(None, min_length=1, max_length=NAME_MAX_LENGTH)
    photo_url: Optional[str] = None


class StudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    last_name: str
    photo_url: Optional[str] = None
    classroom_id: str
    created_at: Optional[datetime] = None


# ============ Session ============

class EditContextResponse(BaseModel):
    student_id: str


class SessionStateResponse(BaseModel):
    section: str
    classroom_id: Optional[str] = None
    candidates: List[str]
    candidate_count: int
    phase: SelectionPhase
    current_highlight: Optional[str] = None
    winner: Optional[str] = None
    winner_visible: bool
    winner_student: Optional[StudentResponse] = None
    loading: bool
    edit_context: Optional[EditContextResponse] = None
    state_version: int


class ActionResponse(BaseModel):
    status: str
    accepted: bool = True
