"""
Students API routes - the signed-in account's roster.

Provides endpoints for:
- Listing the roster
- Adding a student
- Looking a student up by code (case-insensitive)
- Updating homework, quiz and attendance entries
- Removing a student (idempotent)

Every route is scoped to the account authenticated by require_account.
"""

import time
import datetime as dt
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from schooltalk.database import get_db
from schooltalk.logging_config import get_logger, log_with_context
from schooltalk.models.student import Student
from schooltalk.routes.auth import require_account
from schooltalk.services.roster import RosterStore
from schooltalk.services.session import SessionContext

router = APIRouter()
logger = get_logger("http")


# ── Pydantic schemas ─────────────────────────────────────────

class HomeworkEntry(BaseModel):
    subject: str
    task: str
    due_date: dt.date
    completed: bool = False


class QuizEntry(BaseModel):
    subject: str
    topic: str
    score: Optional[int] = Field(None, ge=0, description="Null until graded")
    date: dt.date


class AttendanceEntry(BaseModel):
    date: dt.date
    status: Literal["Present", "Late", "Absent", "Early"]


class StudentCreate(BaseModel):
    code: str = Field(..., description="Code unique within this roster")
    name: str
    parent_contact: str = Field(..., description="Parent phone number")
    homework: List[HomeworkEntry] = Field(default_factory=list)
    quizzes: List[QuizEntry] = Field(default_factory=list)
    attendance: List[AttendanceEntry] = Field(default_factory=list)


class ProgressUpdate(BaseModel):
    homework: Optional[List[HomeworkEntry]] = None
    quizzes: Optional[List[QuizEntry]] = None
    attendance: Optional[List[AttendanceEntry]] = None


def _dump(entries):
    if entries is None:
        return None
    return [entry.model_dump(mode="json") for entry in entries]


def serialize_student(student: Student) -> dict:
    """Serialize a Student ORM object to a dict for API response."""
    return {
        "id": str(student.id),
        "code": student.code,
        "name": student.name,
        "parent_contact": student.parent_contact,
        "homework": student.homework_list,
        "quizzes": student.quizzes_list,
        "attendance": student.attendance_list,
        "created_at": student.created_at.isoformat() if student.created_at else None,
    }


@router.get("/api/students")
def list_students(session: SessionContext = Depends(require_account),
                  db: Session = Depends(get_db)):
    """List every student in the signed-in account's roster."""
    start_time = time.time()
    students = RosterStore(db).list(session.identifier)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "Listed {} students".format(len(students)),
                     context={"account_id": session.identifier},
                     extra_data={"duration_ms": round(duration_ms, 2)})
    return {"data": [serialize_student(s) for s in students], "total": len(students)}


@router.post("/api/students", status_code=201)
def add_student(request: StudentCreate,
                session: SessionContext = Depends(require_account),
                db: Session = Depends(get_db)):
    """Add a student. 409 if the code is already used in this roster."""
    student = RosterStore(db).add(
        session.identifier,
        code=request.code,
        name=request.name,
        parent_contact=request.parent_contact,
        homework=_dump(request.homework),
        quizzes=_dump(request.quizzes),
        attendance=_dump(request.attendance),
    )
    return serialize_student(student)


@router.get("/api/students/lookup")
def find_student(code: str = Query(..., description="Student code, any case"),
                 session: SessionContext = Depends(require_account),
                 db: Session = Depends(get_db)):
    """Look a student up by code."""
    return serialize_student(RosterStore(db).find_by_code(session.identifier, code))


@router.get("/api/students/{student_id}")
def get_student(student_id: str,
                session: SessionContext = Depends(require_account),
                db: Session = Depends(get_db)):
    """Get one student of the roster by id."""
    return serialize_student(RosterStore(db).get(session.identifier, student_id))


@router.patch("/api/students/{student_id}/progress")
def update_progress(student_id: str, request: ProgressUpdate,
                    session: SessionContext = Depends(require_account),
                    db: Session = Depends(get_db)):
    """Replace the homework, quiz or attendance lists that are supplied."""
    student = RosterStore(db).update_progress(
        session.identifier, student_id,
        homework=_dump(request.homework),
        quizzes=_dump(request.quizzes),
        attendance=_dump(request.attendance),
    )
    return serialize_student(student)


@router.delete("/api/students/{student_id}", status_code=204)
def remove_student(student_id: str,
                   session: SessionContext = Depends(require_account),
                   db: Session = Depends(get_db)):
    """Remove a student. Deleting an absent student still returns 204."""
    RosterStore(db).remove(session.identifier, student_id)
    return Response(status_code=204)
