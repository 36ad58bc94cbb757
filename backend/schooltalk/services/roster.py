"""
Roster Store - student records owned by one account.

Every operation takes the owning account identifier explicitly; there is
no notion of a "current" account at this layer. Codes are unique per
account and compared case-insensitively. The application checks for a
clash before inserting, and the uq_students_account_code constraint
catches the race where two adds for the same code pass that check at the
same time.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schooltalk import config
from schooltalk.database import storage_guard
from schooltalk.errors import DuplicateCode, InvalidArgument, NotFound
from schooltalk.logging_config import get_logger, log_with_context
from schooltalk.models.account import Account
from schooltalk.models.student import Student, code_key
from schooltalk.services.identity import normalize_identifier, normalize_phone

logger = get_logger("roster")


def _clean_text(value: str, field: str, max_length: int) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidArgument(f"{field} cannot be empty.")
    if len(value) > max_length:
        raise InvalidArgument(f"{field} must be at most {max_length} characters.")
    return value


class RosterStore:
    """Add, look up, list, update and remove students of one account at a time."""

    def __init__(self, db: Session):
        self.db = db

    def _require_account(self, account_id: str) -> None:
        if self.db.get(Account, account_id) is None:
            raise NotFound(f"Account {account_id} is not registered.")

    def _find(self, account_id: str, key: str) -> Optional[Student]:
        return self.db.query(Student).filter(
            Student.account_id == account_id,
            Student.code_key == key,
        ).first()

    def add(self, account_id: str, code: str, name: str, parent_contact: str,
            homework: list = None, quizzes: list = None,
            attendance: list = None) -> Student:
        """
        Add a student to the account's roster.

        Raises:
            InvalidArgument: empty or oversized fields, bad parent phone
            NotFound: account not registered
            DuplicateCode: the roster already has this code (any case)
        """
        account_id = normalize_identifier(account_id)
        code = _clean_text(code, "Student code", config.MAX_CODE_LENGTH)
        name = _clean_text(name, "Student name", config.MAX_NAME_LENGTH)
        parent_contact = normalize_phone(parent_contact)
        key = code_key(code)

        with storage_guard(self.db, "roster add"):
            self._require_account(account_id)
            if self._find(account_id, key) is not None:
                raise DuplicateCode(f"Student code {code} already exists in this roster.")

            student = Student(
                id=str(uuid.uuid4()),
                account_id=account_id,
                code=code,
                code_key=key,
                name=name,
                parent_contact=parent_contact,
                homework=json.dumps(homework or []),
                quizzes=json.dumps(quizzes or []),
                attendance=json.dumps(attendance or []),
                created_at=datetime.now(timezone.utc),
            )
            self.db.add(student)
            try:
                self.db.commit()
            except IntegrityError as e:
                # Lost the race against a concurrent add of the same code
                self.db.rollback()
                raise DuplicateCode(f"Student code {code} already exists in this roster.") from e
            self.db.refresh(student)

        log_with_context(logger, "INFO", "Student added: {}".format(code),
                         context={"account_id": account_id, "student_id": student.id})
        return student

    def find_by_code(self, account_id: str, code: str) -> Student:
        """
        Case-insensitive exact match on code within one roster.

        Raises:
            NotFound: no student with this code in the account's roster
        """
        account_id = normalize_identifier(account_id)
        key = code_key(code or "")
        if not key:
            raise InvalidArgument("Student code cannot be empty.")

        with storage_guard(self.db, "roster find"):
            student = self._find(account_id, key)

        if student is None:
            log_with_context(logger, "DEBUG", "Student code not found: {}".format(code),
                             context={"account_id": account_id})
            raise NotFound(f"No student with code {code.strip()}.")
        return student

    def get(self, account_id: str, student_id: str) -> Student:
        """Fetch a student by id, only if it belongs to account_id."""
        account_id = normalize_identifier(account_id)
        with storage_guard(self.db, "roster get"):
            student = self.db.query(Student).filter(
                Student.account_id == account_id,
                Student.id == student_id,
            ).first()
        if student is None:
            raise NotFound(f"Student {student_id} not found.")
        return student

    def remove(self, account_id: str, student_id: str) -> None:
        """Delete a student. Removing an absent student is not an error."""
        account_id = normalize_identifier(account_id)
        with storage_guard(self.db, "roster remove"):
            student = self.db.query(Student).filter(
                Student.account_id == account_id,
                Student.id == student_id,
            ).first()
            deleted = student is not None
            if deleted:
                self.db.delete(student)
                self.db.commit()

        log_with_context(logger, "INFO" if deleted else "DEBUG",
                         "Student removed" if deleted else "Student already absent",
                         context={"account_id": account_id, "student_id": student_id})

    def count(self, account_id: str) -> int:
        account_id = normalize_identifier(account_id)
        with storage_guard(self.db, "roster count"):
            return self.db.query(Student).filter(Student.account_id == account_id).count()

    def update_progress(self, account_id: str, student_id: str,
                        homework: list = None, quizzes: list = None,
                        attendance: list = None) -> Student:
        """
        Replace the supplemental progress lists that are supplied.

        Lists left as None keep their stored value. Core fields (code, name,
        parent contact) are not editable here.
        """
        student = self.get(account_id, student_id)

        with storage_guard(self.db, "roster update progress"):
            if homework is not None:
                student.homework = json.dumps(homework)
            if quizzes is not None:
                student.quizzes = json.dumps(quizzes)
            if attendance is not None:
                student.attendance = json.dumps(attendance)
            self.db.commit()
            self.db.refresh(student)

        log_with_context(logger, "INFO", "Student progress updated",
                         context={"account_id": student.account_id, "student_id": student.id},
                         extra_data={
                             "homework": homework is not None,
                             "quizzes": quizzes is not None,
                             "attendance": attendance is not None,
                         })
        return student

    def list(self, account_id: str) -> List[Student]:
        """All students of the account, ordered by code for stable output."""
        account_id = normalize_identifier(account_id)
        with storage_guard(self.db, "roster list"):
            return self.db.query(Student).filter(
                Student.account_id == account_id
            ).order_by(Student.code_key).all()
