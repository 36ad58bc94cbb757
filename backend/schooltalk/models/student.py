"""
Student model - a single student in one account's roster.

Students are looked up by code. The code is unique per account and
compared case-insensitively, which the database enforces through a unique
constraint on (account_id, code_key). Homework, quiz and attendance
entries are kept as JSON text alongside the core fields.
"""

import uuid
import json
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from schooltalk.database import Base


def code_key(code: str) -> str:
    """Case-folded form of a student code, used for lookups and uniqueness."""
    return code.strip().casefold()


def _parse_json_list(value):
    if isinstance(value, list):
        return value
    try:
        parsed = json.loads(value) if value else []
    except (json.JSONDecodeError, TypeError):
        return []
    return parsed if isinstance(parsed, list) else []


class Student(Base):
    """
    SQLAlchemy model for the students table.

    account_id is the only ownership link: moving a student to another
    account means rewriting this column, never copying the row.
    """
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique student identifier")
    account_id = Column(String(254), ForeignKey("accounts.identifier"), nullable=False,
                        doc="Owning account")
    code = Column(Text, nullable=False,
                  doc="Student code as entered by the teacher")
    code_key = Column(Text, nullable=False,
                      doc="Case-folded code, unique within the owning account")
    name = Column(Text, nullable=False,
                  doc="Student display name")
    parent_contact = Column(Text, nullable=False,
                            doc="Parent phone number, digits only")
    homework = Column(Text, nullable=False, default="[]", server_default="[]",
                      doc="JSON list: {subject, task, due_date, completed}")
    quizzes = Column(Text, nullable=False, default="[]", server_default="[]",
                     doc="JSON list: {subject, topic, score, date}")
    attendance = Column(Text, nullable=False, default="[]", server_default="[]",
                        doc="JSON list: {date, status}")
    created_at = Column(DateTime(timezone=True), nullable=False,
                        default=lambda: datetime.now(timezone.utc), server_default=func.now(),
                        doc="Timestamp when student record was created")

    account = relationship("Account", back_populates="students")

    __table_args__ = (
        UniqueConstraint("account_id", "code_key", name="uq_students_account_code"),
        Index("ix_students_account_id", "account_id"),
    )

    @property
    def homework_list(self):
        """Parse homework JSON string to a list."""
        return _parse_json_list(self.homework)

    @property
    def quizzes_list(self):
        """Parse quizzes JSON string to a list."""
        return _parse_json_list(self.quizzes)

    @property
    def attendance_list(self):
        """Parse attendance JSON string to a list."""
        return _parse_json_list(self.attendance)

    def __repr__(self):
        return f"<Student(id={self.id}, account='{self.account_id}', code='{self.code}')>"
