"""
Roster Migration Service - moves a roster from one account to another.

Used when a teacher changes phone number or merges a colleague's roster
into their own. The transfer works record by record:

1. Collect the destination roster's code keys (case-folded)
2. For each source student, skip it if its code is already taken in the
   destination, otherwise re-own it to the destination account
3. Commit the whole batch in one transaction

Skipped students stay with the source account. Nothing is bulk-deleted: the
source roster only ends up empty when every student was moved.
"""

import time
from dataclasses import dataclass, asdict

from sqlalchemy.orm import Session

from schooltalk.database import storage_guard
from schooltalk.errors import InvalidArgument, NotFound
from schooltalk.logging_config import get_logger, log_with_context
from schooltalk.models.account import Account
from schooltalk.models.student import Student
from schooltalk.services.identity import normalize_identifier

logger = get_logger("migration")


@dataclass
class MigrationResult:
    moved_count: int = 0
    skipped_count: int = 0
    source_cleared: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def transfer(db: Session, from_identifier: str, to_identifier: str) -> MigrationResult:
    """
    Move every non-colliding student from one account's roster to another's.

    Args:
        db: Database session; the batch is committed once on success
        from_identifier: Source account (must own at least one student)
        to_identifier: Destination account (must be registered)

    Returns:
        MigrationResult with moved/skipped counts

    Raises:
        InvalidArgument: source and destination are the same account
        NotFound: source has no roster, or destination is not registered
        StorageUnavailable: the batch could not be committed (nothing moved)
    """
    start_time = time.time()

    from_id = normalize_identifier(from_identifier)
    to_id = normalize_identifier(to_identifier)
    if from_id == to_id:
        raise InvalidArgument("Cannot transfer a roster to the same account.")

    result = MigrationResult()

    with storage_guard(db, "roster transfer"):
        if db.get(Account, to_id) is None:
            raise NotFound(f"Destination account {to_id} is not registered.")

        source_students = db.query(Student).filter(
            Student.account_id == from_id
        ).order_by(Student.created_at).all()
        if not source_students:
            raise NotFound(f"No roster found for account {from_id}.")

        taken = {
            key for (key,) in db.query(Student.code_key).filter(Student.account_id == to_id)
        }

        for student in source_students:
            if student.code_key in taken:
                result.skipped_count += 1
                log_with_context(logger, "DEBUG",
                    "Skipping {}: code already in destination".format(student.code),
                    context={"student_id": student.id, "from": from_id, "to": to_id})
                continue

            student.account_id = to_id
            taken.add(student.code_key)
            result.moved_count += 1

        db.commit()

    result.source_cleared = result.skipped_count == 0

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Roster transfer complete: {} moved, {} skipped".format(
            result.moved_count, result.skipped_count),
        context={"from": from_id, "to": to_id},
        extra_data={"duration_ms": round(duration_ms, 2), **result.to_dict()})

    return result
