"""Tests for moving a roster between accounts."""

import pytest
from sqlalchemy.exc import OperationalError

from schooltalk.errors import InvalidArgument, NotFound, StorageUnavailable
from schooltalk.services.migration import MigrationResult, transfer

from conftest import PARENT, TEACHER_A, TEACHER_B

pytestmark = pytest.mark.integration


def codes(roster, account_id):
    return sorted(s.code for s in roster.list(account_id))


class TestTransfer:

    def test_collision_is_skipped_and_stays_with_source(self, db, roster, accounts):
        x_in_a = roster.add(TEACHER_A, "X", "From A", PARENT)
        y_in_a = roster.add(TEACHER_A, "Y", "Also from A", PARENT)
        x_in_b = roster.add(TEACHER_B, "X", "Original B", PARENT)

        result = transfer(db, TEACHER_A, TEACHER_B)

        assert result == MigrationResult(moved_count=1, skipped_count=1, source_cleared=False)
        assert codes(roster, TEACHER_B) == ["X", "Y"]
        assert roster.find_by_code(TEACHER_B, "x").id == x_in_b.id
        assert roster.find_by_code(TEACHER_B, "y").id == y_in_a.id
        assert [s.id for s in roster.list(TEACHER_A)] == [x_in_a.id]

    def test_full_transfer_empties_source(self, db, roster, accounts):
        roster.add(TEACHER_A, "P", "Pat", PARENT)
        roster.add(TEACHER_A, "Q", "Quinn", PARENT)

        result = transfer(db, TEACHER_A, TEACHER_B)

        assert result.moved_count == 2
        assert result.skipped_count == 0
        assert result.source_cleared is True
        assert roster.list(TEACHER_A) == []
        assert codes(roster, TEACHER_B) == ["P", "Q"]

    def test_collision_ignores_case(self, db, roster, accounts):
        roster.add(TEACHER_A, "abc", "Lower", PARENT)
        roster.add(TEACHER_B, "ABC", "Upper", PARENT)

        result = transfer(db, TEACHER_A, TEACHER_B)

        assert (result.moved_count, result.skipped_count) == (0, 1)
        assert roster.find_by_code(TEACHER_B, "abc").name == "Upper"
        assert roster.find_by_code(TEACHER_A, "abc").name == "Lower"

    def test_moved_records_keep_their_fields(self, db, roster, accounts):
        attendance = [{"date": "2024-08-12", "status": "Late"}]
        original = roster.add(TEACHER_A, "ST001", "Alex Johnson", PARENT, attendance=attendance)

        transfer(db, TEACHER_A, TEACHER_B)

        moved = roster.find_by_code(TEACHER_B, "ST001")
        assert moved.id == original.id
        assert moved.name == "Alex Johnson"
        assert moved.attendance_list == attendance

    def test_identifiers_are_normalized(self, db, roster, accounts):
        roster.add(TEACHER_A, "P", "Pat", PARENT)
        result = transfer(db, "+1 (555) 000-1111", "1-555-000-2222")
        assert result.moved_count == 1


class TestPreconditions:

    def test_transfer_to_self(self, db, roster, accounts):
        roster.add(TEACHER_A, "P", "Pat", PARENT)
        with pytest.raises(InvalidArgument):
            transfer(db, TEACHER_A, "+1 555 000 1111")

    def test_source_without_roster(self, db, accounts):
        with pytest.raises(NotFound):
            transfer(db, TEACHER_A, TEACHER_B)

    def test_second_full_transfer_finds_nothing(self, db, roster, accounts):
        roster.add(TEACHER_A, "P", "Pat", PARENT)
        transfer(db, TEACHER_A, TEACHER_B)
        with pytest.raises(NotFound):
            transfer(db, TEACHER_A, TEACHER_B)

    def test_unregistered_destination(self, db, roster, accounts):
        roster.add(TEACHER_A, "P", "Pat", PARENT)
        with pytest.raises(NotFound):
            transfer(db, TEACHER_A, "15550009999")
        assert codes(roster, TEACHER_A) == ["P"]


class TestAtomicity:

    def test_failed_commit_moves_nothing(self, db, roster, accounts, monkeypatch):
        roster.add(TEACHER_A, "P", "Pat", PARENT)
        roster.add(TEACHER_A, "Q", "Quinn", PARENT)

        def broken_commit():
            raise OperationalError("UPDATE students", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", broken_commit)
        with pytest.raises(StorageUnavailable):
            transfer(db, TEACHER_A, TEACHER_B)
        monkeypatch.undo()

        assert codes(roster, TEACHER_A) == ["P", "Q"]
        assert roster.list(TEACHER_B) == []
