"""Tests for the schooltalk CLI using click's CliRunner."""

import pytest
from click.testing import CliRunner

from schooltalk import cli as cli_module
from schooltalk.cli import cli

from conftest import CODE_A, CODE_B, PARENT, TEACHER_A, TEACHER_B

pytestmark = pytest.mark.integration


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, session_factory, tmp_path, monkeypatch):
    """Run a CLI command against the test database and a temp session file."""
    monkeypatch.setattr(cli_module, "SessionLocal", session_factory)
    monkeypatch.setattr(cli_module, "setup_logging", lambda level: None)
    session_file = str(tmp_path / "session.json")

    def run(*args, input=None):
        return runner.invoke(cli, ["--session-file", session_file, *args], input=input)

    return run


def login(invoke, identifier=TEACHER_A, code=CODE_A):
    return invoke("login", "--identifier", identifier, input=f"{code}\n")


class TestLogin:

    def test_new_account_is_created(self, invoke, credentials):
        result = invoke("login", "--identifier", TEACHER_A, input=f"{CODE_A}\n{CODE_A}\n")
        assert result.exit_code == 0, result.output
        assert "Account created" in result.output
        assert credentials.verify(TEACHER_A, CODE_A)

    def test_existing_account(self, invoke, accounts):
        result = login(invoke)
        assert result.exit_code == 0, result.output
        assert "signed in" in result.output

        whoami = invoke("whoami")
        assert TEACHER_A in whoami.output
        assert "0 students" in whoami.output

    def test_wrong_code_then_right(self, invoke, accounts):
        result = invoke("login", "--identifier", TEACHER_A, input=f"0000\n{CODE_A}\n")
        assert result.exit_code == 0, result.output
        assert "incorrect" in result.output

    def test_three_wrong_codes(self, invoke, accounts):
        result = invoke("login", "--identifier", TEACHER_A, input="0000\n1111\n2222\n")
        assert result.exit_code == 1
        assert "Too many incorrect codes" in result.output
        assert "Not signed in" in invoke("whoami").output

    def test_logout(self, invoke, accounts):
        login(invoke)
        assert "Signed out" in invoke("logout").output
        assert invoke("whoami").exit_code == 1


class TestStudentCommands:

    def test_requires_login(self, invoke):
        result = invoke("students", "list")
        assert result.exit_code == 1
        assert "Not signed in" in result.output

    def test_add_find_list_remove(self, invoke, accounts):
        login(invoke)

        added = invoke("students", "add", "-c", "ST001", "-n", "Alex Johnson", "-p", PARENT)
        assert added.exit_code == 0, added.output
        assert "Added Alex Johnson" in added.output

        found = invoke("students", "find", "st001")
        assert "Alex Johnson" in found.output
        assert PARENT in found.output

        listed = invoke("students", "list")
        assert "ST001" in listed.output

        removed = invoke("students", "remove", "ST001", "--yes")
        assert removed.exit_code == 0, removed.output
        assert "Removed ST001" in removed.output

        missing = invoke("students", "find", "ST001")
        assert missing.exit_code == 1
        assert "No student with code ST001" in missing.output

    def test_duplicate_reported(self, invoke, accounts):
        login(invoke)
        invoke("students", "add", "-c", "ST001", "-n", "Alex Johnson", "-p", PARENT)
        result = invoke("students", "add", "-c", "st001", "-n", "Other", "-p", PARENT)
        assert result.exit_code == 1
        assert "already exists" in result.output


class TestAccountCommands:

    def test_change_code(self, invoke, accounts, credentials):
        login(invoke)
        result = invoke("change-code", input="2468\n2468\n")
        assert result.exit_code == 0, result.output
        assert credentials.verify(TEACHER_A, "2468")

    def test_transfer(self, invoke, accounts, roster):
        roster.add(TEACHER_A, "X", "From A", PARENT)
        roster.add(TEACHER_A, "Y", "Also A", PARENT)
        roster.add(TEACHER_B, "X", "Original B", PARENT)
        login(invoke)

        result = invoke("transfer", "--to", TEACHER_B, input=f"{CODE_B}\n")

        assert result.exit_code == 0, result.output
        assert "Moved 1 students" in result.output
        assert "1 skipped" in result.output
        assert sorted(s.code for s in roster.list(TEACHER_B)) == ["X", "Y"]

    def test_transfer_wrong_destination_code(self, invoke, accounts, roster):
        roster.add(TEACHER_A, "X", "From A", PARENT)
        login(invoke)

        result = invoke("transfer", "--to", TEACHER_B, input="0000\n")

        assert result.exit_code == 1
        assert [s.code for s in roster.list(TEACHER_A)] == ["X"]
