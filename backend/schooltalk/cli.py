"""CLI for SchoolTalk.

Commands:
    init-db       Create the database tables
    login         Sign in, or create an account for a new number
    logout        End the saved session
    whoami        Show the signed-in account
    change-code   Rotate the signed-in account's access code
    students      List, add, find and remove students
    transfer      Move the signed-in roster to another account
"""

import sys
from contextlib import contextmanager

import click
from rich.console import Console
from rich.table import Table

from schooltalk import __version__
from schooltalk.database import SessionLocal, create_tables
from schooltalk.errors import SchoolTalkError, VerificationFailed
from schooltalk.logging_config import get_logger, log_with_context, setup_logging
from schooltalk.services.credentials import CredentialStore
from schooltalk.services.migration import transfer as transfer_roster
from schooltalk.services.roster import RosterStore
from schooltalk.services.session import LocalSessionStore, SessionManager, SessionStep

console = Console()
logger = get_logger("cli")


@contextmanager
def open_session(session_file=None):
    """Yield (db, SessionManager) with any saved session already restored."""
    db = SessionLocal()
    account_id = ""
    try:
        manager = SessionManager(CredentialStore(db), LocalSessionStore(session_file))
        manager.restore()
        account_id = manager.identifier or ""
        yield db, manager
    except SchoolTalkError as e:
        log_with_context(logger, "WARNING", "{}: {}".format(e.__class__.__name__, e.detail),
                         context={"account_id": account_id})
        console.print(f"[red]✗ {e.detail}[/red]")
        sys.exit(1)
    finally:
        db.close()


def require_login(manager: SessionManager):
    if manager.step is not SessionStep.AUTHENTICATED:
        console.print("[yellow]Not signed in. Run 'schooltalk login' first.[/yellow]")
        sys.exit(1)
    return manager.context()


@click.group()
@click.version_option(version=__version__, prog_name="schooltalk")
@click.option("--session-file", type=click.Path(dir_okay=False), default=None,
              help="Where the signed-in account is remembered")
@click.option("--log-level", default="WARNING", show_default=True,
              help="Log level for the JSON log written to stderr")
@click.pass_context
def cli(ctx, session_file, log_level):
    """SchoolTalk - look up students and manage your roster."""
    setup_logging(log_level.upper())
    ctx.obj = {"session_file": session_file}


@cli.command("init-db")
def init_db():
    """Create database tables."""
    create_tables()
    console.print("[green]✓ Database initialized[/green]")


@cli.command()
@click.option("--identifier", "-i", prompt="Phone number or email", help="Account phone or email")
@click.pass_obj
def login(obj, identifier):
    """Sign in, or create an account for a new identifier."""
    with open_session(obj["session_file"]) as (db, manager):
        if manager.step is SessionStep.AUTHENTICATED:
            console.print(f"Already signed in as [bold]{manager.identifier}[/bold].")
            return

        step = manager.submit_identifier(identifier)
        if step is SessionStep.CREATE_SECRET:
            console.print(f"[blue]No account for {manager.identifier}. Create an access code.[/blue]")
            secret = click.prompt("New access code", hide_input=True, confirmation_prompt=True)
            manager.submit_secret(secret)
            console.print("[green]✓ Account created. You are now signed in.[/green]")
            return

        for _ in range(3):
            secret = click.prompt(f"Access code for {manager.identifier}", hide_input=True)
            try:
                manager.submit_secret(secret)
            except VerificationFailed as e:
                console.print(f"[red]✗ {e.detail}[/red]")
                continue
            console.print("[green]✓ You are now signed in.[/green]")
            return

        manager.reset()
        console.print("[red]Too many incorrect codes.[/red]")
        sys.exit(1)


@cli.command()
@click.pass_obj
def logout(obj):
    """Forget the saved session."""
    with open_session(obj["session_file"]) as (db, manager):
        if manager.step is not SessionStep.AUTHENTICATED:
            console.print("[yellow]Not signed in.[/yellow]")
            return
        manager.sign_out()
        console.print("[green]✓ Signed out[/green]")


@cli.command()
@click.pass_obj
def whoami(obj):
    """Show the signed-in account and its roster size."""
    with open_session(obj["session_file"]) as (db, manager):
        session = require_login(manager)
        count = RosterStore(db).count(session.identifier)
        console.print(f"[bold]{session.identifier}[/bold] ({count} students)")


@cli.command("change-code")
@click.pass_obj
def change_code(obj):
    """Rotate the access code of the signed-in account."""
    with open_session(obj["session_file"]) as (db, manager):
        require_login(manager)
        secret = click.prompt("New access code", hide_input=True, confirmation_prompt=True)
        manager.change_secret(secret)
        console.print("[green]✓ Access code updated[/green]")


@cli.group()
def students():
    """Manage the signed-in account's roster."""
    pass


@students.command("list")
@click.pass_obj
def students_list(obj):
    """List all students."""
    with open_session(obj["session_file"]) as (db, manager):
        session = require_login(manager)
        roster = RosterStore(db).list(session.identifier)
        if not roster:
            console.print("[yellow]No students yet.[/yellow]")
            return

        table = Table(title=f"Roster of {session.identifier}")
        table.add_column("Code", style="cyan")
        table.add_column("Name")
        table.add_column("Parent contact")
        table.add_column("ID", style="dim")
        for student in roster:
            table.add_row(student.code, student.name, student.parent_contact, student.id)
        console.print(table)


@students.command("add")
@click.option("--code", "-c", prompt=True, help="Student code")
@click.option("--name", "-n", prompt=True, help="Student name")
@click.option("--parent", "-p", "parent_contact", prompt="Parent phone", help="Parent phone number")
@click.pass_obj
def students_add(obj, code, name, parent_contact):
    """Add a student."""
    with open_session(obj["session_file"]) as (db, manager):
        session = require_login(manager)
        student = RosterStore(db).add(session.identifier, code, name, parent_contact)
        console.print(f"[green]✓ Added {student.name} ({student.code})[/green]")


@students.command("find")
@click.argument("code")
@click.pass_obj
def students_find(obj, code):
    """Look a student up by code."""
    with open_session(obj["session_file"]) as (db, manager):
        session = require_login(manager)
        student = RosterStore(db).find_by_code(session.identifier, code)

        console.print(f"[bold]{student.name}[/bold] ({student.code})")
        console.print(f"  Parent: {student.parent_contact}")
        console.print(f"  Homework entries: {len(student.homework_list)}")
        console.print(f"  Quizzes: {len(student.quizzes_list)}")
        console.print(f"  Attendance days: {len(student.attendance_list)}")


@students.command("remove")
@click.argument("code")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def students_remove(obj, code, yes):
    """Remove the student with CODE."""
    with open_session(obj["session_file"]) as (db, manager):
        session = require_login(manager)
        roster = RosterStore(db)
        student = roster.find_by_code(session.identifier, code)
        if not yes and not click.confirm(f"Remove {student.name} ({student.code})?", default=False):
            console.print("[yellow]Aborted.[/yellow]")
            return
        removed_code = student.code
        roster.remove(session.identifier, student.id)
        console.print(f"[green]✓ Removed {removed_code}[/green]")


@cli.command()
@click.option("--to", "to_identifier", prompt="Destination phone or email", help="Destination account")
@click.pass_obj
def transfer(obj, to_identifier):
    """Move the signed-in roster to another account you control."""
    with open_session(obj["session_file"]) as (db, manager):
        session = require_login(manager)
        credentials = CredentialStore(db)
        if credentials.exists(to_identifier):
            secret = click.prompt(f"Access code for {to_identifier}", hide_input=True)
            if not credentials.verify(to_identifier, secret):
                raise VerificationFailed("Invalid credentials for the destination account.")

        result = transfer_roster(db, session.identifier, to_identifier)
        console.print(f"[green]✓ Moved {result.moved_count} students[/green]")
        if result.skipped_count:
            console.print(
                f"[yellow]{result.skipped_count} skipped: their codes already exist "
                f"in the destination and they stay in this roster.[/yellow]")


def main():
    cli()


if __name__ == "__main__":
    main()
