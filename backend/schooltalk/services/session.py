"""
Account Session Manager - the sign-in / sign-up flow as a state machine.

Steps:
    UNAUTHENTICATED --submit_identifier--> ENTER_SECRET   (registered)
                                       `-> CREATE_SECRET  (new identifier)
    ENTER_SECRET    --submit_secret (ok)--> AUTHENTICATED
    ENTER_SECRET    --submit_secret (bad)-> ENTER_SECRET, VerificationFailed
    CREATE_SECRET   --submit_secret-------> AUTHENTICATED (account created)
    ENTER_SECRET / CREATE_SECRET --reset--> UNAUTHENTICATED
    AUTHENTICATED   --sign_out------------> UNAUTHENTICATED

The identifier of an authenticated account is written to a LocalSessionStore
so a later process can restore() straight into AUTHENTICATED. Sessions do not
expire; they end on sign_out.

Callers get a SessionContext from context() and pass it to the roster and
migration services explicitly.
"""

import enum
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from schooltalk import config
from schooltalk.errors import InvalidArgument, InvalidTransition, VerificationFailed
from schooltalk.logging_config import get_logger, log_with_context
from schooltalk.services.credentials import CredentialStore
from schooltalk.services.identity import normalize_identifier

logger = get_logger("auth")


class SessionStep(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    ENTER_SECRET = "enter_secret"
    CREATE_SECRET = "create_secret"
    AUTHENTICATED = "authenticated"

    @property
    def awaiting_secret(self) -> bool:
        return self in (SessionStep.ENTER_SECRET, SessionStep.CREATE_SECRET)


@dataclass(frozen=True)
class SessionContext:
    """The authenticated account a roster or migration call acts for."""
    identifier: str


class LocalSessionStore:
    """
    Durable client-side session marker: one account identifier in a JSON file.

    A missing or unreadable file means there is no session.
    """

    def __init__(self, path: Path = None):
        self.path = Path(path or config.SESSION_FILE)

    def load(self) -> Optional[str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            log_with_context(logger, "WARNING", "Ignoring unreadable session file",
                             extra_data={"path": str(self.path), "error": str(e)})
            return None
        account = data.get("account") if isinstance(data, dict) else None
        return account or None

    def save(self, identifier: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"account": identifier}), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SessionManager:
    """Drives one client through identify -> secret -> authenticated."""

    def __init__(self, credentials: CredentialStore, store: LocalSessionStore = None):
        self.credentials = credentials
        self.store = store or LocalSessionStore()
        self.step = SessionStep.UNAUTHENTICATED
        self.identifier: Optional[str] = None

    def _expect(self, action: str, *allowed: SessionStep) -> None:
        if self.step not in allowed:
            raise InvalidTransition(
                "Cannot {} while {}.".format(action, self.step.value))

    def _authenticate(self, identifier: str) -> None:
        self.step = SessionStep.AUTHENTICATED
        self.identifier = identifier
        self.store.save(identifier)
        log_with_context(logger, "INFO", "Session established",
                         context={"account_id": identifier})

    def restore(self) -> SessionStep:
        """
        Resume a persisted session, if the stored account still exists.

        A marker pointing at an unknown or malformed identifier is cleared.
        """
        self._expect("restore a session", SessionStep.UNAUTHENTICATED)
        stored = self.store.load()
        if stored is None:
            return self.step

        try:
            known = self.credentials.exists(stored)
        except InvalidArgument:
            known = False

        if known:
            self.step = SessionStep.AUTHENTICATED
            self.identifier = normalize_identifier(stored)
            log_with_context(logger, "INFO", "Session restored",
                             context={"account_id": self.identifier})
        else:
            self.store.clear()
            log_with_context(logger, "WARNING", "Discarded stale session marker",
                             context={"account_id": stored})
        return self.step

    def submit_identifier(self, identifier: str) -> SessionStep:
        """Pick the sign-in or sign-up branch for an identifier."""
        self._expect("submit an identifier",
                     SessionStep.UNAUTHENTICATED,
                     SessionStep.ENTER_SECRET,
                     SessionStep.CREATE_SECRET)
        identifier = normalize_identifier(identifier)

        if self.credentials.exists(identifier):
            self.step = SessionStep.ENTER_SECRET
        else:
            self.step = SessionStep.CREATE_SECRET
        self.identifier = identifier
        return self.step

    def submit_secret(self, secret: str) -> SessionStep:
        """
        Verify (ENTER_SECRET) or create (CREATE_SECRET) the account's secret.

        Raises:
            VerificationFailed: wrong secret; the step stays ENTER_SECRET
            InvalidArgument: malformed secret while creating an account
        """
        if self.step is SessionStep.ENTER_SECRET:
            if not self.credentials.verify(self.identifier, secret):
                raise VerificationFailed("The access code is incorrect.")
            self._authenticate(self.identifier)
        elif self.step is SessionStep.CREATE_SECRET:
            account = self.credentials.register(self.identifier, secret)
            self._authenticate(account.identifier)
        elif self.step in (SessionStep.UNAUTHENTICATED, SessionStep.AUTHENTICATED):
            raise InvalidTransition(
                "Cannot submit a secret while {}.".format(self.step.value))
        else:
            raise AssertionError(f"Unhandled session step: {self.step}")
        return self.step

    def reset(self) -> SessionStep:
        """Abandon the current identifier ("use a different number")."""
        if not self.step.awaiting_secret:
            raise InvalidTransition("Cannot reset while {}.".format(self.step.value))
        self.step = SessionStep.UNAUTHENTICATED
        self.identifier = None
        return self.step

    def sign_out(self) -> SessionStep:
        self._expect("sign out", SessionStep.AUTHENTICATED)
        log_with_context(logger, "INFO", "Signed out",
                         context={"account_id": self.identifier})
        self.store.clear()
        self.step = SessionStep.UNAUTHENTICATED
        self.identifier = None
        return self.step

    def change_secret(self, new_secret: str) -> None:
        """Rotate the signed-in account's secret."""
        self._expect("change the secret", SessionStep.AUTHENTICATED)
        self.credentials.rotate_secret(self.identifier, new_secret)

    def context(self) -> SessionContext:
        """The explicit session context for roster and migration calls."""
        self._expect("use the roster", SessionStep.AUTHENTICATED)
        return SessionContext(identifier=self.identifier)
