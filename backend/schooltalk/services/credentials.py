"""
Credential Store - registers accounts and checks their secrets.

The store only ever keeps a verifier produced by a SecretHasher. Two hashers
are available:

- Sha256Hasher: unsalted SHA-256 hex digest. Deterministic, which suits the
  low-value shared access code the app was built around (a 4-digit code
  handed out to assistants).
- Pbkdf2Hasher: salted PBKDF2-HMAC-SHA256 for deployments that use real
  passwords.

Switching hashers does not change the contract: verify() still answers with
a bool. Comparisons use hmac.compare_digest so they do not leak timing.
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schooltalk import config
from schooltalk.database import storage_guard
from schooltalk.errors import AlreadyExists, InvalidArgument, NotFound
from schooltalk.logging_config import get_logger, log_with_context
from schooltalk.models.account import Account
from schooltalk.services.identity import normalize_identifier, validate_secret

logger = get_logger("auth")


class SecretHasher:
    """One-way transform from a plaintext secret to a stored verifier."""

    name = "base"

    def hash(self, secret: str) -> str:
        raise NotImplementedError

    def matches(self, secret: str, verifier: str) -> bool:
        raise NotImplementedError


class Sha256Hasher(SecretHasher):
    name = "sha256"

    def hash(self, secret: str) -> str:
        return hashlib.sha256(secret.encode("utf-8")).hexdigest()

    def matches(self, secret: str, verifier: str) -> bool:
        return hmac.compare_digest(self.hash(secret), verifier)


class Pbkdf2Hasher(SecretHasher):
    """Verifier format: pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>"""

    name = "pbkdf2"

    def __init__(self, iterations: int = None):
        self.iterations = iterations or config.PBKDF2_ITERATIONS

    def _derive(self, secret: str, salt: bytes, iterations: int) -> str:
        return hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), salt, iterations).hex()

    def hash(self, secret: str) -> str:
        salt = secrets.token_bytes(16)
        digest = self._derive(secret, salt, self.iterations)
        return f"pbkdf2_sha256${self.iterations}${salt.hex()}${digest}"

    def matches(self, secret: str, verifier: str) -> bool:
        try:
            scheme, iterations, salt_hex, digest = verifier.split("$")
            if scheme != "pbkdf2_sha256":
                return False
            candidate = self._derive(secret, bytes.fromhex(salt_hex), int(iterations))
        except ValueError:
            return False
        return hmac.compare_digest(candidate, digest)


HASHERS = {
    Sha256Hasher.name: Sha256Hasher,
    Pbkdf2Hasher.name: Pbkdf2Hasher,
}


def hasher_for_verifier(verifier: str) -> SecretHasher:
    """Pick the hasher that produced a stored verifier, so old verifiers keep
    working after SECRET_HASHER changes."""
    if verifier.startswith("pbkdf2_sha256$"):
        return Pbkdf2Hasher()
    return Sha256Hasher()


def get_hasher(name: str = None) -> SecretHasher:
    """Build the hasher named in SECRET_HASHER (or the given name)."""
    name = (name or config.SECRET_HASHER).lower()
    try:
        return HASHERS[name]()
    except KeyError:
        raise InvalidArgument(f"Unknown secret hasher: {name}") from None


class CredentialStore:
    """
    Account registration and secret verification against the accounts table.

    The Roster and Migration services never touch verifiers; they only rely
    on this class having authenticated the caller.
    """

    def __init__(self, db: Session, hasher: SecretHasher = None):
        self.db = db
        self.hasher = hasher or get_hasher()

    def _get(self, identifier: str):
        return self.db.get(Account, identifier)

    def exists(self, identifier: str) -> bool:
        identifier = normalize_identifier(identifier)
        with storage_guard(self.db, "account lookup"):
            return self._get(identifier) is not None

    def register(self, identifier: str, secret: str) -> Account:
        """
        Create an account.

        Raises:
            InvalidArgument: malformed identifier or secret
            AlreadyExists: identifier already registered
        """
        identifier = normalize_identifier(identifier)
        validate_secret(secret)

        with storage_guard(self.db, "register"):
            if self._get(identifier) is not None:
                raise AlreadyExists(f"Account {identifier} is already registered.")

            now = datetime.now(timezone.utc)
            account = Account(
                identifier=identifier,
                secret_verifier=self.hasher.hash(secret),
                created_at=now,
                updated_at=now,
            )
            self.db.add(account)
            try:
                self.db.commit()
            except IntegrityError as e:
                # Another registration for the same identifier committed first
                self.db.rollback()
                raise AlreadyExists(f"Account {identifier} is already registered.") from e
            self.db.refresh(account)

        log_with_context(logger, "INFO", "Account registered",
                         context={"account_id": identifier},
                         extra_data={"hasher": self.hasher.name})
        return account

    def verify(self, identifier: str, secret: str) -> bool:
        """
        True iff secret is exactly the one most recently registered/rotated.

        Unknown identifiers and malformed input simply return False.
        """
        try:
            identifier = normalize_identifier(identifier)
        except InvalidArgument:
            return False
        if not isinstance(secret, str):
            return False

        with storage_guard(self.db, "verify"):
            account = self._get(identifier)

        if account is None:
            log_with_context(logger, "WARNING", "Verification for unknown account",
                             context={"account_id": identifier})
            return False

        verifier = account.secret_verifier
        matched = hasher_for_verifier(verifier).matches(secret, verifier)
        if not matched:
            log_with_context(logger, "WARNING", "Secret verification failed",
                             context={"account_id": identifier})
        return matched

    def rotate_secret(self, identifier: str, new_secret: str) -> None:
        """
        Replace the verifier for an existing account.

        Raises:
            InvalidArgument: malformed new secret
            NotFound: identifier not registered
        """
        identifier = normalize_identifier(identifier)
        validate_secret(new_secret)

        with storage_guard(self.db, "rotate_secret"):
            account = self._get(identifier)
            if account is None:
                raise NotFound(f"Account {identifier} is not registered.")
            account.secret_verifier = self.hasher.hash(new_secret)
            account.updated_at = datetime.now(timezone.utc)
            self.db.commit()

        log_with_context(logger, "INFO", "Account secret rotated",
                         context={"account_id": identifier})
