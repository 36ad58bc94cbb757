"""
Authentication API routes - identify, register, verify and rotate secrets.

The HTTP API is stateless: after a client has signed in through these
endpoints it sends X-Account-Id and X-Account-Secret with every roster
request, and require_account() verifies them and hands the route an
explicit SessionContext.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from schooltalk.database import get_db
from schooltalk.errors import VerificationFailed
from schooltalk.logging_config import get_logger, log_with_context
from schooltalk.services.credentials import CredentialStore
from schooltalk.services.identity import normalize_identifier
from schooltalk.services.session import SessionContext, SessionStep

router = APIRouter()
logger = get_logger("http")


# ── Pydantic schemas ─────────────────────────────────────────

class IdentifyRequest(BaseModel):
    identifier: str = Field(..., description="Phone number or email")


class IdentifyResponse(BaseModel):
    identifier: str
    step: str = Field(..., description="enter_secret | create_secret")


class CredentialsRequest(BaseModel):
    identifier: str = Field(..., description="Phone number or email")
    secret: str = Field(..., description="Access code or password")


class AccountResponse(BaseModel):
    identifier: str
    created_at: str


class VerifyResponse(BaseModel):
    identifier: str
    verified: bool


class RotateRequest(BaseModel):
    new_secret: str


def require_account(
    x_account_id: Optional[str] = Header(None, description="Account identifier"),
    x_account_secret: Optional[str] = Header(None, description="Account access code or password"),
    db: Session = Depends(get_db),
) -> SessionContext:
    """Verify the caller's credentials and return the session context."""
    if not x_account_id or x_account_secret is None:
        raise VerificationFailed("Account credentials are required.")
    if not CredentialStore(db).verify(x_account_id, x_account_secret):
        raise VerificationFailed("Invalid account credentials.")
    return SessionContext(identifier=normalize_identifier(x_account_id))


@router.post("/api/auth/identify", response_model=IdentifyResponse)
def identify(request: IdentifyRequest, db: Session = Depends(get_db)):
    """Tell the client whether to ask for the existing secret or create one."""
    identifier = normalize_identifier(request.identifier)
    registered = CredentialStore(db).exists(identifier)
    step = SessionStep.ENTER_SECRET if registered else SessionStep.CREATE_SECRET
    return IdentifyResponse(identifier=identifier, step=step.value)


@router.post("/api/auth/register", response_model=AccountResponse, status_code=201)
def register(request: CredentialsRequest, db: Session = Depends(get_db)):
    """Create a new account."""
    account = CredentialStore(db).register(request.identifier, request.secret)
    return AccountResponse(
        identifier=account.identifier,
        created_at=account.created_at.isoformat(),
    )


@router.post("/api/auth/verify", response_model=VerifyResponse)
def verify(request: CredentialsRequest, db: Session = Depends(get_db)):
    """Check an account's secret. A mismatch is a 401, not a false body."""
    if not CredentialStore(db).verify(request.identifier, request.secret):
        raise VerificationFailed("The access code is incorrect.")
    identifier = normalize_identifier(request.identifier)
    log_with_context(logger, "INFO", "Account verified", context={"account_id": identifier})
    return VerifyResponse(identifier=identifier, verified=True)


@router.post("/api/auth/rotate", status_code=204)
def rotate(request: RotateRequest,
           session: SessionContext = Depends(require_account),
           db: Session = Depends(get_db)):
    """Replace the signed-in account's secret."""
    CredentialStore(db).rotate_secret(session.identifier, request.new_secret)
    return Response(status_code=204)
