"""
Roster transfer API route.

The caller authenticates as the source account through the usual headers
and proves control of the destination account by sending its secret in the
body, so a roster can only be moved between two accounts the caller holds.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from schooltalk.database import get_db
from schooltalk.errors import VerificationFailed
from schooltalk.routes.auth import require_account
from schooltalk.services.credentials import CredentialStore
from schooltalk.services.identity import normalize_identifier
from schooltalk.services.migration import transfer
from schooltalk.services.session import SessionContext

router = APIRouter()


class TransferRequest(BaseModel):
    to_identifier: str
    to_secret: str


class TransferResponse(BaseModel):
    from_identifier: str
    to_identifier: str
    moved_count: int
    skipped_count: int
    source_cleared: bool


@router.post("/api/roster/transfer", response_model=TransferResponse)
def transfer_roster(request: TransferRequest,
                    session: SessionContext = Depends(require_account),
                    db: Session = Depends(get_db)):
    """Move the signed-in account's roster into the destination account."""
    to_id = normalize_identifier(request.to_identifier)
    credentials = CredentialStore(db)

    # Self-transfers and unknown destinations are reported by transfer()
    if to_id != session.identifier and credentials.exists(to_id):
        if not credentials.verify(to_id, request.to_secret):
            raise VerificationFailed("Invalid credentials for the destination account.")

    result = transfer(db, session.identifier, to_id)
    return TransferResponse(
        from_identifier=session.identifier,
        to_identifier=to_id,
        **result.to_dict(),
    )
