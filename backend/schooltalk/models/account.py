"""
Account model - a teacher (or shared team) identity.

Accounts are keyed by their normalized identifier (phone digits or
lower-cased email). The stored verifier is the output of a one-way
transform; the plaintext secret is never persisted.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String, func
from sqlalchemy.orm import relationship
from schooltalk.database import Base


class Account(Base):
    """
    SQLAlchemy model for the accounts table.

    One account owns exactly one roster (its students). Accounts are never
    deleted in-band; only the verifier changes, through rotation.
    """
    __tablename__ = "accounts"

    identifier = Column(String(254), primary_key=True,
                        doc="Normalized phone number or email, immutable")
    secret_verifier = Column(Text, nullable=False,
                             doc="Hashed secret, format depends on the configured hasher")
    created_at = Column(DateTime(timezone=True), nullable=False,
                        default=lambda: datetime.now(timezone.utc), server_default=func.now(),
                        doc="When the account was registered")
    updated_at = Column(DateTime(timezone=True), nullable=False,
                        default=lambda: datetime.now(timezone.utc), server_default=func.now(),
                        onupdate=lambda: datetime.now(timezone.utc),
                        doc="Last verifier rotation")

    # Relationship: one account has many students
    students = relationship("Student", back_populates="account")

    def __repr__(self):
        return f"<Account(identifier='{self.identifier}')>"
