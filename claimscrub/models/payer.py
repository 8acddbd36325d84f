"""
Insurance Payer Model.
Verified: 2026-10-18
"""

from typing import Optional

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from claimscrub.models.base import Base, TimeStampedModel, UUIDModel


class InsurancePayer(Base, UUIDModel, TimeStampedModel):
    """
    Insurance payer.

    The payer code (e.g., MEDICARE, BCBS) keys the payer rule table; the
    filing window drives the timely filing deadline.
    """

    __tablename__ = "insurance_payers"

    code: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="Payer code used by payer-specific rules",
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    timely_filing_days: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Days after service within which claims must be filed",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<InsurancePayer {self.code}>"
