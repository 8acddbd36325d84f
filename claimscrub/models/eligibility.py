"""
Eligibility Verification Model.
Verified: 2026-10-18
"""

from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, Date, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from claimscrub.models.base import Base, TimeStampedModel, UUIDModel


class EligibilityVerification(Base, UUIDModel, TimeStampedModel):
    """Result of an eligibility inquiry for an insurance on a service date."""

    __tablename__ = "eligibility_verifications"

    insurance_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    patient_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    service_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_eligible: Mapped[Optional[bool]] = mapped_column(
        Boolean,
        nullable=True,
        comment="NULL when the payer response was inconclusive",
    )
    coverage_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    response_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_eligibility_insurance_service_date", "insurance_id", "service_date"),
    )
