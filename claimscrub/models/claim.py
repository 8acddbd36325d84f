"""
Claim Models for Claim Submission.
Source: CMS-1500 claim structure (header, service lines, diagnosis list)
Verified: 2026-10-18
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from claimscrub.core.enums import ClaimStatus, FormType, InsuranceType
from claimscrub.models.base import Base, TimeStampedModel, UUIDModel


class Claim(Base, UUIDModel, TimeStampedModel):
    """
    Claim header.

    Patient, provider, facility and insurance references point at records
    owned by the surrounding practice-management store; only the claim and
    its child rows are written here.
    """

    __tablename__ = "claims"

    claim_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
        comment="Human-readable claim number (e.g., CLM-20261018-0042)",
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="User who created the claim",
    )
    form_type: Mapped[FormType] = mapped_column(
        Enum(FormType),
        default=FormType.CMS1500,
        nullable=False,
    )
    status: Mapped[ClaimStatus] = mapped_column(
        Enum(ClaimStatus),
        default=ClaimStatus.DRAFT,
        nullable=False,
        index=True,
        comment="Current claim status",
    )

    # References
    patient_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True, index=True)
    provider_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    billing_provider_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    facility_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    appointment_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    primary_insurance_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True, index=True
    )
    secondary_insurance_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    tertiary_insurance_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    insurance_type: Mapped[InsuranceType] = mapped_column(
        Enum(InsuranceType),
        default=InsuranceType.EDI,
        nullable=False,
    )

    # Service
    service_date_from: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    service_date_to: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    place_of_service_code: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)

    # Financial Summary
    total_charges: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    patient_responsibility: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    insurance_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    copay_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    deductible_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    # Authorization / referral
    prior_auth_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    referral_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    treatment_auth_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Submission
    submission_method: Mapped[InsuranceType] = mapped_column(
        Enum(InsuranceType, name="submissionmethod"),
        default=InsuranceType.EDI,
        nullable=False,
    )
    submission_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_secondary_claim: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    procedures: Mapped[list["ClaimProcedure"]] = relationship(
        back_populates="claim",
        cascade="all, delete-orphan",
        order_by="ClaimProcedure.line_number",
    )
    diagnoses: Mapped[list["ClaimDiagnosis"]] = relationship(
        back_populates="claim",
        cascade="all, delete-orphan",
        order_by="ClaimDiagnosis.sequence_number",
    )
    status_history: Mapped[list["ClaimStatusHistory"]] = relationship(
        back_populates="claim",
        order_by="ClaimStatusHistory.created_at",
    )

    __table_args__ = (
        Index("ix_claims_patient_service_date", "patient_id", "service_date_from"),
    )

    def __repr__(self) -> str:
        return f"<Claim {self.claim_number} status={self.status}>"


class ClaimProcedure(Base, UUIDModel, TimeStampedModel):
    """Procedure (service line) billed on a claim."""

    __tablename__ = "claim_procedures"

    claim_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("claims.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    cpt_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    modifiers: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    diagnosis_pointer: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    type_of_service: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)

    claim: Mapped["Claim"] = relationship(back_populates="procedures")


class ClaimDiagnosis(Base, UUIDModel, TimeStampedModel):
    """Diagnosis listed on a claim."""

    __tablename__ = "claim_diagnoses"

    claim_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("claims.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    icd_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    claim: Mapped["Claim"] = relationship(back_populates="diagnoses")


class ClaimStatusHistory(Base, UUIDModel):
    """
    Append-only record of claim status changes.

    Rows are inserted once and never updated or deleted.
    """

    __tablename__ = "claim_status_history"

    claim_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("claims.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    previous_status: Mapped[Optional[ClaimStatus]] = mapped_column(Enum(ClaimStatus), nullable=True)
    new_status: Mapped[ClaimStatus] = mapped_column(Enum(ClaimStatus), nullable=False)
    changed_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    claim: Mapped["Claim"] = relationship(back_populates="status_history")
