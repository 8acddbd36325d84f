"""
Prior Authorization Request Model.
Verified: 2026-10-18
"""

from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import Date, Enum, JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from claimscrub.core.enums import AuthorizationStatus
from claimscrub.models.base import Base, TimeStampedModel, UUIDModel


class AuthorizationRequest(Base, UUIDModel, TimeStampedModel):
    """Prior authorization obtained (or requested) from a payer."""

    __tablename__ = "authorization_requests"

    auth_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )
    patient_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    payer_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True, index=True)
    procedure_codes: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[AuthorizationStatus] = mapped_column(
        Enum(AuthorizationStatus),
        default=AuthorizationStatus.PENDING,
        nullable=False,
    )
    effective_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
