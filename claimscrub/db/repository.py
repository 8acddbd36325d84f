"""
Read-Side Store Lookups for Claim Scrubbing.
Source: https://docs.sqlalchemy.org/en/20/orm/queryguide/select.html
Verified: 2026-10-18

Each lookup opens its own short-lived session, so the scrubber can issue
them concurrently (an AsyncSession does not allow concurrent use).
"""

from datetime import date
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from claimscrub.core.enums import NON_TERMINAL_DUPLICATE_STATUSES, ClaimStatus
from claimscrub.models import (
    AuthorizationRequest,
    Claim,
    EligibilityVerification,
    InsurancePayer,
    Patient,
)
from claimscrub.utils.logging import get_logger

logger = get_logger(__name__)


class ClaimRepository:
    """Store lookups used by scrubbing and timely filing."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def get_payer(self, insurance_id: UUID) -> Optional[InsurancePayer]:
        """Payer record behind a claim's insurance reference."""
        async with self.session_maker() as session:
            return await session.get(InsurancePayer, insurance_id)

    async def get_payer_by_code(self, code: str) -> Optional[InsurancePayer]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(InsurancePayer).where(InsurancePayer.code == code)
            )
            return result.scalar_one_or_none()

    async def get_patient(self, patient_id: UUID) -> Optional[Patient]:
        async with self.session_maker() as session:
            return await session.get(Patient, patient_id)

    async def find_authorization(self, auth_number: str) -> Optional[AuthorizationRequest]:
        """Authorization request by its auth number."""
        async with self.session_maker() as session:
            result = await session.execute(
                select(AuthorizationRequest).where(AuthorizationRequest.auth_number == auth_number)
            )
            return result.scalar_one_or_none()

    async def latest_eligibility(
        self,
        insurance_id: UUID,
        service_date: date,
    ) -> Optional[EligibilityVerification]:
        """Most recent eligibility verification for an insurance and service date."""
        async with self.session_maker() as session:
            result = await session.execute(
                select(EligibilityVerification)
                .where(
                    EligibilityVerification.insurance_id == insurance_id,
                    EligibilityVerification.service_date == service_date,
                )
                .order_by(EligibilityVerification.created_at.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def find_duplicate_claims(
        self,
        patient_id: UUID,
        service_date: date,
        exclude_claim_number: Optional[str] = None,
    ) -> Sequence[Claim]:
        """
        Non-terminal claims for the same patient and service date.

        Args:
            patient_id: Patient UUID
            service_date: First date of service
            exclude_claim_number: Claim being re-scrubbed, not a duplicate of itself

        Returns:
            Matching claims ordered by claim number
        """
        async with self.session_maker() as session:
            query = select(Claim).where(
                Claim.patient_id == patient_id,
                Claim.service_date_from == service_date,
                Claim.status.in_(NON_TERMINAL_DUPLICATE_STATUSES),
            )
            if exclude_claim_number:
                query = query.where(Claim.claim_number != exclude_claim_number)
            result = await session.execute(query.order_by(Claim.claim_number))
            return result.scalars().all()

    async def get_payer_approval_rate(self, insurance_id: UUID) -> Optional[float]:
        """
        Historical approval rate (0-100) of decided claims for an insurance.

        Returns:
            Percentage of paid among paid+denied claims, or None if none decided
        """
        async with self.session_maker() as session:
            result = await session.execute(
                select(Claim.status, func.count(Claim.id))
                .where(
                    Claim.primary_insurance_id == insurance_id,
                    Claim.status.in_((ClaimStatus.PAID, ClaimStatus.DENIED)),
                )
                .group_by(Claim.status)
            )
            counts = {status: count for status, count in result.all()}

        decided = sum(counts.values())
        if not decided:
            return None
        return counts.get(ClaimStatus.PAID, 0) * 100.0 / decided
