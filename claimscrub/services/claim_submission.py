"""
Claim Submission Service.

Provides:
- Pre-submission validation (hard checks, timely filing, scrubbing gate)
- Atomic claim persistence (claim, procedures, diagnoses, status history)
- Claim number generation with retry on collision
- Draft saving and status updates

Verified: 2026-10-18
"""

import asyncio
import logging
import random
from datetime import date
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from claimscrub.core.config import ClaimsSettings, get_settings
from claimscrub.core.enums import ClaimStatus, ErrorSeverity, FilingWarningLevel
from claimscrub.models import Claim, ClaimDiagnosis, ClaimProcedure, ClaimStatusHistory
from claimscrub.schemas.claim import ClaimResponse, ClaimSubmission
from claimscrub.schemas.scrubbing import (
    ClaimValidationResult,
    SubmissionResult,
    TimelyFilingInfo,
)
from claimscrub.services.claim_scrubbing import ClaimScrubbingService
from claimscrub.services.claim_state_machine import ClaimStateMachine, get_claim_state_machine
from claimscrub.services.code_format import is_valid_cpt, is_valid_icd10
from claimscrub.services.timely_filing import TimelyFilingCalculator

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ClaimsServiceError(Exception):
    """Base exception for claim submission errors."""

    pass


class ClaimNotFoundError(ClaimsServiceError):
    """Raised when claim is not found."""

    pass


class ClaimValidationError(ClaimsServiceError):
    """Raised when a claim cannot be submitted."""

    def __init__(
        self,
        message: str,
        errors: Optional[list[str]] = None,
        validation: Optional[ClaimValidationResult] = None,
    ):
        super().__init__(message)
        self.errors = errors or []
        self.validation = validation


class ClaimStatusTransitionError(ClaimsServiceError):
    """Raised when invalid status transition is attempted."""

    pass


class ClaimPersistenceError(ClaimsServiceError):
    """Raised when a claim could not be written; nothing was persisted."""

    pass


class ClaimNumberConflictError(ClaimPersistenceError):
    """Raised when no unique claim number could be stored."""

    pass


# =============================================================================
# Service
# =============================================================================


class ClaimSubmissionService:
    """
    Validates and persists claims.

    Every write is a single transaction: a claim is stored together with
    all of its procedures, diagnoses and its status history row, or not
    at all.
    """

    def __init__(
        self,
        session: AsyncSession,
        scrubber: ClaimScrubbingService,
        timely_filing: TimelyFilingCalculator,
        settings: Optional[ClaimsSettings] = None,
        state_machine: Optional[ClaimStateMachine] = None,
    ):
        self.session = session
        self.scrubber = scrubber
        self.timely_filing = timely_filing
        self.settings = settings or get_settings()
        self.state_machine = state_machine or get_claim_state_machine()

    # =========================================================================
    # Claim Number Generation
    # =========================================================================

    def generate_claim_number(self, today: Optional[date] = None) -> str:
        """
        Generate a claim number.

        Format: {PREFIX}-{YYYYMMDD}-{RANDOM:04d}
        Example: CLM-20261018-0042

        Uniqueness is enforced by the database; collisions are retried.
        """
        today = today or date.today()
        return f"{self.settings.CLAIM_NUMBER_PREFIX}-{today:%Y%m%d}-{random.randint(0, 9999):04d}"

    # =========================================================================
    # Validation
    # =========================================================================

    async def validate_claim_submission(
        self,
        claim: ClaimSubmission,
        today: Optional[date] = None,
    ) -> ClaimValidationResult:
        """
        Pass/fail validation before submission.

        Args:
            claim: Claim to validate
            today: Reference date (defaults to today)

        Returns:
            ClaimValidationResult; can_submit is False when any blocking error exists
        """
        today = today or date.today()
        result = ClaimValidationResult()

        scrubbing, timely = await asyncio.gather(
            self.scrubber.scrub(claim, today=today),
            self._check_timely_filing(claim, today),
        )

        self._hard_checks(claim, today, result)

        # Timely filing
        if timely is not None:
            result.timely_filing = timely
            if timely.is_past_deadline:
                result.add_error(f"Claim is past timely filing deadline ({timely.deadline.isoformat()})")
            elif timely.warning_level == FilingWarningLevel.CRITICAL:
                result.add_warning(
                    f"Timely filing deadline approaching: {timely.days_remaining} days remaining"
                )

        # Prior authorization for high-cost lines
        threshold = self.settings.HIGH_COST_PROCEDURE_THRESHOLD
        if not claim.prior_auth_number and any(p.total_price > threshold for p in claim.procedures):
            result.add_warning("High-cost procedures detected. Prior authorization may be required.")

        # Scrubbing gate: critical findings block, everything else is advisory
        result.scrubbing = scrubbing
        for error in scrubbing.errors:
            if error.severity == ErrorSeverity.CRITICAL:
                result.add_error(error.message)
            elif error.message not in result.errors:
                result.add_warning(error.message)
        result.requirements = [w.message for w in scrubbing.warnings if w.code == "PAYER-003"]

        result.can_submit = result.is_valid
        return result

    async def _check_timely_filing(
        self,
        claim: ClaimSubmission,
        today: date,
    ) -> Optional[TimelyFilingInfo]:
        if not claim.service_date_from:
            return None
        return await self.timely_filing.check_timely_filing(
            claim.service_date_from, claim.primary_insurance_id, today=today
        )

    def _hard_checks(
        self,
        claim: ClaimSubmission,
        today: date,
        result: ClaimValidationResult,
    ) -> None:
        if not claim.patient_id:
            result.add_error("Patient is required")
        if not claim.provider_id:
            result.add_error("Provider is required")

        if not claim.service_date_from:
            result.add_error("Service date is required")
        elif claim.service_date_from > today:
            result.add_error("Service date cannot be in the future")

        if not claim.procedures:
            result.add_error("At least one procedure is required")
        for index, proc in enumerate(claim.procedures, start=1):
            if not proc.cpt_code:
                result.add_error(f"Procedure {index}: CPT code is required")
            elif not is_valid_cpt(proc.cpt_code):
                result.add_warning(
                    f"Procedure {index}: CPT code format may be invalid (should be 5 digits)"
                )
            if not proc.description:
                result.add_warning(f"Procedure {index}: Description is missing")
            if proc.quantity <= 0:
                result.add_error(f"Procedure {index}: Quantity must be greater than 0")
            if proc.unit_price < 0:
                result.add_error(f"Procedure {index}: Unit price cannot be negative")

        if not claim.diagnoses:
            result.add_error("At least one diagnosis is required")
        else:
            if not any(diag.is_primary for diag in claim.diagnoses):
                result.add_error("Primary diagnosis is required")
            for index, diag in enumerate(claim.diagnoses, start=1):
                if not diag.icd_code:
                    result.add_error(f"Diagnosis {index}: ICD code is required")
                elif not is_valid_icd10(diag.icd_code):
                    result.add_warning(f"Diagnosis {index}: ICD code format may be invalid")

        if not claim.primary_insurance_id:
            result.add_error("Primary insurance is required")
        if not claim.place_of_service_code:
            result.add_error("Place of service code is required")

        if claim.total_charges is None:
            result.add_error("Total charges is required")
        elif claim.total_charges <= 0:
            result.add_error("Total charges must be greater than 0")

    # =========================================================================
    # Write Operations
    # =========================================================================

    async def submit_claim(
        self,
        claim: ClaimSubmission,
        user_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> SubmissionResult:
        """
        Validate and submit a claim.

        Raises:
            ClaimValidationError: Validation blocked submission; nothing was written
            ClaimPersistenceError: The write failed and was rolled back
        """
        today = today or date.today()
        validation = await self.validate_claim_submission(claim, today=today)
        if not validation.can_submit:
            logger.info(f"Claim submission blocked: {len(validation.errors)} errors")
            raise ClaimValidationError(
                f"Validation failed: {', '.join(validation.errors)}",
                errors=validation.errors,
                validation=validation,
            )

        saved = await self._persist(
            claim,
            user_id=user_id,
            status=ClaimStatus.SUBMITTED,
            submission_date=today,
            history_note="Claim submitted",
            today=today,
        )
        logger.info(f"Submitted claim {saved.claim_number} (ID: {saved.id})")
        return SubmissionResult(
            success=True,
            claim=ClaimResponse.model_validate(saved),
            validation=validation,
        )

    async def save_draft(
        self,
        claim: ClaimSubmission,
        user_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Claim:
        """Save a claim as a draft without validation."""
        saved = await self._persist(
            claim,
            user_id=user_id,
            status=ClaimStatus.DRAFT,
            submission_date=None,
            history_note="Draft saved",
            today=today,
        )
        logger.info(f"Saved draft claim {saved.claim_number} (ID: {saved.id})")
        return saved

    async def _persist(
        self,
        claim: ClaimSubmission,
        user_id: Optional[str],
        status: ClaimStatus,
        submission_date: Optional[date],
        history_note: str,
        today: Optional[date] = None,
    ) -> Claim:
        attempts = 1 if claim.claim_number else self.settings.CLAIM_NUMBER_MAX_ATTEMPTS

        for attempt in range(1, attempts + 1):
            claim_number = claim.claim_number or self.generate_claim_number(today)
            db_claim = self._build_claim(claim, user_id, claim_number, status, submission_date)
            db_claim.status_history.append(
                ClaimStatusHistory(
                    id=uuid4(),
                    previous_status=None,
                    new_status=status,
                    changed_by=user_id,
                    notes=history_note,
                )
            )
            self.session.add(db_claim)

            try:
                await self.session.commit()
            except IntegrityError as e:
                await self.session.rollback()
                if claim.claim_number:
                    raise ClaimNumberConflictError(
                        f"Claim number {claim_number} already exists"
                    ) from e
                logger.warning(
                    f"Claim number {claim_number} collided (attempt {attempt}/{attempts}), regenerating"
                )
                continue
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.error(f"Failed to persist claim {claim_number}: {e}")
                raise ClaimPersistenceError(f"Failed to persist claim: {e}") from e

            return await self.get_claim(db_claim.id)

        raise ClaimNumberConflictError(
            f"Could not allocate a unique claim number after {attempts} attempts"
        )

    @staticmethod
    def _build_claim(
        claim: ClaimSubmission,
        user_id: Optional[str],
        claim_number: str,
        status: ClaimStatus,
        submission_date: Optional[date],
    ) -> Claim:
        db_claim = Claim(
            id=uuid4(),
            claim_number=claim_number,
            user_id=user_id,
            form_type=claim.form_type,
            status=status,
            patient_id=claim.patient_id,
            provider_id=claim.provider_id,
            billing_provider_id=claim.billing_provider_id,
            facility_id=claim.facility_id,
            appointment_id=claim.appointment_id,
            primary_insurance_id=claim.primary_insurance_id,
            secondary_insurance_id=claim.secondary_insurance_id,
            tertiary_insurance_id=claim.tertiary_insurance_id,
            insurance_type=claim.insurance_type,
            service_date_from=claim.service_date_from,
            service_date_to=claim.service_date_to or claim.service_date_from,
            place_of_service_code=claim.place_of_service_code,
            total_charges=claim.total_charges,
            patient_responsibility=claim.patient_responsibility or 0,
            insurance_amount=claim.insurance_amount or 0,
            copay_amount=claim.copay_amount or 0,
            deductible_amount=claim.deductible_amount or 0,
            prior_auth_number=claim.prior_auth_number,
            referral_number=claim.referral_number,
            treatment_auth_code=claim.treatment_auth_code,
            submission_method=claim.submission_method,
            submission_date=submission_date,
            is_secondary_claim=claim.is_secondary_claim,
            notes=claim.notes,
        )

        for line_number, proc in enumerate(claim.procedures, start=1):
            db_claim.procedures.append(
                ClaimProcedure(
                    id=uuid4(),
                    line_number=line_number,
                    cpt_code=proc.cpt_code,
                    description=proc.description,
                    quantity=proc.quantity,
                    unit_price=proc.unit_price,
                    total_price=proc.total_price,
                    modifiers=list(proc.modifiers),
                    diagnosis_pointer=proc.diagnosis_pointer,
                    type_of_service=proc.type_of_service,
                )
            )

        for sequence_number, diag in enumerate(claim.diagnoses, start=1):
            db_claim.diagnoses.append(
                ClaimDiagnosis(
                    id=uuid4(),
                    sequence_number=sequence_number,
                    icd_code=diag.icd_code,
                    description=diag.description,
                    is_primary=diag.is_primary,
                )
            )

        return db_claim

    async def update_claim_status(
        self,
        claim_id: UUID,
        new_status: ClaimStatus,
        user_id: Optional[str] = None,
        notes: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Claim:
        """
        Move a claim along its lifecycle and append a history row.

        Moving to submitted (from draft or denied) re-runs validation.

        Raises:
            ClaimNotFoundError: No claim with that ID
            ClaimStatusTransitionError: Transition not allowed from the current status
            ClaimValidationError: Claim does not pass validation for submission
        """
        today = today or date.today()
        db_claim = await self.get_claim(claim_id)
        if db_claim is None:
            raise ClaimNotFoundError(f"Claim not found: {claim_id}")

        transition = self.state_machine.validate_transition(db_claim.status, new_status)
        if not transition.success:
            raise ClaimStatusTransitionError(transition.error)

        if transition.transition.requires_validation:
            submission = ClaimSubmission.model_validate(db_claim, from_attributes=True)
            validation = await self.validate_claim_submission(submission, today=today)
            if not validation.can_submit:
                raise ClaimValidationError(
                    f"Validation failed: {', '.join(validation.errors)}",
                    errors=validation.errors,
                    validation=validation,
                )

        previous_status = db_claim.status
        db_claim.status = new_status
        if new_status == ClaimStatus.SUBMITTED:
            db_claim.submission_date = today
        self.session.add(
            ClaimStatusHistory(
                id=uuid4(),
                claim_id=db_claim.id,
                previous_status=previous_status,
                new_status=new_status,
                changed_by=user_id,
                notes=notes,
            )
        )

        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to update claim {claim_id} status: {e}")
            raise ClaimPersistenceError(f"Failed to update claim status: {e}") from e

        logger.info(
            f"Claim {db_claim.claim_number} transitioned: "
            f"{previous_status.value} -> {new_status.value}"
        )
        return await self.get_claim(db_claim.id)

    # =========================================================================
    # Read Operations
    # =========================================================================

    async def get_claim(self, claim_id: UUID) -> Optional[Claim]:
        """Get claim by ID with procedures and diagnoses loaded."""
        result = await self.session.execute(
            select(Claim)
            .where(Claim.id == claim_id)
            .options(selectinload(Claim.procedures), selectinload(Claim.diagnoses))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


# =============================================================================
# Factory Functions
# =============================================================================


def get_claim_submission_service(
    session: AsyncSession,
    scrubber: ClaimScrubbingService,
    timely_filing: TimelyFilingCalculator,
    settings: Optional[ClaimsSettings] = None,
) -> ClaimSubmissionService:
    """Get claim submission service instance."""
    return ClaimSubmissionService(
        session=session,
        scrubber=scrubber,
        timely_filing=timely_filing,
        settings=settings,
    )
