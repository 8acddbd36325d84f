"""
Claim Scrubbing and Submission API Endpoints.

Provides:
- Claim scrubbing and field validation
- Pre-submission validation
- Claim submission and draft saving
- Status transitions

Verified: 2026-10-18
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from claimscrub.api.deps import get_scrubbing_service, get_submission_service, get_user_id
from claimscrub.schemas.claim import ClaimResponse, ClaimStatusUpdate, ClaimSubmission
from claimscrub.schemas.scrubbing import (
    ClaimValidationResult,
    FieldValidationRequest,
    FieldValidationResult,
    ScrubbingResult,
    SubmissionResult,
)
from claimscrub.services.claim_scrubbing import ClaimScrubbingService
from claimscrub.services.claim_submission import (
    ClaimNotFoundError,
    ClaimNumberConflictError,
    ClaimPersistenceError,
    ClaimStatusTransitionError,
    ClaimSubmissionService,
    ClaimValidationError,
)
from claimscrub.utils.errors import (
    ConflictError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/claims",
    tags=["claims"],
)


def _validation_detail(error: ClaimValidationError) -> dict:
    return {
        "message": str(error),
        "errors": error.errors,
        "validation": error.validation.model_dump(mode="json") if error.validation else None,
    }


# =============================================================================
# Scrubbing
# =============================================================================


@router.post("/scrub", response_model=ScrubbingResult)
async def scrub_claim(
    claim: ClaimSubmission,
    scrubber: ClaimScrubbingService = Depends(get_scrubbing_service),
) -> ScrubbingResult:
    """Scrub a complete or partial claim. Nothing is written."""
    return await scrubber.scrub(claim)


@router.post("/validate-field", response_model=FieldValidationResult)
async def validate_field(
    request: FieldValidationRequest,
    scrubber: ClaimScrubbingService = Depends(get_scrubbing_service),
) -> FieldValidationResult:
    """Live feedback for a single form field."""
    return scrubber.validate_field(request.field, request.value)


@router.post("/validate", response_model=ClaimValidationResult)
async def validate_claim(
    claim: ClaimSubmission,
    service: ClaimSubmissionService = Depends(get_submission_service),
) -> ClaimValidationResult:
    """Pass/fail pre-submission validation, including timely filing."""
    return await service.validate_claim_submission(claim)


# =============================================================================
# Submission
# =============================================================================


@router.post("", response_model=SubmissionResult, status_code=status.HTTP_201_CREATED)
async def submit_claim(
    claim: ClaimSubmission,
    service: ClaimSubmissionService = Depends(get_submission_service),
    user_id: Optional[str] = Depends(get_user_id),
) -> SubmissionResult:
    """
    Validate and submit a claim.

    Returns 422 with the full validation result when the claim cannot be
    submitted; nothing is written in that case.
    """
    try:
        return await service.submit_claim(claim, user_id=user_id)
    except ClaimValidationError as e:
        raise ValidationError(detail=_validation_detail(e)) from e
    except ClaimNumberConflictError as e:
        raise ConflictError(detail=str(e)) from e
    except ClaimPersistenceError as e:
        raise ServiceUnavailableError(detail=str(e)) from e


@router.post("/drafts", response_model=ClaimResponse, status_code=status.HTTP_201_CREATED)
async def save_draft(
    claim: ClaimSubmission,
    service: ClaimSubmissionService = Depends(get_submission_service),
    user_id: Optional[str] = Depends(get_user_id),
) -> ClaimResponse:
    """Save a claim as a draft without validation."""
    try:
        saved = await service.save_draft(claim, user_id=user_id)
    except ClaimNumberConflictError as e:
        raise ConflictError(detail=str(e)) from e
    except ClaimPersistenceError as e:
        raise ServiceUnavailableError(detail=str(e)) from e
    return ClaimResponse.model_validate(saved)


# =============================================================================
# Read / Status
# =============================================================================


@router.get("/{claim_id}", response_model=ClaimResponse)
async def get_claim(
    claim_id: UUID,
    service: ClaimSubmissionService = Depends(get_submission_service),
) -> ClaimResponse:
    """Get a claim with its procedures and diagnoses."""
    claim = await service.get_claim(claim_id)
    if claim is None:
        raise NotFoundError(f"Claim not found: {claim_id}")
    return ClaimResponse.model_validate(claim)


@router.patch("/{claim_id}/status", response_model=ClaimResponse)
async def update_claim_status(
    claim_id: UUID,
    update: ClaimStatusUpdate,
    service: ClaimSubmissionService = Depends(get_submission_service),
    user_id: Optional[str] = Depends(get_user_id),
) -> ClaimResponse:
    """Move a claim to a new status."""
    try:
        claim = await service.update_claim_status(
            claim_id, update.status, user_id=user_id, notes=update.notes
        )
    except ClaimNotFoundError as e:
        raise NotFoundError(str(e)) from e
    except ClaimStatusTransitionError as e:
        raise ConflictError(detail=str(e)) from e
    except ClaimValidationError as e:
        raise ValidationError(detail=_validation_detail(e)) from e
    except ClaimPersistenceError as e:
        raise ServiceUnavailableError(detail=str(e)) from e
    return ClaimResponse.model_validate(claim)
