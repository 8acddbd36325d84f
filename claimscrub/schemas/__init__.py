"""
Pydantic schemas for claim entry, scrubbing and submission.
"""

from claimscrub.schemas.claim import (
    ClaimDiagnosisResponse,
    ClaimProcedureResponse,
    ClaimResponse,
    ClaimStatusUpdate,
    ClaimSubmission,
    DiagnosisEntry,
    ProcedureLine,
)
from claimscrub.schemas.scrubbing import (
    ClaimValidationResult,
    FieldValidationRequest,
    FieldValidationResult,
    ScrubbingError,
    ScrubbingResult,
    ScrubbingSuggestion,
    ScrubbingWarning,
    SubmissionResult,
    TimelyFilingInfo,
)

__all__ = [
    "ClaimDiagnosisResponse",
    "ClaimProcedureResponse",
    "ClaimResponse",
    "ClaimStatusUpdate",
    "ClaimSubmission",
    "DiagnosisEntry",
    "ProcedureLine",
    "ClaimValidationResult",
    "FieldValidationRequest",
    "FieldValidationResult",
    "ScrubbingError",
    "ScrubbingResult",
    "ScrubbingSuggestion",
    "ScrubbingWarning",
    "SubmissionResult",
    "TimelyFilingInfo",
]
