"""
Pydantic Schemas for Scrubbing, Timely Filing and Submission Results.
Verified: 2026-10-18

None of these results are persisted; they are recomputed on demand.
"""

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field

from claimscrub.core.enums import (
    ErrorSeverity,
    FilingWarningLevel,
    RiskLevel,
    SuggestionPriority,
    WarningImpact,
)
from claimscrub.schemas.claim import ClaimResponse


class ScrubbingError(BaseModel):
    """Error found while scrubbing a claim."""

    field: str
    code: str
    message: str
    severity: ErrorSeverity
    fixable: bool = True
    suggested_fix: Optional[str] = None


class ScrubbingWarning(BaseModel):
    """Advisory finding; never blocks submission."""

    field: str
    code: str
    message: str
    impact: WarningImpact
    recommendation: Optional[str] = None


class ScrubbingSuggestion(BaseModel):
    """Improvement that raises the chance of first-pass payment."""

    field: str
    message: str
    benefit: str
    priority: SuggestionPriority = SuggestionPriority.LOW


class ScrubbingResult(BaseModel):
    """Outcome of a full scrub."""

    is_valid: bool = True
    can_submit: bool = True
    errors: list[ScrubbingError] = Field(default_factory=list)
    warnings: list[ScrubbingWarning] = Field(default_factory=list)
    suggestions: list[ScrubbingSuggestion] = Field(default_factory=list)
    score: int = Field(default=100, ge=0, le=100)
    risk_level: RiskLevel = RiskLevel.LOW
    estimated_denial_probability: float = Field(default=0.0, ge=0.0, le=100.0)
    duplicate_claim_detected: bool = False
    duplicate_claim_id: Optional[str] = None

    @property
    def critical_errors(self) -> list[ScrubbingError]:
        return [e for e in self.errors if e.severity == ErrorSeverity.CRITICAL]

    @property
    def error_codes(self) -> list[str]:
        return [e.code for e in self.errors]

    @property
    def warning_codes(self) -> list[str]:
        return [w.code for w in self.warnings]


class FieldValidationResult(BaseModel):
    """Live feedback for a single form field."""

    is_valid: bool
    error: Optional[str] = None
    warning: Optional[str] = None
    suggestion: Optional[str] = None


class FieldValidationRequest(BaseModel):
    """Request body for single-field validation."""

    field: str
    value: Any = None


class TimelyFilingInfo(BaseModel):
    """Filing deadline computed for a service date and payer."""

    deadline: date
    days_remaining: int
    is_past_deadline: bool
    warning_level: FilingWarningLevel
    allowed_days: int


class ClaimValidationResult(BaseModel):
    """Pass/fail pre-submission validation."""

    is_valid: bool = True
    can_submit: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    requirements: list[str] = Field(default_factory=list)
    timely_filing: Optional[TimelyFilingInfo] = None
    scrubbing: Optional[ScrubbingResult] = None

    def add_error(self, message: str) -> None:
        """Record a blocking error."""
        if message not in self.errors:
            self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)


class SubmissionResult(BaseModel):
    """Successful submission payload."""

    success: bool
    claim: ClaimResponse
    validation: ClaimValidationResult
