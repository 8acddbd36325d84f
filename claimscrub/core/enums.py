"""
Core Enumerations for Claim Scrubbing and Submission.
Source: Billing back-office claim lifecycle (CMS-1500 / UB-04 workflows)
Verified: 2026-10-18
"""

from enum import Enum


# =============================================================================
# Claim Enums
# =============================================================================


class ClaimStatus(str, Enum):
    """Claim lifecycle status.

    State Machine Transitions:
    DRAFT -> SUBMITTED
    SUBMITTED -> PROCESSING
    PROCESSING -> PAID | DENIED
    DENIED -> SUBMITTED (resubmission)
    """

    DRAFT = "draft"
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    PAID = "paid"
    DENIED = "denied"


# Claims that count against a new submission for the same patient and date
NON_TERMINAL_DUPLICATE_STATUSES = (
    ClaimStatus.SUBMITTED,
    ClaimStatus.PROCESSING,
    ClaimStatus.PAID,
)


class FormType(str, Enum):
    """Paper/electronic claim form families."""

    HCFA = "HCFA"
    CMS1500 = "CMS1500"  # Professional claims
    UB04 = "UB04"  # Institutional claims
    ADA = "ADA"  # Dental claims


class InsuranceType(str, Enum):
    """How the claim reaches the payer."""

    EDI = "EDI"
    PAPER = "Paper"


# =============================================================================
# Medical Code Enums
# =============================================================================


class CodeFamily(str, Enum):
    """Supported medical code families."""

    CPT = "cpt"  # Current Procedural Terminology
    ICD10 = "icd10"  # ICD-10-CM diagnosis codes
    HCPCS = "hcpcs"  # HCPCS Level II
    CDT = "cdt"  # Current Dental Terminology


# =============================================================================
# Scrubbing Enums
# =============================================================================


class ErrorSeverity(str, Enum):
    """Severity of a scrubbing error."""

    ERROR = "error"  # Scored, advisory for scrubbing
    CRITICAL = "critical"  # Blocks submission


class WarningImpact(str, Enum):
    """Expected impact of a scrubbing warning on payment."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SuggestionPriority(str, Enum):
    """Priority of an improvement suggestion."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskLevel(str, Enum):
    """Denial risk tier derived from scrubbing findings."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FilingWarningLevel(str, Enum):
    """Timely filing urgency."""

    NONE = "none"
    WARNING = "warning"  # 30 days or fewer remaining
    CRITICAL = "critical"  # 7 days or fewer remaining
    EXPIRED = "expired"  # Deadline has passed


# =============================================================================
# Payer Rule Enums
# =============================================================================


class PayerRuleType(str, Enum):
    """Category of payer-specific rule."""

    ELIGIBILITY = "eligibility"
    AUTHORIZATION = "authorization"
    BILLING = "billing"
    CODING = "coding"
    TIMING = "timing"


class PayerRuleAction(str, Enum):
    """Outcome routed when a payer rule condition holds."""

    ALLOW = "allow"  # Suggestion
    DENY = "deny"  # Error, claim invalid
    WARN = "warn"  # Warning
    REQUIRE = "require"  # Requirement, claim invalid until satisfied


# =============================================================================
# Authorization Enums
# =============================================================================


class AuthorizationStatus(str, Enum):
    """Prior authorization request status."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
