"""
Services Layer for Claim Scrubbing and Submission.

Exports code validation, payer rules, scrubbing, timely filing and
submission services.
"""

from claimscrub.services.claim_scrubbing import (
    CheckFindings,
    ClaimScrubbingService,
    build_payer_rule_table,
    get_claim_scrubbing_service,
)
from claimscrub.services.claim_state_machine import (
    ClaimStateMachine,
    TransitionEvent,
    get_claim_state_machine,
)
from claimscrub.services.claim_submission import (
    ClaimNotFoundError,
    ClaimNumberConflictError,
    ClaimPersistenceError,
    ClaimStatusTransitionError,
    ClaimSubmissionService,
    ClaimValidationError,
    ClaimsServiceError,
    get_claim_submission_service,
)
from claimscrub.services.code_format import (
    CodeFormatResult,
    CodeReference,
    is_valid_cdt,
    is_valid_cpt,
    is_valid_hcpcs,
    is_valid_icd10,
    is_valid_modifier,
    validate_code,
)
from claimscrub.services.denial_risk import (
    blend_with_history,
    calculate_risk_level,
    calculate_score,
    estimate_denial_probability,
)
from claimscrub.services.payer_rules import (
    ConditionSyntaxError,
    PayerRule,
    PayerRuleContext,
    PayerRuleEvaluation,
    PayerRuleTable,
    default_payer_rules,
    parse_condition,
)
from claimscrub.services.timely_filing import (
    TimelyFilingCalculator,
    compute_timely_filing,
    filing_warning_level,
)

__all__ = [
    # Code format
    "CodeFormatResult",
    "CodeReference",
    "is_valid_cpt",
    "is_valid_icd10",
    "is_valid_hcpcs",
    "is_valid_cdt",
    "is_valid_modifier",
    "validate_code",
    # Payer rules
    "ConditionSyntaxError",
    "PayerRule",
    "PayerRuleContext",
    "PayerRuleEvaluation",
    "PayerRuleTable",
    "default_payer_rules",
    "parse_condition",
    # Scrubbing
    "CheckFindings",
    "ClaimScrubbingService",
    "build_payer_rule_table",
    "get_claim_scrubbing_service",
    # Denial risk
    "calculate_score",
    "calculate_risk_level",
    "estimate_denial_probability",
    "blend_with_history",
    # Timely filing
    "TimelyFilingCalculator",
    "compute_timely_filing",
    "filing_warning_level",
    # State machine
    "ClaimStateMachine",
    "TransitionEvent",
    "get_claim_state_machine",
    # Submission
    "ClaimSubmissionService",
    "ClaimsServiceError",
    "ClaimNotFoundError",
    "ClaimValidationError",
    "ClaimStatusTransitionError",
    "ClaimPersistenceError",
    "ClaimNumberConflictError",
    "get_claim_submission_service",
]
