"""
Denial Risk Estimation.

Weighted point deductions over scrubbing findings. Not a trained model:
the weights are fixed and every function here is pure.

Verified: 2026-10-18
"""

from typing import Optional, Sequence

from claimscrub.core.enums import ErrorSeverity, RiskLevel, WarningImpact
from claimscrub.schemas.scrubbing import ScrubbingError, ScrubbingWarning


# Score deductions
CRITICAL_ERROR_PENALTY = 20
ERROR_PENALTY = 10
WARNING_PENALTIES = {
    WarningImpact.HIGH: 5,
    WarningImpact.MEDIUM: 3,
    WarningImpact.LOW: 1,
}

# Denial probability (percentage points)
BASE_DENIAL_PROBABILITY = 5.0
CRITICAL_ERROR_WEIGHT = 15.0
ERROR_WEIGHT = 8.0
HIGH_WARNING_WEIGHT = 5.0
MEDIUM_WARNING_WEIGHT = 3.0
DUPLICATE_WEIGHT = 20.0

HIGH_WARNING_RISK_THRESHOLD = 3


def _clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    return max(lower, min(upper, value))


def _count_errors(errors: Sequence[ScrubbingError]) -> tuple[int, int]:
    critical = sum(1 for e in errors if e.severity == ErrorSeverity.CRITICAL)
    return critical, len(errors) - critical


def calculate_score(
    errors: Sequence[ScrubbingError],
    warnings: Sequence[ScrubbingWarning],
) -> int:
    """
    Claim quality score in [0, 100].

    Starts at 100 and only ever deducts, so more findings never raise it.
    """
    critical, other = _count_errors(errors)
    score = 100 - critical * CRITICAL_ERROR_PENALTY - other * ERROR_PENALTY
    score -= sum(WARNING_PENALTIES.get(w.impact, 0) for w in warnings)
    return int(_clamp(score))


def calculate_risk_level(
    errors: Sequence[ScrubbingError],
    warnings: Sequence[ScrubbingWarning],
    duplicate_detected: bool = False,
) -> RiskLevel:
    """Risk tier from the worst finding present."""
    critical, _ = _count_errors(errors)
    if critical or duplicate_detected:
        return RiskLevel.CRITICAL

    high_warnings = sum(1 for w in warnings if w.impact == WarningImpact.HIGH)
    if errors or high_warnings >= HIGH_WARNING_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if warnings:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def estimate_denial_probability(
    errors: Sequence[ScrubbingError],
    warnings: Sequence[ScrubbingWarning],
    duplicate_detected: bool = False,
) -> float:
    """Estimated probability of denial, as a percentage."""
    critical, other = _count_errors(errors)
    probability = BASE_DENIAL_PROBABILITY
    probability += critical * CRITICAL_ERROR_WEIGHT
    probability += other * ERROR_WEIGHT
    probability += sum(HIGH_WARNING_WEIGHT for w in warnings if w.impact == WarningImpact.HIGH)
    probability += sum(MEDIUM_WARNING_WEIGHT for w in warnings if w.impact == WarningImpact.MEDIUM)
    if duplicate_detected:
        probability += DUPLICATE_WEIGHT
    return _clamp(probability)


def blend_with_history(
    probability: float,
    approval_rate: Optional[float],
    weight: float,
) -> float:
    """
    Blend the rule-based estimate with the payer's historical denial rate.

    Args:
        probability: Rule-based denial probability (0-100)
        approval_rate: Historical approval rate for the payer (0-100), or
            None when the store has no decided claims for it
        weight: Share given to history (0 leaves the estimate unchanged)

    Returns:
        Blended probability, clamped to [0, 100]
    """
    if approval_rate is None or weight <= 0:
        return probability
    weight = min(weight, 1.0)
    historical_denial_rate = 100.0 - _clamp(approval_rate)
    return round(_clamp((1 - weight) * probability + weight * historical_denial_rate), 2)
