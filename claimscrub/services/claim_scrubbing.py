"""
Claim Scrubbing Service.

Provides:
- Required field checks
- Medical code validation
- Date and financial consistency checks
- Prior authorization and eligibility lookups
- Duplicate claim detection
- Payer-specific rule validation
- Diagnosis pointer and modifier checks
- Score, risk level and denial probability

The ten check groups run concurrently. Each returns its own findings and
the results are merged in a fixed group order, so scrubbing an unchanged
claim against an unchanged store always yields the same result.

Verified: 2026-10-18
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Optional, TypeVar

from claimscrub.core.config import ClaimsSettings, get_settings
from claimscrub.core.enums import (
    AuthorizationStatus,
    CodeFamily,
    ErrorSeverity,
    SuggestionPriority,
    WarningImpact,
)
from claimscrub.schemas.claim import ClaimSubmission
from claimscrub.schemas.scrubbing import (
    FieldValidationResult,
    ScrubbingError,
    ScrubbingResult,
    ScrubbingSuggestion,
    ScrubbingWarning,
)
from claimscrub.services.code_format import (
    CodeReference,
    is_valid_cpt,
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
from claimscrub.services.payer_rules import PayerRuleContext, PayerRuleTable

logger = logging.getLogger(__name__)

T = TypeVar("T")

FINANCIAL_TOLERANCE = Decimal("0.01")
MAX_SERVICE_RANGE_DAYS = 365
MAX_MODIFIERS = 4


@dataclass
class CheckFindings:
    """Findings produced by one check group."""

    errors: list[ScrubbingError] = field(default_factory=list)
    warnings: list[ScrubbingWarning] = field(default_factory=list)
    suggestions: list[ScrubbingSuggestion] = field(default_factory=list)
    duplicate_claim_id: Optional[str] = None

    def error(
        self,
        field_name: str,
        code: str,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        fixable: bool = True,
        suggested_fix: Optional[str] = None,
    ) -> None:
        self.errors.append(
            ScrubbingError(
                field=field_name,
                code=code,
                message=message,
                severity=severity,
                fixable=fixable,
                suggested_fix=suggested_fix,
            )
        )

    def warning(
        self,
        field_name: str,
        code: str,
        message: str,
        impact: WarningImpact,
        recommendation: Optional[str] = None,
    ) -> None:
        self.warnings.append(
            ScrubbingWarning(
                field=field_name,
                code=code,
                message=message,
                impact=impact,
                recommendation=recommendation,
            )
        )


def _one_year_before(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # Feb 29
        return day.replace(year=day.year - 1, day=28)


class ClaimScrubbingService:
    """
    Pre-submission claim scrubber.

    Holds no per-claim state; one instance can scrub many claims
    concurrently. Store lookups go through the repository and are
    best-effort: a failed or timed-out lookup is logged and the check that
    needed it is skipped.
    """

    def __init__(
        self,
        repository=None,
        payer_rules: Optional[PayerRuleTable] = None,
        code_reference: Optional[CodeReference] = None,
        settings: Optional[ClaimsSettings] = None,
    ):
        self.repository = repository
        self.payer_rules = payer_rules or PayerRuleTable()
        self.code_reference = code_reference
        self.settings = settings or get_settings()

    async def _lookup(self, awaitable: Awaitable[T]) -> T:
        """Await a store lookup under the configured timeout."""
        return await asyncio.wait_for(awaitable, timeout=self.settings.LOOKUP_TIMEOUT_SECONDS)

    # =========================================================================
    # Main Entry Point
    # =========================================================================

    async def scrub(self, claim: ClaimSubmission, today: Optional[date] = None) -> ScrubbingResult:
        """
        Scrub a claim (complete or partial).

        Args:
            claim: Claim as entered
            today: Reference date for date checks (defaults to today)

        Returns:
            ScrubbingResult with findings, score and risk
        """
        today = today or date.today()

        *groups, approval_rate = await asyncio.gather(
            self.check_required_fields(claim),
            self.check_codes(claim),
            self.check_dates(claim, today),
            self.check_financials(claim),
            self.check_authorization(claim),
            self.check_eligibility(claim),
            self.check_duplicates(claim),
            self.check_payer_rules(claim, today),
            self.check_code_compatibility(claim),
            self.check_modifiers(claim),
            self._historical_approval_rate(claim),
        )

        errors: list[ScrubbingError] = []
        warnings: list[ScrubbingWarning] = []
        suggestions: list[ScrubbingSuggestion] = []
        duplicate_claim_id: Optional[str] = None
        for findings in groups:
            errors.extend(findings.errors)
            warnings.extend(findings.warnings)
            suggestions.extend(findings.suggestions)
            duplicate_claim_id = duplicate_claim_id or findings.duplicate_claim_id

        duplicate_detected = duplicate_claim_id is not None
        probability = estimate_denial_probability(errors, warnings, duplicate_detected)
        probability = blend_with_history(
            probability, approval_rate, self.settings.DENIAL_HISTORY_WEIGHT
        )

        result = ScrubbingResult(
            is_valid=not errors,
            can_submit=not any(e.severity == ErrorSeverity.CRITICAL for e in errors),
            errors=errors,
            warnings=warnings,
            suggestions=suggestions,
            score=calculate_score(errors, warnings),
            risk_level=calculate_risk_level(errors, warnings, duplicate_detected),
            estimated_denial_probability=probability,
            duplicate_claim_detected=duplicate_detected,
            duplicate_claim_id=duplicate_claim_id,
        )

        logger.info(
            f"Scrubbed claim {claim.claim_number or '<new>'}: score={result.score} "
            f"risk={result.risk_level.value} errors={len(errors)} warnings={len(warnings)}"
        )
        return result

    # =========================================================================
    # Check Groups
    # =========================================================================

    async def check_required_fields(self, claim: ClaimSubmission) -> CheckFindings:
        """Presence of every field a payer needs to adjudicate."""
        findings = CheckFindings()
        critical = ErrorSeverity.CRITICAL

        if not claim.patient_id:
            findings.error(
                "patient_id", "REQ-001", "Patient is required", critical,
                suggested_fix="Select a patient from the patient list",
            )
        if not claim.provider_id:
            findings.error(
                "provider_id", "REQ-002", "Provider is required", critical,
                suggested_fix="Select a provider",
            )
        if not claim.service_date_from:
            findings.error(
                "service_date_from", "REQ-003", "Service date is required", critical,
                suggested_fix="Enter the service date",
            )
        if not claim.primary_insurance_id:
            findings.error(
                "primary_insurance_id", "REQ-004", "Primary insurance is required", critical,
                suggested_fix="Select primary insurance",
            )
        if not claim.procedures:
            findings.error(
                "procedures", "REQ-005", "At least one procedure is required", critical,
                suggested_fix="Add at least one procedure",
            )

        if not claim.diagnoses:
            findings.error(
                "diagnoses", "REQ-006", "At least one diagnosis is required", critical,
                suggested_fix="Add at least one diagnosis",
            )
        else:
            primary_count = sum(1 for diag in claim.diagnoses if diag.is_primary)
            if primary_count == 0:
                findings.error(
                    "diagnoses", "REQ-007", "Primary diagnosis is required", critical,
                    suggested_fix="Mark one diagnosis as primary",
                )
            elif primary_count > 1:
                findings.error(
                    "diagnoses", "REQ-009", "Only one diagnosis can be marked primary", critical,
                    suggested_fix="Keep the primary flag on a single diagnosis",
                )

        if not claim.place_of_service_code:
            findings.error(
                "place_of_service_code", "REQ-008", "Place of service code is required", critical,
                suggested_fix="Select place of service",
            )

        return findings

    async def check_codes(self, claim: ClaimSubmission) -> CheckFindings:
        """CPT and ICD-10 format plus reference-set recognition."""
        findings = CheckFindings()

        for proc in claim.procedures:
            if not proc.cpt_code:
                findings.error(
                    "procedures", "CODE-001", "Procedure missing CPT code", ErrorSeverity.CRITICAL,
                    suggested_fix="Enter CPT code for procedure",
                )
                continue
            if not is_valid_cpt(proc.cpt_code):
                findings.error(
                    "procedures", "CODE-002",
                    f"Invalid CPT code format: {proc.cpt_code} (must be 5 digits)",
                    suggested_fix="CPT codes must be exactly 5 digits",
                )
            elif self.code_reference and not self.code_reference.is_known(proc.cpt_code, CodeFamily.CPT):
                findings.warning(
                    "procedures", "CODE-003",
                    f"CPT code {proc.cpt_code} may be invalid or outdated",
                    WarningImpact.MEDIUM,
                    recommendation="Verify code is current and correct",
                )

        for diag in claim.diagnoses:
            if not diag.icd_code:
                findings.error(
                    "diagnoses", "CODE-004", "Diagnosis missing ICD-10 code", ErrorSeverity.CRITICAL,
                    suggested_fix="Enter ICD-10 code for diagnosis",
                )
                continue
            if not is_valid_icd10(diag.icd_code):
                findings.error(
                    "diagnoses", "CODE-005",
                    f"Invalid ICD-10 code format: {diag.icd_code}",
                    suggested_fix="ICD-10 codes must start with a letter followed by numbers",
                )
                continue
            if self.code_reference and not self.code_reference.is_known(diag.icd_code, CodeFamily.ICD10):
                findings.warning(
                    "diagnoses", "CODE-006",
                    f"ICD-10 code {diag.icd_code} may be invalid or outdated",
                    WarningImpact.MEDIUM,
                    recommendation="Verify code is current and correct",
                )
            for message in validate_code(diag.icd_code, CodeFamily.ICD10).warnings:
                findings.warning(
                    "diagnoses", "CODE-007", f"{diag.icd_code}: {message}", WarningImpact.LOW,
                )

        return findings

    async def check_dates(self, claim: ClaimSubmission, today: date) -> CheckFindings:
        findings = CheckFindings()
        start = claim.service_date_from
        if not start:
            return findings

        if start > today:
            findings.error(
                "service_date_from", "DATE-001", "Service date cannot be in the future",
                suggested_fix="Enter a valid service date",
            )
        if start < _one_year_before(today):
            findings.warning(
                "service_date_from", "DATE-002", "Service date is more than 1 year old",
                WarningImpact.HIGH,
                recommendation="Verify service date is correct - may be past timely filing deadline",
            )

        end = claim.service_date_to
        if end:
            if end < start:
                findings.error(
                    "service_date_to", "DATE-003", "End date cannot be before start date",
                    suggested_fix="End date must be on or after start date",
                )
            if (end - start).days > MAX_SERVICE_RANGE_DAYS:
                findings.warning(
                    "service_date_to", "DATE-004", "Service date range exceeds 1 year",
                    WarningImpact.MEDIUM,
                    recommendation="Verify date range is correct",
                )

        return findings

    async def check_financials(self, claim: ClaimSubmission) -> CheckFindings:
        findings = CheckFindings()
        total = claim.total_charges

        if total is None:
            findings.error(
                "total_charges", "FIN-001", "Total charges is required", ErrorSeverity.CRITICAL,
                suggested_fix="Enter total charges",
            )
        elif total <= 0:
            findings.error(
                "total_charges", "FIN-002", "Total charges must be greater than 0",
                suggested_fix="Enter a valid charge amount",
            )

        if claim.procedures:
            calculated = sum((proc.total_price for proc in claim.procedures), Decimal("0"))
            entered = total if total is not None else Decimal("0")
            if abs(calculated - entered) > FINANCIAL_TOLERANCE:
                findings.warning(
                    "total_charges", "FIN-003",
                    f"Total charges (${entered:.2f}) doesn't match sum of procedures (${calculated:.2f})",
                    WarningImpact.HIGH,
                    recommendation="Verify total charges matches procedure totals",
                )

        responsibility = claim.patient_responsibility
        if responsibility is not None:
            if responsibility < 0:
                findings.error(
                    "patient_responsibility", "FIN-004", "Patient responsibility cannot be negative",
                )
            if responsibility > (total or Decimal("0")):
                findings.warning(
                    "patient_responsibility", "FIN-005", "Patient responsibility exceeds total charges",
                    WarningImpact.HIGH,
                    recommendation="Verify patient responsibility amount",
                )

        return findings

    async def check_authorization(self, claim: ClaimSubmission) -> CheckFindings:
        """Required prior authorization, then status and expiry of the one given."""
        findings = CheckFindings()
        if not claim.procedures:
            return findings

        auth_required = set(self.settings.auth_required_procedures_list)
        if not claim.prior_auth_number:
            if any(code in auth_required for code in claim.procedure_codes):
                findings.error(
                    "prior_auth_number", "AUTH-001",
                    "Prior authorization number is required for this procedure",
                    suggested_fix="Enter prior authorization number or obtain authorization",
                )
            return findings

        if self.repository is None:
            return findings

        try:
            auth = await self._lookup(self.repository.find_authorization(claim.prior_auth_number))
        except Exception as e:
            logger.warning(f"Authorization lookup failed for {claim.prior_auth_number}, skipping: {e}")
            return findings

        if auth is None:
            findings.warning(
                "prior_auth_number", "AUTH-002", "Prior authorization number not found in system",
                WarningImpact.MEDIUM,
                recommendation="Verify authorization number is correct",
            )
            return findings

        if auth.expiry_date and claim.service_date_from and auth.expiry_date < claim.service_date_from:
            findings.error(
                "prior_auth_number", "AUTH-003", "Prior authorization has expired",
                fixable=False,
                suggested_fix="Obtain new authorization or use different authorization number",
            )

        status = getattr(auth.status, "value", auth.status)
        if status != AuthorizationStatus.APPROVED.value:
            findings.error(
                "prior_auth_number", "AUTH-004",
                f"Prior authorization status is {status}, not approved",
                fixable=False,
            )

        return findings

    async def check_eligibility(self, claim: ClaimSubmission) -> CheckFindings:
        findings = CheckFindings()
        if not claim.primary_insurance_id or not claim.service_date_from or self.repository is None:
            return findings

        try:
            verification = await self._lookup(
                self.repository.latest_eligibility(claim.primary_insurance_id, claim.service_date_from)
            )
        except Exception as e:
            logger.warning(f"Eligibility lookup failed, skipping: {e}")
            return findings

        if verification is None:
            findings.warning(
                "primary_insurance_id", "ELIG-001", "Eligibility not verified for service date",
                WarningImpact.HIGH,
                recommendation="Verify patient eligibility before submitting claim",
            )
        elif verification.is_eligible is False:
            findings.error(
                "primary_insurance_id", "ELIG-002", "Patient is not eligible for service date",
                ErrorSeverity.CRITICAL,
                fixable=False,
            )

        return findings

    async def check_duplicates(self, claim: ClaimSubmission) -> CheckFindings:
        """Advisory only: concurrent submissions are not prevented, just flagged."""
        findings = CheckFindings()
        if not claim.patient_id or not claim.service_date_from or self.repository is None:
            return findings

        try:
            existing = await self._lookup(
                self.repository.find_duplicate_claims(
                    claim.patient_id,
                    claim.service_date_from,
                    exclude_claim_number=claim.claim_number,
                )
            )
        except Exception as e:
            logger.warning(f"Duplicate claim search failed, skipping: {e}")
            return findings

        for other in existing:
            findings.warning(
                "procedures", "DUP-001", f"Possible duplicate claim found: {other.claim_number}",
                WarningImpact.HIGH,
                recommendation="Verify this is not a duplicate submission",
            )
            if findings.duplicate_claim_id is None:
                findings.duplicate_claim_id = str(other.id)

        return findings

    async def check_payer_rules(self, claim: ClaimSubmission, today: date) -> CheckFindings:
        """Apply the primary payer's rule table."""
        findings = CheckFindings()
        if not claim.primary_insurance_id:
            return findings

        payer_code = str(claim.primary_insurance_id)
        patient_age = None
        if self.repository is not None:
            try:
                payer = await self._lookup(self.repository.get_payer(claim.primary_insurance_id))
                if payer is not None:
                    payer_code = payer.code
                if claim.patient_id:
                    patient = await self._lookup(self.repository.get_patient(claim.patient_id))
                    if patient is not None:
                        patient_age = patient.age_on(claim.service_date_from or today)
            except Exception as e:
                logger.warning(f"Payer rule lookup failed, skipping: {e}")
                return findings

        context = PayerRuleContext.from_claim(claim, patient_age=patient_age, today=today)
        evaluation = self.payer_rules.evaluate(context, payer_code, on_date=today)

        for message in evaluation.errors:
            findings.error("payer_rules", "PAYER-001", message)
        for message in evaluation.warnings:
            findings.warning("payer_rules", "PAYER-002", message, WarningImpact.MEDIUM)
        for message in evaluation.requirements:
            findings.warning(
                "payer_rules", "PAYER-003", message, WarningImpact.HIGH,
                recommendation=f"Satisfy this {evaluation.payer_name} requirement before submitting",
            )
        for message in evaluation.suggestions:
            findings.suggestions.append(
                ScrubbingSuggestion(
                    field="payer_rules",
                    message=message,
                    benefit=f"Meets {evaluation.payer_name} rules",
                    priority=SuggestionPriority.LOW,
                )
            )

        return findings

    async def check_code_compatibility(self, claim: ClaimSubmission) -> CheckFindings:
        """Each procedure should point at a listed diagnosis."""
        findings = CheckFindings()
        if not claim.procedures or not claim.diagnoses:
            return findings

        diagnosis_count = len(claim.diagnoses)
        for index, proc in enumerate(claim.procedures, start=1):
            if not proc.diagnosis_pointer:
                findings.warning(
                    "procedures", "COMPAT-001",
                    f"Procedure {index} ({proc.cpt_code}) missing diagnosis pointer",
                    WarningImpact.MEDIUM,
                    recommendation="Link procedure to appropriate diagnosis",
                )
                continue
            pointers = proc.pointer_indexes
            if not pointers or any(p < 1 or p > diagnosis_count for p in pointers):
                findings.warning(
                    "procedures", "COMPAT-002",
                    f"Procedure {index} ({proc.cpt_code}) diagnosis pointer "
                    f"'{proc.diagnosis_pointer}' does not reference a listed diagnosis",
                    WarningImpact.MEDIUM,
                    recommendation=f"Use pointers between 1 and {diagnosis_count}",
                )

        return findings

    async def check_modifiers(self, claim: ClaimSubmission) -> CheckFindings:
        findings = CheckFindings()

        for index, proc in enumerate(claim.procedures, start=1):
            if len(proc.modifiers) > MAX_MODIFIERS:
                findings.error(
                    "procedures", "MOD-002",
                    f"Procedure {index} has {len(proc.modifiers)} modifiers (maximum {MAX_MODIFIERS})",
                    suggested_fix="Remove modifiers that do not apply",
                )
            for modifier in proc.modifiers:
                if not is_valid_modifier(modifier):
                    findings.error(
                        "procedures", "MOD-001",
                        f"Invalid modifier format: {modifier} (must be 2 characters)",
                        suggested_fix="Modifiers must be exactly 2 alphanumeric characters",
                    )

        return findings

    async def _historical_approval_rate(self, claim: ClaimSubmission) -> Optional[float]:
        if (
            self.repository is None
            or not claim.primary_insurance_id
            or self.settings.DENIAL_HISTORY_WEIGHT <= 0
        ):
            return None
        try:
            return await self._lookup(
                self.repository.get_payer_approval_rate(claim.primary_insurance_id)
            )
        except Exception as e:
            logger.warning(f"Approval rate lookup failed, using rule-based estimate: {e}")
            return None

    # =========================================================================
    # Field Validation
    # =========================================================================

    def validate_field(
        self,
        field_name: str,
        value: Any,
        today: Optional[date] = None,
    ) -> FieldValidationResult:
        """
        Live validation of a single form field.

        Unknown fields are accepted.
        """
        today = today or date.today()

        if field_name == "cpt_code":
            if not value or not is_valid_cpt(str(value)):
                return FieldValidationResult(is_valid=False, error="CPT code must be exactly 5 digits")
            if self.code_reference and not self.code_reference.is_known(str(value), CodeFamily.CPT):
                return FieldValidationResult(
                    is_valid=True,
                    warning=f"CPT code {value} may be invalid or outdated",
                )
            return FieldValidationResult(is_valid=True)

        if field_name == "icd_code":
            if not value or not is_valid_icd10(str(value)):
                return FieldValidationResult(
                    is_valid=False,
                    error="ICD-10 code must start with a letter followed by numbers",
                )
            result = validate_code(str(value), CodeFamily.ICD10)
            return FieldValidationResult(
                is_valid=True,
                warning=result.warnings[0] if result.warnings else None,
            )

        if field_name == "modifier":
            if value and not is_valid_modifier(str(value)):
                return FieldValidationResult(
                    is_valid=False,
                    error="Modifiers must be exactly 2 alphanumeric characters",
                )
            return FieldValidationResult(is_valid=True)

        if field_name == "service_date_from":
            if not value:
                return FieldValidationResult(is_valid=True)
            try:
                service_date = value if isinstance(value, date) else date.fromisoformat(str(value))
            except ValueError:
                return FieldValidationResult(is_valid=False, error="Service date must be YYYY-MM-DD")
            if service_date > today:
                return FieldValidationResult(is_valid=False, error="Service date cannot be in the future")
            if service_date < _one_year_before(today):
                return FieldValidationResult(
                    is_valid=True,
                    warning="Service date is more than 1 year old",
                )
            return FieldValidationResult(is_valid=True)

        if field_name == "total_charges":
            if value is None or value == "":
                return FieldValidationResult(is_valid=True)
            try:
                amount = Decimal(str(value))
            except InvalidOperation:
                return FieldValidationResult(is_valid=False, error="Total charges must be a number")
            if not amount.is_finite():
                return FieldValidationResult(is_valid=False, error="Total charges must be a number")
            if amount <= 0:
                return FieldValidationResult(is_valid=False, error="Total charges must be greater than 0")
            return FieldValidationResult(is_valid=True)

        return FieldValidationResult(is_valid=True)


def build_payer_rule_table(settings: Optional[ClaimsSettings] = None) -> PayerRuleTable:
    """Default payer rules plus any configured rules file."""
    settings = settings or get_settings()
    table = PayerRuleTable()
    if settings.PAYER_RULES_FILE:
        table.load_rules_file(settings.PAYER_RULES_FILE)
    return table


def get_claim_scrubbing_service(
    repository=None,
    payer_rules: Optional[PayerRuleTable] = None,
    code_reference: Optional[CodeReference] = None,
    settings: Optional[ClaimsSettings] = None,
) -> ClaimScrubbingService:
    """Get claim scrubbing service instance."""
    settings = settings or get_settings()
    return ClaimScrubbingService(
        repository=repository,
        payer_rules=payer_rules or build_payer_rule_table(settings),
        code_reference=code_reference or CodeReference(),
        settings=settings,
    )
