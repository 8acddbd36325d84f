"""
Payer-Specific Rules.

Provides:
- Declarative per-payer rules (condition, action, message)
- Condition parsing into a typed expression tree at load time
- Rule evaluation against claim-derived variables
- Requirement lookups by rule type

Condition grammar:
    <operand> (>= | <= | > | < | == | !=) <literal>
    <operand> in [<literal>, ...]
    <operand> := variable | variable.length

Verified: 2026-10-18
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr

from claimscrub.core.enums import PayerRuleAction, PayerRuleType

logger = logging.getLogger(__name__)


KNOWN_VARIABLES = frozenset(
    {"patientAge", "claimAmount", "procedureCode", "diagnosisCode", "claimAge", "serviceType"}
)

_OPERAND = r"(?P<var>[A-Za-z_]\w*)(?P<length>\.length)?"
MEMBERSHIP_RE = re.compile(rf"^\s*{_OPERAND}\s+in\s+(?P<values>\[.*\])\s*$")
COMPARISON_RE = re.compile(rf"^\s*{_OPERAND}\s*(?P<op>>=|<=|==|!=|>|<)\s*(?P<value>.+?)\s*$")

PAYER_NAMES = {
    "MEDICARE": "Medicare",
    "BCBS": "Blue Cross Blue Shield",
    "AETNA": "Aetna",
    "CIGNA": "Cigna",
    "HUMANA": "Humana",
    "UHC": "UnitedHealth",
}


class ConditionSyntaxError(ValueError):
    """Raised when a rule condition cannot be parsed."""

    pass


# =============================================================================
# Expression tree
# =============================================================================


def _as_number(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def _equals(left: Any, right: Any) -> bool:
    left_num, right_num = _as_number(left), _as_number(right)
    if left_num is not None and right_num is not None:
        return left_num == right_num
    return str(left) == str(right)


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == "==":
        return _equals(left, right)
    if op == "!=":
        return not _equals(left, right)

    left_num, right_num = _as_number(left), _as_number(right)
    if left_num is None or right_num is None:
        return False
    if op == ">=":
        return left_num >= right_num
    if op == "<=":
        return left_num <= right_num
    if op == ">":
        return left_num > right_num
    return left_num < right_num


@dataclass(frozen=True)
class Operand:
    """Variable reference, optionally taking its length."""

    variable: str
    length: bool = False

    def resolve(self, variables: dict[str, Any]) -> Any:
        value = variables.get(self.variable)
        if self.length:
            return len(value) if isinstance(value, (list, tuple, str)) else 0
        return value


@dataclass(frozen=True)
class Comparison:
    """`operand op literal`. A list operand holds when any element does (`!=`: when none equals)."""

    op: str
    operand: Operand
    value: Union[str, int, float]

    def evaluate(self, variables: dict[str, Any]) -> bool:
        left = self.operand.resolve(variables)
        if left is None:
            return False
        if isinstance(left, list):
            if self.op == "!=":
                return not any(_equals(item, self.value) for item in left)
            return any(_compare(self.op, item, self.value) for item in left)
        return _compare(self.op, left, self.value)


@dataclass(frozen=True)
class Membership:
    """`operand in [literals]`. A list operand holds when any element is a member."""

    operand: Operand
    values: tuple

    def evaluate(self, variables: dict[str, Any]) -> bool:
        left = self.operand.resolve(variables)
        if left is None:
            return False
        items = left if isinstance(left, list) else [left]
        return any(_equals(item, candidate) for item in items for candidate in self.values)


Condition = Union[Comparison, Membership]


def _parse_literal(text: str) -> Union[str, int, float]:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] == "'":
        text = '"' + text[1:-1].replace('"', '\\"') + '"'
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConditionSyntaxError(f"Invalid literal: {text}") from e
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConditionSyntaxError(f"Unsupported literal: {text}")
    return value


def _parse_operand(match: re.Match) -> Operand:
    variable = match.group("var")
    if variable not in KNOWN_VARIABLES:
        raise ConditionSyntaxError(f"Unknown variable: {variable}")
    return Operand(variable=variable, length=bool(match.group("length")))


def parse_condition(condition: str) -> Condition:
    """
    Parse a rule condition string into an expression tree.

    Raises:
        ConditionSyntaxError: If the condition is not in the supported grammar
    """
    match = MEMBERSHIP_RE.match(condition)
    if match:
        operand = _parse_operand(match)
        try:
            values = json.loads(match.group("values").replace("'", '"'))
        except json.JSONDecodeError as e:
            raise ConditionSyntaxError(f"Invalid list: {match.group('values')}") from e
        if not isinstance(values, list):
            raise ConditionSyntaxError("Membership test requires a list")
        return Membership(operand=operand, values=tuple(values))

    match = COMPARISON_RE.match(condition)
    if match:
        operand = _parse_operand(match)
        return Comparison(
            op=match.group("op"),
            operand=operand,
            value=_parse_literal(match.group("value")),
        )

    raise ConditionSyntaxError(f"Unsupported condition: {condition}")


# =============================================================================
# Rules
# =============================================================================


class PayerRule(BaseModel):
    """Declarative payer rule."""

    id: str
    payer_id: str = Field(..., description="Payer code (e.g., MEDICARE)")
    rule_type: PayerRuleType
    condition: str
    action: PayerRuleAction
    message: str
    priority: int = 0
    is_active: bool = True
    effective_date: date = date(2024, 1, 1)
    expiration_date: Optional[date] = None

    _compiled: Optional[Condition] = PrivateAttr(default=None)

    def model_post_init(self, __context: Any) -> None:
        try:
            self._compiled = parse_condition(self.condition)
        except ConditionSyntaxError as e:
            # Fail open: the rule stays loaded but never fires
            logger.warning(f"Payer rule {self.id} ({self.payer_id}) has an unparseable condition: {e}")
            self._compiled = None

    @property
    def is_parseable(self) -> bool:
        return self._compiled is not None

    def is_in_effect(self, on_date: date) -> bool:
        """Check active flag and effective window."""
        if not self.is_active or on_date < self.effective_date:
            return False
        return self.expiration_date is None or on_date <= self.expiration_date

    def matches(self, variables: dict[str, Any]) -> bool:
        """Evaluate the compiled condition; unparseable conditions never match."""
        if self._compiled is None:
            return False
        return self._compiled.evaluate(variables)


@dataclass
class PayerRuleContext:
    """Claim-derived variables visible to rule conditions."""

    patient_age: Optional[int] = None
    claim_amount: Optional[Decimal] = None
    procedure_codes: list[str] = field(default_factory=list)
    diagnosis_codes: list[str] = field(default_factory=list)
    claim_age: Optional[int] = None
    service_type: Optional[str] = None

    @classmethod
    def from_claim(
        cls,
        claim,  # ClaimSubmission
        patient_age: Optional[int] = None,
        today: Optional[date] = None,
    ) -> "PayerRuleContext":
        today = today or date.today()
        claim_age = None
        if claim.service_date_from:
            claim_age = (today - claim.service_date_from).days
        service_type = next(
            (proc.type_of_service for proc in claim.procedures if proc.type_of_service),
            None,
        )
        return cls(
            patient_age=patient_age,
            claim_amount=claim.total_charges,
            procedure_codes=claim.procedure_codes,
            diagnosis_codes=claim.diagnosis_codes,
            claim_age=claim_age,
            service_type=service_type,
        )

    def as_variables(self) -> dict[str, Any]:
        return {
            "patientAge": self.patient_age,
            "claimAmount": self.claim_amount,
            "procedureCode": list(self.procedure_codes),
            "diagnosisCode": list(self.diagnosis_codes),
            "claimAge": self.claim_age,
            "serviceType": self.service_type,
        }


@dataclass
class PayerRuleEvaluation:
    """Outcome of applying a payer's rules to a claim."""

    payer_id: str
    payer_name: str
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    requirements: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    fired_rules: list[str] = field(default_factory=list)


# =============================================================================
# Rule Table
# =============================================================================


class PayerRuleTable:
    """
    In-memory payer rule table.

    Read-only during evaluation, so one table can be shared by every
    concurrent scrub.
    """

    def __init__(
        self,
        rules: Optional[list[PayerRule]] = None,
        include_defaults: bool = True,
    ):
        self._rules: dict[str, list[PayerRule]] = {}
        if include_defaults:
            for rule in default_payer_rules():
                self.add_rule(rule)
        for rule in rules or []:
            self.add_rule(rule)

    # =========================================================================
    # Rule Management
    # =========================================================================

    def add_rule(self, rule: PayerRule) -> None:
        """Add a rule for its payer."""
        self._rules.setdefault(rule.payer_id, []).append(rule)

    def update_rule(self, rule_id: str, **updates: Any) -> Optional[PayerRule]:
        """
        Replace fields on an existing rule; the condition is re-parsed.

        Returns:
            The updated rule, or None if no rule has that ID
        """
        for payer_id, rules in self._rules.items():
            for index, rule in enumerate(rules):
                if rule.id == rule_id:
                    updated = PayerRule.model_validate({**rule.model_dump(), **updates})
                    rules[index] = updated
                    if updated.payer_id != payer_id:
                        rules.pop(index)
                        self.add_rule(updated)
                    return updated
        return None

    def rules_for(self, payer_id: str) -> list[PayerRule]:
        """All rules registered for a payer."""
        return list(self._rules.get(payer_id, []))

    def active_rules(self, payer_id: str, on_date: Optional[date] = None) -> list[PayerRule]:
        """Rules in effect on a date, highest priority first."""
        on_date = on_date or date.today()
        active = [rule for rule in self._rules.get(payer_id, []) if rule.is_in_effect(on_date)]
        return sorted(active, key=lambda rule: rule.priority, reverse=True)

    def load_rules_file(self, path: Union[str, Path]) -> int:
        """
        Load additional rules from a JSON file (a list of rule objects).

        Returns:
            Number of rules loaded
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        items = data.get("rules", []) if isinstance(data, dict) else data
        for item in items:
            self.add_rule(PayerRule.model_validate(item))
        logger.info(f"Loaded {len(items)} payer rules from {path}")
        return len(items)

    @staticmethod
    def payer_name(payer_id: str) -> str:
        return PAYER_NAMES.get(payer_id, payer_id)

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate(
        self,
        context: PayerRuleContext,
        payer_id: str,
        on_date: Optional[date] = None,
    ) -> PayerRuleEvaluation:
        """
        Apply a payer's active rules to claim variables.

        allow -> suggestion, deny -> error, warn -> warning,
        require -> requirement. deny and require make the claim invalid.
        """
        result = PayerRuleEvaluation(payer_id=payer_id, payer_name=self.payer_name(payer_id))
        variables = context.as_variables()

        for rule in self.active_rules(payer_id, on_date):
            if not rule.matches(variables):
                continue

            result.fired_rules.append(rule.id)
            if rule.action == PayerRuleAction.ALLOW:
                result.suggestions.append(rule.message)
            elif rule.action == PayerRuleAction.DENY:
                result.errors.append(rule.message)
                result.is_valid = False
            elif rule.action == PayerRuleAction.WARN:
                result.warnings.append(rule.message)
            elif rule.action == PayerRuleAction.REQUIRE:
                result.requirements.append(rule.message)
                result.is_valid = False

        return result

    def _matching_messages(
        self,
        payer_id: str,
        rule_type: PayerRuleType,
        variables: dict[str, Any],
    ) -> list[str]:
        return [
            rule.message
            for rule in self.active_rules(payer_id)
            if rule.rule_type == rule_type and rule.matches(variables)
        ]

    def get_eligibility_requirements(self, payer_id: str, service_type: str) -> list[str]:
        return self._matching_messages(
            payer_id, PayerRuleType.ELIGIBILITY, {"serviceType": service_type}
        )

    def get_authorization_requirements(self, payer_id: str, procedure_codes: list[str]) -> list[str]:
        return self._matching_messages(
            payer_id, PayerRuleType.AUTHORIZATION, {"procedureCode": list(procedure_codes)}
        )

    def get_billing_requirements(self, payer_id: str, claim_amount: Decimal) -> list[str]:
        return self._matching_messages(
            payer_id, PayerRuleType.BILLING, {"claimAmount": claim_amount}
        )


def default_payer_rules() -> list[PayerRule]:
    """Built-in rules for the common commercial and federal payers."""
    effective = date(2024, 1, 1)
    return [
        # Medicare
        PayerRule(
            id="medicare-001",
            payer_id="MEDICARE",
            rule_type=PayerRuleType.ELIGIBILITY,
            condition="patientAge >= 65",
            action=PayerRuleAction.ALLOW,
            message="Patient is eligible for Medicare",
            priority=1,
            effective_date=effective,
        ),
        PayerRule(
            id="medicare-002",
            payer_id="MEDICARE",
            rule_type=PayerRuleType.AUTHORIZATION,
            condition='procedureCode in ["99213", "99214", "99215"]',
            action=PayerRuleAction.ALLOW,
            message="Office visit codes do not require prior authorization",
            priority=2,
            effective_date=effective,
        ),
        PayerRule(
            id="medicare-003",
            payer_id="MEDICARE",
            rule_type=PayerRuleType.BILLING,
            condition="claimAmount > 1000",
            action=PayerRuleAction.REQUIRE,
            message="Claims over $1000 require additional documentation",
            priority=3,
            effective_date=effective,
        ),
        # Blue Cross Blue Shield
        PayerRule(
            id="bcbs-001",
            payer_id="BCBS",
            rule_type=PayerRuleType.ELIGIBILITY,
            condition="patientAge >= 18",
            action=PayerRuleAction.ALLOW,
            message="Patient is eligible for BCBS coverage",
            priority=1,
            effective_date=effective,
        ),
        PayerRule(
            id="bcbs-002",
            payer_id="BCBS",
            rule_type=PayerRuleType.AUTHORIZATION,
            condition='procedureCode in ["99213", "99214", "99215"]',
            action=PayerRuleAction.REQUIRE,
            message="Office visit codes require prior authorization",
            priority=2,
            effective_date=effective,
        ),
        PayerRule(
            id="bcbs-003",
            payer_id="BCBS",
            rule_type=PayerRuleType.CODING,
            condition="diagnosisCode.length < 1",
            action=PayerRuleAction.DENY,
            message="At least one diagnosis code is required",
            priority=1,
            effective_date=effective,
        ),
        # Aetna
        PayerRule(
            id="aetna-001",
            payer_id="AETNA",
            rule_type=PayerRuleType.ELIGIBILITY,
            condition="patientAge >= 21",
            action=PayerRuleAction.ALLOW,
            message="Patient is eligible for Aetna coverage",
            priority=1,
            effective_date=effective,
        ),
        PayerRule(
            id="aetna-002",
            payer_id="AETNA",
            rule_type=PayerRuleType.TIMING,
            condition="claimAge > 90",
            action=PayerRuleAction.DENY,
            message="Claims must be submitted within 90 days",
            priority=1,
            effective_date=effective,
        ),
        PayerRule(
            id="aetna-003",
            payer_id="AETNA",
            rule_type=PayerRuleType.BILLING,
            condition="claimAmount > 500",
            action=PayerRuleAction.WARN,
            message="High-value claims may require additional review",
            priority=2,
            effective_date=effective,
        ),
    ]
