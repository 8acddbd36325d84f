"""
Unit tests for payer-specific rules.

Tests for:
- Condition parsing into expression trees
- Rule evaluation and action routing
- Rule management (add, update, load from file)
"""

import json
import logging
from datetime import date
from decimal import Decimal

import pytest

from claimscrub.core.enums import PayerRuleAction, PayerRuleType
from claimscrub.services.payer_rules import (
    Comparison,
    ConditionSyntaxError,
    Membership,
    Operand,
    PayerRule,
    PayerRuleContext,
    PayerRuleTable,
    parse_condition,
)

ON_DATE = date(2026, 10, 18)


def _rule(**overrides) -> PayerRule:
    data = {
        "id": "test-001",
        "payer_id": "TESTPAYER",
        "rule_type": PayerRuleType.BILLING,
        "condition": "claimAmount > 100",
        "action": PayerRuleAction.WARN,
        "message": "Amount over 100",
        "effective_date": date(2024, 1, 1),
    }
    data.update(overrides)
    return PayerRule(**data)


# =============================================================================
# Parsing
# =============================================================================


class TestParseCondition:
    """Tests for the condition grammar."""

    def test_comparison(self):
        parsed = parse_condition("patientAge >= 65")

        assert parsed == Comparison(op=">=", operand=Operand("patientAge"), value=65)

    def test_string_literal(self):
        parsed = parse_condition('serviceType == "office"')

        assert isinstance(parsed, Comparison)
        assert parsed.value == "office"

    def test_single_quoted_literal(self):
        parsed = parse_condition("serviceType != 'inpatient'")

        assert parsed.value == "inpatient"

    def test_membership(self):
        parsed = parse_condition('procedureCode in ["99213", "99214"]')

        assert parsed == Membership(operand=Operand("procedureCode"), values=("99213", "99214"))

    def test_length_operand(self):
        parsed = parse_condition("diagnosisCode.length < 1")

        assert parsed.operand == Operand("diagnosisCode", length=True)

    @pytest.mark.parametrize(
        "condition",
        [
            "patientAge >>= 65",
            "unknownVar > 1",
            "claimAmount > ",
            "procedureCode in 99213",
            "claimAmount > abc",
            "",
        ],
    )
    def test_malformed_raises(self, condition):
        with pytest.raises(ConditionSyntaxError):
            parse_condition(condition)


class TestUnparseableRules:
    """Malformed rules stay loaded but never fire."""

    def test_unparseable_rule_logs_rule_id(self, caplog):
        with caplog.at_level(logging.WARNING, logger="claimscrub.services.payer_rules"):
            rule = _rule(id="broken-007", condition="claimAmount >>> 5")

        assert rule.is_parseable is False
        assert "broken-007" in caplog.text

    def test_unparseable_rule_never_fires(self):
        table = PayerRuleTable(rules=[_rule(condition="claimAmount ~ 5")], include_defaults=False)

        evaluation = table.evaluate(PayerRuleContext(claim_amount=Decimal("9999")), "TESTPAYER", ON_DATE)

        assert evaluation.is_valid is True
        assert evaluation.warnings == []
        assert evaluation.fired_rules == []


# =============================================================================
# Evaluation
# =============================================================================


class TestConditionEvaluation:
    """Tests for evaluating parsed conditions."""

    def test_list_variable_matches_any_element(self):
        rule = _rule(condition='procedureCode == "99214"')

        assert rule.matches({"procedureCode": ["99213", "99214"]}) is True
        assert rule.matches({"procedureCode": ["99213"]}) is False

    def test_list_membership_any_element(self):
        rule = _rule(condition='diagnosisCode in ["I10", "E11.9"]')

        assert rule.matches({"diagnosisCode": ["Z00.00", "I10"]}) is True
        assert rule.matches({"diagnosisCode": ["Z00.00"]}) is False

    def test_not_equal_on_list_means_absent(self):
        rule = _rule(condition='procedureCode != "99213"')

        assert rule.matches({"procedureCode": ["99213", "99214"]}) is False
        assert rule.matches({"procedureCode": ["99214"]}) is True

    def test_numeric_comparison_on_decimal(self):
        rule = _rule(condition="claimAmount > 1000")

        assert rule.matches({"claimAmount": Decimal("1000.01")}) is True
        assert rule.matches({"claimAmount": Decimal("1000")}) is False

    def test_missing_variable_is_false(self):
        rule = _rule(condition="patientAge >= 65")

        assert rule.matches({"patientAge": None}) is False

    def test_length_of_empty_list(self):
        rule = _rule(condition="diagnosisCode.length < 1")

        assert rule.matches({"diagnosisCode": []}) is True
        assert rule.matches({"diagnosisCode": ["I10"]}) is False

    def test_ordering_against_string_is_false(self):
        rule = _rule(condition='serviceType > "a"')

        assert rule.matches({"serviceType": "b"}) is False

    @pytest.mark.parametrize("value", ["NaN", Decimal("NaN"), "Infinity"])
    def test_non_finite_value_never_orders(self, value):
        rule = _rule(condition="claimAmount > 100")

        assert rule.matches({"claimAmount": value}) is False


class TestRuleTable:
    """Tests for rule selection and action routing."""

    def test_action_routing(self):
        table = PayerRuleTable(
            rules=[
                _rule(id="a", action=PayerRuleAction.ALLOW, message="allowed"),
                _rule(id="d", action=PayerRuleAction.DENY, message="denied"),
                _rule(id="w", action=PayerRuleAction.WARN, message="warned"),
                _rule(id="r", action=PayerRuleAction.REQUIRE, message="required"),
            ],
            include_defaults=False,
        )

        evaluation = table.evaluate(PayerRuleContext(claim_amount=Decimal("500")), "TESTPAYER", ON_DATE)

        assert evaluation.suggestions == ["allowed"]
        assert evaluation.errors == ["denied"]
        assert evaluation.warnings == ["warned"]
        assert evaluation.requirements == ["required"]
        assert evaluation.is_valid is False

    def test_warn_only_stays_valid(self):
        table = PayerRuleTable(rules=[_rule()], include_defaults=False)

        evaluation = table.evaluate(PayerRuleContext(claim_amount=Decimal("500")), "TESTPAYER", ON_DATE)

        assert evaluation.is_valid is True
        assert evaluation.warnings == ["Amount over 100"]

    def test_priority_descending(self):
        table = PayerRuleTable(
            rules=[
                _rule(id="low", priority=1, message="low"),
                _rule(id="high", priority=9, message="high"),
                _rule(id="mid", priority=5, message="mid"),
            ],
            include_defaults=False,
        )

        assert [r.id for r in table.active_rules("TESTPAYER", ON_DATE)] == ["high", "mid", "low"]

    def test_inactive_and_out_of_window_rules_skipped(self):
        table = PayerRuleTable(
            rules=[
                _rule(id="inactive", is_active=False),
                _rule(id="future", effective_date=date(2027, 1, 1)),
                _rule(id="expired", expiration_date=date(2025, 12, 31)),
                _rule(id="current", expiration_date=date(2026, 12, 31)),
            ],
            include_defaults=False,
        )

        assert [r.id for r in table.active_rules("TESTPAYER", ON_DATE)] == ["current"]

    def test_unknown_payer_has_no_rules(self):
        table = PayerRuleTable()

        evaluation = table.evaluate(PayerRuleContext(claim_amount=Decimal("5000")), "NOPE", ON_DATE)

        assert evaluation.is_valid is True
        assert evaluation.fired_rules == []
        assert evaluation.payer_name == "NOPE"


class TestDefaultRules:
    """Tests for the built-in payer rules."""

    def test_medicare_high_amount_requires_documentation(self):
        table = PayerRuleTable()
        context = PayerRuleContext(patient_age=70, claim_amount=Decimal("1500"), procedure_codes=["99213"])

        evaluation = table.evaluate(context, "MEDICARE", ON_DATE)

        assert evaluation.payer_name == "Medicare"
        assert "Claims over $1000 require additional documentation" in evaluation.requirements
        assert "Patient is eligible for Medicare" in evaluation.suggestions
        assert evaluation.is_valid is False

    def test_bcbs_denies_claim_without_diagnoses(self):
        evaluation = PayerRuleTable().evaluate(
            PayerRuleContext(patient_age=30, claim_amount=Decimal("100")), "BCBS", ON_DATE
        )

        assert "At least one diagnosis code is required" in evaluation.errors

    def test_aetna_late_claim_denied(self):
        context = PayerRuleContext(patient_age=40, claim_amount=Decimal("100"), claim_age=120)

        evaluation = PayerRuleTable().evaluate(context, "AETNA", ON_DATE)

        assert evaluation.errors == ["Claims must be submitted within 90 days"]

    def test_requirement_lookups(self):
        table = PayerRuleTable()

        assert table.get_authorization_requirements("BCBS", ["99214"]) == [
            "Office visit codes require prior authorization"
        ]
        assert table.get_billing_requirements("MEDICARE", Decimal("2000")) == [
            "Claims over $1000 require additional documentation"
        ]
        assert table.get_billing_requirements("MEDICARE", Decimal("20")) == []
        assert table.get_eligibility_requirements("MEDICARE", "office") == []

    def test_payer_names(self):
        assert PayerRuleTable.payer_name("BCBS") == "Blue Cross Blue Shield"
        assert PayerRuleTable.payer_name("UHC") == "UnitedHealth"


class TestRuleManagement:
    """Tests for adding, updating and loading rules."""

    def test_update_rule_reparses_condition(self):
        table = PayerRuleTable(rules=[_rule()], include_defaults=False)
        context = PayerRuleContext(claim_amount=Decimal("50"))
        assert table.evaluate(context, "TESTPAYER", ON_DATE).warnings == []

        updated = table.update_rule("test-001", condition="claimAmount > 10")

        assert updated is not None
        assert table.evaluate(context, "TESTPAYER", ON_DATE).warnings == ["Amount over 100"]

    def test_update_rule_moves_payer(self):
        table = PayerRuleTable(rules=[_rule()], include_defaults=False)

        table.update_rule("test-001", payer_id="OTHER")

        assert table.rules_for("TESTPAYER") == []
        assert [r.id for r in table.rules_for("OTHER")] == ["test-001"]

    def test_update_unknown_rule(self):
        assert PayerRuleTable(include_defaults=False).update_rule("missing", priority=3) is None

    def test_load_rules_file(self, tmp_path):
        rules_file = tmp_path / "rules.json"
        rules_file.write_text(
            json.dumps(
                {
                    "rules": [
                        {
                            "id": "cigna-001",
                            "payer_id": "CIGNA",
                            "rule_type": "billing",
                            "condition": "claimAmount > 750",
                            "action": "warn",
                            "message": "Cigna review threshold",
                            "effective_date": "2025-01-01",
                        }
                    ]
                }
            )
        )
        table = PayerRuleTable(include_defaults=False)

        loaded = table.load_rules_file(rules_file)

        assert loaded == 1
        evaluation = table.evaluate(PayerRuleContext(claim_amount=Decimal("800")), "CIGNA", ON_DATE)
        assert evaluation.warnings == ["Cigna review threshold"]


class TestRuleContext:
    """Tests for building rule variables from a claim."""

    def test_from_claim(self, valid_claim, today):
        context = PayerRuleContext.from_claim(valid_claim, patient_age=55, today=today)
        variables = context.as_variables()

        assert variables["patientAge"] == 55
        assert variables["claimAmount"] == Decimal("150.00")
        assert variables["procedureCode"] == ["99213"]
        assert variables["diagnosisCode"] == ["E11.9", "I10"]
        assert variables["claimAge"] == 10
