"""
Unit tests for claim submission.

Tests for:
- Pre-submission validation (hard checks, timely filing, scrubbing gate)
- Claim number generation
- Persistence failure handling
- Status update guards

Persistence against a real database is covered in
tests/integration/test_submission_persistence.py.
"""

import re
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from claimscrub.core.enums import ClaimStatus, ErrorSeverity, WarningImpact
from claimscrub.schemas.claim import ProcedureLine
from claimscrub.schemas.scrubbing import ScrubbingError, ScrubbingResult, ScrubbingWarning
from claimscrub.services.claim_submission import (
    ClaimNotFoundError,
    ClaimNumberConflictError,
    ClaimPersistenceError,
    ClaimStatusTransitionError,
    ClaimSubmissionService,
    ClaimValidationError,
)
from claimscrub.services.timely_filing import compute_timely_filing


@pytest.fixture
def mock_scrubber():
    scrubber = AsyncMock()
    scrubber.scrub.return_value = ScrubbingResult()
    return scrubber


@pytest.fixture
def mock_timely_filing(today):
    calculator = AsyncMock()

    async def check(service_date, payer_id, today=today):
        return compute_timely_filing(service_date, 365, today)

    calculator.check_timely_filing.side_effect = check
    return calculator


@pytest.fixture
def service(mock_db_session, mock_scrubber, mock_timely_filing, test_settings):
    return ClaimSubmissionService(
        session=mock_db_session,
        scrubber=mock_scrubber,
        timely_filing=mock_timely_filing,
        settings=test_settings,
    )


def _integrity_error():
    return IntegrityError("INSERT INTO claims", {}, Exception("UNIQUE constraint failed"))


# =============================================================================
# Claim Number Generation
# =============================================================================


class TestClaimNumber:
    def test_format(self, service, today):
        claim_number = service.generate_claim_number(today)

        assert re.fullmatch(r"CLM-20261018-\d{4}", claim_number)

    def test_prefix_from_settings(self, service, today, test_settings):
        test_settings.CLAIM_NUMBER_PREFIX = "TST"

        assert service.generate_claim_number(today).startswith("TST-20261018-")


# =============================================================================
# Validation
# =============================================================================


class TestValidateClaimSubmission:
    """Tests for pass/fail validation."""

    @pytest.mark.asyncio
    async def test_valid_claim(self, service, valid_claim, today):
        result = await service.validate_claim_submission(valid_claim, today)

        assert result.is_valid is True
        assert result.can_submit is True
        assert result.errors == []
        assert result.timely_filing.days_remaining == 355

    @pytest.mark.asyncio
    async def test_past_timely_filing(self, service, claim_factory, today):
        claim = claim_factory(service_date_from=today - timedelta(days=366))

        result = await service.validate_claim_submission(claim, today)

        assert result.can_submit is False
        assert result.errors == [
            f"Claim is past timely filing deadline ({(today - timedelta(days=1)).isoformat()})"
        ]

    @pytest.mark.asyncio
    async def test_deadline_approaching(self, service, claim_factory, today):
        claim = claim_factory(service_date_from=today - timedelta(days=360))

        result = await service.validate_claim_submission(claim, today)

        assert result.can_submit is True
        assert "Timely filing deadline approaching: 5 days remaining" in result.warnings

    @pytest.mark.asyncio
    async def test_hard_check_messages(self, service, claim_factory, today):
        claim = claim_factory(
            total_charges=None,
            procedures=[ProcedureLine(cpt_code=None, quantity=0, unit_price=Decimal("-1"))],
        )

        result = await service.validate_claim_submission(claim, today)

        assert "Procedure 1: CPT code is required" in result.errors
        assert "Procedure 1: Quantity must be greater than 0" in result.errors
        assert "Procedure 1: Unit price cannot be negative" in result.errors
        assert "Total charges is required" in result.errors
        assert "Procedure 1: Description is missing" in result.warnings

    @pytest.mark.asyncio
    async def test_high_cost_without_authorization(self, service, claim_factory, today):
        claim = claim_factory(
            total_charges=Decimal("2500.00"),
            procedures=[
                ProcedureLine(
                    cpt_code="27447",
                    description="Total knee arthroplasty",
                    unit_price=Decimal("2500.00"),
                    total_price=Decimal("2500.00"),
                    diagnosis_pointer="1",
                )
            ],
        )

        result = await service.validate_claim_submission(claim, today)

        assert "High-cost procedures detected. Prior authorization may be required." in result.warnings

    @pytest.mark.asyncio
    async def test_scrubbing_gate(self, service, mock_scrubber, valid_claim, today):
        mock_scrubber.scrub.return_value = ScrubbingResult(
            is_valid=False,
            can_submit=False,
            errors=[
                ScrubbingError(
                    field="primary_insurance_id", code="ELIG-002",
                    message="Patient is not eligible for service date",
                    severity=ErrorSeverity.CRITICAL,
                ),
                ScrubbingError(
                    field="procedures", code="MOD-001",
                    message="Invalid modifier format: 2 (must be 2 characters)",
                    severity=ErrorSeverity.ERROR,
                ),
            ],
            warnings=[
                ScrubbingWarning(
                    field="payer_rules", code="PAYER-003",
                    message="Claims over $1000 require additional documentation",
                    impact=WarningImpact.HIGH,
                ),
            ],
        )

        result = await service.validate_claim_submission(valid_claim, today)

        assert result.errors == ["Patient is not eligible for service date"]
        assert "Invalid modifier format: 2 (must be 2 characters)" in result.warnings
        assert result.requirements == ["Claims over $1000 require additional documentation"]
        assert result.can_submit is False
        assert result.scrubbing is not None

    @pytest.mark.asyncio
    async def test_scrubber_error_not_repeated(self, service, mock_scrubber, claim_factory, today):
        mock_scrubber.scrub.return_value = ScrubbingResult(
            errors=[
                ScrubbingError(
                    field="patient_id", code="REQ-001", message="Patient is required",
                    severity=ErrorSeverity.CRITICAL,
                )
            ]
        )

        result = await service.validate_claim_submission(claim_factory(patient_id=None), today)

        assert result.errors.count("Patient is required") == 1


# =============================================================================
# Submission
# =============================================================================


class TestSubmitClaim:
    """Tests for submission guards and persistence failures."""

    @pytest.mark.asyncio
    async def test_validation_failure_writes_nothing(self, service, mock_db_session, claim_factory, today):
        with pytest.raises(ClaimValidationError) as exc_info:
            await service.submit_claim(claim_factory(provider_id=None), today=today)

        assert str(exc_info.value) == "Validation failed: Provider is required"
        assert exc_info.value.errors == ["Provider is required"]
        mock_db_session.add.assert_not_called()
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_explicit_claim_number_conflict(self, service, mock_db_session, claim_factory, today):
        mock_db_session.commit.side_effect = _integrity_error()

        with pytest.raises(ClaimNumberConflictError):
            await service.submit_claim(claim_factory(claim_number="CLM-20261018-0001"), today=today)

        assert mock_db_session.commit.await_count == 1
        mock_db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_generated_number_retries_exhausted(self, service, mock_db_session, valid_claim, today):
        mock_db_session.commit.side_effect = _integrity_error()

        with pytest.raises(ClaimNumberConflictError):
            await service.save_draft(valid_claim, today=today)

        assert mock_db_session.commit.await_count == 3
        assert mock_db_session.rollback.await_count == 3

    @pytest.mark.asyncio
    async def test_database_failure(self, service, mock_db_session, valid_claim, today):
        mock_db_session.commit.side_effect = OperationalError("INSERT INTO claims", {}, Exception("disk full"))

        with pytest.raises(ClaimPersistenceError):
            await service.submit_claim(valid_claim, today=today)

        mock_db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_claim_is_added_with_children(self, service, mock_db_session, valid_claim, today):
        mock_db_session.commit.side_effect = OperationalError("INSERT INTO claims", {}, Exception("stop"))

        with pytest.raises(ClaimPersistenceError):
            await service.submit_claim(valid_claim, user_id="biller-1", today=today)

        db_claim = mock_db_session.add.call_args.args[0]
        assert db_claim.status == ClaimStatus.SUBMITTED
        assert db_claim.user_id == "biller-1"
        assert db_claim.service_date_to == valid_claim.service_date_from
        assert [p.line_number for p in db_claim.procedures] == [1]
        assert [d.sequence_number for d in db_claim.diagnoses] == [1, 2]
        assert db_claim.status_history[0].new_status == ClaimStatus.SUBMITTED
        assert db_claim.status_history[0].previous_status is None


# =============================================================================
# Status Updates
# =============================================================================


class TestUpdateClaimStatus:
    """Tests for status update guards."""

    @staticmethod
    def _returns(session, claim):
        result = MagicMock()
        result.scalar_one_or_none.return_value = claim
        session.execute.return_value = result

    @pytest.mark.asyncio
    async def test_claim_not_found(self, service, mock_db_session):
        self._returns(mock_db_session, None)

        with pytest.raises(ClaimNotFoundError):
            await service.update_claim_status(uuid4(), ClaimStatus.SUBMITTED)

    @pytest.mark.asyncio
    async def test_invalid_transition(self, service, mock_db_session):
        self._returns(mock_db_session, SimpleNamespace(id=uuid4(), status=ClaimStatus.PAID))

        with pytest.raises(ClaimStatusTransitionError):
            await service.update_claim_status(uuid4(), ClaimStatus.DENIED)

        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_processing_transition_skips_validation(self, service, mock_db_session, mock_scrubber):
        claim = SimpleNamespace(id=uuid4(), claim_number="CLM-20261018-0007", status=ClaimStatus.SUBMITTED)
        self._returns(mock_db_session, claim)

        await service.update_claim_status(claim.id, ClaimStatus.PROCESSING, user_id="payer-sync")

        assert claim.status == ClaimStatus.PROCESSING
        mock_scrubber.scrub.assert_not_awaited()
        history = mock_db_session.add.call_args.args[0]
        assert history.previous_status == ClaimStatus.SUBMITTED
        assert history.new_status == ClaimStatus.PROCESSING
        assert history.changed_by == "payer-sync"
        mock_db_session.commit.assert_awaited_once()
