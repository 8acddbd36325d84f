"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.
"""

from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from claimscrub.core.config import ClaimsSettings
from claimscrub.schemas.claim import ClaimSubmission, DiagnosisEntry, ProcedureLine
from claimscrub.services.claim_scrubbing import ClaimScrubbingService
from claimscrub.services.code_format import CodeReference
from claimscrub.services.payer_rules import PayerRuleTable

TODAY = date(2026, 10, 18)


@pytest.fixture
def today():
    """Fixed reference date so date-dependent checks are reproducible."""
    return TODAY


@pytest.fixture
def test_settings():
    """Settings for tests: testing environment, fast lookup timeout."""
    return ClaimsSettings(
        ENVIRONMENT="testing",
        LOOKUP_TIMEOUT_SECONDS=0.5,
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
def claim_factory():
    """Build a complete, submittable claim; keyword overrides replace fields."""

    def _build(**overrides) -> ClaimSubmission:
        data = {
            "patient_id": uuid4(),
            "provider_id": uuid4(),
            "primary_insurance_id": uuid4(),
            "service_date_from": TODAY - timedelta(days=10),
            "place_of_service_code": "11",
            "total_charges": Decimal("150.00"),
            "procedures": [
                ProcedureLine(
                    cpt_code="99213",
                    description="Office visit, established patient",
                    quantity=2,
                    unit_price=Decimal("75.00"),
                    total_price=Decimal("150.00"),
                    diagnosis_pointer="1",
                )
            ],
            "diagnoses": [
                DiagnosisEntry(icd_code="E11.9", description="Type 2 diabetes", is_primary=True),
                DiagnosisEntry(icd_code="I10", description="Essential hypertension", is_primary=False),
            ],
        }
        data.update(overrides)
        return ClaimSubmission(**data)

    return _build


@pytest.fixture
def valid_claim(claim_factory):
    return claim_factory()


@pytest.fixture
def patient_70():
    """Patient record stand-in aged 70."""
    return SimpleNamespace(age_on=lambda on_date: 70)


@pytest.fixture
def mock_repository(patient_70):
    """Repository whose lookups describe a clean claim on Medicare."""
    repository = AsyncMock()
    repository.get_payer.return_value = SimpleNamespace(code="MEDICARE", timely_filing_days=365)
    repository.get_payer_by_code.return_value = SimpleNamespace(code="MEDICARE", timely_filing_days=365)
    repository.get_patient.return_value = patient_70
    repository.find_authorization.return_value = None
    repository.latest_eligibility.return_value = SimpleNamespace(is_eligible=True)
    repository.find_duplicate_claims.return_value = []
    repository.get_payer_approval_rate.return_value = None
    return repository


@pytest.fixture(scope="session")
def code_reference():
    return CodeReference()


@pytest.fixture
def scrubber(mock_repository, code_reference, test_settings):
    return ClaimScrubbingService(
        repository=mock_repository,
        payer_rules=PayerRuleTable(),
        code_reference=code_reference,
        settings=test_settings,
    )


@pytest.fixture
def mock_db_session():
    """Create a mock database session."""
    session = AsyncMock()
    session.add = MagicMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.refresh = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as an API test"
    )
