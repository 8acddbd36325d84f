"""
Integration Tests for Store Lookups
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from claimscrub.core.enums import AuthorizationStatus, ClaimStatus
from claimscrub.db.repository import ClaimRepository
from claimscrub.models import AuthorizationRequest, Base, Claim, InsurancePayer

pytestmark = pytest.mark.integration

SERVICE_DATE = date(2026, 10, 8)


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lookups.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def repository(session_maker):
    return ClaimRepository(session_maker)


def _claim(number: str, status: ClaimStatus, patient_id=None, insurance_id=None) -> Claim:
    return Claim(
        claim_number=number,
        status=status,
        patient_id=patient_id,
        primary_insurance_id=insurance_id,
        service_date_from=SERVICE_DATE,
        total_charges=Decimal("100.00"),
    )


@pytest.mark.asyncio
async def test_payer_lookups(repository, session_maker):
    payer_id = uuid4()
    async with session_maker() as session:
        session.add(InsurancePayer(id=payer_id, code="BCBS", name="Blue Cross Blue Shield", timely_filing_days=180))
        await session.commit()

    assert (await repository.get_payer(payer_id)).code == "BCBS"
    assert (await repository.get_payer_by_code("BCBS")).id == payer_id
    assert await repository.get_payer(uuid4()) is None


@pytest.mark.asyncio
async def test_find_authorization(repository, session_maker):
    async with session_maker() as session:
        session.add(
            AuthorizationRequest(
                auth_number="PA-77",
                procedure_codes=["27447"],
                status=AuthorizationStatus.APPROVED,
                expiry_date=SERVICE_DATE + timedelta(days=30),
            )
        )
        await session.commit()

    auth = await repository.find_authorization("PA-77")

    assert auth.status == AuthorizationStatus.APPROVED
    assert auth.procedure_codes == ["27447"]
    assert await repository.find_authorization("PA-00") is None


@pytest.mark.asyncio
async def test_duplicates_only_count_non_draft_claims(repository, session_maker):
    patient_id = uuid4()
    async with session_maker() as session:
        session.add_all(
            [
                _claim("CLM-A", ClaimStatus.SUBMITTED, patient_id),
                _claim("CLM-B", ClaimStatus.DRAFT, patient_id),
                _claim("CLM-C", ClaimStatus.DENIED, patient_id),
                _claim("CLM-D", ClaimStatus.PAID, patient_id),
                _claim("CLM-E", ClaimStatus.SUBMITTED, uuid4()),
            ]
        )
        await session.commit()

    found = await repository.find_duplicate_claims(patient_id, SERVICE_DATE)
    excluding_self = await repository.find_duplicate_claims(
        patient_id, SERVICE_DATE, exclude_claim_number="CLM-A"
    )

    assert [c.claim_number for c in found] == ["CLM-A", "CLM-D"]
    assert [c.claim_number for c in excluding_self] == ["CLM-D"]
    assert await repository.find_duplicate_claims(patient_id, SERVICE_DATE - timedelta(days=1)) == []


@pytest.mark.asyncio
async def test_approval_rate(repository, session_maker):
    insurance_id = uuid4()
    assert await repository.get_payer_approval_rate(insurance_id) is None

    async with session_maker() as session:
        session.add_all(
            [
                _claim("CLM-1", ClaimStatus.PAID, insurance_id=insurance_id),
                _claim("CLM-2", ClaimStatus.PAID, insurance_id=insurance_id),
                _claim("CLM-3", ClaimStatus.PAID, insurance_id=insurance_id),
                _claim("CLM-4", ClaimStatus.DENIED, insurance_id=insurance_id),
                _claim("CLM-5", ClaimStatus.SUBMITTED, insurance_id=insurance_id),
            ]
        )
        await session.commit()

    assert await repository.get_payer_approval_rate(insurance_id) == pytest.approx(75.0)
