"""
FastAPI Dependencies
Dependency injection for services and database sessions
Source: https://fastapi.tiangolo.com/tutorial/dependencies/
Verified: 2026-10-18
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from claimscrub.core.config import ClaimsSettings, get_settings
from claimscrub.db.connection import get_session, get_session_maker
from claimscrub.db.repository import ClaimRepository
from claimscrub.services.claim_scrubbing import ClaimScrubbingService, build_payer_rule_table
from claimscrub.services.claim_submission import ClaimSubmissionService
from claimscrub.services.code_format import CodeReference
from claimscrub.services.payer_rules import PayerRuleTable
from claimscrub.services.timely_filing import TimelyFilingCalculator


@lru_cache
def get_payer_rule_table() -> PayerRuleTable:
    """Shared payer rule table, loaded once per process."""
    return build_payer_rule_table(get_settings())


@lru_cache
def get_code_reference() -> CodeReference:
    """Shared code reference sets, loaded once per process."""
    return CodeReference()


def get_repository() -> ClaimRepository:
    return ClaimRepository(get_session_maker())


def get_scrubbing_service(
    repository: ClaimRepository = Depends(get_repository),
    settings: ClaimsSettings = Depends(get_settings),
) -> ClaimScrubbingService:
    return ClaimScrubbingService(
        repository=repository,
        payer_rules=get_payer_rule_table(),
        code_reference=get_code_reference(),
        settings=settings,
    )


def get_timely_filing_calculator(
    repository: ClaimRepository = Depends(get_repository),
    settings: ClaimsSettings = Depends(get_settings),
) -> TimelyFilingCalculator:
    return TimelyFilingCalculator(repository, settings=settings)


def get_submission_service(
    session: AsyncSession = Depends(get_session),
    scrubber: ClaimScrubbingService = Depends(get_scrubbing_service),
    timely_filing: TimelyFilingCalculator = Depends(get_timely_filing_calculator),
    settings: ClaimsSettings = Depends(get_settings),
) -> ClaimSubmissionService:
    return ClaimSubmissionService(
        session=session,
        scrubber=scrubber,
        timely_filing=timely_filing,
        settings=settings,
    )


async def get_user_id(
    x_user_id: Optional[str] = Header(default=None, max_length=100),
) -> Optional[str]:
    """
    Acting user, as forwarded by the upstream gateway.

    Authentication happens upstream; the ID is only recorded in claim
    history.
    """
    return x_user_id
