"""
Payer API Endpoints.

Provides:
- Timely filing deadline lookup
- Payer rule listing

Verified: 2026-10-18
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from claimscrub.api.deps import get_payer_rule_table, get_timely_filing_calculator
from claimscrub.schemas.scrubbing import TimelyFilingInfo
from claimscrub.services.payer_rules import PayerRule, PayerRuleTable
from claimscrub.services.timely_filing import TimelyFilingCalculator

router = APIRouter(
    prefix="/api/v1/payers",
    tags=["payers"],
)


@router.get("/{payer_id}/timely-filing", response_model=TimelyFilingInfo)
async def get_timely_filing(
    payer_id: str,
    service_date: date = Query(..., description="First date of service (YYYY-MM-DD)"),
    calculator: TimelyFilingCalculator = Depends(get_timely_filing_calculator),
) -> TimelyFilingInfo:
    """Filing deadline for a service date; payer_id is a payer UUID or code."""
    return await calculator.check_timely_filing(service_date, payer_id)


@router.get("/{payer_code}/rules", response_model=list[PayerRule])
async def list_payer_rules(
    payer_code: str,
    active_on: Optional[date] = Query(None, description="Only rules in effect on this date"),
    table: PayerRuleTable = Depends(get_payer_rule_table),
) -> list[PayerRule]:
    """Rules registered for a payer, highest priority first when filtered by date."""
    if active_on is not None:
        return table.active_rules(payer_code, active_on)
    return table.rules_for(payer_code)
