"""
Timely Filing Calculator.
Source: CMS Medicare Claims Processing Manual, Chapter 1, Section 70 (timely filing)
Verified: 2026-10-18

Deadline = service date + payer filing window. Payers without a configured
window use the default (365 days).
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Optional, Union
from uuid import UUID

from claimscrub.core.config import ClaimsSettings, get_settings
from claimscrub.core.enums import FilingWarningLevel
from claimscrub.schemas.scrubbing import TimelyFilingInfo

logger = logging.getLogger(__name__)


CRITICAL_DAYS_REMAINING = 7
WARNING_DAYS_REMAINING = 30


def filing_warning_level(days_remaining: int) -> FilingWarningLevel:
    """Urgency tier for the days left before the deadline."""
    if days_remaining < 0:
        return FilingWarningLevel.EXPIRED
    if days_remaining <= CRITICAL_DAYS_REMAINING:
        return FilingWarningLevel.CRITICAL
    if days_remaining <= WARNING_DAYS_REMAINING:
        return FilingWarningLevel.WARNING
    return FilingWarningLevel.NONE


def compute_timely_filing(
    service_date: date,
    allowed_days: int,
    today: Optional[date] = None,
) -> TimelyFilingInfo:
    """Pure deadline computation."""
    today = today or date.today()
    deadline = service_date + timedelta(days=allowed_days)
    days_remaining = (deadline - today).days
    return TimelyFilingInfo(
        deadline=deadline,
        days_remaining=days_remaining,
        is_past_deadline=days_remaining < 0,
        warning_level=filing_warning_level(days_remaining),
        allowed_days=allowed_days,
    )


class TimelyFilingCalculator:
    """
    Resolves the payer filing window and computes the deadline.

    Lookup failures fall back to the default window; they never raise.
    """

    def __init__(self, repository, settings: Optional[ClaimsSettings] = None):
        self.repository = repository
        self.settings = settings or get_settings()

    async def allowed_days(self, payer_id: Union[UUID, str, None]) -> int:
        """Filing window in days for a payer (UUID or payer code)."""
        default = self.settings.DEFAULT_TIMELY_FILING_DAYS
        if payer_id is None or self.repository is None:
            return default

        try:
            payer = await asyncio.wait_for(
                self._lookup_payer(payer_id),
                timeout=self.settings.LOOKUP_TIMEOUT_SECONDS,
            )
        except Exception as e:
            logger.warning(f"Payer lookup failed for timely filing ({payer_id}): {e}")
            return default

        if payer is None or not payer.timely_filing_days:
            return default
        return payer.timely_filing_days

    async def _lookup_payer(self, payer_id: Union[UUID, str]):
        if isinstance(payer_id, UUID):
            return await self.repository.get_payer(payer_id)
        try:
            return await self.repository.get_payer(UUID(payer_id))
        except ValueError:
            return await self.repository.get_payer_by_code(payer_id)

    async def check_timely_filing(
        self,
        service_date: date,
        payer_id: Union[UUID, str, None],
        today: Optional[date] = None,
    ) -> TimelyFilingInfo:
        """
        Compute the filing deadline for a service date and payer.

        Args:
            service_date: First date of service
            payer_id: Insurance/payer UUID or payer code
            today: Reference date (defaults to today)

        Returns:
            TimelyFilingInfo with deadline, days remaining and warning level
        """
        allowed = await self.allowed_days(payer_id)
        info = compute_timely_filing(service_date, allowed, today)
        if info.warning_level != FilingWarningLevel.NONE:
            logger.info(
                f"Timely filing {info.warning_level.value} for service date {service_date}: "
                f"{info.days_remaining} days remaining"
            )
        return info
