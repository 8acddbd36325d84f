"""
Patient Model.
Verified: 2026-10-18
"""

from datetime import date
from typing import Optional

from sqlalchemy import Date, String
from sqlalchemy.orm import Mapped, mapped_column

from claimscrub.models.base import Base, TimeStampedModel, UUIDModel


class Patient(Base, UUIDModel, TimeStampedModel):
    """Patient demographics needed by payer rules (age)."""

    __tablename__ = "patients"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    def age_on(self, on_date: date) -> Optional[int]:
        """Age in whole years on the given date."""
        if self.date_of_birth is None:
            return None
        dob = self.date_of_birth
        years = on_date.year - dob.year
        if (on_date.month, on_date.day) < (dob.month, dob.day):
            years -= 1
        return years
