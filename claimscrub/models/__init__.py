"""
SQLAlchemy Models for Claim Scrubbing and Submission.

This module exports all database models for the application.
"""

from claimscrub.models.base import Base, TimeStampedModel, UUIDModel
from claimscrub.models.claim import (
    Claim,
    ClaimDiagnosis,
    ClaimProcedure,
    ClaimStatusHistory,
)
from claimscrub.models.authorization import AuthorizationRequest
from claimscrub.models.eligibility import EligibilityVerification
from claimscrub.models.patient import Patient
from claimscrub.models.payer import InsurancePayer

__all__ = [
    # Base classes
    "Base",
    "TimeStampedModel",
    "UUIDModel",
    # Claim models
    "Claim",
    "ClaimProcedure",
    "ClaimDiagnosis",
    "ClaimStatusHistory",
    # Reference models
    "AuthorizationRequest",
    "EligibilityVerification",
    "InsurancePayer",
    "Patient",
]
