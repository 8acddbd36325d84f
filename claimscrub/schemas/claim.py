"""
Pydantic Schemas for Claim Entry and Submission.
Verified: 2026-10-18

Input schemas are deliberately permissive: the scrubber accepts partial
claims for live feedback, so presence and business rules are reported as
findings rather than rejected at parse time.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from claimscrub.core.enums import ClaimStatus, FormType, InsuranceType


# =============================================================================
# Line Item Schemas
# =============================================================================


class ProcedureLine(BaseModel):
    """Procedure (service line) entered on a claim."""

    cpt_code: Optional[str] = Field(None, max_length=10, description="CPT procedure code")
    description: Optional[str] = Field(None, max_length=500)
    quantity: int = Field(default=1, description="Units of service")
    unit_price: Decimal = Field(default=Decimal("0"), description="Charge per unit")
    total_price: Decimal = Field(default=Decimal("0"), description="Line charge (quantity x unit price)")
    modifiers: list[str] = Field(default_factory=list, description="Procedure modifiers (up to 4)")
    diagnosis_pointer: Optional[str] = Field(
        None, max_length=20, description="1-based diagnosis pointers, comma separated (e.g., '1,2')"
    )
    type_of_service: Optional[str] = Field(None, max_length=2)

    @property
    def pointer_indexes(self) -> list[int]:
        """Parse the diagnosis pointer into 1-based indexes; unparseable parts are dropped."""
        if not self.diagnosis_pointer:
            return []
        indexes = []
        for part in self.diagnosis_pointer.replace(" ", "").split(","):
            if part.isdigit():
                indexes.append(int(part))
        return indexes


class DiagnosisEntry(BaseModel):
    """Diagnosis entered on a claim."""

    icd_code: Optional[str] = Field(None, max_length=10, description="ICD-10-CM code")
    description: Optional[str] = Field(None, max_length=500)
    is_primary: bool = False


# =============================================================================
# Claim Schemas
# =============================================================================


class ClaimSubmission(BaseModel):
    """
    Claim as entered in the claim form.

    Used for scrubbing (partial or complete), draft saving and submission.
    """

    claim_number: Optional[str] = Field(None, max_length=50)
    form_type: FormType = FormType.CMS1500

    # References
    patient_id: Optional[UUID] = None
    provider_id: Optional[UUID] = None
    billing_provider_id: Optional[UUID] = None
    facility_id: Optional[UUID] = None
    appointment_id: Optional[UUID] = None
    primary_insurance_id: Optional[UUID] = None
    secondary_insurance_id: Optional[UUID] = None
    tertiary_insurance_id: Optional[UUID] = None
    insurance_type: InsuranceType = InsuranceType.EDI

    # Service
    service_date_from: Optional[date] = None
    service_date_to: Optional[date] = None
    place_of_service_code: Optional[str] = Field(None, max_length=2)

    # Financial
    total_charges: Optional[Decimal] = None
    patient_responsibility: Optional[Decimal] = None
    insurance_amount: Optional[Decimal] = None
    copay_amount: Optional[Decimal] = None
    deductible_amount: Optional[Decimal] = None

    # Authorization / referral
    prior_auth_number: Optional[str] = Field(None, max_length=50)
    referral_number: Optional[str] = Field(None, max_length=50)
    treatment_auth_code: Optional[str] = Field(None, max_length=50)

    procedures: list[ProcedureLine] = Field(default_factory=list)
    diagnoses: list[DiagnosisEntry] = Field(default_factory=list)

    status: Optional[ClaimStatus] = None
    submission_method: InsuranceType = InsuranceType.EDI
    is_secondary_claim: bool = False
    notes: Optional[str] = None

    @property
    def procedure_codes(self) -> list[str]:
        """CPT codes present on the claim, in line order."""
        return [proc.cpt_code for proc in self.procedures if proc.cpt_code]

    @property
    def diagnosis_codes(self) -> list[str]:
        """ICD-10 codes present on the claim, in sequence order."""
        return [diag.icd_code for diag in self.diagnoses if diag.icd_code]


class ClaimStatusUpdate(BaseModel):
    """Request to move a claim to a new status."""

    status: ClaimStatus
    notes: Optional[str] = Field(None, max_length=1000)


# =============================================================================
# Response Schemas
# =============================================================================


class ClaimProcedureResponse(BaseModel):
    """Persisted procedure line."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    line_number: int
    cpt_code: Optional[str] = None
    description: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    modifiers: list[str] = Field(default_factory=list)
    diagnosis_pointer: Optional[str] = None


class ClaimDiagnosisResponse(BaseModel):
    """Persisted diagnosis."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sequence_number: int
    icd_code: Optional[str] = None
    description: Optional[str] = None
    is_primary: bool


class ClaimResponse(BaseModel):
    """Persisted claim with its line items."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    claim_number: str
    status: ClaimStatus
    form_type: FormType
    patient_id: Optional[UUID] = None
    provider_id: Optional[UUID] = None
    primary_insurance_id: Optional[UUID] = None
    service_date_from: Optional[date] = None
    service_date_to: Optional[date] = None
    place_of_service_code: Optional[str] = None
    total_charges: Optional[Decimal] = None
    prior_auth_number: Optional[str] = None
    submission_date: Optional[date] = None
    procedures: list[ClaimProcedureResponse] = Field(default_factory=list)
    diagnoses: list[ClaimDiagnosisResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
