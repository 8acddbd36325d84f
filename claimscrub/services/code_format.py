"""
Medical Code Format Validation.
Source: CMS code set conventions (CPT, ICD-10-CM, HCPCS Level II, CDT)
Verified: 2026-10-18

Syntactic checks only. Whether a well-formed code is actually in use is
answered by CodeReference against the packaged reference sets.
"""

import json
import logging
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from claimscrub.core.enums import CodeFamily

logger = logging.getLogger(__name__)


CPT_PATTERN = re.compile(r"[0-9]{5}")
ICD10_PATTERN = re.compile(r"[A-Z][0-9]{2,3}(\.[0-9]{1,4})?")
HCPCS_PATTERN = re.compile(r"[A-Z][0-9]{4}")
CDT_PATTERN = re.compile(r"D[0-9]{4}")
MODIFIER_PATTERN = re.compile(r"[A-Z0-9]{2}")

ICD10_MIN_LENGTH = 3
ICD10_MAX_LENGTH = 7
ICD10_PRECISE_DECIMALS = 2

DATA_PATH = Path(__file__).parent.parent / "data"


class CodeFormatResult(BaseModel):
    """Result of a syntactic code check."""

    code: str
    family: CodeFamily
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# =============================================================================
# Predicates
# =============================================================================


def is_valid_cpt(code: Optional[str]) -> bool:
    """CPT codes are exactly five digits."""
    return bool(code) and CPT_PATTERN.fullmatch(code) is not None


def is_valid_icd10(code: Optional[str]) -> bool:
    """ICD-10-CM: letter, 2-3 digits, optional decimal with 1-4 digits, 3-7 characters."""
    if not code or not ICD10_MIN_LENGTH <= len(code) <= ICD10_MAX_LENGTH:
        return False
    return ICD10_PATTERN.fullmatch(code) is not None


def is_valid_hcpcs(code: Optional[str]) -> bool:
    """HCPCS Level II: one letter followed by four digits."""
    return bool(code) and HCPCS_PATTERN.fullmatch(code) is not None


def is_valid_cdt(code: Optional[str]) -> bool:
    """CDT: 'D' followed by four digits."""
    return bool(code) and CDT_PATTERN.fullmatch(code) is not None


def is_valid_modifier(modifier: Optional[str]) -> bool:
    """Modifiers are exactly two alphanumeric characters."""
    return bool(modifier) and MODIFIER_PATTERN.fullmatch(modifier) is not None


# =============================================================================
# Detailed validation
# =============================================================================


def _cpt_complaints(code: str) -> list[str]:
    errors = []
    if len(code) != 5:
        errors.append("CPT code must be exactly 5 digits")
    if not (code.isascii() and code.isdigit()):
        errors.append("CPT code must contain only digits (0-9)")
    return errors


def _icd10_complaints(code: str) -> tuple[list[str], list[str]]:
    errors: list[str] = []
    warnings: list[str] = []

    if len(code) < ICD10_MIN_LENGTH:
        errors.append("ICD-10 code must be at least 3 characters")
    elif len(code) > ICD10_MAX_LENGTH:
        errors.append("ICD-10 code must be no more than 7 characters")

    if not re.match(r"[A-Z][0-9]{2}", code):
        errors.append("ICD-10 code must start with a letter (A-Z) followed by 2 digits")

    if "." in code:
        parts = code.split(".")
        if len(parts) != 2:
            errors.append("ICD-10 code can have only one decimal point")
        elif len(parts[1]) == 0:
            errors.append("ICD-10 code decimal portion cannot be empty")
        elif len(parts[1]) > 4:
            errors.append("ICD-10 code decimal portion cannot exceed 4 digits")
        elif len(parts[1]) > ICD10_PRECISE_DECIMALS:
            warnings.append(
                f"ICD-10 code has {len(parts[1])} digits after the decimal; "
                "verify the extension is intended"
            )

    if not errors and ICD10_PATTERN.fullmatch(code) is None:
        errors.append("ICD-10 code format invalid: letter + 2-3 digits + optional decimal + 1-4 digits")

    return errors, warnings


def validate_code(code: Optional[str], family: CodeFamily) -> CodeFormatResult:
    """
    Check the structural shape of a medical code.

    Args:
        code: Candidate code (not normalized)
        family: Code family to check against

    Returns:
        CodeFormatResult; never raises for malformed input
    """
    code = code or ""
    errors: list[str] = []
    warnings: list[str] = []

    if not code:
        errors.append(f"{family.value.upper()} code is required")
    elif family == CodeFamily.CPT:
        errors = _cpt_complaints(code)
    elif family == CodeFamily.ICD10:
        errors, warnings = _icd10_complaints(code)
    elif family == CodeFamily.HCPCS:
        if not is_valid_hcpcs(code):
            errors.append("HCPCS code must start with a letter (A-Z) followed by 4 digits")
    elif family == CodeFamily.CDT:
        if not is_valid_cdt(code):
            errors.append("CDT code must start with D followed by 4 digits")

    return CodeFormatResult(
        code=code,
        family=family,
        valid=not errors,
        errors=errors,
        warnings=warnings,
    )


# =============================================================================
# Reference sets
# =============================================================================


class CodeReference:
    """
    Known-code lookup backed by JSON reference files.

    A well-formed code missing from the reference set is provisionally
    accepted by callers; this class only answers "do we recognize it".
    """

    REFERENCE_FILES = {
        CodeFamily.CPT: "cpt_codes.json",
        CodeFamily.ICD10: "icd10_cm.json",
    }

    def __init__(self, data_path: Optional[Path] = None):
        self.data_path = data_path or DATA_PATH
        self._codes: dict[CodeFamily, dict[str, dict]] = {}
        self._load()

    def _load(self) -> None:
        for family, filename in self.REFERENCE_FILES.items():
            file_path = self.data_path / filename
            if not file_path.exists():
                logger.warning(f"Code reference file missing: {file_path}")
                self._codes[family] = {}
                continue
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    self._codes[family] = json.load(f).get("codes", {})
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Could not load code reference {file_path}: {e}")
                self._codes[family] = {}

    def is_known(self, code: str, family: CodeFamily) -> bool:
        """Check whether a code is in the reference set."""
        return code in self._codes.get(family, {})

    def describe(self, code: str, family: CodeFamily) -> Optional[str]:
        """Get the reference description for a code."""
        entry = self._codes.get(family, {}).get(code)
        return entry.get("description") if entry else None

    def count(self, family: CodeFamily) -> int:
        return len(self._codes.get(family, {}))
