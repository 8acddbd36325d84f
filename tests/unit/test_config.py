"""
Unit tests for settings loading.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from claimscrub.core.config import ClaimsSettings


class TestClaimsSettings:
    """Tests for ClaimsSettings defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CLAIMS_ENVIRONMENT", raising=False)
        settings = ClaimsSettings(_env_file=None)

        assert settings.DEFAULT_TIMELY_FILING_DAYS == 365
        assert settings.LOOKUP_TIMEOUT_SECONDS == 5.0
        assert settings.HIGH_COST_PROCEDURE_THRESHOLD == Decimal("1000")
        assert settings.CLAIM_NUMBER_PREFIX == "CLM"
        assert settings.auth_required_procedures_list == ["27447", "27130", "29881", "29882"]

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("CLAIMS_DEFAULT_TIMELY_FILING_DAYS", "180")
        monkeypatch.setenv("CLAIMS_AUTH_REQUIRED_PROCEDURES", "27447, 99215 ,")

        settings = ClaimsSettings(_env_file=None)

        assert settings.DEFAULT_TIMELY_FILING_DAYS == 180
        assert settings.auth_required_procedures_list == ["27447", "99215"]

    def test_log_level_normalized(self):
        assert ClaimsSettings(_env_file=None, LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            ClaimsSettings(_env_file=None, LOG_LEVEL="LOUD")

    def test_invalid_history_weight(self):
        with pytest.raises(ValidationError):
            ClaimsSettings(_env_file=None, DENIAL_HISTORY_WEIGHT=1.5)

    def test_environment_flags(self):
        settings = ClaimsSettings(_env_file=None, ENVIRONMENT="testing")

        assert settings.is_testing is True
        assert settings.is_production is False
