import pytest
from pydantic import ValidationError

from models import (
    ActivateLicenseResponse,
    LicenseState,
    LicenseStatus,
    Metrics,
    VPNStatusResponse,
    normalize_license_status,
)


class TestLicenseStatusNormalization:
    """Every backend spelling maps onto the closed variant."""

    @pytest.mark.parametrize("raw", ["Licensed", "licensed", "已授權", "valid", "active", True])
    def test_licensed_spellings(self, raw):
        assert normalize_license_status(raw) is LicenseStatus.LICENSED

    @pytest.mark.parametrize("raw", ["Unlicensed", "未授權", "invalid", "expired", False])
    def test_unlicensed_spellings(self, raw):
        assert normalize_license_status(raw) is LicenseStatus.UNLICENSED

    @pytest.mark.parametrize("raw", ["maybe", None, 1, ""])
    def test_unknown_values_are_rejected(self, raw):
        with pytest.raises(ValueError):
            normalize_license_status(raw)


class TestLicenseState:
    def test_unlicensed_has_no_details(self):
        state = LicenseState.unlicensed()
        assert state.status is LicenseStatus.UNLICENSED
        assert state.issuedTo is None
        assert state.expiresIn is None
        assert not state.is_licensed

    def test_licensed_info_keeps_fields(self):
        state = LicenseState.model_validate({"status": "已授權", "issuedTo": "bob", "expiresIn": "10d"})
        assert state.status is LicenseStatus.LICENSED
        assert state.issuedTo == "bob"
        assert state.expiresIn == "10d"

    def test_unlicensed_drops_holder_details(self):
        state = LicenseState.model_validate({"status": "未授權", "issuedTo": "bob", "expiresIn": "10d"})
        assert state.status is LicenseStatus.UNLICENSED
        assert state.issuedTo is None
        assert state.expiresIn is None

    def test_bare_boolean_is_accepted(self):
        assert LicenseState.model_validate(True).is_licensed
        assert not LicenseState.model_validate(False).is_licensed

    def test_missing_status_is_invalid(self):
        with pytest.raises(ValidationError):
            LicenseState.model_validate({"issuedTo": "bob"})

    def test_state_is_immutable(self):
        state = LicenseState.unlicensed()
        with pytest.raises(ValidationError):
            state.status = LicenseStatus.LICENSED


class TestMetrics:
    def test_legacy_uptime_key(self):
        metrics = Metrics.model_validate({"bytesReceived": 1, "bytesSent": 2, "uptime": 3})
        assert metrics.uptimeSeconds == 3
        assert metrics.model_dump() == {"bytesReceived": 1, "bytesSent": 2, "uptimeSeconds": 3}

    def test_negative_counters_are_invalid(self):
        with pytest.raises(ValidationError):
            Metrics(bytesReceived=-1, bytesSent=0, uptimeSeconds=0)


def test_status_response_without_stats_keeps_them_absent():
    status = VPNStatusResponse.model_validate({"connected": True})
    assert status.stats is None


def test_activation_response_nests_license_info():
    response = ActivateLicenseResponse.model_validate(
        {"success": True, "info": {"status": "Licensed", "issuedTo": "alice", "expiresIn": "30d"}}
    )
    assert response.info.is_licensed
    assert response.error is None
