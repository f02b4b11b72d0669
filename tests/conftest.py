"""
Shared fixtures.

The diagnostics database is pointed at a throwaway SQLite file before any
project module is imported, since ``database`` binds its engine at import.
"""

import os
import tempfile

_TEST_DB_DIR = tempfile.mkdtemp(prefix="vpn-client-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'attempts.db')}"
os.environ.setdefault("BACKEND_API_URL", "http://backend.test")

from unittest.mock import AsyncMock, MagicMock

import pytest

from connection_controller import ConnectionController
from database import OperationAttempt, SessionLocal
from error_surface import ErrorSurface
from license_controller import LicenseController
from models import LicenseState, Metrics


LICENSED_INFO = {"status": "Licensed", "issuedTo": "alice", "expiresIn": "30d"}
METRICS = Metrics(bytesReceived=2048, bytesSent=1024, uptimeSeconds=42)


@pytest.fixture
def licensed_info():
    return LicenseState.model_validate(LICENSED_INFO)


@pytest.fixture
def gateway():
    gw = MagicMock()
    gw.base_url = "http://backend.test"
    gw.activate_license = AsyncMock()
    gw.get_license_info = AsyncMock()
    gw.connect_vpn = AsyncMock()
    gw.disconnect_vpn = AsyncMock()
    gw.get_vpn_status = AsyncMock()
    return gw


@pytest.fixture
def errors():
    return ErrorSurface()


@pytest.fixture
def license_controller(gateway, errors):
    return LicenseController(gateway, errors)


@pytest.fixture
def connection(gateway, errors):
    return ConnectionController(gateway, errors)


@pytest.fixture
def clean_attempts():
    db = SessionLocal()
    try:
        db.query(OperationAttempt).delete()
        db.commit()
    finally:
        db.close()
    yield
