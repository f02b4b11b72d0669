from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, model_validator

from errors import ErrorCategory, Slot

class LicenseStatus(str, Enum):
    UNLICENSED = "Unlicensed"
    LICENSED = "Licensed"

class ConnectionPhase(str, Enum):
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"
    DISCONNECTING = "Disconnecting"

# Every spelling the backend has used for license status, lower-cased.
_LICENSED_MARKERS = {"licensed", "已授權", "valid", "active", "true"}
_UNLICENSED_MARKERS = {"unlicensed", "未授權", "invalid", "expired", "false", "no_license"}

def normalize_license_status(raw: Any) -> LicenseStatus:
    """
    Map a raw backend status value onto the closed license variant.
    Unknown values are rejected rather than guessed.
    """
    if isinstance(raw, LicenseStatus):
        return raw
    if isinstance(raw, bool):
        return LicenseStatus.LICENSED if raw else LicenseStatus.UNLICENSED
    if isinstance(raw, str):
        marker = raw.strip().lower()
        if marker in _LICENSED_MARKERS:
            return LicenseStatus.LICENSED
        if marker in _UNLICENSED_MARKERS:
            return LicenseStatus.UNLICENSED
    raise ValueError(f"unrecognized license status: {raw!r}")

# State slots

class LicenseState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: LicenseStatus
    issuedTo: Optional[str] = None
    expiresIn: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if isinstance(data, (bool, str)):
            data = {"status": data}
        if not isinstance(data, dict):
            return data

        if "status" not in data:
            return data
        data = dict(data)
        data["status"] = normalize_license_status(data["status"])
        if data["status"] is LicenseStatus.UNLICENSED:
            data.pop("issuedTo", None)
            data.pop("expiresIn", None)
        return data

    @classmethod
    def unlicensed(cls) -> "LicenseState":
        return cls(status=LicenseStatus.UNLICENSED)

    @property
    def is_licensed(self) -> bool:
        return self.status is LicenseStatus.LICENSED

class Metrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    bytesReceived: int = Field(ge=0)
    bytesSent: int = Field(ge=0)
    uptimeSeconds: int = Field(ge=0, validation_alias=AliasChoices("uptimeSeconds", "uptime"))

class Endpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    serverIP: str
    port: int

class ConnectionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: ConnectionPhase = ConnectionPhase.DISCONNECTED
    endpoint: Optional[Endpoint] = None
    metrics: Optional[Metrics] = None

class ErrorState(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    slot: Slot
    category: ErrorCategory

# Backend wire shapes

class ActivateLicenseResponse(BaseModel):
    success: bool
    info: Optional[LicenseState] = None
    error: Optional[str] = None

class ConnectVPNResponse(BaseModel):
    success: bool
    stats: Optional[Metrics] = None
    error: Optional[str] = None

class DisconnectVPNResponse(BaseModel):
    success: bool
    error: Optional[str] = None

class VPNStatusResponse(BaseModel):
    connected: bool
    stats: Optional[Metrics] = None

# Input forms

class ConnectionForm(BaseModel):
    serverIP: str = ""
    port: str = ""
    password: SecretStr = SecretStr("")

# Derived view

class ConnectionView(BaseModel):
    """
    Connection section of the view. ``endpoint`` is None for a tunnel
    adopted at mount time, since the backend status reports none.
    """
    phase: ConnectionPhase
    endpoint: Optional[Endpoint] = None
    metrics: Optional[Metrics] = None
    serverIP: str = ""
    port: str = ""
    canConnect: bool
    canDisconnect: bool

class ViewSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    license: LicenseState
    licenseKeyInput: str = ""
    showActivation: bool
    connection: Optional[ConnectionView] = None
    error: Optional[ErrorState] = None

# Local API

class LicenseActivationRequest(BaseModel):
    licenseKey: str

class ConnectRequest(BaseModel):
    serverIP: str
    port: Union[int, str]
    password: SecretStr

class ActionResponse(BaseModel):
    success: bool
    outcome: str
    view: ViewSnapshot

class DismissResponse(BaseModel):
    success: bool
    view: ViewSnapshot

class AttemptRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    operation: str
    slot: str
    result: str
    category: Optional[str] = None
    error_message: Optional[str] = None
    attempted_at: datetime

class AttemptListResponse(BaseModel):
    attempts: List[AttemptRecord]

class HealthCheckResponse(BaseModel):
    status: str
    service: str
    version: str
    backendUrl: str
    mounted: bool
