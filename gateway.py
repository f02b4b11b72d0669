import logging
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, SecretStr, ValidationError

from config import settings
from errors import TransportError
from models import (
    ActivateLicenseResponse,
    ConnectVPNResponse,
    DisconnectVPNResponse,
    LicenseState,
    VPNStatusResponse,
)

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)

class BackendGateway:
    """
    Typed async wrappers around the backend's remote calls.

    Each call is a JSON POST to ``{base_url}/rpc/<callName>``. Anything that
    keeps a well-formed result from coming back (network failure, non-2xx
    status, malformed body) is raised as ``TransportError``; a
    ``success: false`` result is returned as-is for the caller to handle.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.BACKEND_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.BACKEND_API_TIMEOUT

    async def activate_license(self, key: str) -> ActivateLicenseResponse:
        return await self._call("activateLicense", {"key": key}, ActivateLicenseResponse)

    async def get_license_info(self) -> LicenseState:
        return await self._call("getLicenseInfo", {}, LicenseState)

    async def connect_vpn(self, server_ip: str, port: int, password: SecretStr) -> ConnectVPNResponse:
        payload = {
            "serverIP": server_ip,
            "port": port,
            "password": password.get_secret_value()
        }
        return await self._call("connectVPN", payload, ConnectVPNResponse)

    async def disconnect_vpn(self) -> DisconnectVPNResponse:
        return await self._call("disconnectVPN", {}, DisconnectVPNResponse)

    async def get_vpn_status(self) -> VPNStatusResponse:
        return await self._call("getVPNStatus", {}, VPNStatusResponse)

    async def _call(self, name: str, payload: Dict[str, Any], response_model: Type[ResponseT]) -> ResponseT:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/rpc/{name}",
                    json=payload,
                    headers={"Content-Type": "application/json"}
                )

                response.raise_for_status()
                data = response.json()

        except httpx.HTTPError as e:
            # Never log the payload, it may carry the password.
            logger.debug("Backend call %s failed: %s", name, type(e).__name__)
            raise TransportError(f"backend call {name} failed: {_describe_http_error(e)}") from e
        except ValueError as e:
            raise TransportError(f"backend call {name} returned invalid JSON") from e

        try:
            return response_model.model_validate(data)
        except ValidationError as e:
            raise TransportError(
                f"backend call {name} returned an unexpected response ({e.error_count()} invalid fields)"
            ) from e

def _describe_http_error(error: httpx.HTTPError) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP {error.response.status_code}"
    if isinstance(error, httpx.TimeoutException):
        return "timed out"
    if isinstance(error, httpx.ConnectError):
        return "backend unreachable"
    return type(error).__name__
