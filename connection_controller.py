import logging
from typing import Callable, Optional, Union

from pydantic import SecretStr

from database import AttemptLog
from error_surface import ErrorSurface
from errors import ErrorCategory, ErrorKind, InputValidationError, Slot, TransportError
from gateway import BackendGateway
from models import ConnectionForm, ConnectionPhase, ConnectionState, Endpoint, VPNStatusResponse
from tokens import Outcome, RequestSequencer

logger = logging.getLogger(__name__)

MIN_PORT = 1
MAX_PORT = 65535

def parse_port(port: Union[int, str, None]) -> int:
    if isinstance(port, bool):
        raise InputValidationError("port must be an integer between 1 and 65535")
    if isinstance(port, str):
        text = port.strip()
        if not (text.isascii() and text.isdigit()):
            raise InputValidationError("port must be an integer between 1 and 65535")
        port = int(text)
    if not isinstance(port, int) or not MIN_PORT <= port <= MAX_PORT:
        raise InputValidationError("port must be an integer between 1 and 65535")
    return port

class ConnectionController:
    """
    Owns the connection state machine:

        Disconnected -> Connecting -> Connected -> Disconnecting -> Disconnected
                        Connecting -> Disconnected (on failure)
        Disconnected -> Connected (mount-time sync adopts an open tunnel)

    User actions move the slot locally before the remote call and record
    their token as applied, so a status poll issued earlier can never
    overwrite them. Polls only corroborate; they never change the phase.
    """

    def __init__(self, gateway: BackendGateway, errors: ErrorSurface,
                 license_gate: Callable[[], bool] = lambda: True,
                 attempt_log: Optional[AttemptLog] = None):
        self.gateway = gateway
        self.errors = errors
        self.license_gate = license_gate
        self.attempt_log = attempt_log
        self.sequencer = RequestSequencer(Slot.CONNECTION.value)
        self.state = ConnectionState()
        self.form = ConnectionForm()

    @property
    def phase(self) -> ConnectionPhase:
        return self.state.phase

    @property
    def can_connect(self) -> bool:
        return self.phase is ConnectionPhase.DISCONNECTED and self.license_gate()

    @property
    def can_disconnect(self) -> bool:
        return self.phase is ConnectionPhase.CONNECTED

    async def connect(self, server_ip: str, port: Union[int, str], password: Union[str, SecretStr]) -> Outcome:
        secret = password if isinstance(password, SecretStr) else SecretStr(password or "")
        self.form = ConnectionForm(
            serverIP=server_ip or "",
            port="" if port is None else str(port),
            password=secret
        )
        try:
            try:
                endpoint = self._validate_connect(server_ip, port, secret)
            except InputValidationError as e:
                return self._reject("connect", e)

            token = self.sequencer.issue()
            self.sequencer.mark_applied(token)
            self.state = ConnectionState(phase=ConnectionPhase.CONNECTING, endpoint=endpoint)
            logger.info("Connecting to %s:%d", endpoint.serverIP, endpoint.port)

            try:
                response = await self.gateway.connect_vpn(endpoint.serverIP, endpoint.port, secret)
            except TransportError as e:
                return self._connect_failed(token, e.category, e.message)

            if not self.sequencer.is_current(token):
                return self._discard("connect", token)
            if not response.success:
                return self._connect_failed(token, ErrorCategory.DOMAIN, response.error or "connection failed")

            self.state = ConnectionState(
                phase=ConnectionPhase.CONNECTED,
                endpoint=endpoint,
                metrics=response.stats
            )
            self.errors.clear_for(Slot.CONNECTION)
            self._log_attempt("connect", "success")
            logger.info("Connected to %s:%d", endpoint.serverIP, endpoint.port)
            return Outcome.APPLIED
        finally:
            self.form = self.form.model_copy(update={"password": SecretStr("")})

    async def disconnect(self) -> Outcome:
        """
        Close the tunnel. Whatever the backend answers, the slot ends up
        Disconnected; a failure is still surfaced for diagnostics.
        """
        if self.phase is not ConnectionPhase.CONNECTED:
            return self._reject("disconnect", InputValidationError("not connected"))

        token = self.sequencer.issue()
        self.sequencer.mark_applied(token)
        self.state = self.state.model_copy(update={"phase": ConnectionPhase.DISCONNECTING, "metrics": None})

        failure = None
        try:
            response = await self.gateway.disconnect_vpn()
        except TransportError as e:
            failure = (e.category, e.message)
        else:
            if not response.success:
                failure = (ErrorCategory.DOMAIN, response.error or "disconnect failed")

        if not self.sequencer.is_current(token):
            return self._discard("disconnect", token)

        self.state = ConnectionState()
        logger.info("Disconnected")
        if failure is not None:
            category, message = failure
            self.errors.report(ErrorKind(Slot.CONNECTION, category), message)
            self._log_attempt("disconnect", "failed", category, message)
            return Outcome.FAILED

        self.errors.clear_for(Slot.CONNECTION)
        self._log_attempt("disconnect", "success")
        return Outcome.APPLIED

    async def refresh(self) -> Outcome:
        """Poll live metrics. Skipped entirely unless Connected."""
        if self.sequencer.closed or self.phase is not ConnectionPhase.CONNECTED:
            return Outcome.SKIPPED

        token = self.sequencer.issue()
        status = await self._query_status("refresh", token, record=False)
        if not isinstance(status, VPNStatusResponse):
            return status

        self.sequencer.mark_applied(token)
        if not status.connected:
            logger.warning("Backend reports no active tunnel while the client is connected")
            return Outcome.APPLIED

        if status.stats is not None:
            self.state = self.state.model_copy(update={"metrics": status.stats})
        self.errors.clear_for(Slot.CONNECTION, [ErrorCategory.TRANSPORT])
        return Outcome.APPLIED

    async def sync(self) -> Outcome:
        """
        Authoritative status check at mount time. Adopts a tunnel the
        backend already has open so a second connect is not issued.
        """
        if self.sequencer.closed:
            return Outcome.SKIPPED

        token = self.sequencer.issue()
        status = await self._query_status("sync", token)
        if not isinstance(status, VPNStatusResponse):
            return status

        self.sequencer.mark_applied(token)
        if status.connected and self.phase is ConnectionPhase.DISCONNECTED:
            self.state = ConnectionState(phase=ConnectionPhase.CONNECTED, metrics=status.stats)
            logger.info("Adopted a tunnel that was already open in the backend")
        return Outcome.APPLIED

    def release(self) -> None:
        self.sequencer.close()

    async def _query_status(self, operation: str, token: int,
                            record: bool = True) -> Union[VPNStatusResponse, Outcome]:
        try:
            status = await self.gateway.get_vpn_status()
        except TransportError as e:
            if not self.sequencer.is_current(token):
                return self._discard(operation, token)
            self.errors.report(ErrorKind(Slot.CONNECTION, e.category), e.message)
            if record:
                self._log_attempt(operation, "failed", e.category, e.message)
            return Outcome.FAILED

        if not self.sequencer.is_current(token):
            return self._discard(operation, token)
        return status

    def _validate_connect(self, server_ip: str, port: Union[int, str], password: SecretStr) -> Endpoint:
        if self.phase is not ConnectionPhase.DISCONNECTED:
            raise InputValidationError(f"cannot connect while {self.phase.value.lower()}")
        if not self.license_gate():
            raise InputValidationError("activate a license first")
        if not server_ip or not server_ip.strip():
            raise InputValidationError("server IP is required")
        port_number = parse_port(port)
        if not password.get_secret_value():
            raise InputValidationError("password is required")
        return Endpoint(serverIP=server_ip.strip(), port=port_number)

    def _connect_failed(self, token: int, category: ErrorCategory, message: str) -> Outcome:
        if not self.sequencer.is_current(token):
            return self._discard("connect", token)
        self.state = ConnectionState()
        self.errors.report(ErrorKind(Slot.CONNECTION, category), message)
        self._log_attempt("connect", "failed", category, message)
        return Outcome.FAILED

    def _reject(self, operation: str, error: InputValidationError) -> Outcome:
        self.errors.report(ErrorKind(Slot.CONNECTION, error.category), error.message)
        self._log_attempt(operation, "rejected", error.category, error.message)
        return Outcome.REJECTED

    def _discard(self, operation: str, token: int) -> Outcome:
        logger.debug(
            "Discarding stale %s response (token %d, last applied %d)",
            operation, token, self.sequencer.last_applied
        )
        return Outcome.DISCARDED

    def _log_attempt(self, operation: str, result: str,
                     category: Optional[ErrorCategory] = None, error_message: Optional[str] = None):
        if self.attempt_log is None:
            return
        self.attempt_log.record(
            operation=operation,
            slot=Slot.CONNECTION.value,
            result=result,
            category=category.value if category else None,
            error_message=error_message
        )
