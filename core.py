import logging
from typing import Optional

from connection_controller import ConnectionController
from database import AttemptLog
from error_surface import ErrorSurface
from gateway import BackendGateway
from license_controller import LicenseController
from models import ConnectionPhase, ConnectionView, ViewSnapshot
from scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

class OrchestrationCore:
    def __init__(self, gateway: Optional[BackendGateway] = None,
                 attempt_log: Optional[AttemptLog] = None,
                 scheduler: Optional[RefreshScheduler] = None):
        self.gateway = gateway or BackendGateway()
        self.errors = ErrorSurface()
        self.license = LicenseController(self.gateway, self.errors, attempt_log=attempt_log)
        self.connection = ConnectionController(
            self.gateway,
            self.errors,
            license_gate=lambda: self.license.is_licensed,
            attempt_log=attempt_log
        )
        self.scheduler = scheduler or RefreshScheduler(self.connection, self.license)
        self.mounted = False
        self.torn_down = False

    async def mount(self):
        """Seed both slots from the backend, then start refreshing."""
        if self.mounted or self.torn_down:
            return
        self.mounted = True
        await self.license.refresh()
        await self.connection.sync()
        if not self.torn_down:
            self.scheduler.start()
        logger.info("View mounted (license: %s, connection: %s)",
                    self.license.state.status.value, self.connection.phase.value)

    def teardown(self):
        """Stop refreshing and release both slots. Safe to call repeatedly."""
        if self.torn_down:
            return
        self.torn_down = True
        self.scheduler.stop()
        self.license.release()
        self.connection.release()
        logger.info("View torn down")

    def dismiss_error(self):
        self.errors.clear()

    def snapshot(self) -> ViewSnapshot:
        license_state = self.license.state
        connection_view = None
        if license_state.is_licensed:
            state = self.connection.state
            connection_view = ConnectionView(
                phase=state.phase,
                endpoint=state.endpoint,
                metrics=state.metrics if state.phase is ConnectionPhase.CONNECTED else None,
                serverIP=self.connection.form.serverIP,
                port=self.connection.form.port,
                canConnect=self.connection.can_connect,
                canDisconnect=self.connection.can_disconnect
            )

        return ViewSnapshot(
            license=license_state,
            licenseKeyInput=self.license.key_input,
            showActivation=not license_state.is_licensed,
            connection=connection_view,
            error=self.errors.current
        )
