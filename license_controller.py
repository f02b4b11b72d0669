import logging
from typing import Optional

from database import AttemptLog
from error_surface import ErrorSurface
from errors import ErrorCategory, ErrorKind, OrchestrationError, Slot, TransportError
from gateway import BackendGateway
from models import LicenseState
from tokens import Outcome, RequestSequencer

logger = logging.getLogger(__name__)

class LicenseController:
    """
    Owns the license slot and drives activation.

    The slot only ever holds what the backend returned: a successful
    activation or refresh replaces it wholesale, failures leave it alone.
    """

    def __init__(self, gateway: BackendGateway, errors: ErrorSurface,
                 attempt_log: Optional[AttemptLog] = None):
        self.gateway = gateway
        self.errors = errors
        self.attempt_log = attempt_log
        self.sequencer = RequestSequencer(Slot.LICENSE.value)
        self.state = LicenseState.unlicensed()
        self.key_input = ""

    @property
    def is_licensed(self) -> bool:
        return self.state.is_licensed

    async def activate(self, key: str) -> Outcome:
        """
        Activate ``key`` with the backend. Re-activation while already
        licensed is allowed and simply overwrites the slot.
        """
        self.key_input = key
        if not key or not key.strip():
            return self._reject("activate", "license key is required")

        token = self.sequencer.issue()
        try:
            response = await self.gateway.activate_license(key.strip())
        except TransportError as e:
            return self._fail("activate", token, e)

        if not self.sequencer.is_current(token):
            return self._discard("activate", token)

        if not response.success or response.info is None:
            reason = response.error or "no license information returned"
            self.errors.report(
                ErrorKind(Slot.LICENSE, ErrorCategory.DOMAIN),
                f"activation rejected: {reason}"
            )
            self._log_attempt("activate", "failed", ErrorCategory.DOMAIN, reason)
            return Outcome.FAILED

        self._apply(token, response.info)
        self.key_input = ""
        self.errors.clear_for(Slot.LICENSE)
        self._log_attempt("activate", "success")
        return Outcome.APPLIED

    async def refresh(self) -> Outcome:
        """
        Re-read license info. A failed refresh never demotes an already
        licensed slot to unlicensed.
        """
        if self.sequencer.closed:
            return Outcome.SKIPPED

        token = self.sequencer.issue()
        try:
            info = await self.gateway.get_license_info()
        except TransportError as e:
            return self._fail("refresh", token, e, record=False)

        if not self.sequencer.is_current(token):
            return self._discard("refresh", token)

        self._apply(token, info)
        self.errors.clear_for(Slot.LICENSE, [ErrorCategory.TRANSPORT])
        return Outcome.APPLIED

    def release(self) -> None:
        self.sequencer.close()

    def _apply(self, token: int, info: LicenseState) -> None:
        self.sequencer.mark_applied(token)
        if info != self.state:
            logger.info("License status is now %s", info.status.value)
        self.state = info

    def _reject(self, operation: str, message: str) -> Outcome:
        self.errors.report(ErrorKind(Slot.LICENSE, ErrorCategory.VALIDATION), message)
        self._log_attempt(operation, "rejected", ErrorCategory.VALIDATION, message)
        return Outcome.REJECTED

    def _fail(self, operation: str, token: int, error: OrchestrationError,
              record: bool = True) -> Outcome:
        if not self.sequencer.is_current(token):
            return self._discard(operation, token)
        self.errors.report(ErrorKind(Slot.LICENSE, error.category), error.message)
        if record:
            self._log_attempt(operation, "failed", error.category, error.message)
        return Outcome.FAILED

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
            slot=Slot.LICENSE.value,
            result=result,
            category=category.value if category else None,
            error_message=error_message
        )
