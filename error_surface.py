import logging
from typing import Iterable, Optional

from errors import ErrorCategory, ErrorKind, Slot
from models import ErrorState

logger = logging.getLogger(__name__)

class ErrorSurface:
    """
    Single-slot holder for the one user-visible error message.
    The last report wins; there is no queue and no history.
    """

    def __init__(self):
        self._current: Optional[ErrorState] = None

    @property
    def current(self) -> Optional[ErrorState]:
        return self._current

    def report(self, kind: ErrorKind, message: str) -> None:
        self._current = ErrorState(message=message, slot=kind.slot, category=kind.category)
        logger.warning("%s %s error: %s", kind.slot.value, kind.category.value, message)

    def clear(self) -> None:
        """Explicit dismissal by the user."""
        self._current = None

    def clear_for(self, slot: Slot, categories: Optional[Iterable[ErrorCategory]] = None) -> None:
        """
        Clear the current error only if it belongs to ``slot`` and, when
        given, to one of ``categories``.
        """
        current = self._current
        if current is None or current.slot is not slot:
            return
        if categories is not None and current.category not in set(categories):
            return
        self._current = None
