from enum import Enum

class Outcome(str, Enum):
    APPLIED = "applied"
    REJECTED = "rejected"
    FAILED = "failed"
    DISCARDED = "discarded"
    SKIPPED = "skipped"

class RequestSequencer:
    def __init__(self, name: str):
        self.name = name
        self._issued = 0
        self._applied = 0
        self._closed = False

    @property
    def last_issued(self) -> int:
        return self._issued

    @property
    def last_applied(self) -> int:
        return self._applied

    @property
    def closed(self) -> bool:
        return self._closed

    def issue(self) -> int:
        self._issued += 1
        return self._issued

    def is_current(self, token: int) -> bool:
        """True if a response carrying ``token`` may still be applied."""
        if self._closed:
            return False
        return token >= self._applied

    def mark_applied(self, token: int) -> None:
        if token > self._applied:
            self._applied = token

    def close(self) -> None:
        """Reject every response from now on. Safe to call repeatedly."""
        self._closed = True
