from enum import Enum
from typing import NamedTuple

class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    TRANSPORT = "transport"
    DOMAIN = "domain"

class Slot(str, Enum):
    LICENSE = "license"
    CONNECTION = "connection"

class ErrorKind(NamedTuple):
    slot: Slot
    category: ErrorCategory

class OrchestrationError(Exception):
    """
    Failure raised before a result can be applied. Domain failures are not
    raised: they come back as ``success: false`` results.
    """
    category: ErrorCategory = ErrorCategory.TRANSPORT

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class InputValidationError(OrchestrationError):
    category = ErrorCategory.VALIDATION

class TransportError(OrchestrationError):
    category = ErrorCategory.TRANSPORT
