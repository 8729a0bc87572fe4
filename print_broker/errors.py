"""
Print Broker Errors
===================

Every error raised inside the dispatch pipeline carries a result code.
JobDispatcher converts them into a JobResult; none reach the HTTP caller.
"""

INVALID_REQUEST = 'invalid_request'
NO_PRINTERS_AVAILABLE = 'no_printers_available'
PRINTER_UNAVAILABLE = 'printer_unavailable'
PRINT_FAILED = 'print_failed'
NOT_IMPLEMENTED = 'not_implemented'


class PrintBrokerError(Exception):
    """Base class for pipeline errors."""

    code = PRINT_FAILED

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(PrintBrokerError):
    """Malformed or missing request fields."""

    code = INVALID_REQUEST


class AvailabilityError(PrintBrokerError):
    """No printers known, or the requested printer is not in the live set."""

    code = PRINTER_UNAVAILABLE


class ExecutionError(PrintBrokerError):
    """Device invocation failed, or the job kind has no executor."""

    code = PRINT_FAILED


class PrinterError(ExecutionError):
    """Raised by device providers when a printer cannot accept a job."""


class StorageError(Exception):
    """Persistent store could not be read or written."""


class CleanupWarning(UserWarning):
    """Artifact or id cleanup hit an unexpected condition. Logged only."""
