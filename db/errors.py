"""
db/errors.py
------------
The single error type raised by the database layer.

Callers see one flat error whose message is the driver's own text.
The failure stage is kept on `kind` so it can be inspected without
parsing that text.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Stage at which a database operation failed."""
    CONNECTION = "connection"
    PREPARE = "prepare"
    EXECUTE = "execute"


class DatabaseOperationError(Exception):
    """
    Raised for any failure from the underlying driver.

    Attributes:
        message: The original driver message, verbatim.
        kind: The stage that failed (connect, prepare or execute).
    """

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.EXECUTE):
        super().__init__(message)
        self.message = message
        self.kind = kind

    @classmethod
    def wrap(cls, error: BaseException, kind: ErrorKind) -> "DatabaseOperationError":
        """Build an error from a caught exception, keeping only its message."""
        return cls(driver_message(error), kind)

    def __str__(self) -> str:
        return self.message


def driver_message(error: BaseException) -> str:
    """
    Extract the human-readable text from a driver exception.

    PyMySQL errors carry ``(code, message)`` in ``args``; the message is
    the second element. Anything else falls back to ``str(error)``.
    """
    args = getattr(error, "args", ())
    if len(args) == 2 and isinstance(args[0], int) and isinstance(args[1], str):
        return args[1]
    return str(error)
