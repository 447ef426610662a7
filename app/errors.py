"""Error types raised by the Roaster's Choice handler and services."""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    AUTH = "auth"
    METHOD = "method"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    VENDOR = "vendor"
    CONFIG = "config"
    INTERNAL = "internal"


STATUS_BY_KIND = {
    ErrorKind.AUTH: 401,
    ErrorKind.METHOD: 405,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VENDOR: 500,
    ErrorKind.CONFIG: 500,
    ErrorKind.INTERNAL: 500,
}


class RoastersChoiceError(Exception):
    """
    Failure with a kind and a structured detail payload.

    The kind decides the HTTP status. For conflicts the detail keys are
    returned to the caller next to the message (e.g. ``order_name`` or
    ``size``/``grind``); vendor detail stays server side.
    """

    def __init__(self, kind: ErrorKind, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.detail = detail or {}

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.kind == ErrorKind.CONFLICT:
            for key, value in self.detail.items():
                body.setdefault(key, value)
        return body

    def __repr__(self) -> str:
        return f"RoastersChoiceError({self.kind.value!r}, {self.message!r})"


def vendor_error(message: str, **detail: Any) -> RoastersChoiceError:
    return RoastersChoiceError(ErrorKind.VENDOR, message, detail)


def conflict(message: str, **detail: Any) -> RoastersChoiceError:
    return RoastersChoiceError(ErrorKind.CONFLICT, message, detail)
