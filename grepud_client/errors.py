"""
Failure taxonomy shared by the gateway and the workflows.

The gateway raises ``Unreachable`` / ``Rejected``. AuthFlow and OrderWorkflow
catch them at their boundary and hand a ``Result`` back to the caller, so a
failed submission is always something the caller can display.
"""

import enum
from dataclasses import dataclass
from typing import Any, Optional
from pydantic import ValidationError

UNREACHABLE_MESSAGE = "Cannot reach server."


class ErrorKind(enum.Enum):
    UNREACHABLE = "UNREACHABLE"
    REJECTED = "REJECTED"
    INVALID = "INVALID"


class GatewayError(Exception):
    kind: ErrorKind

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class Unreachable(GatewayError):
    kind = ErrorKind.UNREACHABLE

    def __init__(self, message: str = UNREACHABLE_MESSAGE):
        super().__init__(message)


class Rejected(GatewayError):
    kind = ErrorKind.REJECTED

    def __init__(self, status: int, server_message: Optional[str] = None):
        super().__init__(server_message or f"Request failed with status {status}", status=status)
        self.server_message = server_message


@dataclass
class Failure:
    kind: ErrorKind
    message: str
    status: Optional[int] = None

    @property
    def is_unauthorized(self) -> bool:
        return self.kind is ErrorKind.REJECTED and self.status in (401, 403)

    @classmethod
    def from_error(cls, exc: GatewayError, fallback: str) -> "Failure":
        if isinstance(exc, Rejected):
            return cls(ErrorKind.REJECTED, exc.server_message or fallback, exc.status)
        return cls(exc.kind, UNREACHABLE_MESSAGE)

    @classmethod
    def from_validation(cls, exc: ValidationError) -> "Failure":
        first = exc.errors()[0]
        field_name = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{field_name}: {first['msg']}" if field_name else first["msg"]
        return cls(ErrorKind.INVALID, message)

    @classmethod
    def invalid(cls, message: str) -> "Failure":
        return cls(ErrorKind.INVALID, message)


@dataclass
class Result:
    value: Any = None
    failure: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(value=value)

    @classmethod
    def failed(cls, failure: Failure) -> "Result":
        return cls(failure=failure)
