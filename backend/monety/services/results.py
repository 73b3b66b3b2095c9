from dataclasses import dataclass
from typing import Any


@dataclass
class OperationResult:
    """Outcome of a ledger operation.

    Expected failures (validation, scheduling, gateway) come back as
    ``success=False`` with a stable ``error_code`` and a user-facing
    ``error_message``; they are never raised.
    """

    success: bool
    data: Any = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error_code: str, error_message: str) -> "OperationResult":
        return cls(success=False, error_code=error_code, error_message=error_message)
