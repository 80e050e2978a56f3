"""Operation result dataclass.

Every DynamoDB and Bot API call returns an OperationResult instead of
raising, so that the stores and the delivery pipeline can tell the outcomes
they handle themselves (a failed write condition, an unreachable chat) from
outages that should be retried or surfaced.
"""

from typing import Optional, Any
from dataclasses import dataclass

from infrastructure.operations.status import OperationStatus


@dataclass
class OperationResult:
    """Outcome of one integration call.

    Attributes:
        status: High-level outcome
        message: Human-friendly message for logs
        data: Response payload on success (raw DynamoDB response, Bot API result)
        error_code: Machine error code (RATE_LIMITED, FORBIDDEN, ...)
        retry_after: Seconds to wait before retrying, when the service said so
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    @property
    def is_transient(self) -> bool:
        """True if the same call may succeed when retried."""
        return self.status == OperationStatus.TRANSIENT_ERROR

    @property
    def is_conflict(self) -> bool:
        """True if a conditional write found the row in an unexpected state."""
        return self.status == OperationStatus.CONFLICT

    @property
    def is_forbidden(self) -> bool:
        """True if the Bot API refused to reach the chat (blocked, kicked)."""
        return (
            self.status == OperationStatus.UNAUTHORIZED
            and self.error_code == "FORBIDDEN"
        )

    @classmethod
    def success(
        cls, data: Optional[Any] = None, message: str = "ok"
    ) -> "OperationResult":
        return cls(status=OperationStatus.SUCCESS, message=message, data=data)

    @classmethod
    def error(
        cls,
        status: OperationStatus,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
        data: Optional[Any] = None,
    ) -> "OperationResult":
        return cls(
            status=status,
            message=message,
            error_code=error_code,
            retry_after=retry_after,
            data=data,
        )

    @classmethod
    def transient_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
    ) -> "OperationResult":
        """Network failures, throttling, 5xx answers."""
        return cls.error(
            OperationStatus.TRANSIENT_ERROR, message, error_code, retry_after
        )

    @classmethod
    def permanent_error(
        cls, message: str, error_code: Optional[str] = None
    ) -> "OperationResult":
        """Malformed requests: retrying the same call cannot succeed."""
        return cls.error(OperationStatus.PERMANENT_ERROR, message, error_code)

    @classmethod
    def conflict(
        cls, message: str, error_code: Optional[str] = None
    ) -> "OperationResult":
        return cls.error(OperationStatus.CONFLICT, message, error_code)
