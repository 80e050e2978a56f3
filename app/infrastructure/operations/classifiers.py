"""Error classifiers for integration exceptions.

Converts provider-specific exceptions (AWS SDK, HTTP calls to the Telegram
Bot API) into standardized OperationResult objects so that every integration
reports failures the same way.

Key Functions:
- classify_aws_error(): AWS SDK errors → OperationResult
- classify_telegram_error(): Bot API error payloads and requests errors → OperationResult

Usage:
    from infrastructure.operations.classifiers import classify_aws_error

    try:
        response = client.put_item(TableName=table, Item=item)
    except ClientError as exc:
        return classify_aws_error(exc)
"""

from typing import Any, Optional

from botocore.exceptions import ClientError
import requests

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

AWS_THROTTLING_CODES = (
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "ProvisionedThroughputExceededException",
)


def classify_aws_error(exc: Exception) -> OperationResult:
    """Classify AWS SDK errors into OperationResult.

    Error Code Mapping:
    - Throttling codes: Rate limiting → TRANSIENT_ERROR with retry_after
    - ConditionalCheckFailedException: Write condition failed → CONFLICT
    - AccessDeniedException: Permission denied → UNAUTHORIZED
    - ResourceNotFoundException: Table missing → NOT_FOUND
    - ValidationException: Bad input → PERMANENT_ERROR
    - Other: Unknown error → TRANSIENT_ERROR (AWS convention)

    Args:
        exc: Exception raised by AWS SDK (boto3/botocore)

    Returns:
        OperationResult with appropriate status, message, error_code, and
        retry_after (if applicable)
    """
    if not isinstance(exc, ClientError):
        # BotoCoreError (connection), timeout, etc.
        return OperationResult.transient_error(
            f"AWS connection error: {type(exc).__name__}: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )

    error_code = "Unknown"
    if hasattr(exc, "response") and exc.response:
        error_info = exc.response.get("Error", {})
        error_code = error_info.get("Code", "Unknown")

    if error_code in AWS_THROTTLING_CODES:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            "AWS API throttled",
            error_code="RATE_LIMITED",
            retry_after=60,
        )

    if error_code == "ConditionalCheckFailedException":
        return OperationResult.conflict(
            "AWS conditional check failed", error_code="CONDITIONAL_CHECK_FAILED"
        )

    if error_code == "AccessDeniedException":
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            "AWS API access denied",
            error_code="FORBIDDEN",
        )

    if error_code == "ResourceNotFoundException":
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            "AWS resource not found",
            error_code="NOT_FOUND",
        )

    if error_code in (
        "ValidationException",
        "InvalidParameterException",
        "SerializationException",
    ):
        return OperationResult.permanent_error(
            f"AWS validation error: {error_code}",
            error_code="INVALID_REQUEST",
        )

    # Unknown AWS errors are treated as transient (retry by default)
    return OperationResult.transient_error(
        f"AWS client error: {error_code}",
        error_code="AWS_CLIENT_ERROR",
    )


def classify_telegram_error(
    exc: Optional[Exception] = None,
    payload: Optional[dict[str, Any]] = None,
    status_code: Optional[int] = None,
) -> OperationResult:
    """Classify a failed Bot API call into OperationResult.

    Either an exception raised by requests (connection failure, timeout) or
    the decoded error payload of a response with `"ok": false` is accepted.

    Status Code Mapping:
    - requests exception: TRANSIENT_ERROR (network issues are usually temporary)
    - 429: Rate limiting → TRANSIENT_ERROR with parameters.retry_after
    - 401: Invalid bot token → UNAUTHORIZED
    - 403: Bot blocked or kicked → UNAUTHORIZED with error_code FORBIDDEN
    - 400: Bad request (chat not found, bad markup) → PERMANENT_ERROR
    - 5xx: Server error → TRANSIENT_ERROR
    - Other: TRANSIENT_ERROR

    Args:
        exc: Exception raised while calling the API
        payload: Decoded JSON body of an error response
        status_code: HTTP status code, used when the payload carries none

    Returns:
        OperationResult describing the failure
    """
    if exc is not None:
        error_code = (
            "TIMEOUT" if isinstance(exc, requests.Timeout) else "CONNECTION_ERROR"
        )
        return OperationResult.transient_error(
            f"Telegram connection error: {type(exc).__name__}: {str(exc)}",
            error_code=error_code,
        )

    payload = payload or {}
    code = payload.get("error_code") or status_code
    description = payload.get("description") or "Telegram API error"
    parameters = payload.get("parameters") or {}

    if code == 429:
        retry_after = parameters.get("retry_after")
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            description,
            error_code="RATE_LIMITED",
            retry_after=int(retry_after) if retry_after is not None else 30,
        )

    if code == 401:
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED, description, error_code="UNAUTHORIZED"
        )

    if code == 403:
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED, description, error_code="FORBIDDEN"
        )

    if code == 400:
        return OperationResult.permanent_error(description, error_code="BAD_REQUEST")

    if isinstance(code, int) and 500 <= code < 600:
        return OperationResult.transient_error(
            f"Telegram server error ({code}): {description}",
            error_code="SERVER_ERROR",
        )

    return OperationResult.transient_error(description, error_code="HTTP_ERROR")
