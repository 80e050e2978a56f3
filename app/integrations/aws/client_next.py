"""
AWS Service Next Module

Centralized error handling, retry logic, standardized responses and
simplified pagination for the AWS API calls made by the DynamoDB storage
backend.

Features:
- Centralized error handling and throttling retries
- Standardized OperationResult responses classified by classify_aws_error
- Simplified pagination for scan/query operations

Usage:
    result = execute_aws_api_call(
        service_name="dynamodb",
        method="get_item",
        TableName="bot-engine-subscriptions",
        Key={"chat_id": {"N": "42"}},
    )
    if result.is_success:
        item = result.data.get("Item")
"""

import time
from typing import Any, List, Optional, Callable

import boto3  # type: ignore
from botocore.client import BaseClient  # type: ignore
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, classify_aws_error

logger = get_module_logger()


def _aws_settings():
    # Resolved per call: the settings provider package imports the engine
    from infrastructure.services.providers import get_settings

    return get_settings().aws


ERROR_CONFIG = {
    "default_max_retries": 3,
    "default_backoff_factor": 0.5,
}

# Outcomes callers expect and handle themselves; logged at info level only
EXPECTED_ERROR_CODES = ("CONDITIONAL_CHECK_FAILED",)


def _error_code(error: Exception) -> Optional[str]:
    if hasattr(error, "response"):
        return getattr(error, "response", {}).get("Error", {}).get("Code")
    return None


def _should_retry(error: Exception, attempt: int, max_attempts: int) -> bool:
    throttling_errs = _aws_settings().THROTTLING_ERRS
    return _error_code(error) in throttling_errs and attempt < max_attempts


def _calculate_retry_delay(attempt: int) -> float:
    return float(ERROR_CONFIG["default_backoff_factor"]) * (2**attempt)


def _handle_final_error(error: Exception, function_name: str) -> OperationResult:
    """Classify the error left after retries are exhausted and log it."""
    result = classify_aws_error(error)
    if result.error_code in EXPECTED_ERROR_CODES:
        logger.info(
            "aws_api_condition_not_met",
            function=function_name,
            error_code=_error_code(error),
        )
    else:
        logger.error(
            "aws_api_error_final",
            function=function_name,
            error=str(error),
            error_code=_error_code(error),
            status=result.status.value,
        )
    return result


def get_aws_client(
    service_name: str,
    client_config: Optional[dict] = None,
) -> BaseClient:
    """
    Create a boto3 AWS service client.

    Args:
        service_name (str): The name of the AWS service.
        client_config (dict, optional): Client configuration. Defaults to the
            configured region and endpoint override.
    """
    aws = _aws_settings()
    if client_config is None:
        client_config = {"region_name": aws.AWS_REGION}
        if aws.ENDPOINT_URL:
            client_config["endpoint_url"] = aws.ENDPOINT_URL
    session = boto3.Session(region_name=aws.AWS_REGION)
    return session.client(service_name, **client_config)


def _paginate_all_results(
    client: BaseClient, method: str, keys: Optional[List[str]] = None, **kwargs
) -> List[dict]:
    paginator = client.get_paginator(method)
    results = []
    for page in paginator.paginate(**kwargs):
        if keys is None:
            for key, value in page.items():
                if key != "ResponseMetadata":
                    if isinstance(value, list):
                        results.extend(value)
                    else:
                        results.append(value)
        else:
            for key in keys:
                if key in page:
                    results.extend(page[key])
    return results


def execute_api_call(
    func_name: str,
    api_call: Callable[[], Any],
    max_retries: Optional[int] = None,
) -> OperationResult:
    """
    Module-level error handling for AWS API calls.

    Throttling errors are retried with exponential backoff; every other error
    is classified and returned immediately.

    Args:
        func_name (str): Name of the calling function for logging
        api_call (callable): The API call to execute
        max_retries (int): Override default max retries

    Returns:
        OperationResult: SUCCESS with the raw response as data, or the
        classified error.
    """
    max_retry_attempts = (
        max_retries
        if max_retries is not None
        else int(ERROR_CONFIG["default_max_retries"])
    )
    last_exception: Optional[Exception] = None

    for attempt in range(max_retry_attempts + 1):
        try:
            logger.debug(
                "aws_api_call_start",
                function=func_name,
                attempt=attempt + 1,
                max_attempts=max_retry_attempts + 1,
            )

            result = api_call()

            if attempt > 0:
                logger.info(
                    "aws_api_retry_success",
                    function=func_name,
                    attempt=attempt + 1,
                )

            return OperationResult.success(data=result)

        except (BotoCoreError, ClientError) as e:
            last_exception = e

            if _should_retry(e, attempt, max_retry_attempts):
                delay = _calculate_retry_delay(attempt)
                logger.warning(
                    "aws_api_retrying",
                    function=func_name,
                    attempt=attempt + 1,
                    error=str(e),
                    delay=delay,
                )
                time.sleep(delay)
                continue

            return _handle_final_error(e, func_name)

    if last_exception is None:
        last_exception = Exception("Unknown error after retries")

    return _handle_final_error(last_exception, func_name)


def execute_aws_api_call(
    service_name: str,
    method: str,
    keys: Optional[List[str]] = None,
    client_config: Optional[dict] = None,
    max_retries: Optional[int] = None,
    force_paginate: bool = False,
    **kwargs,
) -> OperationResult:
    """
    Execute an AWS API call with centralized error handling.

    Args:
        service_name (str): The name of the AWS service.
        method (str): The method to call on the service.
        keys (list, optional): The keys to extract from paginated results.
        client_config (dict, optional): Client configuration.
        max_retries (int, optional): Override default max retries.
        force_paginate (bool, optional): Collect every page into one list.
        **kwargs: Additional keyword arguments for the API call.

    Returns:
        OperationResult: Standardized result for the call.
    """

    def api_call():
        client = get_aws_client(service_name, client_config)
        if force_paginate:
            return _paginate_all_results(client, method, keys, **kwargs)
        return getattr(client, method)(**kwargs)

    func_name = f"{service_name}_{method}"
    return execute_api_call(func_name, api_call, max_retries=max_retries)
