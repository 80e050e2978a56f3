from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError

from infrastructure.operations import OperationStatus
from integrations.aws import client_next


def client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "PutItem")


class FakePaginator:
    def __init__(self, pages):
        self.pages = pages
        self.kwargs = None

    def paginate(self, **kwargs):
        self.kwargs = kwargs
        return iter(self.pages)


def test_paginate_all_results_respects_keys():
    client = MagicMock()
    paginator = FakePaginator(
        [
            {"Items": [{"id": 1}], "ResponseMetadata": {"RequestId": "r1"}},
            {"Items": [{"id": 2}], "Count": 1},
        ]
    )
    client.get_paginator.return_value = paginator

    results = client_next._paginate_all_results(
        client, "scan", keys=["Items"], TableName="events"
    )

    assert results == [{"id": 1}, {"id": 2}]
    assert paginator.kwargs == {"TableName": "events"}


def test_paginate_all_results_without_keys_skips_metadata():
    client = MagicMock()
    client.get_paginator.return_value = FakePaginator(
        [{"Items": [{"id": 1}], "Count": 1, "ResponseMetadata": {}}]
    )

    assert client_next._paginate_all_results(client, "scan") == [{"id": 1}, 1]


@patch("integrations.aws.client_next.boto3")
def test_get_aws_client_uses_region_and_endpoint(mock_boto3, monkeypatch):
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ENDPOINT_URL", "http://localhost:8000")

    client_next.get_aws_client("dynamodb")

    mock_boto3.Session.assert_called_once_with(region_name="us-east-1")
    mock_boto3.Session.return_value.client.assert_called_once_with(
        "dynamodb", region_name="us-east-1", endpoint_url="http://localhost:8000"
    )


@patch("integrations.aws.client_next.get_aws_client")
def test_execute_aws_api_call_success(mock_get_client):
    mock_get_client.return_value.get_item.return_value = {"Item": {"k": {"S": "v"}}}

    result = client_next.execute_aws_api_call(
        "dynamodb", "get_item", TableName="subs", Key={"chat_id": {"N": "1"}}
    )

    assert result.is_success
    assert result.data == {"Item": {"k": {"S": "v"}}}
    mock_get_client.return_value.get_item.assert_called_once_with(
        TableName="subs", Key={"chat_id": {"N": "1"}}
    )


@patch("integrations.aws.client_next.get_aws_client")
def test_execute_aws_api_call_force_paginate(mock_get_client):
    mock_get_client.return_value.get_paginator.return_value = FakePaginator(
        [{"Items": [{"a": 1}]}, {"Items": [{"a": 2}]}]
    )

    result = client_next.execute_aws_api_call(
        "dynamodb", "scan", keys=["Items"], force_paginate=True, TableName="subs"
    )

    assert result.data == [{"a": 1}, {"a": 2}]


@patch("integrations.aws.client_next.time.sleep")
def test_execute_api_call_retries_throttling(mock_sleep):
    api_call = MagicMock(
        side_effect=[client_error("ThrottlingException"), {"ok": True}]
    )

    result = client_next.execute_api_call("dynamodb_put_item", api_call)

    assert result.is_success
    assert api_call.call_count == 2
    mock_sleep.assert_called_once_with(0.5)


@patch("integrations.aws.client_next.time.sleep")
def test_execute_api_call_gives_up_after_max_retries(mock_sleep):
    api_call = MagicMock(side_effect=client_error("ThrottlingException"))

    result = client_next.execute_api_call("dynamodb_scan", api_call, max_retries=2)

    assert api_call.call_count == 3
    assert result.status == OperationStatus.TRANSIENT_ERROR
    assert result.error_code == "RATE_LIMITED"


def test_execute_api_call_conditional_failure_is_conflict():
    api_call = MagicMock(side_effect=client_error("ConditionalCheckFailedException"))

    result = client_next.execute_api_call("dynamodb_put_item", api_call)

    assert api_call.call_count == 1
    assert result.status == OperationStatus.CONFLICT


def test_execute_api_call_missing_table():
    api_call = MagicMock(side_effect=client_error("ResourceNotFoundException"))

    result = client_next.execute_api_call("dynamodb_scan", api_call)

    assert result.status == OperationStatus.NOT_FOUND
