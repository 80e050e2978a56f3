from decimal import Decimal
from unittest.mock import patch

from infrastructure.operations import OperationResult
from integrations.aws import dynamodb_next


@patch("integrations.aws.dynamodb_next.execute_aws_api_call")
def test_get_item(mock_execute):
    mock_execute.return_value = OperationResult.success(data={"Item": {}})

    result = dynamodb_next.get_item(
        "subs", Key={"chat_id": {"N": "1"}}, ConsistentRead=True
    )

    assert result.is_success
    mock_execute.assert_called_once_with(
        service_name="dynamodb",
        method="get_item",
        TableName="subs",
        Key={"chat_id": {"N": "1"}},
        ConsistentRead=True,
    )


@patch("integrations.aws.dynamodb_next.execute_aws_api_call")
def test_put_item_passes_condition(mock_execute):
    mock_execute.return_value = OperationResult.success()

    dynamodb_next.put_item(
        "users",
        Item={"username": {"S": "alice"}},
        ConditionExpression="attribute_not_exists(username)",
    )

    kwargs = mock_execute.call_args.kwargs
    assert kwargs["method"] == "put_item"
    assert kwargs["ConditionExpression"] == "attribute_not_exists(username)"


@patch("integrations.aws.dynamodb_next.execute_aws_api_call")
def test_update_and_delete_item(mock_execute):
    mock_execute.return_value = OperationResult.success()

    key = {"chat_id": {"N": "1"}}
    dynamodb_next.update_item("subs", Key=key, UpdateExpression="SET a = :a")
    dynamodb_next.delete_item("subs", Key=key)

    methods = [c.kwargs["method"] for c in mock_execute.call_args_list]
    assert methods == ["update_item", "delete_item"]


@patch("integrations.aws.dynamodb_next.execute_aws_api_call")
def test_scan_paginates(mock_execute):
    mock_execute.return_value = OperationResult.success(data=[])

    dynamodb_next.scan("events", FilterExpression="created_at < :cutoff")

    mock_execute.assert_called_once_with(
        service_name="dynamodb",
        method="scan",
        TableName="events",
        keys=["Items"],
        force_paginate=True,
        FilterExpression="created_at < :cutoff",
    )


def test_serialize_item_drops_none_and_converts_floats():
    item = dynamodb_next.serialize_item(
        {"chat_id": 42, "username": None, "score": 1.5, "metadata": {"w": 0.25}}
    )

    assert item == {
        "chat_id": {"N": "42"},
        "score": {"N": "1.5"},
        "metadata": {"M": {"w": {"N": "0.25"}}},
    }


def test_deserialize_item_restores_native_numbers():
    data = dynamodb_next.deserialize_item(
        {
            "chat_id": {"N": "42"},
            "score": {"N": "1.5"},
            "active": {"BOOL": True},
            "tags": {"L": [{"N": "1"}, {"S": "x"}]},
        }
    )

    assert data == {"chat_id": 42, "score": 1.5, "active": True, "tags": [1, "x"]}
    assert not isinstance(data["chat_id"], Decimal)


@patch("integrations.aws.dynamodb_next.execute_aws_api_call")
def test_batch_delete_chunks_by_25(mock_execute):
    mock_execute.return_value = OperationResult.success(data={"UnprocessedItems": {}})
    keys = [{"event_id": {"S": str(i)}} for i in range(30)]

    result = dynamodb_next.batch_delete("events", keys)

    assert result.is_success
    assert result.data == 30
    batches = [c.kwargs["RequestItems"]["events"] for c in mock_execute.call_args_list]
    assert [len(b) for b in batches] == [25, 5]
    assert batches[1][0] == {"DeleteRequest": {"Key": {"event_id": {"S": "25"}}}}


@patch("integrations.aws.dynamodb_next.execute_aws_api_call")
def test_batch_delete_resubmits_unprocessed(mock_execute):
    leftover = {"events": [{"DeleteRequest": {"Key": {"event_id": {"S": "b"}}}}]}
    mock_execute.side_effect = [
        OperationResult.success(data={"UnprocessedItems": leftover}),
        OperationResult.success(data={}),
    ]
    keys = [{"event_id": {"S": "a"}}, {"event_id": {"S": "b"}}]

    result = dynamodb_next.batch_delete("events", keys)

    assert result.data == 2
    assert mock_execute.call_args_list[1].kwargs["RequestItems"] == leftover


@patch("integrations.aws.dynamodb_next.execute_aws_api_call")
def test_batch_delete_gives_up_on_persistent_unprocessed(mock_execute):
    leftover = {"events": [{"DeleteRequest": {"Key": {"event_id": {"S": "a"}}}}]}
    mock_execute.return_value = OperationResult.success(
        data={"UnprocessedItems": leftover}
    )

    result = dynamodb_next.batch_delete("events", [{"event_id": {"S": "a"}}])

    assert result.is_transient
    assert result.error_code == "UNPROCESSED_ITEMS"
    assert mock_execute.call_count == dynamodb_next.MAX_UNPROCESSED_ROUNDS


@patch("integrations.aws.dynamodb_next.execute_aws_api_call")
def test_batch_delete_stops_on_error(mock_execute):
    mock_execute.return_value = OperationResult.transient_error(
        "throttled", error_code="RATE_LIMITED"
    )
    keys = [{"event_id": {"S": str(i)}} for i in range(30)]

    result = dynamodb_next.batch_delete("events", keys)

    assert result.error_code == "RATE_LIMITED"
    assert mock_execute.call_count == 1
