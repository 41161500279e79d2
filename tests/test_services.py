# tests/test_services.py
import json
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from backend.lib.dynamodb_service import DynamoDBService
from backend.lib.eleca_core.aggregator import summarize_month
from backend.lib.eleca_core.models import (
    DailyApplianceEntry,
    StateTariff,
    SubsidyConfig,
    TariffSlab,
    UserDailyUsage,
)
from backend.lib.log_store import LocalLogStore
from backend.lib.sns_service import SNSService


def client_error(code, operation="Operation"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def make_log(day, units=8.0, user_id="u1"):
    entry = DailyApplianceEntry("ac", "ac", "iseer", 4.5, 1.17, 5.0, units, units * 5)
    return UserDailyUsage(id=f"log-{user_id}-2025-11-{day:02d}", user_id=user_id,
                          date=date(2025, 11, day), total_units=units,
                          total_cost=units * 5, appliances=(entry,))


def make_dynamo():
    resource, client = MagicMock(), MagicMock()
    return DynamoDBService("TestTable", resource=resource, client=client), resource, client


def test_local_store_round_trip_and_replace(tmp_path):
    store = LocalLogStore(tmp_path / "nested" / "logs.jsonl")
    assert store.get_logs_for_user("u1") == []
    store.save_logs([make_log(2), make_log(1), make_log(1, user_id="u2")])
    store.save_logs([make_log(2, units=3.0)])
    logs = store.get_logs_for_user("u1")
    assert [log.date.day for log in logs] == [1, 2]
    assert logs[1].total_units == 3.0
    assert logs[0].appliances[0].rating_type == "iseer"


def test_dynamo_uses_existing_table():
    service, resource, client = make_dynamo()
    assert service.create_table_if_not_exists() is True
    client.describe_table.assert_called_once_with(TableName="TestTable")
    resource.create_table.assert_not_called()


def test_dynamo_creates_missing_table():
    service, resource, client = make_dynamo()
    client.describe_table.side_effect = client_error("ResourceNotFoundException")
    assert service.create_table_if_not_exists() is True
    kwargs = resource.create_table.call_args.kwargs
    assert kwargs["TableName"] == "TestTable"
    assert {k["AttributeName"] for k in kwargs["KeySchema"]} == {"user_id", "date"}


def test_dynamo_create_fails_on_other_errors():
    service, resource, client = make_dynamo()
    client.describe_table.side_effect = client_error("AccessDeniedException")
    assert service.create_table_if_not_exists() is False
    resource.create_table.assert_not_called()


def test_dynamo_save_writes_decimal_items():
    service, resource, _ = make_dynamo()
    table = resource.Table.return_value
    writer = table.batch_writer.return_value.__enter__.return_value
    assert service.save_logs([make_log(1, units=8.2), make_log(2)]) == 2
    assert writer.put_item.call_count == 2
    item = writer.put_item.call_args_list[0].kwargs["Item"]
    assert item["total_units"] == Decimal("8.2")
    assert item["date"] == "2025-11-01"
    assert json.loads(item["appliances_json"])[0]["appliance_id"] == "ac"


def test_dynamo_save_failure_returns_zero():
    service, resource, _ = make_dynamo()
    resource.Table.return_value.batch_writer.side_effect = client_error("ProvisionedThroughputExceededException")
    assert service.save_logs([make_log(1)]) == 0


def test_dynamo_query_follows_pages():
    service, resource, _ = make_dynamo()
    table = resource.Table.return_value
    item = {"user_id": "u1", "id": "x", "total_units": Decimal("8"), "total_cost": Decimal("40"),
            "is_estimated": False, "appliances_json": "[]"}
    table.query.side_effect = [
        {"Items": [dict(item, date="2025-11-01")], "LastEvaluatedKey": {"k": 1}},
        {"Items": [dict(item, date="2025-11-02")]},
    ]
    logs = service.get_logs_for_user("u1")
    assert [log.date for log in logs] == [date(2025, 11, 1), date(2025, 11, 2)]
    assert logs[0].total_units == 8.0
    assert table.query.call_count == 2


def test_dynamo_query_failure_returns_empty():
    service, resource, _ = make_dynamo()
    resource.Table.return_value.query.side_effect = client_error("InternalServerError")
    assert service.get_logs_for_user("u1") == []


def test_sns_subsidy_alert():
    client = MagicMock()
    service = SNSService(topic_arn="arn:aws:sns:ap-south-1:1:ElecaAlerts", client=client)
    tariff = StateTariff("T", "T", 50.0, (TariffSlab(0, 100, 3.0), TariffSlab(100, None, 5.0)))
    logs = [make_log(day) for day in range(1, 11)]
    summary = summarize_month(logs, tariff, [], SubsidyConfig("government", 50), "summer", "2025-11")
    assert summary.slab_crossed

    assert service.send_subsidy_limit_alert("u1", summary) is True
    kwargs = client.publish.call_args.kwargs
    assert kwargs["Subject"] == "Subsidy limit crossed - 2025-11"
    assert "Units used so far: 80.00 kWh" in kwargs["Message"]
    assert "Subsidy limit: 50.00 kWh" in kwargs["Message"]


def test_sns_without_topic_does_nothing():
    client = MagicMock()
    service = SNSService(client=client)
    service.topic_arn = None
    assert service.send_alert("s", "m") is False
    assert service.subscribe_email("a@b.c") is None
    client.publish.assert_not_called()


def test_sns_publish_error_returns_false():
    client = MagicMock()
    client.publish.side_effect = client_error("AuthorizationError")
    service = SNSService(topic_arn="arn:x", client=client)
    assert service.send_alert("subject", "message") is False


def test_sns_create_topic():
    client = MagicMock()
    client.create_topic.return_value = {"TopicArn": "arn:new"}
    service = SNSService(client=client)
    assert service.create_topic_if_not_exists() == "arn:new"
    assert service.topic_arn == "arn:new"
