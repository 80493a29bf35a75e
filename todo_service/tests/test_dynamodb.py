import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber

from src.api.db import TABLE_NAME, DynamoDBRepository, TableNotReadyError, ensure_table
from src.api.repositories import InMemoryRepository, StoreError, get_repository
from src.api.settings import Settings

BOTO_KWARGS = {
    "region_name": "us-east-1",
    "endpoint_url": "http://localhost:8000",
    "aws_access_key_id": "dummy",
    "aws_secret_access_key": "dummy",
}

CREATE_TABLE_PARAMS = {
    "TableName": "todos",
    "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
    "AttributeDefinitions": [{"AttributeName": "id", "AttributeType": "S"}],
    "BillingMode": "PAY_PER_REQUEST",
}


def make_settings(**overrides) -> Settings:
    values = dict(
        persistence_backend="dynamodb",
        dynamodb_endpoint="http://localhost:8000",
        aws_region="us-east-1",
        aws_access_key_id="dummy",
        aws_secret_access_key="dummy",
        table_poll_interval=1.0,
        table_wait_max_attempts=120,
        cors_allow_origins=["*"],
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


def describe_response(status):
    return {"Table": {"TableName": TABLE_NAME, "TableStatus": status}}


@pytest.fixture
def client():
    return boto3.client("dynamodb", **BOTO_KWARGS)


@pytest.fixture
def sleeps():
    return []


class TestEnsureTable:
    def test_existing_table_is_left_alone(self, client, sleeps):
        with Stubber(client) as stubber:
            stubber.add_response("describe_table", describe_response("ACTIVE"), {"TableName": "todos"})
            ensure_table(client, sleep=sleeps.append)
            stubber.assert_no_pending_responses()
        assert sleeps == []

    def test_missing_table_is_created_and_polled(self, client, sleeps):
        with Stubber(client) as stubber:
            stubber.add_client_error(
                "describe_table",
                service_error_code="ResourceNotFoundException",
                expected_params={"TableName": "todos"},
            )
            stubber.add_response(
                "create_table",
                {"TableDescription": {"TableName": "todos", "TableStatus": "CREATING"}},
                CREATE_TABLE_PARAMS,
            )
            stubber.add_response("describe_table", describe_response("CREATING"), {"TableName": "todos"})
            stubber.add_response("describe_table", describe_response("ACTIVE"), {"TableName": "todos"})
            ensure_table(client, poll_interval=1.0, sleep=sleeps.append)
            stubber.assert_no_pending_responses()
        assert sleeps == [1.0, 1.0]

    def test_table_created_concurrently_is_awaited(self, client, sleeps):
        with Stubber(client) as stubber:
            stubber.add_client_error("describe_table", service_error_code="ResourceNotFoundException")
            stubber.add_client_error("create_table", service_error_code="ResourceInUseException")
            stubber.add_response("describe_table", describe_response("ACTIVE"))
            ensure_table(client, sleep=sleeps.append)
            stubber.assert_no_pending_responses()
        assert len(sleeps) == 1

    def test_gives_up_after_max_attempts(self, client, sleeps):
        with Stubber(client) as stubber:
            stubber.add_client_error("describe_table", service_error_code="ResourceNotFoundException")
            stubber.add_response("create_table", {"TableDescription": {"TableStatus": "CREATING"}})
            for _ in range(3):
                stubber.add_response("describe_table", describe_response("CREATING"))
            with pytest.raises(TableNotReadyError):
                ensure_table(client, poll_interval=0.5, max_attempts=3, sleep=sleeps.append)
        assert sleeps == [0.5, 0.5, 0.5]

    def test_other_describe_errors_are_fatal(self, client, sleeps):
        with Stubber(client) as stubber:
            stubber.add_client_error("describe_table", service_error_code="AccessDeniedException")
            with pytest.raises(ClientError):
                ensure_table(client, sleep=sleeps.append)
        assert sleeps == []

    def test_zero_max_attempts_waits_until_active(self, client, sleeps):
        with Stubber(client) as stubber:
            stubber.add_client_error("describe_table", service_error_code="ResourceNotFoundException")
            stubber.add_response("create_table", {"TableDescription": {"TableStatus": "CREATING"}})
            for _ in range(5):
                stubber.add_response("describe_table", describe_response("CREATING"))
            stubber.add_response("describe_table", describe_response("ACTIVE"))
            ensure_table(client, poll_interval=1.0, max_attempts=0, sleep=sleeps.append)
            stubber.assert_no_pending_responses()
        assert sleeps == [1.0] * 6

    def test_create_failure_is_fatal(self, client, sleeps):
        with Stubber(client) as stubber:
            stubber.add_client_error("describe_table", service_error_code="ResourceNotFoundException")
            stubber.add_client_error("create_table", service_error_code="LimitExceededException")
            with pytest.raises(ClientError):
                ensure_table(client, sleep=sleeps.append)
        assert sleeps == []


@pytest.fixture
def repo():
    resource = boto3.resource("dynamodb", **BOTO_KWARGS)
    return DynamoDBRepository(resource)


class TestDynamoDBRepository:
    def test_get_returns_deserialized_item(self, repo):
        with Stubber(repo.client) as stubber:
            stubber.add_response(
                "get_item",
                {"Item": {"id": {"S": "abc"}, "title": {"S": "Milk"}, "completed": {"BOOL": True}}},
            )
            item = repo.get("abc")
        assert item == {"id": "abc", "title": "Milk", "completed": True}

    def test_get_uses_consistent_read(self):
        calls = []

        class RecordingTable:
            def get_item(self, **kwargs):
                calls.append(kwargs)
                return {}

        class RecordingResource:
            def Table(self, name):
                return RecordingTable()

        assert DynamoDBRepository(RecordingResource()).get("abc") is None
        assert calls == [{"Key": {"id": "abc"}, "ConsistentRead": True}]

    def test_get_missing_returns_none(self, repo):
        with Stubber(repo.client) as stubber:
            stubber.add_response("get_item", {})
            assert repo.get("nope") is None

    def test_put_and_delete(self, repo):
        with Stubber(repo.client) as stubber:
            stubber.add_response("put_item", {})
            stubber.add_response("delete_item", {})
            repo.put({"id": "abc", "title": "Milk", "completed": False, "createdAt": "2025-01-01T00:00:00.000000Z"})
            repo.delete("abc")
            stubber.assert_no_pending_responses()

    def test_scan_follows_pagination(self, repo):
        with Stubber(repo.client) as stubber:
            stubber.add_response(
                "scan",
                {"Items": [{"id": {"S": "1"}}], "LastEvaluatedKey": {"id": {"S": "1"}}},
            )
            stubber.add_response("scan", {"Items": [{"id": {"S": "2"}}]})
            items = repo.scan()
            stubber.assert_no_pending_responses()
        assert [i["id"] for i in items] == ["1", "2"]

    def test_client_errors_become_store_errors(self, repo):
        with Stubber(repo.client) as stubber:
            stubber.add_client_error(
                "scan",
                service_error_code="ResourceNotFoundException",
                service_message="Cannot do operations on a non-existent table",
            )
            with pytest.raises(StoreError) as exc_info:
                repo.scan()
        assert "non-existent table" in str(exc_info.value)

    def test_initialize_checks_table(self, repo):
        with Stubber(repo.client) as stubber:
            stubber.add_response("describe_table", describe_response("ACTIVE"), {"TableName": "todos"})
            repo.initialize()
            stubber.assert_no_pending_responses()


class TestRepositoryFactory:
    def test_memory_backend(self):
        assert isinstance(get_repository(make_settings(persistence_backend="memory")), InMemoryRepository)

    def test_dynamodb_backend_uses_configured_endpoint(self):
        repo = get_repository(make_settings(dynamodb_endpoint="http://dynamodb-local:8000"))
        assert isinstance(repo, DynamoDBRepository)
        assert repo.client.meta.endpoint_url == "http://dynamodb-local:8000"
        assert repo.client.meta.region_name == "us-east-1"
