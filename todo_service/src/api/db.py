from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Generator, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .repositories import Repository, StoreError, TodoItem
from .settings import Settings

logger = logging.getLogger(__name__)

TABLE_NAME = "todos"
PARTITION_KEY = "id"


class TableNotReadyError(RuntimeError):
    """Raised when the table does not become ACTIVE within the allowed polls."""


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


# PUBLIC_INTERFACE
def ensure_table(
    client: Any,
    table_name: str = TABLE_NAME,
    poll_interval: float = 1.0,
    max_attempts: int = 120,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """
    Make sure the todos table exists and is ACTIVE.

    If describe_table finds the table, return immediately. If it reports
    ResourceNotFoundException, create the table (partition key ``id`` of type
    string, on-demand billing) and poll its status every ``poll_interval``
    seconds until it is ACTIVE.

    Args:
        client: A low-level boto3 DynamoDB client.
        table_name: Table to check or create.
        poll_interval: Seconds to wait before each status check.
        max_attempts: Status checks allowed before giving up. Zero or less
            waits indefinitely.
        sleep: Sleep function, replaceable in tests.

    Raises:
        TableNotReadyError: the table is still not ACTIVE after max_attempts checks.
        ClientError: any describe/create failure other than the table missing.
    """
    try:
        client.describe_table(TableName=table_name)
        logger.info("Table %s already exists", table_name)
        return
    except ClientError as exc:
        if _error_code(exc) != "ResourceNotFoundException":
            raise

    logger.info("Creating table %s", table_name)
    try:
        client.create_table(
            TableName=table_name,
            KeySchema=[{"AttributeName": PARTITION_KEY, "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": PARTITION_KEY, "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
    except ClientError as exc:
        # Created concurrently by another instance.
        if _error_code(exc) != "ResourceInUseException":
            raise
        logger.info("Table %s is already being created", table_name)

    attempts = 0
    while True:
        if max_attempts > 0 and attempts >= max_attempts:
            raise TableNotReadyError(
                f"Table {table_name} not active after {attempts} checks"
            )
        sleep(poll_interval)
        attempts += 1
        status = client.describe_table(TableName=table_name)["Table"].get("TableStatus")
        if status == "ACTIVE":
            break
        logger.debug("Table %s status is %s, waiting", table_name, status)

    logger.info("Table %s created successfully", table_name)


@contextmanager
def _store_errors() -> Generator[None, None, None]:
    try:
        yield
    except (BotoCoreError, ClientError) as exc:
        raise StoreError(str(exc)) from exc


class DynamoDBRepository(Repository):
    """
    Repository backed by a DynamoDB table through the boto3 resource API.
    """

    def __init__(
        self,
        resource: Any,
        table_name: str = TABLE_NAME,
        poll_interval: float = 1.0,
        max_attempts: int = 120,
    ) -> None:
        self._resource = resource
        self._table_name = table_name
        self._table = resource.Table(table_name)
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts

    @classmethod
    def from_settings(cls, settings: Settings) -> "DynamoDBRepository":
        """Build a repository with a boto3 resource configured from settings."""
        resource = boto3.resource(
            "dynamodb",
            endpoint_url=settings.dynamodb_endpoint,
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
        )
        return cls(
            resource,
            poll_interval=settings.table_poll_interval,
            max_attempts=settings.table_wait_max_attempts,
        )

    @property
    def client(self) -> Any:
        return self._resource.meta.client

    def initialize(self) -> None:
        ensure_table(
            self.client,
            self._table_name,
            poll_interval=self._poll_interval,
            max_attempts=self._max_attempts,
        )

    def get(self, todo_id: str) -> Optional[TodoItem]:
        with _store_errors():
            response = self._table.get_item(Key={PARTITION_KEY: todo_id}, ConsistentRead=True)
        return response.get("Item")

    def put(self, item: TodoItem) -> None:
        with _store_errors():
            self._table.put_item(Item=item)

    def delete(self, todo_id: str) -> None:
        with _store_errors():
            self._table.delete_item(Key={PARTITION_KEY: todo_id})

    def scan(self) -> List[TodoItem]:
        items: List[TodoItem] = []
        kwargs: dict[str, Any] = {}
        with _store_errors():
            while True:
                response = self._table.scan(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        return items
