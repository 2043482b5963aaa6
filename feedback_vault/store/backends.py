"""Feedback Store - DynamoDB backend plus an in-memory stand-in

Self-Explanatory: put/get/delete of feedback items keyed by id.
Why: The service only needs per-key atomic operations, nothing relational.
How: Boto3 DynamoDB resource for AWS; a locked dict for local dev and tests.
"""

import copy
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

import boto3
import structlog

logger = structlog.get_logger()

PRIMARY_KEY = "id"


class FeedbackStore(ABC):
    """Key-value contract the feedback service talks to"""

    @abstractmethod
    def put(self, key: str, item: Dict) -> None:
        """Create or fully replace the item stored under key"""

    @abstractmethod
    def get(self, key: str) -> Optional[Dict]:
        """Return the item, or None when absent"""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the item; absent keys are not an error"""

    @abstractmethod
    def ping(self) -> Dict:
        """Cheap connectivity check for health endpoints"""


class DynamoFeedbackStore(FeedbackStore):
    """DynamoDB table with `id` as its partition key"""

    def __init__(
        self,
        table_name: str,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ):
        self.table_name = table_name
        resource = boto3.resource(
            "dynamodb", region_name=region_name, endpoint_url=endpoint_url
        )
        self.table = resource.Table(table_name)
        logger.info("DynamoDB store initialized", table=table_name, region=region_name)

    def put(self, key: str, item: Dict) -> None:
        item = dict(item)
        item[PRIMARY_KEY] = key
        self.table.put_item(Item=item)

    def get(self, key: str) -> Optional[Dict]:
        response = self.table.get_item(Key={PRIMARY_KEY: key})
        return response.get("Item")

    def delete(self, key: str) -> None:
        self.table.delete_item(Key={PRIMARY_KEY: key})

    def ping(self) -> Dict:
        # describe_table lives on the low-level client
        description = self.table.meta.client.describe_table(TableName=self.table_name)
        return {"table": self.table_name, "status": description["Table"]["TableStatus"]}


class InMemoryFeedbackStore(FeedbackStore):
    """Process-local store; contents vanish with the process"""

    def __init__(self):
        self._items: Dict[str, Dict] = {}
        self._lock = threading.Lock()
        logger.warning("Using in-memory feedback store (development only)")

    def put(self, key: str, item: Dict) -> None:
        item = copy.deepcopy(item)
        item[PRIMARY_KEY] = key
        with self._lock:
            self._items[key] = item

    def get(self, key: str) -> Optional[Dict]:
        with self._lock:
            item = self._items.get(key)
        return copy.deepcopy(item) if item is not None else None

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def ping(self) -> Dict:
        with self._lock:
            count = len(self._items)
        return {"table": "in-memory", "status": "ACTIVE", "items": count}

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
