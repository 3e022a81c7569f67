"""Shared fixtures: settings, a fake clock and in-memory HTTP doubles."""

from typing import Any, Dict, List, Optional, Union
from unittest.mock import AsyncMock

import pytest

from shopify_bulk.core.config import Settings
from shopify_bulk.utils.retry_handler import RetryHandler, RetryPolicy

SHOP = "test-store.myshopify.com"
TOKEN = "shpat_test_token"
OPERATION_ID = "gid://shopify/BulkOperation/1234567890"
RESULT_URL = "https://storage.googleapis.com/shopify-tiers-assets/bulk/results.jsonl?X-Goog-Signature=abc"


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeStreamReader:
    def __init__(self, chunks: List[bytes]):
        self._chunks = chunks

    async def iter_chunked(self, size: int):
        for chunk in self._chunks:
            yield chunk


class FakeResponse:
    """Stand-in for aiohttp.ClientResponse used as an async context manager."""

    def __init__(
        self,
        status: int = 200,
        body: Union[str, bytes] = "",
        chunks: Optional[List[bytes]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.status = status
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self.headers = headers or {"Content-Type": "application/jsonl"}
        self.content = FakeStreamReader(chunks if chunks is not None else [self._body])
        self.released = False

    async def read(self) -> bytes:
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.released = True


class FakeSession:
    """
    Stand-in for aiohttp.ClientSession.

    Replies are consumed in order by post() and get(); an exception instance
    in the queue is raised instead of returning a response.
    """

    def __init__(self, replies: Optional[List[Any]] = None):
        self.replies = list(replies or [])
        self.requests: List[Dict[str, Any]] = []
        self.closed = False

    def _next(self, method: str, url: str, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def post(self, url, json=None, headers=None):
        return self._next("POST", url, json=json, headers=headers)

    def get(self, url, headers=None):
        return self._next("GET", url, headers=headers)

    async def close(self):
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class FakeShopifyClient:
    """GraphQL client double: scripted execute() results and download chunks."""

    def __init__(self, responses: List[Any], download_chunks: Optional[List[bytes]] = None):
        self.execute = AsyncMock(side_effect=responses)
        self.download_chunks = download_chunks or []
        self.downloaded_urls: List[str] = []

    async def iter_download(self, url: str):
        self.downloaded_urls.append(url)
        for chunk in self.download_chunks:
            yield chunk


def bulk_operation(status: str, url: Optional[str] = None, error_code: Optional[str] = None, **fields) -> dict:
    """BulkOperation object as returned by the Admin API."""
    return {
        "id": OPERATION_ID,
        "status": status,
        "errorCode": error_code,
        "createdAt": "2025-04-01T10:00:00Z",
        "completedAt": "2025-04-01T10:05:00Z" if status == "COMPLETED" else None,
        "objectCount": fields.get("objectCount", "0"),
        "fileSize": fields.get("fileSize"),
        "url": url,
        "partialDataUrl": fields.get("partialDataUrl"),
    }


def start_response(status: str = "CREATED", url: Optional[str] = None, mutation: bool = False) -> dict:
    field = "bulkOperationRunMutation" if mutation else "bulkOperationRunQuery"
    return {field: {"bulkOperation": bulk_operation(status, url=url), "userErrors": []}}


def status_response(status: str, url: Optional[str] = None, error_code: Optional[str] = None, **fields) -> dict:
    return {"node": bulk_operation(status, url=url, error_code=error_code, **fields)}


@pytest.fixture
def settings():
    """Settings isolated from the environment."""
    return Settings(
        _env_file=None,
        ENVIRONMENT="testing",
        SHOPIFY_API_VERSION="2025-04",
        SHOPIFY_MAX_RETRIES=3,
        RETRY_INITIAL_DELAY_SECONDS=0.5,
        RETRY_BACKOFF_FACTOR=2.0,
        RETRY_MAX_DELAY_SECONDS=30.0,
        BULK_POLL_INTERVAL_SECONDS=5.0,
        BULK_TIMEOUT_SECONDS=300.0,
        BULK_NOT_FOUND_RETRIES=3,
        BULK_NOT_FOUND_DELAY_SECONDS=1.0,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def retry_handler(settings, clock):
    """Retry handler waiting on the fake clock."""
    return RetryHandler("test", RetryPolicy.from_settings(settings), sleep=clock.sleep)
