"""
Bulk operation service for Shopify.

This module drives a bulk operation end to end: it starts the server-side job,
polls until a terminal state, then downloads and parses the JSONL results and
returns them or writes them to a file.
"""

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlparse

import aiofiles

from shopify_bulk.clients.graphql_client import ShopifyGraphQLClient
from shopify_bulk.core.config import Settings, get_settings
from shopify_bulk.core.logging_config import current_operation_id
from shopify_bulk.domain.models.bulk_operation import BulkOperationHandle, BulkOperationStatus
from shopify_bulk.queries.bulk import BULK_OPERATION_STATUS_QUERY, get_start_mutation
from shopify_bulk.services.jsonl_parser import parse_jsonl
from shopify_bulk.utils.error_handler import (
    BulkOperationFailedException,
    BulkOperationNotFoundException,
    BulkOperationStartException,
    BulkOperationTimeoutException,
    UserErrorsException,
    log_error,
)

logger = logging.getLogger(__name__)


class ShopifyBulkOperations:
    """
    Service for running Shopify bulk operations.

    Bulk operations extract or mutate large amounts of data as a single
    server-side job, so they are not bound by the regular API rate limits.
    """

    def __init__(
        self,
        shopify_client: ShopifyGraphQLClient,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the bulk operation service.

        Args:
            shopify_client: Shopify GraphQL client
            settings: Package settings
            clock: Monotonic clock in seconds
            sleep: Coroutine used to wait between polls
        """
        self.shopify_client = shopify_client
        self.settings = settings or get_settings()
        self._clock = clock
        self._sleep = sleep

    async def start_bulk_operation(self, operation_body: str, is_mutation: bool = False) -> BulkOperationHandle:
        """
        Start a bulk operation.

        Args:
            operation_body: GraphQL query (or mutation) to run in bulk
            is_mutation: Start a bulk mutation instead of a bulk query

        Returns:
            BulkOperationHandle: Snapshot of the created operation

        Raises:
            UserErrorsException: The API rejected the operation
            BulkOperationStartException: No bulk operation was returned
        """
        document, root_field = get_start_mutation(is_mutation)
        result = await self.shopify_client.execute(document, {"operation": operation_body})

        payload = result.get(root_field) or {}
        user_errors = payload.get("userErrors") or []

        if user_errors:
            error_messages = []
            for error in user_errors:
                field = ".".join(str(part) for part in error.get("field") or [])
                error_messages.append(f"{field}: {error.get('message')}" if field else str(error.get("message")))
            raise UserErrorsException(error_messages, user_errors=user_errors)

        operation = payload.get("bulkOperation")
        if not operation or not operation.get("id"):
            raise BulkOperationStartException(
                message="No bulk operation returned when starting the bulk operation",
                details={"response": payload},
            )

        handle = BulkOperationHandle.from_api(operation)
        logger.info(f"Started bulk {'mutation' if is_mutation else 'query'}: {handle.id} ({handle.status.value})")
        return handle

    async def poll_bulk_operation_status(self, operation_id: str) -> BulkOperationHandle:
        """
        Fetch the current state of a bulk operation.

        A just-created operation can briefly be invisible to the status
        query, so a missing node is retried a bounded number of times.

        Args:
            operation_id: Bulk operation global id

        Returns:
            BulkOperationHandle: New snapshot

        Raises:
            BulkOperationNotFoundException: The operation never showed up
        """
        max_attempts = self.settings.BULK_NOT_FOUND_RETRIES + 1

        for attempt in range(1, max_attempts + 1):
            result = await self.shopify_client.execute(BULK_OPERATION_STATUS_QUERY, {"id": operation_id})

            operation = result.get("node")
            if operation:
                handle = BulkOperationHandle.from_api(operation)
                logger.debug(
                    f"Bulk operation {operation_id} status: {handle.status.value} "
                    f"({handle.object_count} objects)"
                )
                return handle

            if attempt < max_attempts:
                logger.warning(
                    f"Bulk operation {operation_id} not found, retrying "
                    f"({attempt}/{self.settings.BULK_NOT_FOUND_RETRIES})"
                )
                await self._sleep(self.settings.BULK_NOT_FOUND_DELAY_SECONDS)

        raise BulkOperationNotFoundException(operation_id, attempts=max_attempts)

    async def get_bulk_operation_status(self, operation_id: str) -> Dict[str, Any]:
        """
        Get the status of a bulk operation as a plain dictionary.

        Args:
            operation_id: Bulk operation global id

        Returns:
            Dict: Operation status
        """
        handle = await self.poll_bulk_operation_status(operation_id)
        return handle.to_dict()

    async def download_and_parse_results(self, download_url: str) -> List[Any]:
        """
        Download and parse the results of a bulk operation.

        Args:
            download_url: Result file URL

        Returns:
            List: Parsed records
        """
        logger.info(f"Downloading bulk results from: {urlparse(download_url).netloc}")
        return await parse_jsonl(self.shopify_client.iter_download(download_url))

    async def execute_bulk_operation(
        self,
        operation_body: str,
        is_mutation: bool = False,
        output_path: Optional[str] = None,
        poll_interval_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ) -> Optional[List[Any]]:
        """
        Run a bulk operation to completion.

        Args:
            operation_body: GraphQL query (or mutation) to run in bulk
            is_mutation: Start a bulk mutation instead of a bulk query
            output_path: File receiving the records as a JSON array
            poll_interval_seconds: Wait between status polls
            timeout_seconds: Wall-clock budget, measured from the start call

        Returns:
            List of records, or None when they were written to output_path

        Raises:
            BulkOperationTimeoutException: No terminal state within the budget
            BulkOperationFailedException: The operation ended FAILED, CANCELLED or EXPIRED
        """
        poll_interval = (
            self.settings.BULK_POLL_INTERVAL_SECONDS if poll_interval_seconds is None else poll_interval_seconds
        )
        timeout = self.settings.BULK_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds

        start_time = self._clock()
        handle = await self.start_bulk_operation(operation_body, is_mutation)
        context_token = current_operation_id.set(handle.id)

        try:
            polls = 0
            while not handle.is_terminal and self._clock() - start_time < timeout:
                await self._sleep(poll_interval)
                handle = await self.poll_bulk_operation_status(handle.id)
                polls += 1

            wait_seconds = self._clock() - start_time

            if not handle.is_terminal:
                timeout_error = BulkOperationTimeoutException(
                    handle.id,
                    last_status=handle.status.value,
                    timeout_seconds=timeout,
                    elapsed=wait_seconds,
                )
                log_error(timeout_error, context={"operation_id": handle.id, "polls": polls})
                raise timeout_error

            if handle.status.is_failure:
                failure = BulkOperationFailedException(
                    handle.id,
                    status=handle.status.value,
                    error_code_value=handle.error_code,
                    details={"partial_data_url": handle.partial_data_url},
                )
                log_error(failure, context={"operation_id": handle.id, "partial_data_url": handle.partial_data_url})
                raise failure

            if handle.status == BulkOperationStatus.COMPLETED and handle.url:
                records = await self.download_and_parse_results(handle.url)
            else:
                logger.info(f"Bulk operation {handle.id} completed without results")
                records = []

            stats = {
                "operation_id": handle.id,
                "polls": polls,
                "wait_seconds": round(wait_seconds, 3),
                "download_seconds": round(self._clock() - start_time - wait_seconds, 3),
                "object_count": handle.object_count,
                "file_size": handle.file_size,
                "records": len(records),
            }
            logger.info(
                f"Bulk operation completed: {len(records)} records in {stats['wait_seconds']:.2f}s",
                extra={"stats": stats},
            )

            if output_path:
                await self._write_results(output_path, records)
                return None

            return records
        finally:
            current_operation_id.reset(context_token)

    async def _write_results(self, output_path: str, records: List[Any]) -> None:
        """Write the records as one UTF-8 JSON array, replacing any existing file."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(path, "w", encoding="utf-8") as output_file:
            await output_file.write(json.dumps(records, indent=2, ensure_ascii=False))

        logger.info(f"Results written to {path}: {len(records)} records")
