"""
Shopify Admin GraphQL client.

This module provides the transport used by the bulk operation service:
session management, a single GraphQL POST with HTTP and GraphQL-layer
validation, retries with exponential backoff, and a streaming download of
bulk result files.
"""

import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp
from aiohttp import ClientTimeout

from shopify_bulk.core.config import Settings, get_settings
from shopify_bulk.core.logging_config import log_api_call
from shopify_bulk.utils.error_handler import (
    AppException,
    GraphQLException,
    HttpStatusException,
    NetworkException,
)
from shopify_bulk.utils.retry_handler import RetryHandler, RetryPolicy

logger = logging.getLogger(__name__)


class ShopifyGraphQLClient:
    """
    Client for the Shopify Admin GraphQL API.

    One client serves one shop and one access token. It can be used as an
    async context manager, or initialized and closed explicitly.
    """

    def __init__(
        self,
        shop: str,
        access_token: str,
        settings: Optional[Settings] = None,
        session: Optional[aiohttp.ClientSession] = None,
        max_retries: Optional[int] = None,
        retry_handler: Optional[RetryHandler] = None,
    ):
        """
        Initialize the client.

        Args:
            shop: Normalized shop domain (e.g. 'my-store.myshopify.com')
            access_token: Admin API access token
            settings: Package settings, defaults to the environment ones
            session: Existing aiohttp session; the caller keeps ownership
            max_retries: Retries after the first attempt, defaults to SHOPIFY_MAX_RETRIES
            retry_handler: Retry handler, built from settings when omitted
        """
        self.settings = settings or get_settings()
        self.shop = shop
        self.access_token = access_token
        self.graphql_url = self.settings.graphql_url(shop)

        self.session = session
        self._owns_session = session is None
        self.retry_handler = retry_handler or RetryHandler(
            name=f"shopify_graphql[{shop}]",
            retry_policy=RetryPolicy.from_settings(self.settings, max_retries=max_retries),
        )

    async def initialize(self):
        """Create the HTTP session if the client does not have one yet."""
        if self.session is None:
            timeout = ClientTimeout(
                total=self.settings.HTTP_TIMEOUT_SECONDS,
                connect=self.settings.HTTP_CONNECT_TIMEOUT_SECONDS,
            )
            self.session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
            logger.debug(f"Initialized Shopify GraphQL client for {self.shop}")

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self.session and self._owns_session:
            await self.session.close()
            logger.debug("Shopify GraphQL client closed")
        self.session = None

    async def __aenter__(self) -> "ShopifyGraphQLClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute a GraphQL document with retries for transient failures.

        Args:
            query: GraphQL query or mutation string
            variables: Query variables

        Returns:
            Dict: The response `data` mapping

        Raises:
            GraphQLException: The response carried GraphQL errors or no data
            HttpStatusException: Non-2xx response (after retries for 429/5xx)
            NetworkException: Connection-level failure after retries
        """
        if self.session is None:
            await self.initialize()

        payload = {"query": query, "variables": variables or {}}
        return await self.retry_handler.execute(self._post, payload, context={"shop": self.shop})

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a single POST attempt and validate the response.

        Args:
            payload: JSON body with query and variables

        Returns:
            Dict: The response `data` mapping
        """
        headers = self.settings.get_shopify_headers(self.access_token)
        start = time.monotonic()

        try:
            async with self.session.post(self.graphql_url, json=payload, headers=headers) as response:
                status = response.status
                raw = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkException(
                f"Network error calling {self.graphql_url}: {type(e).__name__}: {e}",
                endpoint=self.graphql_url,
            ) from e

        log_api_call("POST", self.graphql_url, status, time.monotonic() - start, shop=self.shop)

        if not 200 <= status < 300:
            raise HttpStatusException(
                f"Shopify API request failed for {self.shop}: HTTP {status}",
                api_response_code=status,
                body=raw.decode("utf-8", "replace"),
                endpoint=self.graphql_url,
            )

        try:
            response_data = json.loads(raw)
        except ValueError as e:
            raise GraphQLException([f"Invalid JSON response body: {e}"], endpoint=self.graphql_url) from e

        if not isinstance(response_data, dict):
            raise GraphQLException(["Response body is not a JSON object"], endpoint=self.graphql_url)

        errors = response_data.get("errors")
        if errors:
            if isinstance(errors, list):
                error_messages = [
                    err.get("message", str(err)) if isinstance(err, dict) else str(err) for err in errors
                ]
            else:
                error_messages = [str(errors)]
            logger.error(f"Shopify GraphQL errors for {self.shop}: {error_messages}")
            raise GraphQLException(error_messages, endpoint=self.graphql_url)

        data = response_data.get("data")
        if data is None:
            raise GraphQLException(["Response missing data field despite OK status"], endpoint=self.graphql_url)

        return data

    async def iter_download(self, url: str) -> AsyncIterator[bytes]:
        """
        Stream a bulk result file.

        The file lives on a signed storage URL, so it is fetched with a
        separate session that does not carry the access token. The response
        is released when the generator is closed, on every exit path.

        Args:
            url: Result URL handed back by the status poll

        Yields:
            bytes: Raw chunks of the file

        Raises:
            HttpStatusException: Non-2xx download response
            NetworkException: Connection-level failure
        """
        timeout = ClientTimeout(
            total=None,
            connect=self.settings.HTTP_CONNECT_TIMEOUT_SECONDS,
            sock_read=self.settings.HTTP_TIMEOUT_SECONDS,
        )
        start = time.monotonic()

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    log_api_call("GET", url.split("?", 1)[0], response.status, time.monotonic() - start)

                    if not 200 <= response.status < 300:
                        raise HttpStatusException(
                            f"Failed to download results: HTTP {response.status}",
                            api_response_code=response.status,
                            body=(await response.read()).decode("utf-8", "replace"),
                        )

                    logger.debug(f"Result Content-Type: {response.headers.get('Content-Type')}")

                    async for chunk in response.content.iter_chunked(self.settings.DOWNLOAD_CHUNK_SIZE):
                        yield chunk
        except AppException:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkException(f"Network error downloading results: {type(e).__name__}: {e}") from e
