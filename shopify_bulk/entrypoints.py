"""
Public entry points for running bulk queries and bulk mutations.

Each call validates its input, then owns its own GraphQL client and bulk
service for the whole run, so independent runs can share an event loop.
"""

import logging
from typing import Any, List, Optional

from shopify_bulk.clients.graphql_client import ShopifyGraphQLClient
from shopify_bulk.core.config import Settings, get_settings
from shopify_bulk.schemas import BulkRunRequest
from shopify_bulk.services.bulk_operations import ShopifyBulkOperations

logger = logging.getLogger(__name__)


async def _run(request: BulkRunRequest, settings: Optional[Settings]) -> Optional[List[Any]]:
    settings = settings or get_settings()

    async with ShopifyGraphQLClient(request.shop, request.access_token, settings=settings) as client:
        service = ShopifyBulkOperations(client, settings=settings)
        return await service.execute_bulk_operation(
            request.operation_body,
            is_mutation=request.is_mutation,
            output_path=request.output_path,
            poll_interval_seconds=request.poll_interval_seconds,
            timeout_seconds=request.timeout_seconds,
        )


async def run_bulk_query(
    shop: str,
    access_token: str,
    query: str,
    output_path: Optional[str] = None,
    poll_interval_seconds: Optional[float] = None,
    timeout_seconds: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> Optional[List[Any]]:
    """
    Run a bulk query, wait for it and return or save the results.

    Args:
        shop: Shop domain (e.g. 'your-store.myshopify.com') or store name
        access_token: Admin API access token
        query: GraphQL query to run in bulk,
            e.g. ``{ products { edges { node { id title } } } }``
        output_path: If given, the results are saved there as a JSON array
        poll_interval_seconds: Wait between status polls (default 5s)
        timeout_seconds: Overall budget (default 300s)
        settings: Package settings, defaults to the environment ones

    Returns:
        List of records, or None when the results were saved to output_path

    Raises:
        ValidationException: Missing or invalid arguments, before any network call
        AppException: The operation failed, timed out or hit an API error
    """
    request = BulkRunRequest.parse(
        body_name="query",
        shop=shop,
        access_token=access_token,
        operation_body=query,
        is_mutation=False,
        output_path=output_path,
        poll_interval_seconds=poll_interval_seconds,
        timeout_seconds=timeout_seconds,
    )
    return await _run(request, settings)


async def run_bulk_mutation(
    shop: str,
    access_token: str,
    mutation: str,
    output_path: Optional[str] = None,
    poll_interval_seconds: Optional[float] = None,
    timeout_seconds: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> Optional[List[Any]]:
    """
    Run a bulk mutation, wait for it and return or save the results.

    Bulk mutations usually read their input from a staged upload created
    beforehand with stagedUploadsCreate. The mutation is sent as given.

    Args:
        shop: Shop domain (e.g. 'your-store.myshopify.com') or store name
        access_token: Admin API access token
        mutation: GraphQL mutation to run in bulk
        output_path: If given, the results are saved there as a JSON array
        poll_interval_seconds: Wait between status polls (default 5s)
        timeout_seconds: Overall budget (default 300s)
        settings: Package settings, defaults to the environment ones

    Returns:
        List of result lines, or None when they were saved to output_path

    Raises:
        ValidationException: Missing or invalid arguments, before any network call
        AppException: The operation failed, timed out or hit an API error
    """
    request = BulkRunRequest.parse(
        body_name="mutation",
        shop=shop,
        access_token=access_token,
        operation_body=mutation,
        is_mutation=True,
        output_path=output_path,
        poll_interval_seconds=poll_interval_seconds,
        timeout_seconds=timeout_seconds,
    )

    logger.warning(
        "Ensure the mutation is formatted for bulkOperationRunMutation; "
        "bulk mutations normally reference a staged upload"
    )

    return await _run(request, settings)
