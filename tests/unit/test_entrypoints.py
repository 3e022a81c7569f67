"""Tests for the public entry points."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import TOKEN
from shopify_bulk import run_bulk_mutation, run_bulk_query
from shopify_bulk.utils.error_handler import ErrorCode, ValidationException

QUERY = "{ products { edges { node { id } } } }"
MUTATION = "mutation call($input: ProductInput!) { productUpdate(input: $input) { product { id } } }"


@pytest.fixture
def patched_run():
    """Replace the client and service so no request can leave the test."""
    with (
        patch("shopify_bulk.entrypoints.ShopifyGraphQLClient") as client_cls,
        patch("shopify_bulk.entrypoints.ShopifyBulkOperations") as service_cls,
    ):
        client = MagicMock()
        client_cls.return_value.__aenter__.return_value = client
        service_cls.return_value.execute_bulk_operation = AsyncMock(return_value=[{"id": 1}])
        yield client_cls, service_cls


class TestValidation:
    """Tests for argument validation before any network call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "   "])
    async def test_missing_access_token(self, patched_run, settings, token):
        """Should reject a missing token and never build a client."""
        client_cls, _ = patched_run

        with pytest.raises(ValidationException) as exc_info:
            await run_bulk_query("test-store", token, QUERY, settings=settings)

        assert exc_info.value.field == "access_token"
        assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR
        assert exc_info.value.details["invalid_value"] is None
        client_cls.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("shop", ["", "https://", "/", "http:///path"])
    async def test_missing_shop(self, patched_run, settings, shop):
        """Should reject a shop with no domain in it."""
        client_cls, _ = patched_run

        with pytest.raises(ValidationException) as exc_info:
            await run_bulk_query(shop, TOKEN, QUERY, settings=settings)

        assert exc_info.value.field == "shop"
        client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_query_is_reported_by_name(self, patched_run, settings):
        """Should name the query argument in the error."""
        with pytest.raises(ValidationException) as exc_info:
            await run_bulk_query("test-store", TOKEN, " ", settings=settings)

        assert exc_info.value.field == "query"

    @pytest.mark.asyncio
    async def test_missing_mutation_is_reported_by_name(self, patched_run, settings):
        """Should name the mutation argument in the error."""
        with pytest.raises(ValidationException) as exc_info:
            await run_bulk_mutation("test-store", TOKEN, None, settings=settings)

        assert exc_info.value.field == "mutation"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["poll_interval_seconds", "timeout_seconds"])
    async def test_intervals_must_be_positive(self, patched_run, settings, field):
        """Should reject zero or negative timing values."""
        with pytest.raises(ValidationException) as exc_info:
            await run_bulk_query("test-store", TOKEN, QUERY, settings=settings, **{field: 0})

        assert exc_info.value.field == field


class TestRun:
    """Tests for delegation to the bulk service."""

    @pytest.mark.asyncio
    async def test_query_run_delegates_with_normalized_shop(self, patched_run, settings):
        """Should normalize the shop and run a bulk query."""
        client_cls, service_cls = patched_run

        result = await run_bulk_query(
            "https://Test-Store.myshopify.com/", TOKEN, QUERY, timeout_seconds=60, settings=settings
        )

        assert result == [{"id": 1}]
        client_cls.assert_called_once_with("test-store.myshopify.com", TOKEN, settings=settings)
        service_cls.return_value.execute_bulk_operation.assert_awaited_once_with(
            QUERY,
            is_mutation=False,
            output_path=None,
            poll_interval_seconds=None,
            timeout_seconds=60,
        )

    @pytest.mark.asyncio
    async def test_mutation_run_sets_flag_and_warns(self, patched_run, settings, caplog):
        """Should run a bulk mutation and log the staged upload advisory."""
        _, service_cls = patched_run
        caplog.set_level(logging.WARNING, logger="shopify_bulk.entrypoints")

        await run_bulk_mutation("test-store", TOKEN, MUTATION, output_path="out.json", settings=settings)

        kwargs = service_cls.return_value.execute_bulk_operation.call_args.kwargs
        assert kwargs["is_mutation"] is True
        assert kwargs["output_path"] == "out.json"
        assert any("staged upload" in record.getMessage() for record in caplog.records)

    @pytest.mark.asyncio
    async def test_query_run_does_not_warn(self, patched_run, settings, caplog):
        """Should not log the mutation advisory for queries."""
        caplog.set_level(logging.WARNING, logger="shopify_bulk.entrypoints")

        await run_bulk_query("test-store", TOKEN, QUERY, settings=settings)

        assert not caplog.records
