"""
Shopify Admin GraphQL bulk operations.

Starts a bulk query or bulk mutation, waits for it to finish, then returns
the parsed JSONL results or saves them to a file.
"""

from .clients.graphql_client import ShopifyGraphQLClient
from .core.config import Settings, get_settings
from .domain.models.bulk_operation import BulkOperationHandle, BulkOperationStatus
from .entrypoints import run_bulk_mutation, run_bulk_query
from .services.bulk_operations import ShopifyBulkOperations
from .services.jsonl_parser import dumps_jsonl, parse_jsonl
from .utils.error_handler import (
    AppException,
    BulkOperationFailedException,
    BulkOperationNotFoundException,
    BulkOperationStartException,
    BulkOperationTimeoutException,
    GraphQLException,
    HttpStatusException,
    JsonlParseException,
    NetworkException,
    TransportException,
    UserErrorsException,
    ValidationException,
)

__version__ = "0.1.0"

__all__ = [
    "run_bulk_query",
    "run_bulk_mutation",
    "ShopifyBulkOperations",
    "ShopifyGraphQLClient",
    "BulkOperationHandle",
    "BulkOperationStatus",
    "Settings",
    "get_settings",
    "parse_jsonl",
    "dumps_jsonl",
    "AppException",
    "ValidationException",
    "TransportException",
    "NetworkException",
    "HttpStatusException",
    "GraphQLException",
    "UserErrorsException",
    "BulkOperationStartException",
    "BulkOperationNotFoundException",
    "BulkOperationFailedException",
    "BulkOperationTimeoutException",
    "JsonlParseException",
]
