"""
Shopify API clients.
"""

from .graphql_client import ShopifyGraphQLClient

__all__ = ["ShopifyGraphQLClient"]
