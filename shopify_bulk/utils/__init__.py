"""Shared utilities: errors, retries and Shopify helpers."""
