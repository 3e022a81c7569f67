"""
Bulk operation services: lifecycle orchestration and JSONL parsing.
"""

from .bulk_operations import ShopifyBulkOperations
from .jsonl_parser import dumps_jsonl, parse_jsonl

__all__ = ["ShopifyBulkOperations", "parse_jsonl", "dumps_jsonl"]
