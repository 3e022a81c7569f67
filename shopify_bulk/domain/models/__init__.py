"""
Domain models.
"""

from .bulk_operation import BulkOperationHandle, BulkOperationStatus

__all__ = ["BulkOperationHandle", "BulkOperationStatus"]
