"""
Bulk operation domain model.

A BulkOperationHandle is an immutable snapshot of a server-side bulk job as
reported by one API call. Polling produces a new snapshot each time.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from shopify_bulk.utils.error_handler import AppException


class BulkOperationStatus(str, Enum):
    """Bulk operation states."""

    CREATED = "CREATED"
    RUNNING = "RUNNING"
    CANCELING = "CANCELING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELED"
    EXPIRED = "EXPIRED"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str) and value.upper() == "CANCELLED":
            return cls.CANCELLED
        return None

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_failure(self) -> bool:
        return self in FAILURE_STATUSES


FAILURE_STATUSES = frozenset(
    {BulkOperationStatus.FAILED, BulkOperationStatus.CANCELLED, BulkOperationStatus.EXPIRED}
)
TERMINAL_STATUSES = FAILURE_STATUSES | {BulkOperationStatus.COMPLETED}


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class BulkOperationHandle:
    """
    Snapshot of a bulk operation.

    Attributes:
        id: Opaque global id (gid://shopify/BulkOperation/...)
        status: Current state
        url: Result file URL, only set once COMPLETED with results
        partial_data_url: Partial results URL of a FAILED operation
        error_code: API error code of a failed operation
        object_count: Number of objects processed so far
        file_size: Result file size in bytes
        created_at: Creation time
        completed_at: Completion time
    """

    id: str
    status: BulkOperationStatus
    url: str | None = None
    partial_data_url: str | None = None
    error_code: str | None = None
    object_count: int = 0
    file_size: int = 0
    created_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "BulkOperationHandle":
        """
        Build a snapshot from a BulkOperation GraphQL object.

        Args:
            payload: BulkOperation fields as returned by the API

        Returns:
            BulkOperationHandle: Immutable snapshot

        Raises:
            AppException: If the id or status is missing or unknown, or a counter
                or timestamp cannot be converted
        """
        operation_id = payload.get("id")
        raw_status = payload.get("status")
        if not operation_id or not raw_status:
            raise AppException(
                message="Bulk operation payload is missing id or status", details={"payload": dict(payload)}
            )

        try:
            status = BulkOperationStatus(raw_status)
        except ValueError as e:
            raise AppException(
                message=f"Unknown bulk operation status: {raw_status}",
                details={"operation_id": operation_id, "status": raw_status},
            ) from e

        try:
            # Shopify serializes these UnsignedInt64 fields as strings
            object_count = int(payload.get("objectCount") or 0)
            file_size = int(payload.get("fileSize") or 0)
            created_at = _parse_timestamp(payload.get("createdAt"))
            completed_at = _parse_timestamp(payload.get("completedAt"))
        except (TypeError, ValueError) as e:
            raise AppException(
                message=f"Malformed bulk operation payload: {e}", details={"operation_id": operation_id}
            ) from e

        return cls(
            id=operation_id,
            status=status,
            url=payload.get("url") or None,
            partial_data_url=payload.get("partialDataUrl") or None,
            error_code=payload.get("errorCode"),
            object_count=object_count,
            file_size=file_size,
            created_at=created_at,
            completed_at=completed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "error_code": self.error_code,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "object_count": self.object_count,
            "file_size": self.file_size,
            "download_url": self.url,
            "partial_data_url": self.partial_data_url,
        }
