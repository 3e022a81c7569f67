"""
Pydantic models for bulk run requests.
"""

from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from shopify_bulk.utils.error_handler import ValidationException
from shopify_bulk.utils.shopify_utils import normalize_shop_domain


class BulkRunRequest(BaseModel):
    """Validated input of a bulk query or bulk mutation run."""

    shop: str
    access_token: str
    operation_body: str
    is_mutation: bool = False
    output_path: Optional[str] = None
    poll_interval_seconds: Optional[float] = Field(default=None, gt=0)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)

    model_config = {"frozen": True}

    @field_validator("shop", "access_token", "operation_body")
    @classmethod
    def validate_not_blank(cls, v):
        """Rejects empty and whitespace-only values."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("shop")
    @classmethod
    def normalize_shop(cls, v):
        """Turns store names and shop URLs into the bare shop domain."""
        return normalize_shop_domain(v)

    @field_validator("output_path")
    @classmethod
    def validate_output_path(cls, v):
        """Treats a blank output path as no output path."""
        if v is not None and not v.strip():
            return None
        return v

    @classmethod
    def parse(cls, body_name: str = "operation_body", **values) -> "BulkRunRequest":
        """
        Build a request, reporting the first invalid field as a ValidationException.

        Args:
            body_name: Caller-facing name of the operation body ('query' or 'mutation')
            **values: Request fields

        Raises:
            ValidationException: If any field is missing or invalid
        """
        try:
            return cls(**values)
        except ValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else "request"
            invalid_value = values.get(field)
            if field == "operation_body":
                field = body_name
            raise ValidationException(
                message=f"Invalid {field}: {error['msg']}",
                field=field,
                invalid_value=invalid_value,
            ) from e
