"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.
"""

from pydantic import BaseModel, Field


class InvoiceItemRequest(BaseModel):
    """A line item on a new invoice."""

    description: str = Field(..., min_length=1, max_length=500)
    quantity: float = Field(default=1.0, gt=0)
    unit_price: float = Field(..., ge=0)


class QueueInvoiceRequest(BaseModel):
    """Request to create an invoice locally and queue it for sync.

    Totals are computed on the device at the standard 7.5% VAT rate.
    """

    customer_name: str | None = Field(
        default=None,
        max_length=200,
        examples=["Adaeze Stores"],
    )
    items: list[InvoiceItemRequest] = Field(..., min_length=1)


class SetApiBaseUrlRequest(BaseModel):
    """Override the remote API base URL stored on the device."""

    url: str = Field(
        ...,
        description="Absolute http(s) URL of the remote API",
        examples=["https://api.taxbridge.ng"],
    )
