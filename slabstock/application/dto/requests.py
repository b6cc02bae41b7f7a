"""Request DTOs for reservation operations.

Pydantic v2 models for request validation.
These are the ONLY contracts between callers and use cases.
"""

from pydantic import BaseModel, Field, model_validator


class CreateReservationRequest(BaseModel):
    """Request to reserve a batch.

    Exactly one of ``lead_id`` or the customer name/contact pair.
    """

    batch_id: str = Field(..., min_length=1, description="Batch to reserve")
    lead_id: str | None = Field(default=None, description="Existing lead ID")
    customer_name: str | None = Field(
        default=None,
        min_length=2,
        max_length=255,
        description="Customer name when no lead is linked",
    )
    customer_contact: str | None = Field(
        default=None,
        max_length=255,
        description="Customer email or phone when no lead is linked",
    )
    expires_at: str | None = Field(
        default=None,
        description="ISO-8601 expiry with offset; defaults to the configured TTL",
        examples=["2026-11-01T18:00:00Z"],
    )
    notes: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _check_party(self) -> "CreateReservationRequest":
        has_customer = bool(self.customer_name) and bool(self.customer_contact)
        if self.lead_id and (self.customer_name or self.customer_contact):
            raise ValueError("provide either lead_id or customer details, not both")
        if not self.lead_id and not has_customer:
            raise ValueError("lead_id or both customer_name and customer_contact are required")
        return self


class ConfirmSaleRequest(BaseModel):
    """Request to convert an active reservation into a sale."""

    final_sold_price: float = Field(
        ...,
        gt=0,
        description="Total price charged to the customer",
        examples=[500.00],
    )
    invoice_url: str | None = Field(default=None, max_length=2048)
    notes: str | None = Field(default=None, max_length=1000)
