"""Response DTOs for reservation operations.

Pydantic v2 models for response serialization. Money is exposed as
float amounts; the ledger keeps integer cents.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from slabstock.core.entities import Batch, Lead, Reservation, Sale


class BatchSummaryResponse(BaseModel):
    """Batch fields shown alongside a reservation."""

    id: str
    batch_code: str
    status: str
    quantity_slabs: int
    available_slabs: int
    total_area: float = Field(..., description="Total area in m²")
    industry_price: float
    price_unit: str
    entry_date: date

    @classmethod
    def from_entity(cls, batch: Batch) -> "BatchSummaryResponse":
        return cls(
            id=batch.id,
            batch_code=batch.batch_code,
            status=batch.status.value,
            quantity_slabs=batch.quantity_slabs,
            available_slabs=batch.available_slabs or 0,
            total_area=batch.total_area,
            industry_price=batch.industry_price,
            price_unit=batch.price_unit.value,
            entry_date=batch.entry_date,
        )


class LeadSummaryResponse(BaseModel):
    id: str
    name: str
    contact: str

    @classmethod
    def from_entity(cls, lead: Lead) -> "LeadSummaryResponse":
        return cls(id=lead.id, name=lead.name, contact=lead.preferred_contact)


class ReservationResponse(BaseModel):
    """Reservation response DTO."""

    id: str = Field(..., description="Reservation ID")
    batch_id: str
    reserved_by_user_id: str
    lead_id: str | None = None
    customer_name: str | None = None
    customer_contact: str | None = None
    status: str
    notes: str | None = None
    reserved_price: float | None = Field(
        default=None, description="Industry price when the reservation was made"
    )
    expires_at: datetime
    created_at: datetime
    is_active: bool
    batch: BatchSummaryResponse | None = None
    lead: LeadSummaryResponse | None = None

    @classmethod
    def from_entity(cls, reservation: Reservation) -> "ReservationResponse":
        return cls(
            id=reservation.id,
            batch_id=reservation.batch_id,
            reserved_by_user_id=reservation.reserved_by_user_id,
            lead_id=reservation.lead_id,
            customer_name=reservation.customer_name,
            customer_contact=reservation.customer_contact,
            status=reservation.status.value,
            notes=reservation.notes,
            reserved_price=reservation.reserved_price,
            expires_at=reservation.expires_at,
            created_at=reservation.created_at,
            is_active=reservation.is_active,
            batch=BatchSummaryResponse.from_entity(reservation.batch)
            if reservation.batch
            else None,
            lead=LeadSummaryResponse.from_entity(reservation.lead) if reservation.lead else None,
        )


class ReservationListResponse(BaseModel):
    items: list[ReservationResponse]
    total: int


class SaleResponse(BaseModel):
    """Sale ledger entry."""

    id: str = Field(..., description="Sale ID")
    batch_id: str
    reservation_id: str
    sold_by_user_id: str
    industry_id: str
    lead_id: str | None = None
    customer_name: str
    customer_contact: str
    sale_price: float
    net_industry_value: float
    broker_commission: float
    price_unit: str
    invoice_url: str | None = None
    notes: str | None = None
    sale_date: datetime
    created_at: datetime

    @classmethod
    def from_entity(cls, sale: Sale) -> "SaleResponse":
        return cls(
            id=sale.id,
            batch_id=sale.batch_id,
            reservation_id=sale.reservation_id,
            sold_by_user_id=sale.sold_by_user_id,
            industry_id=sale.industry_id,
            lead_id=sale.lead_id,
            customer_name=sale.customer_name,
            customer_contact=sale.customer_contact,
            sale_price=sale.sale_price,
            net_industry_value=sale.net_industry_value,
            broker_commission=sale.broker_commission,
            price_unit=sale.price_unit.value,
            invoice_url=sale.invoice_url,
            notes=sale.notes,
            sale_date=sale.sale_date,
            created_at=sale.created_at,
        )


class ExpireReservationsResponse(BaseModel):
    expired: int = Field(..., description="Reservations moved to EXPIRED")
    found: int = Field(..., description="Candidates found by the scan")
    skipped: int = 0
    failed_ids: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error payload built from SlabstockError.to_dict()."""

    error: str
    message: str
    details: dict = Field(default_factory=dict)
