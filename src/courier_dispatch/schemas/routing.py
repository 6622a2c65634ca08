"""Routing and planning request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import ReturnOption


class CalculateRoutesRequest(BaseModel):
    origins: List[str] = Field(..., description="Store address first; only the first origin is used.")
    destinations: List[str] = Field(..., description="Delivery addresses to sequence.")


class CalculatedLeg(BaseModel):
    origin: str
    destination: str
    distance: str
    distanceValue: int
    duration: str
    durationValue: int


class CalculateRoutesResponse(BaseModel):
    success: bool
    legs: List[CalculatedLeg] = Field(default_factory=list)
    error: Optional[str] = None


class StoreSelection(BaseModel):
    store_id: str


class DriverSelection(BaseModel):
    driver_id: str


class CustomerSelection(BaseModel):
    customer_id: str
    address_label: Optional[str] = Field(
        default=None, description="Label of the address to deliver to. Defaults to the first known address."
    )


class DestinationsSelection(BaseModel):
    customers: List[CustomerSelection] = Field(..., min_length=1)


class ComputeRoutesRequest(BaseModel):
    return_option: ReturnOption = ReturnOption.NONE


class RouteLegModel(BaseModel):
    sequence_index: int
    kind: str
    origin: str
    destination: str
    distance: str
    distance_value: int
    duration: str
    duration_value: int
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    return_store_id: Optional[str] = None
    return_store_name: Optional[str] = None
    fallback: bool = False
    started_at: Optional[datetime] = None
    estimated_arrival: Optional[datetime] = None


class PlanningSessionResponse(BaseModel):
    session_id: str
    state: str
    last_store_id: Optional[str] = None
    store_id: Optional[str] = None
    driver_id: Optional[str] = None
    customer_ids: List[str] = Field(default_factory=list)
    return_option: Optional[ReturnOption] = None
    schedule_source: Optional[str] = None
    legs: List[RouteLegModel] = Field(default_factory=list)
    batch_id: Optional[str] = None


class ConfirmationResponse(BaseModel):
    session_id: str
    batch_id: str
    orders_created: int
    notifications_created: int


class DriverLoadModel(BaseModel):
    driver_id: str
    full_name: str
    email: Optional[str] = None
    status: str
    active_order_count: int
