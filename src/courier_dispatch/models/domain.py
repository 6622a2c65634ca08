"""Domain models for stores, customers, drivers and their orders."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ReturnOption(str, Enum):
    """Where the driver goes after the last delivery."""

    NONE = "none"
    ORIGINAL = "original"
    NEAREST = "nearest"


class DriverStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

    @classmethod
    def from_flag(cls, is_active: object) -> "DriverStatus":
        return cls.ACTIVE if is_active else cls.INACTIVE


class BatchStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(slots=True)
class Store:
    """A pickup location and the origin of every delivery route."""

    store_id: str
    name: str
    address: str
    is_active: bool = True


@dataclass(slots=True)
class CustomerAddress:
    label: str
    address: str


@dataclass(slots=True)
class Customer:
    """A customer with every address the dashboard knows about."""

    customer_id: str
    full_name: str
    addresses: list[CustomerAddress] = field(default_factory=list)
    homeaddress: Optional[str] = None
    workaddress: Optional[str] = None


@dataclass(slots=True)
class Destination:
    """A customer together with the one address chosen for the current plan."""

    customer: Customer
    address: str
    label: Optional[str] = None

    @property
    def customer_id(self) -> str:
        return self.customer.customer_id

    @property
    def name(self) -> str:
        return self.customer.full_name


@dataclass(slots=True)
class Driver:
    driver_id: str
    full_name: str
    email: Optional[str]
    status: DriverStatus = DriverStatus.ACTIVE
    active_order_count: int = 0


@dataclass(slots=True)
class PriorOrder:
    """The most recent order of a driver, reduced to its timeline fields."""

    order_id: Optional[str]
    completiontime: Optional[datetime] = None
    estimated_delivery_time: Optional[datetime] = None
    reached_customer_at: Optional[datetime] = None
    on_the_way_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
