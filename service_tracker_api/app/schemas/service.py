"""
Pydantic models for service records.

``ServiceType`` carries the fixed price table.  ``ServiceCreate`` is
the submission body, ``ServiceRead`` the stored record.  Monthly and
per‑type summaries are returned as ``MonthGroupRead`` and
``TypeSummaryRead``.
"""

import enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ServiceType(str, enum.Enum):
    ASSEMBLY = "ASSEMBLY"
    ACRYLIZATION = "ACRYLIZATION"
    BAR = "BAR"
    WAX_PLAN = "WAX_PLAN"
    PREP = "PREP"
    SECOND_ASSEMBLY = "SECOND_ASSEMBLY"

    @property
    def price(self) -> float:
        return SERVICE_PRICES[self]

    @property
    def label(self) -> str:
        return SERVICE_LABELS[self]


# Unit price charged per service type.  Prices are copied onto a record
# when it is created, so editing this table never changes old records.
SERVICE_PRICES = {
    ServiceType.ASSEMBLY: 5.0,
    ServiceType.ACRYLIZATION: 5.0,
    ServiceType.BAR: 6.0,
    ServiceType.WAX_PLAN: 2.0,
    ServiceType.PREP: 2.0,
    ServiceType.SECOND_ASSEMBLY: 2.5,
}

SERVICE_LABELS = {
    ServiceType.ASSEMBLY: "Montagem",
    ServiceType.ACRYLIZATION: "Acrilização",
    ServiceType.BAR: "Barra",
    ServiceType.WAX_PLAN: "Plano de cera",
    ServiceType.PREP: "Preparo",
    ServiceType.SECOND_ASSEMBLY: "Segunda montagem",
}


class ListScope(str, enum.Enum):
    """Which records a listing covers."""

    DEFAULT = "default"
    ADMIN_ALL = "admin-all"
    ADMIN_PENDING = "admin-pending"


class ServiceCreate(BaseModel):
    """Schema for submitting a new service.

    ``price`` defaults to the price table entry for ``service_type``.
    Validation of the title and price happens in the service layer so
    that failures are reported the same way for every client.
    """

    service_type: ServiceType = Field(..., example="PREP")
    title: str = Field(..., example="1001")
    price: Optional[float] = Field(None, example=2.0)
    admin_override: bool = Field(False, example=False)


class ServiceRead(BaseModel):
    """Schema for reading a service record from the API."""

    id: str
    title: str
    service_type: str
    price: float
    user_id: str
    username: str
    created_at: str
    include_in_total: bool
    admin_override: bool
    version: int = 1

    model_config = {
        "from_attributes": True,
    }


class ServiceTypeRead(BaseModel):
    service_type: ServiceType
    label: str
    price: float


class MonthGroupRead(BaseModel):
    month: str
    count: int
    included_total: float
    pending_total: float
    included_total_display: str
    pending_total_display: str
    is_current_month: bool
    services: List[ServiceRead]


class TypeSummaryRead(BaseModel):
    service_type: str
    label: str
    count: int
    included_total: float
    pending_total: float


class DuplicateCheckRead(BaseModel):
    """Result of a duplicate title lookup.

    ``superseded`` is true when a newer lookup from the same user
    replaced this one; clients must ignore the rest of the body then.
    """

    title: str
    is_duplicate: bool = False
    matches: List[ServiceRead] = []
    superseded: bool = False
