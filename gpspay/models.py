"""
Domain models for GPS Pay registration.

Business drafts form a tagged union discriminated by ``business_type``; use
``new_draft`` or ``BusinessDraftAdapter`` to build one from raw data.
"""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class BusinessType(str, Enum):
    """Merchant categories that can register."""
    RESTAURANT = "restaurant"
    TOLL = "toll"
    OTHER = "other"


class ServiceType(str, Enum):
    UTILITY = "Utility"
    MAINTENANCE = "Maintenance"
    SUBSCRIPTION = "Subscription"
    EDUCATIONAL = "Educational"
    ENTERTAINMENT = "Entertainment"
    OTHER = "Other"


# Fixed draft-store keys, one per vertical
DRAFT_KEYS: Dict[BusinessType, str] = {
    BusinessType.RESTAURANT: "restaurant_data",
    BusinessType.TOLL: "toll_data",
    BusinessType.OTHER: "other_data",
}

# Record-store table each vertical's profile is written to
PROFILE_TABLES: Dict[BusinessType, str] = {
    BusinessType.RESTAURANT: "restaurants",
    BusinessType.TOLL: "toll_booths",
    BusinessType.OTHER: "other_services",
}


# -------------------------
# Account credentials
# -------------------------
class Credentials(BaseModel):
    email: str = ""
    password: str = ""
    password_confirmation: str = ""


# -------------------------
# Location
# -------------------------
class Coordinates(BaseModel):
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)

    @property
    def is_complete(self) -> bool:
        return self.lat is not None and self.lng is not None


# -------------------------
# Business drafts
# -------------------------
class MenuItem(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""
    price: Optional[Decimal] = Field(default=None, ge=0)
    description: str = ""


class DraftBase(BaseModel, ABC):
    """Fields shared by every vertical. Each vertical supplies the abstract members."""
    model_config = ConfigDict(validate_assignment=True)

    address: str = ""
    coordinates: Coordinates = Field(default_factory=Coordinates)
    upi_id: str = ""

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Name sent as the account's ``full_name``."""

    @abstractmethod
    def required_business_fields(self) -> List[str]:
        """Values that must be non-empty before leaving the business-info step."""

    @abstractmethod
    def to_record(self, user_id: str) -> Dict[str, Any]:
        """Row written to the vertical's profile table."""


class RestaurantDraft(DraftBase):
    business_type: Literal[BusinessType.RESTAURANT] = BusinessType.RESTAURANT
    name: str = ""
    menu_items: List[MenuItem] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name

    def required_business_fields(self) -> List[str]:
        return [self.name, self.address]

    def to_record(self, user_id: str) -> Dict[str, Any]:
        return {
            "user_id": user_id,
            "name": self.name,
            "address": self.address,
            "latitude": self.coordinates.lat,
            "longitude": self.coordinates.lng,
            "upi_id": self.upi_id,
            "menu_items": [item.model_dump(mode="json") for item in self.menu_items],
        }


class TollDraft(DraftBase):
    business_type: Literal[BusinessType.TOLL] = BusinessType.TOLL
    name: str = ""

    @property
    def display_name(self) -> str:
        return self.name

    def required_business_fields(self) -> List[str]:
        return [self.name, self.address]

    def to_record(self, user_id: str) -> Dict[str, Any]:
        return {
            "user_id": user_id,
            "name": self.name,
            "address": self.address,
            "latitude": self.coordinates.lat,
            "longitude": self.coordinates.lng,
            "upi_id": self.upi_id,
        }


class OtherServiceDraft(DraftBase):
    business_type: Literal[BusinessType.OTHER] = BusinessType.OTHER
    service_name: str = ""
    service_type: Optional[ServiceType] = None

    @property
    def display_name(self) -> str:
        return self.service_name

    def required_business_fields(self) -> List[str]:
        return [self.service_name, self.service_type.value if self.service_type else "", self.address]

    def to_record(self, user_id: str) -> Dict[str, Any]:
        # PostGIS expects WKT with longitude first
        return {
            "user_id": user_id,
            "name": self.service_name,
            "service_type": self.service_type.value if self.service_type else None,
            "address": self.address,
            "location": f"POINT({self.coordinates.lng} {self.coordinates.lat})",
            "upi_id": self.upi_id,
        }


BusinessDraft = Annotated[
    Union[RestaurantDraft, TollDraft, OtherServiceDraft],
    Field(discriminator="business_type"),
]

BusinessDraftAdapter = TypeAdapter(BusinessDraft)


def new_draft(business_type: BusinessType) -> DraftBase:
    return BusinessDraftAdapter.validate_python({"business_type": business_type})


# -------------------------
# Session
# -------------------------
class SessionUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def business_type(self) -> Optional[str]:
        return self.user_metadata.get("user_type")


class Session(BaseModel):
    """An authenticated session. Immutable; replaced wholesale on change."""
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    user: SessionUser


# -------------------------
# Toll booth data
# -------------------------
class VehicleType(BaseModel):
    name: str
    fee: Decimal = Field(ge=0)


class TollTransaction(BaseModel):
    vehicle_number: str
    vehicle_type: str
    amount: Decimal = Field(ge=0)
    payment_status: str = "completed"
    payment_method: str = "cash"


class TollProfileUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    upi_id: Optional[str] = None
    vehicle_types: Optional[List[VehicleType]] = None
    settings: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one field must be provided")
        return self
