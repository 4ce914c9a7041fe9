from typing import Any, Dict, List, Optional
from decimal import Decimal
from pydantic import BaseModel, Field


# -------------------------
# Type selector
# -------------------------
class BusinessTypeOption(BaseModel):
    type: str
    title: str
    description: str
    next: str


class BusinessTypesResponse(BaseModel):
    options: List[BusinessTypeOption]
    next: Optional[str] = None  # set when already signed in


# -------------------------
# Wizard edits
# -------------------------
class CredentialsUpdate(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    password_confirmation: Optional[str] = None


class MenuItemUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None


class LocationReport(BaseModel):
    """Result of the browser's geolocation lookup."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    error: Optional[str] = None
    supported: bool = True


# -------------------------
# Wizard state
# -------------------------
class WizardResponse(BaseModel):
    wizard_id: str
    business_type: str
    state: str
    current_step: int
    error: Optional[str] = None
    submit_disabled: bool = False
    email: str = ""
    draft: Dict[str, Any]
    profile_status: Optional[str] = None
    verification: Optional[Dict[str, Any]] = None
