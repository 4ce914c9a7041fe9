from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class TollRegistrationRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    upi_id: Optional[str] = None
