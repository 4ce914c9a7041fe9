# gpspay/schemas_pkg/__init__.py

# Auth schemas
from .auth import (
    LoginRequest,
    LoginResponse,
    LoginPageResponse,
    SessionResponse,
    SessionUserOut,
)

# Registration wizard schemas
from .wizard import (
    BusinessTypeOption,
    BusinessTypesResponse,
    CredentialsUpdate,
    MenuItemUpdate,
    LocationReport,
    WizardResponse,
)

# Toll booth schemas
from .toll import TollRegistrationRequest

# Admin schemas
from .admin import ReconcileResponse

__all__ = [
    # Auth
    "LoginRequest",
    "LoginResponse",
    "LoginPageResponse",
    "SessionResponse",
    "SessionUserOut",

    # Wizard
    "BusinessTypeOption",
    "BusinessTypesResponse",
    "CredentialsUpdate",
    "MenuItemUpdate",
    "LocationReport",
    "WizardResponse",

    # Toll
    "TollRegistrationRequest",

    # Admin
    "ReconcileResponse",
]
