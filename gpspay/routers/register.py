# gpspay/routers/register.py

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status

from gpspay.config import settings
from gpspay.deps import (
    get_account_service,
    get_draft_store,
    get_reconciliation_queue,
    get_record_store,
    get_session_context,
    get_wizard_registry,
)
from gpspay.errors import (
    AccountServiceError,
    GPSPayError,
    ValidationError,
    WizardBusyError,
    WizardNotFoundError,
)
from gpspay.models import BusinessType
from gpspay.schemas_pkg.wizard import (
    BusinessTypeOption,
    BusinessTypesResponse,
    CredentialsUpdate,
    LocationReport,
    MenuItemUpdate,
    WizardResponse,
)
from gpspay.services.account_service import AccountService
from gpspay.services.draft_store import DraftStore
from gpspay.services.reconciliation import ReconciliationQueue
from gpspay.services.record_store import RecordStore
from gpspay.services.session_context import SessionContext
from gpspay.services.wizard import RegistrationWizard, WizardRegistry

router = APIRouter()   # ❗ NO prefix here: main.py adds /v1/register

BUSINESS_TYPE_OPTIONS = [
    BusinessTypeOption(
        type=BusinessType.RESTAURANT.value,
        title="Restaurant",
        description="Accept payments for dine-in orders with your menu attached.",
        next="/register/restaurant",
    ),
    BusinessTypeOption(
        type=BusinessType.TOLL.value,
        title="Toll Booth",
        description="Collect toll fees from vehicles as they pass.",
        next="/register/toll",
    ),
    BusinessTypeOption(
        type=BusinessType.OTHER.value,
        title="Other Services",
        description="Utilities, maintenance, subscriptions and more.",
        next="/register/other",
    ),
]

ERROR_STATUS = {
    WizardNotFoundError: status.HTTP_404_NOT_FOUND,
    WizardBusyError: status.HTTP_409_CONFLICT,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AccountServiceError: status.HTTP_400_BAD_REQUEST,
}


def _wizard_error(exc: GPSPayError, wizard: RegistrationWizard = None) -> HTTPException:
    code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    detail: Dict[str, Any] = {"error": exc.message}
    if wizard is not None:
        detail["wizard"] = wizard.snapshot()
    return HTTPException(status_code=code, detail=detail)


def _load(registry: WizardRegistry, wizard_id: str) -> RegistrationWizard:
    try:
        return registry.get(wizard_id)
    except WizardNotFoundError as e:
        raise _wizard_error(e)


# -------------------------------------------
# Business type selector
# -------------------------------------------
@router.get("/types", response_model=BusinessTypesResponse)
async def list_business_types(context: SessionContext = Depends(get_session_context)):
    return BusinessTypesResponse(
        options=BUSINESS_TYPE_OPTIONS,
        next="/dashboard" if context.is_authenticated else None,
    )


@router.post("/{business_type}", response_model=WizardResponse, status_code=status.HTTP_201_CREATED)
async def open_wizard(
    business_type: BusinessType,
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    return registry.open(business_type).snapshot()


@router.get("/wizards/{wizard_id}", response_model=WizardResponse)
async def get_wizard(wizard_id: str, registry: WizardRegistry = Depends(get_wizard_registry)):
    return _load(registry, wizard_id).snapshot()


@router.delete("/wizards/{wizard_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_wizard(wizard_id: str, registry: WizardRegistry = Depends(get_wizard_registry)):
    wizard = _load(registry, wizard_id)
    if wizard.is_submitting:
        raise _wizard_error(WizardBusyError("Registration is already being submitted"), wizard)
    registry.discard(wizard_id)


# -------------------------------------------
# Field edits
# -------------------------------------------
@router.patch("/wizards/{wizard_id}/credentials", response_model=WizardResponse)
async def update_credentials(
    wizard_id: str,
    payload: CredentialsUpdate,
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    wizard = _load(registry, wizard_id)
    try:
        wizard.update_credentials(**payload.model_dump(exclude_none=True))
    except GPSPayError as e:
        raise _wizard_error(e, wizard)
    return wizard.snapshot()


@router.patch("/wizards/{wizard_id}/business", response_model=WizardResponse)
async def update_business(
    wizard_id: str,
    payload: Dict[str, Any] = Body(...),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    wizard = _load(registry, wizard_id)
    try:
        wizard.update_business(**payload)
    except GPSPayError as e:
        raise _wizard_error(e, wizard)
    return wizard.snapshot()


@router.post("/wizards/{wizard_id}/menu-items", response_model=WizardResponse,
             status_code=status.HTTP_201_CREATED)
async def add_menu_item(wizard_id: str, registry: WizardRegistry = Depends(get_wizard_registry)):
    wizard = _load(registry, wizard_id)
    try:
        wizard.add_menu_item()
    except GPSPayError as e:
        raise _wizard_error(e, wizard)
    return wizard.snapshot()


@router.patch("/wizards/{wizard_id}/menu-items/{item_id}", response_model=WizardResponse)
async def update_menu_item(
    wizard_id: str,
    item_id: str,
    payload: MenuItemUpdate,
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    wizard = _load(registry, wizard_id)
    try:
        for field_name, value in payload.model_dump(exclude_unset=True).items():
            wizard.update_menu_item(item_id, field_name, value)
    except GPSPayError as e:
        raise _wizard_error(e, wizard)
    return wizard.snapshot()


@router.delete("/wizards/{wizard_id}/menu-items/{item_id}", response_model=WizardResponse)
async def remove_menu_item(
    wizard_id: str,
    item_id: str,
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    wizard = _load(registry, wizard_id)
    try:
        wizard.remove_menu_item(item_id)
    except GPSPayError as e:
        raise _wizard_error(e, wizard)
    return wizard.snapshot()


@router.post("/wizards/{wizard_id}/location", response_model=WizardResponse)
async def report_location(
    wizard_id: str,
    payload: LocationReport,
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    wizard = _load(registry, wizard_id)
    try:
        wizard.report_location(
            latitude=payload.latitude,
            longitude=payload.longitude,
            error=payload.error,
            supported=payload.supported,
        )
    except GPSPayError as e:
        raise _wizard_error(e, wizard)
    return wizard.snapshot()


# -------------------------------------------
# Navigation
# -------------------------------------------
@router.post("/wizards/{wizard_id}/next", response_model=WizardResponse)
async def next_step(wizard_id: str, registry: WizardRegistry = Depends(get_wizard_registry)):
    wizard = _load(registry, wizard_id)
    try:
        wizard.next()
    except GPSPayError as e:
        raise _wizard_error(e, wizard)
    return wizard.snapshot()


@router.post("/wizards/{wizard_id}/back", response_model=WizardResponse)
async def previous_step(wizard_id: str, registry: WizardRegistry = Depends(get_wizard_registry)):
    wizard = _load(registry, wizard_id)
    try:
        wizard.back()
    except GPSPayError as e:
        raise _wizard_error(e, wizard)
    return wizard.snapshot()


@router.post("/wizards/{wizard_id}/submit", response_model=WizardResponse)
async def submit_wizard(
    wizard_id: str,
    registry: WizardRegistry = Depends(get_wizard_registry),
    account_service: AccountService = Depends(get_account_service),
    record_store: RecordStore = Depends(get_record_store),
    draft_store: DraftStore = Depends(get_draft_store),
    reconciliation: ReconciliationQueue = Depends(get_reconciliation_queue),
):
    wizard = _load(registry, wizard_id)
    try:
        await wizard.submit(
            account_service,
            record_store,
            draft_store,
            reconciliation=reconciliation,
            redirect_to=f"{settings.SITE_URL}/auth/callback",
        )
    except GPSPayError as e:
        raise _wizard_error(e, wizard)

    # Finished wizards are not kept around
    registry.discard(wizard_id)
    return wizard.snapshot()
