# gpspay/routers/toll.py

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from gpspay.config import settings
from gpspay.deps import get_account_service, get_record_store, require_session
from gpspay.errors import AccountServiceError, RecordStoreError
from gpspay.logging_config import get_logger
from gpspay.models import Session, TollProfileUpdate, TollTransaction, VehicleType
from gpspay.schemas_pkg.toll import TollRegistrationRequest
from gpspay.services.account_service import AccountService
from gpspay.services.record_store import RecordStore
from gpspay.services.toll_service import TollBoothRepository

router = APIRouter(tags=["Toll"])
logger = get_logger(__name__)


def get_toll_repository(record_store: RecordStore = Depends(get_record_store)) -> TollBoothRepository:
    return TollBoothRepository(record_store)


def _store_error(e: RecordStoreError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


async def _own_profile(session: Session, repo: TollBoothRepository) -> Dict[str, Any]:
    try:
        profile = await repo.get_toll_profile(session.user.id)
    except RecordStoreError as e:
        raise _store_error(e)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Toll profile not found")
    return profile


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_toll_booth(
    payload: TollRegistrationRequest,
    account_service: AccountService = Depends(get_account_service),
    repo: TollBoothRepository = Depends(get_toll_repository),
):
    """Single-call registration; the toll profile write must succeed too."""
    try:
        return await repo.register_toll_booth(
            account_service,
            payload.email,
            payload.password,
            payload.model_dump(exclude={"email", "password"}),
            redirect_to=f"{settings.SITE_URL}/auth/callback",
        )
    except AccountServiceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except RecordStoreError as e:
        raise _store_error(e)


@router.get("/profile")
async def get_profile(
    session: Session = Depends(require_session),
    repo: TollBoothRepository = Depends(get_toll_repository),
):
    return await _own_profile(session, repo)


@router.patch("/profile")
async def update_profile(
    payload: TollProfileUpdate,
    session: Session = Depends(require_session),
    repo: TollBoothRepository = Depends(get_toll_repository),
):
    profile = await _own_profile(session, repo)
    try:
        return await repo.update_toll_profile(profile["id"], payload)
    except RecordStoreError as e:
        raise _store_error(e)


@router.post("/profile/vehicle-types")
async def add_vehicle_type(
    payload: VehicleType,
    session: Session = Depends(require_session),
    repo: TollBoothRepository = Depends(get_toll_repository),
):
    profile = await _own_profile(session, repo)
    try:
        return await repo.add_vehicle_type(profile["id"], payload)
    except RecordStoreError as e:
        raise _store_error(e)


@router.get("/transactions", response_model=List[Dict[str, Any]])
async def list_transactions(
    session: Session = Depends(require_session),
    repo: TollBoothRepository = Depends(get_toll_repository),
):
    profile = await _own_profile(session, repo)
    try:
        return await repo.get_transactions(profile["id"])
    except RecordStoreError as e:
        raise _store_error(e)


@router.post("/transactions", status_code=status.HTTP_201_CREATED)
async def record_transaction(
    payload: TollTransaction,
    session: Session = Depends(require_session),
    repo: TollBoothRepository = Depends(get_toll_repository),
):
    profile = await _own_profile(session, repo)
    try:
        return await repo.record_transaction(profile["id"], payload)
    except RecordStoreError as e:
        raise _store_error(e)
