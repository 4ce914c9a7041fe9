"""
Toll booth data access.

Unlike the registration wizard, these calls are strict: a failed profile
write is raised to the caller.
"""
from typing import Any, Dict, List, Optional

from gpspay.errors import AccountServiceError, RecordStoreError
from gpspay.logging_config import get_logger
from gpspay.models import BusinessType, TollProfileUpdate, TollTransaction, VehicleType
from gpspay.services.account_service import AccountService
from gpspay.services.record_store import RecordStore

logger = get_logger(__name__)

TOLL_PROFILES_TABLE = "toll_profiles"
TRANSACTIONS_TABLE = "transactions"


class TollBoothRepository:

    def __init__(self, record_store: RecordStore):
        self.record_store = record_store

    async def register_toll_booth(
        self,
        account_service: AccountService,
        email: str,
        password: str,
        toll_data: Dict[str, Any],
        redirect_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create the account and its toll profile in one go."""
        try:
            user_id = await account_service.sign_up(
                email,
                password,
                {"user_type": BusinessType.TOLL.value, "full_name": toll_data.get("name")},
                redirect_to=redirect_to,
            )
        except AccountServiceError as e:
            logger.error("toll_registration_failed", error=e.message)
            raise

        try:
            profile = await self.record_store.insert(TOLL_PROFILES_TABLE, {
                "user_id": user_id,
                "name": toll_data.get("name"),
                "address": toll_data.get("address"),
                "latitude": toll_data.get("latitude"),
                "longitude": toll_data.get("longitude"),
                "upi_id": toll_data.get("upi_id"),
                "vehicle_types": [],
                "settings": {},
            })
        except RecordStoreError as e:
            logger.error("toll_profile_create_failed", user_id=user_id, error=e.message)
            raise

        return {"user_id": user_id, "profile": profile}

    async def get_toll_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        rows = await self.record_store.select(TOLL_PROFILES_TABLE, {"user_id": user_id})
        return rows[0] if rows else None

    async def update_toll_profile(self, profile_id: str, update: TollProfileUpdate) -> Dict[str, Any]:
        patch = update.model_dump(mode="json", exclude_none=True)
        return await self.record_store.update(TOLL_PROFILES_TABLE, profile_id, patch)

    async def add_vehicle_type(self, profile_id: str, vehicle_type: VehicleType) -> Dict[str, Any]:
        rows = await self.record_store.select(
            TOLL_PROFILES_TABLE, {"id": profile_id}, columns="vehicle_types"
        )
        if not rows:
            raise RecordStoreError("Toll profile not found")

        current = rows[0].get("vehicle_types")
        vehicle_types = list(current) if isinstance(current, list) else []
        vehicle_types.append(vehicle_type.model_dump(mode="json"))

        return await self.record_store.update(
            TOLL_PROFILES_TABLE, profile_id, {"vehicle_types": vehicle_types}
        )

    async def record_transaction(self, profile_id: str, transaction: TollTransaction) -> Dict[str, Any]:
        record = {"profile_id": profile_id, **transaction.model_dump(mode="json")}
        result = await self.record_store.insert(TRANSACTIONS_TABLE, record)
        logger.info("toll_transaction_recorded", profile_id=profile_id,
                    vehicle_type=transaction.vehicle_type)
        return result

    async def get_transactions(self, profile_id: str) -> List[Dict[str, Any]]:
        return await self.record_store.select(
            TRANSACTIONS_TABLE,
            {"profile_id": profile_id},
            order_by="transaction_date",
            descending=True,
        )
