"""
Registration wizard.

A wizard walks one merchant through three steps:

1. account credentials
2. business information and location
3. payment details (plus the menu, for restaurants)

Each step is validated before the next one opens. ``submit`` creates the
account first and then writes the business profile. The account is the
authoritative part: if the profile write fails the registration still
succeeds, and the failed write is queued for reconciliation.
"""
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from gpspay.config import settings
from gpspay.errors import (
    AccountServiceError,
    LocalStorageError,
    RecordStoreError,
    ValidationError,
    WizardBusyError,
    WizardNotFoundError,
)
from gpspay.logging_config import get_logger
from gpspay.models import (
    DRAFT_KEYS,
    PROFILE_TABLES,
    BusinessType,
    Credentials,
    DraftBase,
    MenuItem,
    RestaurantDraft,
    new_draft,
)
from gpspay.services.account_service import AccountService
from gpspay.services.draft_store import DraftStore
from gpspay.services.reconciliation import ReconciliationQueue
from gpspay.services.record_store import RecordStore

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6
PROFILE_TABLE = "profile"

# Messages shown next to the form
MSG_FILL_ALL_FIELDS = "Please fill in all fields"
MSG_PASSWORD_MISMATCH = "Passwords do not match"
MSG_PASSWORD_TOO_SHORT = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
MSG_FILL_REQUIRED_FIELDS = "Please fill in all required fields"
MSG_SET_COORDINATES = "Please set your location coordinates"
MSG_UPI_REQUIRED = "Please enter your UPI ID"
MSG_MENU_REQUIRED = "Please add at least one menu item"
MSG_MENU_ITEM_FIELDS = "Please fill in all required menu item fields"
MSG_LOCATION_FAILED = "Unable to get your location. Please enter coordinates manually."
MSG_LOCATION_UNSUPPORTED = "Geolocation is not supported by this browser."
MSG_REGISTRATION_FAILED = "An error occurred during registration"


class WizardState(str, Enum):
    STEP1_ACCOUNT = "step1_account"
    STEP2_BUSINESS_INFO = "step2_business_info"
    STEP3_PAYMENT_AND_EXTRAS = "step3_payment_and_extras"
    SUBMITTING = "submitting"
    VERIFICATION_PENDING = "verification_pending"
    FAILED = "failed"


STEP_STATES = {
    1: WizardState.STEP1_ACCOUNT,
    2: WizardState.STEP2_BUSINESS_INFO,
    3: WizardState.STEP3_PAYMENT_AND_EXTRAS,
}


class ProfileStatus(str, Enum):
    COMPLETE = "complete"
    PENDING_RECONCILIATION = "pending_reconciliation"


def verification_notice(email: str) -> Dict[str, Any]:
    return {
        "email": email,
        "title": "Verify Your Email",
        "message": (
            f"We've sent a verification link to {email}. "
            "Please check your inbox and click the link to verify your account."
        ),
        "notes": [
            "The verification link will expire in 24 hours",
            "Check your spam folder if you don't see the email",
            "You'll be redirected to the login page after verification",
        ],
        "next": "/login",
    }


@dataclass
class SubmissionOutcome:
    user_id: str
    profile_status: ProfileStatus
    verification: Dict[str, Any]
    failed_writes: List[str] = field(default_factory=list)


class RegistrationWizard:

    def __init__(self, business_type: BusinessType, wizard_id: Optional[str] = None):
        self.id = wizard_id or uuid.uuid4().hex
        self.business_type = BusinessType(business_type)
        self.state = WizardState.STEP1_ACCOUNT
        self.credentials = Credentials()
        self.draft: DraftBase = new_draft(self.business_type)
        self.error: Optional[str] = None
        self.outcome: Optional[SubmissionOutcome] = None

    # ---------------------------------------------
    # State helpers
    # ---------------------------------------------
    @property
    def current_step(self) -> int:
        if self.state == WizardState.STEP1_ACCOUNT:
            return 1
        if self.state == WizardState.STEP2_BUSINESS_INFO:
            return 2
        return 3

    @property
    def is_submitting(self) -> bool:
        return self.state == WizardState.SUBMITTING

    def _fail(self, message: str):
        self.error = message
        raise ValidationError(message)

    def _ensure_editable(self):
        if self.state == WizardState.SUBMITTING:
            raise WizardBusyError("Registration is already being submitted")
        if self.state == WizardState.VERIFICATION_PENDING:
            raise ValidationError("Registration has already been submitted")
        if self.state == WizardState.FAILED:
            self.state = WizardState.STEP3_PAYMENT_AND_EXTRAS

    # ---------------------------------------------
    # Field edits
    # ---------------------------------------------
    def update_credentials(self, **fields):
        self._ensure_editable()
        try:
            self.credentials = Credentials.model_validate({**self.credentials.model_dump(), **fields})
        except PydanticValidationError as e:
            self._fail(_first_error(e))

    def update_business(self, **fields):
        self._ensure_editable()
        allowed = set(type(self.draft).model_fields) - {"business_type", "menu_items"}
        unknown = set(fields) - allowed
        if unknown:
            self._fail(f"Unknown field(s): {', '.join(sorted(unknown))}")

        try:
            updated = type(self.draft).model_validate({**self.draft.model_dump(), **fields})
        except PydanticValidationError as e:
            self._fail(_first_error(e))
        self.draft = updated

    def _restaurant(self) -> RestaurantDraft:
        if not isinstance(self.draft, RestaurantDraft):
            self._fail("Menu items are only available for restaurants")
        return self.draft

    def add_menu_item(self) -> MenuItem:
        self._ensure_editable()
        item = MenuItem()
        self._restaurant().menu_items = [*self.draft.menu_items, item]
        return item

    def update_menu_item(self, item_id: str, field_name: str, value: Any) -> MenuItem:
        self._ensure_editable()
        draft = self._restaurant()
        if field_name not in ("name", "price", "description"):
            self._fail(f"Unknown menu item field: {field_name}")

        items = []
        updated = None
        for item in draft.menu_items:
            if item.id == item_id:
                try:
                    item = MenuItem.model_validate({**item.model_dump(), field_name: value})
                except PydanticValidationError as e:
                    self._fail(_first_error(e))
                updated = item
            items.append(item)

        if updated is None:
            self._fail(f"Menu item {item_id} not found")
        draft.menu_items = items
        return updated

    def remove_menu_item(self, item_id: str):
        self._ensure_editable()
        draft = self._restaurant()
        draft.menu_items = [item for item in draft.menu_items if item.id != item_id]

    def report_location(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        error: Optional[str] = None,
        supported: bool = True,
    ) -> bool:
        """
        Apply a geolocation result from the client.

        Failures only set the error text; coordinates can still be typed in.
        """
        self._ensure_editable()
        if not supported:
            self.error = MSG_LOCATION_UNSUPPORTED
            return False
        if error or latitude is None or longitude is None:
            logger.info("geolocation_failed", wizard_id=self.id, error=error)
            self.error = MSG_LOCATION_FAILED
            return False

        self.update_business(coordinates={"lat": latitude, "lng": longitude})
        self.error = None
        return True

    # ---------------------------------------------
    # Validation
    # ---------------------------------------------
    def _validate_account(self):
        creds = self.credentials
        if not creds.email or not creds.password or not creds.password_confirmation:
            self._fail(MSG_FILL_ALL_FIELDS)
        if creds.password != creds.password_confirmation:
            self._fail(MSG_PASSWORD_MISMATCH)
        if len(creds.password) < MIN_PASSWORD_LENGTH:
            self._fail(MSG_PASSWORD_TOO_SHORT)

    def _validate_business_info(self):
        if not all(value.strip() for value in self.draft.required_business_fields()):
            self._fail(MSG_FILL_REQUIRED_FIELDS)
        if not self.draft.coordinates.is_complete:
            self._fail(MSG_SET_COORDINATES)

    def _validate_payment(self):
        if not self.draft.upi_id.strip():
            self._fail(MSG_UPI_REQUIRED)
        if isinstance(self.draft, RestaurantDraft):
            if not self.draft.menu_items:
                self._fail(MSG_MENU_REQUIRED)
            for item in self.draft.menu_items:
                if not item.name.strip() or item.price is None:
                    self._fail(MSG_MENU_ITEM_FIELDS)

    # ---------------------------------------------
    # Navigation
    # ---------------------------------------------
    def next(self) -> WizardState:
        self._ensure_editable()
        self.error = None

        if self.state == WizardState.STEP1_ACCOUNT:
            self._validate_account()
            self.state = WizardState.STEP2_BUSINESS_INFO
        elif self.state == WizardState.STEP2_BUSINESS_INFO:
            self._validate_business_info()
            self.state = WizardState.STEP3_PAYMENT_AND_EXTRAS
        else:
            self._fail("Already on the last step")
        return self.state

    def back(self) -> WizardState:
        self._ensure_editable()
        self.error = None
        if self.current_step > 1:
            self.state = STEP_STATES[self.current_step - 1]
        return self.state

    # ---------------------------------------------
    # Submission
    # ---------------------------------------------
    async def submit(
        self,
        account_service: AccountService,
        record_store: RecordStore,
        draft_store: DraftStore,
        reconciliation: Optional[ReconciliationQueue] = None,
        redirect_to: Optional[str] = None,
    ) -> SubmissionOutcome:
        self._ensure_editable()
        if self.current_step != 3:
            self._fail("Please complete all steps before submitting")

        self.error = None
        self._validate_account()
        self._validate_business_info()
        self._validate_payment()

        self.state = WizardState.SUBMITTING
        log = logger.bind(wizard_id=self.id, business_type=self.business_type.value)
        log.info("registration_submitting")

        try:
            try:
                user_id = await account_service.sign_up(
                    self.credentials.email,
                    self.credentials.password,
                    {"user_type": self.business_type.value, "full_name": self.draft.display_name},
                    redirect_to=redirect_to,
                )
            except AccountServiceError as e:
                log.warning("registration_sign_up_failed", error=e.message)
                self.state = WizardState.FAILED
                self.error = e.message
                raise

            failed_writes = await self._write_profile(user_id, record_store, reconciliation, log)
            await self._save_draft(user_id, draft_store, log)

            self.outcome = SubmissionOutcome(
                user_id=user_id,
                profile_status=(
                    ProfileStatus.PENDING_RECONCILIATION if failed_writes else ProfileStatus.COMPLETE
                ),
                verification=verification_notice(self.credentials.email),
                failed_writes=failed_writes,
            )
            self.state = WizardState.VERIFICATION_PENDING
            log.info("registration_completed", user_id=user_id,
                     profile_status=self.outcome.profile_status.value)
            return self.outcome
        finally:
            if self.state == WizardState.SUBMITTING:
                self.state = WizardState.FAILED
                self.error = MSG_REGISTRATION_FAILED

    async def _write_profile(self, user_id, record_store, reconciliation, log) -> List[str]:
        writes = [
            (PROFILE_TABLES[self.business_type], "insert", self.draft.to_record(user_id)),
            (PROFILE_TABLE, "upsert", {
                "id": user_id,
                "email": self.credentials.email,
                "user_type": self.business_type.value,
            }),
        ]

        failed = []
        for table, operation, record in writes:
            write = record_store.upsert if operation == "upsert" else record_store.insert
            try:
                await write(table, record)
            except RecordStoreError as e:
                log.error("profile_write_failed", table=table, operation=operation, error=e.message)
                failed.append(table)
                if reconciliation is not None:
                    try:
                        await reconciliation.enqueue(table, operation, record, e.message, user_id=user_id)
                    except LocalStorageError as qe:
                        log.error("reconciliation_enqueue_failed", table=table, error=qe.message)
        return failed

    async def _save_draft(self, user_id, draft_store, log):
        snapshot = {
            "id": user_id,
            "email": self.credentials.email,
            **self.draft.model_dump(mode="json"),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await draft_store.save(DRAFT_KEYS[self.business_type], snapshot, owner=user_id)
        except LocalStorageError as e:
            log.error("draft_save_failed", error=e.message)

    def snapshot(self) -> Dict[str, Any]:
        """Everything a page needs to render the wizard. Passwords are never included."""
        data = {
            "wizard_id": self.id,
            "business_type": self.business_type.value,
            "state": self.state.value,
            "current_step": self.current_step,
            "error": self.error,
            "submit_disabled": self.is_submitting,
            "email": self.credentials.email,
            "draft": self.draft.model_dump(mode="json"),
        }
        if self.outcome is not None:
            data["profile_status"] = self.outcome.profile_status.value
            data["verification"] = self.outcome.verification
        return data


def _first_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err['msg']}" if location else err["msg"]


class WizardRegistry:
    """
    Open wizards keyed by id, least recently used first.

    Wizards nobody has touched for ``idle_ttl`` seconds are swept whenever a
    new one is opened, and the oldest idle ones go once ``max_open`` is
    reached. A wizard that is mid-submit is never evicted.
    """

    def __init__(
        self,
        idle_ttl: Optional[float] = None,
        max_open: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.idle_ttl = idle_ttl if idle_ttl is not None else settings.WIZARD_IDLE_TTL_SECONDS
        self.max_open = max_open if max_open is not None else settings.WIZARD_MAX_OPEN
        self._clock = clock
        self._wizards: "OrderedDict[str, RegistrationWizard]" = OrderedDict()
        self._touched: Dict[str, float] = {}

    def _touch(self, wizard_id: str):
        self._touched[wizard_id] = self._clock()
        self._wizards.move_to_end(wizard_id)

    def _evict(self, wizard_id: str, reason: str):
        self._wizards.pop(wizard_id, None)
        self._touched.pop(wizard_id, None)
        logger.info("wizard_evicted", wizard_id=wizard_id, reason=reason)

    def _is_stale(self, wizard_id: str, now: float) -> bool:
        return now - self._touched[wizard_id] > self.idle_ttl

    def sweep(self) -> int:
        """Drop idle wizards. Returns how many were removed."""
        now = self._clock()
        removed = 0
        for wizard_id in list(self._wizards):
            if not self._is_stale(wizard_id, now):
                break  # ordered by last touch
            if self._wizards[wizard_id].is_submitting:
                self._touch(wizard_id)
                continue
            self._evict(wizard_id, "idle")
            removed += 1
        return removed

    def open(self, business_type: BusinessType) -> RegistrationWizard:
        self.sweep()
        while len(self._wizards) >= self.max_open:
            oldest = next(
                (wid for wid, w in self._wizards.items() if not w.is_submitting), None
            )
            if oldest is None:
                break
            self._evict(oldest, "capacity")

        wizard = RegistrationWizard(business_type)
        self._wizards[wizard.id] = wizard
        self._touch(wizard.id)
        logger.info("wizard_opened", wizard_id=wizard.id, business_type=wizard.business_type.value)
        return wizard

    def get(self, wizard_id: str) -> RegistrationWizard:
        wizard = self._wizards.get(wizard_id)
        if wizard is not None and not wizard.is_submitting and self._is_stale(wizard_id, self._clock()):
            self._evict(wizard_id, "idle")
            wizard = None
        if wizard is None:
            raise WizardNotFoundError(f"Registration {wizard_id} not found")
        self._touch(wizard_id)
        return wizard

    def discard(self, wizard_id: str):
        if self._wizards.pop(wizard_id, None) is not None:
            self._touched.pop(wizard_id, None)
            logger.info("wizard_discarded", wizard_id=wizard_id)

    def __len__(self):
        return len(self._wizards)
