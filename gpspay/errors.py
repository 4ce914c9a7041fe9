"""
Error taxonomy for GPS Pay.

Remote failures are translated into these at the adapter boundary so that
routers and the registration wizard never see SDK-specific exceptions.
"""


class GPSPayError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GPSPayError):
    """A field-level problem that blocks a wizard step."""


class AccountServiceError(GPSPayError):
    """The identity provider rejected or failed a request."""


class RecordStoreError(GPSPayError):
    """A table read or write against the record store failed."""


class LocalStorageError(GPSPayError):
    """The draft store could not be read or written."""


class WizardBusyError(GPSPayError):
    """A submission is already in flight for this wizard."""


class WizardNotFoundError(GPSPayError):
    """No open wizard exists under the given id."""
