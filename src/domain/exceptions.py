"""Domain and persistence errors surfaced to the API layer."""


class ShipmentError(Exception):
    """Base class for errors the API maps to a structured JSON response."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ShipmentNotFound(ShipmentError):
    status_code = 404
    message = "Shipment not found"


class CheckpointNotFound(ShipmentError):
    status_code = 404
    message = "Checkpoint not found"


class DuplicateTrackingNumber(ShipmentError):
    status_code = 409
    message = "Duplicate tracking number. Please try again."


class ShipmentBusy(ShipmentError):
    """Another request holds the shipment's mutation lock."""

    status_code = 409
    message = "Shipment is being updated by another request. Please retry."


class StoreUnavailable(ShipmentError):
    status_code = 500
    message = "Database connection error. Please try again later."
