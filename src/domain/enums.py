"""Domain enumerations."""

import enum


class ShipmentStatus(str, enum.Enum):
    PENDING = "pending"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    EXCEPTION = "exception"


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"
