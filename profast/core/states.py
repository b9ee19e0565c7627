from enum import Enum


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    RIDER_ASSIGNED = "rider_assigned"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    SERVICE_CENTER_DELIVERED = "service_center_delivered"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class CashoutStatus(str, Enum):
    NOT_CASHED = "not_cashed"
    CASH_OUT = "cash_out"


class RiderStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"


class WorkStatus(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    IN_DELIVERY = "in_delivery"


TRANSITIONS = {
    (DeliveryStatus.PENDING, DeliveryStatus.RIDER_ASSIGNED),
    (DeliveryStatus.RIDER_ASSIGNED, DeliveryStatus.IN_TRANSIT),
    (DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED),
    (DeliveryStatus.IN_TRANSIT, DeliveryStatus.SERVICE_CENTER_DELIVERED),
}

OPEN_DELIVERY = [DeliveryStatus.RIDER_ASSIGNED, DeliveryStatus.IN_TRANSIT]
CLOSED_DELIVERY = [DeliveryStatus.DELIVERED, DeliveryStatus.SERVICE_CENTER_DELIVERED]

# timestamp stamped on the parcel when it enters the status
STATUS_STAMPS = {
    DeliveryStatus.IN_TRANSIT: "picked_at",
    DeliveryStatus.DELIVERED: "delivered_at",
    DeliveryStatus.SERVICE_CENTER_DELIVERED: "delivered_at",
}


def can_transition(src: str, dst: str) -> bool:
    try:
        return (DeliveryStatus(src), DeliveryStatus(dst)) in TRANSITIONS
    except ValueError:
        return False


def sources_for(dst: DeliveryStatus) -> list[str]:
    """Statuses from which ``dst`` is reachable in one step."""
    return [src.value for (src, d) in TRANSITIONS if d == dst]
