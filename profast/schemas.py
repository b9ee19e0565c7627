from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field

from profast.core.policy import Role, parse_role
from profast.core.states import (
    CashoutStatus,
    DeliveryStatus,
    PaymentStatus,
    RiderStatus,
    WorkStatus,
)


class DocOut(BaseModel):
    """Output model built from a store document (``_id`` -> ``id``)."""
    model_config = ConfigDict(extra="ignore")

    id: str

    @classmethod
    def from_doc(cls, doc: dict):
        return cls.model_validate({**doc, "id": str(doc["_id"])})


# --------------------------
# Parcels
# --------------------------
ParcelType = Literal["document", "non-document"]

class ParcelIn(BaseModel):
    title: str
    parcel_type: ParcelType = "document"
    weight: Optional[float] = Field(None, ge=0)
    cost: float = Field(..., ge=0)
    tracking_id: Optional[str] = None

    sender_name: str
    sender_contact: Optional[str] = None
    sender_region: Optional[str] = None
    sender_district: Optional[str] = None
    sender_address: Optional[str] = None
    pickup_instruction: Optional[str] = None

    receiver_name: str
    receiver_contact: Optional[str] = None
    receiver_region: Optional[str] = None
    receiver_district: Optional[str] = None
    receiver_address: Optional[str] = None
    delivery_instruction: Optional[str] = None

class AssignedRider(BaseModel):
    id: str
    name: str
    email: str

class ParcelOut(DocOut, ParcelIn):
    tracking_id: str
    created_by: str
    payment_status: PaymentStatus
    delivery_status: DeliveryStatus
    cashout_status: CashoutStatus = CashoutStatus.NOT_CASHED
    assigned_rider: Optional[AssignedRider] = None
    created_at: datetime
    picked_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cashout_at: Optional[datetime] = None

class StatusUpdate(BaseModel):
    delivery_status: DeliveryStatus

class AssignIn(BaseModel):
    rider_id: str
    rider_name: str
    rider_email: EmailStr

# --------------------------
# Users
# --------------------------
# stored roles outside the enum read back as None (no role)
StoredRole = Annotated[Optional[Role], BeforeValidator(parse_role)]

class UserIn(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    photo_url: Optional[str] = None

class UserOut(DocOut):
    email: str
    name: Optional[str] = None
    photo_url: Optional[str] = None
    role: StoredRole = Role.USER
    created_at: Optional[datetime] = None
    last_log_in: Optional[datetime] = None

class RoleIn(BaseModel):
    role: Role

class RoleOut(BaseModel):
    email: str
    role: StoredRole

# --------------------------
# Riders
# --------------------------
class RiderIn(BaseModel):
    name: str
    email: EmailStr
    phone: Optional[str] = None
    age: Optional[int] = Field(None, ge=16)
    nid: Optional[str] = None
    region: str
    district: str
    bike_brand: Optional[str] = None
    bike_registration: Optional[str] = None

class RiderOut(DocOut, RiderIn):
    email: str
    status: RiderStatus
    work_status: WorkStatus
    created_at: Optional[datetime] = None

class RiderStatusIn(BaseModel):
    status: RiderStatus
    email: EmailStr

# --------------------------
# Payments
# --------------------------
class IntentIn(BaseModel):
    amount_cents: int = Field(..., gt=0)

class IntentOut(BaseModel):
    client_secret: str

class PaymentIn(BaseModel):
    parcel_id: str
    email: Optional[EmailStr] = None
    amount: float = Field(..., gt=0)
    payment_method: str
    transaction_id: str

class PaymentOut(DocOut):
    parcel_id: str
    email: str
    amount: float
    payment_method: str
    transaction_id: str
    paid_at: datetime

class PaymentRecorded(BaseModel):
    message: str = "payment recorded and parcel marked as paid"
    inserted_id: str

# --------------------------
# Tracking
# --------------------------
class TrackingIn(BaseModel):
    # presence is checked by the ledger so a missing field is a 400
    tracking_id: Optional[str] = None
    status: Optional[str] = None
    note: Optional[str] = None

class TrackingEventOut(DocOut):
    tracking_id: str
    status: str
    note: Optional[str] = ""
    timestamp: datetime
