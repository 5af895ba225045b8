from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AdminSalon(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    salon_name: str
    owner_name: str = ""
    email: str
    phone: str = ""
    address: str = ""
    city: str
    gender_focus: str
    image_url: Optional[str] = None
    special: bool = False
    status: str
    plan: Optional[str] = None
    created_at: Optional[datetime] = None


class AdminSalonsResponse(BaseModel):
    success: bool = True
    salons: List[AdminSalon]


class SalonStatusChange(BaseModel):
    status: str = Field(min_length=1)


class SubscriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    salon_id: int
    salon_name: Optional[str] = None
    owner_name: Optional[str] = None
    package: str
    start_date: date
    end_date: Optional[date] = None
    status: str


class SubscriptionCreatedResponse(BaseModel):
    success: bool = True
    subscription: SubscriptionOut


class SalonSubscriptionsResponse(BaseModel):
    success: bool = True
    subscriptions: List[SubscriptionOut]


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    salon_id: int
    payment_type: str
    amount: float
    currency: str
    payment_status: str
    payment_method: Optional[str] = None
    description: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    invoice_number: str
    created_at: Optional[datetime] = None


class PaymentsResponse(BaseModel):
    success: bool = True
    payments: List[PaymentOut]
