from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from saloony.config import get_settings


def to_salon_time(value: datetime) -> datetime:
    """Naive salon wall-clock time; offset-aware values are converted first."""

    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(get_settings().salon_timezone)).replace(tzinfo=None)


class BookedServiceIn(BaseModel):
    id: int = Field(gt=0)
    price: Optional[float] = Field(default=None, ge=0)


class BookingRequest(BaseModel):
    salon_id: int = Field(gt=0)
    staff_id: Optional[int] = Field(default=None, ge=0)  # 0 or null lets the salon pick
    service_id: Optional[int] = Field(default=None, gt=0)
    services: List[BookedServiceIn] = Field(default_factory=list)
    start_time: datetime  # salon local time
    end_time: datetime
    price: Optional[float] = None

    @field_validator("start_time", "end_time")
    def _salon_local(cls, value: datetime) -> datetime:
        return to_salon_time(value)

    @model_validator(mode="after")
    def _require_service(self):
        if not self.services and self.service_id is None:
            raise ValueError("يجب اختيار خدمة واحدة على الأقل.")
        if self.end_time <= self.start_time:
            raise ValueError("وقت النهاية يجب أن يكون بعد وقت البداية.")
        return self


class BookingResponse(BaseModel):
    success: bool = True
    message: str
    appointment_id: int = Field(serialization_alias="appointmentId")
    assigned_staff_name: Optional[str] = Field(default=None, serialization_alias="assignedStaffName")
    services_count: int = Field(serialization_alias="servicesCount")
    price: float


class SlotValidationRequest(BaseModel):
    salon_id: int = Field(gt=0)
    staff_id: Optional[int] = Field(default=None, ge=0)
    start_time: datetime
    end_time: datetime
    duration: int = Field(gt=0)

    @field_validator("start_time", "end_time")
    def _salon_local(cls, value: datetime) -> datetime:
        return to_salon_time(value)


class SlotValidationResponse(BaseModel):
    valid: bool
    message: str


class CancelResponse(BaseModel):
    success: bool = True
    message: str
    strike_issued: bool = Field(default=False, serialization_alias="strikeIssued")
    strikes: Optional[int] = None


class StatusUpdateRequest(BaseModel):
    status: str
    salon_id: Optional[int] = None  # when set, the appointment must belong to this salon


class StatusUpdateResponse(BaseModel):
    success: bool = True
    message: str
    status: str


class AppointmentServiceOut(BaseModel):
    service_id: int
    name_ar: Optional[str] = None
    price: float


class AppointmentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    salon_id: int
    salon_name: Optional[str] = None
    user_id: int
    user_name: Optional[str] = None
    staff_id: Optional[int] = None
    staff_name: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: str
    price: float
    services: List[AppointmentServiceOut] = Field(default_factory=list)


class AppointmentListResponse(BaseModel):
    total: int
    items: List[AppointmentSummary]
