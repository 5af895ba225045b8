from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class SalonServiceOut(BaseModel):
    id: int
    name_ar: str
    icon: str
    service_type: str
    price: float
    duration: int


class SalonServicesResponse(BaseModel):
    success: bool = True
    services: List[SalonServiceOut]


class SalonServiceIn(BaseModel):
    service_id: int = Field(gt=0)
    price: float = Field(ge=0)
    duration: int = Field(gt=0)


class SalonServicesUpdate(BaseModel):
    services: List[SalonServiceIn]


class StaffOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class StaffListResponse(BaseModel):
    success: bool = True
    staff: List[StaffOut]


class StaffCreate(BaseModel):
    name: str = Field(min_length=1)


class ScheduleIn(BaseModel):
    opening_time: str = Field(pattern=_HHMM_PATTERN)
    closing_time: str = Field(pattern=_HHMM_PATTERN)
    closed_days: List[int] = Field(default_factory=list)

    @field_validator("closed_days")
    def _check_days(cls, value: List[int]) -> List[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("closed_days entries must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(value))


class ScheduleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    opening_time: str
    closing_time: str
    closed_days: List[int] = Field(default_factory=list)


class BreakIn(BaseModel):
    staff_id: Optional[int] = None
    start_time: str = Field(pattern=_HHMM_PATTERN)
    end_time: str = Field(pattern=_HHMM_PATTERN)
    reason: Optional[str] = None
    break_date: Optional[date] = None

    @model_validator(mode="after")
    def _check_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BreakOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    staff_id: Optional[int] = None
    start_time: str
    end_time: str
    reason: Optional[str] = None
    break_date: Optional[date] = None


class ModificationIn(BaseModel):
    mod_type: str
    mod_date: Optional[date] = None
    mod_day_index: Optional[int] = Field(default=None, ge=0, le=6)
    start_time: Optional[str] = Field(default=None, pattern=_HHMM_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=_HHMM_PATTERN)
    closure_type: Optional[str] = None
    reason: Optional[str] = None
    staff_id: Optional[int] = None

    @model_validator(mode="after")
    def _check_shape(self):
        if self.closure_type is None:
            self.closure_type = "interval" if self.start_time and self.end_time else "full_day"
        if self.closure_type not in ("full_day", "interval"):
            raise ValueError("closure_type must be 'full_day' or 'interval'")
        if self.closure_type == "interval" and not (self.start_time and self.end_time):
            raise ValueError("interval closures need start_time and end_time")
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ModificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    mod_type: str
    mod_date: Optional[date] = None
    mod_day_index: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    closure_type: str
    reason: str
    staff_id: Optional[int] = None


class ScheduleResponse(BaseModel):
    success: bool = True
    schedule: Optional[ScheduleOut] = None
    breaks: List[BreakOut] = Field(default_factory=list)
    modifications: List[ModificationOut] = Field(default_factory=list)


class SalonStatusResponse(BaseModel):
    salon_id: int
    status: str
    is_available_today: bool
    available_next_hour: bool


class CreatedResponse(BaseModel):
    success: bool = True
    id: int
    message: str = ""


class MessageResponse(BaseModel):
    success: bool = True
    message: str = ""


class SalonInfo(BaseModel):
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


class SalonInfoResponse(BaseModel):
    success: bool = True
    info: SalonInfo


class SalonDetails(BaseModel):
    salon_id: int = Field(serialization_alias="salonId")
    salon_name: str
    address: str = ""
    city: str
    image_url: Optional[str] = None
    phone: str = ""
    plan: Optional[str] = None
    avg_rating: float = 0.0
    review_count: int = 0


class SalonDetailsResponse(BaseModel):
    success: bool = True
    salon: SalonDetails
