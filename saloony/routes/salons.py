from __future__ import annotations

from fastapi import APIRouter, Depends

from saloony.dependencies.services import (
    get_availability_service,
    get_salon_management_service,
    get_subscription_service,
)
from saloony.routes.errors import service_errors
from saloony.schemas.admin import PaymentsResponse, SalonSubscriptionsResponse
from saloony.schemas.salon import (
    BreakIn,
    CreatedResponse,
    MessageResponse,
    ModificationIn,
    SalonDetailsResponse,
    SalonInfoResponse,
    SalonServicesResponse,
    SalonServicesUpdate,
    SalonStatusResponse,
    ScheduleIn,
    ScheduleResponse,
    StaffCreate,
    StaffListResponse,
)
from saloony.services import AvailabilityService, SalonManagementService, SubscriptionService

router = APIRouter()


@router.get("/salon/info/{salon_id}", response_model=SalonInfoResponse)
def salon_info(
    salon_id: int,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        return SalonInfoResponse(info=service.info(salon_id))


@router.get("/salon/details/{salon_id}", response_model=SalonDetailsResponse)
def salon_details(
    salon_id: int,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        return SalonDetailsResponse(salon=service.details(salon_id))


@router.get("/salon/subscriptions/{salon_id}", response_model=SalonSubscriptionsResponse)
def salon_subscriptions(
    salon_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
):
    with service_errors():
        return SalonSubscriptionsResponse(subscriptions=service.subscriptions(salon_id))


@router.get("/salon/payments/{salon_id}", response_model=PaymentsResponse)
def salon_payments(
    salon_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
):
    with service_errors():
        return PaymentsResponse(payments=service.payments(salon_id))


@router.get("/salons/{salon_id}/services", response_model=SalonServicesResponse)
@router.get("/salon/services/{salon_id}", response_model=SalonServicesResponse)
def list_services(
    salon_id: int,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        return SalonServicesResponse(services=service.list_services(salon_id))


@router.post("/salon/services/{salon_id}", response_model=MessageResponse)
def replace_services(
    salon_id: int,
    req: SalonServicesUpdate,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        count = service.replace_services(salon_id, req.services)
        return MessageResponse(message=f"تم حفظ {count} خدمة.")


@router.get("/salon/staff/{salon_id}", response_model=StaffListResponse)
def list_staff(
    salon_id: int,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        return StaffListResponse(staff=service.list_staff(salon_id))


@router.post("/salon/staff/{salon_id}", response_model=CreatedResponse, status_code=201)
def add_staff(
    salon_id: int,
    req: StaffCreate,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        staff_id = service.add_staff(salon_id, req.name)
        return CreatedResponse(id=staff_id, message="تمت إضافة المختص بنجاح.")


@router.delete("/salon/staff/{staff_id}", response_model=MessageResponse)
def delete_staff(
    staff_id: int,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        service.delete_staff(staff_id)
        return MessageResponse(message="تم حذف المختص بنجاح.")


@router.get("/salon/schedule/{salon_id}", response_model=ScheduleResponse)
def get_schedule(
    salon_id: int,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        return service.get_schedule(salon_id)


@router.post("/salon/schedule/{salon_id}", response_model=MessageResponse)
def save_schedule(
    salon_id: int,
    req: ScheduleIn,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        service.save_schedule(salon_id, req)
        return MessageResponse(message="تم حفظ جدول العمل.")


@router.post("/salon/break/{salon_id}", response_model=CreatedResponse, status_code=201)
def add_break(
    salon_id: int,
    req: BreakIn,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        return CreatedResponse(id=service.add_break(salon_id, req), message="تمت إضافة الاستراحة.")


@router.delete("/salon/break/{break_id}", response_model=MessageResponse)
def delete_break(
    break_id: int,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        service.delete_break(break_id)
        return MessageResponse(message="تم حذف الاستراحة.")


@router.post("/salon/schedule/modification/{salon_id}", response_model=CreatedResponse, status_code=201)
def add_modification(
    salon_id: int,
    req: ModificationIn,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        mod_id = service.add_modification(salon_id, req)
        return CreatedResponse(id=mod_id, message="تم حفظ التعديل على الجدول.")


@router.delete("/salon/schedule/modification/{mod_id}", response_model=MessageResponse)
def delete_modification(
    mod_id: int,
    service: SalonManagementService = Depends(get_salon_management_service),
):
    with service_errors():
        service.delete_modification(mod_id)
        return MessageResponse(message="تم حذف التعديل.")


@router.get("/salon/{salon_id}/status", response_model=SalonStatusResponse)
def salon_status(
    salon_id: int,
    availability: AvailabilityService = Depends(get_availability_service),
):
    with service_errors():
        status = availability.status_for(salon_id)
        return SalonStatusResponse(salon_id=salon_id, **status.as_dict())
