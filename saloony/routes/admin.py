from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from saloony.dependencies.auth import require_admin
from saloony.dependencies.services import get_admin_service, get_subscription_service
from saloony.routes.errors import service_errors
from saloony.schemas.admin import (
    AdminSalonsResponse,
    PaymentsResponse,
    SalonStatusChange,
    SubscriptionCreatedResponse,
    SubscriptionOut,
)
from saloony.schemas.salon import MessageResponse
from saloony.services import AdminService, SubscriptionService

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/admin/salons", response_model=AdminSalonsResponse)
def list_salons(service: AdminService = Depends(get_admin_service)):
    with service_errors():
        return AdminSalonsResponse(salons=service.list_salons())


@router.post("/admin/salon/status/{salon_id}", response_model=MessageResponse)
def set_salon_status(
    salon_id: int,
    req: SalonStatusChange,
    service: AdminService = Depends(get_admin_service),
):
    with service_errors():
        service.set_salon_status(salon_id, req.status)
        return MessageResponse(message="Salon status updated.")


@router.get("/admin/subscriptions", response_model=List[SubscriptionOut])
def list_subscriptions(service: SubscriptionService = Depends(get_subscription_service)):
    with service_errors():
        return service.subscriptions()


@router.post("/admin/subscriptions/{salon_id}", response_model=SubscriptionCreatedResponse)
def renew_subscription(
    salon_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
):
    with service_errors():
        return SubscriptionCreatedResponse(subscription=service.renew(salon_id))


@router.get("/admin/payments", response_model=PaymentsResponse)
def list_payments(service: SubscriptionService = Depends(get_subscription_service)):
    with service_errors():
        return PaymentsResponse(payments=service.payments())
