"""Service package public API definitions.

Service implementations are imported lazily. ``saloony.services.exceptions``
is imported by the clients, and eager imports here would pull the clients
back in through the chat assistant and create an import cycle.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "AdminService",
    "AppointmentService",
    "AvailabilityService",
    "BookingValidator",
    "ChatAssistant",
    "LayeredCache",
    "ReviewService",
    "SalonDiscoveryService",
    "SalonManagementService",
    "SubscriptionService",
]

_SERVICE_MODULES = {
    "AdminService": "admin",
    "AppointmentService": "booking",
    "AvailabilityService": "availability",
    "BookingValidator": "booking",
    "ChatAssistant": "chat",
    "LayeredCache": "cache",
    "ReviewService": "reviews",
    "SalonDiscoveryService": "discovery",
    "SalonManagementService": "salons",
    "SubscriptionService": "subscriptions",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .admin import AdminService as AdminService
    from .availability import AvailabilityService as AvailabilityService
    from .booking import AppointmentService as AppointmentService
    from .booking import BookingValidator as BookingValidator
    from .cache import LayeredCache as LayeredCache
    from .chat import ChatAssistant as ChatAssistant
    from .discovery import SalonDiscoveryService as SalonDiscoveryService
    from .reviews import ReviewService as ReviewService
    from .salons import SalonManagementService as SalonManagementService
    from .subscriptions import SubscriptionService as SubscriptionService
