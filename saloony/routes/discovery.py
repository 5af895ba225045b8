from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from saloony.dependencies.auth import get_current_user_id
from saloony.dependencies.services import get_discovery_service
from saloony.routes.errors import service_errors
from saloony.schemas.discovery import (
    DiscoveryResponse,
    FavoriteSalon,
    FavoriteToggleRequest,
    FavoriteToggleResponse,
)
from saloony.services import SalonDiscoveryService
from saloony.services.discovery import parse_service_ids

router = APIRouter()


@router.get("/discovery/{city}/{gender}", response_model=DiscoveryResponse)
def discover(
    city: str,
    gender: str,
    service_ids: Optional[str] = Query(default=None, description="Comma separated service ids"),
    service: SalonDiscoveryService = Depends(get_discovery_service),
):
    with service_errors():
        return service.discover(city, gender, parse_service_ids(service_ids))


@router.get("/favorites/{user_id}", response_model=List[FavoriteSalon])
def list_favorites(
    user_id: int,
    acting_user_id: int = Depends(get_current_user_id),
    service: SalonDiscoveryService = Depends(get_discovery_service),
):
    with service_errors():
        return service.favorites(acting_user_id, user_id)


@router.post("/favorites/toggle", response_model=FavoriteToggleResponse)
def toggle_favorite(
    req: FavoriteToggleRequest,
    user_id: int = Depends(get_current_user_id),
    service: SalonDiscoveryService = Depends(get_discovery_service),
):
    with service_errors():
        return service.toggle_favorite(user_id, req.salon_id)
