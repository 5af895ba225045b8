from typing import List, Optional

from pydantic import BaseModel, Field


class DiscoveryService(BaseModel):
    id: int
    name_ar: str
    icon: str
    service_type: str


class SalonCard(BaseModel):
    id: int
    salon_name: str
    address: str
    city: str
    image_url: Optional[str] = None
    gender_focus: str
    special: bool = False
    avg_rating: float = 0.0
    review_count: int = 0
    is_available_today: bool = False
    status: str = "closed"


class DiscoveryResponse(BaseModel):
    services: List[DiscoveryService]
    city_salons: List[SalonCard] = Field(serialization_alias="citySalons")
    featured_salons: List[SalonCard] = Field(serialization_alias="featuredSalons")
    all_salons: List[SalonCard] = Field(serialization_alias="allSalons")


class FavoriteSalon(BaseModel):
    salon_id: int = Field(serialization_alias="salonId")
    salon_name: str
    address: str
    city: str
    image_url: Optional[str] = None
    avg_rating: float = 0.0
    review_count: int = 0
    is_favorite: bool = True


class FavoriteToggleRequest(BaseModel):
    salon_id: int = Field(gt=0)


class FavoriteToggleResponse(BaseModel):
    success: bool = True
    is_favorite: bool
    message: str
