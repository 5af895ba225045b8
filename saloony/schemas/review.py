from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ReviewSubmit(BaseModel):
    salon_id: Optional[int] = None
    rating: Optional[int] = None
    comment: Optional[str] = None


class ReviewDelete(BaseModel):
    salon_id: Optional[int] = None


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    salon_id: int
    user_id: int
    rating: int
    comment: Optional[str] = None
    date_posted: datetime
    salon_name: Optional[str] = None
    user_name: Optional[str] = None


class ReviewListResponse(BaseModel):
    success: bool = True
    reviews: List[ReviewOut]


class ReviewSubmitResponse(BaseModel):
    success: bool = True
    message: str
    review_id: int
