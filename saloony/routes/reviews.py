from __future__ import annotations

from fastapi import APIRouter, Depends

from saloony.dependencies.auth import get_current_user_id
from saloony.dependencies.services import get_review_service
from saloony.routes.errors import service_errors
from saloony.schemas.review import (
    ReviewDelete,
    ReviewListResponse,
    ReviewSubmit,
    ReviewSubmitResponse,
)
from saloony.schemas.salon import MessageResponse
from saloony.services import ReviewService

router = APIRouter()


@router.get("/user/{user_id}", response_model=ReviewListResponse)
def user_reviews(
    user_id: int,
    service: ReviewService = Depends(get_review_service),
):
    with service_errors():
        return ReviewListResponse(reviews=service.for_user(user_id))


@router.get("/salon/{salon_id}", response_model=ReviewListResponse)
def salon_reviews(
    salon_id: int,
    service: ReviewService = Depends(get_review_service),
):
    with service_errors():
        return ReviewListResponse(reviews=service.for_salon(salon_id))


@router.post("/submit", response_model=ReviewSubmitResponse, status_code=201)
def submit_review(
    req: ReviewSubmit,
    user_id: int = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
):
    with service_errors():
        review_id = service.submit(user_id, req)
        return ReviewSubmitResponse(message="Review submitted successfully.", review_id=review_id)


@router.delete("/delete", response_model=MessageResponse)
def delete_review(
    req: ReviewDelete,
    user_id: int = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
):
    with service_errors():
        service.delete(user_id, req.salon_id)
        return MessageResponse(message="Review deleted successfully.")
