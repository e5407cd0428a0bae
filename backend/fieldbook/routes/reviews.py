from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from fieldbook.database import get_session
from fieldbook.dependencies import get_current_user
from fieldbook.models.complex import Complex
from fieldbook.models.review import Review
from fieldbook.models.user import User

router = APIRouter()


class ReviewCreate(BaseModel):
    rating: int
    comment: Optional[str] = None

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v):
        if v < 1 or v > 5:
            raise ValueError("rating must be between 1 and 5")
        return v


class ReviewResponse(BaseModel):
    id: int
    user_id: int
    complex_id: int
    rating: int
    comment: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("/complexes/{complex_id}/reviews", response_model=List[ReviewResponse])
def list_reviews(complex_id: int, session: Session = Depends(get_session)):
    if not session.get(Complex, complex_id):
        raise HTTPException(status_code=404, detail="Complex not found")
    return session.exec(
        select(Review).where(Review.complex_id == complex_id).order_by(Review.created_at.desc(), Review.id.desc())
    ).all()


@router.post("/complexes/{complex_id}/reviews", response_model=ReviewResponse, status_code=201)
def create_review(
    complex_id: int,
    review_data: ReviewCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if not session.get(Complex, complex_id):
        raise HTTPException(status_code=404, detail="Complex not found")

    review = Review(user_id=user.id, complex_id=complex_id, **review_data.model_dump())
    session.add(review)
    session.commit()
    session.refresh(review)
    return review
