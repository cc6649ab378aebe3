"""Request bodies for write endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from madchef.commons.vocabulary import ConsultStatus, ReceiptTitle, RecipeStatus


class RecipeCreate(BaseModel):
    title: str = Field(..., min_length=1)
    ingredients: List[str] = Field(..., min_length=1)
    method: str = Field(..., min_length=1)
    img: str = Field(..., min_length=1)
    imgId: Optional[str] = None
    imgTitle: Optional[str] = None
    region: Optional[str] = None


class RecipeUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    ingredients: Optional[List[str]] = None
    method: Optional[str] = Field(default=None, min_length=1)
    img: Optional[str] = None
    imgId: Optional[str] = None
    imgTitle: Optional[str] = None
    region: Optional[str] = None


class RecipeStatusUpdate(BaseModel):
    status: RecipeStatus


class RatingCreate(BaseModel):
    """Recipe rating or chef review."""

    rating: float = Field(..., ge=0, le=5)
    message: str = Field(..., min_length=1)


class RatingUpdate(BaseModel):
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    message: Optional[str] = Field(default=None, min_length=1)


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    img: Optional[str] = None


class ConsultCreate(BaseModel):
    username: str = Field(..., min_length=1)
    userEmail: str = Field(..., min_length=3)
    chefId: str
    chefName: str = Field(..., min_length=1)
    date: datetime
    startTime: str = Field(..., min_length=1)
    endTime: str = Field(..., min_length=1)


class ConsultStatusUpdate(BaseModel):
    status: ConsultStatus


class ReceiptCreate(BaseModel):
    """Receipt of a payment confirmed by the payment processor."""

    title: ReceiptTitle
    transactionId: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    status: str = Field(..., min_length=1)
    username: Optional[str] = None
    email: Optional[str] = None


class NewsletterSubscription(BaseModel):
    email: str = Field(..., min_length=3)
    userId: Optional[str] = None
