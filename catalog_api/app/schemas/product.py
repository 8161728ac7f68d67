"""
Pydantic schemas for products and their reviews.

A product owns its reviews: they are embedded in the product document
and have no lifecycle of their own.  ``rating`` and ``num_reviews`` are
derived from the embedded reviews and recomputed on every submission.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class ReviewDocument(BaseModel):
    user: str = Field(..., description="Id of the reviewing user")
    name: str = Field(..., description="Reviewer display name at submission time")
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class ProductDocument(BaseModel):
    """Stored shape of a product."""

    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., ge=0, allow_inf_nan=False)
    stock: int = Field(0, ge=0)
    image: str = ""
    rating: float = Field(0, ge=0, le=5)
    num_reviews: int = Field(0, ge=0)
    reviews: List[ReviewDocument] = []


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, example="Wireless Mouse")
    description: str = Field("", example="Ergonomic 2.4GHz mouse")
    price: float = Field(..., ge=0, allow_inf_nan=False, example=24.99)
    stock: int = Field(0, ge=0, example=100)
    image: str = Field("", example="/public/uploads/mouse.jpg")


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    stock: Optional[int] = Field(None, ge=0)
    image: Optional[str] = None


class ReviewCreate(BaseModel):
    """Schema for submitting a review."""

    rating: int = Field(..., ge=1, le=5, strict=True, description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, description="Optional textual comment")

    @field_validator("comment")
    @classmethod
    def sanitize_comment(cls, v: Optional[str]) -> Optional[str]:
        """Trim whitespace from the comment and enforce a maximum length."""
        if v is None:
            return None
        v = v.strip()
        if len(v) > 1000:
            raise ValueError("Comment must be 1000 characters or fewer")
        return v


class ReviewRead(BaseModel):
    user: str
    name: str
    rating: int
    comment: str


class ProductRead(BaseModel):
    id: str
    name: str
    description: str
    price: float
    stock: int
    image: str
    rating: float
    num_reviews: int
    reviews: List[ReviewRead] = []

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "ProductRead":
        return cls(
            id=str(document["_id"]),
            name=document["name"],
            description=document.get("description", ""),
            price=document["price"],
            stock=document.get("stock", 0),
            image=document.get("image", ""),
            rating=document.get("rating", 0),
            num_reviews=document.get("num_reviews", 0),
            reviews=[ReviewRead(**review) for review in document.get("reviews", [])],
        )


class ProductPage(BaseModel):
    products: List[ProductRead]
    page: int
    pages: int
