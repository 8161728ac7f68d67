"""
Business logic for the product catalog.

``ProductService`` provides keyword search with pagination, review
submission with per-user duplicate rejection, the top rated listing and
the administrator CRUD operations on products.

Review submission is a read-check-write cycle on the product document.
The write is conditional on the document version that was read, so when
two submissions race the loser re-reads the product and repeats the
duplicate check instead of overwriting the other review.
"""

import logging
import math
import re
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.config import Settings, settings
from ..core.db import ASCENDING, DESCENDING, PRODUCTS, Database, Filter, WriteConflictError
from ..core.errors import ConflictError, StoreFailureError, ValidationError
from ..core.messages import INVALID_PAGINATION, ProductMessages
from ..schemas.product import (
    ProductCreate,
    ProductDocument,
    ProductPage,
    ProductRead,
    ProductUpdate,
    ReviewCreate,
)
from ..schemas.user import UserRead
from .base_service import CrudService, describe_validation_error, parse_payload
from .result import Result, service_operation

logger = logging.getLogger(__name__)

TOP_PRODUCTS_LIMIT = 3


def keyword_filter(keywords: Optional[str]) -> Filter:
    """Case-insensitive substring match on the product name.

    Blank keywords match every product.
    """
    if not keywords or not keywords.strip():
        return {}
    return {"name": {"$regex": re.escape(keywords.strip()), "$options": "i"}}


class ProductService:
    """Service for products and their reviews."""

    def __init__(self, database: Database, config: Optional[Settings] = None) -> None:
        self.settings = config or settings
        self.crud = CrudService(database.collection(PRODUCTS), ProductDocument, "Product")

    @service_operation
    async def all_products(
        self,
        page_number: int = 1,
        page_size: Optional[int] = None,
        keywords: str = "",
    ) -> Result:
        """Return one page of products matching ``keywords``.

        ``page_number`` below 1 is treated as the first page; a
        ``page_size`` below 1 is rejected.
        """
        if page_size is None:
            page_size = self.settings.default_page_size
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
            raise ValidationError(INVALID_PAGINATION)
        page_number = max(page_number or 1, 1)
        skip = page_size * (page_number - 1)
        query = keyword_filter(keywords)

        count = await self.crud.count(query)
        products = await self.crud.find(query, sort=[("_id", ASCENDING)], skip=skip, limit=page_size)
        page = ProductPage(
            products=[ProductRead.from_document(product) for product in products],
            page=page_number,
            pages=math.ceil(count / page_size),
        )
        return Result.success(page, ProductMessages.COLLECTION)

    @service_operation
    async def submit_review(self, product_id: Any, user: UserRead, rating: Any, comment: Optional[str] = None) -> Result:
        """Attach a review by ``user`` and recompute the derived rating.

        A user may review a product once; a second submission is a
        conflict and leaves the product unchanged.
        """
        try:
            review = ReviewCreate.model_validate({"rating": rating, "comment": comment})
        except PydanticValidationError as exc:
            if any(error["loc"][:1] == ("rating",) for error in exc.errors()):
                raise ValidationError(ProductMessages.INVALID_RATING) from exc
            raise ValidationError(describe_validation_error(exc)) from exc

        attempts = max(self.settings.write_retries, 0) + 1
        for attempt in range(1, attempts + 1):
            product = await self.crud.get_by_id(product_id)
            reviews = product.get("reviews", [])
            if any(existing["user"] == user.id for existing in reviews):
                raise ConflictError(ProductMessages.ALREADY_REVIEWED)

            reviews.append({
                "user": user.id,
                "name": f"{user.firstname} {user.lastname}",
                "rating": review.rating,
                "comment": review.comment or "",
            })
            product["reviews"] = reviews
            product["num_reviews"] = len(reviews)
            product["rating"] = sum(item["rating"] for item in reviews) / len(reviews)
            try:
                saved = await self.crud.save(product)
            except WriteConflictError:
                logger.warning(
                    "Product %s changed while reviewing (attempt %d/%d)", product_id, attempt, attempts
                )
                continue
            logger.info("User %s reviewed product %s with %d", user.id, product_id, review.rating)
            return Result.success(ProductRead.from_document(saved), ProductMessages.REVIEW_ADDED, status=201)

        raise StoreFailureError(f"Product {product_id} is being modified concurrently, please retry", retryable=True)

    @service_operation
    async def top_products(self, limit: int = TOP_PRODUCTS_LIMIT) -> Result:
        """Best rated products; ties keep insertion order."""
        products = await self.crud.find(
            {}, sort=[("rating", DESCENDING), ("_id", ASCENDING)], limit=limit
        )
        return Result.success([ProductRead.from_document(product) for product in products], ProductMessages.TOP)

    @service_operation
    async def get_product(self, product_id: Any) -> Result:
        product = await self.crud.get_by_id(product_id)
        return Result.success(ProductRead.from_document(product), ProductMessages.INFORMATIONS)

    @service_operation
    async def create_product(self, data: Union[ProductCreate, Dict[str, Any]]) -> Result:
        fields = parse_payload(ProductCreate, data)
        product = await self.crud.create({**fields, "rating": 0, "num_reviews": 0, "reviews": []})
        logger.info("Created product %s", product["_id"])
        return Result.success(ProductRead.from_document(product), ProductMessages.CREATED, status=201)

    @service_operation
    async def update_product(self, product_id: Any, data: Union[ProductUpdate, Dict[str, Any]]) -> Result:
        """Update catalog fields; rating and reviews are not writable here."""
        changes = parse_payload(ProductUpdate, data)
        product = await self.crud.update(product_id, changes)
        logger.info("Updated product %s", product["_id"])
        return Result.success(ProductRead.from_document(product), ProductMessages.UPDATED)

    @service_operation
    async def delete_product(self, product_id: Any) -> Result:
        product = await self.crud.delete(product_id)
        logger.info("Deleted product %s", product["_id"])
        return Result.success(ProductRead.from_document(product), ProductMessages.DELETED)
