"""
Product endpoints for API v1.

Public catalog browsing (search with pagination, top rated, detail),
review submission for authenticated users and administrator CRUD.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from catalog_api.app.api.deps import get_current_user, get_product_service, require_admin
from catalog_api.app.api.responses import render
from catalog_api.app.schemas.product import ProductCreate, ProductUpdate, ReviewCreate
from catalog_api.app.schemas.user import UserRead
from catalog_api.app.services.product_service import ProductService


router = APIRouter()


@router.get("/")
async def list_products(
    page_number: int = Query(1, alias="pageNumber"),
    page_size: Optional[int] = Query(None, alias="pageSize", le=100),
    keyword: str = Query("", description="Case-insensitive match on the product name"),
    products: ProductService = Depends(get_product_service),
) -> JSONResponse:
    return render(await products.all_products(page_number, page_size, keyword))


@router.get("/top")
async def top_products(products: ProductService = Depends(get_product_service)) -> JSONResponse:
    """The three best rated products."""
    return render(await products.top_products())


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    products: ProductService = Depends(get_product_service),
) -> JSONResponse:
    return render(await products.get_product(product_id))


@router.post("/{product_id}/reviews")
async def create_product_review(
    product_id: str,
    review: ReviewCreate,
    current_user: UserRead = Depends(get_current_user),
    products: ProductService = Depends(get_product_service),
) -> JSONResponse:
    """Review a product.  Each user may review a product once."""
    return render(await products.submit_review(product_id, current_user, review.rating, review.comment))


@router.post("/")
async def create_product(
    body: ProductCreate,
    _: UserRead = Depends(require_admin),
    products: ProductService = Depends(get_product_service),
) -> JSONResponse:
    return render(await products.create_product(body))


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    body: ProductUpdate,
    _: UserRead = Depends(require_admin),
    products: ProductService = Depends(get_product_service),
) -> JSONResponse:
    return render(await products.update_product(product_id, body))


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    _: UserRead = Depends(require_admin),
    products: ProductService = Depends(get_product_service),
) -> JSONResponse:
    return render(await products.delete_product(product_id))
