"""
Top-level router for version 1 of the API.

Aggregates the domain routers under a unified prefix.
"""

from fastapi import APIRouter

from .endpoints import products, users

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(products.router, prefix="/products", tags=["products"])
