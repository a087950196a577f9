#backend/product_admin/api/api.py
from fastapi import APIRouter
from product_admin.api.v1.endpoints import products

api_router = APIRouter()

# Incluir routers para diferentes recursos
api_router.include_router(products.router, prefix="/products", tags=["products"])
