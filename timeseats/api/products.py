"""
TimesEats — Product routes
"""
from fastapi import APIRouter, Depends, Response, status

from timeseats.api.deps import get_services
from timeseats.schemas.entities import Product
from timeseats.schemas.requests import ProductCreateRequest, ProductUpdateRequest
from timeseats.services.factory import SalesServices

router = APIRouter(prefix="/api/v1/products", tags=["products"])


@router.post("", response_model=Product, status_code=status.HTTP_201_CREATED)
async def create_product(payload: ProductCreateRequest, services: SalesServices = Depends(get_services)):
    return await services.products.create_product(payload.name, payload.price)


@router.get("", response_model=list[Product])
async def list_products(services: SalesServices = Depends(get_services)):
    return await services.products.list_products()


@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: str, services: SalesServices = Depends(get_services)):
    return await services.products.get_product(product_id)


@router.put("/{product_id}", response_model=Product)
async def update_product(
    product_id: str, payload: ProductUpdateRequest, services: SalesServices = Depends(get_services)
):
    """Rejected with 409 once the product is allocated to any sales slot."""
    return await services.products.update_product(product_id, name=payload.name, price=payload.price)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: str, services: SalesServices = Depends(get_services)):
    await services.products.delete_product(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
