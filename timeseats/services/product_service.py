"""
TimesEats — Product catalogue

Prices are integers in minor currency units. A product is frozen once any
sales slot allocates it: orders capture its price, and the ledger rows
reference it.
"""
import logging

from timeseats.core.errors import InvalidRequestError, NotFoundError, ProductInUseError
from timeseats.schemas.entities import Product
from timeseats.services.base import UowFactory, new_id, utcnow

logger = logging.getLogger(__name__)


def _validate(name: str, price: int) -> None:
    if not name or not name.strip():
        raise InvalidRequestError("Product name must not be empty.")
    if not isinstance(price, int) or isinstance(price, bool) or price < 0:
        raise InvalidRequestError(f"Product price must be a non-negative integer, got {price!r}.")


class ProductService:
    def __init__(self, uow_factory: UowFactory):
        self._uow_factory = uow_factory

    async def create_product(self, name: str, price: int) -> Product:
        _validate(name, price)
        now = utcnow()
        async with self._uow_factory() as uow:
            product = await uow.products.add(
                Product(id=new_id(), name=name.strip(), price=price, created_at=now, updated_at=now)
            )
        logger.info("Product created: %s (%s, price=%d)", product.id, product.name, product.price)
        return product

    async def get_product(self, product_id: str) -> Product:
        async with self._uow_factory() as uow:
            product = await uow.products.get(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    async def list_products(self) -> list[Product]:
        async with self._uow_factory() as uow:
            return await uow.products.list_all()

    async def update_product(self, product_id: str, name: str | None = None, price: int | None = None) -> Product:
        async with self._uow_factory() as uow:
            current = await uow.products.get(product_id)
            if current is None:
                raise NotFoundError("Product", product_id)
            if await uow.inventories.exists_for_product(product_id):
                raise ProductInUseError(f"Product '{product_id}' is allocated to a sales slot and cannot change.")
            name = current.name if name is None else name
            price = current.price if price is None else price
            _validate(name, price)
            product = await uow.products.update(product_id, name.strip(), price)
        logger.info("Product updated: %s", product_id)
        return product

    async def delete_product(self, product_id: str) -> None:
        async with self._uow_factory() as uow:
            if await uow.products.get(product_id) is None:
                raise NotFoundError("Product", product_id)
            if await uow.inventories.exists_for_product(product_id):
                raise ProductInUseError(f"Product '{product_id}' is allocated to a sales slot and cannot be deleted.")
            await uow.products.delete(product_id)
        logger.info("Product deleted: %s", product_id)
