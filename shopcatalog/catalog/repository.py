"""Catalog repositories for database operations.

Thin query layer over the async session. Repositories never commit;
transaction boundaries belong to the catalog service.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import TypeVar

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from shopcatalog.catalog.models import (
    Image,
    OptionType,
    OptionValue,
    Product,
    ShippingCategory,
    TaxCategory,
    Variant,
)

CategoryT = TypeVar("CategoryT", TaxCategory, ShippingCategory)


class CategoryRepository:
    """Repository for tax and shipping categories.

    Example usage:
        repo = CategoryRepository(session)
        default = await repo.get_by_name(TaxCategory, "Default")
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, model: type[CategoryT], category_id: str) -> CategoryT | None:
        return await self.session.get(model, category_id, populate_existing=True)

    async def get_by_name(self, model: type[CategoryT], name: str) -> CategoryT | None:
        """Get category by exact name.

        Args:
            model: TaxCategory or ShippingCategory.
            name: Category name.

        Returns:
            Category if found, None otherwise.
        """
        result = await self.session.execute(select(model).where(model.name == name))
        return result.scalar_one_or_none()

    async def save(self, category: CategoryT) -> CategoryT:
        self.session.add(category)
        await self.session.flush()
        return category


class OptionTypeRepository:
    """Repository for option types and their values."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, option_type_id: str) -> OptionType | None:
        return await self.session.get(OptionType, option_type_id, populate_existing=True)

    async def get_by_name(self, name: str) -> OptionType | None:
        result = await self.session.execute(
            select(OptionType).where(OptionType.name == name).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_many(self, option_type_ids: Sequence[str]) -> list[OptionType]:
        if not option_type_ids:
            return []
        result = await self.session.execute(
            select(OptionType).where(OptionType.id.in_(option_type_ids))
        )
        return list(result.scalars().all())

    async def find_all(self) -> Sequence[OptionType]:
        result = await self.session.execute(
            select(OptionType).order_by(OptionType.position, OptionType.name)
        )
        return result.scalars().all()

    async def get_values(self, option_value_ids: Sequence[str]) -> list[OptionValue]:
        """Get option values by ID.

        Args:
            option_value_ids: Option value IDs; unknown IDs are ignored.

        Returns:
            The option values found.
        """
        if not option_value_ids:
            return []
        result = await self.session.execute(
            select(OptionValue).where(OptionValue.id.in_(set(option_value_ids)))
        )
        return list(result.scalars().all())

    async def save(self, option_type: OptionType) -> OptionType:
        self.session.add(option_type)
        await self.session.flush()
        return option_type

    async def save_value(self, option_value: OptionValue) -> OptionValue:
        self.session.add(option_value)
        await self.session.flush()
        return option_value


class ProductRepository:
    """Repository for Product database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, product_id: str) -> Product | None:
        return await self.session.get(Product, product_id, populate_existing=True)

    async def get_by_slug(self, slug: str) -> Product | None:
        result = await self.session.execute(
            select(Product).where(Product.slug == slug).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str) -> bool:
        result = await self.session.execute(
            select(func.count(Product.id)).where(Product.slug == slug)
        )
        return result.scalar_one() > 0

    async def find_all(
        self,
        available_at: datetime | None = None,
        include_retired: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[Product]:
        """Find products, newest first.

        Args:
            available_at: Only products available at this time.
            include_retired: Whether to include products with no availability.
            limit: Maximum results.
            offset: Result offset for pagination.

        Returns:
            Sequence of matching products.
        """
        query = select(Product).execution_options(populate_existing=True)

        if available_at is not None:
            query = query.where(Product.available_on <= available_at)
        elif not include_retired:
            query = query.where(Product.available_on.is_not(None))

        query = query.order_by(Product.created_at.desc(), Product.name).limit(limit).offset(offset)

        result = await self.session.execute(query)
        return result.scalars().all()

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(Product.id)))
        return result.scalar_one()

    async def save(self, product: Product) -> Product:
        self.session.add(product)
        await self.session.flush()
        return product


class VariantRepository:
    """Repository for variants and their images."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, variant_id: str) -> Variant | None:
        return await self.session.get(Variant, variant_id, populate_existing=True)

    async def get_by_sku(self, sku: str) -> Variant | None:
        result = await self.session.execute(
            select(Variant).where(Variant.sku == sku).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def skus_with_prefix(self, prefix: str) -> list[str]:
        result = await self.session.execute(
            select(Variant.sku).where(
                or_(Variant.sku.like(f"{prefix}-%"), Variant.sku == prefix)
            )
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(Variant.id)))
        return result.scalar_one()

    async def count_images(self) -> int:
        result = await self.session.execute(select(func.count(Image.id)))
        return result.scalar_one()

    async def save_all(self, variants: list[Variant]) -> list[Variant]:
        self.session.add_all(variants)
        await self.session.flush()
        return variants

    async def save_image(self, image: Image) -> Image:
        self.session.add(image)
        await self.session.flush()
        return image
