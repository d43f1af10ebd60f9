"""Tests for tax and shipping category creation."""

import pytest
from sqlalchemy import func, select

from shopcatalog.catalog.models import ShippingCategory, TaxCategory
from shopcatalog.catalog.service import CatalogService
from shopcatalog.domain.exceptions import ValidationError


class TestCategoryCreation:
    """Tests for find-or-create category semantics."""

    @pytest.mark.asyncio
    async def test_create_tax_category_is_idempotent(self, service: CatalogService, reader) -> None:
        """Creating the same tax category twice yields one record."""
        first = await service.create_tax_category("Default")
        second = await service.create_tax_category("Default")

        assert first.id == second.id

        async with reader() as other:
            count = await other.session.scalar(select(func.count(TaxCategory.id)))
        assert count == 1

    @pytest.mark.asyncio
    async def test_create_shipping_category_is_idempotent(self, service: CatalogService) -> None:
        """Creating the same shipping category twice yields one record."""
        first = await service.create_shipping_category("Default")
        second = await service.create_shipping_category("Default")
        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_name_is_trimmed_before_lookup(self, service: CatalogService) -> None:
        """Surrounding whitespace does not create a second category."""
        first = await service.create_tax_category("Clothing")
        second = await service.create_tax_category("  Clothing ")
        assert first.id == second.id
        assert second.name == "Clothing"

    @pytest.mark.asyncio
    async def test_tax_and_shipping_are_separate(self, service: CatalogService, reader) -> None:
        """Same name in both taxonomies produces two distinct records."""
        tax = await service.create_tax_category("Default")
        shipping = await service.create_shipping_category("Default")

        async with reader() as other:
            assert await other.get_tax_category(tax.id) is not None
            assert await other.get_shipping_category(shipping.id) is not None
            assert await other.get_tax_category(shipping.id) is None

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, service: CatalogService) -> None:
        """Blank names raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_tax_category("   ")
        assert exc_info.value.field == "name"

    @pytest.mark.asyncio
    async def test_lost_race_resolves_to_existing_row(
        self, service: CatalogService, session_factory
    ) -> None:
        """A concurrent insert of the same name is answered by lookup."""
        # Another writer commits the row after our lookup would have missed it.
        async with session_factory() as other:
            other.add(ShippingCategory(name="Freight"))
            await other.commit()

        original = service.categories.get_by_name
        calls = {"count": 0}

        async def miss_first(model, name):
            calls["count"] += 1
            if calls["count"] == 1:
                return None
            return await original(model, name)

        service.categories.get_by_name = miss_first

        category = await service.create_shipping_category("Freight")

        assert category.name == "Freight"
        assert calls["count"] == 2
