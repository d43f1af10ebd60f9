"""Tests for option types, option values and their assignment to products."""

from typing import Any

import pytest

from shopcatalog.catalog.service import CatalogService
from shopcatalog.domain.exceptions import (
    InvalidReferenceError,
    InvalidStateError,
    ValidationError,
)


class TestOptionTypes:
    """Tests for option type and value creation."""

    @pytest.mark.asyncio
    async def test_values_ordered_by_position(self, service: CatalogService, reader) -> None:
        """Values come back in position order regardless of creation order."""
        size = await service.create_option_type("armour-size", "Size", 1)
        await service.create_option_value(size.id, "Large", "L", 3)
        await service.create_option_value(size.id, "Small", "S", 1)
        await service.create_option_value(size.id, "Medium", "M", 2)

        async with reader() as other:
            [stored] = await other.list_option_types()
            assert [v.name for v in stored.option_values] == ["Small", "Medium", "Large"]
            assert stored.presentation == "Size"

    @pytest.mark.asyncio
    async def test_presentation_defaults_to_name(self, service: CatalogService) -> None:
        """Missing presentation falls back to the name."""
        colour = await service.create_option_type("colour")
        assert colour.presentation == "colour"

    @pytest.mark.asyncio
    async def test_duplicate_type_name(self, service: CatalogService) -> None:
        """Option type names are unique."""
        await service.create_option_type("armour-size", "Size")
        with pytest.raises(ValidationError) as exc_info:
            await service.create_option_type("armour-size", "Size again")
        assert exc_info.value.field == "name"

    @pytest.mark.asyncio
    async def test_duplicate_value_position(self, service: CatalogService) -> None:
        """Positions are unique within an option type."""
        size = await service.create_option_type("armour-size", "Size")
        size_id = size.id
        await service.create_option_value(size_id, "Small", "S", 1)
        with pytest.raises(ValidationError) as exc_info:
            await service.create_option_value(size_id, "Tiny", "XS", 1)
        assert exc_info.value.field == "position"

    @pytest.mark.asyncio
    async def test_duplicate_value_name(self, service: CatalogService) -> None:
        """Names are unique within an option type."""
        size = await service.create_option_type("armour-size", "Size")
        size_id = size.id
        await service.create_option_value(size_id, "Small", "S", 1)
        with pytest.raises(ValidationError) as exc_info:
            await service.create_option_value(size_id, "Small", "S", 2)
        assert exc_info.value.field == "name"

    @pytest.mark.asyncio
    async def test_same_position_on_different_types(self, service: CatalogService) -> None:
        """Position uniqueness is scoped to the option type."""
        size = await service.create_option_type("armour-size", "Size")
        colour = await service.create_option_type("colour", "Colour")
        await service.create_option_value(size.id, "Small", "S", 1)
        red = await service.create_option_value(colour.id, "Red", "Red", 1)
        assert red.position == 1

    @pytest.mark.asyncio
    async def test_value_for_missing_type(self, service: CatalogService) -> None:
        """Values need an existing option type."""
        with pytest.raises(InvalidReferenceError):
            await service.create_option_value("missing", "Small", "S", 1)


class TestAssignOptionTypes:
    """Tests for CatalogService.assign_option_types."""

    @pytest.mark.asyncio
    async def test_assign_is_additive(self, service: CatalogService, armour: dict[str, Any]) -> None:
        """Assigning again keeps existing axes and adds new ones in position order."""
        colour = await service.create_option_type("colour", "Colour", 2)
        product = await service.assign_option_types(armour["product"].id, [colour.id, armour["size"].id])
        assert [ot.name for ot in product.option_types] == ["armour-size", "colour"]

    @pytest.mark.asyncio
    async def test_unknown_option_type(self, service: CatalogService, armour: dict[str, Any]) -> None:
        """Unknown option types raise InvalidReferenceError."""
        with pytest.raises(InvalidReferenceError) as exc_info:
            await service.assign_option_types(armour["product"].id, ["missing"])
        assert exc_info.value.entity_type == "OptionType"

    @pytest.mark.asyncio
    async def test_unknown_product(self, service: CatalogService, armour: dict[str, Any]) -> None:
        """Unknown products raise InvalidReferenceError."""
        with pytest.raises(InvalidReferenceError):
            await service.assign_option_types("missing", [armour["size"].id])

    @pytest.mark.asyncio
    async def test_new_axis_rejected_once_variants_exist(
        self, service: CatalogService, armour: dict[str, Any], reader
    ) -> None:
        """Adding an axis existing variants do not cover raises InvalidStateError."""
        product_id = armour["product"].id
        await service.create_variant(product_id, "CHE-00002", [armour["Small"].id])
        colour = await service.create_option_type("colour", "Colour", 2)
        colour_id = colour.id

        with pytest.raises(InvalidStateError) as exc_info:
            await service.assign_option_types(product_id, [colour_id])
        assert exc_info.value.details["uncovered_skus"] == ["CHE-00002"]

        async with reader() as other:
            product = await other.get_product(product_id)
            assert [ot.name for ot in product.option_types] == ["armour-size"]

    @pytest.mark.asyncio
    async def test_reassigning_existing_axis_allowed_with_variants(
        self, service: CatalogService, armour: dict[str, Any]
    ) -> None:
        """Re-assigning an axis already in use changes nothing and succeeds."""
        await service.create_variant(armour["product"].id, "CHE-00002", [armour["Small"].id])
        product = await service.assign_option_types(armour["product"].id, [armour["size"].id])
        assert len(product.option_types) == 1
