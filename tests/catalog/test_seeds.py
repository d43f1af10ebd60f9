"""Tests for declarative catalog seeding."""

import copy
import json
from typing import Any

import pytest

from shopcatalog.catalog.seeds import SAMPLE_CATALOG, CatalogSeeder, load_seed_file, parse_catalog
from shopcatalog.catalog.service import CatalogService
from shopcatalog.domain.exceptions import DuplicateSKUError, ValidationError


class TestParseCatalog:
    """Tests for seed data validation."""

    def test_sample_catalog_parses(self) -> None:
        """The embedded sample is a valid catalog."""
        catalog = parse_catalog(SAMPLE_CATALOG)
        assert [p.name for p in catalog.products] == ["Chest Armour"]
        assert [v.name for v in catalog.option_types[0].values] == ["Small", "Medium", "Large"]

    def test_negative_price_rejected(self) -> None:
        """Seed prices must be non-negative."""
        data = copy.deepcopy(SAMPLE_CATALOG)
        data["products"][0]["price"] = -10
        with pytest.raises(ValidationError) as exc_info:
            parse_catalog(data)
        assert exc_info.value.details["errors"]

    def test_load_seed_file(self, tmp_path) -> None:
        """Seed files are JSON documents."""
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(SAMPLE_CATALOG), encoding="utf-8")
        assert load_seed_file(path).products[0].sku == "CHE-00001"

    def test_load_invalid_json(self, tmp_path) -> None:
        """Malformed files raise ValidationError."""
        path = tmp_path / "catalog.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValidationError):
            load_seed_file(path)


class TestCatalogSeeder:
    """Tests for CatalogSeeder."""

    @pytest.mark.asyncio
    async def test_seed_sample_catalog(self, service: CatalogService, reader) -> None:
        """Seeding the sample creates the master and three size variants."""
        result = await CatalogSeeder(service).seed(parse_catalog(SAMPLE_CATALOG))

        assert result["products_created"] == 1
        assert result["variants_created"] == 3

        async with reader() as other:
            product = await other.get_product_by_slug("chest-armour")
            assert product.price.amount_cents == 1599
            assert product.master.sku == "CHE-00001"
            assert {v.sku: v.options_text for v in product.option_variants} == {
                "CHE-00002": "Size: S",
                "CHE-00003": "Size: M",
                "CHE-00004": "Size: L",
            }

    @pytest.mark.asyncio
    async def test_seed_is_rerunnable(self, service: CatalogService, reader) -> None:
        """Running the seed twice reuses existing records."""
        catalog = parse_catalog(SAMPLE_CATALOG)
        await CatalogSeeder(service).seed(catalog)
        result = await CatalogSeeder(service).seed(catalog)

        assert result["products_created"] == 0
        assert result["products_skipped"] == 1

        async with reader() as other:
            summary = await other.catalog_summary()
        assert summary == {"products": 1, "variants": 4, "images": 0}

    @pytest.mark.asyncio
    async def test_unknown_option_value(self, service: CatalogService, reader) -> None:
        """Variants naming an undeclared value abort the seed before the product is created."""
        data = copy.deepcopy(SAMPLE_CATALOG)
        data["products"][0]["variants"][0]["options"] = {"armour-size": "Huge"}
        with pytest.raises(ValidationError) as exc_info:
            await CatalogSeeder(service).seed(parse_catalog(data))
        assert exc_info.value.details["value"] == "Huge"

        async with reader() as other:
            assert (await other.catalog_summary())["products"] == 0

    @pytest.mark.asyncio
    async def test_undeclared_category(self, service: CatalogService) -> None:
        """Products naming an undeclared category abort the seed."""
        data = copy.deepcopy(SAMPLE_CATALOG)
        data["products"][0]["tax_category"] = "Luxury"
        with pytest.raises(ValidationError):
            await CatalogSeeder(service).seed(parse_catalog(data))

    @pytest.mark.asyncio
    async def test_failed_variant_batch_leaves_nothing(self, service: CatalogService, reader) -> None:
        """A variant clashing with the master SKU aborts the product, and a corrected run seeds it fully."""
        data = copy.deepcopy(SAMPLE_CATALOG)
        data["products"][0]["variants"][2]["sku"] = "CHE-00001"
        with pytest.raises(DuplicateSKUError):
            await CatalogSeeder(service).seed(parse_catalog(data))

        async with reader() as other:
            assert (await other.catalog_summary())["products"] == 0

        result = await CatalogSeeder(service).seed(parse_catalog(SAMPLE_CATALOG))

        assert result["products_created"] == 1
        async with reader() as other:
            assert await other.catalog_summary() == {"products": 1, "variants": 4, "images": 0}

    @pytest.mark.asyncio
    async def test_rerun_without_master_sku(self, service: CatalogService, reader) -> None:
        """Products seeded without a master SKU are recognised by slug."""
        data = copy.deepcopy(SAMPLE_CATALOG)
        del data["products"][0]["sku"]
        catalog = parse_catalog(data)

        await CatalogSeeder(service).seed(catalog)
        result = await CatalogSeeder(service).seed(catalog)

        assert result["products_created"] == 0
        assert result["products_skipped"] == 1
        assert result["variants_created"] == 0
        async with reader() as other:
            assert await other.catalog_summary() == {"products": 1, "variants": 4, "images": 0}
            assert [p.slug for p in await other.list_products()] == ["chest-armour"]

    @pytest.mark.asyncio
    async def test_rerun_adds_missing_variants(
        self, service: CatalogService, categories: dict[str, Any], reader
    ) -> None:
        """An existing product with only its master gains the seeded variants."""
        await service.create_product(
            "Chest Armour",
            None,
            None,
            categories["tax"].id,
            categories["shipping"].id,
            1599,
            sku="CHE-00001",
        )

        result = await CatalogSeeder(service).seed(parse_catalog(SAMPLE_CATALOG))

        assert result["products_skipped"] == 1
        assert result["variants_created"] == 3
        async with reader() as other:
            product = await other.get_product_by_slug("chest-armour")
            assert [v.sku for v in product.option_variants] == ["CHE-00002", "CHE-00003", "CHE-00004"]
            assert [ot.name for ot in product.option_types] == ["armour-size"]
