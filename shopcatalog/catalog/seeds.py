"""Declarative catalog seeding.

A seed catalog names categories, option types and products by their
human names; the seeder resolves those names to records and drives the
same service operations an administrator would use. Seeding is
re-runnable: existing categories, option types and products are reused,
and variants missing from an existing product are added.
"""

import json
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any

import pydantic
import structlog
from pydantic import BaseModel, Field

from shopcatalog.catalog.models import OptionType, Product
from shopcatalog.catalog.service import CatalogService, VariantSpec
from shopcatalog.catalog.validation import slugify
from shopcatalog.domain.exceptions import ValidationError

logger = structlog.get_logger()


class SeedOptionValue(BaseModel):
    name: str = Field(..., min_length=1)
    presentation: str | None = None
    position: int


class SeedOptionType(BaseModel):
    name: str = Field(..., min_length=1)
    presentation: str | None = None
    position: int = 0
    values: list[SeedOptionValue] = Field(default_factory=list)


class SeedVariant(BaseModel):
    """A variant, with options given as {option type name: value name}."""

    sku: str | None = None
    options: dict[str, str] = Field(default_factory=dict)
    price: int | None = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)


class SeedProduct(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    price: int = Field(..., ge=0, description="Price in cents")
    sku: str | None = None
    tax_category: str = "Default"
    shipping_category: str = "Default"
    available_on: datetime | None = None
    option_types: list[str] = Field(default_factory=list)
    variants: list[SeedVariant] = Field(default_factory=list)


class SeedCatalog(BaseModel):
    tax_categories: list[str] = Field(default_factory=lambda: ["Default"])
    shipping_categories: list[str] = Field(default_factory=lambda: ["Default"])
    option_types: list[SeedOptionType] = Field(default_factory=list)
    products: list[SeedProduct] = Field(default_factory=list)


SAMPLE_CATALOG: dict[str, Any] = {
    "tax_categories": ["Default"],
    "shipping_categories": ["Default"],
    "option_types": [
        {
            "name": "armour-size",
            "presentation": "Size",
            "position": 1,
            "values": [
                {"name": "Small", "presentation": "S", "position": 1},
                {"name": "Medium", "presentation": "M", "position": 2},
                {"name": "Large", "presentation": "L", "position": 3},
            ],
        },
    ],
    "products": [
        {
            "name": "Chest Armour",
            "description": "Riveted steel breastplate with padded lining.",
            "price": 1599,
            "sku": "CHE-00001",
            "option_types": ["armour-size"],
            "variants": [
                {"sku": "CHE-00002", "options": {"armour-size": "Small"}, "stock": 10},
                {"sku": "CHE-00003", "options": {"armour-size": "Medium"}, "stock": 10},
                {"sku": "CHE-00004", "options": {"armour-size": "Large"}, "stock": 10},
            ],
        },
    ],
}


def parse_catalog(data: dict[str, Any]) -> SeedCatalog:
    """Validate seed data.

    Raises:
        ValidationError: If the data does not describe a catalog.
    """
    try:
        return SeedCatalog.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            f"Invalid seed catalog: {exc.error_count()} error(s)",
            details={"errors": exc.errors(include_url=False)},
        ) from exc


def load_seed_file(path: str | Path) -> SeedCatalog:
    """Load and validate a JSON seed file."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Seed file {path} is not valid JSON: {exc}") from exc
    return parse_catalog(data)


class CatalogSeeder:
    """Apply a SeedCatalog through the catalog service.

    Example usage:
        async with async_session_factory() as session:
            seeder = CatalogSeeder(CatalogService(session))
            result = await seeder.seed(parse_catalog(SAMPLE_CATALOG))
    """

    def __init__(self, service: CatalogService) -> None:
        self.service = service

    async def seed(self, catalog: SeedCatalog) -> dict[str, Any]:
        """Seed the catalog.

        Returns:
            Seeding result with counts.
        """
        tax_categories = {
            name: await self.service.create_tax_category(name) for name in catalog.tax_categories
        }
        shipping_categories = {
            name: await self.service.create_shipping_category(name)
            for name in catalog.shipping_categories
        }

        option_types: dict[str, OptionType] = {}
        for seed_type in catalog.option_types:
            option_types[seed_type.name] = await self._seed_option_type(seed_type)

        created, skipped, variants_created = 0, 0, 0
        for seed_product in catalog.products:
            for category_name, known, kind in (
                (seed_product.tax_category, tax_categories, "tax category"),
                (seed_product.shipping_category, shipping_categories, "shipping category"),
            ):
                if category_name not in known:
                    raise ValidationError(
                        f"Product '{seed_product.name}' uses undeclared {kind} '{category_name}'",
                        details={"product": seed_product.name, "category": category_name},
                    )

            # Resolve names first so a bad entry aborts before anything is written
            axis_ids = [self._option_type(option_types, name).id for name in seed_product.option_types]
            specs = [
                VariantSpec(
                    option_value_ids=self._option_value_ids(option_types, seed_variant),
                    sku=seed_variant.sku,
                    price_cents=seed_variant.price,
                    stock_quantity=seed_variant.stock,
                )
                for seed_variant in seed_product.variants
            ]

            existing = await self._existing_product(seed_product)
            if existing is not None:
                logger.info("Seed product already present", name=seed_product.name, slug=existing.slug)
                skipped += 1
                variants_created += await self._complete_variants(existing, axis_ids, specs)
                continue

            await self.service.create_product(
                seed_product.name,
                seed_product.description,
                seed_product.available_on,
                tax_categories[seed_product.tax_category].id,
                shipping_categories[seed_product.shipping_category].id,
                seed_product.price,
                sku=seed_product.sku,
                option_type_ids=axis_ids,
                variants=specs,
            )
            created += 1
            variants_created += len(specs)

        result = {
            "tax_categories": len(tax_categories),
            "shipping_categories": len(shipping_categories),
            "option_types": len(option_types),
            "products_created": created,
            "products_skipped": skipped,
            "variants_created": variants_created,
        }
        logger.info("Catalog seeded", **result)
        return result

    async def _existing_product(self, seed_product: SeedProduct) -> Product | None:
        """Find a previously seeded product by master SKU, or by slug without one."""
        if seed_product.sku:
            master = await self.service.get_variant_by_sku(seed_product.sku)
            return None if master is None else await self.service.get_product(master.product_id)
        return await self.service.get_product_by_slug(slugify(seed_product.name))

    async def _complete_variants(
        self, product: Product, axis_ids: list[str], specs: list[VariantSpec]
    ) -> int:
        """Create the seed variants an existing product is missing.

        A variant with a SKU is present when the SKU exists; one without is
        present when an active variant already has its option values.
        """
        present = {
            frozenset(ov.id for ov in variant.option_values)
            for variant in product.option_variants
            if variant.is_active
        }
        missing = []
        for spec in specs:
            if spec.sku is not None:
                if await self.service.get_variant_by_sku(spec.sku) is not None:
                    continue
            elif frozenset(spec.option_value_ids) in present:
                continue
            missing.append(replace(spec, product_id=product.id))

        if not missing:
            return 0
        if axis_ids:
            await self.service.assign_option_types(product.id, axis_ids)
        created = await self.service.bulk_create_variants(missing)
        logger.info(
            "Seed product completed",
            product_id=product.id,
            skus=[variant.sku for variant in created],
        )
        return len(created)

    async def _seed_option_type(self, seed_type: SeedOptionType) -> OptionType:
        option_type = await self.service.get_option_type_by_name(seed_type.name)
        if option_type is None:
            option_type = await self.service.create_option_type(
                seed_type.name, seed_type.presentation, seed_type.position
            )

        existing = {value.name for value in option_type.option_values}
        for seed_value in seed_type.values:
            if seed_value.name not in existing:
                await self.service.create_option_value(
                    option_type.id,
                    seed_value.name,
                    seed_value.presentation,
                    seed_value.position,
                )
        return option_type

    @staticmethod
    def _option_type(option_types: dict[str, OptionType], name: str) -> OptionType:
        if name not in option_types:
            raise ValidationError(
                f"Option type '{name}' is not declared in the seed catalog",
                details={"option_type": name},
            )
        return option_types[name]

    def _option_value_ids(
        self, option_types: dict[str, OptionType], seed_variant: SeedVariant
    ) -> list[str]:
        ids = []
        for type_name, value_name in seed_variant.options.items():
            option_type = self._option_type(option_types, type_name)
            match = next((v for v in option_type.option_values if v.name == value_name), None)
            if match is None:
                raise ValidationError(
                    f"Option type '{type_name}' has no value '{value_name}'",
                    details={"option_type": type_name, "value": value_name, "sku": seed_variant.sku},
                )
            ids.append(match.id)
        return ids
