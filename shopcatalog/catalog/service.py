"""Catalog service for product operations.

High-level service that combines repository operations with the
catalog invariants. Every write runs as one transaction on the
supplied session: it commits on success and rolls back on any error,
so readers never observe a half-created product or variant.
"""

import mimetypes
from collections import defaultdict
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any, TypeVar

import structlog
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from shopcatalog.catalog.models import (
    Image,
    OptionType,
    OptionValue,
    Product,
    ShippingCategory,
    TaxCategory,
    Variant,
    as_utc,
)
from shopcatalog.catalog.repository import (
    CategoryRepository,
    OptionTypeRepository,
    ProductRepository,
    VariantRepository,
)
from shopcatalog.catalog.validation import (
    check_option_coverage,
    check_unique_combination,
    clean_name,
    next_sku,
    require_non_negative,
    sku_prefix,
    slugify,
)
from shopcatalog.domain.exceptions import (
    CatalogError,
    DuplicateSKUError,
    InvalidReferenceError,
    InvalidStateError,
    StorageError,
    ValidationError,
)
from shopcatalog.domain.value_objects import Money
from shopcatalog.infrastructure.asset_store import AssetStore, LocalAssetStore, build_asset_key
from shopcatalog.infrastructure.config import settings

logger = structlog.get_logger()

CategoryT = TypeVar("CategoryT", TaxCategory, ShippingCategory)


@dataclass
class VariantSpec:
    """One variant to create.

    Attributes:
        product_id: Parent product; None when created with the product itself.
        option_value_ids: Exactly one option value per product option type.
        sku: Requested SKU; allocated from the product name when None.
        price_cents: Price override; defaults to the master price.
        stock_quantity: Initial units on hand.
    """

    product_id: str | None = None
    option_value_ids: list[str] = field(default_factory=list)
    sku: str | None = None
    price_cents: int | None = None
    stock_quantity: int = 0


class CatalogService:
    """Service for catalog operations.

    Example usage:
        async with async_session_factory() as session:
            service = CatalogService(session)
            tax = await service.create_tax_category("Default")
            shipping = await service.create_shipping_category("Default")
            product = await service.create_product(
                "Chest Armour", "Sturdy plate", None, tax.id, shipping.id, 1599,
            )
    """

    def __init__(
        self,
        session: AsyncSession,
        asset_store: AssetStore | None = None,
        currency: str | None = None,
        max_image_bytes: int | None = None,
    ) -> None:
        """Initialize service with database session.

        Args:
            session: Async SQLAlchemy session.
            asset_store: Store for image blobs (defaults to the local store).
            currency: Default currency for new prices.
            max_image_bytes: Largest accepted image upload.
        """
        self.session = session
        self.categories = CategoryRepository(session)
        self.option_types = OptionTypeRepository(session)
        self.products = ProductRepository(session)
        self.variants = VariantRepository(session)
        self.asset_store = asset_store or LocalAssetStore(settings.asset_storage_path)
        self.currency = currency or settings.default_currency
        self.max_image_bytes = max_image_bytes or settings.max_image_bytes

    # ========================================================================
    # Transactions
    # ========================================================================

    @asynccontextmanager
    async def _transaction(self, operation: str, **context: Any) -> AsyncIterator[None]:
        """Run a block as one atomic unit of work.

        Raises:
            StorageError: If the database connection fails.
        """
        try:
            yield
            await self.session.commit()
        except Exception as exc:
            await self.session.rollback()
            logger.warning(
                "Catalog operation rolled back",
                operation=operation,
                error=str(exc),
                error_type=type(exc).__name__,
                **context,
            )
            if isinstance(exc, (OperationalError, InterfaceError)):
                raise StorageError(
                    f"Database unreachable during {operation}",
                    backend="database",
                    details={"operation": operation},
                ) from exc
            raise

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except (OperationalError, InterfaceError) as exc:
            logger.error("Catalog read failed", operation=operation, error=str(exc))
            raise StorageError(
                f"Database unreachable during {operation}",
                backend="database",
                details={"operation": operation},
            ) from exc

    @staticmethod
    def _integrity_error(exc: IntegrityError, sku: str) -> CatalogError:
        # PostgreSQL names the constraint, SQLite names the column
        message = str(exc.orig)
        if "uq_variants_sku" in message or "variants.sku" in message:
            return DuplicateSKUError(sku)
        return ValidationError(
            "Uniqueness constraint violated",
            details={"constraint": str(exc.orig)},
        )

    # ========================================================================
    # Categories
    # ========================================================================

    async def create_tax_category(self, name: str) -> TaxCategory:
        """Find or create a tax category by name."""
        return await self._find_or_create_category(TaxCategory, name)

    async def create_shipping_category(self, name: str) -> ShippingCategory:
        """Find or create a shipping category by name."""
        return await self._find_or_create_category(ShippingCategory, name)

    async def _find_or_create_category(self, model: type[CategoryT], name: str) -> CategoryT:
        """Return the category named name, creating it if needed.

        A concurrent creator may win the insert; the unique constraint then
        rejects ours and the committed row is fetched instead.
        """
        name = clean_name(name, "name")
        operation = f"create_{model.__tablename__}"
        try:
            async with self._transaction(operation, name=name):
                existing = await self.categories.get_by_name(model, name)
                if existing is not None:
                    return existing
                category = model(name=name)
                await self.categories.save(category)
        except IntegrityError:
            async with self._guard(operation):
                existing = await self.categories.get_by_name(model, name)
            if existing is None:
                raise
            logger.info("Category creation race resolved by lookup", table=model.__tablename__, name=name)
            return existing

        logger.info("Category created", table=model.__tablename__, name=name, category_id=category.id)
        return category

    async def get_tax_category(self, category_id: str) -> TaxCategory | None:
        async with self._guard("get_tax_category"):
            return await self.categories.get(TaxCategory, category_id)

    async def get_shipping_category(self, category_id: str) -> ShippingCategory | None:
        async with self._guard("get_shipping_category"):
            return await self.categories.get(ShippingCategory, category_id)

    # ========================================================================
    # Option types
    # ========================================================================

    async def create_option_type(
        self,
        name: str,
        presentation: str | None = None,
        position: int = 0,
    ) -> OptionType:
        """Create an option type.

        Args:
            name: Unique name (e.g., "armour-size").
            presentation: Display label; defaults to the name.
            position: Display order.

        Returns:
            The new option type.

        Raises:
            ValidationError: If the name is empty or already used.
        """
        name = clean_name(name, "name")
        presentation = clean_name(presentation or name, "presentation")
        try:
            async with self._transaction("create_option_type", name=name):
                if await self.option_types.get_by_name(name) is not None:
                    raise ValidationError(
                        f"Option type '{name}' already exists",
                        field="name",
                        details={"name": name},
                    )
                option_type = OptionType(name=name, presentation=presentation, position=position)
                option_type.option_values = []
                await self.option_types.save(option_type)
        except IntegrityError as exc:
            raise self._integrity_error(exc, sku="") from exc

        logger.info("Option type created", name=name, option_type_id=option_type.id)
        return option_type

    async def create_option_value(
        self,
        option_type_id: str,
        name: str,
        presentation: str | None = None,
        position: int = 0,
    ) -> OptionValue:
        """Create a value on an option type.

        Raises:
            InvalidReferenceError: If the option type does not exist.
            ValidationError: If the position or name is taken within the type.
        """
        name = clean_name(name, "name")
        presentation = clean_name(presentation or name, "presentation")
        try:
            async with self._transaction(
                "create_option_value", option_type_id=option_type_id, name=name
            ):
                option_type = await self.option_types.get(option_type_id)
                if option_type is None:
                    raise InvalidReferenceError("OptionType", option_type_id)

                for existing in option_type.option_values:
                    if existing.position == position:
                        raise ValidationError(
                            f"Position {position} is already used by '{existing.name}' "
                            f"in option type '{option_type.name}'",
                            field="position",
                            details={"option_type_id": option_type_id, "position": position},
                        )
                    if existing.name == name:
                        raise ValidationError(
                            f"Option type '{option_type.name}' already has a value '{name}'",
                            field="name",
                            details={"option_type_id": option_type_id, "name": name},
                        )

                option_value = OptionValue(
                    option_type=option_type,
                    name=name,
                    presentation=presentation,
                    position=position,
                )
                await self.option_types.save_value(option_value)
        except IntegrityError as exc:
            raise self._integrity_error(exc, sku="") from exc

        return option_value

    async def list_option_types(self) -> list[OptionType]:
        async with self._guard("list_option_types"):
            return list(await self.option_types.find_all())

    async def get_option_type_by_name(self, name: str) -> OptionType | None:
        async with self._guard("get_option_type_by_name"):
            return await self.option_types.get_by_name(name)

    # ========================================================================
    # Products
    # ========================================================================

    async def create_product(
        self,
        name: str,
        description: str | None,
        available_on: datetime | None,
        tax_category_id: str,
        shipping_category_id: str,
        price_cents: int,
        *,
        sku: str | None = None,
        currency: str | None = None,
        option_type_ids: Sequence[str] = (),
        variants: Sequence[VariantSpec] = (),
    ) -> Product:
        """Create a product together with its master variant.

        Option types and variants given here are created in the same
        transaction, so a bad variant leaves no product behind.

        Args:
            name: Product name.
            description: Product description.
            available_on: Availability start; None means now.
            tax_category_id: Existing tax category.
            shipping_category_id: Existing shipping category.
            price_cents: Base price in the smallest currency unit.
            sku: Master SKU; allocated as "<PFX>-NNNNN" when None.
            currency: Price currency; defaults to the service currency.
            option_type_ids: Option types to assign.
            variants: Variants to create; their product_id is ignored.

        Returns:
            The new product with its master variant.

        Raises:
            ValidationError: If the name is empty or the price invalid.
            InvalidReferenceError: If a category or option type does not exist.
            DuplicateSKUError: If the master SKU or a variant SKU is taken.
            IncompleteOptionsError: If a variant does not cover every axis.
        """
        name = clean_name(name, "name")
        price = Money(amount_cents=price_cents, currency=currency or self.currency)
        master_sku = sku or ""
        try:
            async with self._transaction("create_product", name=name):
                tax_category = await self.categories.get(TaxCategory, tax_category_id)
                if tax_category is None:
                    raise InvalidReferenceError("TaxCategory", tax_category_id)
                shipping_category = await self.categories.get(ShippingCategory, shipping_category_id)
                if shipping_category is None:
                    raise InvalidReferenceError("ShippingCategory", shipping_category_id)

                master_sku = await self._resolve_sku(sku, name)
                product = Product(
                    name=name,
                    slug=await self._unique_slug(name),
                    description=description,
                    available_on=as_utc(available_on) if available_on else datetime.now(timezone.utc),
                    tax_category=tax_category,
                    shipping_category=shipping_category,
                )
                product.option_types = []
                master = Variant(
                    sku=master_sku,
                    is_master=True,
                    price_cents=price.amount_cents,
                    currency=price.currency,
                    stock_quantity=0,
                    position=0,
                )
                master.option_values = []
                master.images = []
                product.variants = [master]
                await self.products.save(product)

                if option_type_ids:
                    await self._add_option_types(product, option_type_ids)
                if variants:
                    await self._insert_variants(variants, indexed=True, product=product)
        except IntegrityError as exc:
            raise self._integrity_error(exc, master_sku) from exc

        logger.info(
            "Product created",
            product_id=product.id,
            slug=product.slug,
            master_sku=master_sku,
            price=str(price),
            variants=len(variants),
        )
        return product

    async def get_product(self, product_id: str) -> Product | None:
        async with self._guard("get_product"):
            return await self.products.get_by_id(product_id)

    async def get_product_by_slug(self, slug: str) -> Product | None:
        async with self._guard("get_product_by_slug"):
            return await self.products.get_by_slug(slug)

    async def list_products(
        self,
        available_at: datetime | None = None,
        include_retired: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Product]:
        """List products.

        Args:
            available_at: Only products purchasable at this time.
            include_retired: Include products whose availability was cleared.
            limit: Maximum results.
            offset: Result offset.
        """
        async with self._guard("list_products"):
            products = await self.products.find_all(
                available_at=as_utc(available_at) if available_at else None,
                include_retired=include_retired,
                limit=limit,
                offset=offset,
            )
        return list(products)

    async def retire_product(self, product_id: str) -> Product:
        """Soft-retire a product by clearing its availability."""
        async with self._transaction("retire_product", product_id=product_id):
            product = await self._require_product(product_id)
            product.available_on = None
        logger.info("Product retired", product_id=product_id)
        return product

    async def make_available(self, product_id: str, available_on: datetime | None = None) -> Product:
        async with self._transaction("make_available", product_id=product_id):
            product = await self._require_product(product_id)
            product.available_on = as_utc(available_on) if available_on else datetime.now(timezone.utc)
        return product

    async def update_product_price(self, product_id: str, price_cents: int) -> Product:
        """Change the base price, stored on the master variant.

        Raises:
            ValidationError: If the price is negative.
        """
        async with self._transaction("update_product_price", product_id=product_id):
            product = await self._require_product(product_id)
            price = Money(amount_cents=price_cents, currency=product.master.currency)
            product.master.price_cents = price.amount_cents
        logger.info("Product price updated", product_id=product_id, price=str(price))
        return product

    async def assign_option_types(self, product_id: str, option_type_ids: Sequence[str]) -> Product:
        """Associate option types with a product.

        Assignment is additive. Adding an axis is refused while the product
        has non-master variants, since none of them select a value for it.

        Raises:
            InvalidReferenceError: If the product or an option type is missing.
            InvalidStateError: If existing variants would not cover a new axis.
        """
        async with self._transaction("assign_option_types", product_id=product_id):
            product = await self._require_product(product_id)
            await self._add_option_types(product, option_type_ids)
        return product

    async def _add_option_types(self, product: Product, option_type_ids: Sequence[str]) -> None:
        found = {ot.id: ot for ot in await self.option_types.get_many(option_type_ids)}
        for option_type_id in option_type_ids:
            if option_type_id not in found:
                raise InvalidReferenceError("OptionType", option_type_id)

        current = {ot.id for ot in product.option_types}
        added = [found[ot_id] for ot_id in dict.fromkeys(option_type_ids) if ot_id not in current]
        if added:
            added_ids = {ot.id for ot in added}
            uncovered = [
                v.sku for v in product.option_variants if not added_ids <= v.option_type_ids
            ]
            if uncovered:
                raise InvalidStateError(
                    f"Cannot add option types {sorted(ot.name for ot in added)} to "
                    f"'{product.name}': existing variants do not cover them",
                    details={
                        "product_id": product.id,
                        "option_types": sorted(ot.name for ot in added),
                        "uncovered_skus": uncovered,
                    },
                )
            product.option_types.extend(added)
            await self.session.flush()

        logger.info(
            "Option types assigned",
            product_id=product.id,
            option_types=[ot.name for ot in product.option_types],
        )

    # ========================================================================
    # Variants
    # ========================================================================

    async def create_variant(
        self,
        product_id: str,
        sku: str | None,
        option_value_ids: Sequence[str],
        *,
        price_cents: int | None = None,
        stock_quantity: int = 0,
    ) -> Variant:
        """Create one variant of a product.

        Raises:
            InvalidReferenceError: If the product or an option value is missing,
                or a value belongs to an option type the product does not use.
            DuplicateSKUError: If the SKU is taken.
            IncompleteOptionsError: Unless exactly one value per product axis.
            ValidationError: If an active sibling has the same options.
        """
        spec = VariantSpec(
            product_id=product_id,
            option_value_ids=list(option_value_ids),
            sku=sku,
            price_cents=price_cents,
            stock_quantity=stock_quantity,
        )
        try:
            async with self._transaction("create_variant", product_id=product_id, sku=sku):
                [(product, variant)] = await self._prepare_variants([spec], indexed=False)
                product.variants.append(variant)
                await self.variants.save_all([variant])
        except IntegrityError as exc:
            raise self._integrity_error(exc, sku or "") from exc

        logger.info("Variant created", product_id=product_id, sku=variant.sku, variant_id=variant.id)
        return variant

    async def bulk_create_variants(self, entries: Sequence[VariantSpec]) -> list[Variant]:
        """Create many variants in a single transaction.

        Every entry is validated before anything is written. Any failure
        rolls back the whole batch; the error names the entry index and SKU.
        """
        if not entries:
            return []
        try:
            async with self._transaction("bulk_create_variants", count=len(entries)):
                created = await self._insert_variants(entries, indexed=True)
        except IntegrityError as exc:
            raise self._integrity_error(exc, ", ".join(e.sku or "" for e in entries)) from exc

        logger.info(
            "Variants created in bulk",
            count=len(created),
            skus=[variant.sku for variant in created],
        )
        return created

    async def _insert_variants(
        self,
        specs: Sequence[VariantSpec],
        indexed: bool,
        product: Product | None = None,
    ) -> list[Variant]:
        prepared = await self._prepare_variants(specs, indexed, product)
        for owner, variant in prepared:
            owner.variants.append(variant)
        return await self.variants.save_all([variant for _, variant in prepared])

    async def _prepare_variants(
        self,
        specs: Sequence[VariantSpec],
        indexed: bool,
        owner: Product | None = None,
    ) -> list[tuple[Product, Variant]]:
        """Validate variant specs and build (unsaved) variants.

        When owner is given every spec belongs to it, whatever its product_id.
        """
        products: dict[str, Product] = {} if owner is None else {owner.id: owner}
        reserved_skus: set[str] = set()
        reserved_combinations: dict[str, set[frozenset[str]]] = defaultdict(set)
        positions: dict[str, int] = {}
        values = {
            ov.id: ov
            for ov in await self.option_types.get_values(
                [ov_id for spec in specs for ov_id in spec.option_value_ids]
            )
        }

        prepared: list[tuple[Product, Variant]] = []
        for index, spec in enumerate(specs):
            position_in_batch = index if indexed else None

            product_id = owner.id if owner is not None else spec.product_id
            product = products.get(product_id)
            if product is None:
                product = await self._require_product(product_id, index=position_in_batch)
                products[product.id] = product

            sku = await self._resolve_sku(spec.sku, product.name, reserved_skus, index=position_in_batch)
            check_option_coverage(
                product,
                sku,
                spec.option_value_ids,
                [values[ov_id] for ov_id in set(spec.option_value_ids) if ov_id in values],
                index=position_in_batch,
            )
            combination = check_unique_combination(
                product,
                sku,
                spec.option_value_ids,
                reserved_combinations[product.id],
                index=position_in_batch,
            )

            master = product.master
            price = Money(
                amount_cents=master.price_cents if spec.price_cents is None else spec.price_cents,
                currency=master.currency,
            )
            stock = require_non_negative(spec.stock_quantity, "stock_quantity")

            position = positions.get(product.id, max(v.position for v in product.variants)) + 1
            positions[product.id] = position

            variant = Variant(
                product_id=product.id,
                sku=sku,
                is_master=False,
                price_cents=price.amount_cents,
                currency=price.currency,
                stock_quantity=stock,
                position=position,
            )
            variant.option_values = [values[ov_id] for ov_id in spec.option_value_ids]
            variant.images = []

            reserved_skus.add(sku)
            reserved_combinations[product.id].add(combination)
            prepared.append((product, variant))
        return prepared

    async def get_variant(self, variant_id: str) -> Variant | None:
        async with self._guard("get_variant"):
            return await self.variants.get_by_id(variant_id)

    async def get_variant_by_sku(self, sku: str) -> Variant | None:
        async with self._guard("get_variant_by_sku"):
            return await self.variants.get_by_sku(sku)

    async def update_variant_price(self, variant_id: str, price_cents: int) -> Variant:
        async with self._transaction("update_variant_price", variant_id=variant_id):
            variant = await self._require_variant(variant_id)
            variant.price_cents = Money(amount_cents=price_cents, currency=variant.currency).amount_cents
        return variant

    async def update_variant_stock(self, variant_id: str, stock_quantity: int) -> Variant:
        """Set units on hand for a variant.

        Raises:
            ValidationError: If the quantity is negative.
        """
        async with self._transaction("update_variant_stock", variant_id=variant_id):
            variant = await self._require_variant(variant_id)
            variant.stock_quantity = require_non_negative(stock_quantity, "stock_quantity")
        logger.info("Variant stock updated", sku=variant.sku, stock_quantity=stock_quantity)
        return variant

    async def deactivate_variant(self, variant_id: str) -> Variant:
        """Withdraw a variant without deleting it.

        The SKU stays reserved so historical orders keep resolving.

        Raises:
            InvalidStateError: For the master variant.
        """
        async with self._transaction("deactivate_variant", variant_id=variant_id):
            variant = await self._require_variant(variant_id)
            if variant.is_master:
                raise InvalidStateError(
                    f"Master variant {variant.sku} cannot be deactivated; retire the product instead",
                    details={"variant_id": variant_id, "sku": variant.sku},
                )
            if variant.deactivated_at is None:
                variant.deactivated_at = datetime.now(timezone.utc)
        logger.info("Variant deactivated", sku=variant.sku)
        return variant

    # ========================================================================
    # Images
    # ========================================================================

    async def attach_image(self, variant_id: str, data: bytes, filename: str) -> str:
        """Store an image and attach it to a variant.

        Args:
            variant_id: Owning variant.
            data: Image bytes.
            filename: Original filename.

        Returns:
            The new image ID.

        Raises:
            InvalidReferenceError: If the variant does not exist.
            ValidationError: If the upload is empty or too large.
            StorageError: If the asset store is unreachable.
        """
        filename = PurePosixPath(clean_name(filename, "filename").replace("\\", "/")).name
        if not data:
            raise ValidationError("Image data must not be empty", field="data")
        if len(data) > self.max_image_bytes:
            raise ValidationError(
                f"Image exceeds {self.max_image_bytes} bytes",
                field="data",
                details={"size": len(data), "max_bytes": self.max_image_bytes},
            )

        async with self._guard("attach_image"):
            variant = await self._require_variant(variant_id)

        key = await self.asset_store.save(build_asset_key(variant.id, filename), data)
        image = Image(
            filename=filename,
            storage_key=key,
            content_type=mimetypes.guess_type(filename)[0] or "application/octet-stream",
            byte_size=len(data),
            position=len(variant.images) + 1,
        )
        try:
            async with self._transaction("attach_image", variant_id=variant_id, key=key):
                variant.images.append(image)
                await self.variants.save_image(image)
        except Exception:
            await self._discard_asset(key)
            raise

        logger.info("Image attached", sku=variant.sku, image_id=image.id, key=key, size=len(data))
        return image.id

    async def _discard_asset(self, key: str) -> None:
        try:
            await self.asset_store.delete(key)
        except StorageError as exc:
            logger.error("Orphaned asset left in store", key=key, error=str(exc))

    # ========================================================================
    # Reporting
    # ========================================================================

    async def catalog_summary(self) -> dict[str, int]:
        """Count catalog records."""
        async with self._guard("catalog_summary"):
            return {
                "products": await self.products.count(),
                "variants": await self.variants.count(),
                "images": await self.variants.count_images(),
            }

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _require_product(self, product_id: str | None, index: int | None = None) -> Product:
        product = await self.products.get_by_id(product_id) if product_id else None
        if product is None:
            details = {} if index is None else {"index": index}
            raise InvalidReferenceError("Product", product_id, details=details)
        return product

    async def _require_variant(self, variant_id: str) -> Variant:
        variant = await self.variants.get_by_id(variant_id)
        if variant is None:
            raise InvalidReferenceError("Variant", variant_id)
        return variant

    async def _resolve_sku(
        self,
        sku: str | None,
        product_name: str,
        reserved: set[str] | None = None,
        index: int | None = None,
    ) -> str:
        """Validate a requested SKU or allocate the next one for the product."""
        reserved = reserved or set()
        if sku is None:
            prefix = sku_prefix(product_name)
            taken = await self.variants.skus_with_prefix(prefix)
            return next_sku(prefix, [*taken, *reserved])

        sku = clean_name(sku, "sku")
        if sku in reserved or await self.variants.get_by_sku(sku) is not None:
            raise DuplicateSKUError(sku, index=index)
        return sku

    async def _unique_slug(self, name: str) -> str:
        base = slugify(name)
        slug, suffix = base, 2
        while await self.products.slug_exists(slug):
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug
