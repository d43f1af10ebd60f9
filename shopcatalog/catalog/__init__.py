"""Product Catalog.

Provides the catalog models, repositories, the catalog service that
enforces the catalog invariants, and declarative seeding.
"""

from shopcatalog.catalog.models import (
    Image,
    OptionType,
    OptionValue,
    Product,
    ShippingCategory,
    TaxCategory,
    Variant,
)
from shopcatalog.catalog.repository import (
    CategoryRepository,
    OptionTypeRepository,
    ProductRepository,
    VariantRepository,
)
from shopcatalog.catalog.seeds import SAMPLE_CATALOG, CatalogSeeder, SeedCatalog, load_seed_file, parse_catalog
from shopcatalog.catalog.service import CatalogService, VariantSpec

__all__ = [
    # Models
    "Image",
    "OptionType",
    "OptionValue",
    "Product",
    "ShippingCategory",
    "TaxCategory",
    "Variant",
    # Repositories
    "CategoryRepository",
    "OptionTypeRepository",
    "ProductRepository",
    "VariantRepository",
    # Service
    "CatalogService",
    "VariantSpec",
    # Seeding
    "CatalogSeeder",
    "SAMPLE_CATALOG",
    "SeedCatalog",
    "load_seed_file",
    "parse_catalog",
]
