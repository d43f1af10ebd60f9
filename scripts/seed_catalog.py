#!/usr/bin/env python3
"""Seed product catalog script.

Creates the catalog tables and seeds either the built-in sample catalog
or a JSON seed file.

Usage:
    python scripts/seed_catalog.py
    python scripts/seed_catalog.py --file seeds/armour.json
    python scripts/seed_catalog.py --image CHE-00001=images/chest.jpg
"""

import argparse
import asyncio
from pathlib import Path

from shopcatalog.catalog.seeds import SAMPLE_CATALOG, CatalogSeeder, load_seed_file, parse_catalog
from shopcatalog.catalog.service import CatalogService
from shopcatalog.domain.exceptions import CatalogError
from shopcatalog.infrastructure.config import settings
from shopcatalog.infrastructure.database import async_session_factory, create_tables
from shopcatalog.infrastructure.logging_setup import configure_logging


async def attach_images(service: CatalogService, images: list[str]) -> int:
    """Attach SKU=path image pairs.

    Returns:
        Number of attached images.
    """
    attached = 0
    for pair in images:
        sku, _, path = pair.partition("=")
        variant = await service.get_variant_by_sku(sku)
        if variant is None:
            raise CatalogError(f"No variant with SKU {sku}", details={"sku": sku})
        image_path = Path(path)
        await service.attach_image(variant.id, image_path.read_bytes(), image_path.name)
        attached += 1
    return attached


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Seed the product catalog",
    )
    parser.add_argument(
        "--file",
        type=Path,
        help="JSON seed file (default: built-in sample catalog)",
    )
    parser.add_argument(
        "--image",
        action="append",
        default=[],
        metavar="SKU=PATH",
        help="Attach an image file to the variant with the given SKU",
    )
    parser.add_argument(
        "--no-create-tables",
        action="store_true",
        help="Don't create tables before seeding",
    )

    args = parser.parse_args()
    configure_logging(settings.log_level, json_logs=settings.log_json)

    print("=" * 60)
    print("Catalog Seeder")
    print("=" * 60)
    print(f"Source: {args.file or 'sample catalog'}")
    print()

    if not args.no_create_tables:
        print("Creating database tables...")
        await create_tables()
        print("Tables ready.")
        print()

    catalog = load_seed_file(args.file) if args.file else parse_catalog(SAMPLE_CATALOG)

    async with async_session_factory() as session:
        service = CatalogService(session)
        try:
            result = await CatalogSeeder(service).seed(catalog)
            images = await attach_images(service, args.image)
            summary = await service.catalog_summary()
        except CatalogError as e:
            print(f"  ✗ Error: {e}")
            raise

    print(f"  ✓ Products created: {result['products_created']}")
    print(f"  ✓ Products skipped: {result['products_skipped']}")
    print(f"  ✓ Variants created: {result['variants_created']}")
    print(f"  ✓ Images attached: {images}")
    print(f"  ✓ Catalog now holds {summary['products']} products, {summary['variants']} variants")
    print()
    print("=" * 60)
    print("Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
