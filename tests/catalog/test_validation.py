"""Tests for catalog naming helpers."""

import pytest

from shopcatalog.catalog.validation import clean_name, next_sku, sku_prefix, slugify
from shopcatalog.domain.exceptions import ValidationError


class TestNaming:
    """Tests for slug and SKU helpers."""

    def test_slugify(self) -> None:
        assert slugify("Chest Armour") == "chest-armour"
        assert slugify("  Helm (Iron) ") == "helm-iron"
        assert slugify("!!!") == "product"

    def test_sku_prefix(self) -> None:
        assert sku_prefix("Chest Armour") == "CHE"
        assert sku_prefix("Ox") == "OXX"
        assert sku_prefix("") == "SKU"

    def test_next_sku_skips_foreign_prefixes(self) -> None:
        """Only SKUs with the same prefix advance the sequence."""
        assert next_sku("CHE", []) == "CHE-00001"
        assert next_sku("CHE", ["CHE-00001", "CHE-00007", "HEL-00020", "CHE-custom"]) == "CHE-00008"

    def test_clean_name(self) -> None:
        assert clean_name("  Default ", "name") == "Default"
        with pytest.raises(ValidationError):
            clean_name(None, "name")
