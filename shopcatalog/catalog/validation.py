"""Catalog invariant checks.

Pure functions shared by the interactive and bulk write paths. They
inspect already-loaded records and raise catalog errors; they never
touch the session.
"""

import re
from collections import Counter
from collections.abc import Iterable, Sequence

from shopcatalog.catalog.models import OptionType, OptionValue, Product
from shopcatalog.domain.exceptions import (
    IncompleteOptionsError,
    InvalidReferenceError,
    ValidationError,
)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def clean_name(value: str | None, field: str) -> str:
    """Strip a required name and reject empty values.

    Raises:
        ValidationError: If the value is missing or blank.
    """
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} must not be empty", field=field)
    return cleaned


def require_non_negative(value: int, field: str) -> int:
    if value < 0:
        raise ValidationError(f"{field} cannot be negative: {value}", field=field, details={"value": value})
    return value


def slugify(name: str) -> str:
    slug = _SLUG_STRIP.sub("-", name.lower()).strip("-")
    return slug or "product"


def sku_prefix(name: str) -> str:
    """Derive a three-letter SKU prefix, e.g. "Chest Armour" -> "CHE"."""
    letters = re.sub(r"[^A-Za-z0-9]", "", name).upper()
    return (letters[:3] or "SKU").ljust(3, "X")


def next_sku(prefix: str, taken: Iterable[str]) -> str:
    """Allocate the next "<prefix>-NNNNN" SKU after the highest taken sequence."""
    highest = 0
    for sku in taken:
        head, _, tail = sku.rpartition("-")
        if head == prefix and tail.isdigit():
            highest = max(highest, int(tail))
    return f"{prefix}-{highest + 1:05d}"


def check_option_coverage(
    product: Product,
    sku: str,
    option_value_ids: Sequence[str],
    option_values: Sequence[OptionValue],
    index: int | None = None,
) -> None:
    """Check that a variant selects exactly one value per product axis.

    Args:
        product: Parent product with its option types loaded.
        sku: SKU of the variant being created (for error context).
        option_value_ids: Requested option value IDs.
        option_values: Option values that resolved from option_value_ids.
        index: Entry position in a bulk request.

    Raises:
        InvalidReferenceError: If a value is unknown or belongs to an axis
            not assigned to the product.
        IncompleteOptionsError: If an axis is missing or selected twice.
    """
    context = {"sku": sku} if index is None else {"sku": sku, "index": index}
    found = {ov.id: ov for ov in option_values}
    for option_value_id in option_value_ids:
        if option_value_id not in found:
            raise InvalidReferenceError("OptionValue", option_value_id, details=context)

    axes: dict[str, OptionType] = {ot.id: ot for ot in product.option_types}
    for option_value_id in option_value_ids:
        option_value = found[option_value_id]
        if option_value.option_type_id not in axes:
            raise InvalidReferenceError(
                "OptionValue",
                option_value_id,
                reason=(
                    f"Option value '{option_value.name}' belongs to option type "
                    f"'{option_value.option_type.name}', which is not assigned to "
                    f"product '{product.name}'"
                ),
                details={**context, "option_type_id": option_value.option_type_id},
            )

    per_axis = Counter(found[ov_id].option_type_id for ov_id in option_value_ids)
    missing = [axes[axis].name for axis in axes if per_axis[axis] == 0]
    repeated = [axes[axis].name for axis, count in per_axis.items() if count > 1]
    if missing or repeated:
        raise IncompleteOptionsError(sku, missing=missing, repeated=repeated, index=index)


def check_unique_combination(
    product: Product,
    sku: str,
    option_value_ids: Sequence[str],
    taken: Iterable[frozenset[str]] = (),
    index: int | None = None,
) -> frozenset[str]:
    """Reject a variant whose option combination an active sibling already has.

    Args:
        product: Parent product with its variants loaded.
        sku: SKU of the variant being created.
        option_value_ids: Requested option value IDs.
        taken: Combinations reserved earlier in the same batch.
        index: Entry position in a bulk request.

    Returns:
        The combination, for the caller to reserve.

    Raises:
        ValidationError: If the combination already exists.
    """
    combination = frozenset(option_value_ids)
    existing = {
        frozenset(ov.id for ov in v.option_values)
        for v in product.option_variants
        if v.is_active
    }
    if combination and (combination in existing or combination in set(taken)):
        details = {"sku": sku, "product_id": product.id}
        if index is not None:
            details["index"] = index
        raise ValidationError(
            f"Product '{product.name}' already has an active variant with these options",
            field="option_value_ids",
            details=details,
        )
    return combination
