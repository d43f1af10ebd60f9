"""SQLAlchemy models for the product catalog.

Defines tax/shipping categories, option types and values, products,
variants and images for persistent storage.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shopcatalog.domain.value_objects import Money
from shopcatalog.infrastructure.database import Base


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


product_option_types = Table(
    "product_option_types",
    Base.metadata,
    Column(
        "product_id",
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "option_type_id",
        String(36),
        ForeignKey("option_types.id", ondelete="RESTRICT"),
        primary_key=True,
    ),
)

variant_option_values = Table(
    "variant_option_values",
    Base.metadata,
    Column(
        "variant_id",
        String(36),
        ForeignKey("variants.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "option_value_id",
        String(36),
        ForeignKey("option_values.id", ondelete="RESTRICT"),
        primary_key=True,
    ),
)


class TaxCategory(Base):
    """Named group of tax rules."""

    __tablename__ = "tax_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    def __repr__(self) -> str:
        return f"<TaxCategory(id={self.id}, name={self.name})>"


class ShippingCategory(Base):
    """Named group of shipping rules."""

    __tablename__ = "shipping_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    def __repr__(self) -> str:
        return f"<ShippingCategory(id={self.id}, name={self.name})>"


class OptionType(Base):
    """A configurable axis of variation (e.g., size).

    Attributes:
        name: Unique internal name (e.g., "armour-size").
        presentation: Display label (e.g., "Size").
        position: Display order among option types.
    """

    __tablename__ = "option_types"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    presentation: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    option_values: Mapped[list["OptionValue"]] = relationship(
        "OptionValue",
        back_populates="option_type",
        order_by="OptionValue.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<OptionType(id={self.id}, name={self.name})>"


class OptionValue(Base):
    """One choice on an option type (e.g., "Medium")."""

    __tablename__ = "option_values"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    option_type_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("option_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    presentation: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    option_type: Mapped["OptionType"] = relationship(
        "OptionType", back_populates="option_values", lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint("option_type_id", "position", name="uq_option_values_type_position"),
        UniqueConstraint("option_type_id", "name", name="uq_option_values_type_name"),
    )

    def __repr__(self) -> str:
        return f"<OptionValue(id={self.id}, name={self.name}, position={self.position})>"


class Product(Base):
    """Product entity in the catalog.

    The price of a product is the price of its master variant. A product
    is retired by clearing available_on, never by deleting the row.

    Attributes:
        id: Unique product identifier (UUID).
        name: Product name.
        slug: URL-safe unique handle derived from the name.
        description: Product description.
        available_on: When the product becomes purchasable; None when retired.
        tax_category_id: Tax category reference.
        shipping_category_id: Shipping category reference.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    available_on: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    tax_category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tax_categories.id"), nullable=False, index=True
    )
    shipping_category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("shipping_categories.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    # Relationships
    tax_category: Mapped["TaxCategory"] = relationship("TaxCategory", lazy="selectin")
    shipping_category: Mapped["ShippingCategory"] = relationship(
        "ShippingCategory", lazy="selectin"
    )
    option_types: Mapped[list["OptionType"]] = relationship(
        "OptionType",
        secondary=product_option_types,
        order_by="OptionType.position",
        lazy="selectin",
    )
    variants: Mapped[list["Variant"]] = relationship(
        "Variant",
        back_populates="product",
        order_by="Variant.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, slug={self.slug})>"

    @property
    def master(self) -> "Variant":
        """The variant representing the product before option selection."""
        return next(v for v in self.variants if v.is_master)

    @property
    def option_variants(self) -> list["Variant"]:
        """Non-master variants, active or not."""
        return [v for v in self.variants if not v.is_master]

    @property
    def price(self) -> Money:
        return self.master.price

    @property
    def is_retired(self) -> bool:
        return self.available_on is None

    def is_available(self, at: datetime | None = None) -> bool:
        """Check whether the product is purchasable at the given time.

        Args:
            at: Point in time (defaults to now).

        Returns:
            True if available_on is set and not in the future.
        """
        if self.available_on is None:
            return False
        return as_utc(self.available_on) <= as_utc(at or _utcnow())

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "available_on": self.available_on.isoformat() if self.available_on else None,
            "tax_category": self.tax_category.name,
            "shipping_category": self.shipping_category.name,
            "price": {
                "amount": self.master.price_cents,
                "currency": self.master.currency,
            },
            "option_types": [ot.name for ot in self.option_types],
            "variants": [v.to_dict() for v in self.variants],
        }


class Variant(Base):
    """A concrete purchasable combination of option values.

    The SKU never changes once assigned. Variants that must disappear from
    the storefront are deactivated instead of deleted.

    Attributes:
        id: Unique variant identifier.
        product_id: Parent product ID.
        sku: Store-wide unique Stock Keeping Unit.
        is_master: Whether this variant stands for the product itself.
        price_cents: Price in the smallest currency unit.
        currency: ISO currency code.
        stock_quantity: Units on hand.
        position: Display order within the product.
        deactivated_at: When the variant was withdrawn, if ever.
    """

    __tablename__ = "variants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    is_master: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deactivated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    # Relationships
    product: Mapped["Product"] = relationship(
        "Product", back_populates="variants", lazy="selectin"
    )
    option_values: Mapped[list["OptionValue"]] = relationship(
        "OptionValue",
        secondary=variant_option_values,
        lazy="selectin",
    )
    images: Mapped[list["Image"]] = relationship(
        "Image",
        back_populates="variant",
        order_by="Image.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (UniqueConstraint("sku", name="uq_variants_sku"),)

    def __repr__(self) -> str:
        return f"<Variant(id={self.id}, sku={self.sku}, master={self.is_master})>"

    @property
    def price(self) -> Money:
        return Money(amount_cents=self.price_cents, currency=self.currency)

    @property
    def is_active(self) -> bool:
        return self.deactivated_at is None

    @property
    def option_type_ids(self) -> set[str]:
        return {ov.option_type_id for ov in self.option_values}

    @property
    def options_text(self) -> str:
        """Human-readable option summary, e.g. "Size: Medium"."""
        values = sorted(self.option_values, key=lambda ov: ov.option_type.position)
        return ", ".join(f"{ov.option_type.presentation}: {ov.presentation}" for ov in values)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "sku": self.sku,
            "is_master": self.is_master,
            "price": {"amount": self.price_cents, "currency": self.currency},
            "stock_quantity": self.stock_quantity,
            "active": self.is_active,
            "options": {ov.option_type.name: ov.name for ov in self.option_values},
            "images": [image.filename for image in self.images],
        }


class Image(Base):
    """Photo asset attached to a variant."""

    __tablename__ = "images"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    variant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("variants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    byte_size: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    variant: Mapped["Variant"] = relationship("Variant", back_populates="images")

    def __repr__(self) -> str:
        return f"<Image(id={self.id}, filename={self.filename})>"
