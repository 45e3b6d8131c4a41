"""Deal model: one listing from one store at its last scrape."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealcatalog.models.base import Base, TimestampMixin
from dealcatalog.models.enums import Gender, Store, enum_values


class Deal(TimestampMixin, Base):
    """A sale listing in the catalog.

    Deals are created or overwritten wholesale by the importer on each batch
    run and are never mutated by the query layer.  ``discount_percent`` is
    always derived from the two prices (see ``compute_discount``).
    """

    __tablename__ = "deals"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    store: Mapped[Store] = mapped_column(
        Enum(Store, name="store", native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        index=True,
    )

    # Content
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    brand: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[str] = mapped_column(String(2000), nullable=False, comment="Canonical source URL")
    image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    detail_image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Pricing (whole currency units)
    original_price: Mapped[int] = mapped_column(Integer, nullable=False)
    sale_price: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    discount_percent: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        index=True,
        comment="round((original - sale) / original * 100), 0 when not computable",
    )

    gender: Mapped[Gender] = mapped_column(
        Enum(Gender, name="gender", native_enum=False, values_callable=enum_values, length=10),
        nullable=False,
        default=Gender.UNISEX,
    )

    scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    details_scraped_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the detail-enrichment pass last ran for this listing",
    )

    size_entries: Mapped[List["DealSize"]] = relationship(
        back_populates="deal",
        cascade="all, delete-orphan",
        order_by="DealSize.position",
        lazy="selectin",
    )
    category_entries: Mapped[List["DealCategory"]] = relationship(
        back_populates="deal",
        cascade="all, delete-orphan",
        order_by="DealCategory.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_deals_store_scraped", "store", "scraped_at"),
        Index("idx_deals_discount_id", "discount_percent", "id"),
    )

    @property
    def sizes(self) -> List[str]:
        return [entry.size for entry in self.size_entries]

    @sizes.setter
    def sizes(self, values: List[str]) -> None:
        self.size_entries = [DealSize(size=v, position=i) for i, v in enumerate(values)]

    @property
    def categories(self) -> List[str]:
        return [entry.path for entry in self.category_entries]

    @categories.setter
    def categories(self, values: List[str]) -> None:
        self.category_entries = [DealCategory(path=v, position=i) for i, v in enumerate(values)]

    def __repr__(self) -> str:
        return f"<Deal(id={self.id}, store={self.store}, sale_price={self.sale_price}, discount={self.discount_percent})>"


class DealSize(Base):
    """One size token of a deal, kept in source order."""

    __tablename__ = "deal_sizes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deal_id: Mapped[str] = mapped_column(
        ForeignKey("deals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    size: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    deal: Mapped["Deal"] = relationship(back_populates="size_entries")


class DealCategory(Base):
    """One category path of a deal (e.g. ``obuca/patike``)."""

    __tablename__ = "deal_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deal_id: Mapped[str] = mapped_column(
        ForeignKey("deals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    path: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    deal: Mapped["Deal"] = relationship(back_populates="category_entries")
