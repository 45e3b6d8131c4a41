"""Parsed deal query: the filter/sort/page request understood by the query service.

Parsing is permissive by contract.  Comma-joined lists are split, blanks and
out-of-domain enum tokens are dropped, lists are capped, and numbers that do
not parse fall back to their defaults.  Nothing here raises for odd client
state; the result is always a usable query.
"""

import enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from dealcatalog.models.enums import Gender, Store

DEFAULT_PAGE_SIZE = 32
MAX_PAGE_SIZE = 100
MAX_PAGE = 1000
MAX_SEARCH_LENGTH = 100

# Product-level discount floor applied by the public endpoint
DEFAULT_MIN_DISCOUNT = 50

LIST_CAPS = {
    "stores": 10,
    "brands": 50,
    "genders": 5,
    "categories": 20,
    "category_paths": 50,
    "sizes": 30,
}


class SortKey(str, enum.Enum):
    DISCOUNT = "discount"
    PRICE_LOW = "price-low"
    PRICE_HIGH = "price-high"
    NEWEST = "newest"


def split_list(value: Any) -> List[str]:
    """Accept a comma-joined string or a list of strings; drop blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = []
        for item in value:
            items.extend(str(item).split(","))
    else:
        return []
    return [item.strip() for item in items if item and item.strip()]


def int_or_default(value: Any, default: Optional[int]) -> Optional[int]:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


class DealQuery(BaseModel):
    """A normalized deals query.  Build with ``DealQuery.parse(...)``."""

    search: str = ""
    stores: List[Store] = Field(default_factory=list)
    brands: List[str] = Field(default_factory=list)
    genders: List[Gender] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    category_paths: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    min_discount: int = 0
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    sort_by: SortKey = SortKey.DISCOUNT
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @field_validator("search", mode="before")
    @classmethod
    def clip_search(cls, v: Any) -> str:
        if not isinstance(v, str):
            return ""
        return v.strip()[:MAX_SEARCH_LENGTH]

    @field_validator("stores", mode="before")
    @classmethod
    def known_stores(cls, v: Any) -> List[Store]:
        parsed = [Store.parse(s) for s in split_list(v)]
        return [s for s in dict.fromkeys(parsed) if s is not None][: LIST_CAPS["stores"]]

    @field_validator("genders", mode="before")
    @classmethod
    def known_genders(cls, v: Any) -> List[Gender]:
        parsed = [Gender.parse(g) for g in split_list(v)]
        return [g for g in dict.fromkeys(parsed) if g is not None][: LIST_CAPS["genders"]]

    @field_validator("brands", "categories", "category_paths", "sizes", mode="before")
    @classmethod
    def capped_list(cls, v: Any, info) -> List[str]:
        return split_list(v)[: LIST_CAPS[info.field_name]]

    @field_validator("min_discount", mode="before")
    @classmethod
    def clamp_discount(cls, v: Any) -> int:
        value = int_or_default(v, 0)
        return min(max(value, 0), 100)

    @field_validator("min_price", "max_price", mode="before")
    @classmethod
    def optional_price(cls, v: Any) -> Optional[int]:
        return int_or_default(v, None)

    @field_validator("sort_by", mode="before")
    @classmethod
    def known_sort(cls, v: Any) -> SortKey:
        try:
            return SortKey(v)
        except ValueError:
            return SortKey.DISCOUNT

    @field_validator("page", mode="before")
    @classmethod
    def clamp_page(cls, v: Any) -> int:
        value = int_or_default(v, 1)
        if value < 1:
            return 1
        return min(value, MAX_PAGE)

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, v: Any) -> int:
        value = int_or_default(v, DEFAULT_PAGE_SIZE)
        if value < 1:
            return DEFAULT_PAGE_SIZE
        return min(value, MAX_PAGE_SIZE)

    @classmethod
    def parse(cls, **params: Any) -> "DealQuery":
        """Build a query from raw parameters, ignoring ones left as None."""
        return cls(**{k: v for k, v in params.items() if v is not None})

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def cache_key(self) -> str:
        """Stable cache key for this query."""
        parts = [
            "deals",
            f"p{self.page}",
            f"l{self.limit}",
            f"s{self.sort_by.value}",
            f"d{self.min_discount}",
        ]
        if self.search:
            parts.append(f"q{self.search.lower()}")
        if self.stores:
            parts.append("st" + ",".join(sorted(s.value for s in self.stores)))
        if self.brands:
            parts.append("b" + ",".join(sorted(self.brands)))
        if self.genders:
            parts.append("g" + ",".join(sorted(g.value for g in self.genders)))
        if self.categories:
            parts.append("c" + ",".join(sorted(self.categories)))
        if self.category_paths:
            parts.append("cp" + ",".join(sorted(self.category_paths)))
        if self.sizes:
            parts.append("sz" + ",".join(sorted(self.sizes)))
        if self.min_price is not None:
            parts.append(f"min{self.min_price}")
        if self.max_price is not None:
            parts.append(f"max{self.max_price}")
        return ":".join(parts)
