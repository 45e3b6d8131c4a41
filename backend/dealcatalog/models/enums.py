"""Closed value sets shared by models, schemas and services."""

import enum


class Store(str, enum.Enum):
    """Retailers whose scrape output the catalog accepts."""

    DJAKSPORT = "djaksport"
    PLANETA = "planeta"
    SPORTVISION = "sportvision"
    NSPORT = "nsport"
    BUZZ = "buzz"
    OFFICESHOES = "officeshoes"
    INTERSPORT = "intersport"
    TREFSPORT = "trefsport"

    @classmethod
    def parse(cls, value: object) -> "Store | None":
        """Return the member for ``value`` or None when it is not a known store."""
        try:
            return cls(value)
        except ValueError:
            return None


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    CHILD = "child"
    UNISEX = "unisex"

    @classmethod
    def parse(cls, value: object) -> "Gender | None":
        try:
            return cls(value)
        except ValueError:
            return None


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """values_callable for sqlalchemy.Enum so the DB stores values, not names."""
    return [member.value for member in enum_cls]
