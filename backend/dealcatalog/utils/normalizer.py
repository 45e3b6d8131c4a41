"""Normalization helpers shared by the importer and the query layer."""

import math
import re
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlsplit

from dealcatalog.models.enums import Gender


# Source gender spellings seen in scraper output, mapped onto the catalog enum
GENDER_ALIASES: Dict[str, Gender] = {
    "male": Gender.MALE,
    "men": Gender.MALE,
    "muski": Gender.MALE,
    "female": Gender.FEMALE,
    "women": Gender.FEMALE,
    "zenski": Gender.FEMALE,
    "child": Gender.CHILD,
    "kids": Gender.CHILD,
    "deciji": Gender.CHILD,
    "unisex": Gender.UNISEX,
}

# Canonical brand -> variants that should be merged with it
BRAND_ALIASES: Dict[str, List[str]] = {
    "CALVIN KLEIN": ["CALVIN", "CALVIN KLEIN BLACK LABEL", "CALVIN KLEIN JEANS", "CK"],
    "KARL LAGERFELD": ["KARL"],
    "NEW BALANCE": ["NEW_BALANCE", "NB"],
    "TOMMY HILFIGER": ["TOMMY", "TOMMY JEANS", "TOMMY_HILFIGER"],
    "UNDER ARMOUR": ["UNDER_ARMOUR", "UA"],
}

# Legacy single-word category filters used by the SEO filter pages
LEGACY_CATEGORY_PATHS: Dict[str, List[str]] = {
    "patike": ["obuca/patike"],
    "cipele": ["obuca/cipele"],
    "cizme": ["obuca/cizme"],
    "jakna": ["odeca/jakne"],
    "majica": ["odeca/majice"],
    "duks": ["odeca/duksevi"],
    "trenerka": ["odeca/trenerke"],
    "sorc": ["odeca/sorcevi"],
    "helanke": ["odeca/helanke"],
    "ranac": ["oprema/torbe", "oprema/rancevi"],
}

_RANGE_RE = re.compile(r"^(\d+)\s*-\s*(\d+)$")
_FRACTION_RE = re.compile(r"^(\d+)\s+(\d+)/(\d+)$")
_DECIMAL_RE = re.compile(r"^(\d+)\.(\d+)$")
_COMPOUND_RE = re.compile(r"^[A-Za-z0-9]+/[A-Za-z0-9]+$")
_SLUG_RE = re.compile(r"[^a-zA-Z0-9]")


def compute_discount(original_price: int, sale_price: int) -> int:
    """Discount percentage derived from the two prices.

    Returns 0 when either price is not positive.  Halves round up, so 12.5
    becomes 13.
    """
    if original_price <= 0 or sale_price <= 0:
        return 0
    return math.floor((original_price - sale_price) * 100 / original_price + 0.5)


def map_gender(value: Optional[str]) -> Gender:
    """Map a source gender string onto the enum, defaulting to unisex."""
    if not value:
        return Gender.UNISEX
    return GENDER_ALIASES.get(value.strip().lower(), Gender.UNISEX)


def normalize_sizes(sizes: Iterable[str]) -> List[str]:
    """Expand compound size tokens so exact-match filtering works.

    "43-45" -> 43, 44, 45; "38 2/3" -> 38, 39; "42.5" -> 42, 43;
    "S/M" -> S, M.  Order of first appearance is kept, duplicates dropped.
    """
    result: Dict[str, None] = {}

    for raw in sizes:
        s = raw.strip()
        if not s:
            continue

        match = _RANGE_RE.match(s)
        if match:
            a, b = int(match.group(1)), int(match.group(2))
            for i in range(min(a, b), max(a, b) + 1):
                result[str(i)] = None
            continue

        match = _FRACTION_RE.match(s)
        if match:
            whole = int(match.group(1))
            result[str(whole)] = None
            result[str(whole + 1)] = None
            continue

        match = _DECIMAL_RE.match(s)
        if match:
            whole = int(match.group(1))
            result[str(whole)] = None
            if int(match.group(2)) > 0:
                result[str(whole + 1)] = None
            continue

        if _COMPOUND_RE.match(s):
            for part in s.split("/"):
                result[part.upper()] = None
            continue

        result[s] = None

    return list(result)


def normalize_url(url: str) -> str:
    """Canonical form of a listing URL for identity purposes.

    Scheme, query string and fragment are dropped, the host is lower-cased
    and a trailing slash on the path is removed.
    """
    parts = urlsplit(url.strip())
    host = (parts.hostname or "").lower()
    if parts.port:
        host = f"{host}:{parts.port}"
    path = parts.path.rstrip("/")
    return f"{host}{path}"


def stable_deal_id(store: str, url: str) -> str:
    """Deal id derived only from store and normalized URL.

    Re-scraping the same product yields the same id, so repeated imports
    update the existing record instead of accumulating duplicates.
    """
    slug = _SLUG_RE.sub("-", normalize_url(url))[:80]
    return f"{store}-{slug}"


def brand_variants(brand: str) -> List[str]:
    """All spellings that should match a brand filter value.

    Includes the underscore form, the canonical brand's aliases and, when
    ``brand`` is itself an alias, the canonical form.
    """
    upper = brand.upper()
    variants = [brand, upper.replace(" ", "_"), brand.replace(" ", "_")]

    aliases = BRAND_ALIASES.get(upper)
    if aliases:
        variants.extend(aliases)
        variants.extend(a.replace("_", " ") for a in aliases)

    for canonical, alias_list in BRAND_ALIASES.items():
        if upper in alias_list:
            variants.extend([canonical, canonical.replace(" ", "_")])

    return list(dict.fromkeys(variants))


def legacy_category_paths(categories: Iterable[str]) -> List[str]:
    """Translate legacy category tokens to category paths; unknown tokens are dropped."""
    paths: List[str] = []
    for category in categories:
        paths.extend(LEGACY_CATEGORY_PATHS.get(category, []))
    return paths
