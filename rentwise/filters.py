# Listing search and filter predicates.
# Pure functions over in-memory rows: no I/O, and the input order (newest first) is preserved.
from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, TypeVar, Union

T = TypeVar("T")

# Amenity tags offered as quick toggles by the listing page
COMMON_AMENITIES: tuple[str, ...] = (
    "In-unit Washer/Dryer",
    "Central AC/Heat",
    "Dishwasher",
    "High-Speed Internet",
    "Fitness Center",
    "Parking",
)

# Bedroom counts at or above this value share the "3+" bucket
BEDROOMS_TOP_BUCKET = 3

SEARCH_FIELDS: tuple[str, ...] = ("title", "location", "description")

NumberInput = Union[str, int, float, None]


@dataclass(frozen=True)
class BedroomFilter:
    """Bedroom constraint: exact count, or a lower bound for the top bucket."""
    count: int
    at_least: bool = False

    def matches(self, bedrooms: Optional[int]) -> bool:
        if bedrooms is None:
            return False
        if self.at_least:
            return bedrooms >= self.count
        return bedrooms == self.count


@dataclass(frozen=True)
class PropertyQuery:
    """
    Listing query as typed into the search box and filter panel.

    Numeric fields keep the raw user input; they are parsed permissively when
    matching, so unparseable text simply leaves that bound unconstrained.
    """
    search_term: str = ""
    min_price: NumberInput = None
    max_price: NumberInput = None
    bedrooms: NumberInput = None
    furnished: bool = False
    amenities: Sequence[str] = field(default_factory=tuple)


def parse_number(value: NumberInput) -> Optional[int]:
    """
    Parse a numeric filter input the way an integer form field would.

    Returns None (unconstrained) for blank or non-numeric input instead of raising.
    Fractional values are truncated toward zero.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number)


def parse_bedrooms(value: NumberInput) -> Optional[BedroomFilter]:
    """
    Parse the bedroom selector.

    "" -> None, "0" (studio) / "1" / "2" -> exact match,
    "3" or "3+" (and anything larger) -> at least that many bedrooms.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("+"):
            count = parse_number(text[:-1])
            return BedroomFilter(count, at_least=True) if count is not None else None
        value = text
    count = parse_number(value)
    if count is None:
        return None
    return BedroomFilter(count, at_least=count >= BEDROOMS_TOP_BUCKET)


def _field(item: Any, name: str) -> Any:
    # Rows may be ORM objects, pydantic models, or plain dicts
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def matches_search(item: Any, search_term: str) -> bool:
    term = (search_term or "").lower()
    if not term:
        return True
    for name in SEARCH_FIELDS:
        value = _field(item, name)
        if value and term in str(value).lower():
            return True
    return False


def matches_price(item: Any, min_price: NumberInput, max_price: NumberInput) -> bool:
    low = parse_number(min_price)
    high = parse_number(max_price)
    if low is None and high is None:
        return True
    price = _field(item, "price")
    if price is None:
        return False
    if low is not None and price < low:
        return False
    if high is not None and price > high:
        return False
    return True


def matches_bedrooms(item: Any, bedrooms: NumberInput) -> bool:
    bedroom_filter = parse_bedrooms(bedrooms)
    if bedroom_filter is None:
        return True
    return bedroom_filter.matches(_field(item, "bedrooms"))


def matches_furnished(item: Any, furnished: bool) -> bool:
    # Unchecked means "any", never "unfurnished only"
    if not furnished:
        return True
    return _field(item, "is_furnished") is True


def matches_amenities(item: Any, amenities: Iterable[str]) -> bool:
    required = [a for a in (amenities or ()) if a]
    if not required:
        return True
    offered = set(_field(item, "amenities") or ())
    return all(a in offered for a in required)


def property_matches(item: Any, query: PropertyQuery) -> bool:
    return (
        matches_search(item, query.search_term)
        and matches_price(item, query.min_price, query.max_price)
        and matches_bedrooms(item, query.bedrooms)
        and matches_furnished(item, query.furnished)
        and matches_amenities(item, query.amenities)
    )


def filter_properties(properties: Iterable[T], query: Optional[PropertyQuery] = None) -> List[T]:
    """
    Return the properties matching every active predicate of `query`, in input order.

    An unconstrained query returns every input row.
    """
    if query is None:
        return list(properties)
    return [p for p in properties if property_matches(p, query)]


def query_is_active(query: PropertyQuery) -> bool:
    """True when at least one predicate would constrain the result."""
    return bool(
        query.search_term
        or parse_number(query.min_price) is not None
        or parse_number(query.max_price) is not None
        or parse_bedrooms(query.bedrooms) is not None
        or query.furnished
        or any(query.amenities or ())
    )
