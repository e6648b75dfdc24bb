"""Listing Search — conjunction of optional predicates over the record collection.

Invariants:
    - Pure function: no IO, no async, no store access
    - AND logic: a record is kept only if it satisfies every supplied criterion
    - Text criteria are case-insensitive substring matches
    - Numeric bounds are inclusive; a bound of 0 is a real constraint
    - Output preserves input (insertion) order; no criteria returns the input unchanged

Design Decisions:
    - Single linear pass, no index structures (collection is loaded whole anyway)
    - A record missing the field, or holding a non-numeric value, fails that criterion
      instead of raising: persisted data is an open mapping
"""

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class ListingFilters:
    """Optional search criteria; None means "no constraint"."""
    property_type: str | None = None
    location: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    min_beds: int | None = None
    min_baths: int | None = None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


def _contains(record: dict, key: str, needle: str) -> bool:
    value = record.get(key)
    if not isinstance(value, str):
        return False
    return needle.lower() in value.lower()


def _number(record: dict, key: str) -> float | None:
    value = record.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _at_least(record: dict, key: str, bound: float) -> bool:
    value = _number(record, key)
    return value is not None and value >= bound


def _at_most(record: dict, key: str, bound: float) -> bool:
    value = _number(record, key)
    return value is not None and value <= bound


def matches(record: dict, filters: ListingFilters) -> bool:
    """Check one record against every supplied criterion."""
    if filters.property_type is not None and not _contains(
        record, "propertyType", filters.property_type,
    ):
        return False
    if filters.location is not None and not _contains(
        record, "location", filters.location,
    ):
        return False
    if filters.min_price is not None and not _at_least(record, "price", filters.min_price):
        return False
    if filters.max_price is not None and not _at_most(record, "price", filters.max_price):
        return False
    if filters.min_beds is not None and not _at_least(record, "beds", filters.min_beds):
        return False
    if filters.min_baths is not None and not _at_least(record, "baths", filters.min_baths):
        return False
    return True


def filter_listings(
    records: list[dict], filters: ListingFilters | None = None,
) -> list[dict]:
    """Return the records matching all supplied criteria, in original order."""
    if filters is None or filters.is_empty:
        return records
    return [r for r in records if matches(r, filters)]
