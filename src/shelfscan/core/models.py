"""Domain models for Shelfscan."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class MatchKind(str, Enum):
    """Lookup tier that produced a match."""

    EXACT = "EXACT"
    SECONDARY_CODE = "SECONDARY_CODE"
    LAST_EIGHT_DIGITS = "LAST_EIGHT_DIGITS"
    SERIES = "SERIES"
    NAME = "NAME"
    NONE = "NONE"


class ExpiryStatus(str, Enum):
    """Freshness classification of an expiry date."""

    EXPIRED = "expired"
    EXPIRING = "expiring"
    OK = "ok"
    UNKNOWN = "unknown"


class SmartMatchKind(str, Enum):
    """Outcome tag of the smart dispatcher."""

    EXACT_BARCODE = "exact_barcode"
    SERIES_BARCODE = "series_barcode"
    NAME = "name"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class ProductRecord:
    """A catalog product, keyed on primary_code."""

    primary_code: str
    display_name: str
    secondary_code: str | None = None


@dataclass(frozen=True)
class DecodedBarcode:
    """Fields extracted from a raw scan."""

    raw: str = ""
    gtin14: str = ""
    gtin13: str = ""
    batch: str | None = None
    serial: str | None = None
    quantity: int = 1
    expiry: date | None = None
    is_structured: bool = False

    @property
    def has_gtin(self) -> bool:
        return bool(self.gtin14)


@dataclass(frozen=True)
class MatchResult:
    """Result of a tiered product lookup.

    ``product`` is only set when the tier resolved to a single record;
    ambiguous tiers report every candidate instead.
    """

    match_kind: MatchKind = MatchKind.NONE
    product: ProductRecord | None = None
    candidates: tuple[ProductRecord, ...] = field(default_factory=tuple)

    @property
    def found(self) -> bool:
        return self.match_kind is not MatchKind.NONE


@dataclass(frozen=True)
class ScoredProduct:
    """A name search hit."""

    product: ProductRecord
    score: int


@dataclass(frozen=True)
class SmartMatchResult:
    """Tagged outcome of the smart dispatcher."""

    kind: SmartMatchKind
    results: list[ProductRecord] = field(default_factory=list)
