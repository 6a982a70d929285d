"""Lookup structures built from the product catalog."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

import structlog

from shelfscan.core.models import ProductRecord

logger = structlog.get_logger()

GTIN_LENGTH = 14
SUFFIX_LENGTH = 8

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_code(code: str | None) -> str:
    """Strip everything but digits from a catalog code."""
    return _NON_DIGITS.sub("", code or "")


def code_variants(normalized: str) -> list[str]:
    """Keys a normalized code is registered under.

    Catalog sources and scanners disagree on left-padding, so a code is
    stored as-is, zero-padded to 14 digits, and padded minus one zero.
    """
    if not normalized:
        return []
    padded = normalized.zfill(GTIN_LENGTH)
    variants = [normalized, padded]
    if padded.startswith("0"):
        variants.append(padded[1:])
    return list(dict.fromkeys(variants))


def _record_key(record: ProductRecord) -> str:
    return record.primary_code.strip() or f"secondary:{(record.secondary_code or '').strip()}"


def _is_indexable(record: ProductRecord) -> bool:
    return bool(normalize_code(record.primary_code) or (record.secondary_code or "").strip())


def _latest_by_key(records: Iterable[ProductRecord]) -> dict[str, ProductRecord]:
    """Collapse duplicate primary codes; the last record wins the first one's position."""
    latest: dict[str, ProductRecord] = {}
    for record in records:
        latest[_record_key(record)] = record
    return latest


class _IndexBuilder:
    """Mutable scratch space used to produce a MasterIndex.

    Records must already be unique per primary code, so no registration
    ever has to be taken back.
    """

    def __init__(self):
        self.exact: dict[str, ProductRecord] = {}
        self.last_eight: dict[str, list[ProductRecord]] = {}
        self.secondary: dict[str, ProductRecord] = {}
        self.products: list[ProductRecord] = []

    def add(self, record: ProductRecord) -> bool:
        """Register a record; False when it carries no usable code."""
        if not _is_indexable(record):
            logger.debug("product_without_code_skipped", name=record.display_name)
            return False

        normalized = normalize_code(record.primary_code)
        secondary = (record.secondary_code or "").strip()
        self.products.append(record)

        for variant in code_variants(normalized):
            self.exact[variant] = record

        if len(normalized) >= SUFFIX_LENGTH:
            self.last_eight.setdefault(normalized[-SUFFIX_LENGTH:], []).append(record)

        if secondary:
            self.secondary[secondary] = record
            self.exact[secondary] = record

        return True

    def freeze(self, version: int) -> MasterIndex:
        return MasterIndex(
            exact_by_code=MappingProxyType(dict(self.exact)),
            by_last_eight=MappingProxyType({k: tuple(v) for k, v in self.last_eight.items()}),
            by_secondary_code=MappingProxyType(dict(self.secondary)),
            products=tuple(self.products),
            version=version,
        )


def _index_records(records: Iterable[ProductRecord], version: int) -> tuple[MasterIndex, int]:
    builder = _IndexBuilder()
    skipped = sum(1 for record in _latest_by_key(records).values() if not builder.add(record))
    return builder.freeze(version), skipped


@dataclass(frozen=True)
class MasterIndex:
    """Read-only lookup tables over one version of the catalog.

    ``exact_by_code`` maps every code variant (and every secondary code) to a
    product. ``by_last_eight`` keeps all products sharing a trailing 8-digit
    suffix so ambiguous suffixes can be detected. Updates never touch an
    existing index; ``with_product`` and ``without_product`` re-index the
    edited catalog into a new one, so a patched index always equals a
    rebuild from the same products.
    """

    exact_by_code: Mapping[str, ProductRecord] = field(default_factory=lambda: MappingProxyType({}))
    by_last_eight: Mapping[str, tuple[ProductRecord, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    by_secondary_code: Mapping[str, ProductRecord] = field(default_factory=lambda: MappingProxyType({}))
    products: tuple[ProductRecord, ...] = ()
    version: int = 0

    def __len__(self) -> int:
        return len(self.products)

    def get(self, primary_code: str) -> ProductRecord | None:
        """Look up a product by its primary code as stored in the catalog."""
        key = primary_code.strip()
        for product in self.products:
            if product.primary_code.strip() == key:
                return product
        return None

    def with_product(self, record: ProductRecord) -> MasterIndex:
        """Return a new index with ``record`` upserted on its primary code.

        A record without any usable code replaces (and so drops) the product
        stored under the same primary code.
        """
        catalog = _latest_by_key(self.products)
        key = _record_key(record)
        if key not in catalog and not _is_indexable(record):
            logger.debug("product_without_code_skipped", name=record.display_name)
            return self
        catalog[key] = record

        index, _ = _index_records(catalog.values(), self.version + 1)
        logger.debug("master_index_patched", primary_code=record.primary_code, version=index.version)
        return index

    def without_product(self, primary_code: str) -> MasterIndex:
        """Return a new index without the product stored under ``primary_code``."""
        catalog = _latest_by_key(self.products)
        if catalog.pop(primary_code.strip(), None) is None:
            return self

        index, _ = _index_records(catalog.values(), self.version + 1)
        logger.debug("master_index_patched", removed=primary_code, version=index.version)
        return index


def build_master_index(records: Iterable[ProductRecord], version: int = 1) -> MasterIndex:
    """Build a fresh MasterIndex from the full catalog.

    Args:
        records: Catalog in its original order; later duplicates of a
            primary code replace earlier ones
        version: Version number stamped on the new index

    Returns:
        A new, fully built MasterIndex
    """
    index, skipped = _index_records(records, version)
    logger.info(
        "master_index_built",
        version=version,
        products=len(index.products),
        codes=len(index.exact_by_code),
        skipped=skipped,
    )
    return index
